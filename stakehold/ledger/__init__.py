"""Position ledger: transaction log, cost basis and derived position state."""

from stakehold.ledger.cost_basis import CostBasisResult, compute_cost_basis
from stakehold.ledger.positions import (
    create_position,
    get_position,
    list_positions,
    open_position,
    recompute,
    recompute_position,
    set_price,
)
from stakehold.ledger.transactions import (
    delete_transaction,
    edit_transaction,
    get_transaction,
    insert_transaction,
    list_transactions,
    record_transaction,
    validate_transaction,
)
from stakehold.ledger.types import Position, Transaction, TransactionType

__all__ = [
    "CostBasisResult",
    "Position",
    "Transaction",
    "TransactionType",
    "compute_cost_basis",
    "create_position",
    "delete_transaction",
    "edit_transaction",
    "get_position",
    "get_transaction",
    "insert_transaction",
    "list_positions",
    "list_transactions",
    "open_position",
    "record_transaction",
    "recompute",
    "recompute_position",
    "set_price",
    "validate_transaction",
]
