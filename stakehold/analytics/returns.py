"""Time-weighted return over a position's transaction history.

Sub-period returns are chained geometrically between cash flows so the
size and timing of contributions do not distort the result:

    value = 0, growth = 1
    for each transaction after the first:
        if value > 0: growth *= (value + flow) / value
        value += flow
    if value > 0: growth *= current_value / value
    TWR % = (growth - 1) x 100
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable

from stakehold.ledger.cost_basis import order_transactions
from stakehold.ledger.positions import get_position
from stakehold.ledger.types import HUNDRED, ZERO, Transaction, TransactionType
from stakehold.storage.database import Database
from stakehold.storage.queries import list_transaction_rows

logger = logging.getLogger(__name__)

ONE = Decimal("1")

_POSITIVE_FLOWS = frozenset({
    TransactionType.BUY,
    TransactionType.CONTRIBUTION,
    TransactionType.DIVIDEND,
    TransactionType.INCOME,
    TransactionType.DISTRIBUTION,
})
_NEGATIVE_FLOWS = frozenset({TransactionType.SELL, TransactionType.WITHDRAWAL})


def cash_flow_amount(txn: Transaction) -> Decimal:
    """Signed cash flow of a transaction; EXPENSE and unknown types are 0."""
    if txn.transaction_type in _POSITIVE_FLOWS:
        return txn.total_amount
    if txn.transaction_type in _NEGATIVE_FLOWS:
        return -txn.total_amount
    return ZERO


def time_weighted_return(
    transactions: Iterable[Transaction],
    current_value: Decimal,
) -> Decimal:
    """TWR as a percentage. An empty history returns 0."""
    ordered = order_transactions(transactions)
    if not ordered:
        return ZERO

    value = ZERO
    growth = ONE
    for index, txn in enumerate(ordered):
        flow = cash_flow_amount(txn)
        if index > 0 and value > 0:
            growth *= (value + flow) / value
        value += flow

    if value > 0:
        growth *= current_value / value

    return (growth - ONE) * HUNDRED


def get_time_weighted_return(
    db: Database,
    position_id: str,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
    *,
    user_id: str | None = None,
) -> Decimal:
    """TWR of a position over its transactions within an optional date range.

    The final sub-period always runs to the position's current value.
    """
    position = get_position(db, position_id, user_id=user_id)
    rows = list_transaction_rows(
        db, position_id=position_id, start_date=start_date, end_date=end_date
    )
    twr = time_weighted_return([Transaction.from_row(r) for r in rows], position.current_value)
    logger.debug("TWR for %s over %d transaction(s): %s", position.label, len(rows), twr)
    return twr
