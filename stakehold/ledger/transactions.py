"""Transaction log service.

Every create, edit and delete runs in one unit of work together with the
recomputation of each position whose BUY/SELL history it touches, so a
reader never sees a log entry without the matching position state.

Input is validated with pydantic before the store is touched; validation
failures surface as :class:`stakehold.errors.ValidationError` with
field-level detail.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Iterable

import pydantic
from pydantic import BaseModel, ConfigDict, Field, model_validator

from stakehold.config.defaults import DEFAULT_OVERSELL_POLICY
from stakehold.errors import NotFoundError, ValidationError
from stakehold.ledger.positions import check_owner, recompute_position
from stakehold.ledger.types import (
    TRADE_TYPES,
    ZERO,
    Transaction,
    TransactionType,
    decimal_str,
)
from stakehold.storage.database import Database
from stakehold.storage.queries import (
    get_account,
    get_position_row,
    get_transaction_row,
    list_transaction_rows,
    new_id,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------

class TransactionInput(BaseModel):
    """A complete, valid transaction as it will be stored."""

    model_config = ConfigDict(extra="forbid")

    account_id: str = Field(min_length=1)
    position_id: str | None = None
    transaction_type: TransactionType
    transaction_date: date
    settlement_date: date | None = None
    shares: Decimal | None = Field(default=None, allow_inf_nan=False)
    price_per_share: Decimal | None = Field(default=None, ge=0, allow_inf_nan=False)
    total_amount: Decimal = Field(ge=0, allow_inf_nan=False)
    fees: Decimal = Field(default=ZERO, ge=0, allow_inf_nan=False)
    description: str = ""
    is_reconciled: bool = False

    @model_validator(mode="after")
    def trades_need_shares(self) -> "TransactionInput":
        if self.transaction_type in TRADE_TYPES:
            if self.shares is None:
                raise ValueError("shares is required for BUY and SELL")
            if self.shares <= 0:
                raise ValueError("shares must be positive for BUY and SELL")
            if self.price_per_share is None:
                self.price_per_share = self.total_amount / self.shares
        return self


class TransactionUpdate(BaseModel):
    """Partial edit; only the fields set are applied."""

    model_config = ConfigDict(extra="forbid")

    account_id: str | None = None
    position_id: str | None = None
    transaction_type: TransactionType | None = None
    transaction_date: date | None = None
    settlement_date: date | None = None
    shares: Decimal | None = None
    price_per_share: Decimal | None = None
    total_amount: Decimal | None = None
    fees: Decimal | None = None
    description: str | None = None
    is_reconciled: bool | None = None


def _validate(model: type[BaseModel], data: dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError.from_pydantic(e) from None


def _row_values(txn: TransactionInput) -> tuple:
    return (
        txn.account_id,
        txn.position_id,
        txn.transaction_type.value,
        txn.transaction_date.isoformat(),
        txn.settlement_date.isoformat() if txn.settlement_date else None,
        decimal_str(txn.shares),
        decimal_str(txn.price_per_share),
        decimal_str(txn.total_amount),
        decimal_str(txn.fees),
        txn.description,
        int(txn.is_reconciled),
    )


def _check_references(cur: Any, txn: TransactionInput, user_id: str | None) -> None:
    """Account must exist (and be the user's); a position must sit in it."""
    account = get_account(cur, txn.account_id)
    if account is None:
        raise NotFoundError("Account", txn.account_id)
    check_owner("Account", txn.account_id, account["user_id"], user_id)

    if txn.position_id is not None:
        position = get_position_row(cur, txn.position_id)
        if position is None:
            raise NotFoundError("Position", txn.position_id)
        if position["account_id"] != txn.account_id:
            raise ValidationError(
                "Position belongs to a different account",
                [{"field": "position_id", "message": "position is not in this account"}],
            )


def _affects_ledger(transaction_type: TransactionType | str, position_id: str | None) -> bool:
    return position_id is not None and TransactionType(transaction_type) in TRADE_TYPES


def _load(cur: Any, transaction_id: str) -> Transaction:
    row = get_transaction_row(cur, transaction_id)
    if row is None:
        raise NotFoundError("Transaction", transaction_id)
    return Transaction.from_row(row)


def _owner_of(cur: Any, txn: Transaction) -> str:
    account = get_account(cur, txn.account_id)
    return account["user_id"] if account else ""


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def record_transaction(
    db: Database,
    account_id: str,
    transaction_type: TransactionType | str,
    transaction_date: date | str,
    total_amount: Decimal | str | int | float,
    *,
    position_id: str | None = None,
    shares: Decimal | str | int | float | None = None,
    price_per_share: Decimal | str | int | float | None = None,
    fees: Decimal | str | int | float = ZERO,
    settlement_date: date | str | None = None,
    description: str = "",
    is_reconciled: bool = False,
    user_id: str | None = None,
    oversell_policy: str = DEFAULT_OVERSELL_POLICY,
) -> Transaction:
    """Append a transaction; BUY/SELL against a position recomputes it.

    Parameters
    ----------
    db : Database
        Open database.
    account_id : str
        Owning account.
    transaction_type : TransactionType | str
        One of the eight transaction types.
    transaction_date : date | str
        Trade date (``YYYY-MM-DD``).
    total_amount : Decimal
        Gross amount of the event, non-negative.
    position_id : str | None
        Position the event belongs to. Must be in ``account_id``.
    shares, price_per_share : Decimal | None
        Required shares for BUY/SELL. A missing price is derived as
        ``total_amount / shares``.
    fees : Decimal
        Commissions and fees, non-negative.
    user_id : str | None
        When given, the account must belong to this user.
    oversell_policy : str
        Passed through to :func:`recompute_position`.

    Returns
    -------
    Transaction
        The stored transaction, including realized gain/loss for a SELL.
    """
    txn = validate_transaction(
        account_id, transaction_type, transaction_date, total_amount,
        position_id=position_id,
        shares=shares,
        price_per_share=price_per_share,
        fees=fees,
        settlement_date=settlement_date,
        description=description,
        is_reconciled=is_reconciled,
    )
    with db.transaction() as cur:
        stored = insert_transaction(cur, txn, user_id=user_id, oversell_policy=oversell_policy)

    logger.info(
        "Recorded %s %s on %s (amount=%s)",
        stored.transaction_type.value, stored.id,
        stored.transaction_date, stored.total_amount,
    )
    return stored


def validate_transaction(
    account_id: str,
    transaction_type: TransactionType | str,
    transaction_date: date | str,
    total_amount: Decimal | str | int | float,
    *,
    position_id: str | None = None,
    shares: Decimal | str | int | float | None = None,
    price_per_share: Decimal | str | int | float | None = None,
    fees: Decimal | str | int | float = ZERO,
    settlement_date: date | str | None = None,
    description: str = "",
    is_reconciled: bool = False,
) -> TransactionInput:
    """Check a new transaction's fields without touching the store."""
    return _validate(TransactionInput, {
        "account_id": account_id,
        "position_id": position_id,
        "transaction_type": transaction_type,
        "transaction_date": transaction_date,
        "settlement_date": settlement_date,
        "shares": shares,
        "price_per_share": price_per_share,
        "total_amount": total_amount,
        "fees": fees,
        "description": description,
        "is_reconciled": is_reconciled,
    })


def insert_transaction(
    cur: Any,
    txn: TransactionInput,
    *,
    user_id: str | None = None,
    oversell_policy: str = DEFAULT_OVERSELL_POLICY,
) -> Transaction:
    """Store a validated transaction on the cursor of an open unit of work.

    A BUY/SELL against a position recomputes it on the same cursor, so an
    oversell raised here rolls back every write the caller made with it.
    """
    transaction_id = new_id()
    _check_references(cur, txn, user_id)
    cur.execute(
        """INSERT INTO transactions (
            id, account_id, position_id, transaction_type, transaction_date,
            settlement_date, shares, price_per_share, total_amount, fees,
            description, is_reconciled
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (transaction_id, *_row_values(txn)),
    )
    if _affects_ledger(txn.transaction_type, txn.position_id):
        recompute_position(cur, txn.position_id, oversell_policy=oversell_policy)
    return _load(cur, transaction_id)


def edit_transaction(
    db: Database,
    transaction_id: str,
    *,
    user_id: str | None = None,
    oversell_policy: str = DEFAULT_OVERSELL_POLICY,
    **fields: Any,
) -> Transaction:
    """Apply a partial edit and recompute every position it touches.

    Moving a trade between positions, or changing its type, recomputes
    both the old and the new position in the same unit of work.
    """
    update = _validate(TransactionUpdate, fields)
    changes = update.model_dump(exclude_unset=True)

    with db.transaction() as cur:
        before = _load(cur, transaction_id)
        check_owner("Transaction", transaction_id, _owner_of(cur, before), user_id)

        merged = {
            "account_id": before.account_id,
            "position_id": before.position_id,
            "transaction_type": before.transaction_type,
            "transaction_date": before.transaction_date,
            "settlement_date": before.settlement_date,
            "shares": before.shares,
            "price_per_share": before.price_per_share,
            "total_amount": before.total_amount,
            "fees": before.fees,
            "description": before.description,
            "is_reconciled": before.is_reconciled,
        }
        # A new amount or share count re-derives the price unless one is given.
        if ({"total_amount", "shares"} & changes.keys()) and "price_per_share" not in changes:
            merged["price_per_share"] = None
        merged.update(changes)
        txn = _validate(TransactionInput, merged)
        _check_references(cur, txn, user_id)

        cur.execute(
            """UPDATE transactions SET
                account_id = ?, position_id = ?, transaction_type = ?,
                transaction_date = ?, settlement_date = ?, shares = ?,
                price_per_share = ?, total_amount = ?, fees = ?,
                description = ?, is_reconciled = ?,
                realized_gain_loss = NULL, cost_basis = NULL
            WHERE id = ?""",
            (*_row_values(txn), transaction_id),
        )

        affected = []
        if _affects_ledger(before.transaction_type, before.position_id):
            affected.append(before.position_id)
        if _affects_ledger(txn.transaction_type, txn.position_id) and txn.position_id not in affected:
            affected.append(txn.position_id)
        for position_id in affected:
            recompute_position(cur, position_id, oversell_policy=oversell_policy)
        stored = _load(cur, transaction_id)

    logger.info("Edited transaction %s (%s)", transaction_id, ", ".join(sorted(changes)) or "no changes")
    return stored


def delete_transaction(
    db: Database,
    transaction_id: str,
    *,
    user_id: str | None = None,
    oversell_policy: str = DEFAULT_OVERSELL_POLICY,
) -> None:
    """Delete a transaction and recompute its position if it was a trade."""
    with db.transaction() as cur:
        before = _load(cur, transaction_id)
        check_owner("Transaction", transaction_id, _owner_of(cur, before), user_id)
        cur.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
        if _affects_ledger(before.transaction_type, before.position_id):
            recompute_position(cur, before.position_id, oversell_policy=oversell_policy)

    logger.info("Deleted %s transaction %s", before.transaction_type.value, transaction_id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_transaction(
    db: Database, transaction_id: str, *, user_id: str | None = None
) -> Transaction:
    txn = _load(db, transaction_id)
    check_owner("Transaction", transaction_id, _owner_of(db, txn), user_id)
    return txn


def list_transactions(
    db: Database,
    *,
    user_id: str | None = None,
    account_id: str | None = None,
    position_id: str | None = None,
    types: Iterable[TransactionType | str] | None = None,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
    newest_first: bool = False,
) -> list[Transaction]:
    rows = list_transaction_rows(
        db,
        user_id=user_id,
        account_id=account_id,
        position_id=position_id,
        types=types,
        start_date=start_date,
        end_date=end_date,
        ascending=not newest_first,
    )
    return [Transaction.from_row(r) for r in rows]
