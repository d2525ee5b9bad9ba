"""Position ledger: the only writer of a position's derived fields.

Shares and cost basis change exclusively through :func:`recompute_position`,
which re-reads the position's full BUY/SELL history inside the caller's unit
of work. :func:`set_price` moves the valuation fields only.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any

from stakehold.config.defaults import DEFAULT_OVERSELL_POLICY, POSITION_CATEGORIES
from stakehold.errors import (
    InvalidStateError,
    NotFoundError,
    OversellError,
    UnauthorizedError,
    ValidationError,
)
from stakehold.ledger.cost_basis import compute_cost_basis
from stakehold.ledger.types import (
    TRADE_TYPES,
    ZERO,
    Position,
    Transaction,
    TransactionType,
    decimal_str,
    to_optional_decimal,
)
from stakehold.storage.database import Database
from stakehold.storage.queries import (
    get_account,
    get_position_row,
    insert_position,
    list_position_rows,
    list_transaction_rows,
)

logger = logging.getLogger(__name__)


def check_owner(entity: str, entity_id: str, owner_id: str, user_id: str | None) -> None:
    """Raise UnauthorizedError when ``user_id`` is given and is not the owner."""
    if user_id is not None and owner_id != user_id:
        raise UnauthorizedError(entity, entity_id, user_id)


def _load_position(cur: Any, position_id: str) -> Position:
    row = get_position_row(cur, position_id)
    if row is None:
        raise NotFoundError("Position", position_id)
    try:
        return Position.from_row(row)
    except InvalidStateError:
        logger.error("Position %s has corrupt stored state", position_id)
        raise


def _parse_price(price: Any) -> Decimal:
    try:
        value = Decimal(str(price))
    except (InvalidOperation, ValueError):
        raise ValidationError(
            "Invalid price", [{"field": "price", "message": f"not a number: {price!r}"}]
        ) from None
    if not value.is_finite() or value < 0:
        raise ValidationError(
            "Invalid price", [{"field": "price", "message": "must be a non-negative number"}]
        )
    return value


# ---------------------------------------------------------------------------
# Recompute
# ---------------------------------------------------------------------------

def recompute_position(
    cur: Any,
    position_id: str,
    *,
    oversell_policy: str = DEFAULT_OVERSELL_POLICY,
) -> Position:
    """Re-derive a position from its BUY/SELL history.

    Must run on the cursor of an open unit of work
    (:meth:`Database.transaction`); any error raised here rolls back the
    triggering transaction write along with it.

    Parameters
    ----------
    cur : sqlite3.Cursor
        Cursor of the enclosing unit of work.
    position_id : str
        Position to recompute.
    oversell_policy : str
        ``"reject"`` raises :class:`OversellError` when any SELL drives the
        share count below zero; ``"allow"`` stores the negative count.

    Returns
    -------
    Position
        The position as written.
    """
    position = _load_position(cur, position_id)
    if position.current_price is None:
        logger.error("Position %s has no current price; cannot recompute", position_id)
        raise InvalidStateError(f"Position {position_id} has no current price")

    rows = list_transaction_rows(cur, position_id=position_id, types=TRADE_TYPES)
    txns = [Transaction.from_row(r) for r in rows]
    result = compute_cost_basis(txns)

    if result.oversold and oversell_policy == "reject":
        raise OversellError(position_id, result.total_shares)
    if result.oversold:
        logger.warning(
            "Position %s is oversold (shares=%s); allowed by policy",
            position_id, result.total_shares,
        )

    current_value = result.total_shares * position.current_price
    unrealized = current_value - result.total_cost_basis

    # SELL rows carry the realized outcome; nothing else on the position may.
    by_id = {t.id: t for t in txns}
    for sale in result.sales:
        txn = by_id[sale.transaction_id]
        if txn.realized_gain_loss != sale.realized_gain_loss or txn.cost_basis != sale.cost_basis:
            cur.execute(
                "UPDATE transactions SET realized_gain_loss = ?, cost_basis = ? WHERE id = ?",
                (decimal_str(sale.realized_gain_loss), decimal_str(sale.cost_basis), txn.id),
            )
    cur.execute(
        """UPDATE transactions SET realized_gain_loss = NULL, cost_basis = NULL
        WHERE position_id = ? AND transaction_type != ?
          AND (realized_gain_loss IS NOT NULL OR cost_basis IS NOT NULL)""",
        (position_id, TransactionType.SELL.value),
    )

    derived = {
        "shares": result.total_shares,
        "cost_basis_total": result.total_cost_basis,
        "cost_basis_per_share": result.cost_basis_per_share,
        "current_value": current_value,
        "unrealized_gain_loss": unrealized,
        "realized_gain_loss": result.realized_gain_loss,
    }
    changed = any(getattr(position, name) != value for name, value in derived.items())
    if not changed:
        logger.debug("Position %s unchanged after recompute", position_id)
        return position

    cur.execute(
        """UPDATE positions SET
            shares = ?, cost_basis_total = ?, cost_basis_per_share = ?,
            current_value = ?, unrealized_gain_loss = ?, realized_gain_loss = ?,
            last_updated = datetime('now')
        WHERE id = ?""",
        (*(decimal_str(v) for v in derived.values()), position_id),
    )
    logger.debug(
        "Recomputed position %s: shares=%s cost_basis=%s from %d trade(s)",
        position_id, result.total_shares, result.total_cost_basis, len(txns),
    )
    return _load_position(cur, position_id)


def recompute(
    db: Database,
    position_id: str,
    *,
    user_id: str | None = None,
    oversell_policy: str = DEFAULT_OVERSELL_POLICY,
) -> Position:
    """Recompute a position in its own unit of work."""
    with db.transaction() as cur:
        position = _load_position(cur, position_id)
        check_owner("Position", position_id, position.user_id, user_id)
        return recompute_position(cur, position_id, oversell_policy=oversell_policy)


# ---------------------------------------------------------------------------
# Valuation
# ---------------------------------------------------------------------------

def set_price(
    db: Database,
    position_id: str,
    price: Decimal | str | int | float,
    *,
    user_id: str | None = None,
) -> Position:
    """Set the current price and revalue, leaving shares and cost basis alone."""
    new_price = _parse_price(price)

    with db.transaction() as cur:
        position = _load_position(cur, position_id)
        check_owner("Position", position_id, position.user_id, user_id)

        current_value = position.shares * new_price
        unrealized = current_value - position.cost_basis_total
        cur.execute(
            """UPDATE positions SET current_price = ?, current_value = ?,
                unrealized_gain_loss = ?, last_updated = datetime('now')
            WHERE id = ?""",
            (decimal_str(new_price), decimal_str(current_value),
             decimal_str(unrealized), position_id),
        )
        logger.info("Set price of %s to %s", position.label, new_price)
        return _load_position(cur, position_id)


# ---------------------------------------------------------------------------
# Reads and creation
# ---------------------------------------------------------------------------

def get_position(db: Database, position_id: str, *, user_id: str | None = None) -> Position:
    """Current derived snapshot of a position."""
    position = _load_position(db, position_id)
    check_owner("Position", position_id, position.user_id, user_id)
    return position


def list_positions(
    db: Database,
    user_id: str | None = None,
    account_id: str | None = None,
) -> list[Position]:
    return [Position.from_row(r) for r in list_position_rows(db, user_id, account_id)]


def open_position(
    cur: Any,
    account_id: str,
    name: str,
    *,
    symbol: str | None = None,
    category: str = "OTHER",
    current_price: Decimal | str | int | float = ZERO,
    user_id: str | None = None,
) -> Position:
    """Insert an empty position on the cursor of an open unit of work.

    Nothing is committed here; the position lands or rolls back with the
    caller's other writes.
    """
    category = category.upper()
    if category not in POSITION_CATEGORIES:
        raise ValidationError(
            "Invalid category",
            [{"field": "category", "message": f"must be one of {', '.join(POSITION_CATEGORIES)}"}],
        )
    if not name:
        raise ValidationError("Invalid name", [{"field": "name", "message": "required"}])
    price = _parse_price(current_price)

    account = get_account(cur, account_id)
    if account is None:
        raise NotFoundError("Account", account_id)
    check_owner("Account", account_id, account["user_id"], user_id)
    position_id = insert_position(
        cur, account_id, name, price,
        symbol=symbol.upper() if symbol else None,
        category=category,
    )
    return _load_position(cur, position_id)


def create_position(
    db: Database,
    account_id: str,
    name: str,
    *,
    symbol: str | None = None,
    category: str = "OTHER",
    current_price: Decimal | str | int | float = ZERO,
    user_id: str | None = None,
) -> Position:
    """Open an empty position; its shares and cost basis start at zero."""
    with db.transaction() as cur:
        position = open_position(
            cur, account_id, name,
            symbol=symbol, category=category,
            current_price=current_price, user_id=user_id,
        )
    logger.info("Created position %s (%s) in account %s", position.id, position.label, account_id)
    return position


def price_or_none(value: Any) -> Decimal | None:
    """Parse an externally supplied quote; ``None`` for anything unusable."""
    try:
        parsed = to_optional_decimal(value, "price")
    except InvalidStateError:
        return None
    if parsed is None or not parsed.is_finite() or parsed <= 0:
        return None
    return parsed
