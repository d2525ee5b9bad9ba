"""Shared helpers for report assembly."""

from __future__ import annotations

import dataclasses
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Iterable

from stakehold.errors import ValidationError
from stakehold.ledger.cost_basis import compute_cost_basis
from stakehold.ledger.positions import list_positions
from stakehold.ledger.transactions import list_transactions
from stakehold.ledger.types import HUNDRED, TRADE_TYPES, ZERO, Position, Transaction


def pct(part: Decimal, total: Decimal) -> Decimal:
    """``part / total`` as a percentage; 0 when ``total`` is not positive."""
    return part / total * HUNDRED if total > 0 else ZERO


def parse_date_arg(value: date | str | None, field_name: str) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(
            "Invalid date",
            [{"field": field_name, "message": f"expected YYYY-MM-DD, got {value!r}"}],
        ) from None


def parse_date_range(
    start_date: date | str | None,
    end_date: date | str | None,
) -> tuple[date | None, date | None]:
    start = parse_date_arg(start_date, "start_date")
    end = parse_date_arg(end_date, "end_date")
    if start is not None and end is not None and start > end:
        raise ValidationError(
            "Invalid date range",
            [{"field": "start_date", "message": "must not be after end_date"}],
        )
    return start, end


def group_by_position(transactions: Iterable[Transaction]) -> dict[str, list[Transaction]]:
    grouped: dict[str, list[Transaction]] = defaultdict(list)
    for txn in transactions:
        if txn.position_id is not None:
            grouped[txn.position_id].append(txn)
    return dict(grouped)


def positions_as_of(
    positions: Iterable[Position],
    transactions: Iterable[Transaction],
    as_of: date,
) -> list[Position]:
    """Re-derive each position from its trades dated on or before ``as_of``.

    Values use the current price since no price history is kept. Positions
    without any trade by ``as_of`` are left out.
    """
    trades = group_by_position(
        t for t in transactions
        if t.transaction_type in TRADE_TYPES and t.transaction_date <= as_of
    )
    derived = []
    for position in positions:
        history = trades.get(position.id)
        if not history:
            continue
        result = compute_cost_basis(history)
        value = result.total_shares * (position.current_price or ZERO)
        derived.append(dataclasses.replace(
            position,
            shares=result.total_shares,
            cost_basis_total=result.total_cost_basis,
            cost_basis_per_share=result.cost_basis_per_share,
            current_value=value,
            unrealized_gain_loss=value - result.total_cost_basis,
            realized_gain_loss=result.realized_gain_loss,
        ))
    return derived


def by_value_desc(value: Decimal, name: Any) -> tuple:
    """Sort key: value descending, then name ascending."""
    return (-value, str(name))


def load_positions(
    db: Any,
    user_id: str,
    account_id: str | None = None,
    as_of: date | str | None = None,
) -> list[Position]:
    """Positions for a user, optionally re-derived as of a past date."""
    positions = list_positions(db, user_id=user_id, account_id=account_id)
    as_of_date = parse_date_arg(as_of, "as_of")
    if as_of_date is None:
        return positions
    transactions = list_transactions(
        db, user_id=user_id, account_id=account_id,
        types=TRADE_TYPES, end_date=as_of_date,
    )
    return positions_as_of(positions, transactions, as_of_date)
