"""Allocation of current value by category, account type and tax treatment."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable

from stakehold.ledger.types import ZERO, Position
from stakehold.reports.common import by_value_desc, load_positions, parse_date_arg, pct


@dataclass
class AllocationItem:
    name: str
    value: Decimal = ZERO
    percentage: Decimal = ZERO
    count: int = 0


@dataclass
class AllocationReport:
    total_value: Decimal = ZERO
    by_category: list[AllocationItem] = field(default_factory=list)
    by_account_type: list[AllocationItem] = field(default_factory=list)
    by_tax_treatment: list[AllocationItem] = field(default_factory=list)
    as_of: date | None = None


def aggregate_by(
    positions: Iterable[Position],
    key: Callable[[Position], str | None],
    total_value: Decimal,
) -> list[AllocationItem]:
    """Group positions by ``key``, summing value; blank keys go to "Other".

    Percentages sum to 100 only when ``total_value`` is positive. With a
    zero total (every position worth nothing) each group reports 0%.
    """
    groups: dict[str, AllocationItem] = {}
    for position in positions:
        name = key(position) or "Other"
        item = groups.setdefault(name, AllocationItem(name=name))
        item.value += position.current_value
        item.count += 1

    for item in groups.values():
        item.percentage = pct(item.value, total_value)
    return sorted(groups.values(), key=lambda i: by_value_desc(i.value, i.name))


def build_allocation_report(
    positions: Iterable[Position],
    as_of: date | None = None,
) -> AllocationReport:
    positions = list(positions)
    total = sum((p.current_value for p in positions), ZERO)
    return AllocationReport(
        total_value=total,
        by_category=aggregate_by(positions, lambda p: p.category, total),
        by_account_type=aggregate_by(positions, lambda p: p.account_type, total),
        by_tax_treatment=aggregate_by(positions, lambda p: p.tax_treatment, total),
        as_of=as_of,
    )


def get_allocation_report(
    db: Any,
    user_id: str,
    account_id: str | None = None,
    as_of: date | str | None = None,
) -> AllocationReport:
    """Allocation of a user's holdings, optionally restricted to one account.

    With ``as_of``, share counts and cost basis are rebuilt from the trades
    recorded up to that date.
    """
    positions = load_positions(db, user_id, account_id, as_of)
    return build_allocation_report(positions, as_of=parse_date_arg(as_of, "as_of"))
