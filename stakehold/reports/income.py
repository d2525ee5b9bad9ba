"""Income analysis: dividends, income and distributions.

Yields are simple (not annualized): total income in the window over the
position's cost basis (yield on cost) or current value (current yield).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Iterable, Mapping

from stakehold.analytics.periods import month_key, month_label, quarter_key, quarter_label
from stakehold.config.defaults import RECENT_TRANSACTIONS_LIMIT
from stakehold.ledger.positions import list_positions
from stakehold.ledger.transactions import list_transactions
from stakehold.ledger.types import INCOME_TYPES, ZERO, Position, Transaction
from stakehold.reports.common import by_value_desc, parse_date_range, pct


@dataclass
class PositionIncome:
    position_id: str | None
    symbol: str
    name: str
    total_income: Decimal = ZERO
    count: int = 0
    current_value: Decimal = ZERO
    cost_basis: Decimal = ZERO
    yield_on_cost: Decimal = ZERO
    current_yield: Decimal = ZERO


@dataclass
class PeriodIncome:
    key: str
    period: str
    income: Decimal = ZERO
    count: int = 0


@dataclass
class IncomeSummary:
    total_income: Decimal = ZERO
    transaction_count: int = 0
    average_per_transaction: Decimal = ZERO


@dataclass
class IncomeReport:
    summary: IncomeSummary = field(default_factory=IncomeSummary)
    by_position: list[PositionIncome] = field(default_factory=list)
    by_month: list[PeriodIncome] = field(default_factory=list)
    by_quarter: list[PeriodIncome] = field(default_factory=list)
    transactions: list[Transaction] = field(default_factory=list)
    """Most recent income transactions, newest first."""


def aggregate_by_period(
    transactions: Iterable[Transaction],
    key: Callable[[date], str],
    label: Callable[[date], str],
) -> list[PeriodIncome]:
    """Sum income per calendar period, ordered by period key ascending."""
    periods: dict[str, PeriodIncome] = {}
    for txn in transactions:
        k = key(txn.transaction_date)
        bucket = periods.setdefault(k, PeriodIncome(key=k, period=label(txn.transaction_date)))
        bucket.income += txn.total_amount
        bucket.count += 1
    return [periods[k] for k in sorted(periods)]


def build_income_report(
    transactions: Iterable[Transaction],
    positions: Mapping[str, Position],
    recent_limit: int = RECENT_TRANSACTIONS_LIMIT,
) -> IncomeReport:
    """Income by position, month and quarter from income transactions.

    Non-income transaction types in the input are ignored. Income not tied
    to a position is grouped under "Other".
    """
    income = [t for t in transactions if t.transaction_type in INCOME_TYPES]

    by_position: dict[str, PositionIncome] = {}
    for txn in income:
        position = positions.get(txn.position_id) if txn.position_id else None
        k = txn.position_id or "other"
        if k not in by_position:
            by_position[k] = PositionIncome(
                position_id=txn.position_id,
                symbol=(position.symbol if position else None) or "N/A",
                name=position.name if position else "Other",
                current_value=position.current_value if position else ZERO,
                cost_basis=position.cost_basis_total if position else ZERO,
            )
        by_position[k].total_income += txn.total_amount
        by_position[k].count += 1

    for item in by_position.values():
        item.yield_on_cost = pct(item.total_income, item.cost_basis)
        item.current_yield = pct(item.total_income, item.current_value)

    total = sum((t.total_amount for t in income), ZERO)
    newest_first = sorted(income, key=lambda t: (t.transaction_date, t.seq), reverse=True)

    return IncomeReport(
        summary=IncomeSummary(
            total_income=total,
            transaction_count=len(income),
            average_per_transaction=total / len(income) if income else ZERO,
        ),
        by_position=sorted(
            by_position.values(), key=lambda i: by_value_desc(i.total_income, i.name)
        ),
        by_month=aggregate_by_period(income, month_key, month_label),
        by_quarter=aggregate_by_period(income, quarter_key, quarter_label),
        transactions=newest_first[:recent_limit],
    )


def get_income_report(
    db: Any,
    user_id: str,
    account_id: str | None = None,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
    recent_limit: int = RECENT_TRANSACTIONS_LIMIT,
) -> IncomeReport:
    start, end = parse_date_range(start_date, end_date)
    transactions = list_transactions(
        db, user_id=user_id, account_id=account_id,
        types=INCOME_TYPES, start_date=start, end_date=end,
    )
    positions = {p.id: p for p in list_positions(db, user_id=user_id, account_id=account_id)}
    return build_income_report(transactions, positions, recent_limit)
