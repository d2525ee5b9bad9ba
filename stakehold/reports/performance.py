"""Performance report: per-position TWR and total return, plus rolling periods.

Total return = current value - cost basis + realized gain/loss. Each rolling
period (1M, 3M, 6M, 1Y, YTD) reports the current-value-weighted TWR of the
positions that had at least one transaction inside the window.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

from stakehold.analytics.periods import period_start
from stakehold.analytics.returns import time_weighted_return
from stakehold.config.defaults import PERFORMANCE_PERIODS
from stakehold.ledger.positions import list_positions
from stakehold.ledger.transactions import list_transactions
from stakehold.ledger.types import ZERO, Position, Transaction
from stakehold.reports.common import by_value_desc, group_by_position, parse_date_range, pct

logger = logging.getLogger(__name__)


@dataclass
class PositionPerformance:
    position_id: str
    symbol: str | None
    name: str
    account_name: str
    category: str
    current_value: Decimal
    cost_basis: Decimal
    unrealized_gain_loss: Decimal
    realized_gain_loss: Decimal
    total_return: Decimal
    total_return_percent: Decimal
    time_weighted_return: Decimal


@dataclass
class PeriodPerformance:
    period: str
    start_date: date
    time_weighted_return: Decimal = ZERO
    positions_counted: int = 0


@dataclass
class PerformanceSummary:
    total_current_value: Decimal = ZERO
    total_cost_basis: Decimal = ZERO
    total_unrealized_gain_loss: Decimal = ZERO
    total_realized_gain_loss: Decimal = ZERO
    total_return: Decimal = ZERO
    total_return_percent: Decimal = ZERO


@dataclass
class PerformanceReport:
    summary: PerformanceSummary = field(default_factory=PerformanceSummary)
    positions: list[PositionPerformance] = field(default_factory=list)
    by_period: list[PeriodPerformance] = field(default_factory=list)


def weighted_twr(
    positions: Iterable[Position],
    transactions: Mapping[str, Sequence[Transaction]],
) -> tuple[Decimal, int]:
    """Current-value-weighted TWR over positions with transactions.

    Returns ``(twr, positions_counted)``; ``(0, 0)`` when nothing qualifies.
    """
    weighted = ZERO
    weight = ZERO
    counted = 0
    for position in positions:
        history = transactions.get(position.id)
        if not history:
            continue
        counted += 1
        value = position.current_value
        weighted += time_weighted_return(history, value) * value
        weight += value
    return (weighted / weight if weight > 0 else ZERO), counted


def build_performance_report(
    positions: Iterable[Position],
    transactions: Iterable[Transaction],
    today: date | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    periods: Sequence[str] = PERFORMANCE_PERIODS,
) -> PerformanceReport:
    """Assemble the report from positions and their transaction history.

    ``start_date``/``end_date`` restrict the transactions used for the
    per-position TWR; rolling periods always end at ``today``.
    """
    today = today or date.today()
    positions = sorted(positions, key=lambda p: by_value_desc(p.current_value, p.name))
    history = [t for t in transactions if t.position_id is not None]

    in_range = group_by_position(
        t for t in history
        if (start_date is None or t.transaction_date >= start_date)
        and (end_date is None or t.transaction_date <= end_date)
    )

    rows = []
    for p in positions:
        total_return = p.current_value - p.cost_basis_total + p.realized_gain_loss
        rows.append(PositionPerformance(
            position_id=p.id,
            symbol=p.symbol,
            name=p.name,
            account_name=p.account_name,
            category=p.category,
            current_value=p.current_value,
            cost_basis=p.cost_basis_total,
            unrealized_gain_loss=p.unrealized_gain_loss,
            realized_gain_loss=p.realized_gain_loss,
            total_return=total_return,
            total_return_percent=pct(total_return, p.cost_basis_total),
            time_weighted_return=time_weighted_return(in_range.get(p.id, []), p.current_value),
        ))

    summary = PerformanceSummary(
        total_current_value=sum((r.current_value for r in rows), ZERO),
        total_cost_basis=sum((r.cost_basis for r in rows), ZERO),
        total_unrealized_gain_loss=sum((r.unrealized_gain_loss for r in rows), ZERO),
        total_realized_gain_loss=sum((r.realized_gain_loss for r in rows), ZERO),
    )
    summary.total_return = (
        summary.total_current_value - summary.total_cost_basis + summary.total_realized_gain_loss
    )
    summary.total_return_percent = pct(summary.total_return, summary.total_cost_basis)

    by_period = []
    for label in periods:
        start = period_start(label, today)
        window = group_by_position(
            t for t in history if start <= t.transaction_date <= today
        )
        twr, counted = weighted_twr(positions, window)
        by_period.append(PeriodPerformance(
            period=label, start_date=start, time_weighted_return=twr, positions_counted=counted,
        ))

    return PerformanceReport(summary=summary, positions=rows, by_period=by_period)


def get_performance_report(
    db: Any,
    user_id: str,
    account_id: str | None = None,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
    periods: Sequence[str] = PERFORMANCE_PERIODS,
    today: date | None = None,
) -> PerformanceReport:
    start, end = parse_date_range(start_date, end_date)
    positions = list_positions(db, user_id=user_id, account_id=account_id)
    transactions = list_transactions(db, user_id=user_id, account_id=account_id)
    logger.debug(
        "Performance report for %s: %d position(s), %d transaction(s)",
        user_id, len(positions), len(transactions),
    )
    return build_performance_report(
        positions, transactions, today=today,
        start_date=start, end_date=end, periods=periods,
    )
