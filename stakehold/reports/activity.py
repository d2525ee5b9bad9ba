"""Portfolio activity: transaction counts and money in and out."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable

from stakehold.analytics.periods import month_key, month_label
from stakehold.config.defaults import RECENT_TRANSACTIONS_LIMIT
from stakehold.ledger.transactions import list_transactions
from stakehold.ledger.types import INFLOW_TYPES, OUTFLOW_TYPES, ZERO, Transaction
from stakehold.reports.common import by_value_desc, parse_date_range


@dataclass
class TypeActivity:
    type: str
    count: int = 0
    total_amount: Decimal = ZERO


@dataclass
class MonthActivity:
    key: str
    period: str
    count: int = 0
    inflows: Decimal = ZERO
    outflows: Decimal = ZERO
    net_flow: Decimal = ZERO


@dataclass
class ActivitySummary:
    total_transactions: int = 0
    total_inflows: Decimal = ZERO
    total_outflows: Decimal = ZERO
    net_flow: Decimal = ZERO
    total_fees: Decimal = ZERO


@dataclass
class ActivityReport:
    summary: ActivitySummary = field(default_factory=ActivitySummary)
    by_type: list[TypeActivity] = field(default_factory=list)
    by_month: list[MonthActivity] = field(default_factory=list)
    recent_transactions: list[Transaction] = field(default_factory=list)


def split_flows(txn: Transaction) -> tuple[Decimal, Decimal]:
    inflow = txn.total_amount if txn.transaction_type in INFLOW_TYPES else ZERO
    outflow = txn.total_amount if txn.transaction_type in OUTFLOW_TYPES else ZERO
    return inflow, outflow


def build_activity_report(
    transactions: Iterable[Transaction],
    recent_limit: int = RECENT_TRANSACTIONS_LIMIT,
) -> ActivityReport:
    transactions = list(transactions)
    summary = ActivitySummary(total_transactions=len(transactions))
    by_type: dict[str, TypeActivity] = {}
    by_month: dict[str, MonthActivity] = {}

    for txn in transactions:
        inflow, outflow = split_flows(txn)
        summary.total_inflows += inflow
        summary.total_outflows += outflow
        summary.total_fees += txn.fees

        kind = txn.transaction_type.value
        entry = by_type.setdefault(kind, TypeActivity(type=kind))
        entry.count += 1
        entry.total_amount += txn.total_amount

        k = month_key(txn.transaction_date)
        month = by_month.setdefault(
            k, MonthActivity(key=k, period=month_label(txn.transaction_date))
        )
        month.count += 1
        month.inflows += inflow
        month.outflows += outflow
        month.net_flow = month.inflows - month.outflows

    summary.net_flow = summary.total_inflows - summary.total_outflows
    newest_first = sorted(transactions, key=lambda t: (t.transaction_date, t.seq), reverse=True)

    return ActivityReport(
        summary=summary,
        by_type=sorted(by_type.values(), key=lambda e: by_value_desc(e.total_amount, e.type)),
        by_month=[by_month[k] for k in sorted(by_month)],
        recent_transactions=newest_first[:recent_limit],
    )


def get_activity_report(
    db: Any,
    user_id: str,
    account_id: str | None = None,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
    recent_limit: int = RECENT_TRANSACTIONS_LIMIT,
) -> ActivityReport:
    start, end = parse_date_range(start_date, end_date)
    transactions = list_transactions(
        db, user_id=user_id, account_id=account_id, start_date=start, end_date=end
    )
    return build_activity_report(transactions, recent_limit)
