"""Portfolio dashboard: totals, rankings and allocation including real estate.

Property equity (current value less loan balance) counts toward the
portfolio total, the ``REAL_ESTATE`` category and the account a property
is linked to. Gain/loss figures cover positions only, since properties
carry no cost basis in the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping

from stakehold.analytics.periods import add_months, month_key, month_label
from stakehold.config.defaults import (
    DASHBOARD_MONTHS,
    DASHBOARD_RECENT_LIMIT,
    DASHBOARD_TOP_N,
)
from stakehold.ledger.positions import list_positions
from stakehold.ledger.transactions import list_transactions
from stakehold.ledger.types import ZERO, Position, Property, Transaction
from stakehold.reports.activity import (
    ActivitySummary,
    MonthActivity,
    build_activity_report,
    split_flows,
)
from stakehold.reports.allocation import AllocationItem
from stakehold.reports.common import by_value_desc, pct
from stakehold.storage.queries import list_accounts, list_property_rows

REAL_ESTATE = "REAL_ESTATE"


@dataclass
class RankedPosition:
    position_id: str
    symbol: str | None
    name: str
    current_value: Decimal
    gain_loss: Decimal
    gain_loss_percent: Decimal
    percent_of_portfolio: Decimal


@dataclass
class AccountAllocation:
    account_id: str
    account_name: str
    account_type: str
    tax_treatment: str
    value: Decimal = ZERO
    cost_basis: Decimal = ZERO
    gain_loss: Decimal = ZERO
    percentage: Decimal = ZERO
    position_count: int = 0
    property_count: int = 0


@dataclass
class DashboardSummary:
    total_value: Decimal = ZERO
    total_cost_basis: Decimal = ZERO
    total_gain_loss: Decimal = ZERO
    total_gain_loss_percent: Decimal = ZERO
    real_estate_equity: Decimal = ZERO
    position_count: int = 0
    account_count: int = 0
    property_count: int = 0
    accounts_by_type: dict[str, int] = field(default_factory=dict)


@dataclass
class Dashboard:
    summary: DashboardSummary = field(default_factory=DashboardSummary)
    by_category: list[AllocationItem] = field(default_factory=list)
    by_account: list[AccountAllocation] = field(default_factory=list)
    by_tax_treatment: list[AllocationItem] = field(default_factory=list)
    activity: ActivitySummary = field(default_factory=ActivitySummary)
    top_positions: list[RankedPosition] = field(default_factory=list)
    top_performers: list[RankedPosition] = field(default_factory=list)
    bottom_performers: list[RankedPosition] = field(default_factory=list)
    monthly_activity: list[MonthActivity] = field(default_factory=list)
    recent_transactions: list[Transaction] = field(default_factory=list)


def _ranked(position: Position, total_value: Decimal) -> RankedPosition:
    return RankedPosition(
        position_id=position.id,
        symbol=position.symbol,
        name=position.name,
        current_value=position.current_value,
        gain_loss=position.unrealized_gain_loss,
        gain_loss_percent=position.gain_loss_percent,
        percent_of_portfolio=pct(position.current_value, total_value),
    )


def rank_performers(
    positions: Iterable[Position],
    limit: int = DASHBOARD_TOP_N,
) -> tuple[list[Position], list[Position]]:
    """Best and worst positions by unrealized gain percent.

    Positions without a cost basis have no meaningful percentage and are
    left out. Equal percentages rank by name, then id, in both lists.
    """
    priced = [p for p in positions if p.cost_basis_total > 0]
    best = sorted(priced, key=lambda p: (-p.gain_loss_percent, p.name, p.id))
    worst = sorted(priced, key=lambda p: (p.gain_loss_percent, p.name, p.id))
    return best[:limit], worst[:limit]


def monthly_series(
    transactions: Iterable[Transaction],
    today: date,
    months: int = DASHBOARD_MONTHS,
) -> list[MonthActivity]:
    """Zero-filled activity for the ``months`` calendar months ending with today's."""
    first = date(today.year, today.month, 1)
    series: dict[str, MonthActivity] = {}
    for back in range(months - 1, -1, -1):
        d = add_months(first, -back)
        series[month_key(d)] = MonthActivity(key=month_key(d), period=month_label(d))

    for txn in transactions:
        month = series.get(month_key(txn.transaction_date))
        if month is None:
            continue
        inflow, outflow = split_flows(txn)
        month.count += 1
        month.inflows += inflow
        month.outflows += outflow
        month.net_flow = month.inflows - month.outflows
    return list(series.values())


def build_dashboard(
    accounts: Iterable[Mapping[str, Any]],
    positions: Iterable[Position],
    transactions: Iterable[Transaction],
    properties: Iterable[Property],
    today: date,
    top_n: int = DASHBOARD_TOP_N,
    recent_limit: int = DASHBOARD_RECENT_LIMIT,
) -> Dashboard:
    accounts = list(accounts)
    positions = list(positions)
    transactions = list(transactions)
    properties = list(properties)

    equity = sum((p.equity for p in properties), ZERO)
    position_value = sum((p.current_value for p in positions), ZERO)
    total_value = position_value + equity
    total_cost = sum((p.cost_basis_total for p in positions), ZERO)
    total_gain = sum((p.unrealized_gain_loss for p in positions), ZERO)

    categories: dict[str, AllocationItem] = {}
    for p in positions:
        item = categories.setdefault(p.category, AllocationItem(name=p.category))
        item.value += p.current_value
        item.count += 1
    if equity > 0:
        item = categories.setdefault(REAL_ESTATE, AllocationItem(name=REAL_ESTATE))
        item.value += equity
        item.count += len(properties)
    for item in categories.values():
        item.percentage = pct(item.value, total_value)

    by_account: dict[str, AccountAllocation] = {
        a["id"]: AccountAllocation(
            account_id=a["id"],
            account_name=a["name"],
            account_type=a["account_type"],
            tax_treatment=a["tax_treatment"],
        )
        for a in accounts
    }
    for p in positions:
        entry = by_account.get(p.account_id)
        if entry is None:
            continue
        entry.value += p.current_value
        entry.cost_basis += p.cost_basis_total
        entry.gain_loss += p.unrealized_gain_loss
        entry.position_count += 1
    for prop in properties:
        entry = by_account.get(prop.account_id) if prop.account_id else None
        if entry is None:
            continue
        entry.value += prop.equity
        entry.property_count += 1

    treatments: dict[str, AllocationItem] = {}
    accounts_by_type: dict[str, int] = {}
    for entry in by_account.values():
        entry.percentage = pct(entry.value, total_value)
        item = treatments.setdefault(entry.tax_treatment, AllocationItem(name=entry.tax_treatment))
        item.value += entry.value
        item.count += 1
        accounts_by_type[entry.account_type] = accounts_by_type.get(entry.account_type, 0) + 1
    for item in treatments.values():
        item.percentage = pct(item.value, total_value)

    largest = sorted(positions, key=lambda p: by_value_desc(p.current_value, p.name))[:top_n]
    best, worst = rank_performers(positions, top_n)
    activity = build_activity_report(transactions, recent_limit)

    return Dashboard(
        summary=DashboardSummary(
            total_value=total_value,
            total_cost_basis=total_cost,
            total_gain_loss=total_gain,
            total_gain_loss_percent=pct(total_gain, total_cost),
            real_estate_equity=equity,
            position_count=len(positions),
            account_count=len(accounts),
            property_count=len(properties),
            accounts_by_type=dict(sorted(accounts_by_type.items())),
        ),
        by_category=sorted(categories.values(), key=lambda i: by_value_desc(i.value, i.name)),
        by_account=sorted(by_account.values(), key=lambda a: by_value_desc(a.value, a.account_name)),
        by_tax_treatment=sorted(treatments.values(), key=lambda i: by_value_desc(i.value, i.name)),
        activity=activity.summary,
        top_positions=[_ranked(p, total_value) for p in largest],
        top_performers=[_ranked(p, total_value) for p in best],
        bottom_performers=[_ranked(p, total_value) for p in worst],
        monthly_activity=monthly_series(transactions, today),
        recent_transactions=activity.recent_transactions,
    )


def get_dashboard(
    db: Any,
    user_id: str,
    today: date | None = None,
    top_n: int = DASHBOARD_TOP_N,
    recent_limit: int = DASHBOARD_RECENT_LIMIT,
) -> Dashboard:
    """Dashboard over all of a user's active accounts, positions and properties."""
    return build_dashboard(
        accounts=list_accounts(db, user_id),
        positions=list_positions(db, user_id=user_id),
        transactions=list_transactions(db, user_id=user_id),
        properties=[Property.from_row(r) for r in list_property_rows(db, user_id)],
        today=today or date.today(),
        top_n=top_n,
        recent_limit=recent_limit,
    )
