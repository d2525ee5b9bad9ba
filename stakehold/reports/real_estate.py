"""Portfolio-level summary of a user's properties."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable

from stakehold.analytics.property import (
    PropertyBundle,
    calculate_financials,
    load_property_bundle,
)
from stakehold.config.schema import PropertyRulesConfig
from stakehold.ledger.types import ZERO
from stakehold.reports.common import by_value_desc, pct
from stakehold.storage.queries import list_property_rows


@dataclass
class PropertySummaryRow:
    property_id: str
    address: str
    city: str
    state: str
    property_type: str
    current_value: Decimal
    loan_balance: Decimal
    equity: Decimal
    monthly_income: Decimal
    monthly_expenses: Decimal
    monthly_cash_flow: Decimal
    cap_rate: Decimal
    cash_on_cash_return: Decimal
    has_active_lease: bool


@dataclass
class RealEstateSummary:
    total_properties: int = 0
    total_value: Decimal = ZERO
    total_equity: Decimal = ZERO
    total_debt: Decimal = ZERO
    total_monthly_income: Decimal = ZERO
    total_monthly_expenses: Decimal = ZERO
    average_cap_rate: Decimal = ZERO
    average_cash_on_cash_return: Decimal = ZERO
    occupancy_rate: Decimal = ZERO
    properties: list[PropertySummaryRow] = field(default_factory=list)
    """Ranked by current value, largest first."""


def build_real_estate_summary(
    bundles: Iterable[PropertyBundle],
    rules: PropertyRulesConfig | None = None,
) -> RealEstateSummary:
    """Totals, averages and occupancy across properties.

    Monthly income is effective income (after vacancy); monthly expenses
    include the mortgage payment. Occupancy is the share of properties with
    at least one active lease.
    """
    rows = []
    for bundle in bundles:
        prop = bundle.property
        fin = calculate_financials(prop, bundle.leases, bundle.incomes, bundle.template, rules)
        rows.append(PropertySummaryRow(
            property_id=prop.id,
            address=prop.address,
            city=prop.city,
            state=prop.state,
            property_type=prop.property_type,
            current_value=prop.current_value,
            loan_balance=prop.loan_balance,
            equity=prop.equity,
            monthly_income=fin.effective_monthly_income,
            monthly_expenses=fin.monthly_operating_expenses + fin.monthly_mortgage_payment,
            monthly_cash_flow=fin.monthly_cash_flow,
            cap_rate=fin.cap_rate,
            cash_on_cash_return=fin.cash_on_cash_return,
            has_active_lease=any(lease.is_active for lease in bundle.leases),
        ))

    count = len(rows)
    if not count:
        return RealEstateSummary()

    occupied = sum(1 for r in rows if r.has_active_lease)
    return RealEstateSummary(
        total_properties=count,
        total_value=sum((r.current_value for r in rows), ZERO),
        total_equity=sum((r.equity for r in rows), ZERO),
        total_debt=sum((r.loan_balance for r in rows), ZERO),
        total_monthly_income=sum((r.monthly_income for r in rows), ZERO),
        total_monthly_expenses=sum((r.monthly_expenses for r in rows), ZERO),
        average_cap_rate=sum((r.cap_rate for r in rows), ZERO) / count,
        average_cash_on_cash_return=sum((r.cash_on_cash_return for r in rows), ZERO) / count,
        occupancy_rate=pct(Decimal(occupied), Decimal(count)),
        properties=sorted(rows, key=lambda r: by_value_desc(r.current_value, r.address)),
    )


def get_real_estate_summary(
    db: Any,
    user_id: str,
    rules: PropertyRulesConfig | None = None,
) -> RealEstateSummary:
    bundles = [
        load_property_bundle(db, row["id"])
        for row in list_property_rows(db, user_id)
    ]
    return build_real_estate_summary(bundles, rules)
