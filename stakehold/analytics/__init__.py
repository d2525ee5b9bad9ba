"""Stateless analytics over ledger and property state."""

from stakehold.analytics.property import (
    PropertyFinancials,
    amortization_schedule,
    calculate_financials,
    calculate_monthly_payment,
    get_property_financials,
)
from stakehold.analytics.returns import (
    cash_flow_amount,
    get_time_weighted_return,
    time_weighted_return,
)

__all__ = [
    "PropertyFinancials",
    "amortization_schedule",
    "calculate_financials",
    "calculate_monthly_payment",
    "cash_flow_amount",
    "get_property_financials",
    "get_time_weighted_return",
    "time_weighted_return",
]
