"""Portfolio reports assembled from ledger and property state.

Each report has a pure ``build_*`` reducer over already-fetched records and
a ``get_*`` entry point that reads them from the database. Report objects
are dataclasses; ``dataclasses.asdict`` is the export contract.
"""

from stakehold.reports.activity import get_activity_report
from stakehold.reports.allocation import get_allocation_report
from stakehold.reports.dashboard import get_dashboard
from stakehold.reports.gain_loss import get_gain_loss_report
from stakehold.reports.holdings import get_holdings_report
from stakehold.reports.income import get_income_report
from stakehold.reports.performance import get_performance_report
from stakehold.reports.real_estate import get_real_estate_summary

__all__ = [
    "get_activity_report",
    "get_allocation_report",
    "get_dashboard",
    "get_gain_loss_report",
    "get_holdings_report",
    "get_income_report",
    "get_performance_report",
    "get_real_estate_summary",
]
