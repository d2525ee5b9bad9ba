"""Default values for the ledger, reports and property analytics.

Rule-of-thumb thresholds follow common real-estate screening practice:
monthly rent of at least 1% (good) or 2% (excellent) of the purchase price,
and rent x 1.35 covering the mortgage payment.
"""

# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------
DATABASE_DEFAULTS = {
    "path": "~/.stakehold/stakehold.db",
    "busy_timeout_ms": 5000,
}

# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------
OVERSELL_POLICIES = ("reject", "allow")
DEFAULT_OVERSELL_POLICY = "reject"

# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------
RECENT_TRANSACTIONS_LIMIT = 50

# Dashboard: ranking length, recent-activity feed and monthly series span
DASHBOARD_TOP_N = 5
DASHBOARD_RECENT_LIMIT = 10
DASHBOARD_MONTHS = 12

PERFORMANCE_PERIODS = ["1M", "3M", "6M", "1Y", "YTD"]

# Months covered by each rolling performance period (YTD is special-cased)
PERIOD_MONTHS = {
    "1M": 1,
    "3M": 3,
    "6M": 6,
    "1Y": 12,
}

# ---------------------------------------------------------------------------
# Property rules of thumb
# ---------------------------------------------------------------------------
PROPERTY_RULES = {
    "one_percent": "0.01",
    "two_percent": "0.02",
    "rule_135_multiplier": "1.35",
}

# ---------------------------------------------------------------------------
# Domain vocabularies
# ---------------------------------------------------------------------------
TAX_TREATMENTS = ("TAXABLE", "TAX_DEFERRED", "TAX_EXEMPT")

POSITION_CATEGORIES = (
    "EQUITY",
    "FIXED_INCOME",
    "CASH",
    "REAL_ESTATE",
    "ALTERNATIVE",
    "OTHER",
)
