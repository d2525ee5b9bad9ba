"""Calendar helpers for month/quarter bucketing and rolling windows."""

from __future__ import annotations

import calendar
from datetime import date

from stakehold.config.defaults import PERIOD_MONTHS


def add_months(d: date, months: int) -> date:
    """Shift by whole months, clamping the day to the target month's length."""
    month_index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def month_label(d: date) -> str:
    return f"{calendar.month_abbr[d.month]} {d.year}"


def quarter_of(d: date) -> int:
    return (d.month - 1) // 3 + 1


def quarter_key(d: date) -> str:
    return f"{d.year:04d}-Q{quarter_of(d)}"


def quarter_label(d: date) -> str:
    return f"Q{quarter_of(d)} {d.year}"


def period_start(period: str, today: date) -> date:
    """First day covered by a rolling period such as ``"3M"`` or ``"YTD"``."""
    if period == "YTD":
        return date(today.year, 1, 1)
    try:
        months = PERIOD_MONTHS[period]
    except KeyError:
        raise ValueError(f"Unknown period: {period}") from None
    return add_months(today, -months)
