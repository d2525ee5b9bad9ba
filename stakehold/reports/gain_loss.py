"""Realized (from SELL transactions) and unrealized (from positions) gains."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable

from stakehold.errors import ValidationError
from stakehold.ledger.positions import list_positions
from stakehold.ledger.transactions import list_transactions
from stakehold.ledger.types import ZERO, Position, Transaction, TransactionType
from stakehold.reports.common import by_value_desc, parse_date_range, pct

GAIN_LOSS_TYPES = ("realized", "unrealized", "all")


@dataclass
class UnrealizedGain:
    position_id: str
    symbol: str | None
    name: str
    account_name: str
    category: str
    current_value: Decimal
    cost_basis: Decimal
    gain_loss: Decimal
    gain_loss_percent: Decimal


@dataclass
class RealizedGain:
    transaction_id: str
    position_id: str | None
    symbol: str
    name: str
    account_name: str
    transaction_date: date
    shares: Decimal | None
    price: Decimal | None
    total_amount: Decimal
    cost_basis: Decimal
    gain_loss: Decimal
    gain_loss_percent: Decimal


@dataclass
class GainLossSummary:
    total_unrealized_gain_loss: Decimal = ZERO
    total_realized_gain_loss: Decimal = ZERO
    total_gain_loss: Decimal = ZERO


@dataclass
class GainLossReport:
    type: str = "all"
    summary: GainLossSummary = field(default_factory=GainLossSummary)
    unrealized: list[UnrealizedGain] = field(default_factory=list)
    """Sorted by gain descending; empty when ``type`` is "realized"."""
    realized: list[RealizedGain] = field(default_factory=list)
    """Newest first; empty when ``type`` is "unrealized"."""


def unrealized_gains(positions: Iterable[Position]) -> list[UnrealizedGain]:
    rows = [
        UnrealizedGain(
            position_id=p.id,
            symbol=p.symbol,
            name=p.name,
            account_name=p.account_name,
            category=p.category,
            current_value=p.current_value,
            cost_basis=p.cost_basis_total,
            gain_loss=p.unrealized_gain_loss,
            gain_loss_percent=p.gain_loss_percent,
        )
        for p in positions
    ]
    return sorted(rows, key=lambda r: by_value_desc(r.gain_loss, r.name))


def realized_gains(transactions: Iterable[Transaction]) -> list[RealizedGain]:
    sells = [t for t in transactions if t.transaction_type == TransactionType.SELL]
    sells.sort(key=lambda t: (t.transaction_date, t.seq), reverse=True)
    rows = []
    for txn in sells:
        gain = txn.realized_gain_loss or ZERO
        basis = txn.cost_basis or ZERO
        rows.append(RealizedGain(
            transaction_id=txn.id,
            position_id=txn.position_id,
            symbol=txn.position_symbol or "N/A",
            name=txn.position_name or "N/A",
            account_name=txn.account_name,
            transaction_date=txn.transaction_date,
            shares=txn.shares,
            price=txn.price_per_share,
            total_amount=txn.total_amount,
            cost_basis=basis,
            gain_loss=gain,
            gain_loss_percent=pct(gain, basis),
        ))
    return rows


def build_gain_loss_report(
    positions: Iterable[Position],
    transactions: Iterable[Transaction],
    type: str = "all",
) -> GainLossReport:
    """Summary totals always cover both kinds; ``type`` filters the rows."""
    if type not in GAIN_LOSS_TYPES:
        raise ValidationError(
            "Invalid report type",
            [{"field": "type", "message": f"must be one of {', '.join(GAIN_LOSS_TYPES)}"}],
        )
    unrealized = unrealized_gains(positions)
    realized = realized_gains(transactions)
    total_unrealized = sum((r.gain_loss for r in unrealized), ZERO)
    total_realized = sum((r.gain_loss for r in realized), ZERO)

    return GainLossReport(
        type=type,
        summary=GainLossSummary(
            total_unrealized_gain_loss=total_unrealized,
            total_realized_gain_loss=total_realized,
            total_gain_loss=total_unrealized + total_realized,
        ),
        unrealized=unrealized if type in ("unrealized", "all") else [],
        realized=realized if type in ("realized", "all") else [],
    )


def get_gain_loss_report(
    db: Any,
    user_id: str,
    type: str = "all",
    account_id: str | None = None,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
) -> GainLossReport:
    """Gain/loss report. The date range applies to realized (SELL) rows."""
    if type not in GAIN_LOSS_TYPES:
        raise ValidationError(
            "Invalid report type",
            [{"field": "type", "message": f"must be one of {', '.join(GAIN_LOSS_TYPES)}"}],
        )
    start, end = parse_date_range(start_date, end_date)
    positions = list_positions(db, user_id=user_id, account_id=account_id)
    sells = list_transactions(
        db, user_id=user_id, account_id=account_id,
        types=[TransactionType.SELL], start_date=start, end_date=end,
    )
    return build_gain_loss_report(positions, sells, type)
