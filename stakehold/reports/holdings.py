"""Flattened per-position holdings snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable

from stakehold.ledger.types import ZERO, Position
from stakehold.reports.common import by_value_desc, load_positions, parse_date_arg, pct


@dataclass
class Holding:
    position_id: str
    symbol: str | None
    name: str
    account_name: str
    account_type: str
    tax_treatment: str
    category: str
    shares: Decimal
    current_price: Decimal | None
    current_value: Decimal
    cost_basis: Decimal
    cost_basis_per_share: Decimal
    gain_loss: Decimal
    gain_loss_percent: Decimal
    percent_of_portfolio: Decimal


@dataclass
class HoldingsSummary:
    total_holdings: int = 0
    total_value: Decimal = ZERO
    total_cost_basis: Decimal = ZERO
    total_gain_loss: Decimal = ZERO
    total_gain_loss_percent: Decimal = ZERO


@dataclass
class HoldingsReport:
    summary: HoldingsSummary = field(default_factory=HoldingsSummary)
    holdings: list[Holding] = field(default_factory=list)
    as_of: date | None = None


def build_holdings_report(
    positions: Iterable[Position],
    as_of: date | None = None,
) -> HoldingsReport:
    """Holdings ordered by current value, largest first."""
    positions = sorted(positions, key=lambda p: by_value_desc(p.current_value, p.name))
    total_value = sum((p.current_value for p in positions), ZERO)
    total_cost = sum((p.cost_basis_total for p in positions), ZERO)
    total_gain = sum((p.unrealized_gain_loss for p in positions), ZERO)

    holdings = [
        Holding(
            position_id=p.id,
            symbol=p.symbol,
            name=p.name,
            account_name=p.account_name,
            account_type=p.account_type,
            tax_treatment=p.tax_treatment,
            category=p.category,
            shares=p.shares,
            current_price=p.current_price,
            current_value=p.current_value,
            cost_basis=p.cost_basis_total,
            cost_basis_per_share=p.cost_basis_per_share,
            gain_loss=p.unrealized_gain_loss,
            gain_loss_percent=p.gain_loss_percent,
            percent_of_portfolio=pct(p.current_value, total_value),
        )
        for p in positions
    ]
    return HoldingsReport(
        summary=HoldingsSummary(
            total_holdings=len(holdings),
            total_value=total_value,
            total_cost_basis=total_cost,
            total_gain_loss=total_gain,
            total_gain_loss_percent=pct(total_gain, total_cost),
        ),
        holdings=holdings,
        as_of=as_of,
    )


def get_holdings_report(
    db: Any,
    user_id: str,
    account_id: str | None = None,
    as_of: date | str | None = None,
) -> HoldingsReport:
    positions = load_positions(db, user_id, account_id, as_of)
    return build_holdings_report(positions, as_of=parse_date_arg(as_of, "as_of"))
