"""Weighted-average cost basis calculator.

Pure function over a position's BUY/SELL history:

  BUY   cost basis += shares × price + fees; shares += shares
  SELL  per-share basis = cost basis / shares (0 when no shares held);
        cost basis -= shares sold × per-share basis; shares -= shares sold

A SELL therefore never changes the per-share basis of the shares that
remain. Selling more than is held is not rejected here: the share count goes
negative and ``oversold`` is set, leaving the policy decision to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable

from stakehold.ledger.types import ZERO, Transaction, TransactionType


@dataclass
class SaleResult:
    """Realized outcome of one SELL under the weighted-average method."""

    transaction_id: str
    shares_sold: Decimal
    cost_basis: Decimal
    proceeds: Decimal
    realized_gain_loss: Decimal


@dataclass
class CostBasisResult:
    total_shares: Decimal = ZERO
    total_cost_basis: Decimal = ZERO
    cost_basis_per_share: Decimal = ZERO
    realized_gain_loss: Decimal = ZERO
    sales: list[SaleResult] = field(default_factory=list)
    oversold: bool = False


def order_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Chronological order; same-date ties keep insertion order."""
    return sorted(transactions, key=lambda t: (t.transaction_date, t.seq))


def per_share(total_cost_basis: Decimal, total_shares: Decimal) -> Decimal:
    return total_cost_basis / total_shares if total_shares > 0 else ZERO


def compute_cost_basis(transactions: Iterable[Transaction]) -> CostBasisResult:
    """Fold BUY/SELL transactions into shares, cost basis and realized P&L.

    Non-trade transaction types are ignored.
    """
    total_shares = ZERO
    total_cost = ZERO
    realized_total = ZERO
    sales: list[SaleResult] = []
    oversold = False

    for txn in order_transactions(transactions):
        shares = txn.shares or ZERO
        price = txn.price_per_share or ZERO

        if txn.transaction_type == TransactionType.BUY:
            total_cost += shares * price + txn.fees
            total_shares += shares

        elif txn.transaction_type == TransactionType.SELL:
            basis_per_share = per_share(total_cost, total_shares)
            sold_basis = shares * basis_per_share
            proceeds = shares * price - txn.fees
            realized = proceeds - sold_basis

            total_cost -= sold_basis
            total_shares -= shares
            realized_total += realized
            if total_shares < 0:
                oversold = True

            sales.append(SaleResult(
                transaction_id=txn.id,
                shares_sold=shares,
                cost_basis=sold_basis,
                proceeds=proceeds,
                realized_gain_loss=realized,
            ))

    return CostBasisResult(
        total_shares=total_shares,
        total_cost_basis=total_cost,
        cost_basis_per_share=per_share(total_cost, total_shares),
        realized_gain_loss=realized_total,
        sales=sales,
        oversold=oversold,
    )
