"""Tests for the weighted-average cost basis calculator."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from stakehold.ledger.cost_basis import compute_cost_basis, order_transactions, per_share
from stakehold.ledger.types import Transaction, TransactionType

_seq = iter(range(1, 1_000_000))


def _txn(
    kind: TransactionType,
    shares: str | int | None,
    price: str | int | None,
    d: date = date(2024, 1, 1),
    fees: str = "0",
    seq: int | None = None,
) -> Transaction:
    shares_d = Decimal(str(shares)) if shares is not None else None
    price_d = Decimal(str(price)) if price is not None else None
    total = shares_d * price_d if shares_d is not None and price_d is not None else Decimal("0")
    n = seq if seq is not None else next(_seq)
    return Transaction(
        id=f"t{n}",
        account_id="acct",
        position_id="pos",
        transaction_type=kind,
        transaction_date=d,
        total_amount=total,
        shares=shares_d,
        price_per_share=price_d,
        fees=Decimal(fees),
        seq=n,
    )


BUY = TransactionType.BUY
SELL = TransactionType.SELL


# ---------------------------------------------------------------------------
# Buys
# ---------------------------------------------------------------------------

class TestBuys:
    def test_empty_history(self):
        result = compute_cost_basis([])
        assert result.total_shares == 0
        assert result.total_cost_basis == 0
        assert result.cost_basis_per_share == 0
        assert result.sales == []
        assert not result.oversold

    def test_single_buy_includes_fees(self):
        result = compute_cost_basis([_txn(BUY, 10, 100, fees="5")])
        assert result.total_shares == 10
        assert result.total_cost_basis == Decimal("1005")
        assert result.cost_basis_per_share == Decimal("100.5")

    def test_buys_average(self):
        result = compute_cost_basis([_txn(BUY, 10, 100), _txn(BUY, 10, 120)])
        assert result.total_shares == 20
        assert result.total_cost_basis == 2200
        assert result.cost_basis_per_share == 110


# ---------------------------------------------------------------------------
# Sells
# ---------------------------------------------------------------------------

class TestSells:
    def test_sell_realizes_against_average(self):
        result = compute_cost_basis([
            _txn(BUY, 10, 100),
            _txn(BUY, 10, 120),
            _txn(SELL, 5, 130, d=date(2024, 2, 1)),
        ])
        assert result.total_shares == 15
        assert result.total_cost_basis == 1650
        assert result.cost_basis_per_share == 110
        assert result.realized_gain_loss == 100

        sale = result.sales[0]
        assert sale.shares_sold == 5
        assert sale.cost_basis == 550
        assert sale.proceeds == 650
        assert sale.realized_gain_loss == 100

    def test_sell_fees_reduce_proceeds(self):
        result = compute_cost_basis([
            _txn(BUY, 10, 10),
            _txn(SELL, 10, 12, d=date(2024, 3, 1), fees="4"),
        ])
        assert result.sales[0].proceeds == 116
        assert result.realized_gain_loss == 16
        assert result.total_shares == 0
        assert result.cost_basis_per_share == 0

    def test_sell_with_nothing_held_has_zero_basis(self):
        result = compute_cost_basis([_txn(SELL, 3, 10)])
        assert result.sales[0].cost_basis == 0
        assert result.realized_gain_loss == 30
        assert result.oversold

    def test_oversell_flagged_not_raised(self):
        result = compute_cost_basis([_txn(BUY, 5, 10), _txn(SELL, 10, 10, d=date(2024, 2, 1))])
        assert result.total_shares == -5
        assert result.oversold

    def test_realized_total_is_sum_of_sales(self):
        result = compute_cost_basis([
            _txn(BUY, 100, 10),
            _txn(SELL, 20, 11, d=date(2024, 2, 1)),
            _txn(SELL, 30, 9, d=date(2024, 3, 1)),
        ])
        assert result.realized_gain_loss == sum(s.realized_gain_loss for s in result.sales)
        assert result.realized_gain_loss == 20 - 30


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

class TestOrdering:
    def test_sorted_by_date_then_insertion(self):
        late = _txn(BUY, 1, 1, d=date(2024, 5, 1), seq=1)
        early_second = _txn(BUY, 1, 1, d=date(2024, 1, 1), seq=3)
        early_first = _txn(BUY, 1, 1, d=date(2024, 1, 1), seq=2)
        ordered = order_transactions([late, early_second, early_first])
        assert [t.seq for t in ordered] == [2, 3, 1]

    def test_same_day_sell_after_buy(self):
        """A sell recorded after a same-day buy sees the bought shares."""
        d = date(2024, 6, 3)
        sell = _txn(SELL, 10, 12, d=d, seq=20)
        buy = _txn(BUY, 10, 10, d=d, seq=10)
        result = compute_cost_basis([sell, buy])
        assert not result.oversold
        assert result.realized_gain_loss == 20

    def test_non_trades_ignored(self):
        div = _txn(TransactionType.DIVIDEND, None, None)
        div.total_amount = Decimal("50")
        result = compute_cost_basis([_txn(BUY, 10, 10), div])
        assert result.total_shares == 10
        assert result.total_cost_basis == 100

    def test_per_share_zero_when_flat(self):
        assert per_share(Decimal("100"), Decimal("0")) == 0
        assert per_share(Decimal("100"), Decimal("-2")) == 0


# ---------------------------------------------------------------------------
# Invariants
# ---------------------------------------------------------------------------

buys = st.lists(
    st.tuples(st.integers(min_value=1, max_value=10_000), st.integers(min_value=1, max_value=5_000)),
    min_size=1,
    max_size=10,
)


class TestInvariants:
    @given(lots=buys, sell_fraction=st.integers(min_value=1, max_value=99))
    @settings(max_examples=100)
    def test_sell_preserves_per_share_basis(self, lots, sell_fraction):
        history = [_txn(BUY, shares, price, seq=i) for i, (shares, price) in enumerate(lots)]
        before = compute_cost_basis(history)

        held = before.total_shares
        sold = held * sell_fraction / 100
        history.append(_txn(SELL, sold, 1, d=date(2024, 12, 31), seq=len(lots)))
        after = compute_cost_basis(history)

        assert abs(after.cost_basis_per_share - before.cost_basis_per_share) < Decimal("1e-12")

    @given(lots=buys)
    def test_average_matches_totals(self, lots):
        history = [_txn(BUY, shares, price, seq=i) for i, (shares, price) in enumerate(lots)]
        result = compute_cost_basis(history)
        total_shares = sum(s for s, _ in lots)
        total_cost = sum(s * p for s, p in lots)
        assert result.total_shares == total_shares
        assert result.total_cost_basis == total_cost
        assert abs(result.cost_basis_per_share * total_shares - total_cost) < Decimal("1e-12")

    @given(lots=buys, sells=st.lists(st.integers(min_value=1, max_value=1_000), max_size=5))
    def test_shares_are_buys_minus_sells(self, lots, sells):
        history = [_txn(BUY, shares, price, seq=i) for i, (shares, price) in enumerate(lots)]
        history += [
            _txn(SELL, shares, 1, d=date(2025, 1, 1), seq=100 + i)
            for i, shares in enumerate(sells)
        ]
        result = compute_cost_basis(history)
        expected = sum(s for s, _ in lots) - sum(sells)
        assert result.total_shares == expected
        assert result.oversold == any(
            sum(s for s, _ in lots) - sum(sells[: i + 1]) < 0 for i in range(len(sells))
        )
