"""Tests for time-weighted return and calendar helpers."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from stakehold.analytics.periods import (
    add_months,
    month_key,
    month_label,
    period_start,
    quarter_key,
    quarter_label,
)
from stakehold.analytics.returns import (
    cash_flow_amount,
    get_time_weighted_return,
    time_weighted_return,
)
from stakehold.errors import NotFoundError
from stakehold.ledger.transactions import record_transaction
from stakehold.ledger.types import Transaction, TransactionType


def _flow(kind: TransactionType, amount: str, d: date, seq: int) -> Transaction:
    return Transaction(
        id=f"t{seq}",
        account_id="acct",
        position_id="pos",
        transaction_type=kind,
        transaction_date=d,
        total_amount=Decimal(amount),
        seq=seq,
    )


# ---------------------------------------------------------------------------
# Cash flow signs
# ---------------------------------------------------------------------------

class TestCashFlowAmount:
    @pytest.mark.parametrize("kind", [
        TransactionType.BUY,
        TransactionType.CONTRIBUTION,
        TransactionType.DIVIDEND,
        TransactionType.INCOME,
        TransactionType.DISTRIBUTION,
    ])
    def test_positive(self, kind):
        assert cash_flow_amount(_flow(kind, "10", date(2024, 1, 1), 1)) == 10

    @pytest.mark.parametrize("kind", [TransactionType.SELL, TransactionType.WITHDRAWAL])
    def test_negative(self, kind):
        assert cash_flow_amount(_flow(kind, "10", date(2024, 1, 1), 1)) == -10

    def test_expense_is_zero(self):
        assert cash_flow_amount(_flow(TransactionType.EXPENSE, "10", date(2024, 1, 1), 1)) == 0


# ---------------------------------------------------------------------------
# TWR
# ---------------------------------------------------------------------------

class TestTimeWeightedReturn:
    def test_empty_history_is_zero(self):
        assert time_weighted_return([], Decimal("500")) == 0

    def test_single_buy(self):
        txns = [_flow(TransactionType.BUY, "1000", date(2024, 1, 1), 1)]
        assert time_weighted_return(txns, Decimal("1200")) == 20

    def test_loss(self):
        txns = [_flow(TransactionType.BUY, "1000", date(2024, 1, 1), 1)]
        assert time_weighted_return(txns, Decimal("900")) == -10

    def test_sub_periods_chain(self):
        txns = [
            _flow(TransactionType.BUY, "1000", date(2024, 1, 1), 1),
            _flow(TransactionType.SELL, "500", date(2024, 6, 1), 2),
        ]
        # 500/1000 then 600/500
        assert time_weighted_return(txns, Decimal("600")) == -40

    def test_order_independent_of_input_order(self):
        a = _flow(TransactionType.BUY, "1000", date(2024, 1, 1), 1)
        b = _flow(TransactionType.DIVIDEND, "50", date(2024, 3, 1), 2)
        assert time_weighted_return([b, a], Decimal("1100")) == time_weighted_return(
            [a, b], Decimal("1100")
        )

    def test_no_positive_value_skips_final_ratio(self):
        txns = [_flow(TransactionType.WITHDRAWAL, "100", date(2024, 1, 1), 1)]
        assert time_weighted_return(txns, Decimal("999")) == 0


money = st.decimals(min_value=Decimal("1"), max_value=Decimal("1000000"), places=2)


class TestTimeWeightedReturnProperties:
    @given(cost=money, value=money)
    @settings(max_examples=100)
    def test_single_buy_is_simple_return(self, cost, value):
        txns = [_flow(TransactionType.BUY, str(cost), date(2024, 1, 1), 1)]
        expected = (value / cost - 1) * 100
        assert abs(time_weighted_return(txns, value) - expected) < Decimal("1e-12")

    @given(cost=money, value=money, expenses=st.lists(money, max_size=5))
    @settings(max_examples=100)
    def test_expenses_do_not_move_return(self, cost, value, expenses):
        txns = [_flow(TransactionType.BUY, str(cost), date(2024, 1, 1), 1)]
        baseline = time_weighted_return(txns, value)
        txns += [
            _flow(TransactionType.EXPENSE, str(amount), date(2024, 2, 1), seq)
            for seq, amount in enumerate(expenses, start=2)
        ]
        assert abs(time_weighted_return(txns, value) - baseline) < Decimal("1e-12")


class TestStoredTimeWeightedReturn:
    def test_position_twr(self, test_db, account, position):
        record_transaction(
            test_db, account, "BUY", "2024-01-10", "100",
            position_id=position.id, shares="10",
        )
        # 10 shares priced at 12
        assert get_time_weighted_return(test_db, position.id) == 20

    def test_range_excluding_all_is_zero(self, test_db, account, position):
        record_transaction(
            test_db, account, "BUY", "2024-01-10", "100",
            position_id=position.id, shares="10",
        )
        assert get_time_weighted_return(test_db, position.id, start_date="2024-02-01") == 0

    def test_missing_position(self, test_db):
        with pytest.raises(NotFoundError):
            get_time_weighted_return(test_db, "nope")


# ---------------------------------------------------------------------------
# Periods
# ---------------------------------------------------------------------------

class TestPeriods:
    def test_add_months_clamps_day(self):
        assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)
        assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)

    def test_keys_and_labels(self):
        d = date(2024, 5, 17)
        assert month_key(d) == "2024-05"
        assert month_label(d) == "May 2024"
        assert quarter_key(d) == "2024-Q2"
        assert quarter_label(d) == "Q2 2024"

    def test_period_start(self):
        today = date(2024, 8, 20)
        assert period_start("YTD", today) == date(2024, 1, 1)
        assert period_start("3M", today) == date(2024, 5, 20)
        assert period_start("1Y", today) == date(2023, 8, 20)

    def test_unknown_period(self):
        with pytest.raises(ValueError):
            period_start("5Y", date(2024, 1, 1))
