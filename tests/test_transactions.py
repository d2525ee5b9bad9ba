"""Tests for recording, editing and deleting transactions."""

from __future__ import annotations

import threading
from datetime import date
from decimal import Decimal

import pytest

import stakehold.ledger.positions as positions_module
from stakehold.errors import NotFoundError, OversellError, UnauthorizedError, ValidationError
from stakehold.ledger.positions import create_position, get_position
from stakehold.ledger.transactions import (
    delete_transaction,
    edit_transaction,
    get_transaction,
    list_transactions,
    record_transaction,
)
from stakehold.ledger.types import TransactionType
from stakehold.storage.database import Database

USER = "alice"
OTHER_USER = "bob"


def _trade(db, account, position, kind, d, amount, shares, **kwargs):
    return record_transaction(
        db, account, kind, d, amount, position_id=position.id, shares=shares, **kwargs
    )


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------

class TestRecord:
    def test_buy_derives_price(self, test_db, account, position):
        txn = _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        assert txn.transaction_type == TransactionType.BUY
        assert txn.transaction_date == date(2024, 1, 10)
        assert txn.price_per_share == 10
        assert txn.realized_gain_loss is None
        assert txn.position_symbol == "AAPL"

    def test_sell_stores_realized(self, test_db, account, position):
        _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        sell = _trade(test_db, account, position, "SELL", "2024-02-10", "60", "4")
        assert sell.cost_basis == 40
        assert sell.realized_gain_loss == 20

        p = get_position(test_db, position.id)
        assert p.shares == 6
        assert p.cost_basis_total == 60
        assert p.realized_gain_loss == 20

    def test_dividend_leaves_shares_alone(self, test_db, account, position):
        _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        record_transaction(
            test_db, account, "DIVIDEND", "2024-03-01", "2.50", position_id=position.id
        )
        p = get_position(test_db, position.id)
        assert p.shares == 10
        assert p.cost_basis_total == 100

    def test_cash_movement_without_position(self, test_db, account):
        txn = record_transaction(test_db, account, "CONTRIBUTION", "2024-01-01", "1000")
        assert txn.position_id is None
        assert txn.account_name == "Brokerage"

    @pytest.mark.parametrize("kwargs,field", [
        ({"transaction_type": "BUY", "shares": None}, None),
        ({"transaction_type": "BUY", "shares": "0"}, None),
        ({"transaction_type": "SPLIT", "shares": "1"}, "transaction_type"),
        ({"transaction_type": "DIVIDEND", "total_amount": "-5"}, "total_amount"),
        ({"transaction_type": "DIVIDEND", "transaction_date": "yesterday"}, "transaction_date"),
        ({"transaction_type": "DIVIDEND", "fees": "-1"}, "fees"),
    ])
    def test_invalid_input(self, test_db, account, kwargs, field):
        args = {
            "transaction_date": "2024-01-01",
            "total_amount": "10",
        }
        args.update(kwargs)
        with pytest.raises(ValidationError) as exc:
            record_transaction(test_db, account, **args)
        if field is not None:
            assert any(e["field"] == field for e in exc.value.errors)
        assert list_transactions(test_db) == []

    def test_validation_precedes_lookup(self, test_db):
        """Malformed input is reported even when the account does not exist."""
        with pytest.raises(ValidationError):
            record_transaction(test_db, "nope", "BUY", "2024-01-01", "10")

    def test_missing_account(self, test_db):
        with pytest.raises(NotFoundError):
            record_transaction(test_db, "nope", "DIVIDEND", "2024-01-01", "10")

    def test_missing_position(self, test_db, account):
        with pytest.raises(NotFoundError):
            record_transaction(
                test_db, account, "BUY", "2024-01-01", "10", position_id="nope", shares="1"
            )

    def test_other_users_account(self, test_db, account):
        with pytest.raises(UnauthorizedError):
            record_transaction(test_db, account, "DIVIDEND", "2024-01-01", "10", user_id=OTHER_USER)

    def test_position_in_other_account(self, test_db, ira_account, position):
        with pytest.raises(ValidationError) as exc:
            record_transaction(
                test_db, ira_account, "BUY", "2024-01-01", "10",
                position_id=position.id, shares="1",
            )
        assert exc.value.errors[0]["field"] == "position_id"


# ---------------------------------------------------------------------------
# Oversell policy
# ---------------------------------------------------------------------------

class TestOversell:
    def test_reject_rolls_back(self, test_db, account, position):
        _trade(test_db, account, position, "BUY", "2024-01-10", "50", "5")
        with pytest.raises(OversellError):
            _trade(test_db, account, position, "SELL", "2024-02-10", "100", "10")
        assert len(list_transactions(test_db)) == 1
        assert get_position(test_db, position.id).shares == 5

    def test_allow_stores_negative(self, test_db, account, position):
        _trade(test_db, account, position, "BUY", "2024-01-10", "50", "5")
        _trade(
            test_db, account, position, "SELL", "2024-02-10", "100", "10",
            oversell_policy="allow",
        )
        assert get_position(test_db, position.id).shares == -5

    def test_backdated_sell_is_checked(self, test_db, account, position):
        """A sell dated before the buy that funds it oversells at that point."""
        _trade(test_db, account, position, "BUY", "2024-03-01", "100", "10")
        with pytest.raises(OversellError):
            _trade(test_db, account, position, "SELL", "2024-01-01", "10", "1")


# ---------------------------------------------------------------------------
# Atomicity
# ---------------------------------------------------------------------------

class TestAtomicity:
    def test_recompute_failure_discards_write(self, test_db, account, position, monkeypatch):
        def boom(_txns):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(positions_module, "compute_cost_basis", boom)
        with pytest.raises(RuntimeError):
            _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        monkeypatch.undo()

        assert list_transactions(test_db) == []
        assert get_position(test_db, position.id).shares == 0

    def test_concurrent_writers(self, test_db, account, position):
        """Two connections buying into one position never lose an update."""
        errors: list[Exception] = []

        def worker():
            db = Database(test_db.path)
            try:
                for _ in range(15):
                    record_transaction(
                        db, account, "BUY", "2024-01-10", "10",
                        position_id=position.id, shares="1",
                    )
            except Exception as e:
                errors.append(e)
            finally:
                db.close()

        threads = [threading.Thread(target=worker) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        p = get_position(test_db, position.id)
        assert p.shares == 30
        assert p.cost_basis_total == 300


# ---------------------------------------------------------------------------
# Edit
# ---------------------------------------------------------------------------

class TestEdit:
    def test_new_shares_rederive_price(self, test_db, account, position):
        txn = _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        edited = edit_transaction(test_db, txn.id, shares="20")
        assert edited.price_per_share == 5
        assert get_position(test_db, position.id).shares == 20

    def test_explicit_price_kept(self, test_db, account, position):
        txn = _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        edited = edit_transaction(test_db, txn.id, total_amount="110", price_per_share="10")
        assert edited.price_per_share == 10
        assert edited.total_amount == 110

    def test_sell_amount_change_updates_realized(self, test_db, account, position):
        _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        sell = _trade(test_db, account, position, "SELL", "2024-02-10", "60", "4")
        edited = edit_transaction(test_db, sell.id, total_amount="80")
        assert edited.realized_gain_loss == 40
        assert get_position(test_db, position.id).realized_gain_loss == 40

    def test_move_between_positions(self, test_db, account, position):
        other = create_position(test_db, account, "Microsoft", symbol="MSFT", current_price="1")
        txn = _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        edit_transaction(test_db, txn.id, position_id=other.id)
        assert get_position(test_db, position.id).shares == 0
        assert get_position(test_db, other.id).shares == 10

    def test_sell_retyped_as_dividend_clears_realized(self, test_db, account, position):
        _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        sell = _trade(test_db, account, position, "SELL", "2024-02-10", "60", "4")
        edited = edit_transaction(test_db, sell.id, transaction_type="DIVIDEND")
        assert edited.realized_gain_loss is None
        assert edited.cost_basis is None
        p = get_position(test_db, position.id)
        assert p.shares == 10
        assert p.realized_gain_loss == 0

    def test_edit_that_oversells_is_rolled_back(self, test_db, account, position):
        _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        sell = _trade(test_db, account, position, "SELL", "2024-02-10", "60", "4")
        with pytest.raises(OversellError):
            edit_transaction(test_db, sell.id, shares="11")
        assert get_transaction(test_db, sell.id).shares == 4

    def test_unknown_field(self, test_db, account, position):
        txn = _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        with pytest.raises(ValidationError):
            edit_transaction(test_db, txn.id, ticker="MSFT")

    def test_missing(self, test_db):
        with pytest.raises(NotFoundError):
            edit_transaction(test_db, "nope", description="x")

    def test_wrong_user(self, test_db, account, position):
        txn = _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        with pytest.raises(UnauthorizedError):
            edit_transaction(test_db, txn.id, user_id=OTHER_USER, description="mine now")


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

class TestDelete:
    def test_delete_sell_restores_position(self, test_db, account, position):
        _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        sell = _trade(test_db, account, position, "SELL", "2024-02-10", "60", "4")
        delete_transaction(test_db, sell.id)
        p = get_position(test_db, position.id)
        assert p.shares == 10
        assert p.realized_gain_loss == 0
        with pytest.raises(NotFoundError):
            get_transaction(test_db, sell.id)

    def test_delete_buy_under_sell_is_rejected(self, test_db, account, position):
        buy = _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        _trade(test_db, account, position, "SELL", "2024-02-10", "60", "4")
        with pytest.raises(OversellError):
            delete_transaction(test_db, buy.id)
        assert get_transaction(test_db, buy.id).shares == 10

    def test_missing(self, test_db):
        with pytest.raises(NotFoundError):
            delete_transaction(test_db, "nope")

    def test_wrong_user(self, test_db, account, position):
        txn = _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        with pytest.raises(UnauthorizedError):
            delete_transaction(test_db, txn.id, user_id=OTHER_USER)


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------

class TestList:
    def test_same_day_keeps_insertion_order(self, test_db, account, position):
        first = _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        second = _trade(test_db, account, position, "SELL", "2024-01-10", "60", "4")
        earlier = record_transaction(test_db, account, "CONTRIBUTION", "2024-01-01", "500")

        ids = [t.id for t in list_transactions(test_db)]
        assert ids == [earlier.id, first.id, second.id]
        newest = [t.id for t in list_transactions(test_db, newest_first=True)]
        assert newest == list(reversed(ids))

    def test_filters(self, test_db, account, position):
        _trade(test_db, account, position, "BUY", "2024-01-10", "100", "10")
        record_transaction(test_db, account, "DIVIDEND", "2024-03-01", "1", position_id=position.id)
        record_transaction(test_db, account, "CONTRIBUTION", "2024-05-01", "500")

        assert len(list_transactions(test_db, user_id=USER)) == 3
        assert list_transactions(test_db, user_id=OTHER_USER) == []
        assert len(list_transactions(test_db, position_id=position.id)) == 2
        assert len(list_transactions(test_db, types=["DIVIDEND"])) == 1
        window = list_transactions(test_db, start_date="2024-02-01", end_date=date(2024, 4, 30))
        assert [t.transaction_type for t in window] == [TransactionType.DIVIDEND]

    def test_get_wrong_user(self, test_db, account):
        txn = record_transaction(test_db, account, "CONTRIBUTION", "2024-01-01", "10")
        with pytest.raises(UnauthorizedError):
            get_transaction(test_db, txn.id, user_id=OTHER_USER)
        assert get_transaction(test_db, txn.id, user_id=USER).total_amount == Decimal("10")
