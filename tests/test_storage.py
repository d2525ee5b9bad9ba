"""Storage tests: connection, unit of work, migrations and row helpers."""

from __future__ import annotations

import sqlite3

import pytest

from stakehold.storage.database import Database
from stakehold.storage.migrations import discover_migrations, ensure_schema
from stakehold.storage.queries import (
    find_position_by_symbol,
    get_account,
    get_expense_template_row,
    get_property_row,
    insert_position,
    insert_property,
    list_accounts,
    list_property_rows,
    new_id,
    upsert_account,
    upsert_expense_template,
)


class TestDatabase:
    def test_connect_creates_file(self, tmp_path):
        db_path = tmp_path / "test.db"
        assert not db_path.exists()
        db = Database(db_path)
        db.connect()
        assert db_path.exists()
        db.close()

    def test_context_manager(self, tmp_path):
        with Database(tmp_path / "test.db") as db:
            db.execute("SELECT 1")

    def test_schema_version_empty(self, tmp_path):
        db = Database(tmp_path / "test.db")
        assert db.schema_version() == 0
        db.close()

    def test_wal_mode(self, test_db):
        assert test_db.fetchone("PRAGMA journal_mode")[0] == "wal"

    def test_in_memory(self, memory_db):
        assert memory_db.is_memory
        assert memory_db.schema_version() == 1


class TestUnitOfWork:
    """Test the transaction() context manager."""

    def test_commits(self, test_db):
        with test_db.transaction() as cur:
            cur.execute("INSERT INTO accounts (id, user_id, name) VALUES ('a', 'u', 'A')")
        assert get_account(test_db, "a") is not None

    def test_rolls_back_on_error(self, test_db):
        with pytest.raises(ValueError):
            with test_db.transaction() as cur:
                cur.execute("INSERT INTO accounts (id, user_id, name) VALUES ('a', 'u', 'A')")
                raise ValueError("abort")
        assert get_account(test_db, "a") is None

    def test_nested_rejected(self, test_db):
        with test_db.transaction():
            with pytest.raises(RuntimeError):
                with test_db.transaction():
                    pass

    def test_foreign_keys_enforced(self, test_db):
        with pytest.raises(sqlite3.IntegrityError):
            insert_position(test_db, "no-such-account", "Orphan", "1")


class TestMigrations:
    def test_initial_migration(self, test_db):
        assert test_db.schema_version() >= 1

    def test_tables_exist(self, test_db):
        tables = test_db.fetchall(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        )
        table_names = {r["name"] for r in tables}
        expected = {
            "_schema_version", "accounts", "positions", "transactions",
            "properties", "leases", "additional_income", "expense_templates",
        }
        assert expected.issubset(table_names)

    def test_idempotent(self, test_db):
        v1 = ensure_schema(test_db)
        v2 = ensure_schema(test_db)
        assert v1 == v2

    def test_discovery_orders_and_filters(self, tmp_path):
        (tmp_path / "010_later.sql").write_text("")
        (tmp_path / "002_second.sql").write_text("")
        (tmp_path / "notes.sql").write_text("")
        found = discover_migrations(tmp_path)
        assert [(m.version, m.name) for m in found] == [(2, "second"), (10, "later")]

    def test_pending_script_applied(self, test_db, tmp_path):
        (tmp_path / "002_tags.sql").write_text(
            "CREATE TABLE tags (id TEXT PRIMARY KEY);\n"
            "INSERT INTO _schema_version (version) VALUES (2);\n"
        )
        assert ensure_schema(test_db, tmp_path) == 2
        assert test_db.schema_version() == 2
        assert test_db.fetchone("SELECT COUNT(*) AS n FROM tags")["n"] == 0


class TestAccountQueries:
    def test_upsert_updates(self, test_db):
        upsert_account(test_db, id="a1", name="Old", user_id="alice")
        upsert_account(test_db, id="a1", name="New", user_id="alice", tax_treatment="TAX_EXEMPT")
        row = get_account(test_db, "a1")
        assert row["name"] == "New"
        assert row["tax_treatment"] == "TAX_EXEMPT"

    def test_list_filters_user_and_inactive(self, test_db):
        upsert_account(test_db, id="a1", name="B", user_id="alice")
        upsert_account(test_db, id="a2", name="A", user_id="alice")
        upsert_account(test_db, id="a3", name="C", user_id="alice", is_active=False)
        upsert_account(test_db, id="b1", name="D", user_id="bob")
        assert [a["id"] for a in list_accounts(test_db, user_id="alice")] == ["a2", "a1"]
        assert len(list_accounts(test_db)) == 3


class TestPositionQueries:
    def test_find_by_symbol_case_insensitive(self, test_db, account):
        position_id = insert_position(test_db, account, "Apple", "10", symbol="AAPL")
        assert find_position_by_symbol(test_db, account, "aapl")["id"] == position_id
        assert find_position_by_symbol(test_db, account, "MSFT") is None


class TestPropertyQueries:
    def test_insert_and_get(self, test_db):
        property_id = insert_property(test_db, "alice", "1 Main St", purchase_price="100000")
        row = get_property_row(test_db, property_id)
        assert row["purchase_price"] == "100000"
        assert row["down_payment"] is None
        assert [r["id"] for r in list_property_rows(test_db, "alice")] == [property_id]
        assert list_property_rows(test_db, "bob") == []

    def test_expense_template_replaced(self, test_db):
        property_id = insert_property(test_db, "alice", "1 Main St")
        upsert_expense_template(test_db, property_id, hoa_fees="100")
        upsert_expense_template(test_db, property_id, garbage="20")
        row = get_expense_template_row(test_db, property_id)
        assert row["garbage"] == "20"
        assert row["hoa_fees"] == "0"

    def test_new_id_unique(self):
        assert len({new_id() for _ in range(100)}) == 100
