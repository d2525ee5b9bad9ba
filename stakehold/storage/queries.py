"""Named query functions for database operations.

Read helpers accept anything with an ``execute`` method (a :class:`Database`
or a cursor inside a unit of work) and return plain dicts. Monetary values
are returned as stored (TEXT); domain types convert them to Decimal.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Protocol

from stakehold.storage.database import Database


class Executor(Protocol):
    def execute(self, sql: str, params: tuple = ...) -> Any: ...


def new_id() -> str:
    return str(uuid.uuid4())


def _text(value: Decimal | int | float | str | None) -> str | None:
    return None if value is None else str(value)


def _iso(value: date | str | None) -> str | None:
    if value is None:
        return None
    return value.isoformat() if isinstance(value, date) else str(value)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

def upsert_account(
    db: Database,
    id: str,
    name: str,
    user_id: str,
    account_type: str = "Brokerage",
    institution: str = "",
    tax_treatment: str = "TAXABLE",
    is_active: bool = True,
) -> None:
    """Insert or update an account."""
    db.execute(
        """INSERT INTO accounts (id, user_id, name, account_type, institution,
            tax_treatment, is_active)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            user_id=excluded.user_id, name=excluded.name,
            account_type=excluded.account_type,
            institution=excluded.institution,
            tax_treatment=excluded.tax_treatment,
            is_active=excluded.is_active
        """,
        (id, user_id, name, account_type, institution, tax_treatment, int(is_active)),
    )


def get_account(db: Executor, account_id: str) -> dict[str, Any] | None:
    row = db.execute("SELECT * FROM accounts WHERE id = ?", (account_id,)).fetchone()
    return dict(row) if row else None


def list_accounts(db: Database, user_id: str | None = None) -> list[dict[str, Any]]:
    """List active accounts, optionally for one user."""
    if user_id is not None:
        rows = db.fetchall(
            "SELECT * FROM accounts WHERE is_active = 1 AND user_id = ? ORDER BY name",
            (user_id,),
        )
    else:
        rows = db.fetchall("SELECT * FROM accounts WHERE is_active = 1 ORDER BY name")
    return [dict(r) for r in rows]


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------

_POSITION_SELECT = """
    SELECT p.*, a.user_id, a.name AS account_name, a.account_type, a.tax_treatment
    FROM positions p
    JOIN accounts a ON a.id = p.account_id
"""


def get_position_row(db: Executor, position_id: str) -> dict[str, Any] | None:
    row = db.execute(f"{_POSITION_SELECT} WHERE p.id = ?", (position_id,)).fetchone()
    return dict(row) if row else None


def list_position_rows(
    db: Executor,
    user_id: str | None = None,
    account_id: str | None = None,
) -> list[dict[str, Any]]:
    clauses, params = [], []
    if user_id is not None:
        clauses.append("a.user_id = ?")
        params.append(user_id)
    if account_id is not None:
        clauses.append("p.account_id = ?")
        params.append(account_id)
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = db.execute(
        f"{_POSITION_SELECT} {where} ORDER BY p.name, p.id", tuple(params)
    ).fetchall()
    return [dict(r) for r in rows]


def find_position_by_symbol(
    db: Executor, account_id: str, symbol: str
) -> dict[str, Any] | None:
    row = db.execute(
        f"{_POSITION_SELECT} WHERE p.account_id = ? AND UPPER(p.symbol) = ? "
        "ORDER BY p.rowid LIMIT 1",
        (account_id, symbol.upper()),
    ).fetchone()
    return dict(row) if row else None


def insert_position(
    db: Executor,
    account_id: str,
    name: str,
    current_price: Decimal,
    symbol: str | None = None,
    category: str = "OTHER",
) -> str:
    position_id = new_id()
    db.execute(
        """INSERT INTO positions (id, account_id, symbol, name, category, current_price)
        VALUES (?, ?, ?, ?, ?, ?)""",
        (position_id, account_id, symbol, name, category, _text(current_price)),
    )
    return position_id


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

_TRANSACTION_SELECT = """
    SELECT t.*, t.rowid AS seq, a.name AS account_name,
           p.symbol AS position_symbol, p.name AS position_name
    FROM transactions t
    JOIN accounts a ON a.id = t.account_id
    LEFT JOIN positions p ON p.id = t.position_id
"""


def get_transaction_row(db: Executor, transaction_id: str) -> dict[str, Any] | None:
    row = db.execute(
        f"{_TRANSACTION_SELECT} WHERE t.id = ?", (transaction_id,)
    ).fetchone()
    return dict(row) if row else None


def list_transaction_rows(
    db: Executor,
    *,
    user_id: str | None = None,
    account_id: str | None = None,
    position_id: str | None = None,
    types: Iterable[str] | None = None,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
    ascending: bool = True,
) -> list[dict[str, Any]]:
    """Transactions matching the filters, in date order (ties by insertion)."""
    clauses, params = [], []
    if user_id is not None:
        clauses.append("a.user_id = ?")
        params.append(user_id)
    if account_id is not None:
        clauses.append("t.account_id = ?")
        params.append(account_id)
    if position_id is not None:
        clauses.append("t.position_id = ?")
        params.append(position_id)
    if types is not None:
        type_list = [str(getattr(t, "value", t)) for t in types]
        clauses.append(f"t.transaction_type IN ({', '.join('?' * len(type_list))})")
        params.extend(type_list)
    if start_date is not None:
        clauses.append("t.transaction_date >= ?")
        params.append(_iso(start_date))
    if end_date is not None:
        clauses.append("t.transaction_date <= ?")
        params.append(_iso(end_date))

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    direction = "ASC" if ascending else "DESC"
    rows = db.execute(
        f"{_TRANSACTION_SELECT} {where} "
        f"ORDER BY t.transaction_date {direction}, t.rowid {direction}",
        tuple(params),
    ).fetchall()
    return [dict(r) for r in rows]


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------

def insert_property(
    db: Database,
    user_id: str,
    address: str,
    *,
    purchase_price: Decimal | str = "0",
    current_value: Decimal | str = "0",
    loan_balance: Decimal | str = "0",
    down_payment: Decimal | str | None = None,
    refurbish_costs: Decimal | str = "0",
    furnish_costs: Decimal | str = "0",
    acquisition_costs: Decimal | str = "0",
    monthly_mortgage_payment: Decimal | str = "0",
    vacancy_rate_percent: Decimal | str = "0",
    interest_rate: Decimal | str = "0",
    loan_term_years: int = 30,
    city: str = "",
    state: str = "",
    property_type: str = "SINGLE_FAMILY",
    account_id: str | None = None,
    id: str | None = None,
) -> str:
    """Insert a property record. Returns its id."""
    property_id = id or new_id()
    db.execute(
        """INSERT INTO properties (
            id, user_id, account_id, address, city, state, property_type,
            purchase_price, current_value, loan_balance, down_payment,
            refurbish_costs, furnish_costs, acquisition_costs,
            monthly_mortgage_payment, vacancy_rate_percent, interest_rate,
            loan_term_years
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            property_id, user_id, account_id, address, city, state, property_type,
            _text(purchase_price), _text(current_value), _text(loan_balance),
            _text(down_payment), _text(refurbish_costs), _text(furnish_costs),
            _text(acquisition_costs), _text(monthly_mortgage_payment),
            _text(vacancy_rate_percent), _text(interest_rate), loan_term_years,
        ),
    )
    return property_id


def get_property_row(db: Executor, property_id: str) -> dict[str, Any] | None:
    row = db.execute("SELECT * FROM properties WHERE id = ?", (property_id,)).fetchone()
    return dict(row) if row else None


def list_property_rows(db: Executor, user_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        "SELECT * FROM properties WHERE user_id = ? ORDER BY address, id", (user_id,)
    ).fetchall()
    return [dict(r) for r in rows]


def insert_lease(
    db: Database,
    property_id: str,
    monthly_rent: Decimal | str,
    *,
    tenant_name: str = "",
    start_date: date | str | None = None,
    end_date: date | str | None = None,
    is_active: bool = True,
) -> str:
    lease_id = new_id()
    db.execute(
        """INSERT INTO leases (id, property_id, tenant_name, monthly_rent,
            start_date, end_date, is_active)
        VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (
            lease_id, property_id, tenant_name, _text(monthly_rent),
            _iso(start_date), _iso(end_date), int(is_active),
        ),
    )
    return lease_id


def list_lease_rows(db: Executor, property_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        "SELECT * FROM leases WHERE property_id = ? ORDER BY rowid", (property_id,)
    ).fetchall()
    return [dict(r) for r in rows]


def insert_additional_income(
    db: Database,
    property_id: str,
    amount: Decimal | str,
    *,
    frequency: str = "MONTHLY",
    income_type: str = "OTHER",
    is_active: bool = True,
) -> str:
    income_id = new_id()
    db.execute(
        """INSERT INTO additional_income (id, property_id, income_type, amount,
            frequency, is_active)
        VALUES (?, ?, ?, ?, ?, ?)""",
        (income_id, property_id, income_type, _text(amount), frequency, int(is_active)),
    )
    return income_id


def list_additional_income_rows(db: Executor, property_id: str) -> list[dict[str, Any]]:
    rows = db.execute(
        "SELECT * FROM additional_income WHERE property_id = ? ORDER BY rowid",
        (property_id,),
    ).fetchall()
    return [dict(r) for r in rows]


def upsert_expense_template(
    db: Database,
    property_id: str,
    **items: Decimal | str,
) -> None:
    """Insert or replace a property's monthly expense template.

    Keyword arguments are line-item column names (e.g. ``hoa_fees="150"``).
    """
    cols = ["property_id"] + list(items.keys())
    placeholders = ", ".join(["?"] * len(cols))
    values = [property_id] + [_text(v) for v in items.values()]
    db.execute(
        f"INSERT OR REPLACE INTO expense_templates ({', '.join(cols)}) "
        f"VALUES ({placeholders})",
        tuple(values),
    )


def get_expense_template_row(db: Executor, property_id: str) -> dict[str, Any] | None:
    row = db.execute(
        "SELECT * FROM expense_templates WHERE property_id = ?", (property_id,)
    ).fetchone()
    return dict(row) if row else None
