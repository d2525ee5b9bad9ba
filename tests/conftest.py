"""Shared test fixtures for stakehold.

Provides reusable fixtures for the database, config, a seeded account with
positions, and a seeded rental property across all test modules.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from stakehold.config.schema import StakeholdConfig
from stakehold.ledger.positions import create_position
from stakehold.storage.database import Database
from stakehold.storage.migrations import ensure_schema
from stakehold.storage.queries import (
    insert_additional_income,
    insert_lease,
    insert_property,
    upsert_account,
    upsert_expense_template,
)

USER = "alice"
OTHER_USER = "bob"

# ---------------------------------------------------------------------------
# Core infrastructure
# ---------------------------------------------------------------------------

@pytest.fixture
def test_config(tmp_path: Path) -> StakeholdConfig:
    """Minimal config with temp database path."""
    return StakeholdConfig(database={"path": str(tmp_path / "test.db")})


@pytest.fixture
def test_db(tmp_path: Path) -> Database:
    """Database with schema applied, using temp file."""
    db = Database(tmp_path / "test.db")
    ensure_schema(db)
    yield db
    db.close()


@pytest.fixture
def memory_db() -> Database:
    """In-memory database for fast unit tests."""
    db = Database(":memory:")
    ensure_schema(db)
    yield db
    db.close()


# ---------------------------------------------------------------------------
# Ledger seed data
# ---------------------------------------------------------------------------

@pytest.fixture
def account(test_db: Database) -> str:
    """A taxable brokerage account owned by USER."""
    upsert_account(
        test_db, id="brk", name="Brokerage", user_id=USER,
        account_type="Brokerage", institution="Fidelity", tax_treatment="TAXABLE",
    )
    return "brk"


@pytest.fixture
def ira_account(test_db: Database) -> str:
    """A tax-deferred account owned by USER."""
    upsert_account(
        test_db, id="ira", name="Rollover IRA", user_id=USER,
        account_type="IRA", tax_treatment="TAX_DEFERRED",
    )
    return "ira"


@pytest.fixture
def other_account(test_db: Database) -> str:
    """An account owned by a different user."""
    upsert_account(test_db, id="bob-brk", name="Bob Brokerage", user_id=OTHER_USER)
    return "bob-brk"


@pytest.fixture
def position(test_db: Database, account: str):
    """Empty AAPL position priced at 12."""
    return create_position(
        test_db, account, "Apple Inc.",
        symbol="aapl", category="EQUITY", current_price=Decimal("12"),
    )


@pytest.fixture
def bond_position(test_db: Database, ira_account: str):
    """Empty bond fund position priced at 50."""
    return create_position(
        test_db, ira_account, "Total Bond Fund",
        symbol="BND", category="FIXED_INCOME", current_price=Decimal("50"),
    )


# ---------------------------------------------------------------------------
# Real-asset seed data
# ---------------------------------------------------------------------------

@pytest.fixture
def rental_property(test_db: Database) -> str:
    """Single-family rental: $200k purchase, $1,500 rent, $1,000 mortgage."""
    property_id = insert_property(
        test_db, USER, "12 Elm St",
        city="Austin", state="TX",
        purchase_price="200000",
        current_value="250000",
        loan_balance="150000",
        down_payment="50000",
        monthly_mortgage_payment="1000",
        vacancy_rate_percent="5",
        interest_rate="6.5",
        loan_term_years=30,
    )
    insert_lease(test_db, property_id, "1500", tenant_name="Tenant A", start_date="2024-01-01")
    insert_additional_income(test_db, property_id, "150", frequency="QUARTERLY", income_type="PARKING")
    upsert_expense_template(
        test_db, property_id,
        property_management_fee="120",
        repairs_maintenance="80",
        real_estate_taxes="250",
        property_insurance="100",
        water_sewer="50",
    )
    return property_id
