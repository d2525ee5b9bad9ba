"""Pydantic models for config.yaml validation."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from stakehold.config.defaults import (
    DATABASE_DEFAULTS,
    DEFAULT_OVERSELL_POLICY,
    PERFORMANCE_PERIODS,
    PERIOD_MONTHS,
    PROPERTY_RULES,
    RECENT_TRANSACTIONS_LIMIT,
    TAX_TREATMENTS,
)

# ---------------------------------------------------------------------------
# Database Config
# ---------------------------------------------------------------------------

class DatabaseConfig(BaseModel):
    path: str = DATABASE_DEFAULTS["path"]
    busy_timeout_ms: int = DATABASE_DEFAULTS["busy_timeout_ms"]


# ---------------------------------------------------------------------------
# Ledger Config
# ---------------------------------------------------------------------------

class LedgerConfig(BaseModel):
    oversell_policy: Literal["reject", "allow"] = DEFAULT_OVERSELL_POLICY


# ---------------------------------------------------------------------------
# Reports Config
# ---------------------------------------------------------------------------

class ReportsConfig(BaseModel):
    recent_transactions_limit: int = RECENT_TRANSACTIONS_LIMIT
    performance_periods: list[str] = Field(
        default_factory=lambda: list(PERFORMANCE_PERIODS)
    )

    @field_validator("performance_periods")
    @classmethod
    def known_periods(cls, value: list[str]) -> list[str]:
        unknown = [p for p in value if p != "YTD" and p not in PERIOD_MONTHS]
        if unknown:
            raise ValueError(f"Unknown performance periods: {unknown}")
        return value


# ---------------------------------------------------------------------------
# Property Rules Config
# ---------------------------------------------------------------------------

class PropertyRulesConfig(BaseModel):
    one_percent: Decimal = Decimal(PROPERTY_RULES["one_percent"])
    two_percent: Decimal = Decimal(PROPERTY_RULES["two_percent"])
    rule_135_multiplier: Decimal = Decimal(PROPERTY_RULES["rule_135_multiplier"])


# ---------------------------------------------------------------------------
# Account Config
# ---------------------------------------------------------------------------

class AccountConfig(BaseModel):
    id: str
    name: str
    user_id: str = "default"
    account_type: str = "Brokerage"
    institution: str = ""
    tax_treatment: str = "TAXABLE"
    is_active: bool = True

    @field_validator("tax_treatment")
    @classmethod
    def known_tax_treatment(cls, value: str) -> str:
        value = value.upper()
        if value not in TAX_TREATMENTS:
            raise ValueError(f"tax_treatment must be one of {TAX_TREATMENTS}, got {value}")
        return value


# ---------------------------------------------------------------------------
# Top-Level Config
# ---------------------------------------------------------------------------

class StakeholdConfig(BaseModel):
    """Root configuration model for the stakehold application."""

    version: int = 1
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    reports: ReportsConfig = Field(default_factory=ReportsConfig)
    property_rules: PropertyRulesConfig = Field(default_factory=PropertyRulesConfig)
    accounts: list[AccountConfig] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def coerce_none_to_defaults(cls, data: Any) -> Any:
        """YAML parses empty keys as None. Coerce to proper defaults."""
        if isinstance(data, dict):
            if "accounts" in data and data["accounts"] is None:
                data["accounts"] = []
            for key in ("database", "ledger", "reports", "property_rules"):
                if key in data and data[key] is None:
                    data[key] = {}
        return data
