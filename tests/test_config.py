"""Tests for the configuration system."""

from __future__ import annotations

from decimal import Decimal

import pydantic
import pytest
import yaml

from stakehold.config.defaults import (
    DEFAULT_OVERSELL_POLICY,
    OVERSELL_POLICIES,
    PERFORMANCE_PERIODS,
    PERIOD_MONTHS,
    POSITION_CATEGORIES,
)
from stakehold.config.loader import _expand_env_vars, load_config
from stakehold.config.schema import StakeholdConfig


class TestDefaults:
    """Verify defaults are present and consistent."""

    def test_oversell_default_is_a_policy(self):
        assert DEFAULT_OVERSELL_POLICY in OVERSELL_POLICIES

    def test_performance_periods_known(self):
        for period in PERFORMANCE_PERIODS:
            assert period == "YTD" or period in PERIOD_MONTHS

    def test_categories_include_other(self):
        assert "OTHER" in POSITION_CATEGORIES


class TestConfigLoading:
    """Test config file loading and validation."""

    def test_load_defaults_no_file(self):
        config = load_config("/nonexistent/path.yaml")
        assert isinstance(config, StakeholdConfig)
        assert config.version == 1
        assert config.ledger.oversell_policy == "reject"
        assert config.reports.recent_transactions_limit == 50

    def test_load_from_yaml(self, tmp_path):
        yaml_content = {
            "version": 1,
            "database": {"path": str(tmp_path / "x.db"), "busy_timeout_ms": 100},
            "ledger": {"oversell_policy": "allow"},
            "reports": {"performance_periods": ["1M", "YTD"]},
            "property_rules": {"one_percent": "0.008"},
            "accounts": [{"id": "brk", "name": "Brokerage", "tax_treatment": "taxable"}],
        }
        config_file = tmp_path / "config.yaml"
        with open(config_file, "w") as f:
            yaml.dump(yaml_content, f)

        config = load_config(str(config_file))
        assert config.database.busy_timeout_ms == 100
        assert config.ledger.oversell_policy == "allow"
        assert config.reports.performance_periods == ["1M", "YTD"]
        assert config.property_rules.one_percent == Decimal("0.008")
        assert config.accounts[0].tax_treatment == "TAXABLE"

    def test_empty_sections_use_defaults(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("version: 1\nledger:\nreports:\naccounts:\n")
        config = load_config(config_file)
        assert config.ledger.oversell_policy == "reject"
        assert config.accounts == []

    def test_env_var_in_database_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STAKEHOLD_TEST_DIR", str(tmp_path))
        config_file = tmp_path / "config.yaml"
        config_file.write_text("database:\n  path: ${STAKEHOLD_TEST_DIR}/ledger.db\n")
        config = load_config(config_file)
        assert config.database.path == f"{tmp_path}/ledger.db"

    def test_env_var_missing_returns_empty(self):
        assert _expand_env_vars("${NONEXISTENT_VAR_12345}") == ""

    def test_nested_env_expansion(self, monkeypatch):
        monkeypatch.setenv("TEST_VAL", "hello")
        result = _expand_env_vars({"key": "${TEST_VAL}", "nested": ["${TEST_VAL}", 3]})
        assert result == {"key": "hello", "nested": ["hello", 3]}


class TestConfigSchema:
    """Test Pydantic schema validation."""

    def test_unknown_oversell_policy(self):
        with pytest.raises(pydantic.ValidationError):
            StakeholdConfig(ledger={"oversell_policy": "sometimes"})

    def test_unknown_period(self):
        with pytest.raises(pydantic.ValidationError):
            StakeholdConfig(reports={"performance_periods": ["5Y"]})

    def test_unknown_tax_treatment(self):
        with pytest.raises(pydantic.ValidationError):
            StakeholdConfig(accounts=[{"id": "x", "name": "X", "tax_treatment": "OFFSHORE"}])

    def test_property_rules_defaults(self):
        rules = StakeholdConfig().property_rules
        assert rules.one_percent == Decimal("0.01")
        assert rules.two_percent == Decimal("0.02")
        assert rules.rule_135_multiplier == Decimal("1.35")
