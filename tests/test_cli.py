"""End-to-end tests for the click command line."""

from __future__ import annotations

import re

import pytest
import yaml
from click.testing import CliRunner

from stakehold.cli.main import cli


@pytest.fixture
def cli_config(tmp_path):
    config_file = tmp_path / "config.yaml"
    with open(config_file, "w") as f:
        yaml.dump({
            "database": {"path": str(tmp_path / "cli.db")},
            "accounts": [{"id": "brk", "name": "Brokerage", "user_id": "alice"}],
        }, f)
    return str(config_file)


def _run(cli_config, *args):
    runner = CliRunner()
    return runner.invoke(cli, ["--config", cli_config, "--user", "alice", *args])


@pytest.fixture
def seeded(cli_config):
    """Initialized database with one AAPL position holding 10 shares."""
    assert _run(cli_config, "init").exit_code == 0
    result = _run(cli_config, "position", "add", "brk", "Apple Inc.", "--symbol", "AAPL", "--price", "12")
    assert result.exit_code == 0, result.output
    position_id = re.search(r"Opened position (\S+)", result.output).group(1)
    result = _run(
        cli_config, "txn", "add", "brk", "BUY", "2024-01-10", "100",
        "--position", position_id, "--shares", "10",
    )
    assert result.exit_code == 0, result.output
    return position_id


class TestLedgerCommands:
    def test_init_seeds_accounts(self, cli_config):
        result = _run(cli_config, "init")
        assert result.exit_code == 0
        assert "Seeded 1 accounts" in result.output

        listing = _run(cli_config, "account", "list")
        assert "Brokerage" in listing.output

    def test_position_show(self, cli_config, seeded):
        result = _run(cli_config, "position", "show", seeded)
        assert result.exit_code == 0, result.output
        assert "AAPL" in result.output

    def test_oversell_exits_nonzero(self, cli_config, seeded):
        result = _run(
            cli_config, "txn", "add", "brk", "SELL", "2024-02-10", "500",
            "--position", seeded, "--shares", "50",
        )
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_other_user_is_refused(self, cli_config, seeded):
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", cli_config, "--user", "bob", "position", "show", seeded])
        assert result.exit_code == 1
        assert "does not belong" in result.output

    def test_txn_list(self, cli_config, seeded):
        result = _run(cli_config, "txn", "list")
        assert result.exit_code == 0
        assert "Showing 1 of 1 transactions" in result.output


class TestReportCommands:
    def test_holdings_table(self, cli_config, seeded):
        result = _run(cli_config, "report", "holdings")
        assert result.exit_code == 0, result.output
        assert "AAPL" in result.output
        assert "120.00" in result.output

    def test_allocation_json(self, cli_config, seeded):
        result = _run(cli_config, "report", "allocation", "--json")
        assert result.exit_code == 0, result.output
        assert '"total_value": "120"' in result.output

    @pytest.mark.parametrize("name", ["income", "activity", "gain-loss", "performance", "real-estate", "dashboard"])
    def test_reports_run(self, cli_config, seeded, name):
        assert _run(cli_config, "report", name).exit_code == 0

    def test_dashboard_json(self, cli_config, seeded):
        result = _run(cli_config, "report", "dashboard", "--json")
        assert result.exit_code == 0, result.output
        assert '"top_positions"' in result.output
        assert '"monthly_activity"' in result.output

    def test_bad_date_reported(self, cli_config, seeded):
        result = _run(cli_config, "report", "income", "--from", "yesterday")
        assert result.exit_code == 1
        assert "start_date" in result.output

    def test_bad_gain_loss_type(self, cli_config, seeded):
        assert _run(cli_config, "report", "gain-loss", "--type", "paper").exit_code == 2


class TestPropertyCommands:
    def test_amortization(self, cli_config):
        result = _run(cli_config, "property", "amortization", "200000", "6", "30")
        assert result.exit_code == 0, result.output
        assert "Monthly payment: 1,199.10" in result.output

    def test_missing_property(self, cli_config):
        result = _run(cli_config, "property", "financials", "nope")
        assert result.exit_code == 1
        assert "Property not found" in result.output


class TestConfigCommands:
    def test_show_includes_defaults(self, cli_config):
        result = _run(cli_config, "config", "show")
        assert result.exit_code == 0
        shown = yaml.safe_load(result.output)
        assert shown["ledger"]["oversell_policy"] == "reject"
        assert shown["accounts"][0]["id"] == "brk"

    def test_validate_ok(self, cli_config):
        result = _run(cli_config, "config", "validate")
        assert result.exit_code == 0
        assert "oversell:       reject" in result.output

    def test_validate_reports_field(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("ledger:\n  oversell_policy: sometimes\n")
        result = _run(str(bad), "config", "validate")
        assert result.exit_code == 1
        assert "ledger.oversell_policy" in result.output
