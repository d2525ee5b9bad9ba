"""Top-level CLI entry point for stakehold."""

from __future__ import annotations

import logging

import click

from stakehold import __version__


@click.group()
@click.version_option(version=__version__, prog_name="stakehold")
@click.option(
    "--config",
    type=click.Path(),
    default=None,
    envvar="STAKEHOLD_CONFIG",
    help="Path to config.yaml",
)
@click.option(
    "--user",
    "user_id",
    default="default",
    envvar="STAKEHOLD_USER",
    show_default=True,
    help="User whose accounts and properties to act on",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, config: str | None, user_id: str, verbose: bool) -> None:
    """stakehold -- position ledger and portfolio analytics."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["user_id"] = user_id

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


# Register sub-commands
from stakehold.cli.account_cmd import account_group  # noqa: E402
from stakehold.cli.config_cmd import config_group  # noqa: E402
from stakehold.cli.import_cmd import import_group  # noqa: E402
from stakehold.cli.position_cmd import position_group  # noqa: E402
from stakehold.cli.property_cmd import property_group  # noqa: E402
from stakehold.cli.report_cmd import report_group  # noqa: E402
from stakehold.cli.txn_cmd import txn_group  # noqa: E402

cli.add_command(account_group, "account")
cli.add_command(config_group, "config")
cli.add_command(import_group, "import")
cli.add_command(position_group, "position")
cli.add_command(property_group, "property")
cli.add_command(report_group, "report")
cli.add_command(txn_group, "txn")


@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Create or migrate the ledger store and seed the configured accounts."""
    from stakehold.cli.common import open_db
    from stakehold.storage.queries import upsert_account

    with open_db(ctx) as (config, db):
        click.echo(f"Ledger store: {db.path} (schema v{db.schema_version()})")
        for account in config.accounts:
            upsert_account(db, **account.model_dump())
        if config.accounts:
            click.echo(f"Seeded {len(config.accounts)} accounts")

    click.echo("Ready. Open a position with `stakehold position add ACCOUNT_ID NAME --symbol SYM`,")
    click.echo("then record trades with `stakehold txn add ACCOUNT_ID BUY DATE AMOUNT --position ID --shares N`.")
