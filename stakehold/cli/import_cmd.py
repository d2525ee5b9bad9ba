"""CLI command: stakehold import -- bring broker exports into the ledger."""

from __future__ import annotations

import click


@click.group("import")
def import_group() -> None:
    """Import data into the stakehold database."""
    pass


@import_group.command("transactions")
@click.argument("account_id")
@click.argument("path", type=click.Path(exists=True))
@click.option(
    "--no-create",
    is_flag=True,
    help="Skip trades for symbols without an existing position instead of opening one",
)
@click.option("--category", default="EQUITY", show_default=True, help="Category for new positions")
@click.pass_context
def import_transactions(
    ctx: click.Context,
    account_id: str,
    path: str,
    no_create: bool,
    category: str,
) -> None:
    """Import a CSV of transactions into an account.

    PATH: CSV with at least Date and Type columns.
    """
    from stakehold.cli.common import open_db
    from stakehold.data.transaction_import import import_transactions_csv

    with open_db(ctx) as (config, db):
        result = import_transactions_csv(
            db,
            account_id,
            path,
            create_positions=not no_create,
            category=category.upper(),
            user_id=ctx.obj["user_id"],
            oversell_policy=config.ledger.oversell_policy,
        )

    click.echo(f"Imported {result.transactions_imported} transactions from {path}")
    if result.positions_created:
        click.echo(f"  Opened {result.positions_created} new positions")
    if result.errors:
        click.echo(f"  Skipped {result.rows_skipped} rows:")
        for err in result.errors:
            click.echo(f"    {err}")
