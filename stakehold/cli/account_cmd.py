"""Account CLI commands: add, list."""

from __future__ import annotations

import click


@click.group("account")
def account_group() -> None:
    """Manage accounts."""
    pass


@account_group.command("add")
@click.argument("account_id")
@click.argument("name")
@click.option("--type", "account_type", default="Brokerage", show_default=True)
@click.option("--institution", default="")
@click.option(
    "--tax",
    "tax_treatment",
    type=click.Choice(["TAXABLE", "TAX_DEFERRED", "TAX_EXEMPT"], case_sensitive=False),
    default="TAXABLE",
    show_default=True,
)
@click.pass_context
def account_add(
    ctx: click.Context,
    account_id: str,
    name: str,
    account_type: str,
    institution: str,
    tax_treatment: str,
) -> None:
    """Create or update an account for the current user."""
    from stakehold.cli.common import open_db
    from stakehold.storage.queries import upsert_account

    with open_db(ctx) as (_, db):
        upsert_account(
            db,
            id=account_id,
            name=name,
            user_id=ctx.obj["user_id"],
            account_type=account_type,
            institution=institution,
            tax_treatment=tax_treatment.upper(),
        )
    click.echo(f"Saved account {account_id} ({name}).")


@account_group.command("list")
@click.pass_context
def account_list(ctx: click.Context) -> None:
    """List the current user's active accounts."""
    from stakehold.cli.common import open_db
    from stakehold.storage.queries import list_accounts

    with open_db(ctx) as (_, db):
        accounts = list_accounts(db, user_id=ctx.obj["user_id"])

    if not accounts:
        click.echo("No accounts.")
        return

    click.echo(f"{'ID':<16} {'Name':<30} {'Type':<18} {'Tax':<14} {'Institution'}")
    click.echo("-" * 96)
    for a in accounts:
        click.echo(
            f"{a['id']:<16} {a['name'][:29]:<30} {a['account_type'][:17]:<18} "
            f"{a['tax_treatment']:<14} {a['institution']}"
        )
