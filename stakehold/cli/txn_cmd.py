"""Transaction CLI commands: add, edit, delete, list."""

from __future__ import annotations

import click

_TYPES = [
    "BUY", "SELL", "CONTRIBUTION", "WITHDRAWAL",
    "DIVIDEND", "INCOME", "DISTRIBUTION", "EXPENSE",
]


@click.group("txn")
def txn_group() -> None:
    """Record and maintain transactions."""
    pass


@txn_group.command("add")
@click.argument("account_id")
@click.argument("transaction_type", type=click.Choice(_TYPES, case_sensitive=False))
@click.argument("transaction_date")
@click.argument("amount")
@click.option("--position", "position_id", default=None, help="Position ID")
@click.option("--shares", default=None, help="Shares (required for BUY/SELL)")
@click.option("--price", default=None, help="Price per share (derived from amount if omitted)")
@click.option("--fees", default="0", show_default=True)
@click.option("--description", default="")
@click.pass_context
def txn_add(
    ctx: click.Context,
    account_id: str,
    transaction_type: str,
    transaction_date: str,
    amount: str,
    position_id: str | None,
    shares: str | None,
    price: str | None,
    fees: str,
    description: str,
) -> None:
    """Record a transaction.

    TRANSACTION_DATE is YYYY-MM-DD; AMOUNT is the gross amount.
    """
    from stakehold.cli.common import domain_errors, open_db
    from stakehold.ledger.transactions import record_transaction

    with domain_errors(), open_db(ctx) as (config, db):
        txn = record_transaction(
            db,
            account_id,
            transaction_type.upper(),
            transaction_date,
            amount,
            position_id=position_id,
            shares=shares,
            price_per_share=price,
            fees=fees,
            description=description,
            user_id=ctx.obj["user_id"],
            oversell_policy=config.ledger.oversell_policy,
        )

    click.echo(f"Recorded {txn.transaction_type.value} {txn.id}")
    if txn.realized_gain_loss is not None:
        click.echo(f"  Realized gain/loss: {txn.realized_gain_loss:,.2f}")


@txn_group.command("edit")
@click.argument("transaction_id")
@click.option("--date", "transaction_date", default=None)
@click.option("--type", "transaction_type", type=click.Choice(_TYPES, case_sensitive=False), default=None)
@click.option("--amount", "total_amount", default=None)
@click.option("--shares", default=None)
@click.option("--price", "price_per_share", default=None)
@click.option("--fees", default=None)
@click.option("--position", "position_id", default=None)
@click.option("--description", default=None)
@click.option("--reconciled/--unreconciled", "is_reconciled", default=None)
@click.pass_context
def txn_edit(ctx: click.Context, transaction_id: str, **options: str | bool | None) -> None:
    """Edit fields of a transaction; affected positions are recomputed."""
    from stakehold.cli.common import domain_errors, open_db
    from stakehold.ledger.transactions import edit_transaction

    fields = {k: v for k, v in options.items() if v is not None}
    if "transaction_type" in fields:
        fields["transaction_type"] = str(fields["transaction_type"]).upper()
    if not fields:
        click.echo("Nothing to change.")
        return

    with domain_errors(), open_db(ctx) as (config, db):
        txn = edit_transaction(
            db,
            transaction_id,
            user_id=ctx.obj["user_id"],
            oversell_policy=config.ledger.oversell_policy,
            **fields,
        )
    click.echo(f"Updated {txn.id} ({', '.join(sorted(fields))})")


@txn_group.command("delete")
@click.argument("transaction_id")
@click.confirmation_option(prompt="Delete this transaction?")
@click.pass_context
def txn_delete(ctx: click.Context, transaction_id: str) -> None:
    """Delete a transaction; its position is recomputed."""
    from stakehold.cli.common import domain_errors, open_db
    from stakehold.ledger.transactions import delete_transaction

    with domain_errors(), open_db(ctx) as (config, db):
        delete_transaction(
            db,
            transaction_id,
            user_id=ctx.obj["user_id"],
            oversell_policy=config.ledger.oversell_policy,
        )
    click.echo(f"Deleted {transaction_id}")


@txn_group.command("list")
@click.option("--account", "account_id", default=None)
@click.option("--position", "position_id", default=None)
@click.option("--type", "types", multiple=True, type=click.Choice(_TYPES, case_sensitive=False))
@click.option("--from", "start_date", default=None, help="YYYY-MM-DD")
@click.option("--to", "end_date", default=None, help="YYYY-MM-DD")
@click.option("--limit", default=50, show_default=True)
@click.pass_context
def txn_list(
    ctx: click.Context,
    account_id: str | None,
    position_id: str | None,
    types: tuple[str, ...],
    start_date: str | None,
    end_date: str | None,
    limit: int,
) -> None:
    """List transactions, newest first."""
    from stakehold.cli.common import domain_errors, money, open_db
    from stakehold.ledger.transactions import list_transactions
    from stakehold.reports.common import parse_date_range

    with domain_errors(), open_db(ctx) as (_, db):
        start, end = parse_date_range(start_date, end_date)
        txns = list_transactions(
            db,
            user_id=ctx.obj["user_id"],
            account_id=account_id,
            position_id=position_id,
            types=[t.upper() for t in types] or None,
            start_date=start,
            end_date=end,
            newest_first=True,
        )

    if not txns:
        click.echo("No transactions.")
        return

    click.echo(f"{'Date':<12} {'Type':<13} {'Symbol':<8} {'Shares':>12} {'Amount':>14} {'Realized':>12}  ID")
    click.echo("-" * 110)
    for t in txns[:limit]:
        realized = money(t.realized_gain_loss) if t.realized_gain_loss is not None else ""
        shares = f"{t.shares:,.4f}" if t.shares is not None else ""
        click.echo(
            f"{t.transaction_date.isoformat():<12} {t.transaction_type.value:<13} "
            f"{(t.position_symbol or '')[:8]:<8} {shares:>12} "
            f"{money(t.total_amount):>14} {realized:>12}  {t.id}"
        )
    click.echo(f"\nShowing {min(limit, len(txns))} of {len(txns)} transactions")
