"""Position CLI commands: add, show, list, price, recompute, refresh."""

from __future__ import annotations

import click


@click.group("position")
def position_group() -> None:
    """Inspect and value positions."""
    pass


@position_group.command("add")
@click.argument("account_id")
@click.argument("name")
@click.option("--symbol", default=None)
@click.option("--category", default="EQUITY", show_default=True)
@click.option("--price", default="0", show_default=True, help="Current price")
@click.pass_context
def position_add(
    ctx: click.Context,
    account_id: str,
    name: str,
    symbol: str | None,
    category: str,
    price: str,
) -> None:
    """Open an empty position in an account."""
    from stakehold.cli.common import domain_errors, open_db
    from stakehold.ledger.positions import create_position

    with domain_errors(), open_db(ctx) as (_, db):
        position = create_position(
            db, account_id, name,
            symbol=symbol,
            category=category,
            current_price=price,
            user_id=ctx.obj["user_id"],
        )
    click.echo(f"Opened position {position.id} ({position.label})")


@position_group.command("show")
@click.argument("position_id")
@click.pass_context
def position_show(ctx: click.Context, position_id: str) -> None:
    """Show a position's derived state."""
    from stakehold.analytics.returns import get_time_weighted_return
    from stakehold.cli.common import domain_errors, money, open_db, percent
    from stakehold.ledger.positions import get_position

    with domain_errors(), open_db(ctx) as (_, db):
        p = get_position(db, position_id, user_id=ctx.obj["user_id"])
        twr = get_time_weighted_return(db, position_id)

    click.echo(f"Position: {p.label} ({p.id})")
    click.echo(f"  Name:             {p.name}")
    click.echo(f"  Account:          {p.account_name} ({p.account_id})")
    click.echo(f"  Category:         {p.category}")
    click.echo(f"  Shares:           {p.shares:,.4f}")
    click.echo(f"  Price:            {money(p.current_price) if p.current_price is not None else 'n/a'}")
    click.echo(f"  Value:            {money(p.current_value)}")
    click.echo(f"  Cost basis:       {money(p.cost_basis_total)} ({money(p.cost_basis_per_share)}/share)")
    click.echo(f"  Unrealized G/L:   {money(p.unrealized_gain_loss)} ({percent(p.gain_loss_percent)})")
    click.echo(f"  Realized G/L:     {money(p.realized_gain_loss)}")
    click.echo(f"  TWR:              {percent(twr)}")
    click.echo(f"  Last updated:     {p.last_updated}")


@position_group.command("list")
@click.option("--account", "account_id", default=None)
@click.pass_context
def position_list(ctx: click.Context, account_id: str | None) -> None:
    """List positions."""
    from stakehold.cli.common import money, open_db
    from stakehold.ledger.positions import list_positions

    with open_db(ctx) as (_, db):
        positions = list_positions(db, user_id=ctx.obj["user_id"], account_id=account_id)

    if not positions:
        click.echo("No positions.")
        return

    click.echo(f"{'Symbol':<8} {'Name':<28} {'Shares':>12} {'Value':>14} {'Cost':>14} {'G/L':>12}  ID")
    click.echo("-" * 120)
    for p in positions:
        click.echo(
            f"{(p.symbol or '')[:8]:<8} {p.name[:27]:<28} {p.shares:>12,.4f} "
            f"{money(p.current_value):>14} {money(p.cost_basis_total):>14} "
            f"{money(p.unrealized_gain_loss):>12}  {p.id}"
        )


@position_group.command("price")
@click.argument("position_id")
@click.argument("price")
@click.pass_context
def position_price(ctx: click.Context, position_id: str, price: str) -> None:
    """Set a position's current price."""
    from stakehold.cli.common import domain_errors, money, open_db
    from stakehold.ledger.positions import set_price

    with domain_errors(), open_db(ctx) as (_, db):
        p = set_price(db, position_id, price, user_id=ctx.obj["user_id"])
    click.echo(f"{p.label}: price {money(p.current_price)}, value {money(p.current_value)}")


@position_group.command("recompute")
@click.argument("position_id")
@click.pass_context
def position_recompute(ctx: click.Context, position_id: str) -> None:
    """Re-derive a position from its transaction history."""
    from stakehold.cli.common import domain_errors, money, open_db
    from stakehold.ledger.positions import recompute

    with domain_errors(), open_db(ctx) as (config, db):
        p = recompute(
            db, position_id,
            user_id=ctx.obj["user_id"],
            oversell_policy=config.ledger.oversell_policy,
        )
    click.echo(f"{p.label}: {p.shares:,.4f} shares, cost basis {money(p.cost_basis_total)}")


@position_group.command("refresh")
@click.option("--account", "account_id", default=None)
@click.pass_context
def position_refresh(ctx: click.Context, account_id: str | None) -> None:
    """Fetch current prices from yfinance for positions with a symbol."""
    from stakehold.cli.common import money, open_db
    from stakehold.data.prices import refresh_prices

    with open_db(ctx) as (_, db):
        result = refresh_prices(db, user_id=ctx.obj["user_id"], account_id=account_id)

    for symbol, price in sorted(result.updated.items()):
        click.echo(f"  {symbol:<8} {money(price):>12}")
    click.echo(f"Updated {len(result.updated)} symbols")
    for err in result.errors:
        click.echo(f"  Failed: {err}", err=True)
