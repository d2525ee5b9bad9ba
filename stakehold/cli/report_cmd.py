"""Report CLI commands.

Every report accepts ``--json`` to print the full report object; without
it a compact table is shown.
"""

from __future__ import annotations

import click

_json_option = click.option("--json", "as_json", is_flag=True, help="Print the full report as JSON")
_account_option = click.option("--account", "account_id", default=None, help="Restrict to one account")
_from_option = click.option("--from", "start_date", default=None, help="YYYY-MM-DD")
_to_option = click.option("--to", "end_date", default=None, help="YYYY-MM-DD")


@click.group("report")
def report_group() -> None:
    """Portfolio reports."""
    pass


@report_group.command("allocation")
@_account_option
@click.option("--as-of", default=None, help="Rebuild holdings as of YYYY-MM-DD")
@_json_option
@click.pass_context
def report_allocation(ctx: click.Context, account_id: str | None, as_of: str | None, as_json: bool) -> None:
    """Allocation by category, account type and tax treatment."""
    from stakehold.cli.common import domain_errors, echo_json, money, open_db, percent
    from stakehold.reports.allocation import get_allocation_report

    with domain_errors(), open_db(ctx) as (_, db):
        report = get_allocation_report(db, ctx.obj["user_id"], account_id, as_of)

    if as_json:
        echo_json(report)
        return

    click.echo(f"Total value: {money(report.total_value)}")
    for title, items in (
        ("Category", report.by_category),
        ("Account type", report.by_account_type),
        ("Tax treatment", report.by_tax_treatment),
    ):
        click.echo(f"\n{title}")
        for item in items:
            click.echo(f"  {item.name:<20} {money(item.value):>14} {percent(item.percentage):>8}  ({item.count})")


@report_group.command("income")
@_account_option
@_from_option
@_to_option
@_json_option
@click.pass_context
def report_income(
    ctx: click.Context,
    account_id: str | None,
    start_date: str | None,
    end_date: str | None,
    as_json: bool,
) -> None:
    """Dividend and income analysis."""
    from stakehold.cli.common import domain_errors, echo_json, money, open_db, percent
    from stakehold.reports.income import get_income_report

    with domain_errors(), open_db(ctx) as (config, db):
        report = get_income_report(
            db, ctx.obj["user_id"], account_id, start_date, end_date,
            recent_limit=config.reports.recent_transactions_limit,
        )

    if as_json:
        echo_json(report)
        return

    s = report.summary
    click.echo(f"Total income: {money(s.total_income)} from {s.transaction_count} payments")
    click.echo(f"\n{'Symbol':<8} {'Name':<28} {'Income':>12} {'YoC':>8} {'Yield':>8}")
    for p in report.by_position:
        click.echo(
            f"{p.symbol[:8]:<8} {p.name[:27]:<28} {money(p.total_income):>12} "
            f"{percent(p.yield_on_cost):>8} {percent(p.current_yield):>8}"
        )
    click.echo("\nBy quarter")
    for q in report.by_quarter:
        click.echo(f"  {q.period:<10} {money(q.income):>12}  ({q.count})")


@report_group.command("activity")
@_account_option
@_from_option
@_to_option
@_json_option
@click.pass_context
def report_activity(
    ctx: click.Context,
    account_id: str | None,
    start_date: str | None,
    end_date: str | None,
    as_json: bool,
) -> None:
    """Transaction activity and money flows."""
    from stakehold.cli.common import domain_errors, echo_json, money, open_db
    from stakehold.reports.activity import get_activity_report

    with domain_errors(), open_db(ctx) as (config, db):
        report = get_activity_report(
            db, ctx.obj["user_id"], account_id, start_date, end_date,
            recent_limit=config.reports.recent_transactions_limit,
        )

    if as_json:
        echo_json(report)
        return

    s = report.summary
    click.echo(
        f"{s.total_transactions} transactions: inflows {money(s.total_inflows)}, "
        f"outflows {money(s.total_outflows)}, net {money(s.net_flow)}, fees {money(s.total_fees)}"
    )
    click.echo("\nBy type")
    for t in report.by_type:
        click.echo(f"  {t.type:<13} {t.count:>5} {money(t.total_amount):>14}")
    click.echo("\nBy month")
    for m in report.by_month:
        click.echo(f"  {m.period:<9} {money(m.inflows):>14} {money(m.outflows):>14} {money(m.net_flow):>14}")


@report_group.command("gain-loss")
@click.option(
    "--type", "kind",
    type=click.Choice(["realized", "unrealized", "all"]),
    default="all",
    show_default=True,
)
@_account_option
@_from_option
@_to_option
@_json_option
@click.pass_context
def report_gain_loss(
    ctx: click.Context,
    kind: str,
    account_id: str | None,
    start_date: str | None,
    end_date: str | None,
    as_json: bool,
) -> None:
    """Realized and unrealized gains and losses."""
    from stakehold.cli.common import domain_errors, echo_json, money, open_db, percent
    from stakehold.reports.gain_loss import get_gain_loss_report

    with domain_errors(), open_db(ctx) as (_, db):
        report = get_gain_loss_report(
            db, ctx.obj["user_id"], kind, account_id, start_date, end_date
        )

    if as_json:
        echo_json(report)
        return

    s = report.summary
    click.echo(
        f"Unrealized {money(s.total_unrealized_gain_loss)}, "
        f"realized {money(s.total_realized_gain_loss)}, total {money(s.total_gain_loss)}"
    )
    if report.unrealized:
        click.echo("\nUnrealized")
        for u in report.unrealized:
            click.echo(f"  {(u.symbol or u.name)[:10]:<10} {money(u.gain_loss):>14} {percent(u.gain_loss_percent):>9}")
    if report.realized:
        click.echo("\nRealized")
        for r in report.realized:
            click.echo(
                f"  {r.transaction_date.isoformat():<11} {r.symbol[:10]:<10} "
                f"{money(r.gain_loss):>14} {percent(r.gain_loss_percent):>9}"
            )


@report_group.command("holdings")
@_account_option
@click.option("--as-of", default=None, help="Rebuild holdings as of YYYY-MM-DD")
@_json_option
@click.pass_context
def report_holdings(ctx: click.Context, account_id: str | None, as_of: str | None, as_json: bool) -> None:
    """Per-position holdings snapshot."""
    from stakehold.cli.common import domain_errors, echo_json, money, open_db, percent
    from stakehold.reports.holdings import get_holdings_report

    with domain_errors(), open_db(ctx) as (_, db):
        report = get_holdings_report(db, ctx.obj["user_id"], account_id, as_of)

    if as_json:
        echo_json(report)
        return

    click.echo(f"{'Symbol':<8} {'Account':<18} {'Shares':>12} {'Value':>14} {'G/L':>12} {'Weight':>8}")
    click.echo("-" * 78)
    for h in report.holdings:
        click.echo(
            f"{(h.symbol or h.name)[:8]:<8} {h.account_name[:17]:<18} {h.shares:>12,.4f} "
            f"{money(h.current_value):>14} {money(h.gain_loss):>12} {percent(h.percent_of_portfolio):>8}"
        )
    s = report.summary
    click.echo(
        f"\n{s.total_holdings} holdings, value {money(s.total_value)}, "
        f"cost {money(s.total_cost_basis)}, G/L {money(s.total_gain_loss)} "
        f"({percent(s.total_gain_loss_percent)})"
    )


@report_group.command("performance")
@_account_option
@_from_option
@_to_option
@_json_option
@click.pass_context
def report_performance(
    ctx: click.Context,
    account_id: str | None,
    start_date: str | None,
    end_date: str | None,
    as_json: bool,
) -> None:
    """Time-weighted and total returns."""
    from stakehold.cli.common import domain_errors, echo_json, money, open_db, percent
    from stakehold.reports.performance import get_performance_report

    with domain_errors(), open_db(ctx) as (config, db):
        report = get_performance_report(
            db, ctx.obj["user_id"], account_id, start_date, end_date,
            periods=config.reports.performance_periods,
        )

    if as_json:
        echo_json(report)
        return

    click.echo(f"{'Symbol':<10} {'Value':>14} {'Total return':>14} {'Return %':>9} {'TWR':>9}")
    for p in report.positions:
        click.echo(
            f"{(p.symbol or p.name)[:10]:<10} {money(p.current_value):>14} "
            f"{money(p.total_return):>14} {percent(p.total_return_percent):>9} "
            f"{percent(p.time_weighted_return):>9}"
        )
    s = report.summary
    click.echo(f"\nTotal return {money(s.total_return)} ({percent(s.total_return_percent)})")
    for period in report.by_period:
        click.echo(f"  {period.period:<4} {percent(period.time_weighted_return):>9}")


@report_group.command("real-estate")
@_json_option
@click.pass_context
def report_real_estate(ctx: click.Context, as_json: bool) -> None:
    """Summary across all of the user's properties."""
    from stakehold.cli.common import domain_errors, echo_json, money, open_db, percent
    from stakehold.reports.real_estate import get_real_estate_summary

    with domain_errors(), open_db(ctx) as (config, db):
        summary = get_real_estate_summary(db, ctx.obj["user_id"], config.property_rules)

    if as_json:
        echo_json(summary)
        return

    click.echo(
        f"{summary.total_properties} properties, value {money(summary.total_value)}, "
        f"equity {money(summary.total_equity)}, debt {money(summary.total_debt)}"
    )
    click.echo(
        f"Avg cap rate {percent(summary.average_cap_rate)}, "
        f"avg cash-on-cash {percent(summary.average_cash_on_cash_return)}, "
        f"occupancy {percent(summary.occupancy_rate)}"
    )
    for row in summary.properties:
        click.echo(
            f"  {row.address[:30]:<30} {money(row.current_value):>14} "
            f"{money(row.monthly_cash_flow):>10}/mo {percent(row.cap_rate):>8}"
        )


@report_group.command("dashboard")
@click.option("--top", "top_n", default=5, show_default=True, help="Length of each ranking")
@_json_option
@click.pass_context
def report_dashboard(ctx: click.Context, top_n: int, as_json: bool) -> None:
    """Portfolio overview with rankings, including property equity."""
    from stakehold.cli.common import domain_errors, echo_json, money, open_db, percent
    from stakehold.reports.dashboard import get_dashboard

    with domain_errors(), open_db(ctx) as (_, db):
        dashboard = get_dashboard(db, ctx.obj["user_id"], top_n=top_n)

    if as_json:
        echo_json(dashboard)
        return

    s = dashboard.summary
    click.echo(f"Net worth:     {money(s.total_value)} (real estate equity {money(s.real_estate_equity)})")
    click.echo(f"Unrealized:    {money(s.total_gain_loss)} ({percent(s.total_gain_loss_percent)})")
    click.echo(f"Holdings:      {s.position_count} positions, {s.account_count} accounts, {s.property_count} properties")

    click.echo("\nBy account:")
    for a in dashboard.by_account:
        click.echo(f"  {a.account_name[:24]:<24} {money(a.value):>14} {percent(a.percentage):>8}")

    for title, rows in (
        ("Largest positions", dashboard.top_positions),
        ("Top performers", dashboard.top_performers),
        ("Bottom performers", dashboard.bottom_performers),
    ):
        click.echo(f"\n{title}:")
        for r in rows:
            click.echo(
                f"  {(r.symbol or r.name)[:10]:<10} {money(r.current_value):>14} "
                f"{percent(r.gain_loss_percent):>9}"
            )
