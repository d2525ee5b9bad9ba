"""Property analytics CLI commands: financials, projection, amortization."""

from __future__ import annotations

import click


@click.group("property")
def property_group() -> None:
    """Real-estate cash-flow analytics."""
    pass


@property_group.command("financials")
@click.argument("property_id")
@click.option("--json", "as_json", is_flag=True, help="Print all metrics as JSON")
@click.pass_context
def property_financials(ctx: click.Context, property_id: str, as_json: bool) -> None:
    """Income, NOI, return and loan metrics for a property."""
    from stakehold.analytics.property import get_property_financials
    from stakehold.cli.common import domain_errors, echo_json, money, open_db, percent

    with domain_errors(), open_db(ctx) as (config, db):
        f = get_property_financials(
            db, property_id, user_id=ctx.obj["user_id"], rules=config.property_rules
        )

    if as_json:
        echo_json(f)
        return

    def rule(passed: bool) -> str:
        return "pass" if passed else "fail"

    click.echo(f"Property {property_id}")
    click.echo(f"  Gross monthly income:  {money(f.gross_monthly_income)}")
    click.echo(f"  Vacancy loss:          {money(f.vacancy_loss)}")
    click.echo(f"  Operating expenses:    {money(f.monthly_operating_expenses)}")
    click.echo(f"  NOI (annual):          {money(f.annual_noi)}")
    click.echo(f"  Cash flow (monthly):   {money(f.monthly_cash_flow)}")
    click.echo(f"  Cap rate:              {percent(f.cap_rate)}")
    click.echo(f"  Cash-on-cash:          {percent(f.cash_on_cash_return)}")
    click.echo(f"  Return on equity:      {percent(f.return_on_equity)}")
    click.echo(f"  Loan-to-value:         {percent(f.loan_to_value)}")
    click.echo(f"  DSCR:                  {float(f.debt_service_coverage_ratio):.2f}")
    click.echo(f"  1% rule:               {rule(f.one_percent_rule)} (needs {money(f.one_percent_rule_value)})")
    click.echo(f"  2% rule:               {rule(f.two_percent_rule)} (needs {money(f.two_percent_rule_value)})")
    click.echo(f"  1.35 rule:             {rule(f.rule_135)} ({money(f.rule_135_value)})")


@property_group.command("projection")
@click.argument("property_id")
@click.option("--months", default=12, show_default=True)
@click.pass_context
def property_projection(ctx: click.Context, property_id: str, months: int) -> None:
    """Month-by-month cash flow projection at current figures."""
    from stakehold.analytics.property import get_property_financials, project_cash_flow
    from stakehold.cli.common import domain_errors, money, open_db

    with domain_errors(), open_db(ctx) as (config, db):
        f = get_property_financials(
            db, property_id, user_id=ctx.obj["user_id"], rules=config.property_rules
        )

    click.echo(f"{'Month':<8} {'Income':>12} {'Expenses':>12} {'Cash flow':>12}")
    for row in project_cash_flow(f, months):
        click.echo(f"{row.month:<8} {money(row.income):>12} {money(row.expenses):>12} {money(row.cash_flow):>12}")


@property_group.command("amortization")
@click.argument("principal")
@click.argument("rate")
@click.argument("years", type=int)
@click.option("--full", is_flag=True, help="Print every month instead of yearly totals")
def property_amortization(principal: str, rate: str, years: int, full: bool) -> None:
    """Payment and amortization schedule for a fixed-rate loan.

    RATE is the annual interest rate in percent (6.5 for 6.5%).
    """
    from decimal import Decimal, InvalidOperation

    from stakehold.analytics.property import amortization_schedule, calculate_monthly_payment
    from stakehold.cli.common import money

    try:
        principal_d, rate_d = Decimal(principal), Decimal(rate)
    except InvalidOperation:
        click.echo("PRINCIPAL and RATE must be numbers.", err=True)
        raise SystemExit(1) from None

    payment = calculate_monthly_payment(principal_d, rate_d, years)
    click.echo(f"Monthly payment: {money(payment)}")

    schedule = amortization_schedule(principal_d, rate_d, years)
    if full:
        click.echo(f"\n{'Month':>5} {'Interest':>12} {'Principal':>12} {'Balance':>14}")
        for row in schedule:
            click.echo(f"{row.period:>5} {money(row.interest):>12} {money(row.principal):>12} {money(row.balance):>14}")
        return

    click.echo(f"\n{'Year':>4} {'Interest':>12} {'Principal':>12} {'Balance':>14}")
    for start in range(0, len(schedule), 12):
        year = schedule[start:start + 12]
        interest = sum(r.interest for r in year)
        paid = sum(r.principal for r in year)
        click.echo(f"{start // 12 + 1:>4} {money(interest):>12} {money(paid):>12} {money(year[-1].balance):>14}")
