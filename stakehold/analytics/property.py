"""Real-asset cash-flow metrics.

Everything here is derived read-only from a property, its active leases,
its active additional income and its monthly expense template. Zero
denominators produce 0 rather than an error: a property with no purchase
price or no mortgage is a valid state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable

from stakehold.analytics.periods import add_months, month_key
from stakehold.config.schema import PropertyRulesConfig
from stakehold.errors import NotFoundError
from stakehold.ledger.positions import check_owner
from stakehold.ledger.types import (
    EXPENSE_LINE_ITEMS,
    HUNDRED,
    ZERO,
    AdditionalIncome,
    ExpenseTemplate,
    IncomeFrequency,
    Lease,
    Property,
)
from stakehold.storage.queries import (
    get_expense_template_row,
    get_property_row,
    list_additional_income_rows,
    list_lease_rows,
)

logger = logging.getLogger(__name__)

TWELVE = Decimal("12")

# Divisor that turns an amount at each frequency into a monthly amount;
# None means the amount is not recurring.
_MONTHLY_DIVISOR = {
    IncomeFrequency.MONTHLY: Decimal("1"),
    IncomeFrequency.QUARTERLY: Decimal("3"),
    IncomeFrequency.ANNUALLY: TWELVE,
    IncomeFrequency.ONE_TIME: None,
}

EXPENSE_GROUPS = {
    "management": ("property_management_fee", "accounting_legal_fees"),
    "maintenance": ("repairs_maintenance", "pest_control"),
    "taxes_insurance": ("real_estate_taxes", "property_insurance", "hoa_fees"),
    "utilities": ("water_sewer", "gas_electricity", "garbage", "cable_phone_internet"),
    "other": ("advertising",),
}


# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------

@dataclass
class PropertyFinancials:
    """Full metric set for one property. Percentages are 0-100."""

    property_id: str = ""

    # Income
    monthly_rental_income: Decimal = ZERO
    other_monthly_income: Decimal = ZERO
    gross_monthly_income: Decimal = ZERO
    vacancy_loss: Decimal = ZERO
    effective_monthly_income: Decimal = ZERO
    annual_rental_income: Decimal = ZERO
    annual_other_income: Decimal = ZERO
    gross_annual_income: Decimal = ZERO

    # Expenses
    monthly_operating_expenses: Decimal = ZERO
    annual_operating_expenses: Decimal = ZERO

    # Net operating income
    monthly_noi: Decimal = ZERO
    annual_noi: Decimal = ZERO

    # Cash flow after debt service
    monthly_mortgage_payment: Decimal = ZERO
    monthly_cash_flow: Decimal = ZERO
    annual_cash_flow: Decimal = ZERO

    # Investment
    total_investment: Decimal = ZERO
    equity: Decimal = ZERO
    cap_rate: Decimal = ZERO
    cash_on_cash_return: Decimal = ZERO
    return_on_equity: Decimal = ZERO

    # Loan
    loan_to_value: Decimal = ZERO
    debt_service_coverage_ratio: Decimal = ZERO

    # Rules of thumb
    one_percent_rule: bool = False
    one_percent_rule_value: Decimal = ZERO
    two_percent_rule: bool = False
    two_percent_rule_value: Decimal = ZERO
    rule_135: bool = False
    rule_135_value: Decimal = ZERO


@dataclass
class AmortizationRow:
    period: int
    payment: Decimal
    interest: Decimal
    principal: Decimal
    balance: Decimal


@dataclass
class ExpenseBreakdown:
    management: Decimal = ZERO
    maintenance: Decimal = ZERO
    taxes_insurance: Decimal = ZERO
    utilities: Decimal = ZERO
    other: Decimal = ZERO
    total: Decimal = ZERO
    details: dict[str, Decimal] = field(default_factory=dict)


@dataclass
class IncomeBreakdown:
    rental_income: Decimal = ZERO
    additional_income: dict[str, Decimal] = field(default_factory=dict)
    total_additional_income: Decimal = ZERO
    total_monthly_income: Decimal = ZERO


@dataclass
class CashFlowProjection:
    month: str
    income: Decimal
    expenses: Decimal
    cash_flow: Decimal


@dataclass
class PropertyBundle:
    """A property with the records its metrics are derived from."""

    property: Property
    leases: list[Lease] = field(default_factory=list)
    incomes: list[AdditionalIncome] = field(default_factory=list)
    template: ExpenseTemplate | None = None


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------

def monthly_amount(income: AdditionalIncome) -> Decimal:
    divisor = _MONTHLY_DIVISOR[income.frequency]
    return income.amount / divisor if divisor is not None else ZERO


def monthly_rental_income(leases: Iterable[Lease]) -> Decimal:
    return sum((lease.monthly_rent for lease in leases if lease.is_active), ZERO)


def other_monthly_income(incomes: Iterable[AdditionalIncome]) -> Decimal:
    return sum((monthly_amount(i) for i in incomes if i.is_active), ZERO)


def cap_rate(annual_noi: Decimal, purchase_price: Decimal) -> Decimal:
    """Annual NOI over purchase price, as a percentage."""
    if purchase_price <= 0:
        return ZERO
    return annual_noi / purchase_price * HUNDRED


def total_investment(prop: Property) -> Decimal:
    """Cash put in: the down payment when recorded, else the all-in cost."""
    if prop.down_payment:
        return prop.down_payment
    return (
        prop.purchase_price
        + prop.refurbish_costs
        + prop.furnish_costs
        + prop.acquisition_costs
    )


def calculate_monthly_payment(
    principal: Decimal,
    annual_interest_rate: Decimal,
    term_years: int,
) -> Decimal:
    """Fixed-rate payment ``P*r*(1+r)^n / ((1+r)^n - 1)``.

    ``annual_interest_rate`` is a percentage (6.5 means 6.5%). A zero rate
    gives straight-line ``P / n``; a non-positive principal or term gives 0.
    """
    principal = Decimal(principal)
    if principal <= 0 or term_years <= 0:
        return ZERO

    rate = Decimal(annual_interest_rate) / TWELVE / HUNDRED
    n = int(term_years) * 12
    if rate == 0:
        return principal / n

    growth = (1 + rate) ** n
    return principal * rate * growth / (growth - 1)


def amortization_schedule(
    principal: Decimal,
    annual_interest_rate: Decimal,
    term_years: int,
) -> list[AmortizationRow]:
    """Month-by-month split of each payment into interest and principal.

    The final payment absorbs rounding so the balance ends at exactly 0.
    """
    payment = calculate_monthly_payment(principal, annual_interest_rate, term_years)
    if payment == 0:
        return []

    rate = Decimal(annual_interest_rate) / TWELVE / HUNDRED
    balance = Decimal(principal)
    n = int(term_years) * 12
    rows: list[AmortizationRow] = []

    for period in range(1, n + 1):
        interest = balance * rate
        paid = payment - interest
        if period == n:
            paid = balance
        balance -= paid
        rows.append(AmortizationRow(
            period=period,
            payment=interest + paid,
            interest=interest,
            principal=paid,
            balance=balance,
        ))

    return rows


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

def calculate_financials(
    prop: Property,
    leases: Iterable[Lease],
    incomes: Iterable[AdditionalIncome],
    template: ExpenseTemplate | None,
    rules: PropertyRulesConfig | None = None,
) -> PropertyFinancials:
    """Income, NOI, cash flow, return and loan metrics for one property.

    Inactive leases and income records are ignored. A missing expense
    template counts as zero operating expenses.
    """
    rules = rules or PropertyRulesConfig()

    rental = monthly_rental_income(leases)
    other = other_monthly_income(incomes)
    gross = rental + other
    vacancy_loss = gross * (prop.vacancy_rate_percent / HUNDRED)
    effective = gross - vacancy_loss

    operating = template.monthly_total if template is not None else ZERO
    monthly_noi = effective - operating
    annual_noi = monthly_noi * TWELVE

    mortgage = prop.monthly_mortgage_payment
    monthly_cash_flow = monthly_noi - mortgage
    annual_cash_flow = monthly_cash_flow * TWELVE

    invested = total_investment(prop)
    equity = prop.equity
    annual_debt_service = mortgage * TWELVE

    one_pct_value = prop.purchase_price * rules.one_percent
    two_pct_value = prop.purchase_price * rules.two_percent
    rule_135_value = rental * rules.rule_135_multiplier

    return PropertyFinancials(
        property_id=prop.id,
        monthly_rental_income=rental,
        other_monthly_income=other,
        gross_monthly_income=gross,
        vacancy_loss=vacancy_loss,
        effective_monthly_income=effective,
        annual_rental_income=rental * TWELVE,
        annual_other_income=other * TWELVE,
        gross_annual_income=gross * TWELVE,
        monthly_operating_expenses=operating,
        annual_operating_expenses=operating * TWELVE,
        monthly_noi=monthly_noi,
        annual_noi=annual_noi,
        monthly_mortgage_payment=mortgage,
        monthly_cash_flow=monthly_cash_flow,
        annual_cash_flow=annual_cash_flow,
        total_investment=invested,
        equity=equity,
        cap_rate=cap_rate(annual_noi, prop.purchase_price),
        cash_on_cash_return=annual_cash_flow / invested * HUNDRED if invested > 0 else ZERO,
        return_on_equity=annual_cash_flow / equity * HUNDRED if equity > 0 else ZERO,
        loan_to_value=(
            prop.loan_balance / prop.current_value * HUNDRED
            if prop.current_value > 0 else ZERO
        ),
        debt_service_coverage_ratio=(
            annual_noi / annual_debt_service if annual_debt_service > 0 else ZERO
        ),
        one_percent_rule=rental >= one_pct_value,
        one_percent_rule_value=one_pct_value,
        two_percent_rule=rental >= two_pct_value,
        two_percent_rule_value=two_pct_value,
        rule_135=rule_135_value >= mortgage,
        rule_135_value=rule_135_value,
    )


def expense_breakdown(template: ExpenseTemplate | None) -> ExpenseBreakdown:
    """Monthly expenses grouped into management, maintenance, taxes and
    insurance, utilities and other."""
    if template is None:
        return ExpenseBreakdown()

    groups = {
        name: sum((template.get(item) for item in items), ZERO)
        for name, items in EXPENSE_GROUPS.items()
    }
    return ExpenseBreakdown(
        **groups,
        total=sum(groups.values(), ZERO),
        details={item: template.get(item) for item in EXPENSE_LINE_ITEMS},
    )


def income_breakdown(
    leases: Iterable[Lease],
    incomes: Iterable[AdditionalIncome],
) -> IncomeBreakdown:
    """Monthly rental income plus additional income summed by type."""
    by_type: dict[str, Decimal] = {}
    for income in incomes:
        if not income.is_active:
            continue
        by_type[income.income_type] = by_type.get(income.income_type, ZERO) + monthly_amount(income)

    rental = monthly_rental_income(leases)
    additional = sum(by_type.values(), ZERO)
    return IncomeBreakdown(
        rental_income=rental,
        additional_income=dict(sorted(by_type.items())),
        total_additional_income=additional,
        total_monthly_income=rental + additional,
    )


def project_cash_flow(
    financials: PropertyFinancials,
    months: int = 12,
    start: date | None = None,
) -> list[CashFlowProjection]:
    """Flat month-by-month projection of current income and outgoings.

    Outgoings are operating expenses plus the mortgage payment.
    """
    start = start or date.today().replace(day=1)
    income = financials.effective_monthly_income
    expenses = financials.monthly_operating_expenses + financials.monthly_mortgage_payment
    return [
        CashFlowProjection(
            month=month_key(add_months(start, i)),
            income=income,
            expenses=expenses,
            cash_flow=income - expenses,
        )
        for i in range(max(months, 0))
    ]


# ---------------------------------------------------------------------------
# Store-backed entry points
# ---------------------------------------------------------------------------

def load_property_bundle(
    db: Any,
    property_id: str,
    *,
    user_id: str | None = None,
) -> PropertyBundle:
    """Read a property and everything its metrics depend on."""
    row = get_property_row(db, property_id)
    if row is None:
        raise NotFoundError("Property", property_id)
    prop = Property.from_row(row)
    check_owner("Property", property_id, prop.user_id, user_id)

    template_row = get_expense_template_row(db, property_id)
    return PropertyBundle(
        property=prop,
        leases=[Lease.from_row(r) for r in list_lease_rows(db, property_id)],
        incomes=[AdditionalIncome.from_row(r) for r in list_additional_income_rows(db, property_id)],
        template=ExpenseTemplate.from_row(template_row) if template_row else None,
    )


def get_property_financials(
    db: Any,
    property_id: str,
    *,
    user_id: str | None = None,
    rules: PropertyRulesConfig | None = None,
) -> PropertyFinancials:
    """Full metrics object for one property."""
    bundle = load_property_bundle(db, property_id, user_id=user_id)
    financials = calculate_financials(
        bundle.property, bundle.leases, bundle.incomes, bundle.template, rules
    )
    logger.debug(
        "Financials for %s: NOI=%s cap_rate=%s",
        bundle.property.address, financials.annual_noi, financials.cap_rate,
    )
    return financials
