"""Domain types for accounts, positions, transactions and properties.

Rows come out of SQLite as ``sqlite3.Row``/dicts with monetary values stored
as TEXT; the ``from_row`` constructors convert them to ``Decimal`` and
``date``. A value that cannot be parsed raises :class:`InvalidStateError`
rather than being defaulted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping

from stakehold.errors import InvalidStateError

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class TransactionType(str, Enum):
    """Kinds of events in the transaction log."""

    BUY = "BUY"
    SELL = "SELL"
    CONTRIBUTION = "CONTRIBUTION"
    WITHDRAWAL = "WITHDRAWAL"
    DIVIDEND = "DIVIDEND"
    INCOME = "INCOME"
    DISTRIBUTION = "DISTRIBUTION"
    EXPENSE = "EXPENSE"


class TaxTreatment(str, Enum):
    TAXABLE = "TAXABLE"
    TAX_DEFERRED = "TAX_DEFERRED"
    TAX_EXEMPT = "TAX_EXEMPT"


class IncomeFrequency(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    ANNUALLY = "ANNUALLY"
    ONE_TIME = "ONE_TIME"


# Transactions that move shares and cost basis.
TRADE_TYPES = frozenset({TransactionType.BUY, TransactionType.SELL})

INCOME_TYPES = frozenset({
    TransactionType.DIVIDEND,
    TransactionType.INCOME,
    TransactionType.DISTRIBUTION,
})

# Activity classification: money moving into / out of holdings.
INFLOW_TYPES = frozenset({
    TransactionType.BUY,
    TransactionType.CONTRIBUTION,
    TransactionType.DIVIDEND,
    TransactionType.INCOME,
    TransactionType.DISTRIBUTION,
})
OUTFLOW_TYPES = frozenset({
    TransactionType.SELL,
    TransactionType.WITHDRAWAL,
    TransactionType.EXPENSE,
})


# ---------------------------------------------------------------------------
# Conversion helpers
# ---------------------------------------------------------------------------

def to_decimal(value: Any, field_name: str = "value") -> Decimal:
    """Convert a stored value to Decimal. ``None`` and ``""`` become zero.

    NaN and infinities are corrupt state: the ledger never writes them.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise InvalidStateError(f"Corrupt decimal in {field_name}: {value!r}") from e
    if not result.is_finite():
        raise InvalidStateError(f"Non-finite decimal in {field_name}: {value!r}")
    return result


def to_optional_decimal(value: Any, field_name: str = "value") -> Decimal | None:
    if value is None or value == "":
        return None
    return to_decimal(value, field_name)


def to_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def decimal_str(value: Decimal | None) -> str | None:
    """Storage form of a Decimal (TEXT column)."""
    return None if value is None else str(value)


# ---------------------------------------------------------------------------
# Ledger entities
# ---------------------------------------------------------------------------

@dataclass
class Account:
    id: str
    user_id: str
    name: str
    account_type: str = "Brokerage"
    institution: str = ""
    tax_treatment: str = TaxTreatment.TAXABLE.value
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Account":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            account_type=row["account_type"],
            institution=row["institution"] or "",
            tax_treatment=row["tax_treatment"],
            is_active=bool(row["is_active"]),
        )


@dataclass
class Position:
    """Derived state of one holding. Only the ledger writes these fields."""

    id: str
    account_id: str
    name: str
    symbol: str | None = None
    category: str = "OTHER"
    shares: Decimal = ZERO
    cost_basis_total: Decimal = ZERO
    cost_basis_per_share: Decimal = ZERO
    current_price: Decimal | None = None
    current_value: Decimal = ZERO
    unrealized_gain_loss: Decimal = ZERO
    realized_gain_loss: Decimal = ZERO
    last_updated: str = ""
    # Joined from the owning account
    user_id: str = ""
    account_name: str = ""
    account_type: str = ""
    tax_treatment: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Position":
        keys = row.keys()
        return cls(
            id=row["id"],
            account_id=row["account_id"],
            name=row["name"],
            symbol=row["symbol"],
            category=row["category"],
            shares=to_decimal(row["shares"], "shares"),
            cost_basis_total=to_decimal(row["cost_basis_total"], "cost_basis_total"),
            cost_basis_per_share=to_decimal(row["cost_basis_per_share"], "cost_basis_per_share"),
            current_price=to_optional_decimal(row["current_price"], "current_price"),
            current_value=to_decimal(row["current_value"], "current_value"),
            unrealized_gain_loss=to_decimal(row["unrealized_gain_loss"], "unrealized_gain_loss"),
            realized_gain_loss=to_decimal(row["realized_gain_loss"], "realized_gain_loss"),
            last_updated=row["last_updated"] or "",
            user_id=row["user_id"] if "user_id" in keys else "",
            account_name=row["account_name"] if "account_name" in keys else "",
            account_type=row["account_type"] if "account_type" in keys else "",
            tax_treatment=row["tax_treatment"] if "tax_treatment" in keys else "",
        )

    @property
    def gain_loss_percent(self) -> Decimal:
        if self.cost_basis_total > 0:
            return self.unrealized_gain_loss / self.cost_basis_total * HUNDRED
        return ZERO

    @property
    def label(self) -> str:
        return self.symbol or self.name


@dataclass
class Transaction:
    id: str
    account_id: str
    transaction_type: TransactionType
    transaction_date: date
    total_amount: Decimal
    position_id: str | None = None
    shares: Decimal | None = None
    price_per_share: Decimal | None = None
    fees: Decimal = ZERO
    realized_gain_loss: Decimal | None = None
    cost_basis: Decimal | None = None
    settlement_date: date | None = None
    description: str = ""
    is_reconciled: bool = False
    created_at: str = ""
    seq: int = 0
    """Insertion order (SQLite rowid); breaks same-date ties."""
    # Joined for reporting
    account_name: str = ""
    position_symbol: str | None = None
    position_name: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Transaction":
        keys = row.keys()
        return cls(
            id=row["id"],
            account_id=row["account_id"],
            position_id=row["position_id"],
            transaction_type=TransactionType(row["transaction_type"]),
            transaction_date=to_date(row["transaction_date"]),
            settlement_date=to_date(row["settlement_date"]),
            shares=to_optional_decimal(row["shares"], "shares"),
            price_per_share=to_optional_decimal(row["price_per_share"], "price_per_share"),
            total_amount=to_decimal(row["total_amount"], "total_amount"),
            fees=to_decimal(row["fees"], "fees"),
            realized_gain_loss=to_optional_decimal(row["realized_gain_loss"], "realized_gain_loss"),
            cost_basis=to_optional_decimal(row["cost_basis"], "cost_basis"),
            description=row["description"] or "",
            is_reconciled=bool(row["is_reconciled"]),
            created_at=row["created_at"] or "",
            seq=row["seq"] if "seq" in keys else 0,
            account_name=row["account_name"] if "account_name" in keys else "",
            position_symbol=row["position_symbol"] if "position_symbol" in keys else None,
            position_name=row["position_name"] if "position_name" in keys else None,
        )


# ---------------------------------------------------------------------------
# Real-asset entities
# ---------------------------------------------------------------------------

@dataclass
class Property:
    id: str
    user_id: str
    address: str
    city: str = ""
    state: str = ""
    property_type: str = "SINGLE_FAMILY"
    account_id: str | None = None
    purchase_price: Decimal = ZERO
    current_value: Decimal = ZERO
    loan_balance: Decimal = ZERO
    down_payment: Decimal | None = None
    refurbish_costs: Decimal = ZERO
    furnish_costs: Decimal = ZERO
    acquisition_costs: Decimal = ZERO
    monthly_mortgage_payment: Decimal = ZERO
    vacancy_rate_percent: Decimal = ZERO
    interest_rate: Decimal = ZERO
    loan_term_years: int = 30

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Property":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            account_id=row["account_id"],
            address=row["address"],
            city=row["city"] or "",
            state=row["state"] or "",
            property_type=row["property_type"],
            purchase_price=to_decimal(row["purchase_price"], "purchase_price"),
            current_value=to_decimal(row["current_value"], "current_value"),
            loan_balance=to_decimal(row["loan_balance"], "loan_balance"),
            down_payment=to_optional_decimal(row["down_payment"], "down_payment"),
            refurbish_costs=to_decimal(row["refurbish_costs"], "refurbish_costs"),
            furnish_costs=to_decimal(row["furnish_costs"], "furnish_costs"),
            acquisition_costs=to_decimal(row["acquisition_costs"], "acquisition_costs"),
            monthly_mortgage_payment=to_decimal(
                row["monthly_mortgage_payment"], "monthly_mortgage_payment"
            ),
            vacancy_rate_percent=to_decimal(row["vacancy_rate_percent"], "vacancy_rate_percent"),
            interest_rate=to_decimal(row["interest_rate"], "interest_rate"),
            loan_term_years=int(row["loan_term_years"] or 0),
        )

    @property
    def equity(self) -> Decimal:
        return self.current_value - self.loan_balance


@dataclass
class Lease:
    id: str
    property_id: str
    monthly_rent: Decimal
    tenant_name: str = ""
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Lease":
        return cls(
            id=row["id"],
            property_id=row["property_id"],
            tenant_name=row["tenant_name"] or "",
            monthly_rent=to_decimal(row["monthly_rent"], "monthly_rent"),
            start_date=to_date(row["start_date"]),
            end_date=to_date(row["end_date"]),
            is_active=bool(row["is_active"]),
        )


@dataclass
class AdditionalIncome:
    id: str
    property_id: str
    amount: Decimal
    frequency: IncomeFrequency = IncomeFrequency.MONTHLY
    income_type: str = "OTHER"
    is_active: bool = True

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "AdditionalIncome":
        return cls(
            id=row["id"],
            property_id=row["property_id"],
            income_type=row["income_type"],
            amount=to_decimal(row["amount"], "amount"),
            frequency=IncomeFrequency(row["frequency"]),
            is_active=bool(row["is_active"]),
        )


EXPENSE_LINE_ITEMS = (
    "property_management_fee",
    "accounting_legal_fees",
    "repairs_maintenance",
    "pest_control",
    "real_estate_taxes",
    "property_insurance",
    "hoa_fees",
    "water_sewer",
    "gas_electricity",
    "garbage",
    "cable_phone_internet",
    "advertising",
)


@dataclass
class ExpenseTemplate:
    """Fixed monthly operating expenses for a property."""

    property_id: str
    items: dict[str, Decimal] = field(default_factory=dict)
    """line item name → monthly amount (missing items count as zero)."""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ExpenseTemplate":
        return cls(
            property_id=row["property_id"],
            items={name: to_decimal(row[name], name) for name in EXPENSE_LINE_ITEMS},
        )

    def get(self, name: str) -> Decimal:
        return self.items.get(name, ZERO)

    @property
    def monthly_total(self) -> Decimal:
        return sum((self.get(name) for name in EXPENSE_LINE_ITEMS), ZERO)
