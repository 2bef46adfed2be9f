"""
Core Finance Models for FinanceApp

These models define the schemas for every entity the finance store holds.
They are designed to:
1. Enforce type safety at runtime
2. Serialize to the same JSON shape for local storage, hosted rows and backups
3. Accept the camelCase keys found in exported backup files

DESIGN DECISION: Amounts are Decimal, never float. Aggregates are sums of
money and must not drift.
"""

from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# Sentinel id: "create this entity" rather than "update the one with this id".
NEW_ID = "new"

# Label used when a category reference points nowhere.
UNCATEGORIZED_LABEL = "Sin categoría"

# Neutral colour used for dangling category references.
FALLBACK_COLOR = "#6B7280"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money flow. Categories share the same two types."""
    INCOME = "income"
    EXPENSE = "expense"


class RecurringPeriod(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class BudgetPeriod(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"
    CASH = "cash"


class _FinanceModel(BaseModel):
    """Shared config: strip strings, allow both field names and aliases."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    def to_storage_dict(self) -> dict:
        """JSON-compatible dict using the external (aliased) key names."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# ENTITIES
# =============================================================================

class Transaction(_FinanceModel):
    """
    A single income or expense entry.

    No referential integrity: category_id and account_id may point to
    entities that no longer exist.
    """

    id: str = Field(default=NEW_ID, description="Transaction ID")
    type: TransactionType
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount in the profile currency"
    )
    category_id: str = Field(..., description="Category reference")
    description: str = Field(default="", max_length=500)
    date: date
    account_id: Optional[str] = Field(default=None, description="Account reference")

    # Recurrence metadata (informational only, nothing schedules it)
    recurring: bool = False
    recurring_period: Optional[RecurringPeriod] = Field(
        default=None,
        alias="recurringPeriod",
    )

    @model_validator(mode='after')
    def validate_recurrence(self) -> 'Transaction':
        """A recurring transaction needs a period; a one-off one has none."""
        if self.recurring and self.recurring_period is None:
            raise ValueError("Recurring transactions need a recurring period")
        if not self.recurring:
            self.recurring_period = None
        return self

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE


class Category(_FinanceModel):
    """Flat category (no parent/child hierarchy)."""

    id: str = Field(default=NEW_ID)
    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType
    color: str = Field(default=FALLBACK_COLOR, pattern=r"^#[0-9A-Fa-f]{6}$")
    icon: str = Field(default="Tag", max_length=50)


class Budget(_FinanceModel):
    """
    Spending cap for one category.

    `spent` is kept only because older rows and backups carry it.
    The authoritative value is always recomputed from transactions.
    """

    id: str = Field(default=NEW_ID)
    category_id: str
    amount: Decimal = Field(..., ge=0, description="Budget limit")
    spent: Decimal = Field(default=Decimal("0"), ge=0)
    period: BudgetPeriod = BudgetPeriod.MONTHLY


class Account(_FinanceModel):
    """
    A money container.

    The balance is maintained by hand. It is NOT derived from, nor
    reconciled with, the transaction ledger.
    """

    id: str = Field(default=NEW_ID)
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType
    balance: Decimal = Field(default=Decimal("0"))
    color: str = Field(default="#3B82F6", pattern=r"^#[0-9A-Fa-f]{6}$")


class FinancialGoal(_FinanceModel):
    """Savings goal. Loaded, exported and imported, never edited."""

    id: str
    name: str
    target_amount: Decimal = Field(..., ge=0, alias="targetAmount")
    current_amount: Decimal = Field(default=Decimal("0"), ge=0, alias="currentAmount")
    target_date: date = Field(..., alias="targetDate")
    description: Optional[str] = None

    @property
    def progress(self) -> float:
        if self.target_amount == 0:
            return 0.0
        return float(self.current_amount / self.target_amount * 100)


# =============================================================================
# DEFAULT / DEMO DATA
# =============================================================================

def default_categories() -> list[Category]:
    """Categories every new local store starts with."""
    rows = [
        ("1", "Salario", TransactionType.INCOME, "#10B981", "Briefcase"),
        ("2", "Inversiones", TransactionType.INCOME, "#3B82F6", "TrendingUp"),
        ("3", "Freelance", TransactionType.INCOME, "#8B5CF6", "Monitor"),
        ("4", "Alimentación", TransactionType.EXPENSE, "#F59E0B", "Utensils"),
        ("5", "Transporte", TransactionType.EXPENSE, "#EF4444", "Car"),
        ("6", "Vivienda", TransactionType.EXPENSE, "#6B7280", "Home"),
        ("7", "Entretenimiento", TransactionType.EXPENSE, "#EC4899", "Film"),
        ("8", "Salud", TransactionType.EXPENSE, "#14B8A6", "Heart"),
        ("9", "Educación", TransactionType.EXPENSE, "#6366F1", "BookOpen"),
    ]
    return [
        Category(id=id_, name=name, type=type_, color=color, icon=icon)
        for id_, name, type_, color, icon in rows
    ]


def default_accounts() -> list[Account]:
    """Accounts every new local store starts with."""
    return [
        Account(id="1", name="Cuenta Corriente", type=AccountType.CHECKING,
                balance=Decimal("5000"), color="#3B82F6"),
        Account(id="2", name="Ahorros", type=AccountType.SAVINGS,
                balance=Decimal("15000"), color="#10B981"),
        Account(id="3", name="Efectivo", type=AccountType.CASH,
                balance=Decimal("500"), color="#F59E0B"),
    ]


def demo_transactions(today: date) -> list[Transaction]:
    """Demo ledger seeded on first local run."""
    return [
        Transaction(id="1", type=TransactionType.INCOME, amount=Decimal("3000"),
                    category_id="1", description="Salario mensual",
                    date=today, account_id="1"),
        Transaction(id="2", type=TransactionType.EXPENSE, amount=Decimal("800"),
                    category_id="6", description="Renta",
                    date=today, account_id="1"),
        Transaction(id="3", type=TransactionType.EXPENSE, amount=Decimal("150"),
                    category_id="4", description="Supermercado",
                    date=today - timedelta(days=1), account_id="1"),
    ]


def demo_budgets() -> list[Budget]:
    """Demo budgets seeded on first local run."""
    return [
        Budget(id="1", category_id="4", amount=Decimal("400"), spent=Decimal("150")),
        Budget(id="2", category_id="5", amount=Decimal("200")),
        Budget(id="3", category_id="7", amount=Decimal("300")),
    ]
