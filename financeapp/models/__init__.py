"""
Data Models Package

This package contains all Pydantic models used by FinanceApp.
All data flowing through the system must conform to these schemas.
"""

from financeapp.models.finance import (
    FALLBACK_COLOR,
    NEW_ID,
    UNCATEGORIZED_LABEL,
    Account,
    AccountType,
    Budget,
    BudgetPeriod,
    Category,
    FinancialGoal,
    RecurringPeriod,
    Transaction,
    TransactionType,
    default_accounts,
    default_categories,
    demo_budgets,
    demo_transactions,
)
from financeapp.models.user import (
    BackupSnapshot,
    NotificationPreferences,
    Profile,
    User,
    UserPreferences,
)

__all__ = [
    # Constants
    "FALLBACK_COLOR",
    "NEW_ID",
    "UNCATEGORIZED_LABEL",
    # Finance models
    "Account",
    "AccountType",
    "Budget",
    "BudgetPeriod",
    "Category",
    "FinancialGoal",
    "RecurringPeriod",
    "Transaction",
    "TransactionType",
    # Seed data
    "default_accounts",
    "default_categories",
    "demo_budgets",
    "demo_transactions",
    # User models
    "BackupSnapshot",
    "NotificationPreferences",
    "Profile",
    "User",
    "UserPreferences",
]
