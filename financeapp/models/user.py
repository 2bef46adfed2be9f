"""
User, Profile and Preference Models

The profile is what the hosted backend stores per user; the preferences
are device-local and live in the local key-value store in both modes.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from financeapp.models.finance import (
    Account,
    Budget,
    Category,
    FinancialGoal,
    Transaction,
)


class User(BaseModel):
    """The signed-in user as seen by the app."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    name: str
    email: str
    avatar: Optional[str] = None


class Profile(BaseModel):
    """Per-user profile row."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    name: str
    avatar_url: Optional[str] = None
    currency: str = Field(default="MXN", min_length=3, max_length=3)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class NotificationPreferences(BaseModel):
    """Which notifications the user wants. Stored as camelCase JSON."""
    model_config = ConfigDict(populate_by_name=True)

    email_notifications: bool = Field(default=True, alias="emailNotifications")
    budget_alerts: bool = Field(default=True, alias="budgetAlerts")
    monthly_reports: bool = Field(default=True, alias="monthlyReports")
    transaction_alerts: bool = Field(default=False, alias="transactionAlerts")


class UserPreferences(BaseModel):
    """Display preferences."""
    model_config = ConfigDict(populate_by_name=True)

    currency: str = "MXN"
    language: str = "es"
    theme: str = Field(default="light", pattern="^(light|dark)$")
    date_format: str = Field(default="dd/MM/yyyy", alias="dateFormat")


class BackupSnapshot(BaseModel):
    """
    Whole-state backup file.

    Key names match the files produced by the earlier web client so that
    those backups can still be imported. Every collection is optional on
    import; only the ones present are restored.
    """
    model_config = ConfigDict(populate_by_name=True)

    user: Optional[dict[str, Any]] = None
    profile: Optional[Profile] = None
    transactions: Optional[list[Transaction]] = None
    categories: Optional[list[Category]] = None
    budgets: Optional[list[Budget]] = None
    accounts: Optional[list[Account]] = None
    goals: Optional[list[FinancialGoal]] = None
    preferences: Optional[UserPreferences] = None
    export_date: Optional[datetime] = Field(default=None, alias="exportDate")
    version: str = "1.0"
