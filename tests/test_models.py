"""
Tests for FinanceApp

Test strategy:
1. Unit tests for individual components (models, aggregates, services)
2. Integration tests for the store and flows (with faked external services)
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from financeapp.models.finance import (
    FALLBACK_COLOR,
    NEW_ID,
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
    UserPreferences,
)


class TestTransactionModel:
    """Tests for the Transaction model."""

    def test_transaction_creation(self):
        """Test Transaction model creation with defaults."""
        tx = Transaction(
            type=TransactionType.EXPENSE,
            amount=Decimal("150.50"),
            category_id="4",
            date=date(2024, 3, 1),
        )
        assert tx.id == NEW_ID
        assert tx.description == ""
        assert tx.account_id is None
        assert tx.is_expense
        assert not tx.is_income

    def test_transaction_strips_whitespace(self):
        """Test that whitespace is stripped from the description."""
        tx = Transaction(
            type="income",
            amount=1,
            category_id="1",
            description="  Salario  ",
            date=date(2024, 3, 1),
        )
        assert tx.description == "Salario"

    def test_transaction_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            Transaction(
                type=TransactionType.EXPENSE,
                amount=Decimal("-100"),
                category_id="4",
                date=date(2024, 3, 1),
            )

    def test_recurring_transaction_requires_period(self):
        """Test that a recurring transaction needs a period."""
        with pytest.raises(ValueError):
            Transaction(
                type=TransactionType.EXPENSE,
                amount=Decimal("800"),
                category_id="6",
                date=date(2024, 3, 1),
                recurring=True,
            )

    def test_one_off_transaction_drops_period(self):
        """Test that a non-recurring transaction never keeps a period."""
        tx = Transaction(
            type=TransactionType.EXPENSE,
            amount=Decimal("800"),
            category_id="6",
            date=date(2024, 3, 1),
            recurring=False,
            recurring_period=RecurringPeriod.MONTHLY,
        )
        assert tx.recurring_period is None

    def test_storage_dict_uses_camel_case_alias(self):
        """Test that recurrence metadata is serialized as recurringPeriod."""
        tx = Transaction(
            id="t1",
            type=TransactionType.EXPENSE,
            amount=Decimal("800"),
            category_id="6",
            date=date(2024, 3, 1),
            recurring=True,
            recurring_period=RecurringPeriod.MONTHLY,
        )
        data = tx.to_storage_dict()
        assert data["recurringPeriod"] == "monthly"
        assert data["date"] == "2024-03-01"
        assert Transaction.model_validate(data) == tx


class TestCategoryBudgetAccountModels:
    """Tests for categories, budgets, accounts and goals."""

    def test_category_color_must_be_hex(self):
        with pytest.raises(ValueError):
            Category(name="Mascotas", type=TransactionType.EXPENSE, color="red")

    def test_category_defaults(self):
        category = Category(name="Mascotas", type=TransactionType.EXPENSE)
        assert category.id == NEW_ID
        assert category.color == FALLBACK_COLOR
        assert category.icon == "Tag"

    def test_budget_defaults_to_monthly(self):
        budget = Budget(category_id="4", amount=Decimal("400"))
        assert budget.period == BudgetPeriod.MONTHLY
        assert budget.spent == Decimal("0")

    def test_account_balance_may_be_negative(self):
        """Credit accounts carry negative balances."""
        account = Account(name="Tarjeta", type=AccountType.CREDIT, balance=Decimal("-250"))
        assert account.balance == Decimal("-250")

    def test_goal_accepts_camel_case_keys(self):
        goal = FinancialGoal.model_validate({
            "id": "g1",
            "name": "Vacaciones",
            "targetAmount": 10000,
            "currentAmount": 2500,
            "targetDate": "2024-12-31",
        })
        assert goal.target_amount == Decimal("10000")
        assert goal.progress == 25.0
        assert goal.to_storage_dict()["targetAmount"] == "10000"


class TestDefaultData:
    """Tests for the seed data used on a first local run."""

    def test_nine_default_categories(self):
        categories = default_categories()
        assert len(categories) == 9
        assert categories[0].name == "Salario"
        assert categories[-1].name == "Educación"
        assert len({c.id for c in categories}) == 9

    def test_default_accounts(self):
        balances = [a.balance for a in default_accounts()]
        assert balances == [Decimal("5000"), Decimal("15000"), Decimal("500")]

    def test_demo_transactions(self):
        today = date(2024, 3, 15)
        transactions = demo_transactions(today)
        assert [t.amount for t in transactions] == [
            Decimal("3000"), Decimal("800"), Decimal("150"),
        ]
        assert transactions[0].is_income
        assert transactions[2].date == today - timedelta(days=1)

    def test_demo_budgets_are_monthly(self):
        budgets = demo_budgets()
        assert len(budgets) == 3
        assert all(b.period == BudgetPeriod.MONTHLY for b in budgets)


class TestUserModels:
    """Tests for profile, preferences and backup models."""

    def test_profile_defaults(self):
        profile = Profile(id="1", name="Usuario Demo")
        assert profile.currency == "MXN"
        assert profile.avatar_url is None

    def test_notification_preferences_defaults(self):
        prefs = NotificationPreferences()
        assert prefs.budget_alerts is True
        assert prefs.transaction_alerts is False

    def test_notification_preferences_from_camel_case(self):
        prefs = NotificationPreferences.model_validate({"budgetAlerts": False})
        assert prefs.budget_alerts is False
        assert prefs.email_notifications is True

    def test_user_preferences_reject_unknown_theme(self):
        with pytest.raises(ValueError):
            UserPreferences(theme="neon")

    def test_backup_snapshot_reads_export_keys(self):
        snapshot = BackupSnapshot.model_validate({
            "transactions": [],
            "categories": [{"id": "1", "name": "Salario", "type": "income", "color": "#10B981"}],
            "exportDate": "2024-03-15T10:00:00+00:00",
        })
        assert snapshot.version == "1.0"
        assert snapshot.categories[0].name == "Salario"
        assert snapshot.export_date.year == 2024
        assert snapshot.budgets is None
