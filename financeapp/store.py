"""
Finance State Store

DESIGN DECISION: The store is the single in-memory copy of the user's
finance data that the pages render from. Every mutation goes to storage
FIRST and only touches memory once storage has succeeded. If storage
raises, the error propagates to the caller and memory is unchanged: no
optimistic updates, no rollback, no retries.

Derived values (monthly totals, balance, search) are recomputed from the
current snapshot on every call by the functions in financeapp.queries.

After every transaction or budget mutation, and after load, the budget
alert monitor runs. Category and account mutations do not trigger it.
"""

from datetime import date
from decimal import Decimal
from typing import Callable, Optional

from financeapp.alerts import (
    BudgetAlertMonitor,
    BudgetProgress,
    DEFAULT_WARNING_THRESHOLD,
    summarize_budgets,
)
from financeapp.log import get_logger
from financeapp.models.finance import (
    NEW_ID,
    Account,
    Budget,
    Category,
    FinancialGoal,
    Transaction,
)
from financeapp.queries import aggregates
from financeapp.services.storage import FinanceStorageInterface, StorageError


logger = get_logger(__name__)


def _replace(items: list, entity) -> list:
    return [entity if item.id == entity.id else item for item in items]


def _without(items: list, entity_id: str) -> list:
    return [item for item in items if item.id != entity_id]


class FinanceStore:
    """
    In-memory finance collections backed by a storage implementation.

    Usage:
        store = FinanceStore(storage, alert_monitor)
        await store.load()
        await store.add_transaction(transaction)
        store.get_monthly_expenses()
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        alert_monitor: Optional[BudgetAlertMonitor] = None,
        today: Callable[[], date] = date.today,
        warning_threshold: float = DEFAULT_WARNING_THRESHOLD,
    ):
        self._storage = storage
        self._alert_monitor = alert_monitor
        self._today = today
        self._warning_threshold = warning_threshold

        self.transactions: list[Transaction] = []
        self.categories: list[Category] = []
        self.budgets: list[Budget] = []
        self.accounts: list[Account] = []
        self.goals: list[FinancialGoal] = []
        self.is_loaded = False

    @property
    def storage(self) -> FinanceStorageInterface:
        return self._storage

    # =========================================================================
    # LOADING
    # =========================================================================

    async def load(self) -> None:
        """
        Load every collection from storage.

        Raises:
            StorageError: If any collection cannot be read. Memory keeps
                          whatever it held before.
        """
        transactions = await self._storage.list_transactions()
        categories = await self._storage.list_categories()
        budgets = await self._storage.list_budgets()
        accounts = await self._storage.list_accounts()
        goals = await self._storage.list_goals()

        self.transactions = transactions
        self.categories = categories
        self.budgets = budgets
        self.accounts = accounts
        self.goals = goals
        self.is_loaded = True

        logger.info(
            "finance_store_loaded",
            transactions=len(transactions),
            categories=len(categories),
            budgets=len(budgets),
            accounts=len(accounts),
        )
        await self._check_alerts()

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def add_transaction(self, transaction: Transaction) -> Transaction:
        created = await self._write(
            "transactions", self._storage.create_transaction(transaction)
        )
        self.transactions = [created] + self.transactions
        await self._check_alerts()
        return created

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        updated = await self._write(
            "transactions", self._storage.update_transaction(transaction)
        )
        self.transactions = _replace(self.transactions, updated)
        await self._check_alerts()
        return updated

    async def delete_transaction(self, transaction_id: str) -> None:
        await self._write("transactions", self._storage.delete_transaction(transaction_id))
        self.transactions = _without(self.transactions, transaction_id)
        await self._check_alerts()

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def add_category(self, category: Category) -> Category:
        created = await self._write("categories", self._storage.create_category(category))
        self.categories = self.categories + [created]
        return created

    async def update_category(self, category: Category) -> Category:
        updated = await self._write("categories", self._storage.update_category(category))
        self.categories = _replace(self.categories, updated)
        return updated

    async def delete_category(self, category_id: str) -> None:
        """
        Delete a category.

        Transactions and budgets that reference it are left alone; their
        category resolves to the fallback label from then on.
        """
        await self._write("categories", self._storage.delete_category(category_id))
        self.categories = _without(self.categories, category_id)

    # =========================================================================
    # BUDGETS
    # =========================================================================

    async def save_budget(self, budget: Budget) -> Budget:
        """Create when the id is NEW_ID (or unknown), otherwise update."""
        if self._is_new(budget, self.budgets):
            saved = await self._write("budgets", self._storage.create_budget(budget))
            self.budgets = self.budgets + [saved]
        else:
            saved = await self._write("budgets", self._storage.update_budget(budget))
            self.budgets = _replace(self.budgets, saved)
        await self._check_alerts()
        return saved

    async def delete_budget(self, budget_id: str) -> None:
        await self._write("budgets", self._storage.delete_budget(budget_id))
        self.budgets = _without(self.budgets, budget_id)
        await self._check_alerts()

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    async def save_account(self, account: Account) -> Account:
        """Create when the id is NEW_ID (or unknown), otherwise update."""
        if self._is_new(account, self.accounts):
            saved = await self._write("accounts", self._storage.create_account(account))
            self.accounts = self.accounts + [saved]
        else:
            saved = await self._write("accounts", self._storage.update_account(account))
            self.accounts = _replace(self.accounts, saved)
        return saved

    async def delete_account(self, account_id: str) -> None:
        await self._write("accounts", self._storage.delete_account(account_id))
        self.accounts = _without(self.accounts, account_id)

    # =========================================================================
    # DERIVED VALUES
    # =========================================================================

    def get_monthly_income(self, ref: Optional[date] = None) -> Decimal:
        return aggregates.monthly_income(self.transactions, ref or self._today())

    def get_monthly_expenses(self, ref: Optional[date] = None) -> Decimal:
        return aggregates.monthly_expenses(self.transactions, ref or self._today())

    def get_current_balance(self) -> Decimal:
        """Sum of account balances. Transactions do not affect it."""
        return aggregates.current_balance(self.accounts)

    def get_category_expenses(
        self,
        category_id: str,
        ref: Optional[date] = None,
    ) -> Decimal:
        return aggregates.category_expenses(
            self.transactions, category_id, ref or self._today()
        )

    def get_category_name(self, category_id: Optional[str]) -> str:
        return aggregates.category_name(self.categories, category_id)

    def get_category_color(self, category_id: Optional[str]) -> str:
        return aggregates.category_color(self.categories, category_id)

    def search_transactions(self, query: str) -> list[Transaction]:
        return aggregates.search_transactions(self.transactions, self.categories, query)

    def get_budget_progress(self, ref: Optional[date] = None) -> list[BudgetProgress]:
        return summarize_budgets(
            self.budgets,
            self.categories,
            self.transactions,
            ref or self._today(),
            self._warning_threshold,
        )

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @staticmethod
    def _is_new(entity, existing: list) -> bool:
        return entity.id == NEW_ID or all(item.id != entity.id for item in existing)

    async def _write(self, table: str, operation):
        """Await a storage call, logging failures before they propagate."""
        try:
            return await operation
        except StorageError as e:
            logger.error("storage_write_failed", table=table, error=str(e))
            raise

    async def _check_alerts(self) -> None:
        if self._alert_monitor is None:
            return
        try:
            await self._alert_monitor.check_budget_alerts(
                self.transactions,
                self.budgets,
                self.categories,
                today=self._today(),
            )
        except StorageError as e:
            # The dedup flag could not be written; the next check retries.
            logger.error("budget_alert_flag_failed", error=str(e))
