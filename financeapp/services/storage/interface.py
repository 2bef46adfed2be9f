"""
Abstract Storage Interface

DESIGN DECISION: We define one abstract interface for finance storage and
one implementation per backend, instead of branching on "hosted or local?"
inside every operation. This allows us to:
1. Run fully offline in demo mode (local key-value file)
2. Use a hosted spreadsheet when credentials are configured
3. Use in-memory fakes in tests
4. Keep the finance store decoupled from storage details

The interface is intentionally simple - we're not building a full ORM.
Create returns the stored entity (with its new id). Update and delete
address entities by id. Implementations are scoped to one user.
"""

from abc import ABC, abstractmethod
from typing import Optional

from financeapp.models.finance import (
    Account,
    Budget,
    Category,
    FinancialGoal,
    Transaction,
)
from financeapp.models.user import Profile


class FinanceStorageInterface(ABC):
    """
    Abstract interface for one user's finance data.

    Any storage implementation (hosted spreadsheet, local file, etc.)
    must implement these methods.
    """

    # -- transactions -------------------------------------------------------

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """
        List all transactions, newest first.

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def create_transaction(self, transaction: Transaction) -> Transaction:
        """
        Store a new transaction.

        The incoming id is ignored; the backend assigns one.

        Returns:
            The stored transaction with its assigned id
        """
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> Transaction:
        """
        Replace the stored transaction that has the same id.

        Raises:
            NotFoundError: If no transaction has that id
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> bool:
        """
        Delete a transaction by id.

        Returns:
            True if something was deleted
        """
        pass

    # -- categories ---------------------------------------------------------

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        pass

    @abstractmethod
    async def create_category(self, category: Category) -> Category:
        pass

    @abstractmethod
    async def update_category(self, category: Category) -> Category:
        pass

    @abstractmethod
    async def delete_category(self, category_id: str) -> bool:
        """
        Delete a category by id.

        Transactions and budgets referencing it are left untouched.
        """
        pass

    # -- budgets ------------------------------------------------------------

    @abstractmethod
    async def list_budgets(self) -> list[Budget]:
        pass

    @abstractmethod
    async def create_budget(self, budget: Budget) -> Budget:
        pass

    @abstractmethod
    async def update_budget(self, budget: Budget) -> Budget:
        pass

    @abstractmethod
    async def delete_budget(self, budget_id: str) -> bool:
        pass

    # -- accounts -----------------------------------------------------------

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        pass

    @abstractmethod
    async def create_account(self, account: Account) -> Account:
        pass

    @abstractmethod
    async def update_account(self, account: Account) -> Account:
        pass

    @abstractmethod
    async def delete_account(self, account_id: str) -> bool:
        pass

    # -- goals --------------------------------------------------------------

    @abstractmethod
    async def list_goals(self) -> list[FinancialGoal]:
        pass

    # -- bulk ---------------------------------------------------------------

    @abstractmethod
    async def replace_all(
        self,
        transactions: Optional[list[Transaction]] = None,
        categories: Optional[list[Category]] = None,
        budgets: Optional[list[Budget]] = None,
        accounts: Optional[list[Account]] = None,
        goals: Optional[list[FinancialGoal]] = None,
    ) -> None:
        """
        Replace whole collections (used by backup import).

        Collections passed as None are left as they are.
        Entities keep the ids they carry.
        """
        pass


class ProfileStorageInterface(ABC):
    """
    Abstract interface for hosted user profiles and credentials.

    Only the hosted backend has one; demo mode authenticates against
    fixed credentials.
    """

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[Profile]:
        pass

    @abstractmethod
    async def get_credentials(self, email: str) -> Optional[tuple[str, str, str]]:
        """
        Look up a user by e-mail.

        Returns:
            (user_id, email, password_hash) or None if no such user
        """
        pass

    @abstractmethod
    async def create_profile(
        self,
        profile: Profile,
        email: str,
        password_hash: str,
    ) -> Profile:
        """
        Create a profile with its login credentials.

        Raises:
            DuplicateError: If the e-mail is already registered
        """
        pass

    @abstractmethod
    async def update_profile(self, profile: Profile) -> Profile:
        """
        Raises:
            NotFoundError: If the profile does not exist
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class BackendConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
