"""
Local Storage Implementation

DESIGN DECISION: When no hosted backend is configured the app runs in
demo mode against a small key-value store persisted as one JSON file.
Values are JSON strings under fixed keys ("transactions", "categories",
"currentUser", "budget_alert_<id>_<yyyy-MM>", ...), the same layout the
browser client kept in localStorage, so exported data stays compatible.

TRADEOFFS:
- Every read goes to disk; the file is tiny so this is fine
- No locking: two processes writing at once means the last writer wins
- A corrupt file reads as an empty store (and is re-seeded)
"""

import json
import os
from datetime import date
from pathlib import Path
from typing import Any, Callable, Optional, Type, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from financeapp.log import get_logger
from financeapp.models.finance import (
    Account,
    Budget,
    Category,
    FinancialGoal,
    Transaction,
    default_accounts,
    default_categories,
    demo_budgets,
    demo_transactions,
)
from financeapp.services.storage.interface import (
    FinanceStorageInterface,
    NotFoundError,
    StorageError,
)


logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Fixed keys of the local key-value store
TRANSACTIONS_KEY = "transactions"
CATEGORIES_KEY = "categories"
BUDGETS_KEY = "budgets"
ACCOUNTS_KEY = "accounts"
GOALS_KEY = "goals"
CURRENT_USER_KEY = "currentUser"
CURRENT_PROFILE_KEY = "currentProfile"
SESSION_KEY = "session"
NOTIFICATION_PREFERENCES_KEY = "notificationPreferences"
USER_PREFERENCES_KEY = "userPreferences"


class LocalKeyValueStore:
    """
    String key-value store backed by a JSON file.

    Mirrors the browser localStorage API: values are strings, missing keys
    read as None. Writes are atomic (tmp file + os.replace).
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        """Returns {} on missing or corrupt file - never raises."""
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("local_store_unreadable", path=str(self._path), error=str(e))
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: dict[str, str]) -> None:
        tmp = self._path.with_suffix(".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self._path)
        except OSError as e:
            if tmp.exists():
                tmp.unlink()
            raise StorageError(f"Failed to write local store {self._path}: {e}")

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def keys(self) -> list[str]:
        return list(self._read().keys())

    def get_json(self, key: str, default: Any = None) -> Any:
        """Decode a JSON value; malformed values read as the default."""
        raw = self.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("local_store_bad_value", key=key)
            return default

    def set_json(self, key: str, value: Any) -> None:
        self.set_item(key, json.dumps(value, ensure_ascii=False))


class LocalFinanceStorage(FinanceStorageInterface):
    """
    Demo-mode implementation of finance storage.

    Each collection is a JSON list under its key. Missing collections are
    seeded with the default categories/accounts and a small demo ledger.
    """

    def __init__(
        self,
        store: LocalKeyValueStore,
        today: Callable[[], date] = date.today,
    ):
        self._store = store
        self._today = today

    # -- helpers ------------------------------------------------------------

    def _load(
        self,
        key: str,
        model: Type[ModelT],
        seed: Optional[Callable[[], list[ModelT]]] = None,
    ) -> list[ModelT]:
        raw = self._store.get_json(key)
        if raw is None:
            items = seed() if seed else []
            if seed:
                self._save(key, items)
            return items

        items = []
        for entry in raw if isinstance(raw, list) else []:
            try:
                items.append(model.model_validate(entry))
            except ValidationError:
                logger.warning("local_store_malformed_entry", key=key, entry=entry)
                continue  # Skip malformed entries
        return items

    def _save(self, key: str, items: list[BaseModel]) -> None:
        self._store.set_json(key, [item.to_storage_dict() for item in items])

    def _create(self, key: str, model: Type[ModelT], entity: ModelT, prepend: bool = False) -> ModelT:
        items = self._load(key, model)
        created = entity.model_copy(update={"id": uuid4().hex})
        items = [created] + items if prepend else items + [created]
        self._save(key, items)
        return created

    def _update(self, key: str, model: Type[ModelT], entity: ModelT) -> ModelT:
        items = self._load(key, model)
        for idx, item in enumerate(items):
            if item.id == entity.id:
                items[idx] = entity
                self._save(key, items)
                return entity
        raise NotFoundError(f"{key}: no entity with id {entity.id}")

    def _delete(self, key: str, model: Type[ModelT], entity_id: str) -> bool:
        items = self._load(key, model)
        remaining = [item for item in items if item.id != entity_id]
        if len(remaining) == len(items):
            return False
        self._save(key, remaining)
        return True

    # -- transactions -------------------------------------------------------

    async def list_transactions(self) -> list[Transaction]:
        return self._load(
            TRANSACTIONS_KEY, Transaction, lambda: demo_transactions(self._today())
        )

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        return self._create(TRANSACTIONS_KEY, Transaction, transaction, prepend=True)

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        return self._update(TRANSACTIONS_KEY, Transaction, transaction)

    async def delete_transaction(self, transaction_id: str) -> bool:
        return self._delete(TRANSACTIONS_KEY, Transaction, transaction_id)

    # -- categories ---------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        return self._load(CATEGORIES_KEY, Category, default_categories)

    async def create_category(self, category: Category) -> Category:
        return self._create(CATEGORIES_KEY, Category, category)

    async def update_category(self, category: Category) -> Category:
        return self._update(CATEGORIES_KEY, Category, category)

    async def delete_category(self, category_id: str) -> bool:
        return self._delete(CATEGORIES_KEY, Category, category_id)

    # -- budgets ------------------------------------------------------------

    async def list_budgets(self) -> list[Budget]:
        return self._load(BUDGETS_KEY, Budget, demo_budgets)

    async def create_budget(self, budget: Budget) -> Budget:
        return self._create(BUDGETS_KEY, Budget, budget)

    async def update_budget(self, budget: Budget) -> Budget:
        return self._update(BUDGETS_KEY, Budget, budget)

    async def delete_budget(self, budget_id: str) -> bool:
        return self._delete(BUDGETS_KEY, Budget, budget_id)

    # -- accounts -----------------------------------------------------------

    async def list_accounts(self) -> list[Account]:
        return self._load(ACCOUNTS_KEY, Account, default_accounts)

    async def create_account(self, account: Account) -> Account:
        return self._create(ACCOUNTS_KEY, Account, account)

    async def update_account(self, account: Account) -> Account:
        return self._update(ACCOUNTS_KEY, Account, account)

    async def delete_account(self, account_id: str) -> bool:
        return self._delete(ACCOUNTS_KEY, Account, account_id)

    # -- goals --------------------------------------------------------------

    async def list_goals(self) -> list[FinancialGoal]:
        return self._load(GOALS_KEY, FinancialGoal)

    # -- bulk ---------------------------------------------------------------

    async def replace_all(
        self,
        transactions: Optional[list[Transaction]] = None,
        categories: Optional[list[Category]] = None,
        budgets: Optional[list[Budget]] = None,
        accounts: Optional[list[Account]] = None,
        goals: Optional[list[FinancialGoal]] = None,
    ) -> None:
        collections = {
            TRANSACTIONS_KEY: transactions,
            CATEGORIES_KEY: categories,
            BUDGETS_KEY: budgets,
            ACCOUNTS_KEY: accounts,
            GOALS_KEY: goals,
        }
        for key, items in collections.items():
            if items is not None:
                self._save(key, items)
