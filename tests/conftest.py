"""
Shared fixtures and fakes.

No test talks to a real service: the hosted spreadsheet is replaced by
in-memory worksheets, the e-mail function by an httpx MockTransport and
Cloudinary by a patched uploader.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from financeapp.models.finance import (
    Account,
    AccountType,
    Budget,
    Category,
    Transaction,
    TransactionType,
)
from financeapp.services.storage.google_sheets import TABLE_COLUMNS
from financeapp.services.storage.interface import StorageError
from financeapp.services.storage.local import (
    ACCOUNTS_KEY,
    BUDGETS_KEY,
    CATEGORIES_KEY,
    GOALS_KEY,
    TRANSACTIONS_KEY,
    LocalFinanceStorage,
    LocalKeyValueStore,
)


TODAY = date(2024, 3, 15)


def make_transaction(
    amount,
    type_: TransactionType = TransactionType.EXPENSE,
    category_id: str = "4",
    day: date = TODAY,
    description: str = "",
    id_: str = "new",
) -> Transaction:
    return Transaction(
        id=id_,
        type=type_,
        amount=Decimal(str(amount)),
        category_id=category_id,
        description=description,
        date=day,
    )


def make_category(id_: str, name: str, type_: TransactionType = TransactionType.EXPENSE) -> Category:
    return Category(id=id_, name=name, type=type_, color="#F59E0B")


def make_account(id_: str, balance, name: str = "Cuenta") -> Account:
    return Account(id=id_, name=name, type=AccountType.CHECKING, balance=Decimal(str(balance)))


def make_budget(id_: str, category_id: str, amount, **kwargs) -> Budget:
    return Budget(id=id_, category_id=category_id, amount=Decimal(str(amount)), **kwargs)


@pytest.fixture
def kv(tmp_path) -> LocalKeyValueStore:
    return LocalKeyValueStore(tmp_path / "local_storage.json")


@pytest.fixture
def empty_storage(kv) -> LocalFinanceStorage:
    """Local storage with every collection present but empty (no seeding)."""
    for key in (TRANSACTIONS_KEY, CATEGORIES_KEY, BUDGETS_KEY, ACCOUNTS_KEY, GOALS_KEY):
        kv.set_json(key, [])
    return LocalFinanceStorage(kv, today=lambda: TODAY)


class FailingStorage(LocalFinanceStorage):
    """Local storage whose writes fail on demand."""

    def __init__(self, store: LocalKeyValueStore):
        super().__init__(store, today=lambda: TODAY)
        self.fail = False

    def _save(self, key, items):
        if self.fail:
            raise StorageError(f"backend unavailable ({key})")
        super()._save(key, items)


@pytest.fixture
def failing_storage(kv) -> FailingStorage:
    for key in (TRANSACTIONS_KEY, CATEGORIES_KEY, BUDGETS_KEY, ACCOUNTS_KEY, GOALS_KEY):
        kv.set_json(key, [])
    return FailingStorage(kv)


class FakeWorksheet:
    """In-memory stand-in for gspread.Worksheet (the calls we use)."""

    def __init__(self, header: list[str]):
        self.values: list[list[str]] = [list(header)]
        self.fail_writes = False

    def _check(self):
        if self.fail_writes:
            raise RuntimeError("quota exceeded")

    def get_all_values(self) -> list[list[str]]:
        return [list(row) for row in self.values]

    def append_row(self, row, value_input_option: Optional[str] = None):
        self._check()
        self.values.append(list(row))

    def append_rows(self, rows, value_input_option: Optional[str] = None):
        self._check()
        self.values.extend(list(row) for row in rows)

    def update(self, range_name: str, values, value_input_option: Optional[str] = None):
        self._check()
        idx = int(range_name[1:])
        self.values[idx - 1] = list(values[0])

    def delete_rows(self, idx: int):
        self._check()
        del self.values[idx - 1]


class FakeSheetsClient:
    """Stand-in for GoogleSheetsClient: one FakeWorksheet per table."""

    def __init__(self):
        self.tables = {name: FakeWorksheet(columns) for name, columns in TABLE_COLUMNS.items()}

    def get_table(self, table: str) -> FakeWorksheet:
        return self.tables[table]


@pytest.fixture
def sheets_client() -> FakeSheetsClient:
    return FakeSheetsClient()
