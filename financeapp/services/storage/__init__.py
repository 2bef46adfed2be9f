"""
Storage Services Package

Provides the abstract storage interface and its two implementations:
a hosted Google Sheets backend and a local key-value file for demo mode.
"""

from financeapp.services.storage.interface import (
    BackendConnectionError,
    DuplicateError,
    FinanceStorageInterface,
    NotFoundError,
    ProfileStorageInterface,
    StorageError,
)
from financeapp.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
    GoogleSheetsProfileStorage,
)
from financeapp.services.storage.local import (
    LocalFinanceStorage,
    LocalKeyValueStore,
)
from financeapp.services.storage.factory import (
    create_finance_storage,
    should_use_local_storage,
)

__all__ = [
    # Interfaces
    "FinanceStorageInterface",
    "ProfileStorageInterface",
    # Exceptions
    "BackendConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsFinanceStorage",
    "GoogleSheetsProfileStorage",
    # Local implementation
    "LocalFinanceStorage",
    "LocalKeyValueStore",
    # Selection
    "create_finance_storage",
    "should_use_local_storage",
]
