"""
Storage Backend Selection

The choice between hosted and local storage is a pure function of the
configuration: hosted credentials present means hosted mode.
"""

from typing import Optional

from financeapp.config import GoogleSheetsSettings
from financeapp.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
)
from financeapp.services.storage.interface import FinanceStorageInterface
from financeapp.services.storage.local import LocalFinanceStorage, LocalKeyValueStore


def should_use_local_storage(settings: GoogleSheetsSettings) -> bool:
    """True when no hosted backend credentials are configured."""
    return not settings.is_configured


def create_finance_storage(
    settings: GoogleSheetsSettings,
    local_store: LocalKeyValueStore,
    user_id: str,
    sheets_client: Optional[GoogleSheetsClient] = None,
) -> FinanceStorageInterface:
    """
    Build the storage implementation for the current configuration.

    Args:
        settings: Hosted backend settings (decide the mode)
        local_store: Key-value store used in local mode
        user_id: Owner of the data (hosted rows are scoped by it)
        sheets_client: Shared hosted client; created if omitted
    """
    if should_use_local_storage(settings):
        return LocalFinanceStorage(local_store)
    return GoogleSheetsFinanceStorage(
        user_id=user_id,
        client=sheets_client or GoogleSheetsClient(settings),
    )
