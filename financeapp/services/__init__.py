"""
Services package.

BackupService is not re-exported here: it depends on the finance store,
which itself imports from this package. Import it from
financeapp.services.backup.
"""

from financeapp.services.auth import (
    AuthError,
    AuthService,
    HostedAuthBackend,
    LocalAuthBackend,
)
from financeapp.services.image import (
    AvatarImageService,
    AvatarUploadError,
    InvalidImageError,
)
from financeapp.services.notifications import (
    EmailNotificationService,
    NotificationError,
)
from financeapp.services.storage import (
    BackendConnectionError,
    DuplicateError,
    FinanceStorageInterface,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
    GoogleSheetsProfileStorage,
    LocalFinanceStorage,
    LocalKeyValueStore,
    NotFoundError,
    ProfileStorageInterface,
    StorageError,
    create_finance_storage,
    should_use_local_storage,
)

__all__ = [
    # Auth
    "AuthError",
    "AuthService",
    "HostedAuthBackend",
    "LocalAuthBackend",
    # Image services
    "AvatarImageService",
    "AvatarUploadError",
    "InvalidImageError",
    # Notifications
    "EmailNotificationService",
    "NotificationError",
    # Storage services
    "BackendConnectionError",
    "DuplicateError",
    "FinanceStorageInterface",
    "GoogleSheetsClient",
    "GoogleSheetsFinanceStorage",
    "GoogleSheetsProfileStorage",
    "LocalFinanceStorage",
    "LocalKeyValueStore",
    "NotFoundError",
    "ProfileStorageInterface",
    "StorageError",
    "create_finance_storage",
    "should_use_local_storage",
]
