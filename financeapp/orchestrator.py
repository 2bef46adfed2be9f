"""
Main Orchestrator for FinanceApp

This module ties together all the components and defines the
end-to-end flows for:
1. Session (restore / login / register -> open the user's finance store)
2. Profile (update fields, upload avatar)
3. Notifications (test e-mail)

DESIGN DECISION: Whether the app runs in hosted or local mode is decided
ONCE, here, from the settings. Every component below receives the
already-chosen implementation and never asks again.
"""

from datetime import date
from typing import Callable, Optional

import httpx

from financeapp.alerts import BudgetAlertMonitor
from financeapp.config import Settings, get_settings
from financeapp.log import configure_logging, get_logger
from financeapp.models.user import Profile, User
from financeapp.services.auth import (
    AuthError,
    AuthService,
    HostedAuthBackend,
    LocalAuthBackend,
)
from financeapp.services.backup import BackupService
from financeapp.services.image import AvatarImageService
from financeapp.services.notifications import (
    EmailNotificationService,
    NotificationError,
)
from financeapp.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsProfileStorage,
    LocalKeyValueStore,
    create_finance_storage,
    should_use_local_storage,
)
from financeapp.store import FinanceStore


logger = get_logger(__name__)

DEMO_MODE_EMAIL_MESSAGE = (
    "Función de correo no disponible en modo demo. "
    "Configura el backend para funcionalidad completa."
)


class FinanceApp:
    """
    Everything one running app needs, built from the settings.

    The finance store and backup service only exist while a user is
    signed in.

    Args:
        settings: Application settings; read from the environment if omitted
        local_store: Local key-value store; built from settings if omitted
        sheets_client: Shared Google Sheets client (hosted mode only)
        email_transport: httpx transport for the e-mail client (tests)
        today: Clock used by the store and alerts
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        local_store: Optional[LocalKeyValueStore] = None,
        sheets_client: Optional[GoogleSheetsClient] = None,
        email_transport: Optional[httpx.AsyncBaseTransport] = None,
        today: Callable[[], date] = date.today,
    ):
        settings = settings or get_settings()
        self._sheets_settings = settings.google_sheets
        self._app_settings = settings.app
        self._today = today

        self.local_mode = should_use_local_storage(self._sheets_settings)
        self.local_store = local_store or LocalKeyValueStore(settings.local_storage.path)

        if self.local_mode:
            self.sheets_client = None
            backend = LocalAuthBackend(self.local_store)
        else:
            self.sheets_client = sheets_client or GoogleSheetsClient(self._sheets_settings)
            backend = HostedAuthBackend(
                GoogleSheetsProfileStorage(self.sheets_client),
                self.local_store,
                default_currency=self._app_settings.default_currency,
            )

        self.auth = AuthService(backend)
        self.notifier = EmailNotificationService(settings.email, transport=email_transport)
        self.avatars = AvatarImageService(
            settings.cloudinary,
            self._app_settings,
            hosted_backend=not self.local_mode,
        )
        self.alert_monitor = BudgetAlertMonitor(
            self.local_store,
            user_provider=self.auth.current_user,
            notifier=self.notifier,
            local_mode=self.local_mode,
        )

        self.store: Optional[FinanceStore] = None
        self.backup: Optional[BackupService] = None

        logger.info("app_created", local_mode=self.local_mode)

    # -- session -------------------------------------------------------------

    async def start(self) -> Optional[User]:
        """Restore a remembered session and, if any, load its data."""
        user = await self.auth.initialize()
        if user is not None:
            await self._open_store(user)
        return user

    async def login(self, email: str, password: str) -> User:
        user = await self.auth.login(email, password)
        await self._open_store(user)
        return user

    async def register(self, name: str, email: str, password: str) -> User:
        user = await self.auth.register(name, email, password)
        await self._open_store(user)
        return user

    async def logout(self) -> None:
        await self.auth.logout()
        self.store = None
        self.backup = None

    async def _open_store(self, user: User) -> None:
        storage = create_finance_storage(
            self._sheets_settings,
            self.local_store,
            user.id,
            sheets_client=self.sheets_client,
        )
        store = FinanceStore(
            storage,
            alert_monitor=self.alert_monitor,
            today=self._today,
            warning_threshold=self._app_settings.budget_warning_threshold,
        )
        await store.load()
        self.store = store
        self.backup = BackupService(store, self.auth, self.local_store)

    # -- profile -------------------------------------------------------------

    async def upload_avatar(self, image_bytes: bytes) -> Profile:
        """
        Store a new avatar and point the profile at it.

        Raises:
            AuthError: If nobody is signed in
            AvatarUploadError: If the image is invalid or the upload failed
        """
        user = self.auth.user
        if user is None:
            raise AuthError("Not signed in")
        url = await self.avatars.upload_avatar(image_bytes, user.id)
        return await self.auth.update_profile(avatar_url=url)

    # -- notifications -------------------------------------------------------

    async def send_test_email(self) -> str:
        """
        Send the test e-mail to the signed-in user.

        Returns:
            The address the e-mail went to

        Raises:
            NotificationError: In local mode, or when sending failed
        """
        if self.local_mode:
            raise NotificationError(DEMO_MODE_EMAIL_MESSAGE)
        user, profile = self.auth.user, self.auth.profile
        if user is None or profile is None:
            raise NotificationError("Not signed in")
        await self.notifier.send_test_email(user.email, profile.name)
        return user.email


def create_app_components(settings: Optional[Settings] = None) -> FinanceApp:
    """
    Factory function to create all application components.

    Returns:
        A FinanceApp with nobody signed in yet; call start() next.
    """
    settings = settings or get_settings()
    configure_logging(settings.app.debug_mode)
    return FinanceApp(settings)
