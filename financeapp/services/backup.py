"""
Backup and Report Export

DESIGN DECISION: A backup is one JSON document holding the whole state of
the signed-in user (collections, profile, display preferences). The key
names match the files the earlier web client produced, so those backups
still import.

Import validates the whole file before writing anything, then restores
the collections present in the file through the ACTIVE storage (local
file or hosted sheets) and reloads the store. Storage errors during the
restore propagate; collections written before the failure stay written.
"""

import json
from datetime import date, datetime, timezone
from typing import Callable, Optional

from pydantic import ValidationError

from financeapp.log import get_logger
from financeapp.models.user import BackupSnapshot
from financeapp.queries.reports import ReportPeriod, build_period_report
from financeapp.services.auth import AuthService
from financeapp.services.preferences import load_user_preferences, save_user_preferences
from financeapp.services.storage.local import LocalKeyValueStore
from financeapp.store import FinanceStore


logger = get_logger(__name__)

BACKUP_VERSION = "1.0"

# Collections a file must carry to be accepted as a backup
_REQUIRED_KEYS = ("transactions", "categories", "accounts")


class BackupError(Exception):
    """The backup file cannot be read or restored."""
    pass


def backup_filename(today: Optional[date] = None) -> str:
    return f"financeapp-backup-{(today or date.today()).isoformat()}.json"


def report_filename(today: Optional[date] = None) -> str:
    return f"reporte-financiero-{(today or date.today()).isoformat()}.json"


class BackupService:
    """
    Whole-state export/import plus the period report export.

    Args:
        store: Loaded finance store
        auth: Auth service holding the current user/profile
        local_store: Key-value store holding display preferences
        now: Clock, injectable for tests
    """

    def __init__(
        self,
        store: FinanceStore,
        auth: AuthService,
        local_store: LocalKeyValueStore,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._store = store
        self._auth = auth
        self._local_store = local_store
        self._now = now

    def backup_filename(self) -> str:
        return backup_filename(self._now().date())

    def report_filename(self) -> str:
        return report_filename(self._now().date())

    def export_snapshot(self) -> str:
        """Serialize the current state as an indented JSON document."""
        user = self._auth.user
        profile = self._auth.profile
        store = self._store

        data = {
            "user": {
                "id": user.id if user else None,
                "name": profile.name if profile else None,
                "email": user.email if user else None,
            },
            "profile": profile.model_dump(mode="json") if profile else None,
            "transactions": [t.to_storage_dict() for t in store.transactions],
            "categories": [c.to_storage_dict() for c in store.categories],
            "budgets": [b.to_storage_dict() for b in store.budgets],
            "accounts": [a.to_storage_dict() for a in store.accounts],
            "goals": [g.to_storage_dict() for g in store.goals],
            "preferences": load_user_preferences(self._local_store).model_dump(
                mode="json", by_alias=True
            ),
            "exportDate": self._now().isoformat(),
            "version": BACKUP_VERSION,
        }
        logger.info("backup_exported", transactions=len(store.transactions))
        return json.dumps(data, ensure_ascii=False, indent=2)

    def parse_snapshot(self, text: str) -> BackupSnapshot:
        """
        Validate a backup file without restoring it.

        Raises:
            BackupError: Not JSON, missing required collections, or
                         entries that fail model validation
        """
        try:
            data = json.loads(text)
        except ValueError as e:
            raise BackupError(f"Archivo de respaldo inválido: {e}")

        if not isinstance(data, dict) or any(not data.get(key) for key in _REQUIRED_KEYS):
            raise BackupError("Archivo de respaldo inválido")

        try:
            return BackupSnapshot.model_validate(data)
        except ValidationError as e:
            raise BackupError(f"Archivo de respaldo inválido: {e}")

    async def import_snapshot(self, text: str) -> BackupSnapshot:
        """
        Restore a backup into the active storage and reload the store.

        Raises:
            BackupError: If the file is invalid (nothing is written)
            StorageError: If the storage rejects the restore
        """
        snapshot = self.parse_snapshot(text)

        await self._store.storage.replace_all(
            transactions=snapshot.transactions,
            categories=snapshot.categories,
            budgets=snapshot.budgets,
            accounts=snapshot.accounts,
            goals=snapshot.goals,
        )
        if snapshot.preferences is not None:
            save_user_preferences(self._local_store, snapshot.preferences)

        await self._store.load()
        logger.info(
            "backup_imported",
            transactions=len(snapshot.transactions or []),
            version=snapshot.version,
        )
        return snapshot

    def export_report(
        self,
        period: ReportPeriod = ReportPeriod.CURRENT,
        ref: Optional[date] = None,
    ) -> str:
        """The period report as an indented JSON document."""
        now = self._now()
        report = build_period_report(
            self._store.transactions,
            self._store.categories,
            period,
            ref or now.date(),
            generated_at=now,
        )
        return json.dumps(report, ensure_ascii=False, indent=2)
