"""Tests for the Google Sheets storage (against in-memory worksheets)."""

import asyncio
from decimal import Decimal

import gspread
import pytest

from financeapp.config import GoogleSheetsSettings
from financeapp.models.finance import NEW_ID, RecurringPeriod, TransactionType
from financeapp.models.user import Profile
from financeapp.services.storage import (
    BackendConnectionError,
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
    GoogleSheetsProfileStorage,
    NotFoundError,
    StorageError,
)
from financeapp.services.storage import google_sheets
from financeapp.services.storage.google_sheets import TABLE_COLUMNS

from conftest import FakeWorksheet, make_budget, make_category, make_transaction


class FakeSpreadsheet:
    def __init__(self):
        self.sheets = {}

    def worksheet(self, title):
        if title not in self.sheets:
            raise gspread.WorksheetNotFound(title)
        return self.sheets[title]

    def add_worksheet(self, title, rows, cols):
        self.sheets[title] = FakeWorksheet([])
        self.sheets[title].values = []
        return self.sheets[title]


class TestGoogleSheetsClient:
    """Tests for worksheet lookup and creation."""

    def test_creates_missing_worksheet_with_headers(self):
        client = GoogleSheetsClient(GoogleSheetsSettings(_env_file=None))
        spreadsheet = FakeSpreadsheet()
        client._spreadsheet = spreadsheet

        sheet = client.get_table("budgets")

        assert spreadsheet.sheets["budgets"] is sheet
        assert sheet.get_all_values() == [TABLE_COLUMNS["budgets"]]
        # Cached afterwards
        assert client.get_table("budgets") is sheet

    def test_connect_without_configuration_fails(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        client = GoogleSheetsClient(GoogleSheetsSettings(_env_file=None))
        sleeps = []
        monkeypatch.setattr(client._authorize.retry, "sleep", sleeps.append)

        with pytest.raises(BackendConnectionError, match="not configured"):
            client.connect()
        # Fails on the first attempt, without back-off
        assert sleeps == []

    def test_missing_credentials_file_is_not_retried(self, monkeypatch, tmp_path):
        settings = GoogleSheetsSettings(
            _env_file=None,
            credentials_path=str(tmp_path / "missing.json"),
            spreadsheet_id="sheet-123",
        )
        client = GoogleSheetsClient(settings)
        sleeps = []
        monkeypatch.setattr(client._authorize.retry, "sleep", sleeps.append)

        with pytest.raises(BackendConnectionError, match="credentials file not found"):
            client.connect()
        assert sleeps == []

    def test_transient_failure_is_retried(self, monkeypatch):
        settings = GoogleSheetsSettings(
            _env_file=None, credentials_path="/secrets/sa.json", spreadsheet_id="sheet-123"
        )
        client = GoogleSheetsClient(settings)
        sleeps = []
        monkeypatch.setattr(client._authorize.retry, "sleep", sleeps.append)
        monkeypatch.setattr(
            google_sheets.Credentials, "from_service_account_file", lambda path, scopes: object()
        )
        attempts = []

        def flaky_authorize(credentials):
            attempts.append(credentials)
            if len(attempts) < 3:
                raise ConnectionError("temporary outage")
            return "gspread-client"

        monkeypatch.setattr(gspread, "authorize", flaky_authorize)

        assert client.connect() == "gspread-client"
        assert len(attempts) == 3
        assert len(sleeps) == 2


class TestGoogleSheetsFinanceStorage:
    """Tests for user-scoped CRUD on worksheets."""

    def test_create_and_list_round_trip(self, sheets_client):
        storage = GoogleSheetsFinanceStorage("u1", client=sheets_client)
        tx = make_transaction(12.5, description="Café")
        tx = tx.model_copy(update={"recurring": True, "recurring_period": RecurringPeriod.WEEKLY})

        created = asyncio.run(storage.create_transaction(tx))

        assert created.id != NEW_ID
        listed = asyncio.run(storage.list_transactions())
        assert listed == [created]
        assert listed[0].amount == Decimal("12.5")
        assert listed[0].recurring_period == RecurringPeriod.WEEKLY

    def test_transactions_listed_newest_first(self, sheets_client):
        storage = GoogleSheetsFinanceStorage("u1", client=sheets_client)
        asyncio.run(storage.create_transaction(make_transaction(1)))
        asyncio.run(storage.create_transaction(make_transaction(2)))
        amounts = [t.amount for t in asyncio.run(storage.list_transactions())]
        assert amounts == [Decimal("2"), Decimal("1")]

    def test_rows_are_scoped_by_user(self, sheets_client):
        alice = GoogleSheetsFinanceStorage("alice", client=sheets_client)
        bob = GoogleSheetsFinanceStorage("bob", client=sheets_client)

        created = asyncio.run(alice.create_category(make_category(NEW_ID, "Mascotas")))

        assert asyncio.run(bob.list_categories()) == []
        assert asyncio.run(bob.delete_category(created.id)) is False
        with pytest.raises(NotFoundError):
            asyncio.run(bob.update_category(created))
        assert [c.name for c in asyncio.run(alice.list_categories())] == ["Mascotas"]

    def test_update_rewrites_row(self, sheets_client):
        storage = GoogleSheetsFinanceStorage("u1", client=sheets_client)
        created = asyncio.run(storage.create_budget(make_budget(NEW_ID, "4", 400)))
        updated = created.model_copy(update={"amount": Decimal("650")})

        asyncio.run(storage.update_budget(updated))

        assert asyncio.run(storage.list_budgets()) == [updated]
        assert len(sheets_client.tables["budgets"].values) == 2

    def test_delete_removes_row(self, sheets_client):
        storage = GoogleSheetsFinanceStorage("u1", client=sheets_client)
        first = asyncio.run(storage.create_budget(make_budget(NEW_ID, "4", 400)))
        second = asyncio.run(storage.create_budget(make_budget(NEW_ID, "5", 200)))

        assert asyncio.run(storage.delete_budget(first.id)) is True
        assert asyncio.run(storage.list_budgets()) == [second]

    def test_gspread_failure_becomes_storage_error(self, sheets_client):
        storage = GoogleSheetsFinanceStorage("u1", client=sheets_client)
        sheets_client.tables["transactions"].fail_writes = True
        with pytest.raises(StorageError):
            asyncio.run(storage.create_transaction(make_transaction(1)))

    def test_replace_all_keeps_other_users_rows(self, sheets_client):
        alice = GoogleSheetsFinanceStorage("alice", client=sheets_client)
        bob = GoogleSheetsFinanceStorage("bob", client=sheets_client)
        asyncio.run(alice.create_transaction(make_transaction(1)))
        asyncio.run(alice.create_transaction(make_transaction(2)))
        bobs = asyncio.run(bob.create_transaction(make_transaction(99)))

        restored = [
            make_transaction(30, id_="t3"),
            make_transaction(20, type_=TransactionType.INCOME, id_="t2"),
        ]
        asyncio.run(alice.replace_all(transactions=restored))

        assert asyncio.run(alice.list_transactions()) == restored
        assert asyncio.run(bob.list_transactions()) == [bobs]


class TestGoogleSheetsProfileStorage:
    """Tests for profiles and credentials."""

    def test_create_and_lookup(self, sheets_client):
        profiles = GoogleSheetsProfileStorage(client=sheets_client)
        profile = Profile(id="u1", name="Ana")

        asyncio.run(profiles.create_profile(profile, "Ana@Example.com", "hash"))

        assert asyncio.run(profiles.get_credentials("ana@example.com")) == (
            "u1", "ana@example.com", "hash",
        )
        stored = asyncio.run(profiles.get_profile("u1"))
        assert stored.name == "Ana"
        assert stored.currency == "MXN"

    def test_duplicate_email(self, sheets_client):
        profiles = GoogleSheetsProfileStorage(client=sheets_client)
        asyncio.run(profiles.create_profile(Profile(id="u1", name="Ana"), "ana@example.com", "h"))
        with pytest.raises(DuplicateError):
            asyncio.run(profiles.create_profile(Profile(id="u2", name="Otra"), "ANA@example.com", "h"))

    def test_update_keeps_credentials(self, sheets_client):
        profiles = GoogleSheetsProfileStorage(client=sheets_client)
        profile = Profile(id="u1", name="Ana")
        asyncio.run(profiles.create_profile(profile, "ana@example.com", "secret-hash"))

        asyncio.run(profiles.update_profile(profile.model_copy(update={"name": "Ana María"})))

        assert asyncio.run(profiles.get_profile("u1")).name == "Ana María"
        assert asyncio.run(profiles.get_credentials("ana@example.com"))[2] == "secret-hash"

    def test_update_unknown_profile(self, sheets_client):
        profiles = GoogleSheetsProfileStorage(client=sheets_client)
        with pytest.raises(NotFoundError):
            asyncio.run(profiles.update_profile(Profile(id="nobody", name="X")))
