"""
Google Sheets Storage Implementation (hosted backend)

DESIGN DECISION: A Google Sheets spreadsheet is the hosted backend because:
1. Users can view their data directly in Sheets
2. No database server to run
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

Each entity type gets its own worksheet ("table"). Every row carries the
owner's user_id and a storage instance only ever reads or touches rows of
the user it was created for.

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions and no conflict detection: last write wins
- Limited query capabilities (we filter in Python)
- Only the connection is retried; writes are attempted once
"""

from datetime import datetime
from typing import Any, Optional, Type, TypeVar
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from pydantic import BaseModel, ValidationError
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from financeapp.config import GoogleSheetsSettings, get_settings
from financeapp.log import get_logger
from financeapp.models.finance import (
    Account,
    Budget,
    Category,
    FinancialGoal,
    Transaction,
)
from financeapp.models.user import Profile
from financeapp.services.storage.interface import (
    BackendConnectionError,
    DuplicateError,
    FinanceStorageInterface,
    NotFoundError,
    ProfileStorageInterface,
    StorageError,
)


logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Column layout per table. "user_id" scopes rows to their owner.
TABLE_COLUMNS = {
    "transactions": [
        "id",
        "user_id",
        "type",
        "amount",
        "category_id",
        "description",
        "date",
        "account_id",
        "recurring",
        "recurring_period",
        "created_at",
    ],
    "categories": ["id", "user_id", "name", "type", "color", "icon"],
    "budgets": ["id", "user_id", "category_id", "amount", "spent", "period"],
    "accounts": ["id", "user_id", "name", "type", "balance", "color"],
    "goals": [
        "id",
        "user_id",
        "name",
        "target_amount",
        "current_amount",
        "target_date",
        "description",
    ],
    "profiles": [
        "id",
        "email",
        "name",
        "avatar_url",
        "currency",
        "password_hash",
        "created_at",
        "updated_at",
    ],
}


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication (with retry) and worksheet lookup/creation.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets
        self._worksheets: dict[str, gspread.Worksheet] = {}

    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication. Missing
        configuration and a missing credentials file fail immediately;
        only the authorization call itself is retried.
        """
        if self._client is None:
            if not self._settings.is_configured:
                raise BackendConnectionError("Hosted backend is not configured")
            try:
                self._client = self._authorize()
            except FileNotFoundError:
                raise BackendConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise BackendConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(FileNotFoundError),
        reraise=True,
    )
    def _authorize(self) -> gspread.Client:
        scopes = [
            "https://www.googleapis.com/auth/spreadsheets",
            "https://www.googleapis.com/auth/drive",
        ]
        credentials = Credentials.from_service_account_file(
            self._settings.credentials_path,
            scopes=scopes,
        )
        return gspread.authorize(credentials)

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise BackendConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _sheet_name(self, table: str) -> str:
        return getattr(self._settings, f"{table}_sheet_name")

    def get_table(self, table: str) -> gspread.Worksheet:
        """Get or create the worksheet backing a table."""
        if table not in self._worksheets:
            spreadsheet = self.get_spreadsheet()
            columns = TABLE_COLUMNS[table]
            title = self._sheet_name(table)
            try:
                sheet = spreadsheet.worksheet(title)
            except gspread.WorksheetNotFound:
                # Create the sheet with headers
                sheet = spreadsheet.add_worksheet(
                    title=title,
                    rows=1000,
                    cols=len(columns),
                )
                sheet.append_row(columns)
            self._worksheets[table] = sheet
        return self._worksheets[table]


def _to_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class _SheetTable:
    """Row <-> model mapping for one worksheet."""

    def __init__(self, client: GoogleSheetsClient, table: str):
        self._client = client
        self.table = table
        self.columns = TABLE_COLUMNS[table]

    def sheet(self) -> gspread.Worksheet:
        return self._client.get_table(self.table)

    def to_row(self, entity: BaseModel, **meta: Any) -> list[str]:
        values = {**entity.model_dump(mode="json"), **meta}
        return [_to_cell(values.get(column)) for column in self.columns]

    def to_record(self, row: list[str]) -> dict[str, str]:
        # Handle missing trailing columns gracefully
        padded = list(row) + [""] * (len(self.columns) - len(row))
        return dict(zip(self.columns, padded))

    @staticmethod
    def to_model(model: Type[ModelT], record: dict[str, str]) -> ModelT:
        # Bookkeeping columns (user_id, password_hash, ...) are not model fields
        data = {
            key: value
            for key, value in record.items()
            if key in model.model_fields and value != ""
        }
        return model.model_validate(data)

    def rows(self) -> list[tuple[int, dict[str, str]]]:
        """(sheet row number, record) for every data row."""
        all_rows = self.sheet().get_all_values()
        # Row 1 is the header, data starts at row 2
        return [
            (idx, self.to_record(row))
            for idx, row in enumerate(all_rows[1:], start=2)
            if row and row[0]
        ]


class GoogleSheetsFinanceStorage(FinanceStorageInterface):
    """
    Google Sheets implementation of finance storage, scoped to one user.
    """

    def __init__(self, user_id: str, client: Optional[GoogleSheetsClient] = None):
        self._user_id = user_id
        self._client = client or GoogleSheetsClient()
        self._tables = {
            name: _SheetTable(self._client, name)
            for name in ("transactions", "categories", "budgets", "accounts", "goals")
        }

    @property
    def user_id(self) -> str:
        return self._user_id

    # -- helpers ------------------------------------------------------------

    def _owned(self, table: str) -> list[tuple[int, dict[str, str]]]:
        return [
            (idx, record)
            for idx, record in self._tables[table].rows()
            if record["user_id"] == self._user_id
        ]

    def _list(self, table: str, model: Type[ModelT]) -> list[ModelT]:
        try:
            records = self._owned(table)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list {table}: {e}")

        items = []
        for _, record in records:
            try:
                items.append(_SheetTable.to_model(model, record))
            except ValidationError:
                logger.warning("sheet_malformed_row", table=table, row_id=record.get("id"))
                continue  # Skip malformed rows
        return items

    def _create(self, table: str, entity: ModelT) -> ModelT:
        created = entity.model_copy(update={"id": str(uuid4())})
        try:
            row = self._tables[table].to_row(
                created,
                user_id=self._user_id,
                created_at=datetime.utcnow().isoformat(),
            )
            self._tables[table].sheet().append_row(row, value_input_option="RAW")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to create {table} row: {e}")
        return created

    def _update(self, table: str, entity: ModelT) -> ModelT:
        try:
            for idx, record in self._owned(table):
                if record["id"] == entity.id:
                    new_row = self._tables[table].to_row(
                        entity,
                        user_id=self._user_id,
                        created_at=record.get("created_at") or None,
                    )
                    self._tables[table].sheet().update(
                        range_name=f"A{idx}",
                        values=[new_row],
                        value_input_option="RAW",
                    )
                    return entity
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {table} row: {e}")

        raise NotFoundError(f"{table}: no row with id {entity.id}")

    def _delete(self, table: str, entity_id: str) -> bool:
        try:
            for idx, record in self._owned(table):
                if record["id"] == entity_id:
                    self._tables[table].sheet().delete_rows(idx)
                    return True
            return False
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {table} row: {e}")

    # -- transactions -------------------------------------------------------

    async def list_transactions(self) -> list[Transaction]:
        rows = self._list("transactions", Transaction)
        # Rows are appended in creation order; newest first
        rows.reverse()
        return rows

    async def create_transaction(self, transaction: Transaction) -> Transaction:
        return self._create("transactions", transaction)

    async def update_transaction(self, transaction: Transaction) -> Transaction:
        return self._update("transactions", transaction)

    async def delete_transaction(self, transaction_id: str) -> bool:
        return self._delete("transactions", transaction_id)

    # -- categories ---------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        return self._list("categories", Category)

    async def create_category(self, category: Category) -> Category:
        return self._create("categories", category)

    async def update_category(self, category: Category) -> Category:
        return self._update("categories", category)

    async def delete_category(self, category_id: str) -> bool:
        return self._delete("categories", category_id)

    # -- budgets ------------------------------------------------------------

    async def list_budgets(self) -> list[Budget]:
        return self._list("budgets", Budget)

    async def create_budget(self, budget: Budget) -> Budget:
        return self._create("budgets", budget)

    async def update_budget(self, budget: Budget) -> Budget:
        return self._update("budgets", budget)

    async def delete_budget(self, budget_id: str) -> bool:
        return self._delete("budgets", budget_id)

    # -- accounts -----------------------------------------------------------

    async def list_accounts(self) -> list[Account]:
        return self._list("accounts", Account)

    async def create_account(self, account: Account) -> Account:
        return self._create("accounts", account)

    async def update_account(self, account: Account) -> Account:
        return self._update("accounts", account)

    async def delete_account(self, account_id: str) -> bool:
        return self._delete("accounts", account_id)

    # -- goals --------------------------------------------------------------

    async def list_goals(self) -> list[FinancialGoal]:
        return self._list("goals", FinancialGoal)

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
            "transactions": list(reversed(transactions)) if transactions is not None else None,
            "categories": categories,
            "budgets": budgets,
            "accounts": accounts,
            "goals": goals,
        }
        now = datetime.utcnow().isoformat()

        for table, items in collections.items():
            if items is None:
                continue
            try:
                sheet = self._tables[table].sheet()
                # Delete bottom-up so row numbers stay valid
                for idx, _ in sorted(self._owned(table), reverse=True):
                    sheet.delete_rows(idx)
                rows = [
                    self._tables[table].to_row(item, user_id=self._user_id, created_at=now)
                    for item in items
                ]
                if rows:
                    sheet.append_rows(rows, value_input_option="RAW")
            except StorageError:
                raise
            except Exception as e:
                raise StorageError(f"Failed to replace {table}: {e}")


class GoogleSheetsProfileStorage(ProfileStorageInterface):
    """
    Google Sheets implementation of profile and credential storage.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._table = _SheetTable(self._client, "profiles")

    def _rows(self) -> list[tuple[int, dict[str, str]]]:
        try:
            return self._table.rows()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read profiles: {e}")

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        for _, record in self._rows():
            if record["id"] == user_id:
                return _SheetTable.to_model(Profile, record)
        return None

    async def get_credentials(self, email: str) -> Optional[tuple[str, str, str]]:
        wanted = email.strip().lower()
        for _, record in self._rows():
            if record["email"].strip().lower() == wanted:
                return record["id"], record["email"], record["password_hash"]
        return None

    async def create_profile(
        self,
        profile: Profile,
        email: str,
        password_hash: str,
    ) -> Profile:
        if await self.get_credentials(email) is not None:
            raise DuplicateError(f"E-mail already registered: {email}")
        try:
            row = self._table.to_row(profile, email=email.strip().lower(), password_hash=password_hash)
            self._table.sheet().append_row(row, value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to create profile: {e}")
        return profile

    async def update_profile(self, profile: Profile) -> Profile:
        for idx, record in self._rows():
            if record["id"] == profile.id:
                try:
                    row = self._table.to_row(
                        profile,
                        email=record["email"],
                        password_hash=record["password_hash"],
                    )
                    self._table.sheet().update(
                        range_name=f"A{idx}",
                        values=[row],
                        value_input_option="RAW",
                    )
                except Exception as e:
                    raise StorageError(f"Failed to update profile: {e}")
                return profile
        raise NotFoundError(f"Profile not found: {profile.id}")
