"""
Google Sheets Data Provider

DESIGN DECISION: A spreadsheet is a workable remote backend for a small
bookkeeping team because:
1. Treasurers can view and fix the ledger directly in Sheets
2. No database setup required
3. Built-in backup and sharing

TRADEOFFS:
- Not suitable for high-volume data (fine for a few delegations)
- Limited query capabilities (we filter in Python)
- gspread is blocking, so every call runs in a worker thread; that keeps
  the event loop free and lets the instrumentation deadline apply

One worksheet per entity, first row is the header. Rows are validated
into models here, at the boundary; a malformed row fails the call.
"""

import asyncio
from typing import Any, Optional

import gspread
from gspread.utils import rowcol_to_a1
from google.oauth2.service_account import Credentials
from pydantic import BaseModel, ValidationError

from ledger_sync.config import GoogleSheetsSettings, get_settings
from ledger_sync.models.entities import (
    Account,
    Category,
    Delegation,
    Transaction,
    TransactionPage,
    TransactionQuery,
)
from ledger_sync.services.provider.interface import (
    DataProvider,
    NotFoundError,
    ProviderFailure,
)


# Column layout of each worksheet
DELEGATION_COLUMNS = ["id", "organization_id", "name", "code"]
ACCOUNT_COLUMNS = [
    "id",
    "delegation_id",
    "name",
    "kind",
    "bank_name",
    "origin",
    "iban",
]
CATEGORY_COLUMNS = [
    "id",
    "organization_id",
    "name",
    "order",
    "kind",
    "emoji",
    "parent_id",
]
TRANSACTION_COLUMNS = [
    "id",
    "account_id",
    "category_id",
    "amount",
    "posted_on",
    "concept",
    "ignored",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet lookup. All methods block.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @property
    def settings(self) -> GoogleSheetsSettings:
        return self._settings

    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ProviderFailure(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ProviderFailure(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ProviderFailure(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str]) -> gspread.Worksheet:
        """Get or create a worksheet; new worksheets get a header row."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


def _clean_row(row: dict) -> dict:
    """Drop empty cells so optional fields fall back to their defaults."""
    return {
        key: value
        for key, value in row.items()
        if key and not (isinstance(value, str) and not value.strip())
    }


def _to_cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


class GoogleSheetsDataProvider(DataProvider):
    """
    Google Sheets implementation of the data provider.

    Cells are read as strings (no numeric guessing) and converted by
    the models, so amounts keep their exact decimal value.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _read_records(
        self,
        title: str,
        columns: list[str],
        model: type[BaseModel],
    ) -> list:
        try:
            sheet = self._client.get_worksheet(title, columns)
            rows = sheet.get_all_records(numericise_ignore=["all"])
        except ProviderFailure:
            raise
        except Exception as e:
            raise ProviderFailure(f"Failed to read worksheet {title}: {e}")

        records = []
        # Row 1 is the header, so data starts on row 2
        for row_number, row in enumerate(rows, start=2):
            cleaned = _clean_row(row)
            if not cleaned.get("id"):
                continue  # Blank line
            try:
                records.append(model.model_validate(cleaned))
            except ValidationError as e:
                raise ProviderFailure(
                    f"Invalid row {row_number} in worksheet {title}: {e}"
                )
        return records

    def _read_delegations(self) -> list[Delegation]:
        return self._read_records(
            self._client.settings.delegations_sheet_name,
            DELEGATION_COLUMNS,
            Delegation,
        )

    def _read_accounts(self) -> list[Account]:
        return self._read_records(
            self._client.settings.accounts_sheet_name,
            ACCOUNT_COLUMNS,
            Account,
        )

    def _read_categories(self) -> list[Category]:
        return self._read_records(
            self._client.settings.categories_sheet_name,
            CATEGORY_COLUMNS,
            Category,
        )

    def _read_transactions(self) -> list[Transaction]:
        return self._read_records(
            self._client.settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            Transaction,
        )

    async def list_delegations(self) -> list[Delegation]:
        """List all delegations in the spreadsheet."""
        return await asyncio.to_thread(self._read_delegations)

    async def list_accounts(self, delegation_id: str) -> list[Account]:
        """List the accounts of one delegation."""
        accounts = await asyncio.to_thread(self._read_accounts)
        return [a for a in accounts if a.delegation_id == delegation_id]

    async def list_categories(self, organization_id: str) -> list[Category]:
        """List the categories of one organization."""
        categories = await asyncio.to_thread(self._read_categories)
        return [c for c in categories if c.organization_id == organization_id]

    def _list_transactions(self, query: TransactionQuery) -> TransactionPage:
        account_ids = {
            a.id for a in self._read_accounts()
            if a.delegation_id == query.delegation_id
        }

        return query.apply(
            t for t in self._read_transactions() if t.account_id in account_ids
        )

    async def list_transactions(self, query: TransactionQuery) -> TransactionPage:
        """List one page of a delegation's transactions."""
        return await asyncio.to_thread(self._list_transactions, query)

    def _update_transaction(self, transaction_id: str, patch: dict[str, Any]) -> Transaction:
        title = self._client.settings.transactions_sheet_name
        try:
            sheet = self._client.get_worksheet(title, TRANSACTION_COLUMNS)
            all_rows = sheet.get_all_values()
        except ProviderFailure:
            raise
        except Exception as e:
            raise ProviderFailure(f"Failed to read worksheet {title}: {e}")

        if not all_rows:
            raise NotFoundError(f"Transaction not found: {transaction_id}")

        header = all_rows[0]
        unknown = sorted(set(patch) - set(header))
        if unknown:
            raise ProviderFailure(
                f"No column for {', '.join(unknown)} in worksheet {title}"
            )
        id_col = header.index("id") if "id" in header else 0

        # Start from 2 (row 1 is header)
        for idx, row in enumerate(all_rows[1:], start=2):
            if len(row) <= id_col or row[id_col] != transaction_id:
                continue

            current = _clean_row(dict(zip(header, row)))
            current.update(patch)
            current["id"] = transaction_id
            try:
                updated = Transaction.model_validate(current)
            except ValidationError as e:
                raise ProviderFailure(f"Invalid transaction update: {e}")

            # Whole row in one write; untouched cells keep their text
            values = updated.model_dump(mode="json")
            cells = row + [""] * (len(header) - len(row))
            new_row = [
                _to_cell(values.get(column)) if column in patch else cells[col_idx]
                for col_idx, column in enumerate(header)
            ]
            try:
                sheet.update(
                    range_name=(
                        f"{rowcol_to_a1(idx, 1)}:{rowcol_to_a1(idx, len(header))}"
                    ),
                    values=[new_row],
                )
            except Exception as e:
                raise ProviderFailure(f"Failed to update transaction: {e}")
            return updated

        raise NotFoundError(f"Transaction not found: {transaction_id}")

    async def update_transaction(
        self,
        transaction_id: str,
        patch: dict[str, Any],
    ) -> Transaction:
        """Write the patched fields of one transaction row."""
        return await asyncio.to_thread(self._update_transaction, transaction_id, patch)
