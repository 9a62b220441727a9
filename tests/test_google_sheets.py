"""
Tests for the Google Sheets provider

No network: the provider is given a client whose worksheets are
plain in-memory tables shaped like gspread's responses.
"""

from datetime import date
from decimal import Decimal

import gspread
import pytest
from gspread.utils import a1_to_rowcol

from ledger_sync.config import GoogleSheetsSettings
from ledger_sync.models.entities import AccountKind, TransactionQuery
from ledger_sync.services.provider import NotFoundError, ProviderFailure
from ledger_sync.services.provider.google_sheets import (
    ACCOUNT_COLUMNS,
    TRANSACTION_COLUMNS,
    GoogleSheetsClient,
    GoogleSheetsDataProvider,
)


class FakeWorksheet:
    def __init__(self, values):
        self.values = values
        self.updates = []
        self.appended = []

    def get_all_records(self, **kwargs):
        header = self.values[0]
        return [
            dict(zip(header, row + [""] * (len(header) - len(row))))
            for row in self.values[1:]
        ]

    def get_all_values(self):
        return [list(row) for row in self.values]

    def update(self, range_name=None, values=None, **kwargs):
        self.updates.append((range_name, values))
        row, col = a1_to_rowcol(range_name.split(":")[0])
        for offset, value in enumerate(values[0]):
            self.values[row - 1][col - 1 + offset] = value

    def append_row(self, values):
        self.appended.append(values)


class FakeSpreadsheet:
    def __init__(self, worksheets=None):
        self.worksheets = worksheets or {}
        self.added = []

    def worksheet(self, title):
        if title not in self.worksheets:
            raise gspread.WorksheetNotFound(title)
        return self.worksheets[title]

    def add_worksheet(self, title, rows, cols):
        sheet = FakeWorksheet([])
        self.added.append((title, rows, cols))
        self.worksheets[title] = sheet
        return sheet


class FakeSheetsClient:
    def __init__(self, settings, worksheets):
        self.settings = settings
        self.worksheets = worksheets

    def get_worksheet(self, title, columns):
        return self.worksheets[title]


@pytest.fixture
def sheets_settings(tmp_path):
    credentials = tmp_path / "credentials.json"
    credentials.write_text("{}")
    return GoogleSheetsSettings(credentials_path=str(credentials), spreadsheet_id="sheet-123")


@pytest.fixture
def worksheets():
    return {
        "Delegations": FakeWorksheet([
            ["id", "organization_id", "name", "code"],
            ["del-1", "org-1", "Madrid", ""],
        ]),
        "Accounts": FakeWorksheet([
            ACCOUNT_COLUMNS,
            ["acc-1", "del-1", "Main", "banco", "Acme", "conectada", ""],
            ["acc-2", "del-1", "Petty Cash", "caja", "", "", ""],
            ["", "", "", "", "", "", ""],
            ["acc-3", "del-2", "Other", "bank", "", "", ""],
        ]),
        "Categories": FakeWorksheet([
            ["id", "organization_id", "name", "order", "kind", "emoji", "parent_id"],
            ["cat-1", "org-1", "Rent", "2", "gasto", "", ""],
        ]),
        "Transactions": FakeWorksheet([
            TRANSACTION_COLUMNS,
            ["tx-1", "acc-1", "cat-1", "-800.10", "2024-03-05", "Rent", "FALSE"],
            ["tx-2", "acc-2", "", "12.34", "2024-03-07", "Stamps", "FALSE"],
            ["tx-3", "acc-3", "", "5", "2024-03-09", "Elsewhere", "FALSE"],
        ]),
    }


@pytest.fixture
def provider(sheets_settings, worksheets):
    return GoogleSheetsDataProvider(FakeSheetsClient(sheets_settings, worksheets))


class TestGoogleSheetsDataProvider:
    """Tests for reading and writing ledger rows."""

    @pytest.mark.asyncio
    async def test_list_delegations(self, provider):
        """Test reading delegations with a blank optional cell."""
        [delegation] = await provider.list_delegations()
        assert delegation.id == "del-1"
        assert delegation.code is None

    @pytest.mark.asyncio
    async def test_list_accounts(self, provider):
        """Test that accounts are scoped and upstream spellings accepted."""
        accounts = await provider.list_accounts("del-1")

        assert [a.id for a in accounts] == ["acc-1", "acc-2"]
        assert accounts[0].kind == AccountKind.BANK
        assert accounts[1].kind == AccountKind.CASH_BOX
        assert accounts[1].bank_name is None

    @pytest.mark.asyncio
    async def test_list_categories(self, provider):
        """Test that numeric cells are converted by the model."""
        [category] = await provider.list_categories("org-1")
        assert category.order == 2

    @pytest.mark.asyncio
    async def test_list_transactions(self, provider):
        """Test scoping through accounts, exact amounts and ordering."""
        page = await provider.list_transactions(TransactionQuery(delegation_id="del-1"))

        assert [t.id for t in page.items] == ["tx-2", "tx-1"]
        assert page.items[0].amount == Decimal("12.34")
        assert page.items[0].category_id is None
        assert page.items[1].posted_on == date(2024, 3, 5)
        assert page.total == 2

    @pytest.mark.asyncio
    async def test_invalid_row_fails_the_call(self, provider, worksheets):
        """Test that a malformed row raises with its row number."""
        worksheets["Accounts"].values.append(["acc-9", "del-1", "Bad", "crypto", "", "", ""])

        with pytest.raises(ProviderFailure, match="Invalid row 6 in worksheet Accounts"):
            await provider.list_accounts("del-1")

    @pytest.mark.asyncio
    async def test_read_failure_is_wrapped(self, sheets_settings):
        """Test that a gspread error becomes a ProviderFailure."""
        class BrokenClient(FakeSheetsClient):
            def get_worksheet(self, title, columns):
                raise RuntimeError("quota exceeded")

        provider = GoogleSheetsDataProvider(BrokenClient(sheets_settings, {}))

        with pytest.raises(ProviderFailure, match="quota exceeded"):
            await provider.list_delegations()

    @pytest.mark.asyncio
    async def test_update_transaction_writes_row_once(self, provider, worksheets):
        """Test that an update is a single range write of the patched row."""
        updated = await provider.update_transaction("tx-2", {"category_id": "cat-1", "ignored": True})

        assert updated.category_id == "cat-1"
        assert updated.ignored is True
        assert updated.amount == Decimal("12.34")
        assert worksheets["Transactions"].updates == [
            ("A3:G3", [["tx-2", "acc-2", "cat-1", "12.34", "2024-03-07", "Stamps", "True"]]),
        ]

    @pytest.mark.asyncio
    async def test_update_keeps_untouched_cell_text(self, provider, worksheets):
        """Test that cells outside the patch are written back exactly as read."""
        await provider.update_transaction("tx-1", {"concept": "April rent"})

        assert worksheets["Transactions"].values[1] == [
            "tx-1", "acc-1", "cat-1", "-800.10", "2024-03-05", "April rent", "FALSE",
        ]

    @pytest.mark.asyncio
    async def test_update_rejects_fields_without_column(self, provider, worksheets):
        """Test that a patch field the worksheet cannot store is refused."""
        with pytest.raises(ProviderFailure, match="No column for notes"):
            await provider.update_transaction("tx-2", {"notes": "receipt lost"})

        assert worksheets["Transactions"].updates == []
        page = await provider.list_transactions(TransactionQuery(delegation_id="del-1"))
        assert all("notes" not in t.model_dump() for t in page.items)

    @pytest.mark.asyncio
    async def test_update_missing_transaction(self, provider, worksheets):
        """Test that an unknown id raises NotFoundError and writes nothing."""
        with pytest.raises(NotFoundError):
            await provider.update_transaction("tx-missing", {"ignored": True})
        assert worksheets["Transactions"].updates == []

    @pytest.mark.asyncio
    async def test_update_with_invalid_value(self, provider, worksheets):
        """Test that an invalid patch is rejected before writing."""
        with pytest.raises(ProviderFailure, match="Invalid transaction update"):
            await provider.update_transaction("tx-1", {"amount": "lots"})
        assert worksheets["Transactions"].updates == []


class TestGoogleSheetsClient:
    """Tests for worksheet lookup and connection errors."""

    def test_missing_worksheet_is_created_with_header(self, sheets_settings):
        """Test get-or-create of a worksheet."""
        client = GoogleSheetsClient(sheets_settings)
        spreadsheet = FakeSpreadsheet()
        client._spreadsheet = spreadsheet

        sheet = client.get_worksheet("Accounts", ACCOUNT_COLUMNS)

        assert spreadsheet.added == [("Accounts", 1000, len(ACCOUNT_COLUMNS))]
        assert sheet.appended == [ACCOUNT_COLUMNS]

    def test_existing_worksheet_is_reused(self, sheets_settings, worksheets):
        """Test that an existing worksheet is returned as is."""
        client = GoogleSheetsClient(sheets_settings)
        client._spreadsheet = FakeSpreadsheet(worksheets)

        assert client.get_worksheet("Accounts", ACCOUNT_COLUMNS) is worksheets["Accounts"]

    def test_bad_credentials_raise_provider_failure(self, sheets_settings):
        """Test that unusable credentials surface as ProviderFailure."""
        client = GoogleSheetsClient(sheets_settings)

        with pytest.raises(ProviderFailure, match="Failed to connect"):
            client.connect()
