"""
Tests for the Google Sheets record store client.
"""

from unittest.mock import MagicMock

import socket

import httplib2
import pytest
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError

from lastseen.google_sheets.auth import ServiceAccountAuth
from lastseen.google_sheets.client import GoogleSheetsClient, range_for
from lastseen.utils.errors import (
    RecordStoreError,
    SheetsAuthenticationError,
    SheetsQuotaExceededError,
    SpreadsheetNotFoundError,
)


def make_http_error(status, headers=None):
    resp = httplib2.Response({"status": status, **(headers or {})})
    return HttpError(resp, b'{"error": {"message": "nope"}}')


class InMemorySheet:
    """Minimal stand-in for spreadsheets().values() backed by a dict of columns."""

    def __init__(self, columns):
        self.columns = columns
        self.updates = []

    def _parse(self, range_name):
        _, cells = range_name.split("!")
        start, end = cells.split(":")
        column = start.rstrip("0123456789")
        start_row = int(start[len(column):])
        end_row = int(end[len(column):]) if end[len(column):] else None
        return column, start_row, end_row

    def get(self, spreadsheetId, range, majorDimension="ROWS"):
        column, start_row, end_row = self._parse(range)
        cells = self.columns.get(column, {})
        last = end_row or max(cells, default=start_row - 1)
        rows = [[cells[row]] if cells.get(row) else [] for row in range_(start_row, last)]
        while rows and not rows[-1]:
            rows.pop()
        request = MagicMock()
        request.execute.return_value = {"values": rows} if rows else {}
        return request

    def update(self, spreadsheetId, range, valueInputOption, body):
        column, start_row, end_row = self._parse(range)
        assert end_row - start_row + 1 == len(body["values"])
        self.updates.append((range, valueInputOption, body))
        for offset, row in enumerate(body["values"]):
            self.columns.setdefault(column, {})[start_row + offset] = row[0]
        request = MagicMock()
        request.execute.return_value = {"updatedRows": len(body["values"])}
        return request


def range_(start, end):
    return range(start, end + 1)


@pytest.fixture
def auth_manager():
    auth = MagicMock(spec=ServiceAccountAuth)
    auth.is_authenticated = True
    return auth


@pytest.fixture
def sheets_client(auth_manager, mock_sheets_service):
    client = GoogleSheetsClient(
        auth_manager=auth_manager,
        spreadsheet_id="sheet-123",
        sheet_name="Masterlist",
        identifier_column="B",
        result_column="E",
        start_row=5,
    )
    client._service = mock_sheets_service
    return client


def with_sheet(client, sheet):
    service = MagicMock()
    service.spreadsheets.return_value.values.return_value = sheet
    client._service = service
    return sheet


class TestRangeFor:
    def test_open_ended(self):
        assert range_for("Masterlist", "B", 5) == "Masterlist!B5:B"

    def test_bounded(self):
        assert range_for("Masterlist", "E", 5, 7) == "Masterlist!E5:E7"


class TestGoogleSheetsClient:
    """Test reading identifiers and writing results."""

    @pytest.mark.asyncio
    async def test_read_identifiers(self, sheets_client, mock_sheets_service):
        values = mock_sheets_service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.return_value = {
            "values": [["STEAM_0:1:111"], ["STEAM_0:1:222"]]
        }

        identifiers = await sheets_client.read_identifiers()

        assert identifiers == ["STEAM_0:1:111", "STEAM_0:1:222"]
        values.get.assert_called_once_with(
            spreadsheetId="sheet-123",
            range="Masterlist!B5:B",
            majorDimension="ROWS",
        )

    @pytest.mark.asyncio
    async def test_blank_rows_keep_their_position(self, sheets_client, mock_sheets_service):
        values = mock_sheets_service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.return_value = {"values": [["a"], [], ["c"]]}

        assert await sheets_client.read_identifiers() == ["a", "", "c"]

    @pytest.mark.asyncio
    async def test_empty_range(self, sheets_client, mock_sheets_service):
        values = mock_sheets_service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.return_value = {}

        assert await sheets_client.read_identifiers() == []

    @pytest.mark.asyncio
    async def test_write_results_single_batched_update(self, sheets_client, mock_sheets_service):
        values = mock_sheets_service.spreadsheets.return_value.values.return_value
        values.update.return_value.execute.return_value = {"updatedRows": 3}

        written = await sheets_client.write_results(
            ["Last Seen 3 Days Ago", "Error loading", "No valid dates"]
        )

        assert written == 3
        values.update.assert_called_once_with(
            spreadsheetId="sheet-123",
            range="Masterlist!E5:E7",
            valueInputOption="RAW",
            body={"values": [["Last Seen 3 Days Ago"], ["Error loading"], ["No valid dates"]]},
        )

    @pytest.mark.asyncio
    async def test_write_nothing_for_empty_results(self, sheets_client, mock_sheets_service):
        values = mock_sheets_service.spreadsheets.return_value.values.return_value

        assert await sheets_client.write_results([]) == 0
        values.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_round_trip(self, sheets_client):
        """Written strings read back verbatim, row for row."""
        sheet = with_sheet(
            sheets_client,
            InMemorySheet({"B": {5: "a", 6: "b", 7: "c"}}),
        )
        rendered = ["Last Seen -1 Days Ago", "Error loading", "No valid dates"]

        identifiers = await sheets_client.read_identifiers()
        await sheets_client.write_results(rendered)

        assert await sheets_client.read_results(len(identifiers)) == rendered
        assert sheet.updates[0][0] == "Masterlist!E5:E7"

    @pytest.mark.parametrize(
        "status, error_type",
        [
            (401, SheetsAuthenticationError),
            (403, SheetsAuthenticationError),
            (404, SpreadsheetNotFoundError),
            (429, SheetsQuotaExceededError),
            (500, RecordStoreError),
        ],
    )
    @pytest.mark.asyncio
    async def test_http_errors_are_translated(
        self, sheets_client, mock_sheets_service, status, error_type
    ):
        values = mock_sheets_service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.side_effect = make_http_error(status)

        with pytest.raises(error_type):
            await sheets_client.read_identifiers()

    @pytest.mark.asyncio
    async def test_quota_error_carries_retry_after(self, sheets_client, mock_sheets_service):
        values = mock_sheets_service.spreadsheets.return_value.values.return_value
        values.update.return_value.execute.side_effect = make_http_error(
            429, {"retry-after": "30"}
        )

        with pytest.raises(SheetsQuotaExceededError) as exc_info:
            await sheets_client.write_results(["x"])

        assert exc_info.value.details == {"retry_after": 30}

    @pytest.mark.asyncio
    async def test_rejected_credentials_on_refresh(self, sheets_client, mock_sheets_service):
        values = mock_sheets_service.spreadsheets.return_value.values.return_value
        values.get.return_value.execute.side_effect = RefreshError(
            "invalid_grant: Invalid JWT Signature."
        )

        with pytest.raises(SheetsAuthenticationError, match="Invalid JWT Signature"):
            await sheets_client.read_identifiers()

    @pytest.mark.parametrize(
        "error",
        [
            TransportError("Failed to connect to oauth2.googleapis.com"),
            socket.timeout("timed out"),
            ConnectionResetError(104, "Connection reset by peer"),
            httplib2.ServerNotFoundError("Unable to find the server at sheets.googleapis.com"),
        ],
    )
    @pytest.mark.asyncio
    async def test_network_failures_are_record_store_errors(
        self, sheets_client, mock_sheets_service, error
    ):
        values = mock_sheets_service.spreadsheets.return_value.values.return_value
        values.update.return_value.execute.side_effect = error

        with pytest.raises(RecordStoreError) as exc_info:
            await sheets_client.write_results(["Last Seen 3 Days Ago"])

        assert type(exc_info.value) is RecordStoreError
        assert exc_info.value.details == {"range": "Masterlist!E5:E5"}

    @pytest.mark.asyncio
    async def test_requires_connection(self, auth_manager):
        client = GoogleSheetsClient(auth_manager=auth_manager, spreadsheet_id="sheet-123")

        with pytest.raises(RecordStoreError, match="Not connected"):
            await client.read_identifiers()


class TestServiceAccountAuth:
    @pytest.mark.asyncio
    async def test_missing_key_file(self, tmp_path):
        auth = ServiceAccountAuth(tmp_path / "missing.json")

        with pytest.raises(SheetsAuthenticationError, match="not found"):
            await auth.authenticate()
        assert not auth.is_authenticated

    @pytest.mark.asyncio
    async def test_invalid_key_file(self, tmp_path):
        key_file = tmp_path / "service_account.json"
        key_file.write_text('{"type": "service_account"}')
        auth = ServiceAccountAuth(key_file)

        with pytest.raises(SheetsAuthenticationError, match="authentication failed"):
            await auth.authenticate()
