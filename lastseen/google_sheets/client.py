"""
Google Sheets API client for the record store.

Identifiers are read from one column and results written to another, both
starting at the same row, so row ``k`` of the input lines up with row ``k``
of the output.
"""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import httplib2
from google.auth.exceptions import GoogleAuthError, TransportError
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError

from lastseen.config import get_settings
from lastseen.google_sheets.auth import ServiceAccountAuth
from lastseen.utils.errors import (
    RecordStoreError,
    SheetsAuthenticationError,
    SheetsQuotaExceededError,
    SpreadsheetNotFoundError,
)
from lastseen.utils.logging import get_logger, log_performance

logger = get_logger(__name__)

VALUE_INPUT_OPTION = "RAW"


def range_for(sheet_name: str, column: str, start_row: int, end_row: Optional[int] = None) -> str:
    """
    Build an A1 range for a single column.

    ``range_for("Masterlist", "B", 5)`` gives ``Masterlist!B5:B`` (open ended)
    and ``range_for("Masterlist", "E", 5, 7)`` gives ``Masterlist!E5:E7``.
    """
    end = f"{column}{end_row}" if end_row is not None else column
    return f"{sheet_name}!{column}{start_row}:{end}"


class GoogleSheetsClient:
    """Client for reading identifiers and writing results."""

    def __init__(
        self,
        auth_manager: Optional[ServiceAccountAuth] = None,
        spreadsheet_id: Optional[str] = None,
        sheet_name: Optional[str] = None,
        identifier_column: Optional[str] = None,
        result_column: Optional[str] = None,
        start_row: Optional[int] = None,
    ) -> None:
        """
        Initialize Google Sheets client.

        Args:
            auth_manager: Authentication manager
            spreadsheet_id: Target spreadsheet ID
            sheet_name: Sheet (tab) name
            identifier_column: Column holding identifiers
            result_column: Column receiving results
            start_row: First data row for both columns
        """
        settings = get_settings()
        self.auth_manager = auth_manager or ServiceAccountAuth()
        self.spreadsheet_id = spreadsheet_id or settings.spreadsheet_id
        self.sheet_name = sheet_name or settings.sheet_name
        self.identifier_column = identifier_column or settings.identifier_column
        self.result_column = result_column or settings.result_column
        self.start_row = start_row or settings.start_row

        self._service: Optional[Resource] = None

    @property
    def identifier_range(self) -> str:
        return range_for(self.sheet_name, self.identifier_column, self.start_row)

    def result_range(self, count: Optional[int] = None) -> str:
        end_row = self.start_row + count - 1 if count is not None else None
        return range_for(self.sheet_name, self.result_column, self.start_row, end_row)

    async def connect(self) -> None:
        """
        Authorize and build the Sheets API service.

        Raises:
            SheetsAuthenticationError: If authentication fails
        """
        if not self.auth_manager.is_authenticated:
            await self.auth_manager.authenticate()

        try:
            self._service = build(
                "sheets",
                "v4",
                credentials=self.auth_manager.credentials,
                cache_discovery=False,
            )
            logger.info("Connected to Google Sheets API")
        except Exception as e:
            logger.error(f"Failed to build Sheets service: {e}")
            raise RecordStoreError(f"Failed to connect to Sheets API: {str(e)}")

    def ensure_connected(self) -> None:
        if not self._service:
            raise RecordStoreError("Not connected to Sheets API. Call connect() first.")

    def _translate_http_error(self, e: HttpError, range_name: str) -> RecordStoreError:
        status = e.resp.status
        if status in (401, 403):
            return SheetsAuthenticationError(
                f"Not authorized for spreadsheet: {str(e)}",
                {"spreadsheet_id": self.spreadsheet_id, "status": status},
            )
        if status == 404:
            return SpreadsheetNotFoundError(self.spreadsheet_id, range_name)
        if status == 429:
            retry_after = e.resp.get("retry-after")
            return SheetsQuotaExceededError(retry_after=int(retry_after) if retry_after else None)
        return RecordStoreError(
            f"Sheets request failed: {str(e)}",
            {"range": range_name, "status": status},
        )

    async def _execute(self, request: Any, range_name: str) -> Dict[str, Any]:
        try:
            return await asyncio.get_event_loop().run_in_executor(None, request.execute)
        except HttpError as e:
            logger.error(f"Sheets request for {range_name} failed: {e}")
            raise self._translate_http_error(e, range_name)
        except TransportError as e:
            logger.error(f"Could not reach Google while authorizing {range_name}: {e}")
            raise RecordStoreError(f"Sheets request failed: {str(e)}", {"range": range_name})
        except GoogleAuthError as e:
            # Token refresh rejected, e.g. a revoked key
            logger.error(f"Sheets credentials rejected for {range_name}: {e}")
            raise SheetsAuthenticationError(
                f"Service account credentials rejected: {str(e)}",
                {"spreadsheet_id": self.spreadsheet_id},
            )
        except (OSError, httplib2.HttpLib2Error) as e:
            logger.error(f"Sheets request for {range_name} failed: {e}")
            raise RecordStoreError(f"Sheets request failed: {str(e)}", {"range": range_name})

    async def _get_values(self, range_name: str) -> List[List[Any]]:
        self.ensure_connected()
        request = self._service.spreadsheets().values().get(
            spreadsheetId=self.spreadsheet_id,
            range=range_name,
            majorDimension="ROWS",
        )
        response = await self._execute(request, range_name)
        return response.get("values", [])

    @log_performance
    async def read_identifiers(self) -> List[str]:
        """
        Read the identifier column.

        Blank rows between identifiers are kept as empty strings so that
        positions match the result column. The API omits trailing blank rows.

        Returns:
            Identifiers in row order
        """
        logger.info("Reading identifiers from sheet...")
        rows = await self._get_values(self.identifier_range)
        identifiers = [str(row[0]) if row else "" for row in rows]
        logger.info(f"Found {len(identifiers)} identifiers")
        return identifiers

    @log_performance
    async def write_results(self, values: Sequence[str]) -> int:
        """
        Write results to the result column in one request.

        Args:
            values: Rendered results, aligned with the identifiers read

        Returns:
            Number of rows written
        """
        self.ensure_connected()

        if not values:
            logger.info("No results to write")
            return 0

        range_name = self.result_range(len(values))
        logger.info(f"Writing {len(values)} results to {range_name}...")

        request = self._service.spreadsheets().values().update(
            spreadsheetId=self.spreadsheet_id,
            range=range_name,
            valueInputOption=VALUE_INPUT_OPTION,
            body={"values": [[value] for value in values]},
        )
        response = await self._execute(request, range_name)
        return int(response.get("updatedRows", len(values)))

    async def read_results(self, count: Optional[int] = None) -> List[str]:
        """
        Read back the result column.

        Args:
            count: Number of rows to read (open ended if None)

        Returns:
            Result strings in row order
        """
        rows = await self._get_values(self.result_range(count))
        return [str(row[0]) if row else "" for row in rows]

