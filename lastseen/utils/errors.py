"""
Custom exceptions for the lastseen tracker.

Per-profile failures (``ProfileFetchError`` and subclasses) are caught by the
batch orchestrator and turned into sentinel results. Record store
failures abort the whole run.
"""

from typing import Any, Optional


class LastSeenException(Exception):
    """Base exception for all lastseen-specific errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            details: Optional dictionary with additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# Record Store (Google Sheets) Exceptions
# =============================================================================


class RecordStoreError(LastSeenException):
    """Base exception for Google Sheets operations."""

    pass


class SheetsAuthenticationError(RecordStoreError):
    """Credentials are missing, invalid or not authorized for the spreadsheet."""

    pass


class SpreadsheetNotFoundError(RecordStoreError):
    """Spreadsheet or sheet range not found."""

    def __init__(self, spreadsheet_id: str, range_name: Optional[str] = None) -> None:
        """Initialize with spreadsheet information."""
        message = f"Spreadsheet '{spreadsheet_id}' not found"
        details: dict[str, Any] = {"spreadsheet_id": spreadsheet_id}
        if range_name:
            message += f" (range {range_name})"
            details["range"] = range_name
        super().__init__(message, details)


class SheetsQuotaExceededError(RecordStoreError):
    """Google Sheets API quota exceeded."""

    def __init__(self, retry_after: Optional[int] = None) -> None:
        """Initialize with retry information."""
        message = "Google Sheets API quota exceeded"
        details = {}
        if retry_after:
            message += f". Retry after {retry_after} seconds"
            details["retry_after"] = retry_after
        super().__init__(message, details)


# =============================================================================
# Profile Fetch Exceptions
# =============================================================================


class ProfileFetchError(LastSeenException):
    """Fetching the rendered text of one profile page failed."""

    def __init__(self, identifier: str, reason: str) -> None:
        """Initialize with the failing identifier and reason."""
        super().__init__(
            f"Failed to load profile '{identifier}': {reason}",
            {"identifier": identifier, "reason": reason},
        )
        self.identifier = identifier
        self.reason = reason


class ProfileTimeoutError(ProfileFetchError):
    """Profile page did not load within the allowed time."""

    def __init__(self, identifier: str, timeout: float) -> None:
        """Initialize with timeout information."""
        super().__init__(identifier, f"timed out after {timeout:g} seconds")
        self.details["timeout"] = timeout


class BrowserNotStartedError(ProfileFetchError):
    """Fetch attempted before the browser session was started."""

    def __init__(self, identifier: str) -> None:
        super().__init__(identifier, "browser session not started")

