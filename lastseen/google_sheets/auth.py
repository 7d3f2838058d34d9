"""
Google Sheets service account authentication.

The tracker runs unattended, so it authenticates server-to-server with a
service account key file rather than an interactive OAuth2 flow.
"""

from pathlib import Path
from typing import List, Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account

from lastseen.config import get_settings
from lastseen.utils.errors import SheetsAuthenticationError
from lastseen.utils.logging import get_logger

logger = get_logger(__name__)

# Google Sheets API scopes
SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
]


class ServiceAccountAuth:
    """Handle Google Sheets service account authentication."""

    def __init__(
        self,
        service_account_path: Optional[Path] = None,
        scopes: Optional[List[str]] = None,
    ) -> None:
        """
        Initialize service account authentication.

        Args:
            service_account_path: Path to service account JSON key file
            scopes: OAuth2 scopes (defaults to SCOPES)
        """
        self.service_account_path = Path(
            service_account_path or get_settings().service_account_path
        )
        self.scopes = scopes or SCOPES

        self._credentials: Optional[service_account.Credentials] = None

    @property
    def credentials(self) -> Optional[service_account.Credentials]:
        """Get current credentials."""
        return self._credentials

    @property
    def is_authenticated(self) -> bool:
        return self._credentials is not None

    async def authenticate(self) -> service_account.Credentials:
        """
        Load credentials from the service account key file.

        Returns:
            Service account credentials

        Raises:
            SheetsAuthenticationError: If the key file is missing or invalid
        """
        logger.info(f"Loading service account credentials from: {self.service_account_path}")

        if not self.service_account_path.exists():
            raise SheetsAuthenticationError(
                f"Service account file not found: {self.service_account_path}",
                {"path": str(self.service_account_path)},
            )

        try:
            self._credentials = service_account.Credentials.from_service_account_file(
                str(self.service_account_path),
                scopes=self.scopes,
            )
        except (GoogleAuthError, ValueError, KeyError, OSError) as e:
            logger.error(f"Service account authentication failed: {e}")
            raise SheetsAuthenticationError(
                f"Service account authentication failed: {str(e)}",
                {"path": str(self.service_account_path)},
            )

        logger.info("Successfully authenticated with service account")
        return self._credentials

