"""
Configuration for the lastseen tracker.

Settings are read from environment variables prefixed with ``LASTSEEN_``
and from an optional ``.env`` file.
"""

from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="LASTSEEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Logging
    log_level: str = Field("INFO", description="Root log level")
    log_file_path: Optional[Path] = Field(None, description="Optional JSON log file")
    dev_mode: bool = Field(False, description="Show locals in tracebacks")

    # Google Sheets
    service_account_path: Path = Field(
        Path("/etc/secrets/service_account.json"),
        description="Service account key file",
    )
    spreadsheet_id: str = Field(
        "1vIqx77znUB9gF6zlyXgpk1Tjvogf4xv4zi6qf7Hcu0Q",
        min_length=1,
        description="Spreadsheet holding the identifier list",
    )
    sheet_name: str = Field("Masterlist", min_length=1)
    identifier_column: str = Field("B", description="Column holding identifiers")
    result_column: str = Field("E", description="Column receiving results")
    start_row: int = Field(5, ge=1, description="First data row, shared by reads and writes")

    # Profile fetching
    profile_url_template: str = Field(
        "https://superiorservers.co/ssrp/cwrp/characters/{identifier}",
        description="Profile URL, formatted with the identifier",
    )
    navigation_timeout_seconds: float = Field(20.0, gt=0)
    settle_delay_seconds: float = Field(3.0, ge=0)
    fetch_timeout_seconds: float = Field(45.0, gt=0)
    max_concurrency: int = Field(1, ge=1, le=16)
    headless: bool = True

    # Extraction limits for untrusted page text
    max_scan_chars: int = Field(2_000_000, ge=1)
    max_matches: int = Field(10_000, ge=1)

    # Trigger server
    host: str = "0.0.0.0"
    port: int = Field(3000, validation_alias=AliasChoices("LASTSEEN_PORT", "PORT", "port"))

    @field_validator("identifier_column", "result_column")
    @classmethod
    def validate_column(cls, v: str) -> str:
        """Columns are A1-notation letters."""
        v = v.strip().upper()
        if not v.isalpha():
            raise ValueError(f"column must be letters only, got {v!r}")
        return v

    @field_validator("profile_url_template")
    @classmethod
    def validate_url_template(cls, v: str) -> str:
        if "{identifier}" not in v:
            raise ValueError("profile_url_template must contain '{identifier}'")
        return v

    @model_validator(mode="after")
    def validate_timeouts(self) -> "Settings":
        """The per-fetch budget must cover navigation plus the settle delay."""
        if self.fetch_timeout_seconds <= self.navigation_timeout_seconds + self.settle_delay_seconds:
            raise ValueError(
                "fetch_timeout_seconds must be greater than "
                "navigation_timeout_seconds + settle_delay_seconds"
            )
        return self

    def get_log_file_path(self) -> Optional[Path]:
        """Return the log file path, creating its directory if needed."""
        if self.log_file_path:
            self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        return self.log_file_path


# Singleton instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
