"""
Core data models for the lastseen tracker.

This module defines the Pydantic models exchanged between the extractor,
the classifier, the batch orchestrator and the record store.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field, model_validator

FORMATTED_TEMPLATE = "Last Seen {days} Days Ago"
NO_DATES_TEXT = "No valid dates"
FETCH_ERROR_TEXT = "Error loading"


# =============================================================================
# Enums
# =============================================================================


class ResultStatus(str, Enum):
    """Outcome of processing one profile."""

    FORMATTED = "formatted"
    NO_DATES = "no_dates"
    FETCH_ERROR = "fetch_error"


class ProfileState(str, Enum):
    """Per-profile processing state within a run."""

    PENDING = "pending"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    CLASSIFIED = "classified"
    FAILED = "failed"


class RunStatus(str, Enum):
    """Status of a whole run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# Result Models
# =============================================================================


class LastSeenResult(BaseModel):
    """Result entry for one identifier."""

    status: ResultStatus = Field(..., description="Classification outcome")
    days_ago: Optional[int] = Field(
        None,
        description="Whole 24h periods since the latest timestamp (may be negative)",
    )
    latest: Optional[datetime] = Field(None, description="Most recent timestamp found on the page")
    error_message: Optional[str] = Field(None, description="Failure reason for fetch errors")

    @model_validator(mode="after")
    def validate_days(self) -> "LastSeenResult":
        """Only formatted results carry a day count."""
        if self.status == ResultStatus.FORMATTED and self.days_ago is None:
            raise ValueError("formatted results require days_ago")
        if self.status != ResultStatus.FORMATTED and self.days_ago is not None:
            raise ValueError(f"{self.status.value} results cannot carry days_ago")
        return self

    @classmethod
    def formatted(cls, days_ago: int, latest: Optional[datetime] = None) -> "LastSeenResult":
        return cls(status=ResultStatus.FORMATTED, days_ago=days_ago, latest=latest)

    @classmethod
    def no_dates(cls) -> "LastSeenResult":
        return cls(status=ResultStatus.NO_DATES)

    @classmethod
    def fetch_error(cls, reason: Optional[str] = None) -> "LastSeenResult":
        return cls(status=ResultStatus.FETCH_ERROR, error_message=reason)

    def render(self) -> str:
        """Render the string written to the record store."""
        if self.status == ResultStatus.FORMATTED:
            return FORMATTED_TEMPLATE.format(days=self.days_ago)
        if self.status == ResultStatus.NO_DATES:
            return NO_DATES_TEXT
        return FETCH_ERROR_TEXT


class RunReport(BaseModel):
    """Summary of one run over the identifier list."""

    status: RunStatus = Field(default=RunStatus.PENDING)
    identifiers: List[str] = Field(default_factory=list, description="Identifiers in row order")
    identifiers_count: int = Field(0, ge=0)
    results: List[LastSeenResult] = Field(default_factory=list)
    rows_written: int = Field(0, ge=0)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error_message: Optional[str] = None

    @computed_field
    @property
    def formatted_count(self) -> int:
        return sum(1 for r in self.results if r.status == ResultStatus.FORMATTED)

    @computed_field
    @property
    def no_dates_count(self) -> int:
        return sum(1 for r in self.results if r.status == ResultStatus.NO_DATES)

    @computed_field
    @property
    def error_count(self) -> int:
        return sum(1 for r in self.results if r.status == ResultStatus.FETCH_ERROR)

    def rendered(self) -> List[str]:
        """Results rendered as record store strings, in input order."""
        return [r.render() for r in self.results]
