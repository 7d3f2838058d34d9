"""
Recency classification for extracted timestamps.
"""

from datetime import datetime, timedelta
from typing import Iterable

from lastseen.models import LastSeenResult

ONE_DAY = timedelta(days=1)


def days_ago(latest: datetime, now: datetime) -> int:
    """
    Whole 24-hour periods elapsed between ``latest`` and ``now``.

    Floor division, so a timestamp 3 days and 2 hours old gives 3 and a
    timestamp one hour in the future gives -1.
    """
    return (now - latest) // ONE_DAY


def classify(timestamps: Iterable[datetime], now: datetime) -> LastSeenResult:
    """
    Classify a page by its most recent timestamp.

    Args:
        timestamps: Timestamps extracted from one page
        now: Reference time the age is measured against

    Returns:
        ``no_dates`` when there is no timestamp, otherwise ``formatted``
    """
    latest = max(timestamps, default=None)
    if latest is None:
        return LastSeenResult.no_dates()
    return LastSeenResult.formatted(days_ago(latest, now), latest=latest)


def render_result(result: LastSeenResult) -> str:
    return result.render()
