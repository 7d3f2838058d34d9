"""
Timestamp extraction from rendered profile text.

Profile pages print activity as ``M/D/YYYY, HH:MM:SS`` (for example
``4/7/2024, 13:05:02``). Matches that do not form a valid calendar time are
skipped rather than rolled over.
"""

import re
from datetime import datetime
from typing import Iterator, List, Optional

from lastseen.utils.logging import get_logger

logger = get_logger(__name__)

TIMESTAMP_PATTERN = re.compile(
    r"\b(\d{1,2})/(\d{1,2})/(\d{4}), (\d{2}):(\d{2}):(\d{2})\b"
)

# Page text is untrusted; cap the work done per page.
DEFAULT_MAX_SCAN_CHARS = 2_000_000
DEFAULT_MAX_MATCHES = 10_000


def _to_datetime(match: "re.Match[str]") -> Optional[datetime]:
    month, day, year, hour, minute, second = (int(g) for g in match.groups())
    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError:
        logger.debug(f"Skipping invalid timestamp {match.group(0)!r}")
        return None


def iter_timestamps(
    text: str,
    max_scan_chars: int = DEFAULT_MAX_SCAN_CHARS,
    max_matches: int = DEFAULT_MAX_MATCHES,
) -> Iterator[datetime]:
    """
    Yield timestamps found in ``text`` from left to right.

    Args:
        text: Rendered page text
        max_scan_chars: Only the first ``max_scan_chars`` characters are scanned
        max_matches: Stop after this many valid timestamps

    Yields:
        Naive datetimes in order of appearance
    """
    if not text:
        return

    if len(text) > max_scan_chars:
        logger.warning(
            "Page text truncated before timestamp scan",
            extra={"text_length": len(text), "max_scan_chars": max_scan_chars},
        )

    found = 0
    for match in TIMESTAMP_PATTERN.finditer(text, 0, max_scan_chars):
        timestamp = _to_datetime(match)
        if timestamp is None:
            continue
        yield timestamp
        found += 1
        if found >= max_matches:
            logger.warning(
                "Timestamp match limit reached",
                extra={"max_matches": max_matches},
            )
            return


def extract_timestamps(
    text: str,
    max_scan_chars: int = DEFAULT_MAX_SCAN_CHARS,
    max_matches: int = DEFAULT_MAX_MATCHES,
) -> List[datetime]:
    """Return all timestamps found in ``text`` in order of appearance."""
    return list(iter_timestamps(text, max_scan_chars=max_scan_chars, max_matches=max_matches))
