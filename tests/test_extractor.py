"""
Tests for timestamp extraction from page text.
"""

from datetime import datetime

import pytest

from lastseen.scraper.extractor import extract_timestamps, iter_timestamps


class TestExtractTimestamps:
    """Test pattern matching and conversion of page timestamps."""

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "No activity recorded",
            "Joined 2024-04-07 13:05:02",  # ISO format is not the page format
            "4/7/2024 13:05:02",  # missing comma
            "4/7/24, 13:05:02",  # two digit year
            "4/7/2024, 1:05:02",  # single digit hour
        ],
    )
    def test_no_matches(self, text):
        """Text without the page format yields nothing."""
        assert extract_timestamps(text) == []

    def test_single_timestamp(self):
        """Month and day are read as calendar values."""
        text = "Character page\nLast online 4/7/2024, 13:05:02\nRank: Private"

        assert extract_timestamps(text) == [datetime(2024, 4, 7, 13, 5, 2)]

    def test_multiple_timestamps_keep_text_order(self):
        """Timestamps come back left to right, not sorted."""
        text = (
            "Promoted 12/31/2023, 23:59:59 after joining 1/1/2020, 00:00:00; "
            "seen 06/15/2022, 08:30:00"
        )

        assert extract_timestamps(text) == [
            datetime(2023, 12, 31, 23, 59, 59),
            datetime(2020, 1, 1, 0, 0, 0),
            datetime(2022, 6, 15, 8, 30, 0),
        ]

    def test_invalid_calendar_values_are_skipped(self):
        """Impossible dates are dropped without affecting valid ones."""
        text = (
            "13/1/2024, 10:00:00 | 2/30/2024, 10:00:00 | "
            "1/2/2024, 24:00:00 | 1/2/2024, 10:61:00 | 3/5/2024, 10:00:00"
        )

        assert extract_timestamps(text) == [datetime(2024, 3, 5, 10, 0, 0)]

    def test_leap_day(self):
        assert extract_timestamps("2/29/2024, 12:00:00") == [datetime(2024, 2, 29, 12, 0, 0)]

    def test_word_boundaries(self):
        """Digits glued to the pattern do not form a match."""
        assert extract_timestamps("x104/7/2024, 13:05:02") == []
        assert extract_timestamps("4/7/2024, 13:05:021") == []

    def test_iter_is_lazy_and_restartable(self):
        """The generator can be consumed partially and recreated."""
        text = "1/1/2020, 00:00:00 2/2/2021, 00:00:00"

        first = next(iter_timestamps(text))
        assert first == datetime(2020, 1, 1)
        assert list(iter_timestamps(text)) == list(iter_timestamps(text))

    def test_max_matches_limit(self):
        text = " ".join(f"1/{day}/2024, 10:00:00" for day in range(1, 21))

        timestamps = extract_timestamps(text, max_matches=5)

        assert len(timestamps) == 5
        assert timestamps[-1] == datetime(2024, 1, 5, 10, 0, 0)

    def test_max_scan_chars_limit(self):
        """Only the leading part of oversized text is scanned."""
        head = "4/7/2024, 13:05:02"
        text = head + " " * 100 + "5/8/2024, 13:05:02"

        assert extract_timestamps(text, max_scan_chars=len(head) + 10) == [
            datetime(2024, 4, 7, 13, 5, 2)
        ]

    def test_non_string_noise(self):
        """Unicode and markup around timestamps do not matter."""
        text = "<b>Último acceso:</b> 4/7/2024, 13:05:02 ✅"

        assert extract_timestamps(text) == [datetime(2024, 4, 7, 13, 5, 2)]
