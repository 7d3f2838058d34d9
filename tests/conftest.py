"""
Shared fixtures for lastseen tests.
"""

import os
from datetime import datetime
from unittest.mock import MagicMock

import pytest

from lastseen.config import reset_settings
from lastseen.scraper.fetcher import StaticProfileFetcher


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate every test from LASTSEEN_* variables and cached settings."""
    for key in list(os.environ):
        if key.startswith("LASTSEEN_") or key == "PORT":
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def fixed_now():
    """Reference time used across classification tests."""
    return datetime(2024, 4, 10, 15, 5, 2)


@pytest.fixture
def clock(fixed_now):
    return lambda: fixed_now


@pytest.fixture
def profile_pages():
    """Rendered page text keyed by identifier."""
    return {
        "STEAM_0:1:111": (
            "Character: Rex\nJoined 1/1/2020, 00:00:00\n"
            "Last online 4/7/2024, 13:05:02\nPlaytime 120h"
        ),
        "STEAM_0:1:222": "Character: Echo\nNo activity recorded",
        "STEAM_0:1:333": "Promoted 4/9/2024, 15:05:02 | Joined 3/1/2024, 10:00:00",
    }


@pytest.fixture
def static_fetcher(profile_pages):
    return StaticProfileFetcher(profile_pages)


@pytest.fixture
def mock_sheets_service():
    """MagicMock standing in for the googleapiclient Sheets resource."""
    service = MagicMock()
    values = service.spreadsheets.return_value.values.return_value
    values.get.return_value.execute.return_value = {"values": []}
    values.update.return_value.execute.return_value = {"updatedRows": 0}
    return service
