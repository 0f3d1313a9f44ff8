"""Shared fixtures for the selfie_calendar test suite."""

from collections.abc import AsyncIterator, Generator
from datetime import date
from typing import Any

import pytest

from selfie_calendar.core.http_client import close_all_clients

_ENV_VARS = (
    "SELFIE_VIRTUAL_NOW",
    "SELFIE_DEBUG",
    "SELFIE_LOG_LEVEL",
    "SELFIE_API_BASE_URL",
    "SELFIE_DEFAULT_VIEW",
    "SELFIE_VIRTUAL_CLOCK_PATH",
    "SELFIE_REQUEST_TIMEOUT",
)


def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast unit tests")
    config.addinivalue_line("markers", "smoke: Basic smoke tests")


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear SELFIE_* variables so a developer's shell cannot leak into tests.

    SELFIE_VIRTUAL_NOW in particular would silently move every VirtualClock.
    """
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close shared httpx clients after every test."""
    yield
    await close_all_clients()


@pytest.fixture
def june_window() -> tuple[date, date]:
    """The June 2025 month window ``[2025-06-01, 2025-07-01)``."""
    return date(2025, 6, 1), date(2025, 7, 1)


@pytest.fixture
def sample_event_rows() -> list[dict[str, Any]]:
    """Store rows covering each recurrence rule, in backend column names."""
    return [
        {
            "id": 1,
            "title": "Algorithms lecture",
            "place": "Room B1",
            "start_date": "2025-06-02",
            "start_time": "09:00:00",
            "end_time": "11:00:00",
            "recurrence_type": "weeklyDays",
            "days_recurrence": "Monday,Wednesday",
        },
        {
            "id": 2,
            "title": "Exam",
            "start_date": "2025-06-18",
            "start_time": "14:00:00",
            "end_time": "16:00:00",
            "recurrence_type": "none",
        },
        {
            "id": 3,
            "title": "Tutoring",
            "start_date": "2025-06-03",
            "start_time": "17:00:00",
            "end_time": "18:00:00",
            "recurrence_type": "numeroFisso",
            "days_recurrence": "Tuesday",
            "number_recurrence": 3,
        },
        {
            "id": 4,
            "title": "Gym",
            "start_date": "2025-06-06",
            "recurrence_type": "scadenza",
            "days_recurrence": "Friday",
            "due_date": "2025-06-20",
        },
    ]


@pytest.fixture
def sample_activity_rows() -> list[dict[str, Any]]:
    return [
        {"id": 10, "title": "Hand in report", "due_date": "2025-06-15", "status": "pending"},
        {"id": 11, "title": "Read chapter 3", "due_date": "2025-06-10", "status": "done"},
        {"id": 12, "title": "Next month", "due_date": "2025-07-02", "status": "pending"},
    ]
