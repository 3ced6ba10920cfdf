"""
Pytest configuration and shared fixtures

This file contains test fixtures that can be used across all tests.
Fixtures are reusable components that set up test preconditions.

Learn more: https://docs.pytest.org/en/stable/fixture.html
"""

import json
from pathlib import Path

import pytest

from services.publisher.rest_client import TransportError


@pytest.fixture(scope="function")
def provider_mapping() -> dict:
    """
    Provide an identity mapping covering all three providers.

    Scope: function (created fresh for each test)

    Returns:
        dict: provider name -> raw id -> canonical hut id
    """
    return {
        "hut-reservation": {"366": "braunschweiger-huette"},
        "huettenholiday": {"27": "kemptner-huette"},
        "casablanca": {"A_6511_SKIHU": "skihutte-zams"},
    }


@pytest.fixture(scope="function")
def hut_reservation_payload() -> dict:
    """Provide a hut-reservation snapshot with one open and one closed day."""
    return {
        "hutId": 366,
        "checkedAt": "2026-02-09T20:00:00Z",
        "allDays": [
            {"date": "2026-06-01T00:00:00.000Z", "hutStatus": "OPEN"},
            {"date": "2026-06-02T00:00:00.000Z", "hutStatus": "CLOSED"},
        ],
    }


@pytest.fixture(scope="function")
def huettenholiday_payload() -> dict:
    """Provide a huettenholiday snapshot with a single mapped cabin."""
    return {
        "scrapedAt": "2026-02-09T20:00:00Z",
        "cabins": [
            {
                "id": 27,
                "availability": [
                    {
                        "date": "2026-06-10T00:00:00.000000Z",
                        "totalPlaces": 120,
                        "availablePlaces": 9,
                    }
                ],
            }
        ],
    }


@pytest.fixture(scope="function")
def casablanca_payload() -> list:
    """Provide a casablanca snapshot: a bare list of days."""
    return [
        {
            "date": "2026-06-15",
            "availableBeds": 0,
            "isAvailable": False,
            "checkedAt": "2026-02-09T20:00:00Z",
        },
        {
            "date": "2026-06-16",
            "availableBeds": 5,
            "isAvailable": True,
            "checkedAt": "2026-02-09T20:00:05Z",
        },
    ]


@pytest.fixture(scope="function")
def write_snapshots(tmp_path: Path):
    """
    Write payloads as JSON files into a temporary input directory.

    Returns:
        Callable taking {filename: payload} and returning the directory path
    """
    def _write(payloads: dict) -> Path:
        input_dir = tmp_path / "availability-results"
        input_dir.mkdir(exist_ok=True)
        for name, payload in payloads.items():
            (input_dir / name).write_text(json.dumps(payload), encoding="utf-8")
        return input_dir

    return _write


class FakeStore:
    """In-memory AvailabilityStore that records every call."""

    def __init__(self, fail_upsert: bool = False):
        self.fail_upsert = fail_upsert
        self.upserted = []
        self.runs = []

    def upsert(self, rows):
        if self.fail_upsert:
            raise TransportError("500 Internal Server Error: boom")
        self.upserted.extend(rows)

    def record_run(self, run):
        self.runs.append(run)


@pytest.fixture(scope="function")
def fake_store() -> FakeStore:
    """Provide a FakeStore that accepts every write."""
    return FakeStore()


@pytest.fixture(scope="function")
def failing_store() -> FakeStore:
    """Provide a FakeStore whose upsert always fails."""
    return FakeStore(fail_upsert=True)


# Mark tests based on their type for selective running
def pytest_configure(config):
    """
    Register custom pytest markers.

    This allows us to run specific test categories:
    - pytest -m unit        (run only unit tests)
    - pytest -m integration (run only integration tests)
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test (isolated, fast)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (reads files on disk)"
    )
