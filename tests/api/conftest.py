"""Shared fixtures for API tests: a temporary store wired into the app."""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from voice_calendar.core import dependencies as core_deps
from voice_calendar.database.local_store import LocalStore
from voice_calendar.features.google_calendar import GoogleCalendarClient
from voice_calendar.main import app


@pytest.fixture
def store(tmp_path):
    s = LocalStore.open(tmp_path / "store.db")
    yield s
    s.close()


@pytest.fixture
def calendar():
    mock_calendar = MagicMock(spec=GoogleCalendarClient)
    mock_calendar.has_valid_credentials.return_value = False
    return mock_calendar


@pytest.fixture
def client(store, calendar):
    core_deps.reset_singletons()
    app.dependency_overrides[core_deps.get_local_store] = lambda: store
    app.dependency_overrides[core_deps.get_calendar_client] = lambda: calendar
    yield TestClient(app)
    app.dependency_overrides.clear()
    core_deps.reset_singletons()
