"""Shared pytest fixtures and configuration."""

import os
import pytest
import pytest_asyncio

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("SEED_SAMPLE_DATA", "false")
os.environ.setdefault("SYNC_DEBOUNCE_SECONDS", "0.05")
os.environ.setdefault("API_URL", "http://testserver")

from src.models.activity import Activity
from src.services.activity_service import ActivityService, reset_activity_service
from src.services.activity_store import SqliteActivityStore
from src.sync.controller import SyncController
from src.utils.config import reset_settings
from tests.utils.fakes import FakeActivityApi

# Debounce window used by controller tests (seconds)
TEST_DEBOUNCE = 0.05


@pytest.fixture
def sqlite_store(tmp_path):
    """Empty SQLite store in a temporary directory."""
    return SqliteActivityStore(tmp_path / "activities.sqlite")


@pytest.fixture
def activity_service(sqlite_store):
    return ActivityService(sqlite_store)


@pytest.fixture
def configured_env(tmp_path, monkeypatch):
    """Point the global settings/service at a temporary database."""
    monkeypatch.setenv("DATABASE_BACKEND", "sqlite")
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "api.sqlite"))
    monkeypatch.setenv("SEED_SAMPLE_DATA", "false")
    monkeypatch.setenv("VIEW_STATE_PATH", str(tmp_path / "view.json"))
    reset_settings()
    reset_activity_service()
    yield tmp_path
    reset_activity_service()
    reset_settings()


@pytest.fixture
def sample_activity():
    """A stored activity as the API returns it."""
    return Activity(
        id=1,
        task_name="Design Database Schema",
        description="Create database tables and relationships",
        status="In Progress",
        priority="High",
        assignee="Jane Smith",
        start_date="2025-05-20",
        due_date="2025-05-30",
        progress=40,
        estimated_hours=12.0,
        actual_hours=4.5,
        tags=["database", "design"],
        created_at="2025-05-20T09:00:00+00:00",
        updated_at="2025-05-20T09:00:00+00:00",
    )


@pytest.fixture
def fake_api(sample_activity):
    """Fake API holding one activity (id 1)."""
    return FakeActivityApi([sample_activity])


@pytest_asyncio.fixture
async def controller(fake_api):
    """Loaded sync controller over the fake API."""
    ctrl = SyncController(fake_api, debounce_seconds=TEST_DEBOUNCE)
    await ctrl.load()
    yield ctrl
    await ctrl.aclose(flush=False)

