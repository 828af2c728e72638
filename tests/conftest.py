"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator

import pytest

from src.core import db_client
from src.core.config import Settings, settings


@pytest.fixture
def test_settings(tmp_path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Point the shared settings at a throwaway database and keep the scheduler off."""
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "test.db"))
    monkeypatch.setattr(settings, "enable_scheduler", False)
    return settings


@pytest.fixture
async def sqlite_db(test_settings: Settings) -> AsyncGenerator[str]:
    """Fresh on-disk database with every planner table created."""
    await db_client.init_db()
    yield test_settings.sqlite_db_path
    await db_client.close_connection()
