# backend/tests/conftest.py
"""
Shared fixtures for all test modules.
Async code is driven with asyncio.run() inside sync tests, so there are
no async fixtures here.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock, AsyncMock


class FakeSavepoint:
    """Stands in for AsyncSession.begin_nested(): rolls nothing back, lets errors through."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


def make_mock_session():
    """MagicMock AsyncSession whose commit/rollback/begin_nested are awaitable."""
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.begin_nested = MagicMock(side_effect=lambda: FakeSavepoint())
    return db


# --- TIME FIXTURES ---
@pytest.fixture
def fixed_now():
    """Reference 'now' used by activation and dispatch tests."""
    return datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


# --- SAMPLE DATA FIXTURES ---
@pytest.fixture
def sample_trigger():
    """An active on_enter trigger as returned by TriggerRepository."""
    return {
        "id": "trigger-1",
        "user_id": "user-1",
        "column_id": "col-nuevos",
        "message_title": "Bienvenida",
        "message_content": "Hola {{nombre}}",
        "trigger_condition": "on_enter",
        "delay_hours": 1,
        "is_active": True,
        "created_at": datetime(2023, 12, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2023, 12, 1, tzinfo=timezone.utc),
    }


@pytest.fixture
def mock_db():
    return make_mock_session()
