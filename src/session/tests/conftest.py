"""Shared fixtures for session-layer tests: stores, scopes, caches and a
session context wired to a mocked backend."""

from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.config import Settings
from src.cycle.config_loader import load_cycle_config
from src.models.cycle import Period, ReminderStatus, UserSettingsRead
from src.services.backend import BackendClient
from src.session.cache import ScopedCache
from src.session.context import SessionContext
from src.session.storage import MemoryStore, StorageError
from src.session.view_scope import ViewScopeManager

VIEWER_ID = "user_self"
VIEWER_EMAIL = "me@example.com"
OTHER_ID = "user_other"
OTHER_EMAIL = "partner@example.com"

FIXED_NOW = datetime(2024, 1, 20, 8, 0, tzinfo=timezone.utc)


class FailingStore(MemoryStore):
    """MemoryStore whose selected operations raise ``StorageError``."""

    def __init__(self, fail_reads: bool = False, fail_writes: bool = False) -> None:
        super().__init__()
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    async def get_item(self, key: str) -> str | None:
        if self.fail_reads:
            raise StorageError("read failed")
        return await super().get_item(key)

    async def set_item(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise StorageError("write failed")
        await super().set_item(key, value)


def sample_periods() -> list[Period]:
    return [Period(id="p1", start_date=date(2024, 1, 1))]


def sample_settings() -> UserSettingsRead:
    return UserSettingsRead(average_cycle_length=28, average_period_length=5)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def scopes(store: MemoryStore) -> ViewScopeManager:
    return ViewScopeManager(store, viewer_user_id=VIEWER_ID, viewer_email=VIEWER_EMAIL)


@pytest.fixture
def cache(store: MemoryStore, scopes: ViewScopeManager) -> ScopedCache:
    return ScopedCache(store, scopes, clock=lambda: FIXED_NOW)


@pytest.fixture
def app_settings(tmp_path: Path) -> Settings:
    return Settings(api_base_url="https://api.test", storage_path=str(tmp_path / "store.json"))


@pytest.fixture
def backend() -> MagicMock:
    """BackendClient double; every call returns the worked example data."""
    mock = MagicMock(spec=BackendClient)
    mock.get_periods = AsyncMock(return_value=sample_periods())
    mock.get_settings = AsyncMock(return_value=sample_settings())
    mock.get_symptoms = AsyncMock(return_value=[])
    mock.get_moods = AsyncMock(return_value=[])
    mock.get_reminder_status = AsyncMock(return_value=ReminderStatus(enabled=True))
    mock.create_period = AsyncMock()
    mock.generate_reminder = AsyncMock()
    return mock


@pytest.fixture
def context(
    store: MemoryStore,
    scopes: ViewScopeManager,
    cache: ScopedCache,
    backend: MagicMock,
    app_settings: Settings,
) -> SessionContext:
    return SessionContext(
        store=store,
        scopes=scopes,
        cache=cache,
        backend=backend,
        settings=app_settings,
        cycle_config=load_cycle_config(),
    )
