"""Peri session layer.

Who is being viewed, what is cached for them, and how screens refresh.

Modules:
    keys       — Injective composite keys and storage key layout
    storage    — Async device key-value stores (memory, JSON file)
    view_scope — SELF/OTHER scope state machine, persisted per viewer
    cache      — Typed, versioned, scope-partitioned snapshot cache
    context    — Per-session wiring of store, scope, cache and backend
    loader     — Cache-then-fetch refresh with stale-response guards
    screens    — Cycle and daily-log view models
"""

from src.session.cache import CacheSchemaError, ScopedCache
from src.session.context import SessionContext
from src.session.keys import build_cache_key
from src.session.loader import RefreshResult, RefreshStatus, ScreenLoader
from src.session.screens import CycleScreen, DailyLogScreen
from src.session.storage import JsonFileStore, KeyValueStore, MemoryStore, StorageError
from src.session.view_scope import (
    ScopeState,
    ScopeUnresolvedError,
    ViewMode,
    ViewModeRecord,
    ViewScopeError,
    ViewScopeManager,
)

__all__ = [
    "CacheSchemaError",
    "ScopedCache",
    "SessionContext",
    "build_cache_key",
    "RefreshResult",
    "RefreshStatus",
    "ScreenLoader",
    "CycleScreen",
    "DailyLogScreen",
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "StorageError",
    "ScopeState",
    "ScopeUnresolvedError",
    "ViewMode",
    "ViewModeRecord",
    "ViewScopeError",
    "ViewScopeManager",
]
