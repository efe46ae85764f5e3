"""Scope-partitioned snapshot cache over device storage.

Every screen reads through this cache: it shows the cached snapshot first,
then always fetches from the backend and overwrites the entry.  The cache is
advisory only; a miss, a corrupt entry or a storage failure must never stop
the fresh fetch, so reads swallow errors and report a miss.

Entries are stored as a versioned JSON envelope::

    {"key": ..., "kind": "periods", "schemaVersion": 1,
     "storedAt": "2024-01-20T08:00:00+00:00", "value": [...]}

Each kind has a registered schema (a pydantic ``TypeAdapter``) and version.
Bumping a version makes old entries a detectable ``CacheSchemaError``
instead of silently mis-deserialising.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from pydantic import ConfigDict, TypeAdapter, ValidationError

from src.models.base import PeriBase, utc_now
from src.models.cycle import (
    Mood,
    Period,
    PredictionRead,
    ReminderStatus,
    Symptom,
    UserSettingsRead,
)
from src.session.keys import CACHE_PREFIX, KeyPart, build_cache_key, cache_storage_key
from src.session.storage import KeyValueStore, StorageError
from src.session.view_scope import ViewScopeManager

logger = logging.getLogger("peri.session.cache")

_UNTYPED = TypeAdapter(Any)


class CacheSchemaError(ValueError):
    """Raised when a stored entry does not match its registered schema."""


@dataclass(frozen=True)
class CacheSchema:
    """Typed, versioned shape of one kind of cache entry."""

    kind: str
    version: int
    adapter: TypeAdapter

    def dump(self, value: Any) -> Any:
        return self.adapter.dump_python(value, mode="json", by_alias=True)

    def load(self, raw: Any) -> Any:
        return self.adapter.validate_python(raw)


CACHE_SCHEMAS: dict[str, CacheSchema] = {
    schema.kind: schema
    for schema in (
        CacheSchema("periods", 1, TypeAdapter(list[Period])),
        CacheSchema("settings", 1, TypeAdapter(Optional[UserSettingsRead])),
        CacheSchema("symptoms", 1, TypeAdapter(list[Symptom])),
        CacheSchema("moods", 1, TypeAdapter(list[Mood])),
        CacheSchema("reminder_status", 1, TypeAdapter(ReminderStatus)),
        CacheSchema("predictions", 1, TypeAdapter(PredictionRead)),
    )
}


class CacheEntry(PeriBase):
    model_config = ConfigDict(str_strip_whitespace=False)

    key: str
    kind: str | None = None
    schema_version: int | None = None
    stored_at: datetime
    value: Any = None


class ScopedCache:
    """Read-through/write-through snapshot cache partitioned by view scope.

    Usage::

        cache = ScopedCache(store, scopes)
        key = cache.scoped_key("periods")
        snapshot = await cache.get_cached_data(key)
        ...
        await cache.set_cached_data(key, fresh_periods, kind="periods")
    """

    def __init__(
        self,
        store: KeyValueStore,
        scopes: ViewScopeManager | None = None,
        clock: Callable[[], datetime] = utc_now,
        schemas: dict[str, CacheSchema] | None = None,
    ) -> None:
        self._store = store
        self._scopes = scopes
        self._clock = clock
        self._schemas = schemas if schemas is not None else CACHE_SCHEMAS
        # key -> (entry, decoded value)
        self._memory: dict[str, tuple[CacheEntry, Any]] = {}

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def scoped_key(self, kind: str, *parts: KeyPart, scope: str | None = None) -> str:
        """Key for ``kind`` under a scope, plus optional extra parts.

        ``scope`` pins the key to a previously captured scope token; by
        default the active scope is used.

        Raises:
            ScopeUnresolvedError: If no ``scope`` is given and the view scope
                                  is not complete.
        """
        if scope is None:
            if self._scopes is None:
                raise RuntimeError("ScopedCache was created without a ViewScopeManager")
            scope = self._scopes.scope_token()
        return build_cache_key([kind, scope, *parts])

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_cached_data(self, key: str, default: Any = None) -> Any:
        """Return the cached value for ``key``, or ``default`` on any miss.

        Never raises: storage errors, corrupt JSON and schema mismatches are
        logged and reported as a miss.  The value is a copy; mutating it does
        not change the cached snapshot.
        """
        try:
            loaded = await self._load(key)
        except CacheSchemaError as exc:
            logger.warning("Discarding cache entry %s: %s", key, exc)
            await self._evict(key)
            return default
        except (StorageError, ValidationError, ValueError) as exc:
            logger.debug("Cache read failed for %s: %s", key, exc)
            return default
        if loaded is None:
            return default
        return copy.deepcopy(loaded[1])

    async def load_entry(self, key: str) -> CacheEntry | None:
        """Return the raw envelope for ``key``.

        Unlike ``get_cached_data`` this surfaces problems.

        Raises:
            CacheSchemaError: Version mismatch or a value that fails its schema.
            StorageError:     Device storage could not be read.
        """
        loaded = await self._load(key)
        return loaded[0] if loaded else None

    async def get_cache_timestamp(self, key: str) -> datetime | None:
        try:
            entry = await self.load_entry(key)
        except (CacheSchemaError, StorageError, ValidationError, ValueError):
            return None
        return entry.stored_at if entry else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def set_cached_data(self, key: str, value: Any, kind: str | None = None) -> None:
        """Overwrite ``key`` with ``value``.

        With a registered ``kind`` the value is serialised through that
        kind's schema; without one it must be JSON-compatible.  A failed
        device write is logged; the in-memory copy is still updated.
        """
        schema = self._schema_for(kind)
        payload = schema.dump(value) if schema else _UNTYPED.dump_python(value, mode="json")
        entry = CacheEntry(
            key=key,
            kind=kind,
            schema_version=schema.version if schema else None,
            stored_at=self._clock(),
            value=payload,
        )
        decoded = schema.load(payload) if schema else payload
        self._memory[key] = (entry, decoded)
        try:
            await self._store.set_item(cache_storage_key(key), entry.model_dump_json(by_alias=True))
        except StorageError as exc:
            logger.warning("Failed to persist cache entry %s: %s", key, exc)

    async def clear_cached_data(self, key: str | None = None) -> None:
        """Drop one entry, or every cache entry when ``key`` is None."""
        if key is not None:
            await self._evict(key)
            return
        self._memory.clear()
        try:
            for storage_key in await self._store.keys(CACHE_PREFIX):
                await self._store.remove_item(storage_key)
        except StorageError as exc:
            logger.warning("Failed to clear cache: %s", exc)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _schema_for(self, kind: str | None) -> CacheSchema | None:
        if kind is None:
            return None
        try:
            return self._schemas[kind]
        except KeyError:
            raise CacheSchemaError(f"No cache schema registered for kind {kind!r}") from None

    async def _load(self, key: str) -> tuple[CacheEntry, Any] | None:
        if key in self._memory:
            return self._memory[key]

        raw = await self._store.get_item(cache_storage_key(key))
        if raw is None:
            return None

        entry = CacheEntry.model_validate_json(raw)
        if entry.key != key:
            raise CacheSchemaError(f"entry was written for key {entry.key!r}")

        schema = self._schema_for(entry.kind)
        if schema is None:
            decoded = entry.value
        else:
            if entry.schema_version != schema.version:
                raise CacheSchemaError(
                    f"{entry.kind} entry is v{entry.schema_version}, expected v{schema.version}"
                )
            try:
                decoded = schema.load(entry.value)
            except ValidationError as exc:
                raise CacheSchemaError(
                    f"{entry.kind} entry does not match its v{schema.version} schema"
                ) from exc

        self._memory[key] = (entry, decoded)
        return entry, decoded

    async def _evict(self, key: str) -> None:
        self._memory.pop(key, None)
        try:
            await self._store.remove_item(cache_storage_key(key))
        except StorageError as exc:
            logger.warning("Failed to evict cache entry %s: %s", key, exc)
