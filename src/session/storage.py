"""Device-local key-value storage.

The session layer only needs a tiny async string store (the moral
equivalent of a phone's AsyncStorage).  Two implementations ship:

* ``MemoryStore`` — process-local, used by tests and short-lived sessions.
* ``JsonFileStore`` — a single JSON document on disk, written atomically.

Neither takes locks: callers run on one event loop and the cooperative
scheduler serialises access.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger("peri.session.storage")


class StorageError(RuntimeError):
    """Raised when the underlying device storage cannot be read or written."""


class KeyValueStore(ABC):
    """Abstract async string-to-string store."""

    @abstractmethod
    async def get_item(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Delete ``key`` if present."""

    @abstractmethod
    async def keys(self, prefix: str = "") -> list[str]:
        """Return every stored key starting with ``prefix``."""


class MemoryStore(KeyValueStore):
    """In-process store backed by a dict."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    async def keys(self, prefix: str = "") -> list[str]:
        return [k for k in self._data if k.startswith(prefix)]

    def __len__(self) -> int:
        return len(self._data)


class JsonFileStore(KeyValueStore):
    """Persist every key in one JSON object on disk.

    The file is loaded lazily on first access and rewritten in full on each
    mutation via a temp file + ``os.replace`` so a crash never leaves a
    half-written document behind.  A corrupt file loads as an empty store
    and is overwritten by the next mutation.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._data: dict[str, str] | None = None

    async def get_item(self, key: str) -> str | None:
        data = await self._load()
        return data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        data = await self._load()
        data[key] = value
        await self._flush(data)

    async def remove_item(self, key: str) -> None:
        data = await self._load()
        if data.pop(key, None) is not None:
            await self._flush(data)

    async def keys(self, prefix: str = "") -> list[str]:
        data = await self._load()
        return [k for k in data if k.startswith(prefix)]

    async def _load(self) -> dict[str, str]:
        if self._data is None:
            self._data = await asyncio.to_thread(self._read_file)
        return self._data

    def _read_file(self) -> dict[str, str]:
        """Read the store file.

        A file that is not a JSON object is treated as empty; the next write
        replaces it.

        Raises:
            StorageError: If the file exists but cannot be read.
        """
        if not self._path.exists():
            return {}
        try:
            blob = self._path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Could not read device store {self._path}: {exc}") from exc
        try:
            raw = json.loads(blob.decode("utf-8") or "{}")
        except ValueError as exc:
            logger.warning("Device store %s is corrupt, starting empty: %s", self._path, exc)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Device store %s is not a JSON object, starting empty", self._path)
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    async def _flush(self, data: dict[str, str]) -> None:
        snapshot = dict(data)
        await asyncio.to_thread(self._write_file, snapshot)

    def _write_file(self, data: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, sort_keys=True), encoding="utf-8")
            os.replace(tmp, self._path)
        except OSError as exc:
            raise StorageError(f"Could not write device store {self._path}: {exc}") from exc
        logger.debug("Flushed %d keys to %s", len(data), self._path)
