"""Cache-then-fetch refresh policy shared by every screen.

A refresh runs in four steps:

1. Capture the active scope token.  No token, no fetch.
2. Serve the cached snapshot for that scope, if any.
3. Always fetch from the backend.
4. Apply the fresh value and overwrite the cache.

Only one refresh per scope runs at a time; a refresh requested while one
is in flight is dropped, not queued.  Each refresh carries a sequence
number and its captured scope, so a slow response that lands after the
viewer switched scope (or after a newer refresh already applied) is
discarded instead of overwriting what is on screen.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, TypeVar

import httpx

from src.session.context import SessionContext
from src.session.view_scope import ScopeUnresolvedError

T = TypeVar("T")

logger = logging.getLogger("peri.session.loader")


class RefreshStatus(str, Enum):
    REFRESHED = "refreshed"
    FAILED = "failed"
    SKIPPED_IN_FLIGHT = "skipped_in_flight"
    SKIPPED_UNRESOLVED = "skipped_unresolved"
    DISCARDED_STALE = "discarded_stale"


@dataclass
class RefreshResult(Generic[T]):
    """Outcome of one refresh.

    ``value`` is whatever the screen should show afterwards: the fresh value
    on success, otherwise the last-known value (possibly a cached snapshot).
    """

    status: RefreshStatus
    value: T | None = None
    from_cache: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is RefreshStatus.REFRESHED


class ScreenLoader(ABC, Generic[T]):
    """Base class for a screen's refresh cycle.

    Subclasses implement the three data hooks; ``refresh()`` owns ordering,
    scope capture, the in-flight guard and stale-response handling.
    """

    name = "screen"

    def __init__(self, context: SessionContext) -> None:
        self.context = context
        self.current: T | None = None
        self.current_scope: str | None = None
        self.last_error: str | None = None
        self._in_flight: set[str] = set()
        self._sequence = 0
        self._applied_sequence = 0

    # ------------------------------------------------------------------
    # Data hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def read_cache(self, scope: str) -> T | None:
        """Return the cached snapshot for ``scope``, or None on a miss."""

    @abstractmethod
    async def fetch(self) -> T:
        """Fetch authoritative data from the backend."""

    @abstractmethod
    async def write_cache(self, scope: str, value: T) -> None:
        """Overwrite the cached snapshot for ``scope``."""

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def is_loading(self, scope: str | None = None) -> bool:
        if scope is None:
            return bool(self._in_flight)
        return scope in self._in_flight

    async def refresh(self, on_snapshot: Callable[[T], None] | None = None) -> RefreshResult[T]:
        """Serve the cached snapshot, then fetch and apply fresh data.

        Args:
            on_snapshot: Called with the cached snapshot before the fetch
                         starts, when one exists for the captured scope.
        """
        try:
            scope = self.context.scopes.scope_token()
        except ScopeUnresolvedError as exc:
            logger.info("%s: not refreshing, %s", self.name, exc)
            return RefreshResult(RefreshStatus.SKIPPED_UNRESOLVED, value=None)

        if scope in self._in_flight:
            logger.debug("%s: refresh already in flight for scope %s", self.name, scope)
            return RefreshResult(RefreshStatus.SKIPPED_IN_FLIGHT, value=self._shown(scope))

        self._sequence += 1
        sequence = self._sequence
        self._in_flight.add(scope)
        try:
            return await self._run(scope, sequence, on_snapshot)
        finally:
            self._in_flight.discard(scope)

    async def _run(
        self, scope: str, sequence: int, on_snapshot: Callable[[T], None] | None
    ) -> RefreshResult[T]:
        if self.current_scope != scope:
            self.current = None
            self.current_scope = scope

        from_cache = False
        snapshot = await self.read_cache(scope)
        if snapshot is not None and not self._is_stale(scope, sequence):
            self.current = snapshot
            from_cache = True
            if on_snapshot is not None:
                on_snapshot(snapshot)

        try:
            fresh = await self.fetch()
        except httpx.HTTPError as exc:
            message = f"Could not refresh {self.name}: {exc}"
            logger.warning(message)
            self.last_error = message
            return RefreshResult(
                RefreshStatus.FAILED,
                value=self._shown(scope),
                from_cache=from_cache,
                error=message,
            )

        if self._is_stale(scope, sequence):
            logger.info("%s: discarding stale response for scope %s", self.name, scope)
            return RefreshResult(RefreshStatus.DISCARDED_STALE, value=self._shown(scope))

        self._applied_sequence = sequence
        self.current = fresh
        self.current_scope = scope
        self.last_error = None
        await self.write_cache(scope, fresh)
        return RefreshResult(RefreshStatus.REFRESHED, value=fresh)

    def _is_stale(self, scope: str, sequence: int) -> bool:
        if not self.context.settings.discard_stale_responses:
            return False
        if sequence < self._applied_sequence:
            return True
        try:
            return self.context.scopes.scope_token() != scope
        except ScopeUnresolvedError:
            return True

    def _shown(self, scope: str) -> T | None:
        return self.current if self.current_scope == scope else None
