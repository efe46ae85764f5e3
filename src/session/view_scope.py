"""Whose cycle is the signed-in viewer looking at?

A viewer either tracks their own cycle (``SELF``) or has delegated access
to someone else's (``OTHER``).  The choice is remembered per *viewer*
email, so several accounts on one device keep independent memories.

State machine::

    UNRESOLVED ──set_view_mode(SELF)──▶ SELF
    UNRESOLVED ──set_view_mode(OTHER)─▶ OTHER
    SELF/OTHER ──set_view_mode(...)───▶ SELF/OTHER   (scope switch, overwrite)
    any        ──clear()──────────────▶ UNRESOLVED   (sign-out)

``OTHER`` is only ever entered with a resolved ``viewed_user_id``; nothing
downstream may fetch under an OTHER scope without one.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import ValidationError, model_validator

from src.models.base import PeriBase
from src.session.keys import build_cache_key, normalise_email, view_mode_storage_key
from src.session.storage import KeyValueStore, StorageError

logger = logging.getLogger("peri.session.view_scope")

VIEW_MODE_SCHEMA_VERSION = 1


class ViewMode(str, Enum):
    SELF = "SELF"
    OTHER = "OTHER"


class ScopeState(str, Enum):
    UNRESOLVED = "UNRESOLVED"
    SELF = "SELF"
    OTHER = "OTHER"


class ViewScopeError(ValueError):
    """Raised when a caller asks for a scope that cannot be entered."""


class ScopeUnresolvedError(RuntimeError):
    """Raised when scoped data is requested before a complete scope exists."""


class ViewModeRecord(PeriBase):
    """The persisted scope choice of one viewer.

    ``SELF`` records never carry viewed-user fields; ``OTHER`` records
    always carry a ``viewed_user_id``.
    """

    mode: ViewMode
    viewer_email: str | None = None
    viewed_user_id: str | None = None
    viewed_user_email: str | None = None
    persisted: bool = False
    schema_version: int = VIEW_MODE_SCHEMA_VERSION

    @model_validator(mode="after")
    def _check_scope(self) -> ViewModeRecord:
        if self.mode is ViewMode.SELF:
            self.viewed_user_id = None
            self.viewed_user_email = None
        elif not self.viewed_user_id:
            raise ValueError("OTHER view mode requires a viewed_user_id")
        return self


class ViewScopeManager:
    """Track, persist and expose the active view scope.

    Usage::

        scopes = ViewScopeManager(store, viewer_user_id="user_123")
        await scopes.load_stored_view_mode_record("me@example.com")
        if scopes.state is ScopeState.UNRESOLVED:
            await scopes.set_view_mode(ViewMode.SELF, email="me@example.com")
        token = scopes.scope_token()
    """

    def __init__(
        self,
        store: KeyValueStore,
        viewer_user_id: str | None = None,
        viewer_email: str | None = None,
    ) -> None:
        self._store = store
        self.viewer_user_id = viewer_user_id
        self.viewer_email = normalise_email(viewer_email) if viewer_email else None
        self._current: ViewModeRecord | None = None

    # ------------------------------------------------------------------
    # Synchronous accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> ScopeState:
        if self._current is None:
            return ScopeState.UNRESOLVED
        return ScopeState(self._current.mode.value)

    def get_current_view_mode_record(self) -> ViewModeRecord | None:
        """Return the in-memory record.  May be stale until a load completes."""
        return self._current

    def scope_token(self) -> str:
        """Cache scope identifier for the active scope.

        Raises:
            ScopeUnresolvedError: If no scope is set, or OTHER lacks a viewed user.
        """
        record = self._current
        if record is None:
            raise ScopeUnresolvedError("View scope has not been resolved yet")
        if record.mode is ViewMode.OTHER:
            if not record.viewed_user_id:
                raise ScopeUnresolvedError("OTHER scope has no viewed_user_id")
            identity = record.viewed_user_id
        else:
            identity = self.viewer_user_id or record.viewer_email or self.viewer_email or "self"
        return build_cache_key([record.mode.value, identity])

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def set_view_mode(
        self,
        mode: ViewMode | str,
        *,
        email: str | None = None,
        viewed_user_id: str | None = None,
        viewed_user_email: str | None = None,
        persist: bool = True,
    ) -> ViewModeRecord:
        """Enter (or switch to) a scope.

        Args:
            mode:              SELF or OTHER.
            email:             Viewer's own email; defaults to the manager's viewer.
            viewed_user_id:    Required for OTHER; ignored for SELF.
            viewed_user_email: Display email of the viewed person.
            persist:           Write the record to device storage (needs an email).

        Returns:
            The new current record.

        Raises:
            ViewScopeError: OTHER without ``viewed_user_id``, or an unknown mode.
                            Current state is left untouched.
        """
        try:
            mode = ViewMode(mode)
        except ValueError as exc:
            raise ViewScopeError(f"Unknown view mode: {mode!r}") from exc

        viewer = normalise_email(email) if email else self.viewer_email
        try:
            record = ViewModeRecord(
                mode=mode,
                viewer_email=viewer,
                viewed_user_id=viewed_user_id or None,
                viewed_user_email=viewed_user_email,
                persisted=bool(persist and viewer),
            )
        except ValidationError as exc:
            logger.error("Rejected %s view mode without a viewed user id", mode.value)
            raise ViewScopeError(f"Cannot enter {mode.value} scope: {exc}") from exc

        if viewer:
            self.viewer_email = viewer
        self._current = record

        if record.persisted:
            try:
                await self._store.set_item(
                    view_mode_storage_key(viewer), record.model_dump_json(by_alias=True)
                )
            except StorageError as exc:
                logger.warning("Could not persist view mode: %s", exc)
                record = record.model_copy(update={"persisted": False})
                self._current = record

        logger.info(
            "View mode set to %s (viewed user: %s, persisted: %s)",
            record.mode.value,
            record.viewed_user_id or "-",
            record.persisted,
        )
        return record

    async def load_stored_view_mode_record(self, email: str) -> ViewModeRecord | None:
        """Read the viewer's stored record and make it current.

        If nothing usable is stored and the in-memory record belongs to a
        different viewer, the in-memory state is reset to UNRESOLVED.
        """
        viewer = self._require_email(email)
        record = await self._read(viewer)
        self.viewer_email = viewer
        if record is not None:
            self._current = record
        elif self._current is not None and self._current.viewer_email != viewer:
            self._current = None
        return record

    async def peek_stored_view_mode_record(self, email: str) -> ViewModeRecord | None:
        """Read the viewer's stored record without touching in-memory state."""
        return await self._read(self._require_email(email))

    async def clear(self, *, forget: bool = False) -> None:
        """Return to UNRESOLVED (sign-out).  ``forget`` also deletes the stored record."""
        if forget and self.viewer_email:
            try:
                await self._store.remove_item(view_mode_storage_key(self.viewer_email))
            except StorageError as exc:
                logger.warning("Could not delete stored view mode: %s", exc)
        self._current = None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _read(self, viewer: str) -> ViewModeRecord | None:
        try:
            raw = await self._store.get_item(view_mode_storage_key(viewer))
        except StorageError as exc:
            logger.warning("Could not read stored view mode: %s", exc)
            return None
        if raw is None:
            return None
        try:
            record = ViewModeRecord.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Ignoring corrupt stored view mode: %s", exc.errors()[:1])
            return None
        if record.schema_version != VIEW_MODE_SCHEMA_VERSION:
            logger.warning(
                "Ignoring stored view mode with schema v%s (expected v%s)",
                record.schema_version,
                VIEW_MODE_SCHEMA_VERSION,
            )
            return None
        return record

    @staticmethod
    def _require_email(email: str) -> str:
        if not email or not email.strip():
            raise ViewScopeError("A viewer email is required")
        return normalise_email(email)

    def __repr__(self) -> str:
        return f"ViewScopeManager(state={self.state.value}, viewer={self.viewer_email!r})"
