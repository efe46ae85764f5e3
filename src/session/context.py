"""Explicit per-session wiring.

One ``SessionContext`` per signed-in viewer holds the device store, the
view scope, the scoped cache and the backend client.  Screens receive the
context instead of reaching for module-level singletons, so two sessions
(or two tests) never share state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import httpx

from src.config import Settings, get_settings
from src.cycle.config_loader import CycleConfig, get_cycle_config
from src.services.backend import BackendClient, TokenGetter
from src.session.cache import ScopedCache
from src.session.storage import JsonFileStore, KeyValueStore
from src.session.view_scope import ViewModeRecord, ViewScopeManager

logger = logging.getLogger("peri.session.context")


@dataclass
class SessionContext:
    store: KeyValueStore
    scopes: ViewScopeManager
    cache: ScopedCache
    backend: BackendClient
    settings: Settings
    cycle_config: CycleConfig = field(default_factory=get_cycle_config)

    @classmethod
    def create(
        cls,
        *,
        viewer_user_id: str | None = None,
        viewer_email: str | None = None,
        token_getter: TokenGetter | None = None,
        settings: Settings | None = None,
        store: KeyValueStore | None = None,
        http_client: httpx.AsyncClient | None = None,
        cycle_config: CycleConfig | None = None,
    ) -> SessionContext:
        """Wire a session from settings.

        Without an explicit ``store`` the device store is a ``JsonFileStore``
        at ``settings.storage_path``.
        """
        settings = settings or get_settings()
        store = store if store is not None else JsonFileStore(settings.storage_path)
        scopes = ViewScopeManager(store, viewer_user_id=viewer_user_id, viewer_email=viewer_email)
        return cls(
            store=store,
            scopes=scopes,
            cache=ScopedCache(store, scopes),
            backend=BackendClient(token_getter, settings=settings, http_client=http_client),
            settings=settings,
            cycle_config=cycle_config or get_cycle_config(),
        )

    async def resume(self, email: str | None = None) -> ViewModeRecord | None:
        """Reload the viewer's stored scope at app start or resume."""
        email = email or self.scopes.viewer_email
        if not email:
            logger.info("No viewer email; view scope stays unresolved")
            return None
        return await self.scopes.load_stored_view_mode_record(email)

    async def sign_out(self, *, forget: bool = False, clear_cache: bool = True) -> None:
        """Return to UNRESOLVED and, by default, drop every cached snapshot."""
        await self.scopes.clear(forget=forget)
        if clear_cache:
            await self.cache.clear_cached_data()
        logger.info("Session signed out (forget=%s, clear_cache=%s)", forget, clear_cache)
