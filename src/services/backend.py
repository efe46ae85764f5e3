"""Peri REST backend client.

Thin async wrapper over the backend's JSON API.  Every call asks the token
getter for a fresh bearer token first; a missing token sends the request
without an Authorization header and lets the backend answer 401.

Endpoints used:
    GET  /api/periods                            — {periods}
    POST /api/periods                            — {period}
    GET  /api/user/settings                      — {settings} (401 → None)
    GET  /api/symptoms?startDate=..&endDate=..   — {symptoms}
    GET  /api/moods?startDate=..&endDate=..      — {moods}
    GET  /api/reminders/status                   — {enabled, lastReminder}
    POST /api/reminders/generate                 — {success, reminder?, message?}

Failures surface as ``httpx.HTTPError`` subclasses; callers (the screen
loaders) decide how to degrade.  A 2xx body that is not JSON, or whose JSON
does not match the expected shape, raises ``BackendResponseError`` so it is
handled like any other failed request.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from src.config import Settings, get_settings
from src.models.cycle import (
    Mood,
    Period,
    PeriodCreate,
    ReminderGenerateResponse,
    ReminderStatus,
    Symptom,
    UserSettingsRead,
)

logger = logging.getLogger("peri.services.backend")

TokenGetter = Callable[[], Awaitable[str | None]]

M = TypeVar("M", bound=BaseModel)


class BackendResponseError(httpx.HTTPError):
    """A successful response whose body could not be decoded or validated."""


async def _no_token() -> str | None:
    return None


class BackendClient:
    """Async client for the Peri backend.

    Usage::

        backend = BackendClient(token_getter=session.get_token)
        periods = await backend.get_periods()
    """

    def __init__(
        self,
        token_getter: TokenGetter | None = None,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the backend client.

        Args:
            token_getter: Coroutine returning the current bearer token, or None.
            settings:     App settings (base URL, timeout); defaults to ``get_settings()``.
            http_client:  Optional pre-configured httpx client (for testing).
        """
        self._settings = settings or get_settings()
        self._token_getter = token_getter or _no_token
        self._http_client = http_client
        self._base_url = self._settings.api_base_url.rstrip("/")

    # ------------------------------------------------------------------
    # Periods
    # ------------------------------------------------------------------

    async def get_periods(self) -> list[Period]:
        data = await self._request("GET", "/api/periods")
        return _validate_list(Period, data, "periods")

    async def create_period(self, period: PeriodCreate) -> Period:
        data = await self._request("POST", "/api/periods", json=period.dump())
        return _validate(Period, data.get("period"), "/api/periods")

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def get_settings(self) -> UserSettingsRead | None:
        """Fetch the viewed user's settings.

        Returns:
            The settings, or None when the backend answers 401 or has none.
        """
        try:
            data = await self._request("GET", "/api/user/settings")
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 401:
                logger.info("Settings request unauthorised; treating as no settings")
                return None
            raise
        raw = data.get("settings")
        return _validate(UserSettingsRead, raw, "/api/user/settings") if raw else None

    # ------------------------------------------------------------------
    # Daily logs
    # ------------------------------------------------------------------

    async def get_symptoms(
        self, start_date: date | None = None, end_date: date | None = None
    ) -> list[Symptom]:
        data = await self._request(
            "GET", "/api/symptoms", params=_range_params(start_date, end_date)
        )
        return _validate_list(Symptom, data, "symptoms")

    async def get_moods(
        self, start_date: date | None = None, end_date: date | None = None
    ) -> list[Mood]:
        data = await self._request(
            "GET", "/api/moods", params=_range_params(start_date, end_date)
        )
        return _validate_list(Mood, data, "moods")

    # ------------------------------------------------------------------
    # Reminders
    # ------------------------------------------------------------------

    async def get_reminder_status(self) -> ReminderStatus:
        data = await self._request("GET", "/api/reminders/status")
        return _validate(ReminderStatus, data, "/api/reminders/status")

    async def generate_reminder(self) -> ReminderGenerateResponse:
        data = await self._request("POST", "/api/reminders/generate")
        return _validate(ReminderGenerateResponse, data, "/api/reminders/generate")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: Any = None,
    ) -> dict:
        """Make an authenticated request to the backend.

        Returns:
            JSON response dict (empty for an empty or null body).

        Raises:
            httpx.HTTPStatusError: On non-2xx responses.
            BackendResponseError:  On a 2xx body that is not a JSON object.
            httpx.HTTPError:       On transport failures.
        """
        url = f"{self._base_url}{path}"
        headers = await self._build_headers()

        if self._http_client:
            response = await self._http_client.request(
                method, url, params=params, json=json, headers=headers
            )
        else:
            async with httpx.AsyncClient(timeout=self._settings.api_timeout_seconds) as client:
                response = await client.request(
                    method, url, params=params, json=json, headers=headers
                )

        if response.is_error:
            logger.warning("%s %s failed with HTTP %d", method, path, response.status_code)
        response.raise_for_status()

        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            logger.warning("%s %s returned a non-JSON body", method, path)
            raise BackendResponseError(f"{method} {path} returned a non-JSON body: {exc}") from exc
        if payload is None:
            return {}
        if not isinstance(payload, dict):
            raise BackendResponseError(
                f"{method} {path} returned {type(payload).__name__}, expected an object"
            )
        return payload

    async def _build_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        token = await self._token_getter()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers


def _range_params(start_date: date | None, end_date: date | None) -> dict[str, str]:
    params: dict[str, str] = {}
    if start_date is not None:
        params["startDate"] = start_date.isoformat()
    if end_date is not None:
        params["endDate"] = end_date.isoformat()
    return params


def _validate(model: type[M], raw: Any, source: str) -> M:
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Unexpected %s from %s: %s", model.__name__, source, exc.errors()[:1])
        raise BackendResponseError(
            f"{source} returned an invalid {model.__name__} ({exc.error_count()} error(s))"
        ) from exc


def _validate_list(model: type[M], data: dict, key: str) -> list[M]:
    items = data.get(key) or []
    if not isinstance(items, list):
        raise BackendResponseError(f"'{key}' is {type(items).__name__}, expected a list")
    return [_validate(model, item, f"/api/{key}") for item in items]
