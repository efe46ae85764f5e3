"""Screen view models built on ``ScreenLoader``.

``CycleScreen``    — periods + settings, with today's overview derived from them.
``DailyLogScreen`` — symptoms and moods for a date range, plus reminder status.

Derived predictions are cached for display only; the engine always
recomputes them from periods and settings.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Callable

from src.cycle.overview import CycleOverview, build_cycle_overview
from src.models.cycle import (
    Mood,
    Period,
    PeriodCreate,
    PredictionRead,
    ReminderGenerateResponse,
    ReminderStatus,
    Symptom,
    UserSettingsRead,
)
from src.session.context import SessionContext
from src.session.loader import RefreshResult, ScreenLoader

logger = logging.getLogger("peri.session.screens")

_MISS = object()


@dataclass(frozen=True)
class CycleScreenData:
    periods: list[Period]
    settings: UserSettingsRead | None
    overview: CycleOverview


@dataclass(frozen=True)
class DailyLogData:
    start_date: date
    end_date: date
    symptoms: list[Symptom]
    moods: list[Mood]
    reminder_status: ReminderStatus


class CycleScreen(ScreenLoader[CycleScreenData]):
    """Home/calendar screen: logged periods and today's cycle overview."""

    name = "cycle"

    def __init__(
        self, context: SessionContext, clock: Callable[[], datetime] = datetime.now
    ) -> None:
        super().__init__(context)
        self._clock = clock

    async def read_cache(self, scope: str) -> CycleScreenData | None:
        cache = self.context.cache
        periods = await cache.get_cached_data(cache.scoped_key("periods", scope=scope), _MISS)
        if periods is _MISS:
            return None
        settings = await cache.get_cached_data(cache.scoped_key("settings", scope=scope))
        return self._build(periods, settings)

    async def fetch(self) -> CycleScreenData:
        backend = self.context.backend
        periods, settings = await asyncio.gather(backend.get_periods(), backend.get_settings())
        return self._build(periods, settings)

    async def write_cache(self, scope: str, value: CycleScreenData) -> None:
        cache = self.context.cache
        await cache.set_cached_data(
            cache.scoped_key("periods", scope=scope), value.periods, kind="periods"
        )
        await cache.set_cached_data(
            cache.scoped_key("settings", scope=scope), value.settings, kind="settings"
        )
        await cache.set_cached_data(
            cache.scoped_key("predictions", scope=scope),
            PredictionRead.from_predictions(value.overview.predictions),
            kind="predictions",
        )

    async def cached_predictions(self) -> PredictionRead | None:
        """Last derived predictions for the active scope (display only)."""
        cache = self.context.cache
        return await cache.get_cached_data(cache.scoped_key("predictions"))

    async def add_period(self, period: PeriodCreate) -> tuple[Period, RefreshResult[CycleScreenData]]:
        """Log a period, then refresh so predictions reflect it."""
        created = await self.context.backend.create_period(period)
        logger.info("Logged period starting %s", created.start_date)
        return created, await self.refresh()

    def _build(self, periods: list[Period], settings: UserSettingsRead | None) -> CycleScreenData:
        overview = build_cycle_overview(
            [p.to_record() for p in periods],
            settings.to_record() if settings is not None else None,
            now=self._clock(),
            config=self.context.cycle_config,
        )
        return CycleScreenData(periods=list(periods), settings=settings, overview=overview)


class DailyLogScreen(ScreenLoader[DailyLogData]):
    """Symptom/mood log for a date range, with the reminder banner."""

    name = "daily_log"

    def __init__(self, context: SessionContext, start_date: date, end_date: date) -> None:
        if end_date < start_date:
            raise ValueError(f"end_date {end_date} is before start_date {start_date}")
        super().__init__(context)
        self.start_date = start_date
        self.end_date = end_date

    async def read_cache(self, scope: str) -> DailyLogData | None:
        cache = self.context.cache
        symptoms = await cache.get_cached_data(self._range_key("symptoms", scope), _MISS)
        moods = await cache.get_cached_data(self._range_key("moods", scope), _MISS)
        if symptoms is _MISS and moods is _MISS:
            return None
        status = await cache.get_cached_data(cache.scoped_key("reminder_status", scope=scope))
        return DailyLogData(
            start_date=self.start_date,
            end_date=self.end_date,
            symptoms=[] if symptoms is _MISS else symptoms,
            moods=[] if moods is _MISS else moods,
            reminder_status=status if status is not None else ReminderStatus(),
        )

    async def fetch(self) -> DailyLogData:
        backend = self.context.backend
        symptoms, moods, status = await asyncio.gather(
            backend.get_symptoms(self.start_date, self.end_date),
            backend.get_moods(self.start_date, self.end_date),
            backend.get_reminder_status(),
        )
        return DailyLogData(
            start_date=self.start_date,
            end_date=self.end_date,
            symptoms=symptoms,
            moods=moods,
            reminder_status=status,
        )

    async def write_cache(self, scope: str, value: DailyLogData) -> None:
        cache = self.context.cache
        await cache.set_cached_data(self._range_key("symptoms", scope), value.symptoms, kind="symptoms")
        await cache.set_cached_data(self._range_key("moods", scope), value.moods, kind="moods")
        await cache.set_cached_data(
            cache.scoped_key("reminder_status", scope=scope),
            value.reminder_status,
            kind="reminder_status",
        )

    def symptoms_on(self, day: date) -> list[Symptom]:
        if self.current is None:
            return []
        return [s for s in self.current.symptoms if s.log_date == day]

    def moods_on(self, day: date) -> list[Mood]:
        if self.current is None:
            return []
        return [m for m in self.current.moods if m.log_date == day]

    async def generate_reminder(self) -> ReminderGenerateResponse:
        """Ask the backend for a phase reminder and show it as the latest one."""
        scope = self.context.scopes.scope_token()
        response = await self.context.backend.generate_reminder()
        if not response.success or response.reminder is None:
            logger.info("Reminder not generated: %s", response.message or "no reason given")
            return response
        if self.current is not None and self.current_scope == scope:
            status = self.current.reminder_status.model_copy(
                update={"last_reminder": response.reminder}
            )
            self.current = replace(self.current, reminder_status=status)
            await self.context.cache.set_cached_data(
                self.context.cache.scoped_key("reminder_status", scope=scope),
                status,
                kind="reminder_status",
            )
        return response

    def _range_key(self, kind: str, scope: str) -> str:
        return self.context.cache.scoped_key(kind, self.start_date, self.end_date, scope=scope)
