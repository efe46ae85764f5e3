"""Pydantic models for the cycle backend: periods, settings, symptoms,
moods and reminders, plus request/response bodies for the cycle API."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import Field

from src.cycle.records import (
    ConfidenceLevel,
    CyclePredictions,
    FlowLevel,
    PeriodRecord,
    UserSettings,
)
from src.cycle.phases import CyclePhase
from src.models.base import LocalDateModel, PeriBase


# ---------- Periods ----------

class Period(LocalDateModel):
    id: str | None = None
    start_date: date
    end_date: date | None = None
    flow_level: FlowLevel | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_record(self) -> PeriodRecord:
        return PeriodRecord(
            period_id=self.id,
            start_date=self.start_date,
            end_date=self.end_date,
            flow_level=self.flow_level,
        )


class PeriodCreate(LocalDateModel):
    start_date: date
    end_date: date | None = None
    flow_level: FlowLevel | None = None


# ---------- Settings ----------

class UserSettingsRead(LocalDateModel):
    id: str | None = None
    user_id: str | None = None
    average_cycle_length: int | None = Field(default=None, ge=1)
    average_period_length: int | None = Field(default=None, ge=1)
    period_duration: int | None = None
    last_period_date: date | None = None
    birth_year: int | None = None
    reminder_enabled: bool = False
    reminder_days_before: int | None = None

    def to_record(self) -> UserSettings:
        return UserSettings(
            average_cycle_length=self.average_cycle_length,
            average_period_length=self.average_period_length,
            reminder_enabled=self.reminder_enabled,
            birth_year=self.birth_year,
            last_period_date=self.last_period_date,
            reminder_days_before=self.reminder_days_before,
        )


# ---------- Daily logs ----------

class Symptom(LocalDateModel):
    id: str
    log_date: date = Field(alias="date")
    type: str
    severity: int = Field(ge=0)
    created_at: datetime | None = None


class Mood(LocalDateModel):
    id: str
    log_date: date = Field(alias="date")
    type: str
    created_at: datetime | None = None


# ---------- Reminders ----------

class Reminder(PeriBase):
    id: str | None = None
    message: str
    phase: str | None = None
    cycle_day: int | None = None
    sent_at: datetime


class ReminderStatus(PeriBase):
    enabled: bool = False
    last_reminder: Reminder | None = None


class ReminderGenerateResponse(PeriBase):
    success: bool
    reminder: Reminder | None = None
    message: str | None = None


# ---------- Cycle API ----------

class PredictionRequest(LocalDateModel):
    periods: list[Period] = Field(default_factory=list)
    settings: UserSettingsRead | None = None
    as_of_date: date | None = None


class PredictionRead(PeriBase):
    next_period_date: date | None = None
    ovulation_date: date | None = None
    fertile_window_start: date | None = None
    fertile_window_end: date | None = None
    cycle_length: int
    period_length: int
    confidence: ConfidenceLevel
    cycles_used: int = 0
    is_irregular: bool = False
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_predictions(cls, predictions: CyclePredictions) -> PredictionRead:
        return cls(
            next_period_date=predictions.next_period_date,
            ovulation_date=predictions.ovulation_date,
            fertile_window_start=predictions.fertile_window_start,
            fertile_window_end=predictions.fertile_window_end,
            cycle_length=predictions.cycle_length,
            period_length=predictions.period_length,
            confidence=predictions.confidence,
            cycles_used=predictions.cycles_used,
            is_irregular=predictions.is_irregular,
            warnings=list(predictions.warnings),
        )


class DayRequest(PredictionRequest):
    day: date = Field(alias="date")


class PhaseRead(PeriBase):
    phase: CyclePhase
    phase_start: date
    is_predicted: bool
    day_in_phase: int


class PeriodDayRead(PeriBase):
    day_number: int
    period_length: int
    label: str
    is_start: bool
    is_middle: bool
    is_end: bool


class DayRead(PeriBase):
    day: date = Field(alias="date")
    is_period: bool
    is_fertile: bool
    is_pms: bool
    is_predicted_period: bool = False
    phase: PhaseRead
    period_day: PeriodDayRead | None = None
    predictions: PredictionRead
