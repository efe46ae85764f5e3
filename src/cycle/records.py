"""Engine-side records consumed and produced by the cycle engine.

These are deliberately plain dataclasses: the engine never touches the wire
format.  ``src.models.cycle`` converts backend JSON into these records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum


class FlowLevel(str, Enum):
    light = "light"
    medium = "medium"
    heavy = "heavy"


class ConfidenceLevel(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"


@dataclass(frozen=True)
class PeriodRecord:
    """A logged menstrual period.

    Attributes:
        period_id:  Backend identifier.
        start_date: First day of bleeding.
        end_date:   Last day of bleeding; None while the period is ongoing.
        flow_level: Self-reported flow, if any.
    """

    period_id: str | None
    start_date: date
    end_date: date | None = None
    flow_level: FlowLevel | None = None

    @property
    def is_open_ended(self) -> bool:
        return self.end_date is None

    def resolved_end(self, period_length: int) -> date:
        """Last day of the period, inferring it from ``period_length`` if open-ended."""
        if self.end_date is not None:
            return self.end_date
        return self.start_date + timedelta(days=max(1, period_length) - 1)


@dataclass(frozen=True)
class UserSettings:
    """Per-user cycle settings.  Averages override anything computed from history."""

    average_cycle_length: int | None = None
    average_period_length: int | None = None
    reminder_enabled: bool = False
    birth_year: int | None = None
    last_period_date: date | None = None
    reminder_days_before: int | None = None


@dataclass
class CyclePredictions:
    """Forward-looking dates for the current cycle.

    Recomputed on every read and never treated as authoritative state.

    Attributes:
        next_period_date:     Projected start of the next period (strictly after "now").
        ovulation_date:       next_period_date minus the luteal phase length.
        fertile_window_start: First fertile day (inclusive).
        fertile_window_end:   Last fertile day (inclusive).
        cycle_length:         Effective cycle length in days.
        period_length:        Effective period length in days.
        confidence:           How much history backs the projection.
        cycles_used:          Number of start-to-start gaps observed.
        is_irregular:         True if gaps vary by more than the configured spread.
        warnings:             Short/long cycle flags.
    """

    next_period_date: date | None = None
    ovulation_date: date | None = None
    fertile_window_start: date | None = None
    fertile_window_end: date | None = None
    cycle_length: int = 28
    period_length: int = 5
    confidence: ConfidenceLevel = ConfidenceLevel.low
    cycles_used: int = 0
    is_irregular: bool = False
    warnings: list[str] = field(default_factory=list)
