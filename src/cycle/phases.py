"""Cycle phase classification for any calendar date.

A date is classified by walking an ordered tuple of rules and taking the
first one that matches:

    1. inside a logged period           → menstrual  (actual)
    2. inside the predicted fertile window → ovulation (predicted)
    3. inside the predicted luteal window  → luteal    (predicted)
    4. anything else                    → follicular

The rules are plain functions so the precedence can be exercised in
isolation via ``resolve_phase``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Callable, Iterable, Optional

from src.cycle.dates import DateLike, to_local_date
from src.cycle.records import CyclePredictions, PeriodRecord, UserSettings


class CyclePhase(str, Enum):
    menstrual = "menstrual"
    follicular = "follicular"
    ovulation = "ovulation"
    luteal = "luteal"


@dataclass(frozen=True)
class PhaseDetail:
    """Which phase a date falls in, and since when.

    Attributes:
        phase:        The matched phase.
        phase_start:  First day of the matched range.
        is_predicted: True when the match relied on a predicted range.
        day_in_phase: 1-indexed day within the phase.
    """

    phase: CyclePhase
    phase_start: date
    is_predicted: bool
    day_in_phase: int = 1


@dataclass(frozen=True)
class DayInfo:
    is_period: bool
    is_fertile: bool
    is_pms: bool
    is_predicted_period: bool = False


_ORDINAL_SUFFIXES = {1: "st", 2: "nd", 3: "rd"}


@dataclass(frozen=True)
class PeriodDayInfo:
    """Position of a date inside a period (day 1 = first day of bleeding)."""

    day_number: int
    period_length: int

    @property
    def is_start(self) -> bool:
        return self.day_number == 1

    @property
    def is_end(self) -> bool:
        return self.day_number == self.period_length

    @property
    def is_middle(self) -> bool:
        return 1 < self.day_number < self.period_length

    @property
    def label(self) -> str:
        n = self.day_number
        suffix = "th" if 10 <= n % 100 <= 20 else _ORDINAL_SUFFIXES.get(n % 10, "th")
        return f"{n}{suffix} day"


@dataclass(frozen=True)
class PhaseInputs:
    """Everything a phase rule may look at, already normalised."""

    day: date
    periods: tuple[PeriodRecord, ...]  # newest start first
    predictions: CyclePredictions
    period_length: int


PhaseRule = Callable[[PhaseInputs], Optional[PhaseDetail]]


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def match_logged_period(inputs: PhaseInputs) -> PhaseDetail | None:
    for period in inputs.periods:
        if period.start_date <= inputs.day <= period.resolved_end(inputs.period_length):
            return _detail(CyclePhase.menstrual, period.start_date, False, inputs.day)
    return None


def match_fertile_window(inputs: PhaseInputs) -> PhaseDetail | None:
    start = inputs.predictions.fertile_window_start
    end = inputs.predictions.fertile_window_end
    if start is not None and end is not None and start <= inputs.day <= end:
        return _detail(CyclePhase.ovulation, start, True, inputs.day)
    return None


def match_luteal_window(inputs: PhaseInputs) -> PhaseDetail | None:
    start = inputs.predictions.ovulation_date
    end = inputs.predictions.next_period_date
    if start is not None and end is not None and start <= inputs.day < end:
        return _detail(CyclePhase.luteal, start, True, inputs.day)
    return None


def follicular_fallback(inputs: PhaseInputs) -> PhaseDetail:
    """Follicular from the day after the latest period that ended before ``day``."""
    for period in inputs.periods:
        if period.start_date > inputs.day:
            continue
        end = period.resolved_end(inputs.period_length)
        if end < inputs.day:
            return _detail(
                CyclePhase.follicular,
                end + timedelta(days=1),
                period.is_open_ended,
                inputs.day,
            )
    return _detail(CyclePhase.follicular, inputs.day, True, inputs.day)


#: Highest precedence first.
PHASE_RULES: tuple[PhaseRule, ...] = (
    match_logged_period,
    match_fertile_window,
    match_luteal_window,
)


def resolve_phase(
    candidates: Iterable[PhaseDetail | None],
    fallback: Callable[[], PhaseDetail],
) -> PhaseDetail:
    """Return the first non-None candidate, else ``fallback()``.

    ``candidates`` is consumed lazily, so rules after the first match never run.
    """
    for candidate in candidates:
        if candidate is not None:
            return candidate
    return fallback()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_phase_details_for_date(
    day: DateLike,
    periods: Iterable[PeriodRecord],
    predictions: CyclePredictions,
    settings: UserSettings | None = None,
    rules: tuple[PhaseRule, ...] = PHASE_RULES,
) -> PhaseDetail:
    """Classify ``day`` into one of the four cycle phases.

    Args:
        day:         Date to classify (normalised to a local date).
        periods:     Logged periods in any order.
        predictions: Output of ``calculate_predictions`` for the same data.
        settings:    User settings; an explicit average period length here
                     bounds open-ended periods instead of the predicted one.
        rules:       Precedence-ordered rules (override for testing).

    Returns:
        PhaseDetail.  Never raises for sparse input.
    """
    period_length = predictions.period_length
    if settings and settings.average_period_length and settings.average_period_length > 0:
        period_length = settings.average_period_length

    inputs = PhaseInputs(
        day=to_local_date(day),
        periods=_newest_first(periods),
        predictions=predictions,
        period_length=max(1, period_length),
    )
    return resolve_phase(
        (rule(inputs) for rule in rules),
        lambda: follicular_fallback(inputs),
    )


def get_day_info(
    day: DateLike,
    periods: Iterable[PeriodRecord],
    predictions: CyclePredictions,
) -> DayInfo:
    """Independent membership flags for ``day``.

    Unlike phase classification these are not exclusive: a day may be both
    fertile and inside the PMS (luteal) window.  ``is_predicted_period``
    marks the expected bleeding days ``[next_period_date,
    next_period_date + period_length - 1]`` that are not already logged.
    """
    d = to_local_date(day)
    period_length = max(1, predictions.period_length or 5)

    is_period = any(
        p.start_date <= d <= p.resolved_end(period_length) for p in periods
    )

    fw_start, fw_end = predictions.fertile_window_start, predictions.fertile_window_end
    is_fertile = fw_start is not None and fw_end is not None and fw_start <= d <= fw_end

    ov, nxt = predictions.ovulation_date, predictions.next_period_date
    is_pms = ov is not None and nxt is not None and ov <= d < nxt

    is_predicted_period = (
        not is_period
        and nxt is not None
        and nxt <= d <= nxt + timedelta(days=period_length - 1)
    )

    return DayInfo(
        is_period=is_period,
        is_fertile=is_fertile,
        is_pms=is_pms,
        is_predicted_period=is_predicted_period,
    )


def get_period_day_info(
    day: DateLike,
    periods: Iterable[PeriodRecord],
    period_length: int = 5,
) -> PeriodDayInfo | None:
    """Locate ``day`` inside the most recent period that contains it.

    Open-ended periods are assumed to last ``period_length`` days.

    Returns:
        PeriodDayInfo, or None if ``day`` is not a period day.
    """
    d = to_local_date(day)
    length = max(1, period_length)

    for period in _newest_first(periods):
        if period.start_date > d:
            continue
        day_number = (d - period.start_date).days + 1
        if period.end_date is not None:
            if d <= period.end_date:
                return PeriodDayInfo(
                    day_number=day_number,
                    period_length=(period.end_date - period.start_date).days + 1,
                )
        elif day_number <= length:
            return PeriodDayInfo(day_number=day_number, period_length=length)
    return None


def _newest_first(periods: Iterable[PeriodRecord]) -> tuple[PeriodRecord, ...]:
    return tuple(sorted(periods, key=lambda p: p.start_date, reverse=True))


def _detail(phase: CyclePhase, start: date, predicted: bool, day: date) -> PhaseDetail:
    return PhaseDetail(
        phase=phase,
        phase_start=start,
        is_predicted=predicted,
        day_in_phase=(day - start).days + 1,
    )
