"""Menstrual cycle prediction engine.

Turns logged periods + user settings into forward-looking dates:
- Next period start date
- Ovulation date (fixed luteal phase before the next period)
- Fertile window

Effective lengths come from the user's settings first, then from their
history, then from the configured defaults (28-day cycle, 5-day period).

Predictions are a pure function of (periods, settings, as_of_date): no I/O,
no mutation of inputs, identical output for identical inputs.
"""

from __future__ import annotations

import logging
import math
import statistics
from datetime import date, timedelta
from typing import Iterable

from src.cycle.config_loader import CycleConfig, get_cycle_config
from src.cycle.dates import DateLike, to_local_date
from src.cycle.records import (
    ConfidenceLevel,
    CyclePredictions,
    PeriodRecord,
    UserSettings,
)

logger = logging.getLogger("peri.cycle.prediction")


class CyclePredictor:
    """Predict the next cycle from period history.

    Usage::

        predictor = CyclePredictor()
        predictions = predictor.calculate_predictions(
            periods=periods,
            settings=settings,
            as_of_date=date(2024, 1, 20),
        )
        print(predictions.next_period_date)
    """

    def __init__(self, config: CycleConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    def calculate_predictions(
        self,
        periods: Iterable[PeriodRecord],
        settings: UserSettings | None = None,
        as_of_date: DateLike | None = None,
    ) -> CyclePredictions:
        """Generate predictions from historical periods.

        Args:
            periods:    Logged periods in any order; may overlap or repeat.
            settings:   User settings; averages here override history.
            as_of_date: Reference "now" (defaults to today, local time).

        Returns:
            CyclePredictions.  With no periods every date field is None.
        """
        today = to_local_date(as_of_date) if as_of_date is not None else date.today()

        ordered = sorted(periods, key=lambda p: p.start_date)
        gaps = start_gaps(ordered)

        prediction = CyclePredictions(
            cycle_length=self.effective_cycle_length(gaps, settings),
            period_length=self.effective_period_length(ordered, settings),
            cycles_used=len(gaps),
        )
        self._annotate_history(prediction, gaps)

        if not ordered:
            return prediction

        last_start = ordered[-1].start_date
        next_period = project_next_period(last_start, prediction.cycle_length, today)

        ov = self._config.ovulation
        ovulation = next_period - timedelta(days=ov.luteal_phase_days)

        prediction.next_period_date = next_period
        prediction.ovulation_date = ovulation
        prediction.fertile_window_start = ovulation - timedelta(days=ov.fertile_days_before)
        prediction.fertile_window_end = ovulation + timedelta(days=ov.fertile_days_after)

        logger.debug(
            "Predicted next period %s (last start %s, cycle %d days, %d gaps)",
            next_period,
            last_start,
            prediction.cycle_length,
            len(gaps),
        )
        return prediction

    def effective_cycle_length(
        self, gaps: list[int], settings: UserSettings | None
    ) -> int:
        """Settings average, else mean start-to-start gap, else the default."""
        if settings and settings.average_cycle_length and settings.average_cycle_length > 0:
            return settings.average_cycle_length
        if gaps:
            return _round_half_up(statistics.mean(gaps))
        return self._config.defaults.cycle_length_days

    def effective_period_length(
        self, ordered: list[PeriodRecord], settings: UserSettings | None
    ) -> int:
        """Settings average, else mean length of completed periods, else the default."""
        if settings and settings.average_period_length and settings.average_period_length > 0:
            return settings.average_period_length
        lengths = [
            (p.end_date - p.start_date).days + 1
            for p in ordered
            if p.end_date is not None and p.end_date >= p.start_date
        ]
        if lengths:
            return _round_half_up(statistics.mean(lengths))
        return self._config.defaults.period_length_days

    def classify_cycle(self, cycle_length: int) -> str:
        """Classify a cycle length as 'normal', 'short', or 'long'."""
        bounds = self._config.cycle_length
        if cycle_length < bounds.min_cycle_days:
            return "short"
        if cycle_length > bounds.max_cycle_days:
            return "long"
        return "normal"

    def _annotate_history(self, prediction: CyclePredictions, gaps: list[int]) -> None:
        cfg = self._config

        if len(gaps) >= cfg.confidence.high_min_cycles:
            prediction.confidence = ConfidenceLevel.high
        elif len(gaps) >= cfg.confidence.medium_min_cycles:
            prediction.confidence = ConfidenceLevel.medium

        if len(gaps) > 1:
            prediction.is_irregular = statistics.stdev(gaps) > cfg.cycle_length.irregular_std_days

        bounds = cfg.cycle_length
        kinds = [self.classify_cycle(g) for g in gaps]
        if "short" in kinds:
            shortest = min(gaps)
            prediction.warnings.append(
                f"Short cycle detected: {shortest} days (below {bounds.min_cycle_days} day minimum)"
            )
        if "long" in kinds:
            longest = max(gaps)
            prediction.warnings.append(
                f"Long cycle detected: {longest} days (above {bounds.max_cycle_days} day maximum)"
            )


def start_gaps(ordered: list[PeriodRecord]) -> list[int]:
    """Day gaps between consecutive distinct period starts.

    Duplicate start dates (re-logged or overlapping records) contribute no gap.
    """
    gaps: list[int] = []
    for previous, current in zip(ordered, ordered[1:]):
        gap = (current.start_date - previous.start_date).days
        if gap > 0:
            gaps.append(gap)
    return gaps


def project_next_period(last_start: date, cycle_length: int, today: date) -> date:
    """Project forward from ``last_start`` to the first cycle start after ``today``.

    Stale histories are advanced by whole cycles, so the result is always
    strictly in the future relative to ``today``.
    """
    cycle_length = max(1, cycle_length)
    elapsed = (today - last_start).days
    if elapsed < 0:
        cycles = 1
    else:
        cycles = elapsed // cycle_length + 1
    return last_start + timedelta(days=cycles * cycle_length)


def calculate_predictions(
    periods: Iterable[PeriodRecord],
    settings: UserSettings | None = None,
    as_of_date: DateLike | None = None,
    config: CycleConfig | None = None,
) -> CyclePredictions:
    """Module-level shortcut for ``CyclePredictor(config).calculate_predictions``."""
    return CyclePredictor(config).calculate_predictions(periods, settings, as_of_date)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
