"""Derive the per-screen cycle view model from fresh periods + settings.

This is the last step of every screen refresh: once authoritative data is
back from the backend, the predictions and today's classification are
recomputed from scratch and handed to the UI.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from src.cycle.config_loader import CycleConfig
from src.cycle.dates import DateLike, days_since, days_until, to_local_date
from src.cycle.phases import (
    DayInfo,
    PeriodDayInfo,
    PhaseDetail,
    get_day_info,
    get_period_day_info,
    get_phase_details_for_date,
)
from src.cycle.prediction import CyclePredictor
from src.cycle.records import CyclePredictions, PeriodRecord, UserSettings


@dataclass(frozen=True)
class CycleOverview:
    """Everything a home/insights screen shows about "today".

    Attributes:
        as_of:                  The local date this overview describes.
        predictions:            Fresh predictions.
        phase:                  Today's phase classification.
        day_info:               Today's period/fertile/PMS flags.
        period_day:             Position within the current period, if bleeding.
        cycle_day:              1-indexed day since the latest period start.
        days_until_next_period: Days until the predicted next period.
    """

    as_of: date
    predictions: CyclePredictions
    phase: PhaseDetail
    day_info: DayInfo
    period_day: PeriodDayInfo | None
    cycle_day: int | None
    days_until_next_period: int | None


def build_cycle_overview(
    periods: Iterable[PeriodRecord],
    settings: UserSettings | None = None,
    now: DateLike | None = None,
    config: CycleConfig | None = None,
) -> CycleOverview:
    """Compute predictions and today's classification in one pass.

    ``now`` may be a datetime; partial days round the way the UI counts them
    (ceiling for "days until", floor for "days since").
    """
    periods = list(periods)
    now = now if now is not None else date.today()
    today = to_local_date(now)

    predictions = CyclePredictor(config).calculate_predictions(periods, settings, today)

    latest_start = max((p.start_date for p in periods), default=None)
    cycle_day = None
    if latest_start is not None and latest_start <= today:
        cycle_day = days_since(latest_start, now) + 1

    days_left = None
    if predictions.next_period_date is not None:
        days_left = days_until(predictions.next_period_date, now)

    return CycleOverview(
        as_of=today,
        predictions=predictions,
        phase=get_phase_details_for_date(today, periods, predictions, settings),
        day_info=get_day_info(today, periods, predictions),
        period_day=get_period_day_info(today, periods, predictions.period_length),
        cycle_day=cycle_day,
        days_until_next_period=days_left,
    )
