"""Stateless cycle computations over posted periods and settings.

The engine never stores anything: callers post the periods they already
have and get predictions or a single day's classification back.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException

from src.cycle.phases import get_day_info, get_period_day_info, get_phase_details_for_date
from src.cycle.prediction import CyclePredictor
from src.cycle.records import PeriodRecord, UserSettings
from src.dependencies import CycleConfigDep
from src.models.cycle import (
    DayRead,
    DayRequest,
    PeriodDayRead,
    PhaseRead,
    PredictionRead,
    PredictionRequest,
)

router = APIRouter(prefix="/cycle", tags=["cycle"])
logger = logging.getLogger("peri.routers.cycle")


def _unpack(body: PredictionRequest) -> tuple[list[PeriodRecord], UserSettings | None]:
    records = [p.to_record() for p in body.periods]
    for record in records:
        if record.end_date is not None and record.end_date < record.start_date:
            raise HTTPException(
                status_code=422,
                detail=f"Period starting {record.start_date} ends before it starts",
            )
    settings = body.settings.to_record() if body.settings is not None else None
    return records, settings


@router.post("/predictions", response_model=PredictionRead)
async def predict(body: PredictionRequest, config: CycleConfigDep) -> Any:
    periods, settings = _unpack(body)
    as_of = body.as_of_date or date.today()
    predictions = CyclePredictor(config).calculate_predictions(periods, settings, as_of)
    logger.debug(
        "Predicted next period %s from %d periods", predictions.next_period_date, len(periods)
    )
    return PredictionRead.from_predictions(predictions)


@router.post("/day", response_model=DayRead)
async def classify_day(body: DayRequest, config: CycleConfigDep) -> Any:
    periods, settings = _unpack(body)
    as_of = body.as_of_date or date.today()
    predictions = CyclePredictor(config).calculate_predictions(periods, settings, as_of)

    phase = get_phase_details_for_date(body.day, periods, predictions, settings)
    info = get_day_info(body.day, periods, predictions)
    period_day = get_period_day_info(body.day, periods, predictions.period_length)

    return DayRead(
        day=body.day,
        is_period=info.is_period,
        is_fertile=info.is_fertile,
        is_pms=info.is_pms,
        is_predicted_period=info.is_predicted_period,
        phase=PhaseRead(
            phase=phase.phase,
            phase_start=phase.phase_start,
            is_predicted=phase.is_predicted,
            day_in_phase=phase.day_in_phase,
        ),
        period_day=None
        if period_day is None
        else PeriodDayRead(
            day_number=period_day.day_number,
            period_length=period_day.period_length,
            label=period_day.label,
            is_start=period_day.is_start,
            is_middle=period_day.is_middle,
            is_end=period_day.is_end,
        ),
        predictions=PredictionRead.from_predictions(predictions),
    )
