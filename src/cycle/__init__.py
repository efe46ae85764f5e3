"""Peri cycle engine.

Pure, synchronous date arithmetic over logged periods.  Nothing in this
package performs I/O; the session layer feeds it fresh backend data.

Modules:
    records       — PeriodRecord / UserSettings / CyclePredictions
    prediction    — Next period, ovulation and fertile window projection
    phases        — Phase classification with ordered precedence rules
    overview      — Today's view model for screens
    dates         — Local-date normalisation and day counting
    config_loader — Load/validate/hot-reload cycle_config.yaml
"""

from src.cycle.config_loader import CycleConfig, get_cycle_config
from src.cycle.overview import CycleOverview, build_cycle_overview
from src.cycle.phases import (
    CyclePhase,
    DayInfo,
    PeriodDayInfo,
    PhaseDetail,
    get_day_info,
    get_period_day_info,
    get_phase_details_for_date,
)
from src.cycle.prediction import CyclePredictor, calculate_predictions
from src.cycle.records import (
    ConfidenceLevel,
    CyclePredictions,
    FlowLevel,
    PeriodRecord,
    UserSettings,
)

__all__ = [
    "CycleConfig",
    "get_cycle_config",
    "CycleOverview",
    "build_cycle_overview",
    "CyclePhase",
    "DayInfo",
    "PeriodDayInfo",
    "PhaseDetail",
    "get_day_info",
    "get_period_day_info",
    "get_phase_details_for_date",
    "CyclePredictor",
    "calculate_predictions",
    "ConfidenceLevel",
    "CyclePredictions",
    "FlowLevel",
    "PeriodRecord",
    "UserSettings",
]
