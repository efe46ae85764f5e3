"""Shared fixtures for cycle engine tests."""

from __future__ import annotations

from datetime import date

import pytest

from src.cycle.config_loader import CycleConfig, load_cycle_config
from src.cycle.prediction import CyclePredictor
from src.cycle.records import FlowLevel, PeriodRecord, UserSettings

# The worked example: one logged period, 28/5 settings, "today" is Jan 20.
SCENARIO_START = date(2024, 1, 1)
SCENARIO_TODAY = date(2024, 1, 20)


def make_period(
    start: date,
    end: date | None = None,
    period_id: str | None = None,
    flow: FlowLevel | None = None,
) -> PeriodRecord:
    return PeriodRecord(
        period_id=period_id or f"p-{start.isoformat()}",
        start_date=start,
        end_date=end,
        flow_level=flow,
    )


@pytest.fixture
def cycle_config() -> CycleConfig:
    """Load the real cycle config for tests."""
    return load_cycle_config()


@pytest.fixture
def predictor(cycle_config: CycleConfig) -> CyclePredictor:
    return CyclePredictor(cycle_config)


@pytest.fixture
def scenario_settings() -> UserSettings:
    return UserSettings(average_cycle_length=28, average_period_length=5)


@pytest.fixture
def scenario_periods() -> list[PeriodRecord]:
    return [make_period(SCENARIO_START)]
