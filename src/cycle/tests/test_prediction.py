"""Tests for the cycle prediction engine."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from src.cycle.config_loader import CycleConfig, _validate_and_build
from src.cycle.prediction import (
    CyclePredictor,
    calculate_predictions,
    project_next_period,
    start_gaps,
)
from src.cycle.records import ConfidenceLevel, PeriodRecord, UserSettings
from src.cycle.tests.conftest import SCENARIO_TODAY, make_period


def starts(*days: date) -> list[PeriodRecord]:
    return [make_period(d) for d in days]


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


class TestScenario:
    def test_worked_example(
        self,
        predictor: CyclePredictor,
        scenario_periods: list[PeriodRecord],
        scenario_settings: UserSettings,
    ) -> None:
        p = predictor.calculate_predictions(scenario_periods, scenario_settings, SCENARIO_TODAY)
        assert p.next_period_date == date(2024, 1, 29)
        assert p.ovulation_date == date(2024, 1, 15)
        assert p.fertile_window_start == date(2024, 1, 10)
        assert p.fertile_window_end == date(2024, 1, 16)
        assert p.cycle_length == 28
        assert p.period_length == 5

    def test_fertile_window_is_seven_days_inclusive(
        self,
        predictor: CyclePredictor,
        scenario_periods: list[PeriodRecord],
        scenario_settings: UserSettings,
    ) -> None:
        p = predictor.calculate_predictions(scenario_periods, scenario_settings, SCENARIO_TODAY)
        assert (p.fertile_window_end - p.fertile_window_start).days + 1 == 7
        assert p.fertile_window_start <= p.ovulation_date <= p.fertile_window_end

    def test_as_of_date_accepts_iso_string(
        self,
        predictor: CyclePredictor,
        scenario_periods: list[PeriodRecord],
        scenario_settings: UserSettings,
    ) -> None:
        p = predictor.calculate_predictions(scenario_periods, scenario_settings, "2024-01-20")
        assert p.next_period_date == date(2024, 1, 29)


class TestForwardProjection:
    def test_projects_past_stale_history(self, predictor: CyclePredictor) -> None:
        """Forty days after the last start with a 28-day cycle lands on day 56."""
        last = date(2024, 1, 1)
        p = predictor.calculate_predictions(
            starts(last), UserSettings(average_cycle_length=28), last + timedelta(days=40)
        )
        assert p.next_period_date == last + timedelta(days=56)

    def test_many_cycles_stale(self, predictor: CyclePredictor) -> None:
        p = predictor.calculate_predictions(
            starts(date(2024, 1, 1)), UserSettings(average_cycle_length=28), date(2024, 3, 10)
        )
        assert p.next_period_date == date(2024, 3, 25)

    def test_next_period_is_strictly_after_today(self, predictor: CyclePredictor) -> None:
        """Landing exactly on a projected start pushes one more cycle."""
        p = predictor.calculate_predictions(
            starts(date(2024, 1, 1)), UserSettings(average_cycle_length=28), date(2024, 1, 29)
        )
        assert p.next_period_date == date(2024, 2, 26)

    def test_future_logged_period_projects_one_cycle(self, predictor: CyclePredictor) -> None:
        p = predictor.calculate_predictions(
            starts(date(2024, 2, 1)), UserSettings(average_cycle_length=28), date(2024, 1, 20)
        )
        assert p.next_period_date == date(2024, 2, 29)

    @pytest.mark.parametrize("offset", [0, 1, 13, 27, 28, 29, 100, 365])
    def test_projection_invariants(self, offset: int) -> None:
        last = date(2024, 1, 1)
        today = last + timedelta(days=offset)
        nxt = project_next_period(last, 28, today)
        assert nxt > today
        assert (nxt - last).days % 28 == 0
        assert (nxt - today).days <= 28


# ---------------------------------------------------------------------------
# Effective lengths
# ---------------------------------------------------------------------------


class TestEffectiveLengths:
    def test_mean_gap_from_history(self, predictor: CyclePredictor) -> None:
        history = starts(date(2024, 1, 1), date(2024, 1, 29), date(2024, 2, 28), date(2024, 3, 27))
        p = predictor.calculate_predictions(history, None, date(2024, 4, 1))
        assert p.cycle_length == 29  # mean of 28, 30, 28 rounds up
        assert p.next_period_date == date(2024, 4, 25)
        assert p.ovulation_date == date(2024, 4, 11)

    def test_half_day_mean_rounds_up(self, predictor: CyclePredictor) -> None:
        history = starts(date(2024, 1, 1), date(2024, 1, 29), date(2024, 2, 27))
        p = predictor.calculate_predictions(history, None, date(2024, 3, 1))
        assert p.cycle_length == 29

    def test_settings_override_history(self, predictor: CyclePredictor) -> None:
        history = starts(date(2024, 1, 1), date(2024, 1, 29))
        p = predictor.calculate_predictions(
            history, UserSettings(average_cycle_length=30), date(2024, 2, 1)
        )
        assert p.cycle_length == 30
        assert p.next_period_date == date(2024, 2, 28)

    def test_zero_setting_falls_back_to_history(self, predictor: CyclePredictor) -> None:
        history = starts(date(2024, 1, 1), date(2024, 1, 31))
        p = predictor.calculate_predictions(
            history, UserSettings(average_cycle_length=0), date(2024, 2, 1)
        )
        assert p.cycle_length == 30

    def test_period_length_from_completed_periods(self, predictor: CyclePredictor) -> None:
        history = [
            make_period(date(2024, 1, 1), date(2024, 1, 4)),  # 4 days
            make_period(date(2024, 1, 29), date(2024, 2, 4)),  # 7 days
            make_period(date(2024, 2, 26)),  # ongoing, ignored
        ]
        p = predictor.calculate_predictions(history, None, date(2024, 2, 27))
        assert p.period_length == 6

    def test_open_ended_only_uses_default_period_length(self, predictor: CyclePredictor) -> None:
        p = predictor.calculate_predictions(starts(date(2024, 1, 1)), None, SCENARIO_TODAY)
        assert p.period_length == 5
        assert p.cycle_length == 28


# ---------------------------------------------------------------------------
# Sparse and messy input
# ---------------------------------------------------------------------------


class TestSparseInput:
    def test_no_periods_gives_no_dates(self, predictor: CyclePredictor) -> None:
        p = predictor.calculate_predictions([], None, SCENARIO_TODAY)
        assert p.next_period_date is None
        assert p.ovulation_date is None
        assert p.fertile_window_start is None
        assert p.fertile_window_end is None
        assert p.cycle_length == 28
        assert p.period_length == 5
        assert p.confidence is ConfidenceLevel.low

    def test_no_periods_keeps_settings_lengths(self, predictor: CyclePredictor) -> None:
        p = predictor.calculate_predictions(
            [], UserSettings(average_cycle_length=30, average_period_length=6), SCENARIO_TODAY
        )
        assert (p.cycle_length, p.period_length) == (30, 6)

    def test_unordered_input_matches_ordered(self, predictor: CyclePredictor) -> None:
        ordered = starts(date(2024, 1, 1), date(2024, 1, 29), date(2024, 2, 26))
        shuffled = [ordered[2], ordered[0], ordered[1]]
        assert predictor.calculate_predictions(
            ordered, None, date(2024, 3, 1)
        ) == predictor.calculate_predictions(shuffled, None, date(2024, 3, 1))

    def test_input_list_is_not_mutated(self, predictor: CyclePredictor) -> None:
        periods = starts(date(2024, 2, 26), date(2024, 1, 1))
        snapshot = list(periods)
        predictor.calculate_predictions(periods, None, date(2024, 3, 1))
        assert periods == snapshot

    def test_duplicate_starts_contribute_no_gap(self, predictor: CyclePredictor) -> None:
        history = [
            make_period(date(2024, 1, 1), period_id="a"),
            make_period(date(2024, 1, 1), period_id="b"),
            make_period(date(2024, 1, 29), period_id="c"),
        ]
        p = predictor.calculate_predictions(history, None, date(2024, 2, 1))
        assert p.cycles_used == 1
        assert p.cycle_length == 28

    def test_deterministic(
        self,
        predictor: CyclePredictor,
        scenario_periods: list[PeriodRecord],
        scenario_settings: UserSettings,
    ) -> None:
        first = predictor.calculate_predictions(scenario_periods, scenario_settings, SCENARIO_TODAY)
        second = predictor.calculate_predictions(scenario_periods, scenario_settings, SCENARIO_TODAY)
        assert first == second


# ---------------------------------------------------------------------------
# History annotations
# ---------------------------------------------------------------------------


class TestHistoryAnnotations:
    @pytest.mark.parametrize(
        "n_periods, expected",
        [(1, ConfidenceLevel.low), (2, ConfidenceLevel.medium), (4, ConfidenceLevel.high)],
    )
    def test_confidence_by_cycles_observed(
        self, predictor: CyclePredictor, n_periods: int, expected: ConfidenceLevel
    ) -> None:
        history = starts(*(date(2024, 1, 1) + timedelta(days=28 * i) for i in range(n_periods)))
        p = predictor.calculate_predictions(history, None, date(2024, 6, 1))
        assert p.confidence is expected
        assert p.cycles_used == n_periods - 1

    def test_irregular_history_flagged(self, predictor: CyclePredictor) -> None:
        history = starts(date(2024, 1, 1), date(2024, 1, 22), date(2024, 3, 2), date(2024, 3, 27))
        p = predictor.calculate_predictions(history, None, date(2024, 4, 1))
        assert p.is_irregular is True

    def test_regular_history_not_flagged(self, predictor: CyclePredictor) -> None:
        history = starts(date(2024, 1, 1), date(2024, 1, 29), date(2024, 2, 26))
        p = predictor.calculate_predictions(history, None, date(2024, 3, 1))
        assert p.is_irregular is False
        assert p.warnings == []

    def test_short_cycle_warning(self, predictor: CyclePredictor) -> None:
        history = starts(date(2024, 1, 1), date(2024, 1, 19), date(2024, 2, 16))
        p = predictor.calculate_predictions(history, None, date(2024, 2, 20))
        assert any("Short cycle detected: 18 days" in w for w in p.warnings)

    def test_long_cycle_warning(self, predictor: CyclePredictor) -> None:
        history = starts(date(2024, 1, 1), date(2024, 2, 20))
        p = predictor.calculate_predictions(history, None, date(2024, 2, 21))
        assert any("Long cycle detected: 50 days" in w for w in p.warnings)

    @pytest.mark.parametrize("length, kind", [(20, "short"), (21, "normal"), (45, "normal"), (46, "long")])
    def test_classify_cycle(self, predictor: CyclePredictor, length: int, kind: str) -> None:
        assert predictor.classify_cycle(length) == kind


# ---------------------------------------------------------------------------
# Helpers and config
# ---------------------------------------------------------------------------


class TestHelpers:
    def test_start_gaps_skips_zero(self) -> None:
        ordered = starts(date(2024, 1, 1), date(2024, 1, 1), date(2024, 1, 29), date(2024, 2, 27))
        assert start_gaps(ordered) == [28, 29]

    def test_module_shortcut_matches_predictor(self, cycle_config: CycleConfig) -> None:
        periods = starts(date(2024, 1, 1))
        assert calculate_predictions(
            periods, None, SCENARIO_TODAY, config=cycle_config
        ) == CyclePredictor(cycle_config).calculate_predictions(periods, None, SCENARIO_TODAY)

    def test_custom_luteal_length(self) -> None:
        config = _validate_and_build({"ovulation": {"luteal_phase_days": 12}})
        p = CyclePredictor(config).calculate_predictions(
            starts(date(2024, 1, 1)), UserSettings(average_cycle_length=28), SCENARIO_TODAY
        )
        assert p.ovulation_date == date(2024, 1, 17)
        assert p.fertile_window_start == date(2024, 1, 12)
        assert p.fertile_window_end == date(2024, 1, 18)
