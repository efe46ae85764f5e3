"""Tests for the cycle HTTP endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from src.main import create_app

SCENARIO_BODY = {
    "periods": [{"id": "p1", "startDate": "2024-01-01"}],
    "settings": {"averageCycleLength": 28, "averagePeriodLength": 5},
    "asOfDate": "2024-01-20",
}


@pytest.fixture
def client() -> TestClient:
    return TestClient(create_app())


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["cycleConfig"] == "1.0"


class TestPredictionsEndpoint:
    def test_worked_example(self, client: TestClient) -> None:
        response = client.post("/api/v1/cycle/predictions", json=SCENARIO_BODY)
        assert response.status_code == 200
        body = response.json()
        assert body["nextPeriodDate"] == "2024-01-29"
        assert body["ovulationDate"] == "2024-01-15"
        assert body["fertileWindowStart"] == "2024-01-10"
        assert body["fertileWindowEnd"] == "2024-01-16"
        assert body["cycleLength"] == 28
        assert body["periodLength"] == 5
        assert body["confidence"] == "low"

    def test_no_periods(self, client: TestClient) -> None:
        response = client.post("/api/v1/cycle/predictions", json={"asOfDate": "2024-01-20"})
        assert response.status_code == 200
        body = response.json()
        assert body["nextPeriodDate"] is None
        assert body["cycleLength"] == 28

    def test_snake_case_input_accepted(self, client: TestClient) -> None:
        body = {
            "periods": [{"start_date": "2024-01-01"}],
            "settings": {"average_cycle_length": 28},
            "as_of_date": "2024-01-20",
        }
        response = client.post("/api/v1/cycle/predictions", json=body)
        assert response.json()["nextPeriodDate"] == "2024-01-29"

    def test_period_ending_before_start_rejected(self, client: TestClient) -> None:
        body = {
            "periods": [{"startDate": "2024-01-05", "endDate": "2024-01-01"}],
            "asOfDate": "2024-01-20",
        }
        response = client.post("/api/v1/cycle/predictions", json=body)
        assert response.status_code == 422
        assert "ends before it starts" in response.json()["detail"]

    def test_bad_date_rejected(self, client: TestClient) -> None:
        body = {"periods": [{"startDate": "yesterday"}]}
        response = client.post("/api/v1/cycle/predictions", json=body)
        assert response.status_code == 422


class TestDayEndpoint:
    def test_period_day(self, client: TestClient) -> None:
        response = client.post("/api/v1/cycle/day", json={**SCENARIO_BODY, "date": "2024-01-03"})
        assert response.status_code == 200
        body = response.json()
        assert body["date"] == "2024-01-03"
        assert body["isPeriod"] is True
        assert body["phase"]["phase"] == "menstrual"
        assert body["phase"]["phaseStart"] == "2024-01-01"
        assert body["phase"]["isPredicted"] is False
        assert body["periodDay"]["label"] == "3rd day"
        assert body["periodDay"]["isMiddle"] is True
        assert body["predictions"]["nextPeriodDate"] == "2024-01-29"

    def test_fertile_and_pms_day(self, client: TestClient) -> None:
        response = client.post("/api/v1/cycle/day", json={**SCENARIO_BODY, "date": "2024-01-15"})
        body = response.json()
        assert body["isFertile"] is True
        assert body["isPms"] is True
        assert body["phase"]["phase"] == "ovulation"
        assert body["periodDay"] is None
        assert body["isPredictedPeriod"] is False

    def test_predicted_period_day(self, client: TestClient) -> None:
        response = client.post("/api/v1/cycle/day", json={**SCENARIO_BODY, "date": "2024-01-29"})
        body = response.json()
        assert body["isPredictedPeriod"] is True
        assert body["isPeriod"] is False
        assert body["phase"]["phase"] == "follicular"

    def test_missing_date_rejected(self, client: TestClient) -> None:
        response = client.post("/api/v1/cycle/day", json=SCENARIO_BODY)
        assert response.status_code == 422
