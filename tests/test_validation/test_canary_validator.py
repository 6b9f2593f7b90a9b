"""Tests for synthetic_canary.validation — criteria and CanaryValidator."""
from __future__ import annotations

import datetime

import pydantic
import pytest

from synthetic_canary.profiles import Scenario
from synthetic_canary.reporting import BreakdownStats, TestReport
from synthetic_canary.validation import (
    APPROVAL_THRESHOLD,
    DEFAULT_CRITERIA,
    CanaryValidator,
    ValidationCriteria,
)
from synthetic_canary.validation.validator import (
    CRITERION_AVG_RESPONSE_TIME,
    CRITERION_ERROR_RATE,
    CRITERION_REQUIRED_SCENARIOS,
    CRITERION_SUCCESS_RATE,
    CRITERION_TEST_DURATION,
)

_T0 = datetime.datetime(2026, 1, 1, tzinfo=datetime.timezone.utc)
_ALL_REQUIRED = {
    "navigation_flow": BreakdownStats(6, 6),
    "episode_generation": BreakdownStats(7, 7),
    "audio_playback": BreakdownStats(7, 6),
}


def _make_report(
    success_rate: float = 0.97,
    average_duration_ms: float = 1200.0,
    total: int = 20,
    failed: int = 1,
    scenario_breakdown: dict[str, BreakdownStats] | None = None,
) -> TestReport:
    return TestReport(
        total_tests=total,
        successful_tests=total - failed,
        failed_tests=failed,
        success_rate=success_rate,
        average_duration_ms=average_duration_ms,
        p95_duration_ms=average_duration_ms,
        generated_at=_T0,
        scenario_breakdown=_ALL_REQUIRED if scenario_breakdown is None else scenario_breakdown,
        user_breakdown={},
        results=(),
    )


# ---------------------------------------------------------------------------
# ValidationCriteria
# ---------------------------------------------------------------------------


class TestValidationCriteria:
    def test_defaults(self) -> None:
        criteria = ValidationCriteria()
        assert criteria.min_success_rate == 0.95
        assert criteria.max_error_rate == 0.05
        assert criteria.max_avg_response_time_ms == 5000.0
        assert criteria.min_test_duration_ms == 30_000.0
        assert criteria.required_scenarios == [
            Scenario.NAVIGATION_FLOW,
            Scenario.EPISODE_GENERATION,
            Scenario.AUDIO_PLAYBACK,
        ]

    def test_rejects_success_rate_above_one(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            ValidationCriteria(min_success_rate=1.5)

    def test_rejects_non_positive_response_time(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            ValidationCriteria(max_avg_response_time_ms=0)

    def test_rejects_unknown_scenario(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            ValidationCriteria.model_validate({"required_scenarios": ["teleportation"]})

    def test_accepts_scenario_strings(self) -> None:
        criteria = ValidationCriteria.model_validate({"required_scenarios": ["audio_playback"]})
        assert criteria.required_scenarios == [Scenario.AUDIO_PLAYBACK]

    def test_is_frozen(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            DEFAULT_CRITERIA.min_success_rate = 0.1  # type: ignore[misc]


# ---------------------------------------------------------------------------
# CanaryValidator
# ---------------------------------------------------------------------------


class TestCanaryValidator:
    def test_all_criteria_pass(self) -> None:
        result = CanaryValidator().validate(_make_report(), DEFAULT_CRITERIA, 45_000.0)
        assert result.score == 100
        assert result.passed is True
        assert result.failed_criteria() == []
        assert set(result.criteria) == {
            CRITERION_SUCCESS_RATE,
            CRITERION_ERROR_RATE,
            CRITERION_AVG_RESPONSE_TIME,
            CRITERION_TEST_DURATION,
            CRITERION_REQUIRED_SCENARIOS,
        }
        assert result.summary == "Canary validation passed (100/100). Safe to roll out."

    def test_boundary_success_rate_passes_error_rate(self) -> None:
        result = CanaryValidator().validate(
            _make_report(success_rate=0.95), DEFAULT_CRITERIA, 45_000.0
        )
        assert result.criterion_passed(CRITERION_SUCCESS_RATE)
        assert result.criterion_passed(CRITERION_ERROR_RATE)

    def test_short_run_fails_duration(self) -> None:
        result = CanaryValidator().validate(_make_report(), DEFAULT_CRITERIA, 10_000.0)
        assert result.failed_criteria() == [CRITERION_TEST_DURATION]
        assert result.score == 80
        assert result.passed is True

    def test_missing_required_scenario(self) -> None:
        report = _make_report(scenario_breakdown={"audio_playback": BreakdownStats(3, 3)})
        result = CanaryValidator().validate(report, DEFAULT_CRITERIA, 45_000.0)
        detail = result.criteria[CRITERION_REQUIRED_SCENARIOS]
        assert detail.passed is False
        assert detail.value == 1.0
        assert detail.threshold == 3.0

    def test_zero_total_scenario_does_not_count(self) -> None:
        breakdown = dict(_ALL_REQUIRED)
        breakdown["audio_playback"] = BreakdownStats(0, 0)
        result = CanaryValidator().validate(
            _make_report(scenario_breakdown=breakdown), DEFAULT_CRITERIA, 45_000.0
        )
        assert not result.criterion_passed(CRITERION_REQUIRED_SCENARIOS)

    def test_empty_required_scenarios_always_pass(self) -> None:
        criteria = ValidationCriteria(required_scenarios=[])
        result = CanaryValidator().validate(
            _make_report(scenario_breakdown={}), criteria, 45_000.0
        )
        assert result.criterion_passed(CRITERION_REQUIRED_SCENARIOS)

    def test_poor_run_fails(self) -> None:
        report = _make_report(success_rate=0.60, average_duration_ms=8000.0, failed=8)
        result = CanaryValidator().validate(report, DEFAULT_CRITERIA, 45_000.0)
        assert result.score == 40
        assert result.passed is False
        assert CRITERION_ERROR_RATE in result.failed_criteria()
        assert CRITERION_AVG_RESPONSE_TIME in result.failed_criteria()
        assert result.summary == "Canary validation failed (40/100). Review required."

    def test_score_is_rounded_percentage(self) -> None:
        report = _make_report(success_rate=0.60, failed=8)
        result = CanaryValidator().validate(report, DEFAULT_CRITERIA, 45_000.0)
        assert result.score == 60
        assert result.passed is False

    def test_validation_is_deterministic(self) -> None:
        validator = CanaryValidator()
        report = _make_report(success_rate=0.9, failed=2)
        first = validator.validate(report, DEFAULT_CRITERIA, 31_000.0)
        second = validator.validate(report, DEFAULT_CRITERIA, 31_000.0)
        assert first == second

    def test_custom_approval_threshold(self) -> None:
        validator = CanaryValidator(approval_threshold=100)
        result = validator.validate(_make_report(), DEFAULT_CRITERIA, 10_000.0)
        assert result.score == 80
        assert result.passed is False

    def test_approval_threshold_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            CanaryValidator(approval_threshold=101)

    def test_default_approval_threshold(self) -> None:
        assert CanaryValidator().approval_threshold == APPROVAL_THRESHOLD == 80

    def test_to_dict(self) -> None:
        data = CanaryValidator().validate(_make_report(), DEFAULT_CRITERIA, 45_000.0).to_dict()
        assert data["score"] == 100
        assert data["criteria"][CRITERION_SUCCESS_RATE]["passed"] is True  # type: ignore[index]
