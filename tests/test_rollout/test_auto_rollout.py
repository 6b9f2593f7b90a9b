"""Tests for synthetic_canary.rollout.auto.apply_recommendations."""
from __future__ import annotations

import datetime

import pydantic
import pytest

from synthetic_canary.canary import CanaryTestResult, DeploymentContext
from synthetic_canary.errors import FlagServiceError
from synthetic_canary.reporting import aggregate_results
from synthetic_canary.rollout import (
    AutoRolloutConfig,
    FeatureFlag,
    FlagChange,
    InMemoryFlagService,
    apply_recommendations,
)
from synthetic_canary.validation import (
    DEFAULT_CRITERIA,
    Recommendation,
    RecommendationPriority,
    RecommendationType,
    ValidationResult,
)

_T0 = datetime.datetime(2026, 1, 1, tzinfo=datetime.timezone.utc)
_FLAG = FeatureFlag(key="enhanced-audio-player")


def _make_result(*recommendations: Recommendation) -> CanaryTestResult:
    return CanaryTestResult(
        deployment=DeploymentContext(deployment_url="https://preview.example.com"),
        flags=(_FLAG,),
        criteria=DEFAULT_CRITERIA,
        report=aggregate_results([], generated_at=_T0),
        validation=ValidationResult(passed=True, score=100, criteria={}, summary=""),
        recommendations=recommendations,
        run_duration_ms=45_000.0,
        timestamp=_T0,
    )


def _rollout(flag_key: str | None = "enhanced-audio-player") -> Recommendation:
    return Recommendation(
        RecommendationType.ROLLOUT, RecommendationPriority.HIGH, "good", "go", flag_key
    )


def _rollback(flag_key: str | None = "enhanced-audio-player") -> Recommendation:
    return Recommendation(
        RecommendationType.ROLLBACK, RecommendationPriority.HIGH, "bad", "stop", flag_key
    )


class TestApplyRecommendations:
    async def test_disabled_changes_nothing(self) -> None:
        service = InMemoryFlagService({"enhanced-audio-player": 10})
        changes = await apply_recommendations(
            _make_result(_rollout()), AutoRolloutConfig(), service
        )
        assert changes == []
        assert service.history == []

    async def test_rollout_increments(self) -> None:
        service = InMemoryFlagService({"enhanced-audio-player": 10})
        changes = await apply_recommendations(
            _make_result(_rollout()), AutoRolloutConfig(enabled=True), service
        )
        assert changes == [FlagChange("enhanced-audio-player", 10, 20)]
        assert service.snapshot()["enhanced-audio-player"] == 20

    async def test_rollout_capped_at_maximum(self) -> None:
        service = InMemoryFlagService({"enhanced-audio-player": 45})
        config = AutoRolloutConfig(enabled=True, max_rollout_percentage=50, increment_percentage=10)
        changes = await apply_recommendations(_make_result(_rollout()), config, service)
        assert changes == [FlagChange("enhanced-audio-player", 45, 50)]

    async def test_rollout_at_maximum_is_skipped(self) -> None:
        service = InMemoryFlagService({"enhanced-audio-player": 50})
        changes = await apply_recommendations(
            _make_result(_rollout()), AutoRolloutConfig(enabled=True), service
        )
        assert changes == []

    async def test_rollback_disables(self) -> None:
        service = InMemoryFlagService({"enhanced-audio-player": 30})
        changes = await apply_recommendations(
            _make_result(_rollback()), AutoRolloutConfig(enabled=True), service
        )
        assert changes == [FlagChange("enhanced-audio-player", 30, 0)]
        assert service.snapshot()["enhanced-audio-player"] == 0

    async def test_unknown_and_missing_flags_ignored(self) -> None:
        service = InMemoryFlagService()
        changes = await apply_recommendations(
            _make_result(_rollout("other-flag"), _rollout(None)),
            AutoRolloutConfig(enabled=True),
            service,
        )
        assert changes == []

    async def test_advisory_recommendations_ignored(self) -> None:
        service = InMemoryFlagService()
        advisory = Recommendation(
            RecommendationType.OPTIMIZE,
            RecommendationPriority.HIGH,
            "slow",
            "tune",
            "enhanced-audio-player",
        )
        changes = await apply_recommendations(
            _make_result(advisory), AutoRolloutConfig(enabled=True), service
        )
        assert changes == []

    async def test_flag_service_errors_propagate(self) -> None:
        service = InMemoryFlagService()
        service.fail_on("enhanced-audio-player")
        with pytest.raises(FlagServiceError):
            await apply_recommendations(
                _make_result(_rollback()), AutoRolloutConfig(enabled=True), service
            )

    def test_config_validation(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            AutoRolloutConfig(increment_percentage=0)
