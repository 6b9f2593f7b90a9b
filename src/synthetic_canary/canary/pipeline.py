"""Canary pipeline — the composition root of a canary run.

:class:`CanaryPipeline` wires the profile registry, scenario executor,
orchestrator, aggregator, validator, recommendation engine and dashboard
together.  One call to :meth:`CanaryPipeline.execute` runs every synthetic
user against a deployment, measures the run, scores it and returns a
:class:`CanaryTestResult` whose :meth:`~CanaryTestResult.to_ci_payload`
is the JSON surface consumed by CI.
"""
from __future__ import annotations

import datetime
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from synthetic_canary.canary.context import DeploymentContext
from synthetic_canary.errors import RunInProgressError
from synthetic_canary.execution.executor import ScenarioExecutor
from synthetic_canary.execution.orchestrator import INTER_PROFILE_PAUSE_S, TestRunOrchestrator
from synthetic_canary.execution.steps import SimulatedStepExecutor, StepExecutor
from synthetic_canary.profiles.registry import ProfileRegistry, create_standard_registry
from synthetic_canary.reporting.aggregator import TestReport, aggregate_results
from synthetic_canary.reporting.dashboard import SyntheticDashboard
from synthetic_canary.reporting.pubsub import Broadcaster, Unsubscribe
from synthetic_canary.rollout.flags import FeatureFlag
from synthetic_canary.timing import (
    Clock,
    MonotonicClock,
    Sleeper,
    default_sleep,
    monotonic,
    utc_now,
)
from synthetic_canary.validation.criteria import DEFAULT_CRITERIA, ValidationCriteria
from synthetic_canary.validation.recommendations import Recommendation, RecommendationEngine
from synthetic_canary.validation.validator import CanaryValidator, ValidationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CanaryTestResult:
    """Everything produced by one canary run.

    Attributes
    ----------
    deployment:
        Deployment that was validated.
    flags:
        Flags under test.
    criteria:
        Criteria the run was scored against.
    report:
        Aggregated test report.
    validation:
        Validation verdict.
    recommendations:
        Recommended next actions.
    run_duration_ms:
        Observed wall-clock duration of the synthetic run.
    timestamp:
        UTC time the run finished.
    """

    __test__ = False

    deployment: DeploymentContext
    flags: tuple[FeatureFlag, ...]
    criteria: ValidationCriteria
    report: TestReport
    validation: ValidationResult
    recommendations: tuple[Recommendation, ...]
    run_duration_ms: float
    timestamp: datetime.datetime

    @property
    def passed(self) -> bool:
        return self.validation.passed

    @property
    def score(self) -> int:
        return self.validation.score

    def to_ci_payload(self) -> dict[str, Any]:
        """Return the flat JSON document printed for CI pipelines."""
        return {
            "passed": self.validation.passed,
            "score": self.validation.score,
            "summary": self.validation.summary,
            "successRate": self.report.success_rate,
            "totalTests": self.report.total_tests,
            "failedTests": self.report.failed_tests,
            "avgDuration": self.report.average_duration_ms,
            "timestamp": self.timestamp.isoformat(),
            "deploymentUrl": self.deployment.deployment_url,
            "criticalPaths": list(self.criteria.critical_paths),
            "recommendations": [r.to_dict() for r in self.recommendations],
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "deployment": self.deployment.model_dump(mode="json"),
            "flags": [flag.key for flag in self.flags],
            "criteria": self.criteria.model_dump(mode="json"),
            "report": self.report.to_dict(),
            "validation": self.validation.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "run_duration_ms": self.run_duration_ms,
            "timestamp": self.timestamp.isoformat(),
        }


class CanaryPipeline:
    """Run, score and publish a canary validation.

    Parameters
    ----------
    step_executor:
        Driver for individual user actions.  Defaults to a
        :class:`SimulatedStepExecutor` sharing *sleep* and *random_seed*.
    registry:
        Synthetic user profiles.  Defaults to the standard profiles.
    validator:
        Scores reports.  Defaults to :class:`CanaryValidator`.
    recommendation_engine:
        Turns validation results into recommendations.
    dashboard:
        Receives every report.  One is created over *registry* when omitted.
    sleep:
        Awaitable used for every pause.
    clock:
        Wall-clock source for timestamps.
    monotonic_clock:
        Monotonic seconds source used to measure the run duration.
    random_seed:
        Seed for think-time draws (and the default step executor).
    inter_profile_pause_s:
        Pause between profiles.
    """

    def __init__(
        self,
        step_executor: StepExecutor | None = None,
        registry: ProfileRegistry | None = None,
        validator: CanaryValidator | None = None,
        recommendation_engine: RecommendationEngine | None = None,
        dashboard: SyntheticDashboard | None = None,
        sleep: Sleeper = default_sleep,
        clock: Clock = utc_now,
        monotonic_clock: MonotonicClock = monotonic,
        random_seed: int | None = None,
        inter_profile_pause_s: float = INTER_PROFILE_PAUSE_S,
    ) -> None:
        self._registry = registry if registry is not None else create_standard_registry()
        self._driver = (
            step_executor
            if step_executor is not None
            else SimulatedStepExecutor(random_seed=random_seed, sleep=sleep)
        )
        self._validator = validator or CanaryValidator()
        self._engine = recommendation_engine or RecommendationEngine()
        self._dashboard = (
            dashboard if dashboard is not None else SyntheticDashboard(self._registry, clock=clock)
        )
        self._sleep = sleep
        self._clock = clock
        self._monotonic = monotonic_clock
        self._random_seed = random_seed
        self._inter_profile_pause_s = inter_profile_pause_s
        self._results: Broadcaster[CanaryTestResult] = Broadcaster("canary-results")
        self._running = False

    @property
    def registry(self) -> ProfileRegistry:
        return self._registry

    @property
    def dashboard(self) -> SyntheticDashboard:
        return self._dashboard

    @property
    def is_running(self) -> bool:
        return self._running

    def subscribe(self, callback: Callable[[CanaryTestResult], None]) -> Unsubscribe:
        """Receive every :class:`CanaryTestResult` this pipeline produces."""
        return self._results.subscribe(callback)

    async def execute(
        self,
        deployment: DeploymentContext,
        flags: Sequence[FeatureFlag] = (),
        criteria: ValidationCriteria | Mapping[str, Any] = DEFAULT_CRITERIA,
    ) -> CanaryTestResult:
        """Validate *deployment* with every synthetic user.

        Parameters
        ----------
        deployment:
            Deployment to exercise.
        flags:
            Flags under test.
        criteria:
            Validation thresholds, as a model or a plain mapping.

        Returns
        -------
        CanaryTestResult

        Raises
        ------
        pydantic.ValidationError
            If *criteria* is a malformed mapping.  Raised before any test runs.
        RunInProgressError
            If this pipeline is already executing a run.
        """
        if not isinstance(criteria, ValidationCriteria):
            criteria = ValidationCriteria.model_validate(criteria)
        if self._running:
            raise RunInProgressError()

        self._running = True
        try:
            logger.info(
                "CanaryPipeline: starting canary run for deployment %s (%s).",
                deployment.deployment_id,
                deployment.deployment_url,
            )
            executor = ScenarioExecutor(
                self._driver,
                deployment.deployment_url,
                random_seed=self._random_seed,
                sleep=self._sleep,
                clock=self._clock,
            )
            orchestrator = TestRunOrchestrator(
                self._registry,
                executor,
                sleep=self._sleep,
                inter_profile_pause_s=self._inter_profile_pause_s,
            )
            started = self._monotonic()
            await orchestrator.run_all()
            run_duration_ms = max(0.0, (self._monotonic() - started) * 1000.0)
        finally:
            self._running = False

        report = aggregate_results(orchestrator.results(), generated_at=self._clock())
        validation = self._validator.validate(report, criteria, run_duration_ms)
        recommendations = self._engine.recommend(validation, flags, deployment)
        self._dashboard.update(report)

        result = CanaryTestResult(
            deployment=deployment,
            flags=tuple(flags),
            criteria=criteria,
            report=report,
            validation=validation,
            recommendations=tuple(recommendations),
            run_duration_ms=run_duration_ms,
            timestamp=self._clock(),
        )
        self._results.publish(result)
        logger.info(
            "CanaryPipeline: canary run complete, score %d/100 (%s).",
            validation.score,
            "passed" if validation.passed else "failed",
        )
        return result

    def __repr__(self) -> str:
        return (
            f"CanaryPipeline(profiles={len(self._registry)}, "
            f"driver={type(self._driver).__name__})"
        )


async def run_quick_validation(
    deployment_url: str,
    flags: Sequence[FeatureFlag] = (),
    pipeline: CanaryPipeline | None = None,
    branch_name: str = "main",
    commit_sha: str = "unknown",
) -> CanaryTestResult:
    """Validate *deployment_url* against :data:`DEFAULT_CRITERIA`."""
    deployment = DeploymentContext(
        deployment_url=deployment_url,
        branch_name=branch_name,
        commit_sha=commit_sha,
    )
    return await (pipeline or CanaryPipeline()).execute(deployment, flags, DEFAULT_CRITERIA)


__all__ = ["CanaryPipeline", "CanaryTestResult", "run_quick_validation"]
