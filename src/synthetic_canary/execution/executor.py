"""ScenarioExecutor — runs one scenario for one synthetic user.

The executor walks a scenario's fixed step plan, hands every action to a
:class:`~synthetic_canary.execution.steps.StepExecutor`, pauses between
steps according to the profile's think time, and assembles an immutable
:class:`~synthetic_canary.execution.results.ScenarioResult`.

Failure handling
----------------
- A step reported as failed is recorded and the plan continues.
- A :class:`~synthetic_canary.execution.scenarios.WaitStep` that never
  succeeds records a ``timeout`` error once its ceiling is reached.
- Any exception raised while running the plan is recorded as a single
  error (kind taken from :class:`~synthetic_canary.errors.StepError`,
  ``script`` otherwise) and the result is still finalized.  One broken
  scenario never takes the run down with it.
"""
from __future__ import annotations

import logging
import random

from synthetic_canary.errors import StepError, TestErrorKind
from synthetic_canary.execution.results import (
    PerformanceSample,
    ScenarioResult,
    StepResult,
    TestError,
)
from synthetic_canary.execution.scenarios import (
    ActionStep,
    PauseKind,
    WaitStep,
    plan_for,
)
from synthetic_canary.execution.steps import StepContext, StepExecutor
from synthetic_canary.profiles.models import Scenario, UserProfile
from synthetic_canary.timing import Clock, Sleeper, default_sleep, utc_now

logger = logging.getLogger(__name__)

_EMPTY_SAMPLE = PerformanceSample(
    page_load_ms=0.0,
    first_contentful_paint_ms=0.0,
    largest_contentful_paint_ms=0.0,
    interaction_latency_ms=0.0,
    layout_shift_score=0.0,
    network_requests=0,
    bytes_transferred=0,
)


class ScenarioExecutor:
    """Execute scenario step plans against a target.

    Parameters
    ----------
    step_executor:
        Driver that performs the individual actions.
    target_url:
        Base URL of the deployment under test.
    random_seed:
        Optional seed for think-time draws.
    sleep:
        Awaitable used for every pause.
    clock:
        Source of UTC timestamps.
    """

    def __init__(
        self,
        step_executor: StepExecutor,
        target_url: str,
        random_seed: int | None = None,
        sleep: Sleeper = default_sleep,
        clock: Clock = utc_now,
    ) -> None:
        self._driver = step_executor
        self._target_url = target_url
        self._rng = random.Random(random_seed)
        self._sleep = sleep
        self._clock = clock

    @property
    def target_url(self) -> str:
        return self._target_url

    def think_time_ms(self, profile: UserProfile) -> float:
        """Draw a think time uniformly from the profile's range."""
        think = profile.behavior.think_time_ms
        return self._rng.uniform(think.min, think.max)

    async def think(self, profile: UserProfile, fraction: float = 1.0) -> None:
        """Pause for a think-time draw scaled by *fraction*."""
        await self._sleep(self.think_time_ms(profile) * fraction / 1000.0)

    async def execute(self, profile: UserProfile, scenario: Scenario) -> ScenarioResult:
        """Run *scenario* as *profile* and return the finalized result.

        Parameters
        ----------
        profile:
            The synthetic user.
        scenario:
            The scenario tag; its plan is looked up in
            :data:`~synthetic_canary.execution.scenarios.SCENARIO_PLANS`.

        Returns
        -------
        ScenarioResult
            Immutable result.  Never raises for step-level failures.
        """
        context = StepContext(
            target_url=self._target_url,
            profile=profile,
            scenario=scenario,
        )
        started_at = self._clock()
        steps: list[StepResult] = []
        errors: list[TestError] = []

        try:
            for plan_step in plan_for(scenario):
                if isinstance(plan_step, WaitStep):
                    await self._run_wait(plan_step, context, steps, errors)
                else:
                    steps.append(await self._run_action(plan_step, context))
                    await self._pause_after(plan_step, profile)
        except Exception as exc:  # noqa: BLE001
            kind = exc.kind if isinstance(exc, StepError) else TestErrorKind.SCRIPT
            errors.append(
                TestError(kind=kind, message=str(exc) or type(exc).__name__, timestamp=self._clock())
            )
            logger.warning(
                "ScenarioExecutor: %s/%s aborted after %d steps: %s",
                profile.id,
                scenario.value,
                len(steps),
                exc,
            )

        performance = await self._gather_performance(context, errors)
        ended_at = self._clock()
        if ended_at < started_at:
            ended_at = started_at

        result = ScenarioResult(
            user_id=profile.id,
            scenario=scenario,
            started_at=started_at,
            ended_at=ended_at,
            steps=tuple(steps),
            errors=tuple(errors),
            performance=performance,
        )
        logger.info(
            "ScenarioExecutor: %s/%s success=%s steps=%d errors=%d (%.0f ms).",
            profile.id,
            scenario.value,
            result.success,
            len(result.steps),
            len(result.errors),
            result.duration_ms,
        )
        return result

    # ------------------------------------------------------------------
    # Step helpers
    # ------------------------------------------------------------------

    async def _run_action(self, step: ActionStep | WaitStep, context: StepContext) -> StepResult:
        started_at = self._clock()
        outcome = await self._driver.run(step.action, step.description, context)
        if not outcome.success:
            logger.debug(
                "ScenarioExecutor: step %r failed for %s: %s",
                step.action,
                context.profile.id,
                outcome.error,
            )
        return StepResult(
            action=step.action,
            description=step.description,
            started_at=started_at,
            success=outcome.success,
            duration_ms=max(0.0, outcome.duration_ms),
            error=None if outcome.success else (outcome.error or "Step failed"),
        )

    async def _pause_after(self, step: ActionStep, profile: UserProfile) -> None:
        if step.pause is PauseKind.THINK:
            await self.think(profile)
        elif step.pause is PauseKind.HALF_THINK:
            await self.think(profile, fraction=0.5)
        elif step.pause is PauseKind.FIXED:
            await self._sleep(step.fixed_pause_s)

    async def _run_wait(
        self,
        step: WaitStep,
        context: StepContext,
        steps: list[StepResult],
        errors: list[TestError],
    ) -> None:
        waited = 0.0
        completed = False
        while waited < step.timeout_s:
            await self._sleep(step.poll_interval_s)
            waited += step.poll_interval_s
            result = await self._run_action(step, context)
            steps.append(result)
            if result.success:
                completed = True
                break

        if not completed:
            errors.append(
                TestError(
                    kind=TestErrorKind.TIMEOUT,
                    message=step.timeout_message,
                    timestamp=self._clock(),
                )
            )
            logger.warning(
                "ScenarioExecutor: %s/%s wait %r timed out after %.0f s.",
                context.profile.id,
                context.scenario.value,
                step.action,
                waited,
            )

    async def _gather_performance(
        self,
        context: StepContext,
        errors: list[TestError],
    ) -> PerformanceSample:
        try:
            return await self._driver.gather_performance(context)
        except Exception as exc:  # noqa: BLE001
            errors.append(
                TestError(
                    kind=TestErrorKind.SCRIPT,
                    message=f"Performance sampling failed: {exc}",
                    timestamp=self._clock(),
                )
            )
            return _EMPTY_SAMPLE

    def __repr__(self) -> str:
        return f"ScenarioExecutor(target_url={self._target_url!r}, driver={self._driver!r})"


__all__ = ["ScenarioExecutor"]
