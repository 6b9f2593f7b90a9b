"""Step executor abstraction.

The scenario executor never drives a browser itself.  It hands each
named action to a :class:`StepExecutor` and records what comes back.
Production code plugs in a real automation driver; tests and dry runs
use :class:`SimulatedStepExecutor` or :class:`ScriptedStepExecutor`.

A driver reports an ordinary failure by returning an unsuccessful
:class:`ActionOutcome`.  It aborts the whole scenario by raising
(optionally a :class:`~synthetic_canary.errors.StepError` carrying an
error kind).
"""
from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from synthetic_canary.execution.results import PerformanceSample
from synthetic_canary.profiles.models import Scenario, UserProfile
from synthetic_canary.timing import Sleeper, default_sleep

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepContext:
    """Where and as whom an action is executed.

    Attributes
    ----------
    target_url:
        Base URL of the deployment under test.
    profile:
        The synthetic user performing the action.
    scenario:
        The scenario the action belongs to.
    """

    target_url: str
    profile: UserProfile
    scenario: Scenario


@dataclass(frozen=True)
class ActionOutcome:
    """What a driver reports after running one action."""

    success: bool
    duration_ms: float
    error: str | None = None


class StepExecutor(ABC):
    """Runs named actions against a live target."""

    @abstractmethod
    async def run(
        self,
        action: str,
        description: str,
        context: StepContext,
    ) -> ActionOutcome:
        """Execute *action* and report its outcome.

        Parameters
        ----------
        action:
            Machine-readable action name.
        description:
            Human-readable description, useful for driver logs.
        context:
            Target URL, profile, and scenario.

        Returns
        -------
        ActionOutcome
            Success flag, duration, and optional error text.
        """
        ...

    @abstractmethod
    async def gather_performance(self, context: StepContext) -> PerformanceSample:
        """Return page-level performance metrics for the current session."""
        ...


# ---------------------------------------------------------------------------
# Simulated driver
# ---------------------------------------------------------------------------


class SimulatedStepExecutor(StepExecutor):
    """Driver that simulates actions with random timing and failures.

    Uses a seeded :class:`random.Random` so runs are reproducible when
    ``random_seed`` is set.

    Parameters
    ----------
    failure_rate:
        Probability (0.0–1.0) that any action reports failure.
    action_time_ms:
        ``(min, max)`` simulated action time in milliseconds.
    random_seed:
        Optional RNG seed.
    sleep:
        Awaitable used to simulate the action time.
    """

    def __init__(
        self,
        failure_rate: float = 0.05,
        action_time_ms: tuple[float, float] = (500.0, 1500.0),
        random_seed: int | None = None,
        sleep: Sleeper = default_sleep,
    ) -> None:
        if not (0.0 <= failure_rate <= 1.0):
            raise ValueError(f"failure_rate must be in [0.0, 1.0], got {failure_rate}.")
        low, high = action_time_ms
        if low < 0 or high < low:
            raise ValueError(f"action_time_ms must satisfy 0 <= min <= max, got {action_time_ms}.")
        self._failure_rate = failure_rate
        self._action_time_ms = (low, high)
        self._rng = random.Random(random_seed)
        self._sleep = sleep
        self._call_count = 0

    @property
    def call_count(self) -> int:
        return self._call_count

    async def run(
        self,
        action: str,
        description: str,
        context: StepContext,
    ) -> ActionOutcome:
        self._call_count += 1
        low, high = self._action_time_ms
        duration_ms = self._rng.uniform(low, high)
        await self._sleep(duration_ms / 1000.0)
        success = self._rng.random() >= self._failure_rate
        logger.debug(
            "SimulatedStepExecutor: %s/%s action=%r success=%s (%.0f ms).",
            context.profile.id,
            context.scenario.value,
            action,
            success,
            duration_ms,
        )
        return ActionOutcome(
            success=success,
            duration_ms=duration_ms,
            error=None if success else "Simulated random failure",
        )

    async def gather_performance(self, context: StepContext) -> PerformanceSample:
        rng = self._rng
        return PerformanceSample(
            page_load_ms=rng.uniform(500.0, 2500.0),
            first_contentful_paint_ms=rng.uniform(300.0, 1800.0),
            largest_contentful_paint_ms=rng.uniform(800.0, 3800.0),
            interaction_latency_ms=rng.uniform(50.0, 250.0),
            layout_shift_score=rng.uniform(0.0, 0.1),
            network_requests=rng.randint(10, 60),
            bytes_transferred=rng.randint(500_000, 2_500_000),
        )

    def __repr__(self) -> str:
        return (
            f"SimulatedStepExecutor(failure_rate={self._failure_rate}, "
            f"action_time_ms={self._action_time_ms}, calls={self._call_count})"
        )


# ---------------------------------------------------------------------------
# Scripted driver
# ---------------------------------------------------------------------------

Response = bool | Exception


class ScriptedStepExecutor(StepExecutor):
    """Deterministic driver that replays pre-configured responses.

    Each action maps to a response or a sequence of responses.  A
    response is either a bool (success flag) or an exception instance to
    raise.  Sequences are consumed in order and the last entry repeats.
    Unlisted actions succeed.

    Parameters
    ----------
    responses:
        Mapping of action name to response(s).
    duration_ms:
        Duration reported for every action.
    performance:
        Sample returned by :meth:`gather_performance`.
    """

    def __init__(
        self,
        responses: dict[str, Response | Sequence[Response]] | None = None,
        duration_ms: float = 10.0,
        performance: PerformanceSample | None = None,
    ) -> None:
        self._responses: dict[str, list[Response]] = {}
        for action, response in (responses or {}).items():
            if isinstance(response, (bool, Exception)):
                self._responses[action] = [response]
            else:
                self._responses[action] = list(response)
        self._cursor: dict[str, int] = {}
        self._duration_ms = duration_ms
        self._performance = performance or PerformanceSample(
            page_load_ms=1000.0,
            first_contentful_paint_ms=500.0,
            largest_contentful_paint_ms=1200.0,
            interaction_latency_ms=80.0,
            layout_shift_score=0.02,
            network_requests=20,
            bytes_transferred=1_000_000,
        )
        self.calls: list[tuple[str, str]] = []

    async def run(
        self,
        action: str,
        description: str,
        context: StepContext,
    ) -> ActionOutcome:
        self.calls.append((context.profile.id, action))
        response = self._next_response(action)
        if isinstance(response, Exception):
            raise response
        return ActionOutcome(
            success=response,
            duration_ms=self._duration_ms,
            error=None if response else f"Scripted failure for {action!r}",
        )

    async def gather_performance(self, context: StepContext) -> PerformanceSample:
        return self._performance

    def _next_response(self, action: str) -> Response:
        queue = self._responses.get(action)
        if not queue:
            return True
        index = self._cursor.get(action, 0)
        self._cursor[action] = index + 1
        return queue[min(index, len(queue) - 1)]

    def __repr__(self) -> str:
        return f"ScriptedStepExecutor(actions={sorted(self._responses)}, calls={len(self.calls)})"


__all__ = [
    "ActionOutcome",
    "ScriptedStepExecutor",
    "SimulatedStepExecutor",
    "StepContext",
    "StepExecutor",
]
