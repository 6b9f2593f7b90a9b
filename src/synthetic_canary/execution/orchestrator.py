"""TestRunOrchestrator — runs every registered profile through its scenarios.

Profiles and their scenarios run sequentially, so the shared result list
and the single-flight flag need no locking.  A :meth:`run_all` or
:meth:`run_user` requested while either is in flight is rejected instead
of queued, because overlapping runs against the same target would corrupt
the aggregate.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from synthetic_canary.errors import RunInProgressError
from synthetic_canary.execution.executor import ScenarioExecutor
from synthetic_canary.execution.results import ScenarioResult
from synthetic_canary.profiles.models import Scenario, UserProfile
from synthetic_canary.profiles.registry import ProfileRegistry
from synthetic_canary.timing import Sleeper, default_sleep

if TYPE_CHECKING:
    from synthetic_canary.reporting.aggregator import TestReport

logger = logging.getLogger(__name__)

#: Pause between consecutive profiles, in seconds.
INTER_PROFILE_PAUSE_S: float = 2.0


class TestRunOrchestrator:
    """Fan a run out over all registered profiles and collect results.

    Usage::

        orchestrator = TestRunOrchestrator(registry, executor)
        results_by_user = await orchestrator.run_all()
        report = orchestrator.generate_report()

    Parameters
    ----------
    registry:
        Profiles to run, in registration order.
    executor:
        Executes one (profile, scenario) pair.
    sleep:
        Awaitable used for the pause between profiles.
    inter_profile_pause_s:
        Seconds to pause after each profile.
    """

    __test__ = False

    def __init__(
        self,
        registry: ProfileRegistry,
        executor: ScenarioExecutor,
        sleep: Sleeper = default_sleep,
        inter_profile_pause_s: float = INTER_PROFILE_PAUSE_S,
    ) -> None:
        if inter_profile_pause_s < 0:
            raise ValueError(
                f"inter_profile_pause_s must be >= 0, got {inter_profile_pause_s}."
            )
        self._registry = registry
        self._executor = executor
        self._sleep = sleep
        self._inter_profile_pause_s = inter_profile_pause_s
        self._results: list[ScenarioResult] = []
        self._running: bool = False

    @property
    def registry(self) -> ProfileRegistry:
        return self._registry

    @property
    def is_running(self) -> bool:
        """True while :meth:`run_all` or :meth:`run_user` is in flight."""
        return self._running

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def run_all(self) -> dict[str, list[ScenarioResult]]:
        """Run every registered profile through its assigned scenarios.

        Returns
        -------
        dict[str, list[ScenarioResult]]
            Results keyed by user id, in registration order.

        Raises
        ------
        RunInProgressError
            If a previous :meth:`run_all` or :meth:`run_user` has not finished.
        """
        if self._running:
            raise RunInProgressError()

        self._running = True
        all_results: dict[str, list[ScenarioResult]] = {}
        try:
            for profile in self._registry:
                logger.info(
                    "TestRunOrchestrator: starting tests for user %r (%d scenarios).",
                    profile.id,
                    len(profile.scenarios),
                )
                all_results[profile.id] = await self._run_profile(profile)
                await self._sleep(self._inter_profile_pause_s)
        finally:
            self._running = False

        logger.info(
            "TestRunOrchestrator: run complete, %d users, %d results collected.",
            len(all_results),
            sum(len(r) for r in all_results.values()),
        )
        return all_results

    async def run_user(self, user_id: str) -> list[ScenarioResult]:
        """Run a single registered profile.

        Shares the single-flight guard with :meth:`run_all`, so its results
        never interleave with those of another run.

        Raises
        ------
        ProfileNotFoundError
            If *user_id* is not registered.
        RunInProgressError
            If :meth:`run_all` or another :meth:`run_user` is in flight.
        """
        profile = self._registry.get(user_id)
        if self._running:
            raise RunInProgressError()

        self._running = True
        try:
            return await self._run_profile(profile)
        finally:
            self._running = False

    async def _run_profile(self, profile: UserProfile) -> list[ScenarioResult]:
        results: list[ScenarioResult] = []
        for scenario in profile.scenarios:
            result = await self._executor.execute(profile, scenario)
            results.append(result)
            self._results.append(result)
            await self._executor.think(profile)
        return results

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def results(self) -> list[ScenarioResult]:
        """Return a copy of every result collected so far."""
        return list(self._results)

    def results_for_user(self, user_id: str) -> list[ScenarioResult]:
        return [r for r in self._results if r.user_id == user_id]

    def results_for_scenario(self, scenario: Scenario) -> list[ScenarioResult]:
        return [r for r in self._results if r.scenario == scenario]

    def clear_results(self) -> None:
        self._results = []

    def generate_report(self) -> TestReport:
        """Aggregate every collected result into a fresh report."""
        from synthetic_canary.reporting.aggregator import aggregate_results

        return aggregate_results(self._results)

    def __repr__(self) -> str:
        return (
            f"TestRunOrchestrator("
            f"profiles={len(self._registry)}, "
            f"results={len(self._results)}, "
            f"running={self._running})"
        )


__all__ = ["INTER_PROFILE_PAUSE_S", "TestRunOrchestrator"]
