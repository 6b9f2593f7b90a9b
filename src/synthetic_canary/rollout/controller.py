"""Progressive rollout controller.

Walks a :class:`~synthetic_canary.rollout.strategy.RolloutStrategy` one
step at a time.  Each step applies its percentage to every target flag,
then, when the step has a monitoring window, samples health every
:data:`HEALTH_POLL_INTERVAL_S` seconds (wait, then check) for the whole
window.  A sample below :data:`HEALTH_FLOOR`, an operator-requested
emergency rollback, or any error raised while applying or monitoring a
step aborts the rollout and resets every flag to 0%.

State machine::

    testing -> rolling_out -> completed
                           -> rolled_back   (reset to 0% succeeded)
                           -> failed        (reset to 0% did not succeed for every flag)

Classes
-------
- RolloutStatus
- RolloutState
- RolloutOutcome
- RolloutLockRegistry
- ProgressiveRolloutController
"""
from __future__ import annotations

import asyncio
import contextlib
import datetime
import logging
import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum

from synthetic_canary.errors import RolloutInProgressError
from synthetic_canary.reporting.alerts import AlertSeverity
from synthetic_canary.rollout.interfaces import (
    FeatureFlagService,
    HealthCheck,
    Notification,
    NotificationSink,
    NotificationStatus,
)
from synthetic_canary.rollout.strategy import RolloutStep, RolloutStrategy
from synthetic_canary.timing import Clock, Sleeper, default_sleep, utc_now

logger = logging.getLogger(__name__)

HEALTH_FLOOR: float = 80.0
HEALTH_POLL_INTERVAL_S: float = 30.0


class RolloutStatus(str, Enum):
    TESTING = "testing"
    ROLLING_OUT = "rolling_out"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


_TERMINAL = frozenset({RolloutStatus.COMPLETED, RolloutStatus.FAILED, RolloutStatus.ROLLED_BACK})


@dataclass
class RolloutState:
    """Mutable progress record for one rollout.

    Only :class:`ProgressiveRolloutController` mutates it.

    Attributes
    ----------
    step_index:
        Index of the step being applied or monitored.
    current_percentage:
        Percentage most recently applied to every flag.
    status:
        Current :class:`RolloutStatus`.
    last_updated:
        UTC time of the last mutation.
    """

    step_index: int = 0
    current_percentage: int = 0
    status: RolloutStatus = RolloutStatus.TESTING
    last_updated: datetime.datetime = field(default_factory=utc_now)

    @property
    def is_terminal(self) -> bool:
        return self.status in _TERMINAL


@dataclass(frozen=True)
class RolloutOutcome:
    """Final result of :meth:`ProgressiveRolloutController.run`.

    Attributes
    ----------
    flag_keys:
        Flags that were rolled out.
    strategy:
        Ladder that was followed.
    status:
        Terminal status.
    final_percentage:
        Percentage the flags were left at.
    steps_applied:
        Number of steps whose percentage was applied to every flag.
    health_samples:
        Every health score sampled, in order.
    reason:
        Why the rollout was aborted; None on completion.
    started_at:
        UTC start time.
    finished_at:
        UTC end time.
    """

    flag_keys: tuple[str, ...]
    strategy: RolloutStrategy
    status: RolloutStatus
    final_percentage: int
    steps_applied: int
    health_samples: tuple[float, ...]
    reason: str | None
    started_at: datetime.datetime
    finished_at: datetime.datetime

    @property
    def succeeded(self) -> bool:
        return self.status is RolloutStatus.COMPLETED

    def to_dict(self) -> dict[str, object]:
        return {
            "flag_keys": list(self.flag_keys),
            "strategy": self.strategy.name.value,
            "status": self.status.value,
            "final_percentage": self.final_percentage,
            "steps_applied": self.steps_applied,
            "health_samples": list(self.health_samples),
            "reason": self.reason,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
        }


class RolloutLockRegistry:
    """Track which flag sets currently have a rollout in progress.

    Acquisition is a synchronous check-and-insert, so it is atomic with
    respect to other coroutines on the same event loop.
    """

    def __init__(self) -> None:
        self._active: set[frozenset[str]] = set()

    def is_locked(self, flag_keys: Sequence[str]) -> bool:
        return frozenset(flag_keys) in self._active

    @contextlib.contextmanager
    def hold(self, flag_keys: Sequence[str]) -> Iterator[None]:
        """Hold the lock for *flag_keys* for the duration of the block.

        Raises
        ------
        RolloutInProgressError
            If a rollout for the same flag set is already in progress.
        """
        key = frozenset(flag_keys)
        if key in self._active:
            raise RolloutInProgressError(key)
        self._active.add(key)
        try:
            yield
        finally:
            self._active.discard(key)


@dataclass
class _ActiveRun:
    """Cancellation handle and state of one in-flight :meth:`run`."""

    state: RolloutState
    cancel: asyncio.Event = field(default_factory=asyncio.Event)
    cancel_reason: str = ""

    def request_cancel(self, reason: str) -> None:
        self.cancel_reason = reason
        self.cancel.set()


class ProgressiveRolloutController:
    """Advance feature flags through a rollout ladder under health monitoring.

    Parameters
    ----------
    flag_service:
        Backend that applies rollout percentages.
    health_check:
        Source of health scores during monitoring windows.
    notifier:
        Receives a success or failure notification when a rollout ends.
    sleep:
        Awaitable sleep used between health polls.
    clock:
        Wall-clock source for state timestamps.
    health_floor:
        Health scores strictly below this abort the rollout.
    poll_interval_s:
        Seconds between health polls.
    locks:
        Lock registry shared between controllers that may receive
        concurrent requests for the same flags.

    Example
    -------
    ::

        controller = ProgressiveRolloutController(flags, health, notifier)
        outcome = await controller.run(["new-episode-generation"], CONSERVATIVE)
        if not outcome.succeeded:
            print(outcome.reason)
    """

    def __init__(
        self,
        flag_service: FeatureFlagService,
        health_check: HealthCheck,
        notifier: NotificationSink | None = None,
        sleep: Sleeper = default_sleep,
        clock: Clock = utc_now,
        health_floor: float = HEALTH_FLOOR,
        poll_interval_s: float = HEALTH_POLL_INTERVAL_S,
        locks: RolloutLockRegistry | None = None,
    ) -> None:
        if poll_interval_s <= 0:
            raise ValueError(f"poll_interval_s must be > 0, got {poll_interval_s}.")
        self._flags = flag_service
        self._health = health_check
        self._notifier = notifier
        self._sleep = sleep
        self._clock = clock
        self._health_floor = health_floor
        self._poll_interval_s = poll_interval_s
        self._locks = locks if locks is not None else RolloutLockRegistry()
        self._active: dict[frozenset[str], _ActiveRun] = {}
        self._state: RolloutState | None = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> RolloutState | None:
        """State of the most recently started rollout."""
        return self._state

    @property
    def active_flag_sets(self) -> list[frozenset[str]]:
        """Flag sets this controller is currently rolling out."""
        return list(self._active)

    def state_for(self, flag_keys: Sequence[str]) -> RolloutState | None:
        """State of the in-flight rollout of exactly *flag_keys*, if any."""
        run = self._active.get(frozenset(flag_keys))
        return run.state if run is not None else None

    @property
    def health_floor(self) -> float:
        return self._health_floor

    def polls_for(self, step: RolloutStep) -> int:
        """Number of health polls made during *step*'s monitoring window."""
        if step.monitoring_minutes <= 0:
            return 0
        return math.ceil(step.monitoring_seconds / self._poll_interval_s)

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def request_emergency_rollback(
        self,
        reason: str = "Emergency rollback requested",
        flag_keys: Sequence[str] | None = None,
    ) -> int:
        """Ask in-flight rollouts to abort and reset their flags to 0%.

        Checked before each step and before each health poll.

        Parameters
        ----------
        reason:
            Recorded as the abort reason of every signalled rollout.
        flag_keys:
            Flag set of the rollout to abort.  None aborts every rollout
            this controller is running.

        Returns
        -------
        int
            Number of rollouts signalled.
        """
        if flag_keys is None:
            targets = list(self._active.values())
        else:
            run = self._active.get(frozenset(flag_keys))
            targets = [run] if run is not None else []

        for run in targets:
            run.request_cancel(reason)
        if targets:
            logger.critical(
                "ProgressiveRolloutController: %s (%d rollout(s) signalled).", reason, len(targets)
            )
        else:
            logger.warning(
                "ProgressiveRolloutController: emergency rollback requested but no matching "
                "rollout is running: %s",
                reason,
            )
        return len(targets)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self, flag_keys: Sequence[str], strategy: RolloutStrategy) -> RolloutOutcome:
        """Roll *flag_keys* out along *strategy*.

        Every run owns its own cancellation handle, so one controller may
        drive rollouts of different flag sets at the same time without a
        new run clearing an emergency rollback requested for another.

        Parameters
        ----------
        flag_keys:
            Flags to advance together.  Must not be empty.
        strategy:
            Ladder to follow.

        Returns
        -------
        RolloutOutcome
            Terminal outcome.  Aborts are reported here, not raised.

        Raises
        ------
        ValueError
            If *flag_keys* is empty.
        RolloutInProgressError
            If the same flag set is already rolling out.
        """
        keys = tuple(dict.fromkeys(flag_keys))
        if not keys:
            raise ValueError("flag_keys must not be empty.")

        with self._locks.hold(keys):
            started_at = self._clock()
            state = RolloutState(last_updated=started_at)
            run = _ActiveRun(state=state)
            self._state = state
            self._active[frozenset(keys)] = run
            try:
                return await self._run_steps(keys, strategy, run, started_at)
            finally:
                del self._active[frozenset(keys)]

    async def _run_steps(
        self,
        keys: tuple[str, ...],
        strategy: RolloutStrategy,
        run: _ActiveRun,
        started_at: datetime.datetime,
    ) -> RolloutOutcome:
        state = run.state
        samples: list[float] = []
        steps_applied = 0
        logger.info(
            "ProgressiveRolloutController: rolling out %s with %s strategy (%d steps).",
            list(keys),
            strategy.name.value,
            len(strategy),
        )

        try:
            for index, step in enumerate(strategy.steps):
                if run.cancel.is_set():
                    return await self._abort(
                        keys, strategy, state, samples, steps_applied, started_at,
                        run.cancel_reason,
                    )
                self._update(state, status=RolloutStatus.ROLLING_OUT, step_index=index)
                await self._apply(keys, step.percentage)
                steps_applied += 1
                self._update(state, current_percentage=step.percentage)

                breach = await self._monitor(step, samples, run)
                if breach is not None:
                    return await self._abort(
                        keys, strategy, state, samples, steps_applied, started_at, breach
                    )
        except asyncio.CancelledError:
            await self._abort(
                keys, strategy, state, samples, steps_applied, started_at,
                "Rollout task cancelled",
            )
            raise
        except Exception as exc:  # noqa: BLE001
            return await self._abort(
                keys, strategy, state, samples, steps_applied, started_at,
                f"{type(exc).__name__}: {exc}",
            )

        self._update(state, status=RolloutStatus.COMPLETED)
        logger.info(
            "ProgressiveRolloutController: rollout of %s completed at %d%%.",
            list(keys),
            state.current_percentage,
        )
        await self._notify(
            Notification(
                status=NotificationStatus.SUCCESS,
                final_percentage=state.current_percentage,
                flag_keys=keys,
                timestamp=self._clock(),
            )
        )
        return self._outcome(keys, strategy, state, samples, steps_applied, started_at, None)

    async def _apply(self, keys: tuple[str, ...], percentage: int) -> None:
        logger.info("ProgressiveRolloutController: applying %d%% to %s.", percentage, list(keys))
        for key in keys:
            await self._flags.set_rollout_percentage(key, percentage)

    async def _monitor(
        self, step: RolloutStep, samples: list[float], run: _ActiveRun
    ) -> str | None:
        """Poll health for *step*'s window; return an abort reason or None."""
        total = self.polls_for(step)
        for poll in range(total):
            if run.cancel.is_set():
                return run.cancel_reason
            await self._sleep(self._poll_interval_s)
            if run.cancel.is_set():
                return run.cancel_reason
            score = await self._health.sample()
            samples.append(score)
            logger.debug(
                "ProgressiveRolloutController: health check %d/%d at %d%%: %.1f/100",
                poll + 1,
                total,
                step.percentage,
                score,
            )
            if score < self._health_floor:
                return f"Health score dropped to {score:.1f}/100"
        return None

    async def _abort(
        self,
        keys: tuple[str, ...],
        strategy: RolloutStrategy,
        state: RolloutState,
        samples: list[float],
        steps_applied: int,
        started_at: datetime.datetime,
        reason: str,
    ) -> RolloutOutcome:
        logger.critical(
            "ProgressiveRolloutController: aborting rollout of %s at %d%%: %s",
            list(keys),
            state.current_percentage,
            reason,
        )
        failed: list[str] = []
        for key in keys:
            try:
                await self._flags.set_rollout_percentage(key, 0)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "ProgressiveRolloutController: could not reset %s to 0%%: %s", key, exc
                )
                failed.append(key)

        if failed:
            self._update(state, status=RolloutStatus.FAILED)
            reason = f"{reason}; rollback failed for {failed}"
        else:
            self._update(state, status=RolloutStatus.ROLLED_BACK, current_percentage=0)

        await self._notify(
            Notification(
                status=NotificationStatus.FAILED,
                final_percentage=state.current_percentage,
                error_message=reason,
                flag_keys=keys,
                severity=AlertSeverity.CRITICAL if failed else AlertSeverity.HIGH,
                timestamp=self._clock(),
            )
        )
        return self._outcome(keys, strategy, state, samples, steps_applied, started_at, reason)

    async def _notify(self, notification: Notification) -> None:
        if self._notifier is None:
            return
        try:
            await self._notifier.notify(notification)
        except Exception as exc:  # noqa: BLE001
            logger.warning("ProgressiveRolloutController: notification failed: %s", exc)

    def _update(
        self,
        state: RolloutState,
        status: RolloutStatus | None = None,
        step_index: int | None = None,
        current_percentage: int | None = None,
    ) -> None:
        if status is not None:
            state.status = status
        if step_index is not None:
            state.step_index = step_index
        if current_percentage is not None:
            state.current_percentage = current_percentage
        state.last_updated = self._clock()

    def _outcome(
        self,
        keys: tuple[str, ...],
        strategy: RolloutStrategy,
        state: RolloutState,
        samples: list[float],
        steps_applied: int,
        started_at: datetime.datetime,
        reason: str | None,
    ) -> RolloutOutcome:
        return RolloutOutcome(
            flag_keys=keys,
            strategy=strategy,
            status=state.status,
            final_percentage=state.current_percentage,
            steps_applied=steps_applied,
            health_samples=tuple(samples),
            reason=reason,
            started_at=started_at,
            finished_at=self._clock(),
        )

    def __repr__(self) -> str:
        status = self._state.status.value if self._state is not None else "idle"
        return (
            f"ProgressiveRolloutController(status={status!r}, "
            f"active={len(self._active)}, health_floor={self._health_floor})"
        )


__all__ = [
    "HEALTH_FLOOR",
    "HEALTH_POLL_INTERVAL_S",
    "ProgressiveRolloutController",
    "RolloutLockRegistry",
    "RolloutOutcome",
    "RolloutState",
    "RolloutStatus",
]
