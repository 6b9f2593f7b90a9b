"""Tests for synthetic_canary.rollout.controller.ProgressiveRolloutController."""
from __future__ import annotations

import asyncio

import pytest

from synthetic_canary.errors import HealthCheckError, RolloutInProgressError
from synthetic_canary.reporting import AlertSeverity
from synthetic_canary.rollout import (
    AGGRESSIVE,
    CONSERVATIVE,
    INSTANT,
    InMemoryFlagService,
    NotificationStatus,
    ProgressiveRolloutController,
    RecordingNotificationSink,
    RolloutLockRegistry,
    RolloutStatus,
    ScriptedHealthCheck,
)
from synthetic_canary.timing import VirtualClock

FLAGS = ("new-episode-generation", "enhanced-audio-player")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_controller(
    health: ScriptedHealthCheck | None = None,
    flag_service: InMemoryFlagService | None = None,
    locks: RolloutLockRegistry | None = None,
) -> tuple[ProgressiveRolloutController, InMemoryFlagService, RecordingNotificationSink, VirtualClock]:
    clock = VirtualClock()
    flags = flag_service or InMemoryFlagService()
    notifier = RecordingNotificationSink()
    controller = ProgressiveRolloutController(
        flags,
        health or ScriptedHealthCheck(),
        notifier,
        sleep=clock.sleep,
        clock=clock.now,
        locks=locks,
    )
    return controller, flags, notifier, clock


# ---------------------------------------------------------------------------
# Successful rollouts
# ---------------------------------------------------------------------------


class TestCompletedRollout:
    async def test_conservative_walks_every_step(self) -> None:
        controller, flags, notifier, clock = _make_controller()
        outcome = await controller.run(FLAGS, CONSERVATIVE)

        assert outcome.status is RolloutStatus.COMPLETED
        assert outcome.succeeded is True
        assert outcome.final_percentage == 100
        assert outcome.steps_applied == 5
        assert [p for key, p in flags.history if key == FLAGS[0]] == [5, 10, 25, 50, 100]
        assert flags.snapshot() == {FLAGS[0]: 100, FLAGS[1]: 100}
        assert len(outcome.health_samples) == 30 + 30 + 60 + 60
        assert clock.elapsed == pytest.approx(90 * 60)
        assert notifier.statuses() == [NotificationStatus.SUCCESS]
        assert notifier.notifications[0].message == "Rollout completed - 100% of users"

    async def test_aggressive_polls_per_window(self) -> None:
        controller, _, _, _ = _make_controller()
        outcome = await controller.run(FLAGS, AGGRESSIVE)
        assert outcome.status is RolloutStatus.COMPLETED
        assert len(outcome.health_samples) == 20 + 30

    async def test_instant_applies_without_monitoring(self) -> None:
        health = ScriptedHealthCheck()
        controller, flags, _, clock = _make_controller(health=health)
        outcome = await controller.run(FLAGS, INSTANT)
        assert outcome.status is RolloutStatus.COMPLETED
        assert health.calls == 0
        assert clock.elapsed == 0
        assert flags.snapshot() == {FLAGS[0]: 100, FLAGS[1]: 100}

    async def test_state_tracks_progress(self) -> None:
        controller, _, _, _ = _make_controller()
        assert controller.state is None
        await controller.run(FLAGS, INSTANT)
        assert controller.state is not None
        assert controller.state.status is RolloutStatus.COMPLETED
        assert controller.state.is_terminal

    async def test_duplicate_keys_collapsed(self) -> None:
        controller, flags, _, _ = _make_controller()
        outcome = await controller.run([FLAGS[0], FLAGS[0]], INSTANT)
        assert outcome.flag_keys == (FLAGS[0],)
        assert flags.history == [(FLAGS[0], 100)]

    async def test_empty_keys_rejected(self) -> None:
        controller, _, _, _ = _make_controller()
        with pytest.raises(ValueError):
            await controller.run([], INSTANT)

    def test_polls_for(self) -> None:
        controller, _, _, _ = _make_controller()
        assert [controller.polls_for(s) for s in CONSERVATIVE.steps] == [30, 30, 60, 60, 0]


# ---------------------------------------------------------------------------
# Aborted rollouts
# ---------------------------------------------------------------------------


class TestAbortedRollout:
    async def test_health_breach_during_25_percent_step_rolls_back(self) -> None:
        health = ScriptedHealthCheck([100.0] * 60 + [75.0])
        controller, flags, notifier, _ = _make_controller(health=health)

        outcome = await controller.run(FLAGS, CONSERVATIVE)

        assert outcome.status is RolloutStatus.ROLLED_BACK
        assert outcome.final_percentage == 0
        assert outcome.steps_applied == 3
        assert flags.snapshot() == {FLAGS[0]: 0, FLAGS[1]: 0}
        applied = [p for key, p in flags.history if key == FLAGS[0]]
        assert applied == [5, 10, 25, 0]
        assert 50 not in applied
        assert outcome.reason == "Health score dropped to 75.0/100"
        assert health.calls == 61
        assert notifier.statuses() == [NotificationStatus.FAILED]
        assert notifier.notifications[0].severity is AlertSeverity.HIGH

    async def test_health_exactly_at_floor_is_healthy(self) -> None:
        controller, _, _, _ = _make_controller(health=ScriptedHealthCheck([80.0]))
        outcome = await controller.run(FLAGS, AGGRESSIVE)
        assert outcome.status is RolloutStatus.COMPLETED

    async def test_flag_service_failure_triggers_rollback(self) -> None:
        flags = InMemoryFlagService()
        flags.fail_on(FLAGS[1], 10)
        controller, _, notifier, _ = _make_controller(flag_service=flags)

        outcome = await controller.run(FLAGS, CONSERVATIVE)

        assert outcome.status is RolloutStatus.ROLLED_BACK
        assert "FlagServiceError" in (outcome.reason or "")
        assert flags.snapshot() == {FLAGS[0]: 0, FLAGS[1]: 0}
        assert outcome.steps_applied == 1
        assert notifier.statuses() == [NotificationStatus.FAILED]

    async def test_failed_reset_marks_rollout_failed(self) -> None:
        flags = InMemoryFlagService()
        flags.fail_on(FLAGS[1], 10)
        flags.fail_on(FLAGS[1], 0)
        controller, _, notifier, _ = _make_controller(flag_service=flags)

        outcome = await controller.run(FLAGS, CONSERVATIVE)

        assert outcome.status is RolloutStatus.FAILED
        assert "rollback failed" in (outcome.reason or "")
        assert flags.snapshot()[FLAGS[0]] == 0
        assert flags.snapshot()[FLAGS[1]] == 5
        assert notifier.notifications[-1].severity is AlertSeverity.CRITICAL

    async def test_health_check_error_triggers_rollback(self) -> None:
        health = ScriptedHealthCheck([100.0, HealthCheckError("endpoint down")])
        controller, flags, _, _ = _make_controller(health=health)

        outcome = await controller.run(FLAGS, CONSERVATIVE)

        assert outcome.status is RolloutStatus.ROLLED_BACK
        assert "endpoint down" in (outcome.reason or "")
        assert flags.snapshot() == {FLAGS[0]: 0, FLAGS[1]: 0}

    async def test_notifier_failure_does_not_break_rollout(self) -> None:
        class BrokenSink(RecordingNotificationSink):
            async def notify(self, notification):  # type: ignore[no-untyped-def]
                raise RuntimeError("smtp down")

        clock = VirtualClock()
        controller = ProgressiveRolloutController(
            InMemoryFlagService(),
            ScriptedHealthCheck(),
            BrokenSink(),
            sleep=clock.sleep,
            clock=clock.now,
        )
        outcome = await controller.run(FLAGS, INSTANT)
        assert outcome.status is RolloutStatus.COMPLETED


# ---------------------------------------------------------------------------
# Cancellation and locking
# ---------------------------------------------------------------------------


class TestCancellationAndLocking:
    async def test_emergency_rollback_interrupts_monitoring(self) -> None:
        health = ScriptedHealthCheck()
        controller, flags, _, _ = _make_controller(health=health)
        task = asyncio.create_task(controller.run(FLAGS, CONSERVATIVE))
        for _ in range(5):
            await asyncio.sleep(0)

        controller.request_emergency_rollback("Operator abort")
        outcome = await task

        assert outcome.status is RolloutStatus.ROLLED_BACK
        assert outcome.reason == "Operator abort"
        assert flags.snapshot() == {FLAGS[0]: 0, FLAGS[1]: 0}
        assert health.calls < 30

    async def test_task_cancellation_resets_flags(self) -> None:
        controller, flags, notifier, _ = _make_controller()
        task = asyncio.create_task(controller.run(FLAGS, CONSERVATIVE))
        for _ in range(3):
            await asyncio.sleep(0)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert flags.snapshot() == {FLAGS[0]: 0, FLAGS[1]: 0}
        assert controller.state is not None
        assert controller.state.status is RolloutStatus.ROLLED_BACK
        assert notifier.statuses() == [NotificationStatus.FAILED]

    async def test_concurrent_rollout_of_same_flags_rejected(self) -> None:
        locks = RolloutLockRegistry()
        first, _, _, _ = _make_controller(locks=locks)
        second, _, _, _ = _make_controller(locks=locks)
        task = asyncio.create_task(first.run(FLAGS, CONSERVATIVE))
        await asyncio.sleep(0)

        assert locks.is_locked(FLAGS)
        with pytest.raises(RolloutInProgressError):
            await second.run(list(reversed(FLAGS)), INSTANT)

        first.request_emergency_rollback("test over")
        await task
        assert not locks.is_locked(FLAGS)

    async def test_different_flag_sets_may_run_concurrently(self) -> None:
        locks = RolloutLockRegistry()
        first, _, _, _ = _make_controller(locks=locks)
        second, _, _, _ = _make_controller(locks=locks)
        task = asyncio.create_task(first.run([FLAGS[0]], AGGRESSIVE))
        await asyncio.sleep(0)

        outcome = await second.run([FLAGS[1]], INSTANT)
        assert outcome.status is RolloutStatus.COMPLETED
        await task


class TestSharedControllerCancellation:
    async def test_new_run_does_not_clear_pending_emergency_rollback(self) -> None:
        controller, flags, _, _ = _make_controller()
        task_a = asyncio.create_task(controller.run(["flag-a"], CONSERVATIVE))
        for _ in range(3):
            await asyncio.sleep(0)

        assert controller.request_emergency_rollback("Operator abort") == 1
        outcome_b = await controller.run(["flag-b"], INSTANT)
        outcome_a = await task_a

        assert outcome_b.status is RolloutStatus.COMPLETED
        assert outcome_a.status is RolloutStatus.ROLLED_BACK
        assert outcome_a.reason == "Operator abort"
        assert flags.snapshot() == {"flag-a": 0, "flag-b": 100}

    async def test_targeted_rollback_leaves_other_runs_alone(self) -> None:
        controller, flags, _, _ = _make_controller()
        task_a = asyncio.create_task(controller.run(["flag-a"], AGGRESSIVE))
        task_b = asyncio.create_task(controller.run(["flag-b"], AGGRESSIVE))
        for _ in range(3):
            await asyncio.sleep(0)
        assert set(controller.active_flag_sets) == {
            frozenset({"flag-a"}),
            frozenset({"flag-b"}),
        }

        assert controller.request_emergency_rollback("abort b", flag_keys=["flag-b"]) == 1
        outcome_a, outcome_b = await asyncio.gather(task_a, task_b)

        assert outcome_a.status is RolloutStatus.COMPLETED
        assert outcome_b.status is RolloutStatus.ROLLED_BACK
        assert flags.snapshot() == {"flag-a": 100, "flag-b": 0}
        assert controller.active_flag_sets == []

    async def test_rollback_without_active_run_signals_nothing(self) -> None:
        controller, _, _, _ = _make_controller()
        assert controller.request_emergency_rollback("nothing running") == 0
        assert controller.request_emergency_rollback("x", flag_keys=["flag-a"]) == 0

    async def test_state_for_tracks_each_flag_set(self) -> None:
        controller, _, _, _ = _make_controller()
        task = asyncio.create_task(controller.run(["flag-a"], AGGRESSIVE))
        for _ in range(3):
            await asyncio.sleep(0)

        state = controller.state_for(["flag-a"])
        assert state is not None
        assert state.status is RolloutStatus.ROLLING_OUT
        assert controller.state_for(["flag-b"]) is None

        controller.request_emergency_rollback("done")
        await task
        assert controller.state_for(["flag-a"]) is None
