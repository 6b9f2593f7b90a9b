#!/usr/bin/env python3
"""Example: Progressive Rollout with a Health Breach

Walks the conservative ladder against an in-memory flag service while a
scripted health check degrades during the 25% step, showing the
automatic rollback to 0%.

Usage:
    python examples/02_progressive_rollout.py

Requirements:
    pip install synthetic-canary
"""
from __future__ import annotations

import asyncio

from synthetic_canary import (
    InMemoryFlagService,
    ProgressiveRolloutController,
    VirtualClock,
    select_strategy,
)
from synthetic_canary.rollout import RecordingNotificationSink, ScriptedHealthCheck


async def main() -> None:
    flags = InMemoryFlagService()
    notifier = RecordingNotificationSink()
    # 60 healthy polls cover the 5% and 10% steps; the 25% step then degrades.
    health = ScriptedHealthCheck([100.0] * 60 + [92.0, 75.0])
    clock = VirtualClock()

    controller = ProgressiveRolloutController(
        flags, health, notifier, sleep=clock.sleep, clock=clock.now
    )
    strategy = select_strategy(score=85, requested="aggressive")
    print(f"Requested aggressive at score 85 -> {strategy.name.value} "
          f"ladder {strategy.percentages}")

    outcome = await controller.run(["enhanced-audio-player"], strategy)

    print(f"\nStatus: {outcome.status.value}")
    print(f"Reason: {outcome.reason}")
    print(f"Flag history: {flags.history}")
    print(f"Health samples taken: {len(outcome.health_samples)} "
          f"over {clock.elapsed / 60:.0f} simulated minutes")
    for notification in notifier.notifications:
        print(f"Notification [{notification.severity.value}]: {notification.message}")


if __name__ == "__main__":
    asyncio.run(main())
