#!/usr/bin/env python3
"""Example: Dashboard Subscriptions and Alerts

Feeds two canary runs into a live dashboard, prints every snapshot a
subscriber receives, and exports the flattened monitoring metrics.

Usage:
    python examples/03_dashboard_alerts.py

Requirements:
    pip install synthetic-canary
"""
from __future__ import annotations

import asyncio

from synthetic_canary import (
    CanaryPipeline,
    DeploymentContext,
    ScriptedStepExecutor,
    VirtualClock,
)
from synthetic_canary.reporting import DashboardSnapshot


def print_snapshot(snapshot: DashboardSnapshot) -> None:
    overview = snapshot.overview
    print(f"  snapshot: {overview.total_tests} tests, "
          f"success {overview.success_rate:.0%}, {len(snapshot.alerts)} active alert(s)")


async def main() -> None:
    deployment = DeploymentContext(deployment_url="https://preview.example.com")

    for label, responses in (
        ("healthy", {}),
        ("broken homepage", {"navigate_home": RuntimeError("HTTP 500")}),
    ):
        clock = VirtualClock()
        pipeline = CanaryPipeline(
            step_executor=ScriptedStepExecutor(responses),
            sleep=clock.sleep,
            clock=clock.now,
            monotonic_clock=clock.monotonic,
        )
        print(f"\nRun: {label}")
        unsubscribe = pipeline.dashboard.subscribe(print_snapshot)
        result = await pipeline.execute(deployment)
        unsubscribe()

        print(f"  verdict: {result.validation.summary}")
        for alert in pipeline.dashboard.active_alerts():
            print(f"  alert [{alert.severity.value}] {alert.kind.value}: {alert.message}")
        metrics = pipeline.dashboard.export_for_monitoring()
        print(f"  synthetic_alerts_critical={metrics['synthetic_alerts_critical']}")


if __name__ == "__main__":
    asyncio.run(main())
