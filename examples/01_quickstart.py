#!/usr/bin/env python3
"""Example: Quickstart — synthetic-canary

Minimal working example: run every synthetic user against a deployment
in simulated time, then print the validation verdict and recommendations.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install synthetic-canary
"""
from __future__ import annotations

import asyncio

import synthetic_canary
from synthetic_canary import (
    CanaryPipeline,
    DeploymentContext,
    SimulatedStepExecutor,
    ValidationCriteria,
    VirtualClock,
)
from synthetic_canary.rollout import flags_for_branch


async def main() -> None:
    print(f"synthetic-canary version: {synthetic_canary.__version__}")

    # Step 1: Simulated time so the run finishes instantly
    clock = VirtualClock()
    pipeline = CanaryPipeline(
        step_executor=SimulatedStepExecutor(failure_rate=0.02, random_seed=42, sleep=clock.sleep),
        sleep=clock.sleep,
        clock=clock.now,
        monotonic_clock=clock.monotonic,
        random_seed=42,
    )

    # Step 2: Describe the deployment and pick the flags under test
    deployment = DeploymentContext(
        deployment_url="https://preview.example.com",
        branch_name="feature/audio-waveform",
    )
    flags = flags_for_branch(deployment.branch_name)
    print(f"Flags under test: {[f.key for f in flags]}")

    # Step 3: Run and score
    result = await pipeline.execute(deployment, flags, ValidationCriteria())
    report = result.report
    print(f"\nRan {report.total_tests} scenarios in {clock.elapsed:.0f}s of simulated time")
    print(f"Success rate: {report.success_rate:.1%}, "
          f"avg duration: {report.average_duration_ms:.0f} ms")
    print(result.validation.summary)
    for name, criterion in result.validation.criteria.items():
        mark = "PASS" if criterion.passed else "FAIL"
        print(f"  [{mark}] {name}: {criterion.value:.3f} (threshold {criterion.threshold:.3f})")

    # Step 4: Recommendations
    print("\nRecommendations:")
    for rec in result.recommendations:
        print(f"  [{rec.priority.value}] {rec.type.value}: {rec.action}")


if __name__ == "__main__":
    asyncio.run(main())
