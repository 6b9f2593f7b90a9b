"""Scenario execution — step drivers, step plans, executor, and orchestrator.

Submodules
----------
- ``results``       StepResult, TestError, PerformanceSample, ScenarioResult
- ``steps``         StepExecutor ABC plus simulated and scripted drivers
- ``scenarios``     Fixed step plans for every Scenario
- ``executor``      ScenarioExecutor
- ``orchestrator``  TestRunOrchestrator with its single-flight guard
"""
from __future__ import annotations

from synthetic_canary.execution.executor import ScenarioExecutor
from synthetic_canary.execution.orchestrator import TestRunOrchestrator
from synthetic_canary.execution.results import (
    PerformanceSample,
    ScenarioResult,
    StepResult,
    TestError,
)
from synthetic_canary.execution.scenarios import (
    SCENARIO_PLANS,
    ActionStep,
    PauseKind,
    WaitStep,
    plan_for,
)
from synthetic_canary.execution.steps import (
    ActionOutcome,
    ScriptedStepExecutor,
    SimulatedStepExecutor,
    StepContext,
    StepExecutor,
)

__all__ = [
    "ActionOutcome",
    "ActionStep",
    "PauseKind",
    "PerformanceSample",
    "SCENARIO_PLANS",
    "ScenarioExecutor",
    "ScenarioResult",
    "ScriptedStepExecutor",
    "SimulatedStepExecutor",
    "StepContext",
    "StepExecutor",
    "StepResult",
    "TestError",
    "TestRunOrchestrator",
    "WaitStep",
    "plan_for",
]
