"""Canary — deployment context and the pipeline composition root.

Submodules
----------
- ``context``   DeploymentContext (pydantic)
- ``pipeline``  CanaryPipeline, CanaryTestResult, run_quick_validation
"""
from __future__ import annotations

from synthetic_canary.canary.context import DeploymentContext, DeploymentEnvironment
from synthetic_canary.canary.pipeline import (
    CanaryPipeline,
    CanaryTestResult,
    run_quick_validation,
)

__all__ = [
    "CanaryPipeline",
    "CanaryTestResult",
    "DeploymentContext",
    "DeploymentEnvironment",
    "run_quick_validation",
]
