"""Scenario execution result records.

Every record here is a frozen dataclass.  A :class:`ScenarioResult` is
built once by the executor when a scenario finishes and is never
modified afterwards.

Classes
-------
- StepResult         Outcome of one scripted action.
- TestError          Error recorded against a scenario.
- PerformanceSample  Page-level performance metrics gathered at scenario end.
- ScenarioResult     Full outcome of one (profile, scenario) execution.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass

from synthetic_canary.errors import TestErrorKind
from synthetic_canary.profiles.models import Scenario


@dataclass(frozen=True)
class StepResult:
    """Outcome of a single scripted action.

    Attributes
    ----------
    action:
        Machine-readable action name (e.g. ``"click_generate"``).
    description:
        Human-readable description of the step.
    started_at:
        UTC time the step started.
    success:
        Whether the driver reported success.
    duration_ms:
        Time the action took, in milliseconds.
    error:
        Error text when ``success`` is False.
    """

    action: str
    description: str
    started_at: datetime.datetime
    success: bool
    duration_ms: float
    error: str | None = None

    def __post_init__(self) -> None:
        if self.duration_ms < 0:
            raise ValueError(f"duration_ms must be >= 0, got {self.duration_ms}.")


@dataclass(frozen=True)
class TestError:
    """An error that makes a scenario unsuccessful."""

    __test__ = False

    kind: TestErrorKind
    message: str
    timestamp: datetime.datetime


@dataclass(frozen=True)
class PerformanceSample:
    """Performance metrics sampled once at the end of a scenario.

    Attributes
    ----------
    page_load_ms:
        Full page load time.
    first_contentful_paint_ms:
        Time to first contentful paint.
    largest_contentful_paint_ms:
        Time to largest contentful paint.
    interaction_latency_ms:
        Interaction-to-next-paint latency.
    layout_shift_score:
        Cumulative layout shift (unitless).
    network_requests:
        Number of network requests issued.
    bytes_transferred:
        Total bytes transferred.
    """

    page_load_ms: float
    first_contentful_paint_ms: float
    largest_contentful_paint_ms: float
    interaction_latency_ms: float
    layout_shift_score: float
    network_requests: int
    bytes_transferred: int

    def to_dict(self) -> dict[str, float]:
        return {
            "page_load_ms": self.page_load_ms,
            "first_contentful_paint_ms": self.first_contentful_paint_ms,
            "largest_contentful_paint_ms": self.largest_contentful_paint_ms,
            "interaction_latency_ms": self.interaction_latency_ms,
            "layout_shift_score": self.layout_shift_score,
            "network_requests": float(self.network_requests),
            "bytes_transferred": float(self.bytes_transferred),
        }


@dataclass(frozen=True)
class ScenarioResult:
    """Immutable record of one scenario executed by one synthetic user.

    ``duration_ms`` is derived from the start and end timestamps, and
    ``success`` is derived from the error list, so neither can drift from
    the data it summarises.

    Attributes
    ----------
    user_id:
        Id of the profile that ran the scenario.
    scenario:
        Scenario tag.
    started_at:
        UTC start time.
    ended_at:
        UTC end time.  Must not precede ``started_at``.
    steps:
        Ordered step results.
    errors:
        Errors recorded while running the scenario.
    performance:
        Performance metrics gathered at scenario end.
    """

    user_id: str
    scenario: Scenario
    started_at: datetime.datetime
    ended_at: datetime.datetime
    steps: tuple[StepResult, ...]
    errors: tuple[TestError, ...]
    performance: PerformanceSample

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("ScenarioResult.user_id must not be empty.")
        if self.ended_at < self.started_at:
            raise ValueError(
                f"ended_at ({self.ended_at}) precedes started_at ({self.started_at})."
            )

    @property
    def duration_ms(self) -> float:
        """Elapsed time between start and end, in milliseconds."""
        return (self.ended_at - self.started_at).total_seconds() * 1000.0

    @property
    def success(self) -> bool:
        """True iff no errors were recorded."""
        return not self.errors

    @property
    def failed_steps(self) -> list[StepResult]:
        return [step for step in self.steps if not step.success]

    def to_dict(self) -> dict[str, object]:
        """Serialise this result to a JSON-compatible dict."""
        return {
            "user_id": self.user_id,
            "scenario": self.scenario.value,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat(),
            "duration_ms": self.duration_ms,
            "success": self.success,
            "steps": [
                {
                    "action": step.action,
                    "description": step.description,
                    "success": step.success,
                    "duration_ms": step.duration_ms,
                    "error": step.error,
                }
                for step in self.steps
            ],
            "errors": [
                {
                    "kind": error.kind.value,
                    "message": error.message,
                    "timestamp": error.timestamp.isoformat(),
                }
                for error in self.errors
            ],
            "performance": self.performance.to_dict(),
        }


__all__ = [
    "PerformanceSample",
    "ScenarioResult",
    "StepResult",
    "TestError",
]
