"""Report aggregation — reduce scenario results to a :class:`TestReport`.

:func:`aggregate_results` is pure: the same results always produce the
same report (apart from ``generated_at`` when it is not supplied), and
calling it again on a longer list is simply a full recompute.
"""
from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from synthetic_canary.execution.results import ScenarioResult
from synthetic_canary.timing import utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BreakdownStats:
    """Total and successful counts for one bucket of results."""

    total: int
    success: int

    @property
    def success_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.success / self.total


@dataclass(frozen=True)
class TestReport:
    """Immutable aggregate over a list of scenario results.

    Attributes
    ----------
    total_tests:
        Number of scenario results.
    successful_tests:
        Results with no recorded errors.
    failed_tests:
        ``total_tests - successful_tests``.
    success_rate:
        ``successful_tests / total_tests``; 0.0 when there are no results.
    average_duration_ms:
        Mean scenario duration; 0.0 when there are no results.
    p95_duration_ms:
        95th-percentile scenario duration; 0.0 when there are no results.
    generated_at:
        UTC time the report was generated.
    scenario_breakdown:
        Counts keyed by scenario tag value.
    user_breakdown:
        Counts keyed by user id.
    results:
        Every result the report was built from.
    """

    __test__ = False

    total_tests: int
    successful_tests: int
    failed_tests: int
    success_rate: float
    average_duration_ms: float
    p95_duration_ms: float
    generated_at: datetime.datetime
    scenario_breakdown: dict[str, BreakdownStats]
    user_breakdown: dict[str, BreakdownStats]
    results: tuple[ScenarioResult, ...]

    def __post_init__(self) -> None:
        if self.total_tests < 0:
            raise ValueError("total_tests must be >= 0.")
        if self.successful_tests + self.failed_tests != self.total_tests:
            raise ValueError(
                f"successful_tests ({self.successful_tests}) + failed_tests "
                f"({self.failed_tests}) != total_tests ({self.total_tests})."
            )
        if not (0.0 <= self.success_rate <= 1.0):
            raise ValueError(f"success_rate must be in [0.0, 1.0], got {self.success_rate}.")

    @property
    def error_rate(self) -> float:
        """Fraction of failed results; 0.0 when there are no results."""
        if self.total_tests == 0:
            return 0.0
        return self.failed_tests / self.total_tests

    def to_dict(self, include_results: bool = False) -> dict[str, object]:
        """Serialise to a JSON-compatible dict."""
        data: dict[str, object] = {
            "summary": {
                "total_tests": self.total_tests,
                "successful_tests": self.successful_tests,
                "failed_tests": self.failed_tests,
                "success_rate": self.success_rate,
                "average_duration_ms": self.average_duration_ms,
                "p95_duration_ms": self.p95_duration_ms,
                "generated_at": self.generated_at.isoformat(),
            },
            "scenario_breakdown": {
                key: {"total": stats.total, "success": stats.success}
                for key, stats in self.scenario_breakdown.items()
            },
            "user_breakdown": {
                key: {"total": stats.total, "success": stats.success}
                for key, stats in self.user_breakdown.items()
            },
        }
        if include_results:
            data["results"] = [r.to_dict() for r in self.results]
        return data


def _breakdown(keys: Iterable[tuple[str, bool]]) -> dict[str, BreakdownStats]:
    counts: dict[str, list[int]] = {}
    for key, success in keys:
        bucket = counts.setdefault(key, [0, 0])
        bucket[0] += 1
        if success:
            bucket[1] += 1
    return {key: BreakdownStats(total=t, success=s) for key, (t, s) in counts.items()}


def aggregate_results(
    results: Iterable[ScenarioResult],
    generated_at: datetime.datetime | None = None,
) -> TestReport:
    """Aggregate scenario *results* into a :class:`TestReport`.

    Parameters
    ----------
    results:
        Scenario results in execution order.  Not modified.
    generated_at:
        Timestamp to stamp on the report.  Defaults to now (UTC).

    Returns
    -------
    TestReport
        Immutable aggregate report.
    """
    collected = tuple(results)
    total = len(collected)
    successful = sum(1 for r in collected if r.success)

    if total > 0:
        durations = np.array([r.duration_ms for r in collected], dtype=np.float64)
        average = float(durations.mean())
        p95 = float(np.percentile(durations, 95))
    else:
        average = 0.0
        p95 = 0.0

    report = TestReport(
        total_tests=total,
        successful_tests=successful,
        failed_tests=total - successful,
        success_rate=successful / total if total > 0 else 0.0,
        average_duration_ms=average,
        p95_duration_ms=p95,
        generated_at=generated_at or utc_now(),
        scenario_breakdown=_breakdown((r.scenario.value, r.success) for r in collected),
        user_breakdown=_breakdown((r.user_id, r.success) for r in collected),
        results=collected,
    )
    logger.debug(
        "aggregate_results: %d/%d successful (%.1f%%), avg %.0f ms.",
        successful,
        total,
        report.success_rate * 100,
        average,
    )
    return report


__all__ = ["BreakdownStats", "TestReport", "aggregate_results"]
