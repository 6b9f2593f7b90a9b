"""Canary validator — score a test report against validation criteria.

Exactly five criteria are evaluated:

- **success_rate**: ``report.success_rate >= min_success_rate``
- **error_rate**: ``1 - report.success_rate <= max_error_rate``
- **avg_response_time**: ``report.average_duration_ms <= max_avg_response_time_ms``
- **test_duration**: observed run duration ``>= min_test_duration_s`` (in ms)
- **required_scenarios**: every required scenario ran at least once

The score is the rounded percentage of satisfied criteria.  A run passes
when the score reaches :data:`APPROVAL_THRESHOLD`.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from synthetic_canary.reporting.aggregator import TestReport
from synthetic_canary.validation.criteria import ValidationCriteria

logger = logging.getLogger(__name__)

APPROVAL_THRESHOLD: int = 80

CRITERION_SUCCESS_RATE = "success_rate"
CRITERION_ERROR_RATE = "error_rate"
CRITERION_AVG_RESPONSE_TIME = "avg_response_time"
CRITERION_TEST_DURATION = "test_duration"
CRITERION_REQUIRED_SCENARIOS = "required_scenarios"


@dataclass(frozen=True)
class CriterionResult:
    """Outcome of a single criterion.

    Attributes
    ----------
    passed:
        Whether the observed value satisfied the threshold.
    value:
        Observed value.
    threshold:
        Threshold it was compared against.
    """

    passed: bool
    value: float
    threshold: float


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of :meth:`CanaryValidator.validate`.

    Attributes
    ----------
    passed:
        True when ``score >= APPROVAL_THRESHOLD``.
    score:
        Rounded percentage of satisfied criteria, 0-100.
    criteria:
        Per-criterion detail keyed by criterion name.
    summary:
        One-line human-readable verdict.
    """

    passed: bool
    score: int
    criteria: dict[str, CriterionResult]
    summary: str

    def failed_criteria(self) -> list[str]:
        return [name for name, result in self.criteria.items() if not result.passed]

    def criterion_passed(self, name: str) -> bool:
        """Return whether criterion *name* passed.

        Raises
        ------
        KeyError
            If *name* is not one of the evaluated criteria.
        """
        return self.criteria[name].passed

    def to_dict(self) -> dict[str, object]:
        return {
            "passed": self.passed,
            "score": self.score,
            "summary": self.summary,
            "criteria": {
                name: {"passed": r.passed, "value": r.value, "threshold": r.threshold}
                for name, r in self.criteria.items()
            },
        }


class CanaryValidator:
    """Evaluate a :class:`TestReport` against :class:`ValidationCriteria`.

    The validator holds no state; identical inputs always produce an
    identical :class:`ValidationResult`.

    Parameters
    ----------
    approval_threshold:
        Minimum score for a run to pass.
    """

    def __init__(self, approval_threshold: int = APPROVAL_THRESHOLD) -> None:
        if not (0 <= approval_threshold <= 100):
            raise ValueError(
                f"approval_threshold must be in [0, 100], got {approval_threshold}."
            )
        self._approval_threshold = approval_threshold

    @property
    def approval_threshold(self) -> int:
        return self._approval_threshold

    def validate(
        self,
        report: TestReport,
        criteria: ValidationCriteria,
        observed_run_duration_ms: float,
    ) -> ValidationResult:
        """Score *report* against *criteria*.

        Parameters
        ----------
        report:
            Aggregated test report.
        criteria:
            Thresholds to evaluate.
        observed_run_duration_ms:
            Wall-clock duration of the whole run in milliseconds.

        Returns
        -------
        ValidationResult
            Pass/fail verdict, score, and per-criterion detail.
        """
        error_rate = round(1.0 - report.success_rate, 10)
        min_duration_ms = criteria.min_test_duration_ms

        results: dict[str, CriterionResult] = {
            CRITERION_SUCCESS_RATE: CriterionResult(
                passed=report.success_rate >= criteria.min_success_rate,
                value=report.success_rate,
                threshold=criteria.min_success_rate,
            ),
            CRITERION_ERROR_RATE: CriterionResult(
                passed=error_rate <= criteria.max_error_rate,
                value=error_rate,
                threshold=criteria.max_error_rate,
            ),
            CRITERION_AVG_RESPONSE_TIME: CriterionResult(
                passed=report.average_duration_ms <= criteria.max_avg_response_time_ms,
                value=report.average_duration_ms,
                threshold=criteria.max_avg_response_time_ms,
            ),
            CRITERION_TEST_DURATION: CriterionResult(
                passed=observed_run_duration_ms >= min_duration_ms,
                value=observed_run_duration_ms,
                threshold=min_duration_ms,
            ),
            CRITERION_REQUIRED_SCENARIOS: self._check_required_scenarios(report, criteria),
        }

        passed_count = sum(1 for r in results.values() if r.passed)
        score = round(100 * passed_count / len(results))
        passed = score >= self._approval_threshold
        if passed:
            summary = f"Canary validation passed ({score}/100). Safe to roll out."
        else:
            summary = f"Canary validation failed ({score}/100). Review required."

        logger.info(
            "CanaryValidator: %d/%d criteria passed, score=%d, passed=%s.",
            passed_count,
            len(results),
            score,
            passed,
        )
        return ValidationResult(passed=passed, score=score, criteria=results, summary=summary)

    @staticmethod
    def _check_required_scenarios(
        report: TestReport, criteria: ValidationCriteria
    ) -> CriterionResult:
        covered = sum(
            1
            for scenario in criteria.required_scenarios
            if scenario.value in report.scenario_breakdown
            and report.scenario_breakdown[scenario.value].total > 0
        )
        required = len(criteria.required_scenarios)
        return CriterionResult(
            passed=covered == required,
            value=float(covered),
            threshold=float(required),
        )

    def __repr__(self) -> str:
        return f"CanaryValidator(approval_threshold={self._approval_threshold})"


__all__ = [
    "APPROVAL_THRESHOLD",
    "CRITERION_AVG_RESPONSE_TIME",
    "CRITERION_ERROR_RATE",
    "CRITERION_REQUIRED_SCENARIOS",
    "CRITERION_SUCCESS_RATE",
    "CRITERION_TEST_DURATION",
    "CanaryValidator",
    "CriterionResult",
    "ValidationResult",
]
