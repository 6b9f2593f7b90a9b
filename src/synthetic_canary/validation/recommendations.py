"""Recommendation engine — turn a validation result into next actions.

Exactly one score-band rule fires, checked in this order:

1. passed and score >= 90  -> rollout, high
2. passed and score >= 80  -> rollout, medium
3. score < 60              -> rollback, high
4. otherwise               -> investigate, medium

Two criterion rules are then added independently of the band: a failed
response-time criterion adds an ``optimize`` recommendation and a failed
error-rate criterion adds an ``investigate`` recommendation, both high
priority.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from synthetic_canary.validation.validator import (
    CRITERION_AVG_RESPONSE_TIME,
    CRITERION_ERROR_RATE,
    ValidationResult,
)

if TYPE_CHECKING:
    from synthetic_canary.canary.context import DeploymentContext
    from synthetic_canary.rollout.flags import FeatureFlag

logger = logging.getLogger(__name__)

EXCELLENT_SCORE: int = 90
GOOD_SCORE: int = 80
POOR_SCORE: int = 60


class RecommendationType(str, Enum):
    ROLLOUT = "rollout"
    ROLLBACK = "rollback"
    INVESTIGATE = "investigate"
    OPTIMIZE = "optimize"


class RecommendationPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class Recommendation:
    """A single suggested action.

    Attributes
    ----------
    type:
        What kind of action is recommended.
    priority:
        How urgently it should be taken.
    message:
        Why the recommendation was made.
    action:
        What to do.
    flag_key:
        Flag the action applies to, for rollout and rollback
        recommendations when flags were supplied.
    """

    type: RecommendationType
    priority: RecommendationPriority
    message: str
    action: str
    flag_key: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "type": self.type.value,
            "priority": self.priority.value,
            "message": self.message,
            "action": self.action,
            "flag_key": self.flag_key,
        }


class RecommendationEngine:
    """Derive an ordered list of :class:`Recommendation` objects.

    Pure: the same inputs always produce the same list.
    """

    def recommend(
        self,
        validation: ValidationResult,
        flags: Sequence[FeatureFlag] = (),
        deployment: DeploymentContext | None = None,
    ) -> list[Recommendation]:
        """Return recommendations for *validation*.

        Parameters
        ----------
        validation:
            Result of :meth:`CanaryValidator.validate`.
        flags:
            Flags under test.  Rollout and rollback recommendations target
            the first one.
        deployment:
            Deployment the run validated; used for log context only.

        Returns
        -------
        list[Recommendation]
            Band recommendation first, then any criterion-specific ones.
        """
        primary_flag = flags[0].key if flags else None
        recommendations = [self._band_recommendation(validation, primary_flag)]

        if not validation.criterion_passed(CRITERION_AVG_RESPONSE_TIME):
            recommendations.append(
                Recommendation(
                    type=RecommendationType.OPTIMIZE,
                    priority=RecommendationPriority.HIGH,
                    message="Performance issues detected in canary testing.",
                    action="Optimize slow endpoints and review resource usage",
                )
            )

        if not validation.criterion_passed(CRITERION_ERROR_RATE):
            recommendations.append(
                Recommendation(
                    type=RecommendationType.INVESTIGATE,
                    priority=RecommendationPriority.HIGH,
                    message="High error rate detected in canary testing.",
                    action="Review error logs and fix critical bugs before rollout",
                )
            )

        logger.info(
            "RecommendationEngine: %d recommendation(s) for deployment %s (score=%d).",
            len(recommendations),
            deployment.deployment_id if deployment is not None else "<unknown>",
            validation.score,
        )
        return recommendations

    @staticmethod
    def _band_recommendation(
        validation: ValidationResult, flag_key: str | None
    ) -> Recommendation:
        if validation.passed and validation.score >= EXCELLENT_SCORE:
            return Recommendation(
                type=RecommendationType.ROLLOUT,
                priority=RecommendationPriority.HIGH,
                message="Excellent canary results. Safe to increase rollout.",
                action="Increase feature flag rollout to 50-100%",
                flag_key=flag_key,
            )
        if validation.passed and validation.score >= GOOD_SCORE:
            return Recommendation(
                type=RecommendationType.ROLLOUT,
                priority=RecommendationPriority.MEDIUM,
                message="Good canary results. Gradual rollout recommended.",
                action="Increase feature flag rollout to 25-50%",
                flag_key=flag_key,
            )
        if validation.score < POOR_SCORE:
            return Recommendation(
                type=RecommendationType.ROLLBACK,
                priority=RecommendationPriority.HIGH,
                message="Poor canary results. Immediate attention required.",
                action="Disable feature flags and investigate issues",
                flag_key=flag_key,
            )
        return Recommendation(
            type=RecommendationType.INVESTIGATE,
            priority=RecommendationPriority.MEDIUM,
            message="Mixed canary results. Further investigation needed.",
            action="Review detailed test results and fix identified issues",
        )


__all__ = [
    "EXCELLENT_SCORE",
    "GOOD_SCORE",
    "POOR_SCORE",
    "Recommendation",
    "RecommendationEngine",
    "RecommendationPriority",
    "RecommendationType",
]
