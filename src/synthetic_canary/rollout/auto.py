"""Apply canary recommendations directly to feature flags.

When enabled, a ``rollout`` recommendation raises its flag by
``increment_percentage`` (capped at ``max_rollout_percentage``) and a
``rollback`` recommendation sets its flag to 0%.  Other recommendation
types are advisory and left for a human.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from synthetic_canary.rollout.interfaces import FeatureFlagService
from synthetic_canary.validation.recommendations import RecommendationType

if TYPE_CHECKING:
    from synthetic_canary.canary.pipeline import CanaryTestResult

logger = logging.getLogger(__name__)


class AutoRolloutConfig(BaseModel):
    """Settings for :func:`apply_recommendations`.

    Attributes
    ----------
    enabled:
        Nothing is changed unless this is True.
    max_rollout_percentage:
        Ceiling for automatic increases.
    increment_percentage:
        Amount added to a flag on a rollout recommendation.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    max_rollout_percentage: int = Field(default=50, ge=0, le=100)
    increment_percentage: int = Field(default=10, ge=1, le=100)


@dataclass(frozen=True)
class FlagChange:
    flag_key: str
    previous_percentage: int
    new_percentage: int


async def apply_recommendations(
    result: CanaryTestResult,
    config: AutoRolloutConfig,
    flag_service: FeatureFlagService,
) -> list[FlagChange]:
    """Adjust flags according to *result*'s recommendations.

    Only flags that took part in the canary run are touched.

    Parameters
    ----------
    result:
        Completed canary run.
    config:
        Auto-rollout settings.
    flag_service:
        Backend used to read and write percentages.

    Returns
    -------
    list[FlagChange]
        Every change made, in recommendation order.

    Raises
    ------
    FlagServiceError
        Propagated from *flag_service*.
    """
    if not config.enabled:
        logger.info("apply_recommendations: automated rollout disabled; no changes made.")
        return []

    known = {flag.key for flag in result.flags}
    changes: list[FlagChange] = []
    for recommendation in result.recommendations:
        key = recommendation.flag_key
        if key is None or key not in known:
            continue

        if recommendation.type is RecommendationType.ROLLOUT:
            current = await flag_service.get_rollout_percentage(key)
            target = min(current + config.increment_percentage, config.max_rollout_percentage)
            if target <= current:
                logger.info(
                    "apply_recommendations: %s already at %d%% (max %d%%).",
                    key,
                    current,
                    config.max_rollout_percentage,
                )
                continue
            await flag_service.set_rollout_percentage(key, target)
            logger.info("apply_recommendations: increased %s from %d%% to %d%%.", key, current, target)
            changes.append(FlagChange(key, current, target))

        elif recommendation.type is RecommendationType.ROLLBACK:
            current = await flag_service.get_rollout_percentage(key)
            await flag_service.set_rollout_percentage(key, 0)
            logger.warning("apply_recommendations: disabled %s after poor canary results.", key)
            changes.append(FlagChange(key, current, 0))

    return changes


__all__ = ["AutoRolloutConfig", "FlagChange", "apply_recommendations"]
