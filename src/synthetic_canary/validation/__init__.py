"""Validation — criteria, the five-criterion validator, and recommendations.

Submodules
----------
- ``criteria``         ValidationCriteria (pydantic) and DEFAULT_CRITERIA
- ``validator``        CanaryValidator, ValidationResult, APPROVAL_THRESHOLD
- ``recommendations``  RecommendationEngine and Recommendation
"""
from __future__ import annotations

from synthetic_canary.validation.criteria import DEFAULT_CRITERIA, ValidationCriteria
from synthetic_canary.validation.recommendations import (
    Recommendation,
    RecommendationEngine,
    RecommendationPriority,
    RecommendationType,
)
from synthetic_canary.validation.validator import (
    APPROVAL_THRESHOLD,
    CanaryValidator,
    CriterionResult,
    ValidationResult,
)

__all__ = [
    "APPROVAL_THRESHOLD",
    "CanaryValidator",
    "CriterionResult",
    "DEFAULT_CRITERIA",
    "Recommendation",
    "RecommendationEngine",
    "RecommendationPriority",
    "RecommendationType",
    "ValidationCriteria",
    "ValidationResult",
]
