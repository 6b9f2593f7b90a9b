"""Feature-flag catalog.

A :class:`FeatureFlag` names a flag under canary test and the branch
keywords that select it.  :func:`flags_for_branch` picks the flags a
branch rolls out.
"""
from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field


class FeatureFlag(BaseModel):
    """A feature flag taking part in a canary rollout.

    Attributes
    ----------
    key:
        Flag key in the feature-flag service.
    description:
        Human-readable description.
    rollout_percentage:
        Configured rollout percentage, 0-100.
    target_groups:
        Cohorts the flag targets.
    enabled_for_synthetic:
        Whether synthetic users see the flag during canary testing.
    branch_keywords:
        Lowercase substrings of a branch name that select this flag.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1)
    description: str = ""
    rollout_percentage: int = Field(default=0, ge=0, le=100)
    target_groups: list[str] = Field(default_factory=lambda: ["synthetic_users"])
    enabled_for_synthetic: bool = True
    branch_keywords: list[str] = Field(default_factory=list)

    def matches_branch(self, branch_name: str) -> bool:
        branch = branch_name.lower()
        return any(keyword.lower() in branch for keyword in self.branch_keywords)


DEFAULT_FLAG_CATALOG: tuple[FeatureFlag, ...] = (
    FeatureFlag(
        key="new-episode-generation",
        description="New episode generation pipeline",
        branch_keywords=["episode"],
    ),
    FeatureFlag(
        key="enhanced-audio-player",
        description="Enhanced audio player with waveform",
        branch_keywords=["audio"],
    ),
    FeatureFlag(
        key="improved-summarization",
        description="Improved AI summarization",
        branch_keywords=["summary", "summariz"],
    ),
)


def flags_for_branch(
    branch_name: str, catalog: Iterable[FeatureFlag] = DEFAULT_FLAG_CATALOG
) -> list[FeatureFlag]:
    """Return the catalog flags whose keywords appear in *branch_name*.

    Matching is case-insensitive.  Catalog order is preserved.
    """
    return [flag for flag in catalog if flag.matches_branch(branch_name)]


__all__ = ["DEFAULT_FLAG_CATALOG", "FeatureFlag", "flags_for_branch"]
