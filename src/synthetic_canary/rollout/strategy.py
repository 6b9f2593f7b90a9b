"""Rollout strategies and the score-based selection table.

A :class:`RolloutStrategy` is an ordered ladder of :class:`RolloutStep`
objects.  :func:`select_strategy` maps a requested strategy name and a
test score onto a ladder:

=============  ===========  =====================================
Requested      Min. score   Ladder (percent / monitoring minutes)
=============  ===========  =====================================
instant        98           100/0
aggressive     95           10/10, 50/15, 100/0
anything else  n/a          5/15, 10/15, 25/30, 50/30, 100/0
=============  ===========  =====================================

A request whose score is below its minimum gets the conservative ladder.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from synthetic_canary.errors import ConfigurationError


class StrategyName(str, Enum):
    CONSERVATIVE = "conservative"
    AGGRESSIVE = "aggressive"
    INSTANT = "instant"


@dataclass(frozen=True)
class RolloutStep:
    """One rung of a rollout ladder.

    Attributes
    ----------
    percentage:
        Rollout percentage applied to every flag at this step.
    monitoring_minutes:
        How long health is monitored after applying the step.  Zero means
        the step is applied and the rollout moves straight on.
    metrics:
        Names of the metrics watched while monitoring.
    """

    percentage: int
    monitoring_minutes: float
    metrics: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not (0 <= self.percentage <= 100):
            raise ValueError(f"percentage must be in [0, 100], got {self.percentage}.")
        if self.monitoring_minutes < 0:
            raise ValueError(
                f"monitoring_minutes must be >= 0, got {self.monitoring_minutes}."
            )

    @property
    def monitoring_seconds(self) -> float:
        return self.monitoring_minutes * 60.0


@dataclass(frozen=True)
class RolloutStrategy:
    """A named, non-empty ladder with non-decreasing percentages."""

    name: StrategyName
    steps: tuple[RolloutStep, ...]

    def __post_init__(self) -> None:
        if not self.steps:
            raise ConfigurationError(f"Strategy {self.name.value!r} has no steps.")
        percentages = [step.percentage for step in self.steps]
        if any(later < earlier for earlier, later in zip(percentages, percentages[1:])):
            raise ConfigurationError(
                f"Strategy {self.name.value!r} percentages must not decrease: {percentages}."
            )

    @property
    def percentages(self) -> list[int]:
        return [step.percentage for step in self.steps]

    @property
    def final_percentage(self) -> int:
        return self.steps[-1].percentage

    @property
    def total_monitoring_minutes(self) -> float:
        return sum(step.monitoring_minutes for step in self.steps)

    def __len__(self) -> int:
        return len(self.steps)


_CORE_METRICS = ("error_rate", "page_load_time")
_ENGAGEMENT_METRICS = ("error_rate", "page_load_time", "user_engagement")

CONSERVATIVE = RolloutStrategy(
    name=StrategyName.CONSERVATIVE,
    steps=(
        RolloutStep(5, 15, _CORE_METRICS),
        RolloutStep(10, 15, _ENGAGEMENT_METRICS),
        RolloutStep(25, 30, _ENGAGEMENT_METRICS),
        RolloutStep(50, 30, _ENGAGEMENT_METRICS),
        RolloutStep(100, 0),
    ),
)

AGGRESSIVE = RolloutStrategy(
    name=StrategyName.AGGRESSIVE,
    steps=(
        RolloutStep(10, 10, ("error_rate",)),
        RolloutStep(50, 15, _CORE_METRICS),
        RolloutStep(100, 0),
    ),
)

INSTANT = RolloutStrategy(name=StrategyName.INSTANT, steps=(RolloutStep(100, 0),))

INSTANT_MIN_SCORE: float = 98.0
AGGRESSIVE_MIN_SCORE: float = 95.0

# (requested strategy, minimum score, ladder); first match wins.
_SELECTION_TABLE: tuple[tuple[StrategyName, float, RolloutStrategy], ...] = (
    (StrategyName.INSTANT, INSTANT_MIN_SCORE, INSTANT),
    (StrategyName.AGGRESSIVE, AGGRESSIVE_MIN_SCORE, AGGRESSIVE),
)


def parse_strategy_name(name: StrategyName | str) -> StrategyName:
    """Return *name* as a :class:`StrategyName`.

    Raises
    ------
    ConfigurationError
        If *name* is not a known strategy.
    """
    try:
        return StrategyName(name)
    except ValueError:
        known = ", ".join(s.value for s in StrategyName)
        raise ConfigurationError(
            f"Unknown rollout strategy {name!r}; expected one of: {known}."
        ) from None


def select_strategy(
    score: float, requested: StrategyName | str = StrategyName.CONSERVATIVE
) -> RolloutStrategy:
    """Return the ladder for *requested* at test score *score*.

    Parameters
    ----------
    score:
        Canary validation score, 0-100.
    requested:
        Strategy name asked for.

    Returns
    -------
    RolloutStrategy
        The requested ladder when *score* qualifies for it, otherwise the
        conservative ladder.
    """
    name = parse_strategy_name(requested)
    for candidate, min_score, strategy in _SELECTION_TABLE:
        if name is candidate and score >= min_score:
            return strategy
    return CONSERVATIVE


__all__ = [
    "AGGRESSIVE",
    "AGGRESSIVE_MIN_SCORE",
    "CONSERVATIVE",
    "INSTANT",
    "INSTANT_MIN_SCORE",
    "RolloutStep",
    "RolloutStrategy",
    "StrategyName",
    "parse_strategy_name",
    "select_strategy",
]
