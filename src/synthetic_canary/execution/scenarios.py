"""Fixed step plans for every scenario.

Each scenario is a tuple of plan steps.  An :class:`ActionStep` runs one
action and then pauses; a :class:`WaitStep` polls an action until it
succeeds or a ceiling is reached, and records a timeout error when the
ceiling is hit.  Plans are plain data so they can be inspected, listed
by the CLI, and exercised by tests without a driver.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from synthetic_canary.profiles.models import Scenario


class PauseKind(str, Enum):
    """How long to pause after an action step."""

    THINK = "think"              # full think-time draw from the profile
    HALF_THINK = "half_think"    # half a think-time draw
    FIXED = "fixed"              # ActionStep.fixed_pause_s seconds
    NONE = "none"


@dataclass(frozen=True)
class ActionStep:
    """Run one action, then pause.

    Attributes
    ----------
    action:
        Machine-readable action name passed to the step executor.
    description:
        Human-readable description.
    pause:
        Pause applied after the action.
    fixed_pause_s:
        Pause length in seconds when ``pause`` is :attr:`PauseKind.FIXED`.
    """

    action: str
    description: str
    pause: PauseKind = PauseKind.THINK
    fixed_pause_s: float = 0.0

    def __post_init__(self) -> None:
        if self.fixed_pause_s < 0:
            raise ValueError(f"fixed_pause_s must be >= 0, got {self.fixed_pause_s}.")


@dataclass(frozen=True)
class WaitStep:
    """Poll an action until it succeeds, bounded by a ceiling.

    Attributes
    ----------
    action:
        Action polled on every tick.
    description:
        Human-readable description.
    timeout_s:
        Ceiling in seconds after which a timeout error is recorded.
    poll_interval_s:
        Seconds waited before each poll.
    timeout_message:
        Message of the timeout error.
    """

    action: str
    description: str
    timeout_s: float = 60.0
    poll_interval_s: float = 2.0
    timeout_message: str = "Timed out waiting for completion"

    def __post_init__(self) -> None:
        if self.poll_interval_s <= 0:
            raise ValueError(f"poll_interval_s must be > 0, got {self.poll_interval_s}.")
        if self.timeout_s < self.poll_interval_s:
            raise ValueError(
                f"timeout_s ({self.timeout_s}) must be >= poll_interval_s "
                f"({self.poll_interval_s})."
            )


PlanStep = ActionStep | WaitStep


def _navigation_steps() -> tuple[ActionStep, ...]:
    steps: list[ActionStep] = []
    for slug, path in (
        ("home", "/"),
        ("episodes", "/episodes"),
        ("sources", "/sources"),
        ("queue", "/queue"),
        ("internal", "/internal"),
    ):
        steps.append(ActionStep(f"navigate_{slug}", f"Navigate to {path}"))
        steps.append(
            ActionStep(
                f"verify_{slug}",
                f"Verify {path} loads correctly",
                pause=PauseKind.HALF_THINK,
            )
        )
    return tuple(steps)


def _responsive_steps() -> tuple[ActionStep, ...]:
    steps: list[ActionStep] = []
    for name, width, height in (
        ("mobile", 390, 844),
        ("tablet", 768, 1024),
        ("desktop", 1440, 900),
    ):
        steps.append(
            ActionStep(
                f"resize_{name}",
                f"Test {name} viewport ({width}x{height})",
                pause=PauseKind.FIXED,
                fixed_pause_s=1.0,
            )
        )
        steps.append(ActionStep(f"interact_{name}", f"Test interactions on {name}"))
    return tuple(steps)


def _stress_steps() -> tuple[ActionStep, ...]:
    rapid = tuple(
        ActionStep(
            f"rapid_nav_{i}",
            f"Rapid navigation {i + 1}",
            pause=PauseKind.FIXED,
            fixed_pause_s=0.1,
        )
        for i in range(10)
    )
    return rapid + (
        ActionStep(
            "concurrent_actions",
            "Execute multiple concurrent actions",
            pause=PauseKind.NONE,
        ),
        ActionStep("memory_stress", "Memory stress test", pause=PauseKind.NONE),
    )


SCENARIO_PLANS: dict[Scenario, tuple[PlanStep, ...]] = {
    Scenario.EPISODE_GENERATION: (
        ActionStep("navigate_home", "Navigate to homepage"),
        ActionStep("click_generate", "Click generate episode button"),
        ActionStep("enter_url", "Enter URL: https://example.com/test-article"),
        ActionStep("select_voice", "Select voice preference"),
        ActionStep("start_generation", "Start episode generation", pause=PauseKind.NONE),
        WaitStep(
            "check_status",
            "Check generation status",
            timeout_s=60.0,
            poll_interval_s=2.0,
            timeout_message="Episode generation timed out",
        ),
    ),
    Scenario.AUDIO_PLAYBACK: (
        ActionStep("navigate_episodes", "Navigate to episodes page"),
        ActionStep("select_episode", "Select an episode"),
        ActionStep(
            "play_audio",
            "Start audio playback",
            pause=PauseKind.FIXED,
            fixed_pause_s=5.0,
        ),
        ActionStep("pause_audio", "Pause audio playback"),
        ActionStep("seek_audio", "Seek to different position"),
        ActionStep("volume_control", "Adjust volume", pause=PauseKind.NONE),
    ),
    Scenario.NAVIGATION_FLOW: _navigation_steps(),
    Scenario.RESPONSIVE_DESIGN: _responsive_steps(),
    Scenario.PERFORMANCE_STRESS: _stress_steps(),
    Scenario.ERROR_RECOVERY: (
        ActionStep("invalid_url", "Test invalid URL input"),
        ActionStep("network_timeout", "Test network timeout recovery"),
        ActionStep("browser_navigation", "Test browser navigation", pause=PauseKind.NONE),
    ),
}

_missing = set(Scenario) - set(SCENARIO_PLANS)
if _missing:
    raise RuntimeError(f"Scenarios without a step plan: {sorted(s.value for s in _missing)}")


def plan_for(scenario: Scenario) -> tuple[PlanStep, ...]:
    """Return the fixed step plan for *scenario*."""
    return SCENARIO_PLANS[scenario]


__all__ = [
    "ActionStep",
    "PauseKind",
    "PlanStep",
    "SCENARIO_PLANS",
    "WaitStep",
    "plan_for",
]
