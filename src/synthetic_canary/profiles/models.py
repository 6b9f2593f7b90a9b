"""Synthetic user profile value objects.

A profile describes one synthetic user archetype: how long it thinks
between actions, what device and network it browses from, which
preferences it holds, and which scenarios it is assigned.  Profiles are
frozen once created so a registry can hand them out freely.

Classes
-------
- Scenario          Closed set of scenario tags.
- Archetype         Closed set of user archetype tags.
- ValueRange        Inclusive min/max/average triple.
- BehaviorPattern   Timing and propensity parameters.
- DeviceProfile     Viewport, network class, device class, capabilities.
- Preferences       Playback and UI preferences.
- UserProfile       The full profile.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Scenario(str, Enum):
    """Named scenario that a synthetic user can exercise."""

    EPISODE_GENERATION = "episode_generation"
    AUDIO_PLAYBACK = "audio_playback"
    NAVIGATION_FLOW = "navigation_flow"
    RESPONSIVE_DESIGN = "responsive_design"
    PERFORMANCE_STRESS = "performance_stress"
    ERROR_RECOVERY = "error_recovery"


class Archetype(str, Enum):
    """Behavioural archetype of a synthetic user."""

    POWER_USER = "power_user"
    CASUAL_LISTENER = "casual_listener"
    CONTENT_CREATOR = "content_creator"
    MOBILE_USER = "mobile_user"
    ACCESSIBILITY_USER = "accessibility_user"


class DeviceClass(str, Enum):
    DESKTOP = "desktop"
    TABLET = "tablet"
    MOBILE = "mobile"


class NetworkClass(str, Enum):
    FAST = "fast"
    SLOW = "slow"
    OFFLINE = "offline"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValueRange:
    """Inclusive numeric range with a typical value.

    Attributes
    ----------
    min:
        Lower bound.
    max:
        Upper bound.  Must be >= ``min``.
    average:
        Typical value, expected to lie within ``[min, max]``.
    """

    min: float
    max: float
    average: float

    def __post_init__(self) -> None:
        if self.min < 0:
            raise ValueError(f"ValueRange.min must be >= 0, got {self.min}.")
        if self.max < self.min:
            raise ValueError(
                f"ValueRange.max ({self.max}) must be >= min ({self.min})."
            )
        if not (self.min <= self.average <= self.max):
            raise ValueError(
                f"ValueRange.average ({self.average}) must lie in "
                f"[{self.min}, {self.max}]."
            )


@dataclass(frozen=True)
class BehaviorPattern:
    """Timing and propensity parameters for a synthetic user.

    Attributes
    ----------
    session_duration_minutes:
        How long a session typically lasts.
    actions_per_session:
        How many actions a session typically contains.
    think_time_ms:
        Pause between consecutive actions, in milliseconds.
    error_tolerance:
        Likelihood (0.0–1.0) that the user retries after an error.
    feature_adoption:
        Likelihood (0.0–1.0) that the user tries a new feature.
    """

    session_duration_minutes: ValueRange
    actions_per_session: ValueRange
    think_time_ms: ValueRange
    error_tolerance: float
    feature_adoption: float

    def __post_init__(self) -> None:
        for name in ("error_tolerance", "feature_adoption"):
            value = getattr(self, name)
            if not (0.0 <= value <= 1.0):
                raise ValueError(f"{name} must be in [0.0, 1.0], got {value}.")


@dataclass(frozen=True)
class Capabilities:
    javascript: bool = True
    local_storage: bool = True
    web_audio: bool = True
    touch_screen: bool = False


@dataclass(frozen=True)
class DeviceProfile:
    """Browser/device characteristics used when driving the target.

    Attributes
    ----------
    user_agent:
        User-agent string presented to the target.
    viewport:
        ``(width, height)`` in CSS pixels.
    device_class:
        Desktop, tablet, or mobile.
    network:
        Network quality class.
    capabilities:
        Feature support flags.
    """

    user_agent: str
    viewport: tuple[int, int]
    device_class: DeviceClass
    network: NetworkClass
    capabilities: Capabilities = field(default_factory=Capabilities)

    def __post_init__(self) -> None:
        width, height = self.viewport
        if width <= 0 or height <= 0:
            raise ValueError(f"viewport must be positive, got {self.viewport}.")


@dataclass(frozen=True)
class Preferences:
    theme: Theme = Theme.AUTO
    high_quality_audio: bool = False
    playback_speed: float = 1.0
    autoplay: bool = False
    notifications: bool = False


@dataclass(frozen=True)
class UserProfile:
    """Immutable synthetic user profile.

    Attributes
    ----------
    id:
        Unique user identifier (e.g. ``"power_user_001"``).
    archetype:
        Behavioural archetype tag.
    name:
        Human-readable label used in logs.
    behavior:
        Timing and propensity parameters.
    device:
        Device and network profile.
    preferences:
        Playback and UI preferences.
    scenarios:
        Ordered scenarios this user exercises on every run.
    """

    id: str
    archetype: Archetype
    name: str
    behavior: BehaviorPattern
    device: DeviceProfile
    preferences: Preferences
    scenarios: tuple[Scenario, ...]

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("UserProfile.id must not be empty.")
        if not self.scenarios:
            raise ValueError(
                f"UserProfile {self.id!r} must be assigned at least one scenario."
            )


__all__ = [
    "Archetype",
    "BehaviorPattern",
    "Capabilities",
    "DeviceClass",
    "DeviceProfile",
    "NetworkClass",
    "Preferences",
    "Scenario",
    "Theme",
    "UserProfile",
    "ValueRange",
]
