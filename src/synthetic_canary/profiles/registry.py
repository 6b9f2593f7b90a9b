"""ProfileRegistry — catalogue of synthetic user profiles.

The registry is populated once at start-up (usually from
:data:`STANDARD_PROFILES`) and then read by the orchestrator.  Profiles
are kept in registration order so runs are reproducible.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator

from synthetic_canary.errors import ProfileNotFoundError
from synthetic_canary.profiles.models import (
    Archetype,
    BehaviorPattern,
    Capabilities,
    DeviceClass,
    DeviceProfile,
    NetworkClass,
    Preferences,
    Scenario,
    Theme,
    UserProfile,
    ValueRange,
)

logger = logging.getLogger(__name__)

_DESKTOP_MAC_UA = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
_DESKTOP_WIN_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
_IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15"
)
_ANDROID_UA = "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36"


# ---------------------------------------------------------------------------
# Standard profiles
# ---------------------------------------------------------------------------

STANDARD_PROFILES: tuple[UserProfile, ...] = (
    UserProfile(
        id="power_user_001",
        archetype=Archetype.POWER_USER,
        name="Alex Chen - Power User",
        behavior=BehaviorPattern(
            session_duration_minutes=ValueRange(20, 60, 35),
            actions_per_session=ValueRange(15, 50, 30),
            think_time_ms=ValueRange(500, 2000, 1000),
            error_tolerance=0.8,
            feature_adoption=0.9,
        ),
        device=DeviceProfile(
            user_agent=_DESKTOP_MAC_UA,
            viewport=(1920, 1080),
            device_class=DeviceClass.DESKTOP,
            network=NetworkClass.FAST,
        ),
        preferences=Preferences(
            theme=Theme.DARK,
            high_quality_audio=True,
            playback_speed=1.25,
            autoplay=True,
            notifications=True,
        ),
        scenarios=(
            Scenario.EPISODE_GENERATION,
            Scenario.AUDIO_PLAYBACK,
            Scenario.NAVIGATION_FLOW,
        ),
    ),
    UserProfile(
        id="casual_listener_001",
        archetype=Archetype.CASUAL_LISTENER,
        name="Jamie Smith - Casual Listener",
        behavior=BehaviorPattern(
            session_duration_minutes=ValueRange(5, 20, 12),
            actions_per_session=ValueRange(3, 12, 7),
            think_time_ms=ValueRange(1000, 5000, 2500),
            error_tolerance=0.3,
            feature_adoption=0.2,
        ),
        device=DeviceProfile(
            user_agent=_IPHONE_UA,
            viewport=(390, 844),
            device_class=DeviceClass.MOBILE,
            network=NetworkClass.SLOW,
            capabilities=Capabilities(touch_screen=True),
        ),
        preferences=Preferences(theme=Theme.AUTO),
        scenarios=(Scenario.AUDIO_PLAYBACK, Scenario.RESPONSIVE_DESIGN),
    ),
    UserProfile(
        id="content_creator_001",
        archetype=Archetype.CONTENT_CREATOR,
        name="Morgan Taylor - Content Creator",
        behavior=BehaviorPattern(
            session_duration_minutes=ValueRange(15, 45, 25),
            actions_per_session=ValueRange(10, 30, 18),
            think_time_ms=ValueRange(800, 3000, 1500),
            error_tolerance=0.6,
            feature_adoption=0.7,
        ),
        device=DeviceProfile(
            user_agent=_DESKTOP_WIN_UA,
            viewport=(1440, 900),
            device_class=DeviceClass.DESKTOP,
            network=NetworkClass.FAST,
        ),
        preferences=Preferences(
            theme=Theme.LIGHT,
            high_quality_audio=True,
            autoplay=True,
            notifications=True,
        ),
        scenarios=(
            Scenario.EPISODE_GENERATION,
            Scenario.PERFORMANCE_STRESS,
            Scenario.ERROR_RECOVERY,
        ),
    ),
    UserProfile(
        id="mobile_user_001",
        archetype=Archetype.MOBILE_USER,
        name="Riley Park - Mobile User",
        behavior=BehaviorPattern(
            session_duration_minutes=ValueRange(3, 15, 8),
            actions_per_session=ValueRange(4, 15, 8),
            think_time_ms=ValueRange(800, 4000, 2000),
            error_tolerance=0.4,
            feature_adoption=0.5,
        ),
        device=DeviceProfile(
            user_agent=_ANDROID_UA,
            viewport=(412, 915),
            device_class=DeviceClass.MOBILE,
            network=NetworkClass.SLOW,
            capabilities=Capabilities(touch_screen=True),
        ),
        preferences=Preferences(theme=Theme.DARK, autoplay=True),
        scenarios=(
            Scenario.RESPONSIVE_DESIGN,
            Scenario.AUDIO_PLAYBACK,
            Scenario.ERROR_RECOVERY,
        ),
    ),
    UserProfile(
        id="accessibility_user_001",
        archetype=Archetype.ACCESSIBILITY_USER,
        name="Sam Rodriguez - Accessibility User",
        behavior=BehaviorPattern(
            session_duration_minutes=ValueRange(10, 30, 18),
            actions_per_session=ValueRange(5, 20, 12),
            think_time_ms=ValueRange(1500, 6000, 3000),
            error_tolerance=0.5,
            feature_adoption=0.4,
        ),
        device=DeviceProfile(
            user_agent=_DESKTOP_WIN_UA,
            viewport=(1280, 720),
            device_class=DeviceClass.DESKTOP,
            network=NetworkClass.FAST,
        ),
        preferences=Preferences(
            theme=Theme.LIGHT,
            playback_speed=0.75,
            notifications=True,
        ),
        scenarios=(
            Scenario.NAVIGATION_FLOW,
            Scenario.AUDIO_PLAYBACK,
            Scenario.RESPONSIVE_DESIGN,
        ),
    ),
)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ProfileRegistry:
    """Ordered, in-memory registry of :class:`UserProfile` objects.

    Example
    -------
    ::

        registry = ProfileRegistry()
        for profile in STANDARD_PROFILES:
            registry.register(profile)

        power_users = registry.by_archetype(Archetype.POWER_USER)
    """

    def __init__(self) -> None:
        self._profiles: dict[str, UserProfile] = {}

    def register(self, profile: UserProfile) -> None:
        """Add *profile* to the registry.

        Raises
        ------
        ValueError
            If a profile with the same id is already registered.
        """
        if profile.id in self._profiles:
            raise ValueError(f"User profile {profile.id!r} is already registered.")
        self._profiles[profile.id] = profile
        logger.debug(
            "ProfileRegistry: registered %r (archetype=%s, scenarios=%d).",
            profile.id,
            profile.archetype.value,
            len(profile.scenarios),
        )

    def get(self, user_id: str) -> UserProfile:
        """Return the profile registered under *user_id*.

        Raises
        ------
        ProfileNotFoundError
            If no such profile exists.
        """
        try:
            return self._profiles[user_id]
        except KeyError:
            raise ProfileNotFoundError(user_id) from None

    def ids(self) -> list[str]:
        """Return registered user ids in registration order."""
        return list(self._profiles)

    def profiles(self) -> list[UserProfile]:
        """Return registered profiles in registration order."""
        return list(self._profiles.values())

    def by_archetype(self, archetype: Archetype) -> list[UserProfile]:
        """Return all profiles whose archetype is *archetype*."""
        return [p for p in self._profiles.values() if p.archetype == archetype]

    def archetype_of(self, user_id: str) -> Archetype:
        return self.get(user_id).archetype

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._profiles

    def __iter__(self) -> Iterator[UserProfile]:
        return iter(list(self._profiles.values()))

    def __len__(self) -> int:
        return len(self._profiles)

    def __repr__(self) -> str:
        return f"ProfileRegistry(profiles={self.ids()})"


def create_standard_registry() -> ProfileRegistry:
    """Return a registry pre-populated with :data:`STANDARD_PROFILES`."""
    registry = ProfileRegistry()
    for profile in STANDARD_PROFILES:
        registry.register(profile)
    return registry


__all__ = [
    "ProfileRegistry",
    "STANDARD_PROFILES",
    "create_standard_registry",
]
