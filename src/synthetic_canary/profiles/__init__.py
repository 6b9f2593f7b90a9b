"""Synthetic user profiles — archetypes, behaviour patterns, and the registry.

Submodules
----------
- ``models``    UserProfile and its value objects, Scenario and Archetype tags
- ``registry``  ProfileRegistry and the STANDARD_PROFILES catalogue
"""
from __future__ import annotations

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
from synthetic_canary.profiles.registry import (
    STANDARD_PROFILES,
    ProfileRegistry,
    create_standard_registry,
)

__all__ = [
    "Archetype",
    "BehaviorPattern",
    "Capabilities",
    "DeviceClass",
    "DeviceProfile",
    "NetworkClass",
    "Preferences",
    "ProfileRegistry",
    "STANDARD_PROFILES",
    "Scenario",
    "Theme",
    "UserProfile",
    "ValueRange",
    "create_standard_registry",
]
