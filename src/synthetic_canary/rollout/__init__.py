"""Rollout — flag services, strategies, and the progressive controller.

Submodules
----------
- ``interfaces``  FeatureFlagService, HealthCheck, NotificationSink ABCs
- ``memory``      In-memory collaborators for dry runs and tests
- ``http``        requests-based collaborators
- ``flags``       FeatureFlag catalog and branch matching
- ``strategy``    Rollout ladders and the score-based selection table
- ``controller``  ProgressiveRolloutController state machine
- ``auto``        Apply recommendations to flags
- ``emergency``   EmergencyRollback and IncidentReport
"""
from __future__ import annotations

from synthetic_canary.rollout.auto import AutoRolloutConfig, FlagChange, apply_recommendations
from synthetic_canary.rollout.controller import (
    HEALTH_FLOOR,
    HEALTH_POLL_INTERVAL_S,
    ProgressiveRolloutController,
    RolloutLockRegistry,
    RolloutOutcome,
    RolloutState,
    RolloutStatus,
)
from synthetic_canary.rollout.emergency import (
    DEFAULT_EMERGENCY_FLAGS,
    EmergencyRollback,
    IncidentReport,
)
from synthetic_canary.rollout.flags import DEFAULT_FLAG_CATALOG, FeatureFlag, flags_for_branch
from synthetic_canary.rollout.http import (
    HttpFeatureFlagService,
    HttpHealthCheck,
    WebhookNotificationSink,
)
from synthetic_canary.rollout.interfaces import (
    FeatureFlagService,
    HealthCheck,
    Notification,
    NotificationSink,
    NotificationStatus,
)
from synthetic_canary.rollout.memory import (
    InMemoryFlagService,
    LoggingNotificationSink,
    RecordingNotificationSink,
    ScriptedHealthCheck,
)
from synthetic_canary.rollout.strategy import (
    AGGRESSIVE,
    CONSERVATIVE,
    INSTANT,
    RolloutStep,
    RolloutStrategy,
    StrategyName,
    select_strategy,
)

__all__ = [
    "AGGRESSIVE",
    "AutoRolloutConfig",
    "CONSERVATIVE",
    "DEFAULT_EMERGENCY_FLAGS",
    "DEFAULT_FLAG_CATALOG",
    "EmergencyRollback",
    "FeatureFlag",
    "FeatureFlagService",
    "FlagChange",
    "HEALTH_FLOOR",
    "HEALTH_POLL_INTERVAL_S",
    "HealthCheck",
    "HttpFeatureFlagService",
    "HttpHealthCheck",
    "INSTANT",
    "InMemoryFlagService",
    "IncidentReport",
    "LoggingNotificationSink",
    "Notification",
    "NotificationSink",
    "NotificationStatus",
    "ProgressiveRolloutController",
    "RecordingNotificationSink",
    "RolloutLockRegistry",
    "RolloutOutcome",
    "RolloutState",
    "RolloutStatus",
    "RolloutStep",
    "RolloutStrategy",
    "ScriptedHealthCheck",
    "StrategyName",
    "WebhookNotificationSink",
    "apply_recommendations",
    "flags_for_branch",
    "select_strategy",
]
