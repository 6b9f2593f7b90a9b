"""YAML-backed configuration.

A settings file mirrors :class:`CanarySettings`; every section is
optional.  Secrets never live in the file: the flag-service API key is
read from the environment variable named by ``flag_service.api_key_env``.

Example::

    criteria:
      min_success_rate: 0.95
      required_scenarios: [navigation_flow, audio_playback]
    flag_service:
      kind: posthog
      project_id: "12345"
    health:
      url: https://status.example.com/canary-health
"""
from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from synthetic_canary.errors import ConfigurationError
from synthetic_canary.rollout.auto import AutoRolloutConfig
from synthetic_canary.rollout.flags import DEFAULT_FLAG_CATALOG, FeatureFlag
from synthetic_canary.rollout.http import (
    DEFAULT_POSTHOG_URL,
    DEFAULT_TIMEOUT_SECONDS,
    HttpFeatureFlagService,
    HttpHealthCheck,
    WebhookNotificationSink,
)
from synthetic_canary.rollout.interfaces import FeatureFlagService, HealthCheck, NotificationSink
from synthetic_canary.rollout.memory import (
    InMemoryFlagService,
    LoggingNotificationSink,
    ScriptedHealthCheck,
)
from synthetic_canary.validation.criteria import ValidationCriteria

logger = logging.getLogger(__name__)


class FlagServiceKind(str, Enum):
    MEMORY = "memory"
    POSTHOG = "posthog"


class FlagServiceSettings(BaseModel):
    """Which feature-flag backend to talk to.

    ``memory`` keeps percentages in process, which turns every rollout
    into a dry run.
    """

    kind: FlagServiceKind = FlagServiceKind.MEMORY
    base_url: str = DEFAULT_POSTHOG_URL
    project_id: str = ""
    api_key_env: str = "POSTHOG_PERSONAL_API_KEY"
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)

    def api_key(self) -> str | None:
        return os.environ.get(self.api_key_env) or None


class HealthSettings(BaseModel):
    url: str | None = None
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)


class NotificationSettings(BaseModel):
    webhook_url: str | None = None
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)


class ExecutionSettings(BaseModel):
    random_seed: int | None = None
    failure_rate: float = Field(default=0.05, ge=0.0, le=1.0)
    inter_profile_pause_s: float = Field(default=2.0, ge=0.0)


class CanarySettings(BaseModel):
    """Top-level configuration for the CLI and :class:`CanaryPipeline`.

    Attributes
    ----------
    criteria:
        Validation thresholds.
    flags:
        Flag catalog used for branch matching.
    flag_service:
        Feature-flag backend.
    health:
        Health endpoint polled during rollouts.
    notifications:
        Where rollout notifications go.
    execution:
        Synthetic-run knobs.
    auto_rollout:
        Settings for applying recommendations automatically.
    """

    criteria: ValidationCriteria = Field(default_factory=ValidationCriteria)
    flags: list[FeatureFlag] = Field(default_factory=lambda: list(DEFAULT_FLAG_CATALOG))
    flag_service: FlagServiceSettings = Field(default_factory=FlagServiceSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    auto_rollout: AutoRolloutConfig = Field(default_factory=AutoRolloutConfig)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def load_settings(path: str | Path | None = None) -> CanarySettings:
    """Load settings from a YAML file.

    Parameters
    ----------
    path:
        YAML file to read.  ``None`` returns the defaults.

    Returns
    -------
    CanarySettings

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    ConfigurationError
        If the file is not a YAML mapping or fails validation.
    """
    if path is None:
        return CanarySettings()

    settings_path = Path(path)
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Settings file {settings_path} must contain a mapping, got {type(data).__name__}."
        )
    try:
        settings = CanarySettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings in {settings_path}:\n{exc}") from exc
    logger.debug("Loaded settings from %s", settings_path)
    return settings


def save_settings(settings: CanarySettings, path: str | Path) -> Path:
    """Write *settings* to *path* as YAML and return the path."""
    settings_path = Path(path)
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    data = settings.model_dump(mode="json")
    with settings_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True, sort_keys=False)
    logger.info("Saved settings to %s", settings_path)
    return settings_path


# ---------------------------------------------------------------------------
# Collaborator factories
# ---------------------------------------------------------------------------


def build_flag_service(settings: CanarySettings) -> FeatureFlagService:
    """Return the flag service described by *settings*.

    Raises
    ------
    ConfigurationError
        If a PostHog backend is configured without a project id or API key.
    """
    config = settings.flag_service
    if config.kind is FlagServiceKind.MEMORY:
        return InMemoryFlagService({flag.key: flag.rollout_percentage for flag in settings.flags})

    api_key = config.api_key()
    if api_key is None:
        raise ConfigurationError(
            f"Environment variable {config.api_key_env} must hold the flag-service API key."
        )
    if not config.project_id:
        raise ConfigurationError("flag_service.project_id is required for the posthog backend.")
    return HttpFeatureFlagService(
        api_key=api_key,
        project_id=config.project_id,
        base_url=config.base_url,
        timeout_seconds=config.timeout_seconds,
    )


def build_health_check(settings: CanarySettings) -> HealthCheck:
    """Return an HTTP health check, or a constant-healthy one when no URL is set."""
    if settings.health.url:
        return HttpHealthCheck(settings.health.url, timeout_seconds=settings.health.timeout_seconds)
    return ScriptedHealthCheck([100.0])


def build_notifier(settings: CanarySettings) -> NotificationSink:
    if settings.notifications.webhook_url:
        return WebhookNotificationSink(
            settings.notifications.webhook_url,
            timeout_seconds=settings.notifications.timeout_seconds,
        )
    return LoggingNotificationSink()


__all__ = [
    "CanarySettings",
    "ExecutionSettings",
    "FlagServiceKind",
    "FlagServiceSettings",
    "HealthSettings",
    "NotificationSettings",
    "build_flag_service",
    "build_health_check",
    "build_notifier",
    "load_settings",
    "save_settings",
]
