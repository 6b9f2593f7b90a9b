"""Unit tests for synthetic_canary.settings — YAML loading and factories."""
from __future__ import annotations

from pathlib import Path

import pytest

from synthetic_canary.errors import ConfigurationError
from synthetic_canary.profiles import Scenario
from synthetic_canary.rollout import (
    HttpFeatureFlagService,
    HttpHealthCheck,
    InMemoryFlagService,
    LoggingNotificationSink,
    ScriptedHealthCheck,
    WebhookNotificationSink,
)
from synthetic_canary.settings import (
    CanarySettings,
    FlagServiceKind,
    build_flag_service,
    build_health_check,
    build_notifier,
    load_settings,
    save_settings,
)

_YAML = """\
criteria:
  min_success_rate: 0.9
  required_scenarios: [navigation_flow, audio_playback]
flag_service:
  kind: posthog
  project_id: "12345"
  api_key_env: TEST_FLAG_KEY
health:
  url: https://status.example.com/canary-health
notifications:
  webhook_url: https://hooks.example.com/canary
execution:
  random_seed: 7
  failure_rate: 0.0
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "canary.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadSettings:
    def test_none_returns_defaults(self) -> None:
        settings = load_settings(None)
        assert settings == CanarySettings()
        assert settings.flag_service.kind is FlagServiceKind.MEMORY
        assert [f.key for f in settings.flags] == [
            "new-episode-generation",
            "enhanced-audio-player",
            "improved-summarization",
        ]

    def test_loads_sections(self, tmp_path: Path) -> None:
        settings = load_settings(_write(tmp_path, _YAML))
        assert settings.criteria.min_success_rate == 0.9
        assert settings.criteria.required_scenarios == [
            Scenario.NAVIGATION_FLOW,
            Scenario.AUDIO_PLAYBACK,
        ]
        assert settings.flag_service.kind is FlagServiceKind.POSTHOG
        assert settings.flag_service.project_id == "12345"
        assert settings.execution.random_seed == 7

    def test_empty_file_returns_defaults(self, tmp_path: Path) -> None:
        assert load_settings(_write(tmp_path, "")) == CanarySettings()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "nope.yaml")

    def test_non_mapping_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="mapping"):
            load_settings(_write(tmp_path, "- a\n- b\n"))

    def test_invalid_values_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Invalid settings"):
            load_settings(_write(tmp_path, "criteria:\n  min_success_rate: 3\n"))

    def test_save_then_load(self, tmp_path: Path) -> None:
        original = load_settings(_write(tmp_path, _YAML))
        path = save_settings(original, tmp_path / "out" / "saved.yaml")
        assert load_settings(path) == original


class TestFactories:
    def test_memory_flag_service_seeded_from_flags(self) -> None:
        service = build_flag_service(CanarySettings())
        assert isinstance(service, InMemoryFlagService)
        assert service.snapshot() == {
            "new-episode-generation": 0,
            "enhanced-audio-player": 0,
            "improved-summarization": 0,
        }

    def test_posthog_requires_api_key(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("TEST_FLAG_KEY", raising=False)
        settings = load_settings(_write(tmp_path, _YAML))
        with pytest.raises(ConfigurationError, match="TEST_FLAG_KEY"):
            build_flag_service(settings)

    def test_posthog_requires_project_id(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("POSTHOG_PERSONAL_API_KEY", "phx_test")
        settings = CanarySettings.model_validate({"flag_service": {"kind": "posthog"}})
        with pytest.raises(ConfigurationError, match="project_id"):
            build_flag_service(settings)

    def test_posthog_service(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TEST_FLAG_KEY", "phx_test")
        settings = load_settings(_write(tmp_path, _YAML))
        assert isinstance(build_flag_service(settings), HttpFeatureFlagService)

    def test_health_check_and_notifier(self, tmp_path: Path) -> None:
        settings = load_settings(_write(tmp_path, _YAML))
        assert isinstance(build_health_check(settings), HttpHealthCheck)
        assert isinstance(build_notifier(settings), WebhookNotificationSink)

    def test_default_health_check_and_notifier(self) -> None:
        settings = CanarySettings()
        assert isinstance(build_health_check(settings), ScriptedHealthCheck)
        assert isinstance(build_notifier(settings), LoggingNotificationSink)
