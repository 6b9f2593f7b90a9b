"""Tests for flag catalog, in-memory collaborators and HTTP collaborators."""
from __future__ import annotations

import logging
from typing import Any

import pydantic
import pytest
import requests

from synthetic_canary.errors import FlagServiceError, HealthCheckError, NotificationError
from synthetic_canary.reporting import AlertSeverity
from synthetic_canary.rollout import (
    DEFAULT_FLAG_CATALOG,
    FeatureFlag,
    HttpFeatureFlagService,
    HttpHealthCheck,
    InMemoryFlagService,
    LoggingNotificationSink,
    Notification,
    NotificationStatus,
    RecordingNotificationSink,
    ScriptedHealthCheck,
    WebhookNotificationSink,
    flags_for_branch,
)
from synthetic_canary.rollout.interfaces import validate_percentage


# ---------------------------------------------------------------------------
# Fake HTTP plumbing
# ---------------------------------------------------------------------------


class _FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self.reason = "OK" if status_code < 400 else "Error"
        self._payload = payload if payload is not None else {}

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class _FakeSession:
    def __init__(self, response: _FakeResponse | Exception | None = None) -> None:
        self._response = response or _FakeResponse()
        self.calls: list[dict[str, Any]] = []

    def _respond(self, **kwargs: Any) -> _FakeResponse:
        self.calls.append(kwargs)
        if isinstance(self._response, Exception):
            raise self._response
        return self._response

    def request(self, **kwargs: Any) -> _FakeResponse:
        return self._respond(**kwargs)

    def get(self, url: str, **kwargs: Any) -> _FakeResponse:
        return self._respond(method="GET", url=url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> _FakeResponse:
        return self._respond(method="POST", url=url, **kwargs)


def _flag_service(session: _FakeSession) -> HttpFeatureFlagService:
    return HttpFeatureFlagService(
        api_key="phx_test",
        project_id="42",
        base_url="https://flags.example.com/",
        session=session,  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# Flag catalog
# ---------------------------------------------------------------------------


class TestFlagCatalog:
    def test_branch_keywords_select_flags(self) -> None:
        keys = [f.key for f in flags_for_branch("feature/Audio-Waveform")]
        assert keys == ["enhanced-audio-player"]

    def test_summarization_branch(self) -> None:
        keys = [f.key for f in flags_for_branch("fix/summarizer-prompt")]
        assert keys == ["improved-summarization"]

    def test_multiple_matches_keep_catalog_order(self) -> None:
        keys = [f.key for f in flags_for_branch("episode-audio-refresh")]
        assert keys == ["new-episode-generation", "enhanced-audio-player"]

    def test_no_match(self) -> None:
        assert flags_for_branch("chore/deps") == []

    def test_catalog_defaults(self) -> None:
        for flag in DEFAULT_FLAG_CATALOG:
            assert flag.rollout_percentage == 0
            assert flag.target_groups == ["synthetic_users"]
            assert flag.enabled_for_synthetic is True

    def test_flag_percentage_validated(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            FeatureFlag(key="x", rollout_percentage=150)

    def test_flag_key_required(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            FeatureFlag(key="")


class TestValidatePercentage:
    @pytest.mark.parametrize("value", [-1, 101, 5.5, True])
    def test_rejects(self, value: Any) -> None:
        with pytest.raises(ValueError):
            validate_percentage(value)

    def test_accepts_bounds(self) -> None:
        assert validate_percentage(0) == 0
        assert validate_percentage(100) == 100


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class TestInMemoryCollaborators:
    async def test_set_and_get(self) -> None:
        service = InMemoryFlagService({"a": 10})
        assert await service.get_rollout_percentage("a") == 10
        assert await service.get_rollout_percentage("unknown") == 0
        await service.set_rollout_percentage("a", 25)
        assert service.snapshot() == {"a": 25}
        assert service.history == [("a", 25)]

    async def test_injected_failure_for_one_percentage(self) -> None:
        service = InMemoryFlagService()
        service.fail_on("a", 50)
        await service.set_rollout_percentage("a", 10)
        with pytest.raises(FlagServiceError) as exc_info:
            await service.set_rollout_percentage("a", 50)
        assert exc_info.value.flag_key == "a"
        assert service.snapshot() == {"a": 10}

    async def test_injected_failure_for_every_update(self) -> None:
        service = InMemoryFlagService()
        service.fail_on("a")
        with pytest.raises(FlagServiceError):
            await service.set_rollout_percentage("a", 0)
        service.clear_failures()
        await service.set_rollout_percentage("a", 0)

    async def test_invalid_percentage_rejected(self) -> None:
        with pytest.raises(ValueError):
            await InMemoryFlagService().set_rollout_percentage("a", 101)

    async def test_scripted_health_repeats_last(self) -> None:
        health = ScriptedHealthCheck([90.0, 70.0])
        assert [await health.sample() for _ in range(4)] == [90.0, 70.0, 70.0, 70.0]
        assert health.calls == 4

    async def test_scripted_health_raises_exceptions(self) -> None:
        health = ScriptedHealthCheck([HealthCheckError("down")])
        with pytest.raises(HealthCheckError):
            await health.sample()

    def test_scripted_health_needs_responses(self) -> None:
        with pytest.raises(ValueError):
            ScriptedHealthCheck([])

    async def test_recording_sink(self) -> None:
        sink = RecordingNotificationSink()
        await sink.notify(Notification(NotificationStatus.SUCCESS, final_percentage=100))
        assert sink.statuses() == [NotificationStatus.SUCCESS]

    async def test_logging_sink_uses_severity(self, caplog: pytest.LogCaptureFixture) -> None:
        sink = LoggingNotificationSink()
        with caplog.at_level(logging.INFO, logger="synthetic_canary"):
            await sink.notify(
                Notification(
                    NotificationStatus.FAILED,
                    error_message="boom",
                    severity=AlertSeverity.CRITICAL,
                )
            )
        assert caplog.records[-1].levelno == logging.CRITICAL
        assert "Rollout failed - boom" in caplog.records[-1].getMessage()

    def test_notification_to_dict(self) -> None:
        data = Notification(NotificationStatus.SUCCESS, final_percentage=25, flag_keys=("a",)).to_dict()
        assert data["status"] == "success"
        assert data["message"] == "Rollout completed - 25% of users"
        assert data["flag_keys"] == ["a"]


# ---------------------------------------------------------------------------
# HTTP collaborators
# ---------------------------------------------------------------------------


class TestHttpFeatureFlagService:
    async def test_set_sends_patch(self) -> None:
        session = _FakeSession()
        await _flag_service(session).set_rollout_percentage("enhanced-audio-player", 25)
        call = session.calls[0]
        assert call["method"] == "PATCH"
        assert call["url"] == (
            "https://flags.example.com/api/projects/42/feature_flags/enhanced-audio-player/"
        )
        assert call["headers"] == {"Authorization": "Bearer phx_test"}
        assert call["json"]["filters"]["groups"][0]["rollout_percentage"] == 25

    async def test_get_reads_first_group(self) -> None:
        payload = {"filters": {"groups": [{"rollout_percentage": 10}]}}
        service = _flag_service(_FakeSession(_FakeResponse(payload=payload)))
        assert await service.get_rollout_percentage("a") == 10

    async def test_get_null_percentage_means_everyone(self) -> None:
        payload = {"filters": {"groups": [{"rollout_percentage": None}]}}
        service = _flag_service(_FakeSession(_FakeResponse(payload=payload)))
        assert await service.get_rollout_percentage("a") == 100

    async def test_http_error_raises_flag_service_error(self) -> None:
        service = _flag_service(_FakeSession(_FakeResponse(status_code=500)))
        with pytest.raises(FlagServiceError, match="HTTP 500"):
            await service.set_rollout_percentage("a", 10)

    async def test_transport_error_raises_flag_service_error(self) -> None:
        service = _flag_service(_FakeSession(requests.ConnectionError("refused")))
        with pytest.raises(FlagServiceError, match="request failed"):
            await service.set_rollout_percentage("a", 10)

    async def test_malformed_body(self) -> None:
        service = _flag_service(_FakeSession(_FakeResponse(payload={"filters": {}})))
        with pytest.raises(FlagServiceError):
            await service.get_rollout_percentage("a")

    def test_requires_credentials(self) -> None:
        with pytest.raises(ValueError):
            HttpFeatureFlagService(api_key="", project_id="42")


class TestHttpHealthAndWebhook:
    async def test_health_score(self) -> None:
        session = _FakeSession(_FakeResponse(payload={"score": 92}))
        health = HttpHealthCheck("https://health.example.com", session=session)  # type: ignore[arg-type]
        assert await health.sample() == 92.0

    async def test_health_missing_score(self) -> None:
        session = _FakeSession(_FakeResponse(payload={"status": "ok"}))
        health = HttpHealthCheck("https://health.example.com", session=session)  # type: ignore[arg-type]
        with pytest.raises(HealthCheckError):
            await health.sample()

    async def test_health_transport_error(self) -> None:
        session = _FakeSession(requests.Timeout("slow"))
        health = HttpHealthCheck("https://health.example.com", session=session)  # type: ignore[arg-type]
        with pytest.raises(HealthCheckError):
            await health.sample()

    async def test_webhook_posts_notification(self) -> None:
        session = _FakeSession()
        sink = WebhookNotificationSink("https://hooks.example.com/x", session=session)  # type: ignore[arg-type]
        await sink.notify(Notification(NotificationStatus.FAILED, error_message="boom"))
        assert session.calls[0]["json"]["status"] == "failed"
        assert session.calls[0]["json"]["message"] == "Rollout failed - boom"

    async def test_webhook_failure(self) -> None:
        session = _FakeSession(_FakeResponse(status_code=503))
        sink = WebhookNotificationSink("https://hooks.example.com/x", session=session)  # type: ignore[arg-type]
        with pytest.raises(NotificationError):
            await sink.notify(Notification(NotificationStatus.SUCCESS, final_percentage=100))
