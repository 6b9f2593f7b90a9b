"""HTTP collaborators built on :mod:`requests`.

Blocking calls run in a worker thread via :func:`asyncio.to_thread` so the
rollout loop never blocks the event loop.  There are no retries: a
failed call raises the matching :mod:`synthetic_canary.errors` exception
and the caller decides what to do.

Classes
-------
- HttpFeatureFlagService   PostHog-style project feature-flag API.
- HttpHealthCheck          GET endpoint returning ``{"score": <0-100>}``.
- WebhookNotificationSink  POSTs notifications as JSON.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

import requests

from synthetic_canary.errors import FlagServiceError, HealthCheckError, NotificationError
from synthetic_canary.rollout.interfaces import (
    FeatureFlagService,
    HealthCheck,
    Notification,
    NotificationSink,
    validate_percentage,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS: float = 20.0
DEFAULT_POSTHOG_URL = "https://app.posthog.com"


class HttpFeatureFlagService(FeatureFlagService):
    """Feature-flag service speaking a PostHog-style REST API.

    Parameters
    ----------
    api_key:
        Personal API key sent as a bearer token.
    project_id:
        Project whose flags are managed.
    base_url:
        API root.
    timeout_seconds:
        Per-request timeout.
    session:
        Optional pre-configured :class:`requests.Session`.
    """

    def __init__(
        self,
        api_key: str,
        project_id: str,
        base_url: str = DEFAULT_POSTHOG_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("HttpFeatureFlagService requires a non-empty api_key.")
        if not project_id:
            raise ValueError("HttpFeatureFlagService requires a non-empty project_id.")
        self._api_key = api_key
        self._project_id = project_id
        self._base_url = base_url.rstrip("/")
        self._timeout = max(1.0, timeout_seconds)
        self._session = session or requests.Session()

    def _flag_url(self, flag_key: str) -> str:
        return f"{self._base_url}/api/projects/{self._project_id}/feature_flags/{flag_key}/"

    def _request(
        self, method: str, flag_key: str, json_body: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        url = self._flag_url(flag_key)
        try:
            response = self._session.request(
                method=method,
                url=url,
                json=json_body,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise FlagServiceError(flag_key, f"request failed: {exc}") from exc

        if not response.ok:
            raise FlagServiceError(
                flag_key, f"HTTP {response.status_code} {response.reason} from {method} {url}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise FlagServiceError(flag_key, "response body is not JSON") from exc
        return payload if isinstance(payload, dict) else {"value": payload}

    async def set_rollout_percentage(self, flag_key: str, percentage: int) -> None:
        validate_percentage(percentage)
        body = {"filters": {"groups": [{"properties": [], "rollout_percentage": percentage}]}}
        await asyncio.to_thread(self._request, "PATCH", flag_key, body)
        logger.info("HttpFeatureFlagService: %s set to %d%%.", flag_key, percentage)

    async def get_rollout_percentage(self, flag_key: str) -> int:
        payload = await asyncio.to_thread(self._request, "GET", flag_key)
        try:
            groups = payload["filters"]["groups"]
            value = groups[0].get("rollout_percentage") if groups else 0
        except (KeyError, TypeError, AttributeError) as exc:
            raise FlagServiceError(flag_key, "response has no rollout percentage") from exc
        # PostHog reports a null percentage for a flag enabled for everyone.
        return 100 if value is None else int(value)

    def __repr__(self) -> str:
        return (
            f"HttpFeatureFlagService(base_url={self._base_url!r}, "
            f"project_id={self._project_id!r})"
        )


class HttpHealthCheck(HealthCheck):
    """Sample health from a JSON endpoint returning ``{"score": n}``."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self._url = url
        self._timeout = max(1.0, timeout_seconds)
        self._session = session or requests.Session()

    def _fetch(self) -> float:
        try:
            response = self._session.get(self._url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise HealthCheckError(f"Health request to {self._url} failed: {exc}") from exc
        if not response.ok:
            raise HealthCheckError(
                f"Health endpoint {self._url} returned HTTP {response.status_code}."
            )
        try:
            return float(response.json()["score"])
        except (ValueError, KeyError, TypeError) as exc:
            raise HealthCheckError(
                f"Health endpoint {self._url} returned no numeric 'score'."
            ) from exc

    async def sample(self) -> float:
        return await asyncio.to_thread(self._fetch)

    def __repr__(self) -> str:
        return f"HttpHealthCheck(url={self._url!r})"


class WebhookNotificationSink(NotificationSink):
    """POST each notification as JSON to a webhook URL."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self._url = url
        self._timeout = max(1.0, timeout_seconds)
        self._session = session or requests.Session()

    def _post(self, body: dict[str, object]) -> None:
        try:
            response = self._session.post(self._url, json=body, timeout=self._timeout)
        except requests.RequestException as exc:
            raise NotificationError(f"Webhook {self._url} failed: {exc}") from exc
        if not response.ok:
            raise NotificationError(
                f"Webhook {self._url} returned HTTP {response.status_code}."
            )

    async def notify(self, notification: Notification) -> None:
        await asyncio.to_thread(self._post, notification.to_dict())

    def __repr__(self) -> str:
        return f"WebhookNotificationSink(url={self._url!r})"


__all__ = [
    "DEFAULT_POSTHOG_URL",
    "DEFAULT_TIMEOUT_SECONDS",
    "HttpFeatureFlagService",
    "HttpHealthCheck",
    "WebhookNotificationSink",
]
