"""In-process collaborators.

These implementations back the CLI's dry-run mode and the test suite.
They keep everything in memory and never sleep.

Classes
-------
- InMemoryFlagService        Dict-backed flag store with failure injection.
- ScriptedHealthCheck        Returns a scripted sequence of health scores.
- RecordingNotificationSink  Keeps every notification in a list.
- LoggingNotificationSink    Writes notifications to the log.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from synthetic_canary.errors import FlagServiceError
from synthetic_canary.reporting.alerts import AlertSeverity
from synthetic_canary.rollout.interfaces import (
    FeatureFlagService,
    HealthCheck,
    Notification,
    NotificationSink,
    NotificationStatus,
    validate_percentage,
)

logger = logging.getLogger(__name__)

HealthResponse = float | Exception


class InMemoryFlagService(FeatureFlagService):
    """Flag service that stores percentages in a dict.

    Unknown flags read as 0.  Every successful update is appended to
    :attr:`history` as ``(flag_key, percentage)``.

    Parameters
    ----------
    percentages:
        Initial rollout percentages keyed by flag.
    """

    def __init__(self, percentages: Mapping[str, int] | None = None) -> None:
        self._percentages: dict[str, int] = {
            key: validate_percentage(value) for key, value in (percentages or {}).items()
        }
        self._failures: dict[str, set[int] | None] = {}
        self.history: list[tuple[str, int]] = []

    def fail_on(self, flag_key: str, percentage: int | None = None) -> None:
        """Make updates of *flag_key* raise :class:`FlagServiceError`.

        When *percentage* is given only updates to that value fail;
        otherwise every update of the flag fails.
        """
        if percentage is None:
            self._failures[flag_key] = None
            return
        existing = self._failures.get(flag_key, set())
        if existing is None:
            return
        existing.add(percentage)
        self._failures[flag_key] = existing

    def clear_failures(self) -> None:
        self._failures.clear()

    async def set_rollout_percentage(self, flag_key: str, percentage: int) -> None:
        validate_percentage(percentage)
        if flag_key in self._failures:
            targets = self._failures[flag_key]
            if targets is None or percentage in targets:
                raise FlagServiceError(flag_key, f"injected failure setting {percentage}%")
        self._percentages[flag_key] = percentage
        self.history.append((flag_key, percentage))
        logger.debug("InMemoryFlagService: %s -> %d%%", flag_key, percentage)

    async def get_rollout_percentage(self, flag_key: str) -> int:
        return self._percentages.get(flag_key, 0)

    def snapshot(self) -> dict[str, int]:
        return dict(self._percentages)

    def __repr__(self) -> str:
        return f"InMemoryFlagService(flags={self._percentages!r})"


class ScriptedHealthCheck(HealthCheck):
    """Health check that replays a fixed sequence of responses.

    Each call to :meth:`sample` consumes the next response; once the
    sequence is exhausted the last response repeats.  An exception
    response is raised instead of returned.

    Parameters
    ----------
    responses:
        Scores or exceptions, in order.  Defaults to a constant 100.
    """

    def __init__(self, responses: Sequence[HealthResponse] = (100.0,)) -> None:
        if not responses:
            raise ValueError("ScriptedHealthCheck needs at least one response.")
        self._responses = list(responses)
        self._calls = 0

    @property
    def calls(self) -> int:
        return self._calls

    async def sample(self) -> float:
        response = self._responses[min(self._calls, len(self._responses) - 1)]
        self._calls += 1
        if isinstance(response, Exception):
            raise response
        return float(response)

    def __repr__(self) -> str:
        return f"ScriptedHealthCheck(responses={len(self._responses)}, calls={self._calls})"


class RecordingNotificationSink(NotificationSink):
    """Keep every delivered notification in :attr:`notifications`."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    async def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    def statuses(self) -> list[NotificationStatus]:
        return [n.status for n in self.notifications]


class LoggingNotificationSink(NotificationSink):
    """Write notifications to the ``synthetic_canary`` log."""

    async def notify(self, notification: Notification) -> None:
        if notification.severity is AlertSeverity.CRITICAL:
            logger.critical("Notification: %s", notification.message)
        elif notification.status is NotificationStatus.FAILED:
            logger.error("Notification: %s", notification.message)
        else:
            logger.info("Notification: %s", notification.message)


__all__ = [
    "InMemoryFlagService",
    "LoggingNotificationSink",
    "RecordingNotificationSink",
    "ScriptedHealthCheck",
]
