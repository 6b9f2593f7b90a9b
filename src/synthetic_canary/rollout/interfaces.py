"""Collaborator interfaces used by the rollout layer.

All three are async abstract base classes.  Every call is fallible I/O;
implementations raise the matching :mod:`synthetic_canary.errors`
exception and never retry on their own behalf at this layer.

Classes
-------
- FeatureFlagService   Set and read a flag's rollout percentage.
- HealthCheck          Sample a 0-100 health score.
- NotificationSink     Deliver rollout status notifications.
- Notification         Value object passed to a NotificationSink.
"""
from __future__ import annotations

import datetime
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

from synthetic_canary.reporting.alerts import AlertSeverity
from synthetic_canary.timing import utc_now


def validate_percentage(percentage: int) -> int:
    """Return *percentage* unchanged if it is an integer in [0, 100].

    Raises
    ------
    ValueError
        If *percentage* is not an integer in range.
    """
    if isinstance(percentage, bool) or not isinstance(percentage, int):
        raise ValueError(f"percentage must be an int, got {percentage!r}.")
    if not (0 <= percentage <= 100):
        raise ValueError(f"percentage must be in [0, 100], got {percentage}.")
    return percentage


class FeatureFlagService(ABC):
    """Feature-flag backend."""

    @abstractmethod
    async def set_rollout_percentage(self, flag_key: str, percentage: int) -> None:
        """Expose *flag_key* to *percentage* percent of users.

        Raises
        ------
        FlagServiceError
            If the backend rejects or fails the update.
        """
        ...

    @abstractmethod
    async def get_rollout_percentage(self, flag_key: str) -> int:
        """Return the current rollout percentage of *flag_key*.

        Raises
        ------
        FlagServiceError
            If the flag cannot be read.
        """
        ...


class HealthCheck(ABC):
    """Source of a synthetic 0-100 health score."""

    @abstractmethod
    async def sample(self) -> float:
        """Return the current health score.

        Raises
        ------
        HealthCheckError
            If no score could be obtained.
        """
        ...


class NotificationStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class Notification:
    """Status message delivered to a :class:`NotificationSink`.

    Attributes
    ----------
    status:
        Outcome being reported.
    final_percentage:
        Rollout percentage the flags were left at, when known.
    error_message:
        Failure description for ``failed`` notifications.
    flag_keys:
        Flags the notification concerns.
    severity:
        Urgency of the notification.
    timestamp:
        UTC time the notification was created.
    """

    status: NotificationStatus
    final_percentage: int | None = None
    error_message: str | None = None
    flag_keys: tuple[str, ...] = ()
    severity: AlertSeverity = AlertSeverity.LOW
    timestamp: datetime.datetime = field(default_factory=utc_now)

    @property
    def message(self) -> str:
        if self.status is NotificationStatus.SUCCESS:
            return f"Rollout completed - {self.final_percentage}% of users"
        return f"Rollout failed - {self.error_message}"

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.status.value,
            "final_percentage": self.final_percentage,
            "error_message": self.error_message,
            "flag_keys": list(self.flag_keys),
            "severity": self.severity.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


class NotificationSink(ABC):
    """Destination for rollout notifications."""

    @abstractmethod
    async def notify(self, notification: Notification) -> None:
        """Deliver *notification*.

        Raises
        ------
        NotificationError
            If delivery failed.
        """
        ...


__all__ = [
    "FeatureFlagService",
    "HealthCheck",
    "Notification",
    "NotificationSink",
    "NotificationStatus",
    "validate_percentage",
]
