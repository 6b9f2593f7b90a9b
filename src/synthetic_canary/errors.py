"""Exception hierarchy for synthetic-canary.

Step errors are tolerated and recorded by the executor.  Configuration
errors are raised eagerly before any test runs.  Flag-service and
health-check errors raised inside a rollout step always escalate to an
emergency rollback.
"""
from __future__ import annotations

from enum import Enum


class TestErrorKind(str, Enum):
    """Classification of an error recorded during a scenario."""

    __test__ = False

    SCRIPT = "script"
    NETWORK = "network"
    ASSERTION = "assertion"
    TIMEOUT = "timeout"


class CanaryError(Exception):
    """Base class for all synthetic-canary errors."""


class ConfigurationError(CanaryError, ValueError):
    """Raised when criteria, settings, or strategies are malformed."""


class ProfileNotFoundError(CanaryError, KeyError):
    """Raised when a requested user profile is not registered."""

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"User profile {user_id!r} is not registered.")


class RunInProgressError(CanaryError, RuntimeError):
    """Raised when a test run is requested while another is still running."""

    def __init__(self) -> None:
        super().__init__("Tests are already running.")


class StepError(CanaryError):
    """Raised by a step executor to abort the current scenario.

    Parameters
    ----------
    message:
        Human-readable description of the failure.
    kind:
        How the failure should be classified in the scenario's error list.
    """

    def __init__(self, message: str, kind: TestErrorKind = TestErrorKind.SCRIPT) -> None:
        self.kind = kind
        super().__init__(message)


class FlagServiceError(CanaryError):
    """Raised when the feature-flag service rejects or fails an update."""

    def __init__(self, flag_key: str, reason: str) -> None:
        self.flag_key = flag_key
        self.reason = reason
        super().__init__(f"Flag service error for {flag_key!r}: {reason}")


class HealthCheckError(CanaryError):
    """Raised when a health sample cannot be obtained."""


class NotificationError(CanaryError):
    """Raised when a notification sink fails to deliver a notification."""


class RolloutInProgressError(CanaryError, RuntimeError):
    """Raised when a rollout is requested for a flag set already rolling out."""

    def __init__(self, flag_keys: frozenset[str]) -> None:
        self.flag_keys = flag_keys
        super().__init__(
            f"A rollout is already in progress for flags {sorted(flag_keys)}."
        )


__all__ = [
    "CanaryError",
    "ConfigurationError",
    "FlagServiceError",
    "HealthCheckError",
    "NotificationError",
    "ProfileNotFoundError",
    "RolloutInProgressError",
    "RunInProgressError",
    "StepError",
    "TestErrorKind",
]
