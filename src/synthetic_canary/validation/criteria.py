"""Validation criteria for a canary run.

:class:`ValidationCriteria` is a frozen pydantic model, so malformed
thresholds are rejected with :class:`pydantic.ValidationError` when the
criteria are constructed, before any test runs.
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from synthetic_canary.profiles.models import Scenario


class ValidationCriteria(BaseModel):
    """Thresholds a canary run must meet.

    Attributes
    ----------
    min_success_rate:
        Minimum fraction of successful scenarios, in [0.0, 1.0].
    max_error_rate:
        Maximum tolerated ``1 - success_rate``, in [0.0, 1.0].
    max_avg_response_time_ms:
        Maximum mean scenario duration in milliseconds.
    min_test_duration_s:
        Minimum wall-clock duration of the whole run, in seconds.
    required_scenarios:
        Scenarios that must have run at least once.  Empty means no
        requirement.
    critical_paths:
        Application paths the run is expected to exercise.  Reported
        alongside the result; not scored.
    """

    model_config = ConfigDict(frozen=True)

    min_success_rate: float = Field(default=0.95, ge=0.0, le=1.0)
    max_error_rate: float = Field(default=0.05, ge=0.0, le=1.0)
    max_avg_response_time_ms: float = Field(default=5000.0, gt=0.0)
    min_test_duration_s: float = Field(default=30.0, ge=0.0)
    required_scenarios: list[Scenario] = Field(
        default_factory=lambda: [
            Scenario.NAVIGATION_FLOW,
            Scenario.EPISODE_GENERATION,
            Scenario.AUDIO_PLAYBACK,
        ]
    )
    critical_paths: list[str] = Field(
        default_factory=lambda: ["/episodes", "/queue", "/sources"]
    )

    @property
    def min_test_duration_ms(self) -> float:
        return self.min_test_duration_s * 1000.0


DEFAULT_CRITERIA = ValidationCriteria()


__all__ = ["DEFAULT_CRITERIA", "ValidationCriteria"]
