"""Emergency rollback — disable every flag and record an incident.

:class:`EmergencyRollback` keeps going past individual flag failures so
that as many flags as possible end up disabled, sends a critical
notification, and returns an :class:`IncidentReport` describing what
happened.
"""
from __future__ import annotations

import datetime
import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from synthetic_canary.reporting.alerts import AlertSeverity
from synthetic_canary.rollout.flags import DEFAULT_FLAG_CATALOG
from synthetic_canary.rollout.interfaces import (
    FeatureFlagService,
    Notification,
    NotificationSink,
    NotificationStatus,
)
from synthetic_canary.timing import Clock, utc_now

logger = logging.getLogger(__name__)

DEFAULT_EMERGENCY_FLAGS: tuple[str, ...] = tuple(flag.key for flag in DEFAULT_FLAG_CATALOG) + (
    "beta-features",
    "experimental-ui",
)

_NEXT_STEPS = (
    "Investigate test failures",
    "Fix identified issues",
    "Re-run canary tests",
    "Gradual re-enablement",
)

_MANUAL_STEPS = (
    "Manually disable the remaining feature flags in the flag service dashboard",
    "Contact the on-call engineer immediately",
)


@dataclass(frozen=True)
class TimelineEvent:
    event: str
    details: str
    timestamp: datetime.datetime


@dataclass(frozen=True)
class IncidentReport:
    """Post-mortem record produced by :meth:`EmergencyRollback.execute`.

    Attributes
    ----------
    id:
        Incident identifier.
    title:
        One-line title.
    deployment:
        Deployment URL that triggered the rollback.
    failure_reason:
        Why the rollback was triggered.
    test_score:
        Canary score at the time of the rollback.
    severity:
        ``high`` when every flag was disabled, ``critical`` otherwise.
    disabled_flags:
        Flags successfully set to 0%.
    failed_flags:
        Flags that could not be disabled.
    actions_taken:
        What the rollback did.
    next_steps:
        Follow-up actions for the team.
    timeline:
        Ordered events.
    timestamp:
        UTC time the report was created.
    """

    id: str
    title: str
    deployment: str
    failure_reason: str
    test_score: float
    severity: AlertSeverity
    disabled_flags: tuple[str, ...]
    failed_flags: tuple[str, ...]
    actions_taken: tuple[str, ...]
    next_steps: tuple[str, ...]
    timeline: tuple[TimelineEvent, ...]
    timestamp: datetime.datetime

    @property
    def fully_disabled(self) -> bool:
        return not self.failed_flags

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "deployment": self.deployment,
            "failure_reason": self.failure_reason,
            "test_score": self.test_score,
            "severity": self.severity.value,
            "status": "active",
            "disabled_flags": list(self.disabled_flags),
            "failed_flags": list(self.failed_flags),
            "actions_taken": list(self.actions_taken),
            "next_steps": list(self.next_steps),
            "timeline": [
                {"event": e.event, "details": e.details, "timestamp": e.timestamp.isoformat()}
                for e in self.timeline
            ],
            "timestamp": self.timestamp.isoformat(),
        }

    def write_json(self, path: str | Path) -> Path:
        """Write the report as indented JSON to *path* and return the path."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        logger.info("IncidentReport %s written to %s.", self.id, target)
        return target


class EmergencyRollback:
    """Disable flags immediately and raise a critical notification.

    Parameters
    ----------
    flag_service:
        Backend used to disable flags.
    notifier:
        Receives the critical notification.  Optional.
    clock:
        Wall-clock source for report timestamps.
    """

    def __init__(
        self,
        flag_service: FeatureFlagService,
        notifier: NotificationSink | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._flags = flag_service
        self._notifier = notifier
        self._clock = clock

    async def execute(
        self,
        flag_keys: Sequence[str] = DEFAULT_EMERGENCY_FLAGS,
        reason: str = "Unknown failure",
        score: float = 0.0,
        deployment_url: str = "unknown",
    ) -> IncidentReport:
        """Set every flag in *flag_keys* to 0% and return an incident report.

        Parameters
        ----------
        flag_keys:
            Flags to disable.
        reason:
            Why the rollback was triggered.
        score:
            Canary score that triggered it.
        deployment_url:
            Deployment under test.

        Returns
        -------
        IncidentReport
            Record of the rollback; check :attr:`IncidentReport.fully_disabled`.
        """
        detected_at = self._clock()
        logger.critical(
            "EmergencyRollback: initiated for %s (score %.0f/100): %s",
            deployment_url,
            score,
            reason,
        )

        disabled: list[str] = []
        failed: list[str] = []
        for key in flag_keys:
            try:
                await self._flags.set_rollout_percentage(key, 0)
            except Exception as exc:  # noqa: BLE001
                logger.error("EmergencyRollback: failed to disable %s: %s", key, exc)
                failed.append(key)
                continue
            disabled.append(key)

        finished_at = self._clock()
        actions = [f"Disabled {len(disabled)} feature flag(s)"]
        if failed:
            logger.critical(
                "EmergencyRollback: MANUAL INTERVENTION REQUIRED, flags still enabled: %s",
                failed,
            )
            actions.extend(_MANUAL_STEPS)

        if self._notifier is not None:
            notification = Notification(
                status=NotificationStatus.FAILED,
                final_percentage=0,
                error_message=f"Emergency rollback: {reason}",
                flag_keys=tuple(flag_keys),
                severity=AlertSeverity.CRITICAL,
                timestamp=finished_at,
            )
            try:
                await self._notifier.notify(notification)
                actions.append("Team notified")
            except Exception as exc:  # noqa: BLE001
                logger.error("EmergencyRollback: notification failed: %s", exc)

        report = IncidentReport(
            id=f"INCIDENT-{int(detected_at.timestamp() * 1000)}",
            title="Emergency Rollback - Canary Test Failure",
            deployment=deployment_url,
            failure_reason=reason,
            test_score=score,
            severity=AlertSeverity.CRITICAL if failed else AlertSeverity.HIGH,
            disabled_flags=tuple(disabled),
            failed_flags=tuple(failed),
            actions_taken=tuple(actions),
            next_steps=_NEXT_STEPS,
            timeline=(
                TimelineEvent(
                    event="Canary test failure detected",
                    details=f"Score: {score:.0f}/100, Reason: {reason}",
                    timestamp=detected_at,
                ),
                TimelineEvent(
                    event="Emergency rollback executed",
                    details=f"{len(disabled)} disabled, {len(failed)} failed",
                    timestamp=finished_at,
                ),
            ),
            timestamp=finished_at,
        )
        logger.info("EmergencyRollback: incident %s recorded.", report.id)
        return report

    def __repr__(self) -> str:
        return f"EmergencyRollback(flag_service={self._flags!r})"


__all__ = [
    "DEFAULT_EMERGENCY_FLAGS",
    "EmergencyRollback",
    "IncidentReport",
    "TimelineEvent",
]
