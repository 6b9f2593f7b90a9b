"""Threshold alerting over test reports.

:class:`AlertManager` evaluates three independent thresholds on every new
:class:`~synthetic_canary.reporting.aggregator.TestReport`:

- success rate below 0.95 (``critical`` below 0.80, otherwise ``high``); an
  empty report has a success rate of 0 and so raises a critical alert
- average duration above 30 000 ms (``critical`` above 60 000 ms, otherwise ``medium``)
- error rate above 0.10 (``critical`` above 0.20, otherwise ``high``)

A new alert is suppressed when an unresolved alert of the same kind and
severity was raised within the deduplication window.  Only the most recent
alerts are retained.

Classes
-------
- AlertSeverity
- AlertKind
- Alert
- AlertManager
"""
from __future__ import annotations

import datetime
import itertools
import logging
from collections import deque
from dataclasses import dataclass, replace
from enum import Enum

from synthetic_canary.reporting.aggregator import TestReport
from synthetic_canary.timing import Clock, utc_now

logger = logging.getLogger(__name__)

MIN_SUCCESS_RATE: float = 0.95
CRITICAL_SUCCESS_RATE: float = 0.80
MAX_AVG_DURATION_MS: float = 30_000.0
CRITICAL_AVG_DURATION_MS: float = 60_000.0
MAX_ERROR_RATE: float = 0.10
CRITICAL_ERROR_RATE: float = 0.20
DEDUP_WINDOW_S: float = 300.0
MAX_RETAINED_ALERTS: int = 50


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertKind(str, Enum):
    FAILURE = "failure"
    PERFORMANCE = "performance"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class Alert:
    """A raised alert.

    Attributes
    ----------
    id:
        Unique alert identifier.
    severity:
        How urgent the alert is.
    kind:
        Which threshold raised it.
    message:
        Human-readable description including the observed value.
    timestamp:
        UTC time the alert was raised.
    resolved:
        True once an operator resolved it.
    """

    id: str
    severity: AlertSeverity
    kind: AlertKind
    message: str
    timestamp: datetime.datetime
    resolved: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "severity": self.severity.value,
            "kind": self.kind.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "resolved": self.resolved,
        }


class AlertManager:
    """Create, deduplicate, retain and resolve alerts.

    Parameters
    ----------
    clock:
        Wall-clock source; used for alert timestamps and the dedup window.
    dedup_window_s:
        Seconds during which an unresolved alert of the same kind and
        severity suppresses a new one.
    max_alerts:
        Number of most recent alerts retained.
    """

    def __init__(
        self,
        clock: Clock = utc_now,
        dedup_window_s: float = DEDUP_WINDOW_S,
        max_alerts: int = MAX_RETAINED_ALERTS,
    ) -> None:
        if max_alerts < 1:
            raise ValueError(f"max_alerts must be >= 1, got {max_alerts}.")
        self._clock = clock
        self._dedup_window = datetime.timedelta(seconds=dedup_window_s)
        self._alerts: deque[Alert] = deque(maxlen=max_alerts)
        self._counter = itertools.count(1)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, report: TestReport) -> list[Alert]:
        """Check *report* against every threshold.

        Returns
        -------
        list[Alert]
            Alerts created for this report (suppressed duplicates excluded).
        """
        candidates: list[tuple[AlertKind, AlertSeverity, str]] = []

        if report.success_rate < MIN_SUCCESS_RATE:
            severity = (
                AlertSeverity.CRITICAL
                if report.success_rate < CRITICAL_SUCCESS_RATE
                else AlertSeverity.HIGH
            )
            candidates.append(
                (
                    AlertKind.FAILURE,
                    severity,
                    f"Success rate dropped to {report.success_rate * 100:.1f}%",
                )
            )

        if report.average_duration_ms > MAX_AVG_DURATION_MS:
            severity = (
                AlertSeverity.CRITICAL
                if report.average_duration_ms > CRITICAL_AVG_DURATION_MS
                else AlertSeverity.MEDIUM
            )
            candidates.append(
                (
                    AlertKind.PERFORMANCE,
                    severity,
                    f"Average test duration is {report.average_duration_ms / 1000:.1f}s",
                )
            )

        if report.error_rate > MAX_ERROR_RATE:
            severity = (
                AlertSeverity.CRITICAL
                if report.error_rate > CRITICAL_ERROR_RATE
                else AlertSeverity.HIGH
            )
            candidates.append(
                (
                    AlertKind.ERROR,
                    severity,
                    f"Error rate is {report.error_rate * 100:.1f}%",
                )
            )

        created: list[Alert] = []
        for kind, severity, message in candidates:
            alert = self.raise_alert(kind, severity, message)
            if alert is not None:
                created.append(alert)
        return created

    def raise_alert(
        self, kind: AlertKind, severity: AlertSeverity, message: str
    ) -> Alert | None:
        """Record a new alert unless a recent unresolved duplicate exists.

        Returns
        -------
        Alert | None
            The new alert, or None when it was suppressed.
        """
        now = self._clock()
        if self._has_recent_duplicate(kind, severity, now):
            logger.debug(
                "AlertManager: suppressed duplicate %s/%s alert.", kind.value, severity.value
            )
            return None

        alert = Alert(
            id=f"alert-{next(self._counter)}",
            severity=severity,
            kind=kind,
            message=message,
            timestamp=now,
        )
        self._alerts.append(alert)
        logger.warning(
            "AlertManager: %s alert (%s): %s", severity.value, kind.value, message
        )
        return alert

    def _has_recent_duplicate(
        self, kind: AlertKind, severity: AlertSeverity, now: datetime.datetime
    ) -> bool:
        return any(
            not alert.resolved
            and alert.kind is kind
            and alert.severity is severity
            and now - alert.timestamp < self._dedup_window
            for alert in self._alerts
        )

    # ------------------------------------------------------------------
    # Queries and mutation
    # ------------------------------------------------------------------

    def resolve(self, alert_id: str) -> bool:
        """Mark the alert with *alert_id* resolved.

        Returns
        -------
        bool
            True if an unresolved alert with that id existed.
        """
        for index, alert in enumerate(self._alerts):
            if alert.id == alert_id and not alert.resolved:
                self._alerts[index] = replace(alert, resolved=True)
                logger.info("AlertManager: resolved %s.", alert_id)
                return True
        return False

    def alerts(self) -> list[Alert]:
        """Return every retained alert, oldest first."""
        return list(self._alerts)

    def active_alerts(self) -> list[Alert]:
        """Return unresolved alerts, oldest first."""
        return [alert for alert in self._alerts if not alert.resolved]

    def reset(self) -> None:
        self._alerts.clear()

    def __len__(self) -> int:
        return len(self._alerts)

    def __repr__(self) -> str:
        return (
            f"AlertManager(retained={len(self._alerts)}, "
            f"active={len(self.active_alerts())})"
        )


__all__ = [
    "Alert",
    "AlertKind",
    "AlertManager",
    "AlertSeverity",
    "CRITICAL_AVG_DURATION_MS",
    "CRITICAL_ERROR_RATE",
    "CRITICAL_SUCCESS_RATE",
    "DEDUP_WINDOW_S",
    "MAX_AVG_DURATION_MS",
    "MAX_ERROR_RATE",
    "MAX_RETAINED_ALERTS",
    "MIN_SUCCESS_RATE",
]
