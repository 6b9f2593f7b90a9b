"""Live dashboard over successive test reports.

:class:`SyntheticDashboard` folds each new
:class:`~synthetic_canary.reporting.aggregator.TestReport` into an overview,
averaged performance figures, per-scenario and per-archetype statistics and
bounded trend series, hands the report to an
:class:`~synthetic_canary.reporting.alerts.AlertManager`, then publishes an
immutable :class:`DashboardSnapshot` to its subscribers.

The dashboard is an ordinary object owned by whoever composes the
pipeline; subscribing returns an unsubscribe handle.

Classes
-------
- OverviewMetrics
- PerformanceAverages
- ScenarioMetrics
- ArchetypeMetrics
- TrendPoint
- DashboardSnapshot
- SyntheticDashboard
"""
from __future__ import annotations

import datetime
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

import numpy as np

from synthetic_canary.profiles.models import Archetype
from synthetic_canary.profiles.registry import ProfileRegistry
from synthetic_canary.reporting.aggregator import TestReport
from synthetic_canary.reporting.alerts import Alert, AlertManager, AlertSeverity
from synthetic_canary.reporting.pubsub import Broadcaster, Unsubscribe
from synthetic_canary.timing import Clock, utc_now

logger = logging.getLogger(__name__)

MAX_TREND_POINTS: int = 100

TREND_SUCCESS_RATE = "success_rate"
TREND_PERFORMANCE = "performance"
TREND_ERROR_RATE = "error_rate"


# ---------------------------------------------------------------------------
# Snapshot value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OverviewMetrics:
    total_tests: int = 0
    success_rate: float = 0.0
    average_execution_ms: float = 0.0
    active_users: int = 0
    last_updated: datetime.datetime | None = None


@dataclass(frozen=True)
class PerformanceAverages:
    """Mean page-level metrics over results that reported a page load."""

    page_load_ms: float = 0.0
    first_contentful_paint_ms: float = 0.0
    largest_contentful_paint_ms: float = 0.0
    interaction_latency_ms: float = 0.0
    layout_shift_score: float = 0.0


@dataclass(frozen=True)
class ScenarioMetrics:
    success_rate: float
    average_duration_ms: float
    error_rate: float
    last_run: datetime.datetime


@dataclass(frozen=True)
class ArchetypeMetrics:
    success_rate: float
    average_session_duration_ms: float
    error_count: int
    test_count: int


@dataclass(frozen=True)
class TrendPoint:
    timestamp: datetime.datetime
    value: float


@dataclass(frozen=True)
class DashboardSnapshot:
    """Point-in-time view of everything the dashboard knows.

    Attributes
    ----------
    overview:
        Headline counts from the latest report.
    performance:
        Averaged performance samples from the latest report.
    scenarios:
        Per-scenario statistics keyed by scenario tag value.
    archetypes:
        Per-archetype statistics keyed by archetype tag value.
    alerts:
        Unresolved alerts at snapshot time.
    trends:
        Bounded series keyed by ``success_rate``, ``performance`` and
        ``error_rate``.
    """

    overview: OverviewMetrics = field(default_factory=OverviewMetrics)
    performance: PerformanceAverages = field(default_factory=PerformanceAverages)
    scenarios: dict[str, ScenarioMetrics] = field(default_factory=dict)
    archetypes: dict[str, ArchetypeMetrics] = field(default_factory=dict)
    alerts: tuple[Alert, ...] = ()
    trends: dict[str, tuple[TrendPoint, ...]] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


class SyntheticDashboard:
    """Aggregate successive reports into a monitoring view.

    Parameters
    ----------
    registry:
        Profile registry used to map user ids to archetypes.
    alert_manager:
        Alerting component.  A fresh :class:`AlertManager` sharing *clock*
        is created when omitted.
    clock:
        Wall-clock source for ``last_updated`` and trend timestamps.
    max_trend_points:
        Number of points retained per trend series.
    """

    def __init__(
        self,
        registry: ProfileRegistry,
        alert_manager: AlertManager | None = None,
        clock: Clock = utc_now,
        max_trend_points: int = MAX_TREND_POINTS,
    ) -> None:
        self._registry = registry
        self._clock = clock
        self._alerts = alert_manager if alert_manager is not None else AlertManager(clock=clock)
        self._max_trend_points = max_trend_points
        self._broadcaster: Broadcaster[DashboardSnapshot] = Broadcaster("dashboard")
        self._overview = OverviewMetrics()
        self._performance = PerformanceAverages()
        self._scenarios: dict[str, ScenarioMetrics] = {}
        self._archetypes: dict[str, ArchetypeMetrics] = {}
        self._trends: dict[str, deque[TrendPoint]] = self._empty_trends()

    @property
    def alert_manager(self) -> AlertManager:
        return self._alerts

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, report: TestReport) -> DashboardSnapshot:
        """Fold *report* into the dashboard and notify subscribers.

        Returns
        -------
        DashboardSnapshot
            The snapshot that was published.
        """
        now = self._clock()
        self._overview = OverviewMetrics(
            total_tests=report.total_tests,
            success_rate=report.success_rate,
            average_execution_ms=report.average_duration_ms,
            active_users=len(report.user_breakdown),
            last_updated=now,
        )
        self._update_performance(report)
        self._update_scenarios(report)
        self._update_archetypes(report)
        self._update_trends(report, now)
        self._alerts.evaluate(report)

        snapshot = self.snapshot()
        delivered = self._broadcaster.publish(snapshot)
        logger.debug(
            "SyntheticDashboard: published snapshot of %d tests to %d subscriber(s).",
            report.total_tests,
            delivered,
        )
        return snapshot

    def _update_performance(self, report: TestReport) -> None:
        samples = [r.performance for r in report.results if r.performance.page_load_ms > 0]
        if not samples:
            return
        matrix = np.array(
            [
                [
                    s.page_load_ms,
                    s.first_contentful_paint_ms,
                    s.largest_contentful_paint_ms,
                    s.interaction_latency_ms,
                    s.layout_shift_score,
                ]
                for s in samples
            ],
            dtype=np.float64,
        )
        means = matrix.mean(axis=0)
        self._performance = PerformanceAverages(
            page_load_ms=float(means[0]),
            first_contentful_paint_ms=float(means[1]),
            largest_contentful_paint_ms=float(means[2]),
            interaction_latency_ms=float(means[3]),
            layout_shift_score=float(means[4]),
        )

    def _update_scenarios(self, report: TestReport) -> None:
        for scenario_key, stats in report.scenario_breakdown.items():
            matching = [r for r in report.results if r.scenario.value == scenario_key]
            if not matching:
                continue
            durations = np.array([r.duration_ms for r in matching], dtype=np.float64)
            self._scenarios[scenario_key] = ScenarioMetrics(
                success_rate=stats.success_rate,
                average_duration_ms=float(durations.mean()),
                error_rate=(stats.total - stats.success) / stats.total,
                last_run=max(r.ended_at for r in matching),
            )

    def _update_archetypes(self, report: TestReport) -> None:
        buckets: dict[Archetype, list] = {archetype: [] for archetype in Archetype}
        for result in report.results:
            if result.user_id not in self._registry:
                logger.debug(
                    "SyntheticDashboard: result for unregistered user %r ignored "
                    "in archetype metrics.",
                    result.user_id,
                )
                continue
            buckets[self._registry.archetype_of(result.user_id)].append(result)

        archetypes: dict[str, ArchetypeMetrics] = {}
        for archetype, results in buckets.items():
            count = len(results)
            archetypes[archetype.value] = ArchetypeMetrics(
                success_rate=sum(1 for r in results if r.success) / count if count else 0.0,
                average_session_duration_ms=(
                    float(np.mean([r.duration_ms for r in results])) if count else 0.0
                ),
                error_count=sum(len(r.errors) for r in results),
                test_count=count,
            )
        self._archetypes = archetypes

    def _update_trends(self, report: TestReport, now: datetime.datetime) -> None:
        self._trends[TREND_SUCCESS_RATE].append(TrendPoint(now, report.success_rate))
        self._trends[TREND_PERFORMANCE].append(TrendPoint(now, report.average_duration_ms))
        self._trends[TREND_ERROR_RATE].append(TrendPoint(now, report.error_rate))

    def _empty_trends(self) -> dict[str, deque[TrendPoint]]:
        return {
            name: deque(maxlen=self._max_trend_points)
            for name in (TREND_SUCCESS_RATE, TREND_PERFORMANCE, TREND_ERROR_RATE)
        }

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[DashboardSnapshot], None]) -> Unsubscribe:
        """Receive a snapshot after every :meth:`update`.

        The callback is invoked immediately with the current snapshot.
        """
        unsubscribe = self._broadcaster.subscribe(callback)
        try:
            callback(self.snapshot())
        except Exception as exc:  # noqa: BLE001
            logger.warning("SyntheticDashboard: subscriber raised on first snapshot: %s", exc)
        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return self._broadcaster.subscriber_count

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def snapshot(self) -> DashboardSnapshot:
        return DashboardSnapshot(
            overview=self._overview,
            performance=self._performance,
            scenarios=dict(self._scenarios),
            archetypes=dict(self._archetypes),
            alerts=tuple(self._alerts.active_alerts()),
            trends={name: tuple(points) for name, points in self._trends.items()},
        )

    def active_alerts(self) -> list[Alert]:
        return self._alerts.active_alerts()

    def resolve_alert(self, alert_id: str) -> bool:
        resolved = self._alerts.resolve(alert_id)
        if resolved:
            self._broadcaster.publish(self.snapshot())
        return resolved

    def reset(self) -> None:
        """Clear every metric, trend and alert."""
        self._overview = OverviewMetrics()
        self._performance = PerformanceAverages()
        self._scenarios = {}
        self._archetypes = {}
        self._trends = self._empty_trends()
        self._alerts.reset()
        self._broadcaster.publish(self.snapshot())

    def export_for_monitoring(self) -> dict[str, object]:
        """Flatten the current view into metric-name/value pairs.

        Returns
        -------
        dict[str, object]
            Keys prefixed ``synthetic_`` suitable for an external
            time-series store.
        """
        active = self._alerts.active_alerts()
        return {
            "timestamp": self._clock().isoformat(),
            "synthetic_tests_total": self._overview.total_tests,
            "synthetic_tests_success_rate": self._overview.success_rate,
            "synthetic_tests_avg_duration_ms": self._overview.average_execution_ms,
            "synthetic_tests_active_users": self._overview.active_users,
            "synthetic_performance_page_load_ms": self._performance.page_load_ms,
            "synthetic_performance_fcp_ms": self._performance.first_contentful_paint_ms,
            "synthetic_performance_lcp_ms": self._performance.largest_contentful_paint_ms,
            "synthetic_performance_inp_ms": self._performance.interaction_latency_ms,
            "synthetic_performance_cls": self._performance.layout_shift_score,
            "synthetic_alerts_active": len(active),
            "synthetic_alerts_critical": sum(
                1 for a in active if a.severity is AlertSeverity.CRITICAL
            ),
        }

    def __repr__(self) -> str:
        return (
            f"SyntheticDashboard(total_tests={self._overview.total_tests}, "
            f"subscribers={self._broadcaster.subscriber_count})"
        )


__all__ = [
    "ArchetypeMetrics",
    "DashboardSnapshot",
    "MAX_TREND_POINTS",
    "OverviewMetrics",
    "PerformanceAverages",
    "ScenarioMetrics",
    "SyntheticDashboard",
    "TREND_ERROR_RATE",
    "TREND_PERFORMANCE",
    "TREND_SUCCESS_RATE",
    "TrendPoint",
]
