"""Tests for synthetic_canary.reporting.dashboard.SyntheticDashboard."""
from __future__ import annotations

import datetime

import pytest

from synthetic_canary.errors import TestErrorKind
from synthetic_canary.execution.results import (
    PerformanceSample,
    ScenarioResult,
    TestError,
)
from synthetic_canary.profiles import Archetype, Scenario, create_standard_registry
from synthetic_canary.reporting import (
    DashboardSnapshot,
    SyntheticDashboard,
    TestReport,
    aggregate_results,
)
from synthetic_canary.reporting.dashboard import (
    TREND_ERROR_RATE,
    TREND_PERFORMANCE,
    TREND_SUCCESS_RATE,
)

_T0 = datetime.datetime(2026, 1, 1, tzinfo=datetime.timezone.utc)


def _make_result(
    user_id: str,
    scenario: Scenario,
    success: bool = True,
    page_load_ms: float = 1000.0,
) -> ScenarioResult:
    return ScenarioResult(
        user_id=user_id,
        scenario=scenario,
        started_at=_T0,
        ended_at=_T0 + datetime.timedelta(seconds=2),
        steps=(),
        errors=() if success else (TestError(TestErrorKind.NETWORK, "offline", _T0),),
        performance=PerformanceSample(page_load_ms, 400.0, 900.0, 60.0, 0.01, 12, 400_000),
    )


def _make_report(*results: ScenarioResult) -> TestReport:
    return aggregate_results(results, generated_at=_T0)


def _make_dashboard(max_trend_points: int = 100) -> SyntheticDashboard:
    return SyntheticDashboard(
        create_standard_registry(),
        clock=lambda: _T0,
        max_trend_points=max_trend_points,
    )


class TestUpdate:
    def test_overview_reflects_report(self) -> None:
        dashboard = _make_dashboard()
        snapshot = dashboard.update(
            _make_report(
                _make_result("power_user_001", Scenario.AUDIO_PLAYBACK),
                _make_result("mobile_user_001", Scenario.AUDIO_PLAYBACK, success=False),
            )
        )
        assert snapshot.overview.total_tests == 2
        assert snapshot.overview.success_rate == pytest.approx(0.5)
        assert snapshot.overview.active_users == 2
        assert snapshot.overview.last_updated == _T0

    def test_performance_averages_skip_empty_samples(self) -> None:
        dashboard = _make_dashboard()
        snapshot = dashboard.update(
            _make_report(
                _make_result("power_user_001", Scenario.AUDIO_PLAYBACK, page_load_ms=1000.0),
                _make_result("power_user_001", Scenario.NAVIGATION_FLOW, page_load_ms=3000.0),
                _make_result("power_user_001", Scenario.EPISODE_GENERATION, page_load_ms=0.0),
            )
        )
        assert snapshot.performance.page_load_ms == pytest.approx(2000.0)

    def test_scenario_metrics(self) -> None:
        dashboard = _make_dashboard()
        snapshot = dashboard.update(
            _make_report(
                _make_result("power_user_001", Scenario.AUDIO_PLAYBACK),
                _make_result("casual_listener_001", Scenario.AUDIO_PLAYBACK, success=False),
            )
        )
        audio = snapshot.scenarios["audio_playback"]
        assert audio.success_rate == pytest.approx(0.5)
        assert audio.error_rate == pytest.approx(0.5)
        assert audio.average_duration_ms == pytest.approx(2000.0)

    def test_archetype_metrics_cover_every_archetype(self) -> None:
        dashboard = _make_dashboard()
        snapshot = dashboard.update(
            _make_report(
                _make_result("casual_listener_001", Scenario.AUDIO_PLAYBACK, success=False),
            )
        )
        assert set(snapshot.archetypes) == {a.value for a in Archetype}
        casual = snapshot.archetypes["casual_listener"]
        assert casual.test_count == 1
        assert casual.error_count == 1
        assert snapshot.archetypes["power_user"].test_count == 0

    def test_unregistered_user_ignored_for_archetypes(self) -> None:
        dashboard = _make_dashboard()
        snapshot = dashboard.update(_make_report(_make_result("stranger", Scenario.AUDIO_PLAYBACK)))
        assert snapshot.overview.total_tests == 1
        assert sum(m.test_count for m in snapshot.archetypes.values()) == 0

    def test_trends_are_bounded(self) -> None:
        dashboard = _make_dashboard(max_trend_points=3)
        report = _make_report(_make_result("power_user_001", Scenario.AUDIO_PLAYBACK))
        for _ in range(5):
            snapshot = dashboard.update(report)
        for key in (TREND_SUCCESS_RATE, TREND_PERFORMANCE, TREND_ERROR_RATE):
            assert len(snapshot.trends[key]) == 3

    def test_update_evaluates_alerts(self) -> None:
        dashboard = _make_dashboard()
        snapshot = dashboard.update(
            _make_report(
                *[_make_result("power_user_001", Scenario.AUDIO_PLAYBACK, success=False)] * 3
            )
        )
        assert snapshot.alerts
        assert dashboard.active_alerts()


class TestSubscribers:
    def test_subscriber_receives_current_then_updates(self) -> None:
        dashboard = _make_dashboard()
        seen: list[DashboardSnapshot] = []
        dashboard.subscribe(seen.append)
        assert len(seen) == 1
        assert seen[0].overview.total_tests == 0
        dashboard.update(_make_report(_make_result("power_user_001", Scenario.AUDIO_PLAYBACK)))
        assert len(seen) == 2
        assert seen[1].overview.total_tests == 1

    def test_unsubscribe(self) -> None:
        dashboard = _make_dashboard()
        seen: list[DashboardSnapshot] = []
        unsubscribe = dashboard.subscribe(seen.append)
        unsubscribe()
        dashboard.update(_make_report(_make_result("power_user_001", Scenario.AUDIO_PLAYBACK)))
        assert len(seen) == 1
        assert dashboard.subscriber_count == 0

    def test_resolve_alert_republishes(self) -> None:
        dashboard = _make_dashboard()
        dashboard.update(
            _make_report(_make_result("power_user_001", Scenario.AUDIO_PLAYBACK, success=False))
        )
        seen: list[DashboardSnapshot] = []
        dashboard.subscribe(seen.append)
        alert_id = dashboard.active_alerts()[0].id
        assert dashboard.resolve_alert(alert_id) is True
        assert len(seen) == 2
        assert all(a.id != alert_id for a in seen[-1].alerts)


class TestResetAndExport:
    def test_reset_clears_everything(self) -> None:
        dashboard = _make_dashboard()
        dashboard.update(
            _make_report(_make_result("power_user_001", Scenario.AUDIO_PLAYBACK, success=False))
        )
        dashboard.reset()
        snapshot = dashboard.snapshot()
        assert snapshot.overview.total_tests == 0
        assert snapshot.alerts == ()
        assert all(len(points) == 0 for points in snapshot.trends.values())

    def test_export_for_monitoring(self) -> None:
        dashboard = _make_dashboard()
        dashboard.update(
            _make_report(
                _make_result("power_user_001", Scenario.AUDIO_PLAYBACK),
                _make_result("power_user_001", Scenario.NAVIGATION_FLOW, success=False),
            )
        )
        metrics = dashboard.export_for_monitoring()
        assert metrics["synthetic_tests_total"] == 2
        assert metrics["synthetic_tests_success_rate"] == pytest.approx(0.5)
        assert metrics["synthetic_alerts_active"] >= 1  # type: ignore[operator]
        assert metrics["synthetic_alerts_critical"] >= 1  # type: ignore[operator]
        assert metrics["timestamp"] == _T0.isoformat()
