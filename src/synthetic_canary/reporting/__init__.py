"""Reporting — aggregation, alerting, and the live dashboard.

Submodules
----------
- ``aggregator``  TestReport and the pure aggregate_results function
- ``alerts``      Threshold alerts with deduplication and bounded retention
- ``pubsub``      Broadcaster with unsubscribe handles
- ``dashboard``   SyntheticDashboard snapshots, trends, and monitoring export
"""
from __future__ import annotations

from synthetic_canary.reporting.aggregator import BreakdownStats, TestReport, aggregate_results
from synthetic_canary.reporting.alerts import Alert, AlertKind, AlertManager, AlertSeverity
from synthetic_canary.reporting.dashboard import DashboardSnapshot, SyntheticDashboard, TrendPoint
from synthetic_canary.reporting.pubsub import Broadcaster, Unsubscribe

__all__ = [
    "Alert",
    "AlertKind",
    "AlertManager",
    "AlertSeverity",
    "BreakdownStats",
    "Broadcaster",
    "DashboardSnapshot",
    "SyntheticDashboard",
    "TestReport",
    "TrendPoint",
    "Unsubscribe",
    "aggregate_results",
]
