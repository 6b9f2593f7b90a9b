"""synthetic-canary — synthetic-user canary validation with progressive feature-flag rollout.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Quick-start example
-------------------
>>> import synthetic_canary as sc
>>> sc.__version__
'0.1.0'

Subpackages
-----------
profiles:
    Synthetic user profiles and the profile registry.
execution:
    Step drivers, scenario plans, the scenario executor, and the run orchestrator.
reporting:
    Report aggregation, threshold alerts, pub/sub, and the live dashboard.
validation:
    Validation criteria, the canary validator, and the recommendation engine.
rollout:
    Flag services, rollout strategies, the progressive rollout controller,
    auto-rollout, and emergency rollback.
canary:
    Deployment context and the canary pipeline composition root.
"""
from __future__ import annotations

__version__: str = "0.1.0"

# -- Errors ---------------------------------------------------------------
from synthetic_canary.errors import (
    CanaryError,
    ConfigurationError,
    FlagServiceError,
    HealthCheckError,
    NotificationError,
    ProfileNotFoundError,
    RolloutInProgressError,
    RunInProgressError,
    StepError,
    TestErrorKind,
)

# -- Profiles -------------------------------------------------------------
from synthetic_canary.profiles import (
    Archetype,
    ProfileRegistry,
    Scenario,
    UserProfile,
    create_standard_registry,
)

# -- Execution ------------------------------------------------------------
from synthetic_canary.execution import (
    ScenarioExecutor,
    ScenarioResult,
    ScriptedStepExecutor,
    SimulatedStepExecutor,
    StepExecutor,
    TestRunOrchestrator,
)

# -- Reporting ------------------------------------------------------------
from synthetic_canary.reporting import (
    AlertManager,
    SyntheticDashboard,
    TestReport,
    aggregate_results,
)

# -- Validation -----------------------------------------------------------
from synthetic_canary.validation import (
    APPROVAL_THRESHOLD,
    CanaryValidator,
    RecommendationEngine,
    ValidationCriteria,
    ValidationResult,
)

# -- Rollout --------------------------------------------------------------
from synthetic_canary.rollout import (
    HEALTH_FLOOR,
    EmergencyRollback,
    FeatureFlag,
    FeatureFlagService,
    HealthCheck,
    InMemoryFlagService,
    NotificationSink,
    ProgressiveRolloutController,
    RolloutStatus,
    RolloutStrategy,
    apply_recommendations,
    select_strategy,
)

# -- Canary ---------------------------------------------------------------
from synthetic_canary.canary import (
    CanaryPipeline,
    CanaryTestResult,
    DeploymentContext,
    run_quick_validation,
)

# -- Settings and timing --------------------------------------------------
from synthetic_canary.settings import CanarySettings, load_settings, save_settings
from synthetic_canary.timing import VirtualClock

__all__ = [
    "APPROVAL_THRESHOLD",
    "AlertManager",
    "Archetype",
    "CanaryError",
    "CanaryPipeline",
    "CanarySettings",
    "CanaryTestResult",
    "CanaryValidator",
    "ConfigurationError",
    "DeploymentContext",
    "EmergencyRollback",
    "FeatureFlag",
    "FeatureFlagService",
    "FlagServiceError",
    "HEALTH_FLOOR",
    "HealthCheck",
    "HealthCheckError",
    "InMemoryFlagService",
    "NotificationError",
    "NotificationSink",
    "ProfileNotFoundError",
    "ProfileRegistry",
    "ProgressiveRolloutController",
    "RecommendationEngine",
    "RolloutInProgressError",
    "RolloutStatus",
    "RolloutStrategy",
    "RunInProgressError",
    "Scenario",
    "ScenarioExecutor",
    "ScenarioResult",
    "ScriptedStepExecutor",
    "SimulatedStepExecutor",
    "StepError",
    "StepExecutor",
    "SyntheticDashboard",
    "TestErrorKind",
    "TestReport",
    "TestRunOrchestrator",
    "UserProfile",
    "ValidationCriteria",
    "ValidationResult",
    "VirtualClock",
    "aggregate_results",
    "apply_recommendations",
    "create_standard_registry",
    "load_settings",
    "run_quick_validation",
    "save_settings",
    "select_strategy",
    "__version__",
]
