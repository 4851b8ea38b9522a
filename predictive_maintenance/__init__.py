"""
Predictive Maintenance Alerting Engine - Package.

============================================================
PURPOSE
============================================================
Estimates remaining useful life of tracked components from
usage and MTBF, checks whether replacement stock covers that
life plus resupply lead time, and raises severity-graded
alerts when either signal crosses a threshold.

============================================================
COMPONENTS (leaves first)
============================================================
1. OperatingHoursResolver     - usage in hours per asset/component
2. StockRequirementCalculator - minimum/safety/reorder/recommended
3. StockStatusClassifier      - OUT_OF_STOCK/CRITICAL/LOW/HEALTHY
4. MaintenanceProjector       - days until replacement
5. AlertEvaluator             - severity verdict + message
6. AlertLifecycleManager      - dedup, transitions, persistence

============================================================
USAGE
============================================================
    from predictive_maintenance import (
        MaintenanceScanner,
        MaintenanceEngineConfig,
    )
    from database import get_session_factory

    scanner = MaintenanceScanner(get_session_factory(), MaintenanceEngineConfig.from_env())
    summary = await scanner.scan_tenant("company-123")

    print(f"created={summary.created} failed={summary.failed}")

============================================================
"""

from .types import (
    # Enums
    Criticality,
    StockStatus,
    AlertSeverity,
    AlertStatus,
    AlertType,
    ReconcileOutcome,
    # Lookup tables
    CRITICALITY_FACTORS,
    CRITICALITY_PRIORITY,
    STOCK_STATUS_LABELS,
    # Data contracts
    MonitoredComponent,
    AssetUsage,
    InventorySnapshot,
    ComponentUsage,
    StockCalculationResult,
    ComponentAssessment,
    AlertVerdict,
    AlertFilter,
    ComponentFailure,
    ScanSummary,
    ComponentEvaluation,
    StockSyncSummary,
    # Exceptions
    MaintenanceAlertError,
    OperatingHoursResolutionError,
    ComponentEvaluationError,
    AlertNotFoundError,
    ComponentNotFoundError,
    AlertValidationError,
    InvalidAlertTransitionError,
    DuplicateActiveAlertError,
    FeatureDisabledError,
)
from .config import (
    StockConfig,
    ProjectionConfig,
    EvaluationConfig,
    LifecycleConfig,
    CacheConfig,
    ScanConfig,
    MaintenanceEngineConfig,
    get_default_config,
    set_default_config,
)
from .stock_calculator import (
    StockRequirementCalculator,
    calculate_minimum_stock,
    criticality_factor,
)
from .stock_status import (
    classify_stock,
    is_below_minimum,
    should_reorder,
)
from .projector import MaintenanceProjector, days_until_maintenance
from .operating_hours import OperatingHoursResolver
from .evaluator import (
    AlertEvaluator,
    decide_severity,
    alert_priority,
    needs_immediate_action,
    rank_verdicts,
)
from .models import MaintenanceAlertRecord
from .repository import MaintenanceAlertRepository
from .lifecycle import AlertLifecycleManager, VALID_TRANSITIONS
from .sources import (
    MaintenanceDataSource,
    FeatureFlagProvider,
    SqlMaintenanceDataSource,
    SqlFeatureFlagProvider,
    StaticFeatureFlagProvider,
    PREDICTIVE_MAINTENANCE_FEATURE,
)
from .cache import ReadCache
from .analytics import MaintenanceAnalytics, AnalyticsSummary, TrendPoint
from .service import MaintenanceAlertService, AlertPage
from .scanner import MaintenanceScanner
from .scheduler import MaintenanceScheduler


__all__ = [
    # Enums
    "Criticality",
    "StockStatus",
    "AlertSeverity",
    "AlertStatus",
    "AlertType",
    "ReconcileOutcome",
    # Lookup tables
    "CRITICALITY_FACTORS",
    "CRITICALITY_PRIORITY",
    "STOCK_STATUS_LABELS",
    # Data contracts
    "MonitoredComponent",
    "AssetUsage",
    "InventorySnapshot",
    "ComponentUsage",
    "StockCalculationResult",
    "ComponentAssessment",
    "AlertVerdict",
    "AlertFilter",
    "ComponentFailure",
    "ScanSummary",
    "ComponentEvaluation",
    "StockSyncSummary",
    # Exceptions
    "MaintenanceAlertError",
    "OperatingHoursResolutionError",
    "ComponentEvaluationError",
    "AlertNotFoundError",
    "ComponentNotFoundError",
    "AlertValidationError",
    "InvalidAlertTransitionError",
    "DuplicateActiveAlertError",
    "FeatureDisabledError",
    # Config
    "StockConfig",
    "ProjectionConfig",
    "EvaluationConfig",
    "LifecycleConfig",
    "CacheConfig",
    "ScanConfig",
    "MaintenanceEngineConfig",
    "get_default_config",
    "set_default_config",
    # Calculators
    "StockRequirementCalculator",
    "calculate_minimum_stock",
    "criticality_factor",
    "classify_stock",
    "is_below_minimum",
    "should_reorder",
    "MaintenanceProjector",
    "days_until_maintenance",
    "OperatingHoursResolver",
    # Evaluation
    "AlertEvaluator",
    "decide_severity",
    "alert_priority",
    "needs_immediate_action",
    "rank_verdicts",
    # Persistence & lifecycle
    "MaintenanceAlertRecord",
    "MaintenanceAlertRepository",
    "AlertLifecycleManager",
    "VALID_TRANSITIONS",
    # Collaborators
    "MaintenanceDataSource",
    "FeatureFlagProvider",
    "SqlMaintenanceDataSource",
    "SqlFeatureFlagProvider",
    "StaticFeatureFlagProvider",
    "PREDICTIVE_MAINTENANCE_FEATURE",
    # Read path
    "ReadCache",
    "MaintenanceAnalytics",
    "AnalyticsSummary",
    "TrendPoint",
    "MaintenanceAlertService",
    "AlertPage",
    # Orchestration
    "MaintenanceScanner",
    "MaintenanceScheduler",
]

__version__ = "1.0.0"
