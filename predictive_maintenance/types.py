"""
Predictive Maintenance - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for the predictive maintenance alerting engine.

This module defines the enums, dataclasses and exceptions
shared by the calculators, the evaluator, the lifecycle
manager and the scanner.

============================================================
DESIGN PRINCIPLES
============================================================
- Inputs read from collaborators are frozen dataclasses
- Enums for every discrete state value
- Lookup tables are enum-keyed constant maps
- Unknown values stay None, they are never coerced to zero

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from core.exceptions import (
    DataError,
    DataValidationError,
    MaintenanceEngineException,
    Severity,
    StateTransitionError,
)


# ============================================================
# ENUMS
# ============================================================


class Criticality(str, Enum):
    """
    ISO 14224-style failure impact ranking.

    - A: critical, total shutdown
    - B: important, degraded operation
    - C: minor
    """

    A = "A"
    B = "B"
    C = "C"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Criticality":
        """Parse a stored value, defaulting missing or unknown values to C."""
        if value is None:
            return cls.C
        if isinstance(value, Criticality):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.C


class StockStatus(str, Enum):
    """Inventory sufficiency label, from worst to best."""

    OUT_OF_STOCK = "OUT_OF_STOCK"
    CRITICAL = "CRITICAL"
    LOW = "LOW"
    HEALTHY = "HEALTHY"


class AlertSeverity(str, Enum):
    """Severity of a maintenance alert."""

    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    INFO = "INFO"

    @property
    def rank(self) -> int:
        """Numeric ordering for escalation checks (higher is worse)."""
        return SEVERITY_RANK[self]


class AlertStatus(str, Enum):
    """Lifecycle state of a persisted alert."""

    ACTIVE = "ACTIVE"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"
    AUTO_CLOSED = "AUTO_CLOSED"

    @property
    def is_terminal(self) -> bool:
        return self != AlertStatus.ACTIVE


class AlertType(str, Enum):
    """What kind of condition produced the alert."""

    STOCK_OUT_CRITICAL = "STOCK_OUT_CRITICAL"
    URGENT_MTBF = "URGENT_MTBF"
    WARNING_MTBF = "WARNING_MTBF"
    REORDER_RECOMMENDED = "REORDER_RECOMMENDED"


class ReconcileOutcome(str, Enum):
    """What the lifecycle manager did with one verdict."""

    CREATED = "created"
    UPDATED = "updated"
    RESOLVED = "resolved"
    SUPPRESSED = "suppressed"
    UNCHANGED = "unchanged"


# ============================================================
# LOOKUP TABLES
# ============================================================

CRITICALITY_FACTORS: Dict[Criticality, int] = {
    Criticality.A: 3,
    Criticality.B: 2,
    Criticality.C: 1,
}

CRITICALITY_PRIORITY: Dict[Criticality, int] = {
    Criticality.A: 1,
    Criticality.B: 2,
    Criticality.C: 3,
}

SEVERITY_RANK: Dict[AlertSeverity, int] = {
    AlertSeverity.INFO: 1,
    AlertSeverity.WARNING: 2,
    AlertSeverity.CRITICAL: 3,
}

SEVERITY_PRIORITY_OFFSET: Dict[AlertSeverity, int] = {
    AlertSeverity.CRITICAL: 0,
    AlertSeverity.WARNING: 1,
    AlertSeverity.INFO: 2,
}

STOCK_STATUS_LABELS: Dict[StockStatus, str] = {
    StockStatus.OUT_OF_STOCK: "out of stock",
    StockStatus.CRITICAL: "critically low",
    StockStatus.LOW: "below minimum",
    StockStatus.HEALTHY: "healthy",
}


# ============================================================
# INPUT DATA CONTRACTS
# ============================================================


@dataclass(frozen=True)
class MonitoredComponent:
    """
    A trackable catalog component, read-only to the engine.

    Reliability figures are in hours.
    """

    component_id: str
    company_id: str
    name: str
    part_number: Optional[str] = None
    criticality: Optional[Criticality] = None
    mtbf: Optional[float] = None
    mttr: Optional[float] = None
    life_expectancy: Optional[float] = None
    linked_inventory_item_id: Optional[str] = None

    @property
    def effective_criticality(self) -> Criticality:
        """Criticality with the C default applied."""
        return self.criticality or Criticality.C


@dataclass(frozen=True)
class AssetUsage:
    """Usage data for one physical asset instance."""

    asset_id: str
    manual_operating_hours: Optional[float] = None
    purchase_date: Optional[datetime] = None
    registration_date: Optional[datetime] = None


@dataclass(frozen=True)
class InventorySnapshot:
    """Current stock of the inventory item linked to a component."""

    inventory_item_id: str
    current_stock: int
    lead_time_days: Optional[int] = None


# ============================================================
# DERIVED RESULTS
# ============================================================


@dataclass(frozen=True)
class ComponentUsage:
    """Aggregated usage of a component across its installations."""

    operating_hours: float
    asset_id: Optional[str] = None
    asset_count: int = 0


@dataclass(frozen=True)
class StockCalculationResult:
    """Minimum/safety/reorder/recommended stock for one component."""

    minimum_stock: int
    safety_stock: int
    reorder_point: int
    recommended_stock: int
    monthly_consumption: int
    criticality_factor: int
    lead_time_buffer_months: int
    usage_during_lead_time: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "minimum_stock": self.minimum_stock,
            "safety_stock": self.safety_stock,
            "reorder_point": self.reorder_point,
            "recommended_stock": self.recommended_stock,
            "monthly_consumption": self.monthly_consumption,
            "criticality_factor": self.criticality_factor,
            "lead_time_buffer_months": self.lead_time_buffer_months,
            "usage_during_lead_time": self.usage_during_lead_time,
        }


@dataclass(frozen=True)
class ComponentAssessment:
    """All inputs the evaluator needs for one component."""

    component: MonitoredComponent
    operating_hours: float
    days_until_maintenance: Optional[int]
    current_stock: int
    lead_time_days: int
    stock: StockCalculationResult
    stock_status: StockStatus
    asset_id: Optional[str] = None


@dataclass(frozen=True)
class AlertVerdict:
    """
    Evaluator output for a component whose trigger fired.

    message and recommendation are presentation strings.
    """

    component_id: str
    component_name: str
    severity: AlertSeverity
    alert_type: AlertType
    criticality: Criticality
    stock_status: StockStatus
    current_stock: int
    minimum_stock: int
    reorder_point: int
    recommended_stock: int
    days_until_maintenance: Optional[int]
    lead_time_days: int
    operating_hours: float
    priority: int
    message: str
    recommendation: str
    part_number: Optional[str] = None
    asset_id: Optional[str] = None
    inventory_item_id: Optional[str] = None
    mtbf: Optional[float] = None


@dataclass(frozen=True)
class AlertFilter:
    """Listing filters. None means unfiltered."""

    status: Optional[AlertStatus] = None
    severities: Tuple[AlertSeverity, ...] = ()
    criticality: Optional[Criticality] = None
    component_id: Optional[str] = None
    asset_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    def cache_key(self) -> Tuple[Any, ...]:
        return (
            self.status.value if self.status else None,
            tuple(sorted(s.value for s in self.severities)),
            self.criticality.value if self.criticality else None,
            self.component_id,
            self.asset_id,
            self.start_date.isoformat() if self.start_date else None,
            self.end_date.isoformat() if self.end_date else None,
        )


@dataclass
class ComponentFailure:
    """
    A failed step of a scan.

    component_id is None for tenant-level steps (feature check, listing, stale sweep).
    """

    component_id: Optional[str]
    error_type: str
    message: str
    stage: str = "evaluate"


@dataclass
class ScanSummary:
    """
    Result of one tenant evaluation pass.

    Failures are collected here, they are never raised to the caller.
    """

    company_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    skipped: bool = False
    skip_reason: Optional[str] = None
    components_scanned: int = 0
    created: int = 0
    updated: int = 0
    resolved: int = 0
    suppressed: int = 0
    unchanged: int = 0
    auto_closed: int = 0
    failures: List[ComponentFailure] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def record(self, outcome: ReconcileOutcome) -> None:
        """Count a reconcile outcome."""
        if outcome == ReconcileOutcome.CREATED:
            self.created += 1
        elif outcome == ReconcileOutcome.UPDATED:
            self.updated += 1
        elif outcome == ReconcileOutcome.RESOLVED:
            self.resolved += 1
        elif outcome == ReconcileOutcome.SUPPRESSED:
            self.suppressed += 1
        else:
            self.unchanged += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "company_id": self.company_id,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "skipped": self.skipped,
            "skip_reason": self.skip_reason,
            "components_scanned": self.components_scanned,
            "created": self.created,
            "updated": self.updated,
            "resolved": self.resolved,
            "suppressed": self.suppressed,
            "unchanged": self.unchanged,
            "auto_closed": self.auto_closed,
            "failed": self.failed,
            "failures": [
                {
                    "component_id": f.component_id,
                    "stage": f.stage,
                    "error_type": f.error_type,
                    "message": f.message,
                }
                for f in self.failures
            ],
        }


@dataclass(frozen=True)
class ComponentEvaluation:
    """On-demand evaluation of one component, not persisted."""

    assessment: ComponentAssessment
    verdict: Optional[AlertVerdict]
    needs_immediate_action: bool = False


@dataclass
class StockSyncSummary:
    """Result of writing recalculated stock levels back to inventory."""

    company_id: str
    updated: int = 0
    failed: int = 0
    skipped: int = 0


# ============================================================
# EXCEPTIONS
# ============================================================


class MaintenanceAlertError(MaintenanceEngineException):
    """Base exception for the alerting engine."""
    pass


class OperatingHoursResolutionError(DataError):
    """Usage for a component could not be resolved."""

    def __init__(self, component_id: str, message: str, **kwargs):
        context = kwargs.pop("context", {})
        context["component_id"] = component_id
        super().__init__(message, context=context, **kwargs)
        self.component_id = component_id


class ComponentEvaluationError(MaintenanceAlertError):
    """Evaluation of a single component failed."""

    def __init__(self, component_id: str, message: str, **kwargs):
        context = kwargs.pop("context", {})
        context["component_id"] = component_id
        super().__init__(message, context=context, **kwargs)
        self.component_id = component_id


class AlertNotFoundError(MaintenanceAlertError):
    """Alert does not exist for this tenant."""

    default_severity = Severity.LOW

    def __init__(self, alert_id: str):
        super().__init__(f"Alert {alert_id} not found", context={"alert_id": alert_id})
        self.alert_id = alert_id


class ComponentNotFoundError(MaintenanceAlertError):
    """Component does not exist for this tenant."""

    default_severity = Severity.LOW

    def __init__(self, component_id: str):
        super().__init__(f"Component {component_id} not found", context={"component_id": component_id})
        self.component_id = component_id


class AlertValidationError(DataValidationError):
    """User input for an alert action failed validation."""
    pass


class InvalidAlertTransitionError(StateTransitionError):
    """Requested lifecycle transition is not allowed."""
    pass


class DuplicateActiveAlertError(MaintenanceAlertError):
    """A concurrent pass created the ACTIVE alert first."""

    def __init__(self, company_id: str, component_id: str, **kwargs):
        super().__init__(
            f"Active alert already exists for component {component_id}",
            context={"company_id": company_id, "component_id": component_id},
            **kwargs,
        )
        self.company_id = company_id
        self.component_id = component_id


class FeatureDisabledError(MaintenanceAlertError):
    """The tenant is not entitled to predictive maintenance."""

    default_severity = Severity.LOW

    def __init__(self, company_id: str, feature: str):
        super().__init__(
            f"Feature {feature} is not enabled for company {company_id}",
            context={"company_id": company_id, "feature": feature},
        )
        self.company_id = company_id
        self.feature = feature
