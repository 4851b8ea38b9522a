"""
Predictive Maintenance - Alert Evaluator.

============================================================
PURPOSE
============================================================
Turns usage, projected remaining life and stock sufficiency
into a severity verdict for one component.

============================================================
SEVERITY PRECEDENCE (first match wins)
============================================================
1. CRITICAL  (days <= 7 OR stock OUT_OF_STOCK/CRITICAL)
             AND criticality in {A, B}
2. WARNING   days <= 30 OR stock LOW or worse
3. INFO      stock at or below the reorder point
4. no alert

Unknown days (no MTBF) never trigger on time, stock
triggers still apply.

============================================================
DESIGN PRINCIPLES
============================================================
- Deterministic and stateless per call
- Messages are presentation only, severity is the contract
- Priority: criticality rank (A=1) + severity offset

============================================================
"""

from typing import Iterable, List, Optional

from .config import EvaluationConfig, MaintenanceEngineConfig
from .projector import MaintenanceProjector
from .stock_calculator import StockRequirementCalculator
from .stock_status import classify_stock, should_reorder, stock_status_label
from .types import (
    CRITICALITY_PRIORITY,
    SEVERITY_PRIORITY_OFFSET,
    AlertSeverity,
    AlertType,
    AlertVerdict,
    ComponentAssessment,
    ComponentUsage,
    Criticality,
    InventorySnapshot,
    MonitoredComponent,
    StockStatus,
)


SEVERE_STOCK_STATUSES = frozenset({StockStatus.OUT_OF_STOCK, StockStatus.CRITICAL})
HIGH_IMPACT_CRITICALITIES = frozenset({Criticality.A, Criticality.B})


# =============================================================
# PURE DECISION FUNCTIONS
# =============================================================


def decide_severity(
    criticality: Criticality,
    days_until_maintenance: Optional[int],
    stock_status: StockStatus,
    reorder_needed: bool,
    config: Optional[EvaluationConfig] = None,
) -> Optional[AlertSeverity]:
    """Apply the severity precedence. None means no trigger fired."""
    config = config or EvaluationConfig()
    known = days_until_maintenance is not None

    time_critical = known and days_until_maintenance <= config.critical_days
    time_warning = known and days_until_maintenance <= config.warning_days

    if (time_critical or stock_status in SEVERE_STOCK_STATUSES) and criticality in HIGH_IMPACT_CRITICALITIES:
        return AlertSeverity.CRITICAL
    if time_warning or stock_status == StockStatus.LOW:
        return AlertSeverity.WARNING
    # Severe stock on a C component lands here
    if reorder_needed or stock_status in SEVERE_STOCK_STATUSES:
        return AlertSeverity.INFO
    return None


def decide_alert_type(
    days_until_maintenance: Optional[int],
    stock_status: StockStatus,
    config: Optional[EvaluationConfig] = None,
) -> AlertType:
    config = config or EvaluationConfig()
    if stock_status in SEVERE_STOCK_STATUSES:
        return AlertType.STOCK_OUT_CRITICAL
    if days_until_maintenance is not None:
        if days_until_maintenance <= config.critical_days:
            return AlertType.URGENT_MTBF
        if days_until_maintenance <= config.warning_days:
            return AlertType.WARNING_MTBF
    return AlertType.REORDER_RECOMMENDED


def alert_priority(criticality: Criticality, severity: AlertSeverity) -> int:
    """Lower is more urgent: 1 is an A component at CRITICAL."""
    return CRITICALITY_PRIORITY[criticality] + SEVERITY_PRIORITY_OFFSET[severity]


def needs_immediate_action(severity: AlertSeverity, days_until_maintenance: Optional[int], lead_time_days: int) -> bool:
    """CRITICAL and the failure is expected before resupply can arrive."""
    return (
        severity == AlertSeverity.CRITICAL
        and days_until_maintenance is not None
        and days_until_maintenance <= lead_time_days
    )


def rank_verdicts(verdicts: Iterable[AlertVerdict]) -> List[AlertVerdict]:
    """Order by priority, then soonest maintenance (unknown last)."""
    def _key(verdict: AlertVerdict):
        days = verdict.days_until_maintenance
        return (verdict.priority, days is None, days if days is not None else 0)

    return sorted(verdicts, key=_key)


# =============================================================
# PRESENTATION
# =============================================================


def _days_text(days: Optional[int]) -> str:
    if days is None:
        return "unknown (no MTBF recorded)"
    if days == 0:
        return "due now"
    return f"{days} day{'s' if days != 1 else ''}"


def render_message(assessment: ComponentAssessment, alert_type: AlertType) -> str:
    name = assessment.component.name
    days = _days_text(assessment.days_until_maintenance)
    stock = f"{assessment.current_stock}/{assessment.stock.minimum_stock}"

    if alert_type == AlertType.STOCK_OUT_CRITICAL:
        return (
            f"{name}: stock {stock_status_label(assessment.stock_status)} "
            f"({stock} units), maintenance in {days}"
        )
    if alert_type == AlertType.URGENT_MTBF:
        return f"{name}: replacement due in {days}, stock {stock} units"
    if alert_type == AlertType.WARNING_MTBF:
        return f"{name}: maintenance approaching in {days}, stock {stock} units"
    return (
        f"{name}: stock {assessment.current_stock} at or below reorder point "
        f"{assessment.stock.reorder_point}"
    )


def render_recommendation(assessment: ComponentAssessment, severity: AlertSeverity, alert_type: AlertType) -> str:
    shortfall = max(assessment.stock.recommended_stock - assessment.current_stock, 0)
    lead = assessment.lead_time_days

    if alert_type == AlertType.STOCK_OUT_CRITICAL:
        if severity == AlertSeverity.CRITICAL:
            return f"Reorder {shortfall} units now, use an express supplier if possible (lead time {lead} days)"
        return f"Reorder {shortfall} units (lead time {lead} days)"
    if alert_type == AlertType.URGENT_MTBF:
        return f"Schedule replacement and confirm a spare is on hand (lead time {lead} days)"
    if alert_type == AlertType.WARNING_MTBF:
        if assessment.current_stock < assessment.stock.minimum_stock:
            return f"Plan replacement and reorder {shortfall} units soon (lead time {lead} days)"
        return "Plan replacement during the next maintenance window"
    return f"Reorder {shortfall} units to reach the recommended level of {assessment.stock.recommended_stock}"


# =============================================================
# EVALUATOR
# =============================================================


class AlertEvaluator:
    """
    Combines the calculators into a verdict.

    assess() gathers the numbers, evaluate() decides.
    """

    def __init__(self, config: Optional[MaintenanceEngineConfig] = None):
        self.config = config or MaintenanceEngineConfig()
        self.calculator = StockRequirementCalculator(self.config.stock)
        self.projector = MaintenanceProjector(self.config.projection)

    def assess(
        self,
        component: MonitoredComponent,
        usage: ComponentUsage,
        inventory: Optional[InventorySnapshot],
    ) -> ComponentAssessment:
        """Compute stock requirements, stock status and projected days."""
        current_stock = inventory.current_stock if inventory else 0
        lead_time = self.calculator.resolve_lead_time(inventory.lead_time_days if inventory else None)

        stock = self.calculator.calculate(component, lead_time)
        status = classify_stock(
            current_stock,
            stock.minimum_stock,
            critical_ratio=self.config.evaluation.critical_stock_ratio,
        )
        days = self.projector.project(component.mtbf, usage.operating_hours)

        return ComponentAssessment(
            component=component,
            operating_hours=usage.operating_hours,
            days_until_maintenance=days,
            current_stock=current_stock,
            lead_time_days=lead_time,
            stock=stock,
            stock_status=status,
            asset_id=usage.asset_id,
        )

    def evaluate(self, assessment: ComponentAssessment) -> Optional[AlertVerdict]:
        """Return a verdict, or None when no trigger fired."""
        criticality = assessment.component.effective_criticality
        severity = decide_severity(
            criticality,
            assessment.days_until_maintenance,
            assessment.stock_status,
            should_reorder(assessment.current_stock, assessment.stock.reorder_point),
            self.config.evaluation,
        )
        if severity is None:
            return None

        alert_type = decide_alert_type(
            assessment.days_until_maintenance, assessment.stock_status, self.config.evaluation
        )
        component = assessment.component

        return AlertVerdict(
            component_id=component.component_id,
            component_name=component.name,
            part_number=component.part_number,
            severity=severity,
            alert_type=alert_type,
            criticality=criticality,
            stock_status=assessment.stock_status,
            current_stock=assessment.current_stock,
            minimum_stock=assessment.stock.minimum_stock,
            reorder_point=assessment.stock.reorder_point,
            recommended_stock=assessment.stock.recommended_stock,
            days_until_maintenance=assessment.days_until_maintenance,
            lead_time_days=assessment.lead_time_days,
            operating_hours=assessment.operating_hours,
            priority=alert_priority(criticality, severity),
            message=render_message(assessment, alert_type),
            recommendation=render_recommendation(assessment, severity, alert_type),
            asset_id=assessment.asset_id,
            inventory_item_id=component.linked_inventory_item_id,
            mtbf=component.mtbf,
        )

    def evaluate_component(
        self,
        component: MonitoredComponent,
        usage: ComponentUsage,
        inventory: Optional[InventorySnapshot],
    ) -> Optional[AlertVerdict]:
        return self.evaluate(self.assess(component, usage, inventory))
