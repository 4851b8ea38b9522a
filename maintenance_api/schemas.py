"""
Pydantic schemas for the Predictive Maintenance API.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from core.clock import ensure_utc


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =======================
# ALERTS
# =======================

class AlertResponse(CamelModel):
    id: str
    component_id: str
    asset_id: Optional[str] = None
    inventory_item_id: Optional[str] = None
    component_name: str
    part_number: Optional[str] = None
    criticality: str
    alert_type: str
    severity: str  # CRITICAL, WARNING, INFO
    status: str  # ACTIVE, RESOLVED, DISMISSED, AUTO_CLOSED
    priority: int

    stock_status: str
    current_stock: int
    minimum_stock: int
    reorder_point: int
    recommended_stock: int
    days_until_maintenance: Optional[int] = None
    lead_time_days: int
    operating_hours: float

    message: str
    recommendation: str

    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    work_order_id: Optional[str] = None
    resolution_notes: Optional[str] = None
    dismissed_at: Optional[datetime] = None
    dismissed_by: Optional[str] = None
    dismiss_reason: Optional[str] = None
    auto_closed_at: Optional[datetime] = None
    auto_closure_reason: Optional[str] = None

    created_at: datetime
    updated_at: datetime
    last_evaluated_at: datetime

    @field_validator(
        "resolved_at", "dismissed_at", "auto_closed_at",
        "created_at", "updated_at", "last_evaluated_at",
    )
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)


class SeveritySummary(CamelModel):
    critical: int = 0
    warning: int = 0
    info: int = 0
    total: int = 0


class AlertListResponse(CamelModel):
    items: List[AlertResponse]
    total: int
    page: int
    limit: int
    total_pages: int
    summary: SeveritySummary


class DismissRequest(CamelModel):
    reason: str = Field("", description="At least 10 characters after trimming")


class ResolveRequest(CamelModel):
    work_order_id: Optional[str] = None
    notes: Optional[str] = None


# =======================
# ANALYTICS
# =======================

class TopComponent(CamelModel):
    component_id: str
    component_name: Optional[str] = None
    part_number: Optional[str] = None
    criticality: Optional[str] = None
    alert_count: int


class AnalyticsSummaryResponse(CamelModel):
    total_alerts: int
    critical: int
    warnings: int
    info: int
    average_response_time: Optional[float] = Field(None, description="Hours from creation to resolution")
    effectiveness: float = Field(..., description="resolved / (resolved + dismissed)")
    top_components: List[TopComponent]
    by_criticality: Dict[str, int]
    by_status: Dict[str, int]


class TrendPointResponse(CamelModel):
    day: date = Field(..., alias="date")
    critical: int
    warnings: int
    info: int
    total: int


class TrendsResponse(CamelModel):
    days: int
    points: List[TrendPointResponse]


# =======================
# COMPONENT EVALUATION
# =======================

class StockRequirementResponse(CamelModel):
    minimum_stock: int
    safety_stock: int
    reorder_point: int
    recommended_stock: int
    monthly_consumption: int
    criticality_factor: int
    lead_time_buffer_months: int
    usage_during_lead_time: int


class VerdictResponse(CamelModel):
    severity: str
    alert_type: str
    priority: int
    message: str
    recommendation: str


class ComponentEvaluationResponse(CamelModel):
    component_id: str
    component_name: str
    criticality: str
    mtbf: Optional[float] = None
    operating_hours: float
    asset_id: Optional[str] = None
    days_until_maintenance: Optional[int] = None
    current_stock: int
    lead_time_days: int
    stock_status: str
    stock: StockRequirementResponse
    alert: Optional[VerdictResponse] = None
    needs_immediate_action: bool


# =======================
# OPERATIONS
# =======================

class ScanAcceptedResponse(CamelModel):
    company_id: str
    status: str = "accepted"


class StockSyncResponse(CamelModel):
    company_id: str
    updated: int
    failed: int
    skipped: int
