"""
FastAPI Router for Predictive Maintenance Endpoints.

Provides REST API for the maintenance alerting engine:
- List, inspect, dismiss and resolve alerts
- Analytics summary and daily trends
- Preview a single component's evaluation
- Trigger a scan or a stock level sync

Tenant context (X-Company-Id, X-User-Id) is supplied by the
upstream auth layer. Tenants without the PREDICTIVE_MAINTENANCE
feature receive 403, never an empty result.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import AsyncGenerator, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import ensure_utc
from core.exceptions import MaintenanceEngineException, StateTransitionError
from predictive_maintenance import (
    AlertFilter,
    AlertNotFoundError,
    AlertSeverity,
    AlertStatus,
    AlertValidationError,
    ComponentEvaluationError,
    ComponentNotFoundError,
    Criticality,
    FeatureDisabledError,
    MaintenanceAlertService,
    MaintenanceScanner,
)
from maintenance_api.schemas import (
    AlertListResponse,
    AlertResponse,
    AnalyticsSummaryResponse,
    ComponentEvaluationResponse,
    DismissRequest,
    ResolveRequest,
    ScanAcceptedResponse,
    SeveritySummary,
    StockRequirementResponse,
    StockSyncResponse,
    TopComponent,
    TrendPointResponse,
    TrendsResponse,
    VerdictResponse,
)

router = APIRouter(tags=["Predictive Maintenance"])


# =============================================================
# HELPER: Tenant context
# =============================================================

@dataclass(frozen=True)
class TenantContext:
    company_id: str
    user_id: Optional[str] = None


def get_tenant_context(
    x_company_id: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
) -> TenantContext:
    if not x_company_id:
        raise HTTPException(status_code=401, detail="Missing tenant context (X-Company-Id)")
    return TenantContext(company_id=x_company_id, user_id=x_user_id)


# =============================================================
# HELPER: Database dependency
# =============================================================

async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    factory = request.app.state.session_factory
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# =============================================================
# HELPER: Get service instances
# =============================================================

def get_alert_service(request: Request, db: AsyncSession = Depends(get_db)) -> MaintenanceAlertService:
    state = request.app.state
    return MaintenanceAlertService(db, config=state.config, clock=state.clock, cache=state.cache)


def get_scanner(request: Request) -> MaintenanceScanner:
    return request.app.state.scanner


async def get_enabled_service(
    ctx: TenantContext = Depends(get_tenant_context),
    service: MaintenanceAlertService = Depends(get_alert_service),
) -> MaintenanceAlertService:
    """Alert service for an entitled tenant, 403 otherwise."""
    try:
        await service.ensure_enabled(ctx.company_id)
    except FeatureDisabledError as e:
        raise to_http_exception(e)
    return service


def to_http_exception(error: MaintenanceEngineException) -> HTTPException:
    """Map engine errors to HTTP status codes."""
    if isinstance(error, AlertValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, ComponentEvaluationError):
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(error, FeatureDisabledError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, (AlertNotFoundError, ComponentNotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, StateTransitionError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=error.message)


def _severity_summary(counts: dict) -> SeveritySummary:
    critical = counts.get(AlertSeverity.CRITICAL.value, 0)
    warning = counts.get(AlertSeverity.WARNING.value, 0)
    info = counts.get(AlertSeverity.INFO.value, 0)
    return SeveritySummary(critical=critical, warning=warning, info=info, total=critical + warning + info)


# =============================================================
# ALERT ENDPOINTS
# =============================================================

@router.get("/alerts", response_model=AlertListResponse)
async def list_alerts(
    status_filter: Optional[AlertStatus] = Query(None, alias="status"),
    severity: Optional[List[AlertSeverity]] = Query(None, description="Repeatable"),
    criticality: Optional[Criticality] = Query(None),
    component_id: Optional[str] = Query(None, alias="componentId"),
    asset_id: Optional[str] = Query(None, alias="assetId"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    ctx: TenantContext = Depends(get_tenant_context),
    service: MaintenanceAlertService = Depends(get_enabled_service),
):
    """
    List alerts, newest first.

    The summary counts severities over the whole filtered set,
    not just the returned page.
    """
    filters = AlertFilter(
        status=status_filter,
        severities=tuple(severity or ()),
        criticality=criticality,
        component_id=component_id,
        asset_id=asset_id,
        start_date=ensure_utc(start_date),
        end_date=ensure_utc(end_date),
    )
    result = await service.list_alerts(ctx.company_id, filters, page=page, limit=limit)

    return AlertListResponse(
        items=[AlertResponse.model_validate(item) for item in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
        summary=_severity_summary(result.summary),
    )


@router.get("/alerts/critical", response_model=List[AlertResponse])
async def list_critical_alerts(
    limit: int = Query(10, ge=1, le=100),
    ctx: TenantContext = Depends(get_tenant_context),
    service: MaintenanceAlertService = Depends(get_enabled_service),
):
    """ACTIVE CRITICAL alerts ordered by priority."""
    items = await service.list_critical(ctx.company_id, limit=limit)
    return [AlertResponse.model_validate(item) for item in items]


@router.get("/alerts/{alert_id}", response_model=AlertResponse)
async def get_alert(
    alert_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    service: MaintenanceAlertService = Depends(get_enabled_service),
):
    """Get details of a specific alert."""
    try:
        record = await service.get_alert(ctx.company_id, alert_id)
    except AlertNotFoundError as e:
        raise to_http_exception(e)
    return AlertResponse.model_validate(record)


@router.post("/alerts/{alert_id}/dismiss", response_model=AlertResponse)
async def dismiss_alert(
    alert_id: str,
    body: DismissRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    service: MaintenanceAlertService = Depends(get_enabled_service),
):
    """
    Dismiss an ACTIVE alert.

    The reason must be at least 10 characters, otherwise 400 and
    the alert is left unchanged.
    """
    try:
        record = await service.dismiss_alert(ctx.company_id, alert_id, ctx.user_id, body.reason)
    except MaintenanceEngineException as e:
        raise to_http_exception(e)
    return AlertResponse.model_validate(record)


@router.post("/alerts/{alert_id}/resolve", response_model=AlertResponse)
async def resolve_alert(
    alert_id: str,
    body: ResolveRequest,
    ctx: TenantContext = Depends(get_tenant_context),
    service: MaintenanceAlertService = Depends(get_enabled_service),
):
    """Resolve an ACTIVE alert, optionally linking the work order that fixed it."""
    try:
        record = await service.resolve_alert(
            ctx.company_id, alert_id, ctx.user_id, work_order_id=body.work_order_id, notes=body.notes
        )
    except MaintenanceEngineException as e:
        raise to_http_exception(e)
    return AlertResponse.model_validate(record)


# =============================================================
# ANALYTICS ENDPOINTS
# =============================================================

@router.get("/analytics/summary", response_model=AnalyticsSummaryResponse)
async def get_analytics_summary(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    ctx: TenantContext = Depends(get_tenant_context),
    service: MaintenanceAlertService = Depends(get_enabled_service),
):
    summary = await service.analytics_summary(ctx.company_id, ensure_utc(start_date), ensure_utc(end_date))

    return AnalyticsSummaryResponse(
        total_alerts=summary.total_alerts,
        critical=summary.critical,
        warnings=summary.warnings,
        info=summary.info,
        average_response_time=summary.average_response_time,
        effectiveness=summary.effectiveness,
        top_components=[TopComponent(**c) for c in summary.top_components],
        by_criticality=summary.by_criticality,
        by_status=summary.by_status,
    )


@router.get("/analytics/trends", response_model=TrendsResponse)
async def get_analytics_trends(
    days: int = Query(30, ge=1, le=365),
    ctx: TenantContext = Depends(get_tenant_context),
    service: MaintenanceAlertService = Depends(get_enabled_service),
):
    """One zero-filled data point per day."""
    points = await service.trends(ctx.company_id, days)
    return TrendsResponse(
        days=days,
        points=[
            TrendPointResponse(
                day=p.day, critical=p.critical, warnings=p.warnings, info=p.info, total=p.total
            )
            for p in points
        ],
    )


# =============================================================
# COMPONENT / OPERATIONS ENDPOINTS
# =============================================================

@router.get("/components/{component_id}/evaluation", response_model=ComponentEvaluationResponse)
async def evaluate_component(
    component_id: str,
    ctx: TenantContext = Depends(get_tenant_context),
    scanner: MaintenanceScanner = Depends(get_scanner),
):
    """Evaluate one component on demand. Nothing is persisted."""
    try:
        evaluation = await scanner.preview_component(ctx.company_id, component_id)
    except MaintenanceEngineException as e:
        raise to_http_exception(e)

    assessment = evaluation.assessment
    verdict = evaluation.verdict
    return ComponentEvaluationResponse(
        component_id=assessment.component.component_id,
        component_name=assessment.component.name,
        criticality=assessment.component.effective_criticality.value,
        mtbf=assessment.component.mtbf,
        operating_hours=assessment.operating_hours,
        asset_id=assessment.asset_id,
        days_until_maintenance=assessment.days_until_maintenance,
        current_stock=assessment.current_stock,
        lead_time_days=assessment.lead_time_days,
        stock_status=assessment.stock_status.value,
        stock=StockRequirementResponse(**assessment.stock.to_dict()),
        alert=VerdictResponse(
            severity=verdict.severity.value,
            alert_type=verdict.alert_type.value,
            priority=verdict.priority,
            message=verdict.message,
            recommendation=verdict.recommendation,
        ) if verdict else None,
        needs_immediate_action=evaluation.needs_immediate_action,
    )


@router.post("/scans", response_model=ScanAcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def trigger_scan(
    background_tasks: BackgroundTasks,
    ctx: TenantContext = Depends(get_tenant_context),
    scanner: MaintenanceScanner = Depends(get_scanner),
):
    """Schedule an evaluation pass for the tenant. Does not wait for it."""
    try:
        await scanner.ensure_enabled(ctx.company_id)
    except FeatureDisabledError as e:
        raise to_http_exception(e)

    background_tasks.add_task(scanner.scan_tenant, ctx.company_id)
    return ScanAcceptedResponse(company_id=ctx.company_id)


@router.post("/stock-levels/sync", response_model=StockSyncResponse)
async def sync_stock_levels(
    ctx: TenantContext = Depends(get_tenant_context),
    scanner: MaintenanceScanner = Depends(get_scanner),
):
    """Write recalculated minimum stock / reorder point to inventory."""
    try:
        result = await scanner.sync_stock_levels(ctx.company_id)
    except MaintenanceEngineException as e:
        raise to_http_exception(e)

    return StockSyncResponse(
        company_id=result.company_id,
        updated=result.updated,
        failed=result.failed,
        skipped=result.skipped,
    )
