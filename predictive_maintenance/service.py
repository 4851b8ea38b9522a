"""
Predictive Maintenance - Alert Service.

============================================================
PURPOSE
============================================================
Read/act facade used by the HTTP layer, bound to one request
session:

- Feature gate per tenant
- Filtered, paginated listings with a severity summary
- Alert detail and critical shortlist
- Dismiss / resolve (commits, invalidates cached reads)
- Analytics summary and trends

Repeated reads of the same filter set are served from the
ReadCache for a short window.

============================================================
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import ClockProtocol, SystemClock

from .analytics import AnalyticsSummary, MaintenanceAnalytics, TrendPoint
from .cache import ReadCache
from .config import MaintenanceEngineConfig
from .lifecycle import AlertLifecycleManager
from .models import MaintenanceAlertRecord
from .repository import MaintenanceAlertRepository
from .sources import FeatureFlagProvider, SqlFeatureFlagProvider
from .types import AlertFilter, AlertNotFoundError, FeatureDisabledError


logger = logging.getLogger(__name__)


MAX_PAGE_SIZE = 100


@dataclass
class AlertPage:
    items: List[MaintenanceAlertRecord]
    total: int
    page: int
    limit: int
    summary: Dict[str, int] = field(default_factory=dict)

    @property
    def total_pages(self) -> int:
        if self.limit <= 0:
            return 0
        return math.ceil(self.total / self.limit)


class MaintenanceAlertService:
    """Request-scoped alert operations for one session."""

    def __init__(
        self,
        session: AsyncSession,
        config: Optional[MaintenanceEngineConfig] = None,
        clock: Optional[ClockProtocol] = None,
        cache: Optional[ReadCache] = None,
        flags: Optional[FeatureFlagProvider] = None,
    ):
        self.session = session
        self.config = config or MaintenanceEngineConfig()
        self.clock = clock or SystemClock()
        self.cache = cache
        self.flags = flags or SqlFeatureFlagProvider(session)
        self.repository = MaintenanceAlertRepository(session)
        self.lifecycle = AlertLifecycleManager(self.repository, clock=self.clock, config=self.config.lifecycle)
        self.analytics = MaintenanceAnalytics(self.repository, clock=self.clock)

    # --------------------------------------------------------
    # FEATURE GATE
    # --------------------------------------------------------

    async def ensure_enabled(self, company_id: str) -> None:
        """
        Raises:
            FeatureDisabledError: tenant not entitled to the engine
        """
        if not await self.flags.is_enabled(company_id, self.config.scan.feature_key):
            raise FeatureDisabledError(company_id, self.config.scan.feature_key)

    # --------------------------------------------------------
    # READS
    # --------------------------------------------------------

    def _cached(self, company_id: str, operation: str, params):
        if self.cache is None:
            return None
        return self.cache.get(company_id, operation, params)

    def _store(self, company_id: str, operation: str, params, value) -> None:
        if self.cache is not None:
            self.cache.set(company_id, operation, params, value)

    async def list_alerts(
        self,
        company_id: str,
        filters: Optional[AlertFilter] = None,
        page: int = 1,
        limit: int = 20,
    ) -> AlertPage:
        filters = filters or AlertFilter()
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        params = (filters.cache_key(), page, limit)
        cached = self._cached(company_id, "list_alerts", params)
        if cached is not None:
            return cached

        items, total = await self.repository.list_alerts(
            company_id, filters, offset=(page - 1) * limit, limit=limit
        )
        summary = await self.repository.severity_counts(company_id, filters)
        result = AlertPage(items=items, total=total, page=page, limit=limit, summary=summary)

        self._store(company_id, "list_alerts", params, result)
        return result

    async def get_alert(self, company_id: str, alert_id: str) -> MaintenanceAlertRecord:
        record = await self.repository.get_by_id(company_id, alert_id)
        if record is None:
            raise AlertNotFoundError(alert_id)
        return record

    async def list_critical(self, company_id: str, limit: int = 10) -> List[MaintenanceAlertRecord]:
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        cached = self._cached(company_id, "list_critical", limit)
        if cached is not None:
            return cached

        result = await self.repository.list_critical_active(company_id, limit)
        self._store(company_id, "list_critical", limit, result)
        return result

    async def analytics_summary(
        self,
        company_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> AnalyticsSummary:
        params = (start.isoformat() if start else None, end.isoformat() if end else None)
        cached = self._cached(company_id, "analytics_summary", params)
        if cached is not None:
            return cached

        result = await self.analytics.summary(company_id, start, end)
        self._store(company_id, "analytics_summary", params, result)
        return result

    async def trends(self, company_id: str, days: int = 30) -> List[TrendPoint]:
        cached = self._cached(company_id, "trends", days)
        if cached is not None:
            return cached

        result = await self.analytics.trends(company_id, days)
        self._store(company_id, "trends", days, result)
        return result

    # --------------------------------------------------------
    # ACTIONS
    # --------------------------------------------------------

    async def dismiss_alert(
        self,
        company_id: str,
        alert_id: str,
        user_id: Optional[str],
        reason: Optional[str],
    ) -> MaintenanceAlertRecord:
        try:
            record = await self.lifecycle.dismiss(company_id, alert_id, user_id, reason)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        self._invalidate(company_id)
        return record

    async def resolve_alert(
        self,
        company_id: str,
        alert_id: str,
        user_id: Optional[str],
        work_order_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> MaintenanceAlertRecord:
        try:
            record = await self.lifecycle.resolve(company_id, alert_id, user_id, work_order_id, notes)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        self._invalidate(company_id)
        return record

    def _invalidate(self, company_id: str) -> None:
        if self.cache is not None:
            removed = self.cache.invalidate(company_id)
            logger.debug(f"Invalidated {removed} cached reads for company {company_id}")
