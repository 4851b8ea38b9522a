"""
Predictive Maintenance - Analytics.

============================================================
PURPOSE
============================================================
Aggregates persisted alert history for a tenant:

- total / critical / warning / info counts
- average response time (resolved_at - created_at, hours)
- effectiveness = resolved / (resolved + dismissed)
- top components by alert frequency
- counts by criticality A/B/C
- per-day trend series, zero-filled

All figures cover alerts created inside the requested range,
whatever their current status.

============================================================
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from core.clock import ClockProtocol, SystemClock, ensure_utc

from .repository import MaintenanceAlertRepository
from .types import AlertSeverity, AlertStatus, Criticality


TOP_COMPONENTS_LIMIT = 10


@dataclass
class AnalyticsSummary:
    total_alerts: int = 0
    critical: int = 0
    warnings: int = 0
    info: int = 0
    average_response_time: Optional[float] = None
    effectiveness: float = 0.0
    top_components: List[Dict[str, Any]] = field(default_factory=list)
    by_criticality: Dict[str, int] = field(default_factory=lambda: {c.value: 0 for c in Criticality})
    by_status: Dict[str, int] = field(default_factory=lambda: {s.value: 0 for s in AlertStatus})


@dataclass
class TrendPoint:
    day: date
    critical: int = 0
    warnings: int = 0
    info: int = 0

    @property
    def total(self) -> int:
        return self.critical + self.warnings + self.info


def effectiveness_ratio(resolved: int, dismissed: int) -> float:
    """resolved / (resolved + dismissed), 0.0 when neither happened."""
    handled = resolved + dismissed
    if handled == 0:
        return 0.0
    return resolved / handled


def average_hours(intervals: List[tuple]) -> Optional[float]:
    """Mean of (start, end) spans in hours, None for no data."""
    if not intervals:
        return None
    total_seconds = sum(
        (ensure_utc(end) - ensure_utc(start)).total_seconds() for start, end in intervals
    )
    return round(total_seconds / len(intervals) / 3600.0, 2)


class MaintenanceAnalytics:
    """Read-only aggregates over one tenant's alerts."""

    def __init__(self, repository: MaintenanceAlertRepository, clock: Optional[ClockProtocol] = None):
        self.repository = repository
        self.clock = clock or SystemClock()

    async def summary(
        self,
        company_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> AnalyticsSummary:
        by_severity = await self.repository.count_by_column(company_id, "severity", start, end)
        by_status = await self.repository.count_by_column(company_id, "status", start, end)
        by_criticality = await self.repository.count_by_column(company_id, "criticality", start, end)
        intervals = await self.repository.get_resolution_intervals(company_id, start, end)
        top = await self.repository.get_top_components(company_id, start, end, limit=TOP_COMPONENTS_LIMIT)

        result = AnalyticsSummary(
            total_alerts=sum(by_severity.values()),
            critical=by_severity.get(AlertSeverity.CRITICAL.value, 0),
            warnings=by_severity.get(AlertSeverity.WARNING.value, 0),
            info=by_severity.get(AlertSeverity.INFO.value, 0),
            average_response_time=average_hours(intervals),
            effectiveness=effectiveness_ratio(
                by_status.get(AlertStatus.RESOLVED.value, 0),
                by_status.get(AlertStatus.DISMISSED.value, 0),
            ),
            top_components=top,
        )
        for key, count in by_criticality.items():
            if key in result.by_criticality:
                result.by_criticality[key] = count
        for key, count in by_status.items():
            if key in result.by_status:
                result.by_status[key] = count
        return result

    async def trends(self, company_id: str, days: int = 30) -> List[TrendPoint]:
        """One point per day for the last `days` days, today included."""
        days = max(days, 1)
        today = self.clock.today()
        first_day = today - timedelta(days=days - 1)
        start = datetime.combine(first_day, datetime.min.time(), tzinfo=timezone.utc)

        points = {first_day + timedelta(days=i): TrendPoint(day=first_day + timedelta(days=i)) for i in range(days)}

        for created_at, severity in await self.repository.get_created_rows(company_id, start):
            point = points.get(ensure_utc(created_at).date())
            if point is None:
                continue
            if severity == AlertSeverity.CRITICAL.value:
                point.critical += 1
            elif severity == AlertSeverity.WARNING.value:
                point.warnings += 1
            else:
                point.info += 1

        return [points[day] for day in sorted(points)]
