"""
Predictive Maintenance - Repository.

============================================================
PURPOSE
============================================================
Repository pattern implementation for alert persistence.

Provides clean interface for:
- Inserting and locating ACTIVE alerts
- Filtered, paginated listings
- Analytics aggregates and trend rows
- Staleness and dismissal cool-down lookups

Every query is scoped to a company_id.

============================================================
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, asc, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import MaintenanceAlertRecord
from .types import (
    AlertFilter,
    AlertSeverity,
    AlertStatus,
    DuplicateActiveAlertError,
)


class MaintenanceAlertRepository:
    """
    Repository for maintenance alert persistence operations.

    ============================================================
    METHODS
    ============================================================
    - insert: Persist a new ACTIVE alert (dedup enforced)
    - get_by_id / get_active_for_component: Point lookups
    - get_latest_dismissal: Cool-down check
    - list_alerts / severity_counts: Listing read path
    - list_critical_active: Shortlist
    - list_stale_active: Auto-close candidates
    - analytics helpers

    ============================================================
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self._session = session

    # --------------------------------------------------------
    # WRITE OPERATIONS
    # --------------------------------------------------------

    async def insert(self, record: MaintenanceAlertRecord) -> MaintenanceAlertRecord:
        """
        Insert a new alert.

        Raises:
            DuplicateActiveAlertError: another ACTIVE alert for the
                component was committed first
        """
        self._session.add(record)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise DuplicateActiveAlertError(record.company_id, record.component_id, cause=e) from e
        return record

    async def flush(self) -> None:
        await self._session.flush()

    # --------------------------------------------------------
    # POINT LOOKUPS
    # --------------------------------------------------------

    async def get_by_id(self, company_id: str, alert_id: str) -> Optional[MaintenanceAlertRecord]:
        stmt = select(MaintenanceAlertRecord).where(
            and_(
                MaintenanceAlertRecord.id == alert_id,
                MaintenanceAlertRecord.company_id == company_id,
            )
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active_for_component(
        self,
        company_id: str,
        component_id: str,
    ) -> Optional[MaintenanceAlertRecord]:
        stmt = select(MaintenanceAlertRecord).where(
            and_(
                MaintenanceAlertRecord.company_id == company_id,
                MaintenanceAlertRecord.component_id == component_id,
                MaintenanceAlertRecord.status == AlertStatus.ACTIVE.value,
            )
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_latest_dismissal(
        self,
        company_id: str,
        component_id: str,
        since: datetime,
    ) -> Optional[MaintenanceAlertRecord]:
        """Most recent dismissal of the component at or after since."""
        stmt = (
            select(MaintenanceAlertRecord)
            .where(
                and_(
                    MaintenanceAlertRecord.company_id == company_id,
                    MaintenanceAlertRecord.component_id == component_id,
                    MaintenanceAlertRecord.status == AlertStatus.DISMISSED.value,
                    MaintenanceAlertRecord.dismissed_at >= since,
                )
            )
            .order_by(desc(MaintenanceAlertRecord.dismissed_at))
            .limit(1)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    # --------------------------------------------------------
    # LISTINGS
    # --------------------------------------------------------

    def _filter_conditions(self, company_id: str, filters: AlertFilter) -> list:
        conditions = [MaintenanceAlertRecord.company_id == company_id]

        if filters.status is not None:
            conditions.append(MaintenanceAlertRecord.status == filters.status.value)
        if filters.severities:
            conditions.append(MaintenanceAlertRecord.severity.in_([s.value for s in filters.severities]))
        if filters.criticality is not None:
            conditions.append(MaintenanceAlertRecord.criticality == filters.criticality.value)
        if filters.component_id:
            conditions.append(MaintenanceAlertRecord.component_id == filters.component_id)
        if filters.asset_id:
            conditions.append(MaintenanceAlertRecord.asset_id == filters.asset_id)
        if filters.start_date is not None:
            conditions.append(MaintenanceAlertRecord.created_at >= filters.start_date)
        if filters.end_date is not None:
            conditions.append(MaintenanceAlertRecord.created_at <= filters.end_date)

        return conditions

    async def list_alerts(
        self,
        company_id: str,
        filters: AlertFilter,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[MaintenanceAlertRecord], int]:
        """
        Filtered page of alerts, newest first.

        Returns:
            (items, total matching rows)
        """
        conditions = self._filter_conditions(company_id, filters)

        count_stmt = select(func.count(MaintenanceAlertRecord.id)).where(and_(*conditions))
        total = (await self._session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(MaintenanceAlertRecord)
            .where(and_(*conditions))
            .order_by(desc(MaintenanceAlertRecord.created_at), asc(MaintenanceAlertRecord.id))
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all()), total

    async def severity_counts(self, company_id: str, filters: AlertFilter) -> Dict[str, int]:
        """Counts per severity over the whole filtered set."""
        stmt = (
            select(MaintenanceAlertRecord.severity, func.count(MaintenanceAlertRecord.id))
            .where(and_(*self._filter_conditions(company_id, filters)))
            .group_by(MaintenanceAlertRecord.severity)
        )
        result = await self._session.execute(stmt)
        counts = {severity.value: 0 for severity in AlertSeverity}
        for severity, count in result.all():
            counts[severity] = count
        return counts

    async def list_critical_active(self, company_id: str, limit: int = 10) -> List[MaintenanceAlertRecord]:
        """ACTIVE CRITICAL alerts, most urgent first."""
        stmt = (
            select(MaintenanceAlertRecord)
            .where(
                and_(
                    MaintenanceAlertRecord.company_id == company_id,
                    MaintenanceAlertRecord.status == AlertStatus.ACTIVE.value,
                    MaintenanceAlertRecord.severity == AlertSeverity.CRITICAL.value,
                )
            )
            .order_by(
                asc(MaintenanceAlertRecord.priority),
                MaintenanceAlertRecord.days_until_maintenance.is_(None),
                asc(MaintenanceAlertRecord.days_until_maintenance),
                desc(MaintenanceAlertRecord.created_at),
            )
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_stale_active(self, company_id: str, observed_before: datetime) -> List[MaintenanceAlertRecord]:
        """ACTIVE alerts not re-evaluated since observed_before."""
        stmt = select(MaintenanceAlertRecord).where(
            and_(
                MaintenanceAlertRecord.company_id == company_id,
                MaintenanceAlertRecord.status == AlertStatus.ACTIVE.value,
                MaintenanceAlertRecord.last_evaluated_at < observed_before,
            )
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    # --------------------------------------------------------
    # ANALYTICS
    # --------------------------------------------------------

    def _range_conditions(
        self,
        company_id: str,
        start: Optional[datetime],
        end: Optional[datetime],
    ) -> list:
        return self._filter_conditions(company_id, AlertFilter(start_date=start, end_date=end))

    async def count_by_column(
        self,
        company_id: str,
        column_name: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[str, int]:
        """Alert counts grouped by severity, status or criticality."""
        column = getattr(MaintenanceAlertRecord, column_name)
        stmt = (
            select(column, func.count(MaintenanceAlertRecord.id))
            .where(and_(*self._range_conditions(company_id, start, end)))
            .group_by(column)
        )
        result = await self._session.execute(stmt)
        return {row[0]: row[1] for row in result.all()}

    async def get_resolution_intervals(
        self,
        company_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Tuple[datetime, datetime]]:
        """(created_at, resolved_at) pairs of resolved alerts."""
        conditions = self._range_conditions(company_id, start, end)
        conditions.append(MaintenanceAlertRecord.status == AlertStatus.RESOLVED.value)
        conditions.append(MaintenanceAlertRecord.resolved_at.is_not(None))

        stmt = select(MaintenanceAlertRecord.created_at, MaintenanceAlertRecord.resolved_at).where(
            and_(*conditions)
        )
        result = await self._session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def get_top_components(
        self,
        company_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 10,
    ) -> List[Dict[str, object]]:
        """Components with the most alerts in range."""
        alert_count = func.count(MaintenanceAlertRecord.id).label("alert_count")
        stmt = (
            select(
                MaintenanceAlertRecord.component_id,
                func.max(MaintenanceAlertRecord.component_name),
                func.max(MaintenanceAlertRecord.part_number),
                func.max(MaintenanceAlertRecord.criticality),
                alert_count,
            )
            .where(and_(*self._range_conditions(company_id, start, end)))
            .group_by(MaintenanceAlertRecord.component_id)
            .order_by(desc(alert_count), asc(MaintenanceAlertRecord.component_id))
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [
            {
                "component_id": row[0],
                "component_name": row[1],
                "part_number": row[2],
                "criticality": row[3],
                "alert_count": row[4],
            }
            for row in result.all()
        ]

    async def get_created_rows(
        self,
        company_id: str,
        start: datetime,
        end: Optional[datetime] = None,
    ) -> List[Tuple[datetime, str]]:
        """(created_at, severity) of every alert created in range."""
        stmt = select(MaintenanceAlertRecord.created_at, MaintenanceAlertRecord.severity).where(
            and_(*self._range_conditions(company_id, start, end))
        )
        result = await self._session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]
