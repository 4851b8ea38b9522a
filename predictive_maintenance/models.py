"""
Predictive Maintenance - Persistence Models.

============================================================
PURPOSE
============================================================
ORM model for persisted maintenance alerts.

Enables:
- Deduplicated ACTIVE alert per component
- Lifecycle audit (who resolved/dismissed, when, why)
- Listing, analytics and trend queries

============================================================
DEDUPLICATION
============================================================
A partial unique index on (company_id, component_id) WHERE
status = 'ACTIVE' guarantees at most one ACTIVE alert per
component even when scans overlap. Terminal rows are not
constrained, a component accumulates alert history.

============================================================
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from database.engine import Base
from database.models import generate_uuid, utc_now

from .types import AlertStatus


ACTIVE_ONLY = text(f"status = '{AlertStatus.ACTIVE.value}'")


# ============================================================
# MAINTENANCE ALERT MODEL
# ============================================================


class MaintenanceAlertRecord(Base):
    """
    One alert raised for a component.

    ============================================================
    MUTABILITY
    ============================================================
    - ACTIVE: metrics refreshed by every scan that observes it
    - RESOLVED / DISMISSED / AUTO_CLOSED: frozen

    ============================================================
    """

    __tablename__ = "maintenance_alerts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    # Ownership
    company_id: Mapped[str] = mapped_column(String(36), nullable=False)
    component_id: Mapped[str] = mapped_column(String(36), nullable=False)
    asset_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    inventory_item_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # Denormalised component info for listings
    component_name: Mapped[str] = mapped_column(String(200), nullable=False)
    part_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    criticality: Mapped[str] = mapped_column(String(1), nullable=False, comment="A, B or C")

    # Classification
    alert_type: Mapped[str] = mapped_column(String(30), nullable=False)
    severity: Mapped[str] = mapped_column(String(10), nullable=False, comment="CRITICAL, WARNING, INFO")
    status: Mapped[str] = mapped_column(
        String(15),
        nullable=False,
        default=AlertStatus.ACTIVE.value,
        comment="ACTIVE, RESOLVED, DISMISSED, AUTO_CLOSED",
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=3)

    # Metrics (refreshed while ACTIVE)
    stock_status: Mapped[str] = mapped_column(String(15), nullable=False)
    current_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    minimum_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    reorder_point: Mapped[int] = mapped_column(Integer, nullable=False)
    recommended_stock: Mapped[int] = mapped_column(Integer, nullable=False)
    days_until_maintenance: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True, comment="NULL when MTBF is unknown"
    )
    lead_time_days: Mapped[int] = mapped_column(Integer, nullable=False)
    operating_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    message: Mapped[str] = mapped_column(Text, nullable=False)
    recommendation: Mapped[str] = mapped_column(Text, nullable=False)

    # Resolution
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    work_order_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    resolution_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Dismissal
    dismissed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    dismissed_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    dismiss_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Auto-closure
    auto_closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    auto_closure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    last_evaluated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        comment="Last scan that observed the trigger",
    )

    __table_args__ = (
        Index(
            "uq_maintenance_alerts_active_component",
            "company_id",
            "component_id",
            unique=True,
            postgresql_where=ACTIVE_ONLY,
            sqlite_where=ACTIVE_ONLY,
        ),
        Index("idx_maintenance_alerts_company_status", "company_id", "status"),
        Index("idx_maintenance_alerts_company_created", "company_id", "created_at"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == AlertStatus.ACTIVE.value

    def __repr__(self) -> str:
        return (
            f"<MaintenanceAlertRecord(id={self.id}, component={self.component_id}, "
            f"severity={self.severity}, status={self.status})>"
        )
