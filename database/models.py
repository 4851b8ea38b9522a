"""
Database ORM Models - Collaborator Tables.

============================================================
SHARED PLATFORM SCHEMA
============================================================

Tables owned by the surrounding maintenance platform that
the alerting engine reads:

1. components             - exploded-view catalog components
2. assets                 - physical asset instances
3. component_asset_links  - many-to-many join (hotspots)
4. inventory_items        - stock keeping items
5. stock_locations        - per-location quantities
6. tenant_features        - per-company feature flags

The engine never writes these tables except for the stock
level synchronisation (min_stock / reorder_point).

The component/asset association is a plain join table queried
by component_id, there are no ORM back-references.

============================================================
"""

from datetime import datetime, timezone
import uuid

from sqlalchemy import (
    Column, Integer, String, Float, Boolean, DateTime, ForeignKey,
    Index, UniqueConstraint,
)

from .engine import Base


# =============================================================
# HELPER FUNCTIONS
# =============================================================

def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def utc_now():
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


# =============================================================
# 1. COMPONENTS TABLE
# =============================================================

class Component(Base):
    """
    Catalog component that can be monitored.

    Owner: exploded-view catalog
    Criticality follows ISO 14224 (A critical, C minor).
    """
    __tablename__ = "components"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    company_id = Column(String(36), nullable=False, index=True)

    name = Column(String(200), nullable=False)
    part_number = Column(String(100), nullable=True)

    # Reliability data (hours)
    criticality = Column(String(1), nullable=True)  # A, B, C
    mtbf = Column(Float, nullable=True)
    mttr = Column(Float, nullable=True)
    life_expectancy = Column(Float, nullable=True)

    inventory_item_id = Column(String(36), ForeignKey("inventory_items.id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_components_company_active", "company_id", "is_active"),
    )


# =============================================================
# 2. ASSETS TABLE
# =============================================================

class Asset(Base):
    """
    Physical asset instance (machine, line, vehicle).

    manual_operating_hours is authoritative when > 0.
    """
    __tablename__ = "assets"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    company_id = Column(String(36), nullable=False, index=True)

    name = Column(String(200), nullable=False)
    code = Column(String(50), nullable=True)

    manual_operating_hours = Column(Float, nullable=True)
    purchase_date = Column(DateTime(timezone=True), nullable=True)
    registration_date = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    is_active = Column(Boolean, nullable=False, default=True)


# =============================================================
# 3. COMPONENT <-> ASSET LINK TABLE
# =============================================================

class ComponentAssetLink(Base):
    """Installation of a component on an asset."""
    __tablename__ = "component_asset_links"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    component_id = Column(String(36), ForeignKey("components.id"), nullable=False)
    asset_id = Column(String(36), ForeignKey("assets.id"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("idx_component_asset_links_component", "component_id", "is_active"),
        UniqueConstraint("component_id", "asset_id", name="uq_component_asset_link"),
    )


# =============================================================
# 4. INVENTORY ITEMS TABLE
# =============================================================

class InventoryItem(Base):
    """Stock keeping item linked from components."""
    __tablename__ = "inventory_items"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    company_id = Column(String(36), nullable=False, index=True)

    name = Column(String(200), nullable=False)
    min_stock = Column(Integer, nullable=True)
    reorder_point = Column(Integer, nullable=True)
    lead_time_days = Column(Integer, nullable=True)


# =============================================================
# 5. STOCK LOCATIONS TABLE
# =============================================================

class StockLocation(Base):
    """Available quantity of an item at one location."""
    __tablename__ = "stock_locations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    inventory_item_id = Column(String(36), ForeignKey("inventory_items.id"), nullable=False, index=True)
    location_name = Column(String(100), nullable=True)
    available_quantity = Column(Integer, nullable=False, default=0)


# =============================================================
# 6. TENANT FEATURES TABLE
# =============================================================

class TenantFeature(Base):
    """Per-company module entitlement."""
    __tablename__ = "tenant_features"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(String(36), nullable=False)
    feature_key = Column(String(50), nullable=False)
    enabled = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("company_id", "feature_key", name="uq_tenant_feature"),
    )
