"""
Predictive Maintenance - Collaborator Gateways.

============================================================
PURPOSE
============================================================
Read access to the data the engine consumes but does not own:

1. Component catalog (criticality, MTBF, inventory link)
2. Asset records and the component <-> asset link table
3. Inventory current stock (summed over stock locations)
4. Per-tenant feature flags

plus the single write the engine performs on collaborator
data: pushing recalculated min stock / reorder point back to
the inventory item.

============================================================
DESIGN PRINCIPLES
============================================================
- Abstract interfaces, SQL implementations bound to one session
- Tenant id is always an explicit argument
- Rows are converted to frozen dataclasses at the boundary

============================================================
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional
import logging

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import DataSourceError
from database.models import (
    Asset,
    Component,
    ComponentAssetLink,
    InventoryItem,
    StockLocation,
    TenantFeature,
)

from .types import (
    AssetUsage,
    Criticality,
    InventorySnapshot,
    MonitoredComponent,
)


logger = logging.getLogger(__name__)


PREDICTIVE_MAINTENANCE_FEATURE = "PREDICTIVE_MAINTENANCE"


# =============================================================
# INTERFACES
# =============================================================


class MaintenanceDataSource(ABC):
    """Catalog, asset and inventory lookups for one tenant pass."""

    @abstractmethod
    async def list_monitored_components(self, company_id: str) -> List[MonitoredComponent]:
        """Active components with a linked inventory item."""
        pass

    @abstractmethod
    async def get_component(self, company_id: str, component_id: str) -> Optional[MonitoredComponent]:
        pass

    @abstractmethod
    async def get_linked_assets(self, component_id: str) -> List[AssetUsage]:
        """Active assets with an active link to the component."""
        pass

    @abstractmethod
    async def get_inventory_snapshot(self, inventory_item_id: str) -> Optional[InventorySnapshot]:
        pass

    @abstractmethod
    async def update_stock_levels(
        self,
        inventory_item_id: str,
        minimum_stock: int,
        reorder_point: int,
    ) -> bool:
        """Write recalculated levels. Returns False if the item is gone."""
        pass


class FeatureFlagProvider(ABC):
    """Per-tenant module entitlement, evaluated outside the engine."""

    @abstractmethod
    async def is_enabled(self, company_id: str, feature_key: str = PREDICTIVE_MAINTENANCE_FEATURE) -> bool:
        pass

    @abstractmethod
    async def list_enabled_companies(self, feature_key: str = PREDICTIVE_MAINTENANCE_FEATURE) -> List[str]:
        pass


# =============================================================
# SQL IMPLEMENTATIONS
# =============================================================


def _to_monitored_component(row: Component) -> MonitoredComponent:
    return MonitoredComponent(
        component_id=row.id,
        company_id=row.company_id,
        name=row.name,
        part_number=row.part_number,
        criticality=Criticality.parse(row.criticality) if row.criticality else None,
        mtbf=row.mtbf,
        mttr=row.mttr,
        life_expectancy=row.life_expectancy,
        linked_inventory_item_id=row.inventory_item_id,
    )


class SqlMaintenanceDataSource(MaintenanceDataSource):
    """MaintenanceDataSource over the platform tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_monitored_components(self, company_id: str) -> List[MonitoredComponent]:
        stmt = (
            select(Component)
            .where(
                and_(
                    Component.company_id == company_id,
                    Component.is_active.is_(True),
                    Component.inventory_item_id.is_not(None),
                )
            )
            .order_by(Component.name)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise DataSourceError(
                f"Failed to list components: {e}", source="components", entity_id=company_id, cause=e
            ) from e
        return [_to_monitored_component(row) for row in result.scalars().all()]

    async def get_component(self, company_id: str, component_id: str) -> Optional[MonitoredComponent]:
        stmt = select(Component).where(
            and_(Component.id == component_id, Component.company_id == company_id)
        )
        try:
            row = (await self.session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DataSourceError(
                f"Failed to load component: {e}", source="components", entity_id=component_id, cause=e
            ) from e
        return _to_monitored_component(row) if row else None

    async def get_linked_assets(self, component_id: str) -> List[AssetUsage]:
        stmt = (
            select(Asset)
            .join(ComponentAssetLink, ComponentAssetLink.asset_id == Asset.id)
            .where(
                and_(
                    ComponentAssetLink.component_id == component_id,
                    ComponentAssetLink.is_active.is_(True),
                    Asset.is_active.is_(True),
                )
            )
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise DataSourceError(
                f"Failed to load linked assets: {e}", source="component_asset_links", entity_id=component_id, cause=e
            ) from e
        return [
            AssetUsage(
                asset_id=asset.id,
                manual_operating_hours=asset.manual_operating_hours,
                purchase_date=asset.purchase_date,
                registration_date=asset.registration_date,
            )
            for asset in result.scalars().all()
        ]

    async def get_inventory_snapshot(self, inventory_item_id: str) -> Optional[InventorySnapshot]:
        try:
            item = await self.session.get(InventoryItem, inventory_item_id)
            if item is None:
                return None
            stock_stmt = select(
                func.coalesce(func.sum(StockLocation.available_quantity), 0)
            ).where(StockLocation.inventory_item_id == inventory_item_id)
            current_stock = (await self.session.execute(stock_stmt)).scalar_one()
        except SQLAlchemyError as e:
            raise DataSourceError(
                f"Failed to load inventory: {e}", source="inventory_items", entity_id=inventory_item_id, cause=e
            ) from e
        return InventorySnapshot(
            inventory_item_id=item.id,
            current_stock=int(current_stock or 0),
            lead_time_days=item.lead_time_days,
        )

    async def update_stock_levels(
        self,
        inventory_item_id: str,
        minimum_stock: int,
        reorder_point: int,
    ) -> bool:
        stmt = (
            update(InventoryItem)
            .where(InventoryItem.id == inventory_item_id)
            .values(min_stock=minimum_stock, reorder_point=reorder_point)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise DataSourceError(
                f"Failed to update stock levels: {e}", source="inventory_items", entity_id=inventory_item_id, cause=e
            ) from e
        return result.rowcount > 0


class SqlFeatureFlagProvider(FeatureFlagProvider):
    """Feature flags stored in tenant_features."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def is_enabled(self, company_id: str, feature_key: str = PREDICTIVE_MAINTENANCE_FEATURE) -> bool:
        stmt = select(TenantFeature.enabled).where(
            and_(
                TenantFeature.company_id == company_id,
                TenantFeature.feature_key == feature_key,
            )
        )
        try:
            enabled = (await self.session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DataSourceError(
                f"Failed to read feature flag {feature_key}: {e}", source="tenant_features", entity_id=company_id, cause=e
            ) from e
        return bool(enabled)

    async def list_enabled_companies(self, feature_key: str = PREDICTIVE_MAINTENANCE_FEATURE) -> List[str]:
        stmt = (
            select(TenantFeature.company_id)
            .where(
                and_(
                    TenantFeature.feature_key == feature_key,
                    TenantFeature.enabled.is_(True),
                )
            )
            .order_by(TenantFeature.company_id)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise DataSourceError(f"Failed to list tenants for {feature_key}: {e}", source="tenant_features", cause=e) from e
        return list(result.scalars().all())


class StaticFeatureFlagProvider(FeatureFlagProvider):
    """
    Fixed set of entitled tenants.

    Used by the CLI when tenants are named explicitly and by tests.
    """

    def __init__(self, enabled_companies: Iterable[str] = (), enable_all: bool = False):
        self._enabled = set(enabled_companies)
        self._enable_all = enable_all

    async def is_enabled(self, company_id: str, feature_key: str = PREDICTIVE_MAINTENANCE_FEATURE) -> bool:
        return self._enable_all or company_id in self._enabled

    async def list_enabled_companies(self, feature_key: str = PREDICTIVE_MAINTENANCE_FEATURE) -> List[str]:
        return sorted(self._enabled)
