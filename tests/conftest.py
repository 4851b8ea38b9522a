"""
Shared fixtures for the maintenance engine tests.

Integration tests run against a throwaway SQLite file per test
(aiosqlite), seeded through PlatformSeeder.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

import pytest
from sqlalchemy import delete

from core.clock import MockClock
from database.engine import create_all_tables, create_database_engine, create_session_factory
from database.models import (
    Asset,
    Component,
    ComponentAssetLink,
    InventoryItem,
    StockLocation,
    TenantFeature,
)
from predictive_maintenance import (
    AlertEvaluator,
    AlertSeverity,
    ComponentUsage,
    Criticality,
    InventorySnapshot,
    MaintenanceEngineConfig,
    MonitoredComponent,
    PREDICTIVE_MAINTENANCE_FEATURE,
    ScanConfig,
)


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================
# CLOCK / CONFIG
# =============================================================

@pytest.fixture
def clock():
    """Mock clock pinned to NOW."""
    return MockClock(NOW)


@pytest.fixture
def config():
    """Default config with sequential component evaluation."""
    return MaintenanceEngineConfig(scan=ScanConfig(max_concurrency=1))


# =============================================================
# DATABASE
# =============================================================

@pytest.fixture
async def engine(tmp_path):
    engine = create_database_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await create_all_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


class PlatformSeeder:
    """Writes collaborator rows (catalog, assets, inventory, flags)."""

    def __init__(self, session_factory, clock):
        self.session_factory = session_factory
        self.clock = clock

    async def _add(self, *rows) -> None:
        async with self.session_factory() as session:
            session.add_all(rows)
            await session.commit()

    async def enable(self, company_id: str, enabled: bool = True) -> None:
        await self._add(
            TenantFeature(company_id=company_id, feature_key=PREDICTIVE_MAINTENANCE_FEATURE, enabled=enabled)
        )

    async def asset(
        self,
        company_id: str,
        manual_operating_hours: Optional[float] = None,
        purchase_date: Optional[datetime] = None,
        is_active: bool = True,
    ) -> str:
        asset = Asset(
            company_id=company_id,
            name="Press line",
            manual_operating_hours=manual_operating_hours,
            purchase_date=purchase_date,
            registration_date=self.clock.now(),
            is_active=is_active,
        )
        await self._add(asset)
        return asset.id

    async def component(
        self,
        company_id: str,
        name: str = "Hydraulic pump",
        criticality: Optional[str] = "A",
        mtbf: Optional[float] = 500.0,
        lead_time_days: Optional[int] = 45,
        stock: Iterable[int] = (3,),
        asset_ids: Iterable[str] = (),
        with_inventory: bool = True,
    ) -> str:
        """Component with its inventory item, stock locations and asset links."""
        rows = []
        item_id = None
        if with_inventory:
            item = InventoryItem(company_id=company_id, name=f"{name} spare", lead_time_days=lead_time_days)
            await self._add(item)
            item_id = item.id
            rows.extend(
                StockLocation(inventory_item_id=item_id, location_name=f"Bin {i}", available_quantity=qty)
                for i, qty in enumerate(stock)
            )

        component = Component(
            company_id=company_id,
            name=name,
            part_number=f"PN-{name[:3].upper()}",
            criticality=criticality,
            mtbf=mtbf,
            inventory_item_id=item_id,
        )
        rows.append(component)
        await self._add(*rows)

        for asset_id in asset_ids:
            await self._add(ComponentAssetLink(component_id=component.id, asset_id=asset_id))
        return component.id

    async def set_stock(self, component_id: str, quantity: int) -> None:
        """Replace every stock location of the component's item with one location."""
        async with self.session_factory() as session:
            component = await session.get(Component, component_id)
            await session.execute(
                delete(StockLocation).where(StockLocation.inventory_item_id == component.inventory_item_id)
            )
            session.add(
                StockLocation(inventory_item_id=component.inventory_item_id, available_quantity=quantity)
            )
            await session.commit()

    async def deactivate(self, component_id: str) -> None:
        async with self.session_factory() as session:
            component = await session.get(Component, component_id)
            component.is_active = False
            await session.commit()


@pytest.fixture
def seeder(session_factory, clock):
    return PlatformSeeder(session_factory, clock)


# =============================================================
# VERDICTS
# =============================================================

def _scenario(severity: Optional[AlertSeverity]):
    """(mtbf, operating_hours, stock) producing the requested severity for an A component."""
    if severity == AlertSeverity.CRITICAL:
        return 1000.0, 950.0, 10      # 5 days left
    if severity == AlertSeverity.WARNING:
        return 1000.0, 700.0, 10      # 25 days left
    if severity == AlertSeverity.INFO:
        return 7200.0, 0.0, 5         # at reorder point, healthy
    return 7200.0, 0.0, 10


@pytest.fixture
def verdict_for():
    """Build a real evaluator verdict for a component at a given severity."""
    evaluator = AlertEvaluator()

    def _build(severity: Optional[AlertSeverity], component_id: str = "comp-1", company_id: str = "acme"):
        mtbf, hours, stock = _scenario(severity)
        component = MonitoredComponent(
            component_id=component_id,
            company_id=company_id,
            name=f"Bearing {component_id}",
            part_number="BRG-6204",
            criticality=Criticality.A,
            mtbf=mtbf,
            linked_inventory_item_id=f"item-{component_id}",
        )
        return evaluator.evaluate_component(
            component,
            ComponentUsage(operating_hours=hours, asset_id="asset-1", asset_count=1),
            InventorySnapshot(inventory_item_id=f"item-{component_id}", current_stock=stock, lead_time_days=7),
        )

    return _build
