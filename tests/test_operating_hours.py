"""
Tests for OperatingHoursResolver.

Tests cover:
- Manual hour counters used verbatim
- Date-based estimate (whole days x 12h)
- Maximum across linked assets
- Components without installations
- Lookup failures
"""

from datetime import timedelta
from typing import Dict, List

import pytest

from core.exceptions import DataSourceError
from predictive_maintenance import (
    AssetUsage,
    MaintenanceDataSource,
    OperatingHoursResolutionError,
    OperatingHoursResolver,
)


class FakeSource(MaintenanceDataSource):
    """In-memory source with a link table and optional failures."""

    def __init__(self, links: Dict[str, List[AssetUsage]], failing: bool = False):
        self.links = links
        self.failing = failing

    async def list_monitored_components(self, company_id):
        return []

    async def get_component(self, company_id, component_id):
        return None

    async def get_linked_assets(self, component_id):
        if self.failing:
            raise DataSourceError("asset service unavailable", source="assets", entity_id=component_id)
        return self.links.get(component_id, [])

    async def get_inventory_snapshot(self, inventory_item_id):
        return None

    async def update_stock_levels(self, inventory_item_id, minimum_stock, reorder_point):
        return False


# =============================================================
# TEST: asset_operating_hours
# =============================================================

class TestAssetOperatingHours:
    """Test per-asset usage."""

    def test_manual_hours_used_verbatim(self, clock):
        resolver = OperatingHoursResolver(FakeSource({}), clock=clock)
        asset = AssetUsage("a1", manual_operating_hours=1234.5, purchase_date=clock.now() - timedelta(days=400))

        assert resolver.asset_operating_hours(asset) == 1234.5

    def test_days_since_purchase_times_twelve(self, clock):
        resolver = OperatingHoursResolver(FakeSource({}), clock=clock)
        asset = AssetUsage("a1", purchase_date=clock.now() - timedelta(days=10))

        assert resolver.asset_operating_hours(asset) == 120.0

    def test_zero_manual_hours_fall_back_to_dates(self, clock):
        resolver = OperatingHoursResolver(FakeSource({}), clock=clock)
        asset = AssetUsage("a1", manual_operating_hours=0, registration_date=clock.now() - timedelta(days=2))

        assert resolver.asset_operating_hours(asset) == 24.0

    def test_purchase_date_preferred_over_registration(self, clock):
        resolver = OperatingHoursResolver(FakeSource({}), clock=clock)
        asset = AssetUsage(
            "a1",
            purchase_date=clock.now() - timedelta(days=5),
            registration_date=clock.now() - timedelta(days=50),
        )

        assert resolver.asset_operating_hours(asset) == 60.0

    def test_partial_day_is_not_counted(self, clock):
        resolver = OperatingHoursResolver(FakeSource({}), clock=clock)
        asset = AssetUsage("a1", purchase_date=clock.now() - timedelta(hours=6))

        assert resolver.asset_operating_hours(asset) == 0.0

    def test_future_date_is_zero(self, clock):
        resolver = OperatingHoursResolver(FakeSource({}), clock=clock)
        asset = AssetUsage("a1", purchase_date=clock.now() + timedelta(days=3))

        assert resolver.asset_operating_hours(asset) == 0.0

    def test_no_dates_is_zero(self, clock):
        resolver = OperatingHoursResolver(FakeSource({}), clock=clock)
        assert resolver.asset_operating_hours(AssetUsage("a1")) == 0.0


# =============================================================
# TEST: component usage
# =============================================================

class TestComponentUsage:
    """Test aggregation across installations."""

    @pytest.mark.asyncio
    async def test_maximum_across_assets(self, clock):
        source = FakeSource({
            "c1": [
                AssetUsage("light", manual_operating_hours=100),
                AssetUsage("heavy", manual_operating_hours=900),
                AssetUsage("dated", purchase_date=clock.now() - timedelta(days=30)),
            ]
        })
        resolver = OperatingHoursResolver(source, clock=clock)

        usage = await resolver.resolve_component_usage("c1")

        assert usage.operating_hours == 900
        assert usage.asset_id == "heavy"
        assert usage.asset_count == 3

    @pytest.mark.asyncio
    async def test_no_links_is_zero(self, clock):
        resolver = OperatingHoursResolver(FakeSource({}), clock=clock)

        usage = await resolver.resolve_component_usage("orphan")

        assert usage.operating_hours == 0.0
        assert usage.asset_id is None
        assert await resolver.component_operating_hours("orphan") == 0.0

    @pytest.mark.asyncio
    async def test_lookup_failure_is_reported_per_component(self, clock):
        resolver = OperatingHoursResolver(FakeSource({}, failing=True), clock=clock)

        with pytest.raises(OperatingHoursResolutionError) as exc_info:
            await resolver.resolve_component_usage("c1")

        assert exc_info.value.component_id == "c1"
        assert exc_info.value.recoverable
