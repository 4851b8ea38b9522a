"""
Predictive Maintenance - Operating Hours Resolver.

============================================================
PURPOSE
============================================================
Determines how many hours a component has been in service.

Per asset:
- manual_operating_hours, verbatim, when recorded and > 0
- otherwise whole days since purchase (or registration)
  multiplied by the daily usage heuristic

Per component:
- the maximum over every active linked asset, so the most
  heavily used installation drives the replacement signal
- 0 when the component is not installed anywhere

============================================================
"""

from typing import Iterable, Optional
import logging

from core.clock import ClockProtocol, SystemClock, whole_days_between
from core.exceptions import DataSourceError

from .config import ProjectionConfig
from .sources import MaintenanceDataSource
from .types import AssetUsage, ComponentUsage, OperatingHoursResolutionError


logger = logging.getLogger(__name__)


class OperatingHoursResolver:
    """Resolves asset and component usage in hours."""

    def __init__(
        self,
        source: MaintenanceDataSource,
        clock: Optional[ClockProtocol] = None,
        config: Optional[ProjectionConfig] = None,
    ):
        self.source = source
        self.clock = clock or SystemClock()
        self.config = config or ProjectionConfig()

    def asset_operating_hours(self, asset: AssetUsage) -> float:
        """Usage of one asset in hours."""
        if asset.manual_operating_hours is not None and asset.manual_operating_hours > 0:
            return asset.manual_operating_hours

        anchor = asset.purchase_date or asset.registration_date
        if anchor is None:
            return 0.0

        days = whole_days_between(anchor, self.clock.now())
        return float(days * self.config.daily_usage_hours)

    def aggregate(self, assets: Iterable[AssetUsage]) -> ComponentUsage:
        """Maximum usage across installations, with the asset that produced it."""
        best_hours = 0.0
        best_asset: Optional[str] = None
        count = 0

        for asset in assets:
            count += 1
            hours = self.asset_operating_hours(asset)
            if best_asset is None or hours > best_hours:
                best_hours = hours
                best_asset = asset.asset_id

        return ComponentUsage(operating_hours=best_hours, asset_id=best_asset, asset_count=count)

    async def resolve_component_usage(self, component_id: str) -> ComponentUsage:
        """
        Aggregated usage for a component.

        Raises:
            OperatingHoursResolutionError: if the asset lookup fails
        """
        try:
            assets = await self.source.get_linked_assets(component_id)
        except DataSourceError as e:
            logger.error(f"Operating hours lookup failed for component {component_id}: {e.message}")
            raise OperatingHoursResolutionError(
                component_id, f"Could not resolve operating hours: {e.message}", cause=e
            ) from e

        return self.aggregate(assets)

    async def component_operating_hours(self, component_id: str) -> float:
        usage = await self.resolve_component_usage(component_id)
        return usage.operating_hours
