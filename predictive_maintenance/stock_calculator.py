"""
Predictive Maintenance - Stock Requirement Calculator.

============================================================
PURPOSE
============================================================
Derives minimum, safety, reorder and recommended stock
counts for a component from its criticality, MTBF and the
resupply lead time of its inventory item.

============================================================
FORMULA
============================================================
    factor           = A:3, B:2, C:1 (missing -> C)
    monthly          = ceil(720 / mtbf), or 1 without MTBF
    buffer_months    = max(1, ceil(lead_time / 30))
    minimum          = ceil(factor * monthly * buffer_months)
    safety           = ceil(minimum * multiplier)
    lead_time_usage  = ceil(monthly * lead_time / 30)
    reorder_point    = lead_time_usage + safety
    recommended      = reorder_point + minimum

Every rounding step is a ceiling so fractional demand is
never under-provisioned.

============================================================
"""

import math
from typing import Optional, Union

from .config import StockConfig
from .types import (
    CRITICALITY_FACTORS,
    Criticality,
    MonitoredComponent,
    StockCalculationResult,
)


def criticality_factor(criticality: Optional[Union[Criticality, str]]) -> int:
    """Stock multiplier for a criticality class (missing -> C)."""
    return CRITICALITY_FACTORS[Criticality.parse(criticality)]


def monthly_consumption(mtbf: Optional[float], hours_per_month: float = 720.0) -> int:
    """Expected failures per month, at least one without MTBF data."""
    if mtbf is None or mtbf <= 0:
        return 1
    return math.ceil(hours_per_month / mtbf)


def calculate_minimum_stock(
    criticality: Optional[Union[Criticality, str]],
    mtbf: Optional[float],
    lead_time_days: int,
    safety_stock_multiplier: float = 1.5,
    hours_per_month: float = 720.0,
    days_per_month: int = 30,
) -> StockCalculationResult:
    """
    Compute stock requirements for one component.

    Non-positive lead times are clamped to the one-month buffer
    and contribute no lead-time usage.

    Args:
        criticality: A, B or C (None treated as C)
        mtbf: Mean time between failures in hours
        lead_time_days: Resupply lead time of the inventory item
        safety_stock_multiplier: Safety stock as a multiple of minimum

    Returns:
        StockCalculationResult with non-negative integer fields
    """
    factor = criticality_factor(criticality)
    monthly = monthly_consumption(mtbf, hours_per_month)
    lead_time = max(lead_time_days or 0, 0)

    buffer_months = max(1, math.ceil(lead_time / days_per_month))
    minimum = math.ceil(factor * monthly * buffer_months)
    safety = math.ceil(minimum * safety_stock_multiplier)
    lead_time_usage = math.ceil(monthly * lead_time / days_per_month)
    reorder_point = lead_time_usage + safety
    recommended = reorder_point + minimum

    return StockCalculationResult(
        minimum_stock=minimum,
        safety_stock=safety,
        reorder_point=reorder_point,
        recommended_stock=recommended,
        monthly_consumption=monthly,
        criticality_factor=factor,
        lead_time_buffer_months=buffer_months,
        usage_during_lead_time=lead_time_usage,
    )


class StockRequirementCalculator:
    """Configured wrapper around calculate_minimum_stock()."""

    def __init__(self, config: Optional[StockConfig] = None):
        self.config = config or StockConfig()

    def resolve_lead_time(self, lead_time_days: Optional[int]) -> int:
        """Lead time of the inventory item, or the configured default."""
        if lead_time_days is None:
            return self.config.default_lead_time_days
        return lead_time_days

    def calculate(
        self,
        component: MonitoredComponent,
        lead_time_days: Optional[int],
    ) -> StockCalculationResult:
        return calculate_minimum_stock(
            criticality=component.criticality,
            mtbf=component.mtbf,
            lead_time_days=self.resolve_lead_time(lead_time_days),
            safety_stock_multiplier=self.config.safety_stock_multiplier,
            hours_per_month=self.config.hours_per_month,
            days_per_month=self.config.days_per_month,
        )
