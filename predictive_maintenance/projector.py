"""
Predictive Maintenance - Maintenance Projector.

============================================================
PURPOSE
============================================================
Estimates the number of days until a component is likely to
need replacement:

    remaining = max(mtbf - operating_hours, 0)
    days      = ceil(remaining / daily_usage)

A component without MTBF has no finite estimate. The projector
returns None for it and callers must treat None as unknown,
never as zero days.

============================================================
"""

import math
from typing import Optional

from .config import ProjectionConfig


def days_until_maintenance(
    mtbf_hours: Optional[float],
    operating_hours: float,
    daily_usage_estimate: float = 12.0,
) -> Optional[int]:
    """
    Days of remaining useful life.

    Args:
        mtbf_hours: Mean time between failures (None or <= 0 = unknown)
        operating_hours: Hours already accumulated
        daily_usage_estimate: Assumed operating hours per day

    Returns:
        Whole days (ceiling), or None when unknown
    """
    if mtbf_hours is None or mtbf_hours <= 0:
        return None
    remaining = max(mtbf_hours - max(operating_hours, 0.0), 0.0)
    return math.ceil(remaining / daily_usage_estimate)


class MaintenanceProjector:
    """Projector bound to the configured usage heuristic."""

    def __init__(self, config: Optional[ProjectionConfig] = None):
        self.config = config or ProjectionConfig()

    def project(self, mtbf_hours: Optional[float], operating_hours: float) -> Optional[int]:
        return days_until_maintenance(
            mtbf_hours,
            operating_hours,
            daily_usage_estimate=self.config.daily_usage_hours,
        )
