"""
Predictive Maintenance - Stock Status Classifier.

Maps current stock against the calculated minimum to a
StockStatus label. All comparisons are strict, a value sitting
exactly on a boundary lands in the less severe bucket.
"""

from .types import STOCK_STATUS_LABELS, StockStatus


CRITICAL_STOCK_RATIO = 0.25


def classify_stock(
    current_stock: int,
    minimum_stock: int,
    critical_ratio: float = CRITICAL_STOCK_RATIO,
) -> StockStatus:
    """
    Classify inventory sufficiency.

    - 0                              -> OUT_OF_STOCK
    - current < minimum * ratio      -> CRITICAL
    - current < minimum              -> LOW
    - otherwise                      -> HEALTHY
    """
    if current_stock <= 0:
        return StockStatus.OUT_OF_STOCK
    if current_stock < minimum_stock * critical_ratio:
        return StockStatus.CRITICAL
    if current_stock < minimum_stock:
        return StockStatus.LOW
    return StockStatus.HEALTHY


def is_below_minimum(current_stock: int, minimum_stock: int) -> bool:
    return current_stock < minimum_stock


def should_reorder(current_stock: int, reorder_point: int) -> bool:
    """Reaching the reorder point itself triggers a reorder."""
    return current_stock <= reorder_point


def stock_status_label(status: StockStatus) -> str:
    return STOCK_STATUS_LABELS[status]
