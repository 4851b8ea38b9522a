"""
Tests for stock sizing, stock status classification and the
maintenance projector.

Tests cover:
- Minimum/safety/reorder/recommended formula
- Criticality defaults
- Lead time clamping
- Strict classification boundaries
- Remaining-life projection, unknown MTBF
"""

import pytest

from predictive_maintenance import (
    Criticality,
    MaintenanceProjector,
    MonitoredComponent,
    StockConfig,
    StockRequirementCalculator,
    StockStatus,
    calculate_minimum_stock,
    classify_stock,
    criticality_factor,
    days_until_maintenance,
    is_below_minimum,
    should_reorder,
)
from predictive_maintenance.config import ProjectionConfig


# =============================================================
# TEST: calculate_minimum_stock
# =============================================================

class TestCalculateMinimumStock:
    """Test the stock sizing formula."""

    def test_critical_component_with_mtbf(self):
        """A, MTBF 360h, 30 day lead time."""
        result = calculate_minimum_stock("A", 360, 30)

        assert result.criticality_factor == 3
        assert result.monthly_consumption == 2
        assert result.lead_time_buffer_months == 1
        assert result.minimum_stock == 6
        assert result.safety_stock == 9
        assert result.usage_during_lead_time == 2
        assert result.reorder_point == 11
        assert result.recommended_stock == 17

    def test_missing_criticality_and_mtbf(self):
        """No criticality, no MTBF, 10 day lead time falls back to C and 1/month."""
        result = calculate_minimum_stock(None, None, 10)

        assert result.criticality_factor == 1
        assert result.monthly_consumption == 1
        assert result.minimum_stock == 1
        assert result.safety_stock == 2
        assert result.usage_during_lead_time == 1
        assert result.reorder_point == 3
        assert result.recommended_stock == 4

    def test_long_lead_time_extends_buffer(self):
        """45 days of lead time needs two months of buffer."""
        result = calculate_minimum_stock(Criticality.A, 500, 45)

        assert result.monthly_consumption == 2
        assert result.lead_time_buffer_months == 2
        assert result.minimum_stock == 12
        assert result.safety_stock == 18
        assert result.usage_during_lead_time == 3
        assert result.reorder_point == 21
        assert result.recommended_stock == 33

    def test_zero_mtbf_treated_as_missing(self):
        assert calculate_minimum_stock("B", 0, 30).monthly_consumption == 1

    def test_zero_lead_time_keeps_one_month_buffer(self):
        result = calculate_minimum_stock("B", 720, 0)

        assert result.lead_time_buffer_months == 1
        assert result.usage_during_lead_time == 0
        assert result.minimum_stock == 2

    def test_negative_lead_time_is_clamped(self):
        assert calculate_minimum_stock("B", 720, -5) == calculate_minimum_stock("B", 720, 0)

    def test_custom_safety_multiplier(self):
        result = calculate_minimum_stock("A", 360, 30, safety_stock_multiplier=2.0)
        assert result.safety_stock == 12

    @pytest.mark.parametrize("criticality", ["A", "B", "C", None])
    @pytest.mark.parametrize("mtbf", [None, 50, 720, 10000])
    @pytest.mark.parametrize("lead_time", [0, 7, 31, 90])
    def test_levels_are_ordered(self, criticality, mtbf, lead_time):
        """recommended >= reorder >= safety >= 0 for every input."""
        result = calculate_minimum_stock(criticality, mtbf, lead_time)

        assert result.recommended_stock >= result.reorder_point >= result.safety_stock >= 0
        assert result.minimum_stock >= 1


class TestCriticalityFactor:
    """Test criticality factor lookup."""

    def test_factor_ordering(self):
        assert criticality_factor("A") > criticality_factor("B") > criticality_factor("C")

    def test_lowercase_is_accepted(self):
        assert criticality_factor("b") == 2

    def test_unknown_defaults_to_c(self):
        assert criticality_factor("Z") == 1
        assert criticality_factor(None) == 1


class TestStockRequirementCalculator:
    """Test the configured calculator wrapper."""

    def test_missing_lead_time_uses_default(self):
        calculator = StockRequirementCalculator()
        assert calculator.resolve_lead_time(None) == 7
        assert calculator.resolve_lead_time(21) == 21

    def test_calculate_uses_component_fields(self):
        calculator = StockRequirementCalculator(StockConfig(default_lead_time_days=30))
        component = MonitoredComponent(
            component_id="c1", company_id="acme", name="Seal", criticality=Criticality.A, mtbf=360.0,
        )

        result = calculator.calculate(component, None)

        assert result.minimum_stock == 6
        assert result.recommended_stock == 17


# =============================================================
# TEST: classify_stock
# =============================================================

class TestClassifyStock:
    """Test stock status boundaries."""

    def test_zero_is_out_of_stock(self):
        assert classify_stock(0, 12) == StockStatus.OUT_OF_STOCK

    def test_zero_minimum_still_out_of_stock(self):
        assert classify_stock(0, 0) == StockStatus.OUT_OF_STOCK

    def test_exact_quarter_is_not_critical(self):
        """3 == 12 * 0.25 lands in LOW, comparisons are strict."""
        assert classify_stock(3, 12) == StockStatus.LOW

    def test_below_quarter_is_critical(self):
        assert classify_stock(2, 12) == StockStatus.CRITICAL

    def test_just_below_minimum_is_low(self):
        assert classify_stock(11, 12) == StockStatus.LOW

    def test_at_minimum_is_healthy(self):
        assert classify_stock(12, 12) == StockStatus.HEALTHY

    def test_recommended_level_is_healthy(self):
        result = calculate_minimum_stock("A", 500, 45)
        assert classify_stock(result.recommended_stock, result.minimum_stock) == StockStatus.HEALTHY

    def test_custom_ratio(self):
        assert classify_stock(5, 10, critical_ratio=0.6) == StockStatus.CRITICAL


class TestStockPredicates:
    """Test reorder helpers."""

    def test_is_below_minimum_is_strict(self):
        assert is_below_minimum(11, 12)
        assert not is_below_minimum(12, 12)

    def test_reaching_reorder_point_triggers_reorder(self):
        assert should_reorder(21, 21)
        assert should_reorder(20, 21)
        assert not should_reorder(22, 21)


# =============================================================
# TEST: projector
# =============================================================

class TestDaysUntilMaintenance:
    """Test remaining-life projection."""

    def test_ceiling_of_remaining_days(self):
        assert days_until_maintenance(1000, 950) == 5

    def test_new_component(self):
        assert days_until_maintenance(1000, 0) == 84

    def test_overdue_component_is_zero(self):
        assert days_until_maintenance(1000, 2000) == 0

    def test_missing_mtbf_is_unknown(self):
        """Unknown must stay None, never zero days."""
        assert days_until_maintenance(None, 100) is None
        assert days_until_maintenance(0, 0) is None

    def test_custom_daily_usage(self):
        assert days_until_maintenance(240, 0, daily_usage_estimate=24) == 10

    def test_projector_uses_config(self):
        projector = MaintenanceProjector(ProjectionConfig(daily_usage_hours=8.0))
        assert projector.project(80, 0) == 10
        assert projector.project(None, 0) is None
