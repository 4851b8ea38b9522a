"""
Tests for the AlertEvaluator.

Tests cover:
- Severity precedence (first match wins)
- Unknown MTBF never triggers on time
- Alert type, priority and immediate-action flag
- Verdict ranking
- Full assess/evaluate path
"""

import pytest

from predictive_maintenance import (
    AlertEvaluator,
    AlertSeverity,
    AlertType,
    ComponentUsage,
    Criticality,
    EvaluationConfig,
    InventorySnapshot,
    MonitoredComponent,
    StockStatus,
    alert_priority,
    decide_severity,
    needs_immediate_action,
    rank_verdicts,
)
from predictive_maintenance.evaluator import decide_alert_type


A, B, C = Criticality.A, Criticality.B, Criticality.C


# =============================================================
# TEST: decide_severity
# =============================================================

class TestDecideSeverity:
    """Test the severity precedence table."""

    @pytest.mark.parametrize(
        "criticality,days,stock_status,reorder,expected",
        [
            (A, 5, StockStatus.HEALTHY, False, AlertSeverity.CRITICAL),
            (B, 7, StockStatus.HEALTHY, False, AlertSeverity.CRITICAL),
            (A, 8, StockStatus.HEALTHY, False, AlertSeverity.WARNING),
            (A, 30, StockStatus.HEALTHY, False, AlertSeverity.WARNING),
            (A, 31, StockStatus.HEALTHY, False, None),
            (A, None, StockStatus.OUT_OF_STOCK, True, AlertSeverity.CRITICAL),
            (B, 200, StockStatus.CRITICAL, True, AlertSeverity.CRITICAL),
            (B, 200, StockStatus.LOW, True, AlertSeverity.WARNING),
            (A, 31, StockStatus.HEALTHY, True, AlertSeverity.INFO),
        ],
    )
    def test_precedence(self, criticality, days, stock_status, reorder, expected):
        assert decide_severity(criticality, days, stock_status, reorder) == expected

    def test_minor_component_never_critical(self):
        """C components are never CRITICAL; severe stock alone only reaches INFO."""
        assert decide_severity(C, 1, StockStatus.HEALTHY, False) == AlertSeverity.WARNING
        assert decide_severity(C, None, StockStatus.OUT_OF_STOCK, True) == AlertSeverity.INFO
        assert decide_severity(C, 90, StockStatus.CRITICAL, True) == AlertSeverity.INFO
        assert decide_severity(C, None, StockStatus.OUT_OF_STOCK, False) == AlertSeverity.INFO
        assert decide_severity(C, 20, StockStatus.CRITICAL, True) == AlertSeverity.WARNING

    def test_unknown_days_do_not_trigger(self):
        """No MTBF and healthy stock produces no alert."""
        assert decide_severity(A, None, StockStatus.HEALTHY, False) is None

    def test_custom_thresholds(self):
        config = EvaluationConfig(critical_days=14, warning_days=60)

        assert decide_severity(A, 10, StockStatus.HEALTHY, False, config) == AlertSeverity.CRITICAL
        assert decide_severity(A, 45, StockStatus.HEALTHY, False, config) == AlertSeverity.WARNING


class TestAlertTypeAndPriority:
    """Test classification helpers."""

    def test_stock_condition_wins_type(self):
        assert decide_alert_type(3, StockStatus.OUT_OF_STOCK) == AlertType.STOCK_OUT_CRITICAL

    def test_time_based_types(self):
        assert decide_alert_type(3, StockStatus.HEALTHY) == AlertType.URGENT_MTBF
        assert decide_alert_type(20, StockStatus.HEALTHY) == AlertType.WARNING_MTBF
        assert decide_alert_type(None, StockStatus.LOW) == AlertType.REORDER_RECOMMENDED

    def test_priority(self):
        assert alert_priority(A, AlertSeverity.CRITICAL) == 1
        assert alert_priority(B, AlertSeverity.WARNING) == 3
        assert alert_priority(C, AlertSeverity.INFO) == 5

    def test_needs_immediate_action(self):
        assert needs_immediate_action(AlertSeverity.CRITICAL, 5, 7)
        assert not needs_immediate_action(AlertSeverity.CRITICAL, 10, 7)
        assert not needs_immediate_action(AlertSeverity.CRITICAL, None, 7)
        assert not needs_immediate_action(AlertSeverity.WARNING, 1, 7)


# =============================================================
# TEST: AlertEvaluator
# =============================================================

def _component(criticality=A, mtbf=500.0, name="Hydraulic pump"):
    return MonitoredComponent(
        component_id="c1",
        company_id="acme",
        name=name,
        part_number="HP-100",
        criticality=criticality,
        mtbf=mtbf,
        linked_inventory_item_id="item-1",
    )


class TestAlertEvaluator:
    """Test the full evaluation path."""

    def test_low_stock_long_lead_time(self):
        """A, MTBF 500, 45 days lead time, 3 in stock."""
        evaluator = AlertEvaluator()

        assessment = evaluator.assess(
            _component(),
            ComponentUsage(operating_hours=0.0),
            InventorySnapshot("item-1", current_stock=3, lead_time_days=45),
        )
        verdict = evaluator.evaluate(assessment)

        assert assessment.stock.minimum_stock == 12
        assert assessment.stock_status == StockStatus.LOW
        assert assessment.days_until_maintenance == 42
        assert verdict.severity == AlertSeverity.WARNING
        assert verdict.priority == 2
        assert verdict.inventory_item_id == "item-1"
        assert "Hydraulic pump" in verdict.message

    def test_imminent_failure(self):
        evaluator = AlertEvaluator()

        verdict = evaluator.evaluate_component(
            _component(mtbf=1000.0),
            ComponentUsage(operating_hours=950.0, asset_id="asset-9", asset_count=2),
            InventorySnapshot("item-1", current_stock=10, lead_time_days=7),
        )

        assert verdict.severity == AlertSeverity.CRITICAL
        assert verdict.alert_type == AlertType.URGENT_MTBF
        assert verdict.days_until_maintenance == 5
        assert verdict.asset_id == "asset-9"
        assert verdict.recommendation

    def test_healthy_component_has_no_verdict(self):
        evaluator = AlertEvaluator()

        verdict = evaluator.evaluate_component(
            _component(mtbf=7200.0),
            ComponentUsage(operating_hours=0.0),
            InventorySnapshot("item-1", current_stock=50, lead_time_days=7),
        )

        assert verdict is None

    def test_missing_mtbf_with_healthy_stock_has_no_verdict(self):
        evaluator = AlertEvaluator()

        verdict = evaluator.evaluate_component(
            _component(mtbf=None),
            ComponentUsage(operating_hours=5000.0),
            InventorySnapshot("item-1", current_stock=50, lead_time_days=7),
        )

        assert verdict is None

    def test_missing_criticality_defaults_to_c(self):
        evaluator = AlertEvaluator()

        verdict = evaluator.evaluate_component(
            _component(criticality=None),
            ComponentUsage(operating_hours=0.0),
            InventorySnapshot("item-1", current_stock=0, lead_time_days=7),
        )

        assert verdict.criticality == Criticality.C
        assert verdict.severity == AlertSeverity.INFO
        assert verdict.stock_status == StockStatus.OUT_OF_STOCK

    def test_missing_inventory_counts_as_empty(self):
        evaluator = AlertEvaluator()

        assessment = evaluator.assess(_component(), ComponentUsage(operating_hours=0.0), None)

        assert assessment.current_stock == 0
        assert assessment.lead_time_days == 7
        assert assessment.stock_status == StockStatus.OUT_OF_STOCK


class TestRankVerdicts:
    """Test verdict ordering."""

    def test_priority_then_days_unknown_last(self, verdict_for):
        critical = verdict_for(AlertSeverity.CRITICAL, "c-crit")
        warning = verdict_for(AlertSeverity.WARNING, "c-warn")
        info = verdict_for(AlertSeverity.INFO, "c-info")

        ranked = rank_verdicts([info, warning, critical])

        assert [v.component_id for v in ranked] == ["c-crit", "c-warn", "c-info"]
