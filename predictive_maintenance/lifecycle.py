"""
Predictive Maintenance - Alert Lifecycle Manager.

============================================================
PURPOSE
============================================================
Reconciles evaluator verdicts against persisted alert state
and applies user-initiated transitions.

STATE MACHINE:

         ┌──────► RESOLVED     (condition cleared / manual)
         │
    ACTIVE ─────► DISMISSED    (user, reason >= 10 chars)
         │
         └──────► AUTO_CLOSED  (not observed within TTL)

INVARIANTS:
- At most one ACTIVE alert per (company, component)
- Terminal states are final, their rows are never mutated
- A dismissed condition is not re-raised within the cool-down
  unless its severity escalates
- All transitions are logged

============================================================
"""

import logging
from datetime import timedelta
from typing import Dict, Optional, Set

from core.clock import ClockProtocol, SystemClock, ensure_utc

from .config import LifecycleConfig
from .models import MaintenanceAlertRecord
from .repository import MaintenanceAlertRepository
from .types import (
    AlertNotFoundError,
    AlertSeverity,
    AlertStatus,
    AlertValidationError,
    AlertVerdict,
    InvalidAlertTransitionError,
    ReconcileOutcome,
)


logger = logging.getLogger(__name__)


# ============================================================
# STATE TRANSITION RULES
# ============================================================

VALID_TRANSITIONS: Dict[AlertStatus, Set[AlertStatus]] = {
    AlertStatus.ACTIVE: {
        AlertStatus.RESOLVED,
        AlertStatus.DISMISSED,
        AlertStatus.AUTO_CLOSED,
    },
    # Terminal states - no transitions out
    AlertStatus.RESOLVED: set(),
    AlertStatus.DISMISSED: set(),
    AlertStatus.AUTO_CLOSED: set(),
}

AUTO_RESOLVE_NOTE = "Condition cleared on re-evaluation"


def can_transition(from_status: AlertStatus, to_status: AlertStatus) -> bool:
    return to_status in VALID_TRANSITIONS.get(from_status, set())


def validate_dismiss_reason(reason: Optional[str], min_length: int = 10) -> str:
    """
    Return the trimmed reason.

    Raises:
        AlertValidationError: reason missing or shorter than min_length
    """
    cleaned = (reason or "").strip()
    if len(cleaned) < min_length:
        raise AlertValidationError(
            f"Dismiss reason must be at least {min_length} characters",
            field="reason",
            actual=len(cleaned),
        )
    return cleaned


class AlertLifecycleManager:
    """
    State machine over MaintenanceAlertRecord rows.

    Bound to one repository (one session). The caller owns
    the transaction.
    """

    def __init__(
        self,
        repository: MaintenanceAlertRepository,
        clock: Optional[ClockProtocol] = None,
        config: Optional[LifecycleConfig] = None,
    ):
        self.repository = repository
        self.clock = clock or SystemClock()
        self.config = config or LifecycleConfig()

    # --------------------------------------------------------
    # SCAN RECONCILIATION
    # --------------------------------------------------------

    async def reconcile(
        self,
        company_id: str,
        component_id: str,
        verdict: Optional[AlertVerdict],
    ) -> ReconcileOutcome:
        """
        Apply one evaluation result.

        - verdict, no ACTIVE alert    -> create (unless cooling down)
        - verdict, ACTIVE alert       -> refresh in place
        - no verdict, ACTIVE alert    -> RESOLVED
        - no verdict, no ACTIVE alert -> nothing

        Raises:
            DuplicateActiveAlertError: a concurrent pass inserted first
        """
        now = self.clock.now()
        active = await self.repository.get_active_for_component(company_id, component_id)

        if verdict is None:
            if active is None:
                return ReconcileOutcome.UNCHANGED
            self._transition(active, AlertStatus.RESOLVED)
            active.resolved_at = now
            active.resolution_notes = AUTO_RESOLVE_NOTE
            active.updated_at = now
            await self.repository.flush()
            logger.info(f"Alert {active.id} auto-resolved for component {component_id}")
            return ReconcileOutcome.RESOLVED

        if active is not None:
            previous = active.severity
            self._apply_verdict(active, verdict)
            active.last_evaluated_at = now
            active.updated_at = now
            await self.repository.flush()
            if previous != active.severity:
                logger.info(
                    f"Alert {active.id} severity {previous} -> {active.severity} "
                    f"for component {component_id}"
                )
            return ReconcileOutcome.UPDATED

        if await self._in_dismiss_cooldown(company_id, component_id, verdict.severity):
            logger.debug(f"Alert for component {component_id} suppressed by dismissal cool-down")
            return ReconcileOutcome.SUPPRESSED

        record = MaintenanceAlertRecord(
            company_id=company_id,
            component_id=component_id,
            status=AlertStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
            last_evaluated_at=now,
        )
        self._apply_verdict(record, verdict)
        await self.repository.insert(record)
        logger.info(
            f"Alert {record.id} created for component {component_id} "
            f"severity={record.severity} type={record.alert_type}"
        )
        return ReconcileOutcome.CREATED

    async def _in_dismiss_cooldown(
        self,
        company_id: str,
        component_id: str,
        severity: AlertSeverity,
    ) -> bool:
        if self.config.dismiss_cooldown_hours <= 0:
            return False
        since = self.clock.now() - timedelta(hours=self.config.dismiss_cooldown_hours)
        dismissal = await self.repository.get_latest_dismissal(company_id, component_id, since)
        if dismissal is None:
            return False
        return severity.rank <= AlertSeverity(dismissal.severity).rank

    @staticmethod
    def _apply_verdict(record: MaintenanceAlertRecord, verdict: AlertVerdict) -> None:
        record.asset_id = verdict.asset_id
        record.inventory_item_id = verdict.inventory_item_id
        record.component_name = verdict.component_name
        record.part_number = verdict.part_number
        record.criticality = verdict.criticality.value
        record.alert_type = verdict.alert_type.value
        record.severity = verdict.severity.value
        record.priority = verdict.priority
        record.stock_status = verdict.stock_status.value
        record.current_stock = verdict.current_stock
        record.minimum_stock = verdict.minimum_stock
        record.reorder_point = verdict.reorder_point
        record.recommended_stock = verdict.recommended_stock
        record.days_until_maintenance = verdict.days_until_maintenance
        record.lead_time_days = verdict.lead_time_days
        record.operating_hours = verdict.operating_hours
        record.message = verdict.message
        record.recommendation = verdict.recommendation

    # --------------------------------------------------------
    # USER ACTIONS
    # --------------------------------------------------------

    async def _load(self, company_id: str, alert_id: str) -> MaintenanceAlertRecord:
        record = await self.repository.get_by_id(company_id, alert_id)
        if record is None:
            raise AlertNotFoundError(alert_id)
        return record

    async def dismiss(
        self,
        company_id: str,
        alert_id: str,
        user_id: Optional[str],
        reason: Optional[str],
    ) -> MaintenanceAlertRecord:
        """
        Dismiss an ACTIVE alert.

        Raises:
            AlertNotFoundError: unknown alert for this company
            AlertValidationError: reason too short, alert unchanged
            InvalidAlertTransitionError: alert is not ACTIVE
        """
        record = await self._load(company_id, alert_id)
        cleaned = validate_dismiss_reason(reason, self.config.min_dismiss_reason_length)
        self._transition(record, AlertStatus.DISMISSED)

        now = self.clock.now()
        record.dismissed_at = now
        record.dismissed_by = user_id
        record.dismiss_reason = cleaned
        record.updated_at = now
        await self.repository.flush()

        logger.info(f"Alert {record.id} dismissed by {user_id or 'unknown'}")
        return record

    async def resolve(
        self,
        company_id: str,
        alert_id: str,
        user_id: Optional[str],
        work_order_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> MaintenanceAlertRecord:
        """Manually resolve an ACTIVE alert, optionally linking a work order."""
        record = await self._load(company_id, alert_id)
        self._transition(record, AlertStatus.RESOLVED)

        now = self.clock.now()
        record.resolved_at = now
        record.resolved_by = user_id
        record.work_order_id = work_order_id
        record.resolution_notes = notes
        record.updated_at = now
        await self.repository.flush()

        logger.info(f"Alert {record.id} resolved by {user_id or 'unknown'}")
        return record

    # --------------------------------------------------------
    # STALENESS SWEEP
    # --------------------------------------------------------

    async def auto_close_stale(self, company_id: str) -> int:
        """AUTO_CLOSE ACTIVE alerts not observed within the staleness window."""
        now = self.clock.now()
        window = timedelta(hours=self.config.stale_after_hours)
        stale = await self.repository.list_stale_active(company_id, now - window)

        for record in stale:
            last_seen = ensure_utc(record.last_evaluated_at)
            self._transition(record, AlertStatus.AUTO_CLOSED)
            record.auto_closed_at = now
            record.auto_closure_reason = (
                f"Not re-evaluated since {last_seen.isoformat()} "
                f"(window {self.config.stale_after_hours:g}h)"
            )
            record.updated_at = now

        if stale:
            await self.repository.flush()
            logger.info(f"Auto-closed {len(stale)} stale alerts for company {company_id}")

        return len(stale)

    # --------------------------------------------------------
    # TRANSITIONS
    # --------------------------------------------------------

    @staticmethod
    def _transition(record: MaintenanceAlertRecord, to_status: AlertStatus) -> None:
        from_status = AlertStatus(record.status)
        if not can_transition(from_status, to_status):
            raise InvalidAlertTransitionError(
                f"Alert {record.id} is {from_status.value}, cannot move to {to_status.value}",
                from_state=from_status.value,
                to_state=to_status.value,
            )
        record.status = to_status.value
