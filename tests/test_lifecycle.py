"""
Tests for AlertLifecycleManager against a real database.

Tests cover:
- Create / refresh-in-place / auto-resolve reconciliation
- At most one ACTIVE alert per component (unique index)
- Dismiss validation and the re-trigger cool-down
- Manual resolution
- Staleness auto-close
- Terminal states reject transitions
"""

from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select

from core.clock import ensure_utc
from predictive_maintenance import (
    AlertLifecycleManager,
    AlertNotFoundError,
    AlertSeverity,
    AlertStatus,
    AlertValidationError,
    DuplicateActiveAlertError,
    InvalidAlertTransitionError,
    LifecycleConfig,
    MaintenanceAlertRecord,
    MaintenanceAlertRepository,
    ReconcileOutcome,
    VALID_TRANSITIONS,
)
from predictive_maintenance.lifecycle import AUTO_RESOLVE_NOTE, can_transition, validate_dismiss_reason


@pytest.fixture
def reconcile(session_factory, clock):
    """Run one reconcile in its own committed transaction."""
    async def _run(verdict, component_id="comp-1", company_id="acme"):
        async with session_factory() as session:
            manager = AlertLifecycleManager(MaintenanceAlertRepository(session), clock=clock)
            outcome = await manager.reconcile(company_id, component_id, verdict)
            await session.commit()
            return outcome

    return _run


@pytest.fixture
def act(session_factory, clock):
    """Run a user action (dismiss/resolve) and commit it."""
    async def _run(action, *args, **kwargs):
        async with session_factory() as session:
            manager = AlertLifecycleManager(MaintenanceAlertRepository(session), clock=clock)
            record = await getattr(manager, action)(*args, **kwargs)
            await session.commit()
            return record

    return _run


async def _alerts(session_factory, component_id="comp-1"):
    async with session_factory() as session:
        result = await session.execute(
            select(MaintenanceAlertRecord)
            .where(MaintenanceAlertRecord.component_id == component_id)
            .order_by(MaintenanceAlertRecord.created_at)
        )
        return list(result.scalars().all())


async def _active_count(session_factory, component_id="comp-1"):
    async with session_factory() as session:
        return (
            await session.execute(
                select(func.count(MaintenanceAlertRecord.id)).where(
                    MaintenanceAlertRecord.component_id == component_id,
                    MaintenanceAlertRecord.status == AlertStatus.ACTIVE.value,
                )
            )
        ).scalar()


# =============================================================
# TEST: transition rules
# =============================================================

class TestTransitionRules:
    """Test the state machine table."""

    def test_active_can_reach_every_terminal_state(self):
        for status in (AlertStatus.RESOLVED, AlertStatus.DISMISSED, AlertStatus.AUTO_CLOSED):
            assert can_transition(AlertStatus.ACTIVE, status)

    def test_terminal_states_are_final(self):
        for status, targets in VALID_TRANSITIONS.items():
            if status.is_terminal:
                assert targets == set()

    def test_dismiss_reason_is_trimmed(self):
        assert validate_dismiss_reason("  Replaced last week  ") == "Replaced last week"

    def test_short_reason_rejected_after_trim(self):
        with pytest.raises(AlertValidationError):
            validate_dismiss_reason("   short    ")


# =============================================================
# TEST: reconcile
# =============================================================

class TestReconcile:
    """Test scan reconciliation."""

    @pytest.mark.asyncio
    async def test_first_verdict_creates_active_alert(self, reconcile, verdict_for, session_factory, clock):
        outcome = await reconcile(verdict_for(AlertSeverity.WARNING))

        alerts = await _alerts(session_factory)
        assert outcome == ReconcileOutcome.CREATED
        assert len(alerts) == 1
        assert alerts[0].is_active
        assert alerts[0].severity == AlertSeverity.WARNING.value
        assert ensure_utc(alerts[0].created_at) == clock.now()

    @pytest.mark.asyncio
    async def test_repeated_verdict_updates_in_place(self, reconcile, verdict_for, session_factory, clock):
        await reconcile(verdict_for(AlertSeverity.WARNING))
        clock.advance(hours=1)

        outcome = await reconcile(verdict_for(AlertSeverity.CRITICAL))

        alerts = await _alerts(session_factory)
        assert outcome == ReconcileOutcome.UPDATED
        assert len(alerts) == 1
        assert alerts[0].severity == AlertSeverity.CRITICAL.value
        assert alerts[0].days_until_maintenance == 5
        assert ensure_utc(alerts[0].last_evaluated_at) == clock.now()

    @pytest.mark.asyncio
    async def test_cleared_condition_auto_resolves(self, reconcile, verdict_for, session_factory, clock):
        await reconcile(verdict_for(AlertSeverity.WARNING))
        clock.advance(hours=2)

        outcome = await reconcile(None)

        alert = (await _alerts(session_factory))[0]
        assert outcome == ReconcileOutcome.RESOLVED
        assert alert.status == AlertStatus.RESOLVED.value
        assert ensure_utc(alert.resolved_at) == clock.now()
        assert alert.resolution_notes == AUTO_RESOLVE_NOTE

    @pytest.mark.asyncio
    async def test_no_verdict_no_alert_is_unchanged(self, reconcile):
        assert await reconcile(None) == ReconcileOutcome.UNCHANGED

    @pytest.mark.asyncio
    async def test_new_alert_after_resolution(self, reconcile, verdict_for, session_factory):
        """Terminal rows are history, they do not block a new ACTIVE alert."""
        await reconcile(verdict_for(AlertSeverity.WARNING))
        await reconcile(None)

        outcome = await reconcile(verdict_for(AlertSeverity.WARNING))

        assert outcome == ReconcileOutcome.CREATED
        assert len(await _alerts(session_factory)) == 2
        assert await _active_count(session_factory) == 1

    @pytest.mark.asyncio
    async def test_concurrent_insert_hits_unique_index(self, reconcile, verdict_for, session_factory, clock):
        """A pass that missed the other pass's row cannot insert a second ACTIVE alert."""
        await reconcile(verdict_for(AlertSeverity.WARNING))

        async with session_factory() as session:
            repository = MaintenanceAlertRepository(session)
            manager = AlertLifecycleManager(repository, clock=clock)
            with patch.object(repository, "get_active_for_component", AsyncMock(return_value=None)):
                with pytest.raises(DuplicateActiveAlertError):
                    await manager.reconcile("acme", "comp-1", verdict_for(AlertSeverity.WARNING))
            await session.rollback()

        assert await _active_count(session_factory) == 1

    @pytest.mark.asyncio
    async def test_tenants_are_isolated(self, reconcile, verdict_for, session_factory):
        await reconcile(verdict_for(AlertSeverity.WARNING), company_id="acme")
        outcome = await reconcile(verdict_for(AlertSeverity.WARNING), company_id="globex")

        assert outcome == ReconcileOutcome.CREATED
        assert len(await _alerts(session_factory)) == 2


# =============================================================
# TEST: dismiss
# =============================================================

class TestDismiss:
    """Test user dismissal."""

    async def _create(self, reconcile, verdict_for, session_factory, severity=AlertSeverity.WARNING):
        await reconcile(verdict_for(severity))
        return (await _alerts(session_factory))[0]

    @pytest.mark.asyncio
    async def test_short_reason_leaves_alert_active(self, reconcile, act, verdict_for, session_factory):
        alert = await self._create(reconcile, verdict_for, session_factory)

        with pytest.raises(AlertValidationError):
            await act("dismiss", "acme", alert.id, "user-1", "short")

        assert (await _alerts(session_factory))[0].status == AlertStatus.ACTIVE.value

    @pytest.mark.asyncio
    async def test_valid_reason_dismisses(self, reconcile, act, verdict_for, session_factory, clock):
        alert = await self._create(reconcile, verdict_for, session_factory)

        record = await act("dismiss", "acme", alert.id, "user-1", "False positive, already replaced")

        assert record.status == AlertStatus.DISMISSED.value
        assert record.dismissed_by == "user-1"
        assert record.dismiss_reason == "False positive, already replaced"
        assert ensure_utc(record.dismissed_at) == clock.now()

    @pytest.mark.asyncio
    async def test_unknown_alert(self, act):
        with pytest.raises(AlertNotFoundError):
            await act("dismiss", "acme", "missing", "user-1", "False positive, already replaced")

    @pytest.mark.asyncio
    async def test_other_tenant_cannot_see_alert(self, reconcile, act, verdict_for, session_factory):
        alert = await self._create(reconcile, verdict_for, session_factory)

        with pytest.raises(AlertNotFoundError):
            await act("dismiss", "globex", alert.id, "user-1", "False positive, already replaced")

    @pytest.mark.asyncio
    async def test_cooldown_suppresses_same_condition(self, reconcile, act, verdict_for, session_factory, clock):
        alert = await self._create(reconcile, verdict_for, session_factory)
        await act("dismiss", "acme", alert.id, "user-1", "Known issue, part on order")
        clock.advance(hours=1)

        outcome = await reconcile(verdict_for(AlertSeverity.WARNING))

        assert outcome == ReconcileOutcome.SUPPRESSED
        assert await _active_count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_escalation_breaks_cooldown(self, reconcile, act, verdict_for, session_factory, clock):
        alert = await self._create(reconcile, verdict_for, session_factory)
        await act("dismiss", "acme", alert.id, "user-1", "Known issue, part on order")
        clock.advance(hours=1)

        outcome = await reconcile(verdict_for(AlertSeverity.CRITICAL))

        assert outcome == ReconcileOutcome.CREATED
        assert await _active_count(session_factory) == 1

    @pytest.mark.asyncio
    async def test_condition_returns_after_cooldown(self, reconcile, act, verdict_for, session_factory, clock):
        alert = await self._create(reconcile, verdict_for, session_factory)
        await act("dismiss", "acme", alert.id, "user-1", "Known issue, part on order")
        clock.advance(hours=25)

        assert await reconcile(verdict_for(AlertSeverity.WARNING)) == ReconcileOutcome.CREATED

    @pytest.mark.asyncio
    async def test_dismissing_twice_is_rejected(self, reconcile, act, verdict_for, session_factory):
        alert = await self._create(reconcile, verdict_for, session_factory)
        await act("dismiss", "acme", alert.id, "user-1", "Known issue, part on order")

        with pytest.raises(InvalidAlertTransitionError):
            await act("dismiss", "acme", alert.id, "user-1", "Known issue, part on order")


# =============================================================
# TEST: resolve / auto-close
# =============================================================

class TestResolveAndAutoClose:
    """Test manual resolution and the staleness sweep."""

    @pytest.mark.asyncio
    async def test_resolve_links_work_order(self, reconcile, act, verdict_for, session_factory, clock):
        await reconcile(verdict_for(AlertSeverity.CRITICAL))
        alert = (await _alerts(session_factory))[0]

        record = await act("resolve", "acme", alert.id, "user-2", work_order_id="WO-17", notes="Pump swapped")

        assert record.status == AlertStatus.RESOLVED.value
        assert record.work_order_id == "WO-17"
        assert record.resolved_by == "user-2"
        assert ensure_utc(record.resolved_at) == clock.now()

    @pytest.mark.asyncio
    async def test_resolved_alert_cannot_be_dismissed(self, reconcile, act, verdict_for, session_factory):
        await reconcile(verdict_for(AlertSeverity.CRITICAL))
        alert = (await _alerts(session_factory))[0]
        await act("resolve", "acme", alert.id, "user-2")

        with pytest.raises(InvalidAlertTransitionError):
            await act("dismiss", "acme", alert.id, "user-1", "Known issue, part on order")

    @pytest.mark.asyncio
    async def test_stale_alert_is_auto_closed(self, reconcile, verdict_for, session_factory, clock):
        await reconcile(verdict_for(AlertSeverity.WARNING))
        clock.advance(hours=169)

        async with session_factory() as session:
            manager = AlertLifecycleManager(MaintenanceAlertRepository(session), clock=clock)
            closed = await manager.auto_close_stale("acme")
            await session.commit()

        alert = (await _alerts(session_factory))[0]
        assert closed == 1
        assert alert.status == AlertStatus.AUTO_CLOSED.value
        assert alert.auto_closure_reason
        assert alert.resolved_at is None

    @pytest.mark.asyncio
    async def test_recently_observed_alert_stays_active(self, reconcile, verdict_for, session_factory, clock):
        await reconcile(verdict_for(AlertSeverity.WARNING))
        clock.advance(hours=167)

        async with session_factory() as session:
            manager = AlertLifecycleManager(
                MaintenanceAlertRepository(session), clock=clock, config=LifecycleConfig()
            )
            assert await manager.auto_close_stale("acme") == 0

        assert await _active_count(session_factory) == 1

    @pytest.mark.asyncio
    async def test_persisting_condition_is_never_stale(self, reconcile, verdict_for, session_factory, clock):
        """The window runs from the last pass that saw the condition, not from creation."""
        await reconcile(verdict_for(AlertSeverity.WARNING))
        for _ in range(3):
            clock.advance(hours=100)
            assert await reconcile(verdict_for(AlertSeverity.WARNING)) == ReconcileOutcome.UPDATED

        async with session_factory() as session:
            manager = AlertLifecycleManager(MaintenanceAlertRepository(session), clock=clock)
            assert await manager.auto_close_stale("acme") == 0

        assert await _active_count(session_factory) == 1
