"""
Predictive Maintenance - Tenant Scanner.

============================================================
PURPOSE
============================================================
Runs the evaluation pass for a tenant:

1. Check the PREDICTIVE_MAINTENANCE feature flag
2. Enumerate monitored components
3. Per component, in its own transaction:
   usage -> projection -> stock sizing -> verdict -> reconcile
4. Auto-close stale alerts
5. Invalidate cached reads for the tenant

============================================================
FAILURE SEMANTICS
============================================================
- One bad component never aborts the pass, its failure is
  recorded in the ScanSummary and the pass continues
- A unique-index conflict (another pass inserted the ACTIVE
  alert first) is retried once, the retry finds the row and
  refreshes it
- Each component is a self-contained idempotent unit, so an
  interrupted pass is simply completed by the next one

============================================================
"""

import asyncio
import logging
from typing import Callable, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.clock import ClockProtocol, SystemClock
from core.exceptions import MaintenanceEngineException
from database.engine import transaction_scope

from .cache import ReadCache
from .config import MaintenanceEngineConfig
from .evaluator import AlertEvaluator, needs_immediate_action
from .lifecycle import AlertLifecycleManager
from .operating_hours import OperatingHoursResolver
from .repository import MaintenanceAlertRepository
from .sources import (
    FeatureFlagProvider,
    MaintenanceDataSource,
    SqlFeatureFlagProvider,
    SqlMaintenanceDataSource,
)
from .types import (
    ComponentEvaluation,
    ComponentEvaluationError,
    ComponentFailure,
    ComponentNotFoundError,
    DuplicateActiveAlertError,
    FeatureDisabledError,
    MonitoredComponent,
    ReconcileOutcome,
    ScanSummary,
    StockSyncSummary,
)


logger = logging.getLogger(__name__)


SourceFactory = Callable[[AsyncSession], MaintenanceDataSource]
FlagsFactory = Callable[[AsyncSession], FeatureFlagProvider]


class MaintenanceScanner:
    """
    Per-tenant evaluation pass.

    ============================================================
    RESPONSIBILITIES
    ============================================================
    1. Gate on the tenant feature flag
    2. Evaluate components concurrently (bounded)
    3. Reconcile verdicts through the lifecycle manager
    4. Sweep stale alerts
    5. Report a ScanSummary

    ============================================================
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        config: Optional[MaintenanceEngineConfig] = None,
        clock: Optional[ClockProtocol] = None,
        cache: Optional[ReadCache] = None,
        source_factory: SourceFactory = SqlMaintenanceDataSource,
        flags_factory: FlagsFactory = SqlFeatureFlagProvider,
    ):
        self.session_factory = session_factory
        self.config = config or MaintenanceEngineConfig()
        self.clock = clock or SystemClock()
        self.cache = cache
        self.source_factory = source_factory
        self.flags_factory = flags_factory
        self.evaluator = AlertEvaluator(self.config)

    # --------------------------------------------------------
    # FEATURE GATE
    # --------------------------------------------------------

    async def is_enabled(self, company_id: str) -> bool:
        async with self.session_factory() as session:
            flags = self.flags_factory(session)
            return await flags.is_enabled(company_id, self.config.scan.feature_key)

    async def ensure_enabled(self, company_id: str) -> None:
        """Raises FeatureDisabledError when the tenant is not entitled."""
        if not await self.is_enabled(company_id):
            raise FeatureDisabledError(company_id, self.config.scan.feature_key)

    async def list_enabled_companies(self) -> List[str]:
        async with self.session_factory() as session:
            flags = self.flags_factory(session)
            return await flags.list_enabled_companies(self.config.scan.feature_key)

    # --------------------------------------------------------
    # TENANT PASS
    # --------------------------------------------------------

    async def scan_tenant(self, company_id: str) -> ScanSummary:
        """
        Run one evaluation pass for a tenant.

        Never raises for component-level problems, they are
        reported in the returned summary.
        """
        summary = ScanSummary(company_id=company_id, started_at=self.clock.now())

        try:
            enabled = await self.is_enabled(company_id)
        except MaintenanceEngineException as e:
            logger.error(f"Scan for company {company_id} could not check feature flag: {e.to_log_format()}")
            summary.failures.append(ComponentFailure(None, type(e).__name__, e.message, stage="feature_check"))
            summary.finished_at = self.clock.now()
            return summary

        if not enabled:
            summary.skipped = True
            summary.skip_reason = f"{self.config.scan.feature_key} disabled"
            summary.finished_at = self.clock.now()
            logger.info(f"Scan skipped for company {company_id}: feature disabled")
            return summary

        logger.info(f"Scan started for company {company_id}")

        try:
            components = await self._list_components(company_id)
        except MaintenanceEngineException as e:
            logger.error(f"Scan for company {company_id} could not list components: {e.to_log_format()}")
            summary.failures.append(
                ComponentFailure(None, type(e).__name__, e.message, stage="list_components")
            )
            summary.finished_at = self.clock.now()
            return summary

        summary.components_scanned = len(components)

        semaphore = asyncio.Semaphore(self.config.scan.max_concurrency)

        async def _bounded(component: MonitoredComponent):
            async with semaphore:
                return await self._evaluate_unit(company_id, component)

        results = await asyncio.gather(*(_bounded(c) for c in components))

        for result in results:
            if isinstance(result, ComponentFailure):
                summary.failures.append(result)
            else:
                summary.record(result)

        await self._sweep_stale(company_id, summary)

        if self.cache is not None:
            self.cache.invalidate(company_id)

        summary.finished_at = self.clock.now()
        logger.info(
            f"Scan finished for company {company_id}: "
            f"scanned={summary.components_scanned} created={summary.created} "
            f"updated={summary.updated} resolved={summary.resolved} "
            f"suppressed={summary.suppressed} auto_closed={summary.auto_closed} "
            f"failed={summary.failed}"
        )
        return summary

    async def scan_tenants(self, company_ids: Optional[Iterable[str]] = None) -> List[ScanSummary]:
        """Scan several tenants in parallel (default: all entitled tenants)."""
        if company_ids is None:
            company_ids = await self.list_enabled_companies()
        company_ids = list(company_ids)

        if not company_ids:
            logger.info("No tenants to scan")
            return []

        return list(await asyncio.gather(*(self._scan_tenant_isolated(c) for c in company_ids)))

    async def _scan_tenant_isolated(self, company_id: str) -> ScanSummary:
        """scan_tenant, reporting unexpected errors in the summary instead of raising."""
        started_at = self.clock.now()
        try:
            return await self.scan_tenant(company_id)
        except Exception as e:
            logger.exception(f"Scan for company {company_id} aborted")
            summary = ScanSummary(company_id=company_id, started_at=started_at)
            summary.failures.append(ComponentFailure(None, type(e).__name__, str(e), stage="scan"))
            summary.finished_at = self.clock.now()
            return summary

    async def _list_components(self, company_id: str) -> List[MonitoredComponent]:
        async with self.session_factory() as session:
            return await self.source_factory(session).list_monitored_components(company_id)

    async def _evaluate_unit(self, company_id: str, component: MonitoredComponent):
        """ReconcileOutcome on success, ComponentFailure otherwise."""
        attempts = 2 if self.config.scan.retry_on_duplicate else 1

        for attempt in range(1, attempts + 1):
            try:
                async with transaction_scope(self.session_factory) as session:
                    return await self._evaluate_in_session(session, company_id, component)
            except DuplicateActiveAlertError as e:
                if attempt < attempts:
                    logger.warning(
                        f"Concurrent ACTIVE alert for component {component.component_id}, retrying"
                    )
                    continue
                return self._failure(component, e)
            except MaintenanceEngineException as e:
                return self._failure(component, e)
            except Exception as e:
                logger.exception(f"Unexpected error evaluating component {component.component_id}")
                return ComponentFailure(component.component_id, type(e).__name__, str(e))

    @staticmethod
    def _failure(component: MonitoredComponent, error: MaintenanceEngineException) -> ComponentFailure:
        logger.error(f"Component {component.component_id} failed: {error.to_log_format()}")
        return ComponentFailure(component.component_id, type(error).__name__, error.message)

    async def _evaluate_in_session(
        self,
        session: AsyncSession,
        company_id: str,
        component: MonitoredComponent,
    ) -> ReconcileOutcome:
        source = self.source_factory(session)
        evaluation = await self._evaluate(source, component)

        lifecycle = AlertLifecycleManager(
            MaintenanceAlertRepository(session),
            clock=self.clock,
            config=self.config.lifecycle,
        )
        return await lifecycle.reconcile(company_id, component.component_id, evaluation.verdict)

    async def _evaluate(self, source: MaintenanceDataSource, component: MonitoredComponent) -> ComponentEvaluation:
        if not component.linked_inventory_item_id:
            raise ComponentEvaluationError(component.component_id, "Component has no linked inventory item")

        resolver = OperatingHoursResolver(source, clock=self.clock, config=self.config.projection)
        usage = await resolver.resolve_component_usage(component.component_id)

        inventory = await source.get_inventory_snapshot(component.linked_inventory_item_id)
        if inventory is None:
            raise ComponentEvaluationError(
                component.component_id,
                f"Inventory item {component.linked_inventory_item_id} not found",
            )

        assessment = self.evaluator.assess(component, usage, inventory)
        verdict = self.evaluator.evaluate(assessment)
        urgent = verdict is not None and needs_immediate_action(
            verdict.severity, verdict.days_until_maintenance, verdict.lead_time_days
        )
        return ComponentEvaluation(assessment=assessment, verdict=verdict, needs_immediate_action=urgent)

    async def _sweep_stale(self, company_id: str, summary: ScanSummary) -> None:
        try:
            async with transaction_scope(self.session_factory) as session:
                lifecycle = AlertLifecycleManager(
                    MaintenanceAlertRepository(session),
                    clock=self.clock,
                    config=self.config.lifecycle,
                )
                summary.auto_closed = await lifecycle.auto_close_stale(company_id)
        except MaintenanceEngineException as e:
            logger.error(f"Stale sweep failed for company {company_id}: {e.to_log_format()}")
            summary.failures.append(ComponentFailure(None, type(e).__name__, e.message, stage="stale_sweep"))

    # --------------------------------------------------------
    # ON-DEMAND OPERATIONS
    # --------------------------------------------------------

    async def preview_component(self, company_id: str, component_id: str) -> ComponentEvaluation:
        """
        Evaluate one component without persisting anything.

        Raises:
            FeatureDisabledError: tenant not entitled
            ComponentNotFoundError: unknown component for this tenant
            ComponentEvaluationError: component cannot be evaluated
        """
        await self.ensure_enabled(company_id)

        async with self.session_factory() as session:
            source = self.source_factory(session)
            component = await source.get_component(company_id, component_id)
            if component is None:
                raise ComponentNotFoundError(component_id)
            return await self._evaluate(source, component)

    async def sync_stock_levels(self, company_id: str) -> StockSyncSummary:
        """
        Write recalculated minimum stock and reorder point to the
        inventory item of every monitored component.
        """
        await self.ensure_enabled(company_id)

        result = StockSyncSummary(company_id=company_id)
        components = await self._list_components(company_id)

        for component in components:
            try:
                async with transaction_scope(self.session_factory) as session:
                    source = self.source_factory(session)
                    inventory = await source.get_inventory_snapshot(component.linked_inventory_item_id)
                    if inventory is None:
                        result.skipped += 1
                        continue

                    lead_time = self.evaluator.calculator.resolve_lead_time(inventory.lead_time_days)
                    stock = self.evaluator.calculator.calculate(component, lead_time)
                    if await source.update_stock_levels(
                        inventory.inventory_item_id, stock.minimum_stock, stock.reorder_point
                    ):
                        result.updated += 1
                    else:
                        result.skipped += 1
            except MaintenanceEngineException as e:
                logger.error(f"Stock sync failed for component {component.component_id}: {e.to_log_format()}")
                result.failed += 1

        logger.info(
            f"Stock levels synced for company {company_id}: "
            f"updated={result.updated} failed={result.failed} skipped={result.skipped}"
        )
        return result
