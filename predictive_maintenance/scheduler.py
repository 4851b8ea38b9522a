"""
Predictive Maintenance - Scan Scheduler.

============================================================
RESPONSIBILITY
============================================================
Long-lived loop that runs a multi-tenant scan every
interval_seconds until stopped.

- Tenants are scanned in parallel, each independently
- A failed cycle is logged and the loop continues
- stop() ends the loop at the next wait, a running cycle is
  allowed to finish

============================================================
"""

import asyncio
import logging
from typing import Iterable, List, Optional

from .scanner import MaintenanceScanner
from .types import ScanSummary


logger = logging.getLogger(__name__)


class MaintenanceScheduler:
    """Periodic scan driver."""

    def __init__(
        self,
        scanner: MaintenanceScanner,
        interval_seconds: Optional[int] = None,
        company_ids: Optional[Iterable[str]] = None,
    ):
        self.scanner = scanner
        self.interval_seconds = interval_seconds or scanner.config.scan.interval_seconds
        self.company_ids = list(company_ids) if company_ids else None
        self.cycles_completed = 0
        self._stop_event = asyncio.Event()

    @property
    def is_stopping(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request the loop to end after the current cycle."""
        self._stop_event.set()

    async def run_once(self) -> List[ScanSummary]:
        """Run one scan over the configured (or all entitled) tenants."""
        summaries = await self.scanner.scan_tenants(self.company_ids)
        self.cycles_completed += 1

        failed = sum(s.failed for s in summaries)
        logger.info(
            f"Scan cycle {self.cycles_completed} complete | "
            f"tenants={len(summaries)} component_failures={failed}"
        )
        return summaries

    async def run_forever(self) -> None:
        """
        Run scan cycles until stop() is called.

        This is a long-lived process that runs until shutdown.
        """
        logger.info(f"Starting scan scheduler | interval={self.interval_seconds}s")

        while not self._stop_event.is_set():
            try:
                await self.run_once()
            except asyncio.CancelledError:
                logger.info("Scan scheduler cancelled")
                raise
            except Exception as e:
                logger.error(f"Scan cycle error: {e}", exc_info=True)

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

        logger.info("Scan scheduler stopped")
