from __future__ import annotations

import asyncio
import logging

from bitcoin_monitor.config.models import MonitorConfig
from bitcoin_monitor.monitoring.logger import DashboardConsole
from bitcoin_monitor.view.cards import build_cards

from .aggregator import MetricsAggregator, RefreshReport
from .timer import ScheduledTask, schedule

logger = logging.getLogger(__name__)


class MonitorOrchestrator:
    def __init__(
        self,
        config: MonitorConfig,
        aggregator: MetricsAggregator,
        console: DashboardConsole,
    ) -> None:
        self._config = config
        self._aggregator = aggregator
        self._console = console
        self._handle: ScheduledTask | None = None
        self._stopped = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._handle is not None and not self._handle.cancelled

    async def start(self) -> None:
        if self.running:
            return
        self._stopped.clear()
        self._handle = schedule(
            self._config.scheduling.refresh_seconds,
            self.run_cycle,
            immediate=self._config.scheduling.fire_immediately,
            name="refresh-cycle",
        )
        self._console.info(
            "Monitoring started",
            details={
                "refresh every": f"{self._config.scheduling.refresh_seconds:g}s",
                **self._config.metadata,
            },
        )

    async def run_forever(self) -> None:
        await self.start()
        await self._stopped.wait()

    async def stop(self) -> None:
        handle = self._handle
        if handle is not None:
            handle.cancel()
        # results arriving from here on are dropped; the client stays open until runs settle
        self._aggregator.close()
        try:
            if handle is not None:
                await handle.wait_in_flight()
            await self._aggregator.aclose()
        finally:
            self._stopped.set()

    async def run_cycle(self) -> RefreshReport:
        report = await self._aggregator.refresh()
        if report.discarded:
            return report
        logger.info(
            "Refresh finished: %d ok, %d failed",
            len(report.succeeded),
            len(report.failures),
        )
        if not report.failures:
            self._console.success(f"All {len(report.succeeded)} sources refreshed")
        state = self._aggregator.state
        self._console.render_cards(
            build_cards(state, self._config.metrics),
            state.last_updated,
            metadata=self._config.metadata,
        )
        return report
