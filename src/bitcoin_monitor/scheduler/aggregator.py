from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

import httpx

from bitcoin_monitor.config.models import MonitorConfig
from bitcoin_monitor.data.errors import SourceError, StaleSnapshotError
from bitcoin_monitor.data.fetcher import HttpFetcher
from bitcoin_monitor.data.models import DashboardState
from bitcoin_monitor.data.provider_base import SourceProvider, TimeProvider
from bitcoin_monitor.data.providers import SystemTimeProvider, build_providers

from .settle import settle_all

logger = logging.getLogger(__name__)


class RefreshState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


@dataclass(slots=True)
class SourceOutcome:
    source: str
    ok: bool
    error: Optional[str] = None


@dataclass(slots=True)
class RefreshReport:
    started_at: datetime
    finished_at: datetime
    outcomes: List[SourceOutcome] = field(default_factory=list)
    discarded: bool = False

    @property
    def failures(self) -> List[SourceOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def succeeded(self) -> List[str]:
        return [outcome.source for outcome in self.outcomes if outcome.ok]


Notifier = Callable[[RefreshReport], None]


class MetricsAggregator:
    """Pull every source concurrently and keep the latest good snapshot of each."""

    def __init__(
        self,
        providers: Sequence[SourceProvider],
        http: HttpFetcher,
        *,
        state: DashboardState | None = None,
        time_provider: TimeProvider | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        keys = [provider.key for provider in providers]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Duplicate source keys: {keys}")
        self._providers = list(providers)
        self._http = http
        self._state = state or DashboardState()
        self._time = time_provider or SystemTimeProvider()
        self._notifier = notifier
        self._in_flight = 0
        self._closed = False
        self._http_closed = False

    @classmethod
    def from_config(
        cls,
        config: MonitorConfig,
        *,
        client: httpx.AsyncClient | None = None,
        notifier: Notifier | None = None,
        time_provider: TimeProvider | None = None,
    ) -> "MetricsAggregator":
        return cls(
            build_providers(config.endpoints, config.metrics),
            HttpFetcher(config.http, client=client),
            time_provider=time_provider,
            notifier=notifier,
        )

    @property
    def state(self) -> DashboardState:
        return self._state

    @property
    def refresh_state(self) -> RefreshState:
        return RefreshState.REFRESHING if self._in_flight else RefreshState.IDLE

    @property
    def closed(self) -> bool:
        return self._closed

    async def refresh(self) -> RefreshReport:
        started_at = self._time.now()
        self._in_flight += 1
        try:
            settled = await settle_all(self._run_source(provider) for provider in self._providers)
        finally:
            self._in_flight -= 1

        outcomes: List[SourceOutcome] = []
        for provider, result in zip(self._providers, settled):
            if result.ok:
                outcomes.append(SourceOutcome(source=provider.key, ok=True))
                continue
            if not self._closed:
                self._log_failure(provider.key, result.error)
            outcomes.append(SourceOutcome(source=provider.key, ok=False, error=str(result.error)))

        report = RefreshReport(started_at=started_at, finished_at=self._time.now(), outcomes=outcomes)
        if self._closed:
            report.discarded = True
            logger.debug("Discarding refresh results after close")
            return report

        self._state.last_updated = report.finished_at
        if report.failures and self._notifier is not None:
            self._notifier(report)
        return report

    def close(self) -> None:
        """Stop applying results. In-flight requests keep running on the open client."""
        self._closed = True

    async def aclose(self) -> None:
        self.close()
        if self._http_closed:
            return
        self._http_closed = True
        await self._http.aclose()

    async def _run_source(self, provider: SourceProvider) -> Any:
        snapshot = await provider.fetch(self._http)
        self._apply(provider.key, snapshot)
        return snapshot

    def _apply(self, key: str, snapshot: Any) -> None:
        if self._closed:
            return
        if key == "block":
            current = self._state.block
            if current is not None and snapshot.height < current.height:
                raise StaleSnapshotError(
                    f"Block height went back from {current.height} to {snapshot.height}"
                )
        setattr(self._state, key, snapshot)

    @staticmethod
    def _log_failure(source: str, error: BaseException | None) -> None:
        if isinstance(error, SourceError):
            logger.warning("Source %s failed: %s", source, error)
        else:
            logger.error("Source %s raised unexpectedly", source, exc_info=error)
