from __future__ import annotations

import asyncio
from typing import List

import httpx
import pytest

from bitcoin_monitor.config.models import MonitorConfig
from bitcoin_monitor.data.fetcher import HttpFetcher
from bitcoin_monitor.data.models import DashboardState
from bitcoin_monitor.data.provider_base import SourceProvider
from bitcoin_monitor.data.providers import build_providers
from bitcoin_monitor.scheduler.aggregator import MetricsAggregator, RefreshReport, RefreshState

from conftest import (
    BLOCK_URL,
    MEMPOOL_URL,
    NETWORK_PAYLOAD,
    NETWORK_URL,
    SENTIMENT_URL,
    TIP_HASH_URL,
    FakeUpstream,
    FixedTimeProvider,
    block_payload,
)


def _aggregator(upstream: FakeUpstream, notified: List[RefreshReport] | None = None) -> MetricsAggregator:
    return MetricsAggregator.from_config(
        MonitorConfig(),
        client=upstream.client(),
        notifier=notified.append if notified is not None else None,
        time_provider=FixedTimeProvider(),
    )


@pytest.mark.asyncio
async def test_refresh_populates_every_slot(upstream: FakeUpstream) -> None:
    notified: List[RefreshReport] = []
    aggregator = _aggregator(upstream, notified)

    report = await aggregator.refresh()

    state = aggregator.state
    assert report.failures == []
    assert sorted(report.succeeded) == ["block", "mempool", "network", "price", "sentiment"]
    assert state.block is not None and state.block.height == 840_000
    assert state.mempool is not None and state.mempool.count == 45123
    assert state.price is not None
    assert state.sentiment is not None and state.sentiment.value == 72
    assert state.network is not None
    assert state.last_updated == report.finished_at
    assert notified == []
    assert aggregator.refresh_state == RefreshState.IDLE


@pytest.mark.asyncio
async def test_slots_start_absent() -> None:
    aggregator = _aggregator(FakeUpstream())
    assert aggregator.state == DashboardState()


@pytest.mark.asyncio
async def test_partial_failure_keeps_prior_snapshots(upstream: FakeUpstream) -> None:
    notified: List[RefreshReport] = []
    aggregator = _aggregator(upstream, notified)
    await aggregator.refresh()
    before = aggregator.state
    prior_mempool = before.mempool
    prior_sentiment = before.sentiment
    prior_updated = before.last_updated

    upstream.routes[MEMPOOL_URL] = (500, "internal error")
    upstream.routes[SENTIMENT_URL] = httpx.ConnectTimeout("timed out")
    upstream.routes[NETWORK_URL] = (200, {**NETWORK_PAYLOAD, "n_tx": 700000})

    report = await aggregator.refresh()

    state = aggregator.state
    assert sorted(o.source for o in report.failures) == ["mempool", "sentiment"]
    assert sorted(report.succeeded) == ["block", "network", "price"]
    assert state.mempool is prior_mempool
    assert state.sentiment is prior_sentiment
    assert state.network is not None and state.network.n_tx == 700000
    assert state.last_updated is not None and state.last_updated > prior_updated
    assert len(notified) == 1
    assert notified[0] is report


@pytest.mark.asyncio
async def test_sources_that_never_succeed_stay_absent() -> None:
    upstream = FakeUpstream({MEMPOOL_URL: (200, {"count": 1, "vsize": 2, "total_fee": 3})})
    aggregator = _aggregator(upstream)

    report = await aggregator.refresh()

    assert report.succeeded == ["mempool"]
    assert aggregator.state.mempool is not None
    assert aggregator.state.block is None
    assert aggregator.state.price is None
    assert aggregator.state.last_updated is not None


@pytest.mark.asyncio
async def test_block_details_not_requested_when_tip_fails(upstream: FakeUpstream) -> None:
    upstream.routes[TIP_HASH_URL] = httpx.ConnectError("unreachable")
    aggregator = _aggregator(upstream)

    report = await aggregator.refresh()

    assert TIP_HASH_URL in upstream.calls
    assert BLOCK_URL not in upstream.calls
    assert [o.source for o in report.failures] == ["block"]
    assert aggregator.state.block is None


@pytest.mark.asyncio
async def test_block_details_follow_tip(upstream: FakeUpstream) -> None:
    aggregator = _aggregator(upstream)

    await aggregator.refresh()

    assert upstream.calls.index(TIP_HASH_URL) < upstream.calls.index(BLOCK_URL)


@pytest.mark.asyncio
async def test_identical_payloads_give_identical_snapshots(upstream: FakeUpstream) -> None:
    aggregator = _aggregator(upstream)

    await aggregator.refresh()
    first = aggregator.state
    snapshots = (first.block, first.mempool, first.price, first.sentiment, first.network)
    await aggregator.refresh()
    second = aggregator.state

    assert (second.block, second.mempool, second.price, second.sentiment, second.network) == snapshots


@pytest.mark.asyncio
async def test_block_height_never_goes_back(upstream: FakeUpstream) -> None:
    aggregator = _aggregator(upstream)
    await aggregator.refresh()

    upstream.routes[BLOCK_URL] = (200, block_payload(height=839_990))
    report = await aggregator.refresh()

    assert aggregator.state.block is not None
    assert aggregator.state.block.height == 840_000
    assert [o.source for o in report.failures] == ["block"]


@pytest.mark.asyncio
async def test_unexpected_provider_error_is_isolated(upstream: FakeUpstream) -> None:
    class ExplodingProvider(SourceProvider):
        key = "mvrv"

        async def request(self, http):
            raise RuntimeError("bug")

        def parse(self, payload):
            return payload

    config = MonitorConfig()
    healthy = MetricsAggregator(
        [*build_providers(config.endpoints, config.metrics), ExplodingProvider()],
        HttpFetcher(config.http, client=upstream.client()),
    )

    report = await healthy.refresh()

    assert [o.source for o in report.failures] == ["mvrv"]
    assert "bug" in report.failures[0].error
    assert healthy.state.block is not None


@pytest.mark.asyncio
async def test_state_is_refreshing_while_batch_outstanding(upstream: FakeUpstream) -> None:
    gate = asyncio.Event()

    async def slow_mempool(request):
        await gate.wait()
        return (200, {"count": 1, "vsize": 2, "total_fee": 3})

    upstream.routes[MEMPOOL_URL] = slow_mempool
    aggregator = _aggregator(upstream)

    first = asyncio.create_task(aggregator.refresh())
    second = asyncio.create_task(aggregator.refresh())
    await asyncio.sleep(0.05)
    assert aggregator.refresh_state == RefreshState.REFRESHING

    gate.set()
    reports = await asyncio.gather(first, second)

    assert all(not r.failures for r in reports)
    assert aggregator.refresh_state == RefreshState.IDLE


@pytest.mark.asyncio
async def test_results_discarded_after_close(upstream: FakeUpstream) -> None:
    gate = asyncio.Event()

    async def slow_mempool(request):
        await gate.wait()
        return (200, {"count": 1, "vsize": 2, "total_fee": 3})

    upstream.routes[MEMPOOL_URL] = slow_mempool
    notified: List[RefreshReport] = []
    aggregator = _aggregator(upstream, notified)

    pending = asyncio.create_task(aggregator.refresh())
    await asyncio.sleep(0.05)
    aggregator.close()
    gate.set()
    report = await pending
    await aggregator.aclose()

    assert report.discarded
    assert not report.failures
    assert aggregator.state.mempool is None
    assert aggregator.state.last_updated is None
    assert notified == []


def test_duplicate_source_keys_rejected(config: MonitorConfig, upstream: FakeUpstream) -> None:
    providers = build_providers(config.endpoints, config.metrics)
    with pytest.raises(ValueError):
        MetricsAggregator([providers[0], providers[0]], HttpFetcher(config.http, client=upstream.client()))
