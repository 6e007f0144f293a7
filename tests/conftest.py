from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Union

import httpx
import pytest

from bitcoin_monitor.config.models import MonitorConfig
from bitcoin_monitor.data.provider_base import TimeProvider

BLOCK_HASH = "00000000000000000002a7c4c1e48d76c5a37902165a270156b7a8d72728a054"
OTHER_HASH = "000000000000000000016e1f2f4a9d9c1b8e3f5a0c7d2e4b6a8c0e2f4a6b8c0d"

TIP_HASH_URL = "https://mempool.space/api/blocks/tip/hash"
TIP_HEIGHT_URL = "https://mempool.space/api/blocks/tip/height"
BLOCK_URL = f"https://mempool.space/api/block/{BLOCK_HASH}"
MEMPOOL_URL = "https://mempool.space/api/mempool"
PRICE_URL = "https://api.coingecko.com/api/v3/simple/price"
SENTIMENT_URL = "https://api.alternative.me/fng/"
NETWORK_URL = "https://api.blockchain.info/stats"


def block_payload(height: int = 840_000, block_hash: str = BLOCK_HASH) -> Dict[str, Any]:
    return {
        "id": block_hash,
        "height": height,
        "version": 710950912,
        "timestamp": 1713571767,
        "tx_count": 3050,
        "size": 2325617,
        "weight": 3993281,
        "merkle_root": "031b417c3a1828ddf3d6527fc210daafcc9218e81f98257f88d4d43bd7a5894f",
        "nonce": 3932395645,
        "difficulty": 86388558925171.02,
    }


MEMPOOL_PAYLOAD = {"count": 45123, "vsize": 23456789, "total_fee": 123456789}
PRICE_PAYLOAD = {"bitcoin": {"usd": 67123.45, "usd_24h_change": -1.2345}}
SENTIMENT_PAYLOAD = {
    "name": "Fear and Greed Index",
    "data": [
        {
            "value": "72",
            "value_classification": "Greed",
            "timestamp": "1713571200",
            "time_until_update": "3600",
        }
    ],
}
NETWORK_PAYLOAD = {
    "market_price_usd": 67000.0,
    "hash_rate": 600000000000.0,
    "total_fees_btc": 2500000000,
    "n_tx": 650000,
    "estimated_transaction_volume_usd": 1500000000.0,
    "difficulty": 86388558925171.02,
    "totalbc": 1969000000000000,
}

Route = Union[tuple, Exception, Callable[[httpx.Request], Any]]


class FakeUpstream:
    """Routes requests by scheme://host/path and records every call."""

    def __init__(self, routes: Dict[str, Route] | None = None) -> None:
        self.routes: Dict[str, Route] = dict(routes or {})
        self.calls: List[str] = []

    async def handler(self, request: httpx.Request) -> httpx.Response:
        key = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        self.calls.append(key)
        route = self.routes.get(key)
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, Exception):
            raise route
        if callable(route):
            route = await route(request)
            if isinstance(route, httpx.Response):
                return route
        status, body = route
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def healthy_routes() -> Dict[str, Route]:
    return {
        TIP_HASH_URL: (200, BLOCK_HASH),
        BLOCK_URL: (200, block_payload()),
        MEMPOOL_URL: (200, MEMPOOL_PAYLOAD),
        PRICE_URL: (200, PRICE_PAYLOAD),
        SENTIMENT_URL: (200, SENTIMENT_PAYLOAD),
        NETWORK_URL: (200, NETWORK_PAYLOAD),
    }


class FixedTimeProvider(TimeProvider):
    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(seconds=1)) -> None:
        self._current = start or datetime(2024, 4, 20, 0, 0, tzinfo=timezone.utc)
        self._step = step

    def now(self) -> datetime:
        value = self._current
        self._current += self._step
        return value


@pytest.fixture
def config() -> MonitorConfig:
    return MonitorConfig()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream(healthy_routes())
