from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Mapping

from bitcoin_monitor.config.models import EndpointConfig, MetricsConfig, MvrvStrategy, TipMode

from .errors import MalformedPayloadError
from .fetcher import HttpFetcher
from .models import (
    BlockSnapshot,
    MempoolSnapshot,
    MvrvSnapshot,
    NetworkStatsSnapshot,
    PriceSnapshot,
    SentimentSnapshot,
)
from .provider_base import SourceProvider, TimeProvider

_BLOCK_HASH_RE = re.compile(r"^[0-9a-f]{64}$")
# blockchain.info reports hash_rate in GH/s
_GIGA = 10**9


class SystemTimeProvider(TimeProvider):
    def now(self) -> datetime:
        return datetime.now(tz=timezone.utc)


class BlockProvider(SourceProvider[BlockSnapshot]):
    """Chain tip first, then the block it points at."""

    key = "block"

    def __init__(self, endpoints: EndpointConfig, tip_mode: TipMode = TipMode.HASH) -> None:
        self._endpoints = endpoints
        self._tip_mode = tip_mode

    async def request(self, http: HttpFetcher) -> Any:
        if self._tip_mode == TipMode.HEIGHT:
            height = _parse_tip_height(await http.get_text(self._endpoints.tip_height_url))
            blocks = await http.get_json(
                self._endpoints.blocks_at_height_url.format(height=height)
            )
            if not isinstance(blocks, list) or not blocks:
                raise MalformedPayloadError(f"No blocks returned at height {height}")
            return blocks[0]
        tip_hash = _parse_tip_hash(await http.get_text(self._endpoints.tip_hash_url))
        return await http.get_json(self._endpoints.block_url.format(hash=tip_hash))

    def parse(self, payload: Mapping[str, Any]) -> BlockSnapshot:
        block_hash = payload.get("id") or payload.get("hash")
        timestamp = payload.get("timestamp") or payload.get("time")
        if block_hash is None or timestamp is None:
            raise MalformedPayloadError("Block payload lacks id/hash or timestamp/time")
        return BlockSnapshot(
            height=int(payload["height"]),
            hash=_parse_tip_hash(str(block_hash)),
            timestamp=int(timestamp),
            tx_count=int(payload["tx_count"]),
            size=int(payload["size"]),
            weight=int(payload.get("weight", 0)),
            difficulty=Decimal(str(payload["difficulty"])),
            nonce=int(payload["nonce"]),
            version=int(payload["version"]),
            merkle_root=str(payload["merkle_root"]),
        )


class MempoolProvider(SourceProvider[MempoolSnapshot]):
    key = "mempool"

    def __init__(self, endpoints: EndpointConfig) -> None:
        self._endpoints = endpoints

    async def request(self, http: HttpFetcher) -> Any:
        return await http.get_json(self._endpoints.mempool_url)

    def parse(self, payload: Mapping[str, Any]) -> MempoolSnapshot:
        return MempoolSnapshot(
            count=int(payload["count"]),
            vsize=int(payload["vsize"]),
            total_fee=int(payload["total_fee"]),
        )


class PriceProvider(SourceProvider[PriceSnapshot]):
    key = "price"

    def __init__(self, endpoints: EndpointConfig, asset_id: str = "bitcoin", currency: str = "usd") -> None:
        self._endpoints = endpoints
        self._asset_id = asset_id
        self._currency = currency

    async def request(self, http: HttpFetcher) -> Any:
        return await http.get_json(self._endpoints.price_url, params=self._endpoints.price_params)

    def parse(self, payload: Mapping[str, Any]) -> PriceSnapshot:
        quote = payload[self._asset_id]
        return PriceSnapshot(
            usd=float(quote[self._currency]),
            usd_24h_change=float(quote[f"{self._currency}_24h_change"]),
        )


class SentimentProvider(SourceProvider[SentimentSnapshot]):
    """alternative.me Fear & Greed index."""

    key = "sentiment"

    def __init__(self, endpoints: EndpointConfig) -> None:
        self._endpoints = endpoints

    async def request(self, http: HttpFetcher) -> Any:
        return await http.get_json(self._endpoints.sentiment_url)

    def parse(self, payload: Mapping[str, Any]) -> SentimentSnapshot:
        entry = payload["data"][0]
        value = int(entry["value"])
        if not 0 <= value <= 100:
            raise MalformedPayloadError(f"Sentiment value out of range: {value}")
        until = entry.get("time_until_update")
        return SentimentSnapshot(
            value=value,
            classification=str(entry["value_classification"]),
            timestamp=int(entry["timestamp"]),
            time_until_update=int(until) if until not in (None, "") else None,
        )


class NetworkStatsProvider(SourceProvider[NetworkStatsSnapshot]):
    key = "network"

    def __init__(self, endpoints: EndpointConfig) -> None:
        self._endpoints = endpoints

    async def request(self, http: HttpFetcher) -> Any:
        return await http.get_json(self._endpoints.network_stats_url)

    def parse(self, payload: Mapping[str, Any]) -> NetworkStatsSnapshot:
        return NetworkStatsSnapshot(
            market_price_usd=float(payload["market_price_usd"]),
            hash_rate=float(payload["hash_rate"]) * _GIGA,
            difficulty=Decimal(str(payload["difficulty"])),
            estimated_transaction_volume_usd=float(payload["estimated_transaction_volume_usd"]),
            total_supply=int(payload["totalbc"]),
            total_fees_btc=float(payload.get("total_fees_btc", 0)),
            n_tx=int(payload.get("n_tx", 0)),
        )


class MvrvProvider(SourceProvider[MvrvSnapshot]):
    """Dedicated MVRV source returning a JSON object."""

    key = "mvrv"

    def __init__(self, url: str, value_key: str = "mvrv") -> None:
        self._url = url
        self._value_key = value_key

    async def request(self, http: HttpFetcher) -> Any:
        return await http.get_json(self._url)

    def parse(self, payload: Mapping[str, Any]) -> MvrvSnapshot:
        value = float(payload[self._value_key])
        if not math.isfinite(value) or value <= 0:
            raise MalformedPayloadError(f"Invalid MVRV value: {value}")
        return MvrvSnapshot(value=value)


def build_providers(endpoints: EndpointConfig, metrics: MetricsConfig) -> List[SourceProvider]:
    providers: List[SourceProvider] = [
        BlockProvider(endpoints, tip_mode=metrics.tip_mode),
        MempoolProvider(endpoints),
        PriceProvider(endpoints, asset_id=metrics.asset_id, currency=metrics.currency),
        SentimentProvider(endpoints),
        NetworkStatsProvider(endpoints),
    ]
    if metrics.mvrv.strategy == MvrvStrategy.SOURCE and endpoints.mvrv_url:
        providers.append(MvrvProvider(endpoints.mvrv_url, value_key=metrics.mvrv.value_key))
    return providers


def _parse_tip_hash(raw: str) -> str:
    value = raw.strip().lower()
    if not _BLOCK_HASH_RE.match(value):
        raise MalformedPayloadError(f"Not a block hash: {raw[:80]!r}")
    return value


def _parse_tip_height(raw: str) -> int:
    try:
        height = int(raw.strip())
    except ValueError as exc:
        raise MalformedPayloadError(f"Not a block height: {raw[:80]!r}") from exc
    if height < 0:
        raise MalformedPayloadError(f"Negative block height: {height}")
    return height
