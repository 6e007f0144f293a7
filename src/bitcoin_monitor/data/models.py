from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True, slots=True)
class BlockSnapshot:
    height: int
    hash: str
    timestamp: int
    tx_count: int
    size: int
    weight: int
    difficulty: Decimal
    nonce: int
    version: int
    merkle_root: str


@dataclass(frozen=True, slots=True)
class MempoolSnapshot:
    count: int
    vsize: int
    total_fee: int  # satoshis


@dataclass(frozen=True, slots=True)
class PriceSnapshot:
    usd: float
    usd_24h_change: float


@dataclass(frozen=True, slots=True)
class SentimentSnapshot:
    value: int
    classification: str
    timestamp: int
    time_until_update: Optional[int] = None


@dataclass(frozen=True, slots=True)
class NetworkStatsSnapshot:
    market_price_usd: float
    hash_rate: float  # H/s
    difficulty: Decimal
    estimated_transaction_volume_usd: float
    total_supply: int  # satoshis
    total_fees_btc: float
    n_tx: int


@dataclass(frozen=True, slots=True)
class MvrvSnapshot:
    value: float


@dataclass(slots=True)
class DashboardState:
    """Latest successful snapshot per source.

    Each slot is written only by its own source; a slot stays ``None`` until
    the first successful fetch.
    """

    block: Optional[BlockSnapshot] = None
    mempool: Optional[MempoolSnapshot] = None
    price: Optional[PriceSnapshot] = None
    sentiment: Optional[SentimentSnapshot] = None
    network: Optional[NetworkStatsSnapshot] = None
    mvrv: Optional[MvrvSnapshot] = None
    last_updated: Optional[datetime] = None
