"""Configuration models for the monitor."""

from __future__ import annotations

from enum import Enum
from typing import Dict

from pydantic import BaseModel, Field, model_validator


class TipMode(str, Enum):
    HASH = "hash"
    HEIGHT = "height"


class MvrvStrategy(str, Enum):
    CONSTANT = "constant"
    HEURISTIC = "heuristic"
    SOURCE = "source"


class HashRateUnit(str, Enum):
    EH = "EH/s"
    TH = "TH/s"


class EndpointConfig(BaseModel):
    tip_hash_url: str = "https://mempool.space/api/blocks/tip/hash"
    tip_height_url: str = "https://mempool.space/api/blocks/tip/height"
    block_url: str = "https://mempool.space/api/block/{hash}"
    blocks_at_height_url: str = "https://mempool.space/api/v1/blocks/{height}"
    mempool_url: str = "https://mempool.space/api/mempool"
    price_url: str = "https://api.coingecko.com/api/v3/simple/price"
    price_params: Dict[str, str] = Field(
        default_factory=lambda: {
            "ids": "bitcoin",
            "vs_currencies": "usd",
            "include_24hr_change": "true",
        }
    )
    sentiment_url: str = "https://api.alternative.me/fng/"
    network_stats_url: str = "https://api.blockchain.info/stats"
    mvrv_url: str | None = None


class HttpConfig(BaseModel):
    timeout_seconds: float = 10.0
    # 1 means no retry inside a cycle; the next tick is the retry.
    retry_attempts: int = Field(default=1, ge=1)
    retry_wait_seconds: float = 1.0
    user_agent: str = "bitcoin-monitor/0.1"


class SchedulingConfig(BaseModel):
    refresh_seconds: float = Field(default=120.0, gt=0)
    fire_immediately: bool = True


class MvrvConfig(BaseModel):
    strategy: MvrvStrategy = MvrvStrategy.HEURISTIC
    constant_value: float = 2.0
    volume_days: int = 365
    volume_multiplier: float = 4.0
    value_key: str = "mvrv"


class MetricsConfig(BaseModel):
    tip_mode: TipMode = TipMode.HASH
    hash_rate_unit: HashRateUnit = HashRateUnit.EH
    asset_id: str = "bitcoin"
    currency: str = "usd"
    mvrv: MvrvConfig = Field(default_factory=MvrvConfig)


class MonitorConfig(BaseModel):
    endpoints: EndpointConfig = Field(default_factory=EndpointConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    metadata: Dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_mvrv_source(self) -> "MonitorConfig":
        if self.metrics.mvrv.strategy == MvrvStrategy.SOURCE and not self.endpoints.mvrv_url:
            raise ValueError("mvrv strategy 'source' requires endpoints.mvrv_url")
        return self


def default_config() -> MonitorConfig:
    return MonitorConfig()
