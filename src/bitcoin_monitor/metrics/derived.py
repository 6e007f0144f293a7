"""Derived on-chain figures computed from fetched snapshots."""

from __future__ import annotations

from typing import Optional

from bitcoin_monitor.config.models import MvrvConfig, MvrvStrategy
from bitcoin_monitor.data.models import DashboardState

from .formatters import SATS_PER_BTC, Number

INITIAL_SUBSIDY = 50.0
HALVING_INTERVAL = 210_000


def block_subsidy(height: int) -> float:
    """Block reward in BTC at ``height`` following the halving schedule."""
    if height < 0:
        raise ValueError(f"Block height must be non-negative: {height}")
    return INITIAL_SUBSIDY * 2.0 ** -(height // HALVING_INTERVAL)


def mvrv_heuristic(
    price_usd: Number,
    total_supply_sats: Number,
    daily_volume_usd: Number,
    days: int = 365,
    multiplier: float = 4.0,
) -> Optional[float]:
    """Market cap over an annualized transaction volume proxy for realized cap.

    Very rough; free APIs do not expose realized cap.
    """
    realized_proxy = float(daily_volume_usd) * days * multiplier
    if realized_proxy <= 0:
        return None
    market_cap = float(price_usd) * (float(total_supply_sats) / SATS_PER_BTC)
    return market_cap / realized_proxy


def estimate_mvrv(state: DashboardState, config: MvrvConfig) -> Optional[float]:
    if config.strategy == MvrvStrategy.CONSTANT:
        return config.constant_value
    if config.strategy == MvrvStrategy.SOURCE:
        return state.mvrv.value if state.mvrv else None
    if state.network is None:
        return None
    price = state.price.usd if state.price else state.network.market_price_usd
    return mvrv_heuristic(
        price,
        state.network.total_supply,
        state.network.estimated_transaction_volume_usd,
        days=config.volume_days,
        multiplier=config.volume_multiplier,
    )
