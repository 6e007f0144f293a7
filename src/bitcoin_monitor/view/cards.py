"""Turn the dashboard state into labeled metric cards."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from bitcoin_monitor.config.models import MetricsConfig
from bitcoin_monitor.data.models import DashboardState
from bitcoin_monitor.metrics.classifiers import (
    block_fullness_tier,
    block_size_mb,
    change_color,
    price_tier,
    sentiment_tier,
)
from bitcoin_monitor.metrics.derived import block_subsidy, estimate_mvrv
from bitcoin_monitor.metrics.formatters import (
    PLACEHOLDER,
    format_block_time,
    format_btc_from_sats,
    format_change_pct,
    format_number,
    format_usd,
    format_usd_billions,
    humanize_bytes,
    humanize_difficulty,
    humanize_hash_rate,
    truncate_hash,
)


@dataclass(frozen=True, slots=True)
class MetricCard:
    title: str
    value: str
    caption: str
    tone: str = "bold"
    group: str = "network"


def build_cards(state: DashboardState, metrics: MetricsConfig) -> List[MetricCard]:
    cards: List[MetricCard] = []
    cards.append(_price_card(state))

    block = state.block
    cards.append(MetricCard(
        "Block Height",
        format_number(block.height) if block else PLACEHOLDER,
        "Current blockchain height",
    ))
    cards.append(MetricCard(
        "Latest Block Hash",
        truncate_hash(block.hash) if block else PLACEHOLDER,
        "Block identifier",
    ))
    cards.append(MetricCard(
        "Transactions",
        format_number(block.tx_count) if block else PLACEHOLDER,
        "In latest block",
    ))
    if block:
        fullness = block_fullness_tier(block_size_mb(block.size))
        cards.append(MetricCard("Block Size", humanize_bytes(block.size), fullness.label, fullness.color))
    else:
        cards.append(MetricCard("Block Size", PLACEHOLDER, "Block data size"))
    cards.append(MetricCard(
        "Difficulty",
        humanize_difficulty(block.difficulty) if block else PLACEHOLDER,
        "Mining difficulty",
    ))
    cards.append(MetricCard(
        "Block Time",
        format_block_time(block.timestamp) if block else PLACEHOLDER,
        "When block was mined",
    ))
    cards.append(MetricCard(
        "Block Reward",
        f"{block_subsidy(block.height):g} BTC" if block else PLACEHOLDER,
        "Subsidy per block",
    ))

    sentiment = state.sentiment
    if sentiment:
        tier = sentiment_tier(sentiment.value)
        cards.append(MetricCard("Fear & Greed", str(sentiment.value), sentiment.classification, tier.color))
    else:
        cards.append(MetricCard("Fear & Greed", PLACEHOLDER, "Market sentiment"))

    network = state.network
    cards.append(MetricCard(
        "Hash Rate",
        humanize_hash_rate(network.hash_rate, metrics.hash_rate_unit) if network else PLACEHOLDER,
        "Network security",
    ))
    mvrv = estimate_mvrv(state, metrics.mvrv)
    cards.append(MetricCard(
        "MVRV (Est.)",
        f"{mvrv:.2f}" if mvrv is not None else PLACEHOLDER,
        "Market/Realized Value",
    ))
    cards.append(MetricCard(
        "Network Activity",
        format_usd_billions(network.estimated_transaction_volume_usd) if network else PLACEHOLDER,
        "Daily transaction volume",
    ))

    mempool = state.mempool
    cards.append(MetricCard(
        "Pending Transactions",
        format_number(mempool.count) if mempool else PLACEHOLDER,
        "Unconfirmed in mempool",
        group="mempool",
    ))
    cards.append(MetricCard(
        "Mempool Size",
        humanize_bytes(mempool.vsize) if mempool else PLACEHOLDER,
        "Virtual size",
        group="mempool",
    ))
    cards.append(MetricCard(
        "Total Fees",
        format_btc_from_sats(mempool.total_fee) if mempool else PLACEHOLDER,
        "Pending fees",
        group="mempool",
    ))
    return cards


def _price_card(state: DashboardState) -> MetricCard:
    price = state.price
    if price is None:
        return MetricCard("Bitcoin Price", PLACEHOLDER, "24h change")
    tier = price_tier(price.usd)
    caption = f"{format_change_pct(price.usd_24h_change)} (24h) · {tier.label}"
    return MetricCard("Bitcoin Price", format_usd(price.usd), caption, change_color(price.usd_24h_change))
