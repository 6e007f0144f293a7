"""Display formatting for metric values."""

from __future__ import annotations

from datetime import datetime, tzinfo
from decimal import Decimal
from typing import Union

from bitcoin_monitor.config.models import HashRateUnit

Number = Union[int, float, Decimal]

BYTE_UNITS = ("Bytes", "KB", "MB", "GB")
SATS_PER_BTC = 100_000_000
PLACEHOLDER = "—"

_HASH_RATE_DIVISORS = {
    HashRateUnit.EH: 1e18,
    HashRateUnit.TH: 1e12,
}


def humanize_bytes(num_bytes: Number) -> str:
    """Scale to the largest unit (up to GB) keeping the value >= 1."""
    if num_bytes < 0:
        raise ValueError(f"Byte count must be non-negative: {num_bytes}")
    if num_bytes == 0:
        return "0 Bytes"
    value = float(num_bytes)
    index = 0
    while value >= 1024 and index < len(BYTE_UNITS) - 1:
        value /= 1024
        index += 1
    # 1023.999 KB would round to "1024 KB"
    if round(value, 2) >= 1024 and index < len(BYTE_UNITS) - 1:
        value /= 1024
        index += 1
    return f"{_trim(round(value, 2))} {BYTE_UNITS[index]}"


def humanize_difficulty(difficulty: Number) -> str:
    return f"{float(difficulty) / 1e12:.2f}T"


def humanize_hash_rate(hashes_per_second: Number, unit: HashRateUnit = HashRateUnit.EH) -> str:
    divisor = _HASH_RATE_DIVISORS[HashRateUnit(unit)]
    return f"{float(hashes_per_second) / divisor:.2f} {HashRateUnit(unit).value}"


def format_number(value: Number) -> str:
    if isinstance(value, int):
        return f"{value:,}"
    return f"{float(value):,.2f}"


def format_usd(value: Number) -> str:
    return f"${format_number(value)}"


def format_usd_billions(value: Number) -> str:
    return f"${float(value) / 1e9:.1f}B"


def format_btc_from_sats(sats: Number) -> str:
    return f"{float(sats) / SATS_PER_BTC:.2f} BTC"


def format_change_pct(change: Number) -> str:
    sign = "+" if change >= 0 else ""
    return f"{sign}{float(change):.2f}%"


def format_block_time(timestamp: int, tz: tzinfo | None = None) -> str:
    moment = datetime.fromtimestamp(timestamp, tz=tz)
    return moment.strftime("%Y-%m-%d %H:%M:%S")


def truncate_hash(block_hash: str, length: int = 16) -> str:
    if len(block_hash) <= length:
        return block_hash
    return f"{block_hash[:length]}..."


def _trim(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")
