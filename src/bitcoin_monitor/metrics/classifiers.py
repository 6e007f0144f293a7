"""Threshold classifiers turning a single number into a label and color."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

from .formatters import Number


@dataclass(frozen=True, slots=True)
class DerivedMetric:
    label: str
    color: str  # rich style name


# (upper bound inclusive, label, color); values above the last bound fall through.
SENTIMENT_TIERS: Sequence[Tuple[float, str, str]] = (
    (20, "Extreme Fear", "red"),
    (40, "Fear", "dark_orange"),
    (60, "Neutral", "yellow"),
    (80, "Greed", "green"),
)
SENTIMENT_TOP = DerivedMetric("Extreme Greed", "bright_green")

# (lower bound inclusive, label, color), highest first.
PRICE_TIERS: Sequence[Tuple[float, str, str]] = (
    (100_000, "Near ATH", "bright_green"),
    (80_000, "Very High", "green"),
    (50_000, "High", "yellow"),
    (30_000, "Normal", "white"),
    (20_000, "Low", "dark_orange"),
)
PRICE_FLOOR = DerivedMetric("Very Low", "red")

BLOCK_FULLNESS_TIERS: Sequence[Tuple[float, str, str]] = (
    (3.5, "Near Limit", "red"),
    (2.5, "Very Full", "dark_orange"),
    (1.5, "Full", "yellow"),
    (0.5, "Moderate", "green"),
)
BLOCK_FULLNESS_FLOOR = DerivedMetric("Light", "bright_green")

BYTES_PER_MB = 1_000_000


def sentiment_tier(value: Number) -> DerivedMetric:
    if not 0 <= value <= 100:
        raise ValueError(f"Sentiment index out of range: {value}")
    for upper, label, color in SENTIMENT_TIERS:
        if value <= upper:
            return DerivedMetric(label, color)
    return SENTIMENT_TOP


def price_tier(usd: Number) -> DerivedMetric:
    return _lower_bound_tier(usd, PRICE_TIERS, PRICE_FLOOR)


def block_fullness_tier(size_mb: Number) -> DerivedMetric:
    return _lower_bound_tier(size_mb, BLOCK_FULLNESS_TIERS, BLOCK_FULLNESS_FLOOR)


def block_size_mb(size_bytes: int) -> float:
    return size_bytes / BYTES_PER_MB


def change_color(change: Number) -> str:
    return "green" if change >= 0 else "red"


def _lower_bound_tier(
    value: Number, tiers: Sequence[Tuple[float, str, str]], floor: DerivedMetric
) -> DerivedMetric:
    for lower, label, color in tiers:
        if value >= lower:
            return DerivedMetric(label, color)
    return floor
