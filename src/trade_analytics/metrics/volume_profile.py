from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from trade_analytics.metrics.common import require_collection, round_half_up
from trade_analytics.models import Candle

DEFAULT_BUCKETS = 50
DEFAULT_VALUE_AREA_PCT = 0.70
DEFAULT_PRICE_PRECISION = 5
VOLUME_SCALE = 1000.0
LEVELS_PER_BUCKET = 10


@dataclass(frozen=True)
class VolumeLevel:
    price: float
    volume: float


@dataclass(frozen=True)
class VolumeProfileResult:
    poc: float
    value_area_high: float
    value_area_low: float
    total_volume: float
    profile: list[VolumeLevel]


def compute_volume_profile(
    candles: Iterable[Candle] | None,
    *,
    buckets: int = DEFAULT_BUCKETS,
    value_area_pct: float = DEFAULT_VALUE_AREA_PCT,
    price_precision: int = DEFAULT_PRICE_PRECISION,
) -> VolumeProfileResult:
    """Approximate volume-at-price from OHLC candles.

    Candles carry no traded volume, so each candle is weighted by
    ``range * body * 1000`` and spread evenly over its high-low range. The
    value area takes levels in descending volume while the running total is
    still under ``value_area_pct`` of the whole, so it can overshoot by one
    level. A non-finite price yields NaN levels and a non-finite total
    instead of a profile.
    """
    candle_list = require_collection(candles, "candles")
    if not candle_list:
        return _empty_profile()

    prices = [price for candle in candle_list for price in (candle.high, candle.low, candle.open, candle.close)]
    if not all(math.isfinite(price) for price in prices):
        return _non_finite_profile(candle_list)
    min_price = min(prices)
    max_price = max(prices)
    bucket_size = (max_price - min_price) / buckets
    if not math.isfinite(bucket_size):
        return _non_finite_profile(candle_list)
    if bucket_size <= 0:
        return _empty_profile()

    volume_by_bucket: dict[int, float] = {}
    for candle in candle_list:
        candle_range = candle.high - candle.low
        candle_volume = _estimated_volume(candle)
        levels = max(1, math.floor(candle_range / (bucket_size / LEVELS_PER_BUCKET)))
        share = candle_volume / (levels + 1)
        for step in range(levels + 1):
            price = candle.low + candle_range * (step / levels)
            index = round_half_up(price / bucket_size)
            volume_by_bucket[index] = volume_by_bucket.get(index, 0.0) + share

    # Stable sort: equal volumes keep first-seen order, which decides the POC.
    ranked = sorted(
        (
            VolumeLevel(price=_round_price(index * bucket_size, price_precision), volume=volume)
            for index, volume in volume_by_bucket.items()
        ),
        key=lambda level: level.volume,
        reverse=True,
    )

    poc = ranked[0].price
    total_volume = sum(level.volume for level in ranked)
    target = total_volume * value_area_pct
    accumulated = 0.0
    value_area_high = poc
    value_area_low = poc
    for level in ranked:
        if accumulated >= target:
            break
        accumulated += level.volume
        value_area_high = max(value_area_high, level.price)
        value_area_low = min(value_area_low, level.price)

    return VolumeProfileResult(
        poc=poc,
        value_area_high=value_area_high,
        value_area_low=value_area_low,
        total_volume=total_volume,
        profile=sorted(ranked, key=lambda level: level.price),
    )


def _round_price(value: float, precision: int) -> float:
    scale = 10**precision
    return round_half_up(value * scale) / scale


def _empty_profile() -> VolumeProfileResult:
    return VolumeProfileResult(
        poc=0.0,
        value_area_high=0.0,
        value_area_low=0.0,
        total_volume=0.0,
        profile=[],
    )


def _estimated_volume(candle: Candle) -> float:
    return (candle.high - candle.low) * abs(candle.close - candle.open) * VOLUME_SCALE


def _non_finite_profile(candles: list[Candle]) -> VolumeProfileResult:
    # Levels cannot be placed on a non-finite price axis; the estimate still
    # carries the NaN/inf through total_volume.
    return VolumeProfileResult(
        poc=math.nan,
        value_area_high=math.nan,
        value_area_low=math.nan,
        total_volume=sum(_estimated_volume(candle) for candle in candles),
        profile=[],
    )
