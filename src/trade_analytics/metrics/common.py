from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Iterable

from trade_analytics.models import STATUS_LOSS, STATUS_WIN, InvalidInput, TradeRecord

DEFAULT_BASELINE_EQUITY = 10_000.0
RATIO_SENTINEL = 999.0


def require_collection(value: Any, name: str) -> list[Any]:
    if value is None:
        raise InvalidInput(f"{name} collection is required.")
    return list(value)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def sort_chronologically(trades: Iterable[TradeRecord]) -> list[TradeRecord]:
    # sorted() is stable, equal dates keep their input order.
    return sorted(trades, key=lambda trade: as_utc(trade.date))


def closed_trades(trades: Iterable[TradeRecord]) -> list[TradeRecord]:
    return [trade for trade in trades if trade.is_closed]


def split_outcomes(trades: Iterable[TradeRecord]) -> tuple[list[TradeRecord], list[TradeRecord]]:
    trade_list = list(trades)
    wins = [trade for trade in trade_list if trade.status == STATUS_WIN]
    losses = [trade for trade in trade_list if trade.status == STATUS_LOSS]
    return wins, losses


def profit_totals(wins: Iterable[TradeRecord], losses: Iterable[TradeRecord]) -> tuple[float, float]:
    total_profit = sum(trade.realized_pnl for trade in wins)
    total_loss = abs(sum(trade.realized_pnl for trade in losses))
    return total_profit, total_loss


def win_rate_pct(wins: int, total: int) -> float:
    if not total:
        return 0.0
    return wins / total * 100.0


def profit_factor(total_profit: float, total_loss: float) -> float:
    if total_loss > 0:
        return total_profit / total_loss
    return RATIO_SENTINEL if total_profit > 0 else 0.0


def mean_or_zero(values: list[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def population_stdev(values: list[float]) -> float:
    if not values:
        return 0.0
    # statistics.pstdev raises on nan/inf; those must propagate instead.
    mean = sum(values) / len(values)
    variance = sum((value - mean) ** 2 for value in values) / len(values)
    return math.sqrt(variance)


def average_rr(trades: Iterable[TradeRecord]) -> float:
    return mean_or_zero([trade.risk_reward for trade in trades if trade.risk_reward is not None])


def round2(value: float) -> float:
    if not math.isfinite(value):
        return value
    return math.floor(value * 100.0 + 0.5) / 100.0


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
