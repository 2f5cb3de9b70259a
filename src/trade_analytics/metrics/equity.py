from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable

from trade_analytics.metrics.common import (
    DEFAULT_BASELINE_EQUITY,
    closed_trades,
    require_collection,
    sort_chronologically,
)
from trade_analytics.models import TradeRecord


@dataclass(frozen=True)
class EquityPoint:
    date: datetime
    equity: float


def compute_equity_curve(
    trades: Iterable[TradeRecord] | None,
    *,
    baseline_equity: float = DEFAULT_BASELINE_EQUITY,
    as_of: datetime | None = None,
) -> list[EquityPoint]:
    """Cumulative equity after each closed trade, oldest first.

    The curve opens with ``as_of`` (now, when omitted) at the baseline. The
    running balance is unclamped but every reported point is floored at zero,
    so a curve that dips below zero and recovers shows 0 for the dip.
    """
    trade_list = require_collection(trades, "trades")
    start = as_of or datetime.now(timezone.utc)
    equity = baseline_equity
    points = [EquityPoint(date=start, equity=equity)]
    for trade in sort_chronologically(closed_trades(trade_list)):
        equity += trade.realized_pnl
        points.append(EquityPoint(date=trade.date, equity=_displayed(equity)))
    return points


def _displayed(equity: float) -> float:
    if math.isnan(equity):
        return equity
    return max(0.0, equity)

