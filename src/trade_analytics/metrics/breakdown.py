from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from trade_analytics.metrics.common import (
    average_rr,
    closed_trades,
    profit_factor,
    profit_totals,
    require_collection,
    round2,
    split_outcomes,
    win_rate_pct,
)
from trade_analytics.models import TradeRecord


@dataclass(frozen=True)
class SetupPerformance:
    setup_type: str
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: float
    profit_factor: float
    average_rr: float
    total_profit: float
    net_pnl: float


def compute_setup_performance(trades: Iterable[TradeRecord] | None) -> list[SetupPerformance]:
    """Closed-trade statistics per setup label, best win rate first.

    Labels are grouped exactly as written (case-sensitive). Equal win rates
    are ordered by label so the output is deterministic.
    """
    trade_list = require_collection(trades, "trades")
    buckets: dict[str, list[TradeRecord]] = {}
    for trade in closed_trades(trade_list):
        buckets.setdefault(trade.setup_type, []).append(trade)

    rows = [_setup_row(setup_type, items) for setup_type, items in buckets.items()]
    rows.sort(key=lambda row: (-row.win_rate, row.setup_type))
    return rows


def _setup_row(setup_type: str, items: list[TradeRecord]) -> SetupPerformance:
    wins, losses = split_outcomes(items)
    total_profit, total_loss = profit_totals(wins, losses)
    return SetupPerformance(
        setup_type=setup_type,
        total_trades=len(items),
        winning_trades=len(wins),
        losing_trades=len(losses),
        win_rate=round2(win_rate_pct(len(wins), len(items))),
        profit_factor=round2(profit_factor(total_profit, total_loss)),
        average_rr=round2(average_rr(items)),
        total_profit=round2(total_profit),
        net_pnl=round2(total_profit - total_loss),
    )
