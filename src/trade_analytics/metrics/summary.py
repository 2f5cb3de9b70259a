from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from trade_analytics.metrics.common import (
    DEFAULT_BASELINE_EQUITY,
    RATIO_SENTINEL,
    as_utc,
    average_rr,
    closed_trades,
    mean_or_zero,
    population_stdev,
    profit_factor,
    profit_totals,
    require_collection,
    round2,
    sort_chronologically,
    split_outcomes,
    win_rate_pct,
)
from trade_analytics.models import STATUS_LOSS, STATUS_OPEN, STATUS_WIN, InvalidInput, TradeRecord

SECONDS_PER_DAY = 86_400.0
DAYS_PER_YEAR = 365.0


@dataclass(frozen=True)
class PerformanceMetrics:
    total_trades: int
    winning_trades: int
    losing_trades: int
    open_trades: int
    win_rate: float
    profit_factor: float
    sharpe_ratio: float
    sortino_ratio: float
    calmar_ratio: float
    recovery_factor: float
    max_drawdown: float
    average_rr: float
    expectancy: float
    consistency_score: float
    total_profit: float
    total_loss: float
    net_pnl: float
    largest_win: float
    largest_loss: float
    average_win: float
    average_loss: float
    win_loss_ratio: float
    consecutive_wins: int
    consecutive_losses: int
    max_consecutive_wins: int
    max_consecutive_losses: int


def compute_performance_metrics(
    trades: Iterable[TradeRecord] | None,
    *,
    baseline_equity: float = DEFAULT_BASELINE_EQUITY,
) -> PerformanceMetrics:
    """Portfolio statistics over the closed trades of a journal snapshot.

    Win/loss classification follows ``status`` only; pnl sign never reclassifies
    a trade. Ratios with a zero denominator resolve to 999 or 0, and every
    float is rounded half-up to two decimals.
    """
    trade_list = require_collection(trades, "trades")
    if baseline_equity <= 0:
        raise InvalidInput("baseline_equity must be positive.")

    open_count = sum(1 for trade in trade_list if trade.status == STATUS_OPEN)
    closed = closed_trades(trade_list)
    if not closed:
        return _empty_metrics(open_count)

    wins, losses = split_outcomes(closed)
    total_profit, total_loss = profit_totals(wins, losses)

    win_rate = win_rate_pct(len(wins), len(closed))
    avg_win = total_profit / len(wins) if wins else 0.0
    avg_loss = total_loss / len(losses) if losses else 0.0
    win_prob = win_rate / 100.0
    expectancy = avg_win * win_prob - avg_loss * (1.0 - win_prob)

    win_loss_ratio = 0.0
    if avg_loss > 0:
        win_loss_ratio = avg_win / avg_loss
    elif avg_win > 0:
        win_loss_ratio = RATIO_SENTINEL

    returns = [trade.realized_pnl / baseline_equity for trade in closed]
    sharpe = _sharpe_ratio(returns)
    sortino = _sortino_ratio(returns)

    ordered = sort_chronologically(closed)
    max_drawdown, final_equity = _max_drawdown(ordered, baseline_equity)

    calmar = 0.0
    recovery = 0.0
    if max_drawdown > 0:
        annualized = _annualized_return(ordered, final_equity, baseline_equity)
        calmar = annualized / (max_drawdown / 100.0)
        recovery = total_profit / (baseline_equity * max_drawdown / 100.0)

    max_wins, max_losses = _max_streaks(ordered)
    current_wins, current_losses = _current_streak(ordered)

    largest_win = max((trade.realized_pnl for trade in wins), default=0.0)
    largest_loss = min((trade.realized_pnl for trade in losses), default=0.0)

    return PerformanceMetrics(
        total_trades=len(closed),
        winning_trades=len(wins),
        losing_trades=len(losses),
        open_trades=open_count,
        win_rate=round2(win_rate),
        profit_factor=round2(profit_factor(total_profit, total_loss)),
        sharpe_ratio=round2(sharpe),
        sortino_ratio=round2(sortino),
        calmar_ratio=round2(calmar),
        recovery_factor=round2(recovery),
        max_drawdown=round2(max_drawdown),
        average_rr=round2(average_rr(closed)),
        expectancy=round2(expectancy),
        consistency_score=round2(_consistency_score(closed)),
        total_profit=round2(total_profit),
        total_loss=round2(total_loss),
        net_pnl=round2(total_profit - total_loss),
        largest_win=round2(largest_win),
        largest_loss=round2(largest_loss),
        average_win=round2(avg_win),
        average_loss=round2(avg_loss),
        win_loss_ratio=round2(win_loss_ratio),
        consecutive_wins=current_wins,
        consecutive_losses=current_losses,
        max_consecutive_wins=max_wins,
        max_consecutive_losses=max_losses,
    )


def _empty_metrics(open_count: int) -> PerformanceMetrics:
    return PerformanceMetrics(
        total_trades=0,
        winning_trades=0,
        losing_trades=0,
        open_trades=open_count,
        win_rate=0.0,
        profit_factor=0.0,
        sharpe_ratio=0.0,
        sortino_ratio=0.0,
        calmar_ratio=0.0,
        recovery_factor=0.0,
        max_drawdown=0.0,
        average_rr=0.0,
        expectancy=0.0,
        consistency_score=0.0,
        total_profit=0.0,
        total_loss=0.0,
        net_pnl=0.0,
        largest_win=0.0,
        largest_loss=0.0,
        average_win=0.0,
        average_loss=0.0,
        win_loss_ratio=0.0,
        consecutive_wins=0,
        consecutive_losses=0,
        max_consecutive_wins=0,
        max_consecutive_losses=0,
    )


def _sharpe_ratio(returns: list[float]) -> float:
    deviation = population_stdev(returns)
    if deviation == 0:
        return 0.0
    return mean_or_zero(returns) / deviation


def _sortino_ratio(returns: list[float]) -> float:
    # Downside deviation against a zero target, over negative returns only.
    downside = [value for value in returns if value < 0]
    if not downside:
        return 0.0
    deviation = math.sqrt(sum(value**2 for value in downside) / len(downside))
    if deviation == 0:
        return 0.0
    return mean_or_zero(returns) / deviation


def _max_drawdown(ordered: list[TradeRecord], baseline_equity: float) -> tuple[float, float]:
    equity = baseline_equity
    peak = equity
    max_dd = 0.0
    for trade in ordered:
        equity += trade.realized_pnl
        if equity > peak:
            peak = equity
        drawdown = (peak - equity) / peak * 100.0
        if drawdown > max_dd:
            max_dd = drawdown
    return max_dd, equity


def _annualized_return(ordered: list[TradeRecord], final_equity: float, baseline_equity: float) -> float:
    first = as_utc(ordered[0].date)
    last = as_utc(ordered[-1].date)
    days_span = max((last - first).total_seconds() / SECONDS_PER_DAY, 1.0)
    return (final_equity - baseline_equity) / baseline_equity * (DAYS_PER_YEAR / days_span)


def _consistency_score(closed: list[TradeRecord]) -> float:
    months: dict[str, list[TradeRecord]] = {}
    for trade in closed:
        key = as_utc(trade.date).strftime("%Y-%m")
        months.setdefault(key, []).append(trade)
    monthly_rates = [
        win_rate_pct(sum(1 for trade in items if trade.status == STATUS_WIN), len(items))
        for items in months.values()
    ]
    return max(0.0, 100.0 - population_stdev(monthly_rates) * 2.0)


def _max_streaks(ordered: list[TradeRecord]) -> tuple[int, int]:
    max_wins = 0
    max_losses = 0
    current_wins = 0
    current_losses = 0

    for trade in ordered:
        if trade.status == STATUS_WIN:
            current_wins += 1
            current_losses = 0
        elif trade.status == STATUS_LOSS:
            current_losses += 1
            current_wins = 0
        else:
            current_wins = 0
            current_losses = 0
        max_wins = max(max_wins, current_wins)
        max_losses = max(max_losses, current_losses)

    return max_wins, max_losses


def _current_streak(ordered: list[TradeRecord]) -> tuple[int, int]:
    if not ordered:
        return 0, 0
    last_status = ordered[-1].status
    streak = 0
    for trade in reversed(ordered):
        if trade.status != last_status:
            break
        streak += 1
    if last_status == STATUS_WIN:
        return streak, 0
    if last_status == STATUS_LOSS:
        return 0, streak
    return 0, 0
