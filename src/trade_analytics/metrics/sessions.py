from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from trade_analytics.metrics.common import (
    as_utc,
    average_rr,
    closed_trades,
    mean_or_zero,
    profit_factor,
    profit_totals,
    require_collection,
    round2,
    split_outcomes,
    win_rate_pct,
)
from trade_analytics.models import (
    SESSION_ASIA,
    SESSION_CLOSE,
    SESSION_LONDON,
    SESSION_NEWYORK,
    SESSIONS,
    STATUS_WIN,
    Session,
    TradeRecord,
)

# UTC hour windows, end exclusive. Hours outside every window fall in CLOSE.
_SESSION_WINDOWS: tuple[tuple[Session, int, int], ...] = (
    (SESSION_ASIA, 0, 7),
    (SESSION_LONDON, 7, 12),
    (SESSION_NEWYORK, 12, 21),
)


@dataclass(frozen=True)
class SessionPerformance:
    session: Session
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: float
    total_profit: float
    total_loss: float
    profit_factor: float
    average_rr: float
    best_hour: int
    worst_hour: int
    avg_holding_time: float


@dataclass(frozen=True)
class HourlyPerformance:
    hour: int
    total_trades: int
    win_rate: float
    average_rr: float
    total_pnl: float


def utc_hour(trade: TradeRecord) -> int:
    return as_utc(trade.date).hour


def session_for_hour(hour: int) -> Session:
    for session, start, end in _SESSION_WINDOWS:
        if start <= hour < end:
            return session
    return SESSION_CLOSE


def session_for_trade(trade: TradeRecord) -> Session:
    if trade.session:
        return trade.session
    return session_for_hour(utc_hour(trade))


def compute_session_performance(trades: Iterable[TradeRecord] | None) -> list[SessionPerformance]:
    trade_list = require_collection(trades, "trades")
    buckets: dict[Session, list[TradeRecord]] = {}
    for trade in trade_list:
        buckets.setdefault(session_for_trade(trade), []).append(trade)

    rows = [_session_row(session, items) for session, items in buckets.items()]
    rows.sort(key=lambda row: (-row.win_rate, _session_rank(row.session)))
    return rows


def compute_hourly_performance(trades: Iterable[TradeRecord] | None) -> list[HourlyPerformance]:
    """Per-UTC-hour statistics for every hour that holds at least one trade.

    Open trades place an hour in the output but only closed trades feed its
    counts, so an hour with only open trades reports zeros.
    """
    trade_list = require_collection(trades, "trades")
    buckets: dict[int, list[TradeRecord]] = {}
    for trade in trade_list:
        buckets.setdefault(utc_hour(trade), []).append(trade)

    rows: list[HourlyPerformance] = []
    for hour, items in sorted(buckets.items()):
        closed = closed_trades(items)
        wins = sum(1 for trade in closed if trade.status == STATUS_WIN)
        rows.append(
            HourlyPerformance(
                hour=hour,
                total_trades=len(closed),
                win_rate=round2(win_rate_pct(wins, len(closed))),
                average_rr=round2(average_rr(closed)),
                total_pnl=round2(sum(trade.realized_pnl for trade in closed)),
            )
        )
    return rows


def fill_hourly_slots(rows: Iterable[HourlyPerformance]) -> list[HourlyPerformance]:
    by_hour = {row.hour: row for row in rows}
    return [
        by_hour.get(hour)
        or HourlyPerformance(hour=hour, total_trades=0, win_rate=0.0, average_rr=0.0, total_pnl=0.0)
        for hour in range(24)
    ]


def _session_row(session: Session, items: list[TradeRecord]) -> SessionPerformance:
    closed = closed_trades(items)
    wins, losses = split_outcomes(closed)
    total_profit, total_loss = profit_totals(wins, losses)
    best_hour, worst_hour = _best_and_worst_hour(closed)
    holding = [trade.holding_time for trade in closed if trade.holding_time is not None]
    return SessionPerformance(
        session=session,
        total_trades=len(closed),
        winning_trades=len(wins),
        losing_trades=len(losses),
        win_rate=round2(win_rate_pct(len(wins), len(closed))),
        total_profit=round2(total_profit),
        total_loss=round2(total_loss),
        profit_factor=round2(profit_factor(total_profit, total_loss)),
        average_rr=round2(average_rr(closed)),
        best_hour=best_hour,
        worst_hour=worst_hour,
        avg_holding_time=round2(mean_or_zero(holding)),
    )


def _best_and_worst_hour(closed: list[TradeRecord]) -> tuple[int, int]:
    stats: dict[int, list[int]] = {}
    for trade in closed:
        counts = stats.setdefault(utc_hour(trade), [0, 0])
        counts[1] += 1
        if trade.status == STATUS_WIN:
            counts[0] += 1
    if not stats:
        return 0, 0

    best_hour = worst_hour = -1
    best_rate = worst_rate = 0.0
    # Ascending hours with strict comparisons keep the lowest hour on ties.
    for hour in sorted(stats):
        wins, total = stats[hour]
        rate = win_rate_pct(wins, total)
        if best_hour < 0 or rate > best_rate:
            best_hour, best_rate = hour, rate
        if worst_hour < 0 or rate < worst_rate:
            worst_hour, worst_rate = hour, rate
    return best_hour, worst_hour


def _session_rank(session: Session) -> int:
    if session in SESSIONS:
        return SESSIONS.index(session)
    return len(SESSIONS)
