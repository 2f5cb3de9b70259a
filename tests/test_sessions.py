from __future__ import annotations

from datetime import datetime, timezone

import pytest

from trade_analytics.metrics.sessions import (
    compute_hourly_performance,
    compute_session_performance,
    fill_hourly_slots,
    session_for_hour,
    session_for_trade,
)
from trade_analytics.models import InvalidInput, TradeRecord


def _trade(
    trade_id: str,
    hour: int,
    status: str,
    pnl: float = 0.0,
    *,
    minute: int = 0,
    session: str | None = None,
    holding_time: float | None = None,
    risk_reward: float | None = None,
) -> TradeRecord:
    return TradeRecord(
        trade_id=trade_id,
        date=datetime(2024, 5, 6, hour, minute, tzinfo=timezone.utc),
        asset="GBPUSD",
        setup_type="FVG",
        status=status,
        pnl=pnl,
        session=session,
        holding_time=holding_time,
        risk_reward=risk_reward,
    )


@pytest.mark.parametrize(
    ("hour", "expected"),
    [
        (0, "ASIA"),
        (6, "ASIA"),
        (7, "LONDON"),
        (11, "LONDON"),
        (12, "NEWYORK"),
        (20, "NEWYORK"),
        (21, "CLOSE"),
        (23, "CLOSE"),
    ],
)
def test_session_boundaries(hour: int, expected: str) -> None:
    assert session_for_hour(hour) == expected


def test_explicit_session_wins_over_hour() -> None:
    assert session_for_trade(_trade("1", 3, "WIN", session="NEWYORK")) == "NEWYORK"
    assert session_for_trade(_trade("2", 3, "WIN")) == "ASIA"


def test_session_statistics_and_hours() -> None:
    trades = [
        _trade("1", 8, "WIN", 40.0, holding_time=30.0, risk_reward=2.0),
        _trade("2", 8, "LOSS", -20.0, minute=30),
        _trade("3", 9, "WIN", 10.0, holding_time=60.0),
        _trade("4", 10, "WIN", 10.0, risk_reward=4.0),
        _trade("5", 2, "OPEN"),
    ]

    rows = compute_session_performance(trades)

    assert [row.session for row in rows] == ["LONDON", "ASIA"]
    london = rows[0]
    assert london.total_trades == 4
    assert london.winning_trades == 3
    assert london.losing_trades == 1
    assert london.win_rate == 75.0
    assert london.total_profit == 60.0
    assert london.total_loss == 20.0
    assert london.profit_factor == 3.0
    assert london.average_rr == 3.0
    assert london.best_hour == 9
    assert london.worst_hour == 8
    assert london.avg_holding_time == 45.0

    asia = rows[1]
    assert asia.total_trades == 0
    assert asia.win_rate == 0
    assert asia.best_hour == 0
    assert asia.worst_hour == 0
    assert asia.avg_holding_time == 0


def test_best_and_worst_hour_ties_take_lowest_hour() -> None:
    trades = [
        _trade("1", 14, "LOSS", -5.0),
        _trade("2", 13, "LOSS", -5.0),
        _trade("3", 15, "WIN", 5.0),
        _trade("4", 16, "WIN", 5.0),
    ]

    (newyork,) = compute_session_performance(trades)

    assert newyork.best_hour == 15
    assert newyork.worst_hour == 13


def test_equal_win_rates_use_session_order() -> None:
    trades = [
        _trade("1", 22, "WIN", 1.0),
        _trade("2", 1, "WIN", 1.0),
    ]

    assert [row.session for row in compute_session_performance(trades)] == ["ASIA", "CLOSE"]


def test_hourly_buckets_skip_empty_hours() -> None:
    trades = [
        _trade("1", 9, "WIN", 25.0, risk_reward=2.0),
        _trade("2", 9, "LOSS", -10.0, minute=15),
        _trade("3", 14, "OPEN"),
        _trade("4", 3, "WIN", 5.0),
    ]

    rows = compute_hourly_performance(trades)

    assert [row.hour for row in rows] == [3, 9, 14]
    nine = rows[1]
    assert nine.total_trades == 2
    assert nine.win_rate == 50.0
    assert nine.average_rr == 2.0
    assert nine.total_pnl == 15.0
    assert rows[2].total_trades == 0


def test_fill_hourly_slots_zero_fills() -> None:
    rows = fill_hourly_slots(compute_hourly_performance([_trade("1", 5, "WIN", 1.0)]))

    assert len(rows) == 24
    assert [row.hour for row in rows] == list(range(24))
    assert rows[5].total_trades == 1
    assert rows[6].total_trades == 0


def test_idempotent_and_invalid_input() -> None:
    trades = [_trade("1", 9, "WIN", 1.0), _trade("2", 18, "LOSS", -1.0)]

    assert compute_session_performance(trades) == compute_session_performance(trades)
    assert compute_hourly_performance(trades) == compute_hourly_performance(trades)
    with pytest.raises(InvalidInput):
        compute_session_performance(None)
    with pytest.raises(InvalidInput):
        compute_hourly_performance(None)
