from __future__ import annotations

import math
from dataclasses import fields
from datetime import datetime, timedelta, timezone

import pytest

from trade_analytics.metrics.common import round2, sort_chronologically
from trade_analytics.metrics.summary import compute_performance_metrics
from trade_analytics.models import InvalidInput, TradeRecord

BASE = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


def _trade(
    trade_id: str,
    status: str,
    pnl: float | None = None,
    *,
    days: float = 0.0,
    risk_reward: float | None = None,
) -> TradeRecord:
    return TradeRecord(
        trade_id=trade_id,
        date=BASE + timedelta(days=days),
        asset="EURUSD",
        setup_type="OB",
        status=status,
        pnl=pnl,
        risk_reward=risk_reward,
    )


def test_basic_scenario() -> None:
    trades = [
        _trade("1", "WIN", 100.0),
        _trade("2", "LOSS", -50.0, days=1),
        _trade("3", "OPEN", 0.0, days=2),
    ]

    metrics = compute_performance_metrics(trades)

    assert metrics.win_rate == 50.0
    assert metrics.total_profit == 100.0
    assert metrics.total_loss == 50.0
    assert metrics.profit_factor == 2.0
    assert metrics.expectancy == 25.0
    assert metrics.total_trades == 2
    assert metrics.winning_trades == 1
    assert metrics.losing_trades == 1
    assert metrics.open_trades == 1
    assert metrics.net_pnl == 50.0
    assert metrics.largest_win == 100.0
    assert metrics.largest_loss == -50.0
    assert metrics.average_win == 100.0
    assert metrics.average_loss == 50.0
    assert metrics.win_loss_ratio == 2.0


def test_empty_journal_is_all_zero() -> None:
    metrics = compute_performance_metrics([])

    for item in fields(metrics):
        assert getattr(metrics, item.name) == 0, item.name


def test_only_open_trades_counts_open_but_zero_statistics() -> None:
    trades = [_trade("1", "OPEN"), _trade("2", "OPEN", days=1)]

    metrics = compute_performance_metrics(trades)

    assert metrics.open_trades == 2
    assert metrics.winning_trades + metrics.losing_trades + metrics.open_trades == len(trades)
    assert metrics.win_rate == 0
    assert metrics.profit_factor == 0
    assert metrics.consistency_score == 0


def test_outcome_counts_partition_journal() -> None:
    trades = [
        _trade("1", "WIN", 10.0),
        _trade("2", "WIN", 5.0, days=1),
        _trade("3", "LOSS", -5.0, days=2),
        _trade("4", "OPEN", days=3),
        _trade("5", "LOSS", -1.0, days=4),
    ]

    metrics = compute_performance_metrics(trades)

    assert metrics.winning_trades + metrics.losing_trades + metrics.open_trades == len(trades)
    assert 0 <= metrics.win_rate <= 100


def test_profit_factor_sentinel_without_losses() -> None:
    trades = [_trade("1", "WIN", 100.0), _trade("2", "WIN", 20.0, days=1)]

    metrics = compute_performance_metrics(trades)

    assert metrics.profit_factor == 999
    assert metrics.win_loss_ratio == 999
    assert metrics.max_drawdown == 0
    assert metrics.calmar_ratio == 0
    assert metrics.recovery_factor == 0


def test_profit_factor_zero_when_nothing_won_or_lost() -> None:
    trades = [_trade("1", "WIN", 0.0), _trade("2", "LOSS", 0.0, days=1)]

    metrics = compute_performance_metrics(trades)

    assert metrics.profit_factor == 0
    assert metrics.win_loss_ratio == 0


def test_status_decides_outcome_not_pnl_sign() -> None:
    trades = [_trade("1", "WIN", -20.0), _trade("2", "LOSS", -30.0, days=1)]

    metrics = compute_performance_metrics(trades)

    assert metrics.win_rate == 50.0
    assert metrics.winning_trades == 1
    assert metrics.total_profit == -20.0
    assert metrics.total_loss == 30.0


def test_missing_pnl_counts_as_zero() -> None:
    trades = [_trade("1", "WIN", None), _trade("2", "LOSS", -10.0, days=1)]

    metrics = compute_performance_metrics(trades)

    assert metrics.total_profit == 0
    assert metrics.total_loss == 10.0


def test_average_rr_ignores_trades_without_ratio() -> None:
    trades = [
        _trade("1", "WIN", 10.0, risk_reward=2.0),
        _trade("2", "LOSS", -5.0, days=1, risk_reward=3.0),
        _trade("3", "WIN", 10.0, days=2),
        _trade("4", "OPEN", days=3, risk_reward=10.0),
    ]

    metrics = compute_performance_metrics(trades)

    assert metrics.average_rr == 2.5


def test_sharpe_and_sortino() -> None:
    trades = [_trade("1", "WIN", 100.0), _trade("2", "LOSS", -50.0, days=1)]

    metrics = compute_performance_metrics(trades)

    # returns 0.01 and -0.005: mean 0.0025, stdev 0.0075, downside deviation 0.005
    assert metrics.sharpe_ratio == 0.33
    assert metrics.sortino_ratio == 0.5


def test_drawdown_walks_trades_in_date_order() -> None:
    trades = [
        _trade("3", "WIN", 500.0, days=10),
        _trade("1", "WIN", 1000.0),
        _trade("2", "LOSS", -2200.0, days=1),
    ]

    metrics = compute_performance_metrics(trades)

    # 10000 -> 11000 (peak) -> 8800 -> 9300
    assert metrics.max_drawdown == 20.0
    assert metrics.recovery_factor == 0.75
    # (9300 - 10000) / 10000 * 365 / 10 days, over a 20% drawdown
    assert metrics.calmar_ratio == pytest.approx(-12.77, abs=0.011)


def test_calmar_uses_one_day_minimum_span() -> None:
    trades = [_trade("1", "WIN", 1000.0), _trade("2", "LOSS", -1100.0)]

    metrics = compute_performance_metrics(trades)

    # 11000 -> 9900, drawdown 10%; annualized -0.01 * 365 = -3.65
    assert metrics.max_drawdown == 10.0
    assert metrics.calmar_ratio == pytest.approx(-36.5, abs=0.011)


def test_streaks_follow_chronological_order() -> None:
    statuses = ["WIN", "WIN", "LOSS", "LOSS", "LOSS", "WIN"]
    trades = [_trade(str(idx), status, 1.0 if status == "WIN" else -1.0, days=idx) for idx, status in enumerate(statuses)]
    shuffled = [trades[3], trades[0], trades[5], trades[1], trades[4], trades[2]]

    metrics = compute_performance_metrics(shuffled)

    assert metrics.max_consecutive_wins == 2
    assert metrics.max_consecutive_losses == 3
    assert metrics.consecutive_wins == 1
    assert metrics.consecutive_losses == 0


def test_current_loss_streak() -> None:
    trades = [
        _trade("1", "WIN", 5.0),
        _trade("2", "LOSS", -1.0, days=1),
        _trade("3", "LOSS", -1.0, days=2),
    ]

    metrics = compute_performance_metrics(trades)

    assert metrics.consecutive_wins == 0
    assert metrics.consecutive_losses == 2


def test_equal_dates_keep_input_order() -> None:
    loss = _trade("a", "LOSS", -1.0)
    win = _trade("b", "WIN", 1.0)

    assert [trade.trade_id for trade in sort_chronologically([loss, win])] == ["a", "b"]
    assert compute_performance_metrics([loss, win]).consecutive_wins == 1
    assert compute_performance_metrics([win, loss]).consecutive_losses == 1


def test_consistency_score_from_monthly_win_rates() -> None:
    trades = [
        _trade("1", "WIN", 1.0),
        _trade("2", "WIN", 1.0, days=1),
        _trade("3", "WIN", 1.0, days=40),
        _trade("4", "LOSS", -1.0, days=41),
    ]

    metrics = compute_performance_metrics(trades)

    # monthly win rates 100 and 50, population stdev 25
    assert metrics.consistency_score == 50.0


def test_single_month_is_fully_consistent() -> None:
    trades = [_trade("1", "WIN", 1.0), _trade("2", "LOSS", -1.0, days=1)]

    assert compute_performance_metrics(trades).consistency_score == 100.0


def test_idempotent() -> None:
    trades = [
        _trade("1", "WIN", 120.0, risk_reward=2.0),
        _trade("2", "LOSS", -40.0, days=3),
        _trade("3", "WIN", 15.5, days=33),
    ]

    assert compute_performance_metrics(trades) == compute_performance_metrics(trades)


def test_non_finite_pnl_propagates() -> None:
    trades = [_trade("1", "WIN", math.nan), _trade("2", "LOSS", -10.0, days=1)]

    metrics = compute_performance_metrics(trades)

    assert math.isnan(metrics.total_profit)


def test_missing_collection_is_invalid_input() -> None:
    with pytest.raises(InvalidInput):
        compute_performance_metrics(None)


def test_round2_half_up() -> None:
    assert round2(0.125) == 0.13
    assert round2(-0.125) == -0.12
    assert round2(2.0) == 2.0
    assert math.isinf(round2(math.inf))
    assert math.isnan(round2(math.nan))
