from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from trade_analytics.metrics.common import require_collection, round2
from trade_analytics.models import InvalidInput, TradeRecord

PRICE_TOLERANCE = 0.001
DEVIATION_ALERT_PCT = 5.0

ENTRY_WEIGHT = 0.3
STOP_WEIGHT = 0.3
TARGET_WEIGHT = 0.2
LOT_WEIGHT = 0.2


@dataclass(frozen=True)
class PlanComparison:
    entry_match: bool
    stop_match: bool
    target_match: bool
    lot_match: bool
    overall_score: int
    deviation: float


@dataclass(frozen=True)
class PlanReview:
    trade_id: str
    comparison: PlanComparison
    deviation_alert: bool


def compare_plan(trade: TradeRecord | None, *, tolerance: float = PRICE_TOLERANCE) -> PlanComparison:
    """Score how closely the executed levels followed the trade plan.

    Levels match within an absolute price tolerance. Lot size is not recorded
    on trades, so the lot always matches and its deviation is always 0.
    """
    if trade is None:
        raise InvalidInput("trade is required.")
    plan = trade.trade_plan
    actual = trade.actual_execution
    if plan is None or actual is None:
        return PlanComparison(
            entry_match=False,
            stop_match=False,
            target_match=False,
            lot_match=False,
            overall_score=0,
            deviation=0.0,
        )

    entry_match = abs(actual.entry - plan.entry) <= tolerance
    stop_match = abs(actual.stop - plan.stop) <= tolerance
    target_match = actual.target is not None and abs(actual.target - plan.target) <= tolerance
    lot_match = True

    score = (
        (30 if entry_match else 0)
        + (30 if stop_match else 0)
        + (20 if target_match else 0)
        + (20 if lot_match else 0)
    )
    return PlanComparison(
        entry_match=entry_match,
        stop_match=stop_match,
        target_match=target_match,
        lot_match=lot_match,
        overall_score=score,
        deviation=calculate_plan_deviation(trade),
    )


def calculate_plan_deviation(trade: TradeRecord | None) -> float:
    if trade is None:
        raise InvalidInput("trade is required.")
    plan = trade.trade_plan
    actual = trade.actual_execution
    if plan is None or actual is None:
        return 0.0

    entry_dev = _pct_deviation(actual.entry, plan.entry)
    stop_dev = _pct_deviation(actual.stop, plan.stop)
    target_dev = 0.0 if actual.target is None else _pct_deviation(actual.target, plan.target)
    lot_dev = 0.0

    weighted = entry_dev * ENTRY_WEIGHT + stop_dev * STOP_WEIGHT + target_dev * TARGET_WEIGHT + lot_dev * LOT_WEIGHT
    return round2(weighted)


def compare_plans(
    trades: Iterable[TradeRecord] | None,
    *,
    tolerance: float = PRICE_TOLERANCE,
    deviation_alert_pct: float = DEVIATION_ALERT_PCT,
) -> list[PlanReview]:
    trade_list = require_collection(trades, "trades")
    reviews: list[PlanReview] = []
    for trade in trade_list:
        if trade.trade_plan is None or trade.actual_execution is None:
            continue
        comparison = compare_plan(trade, tolerance=tolerance)
        reviews.append(
            PlanReview(
                trade_id=trade.trade_id,
                comparison=comparison,
                deviation_alert=comparison.deviation > deviation_alert_pct,
            )
        )
    return reviews


def _pct_deviation(actual: float, planned: float) -> float:
    if planned == 0:
        return 0.0
    return abs(actual - planned) / abs(planned) * 100.0
