from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, Iterable

from trade_analytics.config.app_config import AnalyticsSettings
from trade_analytics.metrics.breakdown import SetupPerformance, compute_setup_performance
from trade_analytics.metrics.common import require_collection
from trade_analytics.metrics.equity import EquityPoint, compute_equity_curve
from trade_analytics.metrics.plan import PlanReview, compare_plans
from trade_analytics.metrics.sessions import (
    HourlyPerformance,
    SessionPerformance,
    compute_hourly_performance,
    compute_session_performance,
    fill_hourly_slots,
)
from trade_analytics.metrics.summary import PerformanceMetrics, compute_performance_metrics
from trade_analytics.metrics.volume_profile import VolumeProfileResult, compute_volume_profile
from trade_analytics.models import Candle, TradeRecord


def build_report(
    trades: Iterable[TradeRecord] | None,
    settings: AnalyticsSettings,
    *,
    as_of: datetime | None = None,
    fill_hours: bool = False,
) -> dict[str, Any]:
    trade_list = require_collection(trades, "trades")
    hourly = compute_hourly_performance(trade_list)
    if fill_hours:
        hourly = fill_hourly_slots(hourly)
    return {
        "metrics": metrics_to_dict(compute_performance_metrics(trade_list, baseline_equity=settings.baseline_equity)),
        "setups": setups_to_dicts(compute_setup_performance(trade_list)),
        "sessions": sessions_to_dicts(compute_session_performance(trade_list)),
        "hourly": hourly_to_dicts(hourly),
        "equity_curve": equity_to_dicts(
            compute_equity_curve(trade_list, baseline_equity=settings.baseline_equity, as_of=as_of)
        ),
        "plans": plans_to_dicts(
            compare_plans(
                trade_list,
                tolerance=settings.plan_tolerance,
                deviation_alert_pct=settings.deviation_alert_pct,
            )
        ),
    }


def build_volume_profile(candles: Iterable[Candle] | None, settings: AnalyticsSettings) -> VolumeProfileResult:
    return compute_volume_profile(
        candles,
        buckets=settings.volume_buckets,
        value_area_pct=settings.value_area_pct,
        price_precision=settings.price_precision,
    )


def metrics_to_dict(metrics: PerformanceMetrics) -> dict[str, Any]:
    return asdict(metrics)


def setups_to_dicts(rows: Iterable[SetupPerformance]) -> list[dict[str, Any]]:
    return [asdict(row) for row in rows]


def sessions_to_dicts(rows: Iterable[SessionPerformance]) -> list[dict[str, Any]]:
    return [asdict(row) for row in rows]


def hourly_to_dicts(rows: Iterable[HourlyPerformance]) -> list[dict[str, Any]]:
    return [asdict(row) for row in rows]


def equity_to_dicts(points: Iterable[EquityPoint]) -> list[dict[str, Any]]:
    return [{"date": point.date.isoformat(), "equity": point.equity} for point in points]


def plans_to_dicts(reviews: Iterable[PlanReview]) -> list[dict[str, Any]]:
    return [
        {
            "trade_id": review.trade_id,
            "deviation_alert": review.deviation_alert,
            **asdict(review.comparison),
        }
        for review in reviews
    ]


def volume_profile_to_dict(result: VolumeProfileResult) -> dict[str, Any]:
    return {
        "poc": result.poc,
        "value_area_high": result.value_area_high,
        "value_area_low": result.value_area_low,
        "total_volume": result.total_volume,
        "profile": [{"price": level.price, "volume": level.volume} for level in result.profile],
    }
