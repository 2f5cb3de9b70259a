from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from jinja2 import Undefined

from trade_analytics.config.app_config import (
    AppConfig,
    load_app_config,
    resolve_candles_path,
    resolve_config_path,
    resolve_journal_path,
)
from trade_analytics.ingest.candles import load_candles, load_candles_payload
from trade_analytics.ingest.journal import load_journal
from trade_analytics.metrics.breakdown import compute_setup_performance
from trade_analytics.metrics.equity import compute_equity_curve
from trade_analytics.metrics.plan import compare_plan, compare_plans
from trade_analytics.metrics.report import (
    build_report,
    build_volume_profile,
    equity_to_dicts,
    hourly_to_dicts,
    metrics_to_dict,
    plans_to_dicts,
    sessions_to_dicts,
    setups_to_dicts,
    volume_profile_to_dict,
)
from trade_analytics.metrics.sessions import (
    compute_hourly_performance,
    compute_session_performance,
    fill_hourly_slots,
)
from trade_analytics.metrics.summary import compute_performance_metrics
from trade_analytics.models import TradeRecord

APP_ROOT = Path(__file__).resolve().parent
TEMPLATES = Jinja2Templates(directory=str(APP_ROOT / "templates"))


app = FastAPI(title="Trade Analytics")


@app.get("/", response_class=HTMLResponse)
def dashboard(request: Request) -> HTMLResponse:
    app_config = _app_config()
    state = _load_journal_state(app_config)
    report = build_report(state["trades"], app_config.analytics)
    context = {
        "page": "dashboard",
        "metrics": report["metrics"],
        "setups": report["setups"],
        "sessions": report["sessions"],
        "plans": report["plans"],
        "equity_curve": report["equity_curve"],
        "data_note": state["data_note"],
    }
    return TEMPLATES.TemplateResponse(request, "dashboard.html", context)


@app.get("/api/summary")
def summary_api(fill: bool = False) -> dict[str, Any]:
    app_config = _app_config()
    trades = _require_trades(app_config)
    return build_report(trades, app_config.analytics, fill_hours=fill)


@app.get("/api/metrics")
def metrics_api() -> dict[str, Any]:
    app_config = _app_config()
    trades = _require_trades(app_config)
    return metrics_to_dict(compute_performance_metrics(trades, baseline_equity=app_config.analytics.baseline_equity))


@app.get("/api/setups")
def setups_api() -> list[dict[str, Any]]:
    trades = _require_trades(_app_config())
    return setups_to_dicts(compute_setup_performance(trades))


@app.get("/api/sessions")
def sessions_api() -> list[dict[str, Any]]:
    trades = _require_trades(_app_config())
    return sessions_to_dicts(compute_session_performance(trades))


@app.get("/api/hourly")
def hourly_api(fill: bool = False) -> list[dict[str, Any]]:
    trades = _require_trades(_app_config())
    rows = compute_hourly_performance(trades)
    if fill:
        rows = fill_hourly_slots(rows)
    return hourly_to_dicts(rows)


@app.get("/api/equity")
def equity_api() -> list[dict[str, Any]]:
    app_config = _app_config()
    trades = _require_trades(app_config)
    return equity_to_dicts(compute_equity_curve(trades, baseline_equity=app_config.analytics.baseline_equity))


@app.get("/api/plans")
def plans_api() -> list[dict[str, Any]]:
    app_config = _app_config()
    trades = _require_trades(app_config)
    reviews = compare_plans(
        trades,
        tolerance=app_config.analytics.plan_tolerance,
        deviation_alert_pct=app_config.analytics.deviation_alert_pct,
    )
    return plans_to_dicts(reviews)


@app.get("/api/trades/{trade_id}/plan")
def trade_plan_api(trade_id: str) -> dict[str, Any]:
    app_config = _app_config()
    trades = _require_trades(app_config)
    trade = next((item for item in trades if item.trade_id == trade_id), None)
    if trade is None:
        raise HTTPException(status_code=404, detail="Trade not found.")
    comparison = compare_plan(trade, tolerance=app_config.analytics.plan_tolerance)
    return {
        "trade_id": trade.trade_id,
        "has_plan": trade.trade_plan is not None and trade.actual_execution is not None,
        "deviation_alert": comparison.deviation > app_config.analytics.deviation_alert_pct,
        "entry_match": comparison.entry_match,
        "stop_match": comparison.stop_match,
        "target_match": comparison.target_match,
        "lot_match": comparison.lot_match,
        "overall_score": comparison.overall_score,
        "deviation": comparison.deviation,
    }


@app.get("/api/volume-profile")
def volume_profile_file_api() -> dict[str, Any]:
    app_config = _app_config()
    candles_path = resolve_candles_path(app_config, os.environ)
    if not candles_path.exists():
        raise HTTPException(status_code=404, detail="Candles file not found.")
    result = load_candles(candles_path)
    return volume_profile_to_dict(build_volume_profile(result.candles, app_config.analytics))


@app.post("/api/volume-profile")
async def volume_profile_api(request: Request) -> dict[str, Any]:
    app_config = _app_config()
    try:
        payload = await request.json()
        result = load_candles_payload(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid candles payload: {exc}") from exc
    return volume_profile_to_dict(build_volume_profile(result.candles, app_config.analytics))


def _app_config() -> AppConfig:
    return load_app_config(resolve_config_path(os.environ))


def _load_journal_state(app_config: AppConfig) -> dict[str, Any]:
    journal_path = resolve_journal_path(app_config, os.environ)
    if not journal_path.exists():
        return {
            "trades": [],
            "skipped": 0,
            "data_note": (
                f"No journal file found. Place a journal export at {journal_path} "
                "or set TRADE_ANALYTICS_JOURNAL."
            ),
        }
    result = load_journal(journal_path)
    data_note = None
    if result.skipped:
        data_note = f"Skipped {result.skipped} journal rows during normalization."
    return {"trades": result.trades, "skipped": result.skipped, "data_note": data_note}


def _require_trades(app_config: AppConfig) -> list[TradeRecord]:
    journal_path = resolve_journal_path(app_config, os.environ)
    if not journal_path.exists():
        raise HTTPException(status_code=404, detail="Journal file not found.")
    return load_journal(journal_path).trades


def money_filter(value: float | None) -> str:
    if value is None or isinstance(value, Undefined):
        return "n/a"
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return "n/a"
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def percent_filter(value: float | None) -> str:
    # Engine rates are already expressed in percent.
    if value is None or isinstance(value, Undefined):
        return "n/a"
    return f"{float(value):.2f}%"


TEMPLATES.env.filters.update(
    {
        "money": money_filter,
        "percent": percent_filter,
    }
)


def main() -> None:
    import uvicorn

    app_config = _app_config()
    uvicorn.run(
        "trade_analytics.web.app:app",
        host=app_config.app.host,
        port=app_config.app.port,
        reload=app_config.app.reload,
    )


if __name__ == "__main__":
    main()
