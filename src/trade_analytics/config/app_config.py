from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

try:
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - Python <3.11
    import tomli as tomllib

DEFAULT_CONFIG_PATH = Path("config/app.toml")

ENV_CONFIG = "TRADE_ANALYTICS_CONFIG"
ENV_JOURNAL = "TRADE_ANALYTICS_JOURNAL"
ENV_CANDLES = "TRADE_ANALYTICS_CANDLES"


@dataclass(frozen=True)
class AppSettings:
    journal_path: Path
    candles_path: Path
    host: str
    port: int
    reload: bool


@dataclass(frozen=True)
class AnalyticsSettings:
    baseline_equity: float
    volume_buckets: int
    value_area_pct: float
    price_precision: int
    plan_tolerance: float
    deviation_alert_pct: float


@dataclass(frozen=True)
class AppConfig:
    app: AppSettings
    analytics: AnalyticsSettings


def load_app_config(path: Path | None = None) -> AppConfig:
    config_path = path or DEFAULT_CONFIG_PATH
    raw: Mapping[str, Any] = {}
    if config_path.exists():
        raw = tomllib.loads(config_path.read_text(encoding="utf-8"))

    app_raw = _section(raw, "app")
    analytics_raw = _section(raw, "analytics")

    app = AppSettings(
        journal_path=Path(app_raw.get("journal_path", "data/journal.json")),
        candles_path=Path(app_raw.get("candles_path", "data/candles.json")),
        host=str(app_raw.get("host", "127.0.0.1")),
        port=int(app_raw.get("port", 8000)),
        reload=bool(app_raw.get("reload", False)),
    )

    analytics = AnalyticsSettings(
        baseline_equity=_positive_float(analytics_raw.get("baseline_equity"), 10_000.0),
        volume_buckets=_positive_int(analytics_raw.get("volume_buckets"), 50),
        value_area_pct=_fraction(analytics_raw.get("value_area_pct"), 0.70),
        price_precision=_non_negative_int(analytics_raw.get("price_precision"), 5),
        plan_tolerance=_non_negative_float(analytics_raw.get("plan_tolerance"), 0.001),
        deviation_alert_pct=_non_negative_float(analytics_raw.get("deviation_alert_pct"), 5.0),
    )

    return AppConfig(app=app, analytics=analytics)


def resolve_config_path(env: Mapping[str, str]) -> Path | None:
    value = env.get(ENV_CONFIG)
    if not value:
        return None
    return Path(value)


def resolve_journal_path(app_config: AppConfig, env: Mapping[str, str], override: Path | None = None) -> Path:
    if override is not None:
        return override
    value = env.get(ENV_JOURNAL)
    if value:
        return Path(value)
    return app_config.app.journal_path


def resolve_candles_path(app_config: AppConfig, env: Mapping[str, str], override: Path | None = None) -> Path:
    if override is not None:
        return override
    value = env.get(ENV_CANDLES)
    if value:
        return Path(value)
    return app_config.app.candles_path


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    if isinstance(value, Mapping):
        return value
    return {}


def _float_or_none(value: Any) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _positive_float(value: Any, default: float) -> float:
    parsed = _float_or_none(value)
    if parsed is None or parsed <= 0:
        return default
    return parsed


def _non_negative_float(value: Any, default: float) -> float:
    parsed = _float_or_none(value)
    if parsed is None or parsed < 0:
        return default
    return parsed


def _fraction(value: Any, default: float) -> float:
    parsed = _float_or_none(value)
    if parsed is None or parsed <= 0 or parsed > 1:
        return default
    return parsed


def _positive_int(value: Any, default: int) -> int:
    parsed = _float_or_none(value)
    if parsed is None or int(parsed) <= 0:
        return default
    return int(parsed)


def _non_negative_int(value: Any, default: int) -> int:
    parsed = _float_or_none(value)
    if parsed is None or int(parsed) < 0:
        return default
    return int(parsed)
