from __future__ import annotations

import csv
import json
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from trade_analytics.models import (
    SESSION_ASIA,
    SESSION_CLOSE,
    SESSION_LONDON,
    SESSION_NEWYORK,
    STATUSES,
    ExecutedLevels,
    Session,
    TradePlan,
    TradeRecord,
)

_SESSION_ALIASES = {
    "ASIA": SESSION_ASIA,
    "ASIAN": SESSION_ASIA,
    "TOKYO": SESSION_ASIA,
    "LONDON": SESSION_LONDON,
    "NEWYORK": SESSION_NEWYORK,
    "NY": SESSION_NEWYORK,
    "CLOSE": SESSION_CLOSE,
}


@dataclass(frozen=True)
class JournalIngestResult:
    trades: list[TradeRecord]
    skipped: int = 0


def load_journal(path: str | Path) -> JournalIngestResult:
    source_path = Path(path)
    suffix = source_path.suffix.lower()
    if suffix == ".json":
        with source_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        return load_journal_payload(payload)
    if suffix in {".csv", ".tsv"}:
        with source_path.open("r", encoding="utf-8", newline="") as handle:
            reader = csv.DictReader(handle, delimiter="\t" if suffix == ".tsv" else ",")
            trades, skipped = _normalize_records(reader)
        return JournalIngestResult(trades=trades, skipped=skipped)
    raise ValueError(f"Unsupported file type: {source_path.suffix}")


def load_journal_payload(payload: Any) -> JournalIngestResult:
    records = _extract_records(payload)
    trades, skipped = _normalize_records(records)
    return JournalIngestResult(trades=trades, skipped=skipped)


def _extract_records(payload: Any) -> Iterable[Mapping[str, Any]]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("trades", "journal", "entries", "data"):
            if key in payload and isinstance(payload[key], list):
                return payload[key]
    raise ValueError("Unsupported JSON format for journal payload")


def _normalize_records(records: Iterable[Mapping[str, Any]]) -> tuple[list[TradeRecord], int]:
    trades: list[TradeRecord] = []
    skipped = 0
    for index, raw in enumerate(records):
        if not isinstance(raw, Mapping):
            skipped += 1
            continue
        try:
            trades.append(_normalize_trade(raw, index))
        except ValueError:
            skipped += 1
    return trades, skipped


def _normalize_trade(raw: Mapping[str, Any], index: int) -> TradeRecord:
    trade_id = _pick(raw, "id", "trade_id", "tradeId")
    status = _normalize_status(_pick(raw, "status", "outcome"))
    date = _parse_timestamp(_pick(raw, "date", "timestamp", "time", "created_at", "createdAt"))

    return TradeRecord(
        trade_id=str(trade_id) if trade_id is not None else str(index),
        date=date,
        asset=str(_pick(raw, "asset", "symbol", "pair") or ""),
        setup_type=str(_pick(raw, "type", "setup_type", "setupType", "setup") or ""),
        status=status,
        pnl=_optional_float(_pick(raw, "pnl", "profit")),
        risk_reward=_optional_float(_pick(raw, "riskReward", "risk_reward", "rr")),
        session=_normalize_session(_pick(raw, "session")),
        holding_time=_optional_float(_pick(raw, "holdingTime", "holding_time")),
        trade_plan=_trade_plan(raw),
        actual_execution=_actual_execution(raw),
        trader=str(_pick(raw, "trader") or ""),
        note=str(_pick(raw, "note", "notes") or ""),
    )


def _trade_plan(raw: Mapping[str, Any]) -> TradePlan | None:
    nested = _pick(raw, "tradePlan", "trade_plan")
    if isinstance(nested, Mapping):
        source: Mapping[str, Any] = nested
        prefix = ""
    else:
        source = raw
        prefix = "plan_"
    entry = _optional_float(_pick(source, f"{prefix}entry"))
    stop = _optional_float(_pick(source, f"{prefix}stop"))
    target = _optional_float(_pick(source, f"{prefix}target"))
    if entry is None or stop is None or target is None:
        return None
    return TradePlan(
        entry=entry,
        stop=stop,
        target=target,
        reasoning=str(_pick(source, f"{prefix}reasoning") or ""),
    )


def _actual_execution(raw: Mapping[str, Any]) -> ExecutedLevels | None:
    nested = _pick(raw, "actualExecution", "actual_execution")
    if isinstance(nested, Mapping):
        source: Mapping[str, Any] = nested
        prefix = ""
    else:
        source = raw
        prefix = "actual_"
    entry = _optional_float(_pick(source, f"{prefix}entry"))
    stop = _optional_float(_pick(source, f"{prefix}stop"))
    if entry is None or stop is None:
        return None
    return ExecutedLevels(
        entry=entry,
        stop=stop,
        target=_optional_float(_pick(source, f"{prefix}target")),
    )


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] not in (None, ""):
            return raw[key]
    return None


def _normalize_status(value: Any) -> str:
    if value is None:
        raise ValueError("Missing status")
    text = str(value).strip().upper()
    if text not in STATUSES:
        raise ValueError(f"Unknown status: {value}")
    return text


def _normalize_session(value: Any) -> Session | None:
    if value is None:
        return None
    text = str(value).strip().upper().replace(" ", "").replace("_", "").replace("-", "")
    return _SESSION_ALIASES.get(text)


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValueError("Invalid numeric field") from exc
    if not math.isfinite(number):
        raise ValueError("Non-finite numeric field")
    return number


def _parse_timestamp(value: Any) -> datetime:
    if value is None:
        raise ValueError("Missing timestamp")

    if isinstance(value, (int, float)):
        return _timestamp_from_number(_optional_float(value))

    text = str(value).strip()
    try:
        numeric = float(text)
        return _timestamp_from_number(numeric)
    except ValueError:
        pass

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValueError("Unsupported timestamp format") from exc

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _timestamp_from_number(value: float) -> datetime:
    if not math.isfinite(value):
        raise ValueError("Non-finite timestamp")
    seconds = value / 1000.0 if value > 1e12 else value
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError) as exc:
        raise ValueError("Timestamp out of range") from exc
