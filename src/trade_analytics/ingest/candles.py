from __future__ import annotations

import csv
import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

from trade_analytics.models import Candle


@dataclass(frozen=True)
class CandleIngestResult:
    candles: list[Candle]
    skipped: int = 0


def load_candles(path: str | Path) -> CandleIngestResult:
    source_path = Path(path)
    suffix = source_path.suffix.lower()
    if suffix == ".json":
        with source_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        return load_candles_payload(payload)
    if suffix in {".csv", ".tsv"}:
        with source_path.open("r", encoding="utf-8", newline="") as handle:
            reader = csv.DictReader(handle, delimiter="\t" if suffix == ".tsv" else ",")
            candles, skipped = _normalize_records(reader)
        return CandleIngestResult(candles=candles, skipped=skipped)
    raise ValueError(f"Unsupported file type: {source_path.suffix}")


def load_candles_payload(payload: Any) -> CandleIngestResult:
    records = _extract_records(payload)
    candles, skipped = _normalize_records(records)
    return CandleIngestResult(candles=candles, skipped=skipped)


def _extract_records(payload: Any) -> Iterable[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("candles", "data", "bars"):
            if key in payload and isinstance(payload[key], list):
                return payload[key]
    raise ValueError("Unsupported JSON format for candles payload")


def _normalize_records(records: Iterable[Any]) -> tuple[list[Candle], int]:
    candles: list[Candle] = []
    skipped = 0
    for raw in records:
        try:
            candles.append(_normalize_candle(raw))
        except ValueError:
            skipped += 1
    return candles, skipped


def _normalize_candle(raw: Any) -> Candle:
    # [time, open, high, low, close] rows are accepted alongside mappings.
    if isinstance(raw, (list, tuple)):
        if len(raw) < 5:
            raise ValueError("Candle row too short")
        time_value, open_value, high_value, low_value, close_value = raw[:5]
    elif isinstance(raw, Mapping):
        time_value = _pick(raw, "time", "t", "timestamp", "start")
        open_value = _pick(raw, "open", "o")
        high_value = _pick(raw, "high", "h")
        low_value = _pick(raw, "low", "l")
        close_value = _pick(raw, "close", "c")
    else:
        raise ValueError("Unsupported candle row")

    return Candle(
        time=_to_seconds(time_value),
        open=_to_float(open_value),
        high=_to_float(high_value),
        low=_to_float(low_value),
        close=_to_float(close_value),
    )


def _pick(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] not in (None, ""):
            return raw[key]
    return None


def _to_float(value: Any) -> float:
    if value is None:
        raise ValueError("Missing numeric field")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValueError("Invalid numeric field") from exc
    if not math.isfinite(number):
        raise ValueError("Non-finite numeric field")
    return number


def _to_seconds(value: Any) -> int:
    numeric = _to_float(value)
    if numeric > 1e12:
        numeric = numeric / 1000.0
    return int(numeric)
