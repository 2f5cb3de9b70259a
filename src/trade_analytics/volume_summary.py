from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from trade_analytics.config.app_config import load_app_config, resolve_candles_path
from trade_analytics.ingest.candles import load_candles
from trade_analytics.metrics.report import build_volume_profile, volume_profile_to_dict


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Estimate a volume profile from OHLC candles.")
    parser.add_argument(
        "candles_path",
        type=Path,
        nargs="?",
        default=None,
        help="Path to candles export (json/csv/tsv).",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to app.toml.")
    parser.add_argument("--json", action="store_true", help="Print the full profile as JSON.")
    parser.add_argument("--out", type=Path, default=None, help="Write output to a file instead of stdout.")
    args = parser.parse_args(argv)

    app_config = load_app_config(args.config)
    candles_path = resolve_candles_path(app_config, os.environ, args.candles_path)
    if not candles_path.exists():
        print(f"Candles file not found: {candles_path}", file=sys.stderr)
        return 1

    result = load_candles(candles_path)
    if result.skipped:
        print(f"Skipped {result.skipped} candle rows during normalization.", file=sys.stderr)

    profile = build_volume_profile(result.candles, app_config.analytics)
    precision = app_config.analytics.price_precision

    if args.json:
        text = json.dumps(volume_profile_to_dict(profile), indent=2, sort_keys=True)
    else:
        text = "\n".join(
            [
                f"candles {len(result.candles)}",
                f"levels {len(profile.profile)}",
                f"poc {profile.poc:.{precision}f}",
                f"value_area_high {profile.value_area_high:.{precision}f}",
                f"value_area_low {profile.value_area_low:.{precision}f}",
                f"total_volume {profile.total_volume:.6g}",
            ]
        )

    if args.out is None:
        print(text)
    else:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(text + "\n", encoding="utf-8")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
