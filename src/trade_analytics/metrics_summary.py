from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import Any

from trade_analytics.config.app_config import load_app_config, resolve_journal_path
from trade_analytics.ingest.journal import load_journal
from trade_analytics.metrics.report import build_report

_HEADLINE_FIELDS = (
    "total_trades",
    "winning_trades",
    "losing_trades",
    "open_trades",
    "win_rate",
    "profit_factor",
    "expectancy",
    "average_win",
    "average_loss",
    "win_loss_ratio",
    "largest_win",
    "largest_loss",
    "total_profit",
    "total_loss",
    "net_pnl",
    "average_rr",
    "sharpe_ratio",
    "sortino_ratio",
    "calmar_ratio",
    "recovery_factor",
    "max_drawdown",
    "consistency_score",
    "consecutive_wins",
    "consecutive_losses",
    "max_consecutive_wins",
    "max_consecutive_losses",
)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Compute performance metrics from a trade journal export.")
    parser.add_argument(
        "journal_path",
        type=Path,
        nargs="?",
        default=None,
        help="Path to journal export (json/csv/tsv).",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to app.toml.")
    parser.add_argument("--json", action="store_true", help="Print the full report as JSON.")
    parser.add_argument("--out", type=Path, default=None, help="Write output to a file instead of stdout.")
    args = parser.parse_args(argv)

    app_config = load_app_config(args.config)
    journal_path = resolve_journal_path(app_config, os.environ, args.journal_path)
    if not journal_path.exists():
        print(f"Journal file not found: {journal_path}", file=sys.stderr)
        return 1

    result = load_journal(journal_path)
    if result.skipped:
        print(f"Skipped {result.skipped} journal rows during normalization.", file=sys.stderr)

    report = build_report(result.trades, app_config.analytics)

    if args.json or (args.out is not None and args.out.suffix.lower() == ".json"):
        text = json.dumps(report, indent=2, sort_keys=True)
    else:
        text = _format_report(report)

    if args.out is None:
        print(text)
    else:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(text + "\n", encoding="utf-8")

    return 0


def _format_report(report: dict[str, Any]) -> str:
    metrics = report["metrics"]
    lines = [f"{key} {_format_value(metrics[key])}" for key in _HEADLINE_FIELDS]
    for row in report["setups"]:
        lines.append(
            f"setup {row['setup_type'] or 'na'} trades={row['total_trades']} "
            f"win_rate={_format_value(row['win_rate'])} profit_factor={_format_value(row['profit_factor'])}"
        )
    for row in report["sessions"]:
        lines.append(
            f"session {row['session']} trades={row['total_trades']} "
            f"win_rate={_format_value(row['win_rate'])} best_hour={row['best_hour']} worst_hour={row['worst_hour']}"
        )
    alerts = sum(1 for item in report["plans"] if item["deviation_alert"])
    lines.append(f"plans_reviewed {len(report['plans'])}")
    lines.append(f"plan_deviation_alerts {alerts}")
    return "\n".join(lines)


def _format_value(value: Any) -> str:
    if value is None:
        return "na"
    if isinstance(value, float):
        return f"{value:.6g}"
    return str(value)


if __name__ == "__main__":
    raise SystemExit(main())
