#!/usr/bin/env python3
"""
Run a risk analysis over a price CSV.

**Purpose**: Loads a price file, derives daily returns (plus optional moving
average and z-score columns), and prints the risk/performance statistics
under the configured frequency and accumulation mode.

**Usage**:
    python actions/run_risk_analysis.py data/prices.csv --price-column close
    python actions/run_risk_analysis.py data/prices.csv --start 2024-01-02 --end 2024-06-28 \
        --mode product --frequency day --ma-window 20 --output data/results/metrics.json

Frequency and mode default to QUANTMETRICS_FREQUENCY / QUANTMETRICS_ACCUMULATION_MODE
(see quantmetrics/config/settings.py).
"""

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path

# Ensure project root is on path for imports
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from quantmetrics.config.settings import AnalyticsSettings
from quantmetrics.orchestration.pipeline import run_return_pipeline
from quantmetrics.utils.errors import QuantMetricsError
from quantmetrics.utils.logging_setup import init_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Risk analysis of a price CSV")
    parser.add_argument("csv_path", help="Path to the price CSV")
    parser.add_argument("--price-column", default="close")
    parser.add_argument("--timestamp-column", default="timestamp")
    parser.add_argument("--benchmark-column", default=None)
    parser.add_argument("--start", default=None, help="Inclusive start date (ISO 8601)")
    parser.add_argument("--end", default=None, help="Inclusive end date (ISO 8601)")
    parser.add_argument("--frequency", default=None, help='e.g. "day", "week", "2week"')
    parser.add_argument("--mode", choices=["sum", "product"], default=None)
    parser.add_argument("--ma-window", type=int, default=None)
    parser.add_argument("--zscore-window", type=int, default=None)
    parser.add_argument("--output", default=None, help="Optional JSON file for the metrics")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    overrides = {}
    if args.frequency:
        overrides["frequency"] = args.frequency
    if args.mode:
        overrides["accumulation_mode"] = args.mode
    try:
        settings = replace(AnalyticsSettings.from_env(), **overrides)
    except ValueError as e:
        print(f"  ✗ Invalid configuration: {e}", file=sys.stderr)
        return 2

    init_logging(level=settings.log_level, fmt=settings.log_format)

    try:
        result = run_return_pipeline(
            args.csv_path,
            price_column=args.price_column,
            timestamp_column=args.timestamp_column,
            start=args.start,
            end=args.end,
            ma_window=args.ma_window,
            zscore_window=args.zscore_window,
            benchmark_column=args.benchmark_column,
            settings=settings,
        )
    except (FileNotFoundError, QuantMetricsError) as e:
        print(f"  ✗ {e}", file=sys.stderr)
        return 1

    metrics = result.metrics
    print("=" * 60)
    print(f"Risk analysis: {args.csv_path}")
    print(f"  Frequency: {settings.frequency}  Mode: {metrics.mode.value}  Periods: {metrics.observations}")
    print("=" * 60)
    print(metrics.to_frame().to_string())
    print()

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            json.dump(metrics.as_dict(), f, indent=2)
        print(f"  ✓ Saved metrics: {output_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
