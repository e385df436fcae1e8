"""
End-to-end return analysis pipeline.

**Conceptual**: Wires the pieces together in the order the data flows:

    MarketData (load, date filter, sort)
      -> Feature Engine (returns, optional moving average / z-score)
      -> null-drop of the return column
      -> Metrics Engine (frequency and accumulation mode from settings)

Each stage is a pure function of the previous one, so re-running the pipeline
on the same file and settings reproduces identical output.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import pandas as pd

from quantmetrics.analytics.features import with_daily_return, with_moving_average, with_z_score
from quantmetrics.analytics.risk_metrics import PerformanceMetrics, evaluate_with_frequency
from quantmetrics.config.settings import AnalyticsSettings
from quantmetrics.data.dataset import MarketData
from quantmetrics.data.schemas import extract_numeric_column

logger = logging.getLogger(__name__)

RETURN_COLUMN = "return"


@dataclass(frozen=True)
class PipelineResult:
    """
    Output of run_return_pipeline().

    Attributes:
        frame: Filtered table with the derived feature columns.
        metrics: Performance statistics of the return column.
    """
    frame: pd.DataFrame
    metrics: PerformanceMetrics


def run_return_pipeline(
    csv_path: Path | str,
    price_column: str = "close",
    timestamp_column: str = "timestamp",
    start: datetime | str | None = None,
    end: datetime | str | None = None,
    ma_window: int | None = None,
    zscore_window: int | None = None,
    benchmark_column: str | None = None,
    settings: AnalyticsSettings | None = None,
) -> PipelineResult:
    """
    Load a price CSV, derive features and evaluate the resulting returns.

    Args:
        csv_path: Price file. Relative paths resolve against settings.data_dir
            when they do not exist relative to the working directory.
        price_column: Price column to derive returns from.
        timestamp_column: Timestamp column used for filtering and ordering.
        start, end: Optional inclusive date bounds.
        ma_window: If given, append "ma_<window>" on the price column.
        zscore_window: If given, append "z_<window>" on the price column
            (flat windows become null).
        benchmark_column: Optional benchmark price column; its returns feed
            the information ratio.
        settings: Defaults to AnalyticsSettings.from_env().

    Returns:
        PipelineResult.
    """
    settings = settings or AnalyticsSettings.from_env()

    path = Path(csv_path)
    if not path.is_absolute() and not path.exists():
        path = settings.data_dir / path

    market = MarketData.from_csv(path, timestamp_column=timestamp_column)
    if start is not None or end is not None:
        market = market.filter_date_range(timestamp_column, start=start, end=end)
    df = market.sort_by(timestamp_column).collect()

    interval = settings.rolling_recompute_interval
    df = with_daily_return(df, price_column, RETURN_COLUMN)
    if ma_window is not None:
        df = with_moving_average(df, price_column, ma_window, f"ma_{ma_window}", recompute_every=interval)
    if zscore_window is not None:
        df = with_z_score(
            df, price_column, zscore_window, f"z_{zscore_window}", on_flat="null", recompute_every=interval
        )

    benchmark = None
    if benchmark_column is None:
        returns = extract_numeric_column(df, RETURN_COLUMN, drop_nulls=True)
    else:
        df = with_daily_return(df, benchmark_column, f"{benchmark_column}_return")
        # Drop rows where either series is null so the two stay aligned
        paired = df[[RETURN_COLUMN, f"{benchmark_column}_return"]].dropna()
        returns = paired[RETURN_COLUMN].to_numpy(dtype=float)
        benchmark = paired[f"{benchmark_column}_return"].to_numpy(dtype=float)

    metrics = evaluate_with_frequency(
        returns,
        settings.analysis_frequency,
        mode=settings.accumulation_mode,
        benchmark=benchmark,
    )

    logger.info(
        "Pipeline finished for %s (%d rows, %d returns)",
        path,
        len(df),
        len(returns),
        extra={"section": "pipeline.run"},
    )
    return PipelineResult(frame=df, metrics=metrics)
