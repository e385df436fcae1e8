"""
Feature engineering: derived columns for price tables.

**Conceptual**: This module turns raw price columns into model/metric inputs:
period returns, log returns, moving averages and rolling z-scores. Each helper
wraps a kernel from `quantmetrics.utils.math` in a table-oriented API.

**Contract shared by every helper**:
  - Takes a DataFrame, a source column, (a window,) and an output column name.
  - Returns a NEW DataFrame equal to the input plus exactly one column.
    The input frame is never modified.
  - Rows are processed in their current order, which must be chronological
    (oldest first). Use MarketData.sort_by() upstream if needed.
  - Leading rows without enough history hold NaN.
  - Validation problems raise InputValidationError subclasses; undefined
    arithmetic (zero denominators, flat windows) raises
    DegenerateComputationError subclasses.

Usage example:
    >>> df = with_daily_return(prices, "close", "return")
    >>> df = with_moving_average(df, "close", 20, "ma_20")
    >>> df = with_z_score(df, "close", 20, "z_20")
"""

import logging

import numpy as np
import pandas as pd

from quantmetrics.data.schemas import require_new_column, require_numeric_column
from quantmetrics.utils.errors import FlatWindowError, InputValidationError
from quantmetrics.utils.math import (
    compute_log_returns,
    compute_simple_returns,
    rolling_mean,
    rolling_mean_std,
    validate_window,
)

logger = logging.getLogger(__name__)

# Relative dispersion below which a window is checked for exact flatness
_FLAT_CHECK_TOLERANCE = 1e-9


def _source_values(df: pd.DataFrame, column: str, output_column: str) -> np.ndarray:
    series = require_numeric_column(df, column)
    require_new_column(df, output_column)
    return series.to_numpy(dtype=float, na_value=np.nan, copy=True)


def _append_column(df: pd.DataFrame, output_column: str, values: np.ndarray) -> pd.DataFrame:
    enriched = df.copy()
    enriched[output_column] = pd.Series(values, index=df.index, dtype=float)
    return enriched


def with_daily_return(
    df: pd.DataFrame,
    price_column: str,
    output_column: str,
) -> pd.DataFrame:
    """
    Append period-over-period simple returns of `price_column`.

    **Mathematical**: out[i] = (p[i] - p[i-1]) / p[i-1]; out[0] = NaN.

    Args:
        df: Table with a numeric price column, oldest row first.
        price_column: Source column (e.g. "close").
        output_column: Name of the new column (must not exist yet).

    Returns:
        New DataFrame with `output_column` appended.

    Raises:
        MissingColumnError: If `price_column` is absent.
        NonNumericColumnError: If `price_column` is not numeric.
        DuplicateColumnError: If `output_column` already exists.
        ZeroDenominatorError: If any previous price is exactly zero.
    """
    prices = _source_values(df, price_column, output_column)
    returns = compute_simple_returns(prices)

    logger.info(
        "Computed daily returns for %s -> %s",
        price_column,
        output_column,
        extra={"section": "features.returns"},
    )
    return _append_column(df, output_column, returns)


def with_log_return(
    df: pd.DataFrame,
    price_column: str,
    output_column: str,
) -> pd.DataFrame:
    """
    Append log returns ln(p[i] / p[i-1]) of `price_column`; out[0] = NaN.

    Raises:
        ZeroDenominatorError: If a price is exactly zero.
        InputValidationError: If a price is negative, or on the same column
            problems as with_daily_return().
    """
    prices = _source_values(df, price_column, output_column)
    returns = compute_log_returns(prices)

    logger.info(
        "Computed log returns for %s -> %s",
        price_column,
        output_column,
        extra={"section": "features.returns"},
    )
    return _append_column(df, output_column, returns)


def with_moving_average(
    df: pd.DataFrame,
    column: str,
    window: int,
    output_column: str,
    recompute_every: int | None = None,
) -> pd.DataFrame:
    """
    Append a trailing simple moving average of `column`.

    **Conceptual**: Smooths period noise by averaging the last `window`
    observations with equal weight.

    **Mathematical**: out[i] = mean(x[i-w+1] .. x[i]) for i >= w - 1, NaN before.

    **Functionally**:
    - Uses a running sum resynchronised with an exact sum every
      `recompute_every` steps, so long series do not drift.
    - A window that contains a NaN or an infinity produces NaN.
    - window = 1 reproduces the source column.
    - Calling it again on the same source gives bit-identical values: no state
      is carried between calls.

    Args:
        df: Input table.
        column: Numeric source column.
        window: Positive integer, at most len(df).
        output_column: Name of the new column.
        recompute_every: Steps between full recomputations (default 256).

    Raises:
        InvalidWindowError: If window is not an int in [1, len(df)].
        MissingColumnError / NonNumericColumnError / DuplicateColumnError:
            On column problems.
    """
    values = _source_values(df, column, output_column)
    window = validate_window(window, len(values), minimum=1)
    averages = rolling_mean(values, window, recompute_every=recompute_every)

    logger.info(
        "Computed %d-period moving average for %s -> %s",
        window,
        column,
        output_column,
        extra={"section": "features.moving_average"},
    )
    return _append_column(df, output_column, averages)


def with_z_score(
    df: pd.DataFrame,
    column: str,
    window: int,
    output_column: str,
    on_flat: str = "raise",
    recompute_every: int | None = None,
) -> pd.DataFrame:
    """
    Append a rolling z-score of `column`.

    **Mathematical**: out[i] = (x[i] - mean_w[i]) / std_w[i], where mean_w and
    std_w are the trailing-window mean and SAMPLE standard deviation (ddof=1),
    hence window >= 2. NaN for i < w - 1.

    **Flat windows**: when every value in a window is identical, std_w is zero
    and the z-score is undefined. With on_flat="raise" (default) this raises
    FlatWindowError naming the first such row; with on_flat="null" the row gets
    NaN and a warning is logged with the number of affected rows.

    Raises:
        InvalidWindowError: If window is not an int in [2, len(df)].
        FlatWindowError: On a flat window when on_flat="raise".
        InputValidationError: If on_flat is not "raise" or "null".
    """
    if on_flat not in ("raise", "null"):
        raise InputValidationError(f"on_flat must be 'raise' or 'null', got {on_flat!r}")

    values = _source_values(df, column, output_column)
    window = validate_window(window, len(values), minimum=2)
    means, stds = rolling_mean_std(values, window, ddof=1, recompute_every=recompute_every)

    zscores = np.full(len(values), np.nan)
    flat_rows = []
    for i in range(window - 1, len(values)):
        std = stds[i]
        if np.isnan(std):
            continue
        if std <= _FLAT_CHECK_TOLERANCE * max(1.0, abs(means[i])):
            segment = values[i - window + 1 : i + 1]
            if np.ptp(segment) == 0.0:
                flat_rows.append(i)
                continue
            # Tiny but genuine dispersion: use a direct two-pass estimate
            std = float(np.std(segment, ddof=1))
        zscores[i] = (values[i] - means[i]) / std

    if flat_rows:
        if on_flat == "raise":
            raise FlatWindowError(
                f"Rolling window of {window} rows ending at row {flat_rows[0]} in "
                f"column '{column}' is flat; z-score undefined "
                f"({len(flat_rows)} flat windows in total)"
            )
        logger.warning(
            "%d flat windows in %s; z-score set to null",
            len(flat_rows),
            column,
            extra={"section": "features.zscore"},
        )

    logger.info(
        "Computed %d-period z-score for %s -> %s",
        window,
        column,
        output_column,
        extra={"section": "features.zscore"},
    )
    return _append_column(df, output_column, zscores)
