"""
Column contracts and typed column extraction.

**Conceptual**: The feature, metrics and indicator engines only need three
things from a table: named-column access, the row count, and numeric column
values. This module is where those reads are validated, so every engine fails
the same way (MissingColumnError, NonNumericColumnError) on a bad table.

**Null handling**: extract_numeric_column(..., drop_nulls=True) is the
documented null-drop step between a feature table and the Metrics Engine. The
Metrics Engine itself never drops values; it rejects them.
"""

import numpy as np
import pandas as pd

from quantmetrics.utils.errors import (
    DuplicateColumnError,
    MissingColumnError,
    NonNumericColumnError,
)


# Trade indicator schema (one row per trade or trade bucket)
TRADE_INDICATOR_REQUIRED_COLUMNS = [
    'count',
    'ffr',
    'pa',
    'pos',
    'deal_amount',
    'value',
]


def require_columns(df: pd.DataFrame, columns: list[str]) -> None:
    """
    Ensure every name in `columns` is present in `df`.

    Raises:
        MissingColumnError: For the first missing column.
    """
    for column in columns:
        if column not in df.columns:
            raise MissingColumnError(column, list(df.columns))


def require_numeric_column(df: pd.DataFrame, column: str) -> pd.Series:
    """
    Return `df[column]` after checking it exists and holds numbers.

    Booleans are rejected: a True/False column is never a price.

    Raises:
        MissingColumnError: If the column is absent.
        NonNumericColumnError: If its dtype is not numeric.
    """
    require_columns(df, [column])
    series = df[column]
    if pd.api.types.is_bool_dtype(series) or not pd.api.types.is_numeric_dtype(series):
        raise NonNumericColumnError(
            f"Column '{column}' must be numeric, found dtype {series.dtype}"
        )
    return series


def require_new_column(df: pd.DataFrame, column: str) -> None:
    """
    Ensure an output column name is free.

    Raises:
        DuplicateColumnError: If `column` already exists in `df`.
    """
    if column in df.columns:
        raise DuplicateColumnError(
            f"Output column '{column}' already exists; choose a new name"
        )


def extract_numeric_column(
    df: pd.DataFrame,
    column: str,
    drop_nulls: bool = False,
) -> np.ndarray:
    """
    Extract a numeric column as a float64 numpy array.

    Args:
        df: Source table.
        column: Column to extract.
        drop_nulls: If True, remove NaN/None entries so the result can be
            handed to the Metrics Engine directly. Infinities are kept; the
            Metrics Engine rejects them with NonFiniteReturnsError.

    Returns:
        A new float64 array (never a view into `df`).

    Raises:
        MissingColumnError: If the column is absent.
        NonNumericColumnError: If the column is not numeric.
    """
    series = require_numeric_column(df, column)
    values = series.to_numpy(dtype=float, na_value=np.nan, copy=True)
    if drop_nulls:
        values = values[~np.isnan(values)]
    return values


def validate_trade_indicator_schema(df: pd.DataFrame) -> None:
    """
    Validate a trade indicator table (count, ffr, pa, pos, deal_amount, value).

    Raises:
        MissingColumnError: If a required column is absent.
        NonNumericColumnError: If a required column is not numeric.
    """
    require_columns(df, TRADE_INDICATOR_REQUIRED_COLUMNS)
    for column in TRADE_INDICATOR_REQUIRED_COLUMNS:
        require_numeric_column(df, column)
