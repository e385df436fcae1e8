"""
CSV reader with timestamp parsing.

**Conceptual**: This module is the I/O boundary for tabular market data. All
CSV input enters the toolkit through read_market_csv so that timestamp parsing
and error reporting behave the same everywhere:
  - Timestamps are parsed with format='ISO8601' (both "2024-01-15T00:00:00Z"
    and "2024-01-15 00:00:00" are accepted).
  - A missing file raises FileNotFoundError unchanged.
  - Anything pandas cannot parse is wrapped in DatasetLoadError with the
    original exception chained.

Row order is preserved exactly as on disk; MarketData.sort_by() is available
when a chronological order must be enforced.
"""

import logging
from pathlib import Path

import pandas as pd

from quantmetrics.utils.errors import DatasetLoadError

logger = logging.getLogger(__name__)


def parse_timestamp_column(df: pd.DataFrame, col: str, context: str) -> pd.DataFrame:
    """
    Parse `col` to datetime64 in a copy of `df` (no-op if already parsed).

    Raises:
        DatasetLoadError: If the column cannot be parsed as ISO 8601.
    """
    parsed = df.copy()
    if pd.api.types.is_datetime64_any_dtype(parsed[col]):
        return parsed
    try:
        parsed[col] = pd.to_datetime(parsed[col], format='ISO8601')
    except (ValueError, TypeError) as e:
        raise DatasetLoadError(
            f"{context}: Failed to parse '{col}' column as datetime. "
            f"Expected ISO 8601 format (e.g., '2024-01-15 00:00:00' or '2024-01-15T00:00:00Z')."
        ) from e
    return parsed


def read_market_csv(
    path: Path | str,
    timestamp_column: str | None = "timestamp",
) -> pd.DataFrame:
    """
    Read a CSV file of market or trade data.

    Args:
        path: Path to the CSV file.
        timestamp_column: Column to parse as datetime. Pass None to skip parsing.
            If given but absent from the file, the file is read without parsing.

    Returns:
        DataFrame with the file's columns in file order.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        DatasetLoadError: If the file or its timestamps cannot be parsed.
    """
    path = Path(path)
    context = str(path)

    if not path.exists():
        logger.error("Dataset not found: %s", path, extra={"section": "dataset.load"})
        raise FileNotFoundError(
            f"CSV not found: {path}. Ensure the file exists and the path is correct."
        )

    try:
        df = pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        logger.error(
            "Failed to load %s", path, exc_info=True, extra={"section": "dataset.load"}
        )
        raise DatasetLoadError(f"{context}: Failed to read CSV.") from e

    if timestamp_column is not None and timestamp_column in df.columns:
        df = parse_timestamp_column(df, timestamp_column, context)

    logger.info(
        "Loaded dataset from %s (%d rows, %d columns)",
        path,
        len(df),
        len(df.columns),
        extra={"section": "dataset.load"},
    )
    return df
