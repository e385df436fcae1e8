"""
Lazily-filterable market dataset.

**Conceptual**: MarketData wraps a loaded table plus a queue of pending
transformations (date filter, column selection, sort). Each transformation
returns a *new* MarketData; nothing touches the data until collect() is
called, which replays the queue on a fresh copy of the source table. The
source is therefore never mutated, and one loaded file can feed many
differently-filtered views.

**Functionally**:
  - from_csv() reads eagerly so I/O errors surface at load time.
  - filter_date_range(), select_columns() and sort_by() validate column names
    immediately and defer the work.
  - collect() materialises a pandas DataFrame with a fresh RangeIndex.

Example:
    >>> market = MarketData.from_csv("data/prices.csv")
    >>> df = (
    ...     market.filter_date_range("timestamp", start="2024-01-02", end="2024-01-05")
    ...     .select_columns(["timestamp", "close"])
    ...     .collect()
    ... )
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable

import pandas as pd

from quantmetrics.data.io import read_market_csv
from quantmetrics.utils.errors import DatasetTransformError, MissingColumnError

logger = logging.getLogger(__name__)

Step = Callable[[pd.DataFrame], pd.DataFrame]


def _coerce_bound(bound: datetime | str | pd.Timestamp, column: pd.Series) -> pd.Timestamp:
    """Express a date bound in the same timezone convention as `column`."""
    ts = pd.Timestamp(bound)
    column_tz = column.dt.tz
    if column_tz is None:
        # Naive column: compare in naive UTC
        if ts.tzinfo is not None:
            ts = ts.tz_convert("UTC").tz_localize(None)
        return ts
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return ts.tz_convert(column_tz)


class MarketData:
    """A loaded table plus a queue of deferred transformations."""

    def __init__(
        self,
        frame: pd.DataFrame,
        steps: tuple[Step, ...] = (),
        columns: tuple[str, ...] | None = None,
        source: str | None = None,
    ):
        self._frame = frame
        self._steps = steps
        self._columns = tuple(frame.columns) if columns is None else columns
        self._source = source or "<memory>"

    @classmethod
    def from_csv(cls, path: Path | str, timestamp_column: str | None = "timestamp") -> "MarketData":
        """
        Load a CSV file into a MarketData.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            DatasetLoadError: If the file cannot be parsed.
        """
        frame = read_market_csv(path, timestamp_column=timestamp_column)
        return cls(frame, source=str(path))

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "MarketData":
        """Wrap an in-memory DataFrame (a private copy is kept)."""
        return cls(frame.copy())

    @property
    def columns(self) -> list[str]:
        """Column names the collected table will have."""
        return list(self._columns)

    def _require(self, names: list[str]) -> None:
        for name in names:
            if name not in self._columns:
                raise MissingColumnError(name, list(self._columns))

    def _with_step(self, step: Step, columns: tuple[str, ...] | None = None) -> "MarketData":
        return MarketData(
            self._frame,
            steps=self._steps + (step,),
            columns=self._columns if columns is None else columns,
            source=self._source,
        )

    def filter_date_range(
        self,
        column: str,
        start: datetime | str | pd.Timestamp | None = None,
        end: datetime | str | pd.Timestamp | None = None,
    ) -> "MarketData":
        """
        Keep rows whose `column` lies in [start, end] (both inclusive, both optional).

        Rows with a null timestamp are always dropped. Timezone-aware bounds
        are compared in UTC against naive columns; naive bounds are read as UTC
        against aware columns.

        Raises:
            MissingColumnError: If `column` is absent.
        """
        self._require([column])

        def step(df: pd.DataFrame) -> pd.DataFrame:
            values = df[column]
            if not pd.api.types.is_datetime64_any_dtype(values):
                values = pd.to_datetime(values, format='ISO8601')
            mask = values.notna()
            if start is not None:
                mask &= values >= _coerce_bound(start, values)
            if end is not None:
                mask &= values <= _coerce_bound(end, values)
            return df.loc[mask]

        logger.info(
            "Queued date filter on column %s (start=%s, end=%s)",
            column,
            start,
            end,
            extra={"section": "dataset.filter"},
        )
        return self._with_step(step)

    def select_columns(self, columns: list[str]) -> "MarketData":
        """
        Keep only `columns`, in the given order.

        Raises:
            MissingColumnError: If any column is absent.
        """
        columns = list(columns)
        self._require(columns)

        def step(df: pd.DataFrame) -> pd.DataFrame:
            return df[columns]

        logger.info(
            "Queued column selection: %s",
            ", ".join(columns),
            extra={"section": "dataset.transform"},
        )
        return self._with_step(step, columns=tuple(columns))

    def sort_by(self, column: str, ascending: bool = True) -> "MarketData":
        """Sort rows by `column` (stable sort, ascending by default)."""
        self._require([column])

        def step(df: pd.DataFrame) -> pd.DataFrame:
            return df.sort_values(column, ascending=ascending, kind="mergesort")

        return self._with_step(step)

    def collect(self) -> pd.DataFrame:
        """
        Materialise the table by replaying every queued step on a fresh copy.

        Raises:
            DatasetTransformError: If a queued step fails.
        """
        df = self._frame.copy()
        try:
            for step in self._steps:
                df = step(df)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(
                "Failed to materialise dataset from %s",
                self._source,
                exc_info=True,
                extra={"section": "dataset.collect"},
            )
            raise DatasetTransformError(
                f"{self._source}: failed to transform market data: {e}"
            ) from e

        return df.reset_index(drop=True)

    def __len__(self) -> int:
        return len(self.collect())

    def __repr__(self) -> str:
        return (
            f"MarketData(source={self._source!r}, columns={list(self._columns)}, "
            f"pending_steps={len(self._steps)})"
        )
