"""
Trade indicator analysis.

Aggregates a trade-level table (one row per trade or trade bucket) into
weighted averages of three execution indicators:
  - ffr: fill rate (filled amount / ordered amount)
  - pa:  price advantage of the execution price vs. the reference price
  - pos: share of positive price-advantage trades

The weighting follows the reference platform's `indicator_analysis`:
ffr and pa are weighted by the method's weight column, while pos is always
count-weighted (it is a share of trades, so trade counts are its natural
weights).
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
import pandas as pd

from quantmetrics.data.schemas import extract_numeric_column, validate_trade_indicator_schema
from quantmetrics.utils.errors import (
    InputValidationError,
    InvalidIndicatorMethodError,
    ZeroWeightError,
)

logger = logging.getLogger(__name__)

INDICATORS = ("ffr", "pa", "pos")


class IndicatorMethod(str, Enum):
    """Weighting scheme for ffr and pa."""

    MEAN = "mean"
    AMOUNT_WEIGHTED = "amount_weighted"
    VALUE_WEIGHTED = "value_weighted"

    @property
    def weights(self):
        return _WEIGHTS[self]

    @classmethod
    def parse(cls, value: "IndicatorMethod | str") -> "IndicatorMethod":
        """
        Accept an IndicatorMethod or its (case-insensitive) string value.

        Raises:
            InvalidIndicatorMethodError: For anything else.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidIndicatorMethodError(
            f"indicator_analysis method {value!r} is not supported! "
            f"Expected one of {[m.value for m in cls]}"
        )


# Weight vector per method, computed from a validated trade table
_WEIGHTS = {
    IndicatorMethod.MEAN: lambda df: extract_numeric_column(df, "count"),
    IndicatorMethod.AMOUNT_WEIGHTED: lambda df: np.abs(extract_numeric_column(df, "deal_amount")),
    IndicatorMethod.VALUE_WEIGHTED: lambda df: np.abs(extract_numeric_column(df, "value")),
}


@dataclass(frozen=True)
class IndicatorSummary:
    """
    Weighted and unweighted aggregates of a trade indicator table.

    Attributes:
        method: Weighting method used for ffr and pa.
        weighted: Weighted mean per indicator (ffr, pa, pos).
        unweighted_mean: Plain row mean per indicator, for comparison.
        row_count: Number of rows aggregated.
        total_weight: Sum of the ffr/pa weights.
    """
    method: IndicatorMethod
    weighted: dict[str, float] = field(default_factory=dict)
    unweighted_mean: dict[str, float] = field(default_factory=dict)
    row_count: int = 0
    total_weight: float = 0.0

    def to_frame(self) -> pd.DataFrame:
        """Frame indexed by indicator with "value" (weighted) and "unweighted_mean"."""
        frame = pd.DataFrame(
            {
                "value": [self.weighted[name] for name in INDICATORS],
                "unweighted_mean": [self.unweighted_mean[name] for name in INDICATORS],
            },
            index=pd.Index(list(INDICATORS), name="indicator"),
        )
        return frame


def _weighted_mean(values: np.ndarray, weights: np.ndarray, label: str) -> tuple[float, float]:
    total = math.fsum(weights)
    if total == 0.0:
        raise ZeroWeightError(f"Total weight for '{label}' is zero; weighted mean undefined")
    return math.fsum(values * weights) / total, total


def indicator_analysis(
    df: pd.DataFrame,
    method: "IndicatorMethod | str" = IndicatorMethod.MEAN,
) -> IndicatorSummary:
    """
    Aggregate trade indicators under a weighting method.

    **Mathematical**:
        ffr = sum(w * ffr) / sum(w),  pa = sum(w * pa) / sum(w)
        pos = sum(count * pos) / sum(count)
    with w = count (MEAN), |deal_amount| (AMOUNT_WEIGHTED) or |value|
    (VALUE_WEIGHTED).

    Args:
        df: Table with count, ffr, pa, pos, deal_amount, value columns.
        method: IndicatorMethod or its string value.

    Returns:
        IndicatorSummary.

    Raises:
        InvalidIndicatorMethodError: Unknown method.
        MissingColumnError / NonNumericColumnError: Schema problems.
        InputValidationError: Empty table or null values.
        ZeroWeightError: If the weights sum to zero.
    """
    method = IndicatorMethod.parse(method)
    validate_trade_indicator_schema(df)
    if df.empty:
        raise InputValidationError("indicator_analysis requires at least one row")
    if df[list(INDICATORS) + ["count"]].isna().to_numpy().any():
        raise InputValidationError("indicator columns must not contain nulls")

    weights = method.weights(df)
    if np.isnan(weights).any():
        raise InputValidationError(f"weight column for {method.value} contains nulls")
    counts = extract_numeric_column(df, "count")

    ffr = extract_numeric_column(df, "ffr")
    pa = extract_numeric_column(df, "pa")
    pos = extract_numeric_column(df, "pos")

    weighted_ffr, total_weight = _weighted_mean(ffr, weights, "ffr")
    weighted_pa, _ = _weighted_mean(pa, weights, "pa")
    weighted_pos, _ = _weighted_mean(pos, counts, "pos")

    row_count = len(df)
    summary = IndicatorSummary(
        method=method,
        weighted={"ffr": weighted_ffr, "pa": weighted_pa, "pos": weighted_pos},
        unweighted_mean={
            "ffr": math.fsum(ffr) / row_count,
            "pa": math.fsum(pa) / row_count,
            "pos": math.fsum(pos) / row_count,
        },
        row_count=row_count,
        total_weight=total_weight,
    )

    logger.info(
        "Computed %s indicator analysis over %d rows",
        method.value,
        row_count,
        extra={"section": "metrics.indicators"},
    )
    return summary
