"""
Risk and performance metrics for return series.

This module evaluates a per-period return series into a PerformanceMetrics
record: cumulative and annualized return, volatility, Sharpe and information
ratios, and maximum drawdown. The definitions reproduce the reference
risk-analysis platform (Qlib's `risk_analysis`) so figures can be compared
across the two.

**Accumulation modes**: every statistic depends on how period returns combine.
  - SUM: returns add up. The cumulative curve is a running total, the mean is
    arithmetic, annualization is linear (mean x N), drawdown is absolute.
  - PRODUCT: returns compound. The cumulative curve is the running product of
    (1 + r), the mean is geometric, the dispersion is measured on log returns,
    annualization compounds, drawdown is relative to the running peak.

Each mode carries its own accumulation strategy object; the formulas below
only ever call `mode.strategy.<operation>` and never branch on the mode.

**Preconditions** (checked, never silently repaired):
  - At least two observations (sample std needs n >= 2).
  - Every value finite; nulls must be dropped upstream, see
    `quantmetrics.data.schemas.extract_numeric_column(..., drop_nulls=True)`.
  - PRODUCT mode: every return > -1 (a total loss has no log return).
  - periods_per_year finite and > 0.

**Degenerate ratios**: zero volatility (or zero tracking error) makes the
Sharpe / information ratio NaN, and a warning is logged with section
"metrics.evaluate". So does a PRODUCT-mode active return <= -1 for the
information ratio. No other statistic can come out NaN.
"""

import logging
import math
from dataclasses import asdict, dataclass
from enum import Enum

import numpy as np
import pandas as pd

from quantmetrics.utils.errors import (
    InputValidationError,
    InsufficientDataError,
    InvalidAccumulationModeError,
    LengthMismatchError,
    MissingBenchmarkError,
    MissingFrequencyOrScalerError,
    NonFiniteReturnsError,
)
from quantmetrics.utils.math import as_float_array, compensated_mean, compensated_std
from quantmetrics.utils.time import AnalysisFrequency, resolve_periods_per_year

logger = logging.getLogger(__name__)

# Dispersion below this is treated as zero volatility
_ZERO_VOLATILITY_TOLERANCE = 1e-10

# Rows of the reference platform's risk_analysis frame, in its order
RISK_ANALYSIS_METRICS = [
    "mean",
    "std",
    "annualized_return",
    "information_ratio",
    "max_drawdown",
]


# ============================================================================
# Accumulation strategies
# ============================================================================

class _SumAccumulation:
    """Additive accumulation: returns are summed."""

    def is_defined(self, returns: np.ndarray) -> bool:
        return True

    def validate(self, returns: np.ndarray, name: str = "returns") -> None:
        pass

    def curve(self, returns: np.ndarray) -> np.ndarray:
        return np.cumsum(returns)

    def cumulative_return(self, returns: np.ndarray, curve: np.ndarray) -> float:
        return math.fsum(returns)

    def mean(self, returns: np.ndarray, curve: np.ndarray) -> float:
        return compensated_mean(returns)

    def std(self, returns: np.ndarray) -> float:
        return compensated_std(returns, ddof=1)

    def annualized_return(self, mean: float, cumulative: float, n: int, periods_per_year: float) -> float:
        return mean * periods_per_year

    def drawdown(self, value, peak):
        return value - peak


class _ProductAccumulation:
    """Multiplicative accumulation: returns compound."""

    def is_defined(self, returns: np.ndarray) -> bool:
        # ln(1 + r) needs every r > -1
        return bool(np.all(returns > -1.0))

    def validate(self, returns: np.ndarray, name: str = "returns") -> None:
        if not self.is_defined(returns):
            raise InputValidationError(
                f"PRODUCT accumulation requires every value of {name} > -1 "
                f"(found minimum {float(returns.min())})"
            )

    def curve(self, returns: np.ndarray) -> np.ndarray:
        return np.cumprod(1.0 + returns)

    def cumulative_return(self, returns: np.ndarray, curve: np.ndarray) -> float:
        return float(curve[-1]) - 1.0

    def mean(self, returns: np.ndarray, curve: np.ndarray) -> float:
        # Geometric mean per period
        return float(curve[-1]) ** (1.0 / len(returns)) - 1.0

    def std(self, returns: np.ndarray) -> float:
        return compensated_std(np.log1p(returns), ddof=1)

    def annualized_return(self, mean: float, cumulative: float, n: int, periods_per_year: float) -> float:
        return (1.0 + cumulative) ** (periods_per_year / n) - 1.0

    def drawdown(self, value, peak):
        return value / peak - 1.0


class AccumulationMode(str, Enum):
    """How period returns aggregate into cumulative performance."""

    SUM = "sum"
    PRODUCT = "product"

    @property
    def strategy(self) -> "_SumAccumulation | _ProductAccumulation":
        return _STRATEGIES[self]

    @classmethod
    def parse(cls, value: "AccumulationMode | str") -> "AccumulationMode":
        """
        Accept an AccumulationMode or its (case-insensitive) string value.

        Raises:
            InvalidAccumulationModeError: For anything else.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidAccumulationModeError(
            f"risk analysis accumulation mode {value!r} is not supported. "
            "Expected 'sum' or 'product'"
        )


_STRATEGIES = {
    AccumulationMode.SUM: _SumAccumulation(),
    AccumulationMode.PRODUCT: _ProductAccumulation(),
}


# ============================================================================
# Result record
# ============================================================================

@dataclass(frozen=True)
class PerformanceMetrics:
    """
    Summary statistics of one return series.

    Attributes:
        mean_return: Per-period mean (arithmetic for SUM, geometric for PRODUCT).
        std_dev: Per-period sample std (of r for SUM, of ln(1 + r) for PRODUCT).
        cumulative_return: Total return over the whole series.
        annualized_return: mean_return scaled to a year under the mode's rule.
        annualized_volatility: std_dev * sqrt(periods_per_year).
        sharpe_ratio: (annualized_return - risk_free_rate) / annualized_volatility.
        information_ratio: mean / std * sqrt(periods_per_year) of the active
            return (returns minus benchmark; benchmark zero when not given).
        max_drawdown: Worst peak-to-trough decline (<= 0).
        max_drawdown_duration: Periods from the peak to the trough of max_drawdown.
        periods_per_year: Annualization factor used.
        mode: Accumulation mode used.
        observations: Number of periods evaluated.
    """
    mean_return: float
    std_dev: float
    cumulative_return: float
    annualized_return: float
    annualized_volatility: float
    sharpe_ratio: float
    information_ratio: float
    max_drawdown: float
    max_drawdown_duration: int
    periods_per_year: float
    mode: AccumulationMode
    observations: int

    def as_dict(self) -> dict:
        data = asdict(self)
        data["mode"] = self.mode.value
        return data

    def to_frame(self) -> pd.DataFrame:
        """
        Render the statistics as a one-column ("risk") frame indexed by metric.

        The first five rows match the reference platform's risk_analysis output.
        """
        data = {
            "mean": self.mean_return,
            "std": self.std_dev,
            "annualized_return": self.annualized_return,
            "information_ratio": self.information_ratio,
            "max_drawdown": self.max_drawdown,
            "cumulative_return": self.cumulative_return,
            "annualized_volatility": self.annualized_volatility,
            "sharpe_ratio": self.sharpe_ratio,
            "max_drawdown_duration": float(self.max_drawdown_duration),
        }
        frame = pd.Series(data, dtype=float).to_frame("risk")
        frame.index.name = "metric"
        return frame


# ============================================================================
# Validation helpers
# ============================================================================

def _to_array(values, name: str) -> np.ndarray:
    if isinstance(values, pd.Series):
        array = values.to_numpy(dtype=float, na_value=np.nan, copy=True)
    else:
        array = as_float_array(values)
    if not np.all(np.isfinite(array)):
        bad = int(np.count_nonzero(~np.isfinite(array)))
        raise NonFiniteReturnsError(
            f"{name} contains {bad} NaN/infinite values; drop nulls before evaluation"
        )
    return array


def _validate_returns(returns, mode: AccumulationMode, name: str = "returns") -> np.ndarray:
    array = _to_array(returns, name)
    if len(array) < 2:
        raise InsufficientDataError(
            f"{name} needs at least 2 observations, got {len(array)}"
        )
    mode.strategy.validate(array, name)
    return array


def _validate_periods_per_year(periods_per_year) -> float:
    if isinstance(periods_per_year, bool):
        raise InputValidationError("periods_per_year must be a number, got bool")
    try:
        value = float(periods_per_year)
    except (TypeError, ValueError):
        raise InputValidationError(
            f"periods_per_year must be a number, got {periods_per_year!r}"
        )
    if not math.isfinite(value) or value <= 0.0:
        raise InputValidationError(
            f"periods_per_year must be finite and > 0, got {periods_per_year}"
        )
    return value


def _safe_ratio(numerator: float, denominator: float, label: str) -> float:
    if denominator < _ZERO_VOLATILITY_TOLERANCE:
        logger.warning(
            "%s undefined: dispersion is zero; reporting NaN",
            label,
            extra={"section": "metrics.evaluate"},
        )
        return float("nan")
    return numerator / denominator


# ============================================================================
# Drawdown
# ============================================================================

def _max_drawdown(curve: np.ndarray, strategy) -> tuple[float, int]:
    """Single forward pass tracking the running peak and the worst decline."""
    peak = curve[0]
    peak_index = 0
    worst = 0.0
    duration = 0
    for j in range(len(curve)):
        value = curve[j]
        if value > peak:
            peak = value
            peak_index = j
        decline = strategy.drawdown(value, peak)
        if decline < worst:
            worst = float(decline)
            duration = j - peak_index
    return worst, duration


def drawdown_series(returns, mode: "AccumulationMode | str" = AccumulationMode.SUM) -> np.ndarray:
    """
    Per-period drawdown of the cumulative curve (values <= 0).

    SUM: curve - running_peak. PRODUCT: curve / running_peak - 1.
    """
    mode = AccumulationMode.parse(mode)
    array = _validate_returns(returns, mode)
    curve = mode.strategy.curve(array)
    peaks = np.maximum.accumulate(curve)
    return mode.strategy.drawdown(curve, peaks)


# ============================================================================
# Public entry points
# ============================================================================

def information_ratio(
    returns,
    benchmark,
    periods_per_year: float,
    mode: "AccumulationMode | str" = AccumulationMode.SUM,
) -> float:
    """
    Annualized mean active return over its annualized dispersion.

    **Mathematical**: with a = returns - benchmark,
        IR = mean(a) / std(a) * sqrt(N)
    using the mode's mean / std definitions.

    PRODUCT mode needs every active return > -1 for ln(1 + a). Two valid
    series can still produce a larger shortfall; the ratio is then undefined,
    reported as NaN with a warning, like a zero tracking error.

    Raises:
        MissingBenchmarkError: If benchmark is None.
        LengthMismatchError: If the two series differ in length (never truncated).
    """
    if benchmark is None:
        raise MissingBenchmarkError("information_ratio requires a benchmark return series")

    mode = AccumulationMode.parse(mode)
    scaler = _validate_periods_per_year(periods_per_year)
    strategy_returns = _validate_returns(returns, mode)
    benchmark_returns = _validate_returns(benchmark, mode, name="benchmark")
    if len(strategy_returns) != len(benchmark_returns):
        raise LengthMismatchError(
            f"returns ({len(strategy_returns)}) and benchmark "
            f"({len(benchmark_returns)}) must have equal length"
        )

    active = strategy_returns - benchmark_returns
    if not mode.strategy.is_defined(active):
        logger.warning(
            "information_ratio undefined: active return %s <= -1 under %s accumulation; "
            "reporting NaN",
            float(active.min()),
            mode.value,
            extra={"section": "metrics.evaluate"},
        )
        return float("nan")

    curve = mode.strategy.curve(active)
    mean = mode.strategy.mean(active, curve)
    std = mode.strategy.std(active)
    return _safe_ratio(mean, std, "information_ratio") * math.sqrt(scaler)


def evaluate(
    returns,
    periods_per_year: float,
    mode: "AccumulationMode | str" = AccumulationMode.SUM,
    benchmark=None,
    risk_free_rate: float = 0.0,
) -> PerformanceMetrics:
    """
    Evaluate a return series under an explicit annualization factor.

    Args:
        returns: Per-period returns (finite, at least two).
        periods_per_year: Annualization factor N (e.g. 252, 238, 12).
        mode: AccumulationMode or "sum" / "product".
        benchmark: Optional equal-length benchmark returns for the
            information ratio.
        risk_free_rate: Annual risk-free rate subtracted in the Sharpe ratio.

    Returns:
        PerformanceMetrics.

    Raises:
        InputValidationError subclasses on invalid input.
    """
    mode = AccumulationMode.parse(mode)
    scaler = _validate_periods_per_year(periods_per_year)
    array = _validate_returns(returns, mode)
    strategy = mode.strategy

    curve = strategy.curve(array)
    n = len(array)
    mean = strategy.mean(array, curve)
    std = strategy.std(array)
    cumulative = strategy.cumulative_return(array, curve)
    annualized = strategy.annualized_return(mean, cumulative, n, scaler)
    volatility = std * math.sqrt(scaler)

    sharpe = _safe_ratio(annualized - risk_free_rate, volatility, "sharpe_ratio")
    if benchmark is None:
        info_ratio = _safe_ratio(mean, std, "information_ratio") * math.sqrt(scaler)
    else:
        info_ratio = information_ratio(array, benchmark, scaler, mode)

    max_drawdown, duration = _max_drawdown(curve, strategy)

    logger.info(
        "Computed performance statistics (%d periods, mode=%s, N=%s)",
        n,
        mode.value,
        scaler,
        extra={"section": "metrics.evaluate"},
    )

    return PerformanceMetrics(
        mean_return=float(mean),
        std_dev=float(std),
        cumulative_return=float(cumulative),
        annualized_return=float(annualized),
        annualized_volatility=float(volatility),
        sharpe_ratio=float(sharpe),
        information_ratio=float(info_ratio),
        max_drawdown=float(max_drawdown),
        max_drawdown_duration=int(duration),
        periods_per_year=scaler,
        mode=mode,
        observations=n,
    )


def evaluate_with_frequency(
    returns,
    frequency: "str | AnalysisFrequency",
    mode: "AccumulationMode | str" = AccumulationMode.SUM,
    benchmark=None,
    risk_free_rate: float = 0.0,
) -> PerformanceMetrics:
    """
    Evaluate a return series, deriving N from a trading frequency.

    "day" -> 238, "week" -> 50, "month" -> 12, "year" -> 1, "2week" -> 25.

    Raises:
        InvalidFrequencyError: If the frequency is not recognised.
    """
    periods_per_year = resolve_periods_per_year(frequency)
    return evaluate(
        returns,
        periods_per_year,
        mode=mode,
        benchmark=benchmark,
        risk_free_rate=risk_free_rate,
    )


def risk_analysis(
    r,
    N: float | None = None,
    freq: "str | AnalysisFrequency | None" = None,
    mode: "AccumulationMode | str" = "sum",
) -> pd.DataFrame:
    """
    Reference-platform compatible risk analysis.

    Args:
        r: Per-period returns.
        N: Periods per year. Takes precedence over `freq`.
        freq: Trading frequency used when N is not given.
        mode: "sum" or "product".

    Returns:
        DataFrame indexed by metric (mean, std, annualized_return,
        information_ratio, max_drawdown) with a single "risk" column.

    Raises:
        MissingFrequencyOrScalerError: If neither N nor freq is given.
    """
    if N is None and freq is None:
        raise MissingFrequencyOrScalerError("at least one of `N` and `freq` should exist")
    if N is not None and freq is not None:
        logger.warning(
            "risk_analysis freq will be ignored",
            extra={"section": "metrics.risk_analysis"},
        )
    if N is None:
        N = resolve_periods_per_year(freq)

    metrics = evaluate(r, N, mode=mode)
    return metrics.to_frame().loc[RISK_ANALYSIS_METRICS]
