"""
Mathematical and statistical kernels for the analytics toolkit.

This module holds the numerical building blocks that the feature and metrics
engines share: period-over-period returns, compensated means and standard
deviations, and rolling-window kernels that stay accurate over long series.

All kernels work on plain numpy float arrays and never mutate their inputs.
Sums go through math.fsum, which is exactly rounded and therefore independent
of summation order: the same input always produces the same bits.
"""

import math

import numpy as np

from quantmetrics.utils.errors import (
    InsufficientDataError,
    InvalidWindowError,
    ZeroDenominatorError,
    InputValidationError,
)


# Full recomputation cadence for rolling kernels (steps between refreshes)
DEFAULT_RECOMPUTE_INTERVAL = 256


def as_float_array(values) -> np.ndarray:
    """Copy any 1-D sequence of numbers into a float64 numpy array."""
    array = np.array(values, dtype=float, copy=True)
    if array.ndim != 1:
        raise InputValidationError(
            f"Expected a one-dimensional series, got shape {array.shape}"
        )
    return array


def compute_simple_returns(prices: np.ndarray) -> np.ndarray:
    """
    Convert a price array into simple (arithmetic) returns.

    **Mathematical**: For each period t >= 1:
        r_t = (P_t - P_{t-1}) / P_{t-1}
    r_0 is NaN because the first observation has no predecessor.

    **Edge cases**:
    - A NaN price makes the two returns that depend on it NaN.
    - A predecessor price of exactly zero is reported, not turned into inf.

    Args:
        prices: Prices in chronological order (oldest first).

    Returns:
        Array of simple returns, same length as prices.

    Raises:
        ZeroDenominatorError: If any P_{t-1} used as a denominator is exactly 0.
    """
    returns = np.full(len(prices), np.nan)
    if len(prices) < 2:
        return returns

    previous = prices[:-1]
    current = prices[1:]

    zero_rows = np.flatnonzero(previous == 0.0)
    if zero_rows.size:
        # Report the row whose return would be undefined (row index of P_t)
        raise ZeroDenominatorError(
            f"Cannot compute return at row {int(zero_rows[0]) + 1}: "
            f"previous price is exactly zero ({zero_rows.size} such rows)"
        )

    returns[1:] = (current - previous) / previous
    return returns


def compute_log_returns(prices: np.ndarray) -> np.ndarray:
    """
    Convert a price array into logarithmic returns.

    **Mathematical**: r_t = ln(P_t / P_{t-1}), r_0 = NaN.

    Raises:
        ZeroDenominatorError: If a price is exactly zero.
        InputValidationError: If a price is negative (log undefined).
    """
    returns = np.full(len(prices), np.nan)
    if len(prices) < 2:
        return returns

    observed = prices[~np.isnan(prices)]
    if np.any(observed == 0.0):
        raise ZeroDenominatorError("Cannot compute log returns: a price is exactly zero")
    if np.any(observed < 0.0):
        raise InputValidationError("Cannot compute log returns: a price is negative")

    returns[1:] = np.log(prices[1:]) - np.log(prices[:-1])
    return returns


def compensated_mean(values: np.ndarray) -> float:
    """Arithmetic mean using exactly-rounded summation."""
    if len(values) == 0:
        raise InsufficientDataError("Cannot compute the mean of an empty series")
    return math.fsum(values) / len(values)


def compensated_std(values: np.ndarray, ddof: int = 1) -> float:
    """
    Standard deviation with a two-pass, exactly-rounded sum of squares.

    ddof=1 gives the sample (Bessel-corrected) estimator.

    Raises:
        InsufficientDataError: If len(values) <= ddof.
    """
    n = len(values)
    if n <= ddof:
        raise InsufficientDataError(
            f"Need more than {ddof} observations for a standard deviation, got {n}"
        )
    mean = math.fsum(values) / n
    squared = math.fsum((value - mean) ** 2 for value in values)
    return math.sqrt(squared / (n - ddof))


def validate_window(window, n_rows: int, minimum: int = 1) -> int:
    """
    Check a rolling window size: an int with minimum <= window <= n_rows.

    Raises:
        InvalidWindowError: On any violation.
    """
    if isinstance(window, bool) or not isinstance(window, (int, np.integer)):
        raise InvalidWindowError(
            f"Window size must be an integer, got {type(window).__name__}"
        )
    window = int(window)
    if window < minimum:
        raise InvalidWindowError(f"Window size must be >= {minimum}, got {window}")
    if window > n_rows:
        raise InvalidWindowError(
            f"Window size {window} exceeds the number of rows ({n_rows})"
        )
    return window


def _validate_recompute_interval(recompute_every: int | None) -> int:
    if recompute_every is None:
        return DEFAULT_RECOMPUTE_INTERVAL
    if isinstance(recompute_every, bool) or not isinstance(recompute_every, int) or recompute_every < 1:
        raise InputValidationError(
            f"recompute_every must be a positive integer, got {recompute_every!r}"
        )
    return recompute_every


def rolling_mean(
    values: np.ndarray,
    window: int,
    recompute_every: int | None = None,
) -> np.ndarray:
    """
    Trailing simple moving average with bounded floating-point drift.

    **Conceptual**: Re-summing every window costs O(N * w). A running sum
    (add the value entering the window, subtract the value leaving it) is O(N)
    but accumulates rounding error over long series. We take the running sum
    and resynchronise it with an exactly-rounded fsum of the current window
    every `recompute_every` steps, which keeps the error bounded by what a
    few hundred additions can produce.

    **Mathematical**: mean_t = (1 / w) * sum(x_{t-w+1} .. x_t) for t >= w - 1.

    **Functionally**:
    - Output[t] is NaN for t < w - 1.
    - A window containing a NaN or an infinity yields NaN; the running sum is
      resynchronised once the value leaves the window.
    - window = 1 returns a copy of the input.

    Args:
        values: Input series in chronological order.
        window: Window length (caller validates 1 <= window <= len(values)).
        recompute_every: Steps between full recomputations.

    Returns:
        Array of moving averages, same length as values.
    """
    interval = _validate_recompute_interval(recompute_every)
    if window == 1:
        return np.array(values, dtype=float, copy=True)

    n = len(values)
    out = np.full(n, np.nan)

    running = 0.0
    bad_count = 0
    stale = True
    steps_since_refresh = 0

    for i in range(n):
        entering = values[i]
        if not math.isfinite(entering):
            bad_count += 1
        leaving = values[i - window] if i >= window else None
        if leaving is not None and not math.isfinite(leaving):
            bad_count -= 1

        if i < window - 1:
            continue
        if bad_count:
            stale = True
            continue

        if stale or leaving is None or steps_since_refresh >= interval:
            running = math.fsum(values[i - window + 1 : i + 1])
            stale = False
            steps_since_refresh = 0
        else:
            running += entering - leaving
            steps_since_refresh += 1

        out[i] = running / window

    return out


def rolling_mean_std(
    values: np.ndarray,
    window: int,
    ddof: int = 1,
    recompute_every: int | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Trailing mean and standard deviation via a sliding Welford update.

    **Conceptual**: The textbook sum / sum-of-squares shortcut loses most of its
    significant digits when the mean is large relative to the spread (prices
    around 100 with cent moves). Welford's update tracks the mean and the sum
    of squared deviations (M2) directly. Sliding the window replaces the
    leaving value by the entering one in a single step:

        mean' = mean + (x_in - x_out) / w
        M2'   = M2 + (x_in - x_out) * (x_in - mean' + x_out - mean)

    The state is rebuilt from scratch every `recompute_every` steps.

    Args:
        values: Input series in chronological order.
        window: Window length (must exceed ddof).
        ddof: Delta degrees of freedom (1 = sample std).
        recompute_every: Steps between full recomputations.

    Returns:
        (means, stds): arrays with NaN for t < w - 1 and for windows containing
        a NaN or an infinity.
    """
    interval = _validate_recompute_interval(recompute_every)
    if window <= ddof:
        raise InvalidWindowError(
            f"Window size must exceed ddof={ddof} for a standard deviation, got {window}"
        )

    n = len(values)
    means = np.full(n, np.nan)
    stds = np.full(n, np.nan)

    mean = 0.0
    m2 = 0.0
    bad_count = 0
    stale = True
    steps_since_refresh = 0

    for i in range(n):
        entering = values[i]
        if not math.isfinite(entering):
            bad_count += 1
        leaving = values[i - window] if i >= window else None
        if leaving is not None and not math.isfinite(leaving):
            bad_count -= 1

        if i < window - 1:
            continue
        if bad_count:
            stale = True
            continue

        if stale or leaving is None or steps_since_refresh >= interval:
            segment = values[i - window + 1 : i + 1]
            mean = math.fsum(segment) / window
            m2 = math.fsum((value - mean) ** 2 for value in segment)
            stale = False
            steps_since_refresh = 0
        else:
            delta = entering - leaving
            new_mean = mean + delta / window
            m2 += delta * (entering - new_mean + leaving - mean)
            mean = new_mean
            steps_since_refresh += 1

        means[i] = mean
        # Rounding can push M2 a hair below zero for flat windows
        stds[i] = math.sqrt(max(m2, 0.0) / (window - ddof))

    return means, stds
