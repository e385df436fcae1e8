"""
Tests for quantmetrics/analytics/risk_metrics.py

The reference values for the series [0.01, -0.015, 0.02, -0.005] at N = 252
come from the reference platform's risk_analysis in both accumulation modes,
so these tests double as a parity check.
"""

import dataclasses
import logging
import math

import numpy as np
import pandas as pd
import pytest

from quantmetrics.analytics.risk_metrics import (
    RISK_ANALYSIS_METRICS,
    AccumulationMode,
    drawdown_series,
    evaluate,
    evaluate_with_frequency,
    information_ratio,
    risk_analysis,
)
from quantmetrics.utils.errors import (
    InputValidationError,
    InsufficientDataError,
    InvalidAccumulationModeError,
    InvalidFrequencyError,
    LengthMismatchError,
    MissingBenchmarkError,
    MissingFrequencyOrScalerError,
    NonFiniteReturnsError,
)

RETURNS = [0.01, -0.015, 0.02, -0.005]


def test_sum_mode_matches_reference_values():
    metrics = evaluate(RETURNS, 252.0, AccumulationMode.SUM)

    assert metrics.mean_return == pytest.approx(0.0025, abs=1e-12)
    assert metrics.std_dev == pytest.approx(0.015545631755148026, abs=1e-12)
    assert metrics.cumulative_return == pytest.approx(0.01, abs=1e-12)
    assert metrics.annualized_return == pytest.approx(0.63, abs=1e-12)
    assert metrics.annualized_volatility == pytest.approx(0.24677925358506136, abs=1e-12)
    assert metrics.information_ratio == pytest.approx(2.5528888301902897, abs=1e-9)
    assert metrics.max_drawdown == pytest.approx(-0.015, abs=1e-12)
    # With a zero risk-free rate, linear annualization makes Sharpe equal IR
    assert metrics.sharpe_ratio == pytest.approx(metrics.information_ratio, abs=1e-12)


def test_product_mode_matches_reference_values():
    metrics = evaluate(RETURNS, 252.0, AccumulationMode.PRODUCT)

    assert metrics.mean_return == pytest.approx(0.002409593043190217, abs=1e-12)
    assert metrics.std_dev == pytest.approx(0.015508406743410254, abs=1e-12)
    assert metrics.cumulative_return == pytest.approx(0.009673264999999986, abs=1e-12)
    assert metrics.annualized_return == pytest.approx(0.8339773917946953, abs=1e-9)
    assert metrics.annualized_volatility == pytest.approx(0.24618832484340372, abs=1e-12)
    assert metrics.information_ratio == pytest.approx(2.4664753995550988, abs=1e-9)
    assert metrics.max_drawdown == pytest.approx(-0.015000000000000013, abs=1e-12)
    assert metrics.sharpe_ratio == pytest.approx(
        metrics.annualized_return / metrics.annualized_volatility, rel=1e-12
    )


def test_product_mode_concrete_scenario():
    returns = np.array([0.01, -0.02, 0.03, 0.01, -0.01])
    metrics = evaluate(returns, 252, mode="product")

    curve = np.cumprod(1.0 + returns)
    cumulative = curve[-1] - 1.0
    annualized = (1.0 + cumulative) ** (252 / 5) - 1.0
    volatility = np.std(np.log1p(returns), ddof=1) * math.sqrt(252)
    max_drawdown = np.min(curve / np.maximum.accumulate(curve) - 1.0)

    assert metrics.cumulative_return == pytest.approx(cumulative, rel=1e-9)
    assert metrics.cumulative_return == pytest.approx(0.019392, abs=1e-6)
    assert metrics.annualized_return == pytest.approx(annualized, rel=1e-9)
    assert metrics.annualized_volatility == pytest.approx(volatility, rel=1e-9)
    assert metrics.sharpe_ratio == pytest.approx(annualized / volatility, rel=1e-9)
    assert metrics.max_drawdown == pytest.approx(max_drawdown, rel=1e-9)
    assert metrics.max_drawdown == pytest.approx(-0.02, abs=1e-12)


def test_sum_cumulative_return_is_exact_sum():
    rng = np.random.default_rng(0)
    returns = rng.normal(0.0005, 0.01, size=5_000)
    metrics = evaluate(returns, 238, mode="sum")

    assert metrics.cumulative_return == math.fsum(returns)


def test_product_mode_all_zero_returns_is_exactly_zero(caplog):
    with caplog.at_level(logging.WARNING, logger="quantmetrics"):
        metrics = evaluate([0.0] * 10, 252, mode="product")

    assert metrics.cumulative_return == 0.0
    assert metrics.annualized_return == 0.0
    assert metrics.max_drawdown == 0.0


def test_monotonic_series_has_no_drawdown():
    for mode in ("sum", "product"):
        metrics = evaluate([0.01, 0.02, 0.005, 0.03], 252, mode=mode)
        assert metrics.max_drawdown == 0.0
        assert metrics.max_drawdown_duration == 0


def test_max_drawdown_is_never_positive():
    rng = np.random.default_rng(9)
    returns = rng.normal(0.0, 0.02, size=500)
    for mode in ("sum", "product"):
        assert evaluate(returns, 252, mode=mode).max_drawdown <= 0.0


def test_max_drawdown_duration_counts_peak_to_trough():
    metrics = evaluate([0.1, -0.05, -0.05, 0.2], 252, mode="sum")

    assert metrics.max_drawdown == pytest.approx(-0.1)
    assert metrics.max_drawdown_duration == 2


def test_drawdown_peak_starts_at_first_observation():
    """A first-period loss is not a drawdown: the curve starts at its own peak."""
    metrics = evaluate([-0.1, 0.05], 252, mode="sum")
    assert metrics.max_drawdown == 0.0


def test_drawdown_series_sum_mode():
    drawdowns = drawdown_series(RETURNS, mode="sum")
    assert np.allclose(drawdowns, [0.0, -0.015, 0.0, -0.005])


def test_drawdown_series_product_mode_is_relative():
    drawdowns = drawdown_series([0.1, -0.5, 0.2], mode="product")
    assert np.allclose(drawdowns, [0.0, -0.5, -0.4])


def test_frequency_parity():
    from_frequency = evaluate_with_frequency(RETURNS, "day", mode="sum")
    direct = evaluate(RETURNS, 238.0, mode="sum")
    assert from_frequency.annualized_return == pytest.approx(direct.annualized_return, abs=1e-12)
    assert from_frequency.information_ratio == pytest.approx(direct.information_ratio, abs=1e-12)
    assert from_frequency.periods_per_year == 238.0

    two_weeks = evaluate_with_frequency(RETURNS, "2week", mode="sum")
    manual = evaluate(RETURNS, 25.0, mode="sum")
    assert two_weeks.annualized_return == pytest.approx(manual.annualized_return, abs=1e-12)


def test_invalid_frequency():
    with pytest.raises(InvalidFrequencyError):
        evaluate_with_frequency(RETURNS, "fortnight")


def test_invalid_mode():
    with pytest.raises(InvalidAccumulationModeError):
        evaluate(RETURNS, 252, mode="log")


def test_mode_parsing_is_case_insensitive():
    assert AccumulationMode.parse("Product") is AccumulationMode.PRODUCT
    assert evaluate(RETURNS, 252, mode="SUM").mode is AccumulationMode.SUM


def test_non_finite_returns_are_rejected():
    with pytest.raises(NonFiniteReturnsError):
        evaluate([0.01, np.nan, 0.02], 252)
    with pytest.raises(NonFiniteReturnsError):
        evaluate(pd.Series([0.01, np.inf, 0.02]), 252)


def test_short_series_is_rejected():
    with pytest.raises(InsufficientDataError):
        evaluate([0.01], 252)
    with pytest.raises(InsufficientDataError):
        evaluate([], 252)


@pytest.mark.parametrize("periods_per_year", [0, -252, float("nan"), float("inf"), "year"])
def test_invalid_periods_per_year(periods_per_year):
    with pytest.raises(InputValidationError):
        evaluate(RETURNS, periods_per_year)


def test_product_mode_rejects_total_loss():
    with pytest.raises(InputValidationError):
        evaluate([0.01, -1.0, 0.02], 252, mode="product")


def test_sum_mode_accepts_total_loss():
    metrics = evaluate([0.01, -1.0, 0.02], 252, mode="sum")
    assert metrics.cumulative_return == pytest.approx(-0.97)


def test_information_ratio_requires_benchmark():
    with pytest.raises(MissingBenchmarkError):
        information_ratio(RETURNS, None, 252)


def test_information_ratio_length_mismatch():
    with pytest.raises(LengthMismatchError):
        information_ratio(RETURNS, [0.0, 0.0, 0.0], 252)
    with pytest.raises(LengthMismatchError):
        evaluate(RETURNS, 252, benchmark=[0.001] * 5)


def test_zero_benchmark_equals_no_benchmark():
    with_benchmark = evaluate(RETURNS, 252, benchmark=[0.0] * 4)
    without = evaluate(RETURNS, 252)
    assert with_benchmark.information_ratio == without.information_ratio


def test_information_ratio_uses_active_returns():
    benchmark = [0.005, -0.01, 0.01, 0.0]
    active = np.array(RETURNS) - np.array(benchmark)
    expected = active.mean() / active.std(ddof=1) * math.sqrt(252)

    assert information_ratio(RETURNS, benchmark, 252) == pytest.approx(expected, rel=1e-12)


def test_zero_volatility_gives_nan_ratios(caplog):
    with caplog.at_level(logging.WARNING, logger="quantmetrics"):
        metrics = evaluate([0.01] * 5, 252, mode="sum")

    assert math.isnan(metrics.sharpe_ratio)
    assert math.isnan(metrics.information_ratio)
    assert metrics.annualized_return == pytest.approx(2.52)
    assert any("undefined" in record.getMessage() for record in caplog.records)


def test_risk_free_rate_lowers_sharpe():
    metrics = evaluate(RETURNS, 252, risk_free_rate=0.03)
    assert metrics.sharpe_ratio == pytest.approx((0.63 - 0.03) / 0.24677925358506136, rel=1e-12)


def test_evaluate_is_reproducible():
    rng = np.random.default_rng(21)
    returns = rng.normal(0.0, 0.01, size=1_000)

    first = evaluate(returns, 252, mode="product")
    second = evaluate(returns.copy(), 252, mode="product")
    assert first == second


def test_evaluate_does_not_mutate_input():
    returns = np.array(RETURNS)
    before = returns.copy()
    evaluate(returns, 252, mode="product")
    assert np.array_equal(returns, before)


def test_performance_metrics_is_frozen():
    metrics = evaluate(RETURNS, 252)
    with pytest.raises(dataclasses.FrozenInstanceError):
        metrics.sharpe_ratio = 10.0


def test_as_dict_and_to_frame():
    metrics = evaluate(RETURNS, 252, mode="product")

    data = metrics.as_dict()
    assert data["mode"] == "product"
    assert data["observations"] == 4

    frame = metrics.to_frame()
    assert list(frame.columns) == ["risk"]
    assert frame.index.name == "metric"
    assert list(frame.index[:5]) == RISK_ANALYSIS_METRICS
    assert frame.loc["max_drawdown", "risk"] == metrics.max_drawdown


def test_risk_analysis_frame_matches_evaluate():
    frame = risk_analysis(RETURNS, N=252, mode="sum")
    metrics = evaluate(RETURNS, 252, mode="sum")

    assert list(frame.index) == RISK_ANALYSIS_METRICS
    assert frame.loc["mean", "risk"] == pytest.approx(metrics.mean_return, abs=1e-12)
    assert frame.loc["std", "risk"] == pytest.approx(metrics.std_dev, abs=1e-12)
    assert frame.loc["annualized_return", "risk"] == pytest.approx(metrics.annualized_return, abs=1e-9)
    assert frame.loc["information_ratio", "risk"] == pytest.approx(metrics.information_ratio, abs=1e-9)
    assert frame.loc["max_drawdown", "risk"] == pytest.approx(metrics.max_drawdown, abs=1e-12)


def test_risk_analysis_with_frequency():
    frame = risk_analysis(RETURNS, freq="day")
    assert frame.loc["annualized_return", "risk"] == pytest.approx(0.0025 * 238, abs=1e-12)


def test_risk_analysis_requires_n_or_freq():
    with pytest.raises(MissingFrequencyOrScalerError):
        risk_analysis(RETURNS)


def test_risk_analysis_n_takes_precedence_over_freq(caplog):
    with caplog.at_level(logging.WARNING, logger="quantmetrics"):
        frame = risk_analysis(RETURNS, N=252, freq="week")

    assert frame.loc["annualized_return", "risk"] == pytest.approx(0.63, abs=1e-12)
    assert any("freq will be ignored" in record.getMessage() for record in caplog.records)


def test_product_active_shortfall_gives_nan_information_ratio(caplog):
    """Both series are valid, but one active return falls below -1."""
    returns = [0.05, -0.30, 0.02, 0.01]
    benchmark = [0.01, 0.80, 0.00, 0.01]

    with caplog.at_level(logging.WARNING, logger="quantmetrics"):
        metrics = evaluate(returns, 12, mode="product", benchmark=benchmark)

    assert math.isnan(metrics.information_ratio)
    assert metrics.cumulative_return == pytest.approx(1.05 * 0.70 * 1.02 * 1.01 - 1.0)
    assert math.isfinite(metrics.sharpe_ratio)
    assert any("active return" in record.getMessage() for record in caplog.records)


def test_product_mode_rejects_invalid_benchmark():
    with pytest.raises(InputValidationError, match="benchmark"):
        information_ratio(RETURNS, [0.0, -1.0, 0.0, 0.0], 252, mode="product")
