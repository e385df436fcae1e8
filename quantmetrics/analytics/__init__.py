"""
Feature engineering, risk/performance metrics and trade indicator analysis.

Includes returns, moving averages and rolling z-scores, cumulative and
annualized statistics under sum/product accumulation, Sharpe and information
ratios, drawdown, and weighted execution indicators.
"""
