"""
quantmetrics – feature engineering and risk/performance evaluation for
quantitative research pipelines.

Subpackages:
  - data: dataset access, CSV I/O and column contracts.
  - analytics: feature engine, metrics engine and trade indicator analysis.
  - orchestration: end-to-end pipelines.
  - config: environment-driven settings.
  - utils: numerical kernels, frequencies, errors and logging setup.
"""
