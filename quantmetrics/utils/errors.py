"""
Exception taxonomy for the analytics toolkit.

**Conceptual**: Every failure the toolkit reports falls into one of three
families, and callers can catch at whichever level suits them:
  - Input validation: the caller handed us something we cannot work with
    (missing column, bad window, unknown frequency, mismatched lengths).
  - Numerical degeneracy: the input is well-formed but the requested statistic
    is undefined for it (zero denominator, flat rolling window, zero weights).
  - Dataset errors: the CSV could not be read or transformed.

Validation errors also subclass ValueError and degeneracy errors subclass
ArithmeticError, so generic handlers keep working.
"""


class QuantMetricsError(Exception):
    """Base class for every error raised by quantmetrics."""


# ============================================================================
# Input validation
# ============================================================================

class InputValidationError(QuantMetricsError, ValueError):
    """Raised when an argument or input table fails validation."""


class MissingColumnError(InputValidationError):
    """A required column is absent from the table."""

    def __init__(self, column: str, available: list[str] | None = None):
        self.column = column
        self.available = list(available) if available is not None else []
        message = f"Column '{column}' not found in DataFrame."
        if available is not None:
            message += f" Available columns: {self.available}"
        super().__init__(message)


class DuplicateColumnError(InputValidationError):
    """An output column would overwrite an existing column."""


class NonNumericColumnError(InputValidationError):
    """A column that must be numeric holds another dtype."""


class InvalidWindowError(InputValidationError):
    """A rolling window size is not a positive integer within the row count."""


class LengthMismatchError(InputValidationError):
    """Two series that must be aligned have different lengths."""


class InvalidFrequencyError(InputValidationError):
    """A frequency string could not be parsed."""


class InvalidAccumulationModeError(InputValidationError):
    """An accumulation mode string is neither 'sum' nor 'product'."""


class InvalidIndicatorMethodError(InputValidationError):
    """An indicator weighting method is not recognised."""


class MissingBenchmarkError(InputValidationError):
    """A benchmark series is required but was not supplied."""


class MissingFrequencyOrScalerError(InputValidationError):
    """Neither a periods-per-year scaler nor a frequency was supplied."""


class NonFiniteReturnsError(InputValidationError):
    """A return series contains NaN or infinite values."""


class InsufficientDataError(InputValidationError):
    """Too few observations to compute the requested statistic."""


# ============================================================================
# Numerical degeneracy
# ============================================================================

class DegenerateComputationError(QuantMetricsError, ArithmeticError):
    """Raised when a statistic is undefined for otherwise valid input."""


class ZeroDenominatorError(DegenerateComputationError):
    """A ratio would divide by exactly zero."""


class FlatWindowError(DegenerateComputationError):
    """A rolling window has zero dispersion, so a z-score is undefined."""


class ZeroWeightError(DegenerateComputationError):
    """The weights of a weighted mean sum to zero."""


# ============================================================================
# Dataset access
# ============================================================================

class DatasetError(QuantMetricsError):
    """Base class for dataset loading and transformation failures."""


class DatasetLoadError(DatasetError):
    """The dataset file could not be read or parsed."""


class DatasetTransformError(DatasetError):
    """A filter, selection or sort step failed while materialising."""
