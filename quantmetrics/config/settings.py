"""
Configuration settings for the analytics toolkit.

**Conceptual**: Defaults that would otherwise be scattered across call sites
(which trading frequency to annualize with, which accumulation mode to use,
how often rolling kernels resynchronise, how logs are rendered) live in one
strongly-typed, validated settings object.

Settings are read from environment variables, with a `.env` file in the project
root loaded first via python-dotenv. Invalid values fail fast at construction
time rather than mid-run.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from quantmetrics.utils.errors import InvalidAccumulationModeError
from quantmetrics.utils.time import AnalysisFrequency


# Project root is 2 levels up from quantmetrics/config/settings.py
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

# Load .env from project root; existing environment variables win
load_dotenv(dotenv_path=PROJECT_ROOT / ".env", override=False)

_VALID_MODES = ("sum", "product")
_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_VALID_LOG_FORMATS = ("json", "text")


@dataclass(frozen=True)
class AnalyticsSettings:
    """
    Validated runtime settings.

    Attributes:
        frequency: Default trading frequency string (e.g. "day", "2week").
        accumulation_mode: Default accumulation mode ("sum" or "product").
        rolling_recompute_interval: Steps between full recomputations in the
            rolling kernels.
        log_level: Level name for the quantmetrics logger.
        log_format: "json" for structured records, "text" for human-readable lines.
        data_dir: Directory that relative dataset paths resolve against.
    """
    frequency: str = "day"
    accumulation_mode: str = "sum"
    rolling_recompute_interval: int = 256
    log_level: str = "INFO"
    log_format: str = "json"
    data_dir: Path = field(default_factory=lambda: PROJECT_ROOT / "data")

    def __post_init__(self):
        """Validate settings after initialization."""
        # Raises InvalidFrequencyError (a ValueError) on bad input
        AnalysisFrequency.parse(self.frequency)

        if self.accumulation_mode.lower() not in _VALID_MODES:
            raise InvalidAccumulationModeError(
                f"QUANTMETRICS_ACCUMULATION_MODE must be one of {_VALID_MODES}, "
                f"got: {self.accumulation_mode}"
            )
        if self.rolling_recompute_interval < 1:
            raise ValueError(
                "QUANTMETRICS_ROLLING_RECOMPUTE must be a positive integer, "
                f"got: {self.rolling_recompute_interval}"
            )
        if self.log_level.upper() not in _VALID_LOG_LEVELS:
            raise ValueError(
                f"QUANTMETRICS_LOG_LEVEL must be one of {_VALID_LOG_LEVELS}, "
                f"got: {self.log_level}"
            )
        if self.log_format.lower() not in _VALID_LOG_FORMATS:
            raise ValueError(
                f"QUANTMETRICS_LOG_FORMAT must be one of {_VALID_LOG_FORMATS}, "
                f"got: {self.log_format}"
            )

    @property
    def analysis_frequency(self) -> AnalysisFrequency:
        """The configured frequency, parsed."""
        return AnalysisFrequency.parse(self.frequency)

    @classmethod
    def from_env(cls) -> "AnalyticsSettings":
        """
        Load settings from environment variables.

        **Environment variables** (all optional):
          - QUANTMETRICS_FREQUENCY (default "day")
          - QUANTMETRICS_ACCUMULATION_MODE (default "sum")
          - QUANTMETRICS_ROLLING_RECOMPUTE (default 256)
          - QUANTMETRICS_LOG_LEVEL (default "INFO")
          - QUANTMETRICS_LOG_FORMAT (default "json")
          - QUANTMETRICS_DATA_DIR (default <project root>/data)

        Raises:
            ValueError: If any variable holds an invalid value.
        """
        recompute_str = os.getenv("QUANTMETRICS_ROLLING_RECOMPUTE", "256")
        try:
            recompute = int(recompute_str)
        except ValueError:
            raise ValueError(
                f"QUANTMETRICS_ROLLING_RECOMPUTE must be an integer, got: {recompute_str}"
            )

        data_dir_str = os.getenv("QUANTMETRICS_DATA_DIR")
        data_dir = Path(data_dir_str) if data_dir_str else PROJECT_ROOT / "data"

        return cls(
            frequency=os.getenv("QUANTMETRICS_FREQUENCY", "day"),
            accumulation_mode=os.getenv("QUANTMETRICS_ACCUMULATION_MODE", "sum").lower(),
            rolling_recompute_interval=recompute,
            log_level=os.getenv("QUANTMETRICS_LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("QUANTMETRICS_LOG_FORMAT", "json").lower(),
            data_dir=data_dir,
        )
