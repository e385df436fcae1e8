"""
Trading-frequency descriptors and annualization scalers.

This module turns a frequency such as "day", "2week" or "5min" into the number
of periods per year used to annualize per-period statistics. The scalers follow
the trading-calendar conventions of the reference risk-analysis platform
(238 trading days, 50 trading weeks, 240 trading minutes per day) rather than
calendar counts, so annualized figures line up with its reports.
"""

import re
from dataclasses import dataclass
from enum import Enum

from quantmetrics.utils.errors import InvalidFrequencyError


class FrequencyUnit(str, Enum):
    """Base unit of a trading frequency."""

    MINUTE = "minute"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


# Periods per year for a single unit (count == 1)
TRADING_DAYS_PER_YEAR = 238
TRADING_MINUTES_PER_DAY = 240

PERIODS_PER_YEAR: dict[FrequencyUnit, float] = {
    FrequencyUnit.MINUTE: float(TRADING_MINUTES_PER_DAY * TRADING_DAYS_PER_YEAR),
    FrequencyUnit.DAY: float(TRADING_DAYS_PER_YEAR),
    FrequencyUnit.WEEK: 50.0,
    FrequencyUnit.MONTH: 12.0,
    FrequencyUnit.YEAR: 1.0,
}

# Accepted spellings, longest first so "month" is not read as "mon" + "th"
_UNIT_ALIASES: dict[str, FrequencyUnit] = {
    "minute": FrequencyUnit.MINUTE,
    "min": FrequencyUnit.MINUTE,
    "month": FrequencyUnit.MONTH,
    "mon": FrequencyUnit.MONTH,
    "week": FrequencyUnit.WEEK,
    "w": FrequencyUnit.WEEK,
    "day": FrequencyUnit.DAY,
    "d": FrequencyUnit.DAY,
    "year": FrequencyUnit.YEAR,
    "y": FrequencyUnit.YEAR,
}

_FREQUENCY_PATTERN = re.compile(
    r"^\s*(?P<count>[0-9]*)\s*(?P<unit>" + "|".join(_UNIT_ALIASES) + r")\s*$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class AnalysisFrequency:
    """
    A sampling frequency expressed as ``count`` x ``unit``.

    **Mathematical**: periods_per_year = scaler(unit) / count. A 2-week
    frequency therefore annualizes with 50 / 2 = 25 periods per year.

    Attributes:
        count: Number of base units per period (must be >= 1).
        unit: Base unit of the period.
    """
    count: int
    unit: FrequencyUnit

    def __post_init__(self):
        if isinstance(self.count, bool) or not isinstance(self.count, int):
            raise InvalidFrequencyError(
                f"Frequency count must be an integer, got {self.count!r}"
            )
        if self.count < 1:
            raise InvalidFrequencyError(
                f"Frequency count must be >= 1, got {self.count}"
            )
        if not isinstance(self.unit, FrequencyUnit):
            raise InvalidFrequencyError(
                f"Frequency unit must be a FrequencyUnit, got {self.unit!r}"
            )

    @property
    def periods_per_year(self) -> float:
        """Annualization factor for this frequency."""
        return PERIODS_PER_YEAR[self.unit] / self.count

    @classmethod
    def parse(cls, text: str) -> "AnalysisFrequency":
        """
        Parse a frequency string such as ``"day"``, ``"1d"``, ``"2week"`` or ``"5min"``.

        The grammar is an optional positive integer followed by a unit alias
        (minute/min, day/d, week/w, month/mon, year/y), case-insensitive.
        A missing count means 1.

        Raises:
            InvalidFrequencyError: If the string does not match the grammar or
                the count is zero.
        """
        if not isinstance(text, str):
            raise InvalidFrequencyError(
                f"Frequency must be a string, got {type(text).__name__}"
            )

        match = _FREQUENCY_PATTERN.match(text)
        if match is None:
            raise InvalidFrequencyError(
                f"Unrecognised frequency '{text}'. Expected an optional count "
                f"followed by one of: {sorted(_UNIT_ALIASES)}"
            )

        count_text = match.group("count")
        count = int(count_text) if count_text else 1
        unit = _UNIT_ALIASES[match.group("unit").lower()]
        return cls(count=count, unit=unit)

    def __str__(self) -> str:
        return f"{self.count}{self.unit.value}"


def resolve_periods_per_year(frequency: "str | AnalysisFrequency") -> float:
    """
    Map a frequency (string or AnalysisFrequency) to its periods-per-year factor.

    Raises:
        InvalidFrequencyError: For unparseable strings or unsupported types.
    """
    if isinstance(frequency, AnalysisFrequency):
        return frequency.periods_per_year
    return AnalysisFrequency.parse(frequency).periods_per_year
