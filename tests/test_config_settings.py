"""
Tests for quantmetrics/config/settings.py
"""

from pathlib import Path

import pytest

from quantmetrics.config.settings import PROJECT_ROOT, AnalyticsSettings
from quantmetrics.utils.errors import InvalidAccumulationModeError, InvalidFrequencyError
from quantmetrics.utils.time import AnalysisFrequency, FrequencyUnit

ENV_VARS = [
    "QUANTMETRICS_FREQUENCY",
    "QUANTMETRICS_ACCUMULATION_MODE",
    "QUANTMETRICS_ROLLING_RECOMPUTE",
    "QUANTMETRICS_LOG_LEVEL",
    "QUANTMETRICS_LOG_FORMAT",
    "QUANTMETRICS_DATA_DIR",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = AnalyticsSettings.from_env()

    assert settings.frequency == "day"
    assert settings.accumulation_mode == "sum"
    assert settings.rolling_recompute_interval == 256
    assert settings.log_level == "INFO"
    assert settings.log_format == "json"
    assert settings.data_dir == PROJECT_ROOT / "data"
    assert settings.analysis_frequency == AnalysisFrequency(1, FrequencyUnit.DAY)


def test_environment_overrides(clean_env, tmp_path):
    clean_env.setenv("QUANTMETRICS_FREQUENCY", "2week")
    clean_env.setenv("QUANTMETRICS_ACCUMULATION_MODE", "PRODUCT")
    clean_env.setenv("QUANTMETRICS_ROLLING_RECOMPUTE", "64")
    clean_env.setenv("QUANTMETRICS_LOG_LEVEL", "debug")
    clean_env.setenv("QUANTMETRICS_LOG_FORMAT", "Text")
    clean_env.setenv("QUANTMETRICS_DATA_DIR", str(tmp_path))

    settings = AnalyticsSettings.from_env()

    assert settings.analysis_frequency.periods_per_year == 25.0
    assert settings.accumulation_mode == "product"
    assert settings.rolling_recompute_interval == 64
    assert settings.log_level == "DEBUG"
    assert settings.log_format == "text"
    assert settings.data_dir == Path(tmp_path)


def test_invalid_mode(clean_env):
    clean_env.setenv("QUANTMETRICS_ACCUMULATION_MODE", "log")
    with pytest.raises(InvalidAccumulationModeError):
        AnalyticsSettings.from_env()


def test_invalid_frequency(clean_env):
    clean_env.setenv("QUANTMETRICS_FREQUENCY", "fortnight")
    with pytest.raises(InvalidFrequencyError):
        AnalyticsSettings.from_env()


@pytest.mark.parametrize("value", ["abc", "0", "-5"])
def test_invalid_recompute_interval(clean_env, value):
    clean_env.setenv("QUANTMETRICS_ROLLING_RECOMPUTE", value)
    with pytest.raises(ValueError):
        AnalyticsSettings.from_env()


def test_invalid_log_settings():
    with pytest.raises(ValueError):
        AnalyticsSettings(log_level="LOUD")
    with pytest.raises(ValueError):
        AnalyticsSettings(log_format="xml")
