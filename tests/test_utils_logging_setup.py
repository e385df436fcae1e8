"""
Tests for quantmetrics/utils/logging_setup.py

The autouse fixture in conftest.py resets logging around every test.
"""

import io
import json
import logging
import threading

import pandas as pd
import pytest

from quantmetrics.analytics.features import with_daily_return
from quantmetrics.utils.logging_setup import (
    PACKAGE_LOGGER_NAME,
    init_logging,
    is_logging_initialized,
)


def test_first_call_initializes_and_later_calls_are_noops():
    assert not is_logging_initialized()
    assert init_logging(level="INFO", fmt="json", stream=io.StringIO()) is True
    assert init_logging(level="DEBUG", fmt="text", stream=io.StringIO()) is False
    assert is_logging_initialized()
    assert len(logging.getLogger(PACKAGE_LOGGER_NAME).handlers) == 1


def test_concurrent_initialization_installs_one_handler():
    threads_count = 16
    barrier = threading.Barrier(threads_count)
    results = []
    results_lock = threading.Lock()

    def worker():
        barrier.wait()
        outcome = init_logging(level="INFO", fmt="json", stream=io.StringIO())
        with results_lock:
            results.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(threads_count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 1
    assert results.count(False) == threads_count - 1
    assert len(logging.getLogger(PACKAGE_LOGGER_NAME).handlers) == 1


def test_json_records_carry_section():
    stream = io.StringIO()
    init_logging(level="INFO", fmt="json", stream=stream)

    with_daily_return(pd.DataFrame({"close": [100.0, 101.0]}), "close", "return")

    lines = [json.loads(line) for line in stream.getvalue().splitlines()]
    record = next(line for line in lines if line["section"] == "features.returns")
    assert record["level"] == "INFO"
    assert record["logger"] == "quantmetrics.analytics.features"
    assert record["function"] == "with_daily_return"
    assert record["error"] is None
    assert "close" in record["message"]


def test_text_format():
    stream = io.StringIO()
    init_logging(level="INFO", fmt="text", stream=stream)

    logging.getLogger("quantmetrics.test").info("hello")
    assert "[INFO] quantmetrics.test: hello" in stream.getvalue()


def test_level_filters_records():
    stream = io.StringIO()
    init_logging(level="WARNING", fmt="json", stream=stream)

    with_daily_return(pd.DataFrame({"close": [100.0, 101.0]}), "close", "return")
    assert stream.getvalue() == ""


def test_invalid_level_or_format():
    with pytest.raises(ValueError):
        init_logging(level="LOUD", fmt="json", stream=io.StringIO())
    with pytest.raises(ValueError):
        init_logging(level="INFO", fmt="xml", stream=io.StringIO())
    assert not is_logging_initialized()
