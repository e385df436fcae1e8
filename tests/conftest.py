"""
Pytest configuration file.

Ensures the repo root is on sys.path so that 'import quantmetrics...' works,
and resets logging between tests so init_logging() starts clean.
"""
import sys
from pathlib import Path

import pytest

# Add the repo root to sys.path
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from quantmetrics.utils.logging_setup import reset_logging  # noqa: E402


@pytest.fixture(autouse=True)
def clean_logging():
    reset_logging()
    yield
    reset_logging()
