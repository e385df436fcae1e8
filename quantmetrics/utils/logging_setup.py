"""
Process-wide logging setup for quantmetrics.

Modules log through ``logging.getLogger(__name__)`` and tag records with a
``section`` (e.g. ``features.returns``, ``metrics.evaluate``) via ``extra``.
Nothing is emitted until an application calls init_logging(), which installs
a single stream handler on the ``quantmetrics`` logger.

init_logging() may be called any number of times, from any number of threads:
the first call installs the handler, every later call is a no-op.
"""

import json
import logging
import sys
import threading
from datetime import datetime, timezone

PACKAGE_LOGGER_NAME = "quantmetrics"

_init_lock = threading.Lock()
_handler: logging.Handler | None = None

# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class JsonLogFormatter(logging.Formatter):
    """
    Render each record as one JSON object per line.

    Fields: timestamp (UTC, RFC 3339), level, logger, filename, function, line,
    section, message, error, plus any other ``extra`` keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "filename": record.filename,
            "function": record.funcName,
            "line": record.lineno,
            "section": getattr(record, "section", None),
            "message": record.getMessage(),
            "error": None,
        }
        if record.exc_info:
            payload["error"] = self.formatException(record.exc_info)

        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and key not in payload:
                payload[key] = value

        return json.dumps(payload, default=str)


def _build_formatter(fmt: str) -> logging.Formatter:
    if fmt == "json":
        return JsonLogFormatter()
    if fmt == "text":
        return logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    raise ValueError(f"Unsupported log format '{fmt}'. Expected 'json' or 'text'")


def init_logging(level: str | None = None, fmt: str | None = None, stream=None) -> bool:
    """
    Install the quantmetrics log handler exactly once.

    Args:
        level: Log level name. Defaults to AnalyticsSettings.log_level.
        fmt: "json" or "text". Defaults to AnalyticsSettings.log_format.
        stream: Output stream (default sys.stderr).

    Returns:
        True if this call installed the handler, False if logging was
        already initialised.

    Raises:
        ValueError: For an unknown level or format (nothing is installed).
    """
    global _handler

    with _init_lock:
        if _handler is not None:
            return False

        if level is None or fmt is None:
            from quantmetrics.config.settings import AnalyticsSettings

            settings = AnalyticsSettings.from_env()
            level = level or settings.log_level
            fmt = fmt or settings.log_format

        numeric_level = logging.getLevelName(level.upper())
        if not isinstance(numeric_level, int):
            raise ValueError(f"Unknown log level '{level}'")

        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(_build_formatter(fmt))

        package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
        package_logger.addHandler(handler)
        package_logger.setLevel(numeric_level)
        package_logger.propagate = False

        _handler = handler
        return True


def is_logging_initialized() -> bool:
    """Whether init_logging() has installed its handler."""
    with _init_lock:
        return _handler is not None


def reset_logging() -> None:
    """Remove the installed handler so tests can initialise again."""
    global _handler

    with _init_lock:
        if _handler is None:
            return
        package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
        package_logger.removeHandler(_handler)
        package_logger.setLevel(logging.NOTSET)
        package_logger.propagate = True
        _handler = None
