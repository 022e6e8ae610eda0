"""
Logging utilities for internal use.

Usage:
    from dd_otel_exporter.internal.logger import get_logger

    log = get_logger(__name__)

Every logger returned by ``get_logger`` shares a rate limiting filter: one
record per call site (file and line) is let through every
``DD_TRACE_LOGGING_RATE`` seconds (default 60). Records that were dropped in
between are counted and reported on the next record emitted from the same
call site::

    ERROR failed to send traces to Datadog Agent at http://localhost:8126/v0.5/traces [4 skipped]

``DD_TRACE_LOGGING_RATE=0`` disables rate limiting. Loggers set to ``DEBUG``
are never rate limited.
"""

import collections
import logging
import os
import time
from typing import DefaultDict
from typing import Tuple


SECOND = 1
MINUTE = 60 * SECOND

_MINF = float("-inf")


def get_logger(name: str) -> logging.Logger:
    """
    Retrieve or create a ``Logger`` instance with consistent behavior for internal use.

    Configure all loggers with a rate limiter filter to prevent excessive logging.
    """
    logger = logging.getLogger(name)
    # addFilter will only add the filter if it is not already present
    logger.addFilter(log_filter)
    logger.propagate = True
    return logger


class LoggingBucket:
    """Current time bucket of a call site and the number of records skipped in it."""

    def __init__(self, bucket: float, skipped: int):
        self.bucket = bucket
        self.skipped = skipped

    def __repr__(self):
        return f"LoggingBucket({self.bucket}, {self.skipped})"

    def is_sampled(self, record: logging.LogRecord, rate: float) -> bool:
        current = time.monotonic()
        if current - self.bucket >= rate:
            self.bucket = current
            record.skipped = self.skipped
            self.skipped = 0
            return True
        self.skipped += 1
        return False


_buckets: DefaultDict[Tuple[str, int], LoggingBucket] = collections.defaultdict(lambda: LoggingBucket(_MINF, 0))

_rate_limit = int(os.getenv("DD_TRACE_LOGGING_RATE", default=MINUTE))


def set_rate_limit(rate: int) -> None:
    """Override the number of seconds between two records of the same call site."""
    global _rate_limit
    _rate_limit = rate


def reset_buckets() -> None:
    _buckets.clear()


def log_filter(record: logging.LogRecord) -> bool:
    """
    Function used to determine if a log record should be outputted or not (True = output, False = skip).
    """
    logger = logging.getLogger(record.name)
    if not _rate_limit or logger.getEffectiveLevel() == logging.DEBUG:
        return True
    return _buckets[(record.pathname, record.lineno)].is_sampled(record, _rate_limit)


class RateLimitedFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        skipped = getattr(record, "skipped", 0)
        skip_str = f" [{skipped} skipped]" if skipped else ""
        return f"{record.levelname} {super().format(record)}{skip_str}"


# setup the default formatter for all package loggers
root_logger = logging.getLogger("dd_otel_exporter")
if not root_logger.handlers:
    root_logger.addHandler(logging.StreamHandler())
    root_logger.handlers[0].setFormatter(RateLimitedFormatter())
root_logger.propagate = True
