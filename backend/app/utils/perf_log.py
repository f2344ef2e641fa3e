"""
Slow-operation logging for engine entry points.

Wrap an operation in log_operation(); if it takes longer than
SLOW_OPERATION_MS a warning with the journey, operation and metadata is
emitted. Fast operations log nothing.
"""
import logging
import os
import time
from contextlib import contextmanager
from typing import Iterator

logger = logging.getLogger(__name__)

SLOW_OPERATION_MS = float(os.getenv("SLOW_OPERATION_MS", "500"))


@contextmanager
def log_operation(journey: str, operation: str, **metadata) -> Iterator[None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        if duration_ms > SLOW_OPERATION_MS:
            logger.warning(
                "Slow operation %s/%s: %.2fms (threshold %.0fms) %s",
                journey,
                operation,
                duration_ms,
                SLOW_OPERATION_MS,
                metadata,
            )
