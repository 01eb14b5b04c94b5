"""Lightweight telemetry helpers for cache metrics and timed spans.

Updates:
    v0.1 - 2026-10-05 - Provided logging wrappers for metrics and spans.
    v0.2 - 2026-10-10 - Kept in-process counters so the CLI can print cache stats.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator

_METRICS_LOGGER = logging.getLogger("lostfound.metrics")
_SPAN_LOGGER = logging.getLogger("lostfound.span")


class MetricsRegistry:
    """Accumulates metric values per name for the lifetime of the process."""

    def __init__(self) -> None:
        self._totals: Counter[str] = Counter()
        self._lock = Lock()

    def add(self, name: str, value: float) -> None:
        with self._lock:
            self._totals[name] += value

    def snapshot(self) -> Dict[str, float]:
        with self._lock:
            return dict(self._totals)

    def reset(self) -> None:
        with self._lock:
            self._totals.clear()


GLOBAL_METRICS = MetricsRegistry()


def emit_metric(name: str, value: float = 1.0, **tags: object) -> None:
    """Emit a metric via logging and fold it into the process registry."""
    GLOBAL_METRICS.add(name, value)
    _METRICS_LOGGER.info(
        "metric",
        extra={
            "metric_name": name,
            "metric_value": value,
            "metric_tags": tags or {},
        },
    )


def metrics_snapshot() -> Dict[str, float]:
    """Return accumulated metric totals keyed by metric name."""
    return GLOBAL_METRICS.snapshot()


@contextmanager
def log_span(name: str, **fields: object) -> Iterator[None]:
    """Log a start/end span around a block of work."""
    start = time.perf_counter()
    _SPAN_LOGGER.debug(
        "span.start",
        extra={"span_name": name, "span_fields": fields or {}},
    )
    try:
        yield
    finally:
        span_fields = dict(fields or {})
        span_fields["duration_seconds"] = round(time.perf_counter() - start, 4)
        _SPAN_LOGGER.debug(
            "span.end",
            extra={"span_name": name, "span_fields": span_fields},
        )
