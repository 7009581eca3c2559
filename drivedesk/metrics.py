"""Per-minute event counters and slow-call timing, reported through logging.

Two counter families exist: ``cache`` (hit/miss/invalidate of the billing
summary cache) and ``store`` (document writes by collection and outcome).
Each family accumulates counts for the current wall-clock minute and hands
them to the exporter when the minute rolls over or on :func:`flush_metrics`.
"""

from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Callable

from drivedesk.config import settings


logger = logging.getLogger('drivedesk.metrics')


class MetricsExporter:
    def export_minute(self, family: str, *, minute_start: datetime, counts: dict[str, int]) -> None:
        raise NotImplementedError


class LogMetricsExporter(MetricsExporter):
    def export_minute(self, family: str, *, minute_start: datetime, counts: dict[str, int]) -> None:
        pairs = ' '.join(f'{key}={counts[key]}' for key in sorted(counts))
        logger.info('%s_metrics minute=%s %s', family, minute_start.isoformat(), pairs)


_exporter: MetricsExporter = LogMetricsExporter()


def set_metrics_exporter(exporter: MetricsExporter) -> None:
    global _exporter
    _exporter = exporter


class _MinuteCounter:
    def __init__(self, family: str) -> None:
        self.family = family
        self._lock = threading.Lock()
        self._minute_start_epoch: int | None = None
        self._counts: dict[str, int] = {}

    def _export_locked(self) -> None:
        if not self._counts or self._minute_start_epoch is None:
            return
        minute_start = datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=self._minute_start_epoch)
        counts = dict(self._counts)
        self._counts.clear()
        try:
            _exporter.export_minute(self.family, minute_start=minute_start, counts=counts)
        except Exception:
            logger.exception('metrics_export_failed family=%s minute=%s', self.family, minute_start.isoformat())

    def record(self, key: str) -> None:
        minute_epoch = int(time.time() // 60) * 60
        with self._lock:
            if self._minute_start_epoch != minute_epoch:
                self._export_locked()
                self._minute_start_epoch = minute_epoch
            self._counts[key] = self._counts.get(key, 0) + 1

    def flush(self) -> None:
        with self._lock:
            self._export_locked()


_counters = {family: _MinuteCounter(family) for family in ('cache', 'store')}


def record_cache_event(event: str) -> None:
    _counters['cache'].record(event)


def record_store_event(collection: str, op: str, outcome: str) -> None:
    _counters['store'].record(f'{collection}.{op}.{outcome}')


def flush_metrics() -> None:
    for counter in _counters.values():
        counter.flush()


def timed_service(label: str, *, threshold_ms: int | None = None) -> Callable[[Callable[..., object]], Callable[..., object]]:
    """Log calls to the wrapped function that take longer than ``threshold_ms``."""

    def decorator(func: Callable[..., object]) -> Callable[..., object]:
        @wraps(func)
        def wrapper(*args: object, **kwargs: object):
            limit = threshold_ms if threshold_ms is not None else settings.metrics_slow_ms
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                duration_ms = (time.perf_counter() - started) * 1000.0
                if duration_ms >= limit:
                    logger.info('service_timer label=%s duration_ms=%.2f', label, duration_ms)

        return wrapper

    return decorator
