from __future__ import annotations

import functools
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable

from precalc.config import settings


logger = logging.getLogger('precalc.metrics')


class MetricsExporter:
    def export_minute(self, *, minute_start: datetime, counts: dict[str, int]) -> None:
        raise NotImplementedError


class LogMetricsExporter(MetricsExporter):
    def export_minute(self, *, minute_start: datetime, counts: dict[str, int]) -> None:
        pairs = ' '.join(f'{name}={counts[name]}' for name in sorted(counts))
        logger.info('pacing_metrics minute=%s %s', minute_start.isoformat(), pairs)


_exporter: MetricsExporter = LogMetricsExporter()


def set_metrics_exporter(exporter: MetricsExporter) -> None:
    global _exporter
    _exporter = exporter


class EventWindow:
    """Counts named events per wall-clock minute and hands each finished minute to the exporter."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._bucket: int | None = None
        self._counts: dict[str, int] = {}

    def _export_locked(self) -> None:
        if self._bucket is None or not self._counts:
            return
        minute_start = datetime.fromtimestamp(self._bucket * 60, tz=timezone.utc)
        counts = dict(self._counts)
        self._counts.clear()
        try:
            _exporter.export_minute(minute_start=minute_start, counts=counts)
        except Exception:
            logger.exception('metrics_export_failed minute=%s', minute_start.isoformat())

    def record(self, name: str) -> None:
        bucket = int(time.time() // 60)
        with self._lock:
            if self._bucket is not None and bucket != self._bucket:
                self._export_locked()
            self._bucket = bucket
            self._counts[name] = self._counts.get(name, 0) + 1

    def flush(self) -> None:
        with self._lock:
            self._export_locked()


_window = EventWindow()


def record_event(name: str) -> None:
    _window.record(name)


def flush_metrics() -> None:
    _window.flush()


def timed_service(label: str, *, threshold_ms: int | None = None) -> Callable[[Callable[..., object]], Callable[..., object]]:
    """Logs calls to the wrapped service function that run at or above the slow threshold."""

    def decorator(func: Callable[..., object]) -> Callable[..., object]:
        @functools.wraps(func)
        def wrapper(*args: object, **kwargs: object):
            limit = threshold_ms if threshold_ms is not None else settings.metrics_slow_ms
            started = time.perf_counter()
            try:
                return func(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - started) * 1000.0
                if elapsed_ms >= limit:
                    logger.info('service_slow label=%s duration_ms=%.2f', label, elapsed_ms)

        return wrapper

    return decorator
