"""Thread-safe in-memory metric storage with optional JSON file persistence."""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Optional, Protocol, Union

from metrical.context import Context
from metrical.logger import JsonLogger, NullLogger
from metrical.model import CounterMetrics, GaugeMetrics, Metrics, MetricType

_Logger = Union[JsonLogger, NullLogger]

_INT64_SPAN = 2**64
_INT64_OFFSET = 2**63


def _wrap_int64(value: int) -> int:
    """Reduce ``value`` to the signed 64-bit range, wrapping on overflow."""
    return (value + _INT64_OFFSET) % _INT64_SPAN - _INT64_OFFSET


class MetricsRepository(Protocol):
    """Storage operations the metrics service relies on."""

    def update_gauge(self, ctx: Context, name: str, value: float) -> None: ...

    def update_counter(self, ctx: Context, name: str, value: int) -> None: ...

    def get_gauge(self, ctx: Context, name: str) -> Optional[float]: ...

    def get_counter(self, ctx: Context, name: str) -> Optional[int]: ...

    def get_all_gauges(self, ctx: Context) -> GaugeMetrics: ...

    def get_all_counters(self, ctx: Context) -> CounterMetrics: ...

    def save_to_file(self) -> None: ...

    def load_from_file(self) -> None: ...

    def set_sync_save(self, sync: bool) -> None: ...


class InMemoryMetricsRepository:
    """Keeps gauges and counters in memory and can mirror them to a JSON file.

    Gauges are replaced on update; counters accumulate. When ``restore`` is
    true the file is loaded on creation, and a failure to load is logged as a
    warning rather than raised.
    """

    def __init__(
        self,
        logger: _Logger,
        file_storage_path: Union[str, "os.PathLike[str]"],
        restore: bool = False,
    ) -> None:
        self.gauges: GaugeMetrics = {}
        self.counters: CounterMetrics = {}
        self._lock = threading.RLock()
        self._logger = logger
        self.file_storage_path = file_storage_path
        self.restore = restore
        self.sync_save = False
        if restore:
            try:
                self.load_from_file()
            except (OSError, ValueError) as exc:
                logger.warn("failed to load metrics from file", "error", str(exc))
            else:
                logger.info("metrics loaded from file successfully")

    def set_sync_save(self, sync: bool) -> None:
        """Save to the file after every update when ``sync`` is true."""
        self.sync_save = sync

    def update_gauge(self, ctx: Context, name: str, value: float) -> None:
        """Set the gauge ``name`` to ``value``."""
        self._check_context(ctx, "context cancelled during gauge update", "name", name, "value", value)
        with self._lock:
            old_value = self.gauges.get(name)
            self.gauges[name] = float(value)
            if old_value is None:
                self._logger.debug("created new gauge metric", "name", name, "value", value)
            else:
                self._logger.debug(
                    "updated existing gauge metric",
                    "name", name, "old_value", old_value, "new_value", value,
                )
            self._save_if_sync("gauge")

    def update_counter(self, ctx: Context, name: str, value: int) -> None:
        """Add ``value`` to the counter ``name``, starting from zero."""
        self._check_context(ctx, "context cancelled during counter update", "name", name, "value", value)
        with self._lock:
            old_total = self.counters.get(name, 0)
            new_total = _wrap_int64(old_total + value)
            self.counters[name] = new_total
            self._logger.debug(
                "updated counter metric",
                "name", name, "added_value", value, "old_total", old_total, "new_total", new_total,
            )
            self._save_if_sync("counter")

    def get_gauge(self, ctx: Context, name: str) -> Optional[float]:
        """Return the gauge's value, or None if it has never been set."""
        self._check_context(ctx, "context cancelled during gauge retrieval", "name", name)
        with self._lock:
            value = self.gauges.get(name)
        if value is None:
            self._logger.debug("gauge metric not found", "name", name)
        else:
            self._logger.debug("retrieved gauge metric", "name", name, "value", value)
        return value

    def get_counter(self, ctx: Context, name: str) -> Optional[int]:
        """Return the counter's total, or None if it has never been updated."""
        self._check_context(ctx, "context cancelled during counter retrieval", "name", name)
        with self._lock:
            value = self.counters.get(name)
        if value is None:
            self._logger.debug("counter metric not found", "name", name)
        else:
            self._logger.debug("retrieved counter metric", "name", name, "value", value)
        return value

    def get_all_gauges(self, ctx: Context) -> GaugeMetrics:
        """Return a copy of all gauges."""
        self._check_context(ctx, "context cancelled during getAllGauges")
        with self._lock:
            result = dict(self.gauges)
        self._logger.debug("retrieved all gauge metrics", "count", len(result))
        return result

    def get_all_counters(self, ctx: Context) -> CounterMetrics:
        """Return a copy of all counters."""
        self._check_context(ctx, "context cancelled during getAllCounters")
        with self._lock:
            result = dict(self.counters)
        self._logger.debug("retrieved all counter metrics", "count", len(result))
        return result

    def save_to_file(self) -> None:
        """Write all metrics to the storage file as a JSON array."""
        with self._lock:
            self._save_unlocked()

    def load_from_file(self) -> None:
        """Replace the stored metrics with the file's contents; a missing file is skipped."""
        path = Path(self.file_storage_path)
        if not path.exists():
            self._logger.debug("metrics file does not exist, skipping load", "path", str(path))
            return

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise OSError(f"failed to read metrics file: {exc}") from exc

        try:
            raw = json.loads(text)
            if raw is None:
                raw = []
            if not isinstance(raw, list):
                raise TypeError("metrics file must hold a JSON array")
            records = [Metrics.from_dict(item) for item in raw if item is not None]
        except (ValueError, TypeError) as exc:
            raise ValueError(f"failed to unmarshal metrics from JSON: {exc}") from exc

        with self._lock:
            self.gauges = {}
            self.counters = {}
            for metric in records:
                if metric.mtype == MetricType.GAUGE.value and metric.value is not None:
                    self.gauges[metric.id] = metric.value
                elif metric.mtype == MetricType.COUNTER.value and metric.delta is not None:
                    self.counters[metric.id] = metric.delta

        self._logger.debug("metrics loaded from file", "path", str(path), "count", len(raw))

    def _check_context(self, ctx: Context, message: str, *fields: object) -> None:
        err = ctx.error()
        if err is not None:
            self._logger.debug(message, *fields)
            raise err.with_traceback(None)

    def _save_if_sync(self, kind: str) -> None:
        if not self.sync_save:
            return
        try:
            self._save_unlocked()
        except (OSError, ValueError) as exc:
            self._logger.error("failed to save metrics synchronously", "error", str(exc))
            raise
        self._logger.debug(f"metrics saved synchronously after {kind} update")

    def _save_unlocked(self) -> None:
        records = [
            Metrics(id=name, mtype=MetricType.GAUGE.value, value=value).to_dict()
            for name, value in sorted(self.gauges.items())
        ]
        records.extend(
            Metrics(id=name, mtype=MetricType.COUNTER.value, delta=delta).to_dict()
            for name, delta in sorted(self.counters.items())
        )

        try:
            payload = json.dumps(records, indent=2, allow_nan=False)
        except ValueError as exc:
            raise ValueError(f"failed to marshal metrics to JSON: {exc}") from exc

        try:
            Path(self.file_storage_path).write_text(payload, encoding="utf-8")
        except OSError as exc:
            raise OSError(f"failed to write metrics to file: {exc}") from exc

        self._logger.debug(
            "metrics saved to file", "path", str(self.file_storage_path), "count", len(records)
        )