"""Business operations on metrics, on top of a metrics repository."""

from __future__ import annotations

from typing import Optional, Union

from metrical.context import Context
from metrical.logger import JsonLogger, NullLogger
from metrical.model import CounterMetrics, GaugeMetrics, Metrics, MetricType
from metrical.repository import MetricsRepository
from metrical.validation import MetricRequest

_Logger = Union[JsonLogger, NullLogger]


class UnsupportedMetricTypeError(ValueError):
    """The metric type is neither gauge nor counter."""

    def __init__(self, metric_type: object) -> None:
        self.metric_type = str(metric_type)
        super().__init__(f"unsupported metric type: {self.metric_type}")


class MetricNotFoundError(LookupError):
    """No metric with the requested type and name exists."""

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"{kind} metric not found: {name}")


def _as_float(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"gauge value must be a number, got {type(value).__name__}")
    return float(value)


def _as_int(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"counter value must be an integer, got {type(value).__name__}")
    return value


class MetricsService:
    """Updates and reads metrics through a repository."""

    def __init__(self, repository: MetricsRepository, logger: _Logger) -> None:
        if repository is None:
            raise ValueError("repository cannot be nil")
        if logger is None:
            raise ValueError("logger cannot be nil")
        self._repository = repository
        self._logger = logger

    def update_metric(self, ctx: Context, req: MetricRequest) -> None:
        """Apply a validated update: gauges are replaced, counters accumulate."""
        metric_type = str(req.type)
        self._logger.info("updating metric", "name", req.name, "type", metric_type, "value", req.value)
        if metric_type == MetricType.GAUGE.value:
            self._update_gauge(ctx, req.name, _as_float(req.value))
        elif metric_type == MetricType.COUNTER.value:
            self._update_counter(ctx, req.name, _as_int(req.value))
        else:
            self._logger.error("unsupported metric type", "type", metric_type, "name", req.name)
            raise UnsupportedMetricTypeError(metric_type)

    def update_metric_json(self, ctx: Context, metric: Metrics) -> None:
        """Apply an update given as a JSON-API metric."""
        metric_type = str(metric.mtype)
        self._logger.info("updating metric from JSON", "id", metric.id, "type", metric_type)
        if metric_type == MetricType.GAUGE.value:
            if metric.value is None:
                raise ValueError("value is required for gauge metric")
            self._update_gauge(ctx, metric.id, metric.value)
        elif metric_type == MetricType.COUNTER.value:
            if metric.delta is None:
                raise ValueError("delta is required for counter metric")
            self._update_counter(ctx, metric.id, metric.delta)
        else:
            self._logger.error("unsupported metric type", "type", metric_type, "id", metric.id)
            raise UnsupportedMetricTypeError(metric_type)

    def get_gauge(self, ctx: Context, name: str) -> Optional[float]:
        """Return the gauge's value, or None if it does not exist."""
        self._logger.debug("getting gauge metric", "name", name)
        try:
            value = self._repository.get_gauge(ctx, name)
        except Exception as exc:
            self._logger.error("failed to get gauge metric", "name", name, "error", str(exc))
            raise
        if value is None:
            self._logger.debug("gauge metric not found", "name", name)
        else:
            self._logger.debug("gauge metric retrieved", "name", name, "value", value)
        return value

    def get_counter(self, ctx: Context, name: str) -> Optional[int]:
        """Return the counter's total, or None if it does not exist."""
        self._logger.debug("getting counter metric", "name", name)
        try:
            value = self._repository.get_counter(ctx, name)
        except Exception as exc:
            self._logger.error("failed to get counter metric", "name", name, "error", str(exc))
            raise
        if value is None:
            self._logger.debug("counter metric not found", "name", name)
        else:
            self._logger.debug("counter metric retrieved", "name", name, "value", value)
        return value

    def get_all_gauges(self, ctx: Context) -> GaugeMetrics:
        """Return all gauges."""
        self._logger.debug("getting all gauge metrics")
        try:
            gauges = self._repository.get_all_gauges(ctx)
        except Exception as exc:
            self._logger.error("failed to get all gauge metrics", "error", str(exc))
            raise
        self._logger.debug("all gauge metrics retrieved", "count", len(gauges))
        return gauges

    def get_all_counters(self, ctx: Context) -> CounterMetrics:
        """Return all counters."""
        self._logger.debug("getting all counter metrics")
        try:
            counters = self._repository.get_all_counters(ctx)
        except Exception as exc:
            self._logger.error("failed to get all counter metrics", "error", str(exc))
            raise
        self._logger.debug("all counter metrics retrieved", "count", len(counters))
        return counters

    def get_metric_json(self, ctx: Context, metric: Metrics) -> Metrics:
        """Return a new metric holding the current value for ``metric``'s id and type."""
        metric_type = str(metric.mtype)
        self._logger.info("getting metric as JSON", "id", metric.id, "type", metric_type)
        if metric_type == MetricType.GAUGE.value:
            value = self.get_gauge(ctx, metric.id)
            if value is None:
                raise MetricNotFoundError(MetricType.GAUGE.value, metric.id)
            return Metrics(id=metric.id, mtype=metric.mtype, value=value)
        if metric_type == MetricType.COUNTER.value:
            delta = self.get_counter(ctx, metric.id)
            if delta is None:
                raise MetricNotFoundError(MetricType.COUNTER.value, metric.id)
            return Metrics(id=metric.id, mtype=metric.mtype, delta=delta)
        raise UnsupportedMetricTypeError(metric_type)

    def _update_gauge(self, ctx: Context, name: str, value: float) -> None:
        self._logger.debug("updating gauge metric", "name", name, "value", value)
        try:
            self._repository.update_gauge(ctx, name, value)
        except Exception as exc:
            self._logger.error(
                "failed to update gauge metric", "name", name, "value", value, "error", str(exc)
            )
            raise
        self._logger.debug("gauge metric updated successfully", "name", name, "value", value)

    def _update_counter(self, ctx: Context, name: str, value: int) -> None:
        self._logger.debug("updating counter metric", "name", name, "value", value)
        try:
            self._repository.update_counter(ctx, name, value)
        except Exception as exc:
            self._logger.error(
                "failed to update counter metric", "name", name, "value", value, "error", str(exc)
            )
            raise
        self._logger.debug("counter metric updated successfully", "name", name, "value", value)