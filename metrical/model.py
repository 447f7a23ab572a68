"""Metric data model shared by the storage, service and HTTP layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

GaugeMetrics = Dict[str, float]
CounterMetrics = Dict[str, int]

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


class MetricType(str, Enum):
    """Kinds of metric the service understands."""

    COUNTER = "counter"
    GAUGE = "gauge"

    def __str__(self) -> str:
        return self.value


@dataclass
class Metrics:
    """A single metric as exchanged over the JSON API and in the storage file.

    ``delta`` and ``value`` are ``None`` when unset, so that zero can be told
    apart from a missing value.
    """

    id: str = ""
    mtype: str = ""
    delta: Optional[int] = None
    value: Optional[float] = None
    hash: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON object form, leaving out unset optional fields."""
        data: dict[str, Any] = {"id": self.id, "type": str(self.mtype)}
        if self.delta is not None:
            data["delta"] = self.delta
        if self.value is not None:
            data["value"] = self.value
        if self.hash:
            data["hash"] = self.hash
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Metrics":
        """Build a metric from a decoded JSON object."""
        if not isinstance(data, Mapping):
            raise TypeError("metric must be a JSON object")
        return cls(
            id=_string_field(data, "id"),
            mtype=_string_field(data, "type"),
            delta=_delta_field(data.get("delta")),
            value=_value_field(data.get("value")),
            hash=_string_field(data, "hash"),
        )


def _string_field(data: Mapping[str, Any], key: str) -> str:
    raw = data.get(key)
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raise TypeError(f"field {key!r} must be a string")
    return raw


def _delta_field(raw: Any) -> Optional[int]:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise TypeError("field 'delta' must be an integer")
    if not _INT64_MIN <= raw <= _INT64_MAX:
        raise ValueError("field 'delta' is out of the 64-bit integer range")
    return raw


def _value_field(raw: Any) -> Optional[float]:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise TypeError("field 'value' must be a number")
    return float(raw)


class ValidationError(ValueError):
    """A metric field failed validation."""

    def __init__(self, field: str, value: str, message: str) -> None:
        self.field = field
        self.value = value
        self.message = message
        super().__init__(
            f"validation error for field '{field}' with value '{value}': {message}"
        )


def is_validation_error(err: BaseException) -> bool:
    """Tell whether ``err`` is a metric validation error."""
    return isinstance(err, ValidationError)