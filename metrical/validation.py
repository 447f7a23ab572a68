"""Validation and parsing of metric update requests."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Union

from metrical.model import MetricType, ValidationError

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

_TYPE_MESSAGE = "must be 'gauge' or 'counter'"
_NAME_MESSAGE = "cannot be empty"


@dataclass(frozen=True)
class MetricRequest:
    """A validated update: a float value for gauges, an int for counters."""

    type: MetricType
    name: str
    value: Union[float, int]


def _parse_float(text: str) -> float:
    if not text or "_" in text or text != text.strip():
        raise ValueError(f"invalid float: {text!r}")
    unsigned = text.lower().lstrip("+-")
    if unsigned == "nan" and text[0] in "+-":
        raise ValueError(f"invalid float: {text!r}")
    if unsigned.startswith("0x"):
        if "p" not in unsigned:
            raise ValueError(f"hex float needs an exponent: {text!r}")
        try:
            result = float.fromhex(text)
        except OverflowError as exc:
            raise ValueError(f"float out of range: {text!r}") from exc
    else:
        result = float(text)
    if math.isinf(result) and unsigned not in ("inf", "infinity"):
        raise ValueError(f"float out of range: {text!r}")
    return result


def _parse_int(text: str) -> int:
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid integer: {text!r}")
    result = int(text)
    if not _INT64_MIN <= result <= _INT64_MAX:
        raise ValueError(f"integer out of range: {text!r}")
    return result


def validate_metric_type(metric_type: str) -> None:
    """Raise ValidationError unless ``metric_type`` is gauge or counter."""
    if metric_type not in (MetricType.GAUGE.value, MetricType.COUNTER.value):
        raise ValidationError("type", metric_type, _TYPE_MESSAGE)


def validate_metric_name(name: str) -> None:
    """Raise ValidationError if ``name`` is empty."""
    if name == "":
        raise ValidationError("name", name, _NAME_MESSAGE)


def validate_metric_request(metric_type: str, name: str, value: str) -> MetricRequest:
    """Check the type and name and parse the value for that type."""
    validate_metric_type(metric_type)
    validate_metric_name(name)
    kind = MetricType(metric_type)

    parsed: Union[float, int]
    if kind is MetricType.GAUGE:
        try:
            parsed = _parse_float(value)
        except ValueError:
            raise ValidationError("value", value, "must be a valid float number") from None
    else:
        try:
            parsed = _parse_int(value)
        except ValueError:
            raise ValidationError("value", value, "must be a valid integer number") from None

    return MetricRequest(type=kind, name=name, value=parsed)