import json

import pytest

from metrical.model import (
    Metrics,
    MetricType,
    ValidationError,
    is_validation_error,
)


def test_metric_type_from_string():
    assert MetricType("gauge") is MetricType.GAUGE
    assert MetricType("counter") is MetricType.COUNTER
    assert str(MetricType.COUNTER) == "counter"


def test_unknown_metric_type_rejected():
    with pytest.raises(ValueError):
        MetricType("histogram")


def test_to_dict_omits_unset_fields():
    metric = Metrics(id="temp", mtype=MetricType.GAUGE, value=1.5)
    assert metric.to_dict() == {"id": "temp", "type": "gauge", "value": 1.5}


def test_to_dict_keeps_zero_delta():
    data = Metrics(id="hits", mtype=MetricType.COUNTER, delta=0).to_dict()
    assert "delta" in data
    assert data["delta"] == 0
    assert "value" not in data


def test_json_round_trip():
    original = Metrics(id="hits", mtype="counter", delta=7, hash="abc")
    decoded = Metrics.from_dict(json.loads(json.dumps(original.to_dict())))
    assert decoded == original


def test_from_dict_nulls_become_none():
    metric = Metrics.from_dict({"id": "x", "type": "gauge", "value": None})
    assert metric.value is None
    assert metric.delta is None
    assert metric.hash == ""


def test_from_dict_converts_integer_value_to_float():
    metric = Metrics.from_dict({"id": "x", "type": "gauge", "value": 3})
    assert isinstance(metric.value, float)
    assert metric.value == 3


@pytest.mark.parametrize("delta", [1.5, True, "3"])
def test_from_dict_rejects_non_integer_delta(delta):
    with pytest.raises(TypeError):
        Metrics.from_dict({"id": "x", "type": "counter", "delta": delta})


def test_from_dict_rejects_delta_out_of_range():
    with pytest.raises(ValueError):
        Metrics.from_dict({"id": "x", "type": "counter", "delta": 2**63})


def test_from_dict_rejects_non_string_id():
    with pytest.raises(TypeError):
        Metrics.from_dict({"id": 5, "type": "gauge"})


def test_from_dict_rejects_non_object():
    with pytest.raises(TypeError):
        Metrics.from_dict([1, 2])


def test_validation_error_message_and_fields():
    err = ValidationError("name", "", "cannot be empty")
    assert str(err) == "validation error for field 'name' with value '': cannot be empty"
    assert err.field == "name"
    assert err.message == "cannot be empty"


def test_is_validation_error():
    assert is_validation_error(ValidationError("type", "x", "bad"))
    assert not is_validation_error(ValueError("other"))