"""Flattened reference encoding decoder tests."""

import json
import math
from datetime import datetime

import pytest

from formchain.wire import WireDecodeError, looks_flattened, parse, unflatten


def test_unflatten_object_graph():
    values = [
        {"step": 1, "ok": 2, "data": 3},
        "seo",
        True,
        {"tags": 4},
        [5, 6],
        "a",
        "b",
    ]

    assert unflatten(values) == {
        "step": "seo",
        "ok": True,
        "data": {"tags": ["a", "b"]},
    }


def test_parse_special_values_and_tags():
    values = [
        {"missing": -1, "nan": -3, "inf": -4, "when": 1, "big": 2, "set": 3, "map": 5},
        ["Date", "2024-01-02T03:04:05.000Z"],
        ["BigInt", "12345678901234567890"],
        ["Set", 4],
        "x",
        ["Map", 4, 6],
        10,
    ]

    decoded = parse(json.dumps(values))

    assert decoded["missing"] is None
    assert math.isnan(decoded["nan"])
    assert decoded["inf"] == math.inf
    assert isinstance(decoded["when"], datetime)
    assert decoded["when"].year == 2024
    assert decoded["big"] == 12345678901234567890
    assert decoded["set"] == ["x"]
    assert decoded["map"] == {"x": 10}


def test_shared_and_cyclic_references():
    decoded = unflatten([{"self": 0, "a": 1, "b": 1}, {"v": 2}, 1])

    assert decoded["self"] is decoded
    assert decoded["a"] is decoded["b"]


def test_standalone_special():
    assert unflatten(-1) is None
    with pytest.raises(WireDecodeError):
        unflatten(7)


@pytest.mark.parametrize(
    "text",
    ["not json", "{}", "[]", "[{\"a\": 9}]", "[[\"Unknown\", 1]]", "[{\"a\": \"x\"}]"],
)
def test_invalid_encodings_raise(text):
    with pytest.raises(WireDecodeError):
        parse(text)


def test_looks_flattened():
    assert looks_flattened('[{"a":1},2]')
    assert looks_flattened([{"a": 1}])
    assert not looks_flattened("hello")
    assert not looks_flattened([])
    assert not looks_flattened({"a": 1})
