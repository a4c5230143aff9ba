"""Step response normalizer tests."""

import json
import logging

import pytest

from formchain.errors import InvalidStepResponse
from formchain.normalize import normalize, normalize_result
from formchain.result import Err, Ok


@pytest.mark.parametrize("raw", [None, [], [{"ok": True}], "ok", 42])
def test_rejects_non_object_responses(raw):
    with pytest.raises(InvalidStepResponse) as exc_info:
        normalize(raw, "seo")
    assert exc_info.value.step == "seo"


def test_fills_defaults_permissively():
    result = normalize({"ok": "yes", "message": 5, "data": ["x"]}, "seo")

    assert result.step == "seo"
    assert result.ok is True
    assert result.message == ""
    assert result.data == {}


def test_extracts_well_formed_result():
    raw = {"step": "save", "ok": False, "message": "db down", "data": {"id": 1}}
    result = normalize(raw, "fallback")

    assert result.step == "save"
    assert result.ok is False
    assert result.message == "db down"
    assert result.data == {"id": 1}


def test_result_is_immutable():
    result = normalize({"data": {"a": 1}}, "seo")
    with pytest.raises(Exception):
        result.ok = False


def test_decodes_encoded_data_string_envelope():
    flattened = [
        {"step": 1, "ok": 2, "message": 3, "data": 4},
        "seo",
        True,
        "SEO metadata generated",
        {"meta": 5},
        {"keywords": 6},
        [7],
        "svelte",
    ]
    raw = {"type": "success", "status": 200, "data": json.dumps(flattened)}

    result = normalize(raw, "fallback")

    assert result.step == "seo"
    assert result.message == "SEO metadata generated"
    assert result.data == {"meta": {"keywords": ["svelte"]}}


def test_decodes_flattened_data_list_envelope():
    raw = {"type": "success", "data": [{"step": 1, "data": 2}, "markdown", {"n": 3}, 7]}

    result = normalize(raw, "fallback")

    assert result.step == "markdown"
    assert result.data == {"n": 7}


def test_undecodable_envelope_falls_back_to_raw(caplog):
    raw = {"step": "seo", "ok": True, "data": "[broken"}

    with caplog.at_level(logging.WARNING):
        result = normalize(raw, "fallback")

    assert result.step == "seo"
    assert result.data == {}
    assert "Could not decode" in caplog.text


def test_normalize_result_wraps_outcomes():
    assert isinstance(normalize_result({"ok": True}, "a"), Ok)
    outcome = normalize_result([1, 2], "a")
    assert isinstance(outcome, Err)
    assert isinstance(outcome.error, InvalidStepResponse)


def test_failed_result_keeps_its_own_fields_when_data_is_flattened():
    raw = {
        "step": "save",
        "ok": False,
        "message": "disk full",
        "data": [{"partial": 1}, "junk"],
    }

    result = normalize(raw, "save")

    assert result.ok is False
    assert result.step == "save"
    assert result.message == "disk full"
    assert result.data == {"partial": "junk"}


def test_plain_result_with_encoded_data_string_decodes_only_data():
    raw = {
        "step": "seo",
        "ok": True,
        "message": "done",
        "data": json.dumps([{"ok": 1}, False]),
    }

    result = normalize(raw, "fallback")

    assert result.ok is True
    assert result.message == "done"
    assert result.data == {"ok": False}
