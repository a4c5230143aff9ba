"""Serialization filter tests."""

import io
import json
import logging
from datetime import datetime, timezone

from formchain.serialization import placeholder_for, serialize


def test_file_handle_replaced_with_named_placeholder(caplog):
    image = io.BytesIO(b"\xff\xd8\xff\xe0RAWJPEG")
    image.name = "uploads/cat.jpg"

    with caplog.at_level(logging.WARNING):
        encoded = serialize({"title": "Cats", "featuredImage": image})

    assert json.loads(encoded) == {"title": "Cats", "featuredImage": "[File:cat.jpg]"}
    assert "RAWJPEG" not in encoded
    assert "cat.jpg" in caplog.text


def test_binary_values_replaced_with_typed_placeholders():
    encoded = serialize(
        {
            "blob": b"abc",
            "buffer": bytearray(4),
            "view": memoryview(b"12345"),
            "nested": {"items": [b"x"]},
        }
    )

    assert json.loads(encoded) == {
        "blob": "[Bytes(3)]",
        "buffer": "[ByteArray(4)]",
        "view": "[MemoryView(5)]",
        "nested": {"items": ["[Bytes(1)]"]},
    }


def test_upload_objects_with_filename_are_placeholders():
    class Upload:
        filename = "report.pdf"

        def read(self):
            return b"%PDF"

    assert placeholder_for(Upload()) == "[File:report.pdf]"
    assert placeholder_for("plain text") is None


def test_common_python_values_are_encoded():
    stamp = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    encoded = json.loads(serialize({"when": stamp, "tags": {"a"}}))

    assert encoded["when"].startswith("2024-05-01T12:00:00")
    assert encoded["tags"] == ["a"]


def test_unencodable_payload_fails_soft(caplog):
    cyclic: dict = {}
    cyclic["self"] = cyclic

    with caplog.at_level(logging.ERROR):
        assert serialize(cyclic) == "{}"
        assert serialize({"obj": object()}) == "{}"

    assert "Failed to serialize" in caplog.text


def test_non_finite_numbers_become_null():
    def reject_constant(name):
        raise ValueError(f"non-standard JSON constant {name}")

    encoded = serialize(
        {"score": float("nan"), "hi": float("inf"), "xs": [float("-inf"), 1.5]}
    )

    assert json.loads(encoded, parse_constant=reject_constant) == {
        "score": None,
        "hi": None,
        "xs": [None, 1.5],
    }
