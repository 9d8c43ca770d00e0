"""Tests for JSON extraction from model output."""

import pytest

from report_engine.errors import ParseError
from report_engine.services.json_extraction import extract_json, sanitize_text


def test_plain_json():
    assert extract_json('{"summary": "ok"}') == {"summary": "ok"}


def test_json_fence_with_prose():
    text = 'Here is the report:\n```json\n{"summary": "ok", "items": [1, 2]}\n```\nHope this helps.'
    assert extract_json(text) == {"summary": "ok", "items": [1, 2]}


def test_unterminated_json_fence():
    """Streamed output cut before the closing fence."""
    text = '```json\n{"summary": "ok"}\n'
    assert extract_json(text) == {"summary": "ok"}


def test_generic_fence():
    text = '```\n{"summary": "generic"}\n```'
    assert extract_json(text) == {"summary": "generic"}


def test_object_followed_by_prose():
    text = 'Sure! {"summary": "ok"} Let me know if you need anything else.'
    assert extract_json(text) == {"summary": "ok"}


def test_control_characters_removed():
    text = '{"summary": "o\x00k\x07"}'
    assert extract_json(text) == {"summary": "ok"}


@pytest.mark.parametrize(
    "text",
    [
        "{\"a\":1}",
        "```json\n{\"a\":1}\n```",
        "prefix text\n```\n{\"a\":1}\n```",
        "{\"a\":\x0b1}",
    ],
    ids=["plain", "json-fence", "prefix-generic-fence", "vertical-tab"],
)
def test_common_model_output_shapes(text):
    assert extract_json(text) == {"a": 1}


def test_raw_newline_inside_string_recovered():
    text = '{"summary": "line one\nline two"}'
    assert extract_json(text) == {"summary": "line oneline two"}


def test_malformed_utf8_bytes():
    raw = b'{"summary": "caf\xc3\xa9 \xff"}'
    assert extract_json(raw) == {"summary": "café "}


def test_byte_order_mark():
    assert extract_json("\ufeff{\"summary\": \"ok\"}") == {"summary": "ok"}


def test_array_is_not_an_object():
    with pytest.raises(ParseError):
        extract_json("[1, 2, 3]")


def test_no_json():
    with pytest.raises(ParseError):
        extract_json("I could not produce a report today.")


def test_sanitize_keeps_whitespace():
    assert sanitize_text("a\tb\nc\r\x01") == "a\tb\nc\r"
