"""Tests for character-level normalization inside and around string literals."""

import json

import pytest

from completion_repair.parsing.characters import normalize_characters
from completion_repair.parsing.pipeline import parse_json_with_sanitizers


def test_literal_backslashes_escaped():
    """Windows paths and regexes written with single backslashes keep their text."""
    result = normalize_characters(r'{"path": "C:\Users\x", "re": "\d+"}')
    assert json.loads(result.content) == {"path": "C:\\Users\\x", "re": "\\d+"}
    assert "Fixed 3 invalid escape sequence(s) inside strings" in result.diagnostics


@pytest.mark.parametrize(
    "content, expected",
    [
        (r'{"a": "it\'s"}', "it's"),
        (r'{"a": "it\\\'s"}', "it's"),
        (r'{"a": "x\, y"}', "x, y"),
        (r'{"a": "f(x\)"}', "f(x)"),
        (r'{"a": "x\ y"}', "x y"),
        (r'{"a": "x\0"}', "x\x00"),
        (r'{"a": "\u41"}', "\\u41"),
    ],
)
def test_invalid_escapes_repaired(content, expected):
    result = normalize_characters(content)
    assert json.loads(result.content) == {"a": expected}


def test_valid_escapes_untouched():
    content = r'{"a": "line\nnext \"q\" \\ \u00e9 \/ \t", "b": "\\\\d"}'
    result = normalize_characters(content)
    assert result.changed is False
    assert result.content == content


def test_long_backslash_run_kept():
    content = '{"a": "' + "\\" * 20000 + '"}'
    assert normalize_characters(content).changed is False


def test_invalid_escape_repaired_through_pipeline():
    result = parse_json_with_sanitizers(r'{"path": "C:\Users\x", "n": 1,}')
    assert result.data == {"path": "C:\\Users\\x", "n": 1}


def test_escaped_quotes_survive_pipeline():
    """Escaped quotes shaped like properties stay part of the string."""
    result = parse_json_with_sanitizers('{"a": "value\\", \\"k\\": \\"v", "b": 1,}')
    assert result.data == {"a": 'value", "k": "v', "b": 1}


def test_raw_newline_before_leaked_property_kept_for_repair():
    result = parse_json_with_sanitizers('{"name": "alpha\\",\n  \\"extra\\": \\"beta", "b": 1}')
    assert result.data == {"name": "alpha", "b": 1}
