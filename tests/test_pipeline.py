"""Tests for the sanitizer pipeline and parse_json_with_sanitizers."""

import json
import re

import pytest

from completion_repair.models.sanitizer import SanitizerConfig
from completion_repair.parsing.pipeline import (
    DEFAULT_STAGES,
    NonContainerJsonError,
    SanitizerPipeline,
    parse_json_with_sanitizers,
)
from completion_repair.parsing.types import ReplacementRule

VALID_DOCUMENTS = [
    '{"name": "x", "items": [1, 2, 3], "nested": {"flag": true, "none": null}}',
    json.dumps(
        {
            "text": 'with } and ] and "quotes" and “smart” ones',
            "url": "https://example.com/a//b",
            "lines": "first\nsecond\ttabbed",
            "records": [{"id": 1, "tags": []}, {"id": 2, "tags": ["a", "b"]}],
            "desc": "a long description value that is definitely long",
            "deep": {"a": {"b": {"c": {"d": [[[]]]}}}},
        },
        indent=2,
        ensure_ascii=False,
    ),
    "[]",
    "{}",
    '[{"a": -1.5e3}, "} } } } } } } } } } } }", false]',
]


@pytest.mark.parametrize("content", VALID_DOCUMENTS)
def test_valid_json_is_left_unchanged(content):
    """Every stage reports no change on already-valid JSON."""
    run = SanitizerPipeline().run(content)
    assert run.content == content
    assert [step.changed for step in run.steps] == [False] * len(DEFAULT_STAGES)
    assert run.repaired is False


def test_valid_json_takes_fast_path():
    """Parsable input is returned without running any stage."""
    result = parse_json_with_sanitizers('  {"a": 1}  ')
    assert result.success is True
    assert result.data == {"a": 1}
    assert result.steps == []


def test_steps_recorded_in_stage_order():
    result = parse_json_with_sanitizers('{"a": 1,}')
    assert [step.sanitizer for step in result.steps] == [name for name, _ in DEFAULT_STAGES]
    assert result.data == {"a": 1}


@pytest.mark.parametrize(
    "content",
    [
        '{"a": "' + "loop " * 20000,
        "[" * 100000,
        '{"k": ' + '"x", ' * 20000,
        "x" * 100000,
        "{" + '"a": "b} ' * 12000,
    ],
)
def test_large_inputs_terminate(content):
    """Pathological inputs of 10^5 characters finish and return a result."""
    result = parse_json_with_sanitizers(content)
    assert isinstance(result.success, bool)


def test_runaway_repetition_in_large_input_is_truncated():
    result = parse_json_with_sanitizers('{"a": "' + "loop " * 20000)
    assert result.data == {"a": "loop loop loop..."}


def test_braces_inside_strings_are_never_touched():
    """Closers inside a literal below the repetition threshold survive repair."""
    result = parse_json_with_sanitizers('{"note": "close }} }} }} here", "b": 1,}')
    assert result.success is True
    assert result.data == {"note": "close }} }} }} here", "b": 1}


@pytest.mark.parametrize(
    "content",
    [
        '{"name": "x", "purpose": "do thing ' + "} " * 11 + "}",
        '{"name": "x", "purpose": "do thing" ' + "} " * 11 + "}",
    ],
)
def test_runaway_closers_repaired(content):
    """Both the unterminated and the closed-too-early form keep three closers plus an ellipsis."""
    result = parse_json_with_sanitizers(content)
    assert result.success is True
    assert result.data == {"name": "x", "purpose": "do thing } } }..."}


def test_extra_thoughts_removed():
    result = parse_json_with_sanitizers('{"a":1, extra_thoughts: {"x": "y"}, "b":2}')
    assert result.data == {"a": 1, "b": 2}


def test_code_fences_and_prose_removed():
    content = 'Here is the JSON:\n```json\n{"a": 1,}\n```\nHope this helps!'
    result = parse_json_with_sanitizers(content)
    assert result.data == {"a": 1}
    assert "Removed code fences" in result.repairs


def test_reasoning_block_removed():
    content = '<thinking>The user wants {"a": 0}</thinking>\n{"a": 1, "b": [1, 2]}'
    assert parse_json_with_sanitizers(content).data == {"a": 1, "b": [1, 2]}


def test_appended_schema_ignored():
    content = '{"a": 1}\n{"type": "object", "properties": {"a": {"type": "integer"}}, "required": ["a"]}'
    assert parse_json_with_sanitizers(content).data == {"a": 1}


def test_truncated_structure_completed():
    result = parse_json_with_sanitizers('{"items": [{"id": 1}, {"id": 2')
    assert result.data == {"items": [{"id": 1}, {"id": 2}]}


def test_truncated_property_name_dropped():
    assert parse_json_with_sanitizers('{"a": 1, "b').data == {"a": 1}


def test_truncated_literal_completed():
    assert parse_json_with_sanitizers('{"a": 1, "b": tru').data == {"a": 1, "b": True}


def test_python_literals_converted():
    result = parse_json_with_sanitizers('{"a": True, "b": None, "c": "None"}')
    assert result.data == {"a": True, "b": None, "c": "None"}


def test_missing_commas_inserted():
    content = '{\n  "a": "x"\n  "b": 2\n  "c": [1, 2]\n  "d": {}\n}'
    assert parse_json_with_sanitizers(content).data == {"a": "x", "b": 2, "c": [1, 2], "d": {}}


def test_mismatched_delimiters_fixed():
    assert parse_json_with_sanitizers('{"a": [1, 2}').data == {"a": [1, 2]}


def test_string_concatenation_merged():
    assert parse_json_with_sanitizers('{"a": "abc" + "def" + "ghi"}').data == {"a": "abcdefghi"}


def test_smart_quotes_used_as_delimiters():
    assert parse_json_with_sanitizers("{“a”: “b”,}").data == {"a": "b"}


def test_raw_newline_inside_string_escaped():
    assert parse_json_with_sanitizers('{"a": "line one\nline two",}').data == {"a": "line one\nline two"}


def test_truncation_markers_removed():
    assert parse_json_with_sanitizers('{"a": [1, 2, ...], "b": 1,}').data == {"a": [1, 2], "b": 1}


def test_custom_rules_run_after_built_ins():
    rule = ReplacementRule(
        name="britishSpelling",
        pattern=re.compile(r'"colour"(?=\s*:)'),
        replacement=lambda match, groups, context: '"color"',
        diagnostic_message="Renamed colour to color",
    )
    config = SanitizerConfig(custom_rules=(rule,))
    result = parse_json_with_sanitizers('{"colour": "red",}', config)
    assert result.data == {"color": "red"}
    assert "Renamed colour to color" in result.repairs


def test_scalar_result_rejected():
    result = parse_json_with_sanitizers('"{not json}"')
    assert result.success is False
    assert isinstance(result.error, NonContainerJsonError)


def test_unrepairable_input_reports_error_and_steps():
    result = parse_json_with_sanitizers("no json here at all")
    assert result.success is False
    assert result.error is not None
    assert len(result.steps) == len(DEFAULT_STAGES)
