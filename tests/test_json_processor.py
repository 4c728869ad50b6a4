"""Tests for parse_and_validate_llm_json."""

from typing import List, Optional

import pytest
from pydantic import BaseModel, ConfigDict

from completion_repair.models.llm import CompletionOptions, LLMContext, OutputFormat
from completion_repair.models.sanitizer import SanitizerConfig
from completion_repair.services.json_processor import has_significant_repairs, parse_and_validate_llm_json
from completion_repair.utils.exceptions import JsonProcessingErrorType, LLMError, LLMErrorCode

CONTEXT = LLMContext(resource="src/app.py")
SCHEMALESS = CompletionOptions(output_format=OutputFormat.JSON)


@pytest.mark.parametrize(
    "content, fragment",
    [
        (5, "is not a string, got int"),
        (None, "is not a string, got NoneType"),
        ("", "is just an empty string"),
        ("   \n", "is just an empty string"),
        ("Sorry, I cannot help with that.", "contains no JSON structure and appears to be plain text"),
    ],
)
def test_unusable_content_rejected(content, fragment):
    result = parse_and_validate_llm_json(content, CONTEXT, SCHEMALESS)
    assert result.success is False
    assert result.error.error_type == JsonProcessingErrorType.PARSE
    assert fragment in str(result.error)
    assert "'src/app.py'" in str(result.error)


def test_schemaless_content_repaired():
    result = parse_and_validate_llm_json('```json\n{"a": 1,}\n```', CONTEXT, SCHEMALESS)
    assert result.success is True
    assert result.data == {"a": 1}
    assert "Removed trailing comma" in result.repairs
    assert len(result.pipeline_steps) == 9


def test_valid_json_has_no_steps():
    result = parse_and_validate_llm_json('[{"a": 1}]', CONTEXT, SCHEMALESS)
    assert result.data == [{"a": 1}]
    assert result.repairs == []
    assert result.pipeline_steps == []


def test_primitive_rejected():
    result = parse_and_validate_llm_json('"{not json}"', CONTEXT, SCHEMALESS)
    assert result.success is False
    assert "expected a JSON object or array but received a primitive type or null" in str(result.error)


def test_unparseable_content_reports_steps():
    result = parse_and_validate_llm_json("{: : :}", CONTEXT, SCHEMALESS)
    assert result.success is False
    assert "cannot be parsed to JSON after sanitization" in str(result.error)
    assert len(result.pipeline_steps) == 9


def test_schema_validation_success(item_schema):
    options = CompletionOptions(output_format=OutputFormat.JSON, json_schema=item_schema)
    result = parse_and_validate_llm_json('{"name": "widget", "count": 2, "tags": ["a"]}', CONTEXT, options)
    assert result.success is True
    assert result.data == item_schema(name="widget", count=2, tags=["a"])


def test_normalization_retry_after_validation_failure(item_schema):
    """Values the schema rejects are normalized and validated once more."""
    options = CompletionOptions(output_format=OutputFormat.JSON, json_schema=item_schema)
    content = '{"name": "widget", "count": "~3 units", "tags": "solo", "note": null}'
    result = parse_and_validate_llm_json(content, CONTEXT, options)
    assert result.success is True
    assert result.data == item_schema(name="widget", count=3, tags=["solo"])
    assert "Coerced property 'count' from '~3 units' to 3" in result.repairs
    assert "Coerced property 'tags' to a list" in result.repairs


def test_nested_schema_repaired(order_schema):
    options = CompletionOptions(output_format=OutputFormat.JSON, json_schema=order_schema)
    content = 'Here you go:\n{"items": [{"name": "a", "count": 1}, {"name": "b", "count": "2"}], "total": 3.5,'
    result = parse_and_validate_llm_json(content, CONTEXT, options)
    assert result.success is True
    assert [item.count for item in result.data.items] == [1, 2]
    assert result.data.total == 3.5


def test_schema_mismatch_reported(item_schema):
    options = CompletionOptions(output_format=OutputFormat.JSON, json_schema=item_schema)
    result = parse_and_validate_llm_json('{"name": "widget"}', CONTEXT, options)
    assert result.success is False
    assert result.error.error_type == JsonProcessingErrorType.VALIDATION
    assert "does not match the expected schema: count: Field required" in str(result.error)


def test_sanitizer_config_override_applied():
    config = SanitizerConfig(property_name_mappings={"ti": "title"}, known_properties=["title"])
    content = '{ti": "A fairly long title for the report"}'
    result = parse_and_validate_llm_json(content, CONTEXT, SCHEMALESS, sanitizer_config=config)
    assert result.data == {"title": "A fairly long title for the report"}


def test_has_significant_repairs():
    assert has_significant_repairs(["Trimmed whitespace", "Removed code fences"]) is False
    assert has_significant_repairs(["Trimmed whitespace", "Removed trailing comma"]) is True
    assert has_significant_repairs([]) is False


class Handle:
    """A type pydantic validates but cannot describe in a JSON schema."""


class Reading(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    count: int
    handle: Optional[Handle] = None


def test_configured_numeric_properties_used_when_schema_gives_no_hints():
    """Caller-supplied numeric names drive coercion when no JSON schema can be derived."""
    content = '{"count": "~3 units"}'
    options = CompletionOptions(output_format=OutputFormat.JSON, json_schema=Reading)
    assert parse_and_validate_llm_json(content, CONTEXT, options).success is False

    config = SanitizerConfig(numeric_properties=["count"])
    result = parse_and_validate_llm_json(content, CONTEXT, options, sanitizer_config=config)
    assert result.success is True
    assert result.data.count == 3


def test_configured_array_properties_used_when_schema_gives_no_hints():
    class Tagged(BaseModel):
        model_config = ConfigDict(arbitrary_types_allowed=True)

        tags: List[str]
        handle: Optional[Handle] = None

    options = CompletionOptions(output_format=OutputFormat.JSON, json_schema=Tagged)
    config = SanitizerConfig(array_property_names=["tags"])
    result = parse_and_validate_llm_json('{"tags": "solo"}', CONTEXT, options, sanitizer_config=config)
    assert result.success is True
    assert result.data.tags == ["solo"]


def test_recursion_depth_limits_normalization(order_schema):
    """Nested values beyond the configured depth are not normalized."""
    content = '{"items": [{"name": "a", "count": "~2 pcs"}], "total": 1}'
    options = CompletionOptions(output_format=OutputFormat.JSON, json_schema=order_schema)
    assert parse_and_validate_llm_json(content, CONTEXT, options).success is True

    shallow = SanitizerConfig(max_recursion_depth=1)
    result = parse_and_validate_llm_json(content, CONTEXT, options, sanitizer_config=shallow)
    assert result.success is False
    assert result.error.error_type == JsonProcessingErrorType.VALIDATION


def test_raw_json_schema_dict_is_configuration_error():
    options = CompletionOptions(output_format=OutputFormat.JSON, json_schema={"type": "object"})
    with pytest.raises(LLMError) as exc_info:
        parse_and_validate_llm_json('{"a": 1}', CONTEXT, options)
    assert exc_info.value.code == LLMErrorCode.BAD_CONFIGURATION
