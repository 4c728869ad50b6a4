"""Tests for LLMResponseProcessor."""

import pytest

from completion_repair.models.llm import CompletionOptions, LLMPurpose, OutputFormat, ResponseStatus
from completion_repair.utils.exceptions import LLMError, LLMErrorCode

TEXT = CompletionOptions(output_format=OutputFormat.TEXT)


@pytest.mark.asyncio
async def test_embeddings_pass_through(processor, base):
    vector = [0.1, 0.2, 0.3]
    response = await processor.format_and_validate_response(base, LLMPurpose.EMBEDDINGS, vector, TEXT)
    assert response.status == ResponseStatus.COMPLETED
    assert response.generated == vector
    assert response.model_key == "test-model"


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["", "   ", "\n\t"])
async def test_blank_text_is_invalid(processor, base, content):
    response = await processor.format_and_validate_response(base, LLMPurpose.COMPLETIONS, content, TEXT)
    assert response.status == ResponseStatus.INVALID
    assert response.error == "LLM returned empty TEXT response"


@pytest.mark.asyncio
async def test_text_completed(processor, base):
    response = await processor.format_and_validate_response(base, LLMPurpose.COMPLETIONS, "hello", TEXT)
    assert response.status == ResponseStatus.COMPLETED
    assert response.generated == "hello"
    assert response.context.resource == "src/app.py"


@pytest.mark.asyncio
async def test_text_with_schema_is_configuration_error(processor, base, item_schema):
    options = CompletionOptions(output_format=OutputFormat.TEXT, json_schema=item_schema)
    with pytest.raises(LLMError) as exc_info:
        await processor.format_and_validate_response(base, LLMPurpose.COMPLETIONS, "hello", options)
    assert exc_info.value.code == LLMErrorCode.BAD_CONFIGURATION
    assert "jsonSchema was provided but outputFormat is TEXT" in str(exc_info.value)


@pytest.mark.asyncio
async def test_text_requires_string(processor, base):
    with pytest.raises(LLMError) as exc_info:
        await processor.format_and_validate_response(base, LLMPurpose.COMPLETIONS, {"a": 1}, TEXT)
    assert exc_info.value.code == LLMErrorCode.BAD_RESPONSE_CONTENT
    assert exc_info.value.content == {"a": 1}


@pytest.mark.asyncio
async def test_json_without_schema_is_configuration_error(processor, base, error_logger):
    options = CompletionOptions(output_format=OutputFormat.JSON)
    with pytest.raises(LLMError) as exc_info:
        await processor.format_and_validate_response(base, LLMPurpose.COMPLETIONS, '{"a": 1}', options)
    assert exc_info.value.code == LLMErrorCode.BAD_CONFIGURATION
    assert "outputFormat is JSON but no jsonSchema was provided" in str(exc_info.value)
    assert error_logger.calls == []


@pytest.mark.asyncio
async def test_json_completed(processor, base, item_schema, error_logger):
    options = CompletionOptions(output_format=OutputFormat.JSON, json_schema=item_schema)
    response = await processor.format_and_validate_response(
        base, LLMPurpose.COMPLETIONS, '{"name": "widget", "count": 2}', options
    )
    assert response.status == ResponseStatus.COMPLETED
    assert response.generated == item_schema(name="widget", count=2)
    assert response.pipeline_steps == []
    assert error_logger.calls == []


@pytest.mark.asyncio
async def test_repaired_json_carries_steps(processor, base, item_schema):
    options = CompletionOptions(output_format=OutputFormat.JSON, json_schema=item_schema)
    content = '```json\n{"name": "widget", "count": 2, "tags": ["a", "b",],}\n```'
    response = await processor.format_and_validate_response(base, LLMPurpose.COMPLETIONS, content, options)
    assert response.status == ResponseStatus.COMPLETED
    assert response.generated.tags == ["a", "b"]
    assert len(response.pipeline_steps) == 9
    assert response.pipeline_steps[-1].sanitizer == "fix_syntax"
    assert response.pipeline_steps[-1].changed is True
    assert "Removed trailing comma" in response.repairs


@pytest.mark.asyncio
async def test_invalid_json_logged_once(processor, base, item_schema, error_logger):
    options = CompletionOptions(output_format=OutputFormat.JSON, json_schema=item_schema)
    response = await processor.format_and_validate_response(
        base, LLMPurpose.COMPLETIONS, "I could not produce the data.", options
    )
    assert response.status == ResponseStatus.INVALID
    assert response.error.startswith("JsonProcessingError.")
    assert "appears to be plain text" in response.error
    assert len(error_logger.calls) == 1
    error, raw, context = error_logger.calls[0]
    assert raw == "I could not produce the data."
    assert context.resource == "src/app.py"


@pytest.mark.asyncio
async def test_schema_mismatch_is_invalid(processor, base, item_schema, error_logger):
    options = CompletionOptions(output_format=OutputFormat.JSON, json_schema=item_schema)
    response = await processor.format_and_validate_response(
        base, LLMPurpose.COMPLETIONS, '{"name": "widget"}', options
    )
    assert response.status == ResponseStatus.INVALID
    assert "does not match the expected schema" in response.error
    assert len(error_logger.calls) == 1


@pytest.mark.asyncio
async def test_json_schema_dict_is_configuration_error(processor, base, error_logger):
    """A raw JSON-schema dict cannot be validated against and is rejected before parsing."""
    options = CompletionOptions(output_format=OutputFormat.JSON, json_schema={"type": "object"})
    with pytest.raises(LLMError) as exc_info:
        await processor.format_and_validate_response(base, LLMPurpose.COMPLETIONS, '{"a": 1}', options)
    assert exc_info.value.code == LLMErrorCode.BAD_CONFIGURATION
    assert "Configuration error" in str(exc_info.value)
    assert error_logger.calls == []
