"""Classifies a completion as COMPLETED or INVALID against the caller's options."""

import logging
from typing import Any, Optional

from completion_repair.models.llm import (
    CompletionOptions,
    FunctionResponse,
    LLMPurpose,
    OutputFormat,
    ResponseBase,
    ResponseStatus,
)
from completion_repair.services.error_logger import LLMErrorLogger
from completion_repair.services.json_processor import parse_and_validate_llm_json
from completion_repair.services.schema_validator import PydanticSchemaValidator, SchemaValidator
from completion_repair.utils.exceptions import LLMError, LLMErrorCode, format_error

logger = logging.getLogger(__name__)


class LLMResponseProcessor:
    """
    Turns raw model output into a ``FunctionResponse``.

    Configuration mistakes raise ``LLMError``; content problems come back as
    an INVALID response so the caller can decide whether to retry.
    """

    def __init__(self, error_logger: Optional[LLMErrorLogger] = None, validator: Optional[SchemaValidator] = None):
        self.error_logger = error_logger or LLMErrorLogger()
        self.validator = validator or PydanticSchemaValidator()

    async def format_and_validate_response(
        self,
        base: ResponseBase,
        purpose: LLMPurpose,
        content: Any,
        options: CompletionOptions,
    ) -> FunctionResponse:
        """
        Classify ``content`` produced for ``base``.

        Raises:
            LLMError: JSON output requested without a schema or with a schema
                pydantic cannot validate against, or TEXT output configuration
                errors (see ``validate_text_response``)
        """
        if purpose == LLMPurpose.EMBEDDINGS:
            return FunctionResponse(**base.model_dump(), status=ResponseStatus.COMPLETED, generated=content)

        if options.output_format == OutputFormat.TEXT:
            return self.validate_text_response(base, content, options)

        if options.json_schema is None:
            raise LLMError(
                LLMErrorCode.BAD_CONFIGURATION,
                "Configuration error: outputFormat is JSON but no jsonSchema was provided. "
                "JSON output requires a schema for type-safe validation.",
            )
        self.validator.check_schema(options.json_schema)

        result = parse_and_validate_llm_json(
            content,
            base.context,
            options,
            sanitizer_config=options.sanitizer_config,
            validator=self.validator,
        )
        if result.success:
            response = FunctionResponse(
                **base.model_dump(),
                status=ResponseStatus.COMPLETED,
                generated=result.data,
                repairs=result.repairs,
                pipeline_steps=result.pipeline_steps,
            )
            logger.debug("Completion classified", extra=response.log_fields())
            return response

        await self.error_logger.record_json_processing_error(result.error, content, base.context)
        return FunctionResponse(
            **base.model_dump(),
            status=ResponseStatus.INVALID,
            error=format_error(result.error),
            pipeline_steps=result.pipeline_steps,
        )

    def validate_text_response(self, base: ResponseBase, content: Any, options: CompletionOptions) -> FunctionResponse:
        """
        Classify a TEXT-mode completion.

        Raises:
            LLMError: A schema was supplied for TEXT output, or the content is not a string
        """
        if options.json_schema is not None:
            raise LLMError(
                LLMErrorCode.BAD_CONFIGURATION,
                "Configuration error: jsonSchema was provided but outputFormat is TEXT. "
                "Either use outputFormat JSON with the schema or remove the schema for TEXT output.",
            )
        if not isinstance(content, str):
            raise LLMError(
                LLMErrorCode.BAD_RESPONSE_CONTENT,
                f"Expected string content for TEXT output but received {type(content).__name__}",
                content,
            )
        if not content.strip():
            return FunctionResponse(
                **base.model_dump(), status=ResponseStatus.INVALID, error="LLM returned empty TEXT response"
            )
        return FunctionResponse(**base.model_dump(), status=ResponseStatus.COMPLETED, generated=content)
