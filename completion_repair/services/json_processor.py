"""Turns a raw completion into parsed, schema-validated JSON."""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from completion_repair.config import settings
from completion_repair.models.llm import CompletionOptions, LLMContext, PipelineStep
from completion_repair.models.sanitizer import SanitizerConfig
from completion_repair.models.schema import SchemaMetadata
from completion_repair.parsing.pipeline import COSMETIC_REPAIRS, NonContainerJsonError, parse_json_with_sanitizers
from completion_repair.services.schema_validator import (
    PydanticSchemaValidator,
    SchemaValidator,
    extract_schema_metadata,
    sanitizer_config_for,
)
from completion_repair.utils.exceptions import JsonProcessingError, JsonProcessingErrorType
from completion_repair.utils.normalization import NormalizerOptions, normalize_parsed_value

logger = logging.getLogger(__name__)

_default_validator = PydanticSchemaValidator()


@dataclass
class JsonProcessorResult:
    """Successful parse with its repair trail, or the error that stopped processing."""

    success: bool
    data: Any = None
    repairs: List[str] = field(default_factory=list)
    pipeline_steps: List[PipelineStep] = field(default_factory=list)
    error: Optional[JsonProcessingError] = None


def _failure(
    error_type: JsonProcessingErrorType,
    message: str,
    cause: Optional[BaseException] = None,
    steps: Optional[List[PipelineStep]] = None,
) -> JsonProcessorResult:
    return JsonProcessorResult(
        success=False,
        error=JsonProcessingError(error_type, message, cause),
        pipeline_steps=steps or [],
    )


def _check_content(content: Any, resource: str) -> Optional[JsonProcessorResult]:
    if not isinstance(content, str):
        return _failure(
            JsonProcessingErrorType.PARSE,
            f"LLM response for resource '{resource}' is not a string, got {type(content).__name__}",
        )
    if not content.strip():
        return _failure(JsonProcessingErrorType.PARSE, f"LLM response for resource '{resource}' is just an empty string")
    if "{" not in content and "[" not in content:
        return _failure(
            JsonProcessingErrorType.PARSE,
            f"LLM response for resource '{resource}' contains no JSON structure and appears to be plain text",
        )
    return None


def _with_config_hints(metadata: SchemaMetadata, config: SanitizerConfig) -> SchemaMetadata:
    """Schema metadata extended with numeric and array property names the caller configured."""
    return metadata.model_copy(
        update={
            "numeric_properties": list(dict.fromkeys([*metadata.numeric_properties, *config.numeric_properties])),
            "array_properties": list(dict.fromkeys([*metadata.array_properties, *config.array_property_names])),
        }
    )


def has_significant_repairs(repairs: List[str]) -> bool:
    """True when a repair went beyond trimming whitespace and removing code fences."""
    return any(repair not in COSMETIC_REPAIRS for repair in repairs)


def parse_and_validate_llm_json(
    content: Any,
    context: LLMContext,
    options: CompletionOptions,
    logging_enabled: bool = settings.log_json_repairs,
    sanitizer_config: Optional[SanitizerConfig] = None,
    validator: Optional[SchemaValidator] = None,
) -> JsonProcessorResult:
    """
    Parse ``content`` with the repair pipeline and validate it against ``options.json_schema``.

    Without a schema any JSON object or array is accepted. With a schema the
    parsed value is validated as-is first; on failure it is normalized and
    validated once more. Problems with the content are returned in the
    result, never raised; a schema pydantic cannot validate against raises
    ``LLMError``.
    """
    rejected = _check_content(content, context.resource)
    if rejected is not None:
        return rejected

    schema = options.json_schema
    metadata = extract_schema_metadata(schema) if schema is not None else None
    config = sanitizer_config or options.sanitizer_config
    if metadata is not None:
        config = sanitizer_config_for(metadata, config)

    parsed = parse_json_with_sanitizers(content, config)
    if isinstance(parsed.error, NonContainerJsonError):
        return _failure(
            JsonProcessingErrorType.PARSE,
            f"LLM response for resource '{context.resource}' expected a JSON object or array "
            "but received a primitive type or null",
            steps=parsed.steps,
        )
    if not parsed.success:
        return _failure(
            JsonProcessingErrorType.PARSE,
            f"LLM response for resource '{context.resource}' cannot be parsed to JSON after sanitization",
            parsed.error,
            parsed.steps,
        )

    repairs = list(parsed.repairs)
    data = parsed.data

    if schema is not None:
        validator = validator or _default_validator
        outcome = validator.validate(data, schema)
        if not outcome.success:
            normalized, normalizations = normalize_parsed_value(
                data,
                _with_config_hints(metadata, config),
                NormalizerOptions(max_depth=config.max_recursion_depth),
                typo_corrections=config.property_typo_corrections,
            )
            retried = validator.validate(normalized, schema)
            if not retried.success:
                return _failure(
                    JsonProcessingErrorType.VALIDATION,
                    f"LLM response for resource '{context.resource}' does not match the expected schema: "
                    + "; ".join(retried.issues[:10]),
                    steps=parsed.steps,
                )
            repairs.extend(normalizations)
            outcome = retried
        data = outcome.data

    if logging_enabled and has_significant_repairs(repairs):
        logger.info(
            f"Repaired LLM JSON for resource '{context.resource}' with {len(repairs)} repairs",
            extra={"resource": context.resource, "repairs": repairs[:20]},
        )

    return JsonProcessorResult(success=True, data=data, repairs=repairs, pipeline_steps=parsed.steps)
