"""Completion repair endpoints."""

import logging

from fastapi import APIRouter, Depends

from completion_repair.api.dependencies import get_response_processor
from completion_repair.models.llm import (
    CompletionOptions,
    FunctionResponse,
    LLMContext,
    LLMPurpose,
    OutputFormat,
    ResponseBase,
)
from completion_repair.models.repair import RepairRequest, RepairResponse, TextClassificationRequest
from completion_repair.models.sanitizer import SanitizerConfig
from completion_repair.services.json_processor import parse_and_validate_llm_json
from completion_repair.services.response_processor import LLMResponseProcessor
from completion_repair.utils.exceptions import format_error
from completion_repair.utils.validators import validate_content_size

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/repair", tags=["repair"])


@router.post("", response_model=RepairResponse)
def repair_completion(payload: RepairRequest) -> RepairResponse:
    """
    Parse a raw completion as a JSON object or array, repairing it on the way.

    Runs in the threadpool since the sanitizer pipeline is CPU-bound.
    """
    validate_content_size(payload.content)
    config = SanitizerConfig(
        known_properties=payload.known_properties,
        property_name_mappings=payload.property_name_mappings,
    )
    result = parse_and_validate_llm_json(
        payload.content,
        LLMContext(resource=payload.resource),
        CompletionOptions(output_format=OutputFormat.JSON),
        sanitizer_config=config,
    )
    if not result.success:
        logger.info(
            f"Could not repair completion for resource '{payload.resource}'",
            extra={"resource": payload.resource, "error": str(result.error)},
        )
        return RepairResponse(success=False, error=format_error(result.error), pipeline_steps=result.pipeline_steps)
    return RepairResponse(
        success=True,
        data=result.data,
        repairs=result.repairs,
        pipeline_steps=result.pipeline_steps,
    )


@router.post("/text", response_model=FunctionResponse)
async def classify_text_completion(
    payload: TextClassificationRequest,
    processor: LLMResponseProcessor = Depends(get_response_processor),
) -> FunctionResponse:
    """Classify a TEXT-mode completion as COMPLETED or INVALID."""
    validate_content_size(payload.content)
    base = ResponseBase(
        request=payload.request,
        context=LLMContext(resource=payload.resource),
        model_key=payload.model_key,
    )
    return await processor.format_and_validate_response(
        base,
        LLMPurpose.COMPLETIONS,
        payload.content,
        CompletionOptions(output_format=OutputFormat.TEXT),
    )
