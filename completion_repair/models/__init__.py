"""Data models."""

from completion_repair.models.llm import (
    CompletionOptions,
    FunctionResponse,
    LLMContext,
    LLMPurpose,
    OutputFormat,
    PipelineStep,
    ResponseBase,
    ResponseStatus,
)
from completion_repair.models.repair import RepairRequest, RepairResponse, TextClassificationRequest
from completion_repair.models.sanitizer import SanitizerConfig
from completion_repair.models.schema import SchemaMetadata

__all__ = [
    "CompletionOptions",
    "FunctionResponse",
    "LLMContext",
    "LLMPurpose",
    "OutputFormat",
    "PipelineStep",
    "RepairRequest",
    "RepairResponse",
    "ResponseBase",
    "ResponseStatus",
    "SanitizerConfig",
    "SchemaMetadata",
    "TextClassificationRequest",
]
