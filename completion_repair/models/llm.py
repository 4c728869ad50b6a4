"""Pydantic models describing one completion attempt and its classified outcome."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from completion_repair.models.sanitizer import SanitizerConfig


class LLMPurpose(str, Enum):
    """What the model invocation was for."""

    COMPLETIONS = "completions"
    EMBEDDINGS = "embeddings"


class OutputFormat(str, Enum):
    """Expected shape of a completion."""

    JSON = "json"
    TEXT = "text"


class ResponseStatus(str, Enum):
    """Terminal classification of a completion attempt."""

    COMPLETED = "completed"
    INVALID = "invalid"


class LLMContext(BaseModel):
    """Opaque correlation identifiers for one completion attempt."""

    model_config = ConfigDict(extra="allow")

    resource: str = Field(..., description="Name of the resource the completion is about")


class CompletionOptions(BaseModel):
    """Caller options that decide how a completion is classified."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    output_format: OutputFormat = Field(OutputFormat.TEXT, description="Expected output format")
    json_schema: Optional[Any] = Field(
        None,
        description="Schema descriptor (pydantic model or any TypeAdapter-compatible type)",
    )
    sanitizer_config: Optional[SanitizerConfig] = Field(
        None, description="Overrides for sanitizer thresholds and schema hints"
    )


class PipelineStep(BaseModel):
    """One recorded sanitizer invocation in a repair attempt's audit trail."""

    sanitizer: str = Field(..., description="Sanitizer stage name")
    changed: bool = Field(..., description="Whether the stage changed the content")
    diagnostics: List[str] = Field(default_factory=list, description="Repair descriptions")


class ResponseBase(BaseModel):
    """Correlation identity for one completion attempt."""

    request: str = Field(..., description="Prompt or request text")
    context: LLMContext
    model_key: str = Field(..., description="Key of the model candidate that answered")


class FunctionResponse(ResponseBase):
    """Classified outcome of a completion attempt."""

    status: ResponseStatus
    generated: Optional[Any] = None
    error: Optional[str] = None
    repairs: Optional[List[str]] = None
    pipeline_steps: Optional[List[PipelineStep]] = None

    def log_fields(self) -> Dict[str, Any]:
        """Fields worth attaching to a log record as ``extra``."""
        return {
            "resource": self.context.resource,
            "model_key": self.model_key,
            "status": self.status.value,
            "repair_count": len(self.repairs or []),
        }
