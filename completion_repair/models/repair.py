"""HTTP request and response models for the repair endpoints."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from completion_repair.models.llm import PipelineStep


class RepairRequest(BaseModel):
    """Raw completion to parse and repair without a schema."""

    content: str = Field(..., description="Raw LLM completion text")
    resource: str = Field("http-request", description="Name of the resource the completion is about")
    known_properties: List[str] = Field(default_factory=list, description="Property names expected in the output")
    property_name_mappings: Dict[str, str] = Field(
        default_factory=dict, description="Truncated or misspelled names mapped to their full names"
    )


class RepairResponse(BaseModel):
    """Parsed document, or the reason it could not be parsed, with the full repair trail."""

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    repairs: List[str] = Field(default_factory=list)
    pipeline_steps: List[PipelineStep] = Field(default_factory=list)


class TextClassificationRequest(BaseModel):
    """A TEXT-mode completion to classify."""

    content: Any = Field(..., description="Completion returned by the model")
    request: str = Field("", description="Prompt or request text")
    resource: str = Field("http-request", description="Name of the resource the completion is about")
    model_key: str = Field("unknown", description="Key of the model that answered")
