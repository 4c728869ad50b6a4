"""Property-name hints derived from a response schema."""

from typing import List

from pydantic import BaseModel, Field


class SchemaMetadata(BaseModel):
    """Flattened property names across every object node of a schema."""

    known_properties: List[str] = Field(default_factory=list)
    required_properties: List[str] = Field(default_factory=list)
    array_properties: List[str] = Field(default_factory=list)
    numeric_properties: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.known_properties
