"""Sanitizer configuration model."""

from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field

from completion_repair.config import settings


class SanitizerConfig(BaseModel):
    """Per-call overrides for the sanitizer pipeline.

    Schema hints (``known_properties`` and friends) are usually derived from
    the JSON schema via ``extract_schema_metadata``; thresholds default to the
    process-wide ``settings``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    # Schema hints
    known_properties: List[str] = Field(default_factory=list)
    numeric_properties: List[str] = Field(default_factory=list)
    array_property_names: List[str] = Field(default_factory=list)
    property_name_mappings: Dict[str, str] = Field(default_factory=dict)
    property_typo_corrections: Dict[str, str] = Field(default_factory=dict)
    # ReplacementRule instances appended after the built-in rule sets
    custom_rules: Tuple[Any, ...] = ()

    # Thresholds
    min_repetitions_to_truncate: int = Field(default_factory=lambda: settings.min_repetitions_to_truncate)
    max_repetitions_to_keep: int = Field(default_factory=lambda: settings.max_repetitions_to_keep)
    string_context_lookback: int = Field(default_factory=lambda: settings.string_context_lookback)
    property_context_window: int = Field(default_factory=lambda: settings.property_context_window)
    truncation_safety_buffer: int = Field(default_factory=lambda: settings.truncation_safety_buffer)
    max_rule_passes: int = Field(default_factory=lambda: settings.max_rule_passes)
    max_structure_passes: int = Field(default_factory=lambda: settings.max_structure_passes)
    max_recursion_depth: int = Field(default_factory=lambda: settings.max_recursion_depth)
    max_diagnostics: int = Field(default_factory=lambda: settings.max_diagnostics)

    def merged_with(self, other: "SanitizerConfig") -> "SanitizerConfig":
        """Combine schema-derived hints with caller overrides (``other`` wins on thresholds)."""
        data = other.model_dump(exclude_unset=True, exclude={"custom_rules"})
        for key in ("known_properties", "numeric_properties", "array_property_names"):
            data[key] = list(dict.fromkeys([*getattr(self, key), *getattr(other, key)]))
        for key in ("property_name_mappings", "property_typo_corrections"):
            data[key] = {**getattr(self, key), **getattr(other, key)}
        data["custom_rules"] = self.custom_rules + other.custom_rules
        return self.model_copy(update=data)
