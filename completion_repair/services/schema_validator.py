"""Schema validation and schema-derived hints for the repair pipeline."""

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Optional, Protocol, Set

from pydantic import TypeAdapter, ValidationError
from pydantic.errors import PydanticSchemaGenerationError, PydanticUserError
from pydantic_core import SchemaError

from completion_repair.models.schema import SchemaMetadata
from completion_repair.models.sanitizer import SanitizerConfig
from completion_repair.utils.exceptions import LLMError, LLMErrorCode

logger = logging.getLogger(__name__)

ADAPTER_CACHE_SIZE = 128


@dataclass
class ValidationOutcome:
    """Result of validating one parsed value."""

    success: bool
    data: Any = None
    issues: List[str] = field(default_factory=list)


class SchemaValidator(Protocol):
    """Validates a parsed value against a schema descriptor."""

    def check_schema(self, schema: Any) -> None:
        ...

    def validate(self, value: Any, schema: Any) -> ValidationOutcome:
        ...


def _build_adapter(schema: Any) -> TypeAdapter:
    try:
        return TypeAdapter(schema)
    except (PydanticSchemaGenerationError, PydanticUserError, SchemaError) as e:
        raise LLMError(
            LLMErrorCode.BAD_CONFIGURATION,
            f"Configuration error: cannot validate against {schema!r}, expected a pydantic model or type: {e}",
        ) from e


@lru_cache(maxsize=ADAPTER_CACHE_SIZE)
def _cached_adapter(schema: Any) -> TypeAdapter:
    return _build_adapter(schema)


def adapter_for(schema: Any) -> TypeAdapter:
    """
    ``TypeAdapter`` for ``schema``, cached for hashable schemas.

    Raises ``LLMError`` (``BAD_CONFIGURATION``) when pydantic cannot build a
    validator for it, e.g. for a raw JSON-schema dict.
    """
    try:
        hash(schema)
    except TypeError:
        return _build_adapter(schema)
    return _cached_adapter(schema)


class PydanticSchemaValidator:
    """Validator for any type pydantic's ``TypeAdapter`` accepts (usually a ``BaseModel`` subclass)."""

    def adapter_for(self, schema: Any) -> TypeAdapter:
        return adapter_for(schema)

    def check_schema(self, schema: Any) -> None:
        self.adapter_for(schema)

    def validate(self, value: Any, schema: Any) -> ValidationOutcome:
        try:
            data = self.adapter_for(schema).validate_python(value)
        except ValidationError as e:
            issues = [f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()]
            return ValidationOutcome(success=False, issues=issues)
        return ValidationOutcome(success=True, data=data)


# ---------------------------------------------------------------------------
# Schema metadata
# ---------------------------------------------------------------------------


def _resolve(node: Dict[str, Any], defs: Dict[str, Any]) -> Dict[str, Any]:
    ref = node.get("$ref")
    if isinstance(ref, str) and ref.startswith("#/$defs/"):
        return defs.get(ref.split("/")[-1], {})
    return node


def _variants(node: Dict[str, Any], defs: Dict[str, Any]) -> List[Dict[str, Any]]:
    """The node itself or its ``anyOf``/``oneOf``/``allOf`` members, refs resolved."""
    node = _resolve(node, defs)
    members = node.get("anyOf") or node.get("oneOf") or node.get("allOf")
    if isinstance(members, list):
        return [_resolve(member, defs) for member in members if isinstance(member, dict)]
    return [node]


def _types(node: Dict[str, Any], defs: Dict[str, Any]) -> Set[str]:
    found: Set[str] = set()
    for variant in _variants(node, defs):
        declared = variant.get("type")
        if isinstance(declared, str):
            found.add(declared)
        elif isinstance(declared, list):
            found.update(item for item in declared if isinstance(item, str))
        elif "properties" in variant:
            found.add("object")
    return found


def metadata_from_json_schema(json_schema: Dict[str, Any], max_depth: int = 64) -> SchemaMetadata:
    """Collect property names from every object node of a JSON schema."""
    defs = json_schema.get("$defs", {})
    known: Dict[str, None] = {}
    required: Dict[str, None] = {}
    arrays: Dict[str, None] = {}
    numeric: Dict[str, None] = {}
    visited: Set[int] = set()

    def visit(node: Any, depth: int) -> None:
        if not isinstance(node, dict) or depth > max_depth:
            return
        for variant in _variants(node, defs):
            if id(variant) in visited:
                continue
            visited.add(id(variant))
            for name, prop in (variant.get("properties") or {}).items():
                known[name] = None
                if not isinstance(prop, dict):
                    continue
                types = _types(prop, defs)
                if "array" in types:
                    arrays[name] = None
                if types & {"number", "integer"}:
                    numeric[name] = None
                visit(prop, depth + 1)
            for name in variant.get("required") or []:
                required[name] = None
            if isinstance(variant.get("items"), dict):
                visit(variant["items"], depth + 1)
            if isinstance(variant.get("additionalProperties"), dict):
                visit(variant["additionalProperties"], depth + 1)

    visit(json_schema, 0)
    return SchemaMetadata(
        known_properties=list(known),
        required_properties=list(required),
        array_properties=list(arrays),
        numeric_properties=list(numeric),
    )


def extract_schema_metadata(schema: Any) -> SchemaMetadata:
    """
    Schema hints for ``schema`` (a pydantic model or any ``TypeAdapter``-compatible type).

    Returns empty metadata when no JSON schema can be generated for the type.
    """
    try:
        json_schema = adapter_for(schema).json_schema()
    except (LLMError, PydanticSchemaGenerationError, PydanticUserError) as e:
        logger.warning(f"Could not derive JSON schema for {schema!r}: {e}")
        return SchemaMetadata()
    return metadata_from_json_schema(json_schema)


def sanitizer_config_for(metadata: SchemaMetadata, overrides: Optional[SanitizerConfig] = None) -> SanitizerConfig:
    """Sanitizer hints from schema metadata, with caller overrides taking precedence."""
    base = SanitizerConfig(
        known_properties=metadata.known_properties,
        numeric_properties=metadata.numeric_properties,
        array_property_names=metadata.array_properties,
    )
    return base.merged_with(overrides) if overrides is not None else base
