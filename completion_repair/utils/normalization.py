"""
Post-parse normalization of LLM output before schema validation.

LLMs often answer with the schema instead of data, emit ``null`` for
optional fields, misspell property names, give a single item where a list
is expected or write ``"~150 items"`` for a number. Each transform here
fixes one of those and reports what it did.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from completion_repair.config import settings
from completion_repair.models.schema import SchemaMetadata
from completion_repair.utils.property_matching import normalize_identifier

logger = logging.getLogger(__name__)

JSON_SCHEMA_TYPES = {"string", "number", "integer", "boolean", "object", "array", "null"}
JSON_SCHEMA_KEYWORDS = {
    "$schema",
    "additionalProperties",
    "required",
    "enum",
    "allOf",
    "anyOf",
    "oneOf",
    "items",
    "minLength",
    "maxLength",
    "minimum",
    "maximum",
    "pattern",
    "format",
    "default",
}

# Typos seen often enough to fix without schema hints
BUILTIN_TYPO_CORRECTIONS = {"type_": "type", "name_": "name"}

_LEADING_NUMBER = re.compile(r"^[~≈]?\s*(-?\d+(?:\.\d+)?)")
_EMBEDDED_NUMBER = re.compile(r"\b(-?\d+(?:\.\d+)?)\b")


@dataclass(frozen=True)
class NormalizerOptions:
    """Switches for the individual transforms."""

    unwrap_schema_envelope: bool = True
    null_to_absent: bool = True
    fix_property_typos: bool = True
    coerce_sequences: bool = True
    coerce_numbers: bool = True
    max_depth: int = field(default_factory=lambda: settings.max_recursion_depth)


def normalize_parsed_value(
    value: Any,
    metadata: Optional[SchemaMetadata] = None,
    options: Optional[NormalizerOptions] = None,
    typo_corrections: Optional[Dict[str, str]] = None,
) -> Tuple[Any, List[str]]:
    """
    Apply the enabled transforms in order and return ``(value, repairs)``.

    Order: envelope unwrap, then null-to-absent, typo fix and sequence
    coercion, then numeric coercion.
    """
    metadata = metadata or SchemaMetadata()
    options = options or NormalizerOptions()
    repairs: List[str] = []

    if options.unwrap_schema_envelope:
        unwrapped = unwrap_schema_envelope(value, options.max_depth, metadata)
        if unwrapped != value:
            repairs.append("Unwrapped JSON Schema envelope around data")
            value = unwrapped

    if options.null_to_absent:
        value = _walk(value, options.max_depth, lambda obj: _drop_optional_nulls(obj, metadata, repairs))

    if options.fix_property_typos:
        corrections = {**BUILTIN_TYPO_CORRECTIONS, **(typo_corrections or {})}
        value = _walk(value, options.max_depth, lambda obj: _fix_typos(obj, metadata, corrections, repairs))

    if options.coerce_sequences and metadata.array_properties:
        value = _walk(value, options.max_depth, lambda obj: _coerce_sequences(obj, metadata, repairs))

    if options.coerce_numbers and metadata.numeric_properties:
        value = _walk(value, options.max_depth, lambda obj: _coerce_numbers(obj, metadata, repairs))

    return value, repairs


def _walk(value: Any, depth: int, transform) -> Any:
    """Apply ``transform`` to every dict, children first; stops at ``depth``."""
    if depth <= 0:
        return value
    if isinstance(value, list):
        return [_walk(item, depth - 1, transform) for item in value]
    if isinstance(value, dict):
        children = {key: _walk(item, depth - 1, transform) for key, item in value.items()}
        return transform(children)
    return value


# ---------------------------------------------------------------------------
# Schema envelope
# ---------------------------------------------------------------------------


def _is_field_definition(obj: Dict[str, Any]) -> bool:
    """``{"type": "string", "description": <value>}`` where the value is really data."""
    if not isinstance(obj.get("type"), str) or obj["type"] not in JSON_SCHEMA_TYPES:
        return False
    if "description" not in obj or "properties" in obj:
        return False
    if any(key in JSON_SCHEMA_KEYWORDS for key in obj):
        return True
    return len(obj) <= 3


def _is_object_envelope(obj: Dict[str, Any]) -> bool:
    props = obj.get("properties")
    if obj.get("type") != "object" or not isinstance(props, dict):
        return False
    if not any(key in JSON_SCHEMA_KEYWORDS for key in obj):
        return False
    for item in props.values():
        if not isinstance(item, dict):
            return True
        if item.get("type") not in JSON_SCHEMA_TYPES or "description" in item or "properties" in item:
            return True
    return False


def _extract_field_values(value: Any, depth: int, leaves: bool) -> Any:
    if depth <= 0:
        return value
    if isinstance(value, list):
        return [_extract_field_values(item, depth - 1, leaves) for item in value]
    if isinstance(value, dict):
        if leaves and _is_field_definition(value):
            return _extract_field_values(value["description"], depth - 1, leaves)
        if _is_object_envelope(value):
            return _extract_field_values(value["properties"], depth - 1, leaves)
        return {key: _extract_field_values(item, depth - 1, leaves) for key, item in value.items()}
    return value


def unwrap_schema_envelope(value: Any, max_depth: int = 64, metadata: Optional[SchemaMetadata] = None) -> Any:
    """
    Pull data out of a response shaped like the JSON Schema it was asked to follow.

    Leaf definitions (`{"type": ..., "description": v}`) are left alone when
    the schema itself has `type` and `description` properties, since those
    objects are then real data.
    """
    known = set(metadata.known_properties) if metadata else set()
    leaves = not {"type", "description"} <= known
    if isinstance(value, dict) and value.get("type") == "object" and isinstance(value.get("properties"), dict):
        if value["properties"]:
            value = value["properties"]
    return _extract_field_values(value, max_depth, leaves)


# ---------------------------------------------------------------------------
# Object-level transforms
# ---------------------------------------------------------------------------


def _drop_optional_nulls(obj: Dict[str, Any], metadata: SchemaMetadata, repairs: List[str]) -> Dict[str, Any]:
    required = set(metadata.required_properties)
    result = {}
    for key, item in obj.items():
        if item is None and key not in required:
            repairs.append(f"Removed null optional property '{key}'")
            continue
        result[key] = item
    return result


def _fix_typos(
    obj: Dict[str, Any], metadata: SchemaMetadata, corrections: Dict[str, str], repairs: List[str]
) -> Dict[str, Any]:
    known = metadata.known_properties
    by_lower = {}
    by_identifier = {}
    for name in known:
        by_lower.setdefault(name.lower(), []).append(name)
        by_identifier.setdefault(normalize_identifier(name), []).append(name)

    result: Dict[str, Any] = {}
    for key, item in obj.items():
        target = corrections.get(key)
        if target is None and known and key not in known:
            stripped = key.rstrip("_")
            if stripped in known:
                target = stripped
            elif len(by_lower.get(key.lower(), [])) == 1:
                target = by_lower[key.lower()][0]
            elif len(by_identifier.get(normalize_identifier(key), [])) == 1:
                target = by_identifier[normalize_identifier(key)][0]
        if target and target != key and target not in obj and target not in result:
            repairs.append(f"Renamed property '{key}' to '{target}'")
            result[target] = item
        else:
            result[key] = item
    return result


def _coerce_sequences(obj: Dict[str, Any], metadata: SchemaMetadata, repairs: List[str]) -> Dict[str, Any]:
    arrays = set(metadata.array_properties)
    result = dict(obj)
    for key, item in obj.items():
        if key not in arrays or isinstance(item, list):
            continue
        if item is None or (isinstance(item, str) and not item.strip()):
            result[key] = []
        else:
            result[key] = [item]
        repairs.append(f"Coerced property '{key}' to a list")
    return result


def extract_number(text: str) -> Optional[float]:
    """Best-effort number from strings like ``"150"``, ``"~150 items"`` or ``"approximately 150"``."""
    trimmed = text.strip()
    try:
        return float(trimmed)
    except ValueError:
        pass
    match = _LEADING_NUMBER.match(trimmed) or _EMBEDDED_NUMBER.search(trimmed)
    return float(match.group(1)) if match else None


def _coerce_numbers(obj: Dict[str, Any], metadata: SchemaMetadata, repairs: List[str]) -> Dict[str, Any]:
    numeric = {name.lower() for name in metadata.numeric_properties}
    result = dict(obj)
    for key, item in obj.items():
        if key.lower() not in numeric or not isinstance(item, str) or not item.strip():
            continue
        number = extract_number(item)
        if number is None or number != number or number in (float("inf"), float("-inf")):
            continue
        result[key] = int(number) if number.is_integer() else number
        repairs.append(f"Coerced property '{key}' from {item!r} to {result[key]}")
    return result
