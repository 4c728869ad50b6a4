"""Rules for malformed, truncated or typo'd property names."""

import re
from typing import Dict, Optional, Sequence, Tuple

from completion_repair.parsing.string_context import is_in_array_context
from completion_repair.parsing.types import ReplacementRule, RuleContext, coerce_config
from completion_repair.utils.property_matching import match_property_name

# Fragments LLMs leave behind when a property name is cut short. Consulted only
# when the schema gives no better candidate.
KNOWN_TRUNCATIONS: Dict[str, str] = {
    "se": "purpose",
    "pur": "purpose",
    "purpo": "purpose",
    "na": "name",
    "nam": "name",
    "de": "description",
    "des": "description",
    "desc": "description",
    "pa": "parameters",
    "par": "parameters",
    "param": "parameters",
    "re": "returnType",
    "ret": "returnType",
    "ty": "type",
    "typ": "type",
    "va": "value",
    "val": "value",
    "refer": "references",
    "refere": "references",
    "eferences": "references",
}

# A truncated name is only trusted when a long string value follows it
MIN_DESCRIPTIVE_VALUE_LENGTH = 20

_IDENT = r"[A-Za-z_$][\w$]*"


def _not_in_array(context: RuleContext) -> bool:
    config = coerce_config(context.config)
    return not is_in_array_context(
        context.offset, context.full_content, config.string_context_lookback, context.is_in_string
    )


def _following_string_length(context: RuleContext, match: str) -> int:
    """Length of the string value starting right after the match (bounded by the context window)."""
    config = coerce_config(context.config)
    start = context.offset + len(match)
    window = context.full_content[start : start + config.property_context_window]
    if not window.startswith('"'):
        return 0
    closing = window.find('"', 1)
    return (closing if closing > 0 else len(window)) - 1


def infer_property_name(fragment: str, known_properties: Sequence[str], mappings: Dict[str, str]) -> Optional[str]:
    """
    Guess the full property name for a truncated ``fragment``.

    Explicit mappings win, then the closest of ``known_properties`` (see
    ``match_property_name``), then the built-in truncation table.
    """
    if fragment in mappings:
        return mappings[fragment]

    if known_properties:
        matched = match_property_name(fragment, [name for name in known_properties if name != fragment])
        if matched:
            return matched
        mapped = KNOWN_TRUNCATIONS.get(fragment)
        return mapped if mapped in known_properties else None

    return KNOWN_TRUNCATIONS.get(fragment)


# ---------------------------------------------------------------------------
# Replacement callbacks
# ---------------------------------------------------------------------------


def _quote_name(match: str, groups: Tuple[Optional[str], ...], context: RuleContext) -> Optional[str]:
    lead, name, colon = groups[0] or "", groups[1] or "", groups[2] or ""
    if name in ("true", "false", "null"):
        return None
    return f'{lead}"{name}"{colon}'


def _fix_truncated_name(match: str, groups: Tuple[Optional[str], ...], context: RuleContext) -> Optional[str]:
    lead, opening_quote, fragment, colon = (group or "" for group in groups[:4])
    config = coerce_config(context.config)
    if fragment in config.known_properties:
        return None if opening_quote or not _not_in_array(context) else f'{lead}"{fragment}"{colon}'

    # A fully quoted name is only second-guessed against a schema
    trusted = not opening_quote or bool(config.known_properties)
    if trusted and _following_string_length(context, match) >= MIN_DESCRIPTIVE_VALUE_LENGTH:
        inferred = infer_property_name(fragment, config.known_properties, config.property_name_mappings)
        if inferred and _not_in_array(context):
            return f'{lead}"{inferred}"{colon}'

    # Generic fallback: re-quote and let the schema validator judge the name
    return None if opening_quote or not _not_in_array(context) else f'{lead}"{fragment}"{colon}'


def _strip_trailing_underscores(match: str, groups: Tuple[Optional[str], ...], context: RuleContext) -> Optional[str]:
    name, colon = groups[0] or "", groups[1] or ""
    config = coerce_config(context.config)
    stripped = name.rstrip("_")
    known = config.known_properties
    if not known or stripped not in known or name in known:
        return None
    return f'"{stripped}"{colon}'


def _drop_name_junk(match: str, groups: Tuple[Optional[str], ...], context: RuleContext) -> Optional[str]:
    lead, name, colon = groups[0] or "", groups[1] or "", groups[3] or ""
    return f'{lead}"{name}"{colon}'


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------

PROPERTY_NAME_RULES: Tuple[ReplacementRule, ...] = (
    ReplacementRule(
        name="duplicatePropertyName",
        pattern=re.compile(r'(?P<key>"' + _IDENT + r'")\s*:\s*(?P=key)\s*:'),
        replacement=lambda match, groups, context: f"{groups[0]}:",
        diagnostic_message=lambda match, groups: f"Collapsed duplicated property name {groups[0]}",
    ),
    ReplacementRule(
        name="corruptedPropertyNameWithExtraText",
        # `"name"junk": ` -> `"name": `
        pattern=re.compile(r'(?P<lead>[{,]\s*)"(?P<name>' + _IDENT + r')"(?P<junk>[A-Za-z_$][\w$]{0,30})"(?P<colon>\s*:)'),
        replacement=_drop_name_junk,
        diagnostic_message=lambda match, groups: f"Removed text glued to property name '{groups[1]}'",
    ),
    ReplacementRule(
        name="truncatedPropertyName",
        pattern=re.compile(r'(?P<lead>[{,]\s*)(?P<quote>"?)(?P<fragment>[A-Za-z_]{1,30})"(?P<colon>\s*:\s*)'),
        replacement=_fix_truncated_name,
        diagnostic_message=lambda match, groups: f"Fixed truncated property name '{groups[2]}'",
    ),
    ReplacementRule(
        name="singleQuotedPropertyName",
        pattern=re.compile(r"(?P<lead>[{,]\s*)'(?P<name>[^'\"\n]{1,80})'(?P<colon>\s*:)"),
        replacement=_quote_name,
        diagnostic_message=lambda match, groups: f"Converted single-quoted property name '{groups[1]}'",
    ),
    ReplacementRule(
        name="unquotedPropertyName",
        pattern=re.compile(r"(?P<lead>[{,]\s*)(?P<name>" + _IDENT + r")(?P<colon>\s*:)"),
        replacement=_quote_name,
        diagnostic_message=lambda match, groups: f"Quoted unquoted property name '{groups[1]}'",
    ),
    ReplacementRule(
        name="missingClosingQuoteInPropertyName",
        # `"name: "value"` -> `"name": "value"`
        pattern=re.compile(r'(?P<lead>[{,]\s*)"(?P<name>' + _IDENT + r')(?P<colon>:\s*)(?="[^:,}\]])'),
        replacement=_quote_name,
        diagnostic_message=lambda match, groups: f"Closed property name '{groups[1]}'",
        context_check=_not_in_array,
    ),
    ReplacementRule(
        name="missingColonAfterPropertyName",
        # `{"name" "value"` -> `{"name": "value"`
        pattern=re.compile(r'(?P<key>(?<=[{,])\s*"' + _IDENT + r'")(?P<space>\s+)(?=["\[{])'),
        replacement=lambda match, groups, context: f"{groups[0]}: ",
        diagnostic_message=lambda match, groups: f"Inserted missing colon after {groups[0].strip()}",
        context_check=_not_in_array,
    ),
    ReplacementRule(
        name="trailingUnderscoreInPropertyName",
        pattern=re.compile(r'"(?P<name>[A-Za-z][\w$]*?_+)"(?P<colon>\s*:)'),
        replacement=_strip_trailing_underscores,
        diagnostic_message=lambda match, groups: f"Removed trailing underscore from property '{groups[0]}'",
    ),
)
