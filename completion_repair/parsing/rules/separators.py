"""Rules for malformed separators and corrupted array entries."""

import re
from typing import Optional, Tuple

from completion_repair.parsing.string_context import is_in_array_context
from completion_repair.parsing.types import ReplacementRule, RuleContext, coerce_config

_LITERALS = ("true", "false", "null")

# Prefixes LLMs glue onto array entries when generation glitches
CORRUPTION_MARKERS = ("stop", "cut", "ref", "ex", "-", "*", "•", "→")
_MARKER_ALTERNATION = "|".join(re.escape(marker) for marker in CORRUPTION_MARKERS)


def _in_array(context: RuleContext, lead: str) -> bool:
    """Array check just past ``lead`` so an opening `[` in the match itself counts."""
    config = coerce_config(context.config)
    position = context.offset + len(lead)
    return is_in_array_context(position, context.full_content, config.string_context_lookback, context.is_in_string)


def _quote_bare_value(match: str, groups: Tuple[Optional[str], ...], context: RuleContext) -> Optional[str]:
    lead, word, tail = groups[0] or "", groups[1] or "", groups[2] or ""
    if word.strip() in _LITERALS:
        return None
    return f'{lead}"{word}"{tail}'


def _quote_bare_array_element(match: str, groups: Tuple[Optional[str], ...], context: RuleContext) -> Optional[str]:
    if not _in_array(context, groups[0] or ""):
        return None
    return _quote_bare_value(match, groups, context)


def _drop_entry_prefix(match: str, groups: Tuple[Optional[str], ...], context: RuleContext) -> Optional[str]:
    lead, prefix, item = groups[0] or "", groups[1] or "", groups[2] or ""
    if prefix.strip() in _LITERALS or not _in_array(context, lead):
        return None
    return f"{lead}{item}"


def _insert_object_brace(match: str, groups: Tuple[Optional[str], ...], context: RuleContext) -> Optional[str]:
    lead, key = groups[0] or "", groups[2] or ""
    if not _in_array(context, lead):
        return None
    return f"{lead}{{{key}"


SEPARATOR_RULES: Tuple[ReplacementRule, ...] = (
    ReplacementRule(
        name="missingQuoteAfterColon",
        # `"name": value", ` -> `"name": "value", `
        pattern=re.compile(r'(?P<key>"[A-Za-z_$][\w$]*"\s*:\s*)(?P<word>[A-Za-z][^"\n,{}\[\]:]{0,200}?)"(?P<tail>\s*[,}\]])'),
        replacement=_quote_bare_value,
        diagnostic_message=lambda match, groups: f"Added missing opening quote to value {groups[1][:40]!r}",
    ),
    ReplacementRule(
        name="missingOpeningQuoteInArrayString",
        # `["a", b", "c"]` -> `["a", "b", "c"]`
        pattern=re.compile(r'(?P<lead>[\[,]\s*)(?P<word>[A-Za-z_][^"\n,{}\[\]:]{0,200}?)"(?P<tail>\s*[,\]])'),
        replacement=_quote_bare_array_element,
        diagnostic_message=lambda match, groups: f"Added missing opening quote to array element {groups[1][:40]!r}",
    ),
    ReplacementRule(
        name="corruptedArrayEntryPrefix",
        # `["a", stop"b"]` or `["a", e"b"]` -> `["a", "b"]`
        pattern=re.compile(
            r'(?P<lead>[\[,]\s*)(?P<prefix>(?:' + _MARKER_ALTERNATION + r')\s*|[A-Za-z]{1,3})(?P<item>"[^"\n]*"\s*(?=[,\]]))'
        ),
        replacement=_drop_entry_prefix,
        diagnostic_message=lambda match, groups: f"Removed corrupted prefix {groups[1].strip()!r} from array entry",
    ),
    ReplacementRule(
        name="missingBraceBeforeArrayObject",
        # `[{...}, se"name": "x"}` -> `[{...}, {"name": "x"}`
        pattern=re.compile(r'(?P<lead>(?:\[|\},)\s*)(?P<stray>[A-Za-z]{1,3})?(?P<key>"[A-Za-z_$][\w$]*"\s*:)'),
        replacement=_insert_object_brace,
        diagnostic_message="Inserted missing '{' before object in array",
    ),
    ReplacementRule(
        name="invalidAssignmentInArray",
        # `,\n  _ITEM_ = "x"\n` -> `\n`
        pattern=re.compile(r',\s*\n\s*_[A-Z][A-Z0-9_]*\s*=\s*"[^"\n]*"\s*,?\s*(?=\n)'),
        replacement=lambda match, groups, context: "",
        diagnostic_message="Removed invalid assignment inside array",
    ),
)
