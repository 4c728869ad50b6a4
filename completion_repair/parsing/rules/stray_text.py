"""Rules that excise natural-language commentary leaking outside string literals."""

import json
import re
from typing import Optional, Tuple

from completion_repair.parsing.types import ReplacementRule, RuleContext

_KEY_AHEAD = r'\s*"[A-Za-z_$][\w$]*"\s*:'

_FUNCTION_WORDS = re.compile(
    r"\b(?:the|this|that|these|those|is|are|was|were|be|will|would|should|could|can|to|of|for|and|"
    r"but|so|with|which|it|its|i|we|me|my|our|here|there|now|note|next|also|then|as|in|on)\b",
    re.IGNORECASE,
)
_FIRST_PERSON_CONTINUATION = re.compile(
    r"^(?:let me|let's|next,? i(?:'ll| will)|i will|i'll|now,? i|continuing|to be continued|"
    r"i need to|i should|moving on)\b",
    re.IGNORECASE,
)
_LIST_MARKER = re.compile(r"^(?:[-*•→]|\d+[.)])\s")
_FILENAME_TOKEN = re.compile(
    r"^[\w./\\-]+\.(?:java|py|ts|tsx|js|jsx|json|md|txt|xml|ya?ml|cs|go|rb|kt|sql|html|css)$",
    re.IGNORECASE,
)
_WORDY = re.compile(r"^[A-Za-z][A-Za-z0-9 ,.'!?;()/\\_-]*$")


def looks_like_commentary(text: str) -> bool:
    """
    Lexical signals that a fragment outside any string is prose, not data.

    True for first-person continuations, list-marker lines, filename-like
    tokens, sentences ending in a period and word runs containing a function word.
    """
    stripped = text.strip()
    if not stripped:
        return False
    if _FIRST_PERSON_CONTINUATION.search(stripped) or _FILENAME_TOKEN.match(stripped) or _LIST_MARKER.match(stripped):
        return True
    if stripped.lower() in ("true", "false", "null"):
        return False
    if not _WORDY.match(stripped):
        return False
    return stripped.endswith(".") or bool(_FUNCTION_WORDS.search(stripped))


def _drop_commentary_after_comma(match: str, groups: Tuple[Optional[str], ...], context: RuleContext) -> Optional[str]:
    comma, stray, following = groups[0] or "", groups[1] or "", groups[2] or ""
    if not looks_like_commentary(stray):
        return None
    return comma + following


def _drop_commentary_between_values(match: str, groups: Tuple[Optional[str], ...], context: RuleContext) -> Optional[str]:
    stray, following = groups[0] or "", groups[1] or ""
    if not looks_like_commentary(stray):
        return None
    return "," + following


def _describe_stray(match: str, groups: Tuple[Optional[str], ...]) -> str:
    text = next((group for group in groups if group and group.strip() and not group.strip().startswith(('"', ","))), "")
    return f"Removed stray text outside string: {text.strip()[:60]!r}"


def _triple_quoted_to_json(match: str, groups: Tuple[Optional[str], ...], context: RuleContext) -> Optional[str]:
    return f"{groups[0]}{json.dumps(groups[1] or '')}"


STRAY_TEXT_RULES: Tuple[ReplacementRule, ...] = (
    ReplacementRule(
        name="firstPersonContinuationLine",
        # `},\nLet me continue with the next method...\n  {` -> `},\n  {`
        pattern=re.compile(
            r"(?P<newline>\n)[ \t]*(?P<text>(?:let me|let's|next,? i(?:'ll| will)|i will|i'll|now,? i|continuing|"
            r"to be continued)[^\n\"{}\[\]]*)(?=\n)",
            re.IGNORECASE,
        ),
        replacement=lambda match, groups, context: groups[0],
        diagnostic_message=lambda match, groups: f"Removed continuation commentary {groups[1].strip()[:60]!r}",
    ),
    ReplacementRule(
        name="commentaryAfterComma",
        # `"a": 1, This is the second field\n "b": 2` -> `"a": 1, "b": 2`
        pattern=re.compile(
            r"(?P<comma>,)(?P<stray>[ \t]*\n?[ \t]*[^\"{}\[\],:\s][^\"{}\[\]:\n]{0,200}?[ \t]*\n?)(?P<next>" + _KEY_AHEAD + r")"
        ),
        replacement=_drop_commentary_after_comma,
        diagnostic_message=_describe_stray,
    ),
    ReplacementRule(
        name="commentaryBetweenValues",
        # `"a": "x"\n  this is stray\n  "b": 2` -> `"a": "x",\n  "b": 2`
        pattern=re.compile(
            r"(?<=[\"\]}\d])(?P<stray>[ \t]*\n[ \t]*[A-Za-z][^\"{}\[\]:\n]{0,200}?)(?P<next>\n" + _KEY_AHEAD + r")"
        ),
        replacement=_drop_commentary_between_values,
        diagnostic_message=_describe_stray,
    ),
    ReplacementRule(
        name="listMarkerBeforeProperty",
        pattern=re.compile(r"(?P<lead>[{,]\s*)(?P<marker>(?:[-*•→]|\d+[.)])[ \t]+)(?P<key>" + _KEY_AHEAD + r")"),
        replacement=lambda match, groups, context: f"{groups[0]}{groups[2]}",
        diagnostic_message=lambda match, groups: f"Removed list marker {groups[1].strip()!r} before property",
    ),
    ReplacementRule(
        name="strayWordBeforeProperty",
        pattern=re.compile(
            r"(?P<lead>[{,]\s*)(?P<word>(?:so|and|but|also|then|or|plus)[ \t]+)(?P<key>" + _KEY_AHEAD + r")",
            re.IGNORECASE,
        ),
        replacement=lambda match, groups, context: f"{groups[0]}{groups[2]}",
        diagnostic_message=lambda match, groups: f"Removed stray word {groups[1].strip()!r} before property",
    ),
    ReplacementRule(
        name="placeholderMarkerInArray",
        # `["a", _MORE_ITEMS_]` -> `["a"]`
        pattern=re.compile(r"(?P<lead>,\s*)_[A-Z][A-Z0-9_]*_(?=\s*[\]},])|(?<=[\[{])\s*_[A-Z][A-Z0-9_]*_\s*,?"),
        replacement=lambda match, groups, context: "",
        diagnostic_message=lambda match, groups: f"Removed placeholder marker {match.strip(' ,')!r}",
    ),
    ReplacementRule(
        name="pythonTripleQuotedValue",
        pattern=re.compile(r'(?P<colon>:\s*)"""(?P<body>.*?)"""', re.DOTALL),
        replacement=_triple_quoted_to_json,
        diagnostic_message="Converted Python triple-quoted string to a JSON string",
    ),
)
