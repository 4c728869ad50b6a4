"""Structural noise removal: fences, prefixes, surrounding prose, truncation markers."""

import logging
import re
from typing import List, Optional, Tuple

from completion_repair.models.sanitizer import SanitizerConfig
from completion_repair.parsing.rule_executor import execute_rules
from completion_repair.parsing.string_context import find_json_value_end, iter_with_string_state
from completion_repair.parsing.types import DiagnosticCollector, ReplacementRule, SanitizerResult, build_result, coerce_config

logger = logging.getLogger(__name__)

_CODE_FENCE_LINE = re.compile(r"^[ \t]*```[\w+-]*[ \t]*$\n?", re.MULTILINE)
_INLINE_FENCE_START = re.compile(r"^```(?:json|javascript|js)?\s*", re.IGNORECASE)
_INLINE_FENCE_END = re.compile(r"\s*```\s*$")
_THOUGHT_BLOCK = re.compile(r"<(think|thinking|thought|reasoning)>.*?</\1>\s*", re.IGNORECASE | re.DOTALL)
_UNCLOSED_THOUGHT = re.compile(r"^\s*<(?:think|thinking|thought|reasoning)>[^{\[]*", re.IGNORECASE)
_SCHEMA_SHAPE = re.compile(r'^\{\s*"(?:\$schema|type)"\s*:')
_TRAILING_CLOSERS_ONLY = re.compile(r"^[\s}\],]*$")

_TRUNCATION_MARKER = r"(?:\.\.\.|…|\(truncated\)|\[truncated\]|_TRUNCATED_|\.\.\. ?\(?more(?: items)?\)?)"

TRUNCATION_MARKER_RULES: Tuple[ReplacementRule, ...] = (
    ReplacementRule(
        name="truncationMarkerElement",
        # `[1, 2, ...]` -> `[1, 2]`
        pattern=re.compile(r",\s*" + _TRUNCATION_MARKER + r"\s*(?=[\]}])", re.IGNORECASE),
        replacement=lambda match, groups, context: "",
        diagnostic_message="Removed truncation marker element",
    ),
    ReplacementRule(
        name="soleTruncationMarker",
        # `[...]` -> `[]`
        pattern=re.compile(r"(?<=[\[{])\s*" + _TRUNCATION_MARKER + r"\s*(?=[\]}])", re.IGNORECASE),
        replacement=lambda match, groups, context: "",
        diagnostic_message="Removed truncation marker",
    ),
    ReplacementRule(
        name="lineComment",
        # `"a": 1, // more fields follow` -> `"a": 1,`
        pattern=re.compile(r"(?<=[\s,{\[])//[^\n]*"),
        replacement=lambda match, groups, context: "",
        diagnostic_message="Removed line comment",
    ),
    ReplacementRule(
        name="blockComment",
        pattern=re.compile(r"/\*.*?\*/", re.DOTALL),
        replacement=lambda match, groups, context: "",
        diagnostic_message="Removed block comment",
    ),
)


def fix_json_structure_and_noise(content: str, config: Optional[SanitizerConfig] = None) -> SanitizerResult:
    """
    Strip everything around the JSON payload.

    Trims whitespace, removes code fences and reasoning blocks, extracts the
    largest JSON span (ignoring appended schema echoes), collapses a
    duplicated object and removes truncation markers and comments.
    """
    config = coerce_config(config)
    diagnostics = DiagnosticCollector(limit=config.max_diagnostics)
    current = content.strip()
    if current != content:
        diagnostics.add("Trimmed whitespace")

    without_fences = _strip_code_fences(current)
    if without_fences != current:
        diagnostics.add("Removed code fences")
        current = without_fences

    without_thoughts = _UNCLOSED_THOUGHT.sub("", _THOUGHT_BLOCK.sub("", current)).strip()
    if without_thoughts != current:
        diagnostics.add("Removed reasoning block before JSON")
        current = without_thoughts

    extracted, notes = extract_largest_json_span(current)
    if extracted != current:
        diagnostics.extend(notes)
        current = extracted

    markers = execute_rules(current, TRUNCATION_MARKER_RULES, config=config, max_diagnostics=config.max_diagnostics)
    if markers.changed:
        diagnostics.extend(markers.diagnostics)
        current = markers.content

    return build_result(content, current, "Removed structural noise around JSON", diagnostics.items)


def _strip_code_fences(text: str) -> str:
    # Fences on their own lines, then inline fences hugging the payload
    stripped = _CODE_FENCE_LINE.sub("", text)
    stripped = _INLINE_FENCE_START.sub("", stripped)
    stripped = _INLINE_FENCE_END.sub("", stripped)
    return stripped.strip()


def _top_level_spans(text: str) -> List[Tuple[int, int]]:
    """Spans of top-level JSON values; an unterminated one runs to the end."""
    spans: List[Tuple[int, int]] = []
    cursor = 0
    while cursor < len(text):
        start = _next_opener(text, cursor)
        if start < 0:
            break
        end = find_json_value_end(text, start)
        if end < 0:
            spans.append((start, len(text)))
            break
        spans.append((start, end))
        cursor = end
    return spans


def _next_opener(text: str, start: int) -> int:
    for index, char, in_string in iter_with_string_state(text, start):
        if not in_string and char in "{[":
            return index
    return -1


def extract_largest_json_span(text: str) -> Tuple[str, List[str]]:
    """
    Return the largest top-level JSON value in ``text`` plus diagnostics.

    Prose before and after is dropped. Trailing content made only of closing
    delimiters is kept so that later stages can tell runaway closers from a
    complete document.
    """
    spans = _top_level_spans(text)
    if not spans:
        return text, []

    candidates = [span for span in spans if not _SCHEMA_SHAPE.match(text[span[0]:span[1]])] or spans
    start, end = max(candidates, key=lambda span: span[1] - span[0])
    chosen = text[start:end]
    notes: List[str] = []

    if start > 0 and text[:start].strip():
        notes.append(f"Removed text before JSON: {text[:start].strip()[:60]!r}")

    trailing = text[end:]
    if trailing.strip():
        if _TRAILING_CLOSERS_ONLY.match(trailing):
            chosen = chosen + trailing.rstrip()
        else:
            notes.append(f"Removed text after JSON: {trailing.strip()[:60]!r}")

    others = [text[s:e] for s, e in spans if (s, e) != (start, end)]
    if chosen in others:
        notes.append("Collapsed duplicated JSON object")
    if len(candidates) < len(spans):
        notes.append("Removed JSON schema appended to the response")
    return chosen, notes
