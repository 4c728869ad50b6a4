"""Syntax repair: literals, commas, delimiters and truncated endings."""

import logging
import re
from typing import List, Optional, Tuple

from completion_repair.models.sanitizer import SanitizerConfig
from completion_repair.parsing.rule_executor import execute_rules
from completion_repair.parsing.string_context import compute_closers, is_in_array_context, iter_with_string_state
from completion_repair.parsing.types import (
    DiagnosticCollector,
    ReplacementRule,
    SanitizerResult,
    build_result,
    coerce_config,
)

logger = logging.getLogger(__name__)

_PAIRS = {"{": "}", "[": "]"}
_LITERAL_MAP = {"True": "true", "False": "false", "None": "null", "undefined": "null", "NaN": "null"}
_PARTIAL_LITERALS = {"t": "true", "tr": "true", "tru": "true", "f": "false", "fa": "false", "fal": "false",
                     "fals": "false", "n": "null", "nu": "null", "nul": "null"}
_STRING = r'"(?:[^"\\\n]|\\.)*"'

SYNTAX_RULES: Tuple[ReplacementRule, ...] = (
    ReplacementRule(
        name="pythonLiteral",
        pattern=re.compile(r"(?<![\w$\"])(?P<literal>True|False|None|undefined|NaN)(?![\w$\"])"),
        replacement=lambda match, groups, context: _LITERAL_MAP[groups[0]],
        diagnostic_message=lambda match, groups: f"Converted {groups[0]} to {_LITERAL_MAP[groups[0]]}",
    ),
    ReplacementRule(
        name="stringConcatenation",
        # `"abc" + "def"` -> `"abcdef"`
        pattern=re.compile(r'"(?P<left>(?:[^"\\\n]|\\.)*)"\s*\+\s*"(?P<right>(?:[^"\\\n]|\\.)*)"'),
        replacement=lambda match, groups, context: f'"{groups[0]}{groups[1]}"',
        diagnostic_message="Merged concatenated string literals",
    ),
    ReplacementRule(
        name="danglingPropertyValue",
        # `"a": ,` -> `"a": null,`
        pattern=re.compile(r'(?P<key>' + _STRING + r'\s*:)\s*(?=[,}])'),
        replacement=lambda match, groups, context: f"{groups[0]} null",
        diagnostic_message=lambda match, groups: f"Filled missing value for {groups[0].rstrip(': ')}",
    ),
    ReplacementRule(
        name="missingCommaAfterString",
        # `"a": "x"\n  "b": 1` -> `"a": "x",\n  "b": 1`
        pattern=re.compile(r'(?<=")(?P<space>[ \t]*\n\s*)(?P<next>["\[{])'),
        replacement=lambda match, groups, context: f",{groups[0]}{groups[1]}",
        diagnostic_message="Inserted missing comma between values",
    ),
    ReplacementRule(
        name="missingCommaAfterValue",
        pattern=re.compile(r'(?P<end>[}\]\d]|\btrue|\bfalse|\bnull)(?P<space>[ \t]*\n\s*)(?P<next>["\[{])'),
        replacement=lambda match, groups, context: f"{groups[0]},{groups[1]}{groups[2]}",
        diagnostic_message="Inserted missing comma between values",
    ),
    ReplacementRule(
        name="missingCommaBetweenContainers",
        # `}{` -> `},{`
        pattern=re.compile(r"(?P<end>[}\]])(?P<space>[ \t]*)(?P<next>[{\[])"),
        replacement=lambda match, groups, context: f"{groups[0]},{groups[1]}{groups[2]}",
        diagnostic_message="Inserted missing comma between adjacent containers",
    ),
    ReplacementRule(
        name="trailingComma",
        pattern=re.compile(r",(?P<space>\s*)(?=[}\]])"),
        replacement=lambda match, groups, context: groups[0] or "",
        diagnostic_message="Removed trailing comma",
    ),
    ReplacementRule(
        name="leadingComma",
        pattern=re.compile(r"(?<=[\[{])(?P<space>\s*),"),
        replacement=lambda match, groups, context: groups[0] or "",
        diagnostic_message="Removed leading comma",
    ),
    ReplacementRule(
        name="doubleComma",
        pattern=re.compile(r",(?P<space>\s*),"),
        replacement=lambda match, groups, context: f",{groups[0]}",
        diagnostic_message="Removed duplicate comma",
    ),
)


def fix_syntax(content: str, config: Optional[SanitizerConfig] = None) -> SanitizerResult:
    """
    Final structural pass.

    Converts Python/JS literals, merges string concatenation, inserts missing
    commas, drops trailing commas, reconciles mismatched closers and completes
    a truncated document.
    """
    config = coerce_config(config)
    diagnostics = DiagnosticCollector(limit=config.max_diagnostics)

    rules = execute_rules(
        content,
        SYNTAX_RULES,
        config=config,
        max_diagnostics=config.max_diagnostics,
        multi_pass=True,
        max_passes=config.max_structure_passes,
    )
    current = rules.content
    diagnostics.extend(rules.diagnostics)

    balanced, notes = fix_mismatched_delimiters(current, config.max_recursion_depth)
    diagnostics.extend(notes)
    current = balanced

    completed, notes = complete_truncated_structure(current, config)
    diagnostics.extend(notes)
    current = completed

    return build_result(content, current, "Fixed JSON syntax", diagnostics.items)


def fix_mismatched_delimiters(content: str, max_depth: int = 64) -> Tuple[str, List[str]]:
    """
    Make closers agree with the open-delimiter stack.

    A closer whose opener is buried under other open delimiters gets the
    missing closers inserted before it; a closer with no opener at all is
    dropped. Nesting beyond ``max_depth`` leaves the text untouched.
    """
    stack: List[str] = []
    pieces: List[str] = []
    notes: List[str] = []
    dropped = 0
    for _, char, in_string in iter_with_string_state(content):
        if in_string or char not in "{}[]":
            pieces.append(char)
            continue
        if char in _PAIRS:
            stack.append(char)
            if len(stack) > max_depth:
                return content, []
            pieces.append(char)
            continue
        opener = "{" if char == "}" else "["
        if stack and stack[-1] == opener:
            stack.pop()
            pieces.append(char)
        elif opener in stack:
            while stack[-1] != opener:
                missing = _PAIRS[stack.pop()]
                pieces.append(missing)
                notes.append(f"Inserted missing '{missing}' before '{char}'")
            stack.pop()
            pieces.append(char)
        else:
            dropped += 1

    if dropped:
        notes.append(f"Removed {dropped} unmatched closing delimiter(s)")
    if not notes:
        return content, []
    return "".join(pieces).rstrip(), notes


def complete_truncated_structure(content: str, config: Optional[SanitizerConfig] = None) -> Tuple[str, List[str]]:
    """
    Close a document that stops mid-way.

    Dangling commas, colons and half-written keys or literals at the end are
    resolved first; at most ``truncation_safety_buffer`` characters are ever
    discarded. Then any open string is closed and open containers are closed
    innermost first.
    """
    config = coerce_config(config)
    closers = compute_closers(content)
    if not closers:
        return content, []

    notes: List[str] = []
    max_discard = config.truncation_safety_buffer
    text = content.rstrip()

    if closers.startswith('"'):
        opening = _open_string_start(text)
        before = text[:opening].rstrip()
        is_key = before.endswith(("{", ",")) and not is_in_array_context(opening, text, config.string_context_lookback)
        if is_key and len(text) - len(before) <= max_discard:
            notes.append(f"Dropped incomplete property name {text[opening:][:40]!r}")
            text = before
        else:
            text += '"'
            notes.append("Closed unterminated string")

    for _ in range(4):
        trimmed = _trim_dangling_tail(text, config, max_discard)
        if trimmed is None:
            break
        text, note = trimmed
        notes.append(note)

    remaining = compute_closers(text)
    if remaining:
        text += remaining
        notes.append(f"Closed truncated structure with {remaining!r}")
    return text, notes


def _open_string_start(text: str) -> int:
    opening = -1
    for index, char, in_string in iter_with_string_state(text):
        if char == '"' and not in_string:
            opening = index
    return opening


_DANGLING_KEY = re.compile(r'(?P<lead>[{,])\s*' + _STRING + r'\s*$')
_PARTIAL_LITERAL = re.compile(r":\s*(?P<partial>t|tr|tru|f|fa|fal|fals|n|nu|nul)$")
_PARTIAL_NUMBER = re.compile(r"(?<=[\d])[.eE+-]+$|(?<=[:\[,\s])-$")


def _trim_dangling_tail(text: str, config: SanitizerConfig, max_discard: int) -> Optional[Tuple[str, str]]:
    stripped = text.rstrip()
    if stripped.endswith(","):
        return stripped[:-1].rstrip(), "Removed dangling comma at end of input"
    if stripped.endswith(":"):
        return stripped + " null", "Filled missing value at end of input with null"

    literal = _PARTIAL_LITERAL.search(stripped)
    if literal:
        partial = literal.group("partial")
        return stripped[: -len(partial)] + _PARTIAL_LITERALS[partial], f"Completed truncated literal {partial!r}"

    number = _PARTIAL_NUMBER.search(stripped)
    if number:
        return stripped[: number.start()], "Removed incomplete number at end of input"

    key = _DANGLING_KEY.search(stripped)
    if key and len(stripped) - key.start() <= max_discard:
        if not is_in_array_context(key.start() + 1, stripped, config.string_context_lookback):
            keep = key.start() + (1 if key.group("lead") == "{" else 0)
            return stripped[:keep].rstrip(), "Dropped property name without value at end of input"
    return None
