"""Rules for corruption *inside* string values.

These are the only rules allowed to touch string-literal content. Instead of
the string-context gate they are gated on a corruption-confidence heuristic
(repetition count, embedded-property signatures) and return ``None`` below it.
"""

import re
from typing import Iterator, Optional, Tuple

from completion_repair.parsing.string_context import compute_closers, is_in_string_at
from completion_repair.parsing.types import ReplacementRule, RuleContext, coerce_config

MAX_REPEATED_TOKEN_LENGTH = 20
ELLIPSIS = "..."

_PROPERTY_VALUE_START = r'"[A-Za-z_$][\w$]*"\s*:\s*"'


# ---------------------------------------------------------------------------
# Runaway repetition at the end of a completion
# ---------------------------------------------------------------------------

_TRAILING_RUN = re.compile(
    r'(?P<quote>"?)(?P<gap>\s*)(?P<token>[^"\\\s]{1,%d})(?P<run>(?:\s+(?P=token))+)\s*\Z'
    % MAX_REPEATED_TOKEN_LENGTH
)


class TrailingRunFinder:
    """Locates a whitespace-separated run of one token at the very end of a buffer.

    A backwards scan finds where the run starts, so the anchored regex is only
    tried once instead of at every offset; this keeps decoding-loop outputs of
    10^5 characters linear.
    """

    def finditer(self, string: str) -> Iterator[re.Match]:
        start = _trailing_run_start(string)
        if start < 0:
            return iter(())
        match = _TRAILING_RUN.match(string, start)
        return iter((match,) if match else ())


def _trailing_run_start(text: str) -> int:
    end = len(text.rstrip())
    begin = end
    while begin > 0 and not text[begin - 1].isspace():
        begin -= 1
    token = text[begin:end]
    if not token or len(token) > MAX_REPEATED_TOKEN_LENGTH or '"' in token or "\\" in token:
        return -1

    run_start = begin
    repetitions = 1
    while True:
        cursor = run_start
        while cursor > 0 and text[cursor - 1].isspace():
            cursor -= 1
        candidate = cursor - len(token)
        if cursor == run_start or candidate < 0 or text[candidate:cursor] != token:
            break
        boundary = text[candidate - 1] if candidate > 0 else " "
        if not (boundary.isspace() or boundary == '"'):
            break
        run_start = candidate
        repetitions += 1
        if boundary == '"':
            break
    if repetitions < 2:
        return -1

    # A quote right before the run may be a string closed too early
    cursor = run_start
    while cursor > 0 and text[cursor - 1].isspace():
        cursor -= 1
    if cursor > 0 and text[cursor - 1] == '"':
        return cursor - 1
    return run_start


def _truncate_runaway_repetition(match: str, groups: Tuple[Optional[str], ...], context: RuleContext) -> Optional[str]:
    config = coerce_config(context.config)
    quote, gap, token = groups[0] or "", groups[1] or "", groups[2] or ""
    repetitions = len(match.split()) if not quote else len(match[1:].split())
    if repetitions < config.min_repetitions_to_truncate:
        return None

    content = context.full_content
    if not quote:
        if not context.is_in_string(context.offset):
            return None
        lead = ""
    elif not context.is_in_string(context.offset):
        # The quote opens the string holding the run
        lead = quote + gap
    else:
        # The quote closed the value too early; only reopen it when the run is
        # not just the closers of a deeply nested document
        if not _is_property_value(content, context.offset):
            return None
        depth = len(compute_closers(content[: context.offset + 1]))
        if token.strip("}]") == "" and repetitions - depth < config.min_repetitions_to_truncate:
            return None
        lead = gap

    kept = " ".join([token] * config.max_repetitions_to_keep)
    repaired = lead + kept + ELLIPSIS + '"'
    prefix = content[: context.offset]
    return repaired + compute_closers(prefix + repaired)


def _is_property_value(content: str, closing_quote: int) -> bool:
    """True when the string closed at ``closing_quote`` is the value of a property."""
    opening = content.rfind('"', 0, closing_quote)
    while opening > 0 and content[opening - 1] == "\\":
        opening = content.rfind('"', 0, opening - 1)
    if opening < 0 or is_in_string_at(opening, content):
        return False
    return content[:opening].rstrip().endswith(":")


def _describe_runaway(match: str, groups: Tuple[Optional[str], ...]) -> str:
    token = groups[2] or ""
    count = len(match.lstrip('"').split())
    return f"Truncated runaway repetition of '{token}' ({count} times) in string value"


# ---------------------------------------------------------------------------
# Runaway newlines inside an unterminated string
# ---------------------------------------------------------------------------

_REPETITIVE_NEWLINES = re.compile(
    r'(?P<head>' + _PROPERTY_VALUE_START + r'[^"\n]{0,2000}?)(?P<run>(?:\\n\s*){4,}|(?:\n[ \t\r]*){4,})(?P<rest>[^"]*)\Z'
)


def _count_newlines(section: str) -> int:
    return section.count("\\n") + section.count("\n")


def _truncate_repetitive_newlines(match: str, groups: Tuple[Optional[str], ...], context: RuleContext) -> Optional[str]:
    config = coerce_config(context.config)
    head, run, rest = groups[0] or "", groups[1] or "", groups[2] or ""
    if _count_newlines(run) < config.min_repetitions_to_truncate:
        return None
    if context.is_in_string(context.offset):
        return None
    rest = rest.strip()
    if rest and not rest.endswith("}") and '"' not in rest:
        return head + "\\n" + ELLIPSIS + rest
    repaired = head + ELLIPSIS + '"'
    return repaired + compute_closers(context.full_content[: context.offset] + repaired)


# ---------------------------------------------------------------------------
# JSON leaking into a string value
# ---------------------------------------------------------------------------

_EMBEDDED_SIGNATURE = r'\\",(?:\\n|\n)\s*\\"[A-Za-z_$][\w$]*\\"\s*:'

# A raw newline cannot occur inside a valid string, so a leak carrying one is
# corruption even when the real closing quote follows later
_EMBEDDED_JSON_CLOSED = re.compile(
    r'(?P<head>' + _PROPERTY_VALUE_START + r')(?P<value>(?:[^"\\\n]|\\[^\n]){0,2000}?)'
    r'(?P<leak>\\",\n\s*\\"[A-Za-z_$][\w$]*\\"\s*:(?:[^"\\]|\\.)*)"'
)

# Embedded properties running to the end of a truncated completion
_EMBEDDED_JSON_TRUNCATED = re.compile(
    r'(?P<head>' + _PROPERTY_VALUE_START + r')(?P<value>[^"\\\n]{0,200}?)(?P<leak>' + _EMBEDDED_SIGNATURE + r'(?:[^"\\]|\\.)*)\Z'
)


def _key_outside_string(context: RuleContext) -> bool:
    return not context.is_in_string(context.offset)


def _cut_embedded_json(match: str, groups: Tuple[Optional[str], ...], context: RuleContext) -> Optional[str]:
    return f'{groups[0]}{groups[1]}"'


def _cut_truncated_embedded_json(match: str, groups: Tuple[Optional[str], ...], context: RuleContext) -> Optional[str]:
    repaired = f'{groups[0]}{groups[1]}"'
    return repaired + compute_closers(context.full_content[: context.offset] + repaired)


def _describe_embedded(match: str, groups: Tuple[Optional[str], ...]) -> str:
    leaked = len(re.findall(r'\\"[A-Za-z_$][\w$]*\\"\s*:', groups[2] or ""))
    return f"Removed {leaked} JSON propert{'y' if leaked == 1 else 'ies'} leaked into a string value"


# ---------------------------------------------------------------------------
# Instruction text appended after the payload
# ---------------------------------------------------------------------------

_INSTRUCTION_AFTER_JSON = re.compile(
    r"(?P<close>[}\]])\s*\[(?:instruction|output|input|code|example|fix|solution)\][^\]]*\Z",
    re.IGNORECASE,
)


STRING_CORRUPTION_RULES: Tuple[ReplacementRule, ...] = (
    ReplacementRule(
        name="runawayRepetitionInString",
        pattern=TrailingRunFinder(),
        replacement=_truncate_runaway_repetition,
        diagnostic_message=_describe_runaway,
        skip_in_string=False,
    ),
    ReplacementRule(
        name="repetitiveNewlinesInString",
        pattern=_REPETITIVE_NEWLINES,
        replacement=_truncate_repetitive_newlines,
        diagnostic_message=lambda match, groups: (
            f"Truncated {_count_newlines(groups[1] or '')} repetitive newlines in string value"
        ),
        skip_in_string=False,
    ),
    ReplacementRule(
        name="embeddedJsonInStringValue",
        pattern=_EMBEDDED_JSON_CLOSED,
        replacement=_cut_embedded_json,
        diagnostic_message=_describe_embedded,
        skip_in_string=False,
        context_check=_key_outside_string,
    ),
    ReplacementRule(
        name="embeddedJsonInTruncatedStringValue",
        pattern=_EMBEDDED_JSON_TRUNCATED,
        replacement=_cut_truncated_embedded_json,
        diagnostic_message=_describe_embedded,
        skip_in_string=False,
        context_check=_key_outside_string,
    ),
    ReplacementRule(
        name="llmInstructionTextAfterJson",
        pattern=_INSTRUCTION_AFTER_JSON,
        replacement=lambda match, groups, context: groups[0],
        diagnostic_message="Removed LLM instruction text appended after JSON",
    ),
)

