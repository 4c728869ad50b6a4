"""Character-level cleanup: invisible characters, smart quotes, raw control characters, escapes."""

import re
from typing import List, Optional, Tuple

from completion_repair.models.sanitizer import SanitizerConfig
from completion_repair.parsing.types import DiagnosticCollector, SanitizerResult, build_result, coerce_config

_INVISIBLE = "\ufeff\u200b\u200c\u200d\u2060"
_SMART_DOUBLE_QUOTES = "\u201c\u201d\u201e\u201f\u2033"
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t", "\b": "\\b", "\f": "\\f"}

# RFC 8259 escapes, apart from \u which needs four hex digits
_VALID_ESCAPES = '"\\/bfnrt'
_HEX_DIGITS = "0123456789abcdefABCDEF"
# Characters LLMs escape with an odd number of backslashes (`\'`, `\\\'`, `\,`)
_OVER_ESCAPED = "',)"

# After a raw newline these mean the string was never closed, or that JSON
# leaked into it, rather than multiline text
_STRUCTURE_AHEAD = re.compile(r'\s*(?:"[\w$-]+"\s*:|\\"[\w$-]+\\"\s*:|[}\]]\s*(?:[,}\]]|$))')


def _repair_escape(text: str, index: int) -> Tuple[str, int, bool]:
    """
    Rewrite the escape sequence starting at ``text[index]`` (a backslash inside a string).

    Returns the replacement, how many characters it consumed and whether it
    was a repair.
    """
    run_end = index
    while run_end < len(text) and text[run_end] == "\\":
        run_end += 1
    run = run_end - index
    following = text[run_end] if run_end < len(text) else ""
    if run % 2 and following and following in _OVER_ESCAPED:
        return following, run + 1, True
    if run > 1:
        # Leading pairs are escaped backslashes
        pairs = run - run % 2
        return "\\" * pairs, pairs, False

    escaped = text[index + 1] if index + 1 < len(text) else ""
    if not escaped:
        return "\\", 1, False
    if escaped in _VALID_ESCAPES:
        return "\\" + escaped, 2, False
    if escaped == "u":
        digits = ""
        while len(digits) < 4 and index + 2 + len(digits) < len(text) and text[index + 2 + len(digits)] in _HEX_DIGITS:
            digits += text[index + 2 + len(digits)]
        if len(digits) == 4:
            return "\\u" + digits, 6, False
        return "\\\\u" + digits, 2 + len(digits), True
    if escaped == " ":
        return " ", 2, True
    if escaped == "0":
        return "\\u0000", 2, True
    # Anything else was meant literally (`C:\Users`, `\d+`); the next character is processed as usual
    return "\\\\", 1, True


def normalize_characters(content: str, config: Optional[SanitizerConfig] = None) -> SanitizerResult:
    """
    Drop BOM and zero-width characters outside strings, turn smart quotes used
    as delimiters into ASCII quotes, escape raw control characters inside
    string literals and repair invalid or over-escaped escape sequences.
    """
    config = coerce_config(config)
    diagnostics = DiagnosticCollector(limit=config.max_diagnostics)

    if content.startswith("\ufeff"):
        diagnostics.add("Removed byte order mark")
        content_without_bom = content[1:]
    else:
        content_without_bom = content

    pieces: List[str] = []
    invisible = smart = control = escapes = 0
    # Smart quotes are rewritten on the fly so later string state follows them
    text = content_without_bom
    in_string = False
    smart_open = False
    index = 0
    while index < len(text):
        char = text[index]
        if char in _SMART_DOUBLE_QUOTES and (not in_string or smart_open):
            char = '"'
            smart += 1
            smart_open = not in_string
        elif in_string and smart_open and char == '"':
            # ASCII quote inside a string delimited by smart quotes
            pieces.append('\\"')
            index += 1
            continue

        if in_string:
            if char == "\\":
                replacement, consumed, repaired = _repair_escape(text, index)
                pieces.append(replacement)
                escapes += repaired
                index += consumed
                continue
            if char == '"':
                in_string = False
            elif ord(char) < 0x20 and not (char == "\n" and _STRUCTURE_AHEAD.match(text, index + 1)):
                char = _CONTROL_ESCAPES.get(char, f"\\u{ord(char):04x}")
                control += 1
            pieces.append(char)
            index += 1
            continue

        index += 1
        if char in _INVISIBLE:
            invisible += 1
            continue
        if char == '"':
            in_string = True
        pieces.append(char)

    if invisible:
        diagnostics.add(f"Removed {invisible} invisible character(s) outside strings")
    if smart:
        diagnostics.add(f"Replaced {smart} smart quote(s) with ASCII quotes")
    if control:
        diagnostics.add(f"Escaped {control} raw control character(s) inside strings")
    if escapes:
        diagnostics.add(f"Fixed {escapes} invalid escape sequence(s) inside strings")

    return build_result(content, "".join(pieces), "Normalized characters", diagnostics.items)
