"""String-literal awareness helpers for text that is only almost JSON.

These are heuristics with bounded lookback, not parsers: they answer
"is this offset inside a string literal?" and "is this offset inside an
array?" well enough to keep repair rules away from string content.
"""

from bisect import bisect_right
from typing import Callable, Iterator, List, Optional, Tuple

DEFAULT_ARRAY_LOOKBACK = 500

_OPENERS = {"{": "}", "[": "]"}
_CLOSERS = {"}": "{", "]": "["}


def iter_with_string_state(content: str, start: int = 0, in_string: bool = False) -> Iterator[Tuple[int, str, bool]]:
    """
    Yield ``(index, char, in_string)`` for every character from ``start``.

    ``in_string`` is the state *before* the character is consumed, so the
    opening quote of a literal reports ``False`` and its closing quote ``True``.
    Inside a literal a backslash escapes exactly the next character.
    """
    escaped = False
    for index in range(start, len(content)):
        char = content[index]
        yield index, char, in_string
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True


def is_in_string_at(position: int, content: str) -> bool:
    """Return True when ``position`` lies inside a string literal of ``content``."""
    if position <= 0:
        return False
    in_string = False
    escaped = False
    for char in content[:position]:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
    return in_string


def is_in_array_context(
    index: int,
    content: str,
    lookback: int = DEFAULT_ARRAY_LOOKBACK,
    is_in_string: Optional[Callable[[int], bool]] = None,
) -> bool:
    """
    Return True when the innermost open delimiter before ``index`` is ``[``.

    Only the last ``lookback`` characters are examined; delimiters opened
    before that window are invisible to the check. Pass a precomputed
    ``is_in_string`` (e.g. a ``StringBoundaryChecker``) to avoid rescanning
    the prefix.
    """
    start = max(0, index - lookback)
    starts_in_string = is_in_string(start) if is_in_string is not None else is_in_string_at(start, content)
    stack: List[str] = []
    for _, char, in_string in iter_with_string_state(content[:index], start, starts_in_string):
        if in_string:
            continue
        if char in _OPENERS:
            stack.append(char)
        elif char in _CLOSERS and stack and stack[-1] == _CLOSERS[char]:
            stack.pop()
    return bool(stack) and stack[-1] == "["


class StringBoundaryChecker:
    """Answers ``is_in_string_at`` queries for one buffer in O(log n) after an O(n) scan."""

    def __init__(self, content: str):
        self._starts: List[int] = []
        self._ends: List[int] = []
        open_at = -1
        for index, char, in_string in iter_with_string_state(content):
            if char != '"':
                continue
            if not in_string:
                open_at = index
            elif open_at >= 0 and not _is_escaped(content, index):
                self._starts.append(open_at + 1)
                self._ends.append(index)
                open_at = -1
        if open_at >= 0:
            self._starts.append(open_at + 1)
            self._ends.append(len(content))

    def __call__(self, position: int) -> bool:
        slot = bisect_right(self._starts, position) - 1
        return slot >= 0 and position <= self._ends[slot]


def _is_escaped(content: str, index: int) -> bool:
    backslashes = 0
    cursor = index - 1
    while cursor >= 0 and content[cursor] == "\\":
        backslashes += 1
        cursor -= 1
    return backslashes % 2 == 1


def compute_closers(content: str) -> str:
    """
    Return the text that would balance ``content``: a closing quote when a
    string is left open, then the missing ``]``/``}`` innermost first.
    """
    stack: List[str] = []
    for _, char, in_string in iter_with_string_state(content):
        if in_string:
            continue
        if char in _OPENERS:
            stack.append(char)
        elif char in _CLOSERS and stack and stack[-1] == _CLOSERS[char]:
            stack.pop()
    closers = '"' if is_in_string_at(len(content), content) else ""
    return closers + "".join(_OPENERS[opener] for opener in reversed(stack))


def find_json_value_end(content: str, start: int) -> int:
    """
    Return the index just past the JSON value beginning at or after ``start``.

    Objects and arrays are matched with a brace/bracket/quote balanced scan;
    strings end at their closing quote; bare scalars end at the next ``,``,
    ``}``, ``]`` or newline. Returns -1 when the value never closes.
    """
    index = start
    length = len(content)
    while index < length and content[index].isspace():
        index += 1
    if index >= length:
        return -1

    first = content[index]
    if first == '"':
        for position, char, in_string in iter_with_string_state(content, index):
            if position > index and char == '"' and in_string and not _is_escaped(content, position):
                return position + 1
        return -1

    if first in _OPENERS:
        depth = 0
        for position, char, in_string in iter_with_string_state(content, index):
            if in_string:
                continue
            if char in _OPENERS:
                depth += 1
            elif char in _CLOSERS:
                depth -= 1
                if depth == 0:
                    return position + 1
        return -1

    while index < length and content[index] not in ",}]\n":
        index += 1
    return index
