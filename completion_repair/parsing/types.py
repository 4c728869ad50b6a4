"""Core records shared by the sanitizers and the rule executor."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import (
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
)

from completion_repair.models.sanitizer import SanitizerConfig

# Parsed JSON document. Post-parse code dispatches over exactly these shapes.
JsonValue = Union[None, bool, int, float, str, List["JsonValue"], Dict[str, "JsonValue"]]


class PatternEngine(Protocol):
    """Anything that yields regex-style matches over a string (``re.Pattern`` by default)."""

    def finditer(self, string: str) -> Iterator[re.Match[str]]:
        ...


@dataclass(frozen=True)
class SanitizerResult:
    """Output of one sanitizer stage. Same input always gives the same result."""

    content: str
    changed: bool
    description: Optional[str] = None
    diagnostics: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RuleContext:
    """Surroundings of a single match, handed to replacement and context checks."""

    before_match: str
    offset: int
    full_content: str
    groups: Tuple[Optional[str], ...]
    config: Optional[SanitizerConfig]
    is_in_string: Callable[[int], bool]

    def group(self, index: int) -> str:
        """Captured group ``index`` (1-based), or an empty string when it did not take part."""
        value = self.groups[index - 1] if 0 < index <= len(self.groups) else None
        return value or ""


ReplacementFunction = Callable[[str, Tuple[Optional[str], ...], RuleContext], Optional[str]]
DiagnosticFunction = Callable[[str, Tuple[Optional[str], ...]], str]


@dataclass(frozen=True)
class ReplacementRule:
    """A pattern, its fix and a diagnostic describing the fix.

    ``replacement`` may return ``None`` to leave a match untouched when its
    confidence heuristic is not met.
    """

    name: str
    pattern: PatternEngine
    replacement: ReplacementFunction
    diagnostic_message: Union[str, DiagnosticFunction]
    skip_in_string: bool = True
    context_check: Optional[Callable[[RuleContext], bool]] = None
    context_lookback: int = 500

    def describe(self, match: str, groups: Tuple[Optional[str], ...]) -> str:
        if callable(self.diagnostic_message):
            return self.diagnostic_message(match, groups)
        return self.diagnostic_message


class Sanitizer(Protocol):
    """A pure stage of the repair pipeline."""

    def __call__(self, content: str, config: Optional[SanitizerConfig] = None) -> SanitizerResult:
        ...


@dataclass
class DiagnosticCollector:
    """Bounded, ordered list of repair descriptions for one stage."""

    limit: int = 20
    items: List[str] = field(default_factory=list)

    def add(self, message: str) -> None:
        if len(self.items) < self.limit:
            self.items.append(message)

    def extend(self, messages: Sequence[str]) -> None:
        for message in messages:
            self.add(message)

    def as_tuple(self) -> Tuple[str, ...]:
        return tuple(self.items)


def unchanged(content: str) -> SanitizerResult:
    """Result for a stage that had nothing to do."""
    return SanitizerResult(content=content, changed=False)


def build_result(original: str, content: str, description: str, diagnostics: Sequence[str]) -> SanitizerResult:
    """Result comparing stage input with output; the original string is returned when equal."""
    if content == original:
        return unchanged(original)
    return SanitizerResult(
        content=content,
        changed=True,
        description=description,
        diagnostics=tuple(diagnostics),
    )


def coerce_config(config: Optional[SanitizerConfig]) -> SanitizerConfig:
    """Return ``config`` or a default one built from settings."""
    if config is not None:
        return config
    return SanitizerConfig()

