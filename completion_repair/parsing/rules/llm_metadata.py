"""Removal of LLM meta-fields (``extra_thoughts``, ``extra_text``, ...) from an object.

A regex cannot find where such a property's value ends once it holds nested
objects or strings with braces, so the value end is located with a balanced
brace/bracket/quote scan and the neighbouring delimiters are re-stitched.
"""

import logging
import re
from typing import Callable, Optional, Tuple

from completion_repair.models.sanitizer import SanitizerConfig
from completion_repair.parsing.string_context import find_json_value_end, is_in_string_at
from completion_repair.parsing.types import DiagnosticCollector, SanitizerResult, build_result, coerce_config

logger = logging.getLogger(__name__)

# Keys LLMs add for their own bookkeeping; never part of a requested schema
_METADATA_KEY = re.compile(
    r'(?P<lead>[{,])(?P<space>\s*)(?P<key>"?(?:extra_[A-Za-z0-9_]*|_llm_[A-Za-z0-9_]*|_ai_[A-Za-z0-9_]*)"?)\s*[:=]\s*'
)

# Reasoning artifacts; removed only when the schema does not list them
ARTIFACT_PROPERTY_NAMES = (
    "thought",
    "thoughts",
    "reasoning",
    "scratchpad",
    "chain_of_thought",
    "thinking",
    "internal_notes",
)
_ARTIFACT_KEY = re.compile(
    r'(?P<lead>[{,])(?P<space>\s*)(?P<key>"?(?:' + "|".join(ARTIFACT_PROPERTY_NAMES) + r')"?)\s*:\s*'
)


def remove_llm_metadata_properties(content: str, config: Optional[SanitizerConfig] = None) -> SanitizerResult:
    """Remove metadata properties, and artifact properties unknown to the schema."""
    config = coerce_config(config)
    diagnostics = DiagnosticCollector(limit=config.max_diagnostics)

    current = _remove_matching_properties(content, _METADATA_KEY, config.max_structure_passes, diagnostics)

    known = set(config.known_properties)
    if known:
        current = _remove_matching_properties(
            current,
            _ARTIFACT_KEY,
            config.max_structure_passes,
            diagnostics,
            keep=lambda key: key in known,
        )

    return build_result(content, current, "Removed LLM metadata properties", diagnostics.items)


def _remove_matching_properties(
    content: str,
    pattern: re.Pattern,
    max_passes: int,
    diagnostics: DiagnosticCollector,
    keep: Optional[Callable[[str], bool]] = None,
) -> str:
    """Remove every property whose key matches ``pattern``; each pass removes one or stops."""
    search_from = 0
    for _ in range(max_passes):
        match = pattern.search(content, search_from)
        if match is None:
            break

        key = match.group("key").strip('"')
        if is_in_string_at(match.start(), content) or (keep is not None and keep(key)):
            search_from = match.end()
            continue

        span = _property_span(content, match)
        if span is None:
            search_from = match.end()
            continue
        start, end = span
        content = content[:start] + content[end:]
        diagnostics.add(f"Removed LLM metadata property '{key}'")
        search_from = start
    else:
        logger.debug(f"Metadata removal stopped at pass ceiling ({max_passes})")
    return content


def _property_span(content: str, match: re.Match) -> Optional[Tuple[int, int]]:
    """Span to delete so that the surrounding object stays well formed."""
    value_end = find_json_value_end(content, match.end())
    if value_end < 0:
        # Truncated value: drop everything after the key, completion closes the rest
        return (match.start("lead") if match.group("lead") == "," else match.end("lead"), len(content))

    if match.group("lead") == ",":
        # `, key: value` -> drop the leading comma with the property
        return match.start("lead"), value_end

    # `{key: value, next` -> keep `{`, drop the property and its trailing comma
    end = value_end
    cursor = end
    while cursor < len(content) and content[cursor].isspace():
        cursor += 1
    if cursor < len(content) and content[cursor] == ",":
        end = cursor + 1
    return match.end("lead"), end
