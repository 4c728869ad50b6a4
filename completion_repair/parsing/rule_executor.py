"""Applies ordered ``ReplacementRule`` tables to a buffer."""

import logging
from typing import List, Optional, Sequence

from completion_repair.models.sanitizer import SanitizerConfig
from completion_repair.parsing.string_context import StringBoundaryChecker
from completion_repair.parsing.types import (
    DiagnosticCollector,
    ReplacementRule,
    RuleContext,
    SanitizerResult,
    build_result,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_PASSES = 10


def execute_rules(
    content: str,
    rules: Sequence[ReplacementRule],
    *,
    config: Optional[SanitizerConfig] = None,
    max_diagnostics: int = 20,
    multi_pass: bool = False,
    max_passes: int = DEFAULT_MAX_PASSES,
    description: str = "Applied replacement rules",
) -> SanitizerResult:
    """
    Run every rule over ``content`` in order.

    Each rule sees the output of the previous one. With ``multi_pass`` the
    whole table is re-applied until a pass changes nothing or ``max_passes``
    is reached.

    Args:
        content: Text to repair
        rules: Ordered rule table
        config: Schema hints and thresholds forwarded to rule callbacks
        max_diagnostics: Upper bound on collected diagnostics
        multi_pass: Re-run the table until a fixed point
        max_passes: Ceiling for ``multi_pass``
        description: Summary attached to a changed result

    Returns:
        SanitizerResult whose content is the original string when nothing fired
    """
    if not content or not rules:
        return SanitizerResult(content=content, changed=False)

    diagnostics = DiagnosticCollector(limit=max_diagnostics)
    current = content
    passes = max_passes if multi_pass else 1

    for pass_number in range(passes):
        before_pass = current
        for rule in rules:
            current = _apply_rule(current, rule, config, diagnostics)
        if current == before_pass:
            break
        if multi_pass and pass_number == passes - 1:
            logger.debug(f"Rule execution hit pass ceiling ({passes}) without reaching a fixed point")

    return build_result(content, current, description, diagnostics.as_tuple())


def _apply_rule(
    content: str,
    rule: ReplacementRule,
    config: Optional[SanitizerConfig],
    diagnostics: DiagnosticCollector,
) -> str:
    """Apply one rule to every match, rebuilding the buffer left to right."""
    is_in_string: Optional[StringBoundaryChecker] = None
    pieces: List[str] = []
    last_end = 0
    fired = False

    for match in rule.pattern.finditer(content):
        offset = match.start()
        matched = match.group(0)
        if is_in_string is None:
            is_in_string = StringBoundaryChecker(content)

        if rule.skip_in_string and is_in_string(offset):
            continue

        groups = match.groups()
        context = RuleContext(
            before_match=content[max(0, offset - rule.context_lookback):offset],
            offset=offset,
            full_content=content,
            groups=groups,
            config=config,
            is_in_string=is_in_string,
        )
        if rule.context_check is not None and not rule.context_check(context):
            continue

        replacement = rule.replacement(matched, groups, context)
        if replacement is None or replacement == matched:
            continue

        pieces.append(content[last_end:offset])
        pieces.append(replacement)
        last_end = match.end()
        fired = True
        diagnostics.add(rule.describe(matched, groups))

    if not fired:
        return content
    pieces.append(content[last_end:])
    return "".join(pieces)
