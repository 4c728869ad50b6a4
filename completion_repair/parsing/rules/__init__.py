"""Repair rule tables and the pipeline stages that run them.

Every table is an immutable, ordered tuple built once at import time; the
stages below are pure functions of ``(content, config)``.
"""

from typing import Optional, Sequence

from completion_repair.models.sanitizer import SanitizerConfig
from completion_repair.parsing.rule_executor import execute_rules
from completion_repair.parsing.rules.llm_metadata import remove_llm_metadata_properties
from completion_repair.parsing.rules.property_names import PROPERTY_NAME_RULES
from completion_repair.parsing.rules.separators import SEPARATOR_RULES
from completion_repair.parsing.rules.stray_text import STRAY_TEXT_RULES
from completion_repair.parsing.rules.string_corruption import STRING_CORRUPTION_RULES
from completion_repair.parsing.types import ReplacementRule, SanitizerResult, coerce_config


def _run_table(
    content: str,
    rules: Sequence[ReplacementRule],
    config: Optional[SanitizerConfig],
    description: str,
    multi_pass: bool,
) -> SanitizerResult:
    config = coerce_config(config)
    return execute_rules(
        content,
        rules,
        config=config,
        max_diagnostics=config.max_diagnostics,
        multi_pass=multi_pass,
        max_passes=config.max_rule_passes,
        description=description,
    )


def fix_string_corruption(content: str, config: Optional[SanitizerConfig] = None) -> SanitizerResult:
    """Truncate runaway repetition and cut JSON leaked into string values."""
    return _run_table(content, STRING_CORRUPTION_RULES, config, "Fixed corrupted string values", multi_pass=False)


def fix_property_names(content: str, config: Optional[SanitizerConfig] = None) -> SanitizerResult:
    return _run_table(content, PROPERTY_NAME_RULES, config, "Fixed property names", multi_pass=True)


def remove_stray_text(content: str, config: Optional[SanitizerConfig] = None) -> SanitizerResult:
    return _run_table(content, STRAY_TEXT_RULES, config, "Removed stray text outside strings", multi_pass=True)


def fix_separators(content: str, config: Optional[SanitizerConfig] = None) -> SanitizerResult:
    return _run_table(content, SEPARATOR_RULES, config, "Fixed separators and array entries", multi_pass=True)


def apply_custom_rules(content: str, config: Optional[SanitizerConfig] = None) -> SanitizerResult:
    """Caller-supplied rules, run after the built-in tables."""
    config = coerce_config(config)
    return _run_table(content, config.custom_rules, config, "Applied custom replacement rules", multi_pass=False)


__all__ = [
    "PROPERTY_NAME_RULES",
    "SEPARATOR_RULES",
    "STRAY_TEXT_RULES",
    "STRING_CORRUPTION_RULES",
    "apply_custom_rules",
    "fix_property_names",
    "fix_separators",
    "fix_string_corruption",
    "remove_llm_metadata_properties",
    "remove_stray_text",
]
