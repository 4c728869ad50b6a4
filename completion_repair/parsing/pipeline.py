"""Ordered sanitizer pipeline and the parse-with-repair entry point."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple

from completion_repair.models.llm import PipelineStep
from completion_repair.models.sanitizer import SanitizerConfig
from completion_repair.parsing.characters import normalize_characters
from completion_repair.parsing.rules import (
    apply_custom_rules,
    fix_property_names,
    fix_separators,
    fix_string_corruption,
    remove_llm_metadata_properties,
    remove_stray_text,
)
from completion_repair.parsing.structural import fix_json_structure_and_noise
from completion_repair.parsing.syntax import fix_syntax
from completion_repair.parsing.types import JsonValue, Sanitizer, coerce_config

logger = logging.getLogger(__name__)

# Generic structure first, then string corruption, metadata, names, stray
# text and separators; syntax completion last.
DEFAULT_STAGES: Tuple[Tuple[str, Sanitizer], ...] = (
    ("fix_json_structure_and_noise", fix_json_structure_and_noise),
    ("normalize_characters", normalize_characters),
    ("fix_string_corruption", fix_string_corruption),
    ("remove_llm_metadata", remove_llm_metadata_properties),
    ("fix_property_names", fix_property_names),
    ("remove_stray_text", remove_stray_text),
    ("fix_separators", fix_separators),
    ("apply_custom_rules", apply_custom_rules),
    ("fix_syntax", fix_syntax),
)

# Diagnostics that do not count as a real repair
COSMETIC_REPAIRS = ("Trimmed whitespace", "Removed code fences")


class NonContainerJsonError(ValueError):
    """Raised for input that parses but is a scalar or null rather than an object or array."""

    pass


@dataclass
class PipelineRun:
    """Outcome of running every stage once over a completion."""

    content: str
    steps: List[PipelineStep] = field(default_factory=list)

    @property
    def repaired(self) -> bool:
        return any(step.changed for step in self.steps)

    @property
    def repairs(self) -> List[str]:
        return [message for step in self.steps for message in step.diagnostics]


@dataclass
class ParseResult:
    """Parsed document (objects and arrays only) or the reason parsing failed."""

    success: bool
    data: Optional[JsonValue] = None
    repairs: List[str] = field(default_factory=list)
    steps: List[PipelineStep] = field(default_factory=list)
    error: Optional[Exception] = None


class SanitizerPipeline:
    """Runs sanitizer stages in a fixed order, each exactly once, recording every step."""

    def __init__(self, stages: Sequence[Tuple[str, Sanitizer]] = DEFAULT_STAGES, config: Optional[SanitizerConfig] = None):
        self.stages = tuple(stages)
        self.config = coerce_config(config)

    def run(self, content: str) -> PipelineRun:
        run = PipelineRun(content=content)
        for name, sanitizer in self.stages:
            result = sanitizer(run.content, self.config)
            run.steps.append(PipelineStep(sanitizer=name, changed=result.changed, diagnostics=list(result.diagnostics)))
            if result.changed:
                logger.debug(f"Sanitizer {name} changed content: {list(result.diagnostics)}")
                run.content = result.content
        return run


def _loads_container(text: str) -> Tuple[Optional[Any], Optional[Exception]]:
    try:
        value = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as e:
        return None, e
    if not isinstance(value, (dict, list)):
        return None, NonContainerJsonError(f"Expected a JSON object or array, got {type(value).__name__}")
    return value, None


def parse_json_with_sanitizers(
    content: str,
    config: Optional[SanitizerConfig] = None,
    pipeline: Optional[SanitizerPipeline] = None,
) -> ParseResult:
    """
    Parse ``content`` as a JSON object or array, repairing it if needed.

    Content that already parses is returned untouched with no steps. Otherwise
    the pipeline runs once and its output is parsed.
    """
    data, _ = _loads_container(content.strip())
    if data is not None:
        return ParseResult(success=True, data=data)

    pipeline = pipeline or SanitizerPipeline(config=config)
    run = pipeline.run(content)
    data, error = _loads_container(run.content)
    if error is not None:
        logger.debug(f"Parse failed after {len(run.steps)} sanitizer steps: {error}")
        return ParseResult(success=False, repairs=run.repairs, steps=run.steps, error=error)
    return ParseResult(success=True, data=data, repairs=run.repairs, steps=run.steps)
