"""Tests for the replacement rule executor."""

import re

from completion_repair.parsing.rule_executor import execute_rules
from completion_repair.parsing.types import ReplacementRule


def _rule(pattern, replacement, **kwargs):
    return ReplacementRule(
        name="test",
        pattern=re.compile(pattern),
        replacement=replacement,
        diagnostic_message="fired",
        **kwargs,
    )


def test_skips_matches_inside_strings():
    """Only the occurrence outside the literal is replaced."""
    rule = _rule(r"foo", lambda match, groups, context: "bar")
    result = execute_rules('{"foo": foo}', [rule])
    assert result.content == '{"foo": bar}'
    assert result.changed is True
    assert result.diagnostics == ("fired",)


def test_skip_in_string_false_reaches_string_content():
    """Rules that opt out of the string gate see literal content."""
    rule = _rule(r"foo", lambda match, groups, context: "bar", skip_in_string=False)
    result = execute_rules('{"foo": foo}', [rule])
    assert result.content == '{"bar": bar}'


def test_none_replacement_keeps_match():
    """A replacement returning None leaves the content untouched."""
    content = '{"a": 1}'
    rule = _rule(r"\d", lambda match, groups, context: None)
    result = execute_rules(content, [rule])
    assert result.changed is False
    assert result.content == content
    assert result.diagnostics == ()


def test_context_check_can_veto():
    """A failing context check skips the match."""
    rule = _rule(r"x", lambda match, groups, context: "y", context_check=lambda context: context.offset > 0)
    result = execute_rules("x x", [rule])
    assert result.content == "x y"


def test_multi_pass_reaches_fixed_point():
    """Multi-pass re-applies the table until nothing changes."""
    rule = _rule(r"aa", lambda match, groups, context: "a")
    assert execute_rules("aaaa", [rule]).content == "aa"
    assert execute_rules("aaaa", [rule], multi_pass=True).content == "a"


def test_multi_pass_respects_ceiling():
    """The pass ceiling bounds the work even without a fixed point."""
    rule = _rule(r"a", lambda match, groups, context: "aa")
    result = execute_rules("a", [rule], multi_pass=True, max_passes=3)
    assert result.content == "a" * 8


def test_diagnostics_are_bounded():
    """No more than max_diagnostics messages are kept."""
    rule = _rule(r"x", lambda match, groups, context: "y")
    result = execute_rules("x x x x x", [rule], max_diagnostics=2)
    assert result.content == "y y y y y"
    assert len(result.diagnostics) == 2


def test_rule_context_exposes_groups_and_surroundings():
    """Replacement callbacks see groups, offset and preceding text."""
    seen = {}

    def replacement(match, groups, context):
        seen["group"] = context.group(1)
        seen["before"] = context.before_match
        seen["offset"] = context.offset
        return match

    execute_rules("ab cd", [_rule(r"(c)d", replacement)])
    assert seen == {"group": "c", "before": "ab ", "offset": 3}
