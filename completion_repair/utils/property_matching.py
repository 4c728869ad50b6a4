"""Matching a possibly mangled property name against the names a schema knows."""

import re
from typing import Optional, Sequence

from rapidfuzz.distance import Levenshtein

# Edits tolerated between a typo'd name and the schema's name
MAX_EDIT_DISTANCE = 2
# Shorter fragments are too ambiguous for edit-distance matching
MIN_FUZZY_LENGTH = 4

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")


def normalize_identifier(name: str) -> str:
    """Reduce ``userName``, ``user_name`` and ``User-Name`` to the same key."""
    return _CAMEL_BOUNDARY.sub(r"\1_\2", name).replace("_", "").replace("-", "").lower()


def _shortest(candidates: Sequence[str]) -> Optional[str]:
    return min(candidates, key=len) if candidates else None


def match_property_name(fragment: str, known_properties: Sequence[str]) -> Optional[str]:
    """
    Find the known property ``fragment`` most likely stands for.

    Tried in order: case-insensitive equality, prefix, suffix, equality of
    normalized identifiers, normalized prefix, then Levenshtein distance of
    at most ``MAX_EDIT_DISTANCE``. Among several prefix or suffix matches the
    shortest name wins.
    """
    if not fragment or not known_properties:
        return None

    lowered = fragment.lower()
    for name in known_properties:
        if name.lower() == lowered:
            return name

    if len(fragment) >= 2:
        matched = _shortest([name for name in known_properties if name.lower().startswith(lowered)])
        if matched:
            return matched
        matched = _shortest([name for name in known_properties if name.endswith(fragment)])
        if matched:
            return matched

    normalized = normalize_identifier(fragment)
    if normalized:
        for name in known_properties:
            if normalize_identifier(name) == normalized:
                return name
        if len(normalized) >= 2:
            matched = _shortest([name for name in known_properties if normalize_identifier(name).startswith(normalized)])
            if matched:
                return matched

    if len(fragment) < MIN_FUZZY_LENGTH:
        return None
    best: Optional[str] = None
    best_distance = MAX_EDIT_DISTANCE + 1
    for name in known_properties:
        if abs(len(name) - len(fragment)) > MAX_EDIT_DISTANCE:
            continue
        distance = Levenshtein.distance(lowered, name.lower(), score_cutoff=MAX_EDIT_DISTANCE)
        if distance < best_distance:
            best, best_distance = name, distance
    return best
