"""Input validation utilities."""

from typing import Any

from completion_repair.config import settings
from completion_repair.utils.exceptions import InputValidationError


def validate_content_size(content: Any) -> Any:
    """
    Reject completions too large to repair within a request.

    Args:
        content: Raw completion from the request payload

    Returns:
        The content, unchanged

    Raises:
        InputValidationError: If a string completion exceeds ``settings.max_content_chars``
    """
    limit = settings.max_content_chars
    if isinstance(content, str) and len(content) > limit:
        raise InputValidationError(f"Completion is {len(content)} characters long, the limit is {limit}")
    return content
