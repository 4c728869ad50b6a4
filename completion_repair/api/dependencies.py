"""Shared API dependencies."""

from functools import lru_cache

from completion_repair.services.response_processor import LLMResponseProcessor


@lru_cache(maxsize=1)
def get_response_processor() -> LLMResponseProcessor:
    """Get the shared response processor instance."""
    return LLMResponseProcessor()
