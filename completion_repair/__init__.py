"""Repairs and classifies malformed LLM JSON completions."""

__version__ = "1.0.0"
