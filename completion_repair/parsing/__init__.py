"""Sanitizer pipeline that repairs malformed JSON completions."""
