"""Custom exception classes."""

from enum import Enum
from typing import Any, Optional


class CompletionRepairException(Exception):
    """Base exception for the completion repair service."""

    pass


class InputValidationError(CompletionRepairException):
    """Raised when an HTTP request payload fails validation."""

    pass


class LLMErrorCode(str, Enum):
    """Error codes for caller-side defects surfaced while classifying a response."""

    BAD_CONFIGURATION = "BAD_CONFIGURATION"
    BAD_RESPONSE_CONTENT = "BAD_RESPONSE_CONTENT"


class LLMError(CompletionRepairException):
    """Raised for configuration-class errors. These are never retried."""

    def __init__(self, code: LLMErrorCode, message: str, content: Any = None):
        super().__init__(message)
        self.code = code
        self.content = content

    def __str__(self) -> str:
        return f"{self.code.value}: {self.args[0]}"


class JsonProcessingErrorType(str, Enum):
    """Stage at which JSON processing of a completion failed."""

    PARSE = "parse"
    VALIDATION = "validation"


class JsonProcessingError(CompletionRepairException):
    """Describes why a completion could not be turned into valid JSON.

    Instances travel as data inside a ``JsonProcessorResult``; the processing
    layer never raises them.
    """

    def __init__(
        self,
        error_type: JsonProcessingErrorType,
        message: str,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.error_type = error_type
        self.cause = cause

    def __str__(self) -> str:
        text = f"JsonProcessingError[{self.error_type.value}]: {self.args[0]}"
        if self.cause is not None:
            text += f" (cause: {self.cause})"
        return text


def format_error(error: Any) -> str:
    """Render any error-like value as a single human-readable line."""
    if isinstance(error, BaseException):
        return f"{type(error).__name__}. {error}"
    return f"<unknown-type>. {error!r}"
