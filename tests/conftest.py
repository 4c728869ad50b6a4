"""Pytest configuration and fixtures."""

from typing import List

import pytest
from fastapi.testclient import TestClient
from pydantic import BaseModel

from completion_repair.main import app
from completion_repair.models.llm import LLMContext, ResponseBase
from completion_repair.services.response_processor import LLMResponseProcessor


class Item(BaseModel):
    """Small schema used across the JSON processing tests."""

    name: str
    count: int
    tags: List[str] = []


class Order(BaseModel):
    """Nested schema referencing ``Item`` through ``$defs``."""

    items: List[Item]
    total: float


class RecordingErrorLogger:
    """Error logger double that remembers every call."""

    def __init__(self):
        self.calls = []

    async def record_json_processing_error(self, error, raw_content, context):
        self.calls.append((error, raw_content, context))


@pytest.fixture
def client():
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def base() -> ResponseBase:
    """Correlation identity for one completion attempt."""
    return ResponseBase(request="Summarize the file", context=LLMContext(resource="src/app.py"), model_key="test-model")


@pytest.fixture
def error_logger() -> RecordingErrorLogger:
    return RecordingErrorLogger()


@pytest.fixture
def processor(error_logger) -> LLMResponseProcessor:
    """Response processor wired to the recording error logger."""
    return LLMResponseProcessor(error_logger=error_logger)


@pytest.fixture
def item_schema():
    return Item


@pytest.fixture
def order_schema():
    return Order
