"""Records completions that could not be turned into valid JSON."""

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from completion_repair.config import settings
from completion_repair.core.request_id import get_request_id
from completion_repair.models.llm import LLMContext
from completion_repair.utils.exceptions import JsonProcessingError, format_error

logger = logging.getLogger(__name__)


class LLMErrorLogger:
    """
    Logs JSON processing failures and, when ``error_log_dir`` is configured,
    dumps each failure with its raw content to a JSON file for later triage.
    """

    def __init__(self, error_log_dir: Optional[str] = None):
        self.error_log_dir = error_log_dir if error_log_dir is not None else settings.error_log_dir

    async def record_json_processing_error(
        self, error: JsonProcessingError, raw_content: Any, context: LLMContext
    ) -> None:
        """Log ``error``; never raises."""
        request_id = get_request_id()
        logger.error(
            f"JSON processing failed for resource '{context.resource}': {error}",
            extra={
                "resource": context.resource,
                "error_type": error.error_type.value,
                "request_id": request_id,
            },
        )
        if not self.error_log_dir:
            return

        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": request_id,
            "error": format_error(error),
            "context": context.model_dump(),
            "raw_content": raw_content if isinstance(raw_content, str) else repr(raw_content),
        }
        try:
            await asyncio.to_thread(self._write_record, record)
        except OSError as e:
            logger.warning(f"Could not write error dump to {self.error_log_dir}: {e}")

    def _write_record(self, record: Dict[str, Any]) -> str:
        os.makedirs(self.error_log_dir, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
        path = os.path.join(self.error_log_dir, f"response-error-{stamp}.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(record, f, indent=2, default=str)
        return path
