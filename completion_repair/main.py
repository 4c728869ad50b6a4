"""FastAPI application entry point."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from completion_repair.api.routes import health, repair
from completion_repair.config import settings
from completion_repair.core.request_id import get_request_id
from completion_repair.middleware.logging import RequestLoggingMiddleware
from completion_repair.utils.exceptions import (
    CompletionRepairException,
    InputValidationError,
    LLMError,
    LLMErrorCode,
)
from completion_repair.utils.logging_config import setup_logging

# Setup logging
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Completion Repair API",
    description="Repairs and classifies malformed LLM JSON completions",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with detailed messages."""
    request_id = get_request_id()

    logger.warning(
        f"Validation error: {str(exc)}",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "errors": exc.errors(),
        },
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation error",
            "detail": exc.errors(),
            "request_id": request_id,
            "message": "Request validation failed. Check the 'detail' field for specific errors.",
        },
    )


@app.exception_handler(CompletionRepairException)
async def completion_repair_exception_handler(request: Request, exc: CompletionRepairException) -> JSONResponse:
    """Handle custom service exceptions."""
    request_id = get_request_id()

    if isinstance(exc, LLMError) and exc.code == LLMErrorCode.BAD_RESPONSE_CONTENT:
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
        error_message = "Bad response content"
    elif isinstance(exc, (LLMError, InputValidationError)):
        status_code = status.HTTP_400_BAD_REQUEST
        error_message = "Bad configuration" if isinstance(exc, LLMError) else "Validation error"
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        error_message = "Internal server error"

    logger.error(
        f"Exception: {error_message}",
        extra={"request_id": request_id, "exception": str(exc)},
        exc_info=status_code >= 500,
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "error": error_message,
            "detail": str(exc),
            "request_id": request_id,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    request_id = get_request_id()

    logger.error(
        f"Unexpected exception: {str(exc)}",
        extra={"request_id": request_id},
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": "An unexpected error occurred",
            "request_id": request_id,
        },
    )


app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(repair.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Completion Repair API",
        "version": "1.0.0",
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
