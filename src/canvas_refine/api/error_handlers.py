"""
FastAPI exception handlers for structured error responses.

Maps domain exceptions to appropriate HTTP status codes and formats.
Every body has the shape {error, message, details?, timestamp}.
"""

import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from canvas_refine.client.exceptions import (
    ImageConnectionError,
    ImageTimeoutError,
    MissingCredentialError,
)
from canvas_refine.retry.exceptions import GenerationExhausted
from canvas_refine.tasks.exceptions import JobConflictError, JobNotFoundError, NoDocumentError

logger = logging.getLogger(__name__)


def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict[str, Any]] = None,
) -> JSONResponse:
    content: dict[str, Any] = {
        "error": error,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details is not None:
        content["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=content)


async def generation_exhausted_handler(request: Request, exc: GenerationExhausted) -> JSONResponse:
    """
    Handle exhausted generations (every size and attempt failed).

    Maps to 502 Bad Gateway: the upstream image API never produced an image.
    The message is the last recorded failure, as shown to the end user.

    Args:
        request: FastAPI request
        exc: GenerationExhausted instance

    Returns:
        JSON error response
    """
    logger.error(
        "Generation exhausted",
        extra={
            "total_attempts": exc.metadata.total_attempts,
            "sizes_tried": exc.metadata.sizes_tried,
            "total_latency_ms": exc.metadata.total_latency_ms,
            "last_error": str(exc.last_error) if exc.last_error else None,
        },
    )

    return _error_response(
        status.HTTP_502_BAD_GATEWAY,
        "generation_failed",
        str(exc),
        details=asdict(exc.metadata),
    )


async def missing_credential_handler(request: Request, exc: MissingCredentialError) -> JSONResponse:
    """Maps a missing API key to 400 Bad Request."""
    logger.warning("Missing API key", extra={"path": request.url.path})

    return _error_response(status.HTTP_400_BAD_REQUEST, "missing_credential", str(exc))


async def no_document_handler(request: Request, exc: NoDocumentError) -> JSONResponse:
    logger.warning("No document to export", extra={"error": str(exc)})

    return _error_response(status.HTTP_400_BAD_REQUEST, "no_document", str(exc))


async def job_conflict_handler(request: Request, exc: JobConflictError) -> JSONResponse:
    """
    Handle a refine request made while another generation is running.

    Maps to 409 Conflict. The active job id is returned so the caller can
    poll it instead.
    """
    logger.info("Refine rejected, generation in progress", extra={"active_job_id": exc.active_job_id})

    return _error_response(
        status.HTTP_409_CONFLICT,
        "job_conflict",
        str(exc),
        details={"active_job_id": exc.active_job_id},
    )


async def job_not_found_handler(request: Request, exc: JobNotFoundError) -> JSONResponse:
    logger.warning("Job not found", extra={"job_id": exc.job_id})

    return _error_response(status.HTTP_404_NOT_FOUND, "job_not_found", str(exc))


async def image_connection_error_handler(request: Request, exc: ImageConnectionError) -> JSONResponse:
    """
    Handle image API connection errors.

    Maps to 502 Bad Gateway (upstream service unavailable).
    """
    logger.error(
        "Image API connection error",
        extra={"error": str(exc)},
        exc_info=True,
    )

    return _error_response(
        status.HTTP_502_BAD_GATEWAY,
        "image_api_connection_failed",
        "Unable to connect to the image API",
    )


async def image_timeout_error_handler(request: Request, exc: ImageTimeoutError) -> JSONResponse:
    """
    Handle image API timeout errors.

    Maps to 504 Gateway Timeout (upstream service timeout).
    """
    logger.error(
        "Image API timeout error",
        extra={"error": str(exc)},
    )

    return _error_response(
        status.HTTP_504_GATEWAY_TIMEOUT,
        "image_api_timeout",
        "Image API request timed out",
    )


def _strip_context(errors: list[dict]) -> list[dict]:
    # "ctx" may carry the raw exception object, which is not JSON serializable.
    return [{k: v for k, v in err.items() if k != "ctx"} for err in errors]


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle invalid request bodies and parameters.

    Maps to 400 Bad Request (client error).
    """
    errors = _strip_context(list(exc.errors()))
    logger.warning(
        "Invalid request format",
        extra={"errors": errors},
    )

    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "invalid_request",
        "Request validation failed",
        details={"errors": errors},
    )


async def pydantic_validation_error_handler(
    request: Request, exc: PydanticValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors raised inside handlers.

    Maps to 400 Bad Request (client error).
    """
    errors = _strip_context(exc.errors())
    logger.warning(
        "Invalid request format",
        extra={"errors": errors},
    )

    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        "invalid_request",
        "Request validation failed",
        details={"errors": errors},
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected errors.

    Maps to 500 Internal Server Error.
    """
    logger.exception(
        "Unexpected error",
        extra={"error_type": type(exc).__name__},
    )

    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "An unexpected error occurred",
    )


# Exception handler mapping for FastAPI app.add_exception_handler()
EXCEPTION_HANDLERS = {
    GenerationExhausted: generation_exhausted_handler,
    MissingCredentialError: missing_credential_handler,
    NoDocumentError: no_document_handler,
    JobConflictError: job_conflict_handler,
    JobNotFoundError: job_not_found_handler,
    ImageConnectionError: image_connection_error_handler,
    ImageTimeoutError: image_timeout_error_handler,
    RequestValidationError: request_validation_error_handler,
    PydanticValidationError: pydantic_validation_error_handler,
    Exception: generic_error_handler,
}
