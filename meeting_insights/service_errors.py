"""Error response helpers and exception handler registration.

Every error leaves the API as ``{"error", "errorCode", "canRetry"}``.
Technical details are logged here and never put in the response body.
"""

from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .error_translator import (
    SERVICE_UNAVAILABLE_MESSAGE,
    UNKNOWN_ERROR_MESSAGE,
    ErrorCode,
    ErrorEnvelope,
    status_for,
    translate,
)
from .exceptions import MeetingInsightsError

logger = logging.getLogger(__name__)


def create_error_response(
    status_code: int,
    envelope: ErrorEnvelope,
    request_id: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """
    Create a standardized error response.

    Args:
        status_code: HTTP status code
        envelope: Translated error
        request_id: Optional request ID, echoed as X-Request-ID
        headers: Extra response headers (e.g. Allow on 405)

    Returns:
        JSONResponse with the public error body
    """
    response_headers = dict(headers or {})
    if request_id:
        response_headers["X-Request-ID"] = request_id
    return JSONResponse(
        status_code=status_code,
        content=envelope.to_dict(),
        headers=response_headers or None,
    )


def _format_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    # Drop the "body"/"query" prefix from the location
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    msg = first.get("msg", "Invalid value")
    if loc:
        return f"Invalid request: {'.'.join(loc)}: {msg}"
    return f"Invalid request: {msg}"


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle request validation errors as 400 VALIDATION_ERROR.

    FastAPI raises RequestValidationError when a body or query parameter
    fails Pydantic validation (missing field, wrong type, malformed JSON).
    """
    request_id = getattr(request.state, "request_id", None)
    errors = exc.errors()
    logger.warning(
        "Validation error: %s %s [request_id=%s] - %d validation errors",
        request.method,
        request.url.path,
        request_id,
        len(errors),
        extra={"request_id": request_id, "validation_errors": errors},
    )
    message = _format_validation_message(exc)
    return create_error_response(
        status.HTTP_400_BAD_REQUEST,
        ErrorEnvelope(message, ErrorCode.VALIDATION_ERROR, False, message),
        request_id=request_id,
    )


def _envelope_for_status(status_code: int, detail: str) -> ErrorEnvelope:
    if status_code == status.HTTP_404_NOT_FOUND:
        return ErrorEnvelope("Not found", ErrorCode.NOT_FOUND, False, detail)
    if status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
        return ErrorEnvelope(SERVICE_UNAVAILABLE_MESSAGE, ErrorCode.SERVICE_UNAVAILABLE, True, detail)
    if status_code < 500:
        return ErrorEnvelope(detail, ErrorCode.VALIDATION_ERROR, False, detail)
    return ErrorEnvelope(UNKNOWN_ERROR_MESSAGE, ErrorCode.UNKNOWN_ERROR, True, detail)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """
    Handle HTTPException (unknown routes, wrong methods, explicit raises).

    Routing errors never reach an endpoint, so they are mapped from the
    status code: 404 is NOT_FOUND, other 4xx are VALIDATION_ERROR.
    """
    request_id = getattr(request.state, "request_id", None)
    detail = str(exc.detail)

    logger.warning(
        "HTTP exception: %s %s -> %d [request_id=%s] - %s",
        request.method,
        request.url.path,
        exc.status_code,
        request_id,
        detail,
        extra={
            "request_id": request_id,
            "status_code": exc.status_code,
            "detail": detail,
        },
    )
    return create_error_response(
        exc.status_code,
        _envelope_for_status(exc.status_code, detail),
        request_id=request_id,
        headers=getattr(exc, "headers", None),
    )


async def meeting_insights_exception_handler(
    request: Request, exc: MeetingInsightsError
) -> JSONResponse:
    """Handle tagged library errors (validation, not found, adapter, storage, ...)."""
    request_id = getattr(request.state, "request_id", None)
    envelope = translate(exc)
    status_code = status_for(exc)

    log = logger.warning if status_code < 500 else logger.error
    log(
        "%s %s -> %d %s [request_id=%s]: %s",
        request.method,
        request.url.path,
        status_code,
        envelope.error_code.value,
        request_id,
        envelope.technical_details,
        extra={
            "request_id": request_id,
            "error_kind": exc.kind,
            "error_code": envelope.error_code.value,
        },
    )
    return create_error_response(status_code, envelope, request_id=request_id)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all unhandled exceptions (500 Internal Server Error).

    Logs the full traceback and returns only the translated message.
    """
    request_id = getattr(request.state, "request_id", None)

    logger.exception(
        "Unhandled exception: %s %s [request_id=%s]",
        request.method,
        request.url.path,
        request_id,
        extra={
            "request_id": request_id,
            "exception_type": type(exc).__name__,
        },
        exc_info=exc,
    )
    return create_error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        translate(exc),
        request_id=request_id,
    )


def register_exception_handlers(app) -> None:
    """Register API exception handlers on the FastAPI app."""
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(MeetingInsightsError, meeting_insights_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
