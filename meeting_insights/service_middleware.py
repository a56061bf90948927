"""Request logging for the analysis API."""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128


def _request_id_for(request: Request) -> str:
    """Reuse a caller-supplied request id, or mint a new one."""
    supplied = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if supplied and len(supplied) <= MAX_REQUEST_ID_LENGTH:
        return supplied
    return str(uuid.uuid4())


async def log_requests(request: Request, call_next):
    """
    Tag each API call with a request id and log how it went.

    The id lands on ``request.state.request_id`` so the error handlers can
    put it in their log lines, and is echoed back in ``X-Request-ID``.
    Transcript bodies are never logged; only their declared size is.
    """
    request_id = _request_id_for(request)
    request.state.request_id = request_id

    logger.debug(
        "API call %s %s received [request_id=%s]",
        request.method,
        request.url.path,
        request_id,
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "content_length": request.headers.get("content-length"),
        },
    )

    started = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - started) * 1000

    log = logger.warning if response.status_code >= 500 else logger.info
    log(
        "API call %s %s answered %d in %.1f ms [request_id=%s]",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
        request_id,
        extra={
            "request_id": request_id,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )

    response.headers[REQUEST_ID_HEADER] = request_id
    return response
