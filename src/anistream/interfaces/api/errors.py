"""Mapping of pipeline errors to HTTP responses."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from anistream.domain.exceptions import AnistreamError, ErrorKind

log = structlog.get_logger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.CONNECTION: 503,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.SERVER: 502,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ACCESS_DENIED: 403,
    ErrorKind.REQUEST: 400,
    ErrorKind.MALFORMED: 502,
    ErrorKind.RESOLUTION: 502,
    ErrorKind.NO_SOURCES: 404,
}


def error_payload(exc: AnistreamError) -> dict[str, str]:
    return {
        "error": type(exc).__name__,
        "kind": exc.kind.value,
        "title": exc.title,
        "message": exc.user_message,
        "detail": str(exc),
    }


async def anistream_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, AnistreamError)
    status = STATUS_BY_KIND.get(exc.kind, 500)
    log.info(
        "api_error",
        path=request.url.path,
        status_code=status,
        kind=exc.kind.value,
        error=str(exc),
    )
    return JSONResponse(status_code=status, content=error_payload(exc))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AnistreamError, anistream_error_handler)
