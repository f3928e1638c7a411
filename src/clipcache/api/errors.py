"""Mapping of domain errors to JSON error responses.

Every failure leaves the API as a JSON body with a machine-checkable
``error`` field. Stack traces and local paths are never included.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from clipcache.core.exceptions import (
    ClipcacheError,
    InvalidInputError,
    NoMediaFoundError,
)


logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal Server Error"


def error_payload(exc: ClipcacheError) -> tuple[int, dict[str, str]]:
    """Translate a domain error into (status code, JSON body)."""
    if isinstance(exc, InvalidInputError):
        return 400, {"error": "Invalid URL format"}
    if isinstance(exc, NoMediaFoundError):
        return 404, {"error": "no download URL found"}
    return 500, {"error": INTERNAL_ERROR, "kind": exc.kind, "message": str(exc)}


async def clipcache_error_handler(
    request: Request, exc: ClipcacheError
) -> JSONResponse:
    status_code, body = error_payload(exc)
    if status_code >= 500:
        logger.error(
            "Download error at step %s: %s", exc.step or "unknown", exc,
            exc_info=exc.cause,
        )
    else:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content=body)


async def validation_error_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    logger.info("Malformed body on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"error": "Invalid URL format"})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error on %s", request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": INTERNAL_ERROR,
            "kind": "internal",
            "message": "Unexpected error",
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ClipcacheError, clipcache_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
