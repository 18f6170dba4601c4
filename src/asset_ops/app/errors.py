"""HTTP translation of the error taxonomy.

Every route answers failures with ``{"error": message}``; stack traces never
leave the process.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from asset_ops.domain.errors import (
    AssetOpsError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Caller-correctable failures; everything else is on our side.
CLIENT_ERRORS = (ValidationError, NotFoundError, ConflictError)


def status_for(exc: Exception) -> int:
    if isinstance(exc, CLIENT_ERRORS):
        return 400
    return 500


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def handle_error(exc: Exception, context: str, status_code: Optional[int] = None) -> JSONResponse:
    """Log and translate an exception raised inside a route.

    *status_code* pins the status for routes whose callers expect a single
    failure code regardless of the error class.
    """
    if isinstance(exc, AssetOpsError):
        status_code = status_code or status_for(exc)
        if status_code >= 500:
            logger.error("%s failed: %s", context, exc)
        else:
            logger.info("%s rejected: %s", context, exc)
        return error_response(status_code, str(exc))

    logger.error("%s unexpected error: %s", context, exc)
    return error_response(status_code or 500, str(exc) or "Unknown error")


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies are the caller's fault: 400, not FastAPI's 422."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return error_response(400, message)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, request_validation_handler)
