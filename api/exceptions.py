"""
API Exception Handlers: Domain Error → HTTP Error Mapping

Centralized exception handling for clean error responses.
Every error leaves the API in the same envelope:

    {"success": false, "message": "...", "errors": ["..."]}

429 responses add `retryAfter` (and `data` for the creation cap);
non-production builds add `stack`.
"""

import traceback
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import exc as sa_exc
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.settings import get_settings
from core.exceptions import RateLimitExceededError, ViralPromptsException
from infrastructure.monitoring import get_logger

logger = get_logger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


def error_body(
    message: str,
    errors: Optional[list[str]] = None,
    exc: Optional[BaseException] = None,
    **extra: Any,
) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    body.update(extra)
    if exc is not None and not get_settings().is_production:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


def validation_messages(exc: RequestValidationError) -> list[str]:
    """
    Flatten pydantic errors into human-readable messages.

    Field validators raise with the final client message; pydantic's
    "Value error, " prefix is stripped and combined tag messages are split
    back into one entry per tag.
    """
    messages: list[str] = []
    for error in exc.errors():
        text = str(error.get("msg", "Invalid value"))
        if text.startswith(_VALUE_ERROR_PREFIX):
            messages.extend(text[len(_VALUE_ERROR_PREFIX):].split("; "))
            continue
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {text}" if location else text)
    return messages


async def viral_prompts_exception_handler(request: Request, exc: ViralPromptsException):
    """Render any domain exception with its own status code."""
    request_id = getattr(request.state, "request_id", None)

    if exc.status_code >= 500:
        logger.error("request_failed", request_id=request_id, **exc.to_dict())
        # internals stay in the log
        body = error_body(exc.client_message, exc=exc)
    else:
        logger.info(
            "request_rejected",
            request_id=request_id,
            status_code=exc.status_code,
            error_code=exc.error_code,
            message=exc.message,
        )
        body = error_body(exc.client_message, exc.errors)

    headers = None
    if isinstance(exc, RateLimitExceededError):
        if exc.retry_after is not None:
            body["retryAfter"] = exc.retry_after
        if exc.data is not None:
            body["data"] = exc.data
        headers = dict(exc.headers)
        if exc.retry_after is not None:
            headers["Retry-After"] = str(exc.retry_after)

    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors: every problem, one round trip."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", validation_messages(exc)),
    )


async def integrity_error_handler(request: Request, exc: sa_exc.IntegrityError):
    """Unique violations that were not translated closer to the query."""
    logger.warning("integrity_violation", error=str(exc.orig))
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_body("Resource already exists", ["A record with these values already exists"]),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        request_id=getattr(request.state, "request_id", None),
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", exc=exc),
    )


def add_exception_handlers(app: FastAPI):
    """Add all exception handlers to the FastAPI app."""
    app.add_exception_handler(ViralPromptsException, viral_prompts_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(sa_exc.IntegrityError, integrity_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
