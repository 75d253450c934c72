"""
Exception handlers.

Every error leaves the API as `{ok: false, error: <message>, stack: <trace|null>}`.
The trace is always logged server-side and only included in the body when
DEBUG is on.
"""

import traceback

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.config.settings import settings
from shared.config.logging import rest_api_logger as logger
from shared.utils.schemas import ErrorResponse


def _stack(exc: BaseException) -> str | None:
    if not settings.debug:
        return None
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def error_response(status_code: int, message: str, exc: BaseException, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message, stack=_stack(exc)).model_dump(),
        headers=headers,
    )


def format_validation_errors(exc: RequestValidationError) -> str:
    """
    One readable line per pydantic error.

    ("body", "items", 0, "quantity") -> "items[0].quantity: ..."
    """
    messages = []
    for error in exc.errors():
        path = ""
        for part in error.get("loc", ()):
            if part in ("body", "query", "path"):
                continue
            path += f"[{part}]" if isinstance(part, int) else (f".{part}" if path else str(part))
        message = error.get("msg", "invalid value")
        messages.append(f"{path}: {message}" if path else message)
    return "; ".join(messages) or "invalid request"


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # AppException subclasses have already logged themselves
    return error_response(exc.status_code, str(exc.detail), exc, getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = format_validation_errors(exc)
    logger.warning("Request validation failed", path=request.url.path, error=message)
    return error_response(status.HTTP_400_BAD_REQUEST, message, exc)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "internal error", exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
