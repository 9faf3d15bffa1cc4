"""
Exception handlers translating failures into the response envelope.

The mapping is total: anything not matched below is reported as 500.
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from devquality.consul_service.exceptions import ConsulServiceError
from devquality.consul_service.logging import get_logger
from devquality.consul_service.responses import ApiResponse

logger = get_logger(__name__)


def _envelope(
    request: Request,
    status_code: int,
    message: str,
    error: str,
    data: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ApiResponse.fail(message, error, path=request.url.path, data=data)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True),
        headers=headers,
    )


async def consul_service_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Typed service errors carry their own status and code."""
    if not isinstance(exc, ConsulServiceError):
        raise exc
    if exc.status_code >= 500:
        logger.error(
            "api.error",
            path=request.url.path,
            error_code=exc.error_code,
            error=exc.message,
            cause=repr(exc.__cause__) if exc.__cause__ else None,
        )
    else:
        logger.warning(
            "api.error", path=request.url.path, error_code=exc.error_code, error=exc.message
        )
    return _envelope(request, int(exc.status_code), exc.message, exc.error_code)


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Request validation failures become 400 with a field -> message map."""
    if not isinstance(exc, RequestValidationError):
        raise exc
    errors: dict[str, str] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors[".".join(loc) or "request"] = error.get("msg", "Invalid value")

    logger.warning("api.validation_failed", path=request.url.path, errors=errors)
    return _envelope(
        request,
        status.HTTP_400_BAD_REQUEST,
        "Validation failed",
        "VALIDATION_FAILED",
        data=errors,
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Framework HTTP errors (unknown route, wrong method) keep their status."""
    if not isinstance(exc, StarletteHTTPException):
        raise exc
    return _envelope(
        request,
        exc.status_code,
        str(exc.detail),
        "HTTP_ERROR",
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for anything unclassified."""
    logger.exception("api.unhandled_error", path=request.url.path, error=str(exc))
    return _envelope(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An internal server error occurred",
        "INTERNAL_SERVER_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the application."""
    app.add_exception_handler(ConsulServiceError, consul_service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
