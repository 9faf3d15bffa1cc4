"""
Request context middleware.

Binds the request path, and a correlation id unless disabled, to every log
line emitted while the request is handled. The id is echoed on the response.
"""

import time
import uuid
from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from devquality.consul_service.logging import get_logger

logger = get_logger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Correlation ids and request timing."""

    def __init__(
        self,
        app: ASGIApp,
        header_name: str = "X-Correlation-ID",
        enable_correlation_ids: bool = True,
    ) -> None:
        super().__init__(app)
        self.header_name = header_name
        self.enable_correlation_ids = enable_correlation_ids

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        correlation_id: str | None = None
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(method=request.method, path=request.url.path)

        if self.enable_correlation_ids:
            correlation_id = request.headers.get(self.header_name) or uuid.uuid4().hex
            request.state.correlation_id = correlation_id
            structlog.contextvars.bind_contextvars(correlation_id=correlation_id)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.debug("request.complete", duration_ms=round(duration_ms, 2))
            structlog.contextvars.clear_contextvars()

        if correlation_id is not None:
            response.headers[self.header_name] = correlation_id
        response.headers["X-Response-Time-Ms"] = f"{duration_ms:.2f}"
        return response
