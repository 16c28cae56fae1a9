"""Request context middleware with trace_id support.

The trace_id is taken from the active OpenTelemetry span when one is valid,
then from a Cloudflare ``CF-Ray`` header, and is generated as a UUIDv7
otherwise. It is bound to the structlog context, stored on
``request.state.trace_id`` and returned in the ``X-Trace-ID`` header.
"""

from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware
from uuid_extension import uuid7


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds a per-request trace_id to logs and responses."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Extract/generate trace_id and bind it to the request context."""
        trace_id = self._extract_trace_id(request)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            trace_id=trace_id,
            method=request.method,
            path=request.url.path,
        )
        request.state.trace_id = trace_id

        response = await call_next(request)
        response.headers["X-Trace-ID"] = trace_id
        return response

    def _extract_trace_id(self, request: Request) -> str:
        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            return format(span_context.trace_id, "032x")

        if cf_ray := request.headers.get("CF-Ray"):
            return cf_ray

        return str(uuid7())
