"""Correlation ID middleware."""

from __future__ import annotations

import re
from uuid import uuid4

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

CORRELATION_ID_HEADER = "X-Correlation-ID"
_CONTEXT_KEYS = ("correlation_id", "http_path")
_SAFE_CORRELATION_ID = re.compile(r"[A-Za-z0-9._:-]{1,128}")


def resolve_correlation_id(raw: str | None) -> str:
    """Accept a caller-supplied id only when it is short and log-safe."""
    candidate = (raw or "").strip()
    if _SAFE_CORRELATION_ID.fullmatch(candidate):
        return candidate
    return uuid4().hex


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Tag every session log event of a request with its correlation id and path."""

    async def dispatch(self, request: Request, call_next) -> Response:
        """Bind request context for the current request lifecycle."""
        correlation_id = resolve_correlation_id(request.headers.get(CORRELATION_ID_HEADER))
        request.state.correlation_id = correlation_id
        structlog.contextvars.bind_contextvars(
            correlation_id=correlation_id, http_path=request.url.path
        )

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars(*_CONTEXT_KEYS)

        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
