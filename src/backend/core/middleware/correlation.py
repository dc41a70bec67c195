"""
Correlation ID middleware for request tracing.

Adds an X-Correlation-ID header to every request and response so a single
customer action can be followed through the portal logs and the ServiceM8
calls it triggers.
"""

import uuid
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

CORRELATION_HEADER = "X-Correlation-ID"

# Context variable holding the correlation ID for the current request
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """
    Get the correlation ID for the current request.

    Returns:
        str: Correlation ID or empty string outside a request
    """
    return correlation_id_var.get("")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation ID to requests and responses.

    - Reuses the caller's X-Correlation-ID or generates one
    - Stores it in a context variable for the logging filter
    - Echoes it on the response
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        token = correlation_id_var.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)

        response.headers[CORRELATION_HEADER] = correlation_id
        return response
