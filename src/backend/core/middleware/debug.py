"""
Debug logging middleware for request troubleshooting.

SECURITY: Only installed when API_DEBUG=True.
Sensitive headers (Authorization, Cookie, API keys) are redacted.
"""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("debug")


class DebugLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, redacted headers, status and duration of each request."""

    SENSITIVE_HEADERS = {"authorization", "cookie", "x-api-key"}

    async def dispatch(self, request: Request, call_next):
        safe_headers = {
            key: "[REDACTED]" if key.lower() in self.SENSITIVE_HEADERS else value
            for key, value in request.headers.items()
        }
        logger.debug(f"Request: {request.method} {request.url.path} | Headers: {safe_headers}")

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"Unhandled error on {request.method} {request.url.path}: {e}", exc_info=True)
            raise

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            f"Response: {response.status_code} | {request.method} {request.url.path} | {elapsed_ms:.1f}ms"
        )
        return response
