"""
Middleware classes for FastAPI application.

This package contains all custom middleware used by the application.
"""

from .correlation import CorrelationIdMiddleware, get_correlation_id
from .debug import DebugLoggingMiddleware
from .security_headers import SecurityHeadersMiddleware

__all__ = [
    "CorrelationIdMiddleware",
    "DebugLoggingMiddleware",
    "SecurityHeadersMiddleware",
    "get_correlation_id",
]
