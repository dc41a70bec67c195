"""
Clients for external services.
"""
from .servicem8_client import (
    ServiceM8Client,
    ServiceM8Error,
    ServiceM8ResponseError,
    ServiceM8TimeoutError,
)

__all__ = [
    "ServiceM8Client",
    "ServiceM8Error",
    "ServiceM8ResponseError",
    "ServiceM8TimeoutError",
]
