"""
Authentication and service dependencies for FastAPI.

Services are built once in the application lifespan and stored on
``app.state``; the getters below hand them to endpoints so tests can swap
them through ``app.dependency_overrides``.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.auth_service import AuthService
from api.services.booking_service import BookingService
from api.services.job_service import JobService
from api.services.message_service import MessageService
from core.database import get_session
from core.exceptions import AuthenticationError
from db.models import Customer

# Errors are raised as AppError so they share the response envelope
security = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_booking_service(request: Request) -> BookingService:
    return request.app.state.booking_service


def get_job_service(request: Request) -> JobService:
    return request.app.state.job_service


def get_message_service(request: Request) -> MessageService:
    return request.app.state.message_service


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Extract the raw bearer token.

    Raises:
        AuthenticationError: header missing or not a bearer token
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")
    return credentials.credentials


async def get_current_customer(
    token: str = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_session),
    auth_service: AuthService = Depends(get_auth_service),
) -> Customer:
    """Get the authenticated customer for the request.

    Raises:
        AuthenticationError: token invalid, expired or revoked
    """
    return await auth_service.get_current_customer(db, token)


def get_client_ip(request: Request) -> Optional[str]:
    """Client address, preferring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
