"""
Authentication endpoints for portal customers.

Customers register and sign in with an email or phone number and a
password. Login and register return the customer profile plus a bearer
token; logout revokes the session behind the presented token.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.auth import CustomerRead, LoginRequest, RegisterRequest
from api.schemas.envelope import success_response
from api.services.auth_service import AuthService
from core.config import settings
from core.database import get_session
from core.dependencies import (
    get_auth_service,
    get_bearer_token,
    get_client_ip,
    get_current_customer,
)
from core.rate_limit import limiter
from db.models import Customer

router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit.auth)
async def register(
    request: Request,
    data: RegisterRequest,
    db: AsyncSession = Depends(get_session),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Create a customer account and its ServiceM8 company.

    Raises:
        ConflictError 409: email or phone already registered
        CompanyCreationError 500: ServiceM8 company could not be created
    """
    result = await auth_service.register(
        db,
        data,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return success_response(result, message="Registration successful")


@router.post("/login")
@limiter.limit(settings.rate_limit.auth)
async def login(
    request: Request,
    data: LoginRequest,
    db: AsyncSession = Depends(get_session),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Sign in with an email or phone number."""
    result = await auth_service.login(
        db,
        data.identifier,
        data.password,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return success_response(result, message="Login successful")


@router.post("/logout")
async def logout(
    token: str = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_session),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Revoke the current session. Safe to call more than once."""
    await auth_service.logout(db, token)
    return success_response(message="Logged out")


@router.get("/me")
async def get_me(customer: Customer = Depends(get_current_customer)):
    """Current customer profile."""
    return success_response(CustomerRead.model_validate(customer))
