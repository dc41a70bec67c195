"""
Authentication service for portal customers.

Customers register and sign in with an email or phone number plus a
password. Every issued JWT is backed by a session row keyed on the token's
SHA-256, so logout revokes a token before it expires.
"""

import logging
from typing import Optional

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.auth import AuthResult, CustomerRead, RegisterRequest
from core.config import settings
from core.exceptions import (
    AuthenticationError,
    CompanyCreationError,
    ConflictError,
    MalformedUpstreamResponseError,
)
from core.metrics import auth_attempts
from core.security import (
    create_access_token,
    decode_token,
    get_customer_id_from_token,
    hash_token,
)
from db.models import Customer
from repositories.customer_repository import CustomerRepository
from repositories.session_repository import SessionRepository
from services.servicem8_client import ServiceM8Client, ServiceM8Error

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes; newer releases reject longer input
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password to hash
        rounds: Cost factor (default: SECURITY_BCRYPT_ROUNDS)

    Returns:
        Bcrypt hash string
    """
    salt = bcrypt.gensalt(rounds=rounds or settings.security.bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its bcrypt hash.

    Returns:
        True if password matches, False otherwise (including malformed hashes)
    """
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def normalize_email(email: Optional[str]) -> Optional[str]:
    if email is None:
        return None
    return email.strip().lower() or None


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    if phone is None:
        return None
    return phone.strip() or None


class AuthService:
    """Registration, login, logout and bearer-token resolution."""

    def __init__(self, client: ServiceM8Client):
        self.client = client

    async def _issue_token(
        self,
        db: AsyncSession,
        customer: Customer,
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> AuthResult:
        token, expires_at = create_access_token(customer.id, customer.identity)
        await SessionRepository.create_session(
            db,
            customer_id=customer.id,
            token_hash=hash_token(token),
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return AuthResult(
            customer=CustomerRead.model_validate(customer),
            token=token,
            expires_at=expires_at,
        )

    async def register(
        self,
        db: AsyncSession,
        data: RegisterRequest,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuthResult:
        """
        Create a customer account and its ServiceM8 company, then sign in.

        Raises:
            ConflictError: email or phone already registered
            CompanyCreationError: ServiceM8 company could not be created
        """
        email = normalize_email(data.email)
        phone = normalize_phone(data.phone)

        existing = await CustomerRepository.find_by_identity(db, email=email, phone=phone)
        if existing is not None:
            auth_attempts.labels(action="register", result="conflict").inc()
            raise ConflictError("An account with this email or phone already exists")

        customer = Customer(
            email=email,
            phone=phone,
            first_name=data.first_name,
            last_name=data.last_name,
            address=data.address,
            password_hash="",
        )

        try:
            company = await self.client.create_company(
                name=customer.display_name,
                email=email,
                mobile=phone,
                address=data.address,
            )
        except (ServiceM8Error, MalformedUpstreamResponseError) as e:
            auth_attempts.labels(action="register", result="failure").inc()
            logger.error(f"ServiceM8 company creation failed during registration: {e}")
            raise CompanyCreationError() from e

        customer.servicem8_company_uuid = company.uuid
        customer.password_hash = hash_password(data.password)

        db.add(customer)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            # Lost a race with a concurrent registration; the company stays orphaned
            logger.warning(f"Registration conflict after creating company {company.uuid}: {e}")
            raise ConflictError("An account with this email or phone already exists") from e
        await db.refresh(customer)

        result = await self._issue_token(db, customer, ip_address, user_agent)
        auth_attempts.labels(action="register", result="success").inc()
        logger.info(f"Customer registered | ID: {customer.id} | Company: {company.uuid}")
        return result

    async def login(
        self,
        db: AsyncSession,
        identifier: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuthResult:
        """
        Sign in with an email or phone number.

        Raises:
            AuthenticationError: unknown identity or wrong password
        """
        value = identifier.strip()
        customer = await CustomerRepository.find_by_identity(
            db,
            email=normalize_email(value),
            phone=value,
        )

        if customer is None or not verify_password(password, customer.password_hash):
            auth_attempts.labels(action="login", result="failure").inc()
            logger.info("Login failed: invalid credentials")
            raise AuthenticationError("Invalid credentials")

        result = await self._issue_token(db, customer, ip_address, user_agent)
        auth_attempts.labels(action="login", result="success").inc()
        logger.info(f"Customer logged in | ID: {customer.id}")
        return result

    async def logout(self, db: AsyncSession, token: str) -> None:
        """Revoke the session behind a token. Unknown tokens are ignored."""
        deleted = await SessionRepository.delete_by_token_hash(db, hash_token(token))
        if deleted:
            logger.info("Session revoked")

    async def get_current_customer(self, db: AsyncSession, token: str) -> Customer:
        """
        Resolve a bearer token to its customer.

        Raises:
            TokenExpiredError / InvalidTokenError: JWT checks failed
            AuthenticationError: session revoked or customer gone
        """
        payload = decode_token(token)
        customer_id = get_customer_id_from_token(payload)

        if settings.security.enforce_sessions:
            session = await SessionRepository.find_active_by_token_hash(db, hash_token(token))
            if session is None:
                raise AuthenticationError("Session has expired or was revoked")

        customer = await CustomerRepository.find_by_id(db, customer_id)
        if customer is None:
            raise AuthenticationError("Customer not found")
        return customer
