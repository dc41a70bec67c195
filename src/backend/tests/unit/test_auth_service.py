"""
Unit tests for the authentication service.

Tests:
- Registration creates the ServiceM8 company and a session
- Duplicate identities are rejected
- Login by email (any case) or phone
- Logout revokes the token before it expires
- Password hashing helpers
"""

import pytest

from api.schemas.auth import RegisterRequest
from api.services.auth_service import hash_password, verify_password
from core.exceptions import (
    AuthenticationError,
    CompanyCreationError,
    ConflictError,
    InvalidTokenError,
)
from core.security import hash_token
from db.models import Customer
from repositories.customer_repository import CustomerRepository
from repositories.session_repository import SessionRepository
from tests.factories import DEFAULT_PASSWORD


def _registration(**overrides) -> RegisterRequest:
    data = {
        "email": "Olivia.Smith@example.com",
        "phone": "0412345678",
        "password": "s3cure-password",
        "first_name": "Olivia",
        "last_name": "Smith",
        "address": "1 Main St",
    }
    data.update(overrides)
    return RegisterRequest(**data)


class TestRegister:
    """Tests for AuthService.register."""

    @pytest.mark.asyncio
    async def test_register_creates_company_and_session(self, db_session, servicem8, auth_service):
        result = await auth_service.register(db_session, _registration(), ip_address="10.0.0.1")

        assert result.customer.email == "olivia.smith@example.com"
        assert result.customer.servicem8_company_uuid in servicem8.companies
        assert servicem8.companies[result.customer.servicem8_company_uuid]["name"] == "Olivia Smith"

        session = await SessionRepository.find_active_by_token_hash(db_session, hash_token(result.token))
        assert session is not None
        assert session.customer_id == result.customer.id
        assert session.ip_address == "10.0.0.1"

        stored = await CustomerRepository.find_by_id(db_session, result.customer.id)
        assert stored.password_hash != "s3cure-password"
        assert verify_password("s3cure-password", stored.password_hash)

    @pytest.mark.asyncio
    async def test_phone_only_registration(self, db_session, servicem8, auth_service):
        result = await auth_service.register(db_session, _registration(email=None, phone=" 0499888777 "))

        assert result.customer.email is None
        assert result.customer.phone == "0499888777"

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, db_session, servicem8, auth_service, customer):
        with pytest.raises(ConflictError):
            await auth_service.register(db_session, _registration(email=customer.email.upper(), phone=None))

        assert servicem8.companies == {}

    @pytest.mark.asyncio
    async def test_duplicate_phone_conflicts(self, db_session, servicem8, auth_service, customer):
        with pytest.raises(ConflictError):
            await auth_service.register(db_session, _registration(email="new@example.com", phone=customer.phone))

    @pytest.mark.asyncio
    async def test_company_failure_aborts_registration(self, db_session, servicem8, auth_service):
        servicem8.fail("POST", "/company.json", 500)

        with pytest.raises(CompanyCreationError):
            await auth_service.register(db_session, _registration())

        assert await CustomerRepository.count(db_session) == 0

    def test_identity_is_required(self):
        with pytest.raises(ValueError):
            RegisterRequest(password="s3cure-password")

    def test_short_password_is_rejected(self):
        with pytest.raises(ValueError):
            _registration(password="short")


class TestLogin:
    """Tests for AuthService.login."""

    @pytest.mark.asyncio
    async def test_login_with_email_any_case(self, db_session, auth_service, customer):
        result = await auth_service.login(db_session, f"  {customer.email.upper()} ", DEFAULT_PASSWORD)

        assert result.customer.id == customer.id
        assert result.token

    @pytest.mark.asyncio
    async def test_login_with_phone(self, db_session, auth_service, customer):
        result = await auth_service.login(db_session, customer.phone, DEFAULT_PASSWORD)

        assert result.customer.id == customer.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, db_session, auth_service, customer):
        with pytest.raises(AuthenticationError) as exc_info:
            await auth_service.login(db_session, customer.email, "not-the-password")

        assert exc_info.value.message == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_unknown_identity(self, db_session, auth_service, customer):
        with pytest.raises(AuthenticationError) as exc_info:
            await auth_service.login(db_session, "nobody@example.com", DEFAULT_PASSWORD)

        assert exc_info.value.message == "Invalid credentials"


class TestSessions:
    """Tests for token resolution and revocation."""

    @pytest.mark.asyncio
    async def test_token_resolves_to_customer(self, db_session, auth_service, customer):
        result = await auth_service.login(db_session, customer.email, DEFAULT_PASSWORD)

        resolved = await auth_service.get_current_customer(db_session, result.token)

        assert isinstance(resolved, Customer)
        assert resolved.id == customer.id

    @pytest.mark.asyncio
    async def test_logout_revokes_token(self, db_session, auth_service, customer):
        result = await auth_service.login(db_session, customer.email, DEFAULT_PASSWORD)

        await auth_service.logout(db_session, result.token)

        with pytest.raises(AuthenticationError):
            await auth_service.get_current_customer(db_session, result.token)

    @pytest.mark.asyncio
    async def test_logout_is_idempotent(self, db_session, auth_service, customer):
        result = await auth_service.login(db_session, customer.email, DEFAULT_PASSWORD)

        await auth_service.logout(db_session, result.token)
        await auth_service.logout(db_session, result.token)

    @pytest.mark.asyncio
    async def test_garbage_token(self, db_session, auth_service):
        with pytest.raises(InvalidTokenError):
            await auth_service.get_current_customer(db_session, "not-a-jwt")


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("s3cure-password", rounds=4)

        assert hashed.startswith("$2")
        assert verify_password("s3cure-password", hashed) is True
        assert verify_password("wrong", hashed) is False

    def test_malformed_hash_does_not_verify(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False

    def test_long_passwords_are_supported(self):
        hashed = hash_password("x" * 100, rounds=4)

        assert verify_password("x" * 100, hashed) is True
