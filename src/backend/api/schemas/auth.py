"""
Authentication schemas.

Customers sign in with an email or a phone number plus a password.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import EmailStr, Field, model_validator

from core.schema_base import HTTPSchemaModel


class RegisterRequest(HTTPSchemaModel):
    """Schema for customer registration."""

    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=10, max_length=50)
    password: str = Field(..., min_length=8, max_length=128)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def require_identity(self) -> "RegisterRequest":
        if not self.email and not self.phone:
            raise ValueError("Either email or phone is required")
        return self


class LoginRequest(HTTPSchemaModel):
    """Schema for login. ``identifier`` is an email or a phone number."""

    identifier: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class CustomerRead(HTTPSchemaModel):
    """Public customer profile."""

    id: UUID
    email: Optional[str] = None
    phone: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    address: Optional[str] = None
    servicem8_company_uuid: Optional[str] = None
    created_at: datetime


class AuthResult(HTTPSchemaModel):
    """Customer profile plus the issued bearer token."""

    customer: CustomerRead
    token: str
    expires_at: datetime
