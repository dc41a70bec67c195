"""
Security utilities for JWT token generation and validation.

Tokens carry the customer id (``sub``) and identity (email or phone) and
are signed with the configured secret. Only a SHA-256 of each issued token
is ever stored.
"""

import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple
from uuid import UUID, uuid4

import jwt
from jwt.exceptions import ExpiredSignatureError
from jwt.exceptions import InvalidTokenError as JWTInvalidTokenError

from core.config import settings
from core.exceptions import InvalidTokenError, TokenExpiredError


def create_access_token(
    customer_id: UUID,
    identity: str,
    expires_delta: Optional[timedelta] = None,
) -> Tuple[str, datetime]:
    """Create a JWT access token for a customer.

    Args:
        customer_id: Customer primary key, stored as ``sub``
        identity: Email or phone the customer signs in with
        expires_delta: Custom lifetime (default: SECURITY_ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        Tuple of (token, naive UTC expiry)
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.security.access_token_expire_minutes)

    now = datetime.now(timezone.utc)
    expire = now + expires_delta
    payload = {
        "sub": str(customer_id),
        "identity": identity,
        "type": "access",
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
        "jti": str(uuid4()),
        "iss": settings.security.jwt_issuer,
        "aud": settings.security.jwt_audience,
    }

    token = jwt.encode(
        payload,
        settings.security.secret_key,
        algorithm=settings.security.algorithm,
    )
    return token, expire.replace(tzinfo=None)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        TokenExpiredError: If token has expired
        InvalidTokenError: If signature, issuer, audience or shape is wrong
    """
    try:
        payload = jwt.decode(
            token,
            settings.security.secret_key,
            algorithms=[settings.security.algorithm],
            audience=settings.security.jwt_audience,
            issuer=settings.security.jwt_issuer,
        )
    except ExpiredSignatureError:
        raise TokenExpiredError()
    except JWTInvalidTokenError:
        raise InvalidTokenError()

    if payload.get("type") != "access" or not payload.get("sub"):
        raise InvalidTokenError()
    return payload


def get_customer_id_from_token(payload: Dict[str, Any]) -> UUID:
    """Extract the customer id from a decoded payload."""
    try:
        return UUID(payload["sub"])
    except (KeyError, ValueError, TypeError):
        raise InvalidTokenError()


def hash_token(token: str) -> str:
    """Create a SHA-256 hash of a token for storage."""
    return hashlib.sha256(token.encode()).hexdigest()
