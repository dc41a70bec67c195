"""
Unit tests for JWT helpers and ServiceM8 date handling.
"""

from datetime import datetime, timedelta
from uuid import uuid4

import jwt
import pytest

from api.schemas.servicem8 import format_servicem8_datetime, parse_servicem8_datetime
from core.config import settings
from core.exceptions import InvalidTokenError, TokenExpiredError
from core.security import (
    create_access_token,
    decode_token,
    get_customer_id_from_token,
    hash_token,
)
from db.models import utc_now


class TestAccessTokens:
    def test_round_trip_claims(self):
        customer_id = uuid4()
        token, expires_at = create_access_token(customer_id, "olivia@example.com")

        payload = decode_token(token)

        assert get_customer_id_from_token(payload) == customer_id
        assert payload["identity"] == "olivia@example.com"
        assert payload["type"] == "access"
        assert payload["iss"] == settings.security.jwt_issuer
        assert payload["aud"] == settings.security.jwt_audience
        assert payload["jti"]
        assert expires_at.tzinfo is None

    def test_default_lifetime_is_seven_days(self):
        _, expires_at = create_access_token(uuid4(), "0412345678")

        remaining = expires_at - utc_now()
        assert timedelta(days=6, hours=23) < remaining <= timedelta(days=7)

    def test_expired_token(self):
        token, _ = create_access_token(uuid4(), "x@example.com", expires_delta=timedelta(seconds=-10))

        with pytest.raises(TokenExpiredError):
            decode_token(token)

    def test_wrong_audience(self):
        token = jwt.encode(
            {"sub": str(uuid4()), "type": "access", "aud": "someone-else", "iss": settings.security.jwt_issuer},
            settings.security.secret_key,
            algorithm=settings.security.algorithm,
        )

        with pytest.raises(InvalidTokenError):
            decode_token(token)

    def test_wrong_signature(self):
        token, _ = create_access_token(uuid4(), "x@example.com")
        tampered = token[:-4] + ("AAAA" if not token.endswith("AAAA") else "BBBB")

        with pytest.raises(InvalidTokenError):
            decode_token(tampered)

    def test_non_uuid_subject(self):
        with pytest.raises(InvalidTokenError):
            get_customer_id_from_token({"sub": "not-a-uuid"})

    def test_hash_token_is_stable(self):
        assert hash_token("abc") == hash_token("abc")
        assert hash_token("abc") != hash_token("abd")
        assert len(hash_token("abc")) == 64


class TestServiceM8Dates:
    def test_parse_servicem8_format(self):
        assert parse_servicem8_datetime("2026-03-01 09:30:00") == datetime(2026, 3, 1, 9, 30)

    def test_null_placeholder(self):
        assert parse_servicem8_datetime("0000-00-00 00:00:00") is None
        assert parse_servicem8_datetime("") is None
        assert parse_servicem8_datetime(None) is None

    def test_iso_with_offset_is_normalized_to_utc(self):
        assert parse_servicem8_datetime("2026-03-01T19:30:00+10:00") == datetime(2026, 3, 1, 9, 30)

    def test_format(self):
        assert format_servicem8_datetime(datetime(2026, 3, 1, 9, 30)) == "2026-03-01 09:30:00"
        assert format_servicem8_datetime(None) is None
