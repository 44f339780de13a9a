"""Tests for AuthService - access token issue and verification."""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import jwt
import pytest

from compilestrength.services.auth_service import (
    AuthService,
    InvalidTokenError,
    TokenExpiredError,
)


class TestAuthServiceInit:
    """Tests for AuthService initialization."""

    def test_defaults_come_from_settings(self):
        settings = MagicMock()
        settings.jwt_secret_key = "settings-secret-key-for-unit-testing-only"
        settings.jwt_algorithm = "HS256"
        settings.access_token_expire_minutes = 15

        with patch("compilestrength.services.auth_service.get_settings", return_value=settings):
            service = AuthService()

        assert service._secret_key == settings.jwt_secret_key
        assert service._access_token_expire_minutes == 15


class TestAccessTokens:
    """Tests for token creation and verification."""

    def test_round_trip_claims(self, auth_service):
        token = auth_service.create_access_token("user-123", "lifter@example.com", name="Lee")

        payload = auth_service.verify_access_token(token)

        assert payload["sub"] == "user-123"
        assert payload["email"] == "lifter@example.com"
        assert payload["name"] == "Lee"
        assert payload["type"] == "access"

    def test_expired_token(self, auth_service):
        token = auth_service.create_access_token(
            "user-123", "lifter@example.com", expires_delta=timedelta(seconds=-10)
        )

        with pytest.raises(TokenExpiredError):
            auth_service.verify_access_token(token)

    def test_wrong_secret(self, auth_service):
        other = AuthService(secret_key="another-secret-key-for-unit-testing-only", algorithm="HS256")
        token = other.create_access_token("user-123", "lifter@example.com")

        with pytest.raises(InvalidTokenError):
            auth_service.verify_access_token(token)

    def test_garbage_token(self, auth_service):
        with pytest.raises(InvalidTokenError):
            auth_service.verify_access_token("not-a-jwt")

    def test_wrong_token_type(self, auth_service):
        token = jwt.encode(
            {"sub": "user-123", "email": "a@b.c", "type": "refresh"},
            "test-secret-key-for-unit-testing-only-32chars",
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError, match="Expected token type 'access'"):
            auth_service.verify_access_token(token)

    def test_missing_email_claim(self, auth_service):
        token = jwt.encode(
            {"sub": "user-123", "type": "access"},
            "test-secret-key-for-unit-testing-only-32chars",
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError, match="missing required claims"):
            auth_service.verify_access_token(token)
