"""Authentication service for JWT bearer tokens.

The identity provider issues HS256 access tokens carrying the user's id,
email and display name; this service verifies them. Token creation exists
for local development and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from ..config import get_settings


class AuthServiceError(Exception):
    """Base exception for auth service errors."""

    pass


class TokenExpiredError(AuthServiceError):
    """Raised when a token has expired."""

    pass


class InvalidTokenError(AuthServiceError):
    """Raised when a token is invalid."""

    pass


class AuthService:
    """Service for issuing and verifying access tokens."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_minutes: Optional[int] = None,
    ) -> None:
        """Initialize auth service, defaulting to settings."""
        settings = get_settings()
        self._secret_key = secret_key or settings.jwt_secret_key
        self._algorithm = algorithm or settings.jwt_algorithm
        self._access_token_expire_minutes = (
            access_token_expire_minutes or settings.access_token_expire_minutes
        )

    def create_access_token(
        self,
        user_id: str,
        email: str,
        name: Optional[str] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """Create a JWT access token.

        Args:
            user_id: The user's unique identifier.
            email: The user's email address.
            name: Optional display name.
            expires_delta: Lifetime override (negative values yield expired tokens).

        Returns:
            Encoded JWT access token string.
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self._access_token_expire_minutes))

        payload: dict[str, Any] = {
            "sub": user_id,
            "email": email,
            "exp": expire,
            "iat": now,
            "type": "access",
        }
        if name:
            payload["name"] = name

        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify_access_token(self, token: str) -> dict[str, Any]:
        """Verify and decode an access token.

        Raises:
            TokenExpiredError: If the token has expired.
            InvalidTokenError: If the token is invalid or not an access token.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid token: {e}")

        if payload.get("type") != "access":
            raise InvalidTokenError(
                f"Expected token type 'access', got '{payload.get('type')}'"
            )
        if not payload.get("sub") or not payload.get("email"):
            raise InvalidTokenError("Token is missing required claims")
        return payload


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get or create the auth service singleton."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
