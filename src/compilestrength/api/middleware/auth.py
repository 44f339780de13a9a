"""Authentication middleware for FastAPI.

Resolves the caller from a bearer access token. A missing or invalid token
is an unauthenticated request and gets HTTP 401.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ...exceptions import UnauthorizedError
from ...services.auth_service import (
    AuthService,
    InvalidTokenError,
    TokenExpiredError,
    get_auth_service,
)


# Security scheme for Bearer token authentication
security = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """The authenticated caller, as supplied by the identity provider."""

    user_id: str
    email: str
    name: Optional[str] = None

    @property
    def id(self) -> str:
        return self.user_id


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> CurrentUser:
    """FastAPI dependency returning the authenticated user.

    The user is also stored on `request.state` so the rate limiter can key
    on it.

    Raises:
        UnauthorizedError (401): If no token is provided or it does not verify
    """
    if credentials is None:
        raise UnauthorizedError("Not authenticated")

    try:
        payload = auth_service.verify_access_token(credentials.credentials)
    except TokenExpiredError:
        raise UnauthorizedError("Token has expired")
    except InvalidTokenError as e:
        raise UnauthorizedError(str(e))

    user = CurrentUser(
        user_id=payload["sub"],
        email=payload["email"],
        name=payload.get("name"),
    )
    request.state.user = user
    return user
