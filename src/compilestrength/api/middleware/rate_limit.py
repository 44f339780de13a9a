"""Rate limiting middleware for FastAPI.

Uses slowapi, keyed by user id when the request is authenticated and by
client IP otherwise.
"""

from typing import Optional

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address


def get_rate_limit_key(request: Request) -> str:
    """Rate limit key: `user:<id>` if authenticated, else `ip:<address>`."""
    user: Optional[object] = getattr(request.state, "user", None)
    if user is not None:
        user_id = getattr(user, "user_id", None)
        if user_id:
            return f"user:{user_id}"

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=get_rate_limit_key)


RATE_LIMIT_AI = "10/minute"  # chat
RATE_LIMIT_STANDARD = "60/minute"  # everything else
