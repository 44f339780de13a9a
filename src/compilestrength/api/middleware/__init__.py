"""API middleware modules."""

from .auth import (
    CurrentUser,
    get_current_user,
)
from .rate_limit import (
    limiter,
    get_rate_limit_key,
    RATE_LIMIT_AI,
    RATE_LIMIT_STANDARD,
)
from .quota import enforce_quota

__all__ = [
    "CurrentUser",
    "get_current_user",
    "limiter",
    "get_rate_limit_key",
    "RATE_LIMIT_AI",
    "RATE_LIMIT_STANDARD",
    "enforce_quota",
]
