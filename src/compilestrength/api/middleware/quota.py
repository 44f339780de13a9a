"""Quota enforcement for metered endpoints.

Returns HTTP 402 (QuotaExceededError) when the caller has no allowance
left in the current period, including when there is no active
subscription at all.
"""

import logging

from ...exceptions import QuotaExceededError, SubscriptionNotFoundError
from ...models.usage import QuotaStatus, UsageKind
from ...services.usage_service import UsageService


logger = logging.getLogger(__name__)


def enforce_quota(usage_service: UsageService, kind: UsageKind, user_id: str) -> QuotaStatus:
    """Check the caller's allowance for `kind` and record one use.

    The check is advisory; the increment re-validates the limit, so a
    concurrent request that used the last slot still yields 402 here.

    Raises:
        QuotaExceededError (402): If the action is not allowed
    """
    status = usage_service.check_user_quota(kind, user_id)
    if not status.allowed:
        logger.info(f"[quota] {kind.value} denied for user {user_id} ({status.used}/{status.limit})")
        raise QuotaExceededError(
            kind=kind.value,
            used=status.used,
            limit=status.limit,
            resets_at=status.resets_at.isoformat() if status.resets_at else None,
        )

    try:
        return usage_service.increment_user_usage(kind, user_id)
    except SubscriptionNotFoundError:
        # Subscription lapsed between check and increment
        raise QuotaExceededError(kind=kind.value, used=0, limit=status.limit)
