"""Usage accounting: per-period quotas for compiles, routine edits and AI messages.

Periods roll over lazily. Nothing is scheduled: every read computes the
current window from the subscription's creation time and the clock, and
creates the row on first touch.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from ..config import get_settings
from ..db.database import utc_now
from ..db.repositories.subscription_repository import (
    Subscription,
    SubscriptionRepository,
    get_subscription_repository,
)
from ..db.repositories.usage_repository import (
    UsagePeriod,
    UsageRepository,
    get_usage_repository,
)
from ..exceptions import QuotaExceededError, SubscriptionNotFoundError
from ..models.usage import QuotaStatus, UsageKind, UsageSummary


logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def default_limits() -> Dict[UsageKind, int]:
    """Per-period limits for newly created periods, from settings."""
    settings = get_settings()
    return {
        UsageKind.COMPILE: settings.default_compile_limit,
        UsageKind.ROUTINE_EDIT: settings.default_routine_edit_limit,
        UsageKind.AI_MESSAGE: settings.default_ai_message_limit,
    }


def _status(period: UsagePeriod, kind: UsageKind) -> QuotaStatus:
    used = period.used(kind)
    limit = period.limit(kind)
    return QuotaStatus(
        allowed=used < limit,
        used=used,
        limit=limit,
        resets_at=period.period_end,
    )


class UsageService:
    """
    Answers "may this subscription do X now" and records that it did.

    Args:
        subscription_repo: Source of subscription records
        usage_repo: Storage for usage periods
        limits: Limits stamped onto new periods (default: from settings)
        clock: Returns the current time; injectable for tests
    """

    def __init__(
        self,
        subscription_repo: SubscriptionRepository,
        usage_repo: UsageRepository,
        limits: Optional[Dict[UsageKind, int]] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._subscriptions = subscription_repo
        self._usage = usage_repo
        self._limits = limits or default_limits()
        self._clock = clock or utc_now

    @property
    def limits(self) -> Dict[UsageKind, int]:
        return dict(self._limits)

    def _require_subscription(self, subscription_id: str) -> Subscription:
        subscription = self._subscriptions.get_subscription(subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(f"Subscription {subscription_id} not found")
        return subscription

    def _current_period(self, subscription: Subscription) -> UsagePeriod:
        return self._usage.get_or_create_period(
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            anchor=subscription.created_at,
            now=self._clock(),
            limits=self._limits,
        )

    # ==================== Subscription-level operations ====================

    def get_or_create_current_period(self, subscription_id: str) -> UsagePeriod:
        """
        Return the period containing now for a subscription.

        Raises:
            SubscriptionNotFoundError: If the subscription id does not resolve
        """
        subscription = self._require_subscription(subscription_id)
        return self._current_period(subscription)

    def check_quota(self, kind: UsageKind, subscription_id: Optional[str]) -> QuotaStatus:
        """
        Report whether one more `kind` action is allowed.

        A missing subscription is not an error: the answer is "not allowed"
        with the policy default as the limit, so callers can show an upgrade
        prompt.
        """
        kind = UsageKind(kind)
        subscription = (
            self._subscriptions.get_subscription(subscription_id)
            if subscription_id
            else None
        )
        if subscription is None:
            return QuotaStatus(allowed=False, used=0, limit=self._limits[kind])

        return _status(self._current_period(subscription), kind)

    def increment_usage(self, kind: UsageKind, subscription_id: str) -> UsagePeriod:
        """
        Record one `kind` action against the current period.

        The limit is re-checked at write time regardless of any earlier
        check_quota call.

        Raises:
            SubscriptionNotFoundError: If the subscription id does not resolve
            QuotaExceededError: If the counter is already at its limit
        """
        kind = UsageKind(kind)
        subscription = self._require_subscription(subscription_id)

        period, applied = self._usage.increment_if_below_limit(
            kind=kind,
            subscription_id=subscription.id,
            user_id=subscription.user_id,
            anchor=subscription.created_at,
            now=self._clock(),
            limits=self._limits,
        )
        if not applied:
            logger.info(
                f"[usage] {kind.value} limit reached for subscription {subscription.id} "
                f"({period.used(kind)}/{period.limit(kind)})"
            )
            raise QuotaExceededError(
                kind=kind.value,
                used=period.used(kind),
                limit=period.limit(kind),
                resets_at=period.period_end.isoformat(),
            )
        return period

    # ==================== User-level convenience ====================

    def get_active_subscription(self, user_id: str) -> Optional[Subscription]:
        return self._subscriptions.get_active_subscription(user_id)

    def check_user_quota(self, kind: UsageKind, user_id: str) -> QuotaStatus:
        """check_quota against the user's active subscription, if any."""
        subscription = self.get_active_subscription(user_id)
        return self.check_quota(kind, subscription.id if subscription else None)

    def increment_user_usage(self, kind: UsageKind, user_id: str) -> QuotaStatus:
        """
        increment_usage against the user's active subscription.

        Raises:
            SubscriptionNotFoundError: If the user has no active subscription
            QuotaExceededError: If the counter is already at its limit
        """
        kind = UsageKind(kind)
        subscription = self.get_active_subscription(user_id)
        if subscription is None:
            raise SubscriptionNotFoundError()
        period = self.increment_usage(kind, subscription.id)
        return _status(period, kind)

    def get_current_usage(self, user_id: str) -> UsageSummary:
        """
        Summarize all counters of the user's current period.

        Raises:
            SubscriptionNotFoundError: If the user has no active subscription
        """
        subscription = self.get_active_subscription(user_id)
        if subscription is None:
            raise SubscriptionNotFoundError()

        period = self._current_period(subscription)
        return UsageSummary(
            period_id=period.id,
            period_start=period.period_start,
            period_end=period.period_end,
            compiles=_status(period, UsageKind.COMPILE),
            routine_edits=_status(period, UsageKind.ROUTINE_EDIT),
            ai_messages=_status(period, UsageKind.AI_MESSAGE),
        )


# Singleton instance for dependency injection
_usage_service: Optional[UsageService] = None


def get_usage_service() -> UsageService:
    """Get or create the singleton UsageService instance."""
    global _usage_service
    if _usage_service is None:
        _usage_service = UsageService(
            subscription_repo=get_subscription_repository(),
            usage_repo=get_usage_repository(),
        )
    return _usage_service
