"""Repository implementations backed by SQLite."""

from .subscription_repository import (
    Plan,
    Subscription,
    SubscriptionRepository,
    get_subscription_repository,
)
from .usage_repository import UsagePeriod, UsageRepository, get_usage_repository
from .program_repository import (
    ProgramRepository,
    WorkoutProgram,
    get_program_repository,
    infer_day_type,
)
from .session_repository import (
    SessionRepository,
    WorkoutSession,
    WorkoutSet,
    get_session_repository,
)

__all__ = [
    # Billing
    "Plan",
    "Subscription",
    "SubscriptionRepository",
    "get_subscription_repository",
    # Usage
    "UsagePeriod",
    "UsageRepository",
    "get_usage_repository",
    # Programs
    "ProgramRepository",
    "WorkoutProgram",
    "get_program_repository",
    "infer_day_type",
    # Logging
    "SessionRepository",
    "WorkoutSession",
    "WorkoutSet",
    "get_session_repository",
]
