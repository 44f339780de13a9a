"""
Usage API routes.

Provides endpoints for:
- The caller's current period with all three counters
- Quota status for one kind of action
- Recording one action against the current period
"""

import logging

from fastapi import APIRouter, Depends, Request

from ...models.usage import QuotaStatus, UsageKind, UsageSummary
from ...services.usage_service import UsageService
from ..deps import get_usage
from ..middleware.auth import CurrentUser, get_current_user
from ..middleware.rate_limit import RATE_LIMIT_STANDARD, limiter


router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/current", response_model=UsageSummary, response_model_by_alias=True)
@limiter.limit(RATE_LIMIT_STANDARD)
async def get_current_usage(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    usage_service: UsageService = Depends(get_usage),
):
    """Current period summary; 404 without an active subscription."""
    return usage_service.get_current_usage(current_user.user_id)


@router.get("/{kind}", response_model=QuotaStatus, response_model_by_alias=True)
@limiter.limit(RATE_LIMIT_STANDARD)
async def check_quota(
    request: Request,
    kind: UsageKind,
    current_user: CurrentUser = Depends(get_current_user),
    usage_service: UsageService = Depends(get_usage),
):
    """Whether one more `kind` action is allowed right now."""
    return usage_service.check_user_quota(kind, current_user.user_id)


@router.post("/{kind}/increment", response_model=QuotaStatus, response_model_by_alias=True)
@limiter.limit(RATE_LIMIT_STANDARD)
async def increment_usage(
    request: Request,
    kind: UsageKind,
    current_user: CurrentUser = Depends(get_current_user),
    usage_service: UsageService = Depends(get_usage),
):
    """Record one `kind` action; 402 when the period limit is reached."""
    status = usage_service.increment_user_usage(kind, current_user.user_id)
    logger.info(
        f"[usage] {kind.value} recorded for user {current_user.user_id} "
        f"({status.used}/{status.limit})"
    )
    return status
