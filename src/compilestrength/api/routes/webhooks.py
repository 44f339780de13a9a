"""Lemon Squeezy webhook endpoint.

No bearer auth: deliveries are authenticated by the X-Signature header, a
hex HMAC-SHA256 of the raw body under the shared webhook secret.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from ...config import get_settings
from ...exceptions import CompileStrengthError, ErrorCode
from ...services.billing_service import BillingService, verify_signature
from ..deps import get_billing


router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/webhooks/lemonsqueezy")
async def lemonsqueezy_webhook(
    request: Request,
    x_signature: Optional[str] = Header(None, alias="X-Signature"),
    billing: BillingService = Depends(get_billing),
):
    """
    Verify, store and process one billing event.

    Returns 401 on a bad signature and 400 when the body has no
    `meta.event_name`. Processing failures are recorded on the stored
    event and do not fail the delivery.
    """
    secret = get_settings().lemonsqueezy_webhook_secret
    if not secret:
        logger.error("[webhooks] LEMONSQUEEZY_WEBHOOK_SECRET is not configured")
        raise CompileStrengthError(
            "Lemon Squeezy isn't set up correctly on the server.",
            code=ErrorCode.INTERNAL_ERROR,
            status_code=500,
        )

    payload = await request.body()
    verify_signature(payload, x_signature, secret)

    event = billing.receive(payload)
    return {
        "received": True,
        "eventId": event.id,
        "processed": event.processed,
    }
