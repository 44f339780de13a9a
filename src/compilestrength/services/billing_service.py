"""Billing webhook handling (Lemon Squeezy).

Handles subscription lifecycle events:
- subscription_created
- subscription_updated
- subscription_cancelled / subscription_expired
- subscription_paused / subscription_resumed / subscription_unpaused

Every delivery is stored first, then processed; the outcome is written
back onto the stored event.
"""

import hashlib
import hmac
import json
import logging
import sqlite3
from typing import Any, Dict, Optional

from ..db.database import parse_timestamp
from ..db.repositories.subscription_repository import (
    SubscriptionRepository,
    WebhookEvent,
    get_subscription_repository,
)
from ..exceptions import ValidationError, WebhookSignatureError


logger = logging.getLogger(__name__)


def verify_signature(payload: bytes, signature: Optional[str], secret: str) -> None:
    """
    Verify the X-Signature header (hex HMAC-SHA256 of the raw body).

    Raises:
        WebhookSignatureError: If the signature is missing or does not match
    """
    digest = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    # Bytes, so a non-ASCII header is a mismatch rather than a TypeError
    if not signature or not hmac.compare_digest(
        digest.encode("ascii"), signature.encode("utf-8")
    ):
        raise WebhookSignatureError("Invalid signature.")


class BillingService:
    """Materializes billing-provider events into subscription rows."""

    def __init__(self, subscription_repo: SubscriptionRepository) -> None:
        self._subscriptions = subscription_repo

    def receive(self, payload: bytes) -> WebhookEvent:
        """
        Parse, store and process one webhook delivery.

        Raises:
            ValidationError: If the body is not JSON or lacks `meta.event_name`
        """
        try:
            body = json.loads(payload)
        except ValueError:
            raise ValidationError("Data invalid", field="body")

        meta = body.get("meta") if isinstance(body, dict) else None
        if not isinstance(meta, dict) or not meta.get("event_name"):
            raise ValidationError("Data invalid", field="meta")

        event = self._subscriptions.store_webhook_event(meta["event_name"], body)
        self.process(event)
        return self._subscriptions.get_webhook_event(event.id)

    def process(self, event: WebhookEvent) -> None:
        """Apply a stored event; any failure is recorded on the event."""
        processing_error: Optional[str] = None
        body = event.body

        if not isinstance(body.get("meta"), dict):
            processing_error = "Event body is missing the 'meta' property."
        elif isinstance(body.get("data"), dict) and event.event_name.startswith("subscription_"):
            processing_error = self._sync_subscription(body)

        if processing_error:
            logger.warning(f"[billing] event {event.id} ({event.event_name}): {processing_error}")
        else:
            logger.info(f"[billing] processed {event.event_name} ({event.id})")

        self._subscriptions.mark_webhook_event(
            event.id,
            processed=True,
            processing_error=processing_error,
        )

    def _sync_subscription(self, body: Dict[str, Any]) -> Optional[str]:
        data = body["data"]
        attributes = data.get("attributes") or {}
        variant_id = attributes.get("variant_id")

        plan = self._subscriptions.get_plan_by_variant(str(variant_id))
        if plan is None:
            return f"Plan with variantId {variant_id} not found."

        item = attributes.get("first_subscription_item") or {}
        custom_data = body["meta"].get("custom_data") or {}
        user_id = custom_data.get("user_id")
        if not user_id:
            return f"Subscription {data.get('id')} has no user_id in custom_data."

        fields = {
            "order_id": str(attributes.get("order_id")) if attributes.get("order_id") else None,
            "name": attributes.get("user_name"),
            "email": attributes.get("user_email"),
            "status": attributes.get("status"),
            "status_formatted": attributes.get("status_formatted"),
            "renews_at": attributes.get("renews_at"),
            "ends_at": attributes.get("ends_at"),
            "trial_ends_at": attributes.get("trial_ends_at"),
            "price": plan.price,
            "is_paused": attributes.get("pause") is not None,
            "subscription_item_id": str(item["id"]) if item.get("id") else None,
            "is_usage_based": bool(item.get("is_usage_based", False)),
            "user_id": user_id,
            "plan_id": plan.id,
        }
        for column in ("renews_at", "ends_at", "trial_ends_at"):
            if fields[column]:
                fields[column] = parse_timestamp(fields[column])

        try:
            self._subscriptions.upsert_from_provider(
                provider_id=str(data.get("id")),
                fields=fields,
                created_at=parse_timestamp(attributes.get("created_at")),
            )
        except (ValueError, sqlite3.Error) as e:
            logger.error(f"[billing] upsert failed for subscription {data.get('id')}: {e}")
            return f"Failed to upsert Subscription #{data.get('id')} to the database."
        return None


_billing_service: Optional[BillingService] = None


def get_billing_service() -> BillingService:
    """Get or create the billing service singleton."""
    global _billing_service
    if _billing_service is None:
        _billing_service = BillingService(get_subscription_repository())
    return _billing_service
