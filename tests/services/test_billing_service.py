"""Tests for BillingService - webhook signatures and subscription sync."""

import hashlib
import hmac
import json

import pytest

from compilestrength.db.repositories.subscription_repository import Plan
from compilestrength.exceptions import ValidationError, WebhookSignatureError
from compilestrength.services.billing_service import BillingService, verify_signature

SECRET = "whsec-test"


def _sign(payload: bytes, secret: str = SECRET) -> str:
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def _subscription_event(event_name="subscription_created", variant_id=111, **attributes):
    body = {
        "meta": {
            "event_name": event_name,
            "custom_data": {"user_id": "user-9"},
        },
        "data": {
            "type": "subscriptions",
            "id": "5001",
            "attributes": {
                "order_id": 9001,
                "user_name": "Sam Lifter",
                "user_email": "sam@example.com",
                "variant_id": variant_id,
                "status": "on_trial",
                "status_formatted": "On Trial",
                "renews_at": "2025-02-10T00:00:00.000000Z",
                "ends_at": None,
                "trial_ends_at": "2025-01-17T00:00:00.000000Z",
                "created_at": "2025-01-10T08:00:00.000000Z",
                "pause": None,
                "first_subscription_item": {"id": 77, "is_usage_based": False},
                **attributes,
            },
        },
    }
    return json.dumps(body).encode("utf-8")


@pytest.fixture
def billing(subscription_repo):
    subscription_repo.upsert_plan(Plan(
        id="plan-monthly",
        product_id="prod-1",
        variant_id="111",
        name="Monthly",
        price="1299",
    ))
    return BillingService(subscription_repo)


class TestVerifySignature:
    """Tests for X-Signature verification."""

    def test_valid_signature(self):
        payload = b'{"meta": {}}'
        verify_signature(payload, _sign(payload), SECRET)

    @pytest.mark.parametrize("signature", [None, "", "deadbeef", "\xe9abc"])
    def test_invalid_signature(self, signature):
        with pytest.raises(WebhookSignatureError):
            verify_signature(b"{}", signature, SECRET)

    def test_wrong_secret(self):
        payload = b"{}"
        with pytest.raises(WebhookSignatureError):
            verify_signature(payload, _sign(payload, "other"), SECRET)


class TestReceive:
    """Tests for storing and processing deliveries."""

    def test_subscription_created(self, billing, subscription_repo):
        event = billing.receive(_subscription_event())

        assert event.processed is True
        assert event.processing_error is None

        subscription = subscription_repo.get_subscription_by_provider_id("5001")
        assert subscription.user_id == "user-9"
        assert subscription.status == "on_trial"
        assert subscription.plan_id == "plan-monthly"
        assert subscription.price == "1299"
        assert subscription.order_id == "9001"
        assert subscription.subscription_item_id == "77"
        assert subscription.is_paused is False
        assert subscription.created_at.isoformat() == "2025-01-10T08:00:00+00:00"

    def test_subscription_updated_moves_status(self, billing, subscription_repo):
        billing.receive(_subscription_event())
        billing.receive(_subscription_event(
            "subscription_paused", status="paused", pause={"mode": "void"}
        ))

        subscriptions = subscription_repo.list_user_subscriptions("user-9")
        assert len(subscriptions) == 1
        assert subscriptions[0].status == "paused"
        assert subscriptions[0].is_paused is True
        assert subscription_repo.get_active_subscription("user-9") is None
        assert subscription_repo.get_valid_subscription("user-9") is not None

    def test_unknown_plan_is_recorded(self, billing, subscription_repo):
        event = billing.receive(_subscription_event(variant_id=999))

        assert event.processed is True
        assert event.processing_error == "Plan with variantId 999 not found."
        assert subscription_repo.get_subscription_by_provider_id("5001") is None

    def test_missing_user_id_is_recorded(self, billing):
        body = json.loads(_subscription_event())
        body["meta"]["custom_data"] = {}

        event = billing.receive(json.dumps(body).encode("utf-8"))

        assert "no user_id" in event.processing_error

    def test_non_subscription_event_is_stored(self, billing):
        payload = json.dumps({
            "meta": {"event_name": "order_created"},
            "data": {"id": "1", "attributes": {}},
        }).encode("utf-8")

        event = billing.receive(payload)

        assert event.event_name == "order_created"
        assert event.processed is True
        assert event.processing_error is None

    @pytest.mark.parametrize("payload", [b"not json", b"[]", b'{"data": {}}'])
    def test_invalid_body(self, billing, payload):
        with pytest.raises(ValidationError):
            billing.receive(payload)
