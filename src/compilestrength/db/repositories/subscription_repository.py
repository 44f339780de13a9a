"""SQLite-backed repository for plans, subscriptions and billing webhook events.

Subscriptions are materialized from billing-provider webhooks and are never
hard-deleted; lifecycle changes only move the status field.
"""

import json
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..database import SQLiteRepository, format_timestamp, parse_timestamp, utc_now


SUBSCRIPTION_STATUSES = (
    "active",
    "on_trial",
    "paused",
    "past_due",
    "unpaid",
    "cancelled",
    "expired",
)

# Statuses that grant access to metered features
ACTIVE_STATUSES = ("active", "on_trial")

# Statuses that still count as a valid (resumable) subscription
VALID_STATUSES = ("active", "on_trial", "paused")


@dataclass
class Plan:
    """A purchasable plan (one billing-provider variant)."""

    id: str
    product_id: str
    variant_id: str
    name: str
    price: str
    product_name: Optional[str] = None
    description: Optional[str] = None
    interval: Optional[str] = None
    interval_count: Optional[int] = None
    is_usage_based: bool = False
    trial_interval: Optional[str] = None
    trial_interval_count: Optional[int] = None
    sort: Optional[int] = None


@dataclass
class Subscription:
    """A user's subscription as last reported by the billing provider."""

    id: str
    user_id: str
    status: str
    created_at: datetime
    updated_at: datetime
    provider_id: Optional[str] = None
    order_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    status_formatted: Optional[str] = None
    renews_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    trial_ends_at: Optional[datetime] = None
    price: Optional[str] = None
    is_usage_based: bool = False
    is_paused: bool = False
    subscription_item_id: Optional[str] = None
    plan_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_valid(self) -> bool:
        return self.status in VALID_STATUSES


@dataclass
class WebhookEvent:
    """A stored billing webhook delivery."""

    id: str
    event_name: str
    body: Dict[str, Any]
    processed: bool = False
    processing_error: Optional[str] = None
    created_at: Optional[datetime] = None


# Columns a provider sync is allowed to write
_SYNCED_COLUMNS = (
    "order_id",
    "name",
    "email",
    "status",
    "status_formatted",
    "renews_at",
    "ends_at",
    "trial_ends_at",
    "price",
    "is_usage_based",
    "is_paused",
    "subscription_item_id",
    "user_id",
    "plan_id",
)

_TIMESTAMP_COLUMNS = {"renews_at", "ends_at", "trial_ends_at"}


class SubscriptionRepository(SQLiteRepository):
    """
    SQLite-backed repository for subscription state.

    Provides plan lookup, subscription reads for access control, the
    provider-driven upsert used by the webhook handler, and the webhook
    event log.
    """

    def _row_to_plan(self, row: sqlite3.Row) -> Plan:
        """Convert a database row to a Plan entity."""
        return Plan(
            id=row["id"],
            product_id=row["product_id"],
            variant_id=row["variant_id"],
            name=row["name"],
            price=row["price"],
            product_name=row["product_name"],
            description=row["description"],
            interval=row["interval"],
            interval_count=row["interval_count"],
            is_usage_based=bool(row["is_usage_based"]),
            trial_interval=row["trial_interval"],
            trial_interval_count=row["trial_interval_count"],
            sort=row["sort"],
        )

    def _row_to_subscription(self, row: sqlite3.Row) -> Subscription:
        """Convert a database row to a Subscription entity."""
        return Subscription(
            id=row["id"],
            user_id=row["user_id"],
            status=row["status"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
            provider_id=row["provider_id"],
            order_id=row["order_id"],
            name=row["name"],
            email=row["email"],
            status_formatted=row["status_formatted"],
            renews_at=parse_timestamp(row["renews_at"]),
            ends_at=parse_timestamp(row["ends_at"]),
            trial_ends_at=parse_timestamp(row["trial_ends_at"]),
            price=row["price"],
            is_usage_based=bool(row["is_usage_based"]),
            is_paused=bool(row["is_paused"]),
            subscription_item_id=row["subscription_item_id"],
            plan_id=row["plan_id"],
        )

    # ==================== Plan Methods ====================

    def upsert_plan(self, plan: Plan) -> Plan:
        """Insert a plan, or update the one with the same variant id in place."""
        values = (
            plan.product_id,
            plan.product_name,
            plan.name,
            plan.description,
            plan.price,
            plan.interval,
            plan.interval_count,
            int(plan.is_usage_based),
            plan.trial_interval,
            plan.trial_interval_count,
            plan.sort,
        )
        with self._get_connection() as conn:
            existing = conn.execute(
                "SELECT id FROM plans WHERE variant_id = ?",
                (plan.variant_id,),
            ).fetchone()
            if existing:
                # Subscriptions reference the plan id, so keep it stable
                plan.id = existing["id"]
                conn.execute("""
                    UPDATE plans SET
                        product_id = ?, product_name = ?, name = ?, description = ?,
                        price = ?, interval = ?, interval_count = ?, is_usage_based = ?,
                        trial_interval = ?, trial_interval_count = ?, sort = ?
                    WHERE id = ?
                """, (*values, plan.id))
            else:
                conn.execute("""
                    INSERT INTO plans
                    (product_id, product_name, name, description, price,
                     interval, interval_count, is_usage_based, trial_interval,
                     trial_interval_count, sort, id, variant_id)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (*values, plan.id, plan.variant_id))
        return plan

    def get_plan_by_variant(self, variant_id: str) -> Optional[Plan]:
        """Retrieve the plan for a billing-provider variant id."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM plans WHERE variant_id = ?",
                (str(variant_id),),
            ).fetchone()
            return self._row_to_plan(row) if row else None

    def list_plans(self) -> List[Plan]:
        """Retrieve all plans, ordered by sort key."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM plans ORDER BY sort ASC, name ASC"
            ).fetchall()
            return [self._row_to_plan(row) for row in rows]

    # ==================== Subscription Methods ====================

    def create_subscription(
        self,
        user_id: str,
        status: str = "active",
        created_at: Optional[datetime] = None,
        subscription_id: Optional[str] = None,
        plan_id: Optional[str] = None,
        provider_id: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Subscription:
        """
        Create a subscription row directly.

        Used by the CLI for local development and by tests; production rows
        arrive through `upsert_from_provider`.

        Args:
            user_id: The owning user's id
            status: Initial status (must be a known subscription status)
            created_at: Anchor for usage periods (default: now)
            subscription_id: Explicit id (default: generated UUID)
            plan_id: Optional plan reference
            provider_id: Optional billing-provider subscription id
            email: Optional customer email

        Returns:
            The created Subscription entity
        """
        if status not in SUBSCRIPTION_STATUSES:
            raise ValueError(f"Unknown subscription status: {status}")

        subscription_id = subscription_id or str(uuid.uuid4())
        created = format_timestamp(created_at or utc_now())
        now = format_timestamp(utc_now())

        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO subscriptions
                (id, provider_id, email, status, user_id, plan_id, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                subscription_id,
                provider_id,
                email,
                status,
                user_id,
                plan_id,
                created,
                now,
            ))

        return self.get_subscription(subscription_id)

    def get_subscription(self, subscription_id: str) -> Optional[Subscription]:
        """Retrieve a subscription by id."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM subscriptions WHERE id = ?",
                (subscription_id,),
            ).fetchone()
            return self._row_to_subscription(row) if row else None

    def get_subscription_by_provider_id(self, provider_id: str) -> Optional[Subscription]:
        """Retrieve a subscription by its billing-provider id."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM subscriptions WHERE provider_id = ?",
                (str(provider_id),),
            ).fetchone()
            return self._row_to_subscription(row) if row else None

    def _latest_with_status(self, user_id: str, statuses: tuple) -> Optional[Subscription]:
        placeholders = ", ".join("?" for _ in statuses)
        with self._get_connection() as conn:
            row = conn.execute(
                f"""
                SELECT * FROM subscriptions
                WHERE user_id = ? AND status IN ({placeholders})
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (user_id, *statuses),
            ).fetchone()
            return self._row_to_subscription(row) if row else None

    def get_active_subscription(self, user_id: str) -> Optional[Subscription]:
        """Most recent subscription that grants access (active or on trial)."""
        return self._latest_with_status(user_id, ACTIVE_STATUSES)

    def get_valid_subscription(self, user_id: str) -> Optional[Subscription]:
        """Most recent subscription that is active, on trial, or paused."""
        return self._latest_with_status(user_id, VALID_STATUSES)

    def list_user_subscriptions(self, user_id: str) -> List[Subscription]:
        """All subscriptions a user has ever held, newest first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM subscriptions WHERE user_id = ? ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
            return [self._row_to_subscription(row) for row in rows]

    def update_status(self, subscription_id: str, status: str) -> Optional[Subscription]:
        """Move a subscription to a new lifecycle status."""
        if status not in SUBSCRIPTION_STATUSES:
            raise ValueError(f"Unknown subscription status: {status}")

        with self._get_connection() as conn:
            cursor = conn.execute(
                "UPDATE subscriptions SET status = ?, updated_at = ? WHERE id = ?",
                (status, format_timestamp(utc_now()), subscription_id),
            )
            if cursor.rowcount == 0:
                return None
        return self.get_subscription(subscription_id)

    def upsert_from_provider(
        self,
        provider_id: str,
        fields: Dict[str, Any],
        created_at: Optional[datetime] = None,
    ) -> Subscription:
        """
        Insert or update a subscription keyed by the provider's id.

        Args:
            provider_id: Billing-provider subscription id
            fields: Column values (see _SYNCED_COLUMNS); must include
                    user_id and status on first insert
            created_at: Provider creation time, used only on insert

        Returns:
            The stored Subscription entity
        """
        unknown = set(fields) - set(_SYNCED_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown subscription fields: {sorted(unknown)}")

        values: Dict[str, Any] = {}
        for column, value in fields.items():
            if column in _TIMESTAMP_COLUMNS and isinstance(value, datetime):
                value = format_timestamp(value)
            elif isinstance(value, bool):
                value = int(value)
            values[column] = value

        now = format_timestamp(utc_now())

        with self._get_connection(immediate=True) as conn:
            existing = conn.execute(
                "SELECT id FROM subscriptions WHERE provider_id = ?",
                (str(provider_id),),
            ).fetchone()

            if existing:
                subscription_id = existing["id"]
                if values:
                    assignments = ", ".join(f"{column} = ?" for column in values)
                    conn.execute(
                        f"UPDATE subscriptions SET {assignments}, updated_at = ? WHERE id = ?",
                        (*values.values(), now, subscription_id),
                    )
            else:
                if "user_id" not in values or "status" not in values:
                    raise ValueError("user_id and status are required for a new subscription")
                subscription_id = str(uuid.uuid4())
                columns = ["id", "provider_id", *values.keys(), "created_at", "updated_at"]
                conn.execute(
                    f"INSERT INTO subscriptions ({', '.join(columns)}) "
                    f"VALUES ({', '.join('?' for _ in columns)})",
                    (
                        subscription_id,
                        str(provider_id),
                        *values.values(),
                        format_timestamp(created_at) if created_at else now,
                        now,
                    ),
                )

        return self.get_subscription(subscription_id)

    # ==================== Webhook Event Methods ====================

    def store_webhook_event(self, event_name: str, body: Dict[str, Any]) -> WebhookEvent:
        """Persist a received webhook before it is processed."""
        event = WebhookEvent(
            id=str(uuid.uuid4()),
            event_name=event_name,
            body=body,
            created_at=utc_now(),
        )
        with self._get_connection() as conn:
            conn.execute("""
                INSERT INTO webhook_events (id, event_name, processed, body, created_at)
                VALUES (?, ?, 0, ?, ?)
            """, (
                event.id,
                event.event_name,
                json.dumps(body),
                format_timestamp(event.created_at),
            ))
        return event

    def mark_webhook_event(
        self,
        event_id: str,
        processed: bool,
        processing_error: Optional[str] = None,
    ) -> None:
        """Record the outcome of processing a webhook event."""
        with self._get_connection() as conn:
            conn.execute(
                "UPDATE webhook_events SET processed = ?, processing_error = ? WHERE id = ?",
                (int(processed), processing_error, event_id),
            )

    def get_webhook_event(self, event_id: str) -> Optional[WebhookEvent]:
        """Retrieve a stored webhook event."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM webhook_events WHERE id = ?",
                (event_id,),
            ).fetchone()
            if not row:
                return None
            return WebhookEvent(
                id=row["id"],
                event_name=row["event_name"],
                body=json.loads(row["body"]),
                processed=bool(row["processed"]),
                processing_error=row["processing_error"],
                created_at=parse_timestamp(row["created_at"]),
            )


# Singleton instance for dependency injection
_subscription_repository: Optional[SubscriptionRepository] = None


def get_subscription_repository() -> SubscriptionRepository:
    """Get or create the singleton SubscriptionRepository instance."""
    global _subscription_repository
    if _subscription_repository is None:
        _subscription_repository = SubscriptionRepository()
    return _subscription_repository
