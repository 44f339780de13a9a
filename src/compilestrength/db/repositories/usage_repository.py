"""SQLite-backed repository for weekly usage periods.

A period is a 7-day window anchored on the subscription's creation time:
start = created_at + N * 7 days for the integer N that contains "now".
Periods are created lazily on first access and are never rewritten once a
later period supersedes them.
"""

import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from ..database import SQLiteRepository, format_timestamp, parse_timestamp, to_utc
from ...models.usage import UsageKind


PERIOD_LENGTH = timedelta(days=7)

# kind -> (used column, limit column)
COUNTER_COLUMNS: Dict[UsageKind, Tuple[str, str]] = {
    UsageKind.COMPILE: ("compiles_used", "compiles_limit"),
    UsageKind.ROUTINE_EDIT: ("routine_edits_used", "routine_edits_limit"),
    UsageKind.AI_MESSAGE: ("ai_messages_used", "ai_messages_limit"),
}


def compute_period_bounds(anchor: datetime, now: datetime) -> Tuple[datetime, datetime]:
    """
    Compute the [start, end) window containing `now`.

    A `now` earlier than the anchor (clock skew) clamps to the first period.
    `end` is exclusive: now == end already belongs to the next window.
    """
    anchor = to_utc(anchor)
    now = to_utc(now)
    week_number = max(0, (now - anchor) // PERIOD_LENGTH)
    start = anchor + week_number * PERIOD_LENGTH
    return start, start + PERIOD_LENGTH


@dataclass
class UsagePeriod:
    """One 7-day accounting window for a subscription."""

    id: str
    subscription_id: str
    user_id: str
    period_start: datetime
    period_end: datetime
    compiles_used: int
    compiles_limit: int
    routine_edits_used: int
    routine_edits_limit: int
    ai_messages_used: int
    ai_messages_limit: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def used(self, kind: UsageKind) -> int:
        return getattr(self, COUNTER_COLUMNS[kind][0])

    def limit(self, kind: UsageKind) -> int:
        return getattr(self, COUNTER_COLUMNS[kind][1])


class UsageRepository(SQLiteRepository):
    """SQLite-backed repository for usage periods and their counters."""

    def _row_to_period(self, row: sqlite3.Row) -> UsagePeriod:
        """Convert a database row to a UsagePeriod entity."""
        return UsagePeriod(
            id=row["id"],
            subscription_id=row["subscription_id"],
            user_id=row["user_id"],
            period_start=parse_timestamp(row["period_start"]),
            period_end=parse_timestamp(row["period_end"]),
            compiles_used=row["compiles_used"],
            compiles_limit=row["compiles_limit"],
            routine_edits_used=row["routine_edits_used"],
            routine_edits_limit=row["routine_edits_limit"],
            ai_messages_used=row["ai_messages_used"],
            ai_messages_limit=row["ai_messages_limit"],
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )

    def _get_or_create_in(
        self,
        conn: sqlite3.Connection,
        subscription_id: str,
        user_id: str,
        start: datetime,
        end: datetime,
        limits: Dict[UsageKind, int],
        now: datetime,
    ) -> UsagePeriod:
        """Find the stored period inside [start, end] or insert a fresh one."""
        row = conn.execute(
            """
            SELECT * FROM usage_periods
            WHERE subscription_id = ? AND period_start >= ? AND period_end <= ?
            ORDER BY period_start ASC
            LIMIT 1
            """,
            (subscription_id, format_timestamp(start), format_timestamp(end)),
        ).fetchone()
        if row:
            return self._row_to_period(row)

        period_id = str(uuid.uuid4())
        stamp = format_timestamp(now)
        conn.execute("""
            INSERT INTO usage_periods
            (id, subscription_id, user_id, period_start, period_end,
             compiles_used, compiles_limit, routine_edits_used, routine_edits_limit,
             ai_messages_used, ai_messages_limit, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, 0, ?, 0, ?, 0, ?, ?, ?)
        """, (
            period_id,
            subscription_id,
            user_id,
            format_timestamp(start),
            format_timestamp(end),
            limits[UsageKind.COMPILE],
            limits[UsageKind.ROUTINE_EDIT],
            limits[UsageKind.AI_MESSAGE],
            stamp,
            stamp,
        ))
        row = conn.execute(
            "SELECT * FROM usage_periods WHERE id = ?", (period_id,)
        ).fetchone()
        return self._row_to_period(row)

    def get_or_create_period(
        self,
        subscription_id: str,
        user_id: str,
        anchor: datetime,
        now: datetime,
        limits: Dict[UsageKind, int],
    ) -> UsagePeriod:
        """
        Return the period containing `now`, creating it with zeroed counters.

        Args:
            subscription_id: Owning subscription
            user_id: Subscription's user, denormalized onto the row
            anchor: Subscription creation time
            now: Current time
            limits: Per-kind limits applied only when a new row is created

        Returns:
            The current UsagePeriod
        """
        start, end = compute_period_bounds(anchor, now)
        with self._get_connection(immediate=True) as conn:
            return self._get_or_create_in(
                conn, subscription_id, user_id, start, end, limits, now
            )

    def increment_if_below_limit(
        self,
        kind: UsageKind,
        subscription_id: str,
        user_id: str,
        anchor: datetime,
        now: datetime,
        limits: Dict[UsageKind, int],
    ) -> Tuple[UsagePeriod, bool]:
        """
        Increment one counter of the current period unless it is at its limit.

        The read and the guarded UPDATE run under one write lock, so two
        concurrent callers can never both take the last unit.

        Returns:
            (period after the attempt, whether the counter was incremented)
        """
        used_column, limit_column = COUNTER_COLUMNS[kind]
        start, end = compute_period_bounds(anchor, now)

        with self._get_connection(immediate=True) as conn:
            period = self._get_or_create_in(
                conn, subscription_id, user_id, start, end, limits, now
            )
            cursor = conn.execute(
                f"""
                UPDATE usage_periods
                SET {used_column} = {used_column} + 1, updated_at = ?
                WHERE id = ? AND {used_column} < {limit_column}
                """,
                (format_timestamp(now), period.id),
            )
            applied = cursor.rowcount == 1
            row = conn.execute(
                "SELECT * FROM usage_periods WHERE id = ?", (period.id,)
            ).fetchone()
            return self._row_to_period(row), applied

    def get_period(self, period_id: str) -> Optional[UsagePeriod]:
        """Retrieve a period by id."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM usage_periods WHERE id = ?", (period_id,)
            ).fetchone()
            return self._row_to_period(row) if row else None

    def list_periods(self, subscription_id: str, limit: int = 12) -> List[UsagePeriod]:
        """Usage history for a subscription, newest period first."""
        with self._get_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM usage_periods
                WHERE subscription_id = ?
                ORDER BY period_start DESC
                LIMIT ?
                """,
                (subscription_id, limit),
            ).fetchall()
            return [self._row_to_period(row) for row in rows]


# Singleton instance for dependency injection
_usage_repository: Optional[UsageRepository] = None


def get_usage_repository() -> UsageRepository:
    """Get or create the singleton UsageRepository instance."""
    global _usage_repository
    if _usage_repository is None:
        _usage_repository = UsageRepository()
    return _usage_repository
