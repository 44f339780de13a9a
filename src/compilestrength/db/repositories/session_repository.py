"""SQLite-backed repository for workout logging (sessions and sets).

A user has at most one open session (completed_at IS NULL) at a time; this
is enforced here rather than by the schema. Every mutation of a set is
scoped by joining it to a session owned by the caller.
"""

import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..database import SQLiteRepository, format_timestamp, parse_timestamp, utc_now
from ...exceptions import ActiveSessionExistsError, NotFoundError


@dataclass
class WorkoutSet:
    id: str
    session_id: str
    exercise_id: str
    set_number: int
    reps: int
    weight: float
    rpe: Optional[int]
    completed_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "exerciseId": self.exercise_id,
            "setNumber": self.set_number,
            "reps": self.reps,
            "weight": self.weight,
            "rpe": self.rpe,
            "completedAt": self.completed_at.isoformat(),
        }


@dataclass
class WorkoutSession:
    id: str
    user_id: str
    workout_day_id: Optional[str]
    start_time: datetime
    end_time: Optional[datetime] = None
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    sets: List[WorkoutSet] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.completed_at is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "workoutDayId": self.workout_day_id,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "notes": self.notes,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "sets": [s.to_dict() for s in self.sets],
        }


class SessionRepository(SQLiteRepository):
    """SQLite-backed repository for workout sessions and their sets."""

    def _row_to_session(self, row: sqlite3.Row) -> WorkoutSession:
        return WorkoutSession(
            id=row["id"],
            user_id=row["user_id"],
            workout_day_id=row["workout_day_id"],
            start_time=parse_timestamp(row["start_time"]),
            end_time=parse_timestamp(row["end_time"]),
            notes=row["notes"],
            completed_at=parse_timestamp(row["completed_at"]),
        )

    def _row_to_set(self, row: sqlite3.Row) -> WorkoutSet:
        return WorkoutSet(
            id=row["id"],
            session_id=row["session_id"],
            exercise_id=row["exercise_id"],
            set_number=row["set_number"],
            reps=row["reps"],
            weight=row["weight"],
            rpe=row["rpe"],
            completed_at=parse_timestamp(row["completed_at"]),
        )

    # ==================== Sessions ====================

    def get_active_session(self, user_id: str) -> Optional[WorkoutSession]:
        """The user's open session with its sets, or None."""
        with self._get_connection() as conn:
            row = conn.execute("""
                SELECT * FROM workout_sessions
                WHERE user_id = ? AND completed_at IS NULL
                ORDER BY start_time DESC
                LIMIT 1
            """, (user_id,)).fetchone()
            if not row:
                return None

            session = self._row_to_session(row)
            session.sets = [
                self._row_to_set(set_row)
                for set_row in conn.execute(
                    "SELECT * FROM workout_sets WHERE session_id = ? ORDER BY completed_at ASC",
                    (session.id,),
                )
            ]
            return session

    def create_session(
        self,
        user_id: str,
        workout_day_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> WorkoutSession:
        """
        Start a new session.

        Raises:
            ActiveSessionExistsError: If the user already has an open session
        """
        with self._get_connection(immediate=True) as conn:
            active = conn.execute(
                "SELECT id FROM workout_sessions WHERE user_id = ? AND completed_at IS NULL",
                (user_id,),
            ).fetchone()
            if active:
                raise ActiveSessionExistsError(active["id"])

            session = WorkoutSession(
                id=str(uuid.uuid4()),
                user_id=user_id,
                workout_day_id=workout_day_id,
                start_time=utc_now(),
                notes=notes,
            )
            conn.execute("""
                INSERT INTO workout_sessions (id, user_id, workout_day_id, start_time, notes)
                VALUES (?, ?, ?, ?, ?)
            """, (
                session.id,
                user_id,
                workout_day_id,
                format_timestamp(session.start_time),
                notes,
            ))
        return session

    def update_session(
        self,
        session_id: str,
        user_id: str,
        end_time: Optional[datetime] = None,
        notes: Optional[str] = None,
        completed: bool = False,
    ) -> WorkoutSession:
        """
        Update an owned session; `completed` stamps completed_at with now.

        Raises:
            NotFoundError: If the session does not exist or is not the user's
        """
        updates: Dict[str, Any] = {}
        if end_time is not None:
            updates["end_time"] = format_timestamp(end_time)
        if notes is not None:
            updates["notes"] = notes
        if completed:
            updates["completed_at"] = format_timestamp(utc_now())

        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM workout_sessions WHERE id = ? AND user_id = ?",
                (session_id, user_id),
            ).fetchone()
            if not row:
                raise NotFoundError("Session not found or unauthorized", resource_type="session")

            if updates:
                assignments = ", ".join(f"{column} = ?" for column in updates)
                conn.execute(
                    f"UPDATE workout_sessions SET {assignments} WHERE id = ?",
                    (*updates.values(), session_id),
                )
            row = conn.execute(
                "SELECT * FROM workout_sessions WHERE id = ?", (session_id,)
            ).fetchone()
            return self._row_to_session(row)

    # ==================== Sets ====================

    def create_set(
        self,
        user_id: str,
        session_id: str,
        exercise_id: str,
        set_number: int,
        reps: int,
        weight: float,
        rpe: Optional[int] = None,
    ) -> WorkoutSet:
        """
        Log a completed set into one of the user's sessions.

        Raises:
            NotFoundError: If the session does not exist or is not the user's
        """
        with self._get_connection() as conn:
            owned = conn.execute(
                "SELECT id FROM workout_sessions WHERE id = ? AND user_id = ?",
                (session_id, user_id),
            ).fetchone()
            if not owned:
                raise NotFoundError("Session not found or unauthorized", resource_type="session")

            workout_set = WorkoutSet(
                id=str(uuid.uuid4()),
                session_id=session_id,
                exercise_id=exercise_id,
                set_number=set_number,
                reps=reps,
                weight=weight,
                rpe=rpe,
                completed_at=utc_now(),
            )
            conn.execute("""
                INSERT INTO workout_sets
                (id, session_id, exercise_id, set_number, reps, weight, rpe, completed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                workout_set.id,
                session_id,
                exercise_id,
                set_number,
                reps,
                weight,
                rpe,
                format_timestamp(workout_set.completed_at),
            ))
        return workout_set

    def _owned_set_row(self, conn: sqlite3.Connection, set_id: str, user_id: str):
        return conn.execute("""
            SELECT ws.* FROM workout_sets ws
            JOIN workout_sessions s ON s.id = ws.session_id
            WHERE ws.id = ? AND s.user_id = ?
        """, (set_id, user_id)).fetchone()

    def update_set(
        self,
        set_id: str,
        user_id: str,
        reps: Optional[int] = None,
        weight: Optional[float] = None,
        rpe: Optional[int] = None,
    ) -> WorkoutSet:
        """
        Update an owned set.

        Raises:
            NotFoundError: If the set does not exist or is not the user's
        """
        updates: Dict[str, Any] = {}
        if reps is not None:
            updates["reps"] = reps
        if weight is not None:
            updates["weight"] = weight
        if rpe is not None:
            updates["rpe"] = rpe

        with self._get_connection() as conn:
            if not self._owned_set_row(conn, set_id, user_id):
                raise NotFoundError("Set not found or unauthorized", resource_type="set")
            if updates:
                assignments = ", ".join(f"{column} = ?" for column in updates)
                conn.execute(
                    f"UPDATE workout_sets SET {assignments} WHERE id = ?",
                    (*updates.values(), set_id),
                )
            row = conn.execute("SELECT * FROM workout_sets WHERE id = ?", (set_id,)).fetchone()
            return self._row_to_set(row)

    def delete_set(self, set_id: str, user_id: str) -> None:
        """
        Delete an owned set.

        Raises:
            NotFoundError: If the set does not exist or is not the user's
        """
        with self._get_connection() as conn:
            if not self._owned_set_row(conn, set_id, user_id):
                raise NotFoundError("Set not found or unauthorized", resource_type="set")
            conn.execute("DELETE FROM workout_sets WHERE id = ?", (set_id,))


# Singleton instance for dependency injection
_session_repository: Optional[SessionRepository] = None


def get_session_repository() -> SessionRepository:
    """Get or create the singleton SessionRepository instance."""
    global _session_repository
    if _session_repository is None:
        _session_repository = SessionRepository()
    return _session_repository
