"""SQLite-backed repository for persisted workout programs.

A generated routine is normalized into:

    workout_programs 1--N workout_days 1--N program_exercises N--1 exercises

The ``exercises`` table is a global catalog shared by every user and keyed
by exact exercise name.
"""

import logging
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..database import SQLiteRepository, format_timestamp, parse_timestamp, utc_now
from ...models.routine import WorkoutRoutine


logger = logging.getLogger(__name__)

# Checked in order; first substring match wins
DAY_TYPE_KEYWORDS = (
    ("push", "push"),
    ("pull", "pull"),
    ("leg", "legs"),
    ("upper", "upper"),
    ("lower", "lower"),
    ("full", "full"),
)


def infer_day_type(day_name: str) -> str:
    """Classify a day by its name: push, pull, legs, upper, lower, full or other."""
    name = day_name.lower()
    for keyword, day_type in DAY_TYPE_KEYWORDS:
        if keyword in name:
            return day_type
    return "other"


@dataclass
class CatalogExercise:
    """A row of the shared exercise catalog."""

    id: str
    name: str
    description: Optional[str] = None
    muscle_group: Optional[str] = None
    equipment_type: Optional[str] = None
    difficulty: Optional[str] = None
    video_url: Optional[str] = None


@dataclass
class ProgramExercise:
    """An exercise slot within a program day."""

    id: str
    exercise: CatalogExercise
    sets: int
    reps: str
    rest_seconds: int
    notes: Optional[str]
    order: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.exercise.id,
            "name": self.exercise.name,
            "muscleGroups": [self.exercise.muscle_group] if self.exercise.muscle_group else [],
            "equipment": self.exercise.equipment_type,
            "sets": self.sets,
            "reps": self.reps,
            "restPeriod": self.rest_seconds,
            "notes": self.notes or "",
            "order": self.order,
        }


@dataclass
class ProgramDay:
    id: str
    name: str
    type: str
    day_number: int
    description: Optional[str] = None
    exercises: List[ProgramExercise] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "dayNumber": self.day_number,
            "exercises": [exercise.to_dict() for exercise in self.exercises],
        }


@dataclass
class WorkoutProgram:
    """A saved routine, with its days loaded."""

    id: str
    user_id: str
    name: str
    description: Optional[str]
    goal_type: Optional[str]
    experience_level: Optional[str]
    frequency: Optional[int]
    duration_weeks: Optional[int]
    is_active: bool
    created_at: datetime
    updated_at: datetime
    days: List[ProgramDay] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Routine-shaped dictionary for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description or "",
            "difficulty": self.experience_level,
            "frequency": self.frequency,
            "duration": self.duration_weeks,
            "goals": self.goal_type.split(",") if self.goal_type else [],
            "days": [day.to_dict() for day in self.days],
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "isActive": self.is_active,
        }


class ProgramRepository(SQLiteRepository):
    """
    SQLite-backed repository for programs and the exercise catalog.

    Provides the idempotent routine save used by the compiler flow and the
    nested reads used by the routines endpoints.
    """

    def _row_to_program(self, row: sqlite3.Row) -> WorkoutProgram:
        return WorkoutProgram(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            description=row["description"],
            goal_type=row["goal_type"],
            experience_level=row["experience_level"],
            frequency=row["frequency"],
            duration_weeks=row["duration_weeks"],
            is_active=bool(row["is_active"]),
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )

    def _row_to_catalog(self, row: sqlite3.Row) -> CatalogExercise:
        return CatalogExercise(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            muscle_group=row["muscle_group"],
            equipment_type=row["equipment_type"],
            difficulty=row["difficulty"],
            video_url=row["video_url"],
        )

    # ==================== Save ====================

    def save_routine(self, routine: WorkoutRoutine, user_id: str) -> Tuple[str, bool]:
        """
        Persist a routine for a user, at most once per (user, routine name).

        All inserts run in one transaction: a failure part-way leaves no
        program behind, and the exception propagates to the caller.

        Args:
            routine: Normalized routine (ids and order already assigned)
            user_id: Owner of the new program

        Returns:
            (program id, True if a new program was created)
        """
        now = format_timestamp(utc_now())

        with self._get_connection(immediate=True) as conn:
            existing = conn.execute(
                "SELECT id FROM workout_programs WHERE user_id = ? AND name = ? LIMIT 1",
                (user_id, routine.name),
            ).fetchone()
            if existing:
                logger.info(
                    f"[save-routine] program '{routine.name}' already exists for "
                    f"user {user_id}: {existing['id']}"
                )
                return existing["id"], False

            program_id = str(uuid.uuid4())
            conn.execute("""
                INSERT INTO workout_programs
                (id, user_id, name, description, goal_type, experience_level,
                 frequency, duration_weeks, is_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
            """, (
                program_id,
                user_id,
                routine.name,
                routine.description,
                ",".join(routine.goals),
                routine.difficulty,
                routine.frequency,
                routine.duration,
                now,
                now,
            ))

            for day_index, day in enumerate(routine.days):
                day_id = str(uuid.uuid4())
                conn.execute("""
                    INSERT INTO workout_days
                    (id, program_id, day_number, name, type, description, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """, (
                    day_id,
                    program_id,
                    day_index + 1,
                    day.name,
                    infer_day_type(day.name),
                    f"Day {day_index + 1} - {day.name}",
                    now,
                ))

                for exercise_index, exercise in enumerate(day.exercises):
                    catalog_id = self._get_or_create_catalog_exercise(
                        conn,
                        name=exercise.name,
                        description=exercise.notes or "",
                        muscle_group=exercise.muscle_groups[0] if exercise.muscle_groups else None,
                        equipment_type=exercise.equipment,
                        difficulty=routine.difficulty,
                        now=now,
                    )
                    conn.execute("""
                        INSERT INTO program_exercises
                        (id, workout_day_id, exercise_id, sets, reps, rest_seconds, notes, "order")
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """, (
                        str(uuid.uuid4()),
                        day_id,
                        catalog_id,
                        exercise.sets,
                        exercise.reps,
                        exercise.rest_period,
                        exercise.notes,
                        exercise_index,
                    ))

        logger.info(
            f"[save-routine] saved program {program_id} ('{routine.name}', "
            f"{len(routine.days)} days) for user {user_id}"
        )
        return program_id, True

    def _get_or_create_catalog_exercise(
        self,
        conn: sqlite3.Connection,
        name: str,
        description: str,
        muscle_group: Optional[str],
        equipment_type: str,
        difficulty: str,
        now: str,
    ) -> str:
        """Return the catalog id for an exact exercise name, inserting if new."""
        row = conn.execute(
            "SELECT id FROM exercises WHERE name = ?", (name,)
        ).fetchone()
        if row:
            return row["id"]

        exercise_id = str(uuid.uuid4())
        conn.execute("""
            INSERT INTO exercises
            (id, name, description, muscle_group, equipment_type, difficulty, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (exercise_id, name, description, muscle_group, equipment_type, difficulty, now))
        return exercise_id

    # ==================== Reads ====================

    def _load_days(self, conn: sqlite3.Connection, program_id: str) -> List[ProgramDay]:
        day_rows = conn.execute(
            "SELECT * FROM workout_days WHERE program_id = ? ORDER BY day_number ASC",
            (program_id,),
        ).fetchall()

        days = []
        for day_row in day_rows:
            exercise_rows = conn.execute("""
                SELECT pe.id AS pe_id, pe.sets, pe.reps, pe.rest_seconds, pe.notes,
                       pe."order" AS position, e.*
                FROM program_exercises pe
                JOIN exercises e ON e.id = pe.exercise_id
                WHERE pe.workout_day_id = ?
                ORDER BY pe."order" ASC
            """, (day_row["id"],)).fetchall()

            days.append(ProgramDay(
                id=day_row["id"],
                name=day_row["name"],
                type=day_row["type"],
                day_number=day_row["day_number"],
                description=day_row["description"],
                exercises=[
                    ProgramExercise(
                        id=row["pe_id"],
                        exercise=self._row_to_catalog(row),
                        sets=row["sets"],
                        reps=row["reps"],
                        rest_seconds=row["rest_seconds"],
                        notes=row["notes"],
                        order=row["position"],
                    )
                    for row in exercise_rows
                ],
            ))
        return days

    def get_program(self, program_id: str, user_id: str) -> Optional[WorkoutProgram]:
        """Retrieve one of the user's programs with days and exercises."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM workout_programs WHERE id = ? AND user_id = ?",
                (program_id, user_id),
            ).fetchone()
            if not row:
                return None
            program = self._row_to_program(row)
            program.days = self._load_days(conn, program.id)
            return program

    def get_program_by_name(self, user_id: str, name: str) -> Optional[WorkoutProgram]:
        """Retrieve a user's program by exact name (without days)."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM workout_programs WHERE user_id = ? AND name = ? LIMIT 1",
                (user_id, name),
            ).fetchone()
            return self._row_to_program(row) if row else None

    def list_programs(self, user_id: str, active_only: bool = False) -> List[WorkoutProgram]:
        """All of a user's programs with days and exercises, oldest first."""
        query = "SELECT * FROM workout_programs WHERE user_id = ?"
        if active_only:
            query += " AND is_active = 1"
        query += " ORDER BY created_at ASC, rowid ASC"

        with self._get_connection() as conn:
            programs = [self._row_to_program(row) for row in conn.execute(query, (user_id,))]
            for program in programs:
                program.days = self._load_days(conn, program.id)
            return programs

    def get_catalog_exercise(self, name: str) -> Optional[CatalogExercise]:
        """Look up a catalog exercise by exact name."""
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM exercises WHERE name = ?", (name,)
            ).fetchone()
            return self._row_to_catalog(row) if row else None

    def count_rows(self, table: str) -> int:
        """Row count of one of the program tables."""
        if table not in ("workout_programs", "workout_days", "exercises", "program_exercises"):
            raise ValueError(f"Unknown program table: {table}")
        with self._get_connection() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


# Singleton instance for dependency injection
_program_repository: Optional[ProgramRepository] = None


def get_program_repository() -> ProgramRepository:
    """Get or create the singleton ProgramRepository instance."""
    global _program_repository
    if _program_repository is None:
        _program_repository = ProgramRepository()
    return _program_repository
