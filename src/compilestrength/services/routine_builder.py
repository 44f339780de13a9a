"""Identifier and order assignment for freshly generated routine fragments.

Every tool that produces new days or exercises goes through these
functions, so ids are always fresh UUIDs and ``order`` is always the
fragment's position in its list.
"""

import uuid
from datetime import datetime
from typing import Callable, Optional

from ..db.database import utc_now
from ..models.routine import (
    DayInput,
    Exercise,
    ExerciseInput,
    RoutineInput,
    WorkoutDay,
    WorkoutRoutine,
)


IdFactory = Callable[[], str]


def new_id() -> str:
    return str(uuid.uuid4())


def build_exercise(
    spec: ExerciseInput,
    order: int = 0,
    id_factory: IdFactory = new_id,
) -> Exercise:
    """Attach an id and positional order to one exercise."""
    return Exercise(id=id_factory(), order=order, **spec.model_dump())


def build_day(
    spec: DayInput,
    order: int = 0,
    id_factory: IdFactory = new_id,
) -> WorkoutDay:
    """Attach ids and order to a day and to each of its exercises."""
    return WorkoutDay(
        id=id_factory(),
        name=spec.name,
        order=order,
        exercises=[
            build_exercise(exercise, index, id_factory)
            for index, exercise in enumerate(spec.exercises)
        ],
    )


def assign_routine_identifiers(
    spec: RoutineInput,
    id_factory: IdFactory = new_id,
    now: Optional[datetime] = None,
) -> WorkoutRoutine:
    """
    Turn a model-proposed routine into a normalized WorkoutRoutine.

    Args:
        spec: Validated routine input
        id_factory: Produces unique identifiers (default: UUID4 strings)
        now: Creation timestamp (default: current UTC time)

    Returns:
        The routine with ids on the routine, every day and every exercise,
        order fields starting at 0, and createdAt == updatedAt == now.
    """
    stamp = now or utc_now()
    return WorkoutRoutine(
        id=id_factory(),
        name=spec.name,
        description=spec.description,
        frequency=spec.frequency,
        duration=spec.duration,
        difficulty=spec.difficulty,
        goals=list(spec.goals),
        created_at=stamp,
        updated_at=stamp,
        days=[
            build_day(day, index, id_factory)
            for index, day in enumerate(spec.days)
        ],
    )
