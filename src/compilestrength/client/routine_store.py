"""Observable client-side state for the routine builder.

RoutineStore is the single owner of what the UI shows while a routine is
being generated: the routine, the collected profile, whether a generation
is running, and the progress steps. State is replaced, never mutated in
place; `snapshot()` hands out the current immutable RoutineState and
subscribers are notified once per effective mutation.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, List, Optional, Sequence, Union

from ..db.database import utc_now
from ..models.routine import (
    DayInput,
    Exercise,
    ExerciseInput,
    ProgressStep,
    UserProfile,
    WorkoutDay,
    WorkoutRoutine,
)
from ..services.routine_builder import build_day, build_exercise


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoutineState:
    routine: Optional[WorkoutRoutine] = None
    user_profile: Optional[UserProfile] = None
    is_generating: bool = False
    generation_progress: tuple = field(default_factory=tuple)


Listener = Callable[[RoutineState], None]


def _move(items: Sequence[Any], ids: Sequence[str]) -> List[Any]:
    by_id = {item.id: item for item in items}
    reordered = []
    for index, item_id in enumerate(ids):
        if item_id not in by_id:
            raise KeyError(f"Item with id {item_id} not found")
        reordered.append(by_id[item_id].model_copy(update={"order": index}))
    return reordered


def _renumber(items: Sequence[Any]) -> List[Any]:
    return [item.model_copy(update={"order": index}) for index, item in enumerate(items)]


class RoutineStore:
    """Single-writer state container with snapshot/subscribe semantics."""

    def __init__(self) -> None:
        self._state = RoutineState()
        self._listeners: List[Listener] = []

    # ==================== Observation ====================

    def snapshot(self) -> RoutineState:
        return self._state

    @property
    def routine(self) -> Optional[WorkoutRoutine]:
        return self._state.routine

    @property
    def user_profile(self) -> Optional[UserProfile]:
        return self._state.user_profile

    @property
    def is_generating(self) -> bool:
        return self._state.is_generating

    @property
    def generation_progress(self) -> List[ProgressStep]:
        return list(self._state.generation_progress)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes: Any) -> None:
        new_state = replace(self._state, **changes)
        if new_state == self._state:
            return
        self._state = new_state
        for listener in list(self._listeners):
            listener(new_state)

    def _set_routine(self, routine: WorkoutRoutine) -> None:
        self._set(routine=routine.model_copy(update={"updated_at": utc_now()}))

    def _map_day(self, day_id: str, fn: Callable[[WorkoutDay], WorkoutDay]) -> None:
        routine = self._state.routine
        if routine is None:
            return
        days = [fn(day) if day.id == day_id else day for day in routine.days]
        self._set_routine(routine.model_copy(update={"days": days}))

    # ==================== Routine ====================

    def set_routine(self, routine: Optional[WorkoutRoutine]) -> None:
        self._set(routine=routine)

    def update_routine(self, **changes: Any) -> None:
        if self._state.routine is None:
            return
        self._set_routine(self._state.routine.model_copy(update=changes))

    # ==================== Days ====================

    def add_day(self, day: Union[DayInput, WorkoutDay]) -> None:
        routine = self._state.routine
        if routine is None:
            return
        order = len(routine.days)
        if isinstance(day, DayInput):
            new_day = build_day(day, order=order)
        else:
            new_day = day.model_copy(update={"order": order})
        self._set_routine(routine.model_copy(update={"days": [*routine.days, new_day]}))

    def update_day(self, day_id: str, **changes: Any) -> None:
        self._map_day(day_id, lambda day: day.model_copy(update=changes))

    def remove_day(self, day_id: str) -> None:
        routine = self._state.routine
        if routine is None:
            return
        days = _renumber([day for day in routine.days if day.id != day_id])
        self._set_routine(routine.model_copy(update={"days": days}))

    def reorder_days(self, day_ids: Sequence[str]) -> None:
        """Reorder days to match `day_ids` (KeyError on an unknown id)."""
        routine = self._state.routine
        if routine is None:
            return
        self._set_routine(routine.model_copy(update={"days": _move(routine.days, day_ids)}))

    def find_day_by_name(self, name: str) -> Optional[WorkoutDay]:
        routine = self._state.routine
        if routine is None:
            return None
        return next((day for day in routine.days if day.name == name), None)

    # ==================== Exercises ====================

    def add_exercise(self, day_id: str, exercise: Union[ExerciseInput, Exercise]) -> None:
        def append(day: WorkoutDay) -> WorkoutDay:
            order = len(day.exercises)
            if isinstance(exercise, ExerciseInput):
                new_exercise = build_exercise(exercise, order=order)
            else:
                new_exercise = exercise.model_copy(update={"order": order})
            return day.model_copy(update={"exercises": [*day.exercises, new_exercise]})

        self._map_day(day_id, append)

    def update_exercise(self, day_id: str, exercise_id: str, **changes: Any) -> None:
        self._map_day(day_id, lambda day: day.model_copy(update={
            "exercises": [
                ex.model_copy(update=changes) if ex.id == exercise_id else ex
                for ex in day.exercises
            ],
        }))

    def remove_exercise(self, day_id: str, exercise_id: str) -> None:
        self._map_day(day_id, lambda day: day.model_copy(update={
            "exercises": _renumber([ex for ex in day.exercises if ex.id != exercise_id]),
        }))

    def reorder_exercises(self, day_id: str, exercise_ids: Sequence[str]) -> None:
        """Reorder a day's exercises to match `exercise_ids` (KeyError on an unknown id)."""
        self._map_day(day_id, lambda day: day.model_copy(update={
            "exercises": _move(day.exercises, exercise_ids),
        }))

    # ==================== Profile ====================

    def set_user_profile(self, profile: Optional[UserProfile]) -> None:
        self._set(user_profile=profile)

    def update_user_profile(self, **changes: Any) -> None:
        if self._state.user_profile is None:
            return
        self._set(user_profile=self._state.user_profile.model_copy(update=changes))

    # ==================== Generation state ====================

    def set_is_generating(self, generating: bool) -> None:
        self._set(is_generating=generating)

    def set_generation_progress(self, steps: Sequence[ProgressStep]) -> None:
        self._set(generation_progress=tuple(steps))

    def update_generation_step(self, step: str, completed: bool) -> None:
        self._set(generation_progress=tuple(
            s.model_copy(update={"completed": completed}) if s.step == step else s
            for s in self._state.generation_progress
        ))

    def reset(self) -> None:
        self._set(
            routine=None,
            user_profile=None,
            is_generating=False,
            generation_progress=(),
        )
