"""Tests for RoutineStore - immutable snapshots, mutations and subscriptions."""

from datetime import datetime, timezone

import pytest

from compilestrength.client.routine_store import RoutineStore
from compilestrength.models.routine import DayInput, ExerciseInput, ProgressStep, UserProfile


@pytest.fixture
def store(make_routine):
    store = RoutineStore()
    store.set_routine(make_routine())
    return store


def _exercise(name="Lateral Raise"):
    return ExerciseInput(
        name=name,
        muscle_groups=["shoulders"],
        equipment="dumbbell",
        sets=3,
        reps="12-15",
        rest_period=60,
    )


class TestSnapshots:
    """Tests for snapshot semantics."""

    def test_initial_state(self):
        state = RoutineStore().snapshot()
        assert state.routine is None
        assert state.user_profile is None
        assert state.is_generating is False
        assert state.generation_progress == ()

    def test_snapshot_is_not_mutated(self, store):
        before = store.snapshot()
        store.add_day(DayInput(name="Arms", exercises=[]))

        assert len(before.routine.days) == 2
        assert len(store.snapshot().routine.days) == 3

    def test_reset(self, store):
        store.set_is_generating(True)
        store.reset()
        assert store.snapshot() == RoutineStore().snapshot()


class TestDays:
    """Tests for day mutations."""

    def test_add_day_assigns_order_and_ids(self, store):
        store.add_day(DayInput(name="Arms", exercises=[_exercise()]))

        day = store.routine.days[-1]
        assert day.order == 2
        assert day.exercises[0].order == 0
        assert day.id not in {d.id for d in store.routine.days[:-1]}

    def test_mutation_touches_updated_at(self, store):
        stale = datetime(2024, 1, 1, tzinfo=timezone.utc)
        store.set_routine(store.routine.model_copy(update={"updated_at": stale}))

        store.update_day(store.routine.days[0].id, name="Legs A")

        assert store.routine.days[0].name == "Legs A"
        assert store.routine.updated_at > stale

    def test_remove_day_renumbers(self, store):
        store.add_day(DayInput(name="Arms", exercises=[]))
        store.remove_day(store.routine.days[0].id)

        assert [d.name for d in store.routine.days] == ["Full Body B", "Arms"]
        assert [d.order for d in store.routine.days] == [0, 1]

    def test_reorder_days(self, store):
        first, second = store.routine.days
        store.reorder_days([second.id, first.id])

        assert [d.id for d in store.routine.days] == [second.id, first.id]
        assert [d.order for d in store.routine.days] == [0, 1]

    def test_reorder_unknown_day(self, store):
        with pytest.raises(KeyError):
            store.reorder_days(["nope"])

    def test_mutations_without_routine_are_ignored(self):
        store = RoutineStore()
        store.add_day(DayInput(name="Arms", exercises=[]))
        store.update_routine(name="x")
        assert store.routine is None

    def test_find_day_by_name(self, store):
        assert store.find_day_by_name("Full Body B").order == 1
        assert store.find_day_by_name("Missing") is None


class TestExercises:
    """Tests for exercise mutations."""

    def test_add_exercise_appends_with_order(self, store):
        day_id = store.routine.days[0].id
        store.add_exercise(day_id, _exercise())

        exercises = store.routine.days[0].exercises
        assert exercises[-1].name == "Lateral Raise"
        assert exercises[-1].order == 2

    def test_update_exercise(self, store):
        day = store.routine.days[0]
        store.update_exercise(day.id, day.exercises[0].id, sets=4)
        assert store.routine.days[0].exercises[0].sets == 4

    def test_remove_exercise_renumbers(self, store):
        day = store.routine.days[0]
        store.remove_exercise(day.id, day.exercises[0].id)

        exercises = store.routine.days[0].exercises
        assert [e.name for e in exercises] == ["Dumbbell Bench Press"]
        assert exercises[0].order == 0

    def test_reorder_exercises(self, store):
        day = store.routine.days[0]
        ids = [e.id for e in reversed(day.exercises)]
        store.reorder_exercises(day.id, ids)

        assert [e.id for e in store.routine.days[0].exercises] == ids
        assert [e.order for e in store.routine.days[0].exercises] == [0, 1]


class TestProfileAndProgress:
    """Tests for profile and generation progress."""

    def test_profile(self):
        store = RoutineStore()
        store.update_user_profile(goals=["strength"])
        assert store.user_profile is None

        store.set_user_profile(UserProfile.model_validate({
            "experience": "intermediate",
            "goals": ["muscle_gain"],
            "availableEquipment": ["barbell"],
            "timeConstraints": {"daysPerWeek": 4, "minutesPerSession": 75},
        }))
        store.update_user_profile(goals=["strength"])

        assert store.user_profile.goals == ["strength"]
        assert store.user_profile.time_constraints.days_per_week == 4

    def test_progress_steps(self):
        store = RoutineStore()
        store.set_generation_progress([
            ProgressStep(step="profile", description="Collect profile", completed=False),
            ProgressStep(step="routine", description="Build routine", completed=False),
        ])
        store.update_generation_step("profile", True)

        assert [s.completed for s in store.generation_progress] == [True, False]


class TestSubscriptions:
    """Tests for change notification."""

    def test_listener_receives_new_state(self):
        store = RoutineStore()
        seen = []
        store.subscribe(seen.append)

        store.set_is_generating(True)

        assert len(seen) == 1
        assert seen[0].is_generating is True
        assert seen[0] is store.snapshot()

    def test_no_notification_without_change(self):
        store = RoutineStore()
        seen = []
        store.subscribe(seen.append)

        store.set_is_generating(False)
        store.set_routine(None)

        assert seen == []

    def test_unsubscribe(self):
        store = RoutineStore()
        seen = []
        unsubscribe = store.subscribe(seen.append)

        unsubscribe()
        unsubscribe()
        store.set_is_generating(True)

        assert seen == []
