"""Shared fixtures: temporary databases, a controllable clock, sample routines."""

import os
import tempfile
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from compilestrength.api.deps import get_billing, get_programs, get_sessions, get_usage
from compilestrength.api.middleware.rate_limit import limiter
from compilestrength.db.repositories.program_repository import ProgramRepository
from compilestrength.db.repositories.session_repository import SessionRepository
from compilestrength.db.repositories.subscription_repository import SubscriptionRepository
from compilestrength.db.repositories.usage_repository import UsageRepository
from compilestrength.main import app
from compilestrength.models.routine import RoutineInput
from compilestrength.models.usage import UsageKind
from compilestrength.services.auth_service import AuthService, get_auth_service
from compilestrength.services.billing_service import BillingService
from compilestrength.services.routine_builder import assign_routine_identifiers
from compilestrength.services.usage_service import UsageService


SUBSCRIPTION_CREATED_AT = datetime(2025, 1, 6, 9, 30, tzinfo=timezone.utc)

TEST_LIMITS = {
    UsageKind.COMPILE: 1,
    UsageKind.ROUTINE_EDIT: 5,
    UsageKind.AI_MESSAGE: 3,
}


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def temp_db_path():
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name
    yield db_path
    try:
        os.unlink(db_path)
    except OSError:
        pass


@pytest.fixture
def subscription_repo(temp_db_path):
    return SubscriptionRepository(db_path=temp_db_path)


@pytest.fixture
def usage_repo(temp_db_path):
    return UsageRepository(db_path=temp_db_path)


@pytest.fixture
def program_repo(temp_db_path):
    return ProgramRepository(db_path=temp_db_path)


@pytest.fixture
def session_repo(temp_db_path):
    return SessionRepository(db_path=temp_db_path)


@pytest.fixture
def clock():
    """Clock set one day into the subscription's first period."""
    return FixedClock(SUBSCRIPTION_CREATED_AT + timedelta(days=1))


@pytest.fixture
def subscription(subscription_repo):
    """An active subscription anchored at SUBSCRIPTION_CREATED_AT."""
    return subscription_repo.create_subscription(
        user_id="user-123",
        status="active",
        created_at=SUBSCRIPTION_CREATED_AT,
        email="lifter@example.com",
    )


@pytest.fixture
def usage_service(subscription_repo, usage_repo, clock):
    return UsageService(
        subscription_repo=subscription_repo,
        usage_repo=usage_repo,
        limits=TEST_LIMITS,
        clock=clock,
    )


@pytest.fixture
def auth_service():
    return AuthService(
        secret_key="test-secret-key-for-unit-testing-only-32chars",
        algorithm="HS256",
    )


@pytest.fixture
def routine_input_payload():
    """camelCase createWorkoutRoutine input, as the model would send it."""
    return {
        "name": "Beginner Full Body",
        "description": "Three full-body sessions per week",
        "frequency": 3,
        "duration": 8,
        "difficulty": "beginner",
        "goals": ["muscle_gain"],
        "days": [
            {
                "name": "Full Body A",
                "exercises": [
                    {
                        "name": "Goblet Squat",
                        "muscleGroups": ["quads", "glutes"],
                        "equipment": "dumbbell",
                        "sets": 3,
                        "reps": "8-12",
                        "restPeriod": 90,
                    },
                    {
                        "name": "Dumbbell Bench Press",
                        "muscleGroups": ["chest", "triceps"],
                        "equipment": "dumbbell",
                        "sets": 3,
                        "reps": "8-12",
                        "restPeriod": 90,
                        "notes": "Control the descent",
                    },
                ],
            },
            {
                "name": "Full Body B",
                "exercises": [
                    {
                        "name": "Romanian Deadlift",
                        "muscleGroups": ["hamstrings", "glutes"],
                        "equipment": "dumbbell",
                        "sets": 3,
                        "reps": "10-12",
                        "restPeriod": 120,
                        "weight": 40,
                    },
                ],
            },
        ],
    }


@pytest.fixture
def make_routine(routine_input_payload):
    """Factory for normalized routines (ids, order and timestamps assigned)."""
    def factory(**overrides):
        payload = {**routine_input_payload, **overrides}
        return assign_routine_identifiers(RoutineInput.model_validate(payload))

    return factory


# ============================================================================
# API
# ============================================================================

@pytest.fixture
def api_client(auth_service, usage_service, program_repo, session_repo, subscription_repo):
    """TestClient whose dependencies point at the temporary database."""
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    app.dependency_overrides[get_usage] = lambda: usage_service
    app.dependency_overrides[get_programs] = lambda: program_repo
    app.dependency_overrides[get_sessions] = lambda: session_repo
    app.dependency_overrides[get_billing] = lambda: BillingService(subscription_repo)
    limiter.reset()

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(auth_service):
    """Factory for bearer headers; defaults to the `subscription` fixture's user."""
    def factory(user_id="user-123", email="lifter@example.com"):
        token = auth_service.create_access_token(user_id, email)
        return {"Authorization": f"Bearer {token}"}

    return factory
