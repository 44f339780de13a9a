"""Workout logging routes (sessions and sets).

Ownership of every session and set is checked against the caller before
any read or mutation.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...db.repositories.session_repository import SessionRepository
from ..deps import get_sessions
from ..middleware.auth import CurrentUser, get_current_user
from ..middleware.rate_limit import RATE_LIMIT_STANDARD, limiter


router = APIRouter()
logger = logging.getLogger(__name__)


# ============================================================================
# Request Models
# ============================================================================

class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateSessionRequest(_CamelRequest):
    workout_day_id: Optional[str] = None
    notes: Optional[str] = None


class UpdateSessionRequest(_CamelRequest):
    end_time: Optional[datetime] = None
    notes: Optional[str] = None
    completed: bool = False


class CreateSetRequest(_CamelRequest):
    session_id: str
    exercise_id: str
    set_number: int = Field(..., ge=1)
    reps: int = Field(..., ge=0)
    weight: float = Field(..., ge=0)
    rpe: Optional[int] = Field(None, ge=1, le=10)


class UpdateSetRequest(_CamelRequest):
    reps: Optional[int] = Field(None, ge=0)
    weight: Optional[float] = Field(None, ge=0)
    rpe: Optional[int] = Field(None, ge=1, le=10)


# ============================================================================
# Sessions
# ============================================================================

@router.get("/workout-sessions")
@limiter.limit(RATE_LIMIT_STANDARD)
async def get_active_session(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    sessions: SessionRepository = Depends(get_sessions),
):
    """The caller's open session with its sets, or null."""
    session = sessions.get_active_session(current_user.user_id)
    return session.to_dict() if session else None


@router.post("/workout-sessions")
@limiter.limit(RATE_LIMIT_STANDARD)
async def create_session(
    request: Request,
    body: CreateSessionRequest,
    current_user: CurrentUser = Depends(get_current_user),
    sessions: SessionRepository = Depends(get_sessions),
):
    """Start a session; 409 while another one is open."""
    session = sessions.create_session(
        current_user.user_id,
        workout_day_id=body.workout_day_id,
        notes=body.notes,
    )
    logger.info(f"[sessions] user {current_user.user_id} started session {session.id}")
    return session.to_dict()


@router.patch("/workout-sessions/{session_id}")
@limiter.limit(RATE_LIMIT_STANDARD)
async def update_session(
    request: Request,
    session_id: str,
    body: UpdateSessionRequest,
    current_user: CurrentUser = Depends(get_current_user),
    sessions: SessionRepository = Depends(get_sessions),
):
    session = sessions.update_session(
        session_id,
        current_user.user_id,
        end_time=body.end_time,
        notes=body.notes,
        completed=body.completed,
    )
    return session.to_dict()


# ============================================================================
# Sets
# ============================================================================

@router.post("/workout-sets")
@limiter.limit(RATE_LIMIT_STANDARD)
async def create_set(
    request: Request,
    body: CreateSetRequest,
    current_user: CurrentUser = Depends(get_current_user),
    sessions: SessionRepository = Depends(get_sessions),
):
    workout_set = sessions.create_set(
        current_user.user_id,
        session_id=body.session_id,
        exercise_id=body.exercise_id,
        set_number=body.set_number,
        reps=body.reps,
        weight=body.weight,
        rpe=body.rpe,
    )
    return workout_set.to_dict()


@router.patch("/workout-sets/{set_id}")
@limiter.limit(RATE_LIMIT_STANDARD)
async def update_set(
    request: Request,
    set_id: str,
    body: UpdateSetRequest,
    current_user: CurrentUser = Depends(get_current_user),
    sessions: SessionRepository = Depends(get_sessions),
):
    workout_set = sessions.update_set(
        set_id,
        current_user.user_id,
        reps=body.reps,
        weight=body.weight,
        rpe=body.rpe,
    )
    return workout_set.to_dict()


@router.delete("/workout-sets/{set_id}")
@limiter.limit(RATE_LIMIT_STANDARD)
async def delete_set(
    request: Request,
    set_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    sessions: SessionRepository = Depends(get_sessions),
):
    sessions.delete_set(set_id, current_user.user_id)
    return {"success": True}
