"""Routine persistence and retrieval.

- POST /save-routine: persist a generated routine (idempotent per name)
- GET /routines: the caller's saved programs
- GET /routines/{program_id}: one saved program
"""

import logging
import sqlite3

from fastapi import APIRouter, Depends, Request

from ...db.repositories.program_repository import ProgramRepository
from ...exceptions import DatabaseError, NotFoundError
from ...models.routine import SaveRoutineRequest
from ..deps import get_programs
from ..middleware.auth import CurrentUser, get_current_user
from ..middleware.rate_limit import RATE_LIMIT_STANDARD, limiter


router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/save-routine")
@limiter.limit(RATE_LIMIT_STANDARD)
async def save_routine(
    request: Request,
    body: SaveRoutineRequest,
    current_user: CurrentUser = Depends(get_current_user),
    programs: ProgramRepository = Depends(get_programs),
):
    """
    Save a generated routine as a program.

    Saving a routine whose name the user already has returns the existing
    program id without writing anything.
    """
    try:
        program_id, created = programs.save_routine(body.routine, current_user.user_id)
    except sqlite3.Error as e:
        logger.error(f"[save-routine] failed for user {current_user.user_id}: {e}", exc_info=True)
        raise DatabaseError("Failed to save workout routine", operation="save_routine")

    if created:
        logger.info(f"[save-routine] saved '{body.routine.name}' as program {program_id}")

    return {
        "success": True,
        "message": "Workout routine saved successfully",
        "data": {"programId": program_id},
    }


@router.get("/routines")
@limiter.limit(RATE_LIMIT_STANDARD)
async def list_routines(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    programs: ProgramRepository = Depends(get_programs),
):
    """List the caller's programs, oldest first, with days and exercises."""
    return [program.to_dict() for program in programs.list_programs(current_user.user_id)]


@router.get("/routines/{program_id}")
@limiter.limit(RATE_LIMIT_STANDARD)
async def get_routine(
    request: Request,
    program_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    programs: ProgramRepository = Depends(get_programs),
):
    program = programs.get_program(program_id, current_user.user_id)
    if program is None:
        raise NotFoundError("Program not found", resource_type="program")
    return program.to_dict()
