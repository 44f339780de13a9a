"""
Routine-generation tools for the bodybuilding agent.

Six capabilities share one shape (name, input model, execute). Each input
is validated against its pydantic model before `execute` runs; execute
functions only shape data and have no side effects. Persistence happens
later, on the client, when it sees a createWorkoutRoutine result.

Results are camelCase JSON-safe dicts so they can be streamed verbatim.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Type

from langchain_core.tools import StructuredTool
from pydantic import ValidationError

from ..models.routine import (
    AddExerciseInput,
    CamelModel,
    DayInput,
    Explanation,
    GenerationProgressInput,
    RoutineInput,
    UserProfile,
)
from ..services.routine_builder import (
    assign_routine_identifiers,
    build_day,
    build_exercise,
)


logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    """Wire names of the tools, as the model and client see them."""

    UPDATE_USER_PROFILE = "updateUserProfile"
    CREATE_WORKOUT_ROUTINE = "createWorkoutRoutine"
    ADD_WORKOUT_DAY = "addWorkoutDay"
    ADD_EXERCISE = "addExercise"
    EXPLAIN_CHOICE = "explainChoice"
    SET_GENERATION_PROGRESS = "setGenerationProgress"


@dataclass(frozen=True)
class ToolSpec:
    """One tool capability."""

    name: ToolName
    description: str
    input_model: Type[CamelModel]
    execute: Callable[[Any], Dict[str, Any]]
    status_message: str


# ============================================================================
# Tool bodies
# ============================================================================

def update_user_profile(profile: UserProfile) -> Dict[str, Any]:
    """Echo the collected profile back for the client store."""
    return {
        "success": True,
        "message": (
            f"Updated user profile with {profile.experience} experience level "
            f"targeting {', '.join(profile.goals)}"
        ),
        "profile": profile.to_wire(),
    }


def create_workout_routine(spec: RoutineInput) -> Dict[str, Any]:
    """Assign ids, order and timestamps to a complete routine."""
    routine = assign_routine_identifiers(spec)
    return {
        "success": True,
        "message": (
            f"Created {spec.name} - a {spec.difficulty} {spec.frequency}x/week routine"
        ),
        "routine": routine.to_wire(),
    }


def add_workout_day(spec: DayInput) -> Dict[str, Any]:
    return {"day": build_day(spec).to_wire()}


def add_exercise(spec: AddExerciseInput) -> Dict[str, Any]:
    return {
        "dayName": spec.day_name,
        "exercise": build_exercise(spec.exercise).to_wire(),
    }


def explain_choice(spec: Explanation) -> Dict[str, Any]:
    return {"explanation": spec.to_wire()}


def set_generation_progress(spec: GenerationProgressInput) -> Dict[str, Any]:
    return {"steps": [step.to_wire() for step in spec.steps]}


# ============================================================================
# Dispatch table
# ============================================================================

TOOL_REGISTRY: Dict[ToolName, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec(
            name=ToolName.UPDATE_USER_PROFILE,
            description=(
                "Update or set the user's profile information including experience, "
                "goals, and constraints"
            ),
            input_model=UserProfile,
            execute=update_user_profile,
            status_message="Updating your profile...",
        ),
        ToolSpec(
            name=ToolName.CREATE_WORKOUT_ROUTINE,
            description="Create a complete workout routine based on user profile and goals",
            input_model=RoutineInput,
            execute=create_workout_routine,
            status_message="Building your routine...",
        ),
        ToolSpec(
            name=ToolName.ADD_WORKOUT_DAY,
            description="Add a new workout day to the current routine",
            input_model=DayInput,
            execute=add_workout_day,
            status_message="Adding a workout day...",
        ),
        ToolSpec(
            name=ToolName.ADD_EXERCISE,
            description="Add an exercise to a specific workout day",
            input_model=AddExerciseInput,
            execute=add_exercise,
            status_message="Adding an exercise...",
        ),
        ToolSpec(
            name=ToolName.EXPLAIN_CHOICE,
            description=(
                "Explain the reasoning behind exercise selection, rep ranges, or "
                "program structure"
            ),
            input_model=Explanation,
            execute=explain_choice,
            status_message="Explaining the choice...",
        ),
        ToolSpec(
            name=ToolName.SET_GENERATION_PROGRESS,
            description="Update the progress steps shown while the routine is generated",
            input_model=GenerationProgressInput,
            execute=set_generation_progress,
            status_message="Updating progress...",
        ),
    )
}


def format_validation_errors(exc: ValidationError) -> List[Dict[str, str]]:
    """Flatten a pydantic error into [{field, message, code}] entries."""
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "code": error["type"],
        }
        for error in exc.errors()
    ]


def run_tool(name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate `payload` for the named tool and execute it.

    Raises:
        ValueError: If no tool has this name
        pydantic.ValidationError: If the payload violates the input model;
            execute is not called in that case
    """
    spec = TOOL_REGISTRY[ToolName(name)]
    validated = spec.input_model.model_validate(payload)
    return spec.execute(validated)


def _validation_error_content(exc: ValidationError) -> str:
    return json.dumps({
        "success": False,
        "error": "Validation failed",
        "details": format_validation_errors(exc),
    })


def _make_runner(spec: ToolSpec) -> Callable[..., Dict[str, Any]]:
    def runner(**kwargs: Any) -> Dict[str, Any]:
        # kwargs arrive already validated, keyed by field name; nested values
        # may be model instances, so revalidate into the concrete model.
        validated = spec.input_model.model_validate(kwargs)
        logger.debug(f"[tools] executing {spec.name.value}")
        return spec.execute(validated)

    runner.__name__ = spec.name.value
    return runner


def build_routine_tools() -> List[StructuredTool]:
    """LangChain tools for every registered capability, in registry order."""
    return [
        StructuredTool.from_function(
            func=_make_runner(spec),
            name=spec.name.value,
            description=spec.description,
            args_schema=spec.input_model,
            handle_validation_error=_validation_error_content,
        )
        for spec in TOOL_REGISTRY.values()
    ]
