"""Pydantic models for generated workout routines.

Two families live here:

- ``*Input`` models are what the language model must supply to a tool.
  Their constraints (rest >= 30s, duration >= 4 weeks, ...) are the
  generation policy.
- ``Exercise``/``WorkoutDay``/``WorkoutRoutine`` are routines after
  identifiers, order and timestamps have been assigned. They are the
  shape clients post back to ``/save-routine`` and carry the looser
  persistence constraints.

All models speak camelCase on the wire and accept snake_case in Python.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


Difficulty = Literal["beginner", "intermediate", "advanced"]


class CamelModel(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        """JSON-safe dict using the camelCase aliases."""
        return self.model_dump(mode="json", by_alias=True)


# ============================================================================
# Tool inputs
# ============================================================================

class ExerciseInput(CamelModel):
    """One exercise as proposed by the model."""

    name: str = Field(..., description="The name of the exercise")
    muscle_groups: List[str] = Field(
        ..., description="Primary and secondary muscle groups targeted"
    )
    equipment: str = Field(..., description="Equipment needed for the exercise")
    sets: int = Field(..., ge=1, description="Number of sets to perform")
    reps: str = Field(..., description='Number of reps (e.g., "8-12", "10", "AMRAP")')
    rest_period: int = Field(..., ge=30, description="Rest period in seconds")
    weight: Optional[float] = Field(
        None, description="Starting weight in pounds (optional)"
    )
    notes: Optional[str] = Field(None, description="Exercise-specific notes or form cues")


class DayInput(CamelModel):
    """One training day as proposed by the model."""

    name: str = Field(
        ..., description='Name of the workout day (e.g., "Push Day", "Pull Day")'
    )
    exercises: List[ExerciseInput] = Field(
        ..., description="List of exercises for this day"
    )


class RoutineInput(CamelModel):
    """A complete routine as proposed by the model."""

    name: str = Field(..., description="Name of the workout routine")
    description: Optional[str] = Field(None, description="Brief description of the routine")
    days: List[DayInput] = Field(..., description="Workout days in the routine")
    frequency: int = Field(..., ge=1, le=7, description="Training frequency per week")
    duration: int = Field(..., ge=4, description="Program duration in weeks")
    difficulty: Difficulty = Field(..., description="Routine difficulty level")
    goals: List[str] = Field(..., description="Primary goals of the routine")


class TimeConstraints(CamelModel):
    days_per_week: int = Field(..., ge=1, le=7, description="Number of training days per week")
    minutes_per_session: int = Field(..., ge=30, description="Minutes available per session")


class Preferences(CamelModel):
    favorite_exercises: Optional[List[str]] = None
    exercises_to_avoid: Optional[List[str]] = None


class UserProfile(CamelModel):
    """The trainee's profile as collected during the conversation."""

    experience: Difficulty = Field(..., description="Training experience level")
    goals: List[str] = Field(
        ..., description="Training goals (e.g., muscle_gain, strength, fat_loss)"
    )
    available_equipment: List[str] = Field(..., description="Available equipment")
    time_constraints: TimeConstraints
    physical_limitations: Optional[List[str]] = Field(
        None, description="Any injuries or physical limitations"
    )
    preferences: Optional[Preferences] = None


class AddExerciseInput(CamelModel):
    day_name: str = Field(..., description="Name of the day to add the exercise to")
    exercise: ExerciseInput


class Explanation(CamelModel):
    topic: str = Field(
        ..., description="What to explain (exercise choice, rep range, frequency, etc.)"
    )
    reasoning: str = Field(
        ..., description="Detailed explanation of the reasoning behind the choice"
    )
    evidence: Optional[str] = Field(
        None, description="Scientific evidence or principles supporting the choice"
    )


class ProgressStep(CamelModel):
    step: str = Field(..., description="Short label of the generation step")
    description: str = Field(..., description="What happens in this step")
    completed: bool = Field(..., description="Whether the step is done")


class GenerationProgressInput(CamelModel):
    steps: List[ProgressStep] = Field(..., description="Ordered generation steps")


# ============================================================================
# Normalized routine (identifiers, order, timestamps assigned)
# ============================================================================

class Exercise(CamelModel):
    id: str
    name: str = Field(..., min_length=1)
    muscle_groups: List[str]
    equipment: str
    sets: int = Field(..., ge=1)
    reps: str = Field(..., min_length=1)
    rest_period: int = Field(..., ge=0)
    weight: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None
    order: int = Field(..., ge=0)


class WorkoutDay(CamelModel):
    id: str
    name: str = Field(..., min_length=1)
    exercises: List[Exercise]
    order: int = Field(..., ge=0)


class WorkoutRoutine(CamelModel):
    id: str
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    days: List[WorkoutDay]
    frequency: int = Field(..., ge=1, le=7)
    duration: int = Field(..., ge=1)
    difficulty: Difficulty
    goals: List[str]
    created_at: datetime
    updated_at: datetime


class SaveRoutineRequest(CamelModel):
    routine: WorkoutRoutine
