"""LangGraph agents for CompileStrength."""

from .routine_agent import (
    RoutineAgent,
    StreamEvent,
    get_available_llm,
    get_routine_agent,
    reset_routine_agent,
)
from .prompts import AVAILABLE_AGENT_TYPES, BODYBUILDING_SYSTEM_PROMPT

__all__ = [
    "RoutineAgent",
    "StreamEvent",
    "get_available_llm",
    "get_routine_agent",
    "reset_routine_agent",
    "AVAILABLE_AGENT_TYPES",
    "BODYBUILDING_SYSTEM_PROMPT",
]
