"""LangChain tools for the routine-generation agent."""

from .routine_tools import (
    TOOL_REGISTRY,
    ToolName,
    ToolSpec,
    build_routine_tools,
    format_validation_errors,
    run_tool,
)

__all__ = [
    "TOOL_REGISTRY",
    "ToolName",
    "ToolSpec",
    "build_routine_tools",
    "format_validation_errors",
    "run_tool",
]
