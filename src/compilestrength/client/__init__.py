"""Client-side routine state and stream consumption."""

from .routine_store import RoutineState, RoutineStore
from .stream_consumer import (
    CompileStrengthClient,
    RoutineStreamConsumer,
    aiter_sse_events,
    iter_sse_events,
)

__all__ = [
    "RoutineState",
    "RoutineStore",
    "CompileStrengthClient",
    "RoutineStreamConsumer",
    "aiter_sse_events",
    "iter_sse_events",
]
