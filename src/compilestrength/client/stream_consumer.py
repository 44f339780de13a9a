"""Client side of the chat stream.

CompileStrengthClient talks to the API over httpx (chat stream and routine
save). RoutineStreamConsumer reads parsed stream events, applies tool
results to a RoutineStore, and persists each generated routine once.
"""

import asyncio
import json
import logging
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Set,
)

import httpx
from pydantic import ValidationError

from ..config import get_settings
from ..models.routine import (
    Exercise,
    ProgressStep,
    UserProfile,
    WorkoutDay,
    WorkoutRoutine,
)
from ..tools.routine_tools import ToolName
from .routine_store import RoutineStore


logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"

RoutineSaver = Callable[[WorkoutRoutine], Awaitable[Any]]


def _parse_data_line(line: str) -> Optional[Dict[str, Any]]:
    line = line.strip()
    if not line.startswith("data:"):
        return None
    payload = line[len("data:"):].strip()
    if payload == DONE_SENTINEL:
        return {"type": DONE_SENTINEL}
    return json.loads(payload)


def iter_sse_events(lines: Iterable[str]) -> Iterator[Dict[str, Any]]:
    """Parse `data: {...}` lines into dicts, stopping at `data: [DONE]`."""
    for line in lines:
        event = _parse_data_line(line)
        if event is None:
            continue
        if event.get("type") == DONE_SENTINEL:
            return
        yield event


async def aiter_sse_events(lines: AsyncIterable[str]) -> AsyncIterator[Dict[str, Any]]:
    """Async variant of iter_sse_events."""
    async for line in lines:
        event = _parse_data_line(line)
        if event is None:
            continue
        if event.get("type") == DONE_SENTINEL:
            return
        yield event


class CompileStrengthClient:
    """Minimal async HTTP client for the chat and save-routine endpoints."""

    def __init__(
        self,
        token: str,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = (base_url or get_settings().api_base_url).rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"}
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(60.0))
        self._owns_client = http_client is None

    async def save_routine(self, routine: WorkoutRoutine) -> str:
        """POST a routine to /save-routine and return the program id."""
        response = await self._client.post(
            f"{self._base_url}/api/v1/save-routine",
            json={"routine": routine.to_wire()},
            headers=self._headers,
        )
        response.raise_for_status()
        return response.json()["data"]["programId"]

    async def stream_chat(
        self,
        messages: List[Dict[str, str]],
        agent_type: str = "bodybuilding",
    ) -> AsyncIterator[Dict[str, Any]]:
        """POST to /chat and yield the parsed stream events."""
        async with self._client.stream(
            "POST",
            f"{self._base_url}/api/v1/chat",
            json={"messages": messages, "agentType": agent_type},
            headers=self._headers,
        ) as response:
            response.raise_for_status()
            async for event in aiter_sse_events(response.aiter_lines()):
                yield event

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class RoutineStreamConsumer:
    """
    Applies streamed tool results to a RoutineStore.

    Dispatch by tool name:
    - updateUserProfile: replaces the profile
    - createWorkoutRoutine: replaces the routine and schedules one save
    - setGenerationProgress: replaces the progress steps
    - addWorkoutDay / addExercise: append to the current routine

    A routine is saved at most once per "{id}-{name}" key for the lifetime
    of the consumer, however often its result is replayed. Saves run as
    background tasks; their failures are logged, not raised.
    """

    def __init__(self, store: RoutineStore, saver: Optional[RoutineSaver] = None) -> None:
        self.store = store
        self._saver = saver
        self._processed_keys: Set[str] = set()
        self._pending: Set[asyncio.Task] = set()

    @property
    def processed_keys(self) -> Set[str]:
        return set(self._processed_keys)

    async def consume(self, events: AsyncIterable[Dict[str, Any]]) -> None:
        """
        Apply every event of one stream.

        Cancelling the task running this stops consumption; state already
        applied to the store stays as it is.
        """
        self.store.set_is_generating(True)
        try:
            async for event in events:
                self.handle_event(event)
        finally:
            self.store.set_is_generating(False)

    def handle_event(self, event: Dict[str, Any]) -> None:
        event_type = event.get("type")
        if event_type == "tool_result":
            self.handle_tool_result(event.get("toolName", ""), event.get("result") or {})
        elif event_type == "tool_error":
            logger.info(f"[client] {event.get('toolName')} rejected: {event.get('errors')}")
        elif event_type == "error":
            logger.warning(f"[client] generation failed: {event.get('message')}")

    def handle_tool_result(self, tool_name: str, result: Dict[str, Any]) -> None:
        try:
            name = ToolName(tool_name)
        except ValueError:
            logger.debug(f"[client] ignoring result of unknown tool {tool_name}")
            return

        try:
            if name is ToolName.UPDATE_USER_PROFILE and result.get("profile"):
                self.store.set_user_profile(UserProfile.model_validate(result["profile"]))

            elif name is ToolName.CREATE_WORKOUT_ROUTINE and result.get("routine"):
                routine = WorkoutRoutine.model_validate(result["routine"])
                self.store.set_routine(routine)
                self._persist_once(routine)

            elif name is ToolName.SET_GENERATION_PROGRESS and "steps" in result:
                self.store.set_generation_progress(
                    [ProgressStep.model_validate(step) for step in result["steps"]]
                )

            elif name is ToolName.ADD_WORKOUT_DAY and result.get("day"):
                self.store.add_day(WorkoutDay.model_validate(result["day"]))

            elif name is ToolName.ADD_EXERCISE and result.get("exercise"):
                day = self.store.find_day_by_name(result.get("dayName", ""))
                if day is not None:
                    self.store.add_exercise(day.id, Exercise.model_validate(result["exercise"]))
        except ValidationError as e:
            logger.warning(f"[client] malformed {tool_name} result: {e}")

    def _persist_once(self, routine: WorkoutRoutine) -> None:
        key = f"{routine.id}-{routine.name}"
        if key in self._processed_keys:
            return
        self._processed_keys.add(key)

        if self._saver is None:
            return
        task = asyncio.get_running_loop().create_task(self._save(routine))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _save(self, routine: WorkoutRoutine) -> None:
        try:
            program_id = await self._saver(routine)
            logger.info(f"[client] routine '{routine.name}' saved as program {program_id}")
        except Exception as e:
            logger.error(f"[client] failed to save routine '{routine.name}': {e}")

    async def wait_pending(self) -> None:
        """Wait for every scheduled save to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
