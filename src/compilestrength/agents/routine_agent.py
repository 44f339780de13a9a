"""LangGraph-based routine-generation agent.

The agent runs a ReAct loop over the routine tools and streams what
happens as StreamEvents:

- text: a text delta from the model
- tool_start: a tool call began
- tool_result: a tool call finished; carries the tool's JSON result
- tool_error: a tool call was rejected by input validation; the loop goes on
- done: the turn finished (possibly because the tool-step bound was hit)
- error: the model/provider failed; carries a user-facing message

Tool round trips per request are bounded by ``max_tool_steps``.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Dict, List, Literal, Optional

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_openai import ChatOpenAI
from langgraph.errors import GraphRecursionError
from langgraph.prebuilt import create_react_agent

from ..config import get_settings
from ..exceptions import AgentNotAvailableError, LLMError
from ..tools.routine_tools import TOOL_REGISTRY, ToolName, build_routine_tools
from .prompts import AGENT_PROMPTS


logger = logging.getLogger(__name__)

GENERATION_ERROR_MESSAGE = (
    "I encountered an issue while generating your workout. Please try again "
    "or provide more specific information about your goals."
)

_TOOL_NAMES = {name.value for name in ToolName}


def get_available_llm(
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
):
    """Get the best available chat model based on configured API keys.

    Priority: OpenAI (the configured default model) > Anthropic

    Returns:
        Tuple of (llm_instance, model_id, provider)

    Raises:
        LLMError: If no provider key is configured
    """
    settings = get_settings()
    model = model or settings.llm_model
    temperature = settings.llm_temperature if temperature is None else temperature
    max_tokens = max_tokens or settings.llm_max_tokens

    openai_key = settings.openai_api_key or os.getenv("OPENAI_API_KEY")
    anthropic_key = settings.anthropic_api_key or os.getenv("ANTHROPIC_API_KEY")

    if openai_key and "claude" not in model:
        return ChatOpenAI(
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            api_key=openai_key,
        ), model, "openai"

    if anthropic_key:
        model_id = model if "claude" in model else "claude-sonnet-4-20250514"
        return ChatAnthropic(
            model=model_id,
            temperature=temperature,
            max_tokens=max_tokens,
            api_key=anthropic_key,
        ), model_id, "anthropic"

    raise LLMError("No LLM available. Set OPENAI_API_KEY or ANTHROPIC_API_KEY.")


# ============================================================================
# Streaming Event Types
# ============================================================================

StreamEventType = Literal[
    "status", "text", "tool_start", "tool_result", "tool_error", "done", "error"
]


@dataclass
class StreamEvent:
    """Event emitted during a streamed chat turn."""

    type: StreamEventType
    content: Optional[str] = None
    tool_name: Optional[str] = None
    tool_call_id: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    errors: Optional[List[Dict[str, Any]]] = None
    message: Optional[str] = None
    tools_used: Optional[List[str]] = None
    step_limit_reached: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a camelCase dictionary for JSON serialization."""
        result: Dict[str, Any] = {"type": self.type}
        if self.content is not None:
            result["content"] = self.content
        if self.tool_name is not None:
            result["toolName"] = self.tool_name
        if self.tool_call_id is not None:
            result["toolCallId"] = self.tool_call_id
        if self.result is not None:
            result["result"] = self.result
        if self.errors is not None:
            result["errors"] = self.errors
        if self.message is not None:
            result["message"] = self.message
        if self.tools_used is not None:
            result["toolsUsed"] = self.tools_used
        if self.step_limit_reached is not None:
            result["stepLimitReached"] = self.step_limit_reached
        return result


def _text_from_chunk(content: Any) -> str:
    """Text of a streamed chunk; providers send either a str or content blocks."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            block.get("text", "")
            for block in content
            if isinstance(block, dict) and block.get("type") == "text"
        )
    return ""


def _parse_tool_output(output: Any) -> tuple[Optional[str], Optional[str], Dict[str, Any]]:
    """Split a tool end payload into (tool_call_id, status, parsed JSON)."""
    tool_call_id = None
    status = None
    content = output
    if isinstance(output, ToolMessage):
        tool_call_id = output.tool_call_id
        status = output.status
        content = output.content

    if isinstance(content, dict):
        return tool_call_id, status, content
    try:
        parsed = json.loads(content)
    except (TypeError, ValueError):
        parsed = {"content": content}
    if not isinstance(parsed, dict):
        parsed = {"content": parsed}
    return tool_call_id, status, parsed


class RoutineAgent:
    """Conversational routine builder over a ReAct tool loop.

    Args:
        agent_type: Which agent persona to run (only "bodybuilding" today)
        llm: Chat model; resolved from settings when omitted
        max_tool_steps: Bound on tool round trips per turn
        agent_executor: Prebuilt graph (mainly for tests); built from llm
            and the routine tools when omitted
    """

    def __init__(
        self,
        agent_type: str = "bodybuilding",
        llm=None,
        max_tool_steps: Optional[int] = None,
        agent_executor=None,
    ) -> None:
        if agent_type not in AGENT_PROMPTS:
            raise AgentNotAvailableError(agent_type)

        self.agent_type = agent_type
        self._system_prompt = AGENT_PROMPTS[agent_type]
        self._max_tool_steps = max_tool_steps or get_settings().max_tool_steps
        self._tools = build_routine_tools()

        if agent_executor is None:
            if llm is None:
                llm, model_id, provider = get_available_llm()
                logger.info(f"[agent] using {provider} model {model_id}")
            agent_executor = create_react_agent(llm, self._tools)
        self._agent_executor = agent_executor

    @property
    def recursion_limit(self) -> int:
        # One model step plus one tool step per round trip, plus the final answer
        return 2 * self._max_tool_steps + 1

    def _build_messages(self, messages: List[Dict[str, str]]) -> List[BaseMessage]:
        converted: List[BaseMessage] = [SystemMessage(content=self._system_prompt)]
        for message in messages:
            role = message.get("role")
            content = message.get("content", "")
            if role == "user":
                converted.append(HumanMessage(content=content))
            elif role == "assistant":
                converted.append(AIMessage(content=content))
        return converted

    async def chat_stream(
        self,
        messages: List[Dict[str, str]],
    ) -> AsyncGenerator[StreamEvent, None]:
        """Run one conversational turn and stream its events.

        Args:
            messages: Conversation so far as {role, content} dicts, oldest
                first; roles other than user/assistant are ignored

        Yields:
            StreamEvent objects, ending with exactly one done or error event
        """
        tools_used: List[str] = []
        active_tool_calls: Dict[str, str] = {}  # run_id -> tool name
        step_limit_reached = False

        try:
            async for event in self._agent_executor.astream_events(
                {"messages": self._build_messages(messages)},
                config={"recursion_limit": self.recursion_limit},
                version="v2",
            ):
                event_type = event.get("event", "")
                event_data = event.get("data", {})

                if event_type == "on_tool_start":
                    tool_name = event.get("name", "unknown_tool")
                    active_tool_calls[event.get("run_id", "")] = tool_name
                    tools_used.append(tool_name)
                    spec = TOOL_REGISTRY.get(ToolName(tool_name)) if tool_name in _TOOL_NAMES else None
                    yield StreamEvent(
                        type="tool_start",
                        tool_name=tool_name,
                        message=spec.status_message if spec else f"Running {tool_name}...",
                    )

                elif event_type == "on_tool_end":
                    tool_name = active_tool_calls.pop(
                        event.get("run_id", ""), event.get("name", "unknown_tool")
                    )
                    tool_call_id, status, parsed = _parse_tool_output(event_data.get("output"))

                    if status == "error":
                        logger.info(f"[agent] {tool_name} rejected invalid input")
                        yield StreamEvent(
                            type="tool_error",
                            tool_name=tool_name,
                            tool_call_id=tool_call_id,
                            errors=parsed.get("details", []),
                            message=parsed.get("error", "Tool call failed"),
                        )
                    else:
                        yield StreamEvent(
                            type="tool_result",
                            tool_name=tool_name,
                            tool_call_id=tool_call_id,
                            result=parsed,
                        )

                elif event_type == "on_chat_model_stream":
                    chunk = event_data.get("chunk")
                    text = _text_from_chunk(getattr(chunk, "content", None))
                    if text:
                        yield StreamEvent(type="text", content=text)

        except GraphRecursionError:
            step_limit_reached = True
            logger.warning(
                f"[agent] tool step limit ({self._max_tool_steps}) reached; ending turn"
            )
        except Exception as e:
            logger.error(f"Error in routine agent stream: {e}", exc_info=True)
            yield StreamEvent(type="error", message=GENERATION_ERROR_MESSAGE)
            return

        yield StreamEvent(
            type="done",
            tools_used=tools_used,
            step_limit_reached=step_limit_reached,
        )


# Singleton instance
_routine_agent: Optional[RoutineAgent] = None


def get_routine_agent() -> RoutineAgent:
    """Get or create the bodybuilding RoutineAgent."""
    global _routine_agent
    if _routine_agent is None:
        _routine_agent = RoutineAgent()
    return _routine_agent


def reset_routine_agent() -> None:
    """Reset the RoutineAgent singleton (for testing)."""
    global _routine_agent
    _routine_agent = None
