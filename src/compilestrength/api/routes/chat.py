"""Chat endpoint for the routine-generation agent.

Streams the agent's turn as server-sent events: one `data: {json}` line per
StreamEvent, terminated by `data: [DONE]`.
"""

import json
import logging
from typing import List, Literal

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...config import get_settings
from ...models.usage import UsageKind
from ...services.usage_service import UsageService
from ..deps import AgentFactory, get_agent_factory, get_usage
from ..middleware.auth import CurrentUser, get_current_user
from ..middleware.quota import enforce_quota
from ..middleware.rate_limit import RATE_LIMIT_AI, limiter


router = APIRouter()
logger = logging.getLogger(__name__)


# ============================================================================
# Request Models
# ============================================================================

class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatRequest(BaseModel):
    """A conversation to continue with the named agent."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    messages: List[ChatMessage] = Field(..., min_length=1)
    agent_type: str = "bodybuilding"


# ============================================================================
# Endpoints
# ============================================================================

@router.post("/chat")
@limiter.limit(RATE_LIMIT_AI)
async def chat(
    request: Request,
    body: ChatRequest,
    current_user: CurrentUser = Depends(get_current_user),
    agent_factory: AgentFactory = Depends(get_agent_factory),
    usage_service: UsageService = Depends(get_usage),
):
    """
    Run one turn of the routine-generation conversation.

    Unknown agent types get 400 before any usage is recorded. With AI
    message metering on, the turn counts one AI message and 402 is returned
    when the period allowance is used up.
    """
    agent = agent_factory(body.agent_type)

    if get_settings().meter_ai_messages:
        enforce_quota(usage_service, UsageKind.AI_MESSAGE, current_user.user_id)

    messages = [message.model_dump() for message in body.messages]
    logger.info(
        f"[chat] user {current_user.user_id} started a {body.agent_type} turn "
        f"({len(messages)} messages)"
    )

    async def generate():
        async for event in agent.chat_stream(messages):
            yield f"data: {json.dumps(event.to_dict())}\n\n"
        yield "data: [DONE]\n\n"

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable proxy buffering
        },
    )
