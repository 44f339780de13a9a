"""Usage metering models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class UsageKind(str, Enum):
    """The independently metered actions."""

    COMPILE = "compile"
    ROUTINE_EDIT = "routine_edit"
    AI_MESSAGE = "ai_message"


class QuotaStatus(BaseModel):
    """Whether one more action of a kind is allowed in the current period."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    allowed: bool
    used: int = Field(ge=0)
    limit: int = Field(ge=0)
    resets_at: Optional[datetime] = None


class UsageSummary(BaseModel):
    """All three counters of the caller's current period."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    period_id: str
    period_start: datetime
    period_end: datetime
    compiles: QuotaStatus
    routine_edits: QuotaStatus
    ai_messages: QuotaStatus
