"""Chat message schemas: HTTP bodies and the /ws envelope."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr
from pydantic.alias_generators import to_camel

CHAT_MESSAGE_TYPE = "chat_message"


class ChatMessageIn(BaseModel):
    message: str = Field(min_length=1)


class ChatMessageOut(BaseModel):
    id: int
    dump_run_id: int
    user_id: int
    message: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class ChatEnvelope(BaseModel):
    """A ``chat_message`` frame complete enough to be persisted.

    Extra keys are allowed and ignored; the hub relays the raw frame, not this model.
    """

    type: str
    dump_run_id: StrictInt
    user_id: StrictInt
    message: StrictStr = Field(min_length=1)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")
