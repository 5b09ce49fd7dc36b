"""Dump run schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DumpRunIn(BaseModel):
    title: str = Field(min_length=1)
    location: str = Field(min_length=1)
    description: str | None = None
    date: datetime
    max_participants: int = Field(3, ge=1)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DumpRunOut(BaseModel):
    id: int
    title: str
    location: str
    description: str | None
    date: datetime
    organizer_id: int
    max_participants: int
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)
