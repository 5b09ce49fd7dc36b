"""Auth schemas."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TokenRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    key: str


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=150)
    password: str = Field(min_length=4)
    first_name: str = ""
    last_name: str = ""
    email: str | None = Field(None, min_length=3)
    has_truck: bool = False


class MeResponse(BaseModel):
    id: int
    username: str
    first_name: str
    last_name: str
    has_truck: bool = False

    model_config = ConfigDict(from_attributes=True)
