"""Broadcast helpers: encode server-originated events for the /ws relay."""

from __future__ import annotations

import json
from datetime import date, datetime
from decimal import Decimal

from schemas.chat import CHAT_MESSAGE_TYPE, ChatMessageOut


def _json_default(obj: object) -> str | float:

    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return float(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def encode_event(event_type: str, data: dict | None = None) -> str:
    """Serialize a flat ``{"type": ..., **data}`` envelope, the shape clients send."""
    payload: dict = {"type": event_type}
    if data:
        payload.update(data)
    return json.dumps(payload, default=_json_default)


def encode_chat_message(message: ChatMessageOut) -> str:
    """Envelope for a stored message, matching what a client pushes after a POST."""
    return encode_event(CHAT_MESSAGE_TYPE, message.model_dump(by_alias=True))
