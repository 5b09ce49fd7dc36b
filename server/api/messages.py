"""Chat message endpoints: durable write and history for one dump run."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api._helpers import get_dump_run, get_store
from auth import get_current_user
from config import settings
from database import get_db
from logging_config import dump_run_id_var
from models.user import UserProfile
from schemas.chat import ChatMessageIn, ChatMessageOut
from services.conversations import ConversationStore
from ws.broadcast import encode_chat_message
from ws.chat import get_hub
from ws.hub import ConnectionHub

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{dump_run_id}/messages", response_model=list[ChatMessageOut])
def list_messages(
    dump_run_id: int,
    store: ConversationStore = Depends(get_store),
    profile: UserProfile = Depends(get_current_user),
):
    return store.history(dump_run_id)


@router.post("/{dump_run_id}/messages", response_model=ChatMessageOut, status_code=201)
async def create_message(
    dump_run_id: int,
    payload: ChatMessageIn,
    db: Session = Depends(get_db),
    store: ConversationStore = Depends(get_store),
    hub: ConnectionHub = Depends(get_hub),
    profile: UserProfile = Depends(get_current_user),
):
    dump_run_id_var.set(str(dump_run_id))
    await asyncio.to_thread(get_dump_run, dump_run_id, db)

    try:
        msg = await asyncio.to_thread(store.append, dump_run_id, profile.id, payload.message)
    except Exception:
        logger.exception("Failed to store chat message")
        raise HTTPException(status_code=500, detail="Failed to create chat message.")

    out = ChatMessageOut.model_validate(msg)
    if settings.BROADCAST_ON_HTTP_APPEND:
        queued = await hub.broadcast(encode_chat_message(out))
        logger.debug("Queued message %d for %d connection(s)", out.id, queued)
    return out
