"""Conversation store: ordered, durable chat history per dump run."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from models.chat_message import ChatMessage

logger = logging.getLogger(__name__)


class ConversationStore:
    """Append-only message log keyed by dump-run id.

    Owns its sessions: every call opens one from *session_factory* and closes
    it before returning, so the store is safe to call from a worker thread.
    Message ids come from the table's integer primary key, which makes
    insertion order, id order and history order the same thing.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def append(self, conversation_id: int, author_id: int, body: str) -> ChatMessage:
        """Persist one message and return it with ``id`` and ``created_at`` set."""
        if not isinstance(body, str) or not body:
            raise ValueError("Message body must be a non-empty string.")

        with self._session_factory() as session:
            msg = ChatMessage(dump_run_id=conversation_id, user_id=author_id, message=body)
            session.add(msg)
            try:
                session.commit()
            except Exception:
                session.rollback()
                raise
            session.refresh(msg)
            logger.debug("Stored message %d for dump run %d", msg.id, conversation_id)
            return msg

    def history(self, conversation_id: int) -> list[ChatMessage]:
        """Return every message of *conversation_id*, oldest first.

        Unknown ids yield an empty list.
        """
        with self._session_factory() as session:
            stmt = (
                select(ChatMessage)
                .where(ChatMessage.dump_run_id == conversation_id)
                .order_by(ChatMessage.id.asc())
            )
            return list(session.execute(stmt).scalars().all())
