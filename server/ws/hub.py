"""In-process WebSocket hub: fan-out to every other live connection.

The hub is conversation-agnostic. Every frame that parses as a JSON object is
relayed verbatim to all other connected clients, which filter by ``dumpRunId``
themselves. Complete ``chat_message`` frames are additionally appended to the
conversation store in a background thread; that write is never awaited by the
relay path and its failure is only logged.

Each connection owns an outbox. A broadcast appends to every outbox without
yielding, so all receivers see frames in the order the hub handled them, and a
short-lived writer task per connection does the actual sends. A peer that
stops reading only fills its own outbox: once a send stalls past
``send_timeout`` or the outbox reaches ``max_queue`` frames, that connection is
dropped and nobody else notices.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections import deque

from fastapi import WebSocket
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from logging_config import dump_run_id_var
from schemas.chat import CHAT_MESSAGE_TYPE, ChatEnvelope
from services.conversations import ConversationStore

logger = logging.getLogger(__name__)


class _Outbox:
    __slots__ = ("websocket", "frames", "writer")

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        self.frames: deque[str] = deque()
        self.writer: asyncio.Task | None = None

    @property
    def busy(self) -> bool:
        return self.writer is not None and not self.writer.done()


def _current_task() -> asyncio.Task | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None


class ConnectionHub:
    def __init__(
        self,
        store: ConversationStore | None = None,
        *,
        send_timeout: float = 10.0,
        max_queue: int = 256,
    ) -> None:
        self._store = store
        self._send_timeout = send_timeout
        self._max_queue = max_queue
        self._outboxes: dict[WebSocket, _Outbox] = {}
        self._pending: set[asyncio.Task] = set()

    @property
    def connection_count(self) -> int:
        return len(self._outboxes)

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    # ── Connection lifecycle ──────────────────────────────────────────────

    def accept(self, websocket: WebSocket) -> None:
        """Register an already-accepted connection for broadcasts."""
        if websocket in self._outboxes:
            logger.debug("Connection already registered, ignoring")
            return
        self._outboxes[websocket] = _Outbox(websocket)
        logger.info("Connection opened (%d live)", len(self._outboxes))

    def on_close(self, websocket: WebSocket) -> None:
        if self._drop(websocket):
            logger.info("Connection closed (%d live)", len(self._outboxes))

    def _drop(self, websocket: WebSocket) -> bool:
        outbox = self._outboxes.pop(websocket, None)
        if outbox is None:
            return False
        outbox.frames.clear()
        if outbox.busy and outbox.writer is not _current_task():
            outbox.writer.cancel()
        return True

    # ── Inbound frames ────────────────────────────────────────────────────

    async def on_message(self, websocket: WebSocket, raw: str | bytes) -> None:
        """Relay one inbound frame and, for chat messages, persist it.

        Undecodable or non-object frames are logged and dropped; nothing is
        sent back to the sender and its connection stays open.
        """
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError:
                logger.warning("Dropping binary frame that is not UTF-8")
                return

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Dropping unparseable frame: %s", exc)
            return
        if not isinstance(data, dict):
            logger.warning("Dropping frame that is not a JSON object (%s)", type(data).__name__)
            return

        await self.broadcast(raw, exclude=websocket)

        if data.get("type") == CHAT_MESSAGE_TYPE:
            self._schedule_persist(data)

    # ── Fan-out ───────────────────────────────────────────────────────────

    async def broadcast(self, text: str, exclude: WebSocket | None = None) -> int:
        """Queue *text* for every open connection except *exclude*.

        Connections that are not connected are skipped. A connection whose
        outbox is already full is dropped. Returns the number of connections
        the frame was queued for; ``flush()`` waits until they are sent.
        """
        queued = 0
        # No awaits in this loop: one frame lands in every outbox before the next
        for client, outbox in list(self._outboxes.items()):
            if client is exclude:
                continue
            if (
                client.client_state != WebSocketState.CONNECTED
                or client.application_state != WebSocketState.CONNECTED
            ):
                continue
            if len(outbox.frames) >= self._max_queue:
                logger.warning(
                    "Outbox full (%d frames), dropping connection", len(outbox.frames),
                )
                self._drop(client)
                continue
            outbox.frames.append(text)
            if not outbox.busy:
                outbox.writer = asyncio.create_task(self._write(outbox), name="ws-writer")
            queued += 1
        return queued

    async def _write(self, outbox: _Outbox) -> None:
        websocket = outbox.websocket
        while outbox.frames:
            text = outbox.frames.popleft()
            try:
                await asyncio.wait_for(websocket.send_text(text), timeout=self._send_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Send stalled for %.1fs, dropping connection", self._send_timeout,
                )
                self._drop(websocket)
                return
            except Exception:
                logger.warning("Send failed, dropping connection", exc_info=True)
                self._drop(websocket)
                return

    async def flush(self) -> None:
        """Wait until every outbox is empty or its connection has been dropped."""
        while True:
            writers = [o.writer for o in self._outboxes.values() if o.busy]
            if not writers:
                return
            await asyncio.gather(*writers, return_exceptions=True)

    # ── Persistence ───────────────────────────────────────────────────────

    def _schedule_persist(self, data: dict) -> None:
        if self._store is None:
            return
        try:
            envelope = ChatEnvelope.model_validate(data)
        except ValidationError as exc:
            logger.warning(
                "Incomplete chat_message relayed but not stored: %d validation error(s)",
                exc.error_count(),
            )
            return

        # The task copies the current context, so its log lines carry the run id
        token = dump_run_id_var.set(str(envelope.dump_run_id))
        try:
            task = asyncio.create_task(
                asyncio.to_thread(
                    self._store.append, envelope.dump_run_id, envelope.user_id, envelope.message,
                ),
                name=f"persist-run-{envelope.dump_run_id}",
            )
        finally:
            dump_run_id_var.reset(token)
        self._pending.add(task)
        task.add_done_callback(self._on_persist_done)

    def _on_persist_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning("Chat message write %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Chat message write %s failed", task.get_name(),
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def drain(self) -> None:
        """Wait for every in-flight write to finish (successfully or not)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        """Shutdown: flush outboxes, finish pending writes, forget all connections."""
        await self.flush()
        await self.drain()
        for websocket in list(self._outboxes):
            self._drop(websocket)
