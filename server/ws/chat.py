"""Chat WebSocket endpoint: one receive loop per connection, fanned out by the hub."""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.requests import HTTPConnection

from logging_config import connection_id_var
from ws.hub import ConnectionHub

logger = logging.getLogger(__name__)

router = APIRouter()


def get_hub(conn: HTTPConnection) -> ConnectionHub:
    """Dependency: the process-wide hub created in the app lifespan."""
    return conn.app.state.hub


@router.websocket("/ws")
async def chat_ws(websocket: WebSocket, hub: ConnectionHub = Depends(get_hub)):
    await websocket.accept()
    connection_id_var.set(uuid.uuid4().hex)
    hub.accept(websocket)

    try:
        while True:
            message = await websocket.receive()

            if message["type"] == "websocket.disconnect":
                break

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                continue

            await hub.on_message(websocket, raw)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("Chat WS unexpected error")
    finally:
        hub.on_close(websocket)
