"""FastAPI application entry point."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

# Ensure server/ is on sys.path for absolute imports
_server_dir = str(Path(__file__).resolve().parent)
if _server_dir not in sys.path:  # pragma: no cover
    sys.path.insert(0, _server_dir)

try:
    __version__ = (Path(__file__).resolve().parent.parent / "VERSION").read_text().strip()
except Exception:  # pragma: no cover
    __version__ = "0.0.0-dev"

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

import models  # noqa: F401 — register all models with Base
from api import api_router
from config import settings
from database import SessionLocal, engine, get_db, init_db
from services.conversations import ConversationStore
from ws import ws_router
from ws.chat import get_hub
from ws.hub import ConnectionHub

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Configure unified logging before anything else
    from logging_config import setup_logging
    setup_logging("Server")

    # Startup: create tables if they don't exist
    init_db()

    store = ConversationStore(SessionLocal)
    hub = ConnectionHub(
        store,
        send_timeout=settings.WS_SEND_TIMEOUT_SECONDS,
        max_queue=settings.WS_OUTBOX_MAX_FRAMES,
    )
    app.state.store = store
    app.state.hub = hub
    logger.info("Chat hub ready (broadcast_on_http_append=%s)", settings.BROADCAST_ON_HTTP_APPEND)

    yield

    # Shutdown: let in-flight message writes land before the engine goes away
    try:
        await hub.close()
    except Exception:
        logger.exception("Failed to drain chat hub on shutdown")
    engine.dispose()


app = FastAPI(title="Haulchat API", version=__version__, lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.CORS_ALLOW_ALL_ORIGINS else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(api_router)

# WebSocket endpoints
app.include_router(ws_router)


@app.get("/health")
def health(db: Session = Depends(get_db), hub: ConnectionHub = Depends(get_hub)):
    database_ok = True
    try:
        db.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Health check: database unreachable", exc_info=True)
        database_ok = False

    return {
        "status": "ok" if database_ok else "degraded",
        "database": database_ok,
        "connections": hub.connection_count,
        "version": __version__,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True, log_config=None)
