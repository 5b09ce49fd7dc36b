"""Shared helpers and dependencies for API routers."""

from __future__ import annotations

from fastapi import HTTPException
from sqlalchemy.orm import Session
from starlette.requests import HTTPConnection

from models.dump_run import DumpRun
from services.conversations import ConversationStore


def get_store(conn: HTTPConnection) -> ConversationStore:
    """Dependency: the conversation store created in the app lifespan."""
    return conn.app.state.store


def get_dump_run(dump_run_id: int, db: Session) -> DumpRun:
    """Look up a dump run by id or raise 404."""
    run = db.get(DumpRun, dump_run_id)
    if not run:
        raise HTTPException(status_code=404, detail="Dump run not found.")
    return run
