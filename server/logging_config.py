"""Root logging for the chat server.

Every line carries the process role and, when known, the WebSocket connection
and dump run it concerns::

    2026-10-18 14:30:01 [Server][Conn 3f2a9c1d][Run 7][WARNING] ws.hub:120 - Send stalled

The connection and run come from context variables. ``ws/chat.py`` sets the
connection id once per socket task and the message paths set the run id, so
plain ``logging.getLogger(__name__)`` calls pick them up without extra
arguments. Tasks spawned from those paths inherit the values.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from contextvars import ContextVar
from pathlib import Path

connection_id_var: ContextVar[str] = ContextVar("connection_id_var", default="")
dump_run_id_var: ContextVar[str] = ContextVar("dump_run_id_var", default="")

STREAM_HANDLER_NAME = "_haulchat_stream"
FILE_HANDLER_NAME = "_haulchat_file"

_LINE_FORMAT = "%(asctime)s %(context)s %(name)s:%(lineno)d - %(message)s"
_QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "websockets", "multipart")
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")


class ContextFilter(logging.Filter):
    """Copies the role and the current context variables onto each record."""

    def __init__(self, role: str) -> None:
        super().__init__()
        self.role = role

    def filter(self, record: logging.LogRecord) -> bool:
        record.role = self.role  # type: ignore[attr-defined]
        record.connection_id = connection_id_var.get()  # type: ignore[attr-defined]
        record.dump_run_id = dump_run_id_var.get()  # type: ignore[attr-defined]
        return True


class ContextFormatter(logging.Formatter):
    def __init__(self, datefmt: str | None = "%Y-%m-%d %H:%M:%S") -> None:
        super().__init__(_LINE_FORMAT, datefmt)

    def formatMessage(self, record: logging.LogRecord) -> str:
        tags = [getattr(record, "role", "")]
        connection_id = getattr(record, "connection_id", "")
        if connection_id:
            tags.append(f"Conn {connection_id[:8]}")
        dump_run_id = getattr(record, "dump_run_id", "")
        if dump_run_id:
            tags.append(f"Run {dump_run_id}")
        tags.append(record.levelname)
        record.context = "".join(f"[{tag}]" for tag in tags if tag)  # type: ignore[attr-defined]
        return super().formatMessage(record)


def _attach(root: logging.Logger, handler: logging.Handler, name: str, role: str) -> None:
    handler.name = name
    handler.addFilter(ContextFilter(role))
    handler.setFormatter(ContextFormatter())
    root.addHandler(handler)


def setup_logging(role: str = "Server") -> None:
    """Install the stderr (and optional rotating file) handler on the root logger.

    A second call is a no-op. Uvicorn's own handlers are removed so its
    access and error lines come out in the same format.
    """
    from config import settings

    root = logging.getLogger()
    if any(h.name == STREAM_HANDLER_NAME for h in root.handlers):
        return

    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    _attach(root, logging.StreamHandler(sys.stderr), STREAM_HANDLER_NAME, role)

    if settings.LOG_FILE:
        log_path = Path(settings.LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        _attach(root, file_handler, FILE_HANDLER_NAME, role)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    for name in _UVICORN_LOGGERS:
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = True
