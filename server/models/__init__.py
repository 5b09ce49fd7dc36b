"""SQLAlchemy models — re-export all."""

from models.user import UserProfile, APIKey  # noqa: F401
from models.dump_run import DumpRun  # noqa: F401
from models.chat_message import ChatMessage  # noqa: F401
