"""Server settings.

Values resolve in this order, first hit wins: explicit keyword arguments,
environment variables, the repo's ``.env`` file, then ``conf.json`` in the
haulchat data directory. ``conf.json`` holds non-secret runtime options that
an operator edits by hand; its keys are the lower-case setting names.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent
ENV_FILE = BASE_DIR.parent / ".env"

logger = logging.getLogger(__name__)


def get_haulchat_dir() -> Path:
    """Resolve the haulchat data directory. HAULCHAT_DIR env var or ~/.config/haulchat."""
    d = os.environ.get("HAULCHAT_DIR", "")
    return Path(d).expanduser() if d else Path.home() / ".config" / "haulchat"


class HaulchatConfig(BaseModel):
    """Shape of ``conf.json``. Empty or null entries defer to the Settings default."""

    database_url: str = ""
    log_level: str = ""
    log_file: str = ""
    cors_allow_all_origins: bool | None = None
    broadcast_on_http_append: bool | None = None
    ws_send_timeout_seconds: float | None = None
    ws_outbox_max_frames: int | None = None


def load_conf() -> HaulchatConfig:
    """Load conf.json from the haulchat data directory."""
    conf_path = get_haulchat_dir() / "conf.json"
    if conf_path.exists():
        try:
            return HaulchatConfig.model_validate_json(conf_path.read_text())
        except Exception:
            logger.warning("Failed to parse %s, using defaults", conf_path, exc_info=True)
    return HaulchatConfig()


class ConfFileSource(PydanticBaseSettingsSource):
    """Feeds the set entries of ``conf.json`` into Settings."""

    def __init__(self, settings_cls: type[BaseSettings]) -> None:
        super().__init__(settings_cls)
        self._values = {
            name.upper(): value
            for name, value in load_conf().model_dump(exclude_none=True).items()
            if value != ""
        }

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return self._values.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in self._values.items()
            if name in self.settings_cls.model_fields
        }


# Export .env into os.environ too, for anything that reads the environment directly
load_dotenv(ENV_FILE)


class Settings(BaseSettings):
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'db.sqlite3'}"

    CORS_ALLOW_ALL_ORIGINS: bool = True

    # When set, a successful HTTP message create is also fanned out over /ws
    BROADCAST_ON_HTTP_APPEND: bool = False

    # Per-connection send bound; a peer that stalls longer is disconnected
    WS_SEND_TIMEOUT_SECONDS: float = 10.0
    WS_OUTBOX_MAX_FRAMES: int = 256

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""
    LOG_MAX_BYTES: int = 10_485_760
    LOG_BACKUP_COUNT: int = 5

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            ConfFileSource(settings_cls),
            file_secret_settings,
        )


settings = Settings()
