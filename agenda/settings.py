from __future__ import annotations

import os
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_secret: str = Field("", alias="AGENDA_APP_SECRET")
    backend_session_secret: str = Field("", alias="BACKEND_SESSION_SECRET")

    database_url: str = Field("sqlite+aiosqlite:///./agenda.db", alias="DATABASE_URL")
    store_backend: str = Field("sql", alias="AGENDA_STORE")

    timezone: str = Field("America/Sao_Paulo", alias="AGENDA_TIMEZONE")
    local_state_path: str = Field(".agenda_local.json", alias="AGENDA_LOCAL_STATE_PATH")

    allowed_users_raw: str = Field("", alias="ALLOWED_USERS")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    @property
    def allowed_users(self) -> List[str]:
        return [uid.strip() for uid in self.allowed_users_raw.split(",") if uid.strip()]


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None


# For local dev convenience only.
if os.getenv("AGENDA_DEBUG_SETTINGS"):
    print(get_settings())
