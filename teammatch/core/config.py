from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # ─────────── APP ───────────
    app_name: str = "Spring Studio Team Matching"
    environment: str = "dev"
    log_level: str = "INFO"

    # ─────────── API ───────────
    api_prefix: str = "/api/v1"
    request_id_header: str = "X-Request-Id"

    # ─────────── DATABASE ───────────
    database_url: str = "sqlite:///./teammatch.db"

    # ─────────── JWT / AUTH ───────────
    # tokens are issued by the auth provider; we only verify them
    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"

    # ─────────── ENGINE ───────────
    atomic_match_creation: bool = True
    history_window: int = 100
    operation_timeout_seconds: Optional[float] = None
    realtime_queue_size: int = 256
    # per-user ledgers and unread maps
    session_idle_seconds: Optional[float] = 1800.0
    session_max_users: Optional[int] = 10000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
