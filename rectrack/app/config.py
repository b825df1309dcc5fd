from __future__ import annotations

from typing import Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: AnyUrl
    SUPABASE_SERVICE_ROLE_KEY: str
    # sign-in/sign-up clients; falls back to the service key when unset
    SUPABASE_ANON_KEY: Optional[str] = None
    APP_ENV: str = "local"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:8080"],
    )

    ALLOW_VISITOR_RECOMMENDATIONS: bool = True
    SHOW_TEST_DATA_FOR_VISITORS: bool = True
    VISITOR_PERSISTENT_STORE: bool = False
    VISITOR_STORE_DIR: str = ".visitor_data"
    VISITOR_RECOMMENDATION_LIMIT: int = 15
    VISITOR_SESSION_IDLE_SECONDS: float = 60 * 60 * 6
    VISITOR_MAX_SESSIONS: int = 10_000

    QUERY_STALE_SECONDS: float = 300
    DEV_READ_LATENCY_MS: int = 0

    @property
    def read_latency_seconds(self) -> float:
        if self.APP_ENV != "local":
            return 0.0
        return max(0, self.DEV_READ_LATENCY_MS) / 1000


settings = Settings()
