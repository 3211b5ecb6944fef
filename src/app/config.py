from __future__ import annotations

from typing import Optional

from pydantic import AnyUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: Optional[AnyUrl] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[SecretStr] = None
    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:8080"],
    )

    # Direct gateway credentials (the Lovable gateway wins when both are set)
    LOVABLE_API_KEY: Optional[SecretStr] = None
    OPENAI_API_KEY: Optional[SecretStr] = None

    # Workflow webhooks
    N8N_WEBHOOK_URL: Optional[str] = None
    RECIPE_CHAT_WEBHOOK_URL: Optional[str] = None

    AI_REQUEST_TIMEOUT_SECONDS: float = Field(default=60.0, gt=0)
    AI_TRANSPORT_RETRIES: int = Field(default=0, ge=0, le=5)


settings = Settings()
