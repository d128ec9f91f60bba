"""Application settings using Pydantic BaseSettings."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Supabase Configuration
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    supabase_service_role_key: str | None = None

    # Storage layout
    tasks_table: str = "tasks"
    attachments_bucket: str = "task-attachments"

    # Web shell
    login_path: str = "/login"
    dashboard_path: str = "/dashboard"
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    port: int = 8000
    environment: str = "development"


# Global settings instance
settings = Settings()
