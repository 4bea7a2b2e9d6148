"""Environment-driven application settings."""

import os
from typing import Literal, Optional
from pydantic import BaseModel, Field


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    """Settings shared by the API server and the sync client."""
    # Data service
    database_backend: Literal["sqlite", "supabase"] = Field(default="sqlite")
    database_path: str = Field(default="database.sqlite", description="SQLite database file")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3001, ge=1, le=65535)
    cors_allow_origin: str = Field(default="*")
    seed_sample_data: bool = Field(default=True)
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None

    # Sync client
    api_url: str = Field(default="http://localhost:3001")
    sync_debounce_seconds: float = Field(default=1.5, ge=0.0)
    api_timeout_seconds: float = Field(default=10.0, gt=0.0)
    view_state_path: str = Field(default=".task_tracker_view.json")

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        return cls(
            database_backend=os.environ.get("DATABASE_BACKEND", "sqlite").lower(),
            database_path=os.environ.get("DATABASE_PATH", "database.sqlite"),
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", "3001")),
            cors_allow_origin=os.environ.get("CORS_ALLOW_ORIGIN", "*"),
            seed_sample_data=_env_bool("SEED_SAMPLE_DATA", "true"),
            supabase_url=os.environ.get("SUPABASE_URL"),
            supabase_service_role_key=os.environ.get("SUPABASE_SERVICE_ROLE_KEY"),
            api_url=os.environ.get("API_URL", "http://localhost:3001").rstrip("/"),
            sync_debounce_seconds=float(os.environ.get("SYNC_DEBOUNCE_SECONDS", "1.5")),
            api_timeout_seconds=float(os.environ.get("API_TIMEOUT_SECONDS", "10")),
            view_state_path=os.environ.get("VIEW_STATE_PATH", ".task_tracker_view.json"),
        )


# Global settings instance (singleton pattern)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or create the settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
