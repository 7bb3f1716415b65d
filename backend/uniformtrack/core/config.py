"""Application configuration using pydantic-settings.

All environment variables should be accessed through the settings object
rather than using os.getenv() directly.
"""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database - relative SQLite file for local use, override via env
    database_url: str = "sqlite:///./uniformtrack.db"
    database_echo: bool = False

    # Which document store backs the services: "sql" or "firestore"
    document_store: Literal["sql", "firestore"] = "sql"

    # Firestore (only read when document_store == "firestore")
    firebase_credentials_path: Optional[str] = None
    firebase_project_id: Optional[str] = None

    # Inventory
    low_stock_threshold: int = 10
    default_logged_by: str = "mobile-user"

    # CORS - comma-separated origins or "*" for development only
    cors_origins: str = "http://localhost:3000,http://localhost:8081"

    # Server
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Rate limiting
    rate_limit_enabled: bool = True

    @field_validator("low_stock_threshold")
    @classmethod
    def validate_low_stock_threshold(cls, v: int) -> int:
        if v < 0:
            raise ValueError("LOW_STOCK_THRESHOLD must not be negative")
        return v

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
