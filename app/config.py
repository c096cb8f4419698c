"""
SGI Compliance Tracker - Configuration Settings

This module handles all application configuration using Pydantic Settings.
Environment variables are loaded from .env file.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # ===========================================
    # APPLICATION CONFIGURATION
    # ===========================================
    app_name: str = "SGI Compliance Tracker"
    app_env: str = "development"
    debug: bool = False

    # ===========================================
    # PERSISTENCE CONFIGURATION
    # "database" uses the SQLAlchemy document collections,
    # "local" uses a single JSON file (one process only)
    # ===========================================
    persistence_backend: str = "database"
    database_url_async: str = "sqlite+aiosqlite:///./compliance_tracker.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    local_store_path: str = "./data/compliance_store.json"

    @property
    def uses_local_store(self) -> bool:
        """Whether the local JSON fallback is selected."""
        return self.persistence_backend.lower() == "local"

    # ===========================================
    # EVIDENCE FILE STORAGE
    # ===========================================
    storage_backend: str = "local"
    storage_local_path: str = "./uploads"
    azure_storage_connection_string: Optional[str] = None
    azure_storage_container: str = "evidence"
    max_upload_size_bytes: int = 25 * 1024 * 1024  # 25 MB
    allowed_evidence_mime_types: str = (
        "application/pdf,image/jpeg,image/png,image/gif,image/webp,"
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet,"
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
    )

    @property
    def allowed_evidence_mime_types_list(self) -> List[str]:
        """Parse allowed MIME types into a list."""
        return [m.strip() for m in self.allowed_evidence_mime_types.split(",") if m.strip()]

    # ===========================================
    # COMPLIANCE CALENDAR
    # ===========================================
    legacy_plan_year: int = 2025  # Year the legacy monthly_plan alias belongs to
    main_plant_id: str = "MOSQUERA"

    # ===========================================
    # CORS SETTINGS
    # ===========================================
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:8000"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins string into list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reading .env file on every call.
    """
    return Settings()


# Export settings instance
settings = get_settings()
