"""
Configuration management for the Story Rotation Engine

Loads environment variables and provides application settings.
"""

from pydantic_settings import BaseSettings
from typing import Optional
from functools import lru_cache
from pathlib import Path


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    app_name: str = "Story Rotation Engine"
    log_level: str = "INFO"
    debug_mode: bool = False  # Adds a timestamped debug file handler
    log_dir: str = "logs"

    # Language used for subtype labels when the caller passes none
    default_story_language: str = "de"

    # =========================================================================
    # Subtype Rotation
    # Recency exclusion reads the last N subtype history rows per child and
    # category. When fewer than `subtype_min_candidates` subtypes survive,
    # exclusion shrinks to the last `subtype_relaxed_window` rows.
    # =========================================================================
    subtype_history_window: int = 5
    subtype_relaxed_window: int = 2
    subtype_min_candidates: int = 3

    # =========================================================================
    # Learning Themes
    # Threshold used when a caregiver config carries an unknown frequency
    # =========================================================================
    default_learning_threshold: int = 2

    # Reference data (learning themes + subtype catalog) for the in-memory store
    rotation_catalog_path: str = str(Path(__file__).parent / "rotation_catalog.yaml")

    # =========================================================================
    # Azure SQL Database Configuration
    # =========================================================================
    azure_sql_server: Optional[str] = None  # e.g., fablino-db.database.windows.net
    azure_sql_database: Optional[str] = None
    azure_sql_username: Optional[str] = None
    azure_sql_password: Optional[str] = None

    # Set USE_AZURE_SQL=true to read rotation data from Azure SQL
    use_azure_sql: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # .env may carry keys for the rest of the backend

    def has_azure_sql_credentials(self) -> bool:
        """True when every Azure SQL connection field is set."""
        return all([
            self.azure_sql_server,
            self.azure_sql_database,
            self.azure_sql_username,
            self.azure_sql_password,
        ])


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures we only load settings once.
    """
    return Settings()
