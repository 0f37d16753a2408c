"""anyrss service configuration."""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PORT = 10086
DEFAULT_DB_FILE = ".anyrss.db"
DEFAULT_ID_BASELINE = 1000
DEFAULT_FEED_LIST_LIMIT = 100


class Settings(BaseSettings):
    """anyrss service settings."""

    model_config = SettingsConfigDict(
        env_prefix="ANYRSS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    reload: bool = False

    # Storage
    db_file: str = DEFAULT_DB_FILE
    id_baseline: int = DEFAULT_ID_BASELINE  # Counter value used when the store is new

    # Listing
    feed_list_limit: int = DEFAULT_FEED_LIST_LIMIT  # Items per JSON list / RSS document

    # Environment
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    quiet_access_paths: list[str] = ["/health"]  # JSON list in ANYRSS_QUIET_ACCESS_PATHS

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Convert log level to uppercase."""
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    """
    Get the global settings instance.
    """
    return Settings()
