"""
Configuration management using Pydantic Settings.

All configuration is loaded from environment variables with sensible defaults.
"""

from pathlib import Path
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # HTTP
    user_agent: str = Field(
        "Mozilla/5.0 (compatible; CompetitorWatch/1.0)",
        description="User-Agent sent with every request",
    )
    feed_timeout: float = Field(15.0, description="Timeout for a top-level feed fetch (seconds)")
    discovered_feed_timeout: float = Field(10.0, description="Timeout for an autodiscovered feed (seconds)")
    page_timeout: float = Field(15.0, description="Timeout for the HTML page fetch (seconds)")

    # Extraction limits
    max_feed_text_chars: int = Field(500, description="Cap for feed item and page metadata text")
    max_context_chars: int = Field(1000, description="Cap for scraped container context")

    # Batch checking
    max_concurrent_checks: int = Field(5, description="Max sources checked at once by check_many")

    # Database (caller-side store)
    database_url: Optional[str] = Field(None, description="Database URL (leave empty for SQLite)")
    database_path: str = Field("./data/competitors.db", description="SQLite file path")

    # Logging
    log_level: str = Field("INFO", description="Log level")
    log_json: bool = Field(False, description="Output logs as JSON")

    @field_validator("feed_timeout", "discovered_feed_timeout", "page_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Every request must carry a bounded timeout."""
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v

    @field_validator("max_concurrent_checks")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"max_concurrent_checks must be at least 1, got {v}")
        return v

    @property
    def effective_database_url(self) -> str:
        """Get the effective database URL (explicit URL or SQLite file)."""
        if self.database_url:
            return self.database_url

        db_path = Path(self.database_path)
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            # Read-only filesystem
            db_path = Path("/tmp") / db_path.name
            db_path.parent.mkdir(parents=True, exist_ok=True)

        return f"sqlite:///{db_path.absolute()}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def clear_settings_cache():
    """Clear the settings cache."""
    get_settings.cache_clear()
