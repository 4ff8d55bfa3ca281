"""Type-safe environment configuration using Pydantic Settings."""

from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables.

    Every field has a default so a bare environment works against the
    public Hacker News API. Values are validated on load.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields in .env
        env_ignore_empty=True,
        env_parse_none_str="None",  # SEARCH_DEADLINE=None disables the deadline
    )

    APP_NAME: str = Field(
        default="hn-recent-stories",
        description="Application name"
    )

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment"
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )

    DEBUG: bool = Field(
        default=False,
        description="Debug mode flag"
    )

    # Remote API
    HN_API_BASE_URL: str = Field(
        default="https://hacker-news.firebaseio.com/v0",
        description="Base URL of the Hacker News item API"
    )

    HN_BACKLOG_ENDPOINT: str = Field(
        default="newstories",
        description="Name of the newest-first ID list (fetched as <name>.json)"
    )

    API_TIMEOUT: float = Field(
        default=10.0,
        description="Per-request timeout in seconds",
        gt=0
    )

    # Search tuning
    BATCH_SIZE: int = Field(
        default=40,
        description="Maximum number of item lookups in flight at once",
        gt=0,
        le=40
    )

    MAX_VALID_STORIES: int = Field(
        default=20,
        description="Number of stories to collect before stopping",
        gt=0
    )

    MIN_SCORE: int = Field(
        default=70,
        description="Minimum score for a story to be kept",
        ge=0
    )

    MAX_STORY_AGE_HOURS: float = Field(
        default=4,
        description="Stories older than this many hours are discarded",
        gt=0
    )

    STORY_TYPE: str = Field(
        default="story",
        description="Item type accepted while scanning arbitrary IDs"
    )

    AGE_PROBE_MODE: Literal["oldest", "last"] = Field(
        default="oldest",
        description="How a batch's age is measured: oldest item or last item"
    )

    MAX_SCAN_BATCHES: int = Field(
        default=50,
        description="Upper bound on batches fetched by the descending ID scan",
        gt=0
    )

    SEARCH_DEADLINE: Optional[float] = Field(
        default=120.0,
        description="Deadline for a whole search in seconds (None to disable)",
        gt=0
    )

    # Retry behaviour for single item lookups
    FETCH_MAX_RETRIES: int = Field(
        default=2,
        description="Retries per item lookup on transient failures",
        ge=0
    )

    FETCH_RETRY_DELAY: float = Field(
        default=0.5,
        description="Initial delay between retries in seconds",
        ge=0
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f"LOG_LEVEL must be one of {valid_levels}, got '{v}'"
            )
        return v_upper

    @field_validator("HN_API_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended with '/'."""
        return v.rstrip("/")


# Singleton instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Loads settings from environment variables and .env file on first call.
    Subsequent calls return the cached instance.

    Returns:
        Settings: The application settings instance

    Raises:
        ValidationError: If environment variables hold invalid values
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the settings singleton. Useful for testing."""
    global _settings
    _settings = None
