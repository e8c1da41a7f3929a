"""reviewstream configuration."""

import logging

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    """Application settings loaded from environment or .env."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # GitHub
    github_token: str = ""
    github_api_url: str = "https://api.github.com"
    github_raw_url: str = "https://raw.githubusercontent.com"
    default_branch: str = "main"

    # Inference
    llm_model: str = "claude-sonnet-4-5-20250929"
    llm_temperature: float = 0.3
    max_chars_per_file: int = 8000

    # Storage
    database_path: str = "review_history.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Application
    log_level: str = "INFO"

    # -----------------------------------
    # Field Validators
    # -----------------------------------

    @field_validator("github_token")
    @classmethod
    def strip_github_token(cls, v: str) -> str:
        """Strip surrounding whitespace from the GitHub token.

        An empty token is allowed; requests to public repositories are then
        sent unauthenticated.
        """
        return v.strip() if v else ""

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that the log level is one of the standard level names.

        Args:
            v: The log level from environment or config.

        Returns:
            The upper-cased level name.

        Raises:
            ValueError: If the level is not a standard logging level.
        """
        level = v.strip().upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"❌ LOG_LEVEL must be one of {', '.join(sorted(VALID_LOG_LEVELS))}."
            )
        return level

    @field_validator("max_chars_per_file")
    @classmethod
    def validate_max_chars(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("❌ MAX_CHARS_PER_FILE must be positive.")
        return v


def create_settings() -> Settings:
    """Load and validate application settings from environment variables.

    Returns:
        Settings: Validated settings instance.

    Raises:
        SystemExit: Exits with code 1 if validation fails.
    """
    try:
        return Settings()
    except ValidationError as e:
        for err in e.errors():
            logger.error(f"  {err['msg']}")
        raise SystemExit(1)


# Global singleton – loaded once
settings = create_settings()
