"""Configuration management using pydantic-settings.

All environment variables are loaded and validated here.
Sensitive data (API keys) are marked as secret to prevent logging.
"""

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every field has a default so the tracker can run locally without
    a title-parsing API key; scans simply parse nothing in that case.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Title parsing (Anthropic)
    anthropic_api_key: SecretStr | None = Field(
        default=None,
        description="Anthropic API key used to parse torrent titles",
    )

    parser_model: str = Field(
        default="claude-haiku-4-5",
        description="Model used for torrent title parsing",
    )

    parse_cache_path: str = Field(
        default=".cache/parsed-titles.json",
        description="File used to persist parsed titles between runs",
    )

    parse_cache_ttl: int = Field(
        default=7 * 24 * 60 * 60,
        description="Parsed title cache TTL in seconds",
        ge=0,
    )

    # Nyaa search
    nyaa_base_url: str = Field(
        default="https://nyaa.si",
        description="Base URL of the Nyaa index (or a mirror)",
    )

    nyaa_category: str = Field(
        default="1_2",
        description="Nyaa category filter (1_2 = Anime - English-translated)",
    )

    request_timeout: float = Field(
        default=30.0,
        description="HTTP request timeout in seconds",
        gt=0,
    )

    # Storage
    database_path: str = Field(
        default="data/anitrack.db",
        description="Path to the SQLite database file",
    )

    # Episode numbering
    default_episodes_per_season: int = Field(
        default=12,
        description="Episodes assumed for a season with no catalog data",
        ge=1,
    )

    # Scanning
    scan_interval_hours: int = Field(
        default=6,
        description="Hours between scheduled scans of all shows",
        ge=1,
    )

    query_error_delay: float = Field(
        default=2.0,
        description="Seconds to wait after a failed search query",
        ge=0,
    )

    episode_delay: float = Field(
        default=1.0,
        description="Seconds to wait between episodes during a scan",
        ge=0,
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    environment: str = Field(
        default="production",
        description="Environment name (development, production)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v_upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is development or production."""
        allowed = {"development", "production"}
        v_lower = v.lower()
        if v_lower not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v_lower

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def has_title_parser(self) -> bool:
        """Check if the title-parsing API is configured."""
        return self.anthropic_api_key is not None

    def get_safe_dict(self) -> dict[str, str | int | float | None]:
        """Get configuration as dict with sensitive values masked.

        Returns:
            Dictionary with SecretStr values shown as '***'
        """
        result = {}
        for field_name in type(self).model_fields:
            value = getattr(self, field_name)

            if isinstance(value, SecretStr):
                result[field_name] = "***"
            elif value is None:
                result[field_name] = None
            else:
                result[field_name] = value

        return result


# Global settings instance
settings = Settings()
