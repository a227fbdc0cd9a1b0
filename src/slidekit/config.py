"""slidekit configuration using pydantic-settings.

All configuration is strongly typed and supports environment variables
and .env files.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMATS: frozenset[str] = frozenset({"console", "json"})

# Matches the engine's own default tile cache size.
DEFAULT_CACHE_CAPACITY = 32 * 1024 * 1024


class ConfigError(Exception):
    """Raised when a configuration value is set but unusable.

    Example:
        >>> Settings(_env_file=None, LOG_FORMAT="xml").require_log_format()
        Traceback (most recent call last):
        ...
        slidekit.config.ConfigError: Unknown log format 'xml'. Set LOG_FORMAT to one of: console, json.
    """

    def __init__(self, key_name: str, value: str, allowed: frozenset[str]) -> None:
        """Initialize configuration error.

        Args:
            key_name: Environment variable holding the bad value.
            value: The rejected value.
            allowed: Accepted values.
        """
        self.key_name = key_name
        self.value = value
        message = (
            f"Unknown log format {value!r}. "
            f"Set {key_name} to one of: {', '.join(sorted(allowed))}."
        )
        super().__init__(message)


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"

    # Engine tile cache shared by slides opened without an explicit cache
    CACHE_CAPACITY: int = Field(default=DEFAULT_CACHE_CAPACITY, gt=0)

    # Build the full property catalog while opening a slide
    EAGER_PROPERTIES: bool = True

    def require_log_format(self) -> str:
        """Get the log format, raising ConfigError if it is not recognized.

        Returns:
            "console" or "json".

        Raises:
            ConfigError: If LOG_FORMAT holds any other value.
        """
        if self.LOG_FORMAT not in LOG_FORMATS:
            raise ConfigError("LOG_FORMAT", self.LOG_FORMAT, LOG_FORMATS)
        return self.LOG_FORMAT


# Singleton instance for import convenience
settings = Settings()
