"""Environment configuration for Lambda functions."""
import os
from dataclasses import dataclass

from .exceptions import ConfigurationError

DEFAULT_MAX_TABLES_PER_USER = 100


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    table_name: str
    environment: str
    log_level: str
    allowed_origin: str = "*"
    max_tables_per_user: int = DEFAULT_MAX_TABLES_PER_USER

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables.

        Returns:
            Config instance with values from environment

        Raises:
            ConfigurationError: If required environment variables are missing
                or a numeric setting cannot be parsed
        """
        table_name = os.environ.get("TABLE_NAME")
        if not table_name:
            raise ConfigurationError(
                "TABLE_NAME environment variable is required",
                config_key="TABLE_NAME",
            )

        raw_limit = os.environ.get("MAX_TABLES_PER_USER", str(DEFAULT_MAX_TABLES_PER_USER))
        try:
            max_tables = int(raw_limit)
        except ValueError:
            raise ConfigurationError(
                f"MAX_TABLES_PER_USER must be an integer, got {raw_limit!r}",
                config_key="MAX_TABLES_PER_USER",
            ) from None

        return cls(
            table_name=table_name,
            environment=os.environ.get("ENVIRONMENT", "dev"),
            log_level=os.environ.get("POWERTOOLS_LOG_LEVEL", "INFO"),
            allowed_origin=os.environ.get("ALLOWED_ORIGIN", "*"),
            max_tables_per_user=max_tables,
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "prod"


def get_config() -> Config:
    """Get cached configuration instance.

    Returns:
        Config instance (cached after first call)
    """
    if not hasattr(get_config, "_config"):
        get_config._config = Config.from_env()
    return get_config._config
