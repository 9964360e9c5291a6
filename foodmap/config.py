"""Configuration management for the Food Map client using Pydantic."""

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Backend Configuration
    supabase_url: str | None = Field(None, description="Backend project URL")
    supabase_anon_key: str | None = Field(None, description="Public anon API key")
    http_timeout: float = Field(default=10.0, description="HTTP timeout in seconds")

    # Session Configuration
    session_poll_interval_ms: int = Field(
        default=120, gt=0, description="Delay between session polls"
    )
    session_confirm_timeout_ms: int = Field(
        default=2200, gt=0, description="Session confirmation budget after sign-in"
    )
    session_check_timeout_ms: int = Field(
        default=600, gt=0, description="Session confirmation budget before a write"
    )
    sign_out_timeout_ms: int = Field(
        default=2000, gt=0, description="Upper bound for the remote sign-out call"
    )

    # Content Rules
    comment_max_length: int = Field(
        default=120, gt=0, description="Maximum review comment length"
    )
    min_password_length: int = Field(default=6, description="Minimum password length")
    home_restaurant_limit: int = Field(
        default=30, gt=0, description="Restaurants shown on the home list"
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")

    def has_backend_config(self) -> bool:
        """Check if the backend is properly configured."""
        return bool(self.supabase_url and self.supabase_anon_key)

    def model_post_init(self, __context) -> None:
        """Validate configuration after initialization."""
        if not self.supabase_url:
            logger.warning("SUPABASE_URL not set - backend access disabled")

        if not self.supabase_anon_key:
            logger.warning("SUPABASE_ANON_KEY not set - backend access disabled")


# Global config instance
config: Config | None = None


def get_config() -> Config:
    """Get or create the global configuration instance."""
    global config
    if config is None:
        config = Config()
    return config


def setup_logging(cfg: Config | None = None) -> None:
    """Configure logging for the application."""
    if cfg is None:
        cfg = get_config()

    log_level = getattr(logging, cfg.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from external libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
