"""Configuration settings for guarded browser sessions."""

import logging
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

# Per-call trace of supervised operations, below DEBUG
TRACE = 5
logging.addLevelName(TRACE, "TRACE")


class Settings(BaseSettings):
    """Engine configuration from environment variables."""

    # Remote endpoint
    grid_url: str = "http://localhost:4444"
    default_browser: str = "chrome"
    headless: bool = True
    extra_capabilities: dict = {}
    window_size: Optional[str] = None  # e.g. "1920x1080"

    # Element resolution and waits
    element_timeout_ms: int = Field(default=10000, ge=0)
    poll_interval_ms: int = Field(default=500, gt=0)
    page_load_timeout_ms: int = Field(default=30000, ge=0)
    script_timeout_seconds: int = 30
    fail_on_page_load_timeout: bool = True

    # Transport call ceiling (0 disables call timeouts and split waits)
    driver_operation_timeout_ms: int = Field(default=0, ge=0)
    split_wait_margin_ms: int = Field(default=5000, ge=0)

    # Session management
    max_concurrent_sessions: int = 10
    session_max_lifetime_seconds: int = 900  # 15 minutes
    session_max_idle_seconds: int = 300  # 5 minutes
    sweep_interval_seconds: int = 60

    # Logging
    log_level: str = "INFO"

    model_config = {"env_prefix": "SELENIUM_GUARD_"}

    @property
    def element_timeout_seconds(self) -> float:
        """Convert ms timeout to seconds."""
        return self.element_timeout_ms / 1000.0

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000.0

    @property
    def page_load_timeout_seconds(self) -> float:
        return self.page_load_timeout_ms / 1000.0

    @property
    def driver_operation_timeout_seconds(self) -> float:
        return self.driver_operation_timeout_ms / 1000.0

    @property
    def split_wait_margin_seconds(self) -> float:
        return self.split_wait_margin_ms / 1000.0


def configure_logging(level: Optional[str] = None) -> None:
    """Set up root logging in the format used by the entry point."""
    level = (level or settings.log_level).upper()
    numeric = TRACE if level == "TRACE" else getattr(logging, level)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


# Global settings instance
settings = Settings()
