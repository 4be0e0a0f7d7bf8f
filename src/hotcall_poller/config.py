"""
Configuration management for the Hot Calls poller.

Loads settings from environment variables (and a project-root .env file)
with defaults matching the production polling cadence.
"""

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / '.env'
if _env_file.exists():
    load_dotenv(_env_file)


# Production polling cadence
DEFAULT_CALL_WINDOW_MINUTES = 8
DEFAULT_UNIT_COUNT_WINDOW_MINUTES = 25
DEFAULT_MAX_EVENT_AGE_MINUTES = 120
DEFAULT_COMMENT_MAX_LENGTH = 4000


class PollerSettings(BaseSettings):
    """Poller settings loaded from environment variables."""

    # Data store
    HOTCALL_DATABASE_URL: str = ''
    STAGE_TIMEOUT_SECONDS: int = Field(default=60, ge=1, le=600)

    # Selection windows and retention
    CALL_WINDOW_MINUTES: int = Field(default=DEFAULT_CALL_WINDOW_MINUTES, ge=1)
    UNIT_COUNT_WINDOW_MINUTES: int = Field(default=DEFAULT_UNIT_COUNT_WINDOW_MINUTES, ge=1)
    MAX_EVENT_AGE_MINUTES: int = Field(default=DEFAULT_MAX_EVENT_AGE_MINUTES, ge=1)
    COMMENT_MAX_LENGTH: int = Field(default=DEFAULT_COMMENT_MAX_LENGTH, ge=1)

    # Failure notification
    ERROR_LOG_PATH: str = 'pollErrorLog.txt'
    SMTP_HOST: str = ''
    SMTP_PORT: int = 25
    SMTP_USERNAME: str = ''
    SMTP_PASSWORD: str = ''
    SMTP_STARTTLS: bool = False
    SMTP_TIMEOUT_SECONDS: int = Field(default=30, ge=1, le=300)
    ALERT_SENDER: str = 'hotcalls.poller@localhost'
    ALERT_RECIPIENTS: str = ''

    # Logging
    LOG_LEVEL: str = 'INFO'
    LOG_JSON: bool = False

    @property
    def alert_recipients(self) -> list[str]:
        """Operator distribution list parsed from the comma-separated setting."""
        return [addr.strip() for addr in self.ALERT_RECIPIENTS.split(',') if addr.strip()]

    def missing(self) -> list[str]:
        """
        Validate that required configuration is present.

        Returns:
            List of missing required configuration keys
        """
        missing = []
        if not self.HOTCALL_DATABASE_URL:
            missing.append('HOTCALL_DATABASE_URL')
        return missing


@lru_cache
def get_settings() -> PollerSettings:
    """Cached settings singleton."""
    return PollerSettings()
