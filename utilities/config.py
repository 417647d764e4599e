"""
Configuration management using environment variables.
Handles all revision checker settings with proper validation and defaults.
"""

from typing import List, Optional
from urllib.parse import urlparse
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class CheckerConfig(BaseSettings):
    """
    Configuration class for revision checker settings.
    Uses pydantic BaseSettings for environment variable management.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields from .env
    )

    # Metadata source
    meta_url: str = Field(default="", description="Signed version metadata endpoint")
    request_timeout: int = Field(default=30, description="HTTP timeout in seconds")
    token_signing_secret: Optional[str] = Field(default=None, description="Enables HMAC token verification")

    # Notification sink
    discord_webhook: str = Field(default="", description="Webhook receiving change messages")
    client_name: str = Field(default="Native Client", description="Client label used in messages")
    failure_alert_threshold: int = Field(default=3, description="Consecutive failed runs before alerting")
    failure_alert_cooldown_minutes: int = Field(default=360)

    # State storage
    state_backend: str = Field(default="mongodb", description="mongodb or file")
    blob_connection_string: str = Field(default="mongodb://localhost:27017")
    state_database: str = Field(default="revision_checker")
    container_name: str = Field(default="revision-checker")
    blob_name: str = Field(default="version-state.json")

    # Scheduler Configuration
    check_interval_minutes: int = Field(default=30)
    run_on_startup: bool = Field(default=True)
    timezone: str = Field(default="UTC")

    # Logging Configuration
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json")
    log_file: Optional[str] = Field(default="logs/revision_checker.log")

    # Development/Testing
    debug: bool = Field(default=False)

    @field_validator('request_timeout')
    @classmethod
    def validate_timeout(cls, v):
        """Ensure timeout is reasonable."""
        if v < 5 or v > 300:
            raise ValueError('request_timeout must be between 5 and 300 seconds')
        return v

    @field_validator('check_interval_minutes')
    @classmethod
    def validate_check_interval(cls, v):
        """Ensure the polling interval is between a minute and a day."""
        if v < 1 or v > 1440:
            raise ValueError('check_interval_minutes must be between 1 and 1440')
        return v

    @field_validator('failure_alert_threshold', 'failure_alert_cooldown_minutes')
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError('value must not be negative')
        return v

    @field_validator('meta_url', 'discord_webhook')
    @classmethod
    def validate_http_url(cls, v):
        """Empty is allowed here; get_missing_settings() reports it."""
        v = v.strip()
        if v and urlparse(v).scheme not in ('http', 'https'):
            raise ValueError('URL must use http or https')
        return v

    @field_validator('state_backend')
    @classmethod
    def validate_state_backend(cls, v):
        valid_backends = ['mongodb', 'file']
        if v.lower() not in valid_backends:
            raise ValueError(f'state_backend must be one of: {valid_backends}')
        return v.lower()

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def get_missing_settings(self) -> List[str]:
        """Names of settings that must be provided before a check can run."""
        required = {
            'META_URL': self.meta_url,
            'DISCORD_WEBHOOK': self.discord_webhook,
            'BLOB_CONNECTION_STRING': self.blob_connection_string,
            'CONTAINER_NAME': self.container_name,
            'BLOB_NAME': self.blob_name,
        }
        return [name for name, value in required.items() if not value]

    def get_user_agent(self) -> str:
        """Get user agent string for requests."""
        return "RevisionChecker/1.0"

    def get_headers(self) -> dict:
        """Get default headers for HTTP requests."""
        return {
            "User-Agent": self.get_user_agent(),
            "Accept": "*/*",
        }


# Global configuration instance
config = CheckerConfig()
