"""
Models for scheduler and change detection functionality.

This module defines Pydantic models for:
- Release channels and per-run change sets
- Change detection results
- Check run outcomes
- Alert and scheduler configurations
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from checker.models import VersionMetadata, VersionState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Channel(str, Enum):
    """Release channels tracked by the checker."""
    PRODUCTION = "production"
    STAGING = "staging"


class ChangeSet(BaseModel):
    """Which channels changed in one run. Never persisted."""
    production_changed: bool = Field(default=False)
    staging_changed: bool = Field(default=False)

    @property
    def any_changed(self) -> bool:
        return self.production_changed or self.staging_changed

    @property
    def changed_channels(self) -> List[Channel]:
        channels = []
        if self.production_changed:
            channels.append(Channel.PRODUCTION)
        if self.staging_changed:
            channels.append(Channel.STAGING)
        return channels


class ChangeDetectionResult(BaseModel):
    """Result of comparing fetched metadata against the stored state."""
    metadata: VersionMetadata
    previous_state: Optional[VersionState] = Field(default=None, description="None on the first run")
    new_state: VersionState
    changes: ChangeSet

    @property
    def first_run(self) -> bool:
        return self.previous_state is None


class CheckResult(BaseModel):
    """Outcome of a single check run."""
    check_id: str = Field(..., description="Unique check run identifier")
    started_at: datetime = Field(default_factory=_utcnow)
    duration_seconds: float = Field(default=0.0)

    # Detection
    production_changed: bool = Field(default=False)
    staging_changed: bool = Field(default=False)

    # Side effects
    notifications_sent: int = Field(default=0)
    notifications_failed: int = Field(default=0)
    state_written: bool = Field(default=False)

    # Status
    success: bool = Field(default=True)
    error: Optional[str] = Field(default=None)
    error_type: Optional[str] = Field(default=None)


class AlertConfig(BaseModel):
    """Configuration for webhook notifications."""
    enabled: bool = Field(default=True)
    webhook_url: str = Field(default="", description="Webhook receiving change messages")
    client_name: str = Field(default="Native Client")
    request_timeout: int = Field(default=30, ge=1, le=300)

    # Repeated failure alerts
    failure_alert_threshold: int = Field(default=3, ge=0, description="0 disables failure alerts")
    failure_alert_cooldown_minutes: int = Field(default=360, ge=0)


class SchedulerConfig(BaseModel):
    """Configuration for the scheduler system."""
    # Scheduling
    check_interval_minutes: int = Field(default=30, ge=1, le=1440, description="Minutes between checks")
    run_on_startup: bool = Field(default=True, description="Run a check as soon as the scheduler starts")
    timezone: str = Field(default="UTC", description="Timezone for scheduling")

    # Sources
    meta_url: str = Field(..., description="Signed version metadata endpoint")
    request_timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")
    request_headers: Dict[str, str] = Field(default_factory=dict, description="Headers sent with metadata requests")
    state_blob_name: str = Field(default="version-state.json", description="Object holding the version state")

    # Alerting
    alert_config: AlertConfig = Field(default_factory=AlertConfig)
