"""
Pytest configuration and shared fixtures.
"""

import pytest

from checker.models import VersionMetadata
from scheduler.models import AlertConfig, SchedulerConfig
from tests.helpers import InMemoryBlobStore, WebhookRecorder


@pytest.fixture
def blob_store():
    """Empty in-memory blob store."""
    return InMemoryBlobStore()


@pytest.fixture
def webhook():
    """Webhook recorder answering 204."""
    return WebhookRecorder()


@pytest.fixture
def sample_metadata():
    """Metadata matching make_metadata_payload() defaults."""
    return VersionMetadata(
        production_id="P1",
        production_version="v2",
        production_previous_version="v1",
        staging_id="S1",
        staging_version="s1"
    )


@pytest.fixture
def alert_config():
    """Create alert configuration for testing."""
    return AlertConfig(
        enabled=True,
        webhook_url="https://discord.com/api/webhooks/1/token",
        client_name="Native Client",
        request_timeout=5,
        failure_alert_threshold=3,
        failure_alert_cooldown_minutes=60
    )


@pytest.fixture
def scheduler_config(alert_config):
    """Create scheduler configuration for testing."""
    return SchedulerConfig(
        check_interval_minutes=30,
        run_on_startup=True,
        timezone="UTC",
        meta_url="https://meta.example.com/alias.jwt",
        request_timeout=5,
        state_blob_name="version-state.json",
        alert_config=alert_config
    )
