"""
Webhook alerting for detected release changes.

This module provides:
- One webhook message per changed channel
- Per-message failure isolation
- Alerts after repeated failed runs, with a cooldown
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

import httpx
import structlog

from checker.errors import NotifyError
from scheduler.models import AlertConfig, ChangeDetectionResult, Channel, CheckResult

logger = structlog.get_logger(__name__)

MAX_MESSAGE_LENGTH = 1800


def bound_message_length(message: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    if len(message) <= max_length:
        return message
    return message[:max_length - 3] + "..."


class AlertManager:
    """Manager for sending change and failure notifications."""

    def __init__(self, alert_config: AlertConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize alert manager.

        Args:
            alert_config: Alert configuration
            transport: Optional httpx transport, used by tests
        """
        self.config = alert_config
        self.transport = transport
        self.logger = logger.bind(component="alert_manager")
        self.consecutive_failures = 0
        self.last_failure_alert_time: Optional[datetime] = None

    def build_messages(self, result: ChangeDetectionResult) -> List[Tuple[Channel, str]]:
        """Create one message per changed channel, production first."""
        metadata = result.metadata
        client = self.config.client_name
        messages = []

        if result.changes.production_changed:
            messages.append((
                Channel.PRODUCTION,
                f"🚀 New {client} **Production** version detected!\n"
                f"`{metadata.production_previous_version}` -> `{metadata.production_version}`"
            ))

        if result.changes.staging_changed:
            messages.append((
                Channel.STAGING,
                f"🧪 New {client} **Staging** version detected!\n"
                f"`{metadata.staging_version}`"
            ))

        return messages

    async def process_changes(self, result: ChangeDetectionResult) -> Tuple[int, int]:
        """
        Send a notification for every changed channel.

        A failed message is logged and skipped; it never stops the others.

        Args:
            result: Change detection result of the current run

        Returns:
            (sent, failed) message counts
        """
        if not self.config.enabled:
            self.logger.debug("Alerting is disabled")
            return 0, 0

        sent = 0
        failed = 0
        for channel, message in self.build_messages(result):
            try:
                await self._post_message(message)
                sent += 1
                self.logger.info("Sent change notification", channel=channel.value)
            except NotifyError as e:
                failed += 1
                self.logger.error(
                    "Failed to send change notification",
                    channel=channel.value,
                    status_code=e.status_code,
                    error=str(e)
                )
            except Exception as e:
                failed += 1
                self.logger.error(
                    "Unexpected error sending change notification",
                    channel=channel.value,
                    error=str(e),
                    exc_info=True
                )

        return sent, failed

    async def _post_message(self, message: str) -> None:
        """
        POST ``{"content": message}`` to the webhook.

        Raises:
            NotifyError: on network errors, timeouts and non-2xx responses
        """
        client_config = {"timeout": self.config.request_timeout}
        if self.transport is not None:
            client_config["transport"] = self.transport

        try:
            async with httpx.AsyncClient(**client_config) as client:
                response = await client.post(
                    self.config.webhook_url,
                    json={"content": bound_message_length(message)},
                    headers={"Accept": "application/json"}
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotifyError(
                f"Webhook returned HTTP {e.response.status_code}",
                status_code=e.response.status_code
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise NotifyError(f"Webhook request failed: {e}") from e

    async def record_run(self, check_result: CheckResult) -> None:
        """
        Track consecutive failed runs and alert once the threshold is reached.

        Args:
            check_result: Outcome of the run that just finished
        """
        if check_result.success:
            if self.consecutive_failures:
                self.logger.info("Check recovered", previous_failures=self.consecutive_failures)
            self.consecutive_failures = 0
            return

        self.consecutive_failures += 1
        threshold = self.config.failure_alert_threshold
        if not self.config.enabled or threshold == 0 or self.consecutive_failures < threshold:
            return

        if not self._check_cooldown():
            self.logger.debug("Failure alert in cooldown", consecutive_failures=self.consecutive_failures)
            return

        message = (
            f"⚠️ Revision check failed {self.consecutive_failures} times in a row.\n"
            f"`{check_result.error_type}`: {check_result.error}"
        )
        try:
            await self._post_message(message)
        except Exception as e:
            self.logger.error("Failed to send failure alert", error=str(e))
            return

        self.last_failure_alert_time = datetime.now(timezone.utc)
        self.logger.warning("Sent failure alert", consecutive_failures=self.consecutive_failures)

    def _check_cooldown(self) -> bool:
        """Check if failure alerts are not in their cooldown period."""
        if self.last_failure_alert_time is None:
            return True

        cooldown_period = timedelta(minutes=self.config.failure_alert_cooldown_minutes)
        return datetime.now(timezone.utc) - self.last_failure_alert_time >= cooldown_period
