"""
Main scheduler service for release revision checks.

This module provides:
- Interval scheduling with APScheduler
- Orchestration of fetch, decode, compare, notify and persist
- Error handling so a failed run never stops the daemon
"""

import asyncio
import signal
import uuid
from datetime import datetime, timezone
from typing import Dict, Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.events import EVENT_JOB_EXECUTED, EVENT_JOB_ERROR, EVENT_JOB_MAX_INSTANCES

from checker.decoder import PayloadVerifier, UnverifiedPayload, decode_token_payload
from checker.errors import RevisionCheckError
from checker.fetcher import MetadataFetcher
from checker.storage import BlobStore
from scheduler.alerting import AlertManager
from scheduler.change_detector import ChangeDetector
from scheduler.models import CheckResult, SchedulerConfig
from scheduler.state_store import VersionStateStore

logger = structlog.get_logger(__name__)

CHECK_JOB_ID = "revision_check"


class SchedulerService:
    """Main scheduler service for revision checks."""

    def __init__(
        self,
        config: SchedulerConfig,
        blob_store: BlobStore,
        verifier: Optional[PayloadVerifier] = None,
        fetcher: Optional[MetadataFetcher] = None,
        alert_manager: Optional[AlertManager] = None
    ):
        """
        Initialize scheduler service.

        Args:
            config: Scheduler configuration
            blob_store: Backend holding the version state
            verifier: Token signature strategy, unverified by default
            fetcher: Metadata fetcher, built from config when omitted
            alert_manager: Notifier, built from config when omitted
        """
        self.config = config
        self.blob_store = blob_store
        self.verifier = verifier or UnverifiedPayload()
        self.scheduler = AsyncIOScheduler(timezone=config.timezone)
        self.logger = logger.bind(component="scheduler_service")
        self._stop_event: Optional[asyncio.Event] = None
        self.last_result: Optional[CheckResult] = None

        # Initialize components
        self.fetcher = fetcher or MetadataFetcher(
            config.meta_url,
            timeout=config.request_timeout,
            headers=config.request_headers
        )
        self.state_store = VersionStateStore(blob_store, config.state_blob_name)
        self.change_detector = ChangeDetector(self.state_store)
        self.alert_manager = alert_manager or AlertManager(config.alert_config)

        self._setup_scheduler_listeners()

    def _setup_signal_handlers(self) -> None:
        """Stop gracefully on SIGINT and SIGTERM."""
        loop = asyncio.get_running_loop()

        def signal_handler(signum):
            self.logger.info("Received signal, shutting down gracefully", signal=signum)
            if self._stop_event is not None:
                self._stop_event.set()

        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, signal_handler, signum)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform/loop; KeyboardInterrupt still applies
                pass

    def _setup_scheduler_listeners(self) -> None:
        """Setup scheduler event listeners."""
        def job_executed_listener(event):
            result = event.retval
            self.logger.debug(
                "Job executed",
                job_id=event.job_id,
                success=result.success if result else None
            )

        def job_error_listener(event):
            self.logger.error(
                "Job execution failed",
                job_id=event.job_id,
                error=str(event.exception)
            )

        def job_skipped_listener(event):
            self.logger.warning(
                "Skipped check, previous run still in progress",
                job_id=event.job_id
            )

        self.scheduler.add_listener(job_executed_listener, EVENT_JOB_EXECUTED)
        self.scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)
        self.scheduler.add_listener(job_skipped_listener, EVENT_JOB_MAX_INSTANCES)

    async def start(self, run_once: bool = False) -> None:
        """
        Start the scheduler service.

        Args:
            run_once: Run a single check and return instead of scheduling
        """
        if run_once:
            self.logger.info("Starting scheduler service in RUN ONCE MODE")
        else:
            self.logger.info("Starting scheduler service")

        await self.blob_store.connect()

        if run_once:
            try:
                await self.run_check()
            finally:
                await self.blob_store.disconnect()
            self.logger.info("Run once mode completed. Exiting...")
            return

        self._stop_event = asyncio.Event()
        self._setup_signal_handlers()
        self._add_scheduled_jobs()
        self.scheduler.start()

        status = self.get_scheduler_status()
        self.logger.info(
            "Scheduler service started",
            timezone=status["timezone"],
            interval_minutes=self.config.check_interval_minutes,
            run_on_startup=self.config.run_on_startup,
            jobs=status["jobs"]
        )

        try:
            await self._stop_event.wait()
        finally:
            await self.stop()

    def _add_scheduled_jobs(self) -> None:
        """Add the interval check job to the scheduler."""
        job_options = {}
        if self.config.run_on_startup:
            job_options["next_run_time"] = datetime.now(timezone.utc)

        self.scheduler.add_job(
            func=self.run_check,
            trigger='interval',
            minutes=self.config.check_interval_minutes,
            id=CHECK_JOB_ID,
            name='Revision Check',
            max_instances=1,
            coalesce=True,
            replace_existing=True,
            **job_options
        )
        self.logger.info(
            "Added revision check job",
            interval_minutes=self.config.check_interval_minutes,
            run_on_startup=self.config.run_on_startup
        )

    async def stop(self) -> None:
        """Stop the scheduler service."""
        self.logger.info("Stopping scheduler service")

        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

        try:
            await self.blob_store.disconnect()
        except Exception as e:
            self.logger.error("Error disconnecting blob store", error=str(e))

        if self._stop_event is not None:
            self._stop_event.set()

        self.logger.info("Scheduler service stopped")

    async def run_check(self) -> CheckResult:
        """
        Run one revision check.

        Fetch, decode and compare failures abort before anything is sent or
        written. Notification failures are counted but do not stop the state
        write. Errors are logged and reported in the result, never raised.

        Returns:
            CheckResult describing the run
        """
        started_at = datetime.now(timezone.utc)
        check_id = f"check_{started_at.strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"
        log = self.logger.bind(check_id=check_id)
        result = CheckResult(check_id=check_id, started_at=started_at)

        log.info("Checking launcher version", url=self.config.meta_url)

        try:
            token = await self.fetcher.fetch()
            payload_text = decode_token_payload(token, self.verifier)
            detection = await self.change_detector.detect_changes(payload_text)

            result.production_changed = detection.changes.production_changed
            result.staging_changed = detection.changes.staging_changed

            if detection.changes.any_changed:
                log.info(
                    "Updates detected",
                    channels=[channel.value for channel in detection.changes.changed_channels],
                    first_run=detection.first_run
                )
                sent, failed = await self.alert_manager.process_changes(detection)
                result.notifications_sent = sent
                result.notifications_failed = failed

                await self.state_store.save(detection.new_state)
                result.state_written = True
            else:
                log.info("No updates detected")

        except RevisionCheckError as e:
            result.success = False
            result.error = str(e)
            result.error_type = type(e).__name__
            log.error("Failed to check versions", error_type=result.error_type, error=result.error)
        except Exception as e:
            result.success = False
            result.error = str(e)
            result.error_type = type(e).__name__
            log.exception("Unexpected error while checking versions")

        result.duration_seconds = (datetime.now(timezone.utc) - started_at).total_seconds()
        self.last_result = result

        await self.alert_manager.record_run(result)

        log.info(
            "Revision check completed",
            success=result.success,
            production_changed=result.production_changed,
            staging_changed=result.staging_changed,
            notifications_sent=result.notifications_sent,
            notifications_failed=result.notifications_failed,
            state_written=result.state_written,
            duration=result.duration_seconds
        )

        return result

    def get_scheduler_status(self) -> Dict:
        """Get current scheduler status."""
        jobs = []
        for job in self.scheduler.get_jobs():
            next_run_time = getattr(job, 'next_run_time', None)
            jobs.append({
                'id': job.id,
                'name': job.name,
                'next_run_time': next_run_time.isoformat() if next_run_time else None,
                'trigger': str(job.trigger)
            })

        return {
            'running': self.scheduler.running,
            'timezone': self.config.timezone,
            'jobs': jobs,
            'job_count': len(jobs),
            'consecutive_failures': self.alert_manager.consecutive_failures,
            'last_result': self.last_result.model_dump(mode='json') if self.last_result else None
        }
