"""
Main entry point for the revision checker.

This script starts the scheduler service that polls the version metadata
endpoint and posts release channel changes to the configured webhook.

Usage:
    python scheduler_main.py          # Run as a daemon on the configured interval
    python scheduler_main.py --once   # Run a single check and exit
"""

import asyncio
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from utilities.logger import setup_logging, get_logger
from utilities.config import CheckerConfig, config
from checker.decoder import HmacSignatureVerifier, PayloadVerifier, UnverifiedPayload
from checker.storage import create_blob_store
from scheduler.scheduler_service import SchedulerService
from scheduler.models import SchedulerConfig, AlertConfig


def build_scheduler_config(settings: CheckerConfig) -> SchedulerConfig:
    """Translate environment settings into the scheduler's runtime models."""
    alert_config = AlertConfig(
        webhook_url=settings.discord_webhook,
        client_name=settings.client_name,
        request_timeout=settings.request_timeout,
        failure_alert_threshold=settings.failure_alert_threshold,
        failure_alert_cooldown_minutes=settings.failure_alert_cooldown_minutes
    )

    return SchedulerConfig(
        check_interval_minutes=settings.check_interval_minutes,
        run_on_startup=settings.run_on_startup,
        timezone=settings.timezone,
        meta_url=settings.meta_url,
        request_timeout=settings.request_timeout,
        request_headers=settings.get_headers(),
        state_blob_name=settings.blob_name,
        alert_config=alert_config
    )


def build_verifier(settings: CheckerConfig) -> PayloadVerifier:
    if settings.token_signing_secret:
        return HmacSignatureVerifier(settings.token_signing_secret)
    return UnverifiedPayload()


def build_service(settings: CheckerConfig) -> SchedulerService:
    blob_store = create_blob_store(
        settings.state_backend,
        settings.blob_connection_string,
        settings.container_name,
        database_name=settings.state_database
    )
    return SchedulerService(
        build_scheduler_config(settings),
        blob_store,
        verifier=build_verifier(settings)
    )


async def main(argv=None) -> int:
    """Main function to start the scheduler service."""
    argv = sys.argv[1:] if argv is None else argv

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )

    logger = get_logger(__name__)
    logger.info("Starting revision checker")

    run_once = False
    if argv:
        if argv[0] == '--once':
            run_once = True
        else:
            print(f"Unknown argument: {argv[0]}")
            print("Usage: python scheduler_main.py [--once]")
            return 2

    missing = config.get_missing_settings()
    if missing:
        logger.error("Missing required settings", settings=missing)
        return 1

    scheduler_service = build_service(config)

    logger.info(
        "Scheduler service configured",
        interval_minutes=scheduler_service.config.check_interval_minutes,
        run_on_startup=scheduler_service.config.run_on_startup,
        state_backend=config.state_backend,
        container=config.container_name,
        blob=config.blob_name,
        signature_verification=not isinstance(scheduler_service.verifier, UnverifiedPayload)
    )

    try:
        await scheduler_service.start(run_once=run_once)
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, shutting down...")
    except Exception as e:
        logger.error("Failed to start scheduler service", error=str(e))
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
