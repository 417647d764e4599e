"""
Test cases for environment configuration and service wiring.
"""

import logging

import pytest
from pydantic import ValidationError

import scheduler_main
from checker.decoder import HmacSignatureVerifier, UnverifiedPayload
from checker.storage import FileBlobStore, MongoBlobStore
from utilities.config import CheckerConfig
from utilities.logger import get_logger, setup_logging


def make_settings(**overrides) -> CheckerConfig:
    values = {
        "meta_url": "https://meta.example.com/alias.jwt",
        "discord_webhook": "https://discord.com/api/webhooks/1/token",
        "log_file": None,
    }
    values.update(overrides)
    return CheckerConfig(_env_file=None, **values)


class TestCheckerConfig:
    """Test cases for CheckerConfig."""

    def test_defaults(self):
        settings = CheckerConfig(_env_file=None)

        assert settings.check_interval_minutes == 30
        assert settings.run_on_startup is True
        assert settings.state_backend == "mongodb"
        assert settings.blob_name == "version-state.json"
        assert settings.token_signing_secret is None

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("META_URL", "https://meta.example.com/alias.jwt")
        monkeypatch.setenv("DISCORD_WEBHOOK", "https://discord.com/api/webhooks/1/token")
        monkeypatch.setenv("BLOB_NAME", "state.json")
        monkeypatch.setenv("CONTAINER_NAME", "checker")
        monkeypatch.setenv("CHECK_INTERVAL_MINUTES", "15")
        monkeypatch.setenv("RUN_ON_STARTUP", "false")

        settings = CheckerConfig(_env_file=None)

        assert settings.meta_url == "https://meta.example.com/alias.jwt"
        assert settings.blob_name == "state.json"
        assert settings.container_name == "checker"
        assert settings.check_interval_minutes == 15
        assert settings.run_on_startup is False

    def test_missing_settings(self):
        settings = CheckerConfig(_env_file=None)
        assert settings.get_missing_settings() == ["META_URL", "DISCORD_WEBHOOK"]

    def test_no_missing_settings(self):
        assert make_settings().get_missing_settings() == []

    def test_invalid_webhook_scheme(self):
        with pytest.raises(ValidationError):
            make_settings(discord_webhook="ftp://example.com/hook")

    def test_invalid_timeout(self):
        with pytest.raises(ValidationError):
            make_settings(request_timeout=1)

    def test_invalid_interval(self):
        with pytest.raises(ValidationError):
            make_settings(check_interval_minutes=0)

    def test_invalid_backend(self):
        with pytest.raises(ValidationError):
            make_settings(state_backend="azure")

    def test_log_level_normalized(self):
        assert make_settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_format(self):
        with pytest.raises(ValidationError):
            make_settings(log_format="xml")


class TestServiceWiring:
    """Test cases for building the service from settings."""

    def test_build_scheduler_config(self):
        settings = make_settings(client_name="Launcher", failure_alert_threshold=5, blob_name="s.json")

        config = scheduler_main.build_scheduler_config(settings)

        assert config.meta_url == settings.meta_url
        assert config.state_blob_name == "s.json"
        assert config.alert_config.webhook_url == settings.discord_webhook
        assert config.alert_config.client_name == "Launcher"
        assert config.alert_config.failure_alert_threshold == 5

    def test_build_verifier(self):
        assert isinstance(scheduler_main.build_verifier(make_settings()), UnverifiedPayload)
        assert isinstance(
            scheduler_main.build_verifier(make_settings(token_signing_secret="s3cret")),
            HmacSignatureVerifier
        )

    def test_build_service_mongodb(self):
        service = scheduler_main.build_service(make_settings())
        assert isinstance(service.blob_store, MongoBlobStore)

    def test_build_service_file(self, tmp_path):
        service = scheduler_main.build_service(
            make_settings(state_backend="file", blob_connection_string=str(tmp_path))
        )
        assert isinstance(service.blob_store, FileBlobStore)

    def test_build_service_sends_user_agent(self):
        settings = make_settings()
        service = scheduler_main.build_service(settings)

        assert service.config.request_headers == settings.get_headers()
        assert service.fetcher.client_config["headers"]["User-Agent"] == "RevisionChecker/1.0"


class TestMain:
    """Test cases for the entry point."""

    @pytest.mark.asyncio
    async def test_missing_settings_exit_code(self, monkeypatch):
        monkeypatch.setattr(scheduler_main, "config", CheckerConfig(_env_file=None, log_file=None))
        assert await scheduler_main.main([]) == 1

    @pytest.mark.asyncio
    async def test_unknown_argument(self, monkeypatch):
        monkeypatch.setattr(scheduler_main, "config", make_settings())
        assert await scheduler_main.main(["--daemon"]) == 2

    @pytest.mark.asyncio
    async def test_run_once(self, monkeypatch, tmp_path):
        monkeypatch.setattr(
            scheduler_main,
            "config",
            make_settings(state_backend="file", blob_connection_string=str(tmp_path))
        )
        calls = []

        async def fake_start(self, run_once=False):
            calls.append(run_once)

        monkeypatch.setattr(scheduler_main.SchedulerService, "start", fake_start)

        assert await scheduler_main.main(["--once"]) == 0
        assert calls == [True]


class TestLogging:
    """Test cases for logging setup."""

    def test_file_handler_created(self, tmp_path):
        log_file = tmp_path / "logs" / "revision_checker.log"
        root_logger = logging.getLogger()
        before = list(root_logger.handlers)

        try:
            setup_logging(log_level="INFO", log_format="console", log_file=log_file)
            added = [h for h in root_logger.handlers if h not in before]

            assert log_file.parent.is_dir()
            assert any(isinstance(h, logging.FileHandler) for h in added)
        finally:
            for handler in list(root_logger.handlers):
                if handler not in before:
                    root_logger.removeHandler(handler)
                    handler.close()

    def test_get_logger_binds_fields(self):
        logger = get_logger("tests").bind(component="test")
        assert logger is not None
