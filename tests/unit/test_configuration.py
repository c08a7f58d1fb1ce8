"""Unit tests for notification_center.configuration.

Tests cover:
- Section defaults and environment overrides
- Validation
- Settings aggregation and the cached provider
"""

import pytest
from pydantic import ValidationError

from notification_center.configuration import (
    CleanupSettings,
    RetrySettings,
    Settings,
    WorkerSettings,
)
from notification_center.providers import get_settings


@pytest.mark.unit
class TestWorkerSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("NOTIFICATION_WORKERS_ENABLED", raising=False)
        monkeypatch.delenv("NOTIFICATION_WORKERS_CONCURRENCY", raising=False)
        monkeypatch.delenv("NOTIFICATION_WORKERS_POLL_INTERVAL_SECONDS", raising=False)

        workers = WorkerSettings()

        assert workers.enabled is True
        assert workers.concurrency == 1
        assert workers.poll_interval_seconds == 1.0

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("NOTIFICATION_WORKERS_ENABLED", "false")
        monkeypatch.setenv("NOTIFICATION_WORKERS_CONCURRENCY", "8")
        monkeypatch.setenv("NOTIFICATION_WORKERS_POLL_INTERVAL_SECONDS", "0.25")

        workers = WorkerSettings()

        assert workers.enabled is False
        assert workers.concurrency == 8
        assert workers.poll_interval_seconds == 0.25

    def test_field_names_accepted(self):
        workers = WorkerSettings(enabled=False, concurrency=3)

        assert workers.enabled is False
        assert workers.concurrency == 3

    def test_concurrency_must_be_positive(self):
        with pytest.raises(ValidationError):
            WorkerSettings(concurrency=0)


@pytest.mark.unit
class TestRetrySettings:
    """Test suite for RetrySettings."""

    def test_defaults(self, monkeypatch):
        for name in (
            "NOTIFICATION_RETRY_MAX_ATTEMPTS",
            "NOTIFICATION_RETRY_BACKOFF",
            "NOTIFICATION_RETRY_INITIAL_DELAY_SECONDS",
            "NOTIFICATION_RETRY_MAX_DELAY_SECONDS",
        ):
            monkeypatch.delenv(name, raising=False)

        retry = RetrySettings()

        assert retry.max_attempts == 3
        assert retry.backoff == "exponential"
        assert retry.initial_delay_seconds == 1.0
        assert retry.max_delay_seconds == 60.0

    def test_exponential_backoff_capped(self):
        retry = RetrySettings(
            backoff="exponential", initial_delay_seconds=1.0, max_delay_seconds=5.0
        )

        assert [retry.delay_for(a) for a in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 5.0]

    def test_linear_backoff(self):
        retry = RetrySettings(
            backoff="linear", initial_delay_seconds=2.0, max_delay_seconds=60.0
        )

        assert [retry.delay_for(a) for a in (1, 2, 3)] == [2.0, 4.0, 6.0]

    def test_unknown_backoff_rejected(self):
        with pytest.raises(ValidationError):
            RetrySettings(backoff="fibonacci")


@pytest.mark.unit
class TestCleanupSettings:
    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("NOTIFICATION_CLEANUP_ENABLED", "true")
        monkeypatch.setenv("NOTIFICATION_CLEANUP_INTERVAL_SECONDS", "60")
        monkeypatch.setenv("NOTIFICATION_CLEANUP_RETENTION_DAYS", "7")

        cleanup = CleanupSettings()

        assert cleanup.enabled is True
        assert cleanup.interval_seconds == 60.0
        assert cleanup.retention_days == 7


@pytest.mark.unit
class TestSettings:
    """Test suite for the Settings aggregator."""

    def test_sections_auto_instantiated(self):
        settings = Settings()

        assert isinstance(settings.workers, WorkerSettings)
        assert isinstance(settings.retry, RetrySettings)
        assert isinstance(settings.cleanup, CleanupSettings)

    def test_section_override(self):
        workers = WorkerSettings(concurrency=5)

        settings = Settings(workers=workers)

        assert settings.workers.concurrency == 5

    def test_is_production(self, monkeypatch):
        monkeypatch.setenv("PREFIX", "dev-")
        assert Settings().is_production is False

        monkeypatch.setenv("PREFIX", "")
        assert Settings().is_production is True

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
