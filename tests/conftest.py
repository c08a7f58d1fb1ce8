"""Shared fixtures for notification engine tests."""

from datetime import datetime

import pytest

from notification_center.adapters import MemoryQueueAdapter, MemoryStorageAdapter
from notification_center.configuration import (
    CleanupSettings,
    Settings,
    WorkerSettings,
)
from notification_center.service import NotificationService
from tests.factories.notifications import FIXED_NOW
from tests.fixtures.transports import FakeTransport


class FakeClock:
    """Manually advanced clock returning aware UTC datetimes."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta) -> None:
        self.now = self.now + delta


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage(clock):
    return MemoryStorageAdapter(clock=clock)


@pytest.fixture
def queue(clock):
    return MemoryQueueAdapter(clock=clock)


@pytest.fixture
def inapp_transport():
    return FakeTransport("inapp")


@pytest.fixture
def email_transport():
    return FakeTransport("email")


@pytest.fixture
def test_settings():
    """Settings with background workers and cleanup disabled.

    Built explicitly so values from the environment or a local .env file
    cannot leak into tests.
    """
    return Settings(
        workers=WorkerSettings(enabled=False, concurrency=1, poll_interval_seconds=0.01),
        cleanup=CleanupSettings(enabled=False, interval_seconds=0.01),
    )


@pytest.fixture
def service(storage, inapp_transport, email_transport, test_settings, clock):
    """NotificationService without a queue: every send delivers immediately."""
    return NotificationService(
        storage=storage,
        transports=[inapp_transport, email_transport],
        settings=test_settings,
        clock=clock,
    )


@pytest.fixture
def queued_service(storage, queue, inapp_transport, email_transport, test_settings, clock):
    """NotificationService with an in-memory queue."""
    return NotificationService(
        storage=storage,
        transports=[inapp_transport, email_transport],
        queue=queue,
        settings=test_settings,
        clock=clock,
    )
