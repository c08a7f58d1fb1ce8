"""Unit tests for background workers."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from notification_center.coordinator import DeliveryCoordinator
from notification_center.models import DeliveryStatus, NotificationStatus
from notification_center.workers import CleanupScheduler, PeriodicTask, QueueWorker
from tests.factories.notifications import FIXED_NOW, make_notification
from tests.fixtures.transports import FakeTransport


async def wait_until(predicate, timeout: float = 2.0):
    """Poll ``predicate`` until it is true or the timeout expires."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


@pytest.mark.unit
class TestPeriodicTask:
    """Tests for PeriodicTask scheduling."""

    def test_interval_must_be_positive(self):
        with pytest.raises(ValueError):
            PeriodicTask("bad", AsyncMock(), 0)

    async def test_runs_repeatedly_until_stopped(self):
        job = AsyncMock()
        task = PeriodicTask("job", job, 0.01)

        task.start()
        await wait_until(lambda: job.await_count >= 3)
        await task.stop()
        count = job.await_count
        await asyncio.sleep(0.05)

        assert not task.running
        assert job.await_count == count
        assert task.run_count == count

    async def test_start_is_idempotent(self):
        task = PeriodicTask("job", AsyncMock(), 0.01)

        task.start()
        first = task._task
        task.start()

        assert task._task is first
        await task.stop()

    async def test_runs_never_overlap(self):
        active = 0
        max_active = 0
        runs = 0

        async def slow_job():
            nonlocal active, max_active, runs
            active += 1
            max_active = max(max_active, active)
            await asyncio.sleep(0.03)
            active -= 1
            runs += 1

        task = PeriodicTask("slow", slow_job, 0.001)
        task.start()
        await wait_until(lambda: runs >= 3)
        await task.stop()

        assert max_active == 1

    async def test_job_errors_logged_and_loop_continues(self):
        calls = []

        async def flaky():
            calls.append(True)
            if len(calls) == 1:
                raise RuntimeError("boom")

        task = PeriodicTask("flaky", flaky, 0.01)

        task.start()
        await wait_until(lambda: len(calls) >= 3)
        await task.stop()

        assert isinstance(task.last_error, RuntimeError)
        assert task.run_count == len(calls)

    async def test_stop_waits_for_in_flight_run(self):
        started = asyncio.Event()
        finished = []

        async def job():
            started.set()
            await asyncio.sleep(0.05)
            finished.append(True)

        task = PeriodicTask("drain", job, 0.001)
        task.start()
        await started.wait()
        await task.stop(wait=True)

        assert finished == [True]

    async def test_stop_without_wait_does_not_cancel(self):
        started = asyncio.Event()
        finished = []

        async def job():
            started.set()
            await asyncio.sleep(0.02)
            finished.append(True)

        task = PeriodicTask("nowait", job, 0.001)
        task.start()
        await started.wait()
        await task.stop(wait=False)

        assert finished == []
        await wait_until(lambda: finished == [True])

    async def test_stop_before_start(self):
        task = PeriodicTask("idle", AsyncMock(), 1)

        await task.stop()

        assert not task.running


@pytest.mark.unit
class TestQueueWorker:
    """Tests for QueueWorker.process_batch()."""

    async def enqueue_saved(self, queue, storage, notification):
        await storage.save(notification)
        await queue.enqueue(notification)
        return notification

    async def test_empty_queue(self, queue, storage):
        coordinator = DeliveryCoordinator(storage, {})
        worker = QueueWorker(queue, coordinator)

        stats = await worker.process_batch()

        assert stats == {
            "dequeued": 0,
            "delivered": 0,
            "sent": 0,
            "failed": 0,
            "skipped": 0,
            "errors": 0,
        }

    async def test_delivers_up_to_concurrency(self, queue, storage):
        transport = FakeTransport("inapp")
        coordinator = DeliveryCoordinator(storage, {"inapp": transport})
        for _ in range(3):
            await self.enqueue_saved(queue, storage, make_notification())
        worker = QueueWorker(queue, coordinator, concurrency=2)

        stats = await worker.process_batch()

        assert stats["dequeued"] == 2
        assert stats["delivered"] == 2
        assert transport.call_count == 2
        assert await queue.get_queue_size() == 1

    async def test_counts_outcomes(self, queue, storage):
        coordinator = DeliveryCoordinator(
            storage,
            {
                "inapp": FakeTransport("inapp"),
                "email": FakeTransport("email", status=DeliveryStatus.SENT),
                "sms": FakeTransport("sms", error=RuntimeError("down")),
            },
        )
        for channel in ("inapp", "email", "sms"):
            await self.enqueue_saved(queue, storage, make_notification(channels=[channel]))
        worker = QueueWorker(queue, coordinator, concurrency=3)

        stats = await worker.process_batch()

        assert stats == {
            "dequeued": 3,
            "delivered": 1,
            "sent": 1,
            "failed": 1,
            "skipped": 0,
            "errors": 0,
        }

    async def test_delivery_exception_counted_not_raised(self, queue, storage):
        coordinator = MagicMock()
        coordinator.storage = storage
        coordinator.send_now = AsyncMock(side_effect=RuntimeError("db down"))
        await self.enqueue_saved(queue, storage, make_notification())
        worker = QueueWorker(queue, coordinator)

        stats = await worker.process_batch()

        assert stats["errors"] == 1

    async def test_persists_status(self, queue, storage):
        coordinator = DeliveryCoordinator(storage, {"inapp": FakeTransport("inapp")})
        notification = await self.enqueue_saved(queue, storage, make_notification())

        await QueueWorker(queue, coordinator).process_batch()

        stored = await storage.find_by_id(notification.id)
        assert stored.status == NotificationStatus.DELIVERED

    async def test_read_while_queued_stays_read(self, queue, storage):
        """Marking a queued notification read is not undone by its delivery."""
        transport = FakeTransport("inapp")
        coordinator = DeliveryCoordinator(storage, {"inapp": transport})
        notification = await self.enqueue_saved(queue, storage, make_notification())
        await storage.mark_as_read(notification.id)

        stats = await QueueWorker(queue, coordinator).process_batch()

        stored = await storage.find_by_id(notification.id)
        assert stored.status == NotificationStatus.READ
        assert stored.read_at == FIXED_NOW
        assert transport.call_count == 1
        assert stats["delivered"] == 1

    async def test_deleted_while_queued_skipped(self, queue, storage):
        transport = FakeTransport("inapp")
        coordinator = DeliveryCoordinator(storage, {"inapp": transport})
        notification = await self.enqueue_saved(queue, storage, make_notification())
        await storage.delete(notification.id)

        stats = await QueueWorker(queue, coordinator).process_batch()

        assert stats["skipped"] == 1
        assert transport.call_count == 0
        assert await storage.find_by_id(notification.id) is None

    async def test_delivers_stored_version(self, queue, storage):
        transport = FakeTransport("inapp")
        coordinator = DeliveryCoordinator(storage, {"inapp": transport})
        notification = make_notification(title="Queued title")
        await queue.enqueue(notification)
        await storage.save(notification.model_copy(update={"title": "Stored title"}))

        await QueueWorker(queue, coordinator).process_batch()

        assert [n.title for n, _ in transport.calls] == ["Stored title"]

    async def test_start_and_stop(self, queue, storage):
        transport = FakeTransport("inapp")
        coordinator = DeliveryCoordinator(storage, {"inapp": transport})
        worker = QueueWorker(queue, coordinator, poll_interval=0.01)
        await self.enqueue_saved(queue, storage, make_notification())

        worker.start()
        assert worker.running
        await wait_until(lambda: transport.call_count == 1)
        await worker.stop()

        assert not worker.running

    def test_concurrency_must_be_positive(self, queue):
        with pytest.raises(ValueError):
            QueueWorker(queue, MagicMock(), concurrency=0)


@pytest.mark.unit
class TestCleanupScheduler:
    async def test_run_once(self, storage):
        await storage.save(make_notification(expires_at=FIXED_NOW - timedelta(seconds=1)))
        await storage.save(make_notification())

        deleted = await CleanupScheduler(storage).run_once()

        assert deleted == 1
        assert storage.get_stats()["notifications"] == 1

    async def test_periodic_sweep(self, storage):
        storage.delete_expired = AsyncMock(return_value=0)
        scheduler = CleanupScheduler(storage, interval=0.01)

        scheduler.start()
        await wait_until(lambda: storage.delete_expired.await_count >= 2)
        await scheduler.stop()

        assert not scheduler.running
