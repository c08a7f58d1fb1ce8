"""Background workers: queue delivery loop and expiry cleanup.

Both run on ``PeriodicTask``, an asyncio loop that waits ``interval``
seconds, runs its job, and only then starts the next wait, so two runs of
the same task never overlap.

Usage:
    worker = QueueWorker(queue, coordinator, concurrency=4, poll_interval=0.5)
    worker.start()
    ...
    await worker.stop()  # waits for the in-flight batch
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

from notification_center.adapters.base import QueueAdapter, StorageAdapter
from notification_center.coordinator import DeliveryCoordinator, aggregate_status
from notification_center.logging import bind_dispatch_context, get_module_logger
from notification_center.models import Notification, NotificationStatus

logger = get_module_logger()


class PeriodicTask:
    """Runs an async job repeatedly on the current event loop.

    Attributes:
        name: Name used in logs
        interval: Seconds between the end of one run and the start of the next
        run_count: Completed runs, successful or not
        last_error: Exception raised by the most recent failed run
    """

    def __init__(
        self,
        name: str,
        func: Callable[[], Awaitable[Any]],
        interval: float,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.func = func
        self.interval = interval
        self.run_count = 0
        self.last_error: Optional[BaseException] = None
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self.log = logger.bind(task=name)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the loop. Must be called from a running event loop."""
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name=f"periodic:{self.name}"
        )
        self.log.info("periodic_task_started", interval_seconds=self.interval)

    async def stop(self, wait: bool = True) -> None:
        """Stop scheduling further runs.

        Args:
            wait: Wait for a run that is already in progress to finish.
                With False the loop exits on its own once the current run
                completes; nothing is cancelled.
        """
        if self._task is None:
            return
        self._stop_event.set()
        task = self._task
        self._task = None
        if wait:
            await task
        self.log.info("periodic_task_stopped", runs=self.run_count, waited=wait)

    async def run_once(self) -> Any:
        """Run the job now, logging instead of raising its exceptions."""
        try:
            return await self.func()
        except Exception as e:
            self.last_error = e
            self.log.error("periodic_task_failed", error=str(e), exc_info=True)
            return None
        finally:
            self.run_count += 1

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            if self._stop_event.is_set():
                break
            await self.run_once()


class QueueWorker:
    """Dequeues notifications and delivers them through the coordinator.

    Each tick dequeues up to ``concurrency`` notifications and delivers them
    concurrently; the next tick is scheduled only after the batch completes.
    """

    def __init__(
        self,
        queue: QueueAdapter,
        coordinator: DeliveryCoordinator,
        concurrency: int = 1,
        poll_interval: float = 1.0,
        worker_id: str = "queue-worker-1",
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.queue = queue
        self.coordinator = coordinator
        self.concurrency = concurrency
        self.poll_interval = poll_interval
        self.worker_id = worker_id
        self.log = logger.bind(component="queue_worker", worker_id=worker_id)
        self._task = PeriodicTask(worker_id, self.process_batch, poll_interval)

    @property
    def running(self) -> bool:
        return self._task.running

    def start(self) -> None:
        self._task.start()

    async def stop(self, wait: bool = True) -> None:
        await self._task.stop(wait=wait)

    async def process_batch(self) -> Dict[str, int]:
        """Deliver one batch of queued notifications.

        Each entry is reloaded from storage first: storage is the source of
        truth once a notification is persisted, so a notification deleted
        while queued is skipped.

        Returns:
            Dictionary with processing statistics:
                - dequeued: Notifications taken off the queue
                - delivered: Ended DELIVERED
                - sent: Ended SENT
                - failed: Ended FAILED
                - skipped: No longer in storage, not delivered
                - errors: Deliveries that raised (logged, not re-queued)
        """
        stats = {
            "dequeued": 0,
            "delivered": 0,
            "sent": 0,
            "failed": 0,
            "skipped": 0,
            "errors": 0,
        }

        notifications = await self.queue.dequeue_batch(self.concurrency)
        if not notifications:
            return stats
        stats["dequeued"] = len(notifications)

        results = await asyncio.gather(
            *(self._deliver(n) for n in notifications), return_exceptions=True
        )

        for notification, result in zip(notifications, results):
            if isinstance(result, BaseException):
                self.log.error(
                    "queued_delivery_failed",
                    notification_id=notification.id,
                    user_id=notification.user_id,
                    error=str(result),
                    exc_info=result,
                )
                stats["errors"] += 1
            elif result is None:
                stats["skipped"] += 1
            elif result == NotificationStatus.DELIVERED:
                stats["delivered"] += 1
            elif result == NotificationStatus.SENT:
                stats["sent"] += 1
            elif result == NotificationStatus.FAILED:
                stats["failed"] += 1

        self.log.info("queue_batch_complete", **stats)
        return stats

    async def _deliver(self, queued: Notification) -> Optional[NotificationStatus]:
        with bind_dispatch_context(notification_id=queued.id, user_id=queued.user_id):
            notification = await self.coordinator.storage.find_by_id(queued.id)
            if notification is None:
                self.log.info("queued_notification_missing", notification_id=queued.id)
                return None
            receipts = await self.coordinator.send_now(notification)
            return aggregate_status(receipts)


class CleanupScheduler:
    """Periodically asks storage to delete expired notifications."""

    def __init__(self, storage: StorageAdapter, interval: float = 3600.0) -> None:
        self.storage = storage
        self.interval = interval
        self._task = PeriodicTask("cleanup", self.run_once, interval)

    @property
    def running(self) -> bool:
        return self._task.running

    def start(self) -> None:
        self._task.start()

    async def stop(self, wait: bool = True) -> None:
        await self._task.stop(wait=wait)

    async def run_once(self) -> int:
        """Delete expired notifications now.

        Returns:
            Number of notifications deleted
        """
        deleted = await self.storage.delete_expired()
        if deleted:
            logger.info("expired_notifications_deleted", count=deleted)
        else:
            logger.debug("no_expired_notifications")
        return deleted
