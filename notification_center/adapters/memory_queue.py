"""In-memory queue adapter.

FIFO queue of ready notifications plus a time-ordered heap of delayed ones.
Delayed entries whose time has come are promoted to the ready queue when a
consumer dequeues, so no background timer is needed.
"""

import heapq
import itertools
from collections import deque
from datetime import datetime, timedelta
from typing import Callable, Deque, List, Optional, Tuple

from notification_center.adapters.base import QueueAdapter
from notification_center.logging import get_module_logger
from notification_center.models import Notification, utc_now

logger = get_module_logger()


class MemoryQueueAdapter(QueueAdapter):
    """Single-process QueueAdapter.

    Dequeue is atomic with respect to other coroutines on the same event
    loop because no await happens between reading and removing entries.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._ready: Deque[Notification] = deque()
        self._delayed: List[Tuple[datetime, int, Notification]] = []
        self._sequence = itertools.count()
        self._running = False
        self.clock = clock or utc_now

    @property
    def is_running(self) -> bool:
        return self._running

    async def enqueue(self, notification: Notification) -> None:
        self._ready.append(notification)

    async def enqueue_batch(self, notifications: List[Notification]) -> None:
        self._ready.extend(notifications)

    async def enqueue_delayed(self, notification: Notification, delay: float) -> None:
        execute_at = self.clock() + timedelta(seconds=max(delay, 0.0))
        # The sequence number keeps equal deadlines in FIFO order.
        heapq.heappush(self._delayed, (execute_at, next(self._sequence), notification))

    async def dequeue(self) -> Optional[Notification]:
        self._promote_due()
        return self._ready.popleft() if self._ready else None

    async def dequeue_batch(self, count: int) -> List[Notification]:
        self._promote_due()
        batch: List[Notification] = []
        while self._ready and len(batch) < count:
            batch.append(self._ready.popleft())
        return batch

    async def get_queue_size(self) -> int:
        return len(self._ready) + len(self._delayed)

    async def clear(self) -> None:
        self._ready.clear()
        self._delayed.clear()

    async def start(self) -> None:
        self._running = True
        logger.info("memory_queue_started", queued=len(self._ready) + len(self._delayed))

    async def stop(self) -> None:
        self._running = False
        logger.info("memory_queue_stopped", queued=len(self._ready) + len(self._delayed))

    def _promote_due(self) -> None:
        now = self.clock()
        while self._delayed and self._delayed[0][0] <= now:
            _, _, notification = heapq.heappop(self._delayed)
            self._ready.append(notification)
