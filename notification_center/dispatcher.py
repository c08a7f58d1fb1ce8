"""Notification dispatcher.

Turns a NotificationInput into a persisted, delivered (or enqueued)
Notification:

1. Build the notification (template resolver or direct mapping)
2. Run before_send middleware; a filtered notification aborts the dispatch
3. Persist the notification
4. Deliver: enqueue when a queue is configured, otherwise send immediately
5. Run after_send middleware
6. Publish the notification and a SENT event to subscribers, then the
   delivered/failed event of an immediate delivery

Any exception raised by steps 2-5 runs on_error middleware and is re-raised.
"""

import asyncio
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from notification_center.adapters.base import QueueAdapter, StorageAdapter
from notification_center.coordinator import DeliveryCoordinator
from notification_center.errors import NotificationFilteredError
from notification_center.logging import bind_dispatch_context, get_module_logger
from notification_center.middleware import MiddlewarePipeline
from notification_center.models import (
    Notification,
    NotificationEvent,
    NotificationEventType,
    NotificationInput,
    ensure_utc,
    utc_now,
)
from notification_center.subscriptions import SubscriptionHub
from notification_center.templates import TemplateRegistry

logger = get_module_logger()


class NotificationDispatcher:
    """Runs the dispatch pipeline for individual notifications."""

    def __init__(
        self,
        storage: StorageAdapter,
        coordinator: DeliveryCoordinator,
        pipeline: MiddlewarePipeline,
        templates: TemplateRegistry,
        hub: SubscriptionHub,
        queue: Optional[QueueAdapter] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.storage = storage
        self.coordinator = coordinator
        self.pipeline = pipeline
        self.templates = templates
        self.hub = hub
        self.queue = queue
        self._clock = clock or utc_now

    def build_notification(self, notification_input: NotificationInput) -> Notification:
        """Build a PENDING notification from caller input.

        Raises:
            TemplateNotFoundError: Unknown template id
            pydantic.ValidationError: Invalid resulting notification
        """
        return self.templates.resolve(notification_input, self._clock())

    async def send(self, notification_input: NotificationInput) -> Notification:
        """Dispatch one notification.

        Returns:
            The persisted notification. Its status is PENDING when it was
            enqueued, otherwise the outcome of the delivery pass.

        Raises:
            NotificationFilteredError: A before_send middleware dropped it
            TemplateNotFoundError: Unknown template id
        """
        notification = self.build_notification(notification_input)
        chain = self.pipeline.snapshot()

        with bind_dispatch_context(
            notification_id=notification.id, user_id=notification.user_id
        ):
            current = notification
            try:
                filtered, filtered_by = await self.pipeline.run_before_send(
                    current, chain
                )
                if filtered is None:
                    raise NotificationFilteredError(notification.id, filtered_by)
                current = filtered

                await self.storage.save(current)
                delivered_now = await self._deliver(current)
                await self.pipeline.run_after_send(current, chain)
            except NotificationFilteredError:
                raise
            except Exception as e:
                logger.error(
                    "notification_dispatch_failed",
                    notification_type=current.type,
                    error=str(e),
                    exc_info=True,
                )
                await self.pipeline.run_on_error(e, current, chain)
                raise

            logger.info(
                "notification_dispatched",
                notification_type=current.type,
                channels=current.channels,
                status=current.status.value,
                queued=self.queue is not None,
            )

        self.hub.publish_notification(current)
        self.hub.publish_event(
            NotificationEvent(
                type=NotificationEventType.SENT,
                notification=current,
                timestamp=self._clock(),
            )
        )
        if delivered_now:
            self.coordinator.publish_outcome(current, current.status)
        return current

    async def send_batch(
        self, notification_inputs: Sequence[NotificationInput]
    ) -> List[Notification]:
        """Dispatch many notifications concurrently.

        The first failure is raised; sends already in flight are not
        cancelled and keep whatever they persisted.
        """
        return list(
            await asyncio.gather(*(self.send(i) for i in notification_inputs))
        )

    async def schedule(
        self, notification_input: NotificationInput, when: datetime
    ) -> str:
        """Dispatch a notification with ``scheduled_for`` set to ``when``.

        Returns:
            The notification id
        """
        notification = await self.send(
            notification_input.model_copy(update={"scheduled_for": ensure_utc(when)})
        )
        return notification.id

    async def _deliver(self, notification: Notification) -> bool:
        """Enqueue or deliver now; True when a delivery pass ran."""
        now = self._clock()

        if self.queue is not None:
            if notification.scheduled_for:
                delay = max(0.0, (notification.scheduled_for - now).total_seconds())
                await self.queue.enqueue_delayed(notification, delay)
                logger.info("notification_enqueued_delayed", delay_seconds=delay)
            else:
                await self.queue.enqueue(notification)
                logger.debug("notification_enqueued")
            return False

        if notification.scheduled_for and notification.scheduled_for > now:
            logger.warning(
                "scheduled_notification_sent_immediately",
                scheduled_for=notification.scheduled_for.isoformat(),
                reason="no queue configured",
            )
        await self.coordinator.send_now(notification, publish=False)
        return True
