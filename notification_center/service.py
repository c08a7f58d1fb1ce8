"""Notification service: the engine facade.

Wires storage, transports, an optional queue, middleware, templates and the
subscription hub together and exposes every caller-facing operation.

Usage:
    from notification_center import (
        ConsoleTransport,
        MemoryStorageAdapter,
        NotificationInput,
        NotificationService,
    )

    service = NotificationService(
        storage=MemoryStorageAdapter(),
        transports=[ConsoleTransport("inapp")],
    )
    await service.start()

    notification = await service.send(
        NotificationInput(
            type="comment",
            title="New comment",
            body="Alice replied to your post",
            user_id="user:123",
            channels=["inapp"],
        )
    )

    await service.stop()
"""

import asyncio
from collections import Counter
from datetime import datetime
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Union,
)

from notification_center.adapters.base import (
    DigestStore,
    QueueAdapter,
    ReceiptStore,
    StorageAdapter,
    SupportsHealthCheck,
    TransportAdapter,
)
from notification_center.configuration import Settings
from notification_center.coordinator import DeliveryCoordinator
from notification_center.dispatcher import NotificationDispatcher
from notification_center.errors import NotificationNotFoundError
from notification_center.logging import get_module_logger
from notification_center.middleware import MiddlewarePipeline, NotificationMiddleware
from notification_center.models import (
    DeliveryReceipt,
    DigestConfig,
    Notification,
    NotificationEvent,
    NotificationEventType,
    NotificationFilters,
    NotificationInput,
    NotificationPreferences,
    NotificationStats,
    NotificationStatus,
    utc_now,
)
from notification_center.providers import get_settings
from notification_center.subscriptions import (
    EventCallback,
    NotificationCallback,
    SubscriberErrorHandler,
    SubscriptionHub,
    UnreadCountCallback,
    Unsubscribe,
)
from notification_center.templates import NotificationTemplate, TemplateRegistry
from notification_center.workers import CleanupScheduler, QueueWorker

logger = get_module_logger()

DIGEST_CONFIG_KEY = "digest_config"


class NotificationService:
    """Class-based notification engine.

    The storage adapter owns all persistent state; the service only holds
    in-process registries (transports, templates, middleware, subscribers)
    and the background workers started by ``start``.

    Attributes:
        storage: StorageAdapter
        queue: Optional QueueAdapter; without one every send is delivered
            immediately, even when scheduled for later
        settings: Settings (workers, retry, cleanup)
        hub: SubscriptionHub for live updates
        pipeline: MiddlewarePipeline
        templates: TemplateRegistry
        coordinator: DeliveryCoordinator
        dispatcher: NotificationDispatcher
    """

    def __init__(
        self,
        storage: StorageAdapter,
        transports: Optional[Iterable[TransportAdapter]] = None,
        queue: Optional[QueueAdapter] = None,
        settings: Optional[Settings] = None,
        middleware: Optional[Iterable[NotificationMiddleware]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize notification service.

        Args:
            storage: StorageAdapter implementation (required)
            transports: TransportAdapters, registered under their ``name``
            queue: Optional QueueAdapter for deferred delivery
            settings: Settings instance. Defaults to the cached get_settings().
            middleware: Initial middleware chain, in order
            clock: Callable returning the current UTC time (for tests)
        """
        self.storage = storage
        self.queue = queue
        self.settings = settings or get_settings()
        self._clock = clock or utc_now

        self._transports: Dict[str, TransportAdapter] = {}
        for transport in transports or []:
            self.register_transport(transport)

        self.hub = SubscriptionHub()
        self.pipeline = MiddlewarePipeline(middleware)
        self.templates = TemplateRegistry()
        self.coordinator = DeliveryCoordinator(
            storage, self._transports, hub=self.hub, clock=self._clock
        )
        self.dispatcher = NotificationDispatcher(
            storage,
            self.coordinator,
            self.pipeline,
            self.templates,
            self.hub,
            queue=queue,
            clock=self._clock,
        )

        self._worker: Optional[QueueWorker] = None
        self._cleanup: Optional[CleanupScheduler] = None
        self._running = False

        logger.info(
            "initialized_notification_service",
            channels=self.list_channels(),
            queue=type(queue).__name__ if queue else None,
            middleware=self.pipeline.names,
        )

    @property
    def is_running(self) -> bool:
        return self._running

    # Transports

    def register_transport(self, transport: TransportAdapter) -> None:
        """Register a transport under its channel name, replacing any existing one."""
        self._transports[transport.name] = transport
        logger.debug("registered_transport", channel=transport.name)

    def get_transport(self, channel: str) -> Optional[TransportAdapter]:
        return self._transports.get(channel)

    def list_channels(self) -> List[str]:
        return list(self._transports.keys())

    # Sending

    async def send(self, notification_input: NotificationInput) -> Notification:
        """Build, persist and deliver (or enqueue) one notification.

        Raises:
            NotificationFilteredError: A before_send middleware dropped it
            TemplateNotFoundError: Unknown template id
        """
        return await self.dispatcher.send(notification_input)

    async def send_batch(
        self, notification_inputs: Sequence[NotificationInput]
    ) -> List[Notification]:
        return await self.dispatcher.send_batch(notification_inputs)

    async def schedule(
        self, notification_input: NotificationInput, when: datetime
    ) -> str:
        """Send with ``scheduled_for=when``; returns the notification id."""
        return await self.dispatcher.schedule(notification_input, when)

    # Querying

    async def get_for_user(
        self, user_id: str, filters: Optional[NotificationFilters] = None
    ) -> List[Notification]:
        return await self.storage.find_by_user(user_id, filters)

    async def get_unread_count(self, user_id: str) -> int:
        return await self.storage.count_unread(user_id)

    async def get_by_id(self, notification_id: str) -> Optional[Notification]:
        return await self.storage.find_by_id(notification_id)

    async def get_stats(self, user_id: str) -> NotificationStats:
        """Count a user's notifications by status, channel and priority."""
        notifications = await self.storage.find_by_user(user_id, NotificationFilters())
        unread = await self.storage.count_unread(user_id)

        by_channel: Counter = Counter()
        for notification in notifications:
            by_channel.update(notification.channels)

        return NotificationStats(
            total=len(notifications),
            unread=unread,
            by_status=dict(Counter(n.status.value for n in notifications)),
            by_channel=dict(by_channel),
            by_priority=dict(Counter(n.priority.value for n in notifications)),
        )

    # State management

    async def mark_as_read(self, notification_id: str) -> None:
        """Mark one notification as read.

        Idempotent: an unknown or already read notification is left as is
        and nothing is published, so ``read_at`` keeps its first value.
        """
        existing = await self.storage.find_by_id(notification_id)
        if existing is None:
            logger.debug("mark_as_read_unknown_notification", notification_id=notification_id)
            return
        if existing.status == NotificationStatus.READ:
            return

        await self.storage.mark_as_read(notification_id)

        notification = await self.storage.find_by_id(notification_id) or existing
        self.hub.publish_event(
            NotificationEvent(
                type=NotificationEventType.READ,
                notification=notification,
                timestamp=self._clock(),
            )
        )
        await self._publish_unread_count(notification.user_id)

    async def mark_all_as_read(self, user_id: str) -> None:
        await self.storage.mark_all_as_read(user_id)
        await self._publish_unread_count(user_id)

    async def delete(self, notification_id: str) -> None:
        """Delete one notification; republish the unread count if it was unread."""
        notification = await self.storage.find_by_id(notification_id)
        await self.storage.delete(notification_id)

        if notification is not None and notification.status != NotificationStatus.READ:
            await self._publish_unread_count(notification.user_id)

    async def delete_all(self, user_id: str) -> None:
        notifications = await self.storage.find_by_user(user_id, NotificationFilters())
        await asyncio.gather(*(self.storage.delete(n.id) for n in notifications))
        logger.info("deleted_user_notifications", user_id=user_id, count=len(notifications))
        await self._publish_unread_count(user_id)

    # Preferences

    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        return await self.storage.get_preferences(user_id)

    async def update_preferences(
        self,
        user_id: str,
        changes: Union[Mapping[str, Any], NotificationPreferences],
    ) -> NotificationPreferences:
        """Merge top-level changes into the stored preferences.

        Args:
            user_id: Owner of the preferences
            changes: Fields to replace, as a mapping or a partial
                NotificationPreferences (only explicitly set fields apply)

        Returns:
            The saved preferences

        Raises:
            pydantic.ValidationError: The merged preferences are invalid
        """
        if isinstance(changes, NotificationPreferences):
            changes = changes.model_dump(exclude_unset=True)

        current = await self.storage.get_preferences(user_id)
        merged = {**current.model_dump(), **dict(changes)}
        merged["user_id"] = user_id
        merged["updated_at"] = self._clock()

        preferences = NotificationPreferences.model_validate(merged)
        await self.storage.save_preferences(user_id, preferences)
        logger.info(
            "preferences_updated",
            user_id=user_id,
            fields=sorted(k for k in changes if k not in ("user_id", "updated_at")),
        )
        return preferences

    # Templates

    def register_template(self, template: NotificationTemplate) -> None:
        self.templates.register(template)

    def get_template(self, template_id: str) -> Optional[NotificationTemplate]:
        return self.templates.get(template_id)

    def unregister_template(self, template_id: str) -> None:
        self.templates.unregister(template_id)

    # Digest

    async def enable_digest(self, user_id: str, config: DigestConfig) -> DigestConfig:
        """Store a user's digest configuration.

        Returns:
            The stored configuration (``user_id`` forced to the given user)
        """
        config = config.model_copy(update={"user_id": user_id, "enabled": True})

        if isinstance(self.storage, DigestStore):
            await self.storage.save_digest_config(config)
        else:
            preferences = await self.storage.get_preferences(user_id)
            data = {**preferences.data, DIGEST_CONFIG_KEY: config.model_dump(mode="json")}
            await self.update_preferences(user_id, {"data": data})

        logger.info(
            "digest_enabled",
            user_id=user_id,
            frequency=config.frequency.value,
            channels=config.channels,
        )
        return config

    async def disable_digest(self, user_id: str) -> None:
        if isinstance(self.storage, DigestStore):
            await self.storage.delete_digest_config(user_id)
        else:
            preferences = await self.storage.get_preferences(user_id)
            if DIGEST_CONFIG_KEY in preferences.data:
                data = {k: v for k, v in preferences.data.items() if k != DIGEST_CONFIG_KEY}
                await self.update_preferences(user_id, {"data": data})
        logger.info("digest_disabled", user_id=user_id)

    async def get_digest_config(self, user_id: str) -> Optional[DigestConfig]:
        if isinstance(self.storage, DigestStore):
            return await self.storage.get_digest_config(user_id)

        preferences = await self.storage.get_preferences(user_id)
        stored = preferences.data.get(DIGEST_CONFIG_KEY)
        if stored is None:
            return None
        return DigestConfig.model_validate(stored)

    # Delivery status

    async def get_delivery_status(self, notification_id: str) -> List[DeliveryReceipt]:
        """Receipts recorded for a notification, oldest first.

        Empty when storage does not keep receipts.
        """
        if not isinstance(self.storage, ReceiptStore):
            return []
        return await self.storage.get_receipts(notification_id)

    async def retry_failed(
        self, notification_id: str, channel: Optional[str] = None
    ) -> List[DeliveryReceipt]:
        """Re-send on channels whose latest receipt failed.

        Raises:
            NotificationNotFoundError: Unknown notification id
        """
        notification = await self.storage.find_by_id(notification_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)

        receipts = await self.get_delivery_status(notification_id)
        return await self.coordinator.retry_failed(notification, receipts, channel)

    # Subscriptions

    def subscribe(self, user_id: str, callback: NotificationCallback) -> Unsubscribe:
        return self.hub.subscribe(user_id, callback)

    def subscribe_to_events(self, user_id: str, callback: EventCallback) -> Unsubscribe:
        return self.hub.subscribe_to_events(user_id, callback)

    def on_unread_count_change(
        self, user_id: str, callback: UnreadCountCallback
    ) -> Unsubscribe:
        return self.hub.on_unread_count_change(user_id, callback)

    def on_subscriber_error(self, handler: SubscriberErrorHandler) -> Unsubscribe:
        return self.hub.on_subscriber_error(handler)

    # Middleware

    def use(self, middleware: NotificationMiddleware) -> None:
        self.pipeline.use(middleware)

    def remove_middleware(self, name: str) -> int:
        return self.pipeline.remove(name)

    # Lifecycle

    async def start(self) -> None:
        """Start the queue, the queue worker and the cleanup scheduler.

        The worker runs only when a queue is configured and workers are
        enabled; cleanup runs only when enabled. Calling start twice is a
        no-op.
        """
        if self._running:
            return
        self._running = True

        if self.queue is not None:
            await self.queue.start()

            workers = self.settings.workers
            if workers.enabled:
                self._worker = QueueWorker(
                    self.queue,
                    self.coordinator,
                    concurrency=workers.concurrency,
                    poll_interval=workers.poll_interval_seconds,
                )
                self._worker.start()

        cleanup = self.settings.cleanup
        if cleanup.enabled:
            self._cleanup = CleanupScheduler(
                self.storage, interval=cleanup.interval_seconds
            )
            self._cleanup.start()

        logger.info(
            "notification_service_started",
            worker=self._worker is not None,
            cleanup=self._cleanup is not None,
        )

    async def stop(self, wait: bool = True) -> None:
        """Stop background work, then the queue.

        Args:
            wait: Wait for an in-flight worker batch or cleanup sweep to
                finish before stopping the queue
        """
        if not self._running:
            return
        self._running = False

        if self._worker is not None:
            await self._worker.stop(wait=wait)
            self._worker = None
        if self._cleanup is not None:
            await self._cleanup.stop(wait=wait)
            self._cleanup = None

        if self.queue is not None:
            await self.queue.stop()

        logger.info("notification_service_stopped", waited=wait)

    async def health_check(self) -> Dict[str, bool]:
        """Check every registered transport.

        Returns:
            Channel name -> healthy. Transports without a health check are
            reported healthy; a raising check is reported unhealthy.
        """
        results: Dict[str, bool] = {}
        for name, transport in self._transports.items():
            if not isinstance(transport, SupportsHealthCheck):
                results[name] = True
                continue
            try:
                results[name] = bool(await transport.health_check())
            except Exception as e:
                logger.warning(
                    "transport_health_check_failed",
                    channel=name,
                    error=str(e),
                )
                results[name] = False
        return results

    async def _publish_unread_count(self, user_id: str) -> None:
        count = await self.storage.count_unread(user_id)
        self.hub.publish_unread_count(user_id, count)
