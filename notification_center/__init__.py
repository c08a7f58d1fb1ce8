"""Notification center: a channel-agnostic notification dispatch engine.

Build notifications from templates or direct input, filter and transform
them through middleware, persist them, and deliver them over pluggable
channel transports, either immediately or through a queue.

Public API:
    - NotificationService: Engine facade (send, query, read state, preferences)
    - NotificationInput / Notification: Request and persisted notification
    - NotificationTemplate / TemplateDefaults: Reusable notification shapes
    - NotificationMiddleware: before_send / after_send / on_error hooks
    - StorageAdapter / TransportAdapter / QueueAdapter: Collaborator contracts
    - MemoryStorageAdapter / MemoryQueueAdapter / ConsoleTransport: In-memory adapters

Example:
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
    notification = await service.send(
        NotificationInput(
            type="system",
            title="Maintenance tonight",
            body="The service will be unavailable from 02:00 UTC.",
            user_id="user:123",
            channels=["inapp"],
        )
    )
"""

from notification_center.adapters import (
    ConsoleTransport,
    DigestStore,
    MemoryQueueAdapter,
    MemoryStorageAdapter,
    QueueAdapter,
    ReceiptStore,
    StorageAdapter,
    SupportsHealthCheck,
    TransportAdapter,
)
from notification_center.coordinator import DeliveryCoordinator, aggregate_status
from notification_center.dispatcher import NotificationDispatcher
from notification_center.errors import (
    NotificationError,
    NotificationFilteredError,
    NotificationNotFoundError,
    TemplateNotFoundError,
)
from notification_center.middleware import MiddlewarePipeline, NotificationMiddleware
from notification_center.models import (
    ChannelFrequency,
    ChannelPreferences,
    DeliveryReceipt,
    DeliveryStatus,
    DigestConfig,
    DigestFrequency,
    Notification,
    NotificationAction,
    NotificationEvent,
    NotificationEventType,
    NotificationFilters,
    NotificationInput,
    NotificationPreferences,
    NotificationPriority,
    NotificationStats,
    NotificationStatus,
    QuietHours,
)
from notification_center.preferences import can_send, in_quiet_hours
from notification_center.service import NotificationService
from notification_center.subscriptions import SubscriberError, SubscriptionHub
from notification_center.templates import (
    NotificationTemplate,
    TemplateDefaults,
    TemplateRegistry,
)
from notification_center.workers import CleanupScheduler, PeriodicTask, QueueWorker

__all__ = [
    # Service
    "NotificationService",
    "NotificationDispatcher",
    "DeliveryCoordinator",
    "aggregate_status",
    # Models
    "Notification",
    "NotificationInput",
    "NotificationAction",
    "NotificationFilters",
    "NotificationPriority",
    "NotificationStatus",
    "DeliveryStatus",
    "DeliveryReceipt",
    "ChannelFrequency",
    "ChannelPreferences",
    "QuietHours",
    "NotificationPreferences",
    "DigestFrequency",
    "DigestConfig",
    "NotificationEvent",
    "NotificationEventType",
    "NotificationStats",
    # Errors
    "NotificationError",
    "NotificationFilteredError",
    "TemplateNotFoundError",
    "NotificationNotFoundError",
    # Templates
    "NotificationTemplate",
    "TemplateDefaults",
    "TemplateRegistry",
    # Middleware
    "NotificationMiddleware",
    "MiddlewarePipeline",
    # Preferences
    "can_send",
    "in_quiet_hours",
    # Subscriptions
    "SubscriptionHub",
    "SubscriberError",
    # Workers
    "PeriodicTask",
    "QueueWorker",
    "CleanupScheduler",
    # Adapters
    "StorageAdapter",
    "TransportAdapter",
    "QueueAdapter",
    "ReceiptStore",
    "DigestStore",
    "SupportsHealthCheck",
    "MemoryStorageAdapter",
    "MemoryQueueAdapter",
    "ConsoleTransport",
]
