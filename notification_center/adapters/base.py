"""Adapter contracts for storage, transports and queues.

Concrete backends (databases, email/push/SMS providers, message brokers) plug
into the engine through these interfaces. Required operations are abstract
methods; optional capabilities are runtime-checkable protocols that the
engine tests with ``isinstance`` before use:

- ReceiptStore: storage can persist delivery receipts
- DigestStore: storage persists digest configurations as their own entity
- SupportsHealthCheck: transport can report its health

SupportsBatchSend describes transports that can deliver many notifications
in one call. The engine delivers one notification per ``send`` and never
calls it; it is for applications driving such a transport directly.

All operations are coroutines. The engine calls them concurrently and
performs no locking of its own; adapters own their connections and pools.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable

from notification_center import preferences as preference_gate
from notification_center.models import (
    DeliveryReceipt,
    DigestConfig,
    Notification,
    NotificationFilters,
    NotificationPreferences,
)


class StorageAdapter(ABC):
    """Abstract base class for notification storage.

    Storage is the source of truth once a notification has been saved.
    ``save`` is an upsert keyed by notification id.
    """

    @abstractmethod
    async def save(self, notification: Notification) -> None:
        """Insert or replace a notification."""

    @abstractmethod
    async def save_batch(self, notifications: List[Notification]) -> None:
        """Insert or replace several notifications."""

    @abstractmethod
    async def find_by_id(self, notification_id: str) -> Optional[Notification]:
        """Return the notification or None when unknown."""

    @abstractmethod
    async def find_by_user(
        self, user_id: str, filters: Optional[NotificationFilters] = None
    ) -> List[Notification]:
        """Return a user's notifications matching ``filters``.

        Without ``sort_by`` results are ordered by ``created_at`` descending.
        """

    @abstractmethod
    async def count_unread(self, user_id: str) -> int:
        """Count the user's notifications whose status is not READ."""

    @abstractmethod
    async def mark_as_read(self, notification_id: str) -> None:
        """Set status READ and stamp ``read_at``."""

    @abstractmethod
    async def mark_all_as_read(self, user_id: str) -> None:
        """Mark every unread notification of the user as read."""

    @abstractmethod
    async def delete(self, notification_id: str) -> None:
        """Delete a notification (unknown ids are ignored)."""

    @abstractmethod
    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        """Return stored preferences, or defaults for an unknown user."""

    @abstractmethod
    async def save_preferences(
        self, user_id: str, preferences: NotificationPreferences
    ) -> None:
        """Replace the user's preferences."""

    @abstractmethod
    async def delete_expired(self) -> int:
        """Delete every notification storage considers expired.

        Returns:
            Number of notifications deleted
        """


@runtime_checkable
class ReceiptStore(Protocol):
    """Storage capability: append-only delivery receipts."""

    async def save_receipt(self, receipt: DeliveryReceipt) -> None: ...

    async def get_receipts(self, notification_id: str) -> List[DeliveryReceipt]: ...


@runtime_checkable
class DigestStore(Protocol):
    """Storage capability: digest configuration persisted per user."""

    async def get_digest_config(self, user_id: str) -> Optional[DigestConfig]: ...

    async def save_digest_config(self, config: DigestConfig) -> None: ...

    async def delete_digest_config(self, user_id: str) -> None: ...


class TransportAdapter(ABC):
    """Abstract base class for delivery channels.

    Each transport delivers over one channel (in-app, push, email, SMS,
    webhook). ``send`` may raise: the delivery coordinator turns exceptions
    into FAILED receipts.

    Example Implementation:
        class WebhookTransport(TransportAdapter):

            @property
            def name(self) -> str:
                return "webhook"

            async def send(self, notification, preferences):
                response = await self._client.post(self._url, json=notification.model_dump(mode="json"))
                return DeliveryReceipt(
                    notification_id=notification.id,
                    channel=self.name,
                    status=DeliveryStatus.DELIVERED if response.ok else DeliveryStatus.FAILED,
                )
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Channel identifier used for routing (e.g. "email")."""

    @abstractmethod
    async def send(
        self, notification: Notification, preferences: NotificationPreferences
    ) -> DeliveryReceipt:
        """Deliver one notification and describe the outcome."""

    def can_send(
        self,
        notification: Notification,
        preferences: NotificationPreferences,
        now: Optional[datetime] = None,
    ) -> bool:
        """Check the recipient's preferences for this channel.

        Defaults to the preference gate; override to add transport-specific
        rules (e.g. the user has no phone number on file).
        """
        return preference_gate.can_send(notification, preferences, self.name, now)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


@runtime_checkable
class SupportsHealthCheck(Protocol):
    """Transport capability: report connectivity/credential health."""

    async def health_check(self) -> bool: ...


@runtime_checkable
class SupportsBatchSend(Protocol):
    """Transport capability: deliver several notifications in one call."""

    async def send_batch(
        self, notifications: List[Notification], preferences: NotificationPreferences
    ) -> List[DeliveryReceipt]: ...


class QueueAdapter(ABC):
    """Abstract base class for delivery queues.

    Atomicity of dequeue is the adapter's responsibility: two workers must
    never receive the same entry.
    """

    @abstractmethod
    async def enqueue(self, notification: Notification) -> None:
        """Make a notification available for immediate delivery."""

    @abstractmethod
    async def enqueue_batch(self, notifications: List[Notification]) -> None:
        """Enqueue several notifications for immediate delivery."""

    @abstractmethod
    async def enqueue_delayed(self, notification: Notification, delay: float) -> None:
        """Make a notification available after ``delay`` seconds."""

    @abstractmethod
    async def dequeue(self) -> Optional[Notification]:
        """Take the next ready notification, or None when empty."""

    @abstractmethod
    async def dequeue_batch(self, count: int) -> List[Notification]:
        """Take up to ``count`` ready notifications."""

    @abstractmethod
    async def get_queue_size(self) -> int:
        """Number of queued entries, ready and delayed."""

    @abstractmethod
    async def clear(self) -> None:
        """Drop every queued entry."""

    @abstractmethod
    async def start(self) -> None:
        """Acquire resources (connections, consumers)."""

    @abstractmethod
    async def stop(self) -> None:
        """Release resources."""
