"""In-memory storage adapter.

Suitable for single-process deployments, development and tests. Stores deep
copies so callers holding a Notification never mutate the stored record
behind storage's back, which mirrors how a real database behaves.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from notification_center.adapters.base import StorageAdapter
from notification_center.models import (
    DeliveryReceipt,
    DigestConfig,
    Notification,
    NotificationFilters,
    NotificationPreferences,
    NotificationStatus,
    utc_now,
)


def _as_list(value: Any) -> Optional[List[Any]]:
    if value is None:
        return None
    if isinstance(value, list):
        return value
    return [value]


_SORT_KEYS: Dict[str, Callable[[Notification], Any]] = {
    "created_at": lambda n: n.created_at,
    "priority": lambda n: n.priority.rank,
    "read_at": lambda n: n.read_at,
}


class MemoryStorageAdapter(StorageAdapter):
    """Dict-backed StorageAdapter with receipt and digest capabilities.

    Attributes:
        clock: Callable returning "now" (used for read_at and expiry)
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._notifications: Dict[str, Notification] = {}
        self._preferences: Dict[str, NotificationPreferences] = {}
        self._receipts: Dict[str, List[DeliveryReceipt]] = {}
        self._digests: Dict[str, DigestConfig] = {}
        self.clock = clock or utc_now

    # Notifications

    async def save(self, notification: Notification) -> None:
        self._notifications[notification.id] = notification.model_copy(deep=True)

    async def save_batch(self, notifications: List[Notification]) -> None:
        for notification in notifications:
            await self.save(notification)

    async def find_by_id(self, notification_id: str) -> Optional[Notification]:
        stored = self._notifications.get(notification_id)
        return stored.model_copy(deep=True) if stored else None

    async def find_by_user(
        self, user_id: str, filters: Optional[NotificationFilters] = None
    ) -> List[Notification]:
        filters = filters or NotificationFilters()
        results = [n for n in self._notifications.values() if n.user_id == user_id]

        statuses = _as_list(filters.status)
        if statuses is not None:
            results = [n for n in results if n.status in statuses]
        types = _as_list(filters.type)
        if types is not None:
            results = [n for n in results if n.type in types]
        categories = _as_list(filters.category)
        if categories is not None:
            results = [n for n in results if n.category in categories]
        channels = _as_list(filters.channels)
        if channels is not None:
            results = [n for n in results if set(n.channels) & set(channels)]
        priorities = _as_list(filters.priority)
        if priorities is not None:
            results = [n for n in results if n.priority in priorities]
        if filters.start_date is not None:
            results = [n for n in results if n.created_at >= filters.start_date]
        if filters.end_date is not None:
            results = [n for n in results if n.created_at <= filters.end_date]

        # Records without a value for the sort key always go last.
        key = _SORT_KEYS[filters.sort_by]
        present = [n for n in results if key(n) is not None]
        missing = [n for n in results if key(n) is None]
        present.sort(key=key, reverse=filters.sort_order == "desc")
        results = present + missing

        if filters.offset:
            results = results[filters.offset :]
        if filters.limit is not None:
            results = results[: filters.limit]

        return [n.model_copy(deep=True) for n in results]

    async def count_unread(self, user_id: str) -> int:
        return sum(
            1
            for n in self._notifications.values()
            if n.user_id == user_id and n.status != NotificationStatus.READ
        )

    async def mark_as_read(self, notification_id: str) -> None:
        notification = self._notifications.get(notification_id)
        if notification is None or notification.status == NotificationStatus.READ:
            return
        notification.status = NotificationStatus.READ
        notification.read_at = self.clock()

    async def mark_all_as_read(self, user_id: str) -> None:
        now = self.clock()
        for notification in self._notifications.values():
            if (
                notification.user_id == user_id
                and notification.status != NotificationStatus.READ
            ):
                notification.status = NotificationStatus.READ
                notification.read_at = now

    async def delete(self, notification_id: str) -> None:
        self._notifications.pop(notification_id, None)
        self._receipts.pop(notification_id, None)

    async def delete_expired(self) -> int:
        now = self.clock()
        expired = [n.id for n in self._notifications.values() if n.is_expired(now)]
        for notification_id in expired:
            await self.delete(notification_id)
        return len(expired)

    # Preferences

    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        stored = self._preferences.get(user_id)
        if stored is None:
            return NotificationPreferences(user_id=user_id)
        return stored.model_copy(deep=True)

    async def save_preferences(
        self, user_id: str, preferences: NotificationPreferences
    ) -> None:
        self._preferences[user_id] = preferences.model_copy(deep=True)

    # Receipts (ReceiptStore)

    async def save_receipt(self, receipt: DeliveryReceipt) -> None:
        self._receipts.setdefault(receipt.notification_id, []).append(receipt)

    async def get_receipts(self, notification_id: str) -> List[DeliveryReceipt]:
        return list(self._receipts.get(notification_id, []))

    # Digest configuration (DigestStore)

    async def get_digest_config(self, user_id: str) -> Optional[DigestConfig]:
        stored = self._digests.get(user_id)
        return stored.model_copy(deep=True) if stored else None

    async def save_digest_config(self, config: DigestConfig) -> None:
        self._digests[config.user_id] = config.model_copy(deep=True)

    async def delete_digest_config(self, user_id: str) -> None:
        self._digests.pop(user_id, None)

    def get_stats(self) -> Dict[str, int]:
        """Get storage statistics (for tests and debugging)."""
        return {
            "notifications": len(self._notifications),
            "preferences": len(self._preferences),
            "receipts": sum(len(r) for r in self._receipts.values()),
            "digests": len(self._digests),
        }
