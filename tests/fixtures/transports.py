from typing import List, Optional, Tuple

from notification_center.adapters.base import TransportAdapter
from notification_center.models import (
    DeliveryReceipt,
    DeliveryStatus,
    Notification,
    NotificationPreferences,
)


class FakeTransport(TransportAdapter):
    """Transport that records every send and returns a configured outcome.

    Pass ``error`` to make ``send`` raise, or a list of ``statuses`` to
    return a different status on each call (the last one repeats).
    """

    def __init__(
        self,
        name: str = "inapp",
        status: DeliveryStatus = DeliveryStatus.DELIVERED,
        error: Optional[Exception] = None,
        statuses: Optional[List[DeliveryStatus]] = None,
        allow: bool = True,
    ):
        self._name = name
        self.status = status
        self.error = error
        self.statuses = list(statuses or [])
        self.allow = allow
        self.calls: List[Tuple[Notification, NotificationPreferences]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def send(
        self, notification: Notification, preferences: NotificationPreferences
    ) -> DeliveryReceipt:
        self.calls.append((notification, preferences))
        if self.error is not None:
            raise self.error

        status = self.status
        if self.statuses:
            status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return DeliveryReceipt(
            notification_id=notification.id,
            channel=self._name,
            status=status,
            error="provider rejected" if status == DeliveryStatus.FAILED else None,
        )

    def can_send(self, notification, preferences, now=None) -> bool:
        if not self.allow:
            return False
        return super().can_send(notification, preferences, now)


class HealthCheckedTransport(FakeTransport):
    """FakeTransport with the health check capability."""

    def __init__(self, name: str = "push", healthy: bool = True, **kwargs):
        super().__init__(name=name, **kwargs)
        self.healthy = healthy
        self.health_error: Optional[Exception] = None

    async def health_check(self) -> bool:
        if self.health_error is not None:
            raise self.health_error
        return self.healthy
