"""Console transport: writes notifications to the structured log.

Useful as the in-app channel during development and as a stand-in for real
providers in demos. Every send is reported as DELIVERED.
"""

from notification_center.adapters.base import TransportAdapter
from notification_center.logging import get_module_logger
from notification_center.models import (
    DeliveryReceipt,
    DeliveryStatus,
    Notification,
    NotificationPreferences,
)

logger = get_module_logger()


class ConsoleTransport(TransportAdapter):
    """Transport that logs each notification instead of delivering it."""

    def __init__(self, name: str = "inapp"):
        """Initialize console transport.

        Args:
            name: Channel this transport serves (default: "inapp")
        """
        self._name = name
        logger.info("initialized_console_transport", channel=name)

    @property
    def name(self) -> str:
        return self._name

    async def send(
        self, notification: Notification, preferences: NotificationPreferences
    ) -> DeliveryReceipt:
        logger.info(
            "console_notification_sent",
            channel=self._name,
            notification_id=notification.id,
            user_id=notification.user_id,
            notification_type=notification.type,
            title=notification.title,
            body=notification.body,
            priority=notification.priority.value,
        )
        return DeliveryReceipt(
            notification_id=notification.id,
            channel=self._name,
            status=DeliveryStatus.DELIVERED,
            attempts=1,
        )

    async def health_check(self) -> bool:
        return True
