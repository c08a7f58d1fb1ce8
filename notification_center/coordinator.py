"""Delivery coordinator: fan a notification out to its channels.

For each channel of a notification, concurrently:

1. Look up the transport registered for the channel (none: skip)
2. Ask the transport whether the recipient's preferences allow it (no: skip)
3. Send; a transport exception becomes a FAILED receipt with attempts=1
4. Persist the receipt when storage supports receipts

The collected receipts are then aggregated into one notification status:

- FAILED when every channel was skipped or failed (so a notification with
  no usable channel is FAILED even though nothing was attempted)
- DELIVERED when at least one receipt is DELIVERED
- SENT otherwise

No retry loop runs here; ``retry_failed`` re-attempts on request.
"""

import asyncio
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

from notification_center.adapters.base import (
    ReceiptStore,
    StorageAdapter,
    TransportAdapter,
)
from notification_center.logging import get_module_logger
from notification_center.models import (
    DeliveryReceipt,
    DeliveryStatus,
    Notification,
    NotificationEvent,
    NotificationEventType,
    NotificationPreferences,
    NotificationStatus,
    utc_now,
)
from notification_center.subscriptions import SubscriptionHub

logger = get_module_logger()


def aggregate_status(receipts: Sequence[Optional[DeliveryReceipt]]) -> NotificationStatus:
    """Collapse per-channel outcomes into one notification status.

    Args:
        receipts: One entry per channel; None for a skipped channel

    Returns:
        FAILED, DELIVERED or SENT
    """
    all_failed = all(r is None or r.status == DeliveryStatus.FAILED for r in receipts)
    if all_failed:
        return NotificationStatus.FAILED
    if any(r is not None and r.status == DeliveryStatus.DELIVERED for r in receipts):
        return NotificationStatus.DELIVERED
    return NotificationStatus.SENT


def latest_receipts(receipts: Sequence[DeliveryReceipt]) -> Dict[str, DeliveryReceipt]:
    """Most recent receipt per channel, in append order."""
    latest: Dict[str, DeliveryReceipt] = {}
    for receipt in receipts:
        latest[receipt.channel] = receipt
    return latest


class DeliveryCoordinator:
    """Delivers notifications over their channels and records the outcome.

    Attributes:
        storage: StorageAdapter (receipts persisted only if it is a ReceiptStore)
        transports: Channel name -> TransportAdapter; shared with the service,
            so transports registered later are picked up
        hub: Optional SubscriptionHub for delivered/failed events
    """

    def __init__(
        self,
        storage: StorageAdapter,
        transports: Dict[str, TransportAdapter],
        hub: Optional[SubscriptionHub] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.storage = storage
        self.transports = transports
        self.hub = hub
        self._clock = clock or utc_now

    @property
    def stores_receipts(self) -> bool:
        return isinstance(self.storage, ReceiptStore)

    async def send_now(
        self, notification: Notification, publish: bool = True
    ) -> List[DeliveryReceipt]:
        """Deliver over every channel, update and persist the status.

        ``notification.status`` is updated in place and the notification is
        saved again. A notification marked read while the delivery was in
        flight stays READ with its ``read_at``; only the receipts are added.
        Transport failures never raise; storage failures do.

        Args:
            notification: Notification to deliver
            publish: Publish the delivered/failed event right away. Callers
                that announce the notification themselves pass False and call
                ``publish_outcome`` afterwards.

        Returns:
            Receipts of the channels that were attempted
        """
        preferences = await self.storage.get_preferences(notification.user_id)

        results = await asyncio.gather(
            *(
                self._deliver(notification, channel, preferences)
                for channel in notification.channels
            )
        )

        outcome = aggregate_status(results)
        await self._record_status(notification, outcome)

        receipts = [r for r in results if r is not None]
        log_kwargs = dict(
            notification_id=notification.id,
            user_id=notification.user_id,
            status=outcome.value,
            channel_count=len(notification.channels),
            attempted=len(receipts),
            delivered=sum(1 for r in receipts if r.status == DeliveryStatus.DELIVERED),
        )
        if not receipts:
            logger.warning("notification_no_channel_attempted", **log_kwargs)
        elif outcome == NotificationStatus.FAILED:
            logger.warning("notification_delivery_failed", **log_kwargs)
        else:
            logger.info("notification_delivery_complete", **log_kwargs)

        if publish:
            self.publish_outcome(notification, outcome)
        return receipts

    async def retry_failed(
        self,
        notification: Notification,
        receipts: Sequence[DeliveryReceipt],
        channel: Optional[str] = None,
    ) -> List[DeliveryReceipt]:
        """Re-send on channels whose latest receipt is FAILED.

        Channels whose latest receipt succeeded are never re-sent. Each
        attempt appends a new receipt; the notification status is unchanged.

        Args:
            notification: Stored notification to re-deliver
            receipts: Its receipt history, oldest first
            channel: Only retry this channel (default: every failed channel)

        Returns:
            The new receipts
        """
        failed = [
            receipt
            for receipt in latest_receipts(receipts).values()
            if receipt.status == DeliveryStatus.FAILED
            and (channel is None or receipt.channel == channel)
        ]
        if not failed:
            logger.info(
                "retry_no_failed_channels",
                notification_id=notification.id,
                channel=channel,
            )
            return []

        preferences = await self.storage.get_preferences(notification.user_id)
        new_receipts: List[DeliveryReceipt] = []
        for previous in failed:
            transport = self.transports.get(previous.channel)
            if transport is None:
                logger.warning(
                    "retry_transport_not_found",
                    notification_id=notification.id,
                    channel=previous.channel,
                )
                continue

            attempt = previous.attempts + 1
            receipt = await self._attempt(
                transport, notification, previous.channel, preferences, attempt
            )
            if receipt.attempts != attempt:
                receipt = receipt.model_copy(update={"attempts": attempt})
            await self._save_receipt(receipt)
            new_receipts.append(receipt)

            logger.info(
                "retry_attempted",
                notification_id=notification.id,
                channel=previous.channel,
                attempt=attempt,
                status=receipt.status.value,
            )

        return new_receipts

    async def _deliver(
        self,
        notification: Notification,
        channel: str,
        preferences: NotificationPreferences,
    ) -> Optional[DeliveryReceipt]:
        transport = self.transports.get(channel)
        if transport is None:
            logger.warning(
                "channel_not_available",
                notification_id=notification.id,
                channel=channel,
                available_channels=list(self.transports.keys()),
            )
            return None

        if not transport.can_send(notification, preferences):
            logger.info(
                "channel_blocked_by_preferences",
                notification_id=notification.id,
                user_id=notification.user_id,
                channel=channel,
            )
            return None

        receipt = await self._attempt(transport, notification, channel, preferences, 1)
        await self._save_receipt(receipt)
        return receipt

    async def _attempt(
        self,
        transport: TransportAdapter,
        notification: Notification,
        channel: str,
        preferences: NotificationPreferences,
        attempt: int,
    ) -> DeliveryReceipt:
        try:
            return await transport.send(notification, preferences)
        except Exception as e:
            logger.error(
                "channel_send_failed",
                notification_id=notification.id,
                channel=channel,
                attempt=attempt,
                error=str(e),
                exc_info=True,
            )
            return DeliveryReceipt(
                notification_id=notification.id,
                channel=channel,
                status=DeliveryStatus.FAILED,
                attempts=attempt,
                last_attempt=self._clock(),
                error=str(e),
            )

    async def _save_receipt(self, receipt: DeliveryReceipt) -> None:
        if isinstance(self.storage, ReceiptStore):
            await self.storage.save_receipt(receipt)

    async def _record_status(
        self, notification: Notification, outcome: NotificationStatus
    ) -> None:
        stored = await self.storage.find_by_id(notification.id)
        if stored is not None and stored.is_read:
            notification.status = stored.status
            notification.read_at = stored.read_at
            logger.info(
                "delivery_status_kept_read",
                notification_id=notification.id,
                outcome=outcome.value,
            )
            return
        notification.status = outcome
        await self.storage.save(notification)

    def publish_outcome(
        self, notification: Notification, outcome: NotificationStatus
    ) -> None:
        """Publish a delivered or failed event for a delivery outcome.

        SENT and any other status publish nothing.
        """
        if self.hub is None:
            return
        if outcome == NotificationStatus.DELIVERED:
            event_type = NotificationEventType.DELIVERED
        elif outcome == NotificationStatus.FAILED:
            event_type = NotificationEventType.FAILED
        else:
            return
        self.hub.publish_event(
            NotificationEvent(
                type=event_type,
                notification=notification,
                timestamp=self._clock(),
            )
        )
