"""In-process publish/subscribe hub for live notification updates.

Three independent streams, each keyed by user id:

- notifications: the raw Notification every time one is dispatched
- events: lifecycle NotificationEvents (sent, delivered, read, failed)
- unread: the user's unread count whenever it may have changed

Publication is synchronous: callbacks run in registration order inside the
operation that produced the update. Each callback is isolated; an exception
is logged and handed to the error handlers registered with
``on_subscriber_error`` and never reaches sibling callbacks or the caller.

Usage:
    hub = SubscriptionHub()

    unsubscribe = hub.subscribe("user:123", lambda n: push_to_websocket(n))
    hub.on_subscriber_error(lambda err: sentry.capture_exception(err.error))

    # Later
    unsubscribe()
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from notification_center.logging import get_module_logger
from notification_center.models import (
    Notification,
    NotificationEvent,
    utc_now,
)

logger = get_module_logger()

Unsubscribe = Callable[[], None]
NotificationCallback = Callable[[Notification], None]
EventCallback = Callable[[NotificationEvent], None]
UnreadCountCallback = Callable[[int, str], None]

C = TypeVar("C", bound=Callable[..., Any])

NOTIFICATIONS_STREAM = "notifications"
EVENTS_STREAM = "events"
UNREAD_STREAM = "unread"


@dataclass
class SubscriberError:
    """A subscriber callback raised while an update was being published."""

    stream: str
    user_id: str
    callback: Callable[..., Any]
    error: Exception
    timestamp: datetime = field(default_factory=utc_now)


SubscriberErrorHandler = Callable[[SubscriberError], None]


class _Stream(Generic[C]):
    """Per-user ordered callback sets for one stream."""

    def __init__(self, name: str) -> None:
        self.name = name
        # dict keys double as an insertion-ordered set
        self._callbacks: Dict[str, Dict[C, None]] = {}

    def add(self, user_id: str, callback: C) -> Unsubscribe:
        self._callbacks.setdefault(user_id, {})[callback] = None

        def unsubscribe() -> None:
            callbacks = self._callbacks.get(user_id)
            if callbacks is None:
                return
            callbacks.pop(callback, None)
            if not callbacks:
                del self._callbacks[user_id]

        return unsubscribe

    def callbacks_for(self, user_id: str) -> List[C]:
        return list(self._callbacks.get(user_id, {}))

    def count(self, user_id: Optional[str] = None) -> int:
        if user_id is not None:
            return len(self._callbacks.get(user_id, {}))
        return sum(len(c) for c in self._callbacks.values())

    def users(self) -> List[str]:
        return list(self._callbacks)


class SubscriptionHub:
    """Registry and publisher for the three live-update streams."""

    def __init__(self) -> None:
        self._notifications: _Stream[NotificationCallback] = _Stream(NOTIFICATIONS_STREAM)
        self._events: _Stream[EventCallback] = _Stream(EVENTS_STREAM)
        self._unread: _Stream[UnreadCountCallback] = _Stream(UNREAD_STREAM)
        self._error_handlers: List[SubscriberErrorHandler] = []

    # Registration

    def subscribe(self, user_id: str, callback: NotificationCallback) -> Unsubscribe:
        """Receive every notification dispatched to ``user_id``."""
        return self._notifications.add(user_id, callback)

    def subscribe_to_events(self, user_id: str, callback: EventCallback) -> Unsubscribe:
        """Receive lifecycle events for ``user_id``'s notifications."""
        return self._events.add(user_id, callback)

    def on_unread_count_change(
        self, user_id: str, callback: UnreadCountCallback
    ) -> Unsubscribe:
        """Receive ``(count, user_id)`` whenever the unread count may have changed."""
        return self._unread.add(user_id, callback)

    def on_subscriber_error(self, handler: SubscriberErrorHandler) -> Unsubscribe:
        """Receive a SubscriberError whenever a subscriber callback raises."""
        self._error_handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._error_handlers:
                self._error_handlers.remove(handler)

        return unsubscribe

    def subscriber_count(self, user_id: Optional[str] = None) -> Dict[str, int]:
        """Number of callbacks per stream, for one user or overall."""
        return {
            NOTIFICATIONS_STREAM: self._notifications.count(user_id),
            EVENTS_STREAM: self._events.count(user_id),
            UNREAD_STREAM: self._unread.count(user_id),
        }

    def subscribed_users(self) -> List[str]:
        """Users with at least one callback on any stream."""
        users = dict.fromkeys(
            self._notifications.users() + self._events.users() + self._unread.users()
        )
        return list(users)

    # Publication

    def publish_notification(self, notification: Notification) -> None:
        self._publish(self._notifications, notification.user_id, notification)

    def publish_event(self, event: NotificationEvent) -> None:
        self._publish(self._events, event.notification.user_id, event)

    def publish_unread_count(self, user_id: str, count: int) -> None:
        self._publish(self._unread, user_id, count, user_id)

    def _publish(self, stream: _Stream, user_id: str, *args: Any) -> None:
        for callback in stream.callbacks_for(user_id):
            try:
                callback(*args)
            except Exception as e:
                logger.error(
                    "subscriber_callback_failed",
                    stream=stream.name,
                    user_id=user_id,
                    callback=getattr(callback, "__name__", repr(callback)),
                    error=str(e),
                    exc_info=True,
                )
                self._report(SubscriberError(stream.name, user_id, callback, e))

    def _report(self, subscriber_error: SubscriberError) -> None:
        for handler in list(self._error_handlers):
            try:
                handler(subscriber_error)
            except Exception as e:
                logger.error(
                    "subscriber_error_handler_failed",
                    stream=subscriber_error.stream,
                    user_id=subscriber_error.user_id,
                    error=str(e),
                    exc_info=True,
                )
