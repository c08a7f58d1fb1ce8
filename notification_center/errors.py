"""Custom exceptions for the notification engine.

Channel delivery failures are never raised: they are recorded as FAILED
receipts and reflected in the notification status. Exceptions from storage,
queue or transport collaborators outside the per-channel delivery are not
wrapped; they propagate unchanged after on-error middleware ran.
"""

from typing import Optional


class NotificationError(Exception):
    """Base exception for all notification engine errors.

    Example:
        try:
            await service.send(notification_input)
        except NotificationError as e:
            logger.error("notification_error", error=str(e))
    """

    pass


class NotificationFilteredError(NotificationError):
    """Raised when a before-send middleware dropped the notification.

    This is a deliberate no-op rather than a failure: nothing was persisted,
    delivered or published, and on-error middleware does not run.

    Attributes:
        notification_id: Id the notification had been given at build time
        middleware: Name of the middleware that filtered it
    """

    def __init__(self, notification_id: str, middleware: Optional[str] = None):
        self.notification_id = notification_id
        self.middleware = middleware
        message = f"Notification {notification_id} was filtered out by middleware"
        if middleware:
            message = f"{message} '{middleware}'"
        super().__init__(message)


class TemplateNotFoundError(NotificationError):
    """Raised when a NotificationInput references an unregistered template.

    Example:
        >>> await service.send(NotificationInput(template="missing", user_id="u1"))
        Traceback (most recent call last):
        ...
        TemplateNotFoundError: Template 'missing' not found
    """

    def __init__(self, template_id: str):
        self.template_id = template_id
        super().__init__(f"Template '{template_id}' not found")


class NotificationNotFoundError(NotificationError):
    """Raised when an operation targets an unknown notification id."""

    def __init__(self, notification_id: str):
        self.notification_id = notification_id
        super().__init__(f"Notification {notification_id} not found")
