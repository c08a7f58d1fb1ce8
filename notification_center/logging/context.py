"""Dispatch context binding for structured logging.

Binds notification-scoped context (notification id, user id, dispatch id) to
structlog's context variables so every log line emitted while a notification
moves through middleware, storage and transports carries the same keys.

Usage:
    from notification_center.logging import bind_dispatch_context

    with bind_dispatch_context(notification_id=n.id, user_id=n.user_id):
        logger.info("delivering")  # includes notification_id, user_id, dispatch_id
"""

import uuid
from contextlib import contextmanager
from typing import Any, Generator, Optional

import structlog


@contextmanager
def bind_dispatch_context(
    notification_id: Optional[str] = None,
    user_id: Optional[str] = None,
    dispatch_id: Optional[str] = None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind dispatch-scoped context to all logs within the block.

    Context variables are task-local under asyncio, so concurrent sends
    started with ``asyncio.gather`` do not see each other's ids.

    Args:
        notification_id: Id of the notification being processed.
        user_id: Owner of the notification.
        dispatch_id: Correlation id for this dispatch. Auto-generated if omitted.
        **extra_context: Additional key-value pairs to include in logs.

    Yields:
        None - context is bound to structlog's context vars for the block.
    """
    context: dict[str, Any] = {"dispatch_id": dispatch_id or str(uuid.uuid4())}
    if notification_id is not None:
        context["notification_id"] = notification_id
    if user_id is not None:
        context["user_id"] = user_id
    context.update({k: v for k, v in extra_context.items() if v is not None})

    with structlog.contextvars.bound_contextvars(**context):
        yield


def get_dispatch_id() -> Optional[str]:
    """Return the dispatch id bound to the current context, if any."""
    return structlog.contextvars.get_contextvars().get("dispatch_id")
