"""Structured logging for the notification engine.

Public API:
    - configure_logging(): Initialize logging
    - get_logger(): Get a logger instance with a specific name
    - get_module_logger(): Get a logger for the calling module
    - bind_dispatch_context(): Context manager for notification-scoped logging
    - get_dispatch_id(): Current dispatch correlation id

Example:
    from notification_center.logging import get_module_logger

    logger = get_module_logger()
    logger.info("worker_started", concurrency=4)
"""

from notification_center.logging.setup import (
    configure_logging,
    get_logger,
    get_module_logger,
)
from notification_center.logging.context import (
    bind_dispatch_context,
    get_dispatch_id,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "get_module_logger",
    "bind_dispatch_context",
    "get_dispatch_id",
]
