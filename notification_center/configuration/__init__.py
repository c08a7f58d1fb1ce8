"""Notification engine configuration module - public API.

Centralized configuration management using Pydantic BaseSettings, organized
by concern (workers, retry, cleanup).

Example:
    ```python
    from notification_center.providers import get_settings

    settings = get_settings()
    concurrency = settings.workers.concurrency
    cleanup_enabled = settings.cleanup.enabled
    ```
"""

from notification_center.configuration.cleanup import CleanupSettings
from notification_center.configuration.retry import RetrySettings
from notification_center.configuration.settings import Settings
from notification_center.configuration.workers import WorkerSettings

__all__ = ["Settings", "WorkerSettings", "RetrySettings", "CleanupSettings"]
