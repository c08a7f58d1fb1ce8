"""Expired notification cleanup settings."""

from pydantic import Field

from notification_center.configuration.base import NotificationSettingsBase


class CleanupSettings(NotificationSettingsBase):
    """Periodic expiry sweep configuration.

    The sweep asks storage to delete whatever it considers expired;
    ``retention_days`` is informational for storage adapters that want it.

    Environment Variables:
        NOTIFICATION_CLEANUP_ENABLED: Run the sweep on start (default: False)
        NOTIFICATION_CLEANUP_INTERVAL_SECONDS: Delay between sweeps (default: 3600)
        NOTIFICATION_CLEANUP_RETENTION_DAYS: Retention hint for adapters (default: 30)
    """

    enabled: bool = Field(
        default=False,
        alias="NOTIFICATION_CLEANUP_ENABLED",
        description="Start the expiry sweep when the engine starts",
    )
    interval_seconds: float = Field(
        default=3600.0,
        gt=0,
        alias="NOTIFICATION_CLEANUP_INTERVAL_SECONDS",
        description="Seconds between expiry sweeps (1 hour)",
    )
    retention_days: int = Field(
        default=30,
        ge=0,
        alias="NOTIFICATION_CLEANUP_RETENTION_DAYS",
        description="Retention hint passed to operators and adapters",
    )
