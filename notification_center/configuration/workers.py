"""Queue worker settings."""

from pydantic import Field

from notification_center.configuration.base import NotificationSettingsBase


class WorkerSettings(NotificationSettingsBase):
    """Queue worker loop configuration.

    The worker only runs when a queue adapter is configured and the engine
    has been started.

    Environment Variables:
        NOTIFICATION_WORKERS_ENABLED: Run the queue worker on start (default: True)
        NOTIFICATION_WORKERS_CONCURRENCY: Notifications dequeued per tick (default: 1)
        NOTIFICATION_WORKERS_POLL_INTERVAL_SECONDS: Delay between ticks (default: 1.0)
    """

    enabled: bool = Field(
        default=True,
        alias="NOTIFICATION_WORKERS_ENABLED",
        description="Start the queue worker when the engine starts",
    )
    concurrency: int = Field(
        default=1,
        ge=1,
        alias="NOTIFICATION_WORKERS_CONCURRENCY",
        description="Maximum notifications dequeued and delivered per tick",
    )
    poll_interval_seconds: float = Field(
        default=1.0,
        gt=0,
        alias="NOTIFICATION_WORKERS_POLL_INTERVAL_SECONDS",
        description="Seconds to wait after a tick completes before polling again",
    )
