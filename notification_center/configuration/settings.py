"""Notification engine configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from notification_center.configuration.cleanup import CleanupSettings
from notification_center.configuration.retry import RetrySettings
from notification_center.configuration.workers import WorkerSettings


class Settings(BaseSettings):
    """Notification engine settings - main aggregator.

    Aggregates the per-concern settings into a single configuration object:

    - **workers**: queue worker loop (enabled, concurrency, poll interval)
    - **retry**: retry policy values (declared, not consulted by delivery)
    - **cleanup**: expiry sweep (enabled, interval, retention)

    Environment Variables:
        PREFIX: Environment prefix for non-production deployments
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)

    Example:
        ```python
        from notification_center.providers import get_settings

        settings = get_settings()

        if settings.workers.enabled:
            interval = settings.workers.poll_interval_seconds

        if settings.is_production:
            # Production-specific logic...
        ```
    """

    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"

    workers: WorkerSettings
    retry: RetrySettings
    cleanup: CleanupSettings

    @property
    def is_production(self) -> bool:
        """Check if the engine is running in production.

        Returns:
            True if PREFIX is empty (production), False otherwise.
        """
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings with automatic subsettings instantiation.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            "workers": WorkerSettings,
            "retry": RetrySettings,
            "cleanup": CleanupSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
