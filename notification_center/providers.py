"""
Factory functions for dependency injection.

Provides process-scoped singleton providers for engine-wide services.
"""

from functools import lru_cache

from notification_center.configuration import Settings


@lru_cache
def get_settings() -> Settings:
    """
    Get process-scoped settings singleton.

    The @lru_cache decorator ensures only ONE instance is created per process.
    Tests that need different values should build their own ``Settings`` and
    pass it to ``NotificationService`` instead of mutating this instance.

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()
