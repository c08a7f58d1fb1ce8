"""Shared base class for notification settings modules."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class NotificationSettingsBase(BaseSettings):
    """Base class for notification engine settings.

    All settings sections inherit from this class to ensure consistent
    configuration behavior (env file loading, case sensitivity). Fields can
    be populated either through their environment alias or by field name,
    which keeps programmatic construction in tests straightforward.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )
