"""Delivery retry settings."""

from typing import Literal

from pydantic import Field

from notification_center.configuration.base import NotificationSettingsBase


class RetrySettings(NotificationSettingsBase):
    """Retry policy configuration for failed channel deliveries.

    These values are accepted and exposed to transports and operators, but
    the delivery coordinator performs a single attempt per channel. Failed
    channels are re-attempted only through ``NotificationService.retry_failed``.

    Environment Variables:
        NOTIFICATION_RETRY_MAX_ATTEMPTS: Maximum attempts per channel (default: 3)
        NOTIFICATION_RETRY_BACKOFF: 'linear' or 'exponential' (default: exponential)
        NOTIFICATION_RETRY_INITIAL_DELAY_SECONDS: First backoff delay (default: 1.0)
        NOTIFICATION_RETRY_MAX_DELAY_SECONDS: Backoff ceiling (default: 60.0)

    Backoff:
        linear: initial_delay * attempt
        exponential: initial_delay * (2 ^ (attempt - 1))
        Both capped at max_delay.
    """

    max_attempts: int = Field(
        default=3,
        ge=1,
        alias="NOTIFICATION_RETRY_MAX_ATTEMPTS",
        description="Maximum delivery attempts per channel",
    )
    backoff: Literal["linear", "exponential"] = Field(
        default="exponential",
        alias="NOTIFICATION_RETRY_BACKOFF",
        description="Backoff strategy between attempts",
    )
    initial_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        alias="NOTIFICATION_RETRY_INITIAL_DELAY_SECONDS",
        description="Delay before the first retry (seconds)",
    )
    max_delay_seconds: float = Field(
        default=60.0,
        ge=0,
        alias="NOTIFICATION_RETRY_MAX_DELAY_SECONDS",
        description="Maximum delay between retries (seconds)",
    )

    def delay_for(self, attempt: int) -> float:
        """Return the backoff delay in seconds before ``attempt`` (1-based)."""
        attempt = max(attempt, 1)
        if self.backoff == "linear":
            delay = self.initial_delay_seconds * attempt
        else:
            delay = self.initial_delay_seconds * (2 ** (attempt - 1))
        return min(delay, self.max_delay_seconds)
