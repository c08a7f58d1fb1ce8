"""Preference gate: may a channel deliver a notification to a user?

Pure policy, no I/O. Transports use ``can_send`` as their default
``TransportAdapter.can_send`` implementation.
"""

from datetime import datetime
from typing import Optional

import pytz

from notification_center.logging import get_module_logger
from notification_center.models import (
    Notification,
    NotificationPreferences,
    QuietHours,
)

logger = get_module_logger()


def _local_now() -> datetime:
    return datetime.now().astimezone()


def in_quiet_hours(quiet_hours: QuietHours, now: Optional[datetime] = None) -> bool:
    """Check whether ``now`` falls inside a quiet-hours window.

    The comparison uses minutes of the day. When the window names a
    timezone, an aware ``now`` is converted into it first; otherwise the
    wall clock of ``now`` is used as given. A window that wraps midnight
    (start > end) matches at or after start OR before end; a same-day
    window matches in [start, end). A window with start == end is empty.

    Args:
        quiet_hours: Configured window
        now: Reference time (default: local wall clock)

    Returns:
        True when delivery must be suppressed
    """
    now = now or _local_now()
    if quiet_hours.timezone and now.tzinfo is not None:
        try:
            now = now.astimezone(pytz.timezone(quiet_hours.timezone))
        except pytz.UnknownTimeZoneError:
            logger.warning(
                "quiet_hours_unknown_timezone",
                timezone=quiet_hours.timezone,
            )

    current = now.hour * 60 + now.minute
    start = quiet_hours.start_minutes
    end = quiet_hours.end_minutes

    if start > end:
        return current >= start or current < end
    return start <= current < end


def can_send(
    notification: Notification,
    preferences: NotificationPreferences,
    channel: str,
    now: Optional[datetime] = None,
) -> bool:
    """Decide whether ``channel`` may deliver ``notification``.

    Denied when any of these holds:
    - the user muted everything (``global_mute``)
    - the channel preference exists and is disabled
    - the channel restricts categories and the notification's category is
      missing or not in the allow-list
    - the channel has quiet hours and ``now`` falls inside them

    Args:
        notification: Notification to deliver
        preferences: Recipient's preferences
        channel: Channel name being considered
        now: Reference time for quiet hours (default: local wall clock)

    Returns:
        True when sending is permitted
    """
    if preferences.global_mute:
        return False

    channel_prefs = preferences.channels.get(channel)
    if channel_prefs is None:
        return True

    if not channel_prefs.enabled:
        return False

    if channel_prefs.categories is not None:
        if notification.category is None:
            return False
        if notification.category not in channel_prefs.categories:
            return False

    if channel_prefs.quiet_hours is not None and in_quiet_hours(
        channel_prefs.quiet_hours, now
    ):
        return False

    return True
