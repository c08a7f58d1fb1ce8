"""Unit tests for the preference gate."""

from datetime import datetime, timezone

import pytest

from notification_center.models import QuietHours
from notification_center.preferences import can_send, in_quiet_hours
from tests.factories.notifications import (
    make_channel_preferences,
    make_notification,
    make_preferences,
)


def at(hour: int, minute: int = 0, tz=None) -> datetime:
    return datetime(2024, 6, 1, hour, minute, tzinfo=tz)


@pytest.mark.unit
class TestInQuietHours:
    """Tests for quiet hours window matching."""

    @pytest.mark.parametrize(
        "hour,expected",
        [(23, True), (2, True), (22, True), (6, False), (10, False), (21, False)],
    )
    def test_overnight_window(self, hour, expected):
        quiet_hours = QuietHours(start="22:00", end="06:00")

        assert in_quiet_hours(quiet_hours, at(hour)) is expected

    @pytest.mark.parametrize(
        "hour,expected", [(9, True), (12, True), (17, False), (8, False)]
    )
    def test_same_day_window(self, hour, expected):
        quiet_hours = QuietHours(start="09:00", end="17:00")

        assert in_quiet_hours(quiet_hours, at(hour)) is expected

    def test_minutes_are_honoured(self):
        quiet_hours = QuietHours(start="22:30", end="06:15")

        assert not in_quiet_hours(quiet_hours, at(22, 29))
        assert in_quiet_hours(quiet_hours, at(22, 30))
        assert in_quiet_hours(quiet_hours, at(6, 14))
        assert not in_quiet_hours(quiet_hours, at(6, 15))

    def test_equal_start_and_end_is_empty(self):
        quiet_hours = QuietHours(start="08:00", end="08:00")

        assert not in_quiet_hours(quiet_hours, at(8))
        assert not in_quiet_hours(quiet_hours, at(20))

    def test_timezone_conversion(self):
        """Test an aware time is converted into the window's timezone."""
        quiet_hours = QuietHours(start="22:00", end="06:00", timezone="America/Toronto")

        # 03:00 UTC is 23:00 in Toronto (EDT, UTC-4)
        assert in_quiet_hours(quiet_hours, at(3, tz=timezone.utc))
        # 16:00 UTC is 12:00 in Toronto
        assert not in_quiet_hours(quiet_hours, at(16, tz=timezone.utc))

    def test_unknown_timezone_falls_back_to_given_clock(self):
        quiet_hours = QuietHours(start="22:00", end="06:00", timezone="Mars/Olympus")

        assert in_quiet_hours(quiet_hours, at(23, tz=timezone.utc))
        assert not in_quiet_hours(quiet_hours, at(10, tz=timezone.utc))


@pytest.mark.unit
class TestCanSend:
    """Tests for the can_send predicate."""

    def test_no_preferences_permits(self):
        assert can_send(make_notification(), make_preferences(), "inapp", at(10))

    def test_global_mute_denies(self):
        preferences = make_preferences(global_mute=True)

        assert not can_send(make_notification(), preferences, "inapp", at(10))

    def test_disabled_channel_denies_only_that_channel(self):
        preferences = make_preferences(
            channels={"push": make_channel_preferences(enabled=False)}
        )
        notification = make_notification(channels=["push", "inapp"])

        assert not can_send(notification, preferences, "push", at(10))
        assert can_send(notification, preferences, "inapp", at(10))

    def test_category_allow_list(self):
        preferences = make_preferences(
            channels={"email": make_channel_preferences(categories=["billing"])}
        )

        assert can_send(make_notification(category="billing"), preferences, "email", at(10))
        assert not can_send(make_notification(category="social"), preferences, "email", at(10))
        assert not can_send(make_notification(), preferences, "email", at(10))

    def test_empty_allow_list_denies_everything(self):
        preferences = make_preferences(
            channels={"email": make_channel_preferences(categories=[])}
        )

        assert not can_send(make_notification(category="billing"), preferences, "email", at(10))

    @pytest.mark.parametrize("hour,expected", [(23, False), (2, False), (10, True)])
    def test_quiet_hours(self, hour, expected):
        preferences = make_preferences(
            channels={
                "push": make_channel_preferences(quiet_start="22:00", quiet_end="06:00")
            }
        )

        assert can_send(make_notification(), preferences, "push", at(hour)) is expected
