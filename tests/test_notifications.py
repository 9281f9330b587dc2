"""Unit tests for notifications, failure reporting and the navigator."""
from unittest.mock import MagicMock, patch

import pytest

from sparkle.errors import AuthError, NetworkError
from sparkle.navigation import RecordingNavigator, Route
from sparkle.notifications import LoggingNotifier, report_failure


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestMatchPopup:
    """Tests for the auto-dismissing match popup."""

    def test_popup_closes_after_configured_seconds(self, clock):
        with patch("sparkle.notifications.get_settings") as mock_settings:
            settings = MagicMock()
            settings.MATCH_NOTIFICATION_SECONDS = 5
            mock_settings.return_value = settings
            notifier = LoggingNotifier(clock=clock)

        notifier.match("Grace")
        assert notifier.current_match == "Grace"

        clock.now += 4
        assert notifier.current_match == "Grace"

        clock.now += 1
        assert notifier.current_match is None
        assert notifier.matches == ["Grace"]

    def test_new_match_replaces_popup(self, clock):
        notifier = LoggingNotifier(match_display_seconds=5, clock=clock)

        notifier.match("Grace")
        clock.now += 3
        notifier.match("Linus")
        clock.now += 3

        assert notifier.current_match == "Linus"

    def test_history_is_bounded(self):
        notifier = LoggingNotifier(max_history=2, match_display_seconds=5)

        for n in range(5):
            notifier.error(f"e{n}")

        assert notifier.errors == ["e3", "e4"]


class TestReportFailure:
    """Tests for mapping exceptions to toasts."""

    def test_server_message_preferred(self):
        notifier = LoggingNotifier(match_display_seconds=5)
        report_failure(notifier, NetworkError("Profile not found", status_code=404), "Failed to swipe")
        assert notifier.errors == ["Profile not found"]

    def test_fallback_without_server_message(self):
        notifier = LoggingNotifier(match_display_seconds=5)
        report_failure(notifier, NetworkError(status_code=502), "Failed to swipe")
        assert notifier.errors == ["Failed to swipe"]

    def test_unexpected_error_uses_fallback(self):
        notifier = LoggingNotifier(match_display_seconds=5)
        report_failure(notifier, RuntimeError("internal detail"), "Failed to unmatch")
        assert notifier.errors == ["Failed to unmatch"]

    def test_expired_session_is_silent(self):
        notifier = LoggingNotifier(match_display_seconds=5)
        report_failure(notifier, AuthError(expired=True), "Failed to load matches")
        assert notifier.errors == []


class TestRecordingNavigator:
    """Tests for the headless navigator."""

    def test_records_redirects(self):
        navigator = RecordingNavigator()

        navigator.redirect(Route.SETUP)
        navigator.redirect(Route.DISCOVER)

        assert navigator.current is Route.DISCOVER
        assert navigator.history == [Route.SETUP, Route.DISCOVER]
