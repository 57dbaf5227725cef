"""Tests for notification system."""

import subprocess
from unittest.mock import MagicMock, patch

from storysync.client.notifications import (
    Notification,
    NotificationType,
    notify_error,
    notify_sync_complete,
    push_notification,
    send_notification,
)


class TestNotification:
    """Tests for Notification dataclass."""

    def test_notification_default_type(self) -> None:
        """Should default to INFO type."""
        notif = Notification(title="Title", message="Message")
        assert notif.type == NotificationType.INFO

    def test_push_notification_defaults(self) -> None:
        """Should fall back to the default title and body."""
        notif = push_notification(None, "")
        assert notif.title == "Story Map Notification"
        assert notif.message == "You have a new notification"
        assert notif.type == NotificationType.PUSH

    def test_push_notification_values(self) -> None:
        """Should keep the given title and body."""
        notif = push_notification("New story", "Dimas posted a story")
        assert notif.title == "New story"
        assert notif.message == "Dimas posted a story"


class TestNotificationHelpers:
    """Tests for notification helper functions."""

    @patch("storysync.client.notifications.send_notification")
    def test_notify_sync_complete_with_changes(self, mock_send: MagicMock) -> None:
        """Should send sync complete notification when stories were processed."""
        mock_send.return_value = True

        result = notify_sync_complete(synced=3, failed=1)

        assert result is True
        mock_send.assert_called_once()
        call_args = mock_send.call_args[0][0]
        assert "Sync Complete" in call_args.title
        assert "3 synced" in call_args.message
        assert "1 failed" in call_args.message
        assert call_args.type == NotificationType.ERROR

    @patch("storysync.client.notifications.send_notification")
    def test_notify_sync_complete_no_changes(self, mock_send: MagicMock) -> None:
        """Should not send notification when nothing was processed."""
        result = notify_sync_complete(synced=0, failed=0)

        assert result is False
        mock_send.assert_not_called()

    @patch("storysync.client.notifications.send_notification")
    def test_notify_error(self, mock_send: MagicMock) -> None:
        """Should send error notification."""
        mock_send.return_value = True

        result = notify_error("Connection failed")

        assert result is True
        call_args = mock_send.call_args[0][0]
        assert "Error" in call_args.title
        assert call_args.message == "Connection failed"
        assert call_args.type == NotificationType.ERROR


class TestSendNotification:
    """Tests for platform dispatch."""

    @patch("storysync.client.notifications.subprocess.run")
    @patch("storysync.client.notifications.platform.system", return_value="Linux")
    def test_linux_uses_notify_send(self, _system: MagicMock, mock_run: MagicMock) -> None:
        """Should call notify-send with the app name."""
        result = send_notification(Notification("Title", "Body", NotificationType.ERROR))

        assert result is True
        args = mock_run.call_args[0][0]
        assert args[0] == "notify-send"
        assert "critical" in args
        assert "Story Map" in args
        assert args[-2:] == ["Title", "Body"]

    @patch("storysync.client.notifications.subprocess.run", side_effect=FileNotFoundError)
    @patch("storysync.client.notifications.platform.system", return_value="Linux")
    def test_linux_without_notify_send(self, _system: MagicMock, _run: MagicMock) -> None:
        """Should return False when notify-send is missing."""
        assert send_notification(Notification("Title", "Body")) is False

    @patch(
        "storysync.client.notifications.subprocess.run",
        side_effect=subprocess.CalledProcessError(1, "osascript"),
    )
    @patch("storysync.client.notifications.platform.system", return_value="Darwin")
    def test_macos_failure(self, _system: MagicMock, mock_run: MagicMock) -> None:
        """Should return False when osascript fails."""
        assert send_notification(Notification("Title", "Body")) is False
        assert mock_run.call_args[0][0][0] == "osascript"

    @patch("storysync.client.notifications.subprocess.run")
    @patch("storysync.client.notifications.platform.system", return_value="Plan9")
    def test_unsupported_platform(self, _system: MagicMock, mock_run: MagicMock) -> None:
        """Should not try anything on unknown platforms."""
        assert send_notification(Notification("Title", "Body")) is False
        mock_run.assert_not_called()

    @patch("storysync.client.notifications.subprocess.run")
    @patch("storysync.client.notifications.platform.system", return_value="Windows")
    def test_windows_escapes_markup(self, _system: MagicMock, mock_run: MagicMock) -> None:
        """Should escape XML and quotes in the toast script."""
        assert send_notification(Notification("<New> story", "It's here")) is True

        args = mock_run.call_args[0][0]
        assert args[0] == "powershell"
        assert "&lt;New&gt; story" in args[-1]
        assert "It''s here" in args[-1]
