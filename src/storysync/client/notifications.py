"""Desktop notifications for push messages and sync results.

Each supported platform has a command line that displays a notification:
a PowerShell toast on Windows, osascript on macOS and notify-send on Linux.
send_notification() picks the one for the running system and reports whether
it succeeded; a missing or failing command is logged, never raised.
"""

from __future__ import annotations

import logging
import platform
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from xml.sax.saxutils import escape

logger = logging.getLogger(__name__)

APP_NAME = "Story Map"

DEFAULT_PUSH_TITLE = "Story Map Notification"
DEFAULT_PUSH_BODY = "You have a new notification"


class NotificationType(Enum):
    """Type of notification."""

    INFO = auto()
    PUSH = auto()
    ERROR = auto()


@dataclass
class Notification:
    """Represents a notification to display."""

    title: str
    message: str
    type: NotificationType = NotificationType.INFO


_TOAST_SCRIPT = """
$null = [Windows.UI.Notifications.ToastNotificationManager, Windows.UI.Notifications, ContentType = WindowsRuntime]
$xml = New-Object Windows.Data.Xml.Dom.XmlDocument
$xml.LoadXml('<toast><visual><binding template="ToastText02"><text id="1">{title}</text><text id="2">{message}</text></binding></visual></toast>')
[Windows.UI.Notifications.ToastNotificationManager]::CreateToastNotifier('{app}').Show([Windows.UI.Notifications.ToastNotification]::new($xml))
"""


def _ps_literal(text: str) -> str:
    # Content of a single-quoted PowerShell string
    return escape(text).replace("'", "''")


def _windows_command(notification: Notification) -> list[str]:
    script = _TOAST_SCRIPT.format(
        title=_ps_literal(notification.title),
        message=_ps_literal(notification.message),
        app=_ps_literal(APP_NAME),
    )
    return ["powershell", "-NoProfile", "-ExecutionPolicy", "Bypass", "-Command", script]


def _macos_command(notification: Notification) -> list[str]:
    def quoted(text: str) -> str:
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'

    script = (
        f"display notification {quoted(notification.message)} "
        f"with title {quoted(notification.title)}"
    )
    return ["osascript", "-e", script]


def _linux_command(notification: Notification) -> list[str]:
    urgency = "critical" if notification.type == NotificationType.ERROR else "normal"
    return [
        "notify-send",
        "--urgency", urgency,
        "--app-name", APP_NAME,
        notification.title,
        notification.message,
    ]


_COMMANDS: dict[str, Callable[[Notification], list[str]]] = {
    "Windows": _windows_command,
    "Darwin": _macos_command,
    "Linux": _linux_command,
}


def send_notification(notification: Notification) -> bool:
    """Send a system notification.

    Args:
        notification: The notification to send.

    Returns:
        True if notification was sent, False if failed or unavailable.
    """
    system = platform.system()
    build = _COMMANDS.get(system)
    if build is None:
        logger.warning("Notifications not supported on %s", system)
        return False

    command = build(notification)
    try:
        subprocess.run(
            command,
            capture_output=True,
            check=True,
            creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
        )
    except FileNotFoundError:
        logger.debug("%s not found, notification skipped", command[0])
        return False
    except (OSError, subprocess.CalledProcessError) as e:
        logger.debug("%s notification failed: %s", system, e)
        return False
    return True


def push_notification(title: str | None, body: str | None) -> Notification:
    """Build the notification shown for a push message."""
    return Notification(
        title=title or DEFAULT_PUSH_TITLE,
        message=body or DEFAULT_PUSH_BODY,
        type=NotificationType.PUSH,
    )


def notify_sync_complete(synced: int, failed: int) -> bool:
    """Announce the outcome of a sync pass.

    Args:
        synced: Number of stories submitted.
        failed: Number of stories still failing.

    Returns:
        True if notification was sent.
    """
    if synced == 0 and failed == 0:
        return False

    counts = [f"{synced} synced"] if synced else []
    if failed:
        counts.append(f"{failed} failed")

    return send_notification(Notification(
        title=f"{APP_NAME} - Sync Complete",
        message=", ".join(counts),
        type=NotificationType.ERROR if failed else NotificationType.INFO,
    ))


def notify_error(message: str) -> bool:
    """Send an error notification."""
    return send_notification(Notification(
        title=f"{APP_NAME} - Error",
        message=message,
        type=NotificationType.ERROR,
    ))
