"""
Notifier Module
Tells the operator how each session ended.
"""

import logging
import shutil
import subprocess
import sys
import threading

from clipster.models import FailureReason, Session

logger = logging.getLogger(__name__)

APP_TITLE = "Clipster"
PREVIEW_LENGTH = 100


def preview(text: str, limit: int = PREVIEW_LENGTH) -> str:
    """Shorten text for console and notification display."""
    text = " ".join(text.split())
    if len(text) > limit:
        return text[:limit] + "..."
    return text


class Notifier:
    """Console and desktop notifications for session outcomes."""

    def __init__(self, desktop_enabled: bool = True):
        """
        Args:
            desktop_enabled: Also post a desktop notification, not just console output.
        """
        self.desktop_enabled = desktop_enabled

    def recording_started(self, session: Session) -> None:
        print(f"[Recording] Started for {session.target_name}... Speak now.")

    def processing(self, session: Session) -> None:
        print(f"[Processing] Sending to {session.target_name}...")

    def success(self, session: Session) -> None:
        provider = session.responded_by or session.provider
        name = provider.display_name if provider else APP_TITLE
        print(f"[Clipboard] Response from {name} copied. Ready to paste.")
        print(f"[Preview] {preview(session.reply or '')}")
        logger.info(f"Session {session.id} completed via {name}")
        self._desktop(f"{APP_TITLE} ({name})", "Response copied! Ready to paste.")

    def failure(self, session: Session, reason: FailureReason) -> None:
        print(f"[Error] {reason.value}: {reason.message}")
        logger.warning(f"Session {session.id} failed: {reason.value}")
        self._desktop(f"{APP_TITLE} - {reason.value}", reason.message)

    def cancelled(self, session: Session) -> None:
        print(f"[Cancelled] Session {session.id} discarded.")

    def _desktop(self, title: str, message: str) -> None:
        if not self.desktop_enabled:
            return
        command = _notification_command(title, message)
        if command is None:
            return

        def notify():
            try:
                subprocess.run(command, capture_output=True, timeout=2)
            except (OSError, subprocess.SubprocessError) as e:
                logger.debug(f"Desktop notification failed: {e}")

        threading.Thread(target=notify, daemon=True).start()


def _notification_command(title: str, message: str):
    """Platform command that shows a notification, or None if unsupported."""
    if sys.platform == "darwin":
        title = title.replace('\\', '\\\\').replace('"', '\\"')
        message = message.replace('\\', '\\\\').replace('"', '\\"')
        script = f'display notification "{message}" with title "{title}"'
        return ["osascript", "-e", script]
    if sys.platform.startswith("linux") and shutil.which("notify-send"):
        return ["notify-send", "--app-name", APP_TITLE, title, message]
    return None
