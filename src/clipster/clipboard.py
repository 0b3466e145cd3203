"""
Clipboard Module
Reads and writes the system clipboard.
"""

import logging
from abc import ABC, abstractmethod

import pyperclip

from clipster.exceptions import ClipboardError

logger = logging.getLogger(__name__)


class ClipboardPort(ABC):
    """Access to the single shared system clipboard."""

    @abstractmethod
    def read(self) -> str:
        """
        Get current clipboard text.

        Returns:
            Clipboard text, or an empty string when the clipboard is empty
            or holds non-text content.

        Raises:
            ClipboardError: If the clipboard cannot be accessed.
        """

    @abstractmethod
    def write(self, text: str) -> None:
        """
        Replace clipboard content with text.

        Raises:
            ClipboardError: If the clipboard cannot be written.
        """


class PyperclipClipboard(ClipboardPort):
    """Clipboard access through pyperclip."""

    def read(self) -> str:
        try:
            content = pyperclip.paste()
        except Exception as e:
            raise ClipboardError(f"Failed to read clipboard: {e}")
        if not isinstance(content, str):
            logger.debug(f"Ignoring non-text clipboard content ({type(content).__name__})")
            return ""
        return content

    def write(self, text: str) -> None:
        try:
            pyperclip.copy(text)
        except Exception as e:
            raise ClipboardError(f"Failed to copy to clipboard: {e}")
