"""
Clipster - AI Clipboard Assistant

Press a hotkey to send the clipboard (or a short voice note, transcribed
locally with whisper.cpp) to a remote language model and get the reply
back on the clipboard.
"""

from clipster.config import Config
from clipster.credentials import CredentialRegistry, CredentialSet
from clipster.exceptions import (
    ClipsterError,
    ConfigurationError,
    AudioRecordingError,
    AudioBusyError,
    LocalTranscriptionError,
    ClipboardError,
    ProviderError,
    HotkeyDetectorError,
)
from clipster.models import (
    FailureReason,
    HotkeyAction,
    HotkeyEvent,
    ProviderId,
    ProviderReply,
    Session,
    SessionState,
)
from clipster.orchestrator import SessionOrchestrator

__version__ = "0.1.0"

__all__ = [
    "Config",
    "CredentialRegistry",
    "CredentialSet",
    "ClipsterError",
    "ConfigurationError",
    "AudioRecordingError",
    "AudioBusyError",
    "LocalTranscriptionError",
    "ClipboardError",
    "ProviderError",
    "HotkeyDetectorError",
    "FailureReason",
    "HotkeyAction",
    "HotkeyEvent",
    "ProviderId",
    "ProviderReply",
    "Session",
    "SessionState",
    "SessionOrchestrator",
]
