"""
Custom Exceptions for Clipster application.

This module defines the exception hierarchy used throughout the application.
Collaborators raise these; the session orchestrator turns them into failed
sessions so the process itself keeps running.
"""


class ClipsterError(Exception):
    """Base exception for all Clipster errors."""
    pass


class ConfigurationError(ClipsterError):
    """Error in application configuration."""
    pass


class AudioRecordingError(ClipsterError):
    """Error recording audio from microphone."""
    pass


class AudioBusyError(AudioRecordingError):
    """Microphone capture was started while a capture is already running."""
    pass


class LocalTranscriptionError(ClipsterError):
    """Error transcribing audio locally via whisper.cpp."""
    pass


class ClipboardError(ClipsterError):
    """Error reading from or writing to the system clipboard."""
    pass


class ProviderError(ClipsterError):
    """Error constructing a language-model provider client."""
    pass


class HotkeyDetectorError(ClipsterError):
    """Error when hotkey listener fails to initialize or start."""
    pass
