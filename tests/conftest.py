"""
Pytest configuration and fixtures for clipster tests.

IMPORTANT: This file sets up mocks for hardware-bound modules BEFORE any
test imports happen, so the suite runs on headless CI machines:
- sounddevice raises OSError at import when PortAudio is missing
- pynput raises ImportError at import when no display is available
"""

import sys
from concurrent.futures import Future
from unittest.mock import MagicMock

import numpy as np


def _setup_global_mocks():
    """Stub modules that cannot be imported on this machine."""
    try:
        import sounddevice  # noqa: F401
    except (ImportError, OSError):
        sys.modules['sounddevice'] = MagicMock()

    try:
        from pynput import keyboard  # noqa: F401
    except Exception:
        mock_pynput = MagicMock()
        sys.modules['pynput'] = mock_pynput
        sys.modules['pynput.keyboard'] = mock_pynput.keyboard


# Run mocks setup immediately when conftest is loaded
_setup_global_mocks()


import logging

import pytest

from clipster.clipboard import ClipboardPort
from clipster.credentials import CredentialRegistry, CredentialSet
from clipster.exceptions import AudioBusyError, ClipboardError
from clipster.models import AudioBuffer, ProviderId, ProviderReply


# =============================================================================
# LOGGING PROTECTION
# =============================================================================

@pytest.fixture(autouse=True)
def _protect_logging_handlers():
    """
    Protect logging handlers from being corrupted by mocks.

    MagicMock can replace a handler's 'level' with a mock object, which
    breaks level comparisons inside logging.
    """
    def _fix_handler_levels():
        for handler in logging.root.handlers[:]:
            if not isinstance(handler.level, int):
                handler.level = logging.NOTSET

    _fix_handler_levels()
    yield
    _fix_handler_levels()


# =============================================================================
# TEST DOUBLES
# =============================================================================

def make_buffer(duration_sec: float = 1.0, sample_rate: int = 16000,
                amplitude: int = 8000) -> AudioBuffer:
    """440 Hz tone as an AudioBuffer (amplitude 0 gives silence)."""
    t = np.linspace(0, duration_sec, int(sample_rate * duration_sec), endpoint=False)
    samples = (np.sin(2 * np.pi * 440 * t) * amplitude).astype(np.int16)
    return AudioBuffer(samples=samples, sample_rate=sample_rate)


class ManualExecutor:
    """Executor that runs submitted work only when told to."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run_next(self) -> bool:
        while self.pending:
            future, fn, args, kwargs = self.pending.pop(0)
            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(fn(*args, **kwargs))
            except Exception as e:
                future.set_exception(e)
            return True
        return False

    def run_all(self) -> int:
        count = 0
        while self.run_next():
            count += 1
        return count

    def shutdown(self, wait=True, cancel_futures=False):
        if cancel_futures:
            for future, *_ in self.pending:
                future.cancel()
            self.pending.clear()


class FakeRecorder:
    """AudioPort double following the start/stop/discard contract."""

    def __init__(self, buffer: AudioBuffer = None):
        self.buffer = buffer if buffer is not None else make_buffer()
        self.is_recording = False
        self.starts = 0
        self.stops = 0
        self.discards = 0
        self.start_error = None

    def start(self):
        if self.start_error is not None:
            raise self.start_error
        if self.is_recording:
            raise AudioBusyError("already recording")
        self.is_recording = True
        self.starts += 1

    def stop(self) -> AudioBuffer:
        if not self.is_recording:
            return AudioBuffer.empty()
        self.is_recording = False
        self.stops += 1
        return self.buffer

    def discard(self):
        self.is_recording = False
        self.discards += 1


class FakeTranscriber:
    def __init__(self, text: str = "regex for email"):
        self.text = text
        self.calls = []
        self.error = None

    def transcribe(self, buffer):
        self.calls.append(buffer)
        if self.error is not None:
            raise self.error
        return self.text


class FakeClipboard(ClipboardPort):
    def __init__(self, content: str = ""):
        self.content = content
        self.writes = []
        self.read_error = False
        self.write_error = False

    def read(self) -> str:
        if self.read_error:
            raise ClipboardError("clipboard locked")
        return self.content

    def write(self, text: str) -> None:
        if self.write_error:
            raise ClipboardError("clipboard locked")
        self.writes.append(text)
        self.content = text


class FakeProvider:
    """ProviderClient double returning scripted replies."""

    def __init__(self, provider_id: ProviderId, replies=None, timeout: float = 30.0):
        self.provider_id = provider_id
        self.model = f"{provider_id.value}-test"
        self.timeout = timeout
        self.replies = list(replies or [])
        self.prompts = []

    def complete(self, prompt: str) -> ProviderReply:
        self.prompts.append(prompt)
        if self.replies:
            reply = self.replies.pop(0)
        else:
            reply = f"reply from {self.provider_id.value}"
        if isinstance(reply, ProviderReply):
            return reply
        if isinstance(reply, Exception):
            raise reply
        return ProviderReply.success(self.provider_id, reply)

    def close(self):
        pass


def make_registry(*providers: ProviderId, preferred: ProviderId = None) -> CredentialRegistry:
    keys = {provider: f"key-{provider.value}" for provider in providers}
    return CredentialRegistry(CredentialSet(keys), preferred=preferred)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def executor():
    return ManualExecutor()


@pytest.fixture
def recorder():
    return FakeRecorder()


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def clipboard():
    return FakeClipboard()


@pytest.fixture
def clean_provider_env(monkeypatch):
    """Remove all provider API keys from the environment."""
    for provider in ProviderId:
        monkeypatch.delenv(provider.env_var, raising=False)
