"""
Core data models for Clipster.

Sessions, hotkey events, provider replies and captured audio.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import numpy as np


class SessionState(str, Enum):
    """Session state machine states. Idle is the absence of a live session."""
    CAPTURING = "capturing"
    TRANSCRIBING = "transcribing"
    AWAITING_PROVIDER = "awaiting_provider"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.FAILED, SessionState.CANCELLED)


class FailureReason(str, Enum):
    """Why a session failed."""
    EMPTY_INPUT = "EmptyInput"
    PROVIDER_UNAVAILABLE = "ProviderUnavailable"
    RATE_LIMITED = "RateLimited"
    AUTH_INVALID = "AuthInvalid"
    TIMEOUT = "Timeout"
    UNREACHABLE = "Unreachable"
    MALFORMED = "Malformed"
    CLIPBOARD_UNAVAILABLE = "ClipboardUnavailable"
    AUDIO_BUSY = "AudioBusy"
    AUDIO_UNAVAILABLE = "AudioUnavailable"
    TRANSCRIPTION_FAILED = "TranscriptionFailed"

    @property
    def message(self) -> str:
        return FAILURE_MESSAGES[self]


FAILURE_MESSAGES = {
    FailureReason.EMPTY_INPUT: "Nothing to send: clipboard or recording was empty.",
    FailureReason.PROVIDER_UNAVAILABLE: "No API key configured for this provider.",
    FailureReason.RATE_LIMITED: "Provider rate limit reached, try again shortly.",
    FailureReason.AUTH_INVALID: "Provider rejected the API key.",
    FailureReason.TIMEOUT: "Provider did not answer in time.",
    FailureReason.UNREACHABLE: "Provider could not be reached.",
    FailureReason.MALFORMED: "Provider returned an unusable response.",
    FailureReason.CLIPBOARD_UNAVAILABLE: "Clipboard is not accessible.",
    FailureReason.AUDIO_BUSY: "Microphone is already in use.",
    FailureReason.AUDIO_UNAVAILABLE: "Microphone could not be opened.",
    FailureReason.TRANSCRIPTION_FAILED: "Speech transcription failed.",
}

# Failure kinds a provider client may report
PROVIDER_FAILURES = frozenset({
    FailureReason.RATE_LIMITED,
    FailureReason.AUTH_INVALID,
    FailureReason.TIMEOUT,
    FailureReason.UNREACHABLE,
    FailureReason.MALFORMED,
})

# Failures that let fallback mode move on to the next provider
FALLBACK_ADVANCE_FAILURES = frozenset({
    FailureReason.RATE_LIMITED,
    FailureReason.UNREACHABLE,
})


class ProviderId(str, Enum):
    """Remote language-model providers."""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    XAI = "xai"
    GROQ = "groq"

    @property
    def display_name(self) -> str:
        return _PROVIDER_NAMES[self]

    @property
    def env_var(self) -> str:
        """Environment variable holding this provider's API key."""
        return f"{self.name}_API_KEY"


_PROVIDER_NAMES = {
    ProviderId.ANTHROPIC: "Anthropic (Claude)",
    ProviderId.OPENAI: "OpenAI (GPT)",
    ProviderId.XAI: "xAI (Grok)",
    ProviderId.GROQ: "Groq",
}

# Priority order for fallback mode
FALLBACK_ORDER = (
    ProviderId.ANTHROPIC,
    ProviderId.OPENAI,
    ProviderId.XAI,
    ProviderId.GROQ,
)


class HotkeyAction(str, Enum):
    SEND_CLIPBOARD = "send_clipboard"
    START_VOICE = "start_voice"
    STOP_VOICE = "stop_voice"
    CANCEL = "cancel"


@dataclass(frozen=True)
class HotkeyEvent:
    """
    A discrete hotkey action.

    provider=None selects the default provider. fallback=True opts into
    trying every enabled provider in FALLBACK_ORDER.
    """
    action: HotkeyAction
    provider: Optional[ProviderId] = None
    fallback: bool = False


class SessionSource(str, Enum):
    CLIPBOARD = "clipboard"
    VOICE = "voice"


@dataclass
class Session:
    """One hotkey-triggered job from capture to its terminal state."""
    id: int
    source: SessionSource
    provider: Optional[ProviderId]
    state: SessionState
    fallback: bool = False
    prompt: Optional[str] = None
    reply: Optional[str] = None
    failure: Optional[FailureReason] = None
    responded_by: Optional[ProviderId] = None
    created_at: float = field(default_factory=time.monotonic)
    finished_at: Optional[float] = None

    @property
    def is_live(self) -> bool:
        return not self.state.is_terminal

    @property
    def target_name(self) -> str:
        if self.fallback:
            return "first available provider"
        if self.provider is None:
            return "default provider"
        return self.provider.display_name


@dataclass(frozen=True)
class ProviderReply:
    """Result of one provider call: text on success, a failure kind otherwise."""
    provider: ProviderId
    text: Optional[str] = None
    failure: Optional[FailureReason] = None
    detail: str = ""

    def __post_init__(self):
        if (self.text is None) == (self.failure is None):
            raise ValueError("ProviderReply needs exactly one of text or failure")
        if self.failure is not None and self.failure not in PROVIDER_FAILURES:
            raise ValueError(f"{self.failure.value} is not a provider failure")

    @classmethod
    def success(cls, provider: ProviderId, text: str) -> "ProviderReply":
        return cls(provider=provider, text=text)

    @classmethod
    def failed(cls, provider: ProviderId, failure: FailureReason,
               detail: str = "") -> "ProviderReply":
        return cls(provider=provider, failure=failure, detail=detail)

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass(frozen=True)
class AudioBuffer:
    """Mono int16 samples captured from the microphone."""
    samples: np.ndarray
    sample_rate: int

    @classmethod
    def empty(cls, sample_rate: int = 16000) -> "AudioBuffer":
        return cls(samples=np.zeros(0, dtype=np.int16), sample_rate=sample_rate)

    @property
    def duration(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return len(self.samples) / self.sample_rate

    @property
    def is_empty(self) -> bool:
        return len(self.samples) == 0
