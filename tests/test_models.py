"""
Tests for the core data models.
"""

import numpy as np
import pytest

from clipster.models import (
    FALLBACK_ADVANCE_FAILURES,
    FALLBACK_ORDER,
    PROVIDER_FAILURES,
    AudioBuffer,
    FailureReason,
    HotkeyAction,
    HotkeyEvent,
    ProviderId,
    ProviderReply,
    Session,
    SessionSource,
    SessionState,
)


class TestSessionState:

    @pytest.mark.parametrize("state", [
        SessionState.COMPLETED, SessionState.FAILED, SessionState.CANCELLED,
    ])
    def test_terminal(self, state):
        assert state.is_terminal

    @pytest.mark.parametrize("state", [
        SessionState.CAPTURING, SessionState.TRANSCRIBING, SessionState.AWAITING_PROVIDER,
    ])
    def test_live(self, state):
        assert not state.is_terminal


class TestFailureReason:

    def test_every_reason_has_a_message(self):
        for reason in FailureReason:
            assert reason.message

    def test_provider_failures(self):
        assert PROVIDER_FAILURES == {
            FailureReason.RATE_LIMITED,
            FailureReason.AUTH_INVALID,
            FailureReason.TIMEOUT,
            FailureReason.UNREACHABLE,
            FailureReason.MALFORMED,
        }

    def test_fallback_advances_only_on_transient_failures(self):
        assert FALLBACK_ADVANCE_FAILURES == {FailureReason.RATE_LIMITED, FailureReason.UNREACHABLE}


class TestProviderId:

    def test_env_vars(self):
        assert ProviderId.ANTHROPIC.env_var == "ANTHROPIC_API_KEY"
        assert ProviderId.OPENAI.env_var == "OPENAI_API_KEY"
        assert ProviderId.XAI.env_var == "XAI_API_KEY"
        assert ProviderId.GROQ.env_var == "GROQ_API_KEY"

    def test_fallback_order(self):
        assert FALLBACK_ORDER == (
            ProviderId.ANTHROPIC, ProviderId.OPENAI, ProviderId.XAI, ProviderId.GROQ,
        )

    def test_display_names(self):
        assert ProviderId.XAI.display_name == "xAI (Grok)"


class TestProviderReply:

    def test_success(self):
        reply = ProviderReply.success(ProviderId.OPENAI, "ok")
        assert reply.ok
        assert reply.failure is None

    def test_failed(self):
        reply = ProviderReply.failed(ProviderId.OPENAI, FailureReason.TIMEOUT, "read timed out")
        assert not reply.ok
        assert reply.text is None
        assert reply.detail == "read timed out"

    def test_needs_exactly_one_outcome(self):
        with pytest.raises(ValueError):
            ProviderReply(ProviderId.OPENAI)
        with pytest.raises(ValueError):
            ProviderReply(ProviderId.OPENAI, text="x", failure=FailureReason.TIMEOUT)

    @pytest.mark.parametrize("reason", [
        FailureReason.EMPTY_INPUT,
        FailureReason.PROVIDER_UNAVAILABLE,
        FailureReason.CLIPBOARD_UNAVAILABLE,
    ])
    def test_rejects_non_provider_failures(self, reason):
        with pytest.raises(ValueError):
            ProviderReply.failed(ProviderId.OPENAI, reason)


class TestSession:

    def test_target_name(self):
        base = dict(id=1, source=SessionSource.VOICE, state=SessionState.CAPTURING)
        assert Session(provider=ProviderId.GROQ, **base).target_name == "Groq"
        assert Session(provider=None, **base).target_name == "default provider"
        assert Session(provider=None, fallback=True, **base).target_name == "first available provider"

    def test_is_live(self):
        session = Session(id=1, source=SessionSource.CLIPBOARD, provider=None,
                          state=SessionState.AWAITING_PROVIDER)
        assert session.is_live
        session.state = SessionState.CANCELLED
        assert not session.is_live


class TestHotkeyEvent:

    def test_defaults(self):
        event = HotkeyEvent(HotkeyAction.CANCEL)
        assert event.provider is None
        assert event.fallback is False

    def test_hashable(self):
        assert len({HotkeyEvent(HotkeyAction.CANCEL), HotkeyEvent(HotkeyAction.CANCEL)}) == 1


class TestAudioBuffer:

    def test_empty(self):
        buffer = AudioBuffer.empty(44100)
        assert buffer.is_empty
        assert buffer.duration == 0.0
        assert buffer.sample_rate == 44100

    def test_duration(self):
        buffer = AudioBuffer(samples=np.zeros(8000, dtype=np.int16), sample_rate=16000)
        assert buffer.duration == 0.5

    def test_zero_rate_has_no_duration(self):
        buffer = AudioBuffer(samples=np.zeros(10, dtype=np.int16), sample_rate=0)
        assert buffer.duration == 0.0
