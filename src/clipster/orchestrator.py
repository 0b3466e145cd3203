"""
Session Orchestrator Module

Turns hotkey events into at most one clipboard write per session.

All session state lives on a single event-loop thread that drains an inbox
queue. Hotkey events, worker completions and provider deadlines all arrive
through that inbox and are handled in arrival order. Transcription and
provider calls run on an executor; their results carry the id of the
session that started them and are dropped if that session is no longer
the current one, so a cancelled or superseded session can never write the
clipboard.

Work that is already running cannot be interrupted: the whisper context and
the SDK HTTP clients are shared by every session, so closing them would
break the next session too. Abandoned work runs out on its worker, and the
provider deadline is armed only once a call actually begins, so a session
queued behind abandoned work is not charged for the wait.
"""

import itertools
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Callable, List, Mapping, Optional

from clipster.audio_processing import is_silent
from clipster.clipboard import ClipboardPort
from clipster.credentials import CredentialRegistry
from clipster.exceptions import (
    AudioBusyError,
    AudioRecordingError,
    ClipboardError,
    LocalTranscriptionError,
)
from clipster.models import (
    FALLBACK_ADVANCE_FAILURES,
    FailureReason,
    HotkeyAction,
    HotkeyEvent,
    ProviderId,
    ProviderReply,
    Session,
    SessionSource,
    SessionState,
)
from clipster.notifier import Notifier
from clipster.providers.base import ProviderClient
from clipster.transcriber import Transcriber

logger = logging.getLogger(__name__)

StateCallback = Callable[[Session, Optional[SessionState], SessionState], None]

TRANSCRIBE = "transcribe"
PROVIDER = "provider"


@dataclass(frozen=True)
class _WorkDone:
    session_id: int
    stage: str
    future: Future


@dataclass(frozen=True)
class _ProviderStarted:
    session_id: int
    delay: float


@dataclass(frozen=True)
class _Deadline:
    session_id: int


_STOP = object()


class SessionOrchestrator:
    """Owns the lifecycle of the single live capture/inference session."""

    def __init__(
        self,
        registry: CredentialRegistry,
        providers: Mapping[ProviderId, ProviderClient],
        recorder,
        transcriber: Transcriber,
        clipboard: ClipboardPort,
        notifier: Optional[Notifier] = None,
        executor=None,
        min_recording: float = 0.1,
        silence_threshold: float = 0.0,
        deadline_grace: float = 5.0,
        on_state_change: Optional[StateCallback] = None,
    ):
        """
        Args:
            registry: Enabled providers, fixed at startup.
            providers: Client per enabled provider.
            recorder: Microphone capture with start()/stop()/discard().
            transcriber: Speech-to-text for voice sessions.
            clipboard: Clipboard read/write.
            notifier: Operator feedback. Defaults to console-only notifications.
            executor: Runs transcription and provider calls. A private
                      thread pool is created when omitted.
            min_recording: Recordings shorter than this (seconds) are empty input.
            silence_threshold: RMS level below which a recording is empty input.
            deadline_grace: Seconds added to provider timeouts before the
                            orchestrator gives up on a reply.
            on_state_change: Called as (session, old_state, new_state);
                             old_state is None when a session is created.
        """
        self._registry = registry
        self._providers = dict(providers)
        self._recorder = recorder
        self._transcriber = transcriber
        self._clipboard = clipboard
        self._notifier = notifier or Notifier(desktop_enabled=False)
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="clipster-worker"
        )
        self._min_recording = min_recording
        self._silence_threshold = silence_threshold
        self._deadline_grace = deadline_grace
        self._on_state_change = on_state_change

        self._inbox: Queue = Queue()
        self._ids = itertools.count(1)
        self._lock = threading.RLock()
        self._current: Optional[Session] = None
        self._last: Optional[Session] = None
        self._future: Optional[Future] = None
        self._deadline: Optional[threading.Timer] = None
        self._capture_trigger: Optional[tuple] = None
        self._thread: Optional[threading.Thread] = None
        self._running = False

    @property
    def current_session(self) -> Optional[Session]:
        """The live session, or None when idle."""
        return self._current

    @property
    def last_session(self) -> Optional[Session]:
        """The most recently finished session."""
        return self._last

    @property
    def is_idle(self) -> bool:
        return self._current is None

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # Event loop
    # ------------------------------------------------------------------

    def submit(self, event: HotkeyEvent) -> None:
        """Queue a hotkey event. Safe to call from any thread."""
        self._inbox.put(event)

    def start(self) -> None:
        """Start the event loop thread."""
        if self._running:
            return
        self._running = True
        self._thread = threading.Thread(
            target=self._run_loop, name="clipster-orchestrator", daemon=True
        )
        self._thread.start()
        logger.debug("Orchestrator loop started")

    def stop(self, timeout: float = 2.0) -> None:
        """Cancel any live session and stop the event loop."""
        if self._running:
            self._running = False
            self._inbox.put(_STOP)
            if self._thread is not None and self._thread is not threading.current_thread():
                self._thread.join(timeout=timeout)
            self._thread = None

        with self._lock:
            self._cancel_current("shutdown")

        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
        logger.debug("Orchestrator stopped")

    def _run_loop(self) -> None:
        while self._running:
            self.process_next()

    def process_next(self, block: bool = True, timeout: Optional[float] = None) -> bool:
        """
        Handle one inbox item on the calling thread.

        Returns:
            True if an item was handled, False if the inbox was empty or a
            stop request was received.
        """
        try:
            item = self._inbox.get(block=block, timeout=timeout)
        except Empty:
            return False
        if item is _STOP:
            return False

        try:
            self._dispatch(item)
        except Exception:
            # Keep the loop alive
            logger.exception(f"Unhandled error while processing {item!r}")
        return True

    def run_pending(self) -> int:
        """Handle every item already queued. Returns the number handled."""
        handled = 0
        while self.process_next(block=False):
            handled += 1
        return handled

    def _dispatch(self, item) -> None:
        with self._lock:
            if isinstance(item, HotkeyEvent):
                self.handle_event(item)
            elif isinstance(item, _WorkDone):
                self._handle_work_done(item)
            elif isinstance(item, _ProviderStarted):
                self._handle_provider_started(item)
            elif isinstance(item, _Deadline):
                self._handle_deadline(item)
            else:
                logger.warning(f"Ignoring unknown inbox item: {item!r}")

    # ------------------------------------------------------------------
    # Hotkey events
    # ------------------------------------------------------------------

    def handle_event(self, event: HotkeyEvent) -> None:
        """Apply one hotkey event to the session state machine."""
        with self._lock:
            logger.debug(f"Hotkey event: {event}")
            if event.action == HotkeyAction.CANCEL:
                self._cancel_current("cancel hotkey")
            elif event.action == HotkeyAction.STOP_VOICE:
                self._stop_capture(event)
            elif event.action == HotkeyAction.START_VOICE:
                self._cancel_current("superseded by voice capture")
                self._start_voice(event)
            elif event.action == HotkeyAction.SEND_CLIPBOARD:
                self._cancel_current("superseded by clipboard send")
                self._send_clipboard(event)
            else:
                logger.warning(f"Unknown hotkey action: {event.action}")

    def _start_voice(self, event: HotkeyEvent) -> None:
        session = self._open(SessionSource.VOICE, event, SessionState.CAPTURING)
        if not self._candidates(session):
            self._fail(session, FailureReason.PROVIDER_UNAVAILABLE)
            return

        try:
            self._recorder.start()
        except AudioBusyError as e:
            # Only reachable if something outside this orchestrator holds the microphone
            logger.error(f"Microphone busy at session start: {e}")
            self._fail(session, FailureReason.AUDIO_BUSY)
            return
        except AudioRecordingError as e:
            logger.error(f"Could not start recording: {e}")
            self._fail(session, FailureReason.AUDIO_UNAVAILABLE)
            return

        self._capture_trigger = (event.provider, event.fallback)
        self._notifier.recording_started(session)

    def _stop_capture(self, event: HotkeyEvent) -> None:
        session = self._current
        if session is None or session.state != SessionState.CAPTURING:
            logger.debug("Stop capture with no recording in progress, ignored")
            return
        if (event.provider, event.fallback) != self._capture_trigger:
            # Release of a binding whose capture was already superseded
            logger.debug(f"Stop for another binding ignored during session {session.id}")
            return

        buffer = self._recorder.stop()
        print(f"[Recording] Stopped. Duration: {buffer.duration:.1f}s")
        if buffer.duration < self._min_recording or is_silent(buffer, self._silence_threshold):
            logger.info(f"Session {session.id}: recording empty or silent")
            self._fail(session, FailureReason.EMPTY_INPUT)
            return

        self._transition(session, SessionState.TRANSCRIBING)
        print("[Transcribing] Processing locally...")
        self._run_in_worker(session, TRANSCRIBE, self._transcriber.transcribe, buffer)

    def _send_clipboard(self, event: HotkeyEvent) -> None:
        session = self._open(SessionSource.CLIPBOARD, event, SessionState.AWAITING_PROVIDER)
        if not self._candidates(session):
            self._fail(session, FailureReason.PROVIDER_UNAVAILABLE)
            return

        try:
            text = self._clipboard.read()
        except ClipboardError as e:
            logger.error(str(e))
            self._fail(session, FailureReason.CLIPBOARD_UNAVAILABLE)
            return

        if not text or not text.strip():
            self._fail(session, FailureReason.EMPTY_INPUT)
            return

        session.prompt = text
        self._dispatch_provider(session)

    # ------------------------------------------------------------------
    # Worker stages
    # ------------------------------------------------------------------

    def _candidates(self, session: Session) -> List[ProviderId]:
        """Providers a session may call, in the order they are tried."""
        if session.fallback:
            return [p for p in self._registry.enabled_providers if p in self._providers]
        provider = session.provider
        if provider is None or not self._registry.is_enabled(provider):
            return []
        if provider not in self._providers:
            return []
        return [provider]

    def _dispatch_provider(self, session: Session) -> None:
        candidates = self._candidates(session)
        if not candidates:
            self._fail(session, FailureReason.PROVIDER_UNAVAILABLE)
            return

        self._transition(session, SessionState.AWAITING_PROVIDER)
        self._notifier.processing(session)
        delay = sum(self._providers[p].timeout for p in candidates) + self._deadline_grace
        self._run_in_worker(session, PROVIDER, self._call_providers,
                            session.id, session.prompt, candidates, delay)

    def _call_providers(self, session_id: int, prompt: str,
                        candidates: List[ProviderId], delay: float) -> Optional[ProviderReply]:
        """Runs on a worker thread. Tries candidates in order."""
        self._inbox.put(_ProviderStarted(session_id, delay))
        reply = None
        for provider in candidates:
            if not self._is_current(session_id):
                logger.debug(f"Session {session_id} superseded, skipping {provider.value}")
                break
            reply = self._providers[provider].complete(prompt)
            if reply.ok or reply.failure not in FALLBACK_ADVANCE_FAILURES:
                return reply
            if len(candidates) > 1:
                logger.info(f"{provider.display_name} {reply.failure.value}, trying next provider")
        return reply

    def _run_in_worker(self, session: Session, stage: str, fn, *args) -> None:
        future = self._executor.submit(fn, *args)
        self._future = future
        session_id = session.id
        future.add_done_callback(
            lambda f: self._inbox.put(_WorkDone(session_id, stage, f))
        )

    def _handle_work_done(self, item: _WorkDone) -> None:
        session = self._current
        if session is None or session.id != item.session_id:
            logger.debug(f"Discarding {item.stage} result of stale session {item.session_id}")
            return
        if item.future.cancelled():
            return

        if item.stage == TRANSCRIBE and session.state == SessionState.TRANSCRIBING:
            self._future = None
            self._finish_transcription(session, item.future)
        elif item.stage == PROVIDER and session.state == SessionState.AWAITING_PROVIDER:
            self._future = None
            self._disarm_deadline()
            self._finish_provider(session, item.future)
        else:
            logger.debug(f"Ignoring {item.stage} result in state {session.state.value}")

    def _finish_transcription(self, session: Session, future: Future) -> None:
        try:
            text = future.result()
        except LocalTranscriptionError as e:
            logger.error(f"Transcription failed: {e}")
            self._fail(session, FailureReason.TRANSCRIPTION_FAILED)
            return
        except Exception:
            logger.exception("Unexpected error during transcription")
            self._fail(session, FailureReason.TRANSCRIPTION_FAILED)
            return

        text = (text or "").strip()
        if not text:
            self._fail(session, FailureReason.EMPTY_INPUT)
            return

        print(f"[Transcription] {text}")
        session.prompt = text
        self._dispatch_provider(session)

    def _finish_provider(self, session: Session, future: Future) -> None:
        try:
            reply = future.result()
        except Exception:
            logger.exception("Provider client raised instead of returning a reply")
            self._fail(session, FailureReason.MALFORMED)
            return

        if reply is None:
            self._fail(session, FailureReason.PROVIDER_UNAVAILABLE)
            return
        if not reply.ok:
            self._fail(session, reply.failure)
            return

        try:
            self._clipboard.write(reply.text)
        except ClipboardError as e:
            logger.error(str(e))
            self._fail(session, FailureReason.CLIPBOARD_UNAVAILABLE)
            return

        session.reply = reply.text
        session.responded_by = reply.provider
        self._finish(session, SessionState.COMPLETED)
        self._notifier.success(session)

    # ------------------------------------------------------------------
    # Deadlines
    # ------------------------------------------------------------------

    def _handle_provider_started(self, item: _ProviderStarted) -> None:
        session = self._current
        if session is None or session.id != item.session_id:
            return
        if session.state != SessionState.AWAITING_PROVIDER:
            return
        self._arm_deadline(session, item.delay)

    def _arm_deadline(self, session: Session, delay: float) -> None:
        self._disarm_deadline()
        timer = threading.Timer(delay, self._inbox.put, args=(_Deadline(session.id),))
        timer.daemon = True
        timer.start()
        self._deadline = timer

    def _disarm_deadline(self) -> None:
        if self._deadline is not None:
            self._deadline.cancel()
            self._deadline = None

    def _handle_deadline(self, item: _Deadline) -> None:
        session = self._current
        if session is None or session.id != item.session_id:
            return
        if session.state != SessionState.AWAITING_PROVIDER:
            return
        logger.warning(f"Session {session.id}: no provider reply before deadline")
        if self._future is not None:
            self._future.cancel()
        self._fail(session, FailureReason.TIMEOUT)

    # ------------------------------------------------------------------
    # Session bookkeeping
    # ------------------------------------------------------------------

    def _is_current(self, session_id: int) -> bool:
        current = self._current
        return current is not None and current.id == session_id

    def _open(self, source: SessionSource, event: HotkeyEvent,
              state: SessionState) -> Session:
        if self._current is not None:
            raise RuntimeError(f"Session {self._current.id} is still live")
        provider = None if event.fallback else (event.provider or self._registry.default_provider())
        session = Session(
            id=next(self._ids),
            source=source,
            provider=provider,
            fallback=event.fallback,
            state=state,
        )
        self._current = session
        logger.info(f"Session {session.id} started: {source.value} -> {session.target_name}")
        if self._on_state_change:
            self._on_state_change(session, None, state)
        return session

    def _cancel_current(self, reason: str) -> None:
        session = self._current
        if session is None:
            return

        if session.state == SessionState.CAPTURING:
            self._recorder.discard()
        elif self._future is not None:
            # Only stops work that has not started; running work is abandoned
            self._future.cancel()

        logger.info(f"Session {session.id} cancelled ({reason})")
        self._finish(session, SessionState.CANCELLED)
        self._notifier.cancelled(session)

    def _fail(self, session: Session, reason: FailureReason) -> None:
        session.failure = reason
        self._finish(session, SessionState.FAILED)
        self._notifier.failure(session, reason)

    def _finish(self, session: Session, state: SessionState) -> None:
        self._disarm_deadline()
        self._future = None
        self._capture_trigger = None
        session.finished_at = time.monotonic()
        self._transition(session, state)
        if self._current is session:
            self._current = None
        self._last = session

    def _transition(self, session: Session, state: SessionState) -> None:
        old = session.state
        if old == state:
            return
        session.state = state
        logger.debug(f"Session {session.id}: {old.value} -> {state.value}")
        if self._on_state_change:
            self._on_state_change(session, old, state)
