"""
Hotkey Listener Module
Detects global hotkey combos with pynput and turns them into HotkeyEvents.

Voice bindings are hold-to-record: pressing the combo starts capture and
releasing any of its keys stops it. Clipboard and cancel bindings fire on
press only.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Optional

from pynput import keyboard

from clipster.config import Config
from clipster.exceptions import HotkeyDetectorError
from clipster.models import HotkeyAction, HotkeyEvent, ProviderId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HotkeyBinding:
    """One configured combo and the event it produces."""
    name: str
    combo: str
    action: HotkeyAction
    provider: Optional[ProviderId] = None
    fallback: bool = False

    @property
    def hold_to_record(self) -> bool:
        return self.action == HotkeyAction.START_VOICE

    @property
    def description(self) -> str:
        """Human-readable combo, e.g. "Ctrl+Shift+Space"."""
        parts = [part.strip("<>") for part in self.combo.split("+")]
        return "+".join(part.capitalize() if len(part) > 1 else part.upper() for part in parts)


def binding_from_name(name: str, combo: str) -> HotkeyBinding:
    """
    Interpret a configuration binding name.

    "cancel" cancels; "<provider>_voice" and "<provider>_clipboard" target
    one provider; "default_voice"/"default_clipboard" use the default
    provider; "fallback_voice"/"fallback_clipboard" opt into trying
    every enabled provider in priority order.
    """
    if name == "cancel":
        return HotkeyBinding(name=name, combo=combo, action=HotkeyAction.CANCEL)

    target, _, kind = name.rpartition("_")
    if kind == "voice":
        action = HotkeyAction.START_VOICE
    elif kind == "clipboard":
        action = HotkeyAction.SEND_CLIPBOARD
    else:
        raise ValueError(f"Unknown hotkey binding: {name}")

    if target == "fallback":
        return HotkeyBinding(name=name, combo=combo, action=action, fallback=True)
    if target == "default":
        return HotkeyBinding(name=name, combo=combo, action=action)
    try:
        provider = ProviderId(target)
    except ValueError:
        raise ValueError(f"Unknown provider in hotkey binding: {name}")
    return HotkeyBinding(name=name, combo=combo, action=action, provider=provider)


def bindings_from_config(config: Config) -> List[HotkeyBinding]:
    """Active bindings from configuration; empty combos are disabled."""
    return [
        binding_from_name(name, combo)
        for name, combo in config.hotkeys.items()
        if combo
    ]


class HotkeyListener:
    """Global keyboard listener emitting one HotkeyEvent per combo transition."""

    def __init__(self, bindings: List[HotkeyBinding],
                 on_event: Callable[[HotkeyEvent], None]):
        """
        Args:
            bindings: Combos to watch.
            on_event: Receives each event, called on the listener thread.

        Raises:
            HotkeyDetectorError: If a combo cannot be parsed.
        """
        self.bindings = list(bindings)
        self.on_event = on_event
        self._keys: Dict[str, FrozenSet] = {}
        for binding in self.bindings:
            try:
                self._keys[binding.name] = frozenset(keyboard.HotKey.parse(binding.combo))
            except ValueError as e:
                raise HotkeyDetectorError(
                    f"Invalid hotkey '{binding.combo}' for {binding.name}: {e}"
                ) from e
        self._pressed: set = set()
        self._active: set = set()
        self._lock = threading.Lock()
        self._listener: Optional[keyboard.Listener] = None

    def start(self) -> None:
        """Start listening for hotkeys."""
        try:
            self._listener = keyboard.Listener(
                on_press=self._on_press,
                on_release=self._on_release,
            )
            self._listener.start()
        except Exception as e:
            raise HotkeyDetectorError(f"Failed to start keyboard listener: {e}") from e
        logger.info(f"Hotkey listener started with {len(self.bindings)} bindings")

    def stop(self) -> None:
        """Stop listening and clean up."""
        if self._listener is not None:
            self._listener.stop()
            self._listener = None

    @property
    def is_running(self) -> bool:
        return self._listener is not None

    def _binding(self, name: str) -> HotkeyBinding:
        return next(binding for binding in self.bindings if binding.name == name)

    def _canonical(self, key):
        if self._listener is not None:
            return self._listener.canonical(key)
        return key

    def _on_press(self, key) -> None:
        key = self._canonical(key)
        with self._lock:
            if key in self._pressed:
                # Auto-repeat while held
                return
            self._pressed.add(key)

            matched = [
                binding for binding in self.bindings
                if binding.name not in self._active
                and key in self._keys[binding.name]
                and self._keys[binding.name] <= self._pressed
            ]
            if not matched:
                return
            # When combos overlap, the most specific one wins
            binding = max(matched, key=lambda b: len(self._keys[b.name]))
            if binding.hold_to_record:
                # A new recording supersedes the held one; its release must not stop this one
                self._active = {
                    name for name in self._active
                    if not self._binding(name).hold_to_record
                }
            self._active.add(binding.name)
            event = HotkeyEvent(binding.action, binding.provider, binding.fallback)

        self._emit(event)

    def _on_release(self, key) -> None:
        key = self._canonical(key)
        events = []
        with self._lock:
            self._pressed.discard(key)
            for binding in self.bindings:
                if binding.name in self._active and key in self._keys[binding.name]:
                    self._active.discard(binding.name)
                    if binding.hold_to_record:
                        events.append(HotkeyEvent(
                            HotkeyAction.STOP_VOICE, binding.provider, binding.fallback
                        ))

        for event in events:
            self._emit(event)

    def _emit(self, event: HotkeyEvent) -> None:
        logger.debug(f"Hotkey: {event.action.value} ({event.provider.value if event.provider else 'default'})")
        self.on_event(event)
