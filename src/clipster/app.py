"""
Clipster - AI Clipboard Assistant

Main application entry point.
Wires hotkey detection, audio recording, transcription, provider clients
and the clipboard around the session orchestrator.
"""

import logging
import signal
import sys
import time
from typing import Dict, Optional

from dotenv import load_dotenv

from clipster.audio_recorder import AudioRecorder
from clipster.clipboard import PyperclipClipboard
from clipster.config import Config
from clipster.credentials import CredentialRegistry
from clipster.exceptions import ConfigurationError, HotkeyDetectorError
from clipster.models import HotkeyAction, ProviderId
from clipster.notifier import Notifier
from clipster.orchestrator import SessionOrchestrator
from clipster.providers import ProviderClient, create_provider_clients
from clipster.transcriber import LocalTranscriber

logger = logging.getLogger(__name__)

BANNER = """\
▄▖▜ ▘    ▗
▌ ▐ ▌▛▌▛▘▜▘█▌▛▘
▙▖▐▖▌▙▌▄▌▐▖▙▖▌
     ▌         """


def get_transcriber(config: Config) -> LocalTranscriber:
    """Create the whisper.cpp transcriber from configuration."""
    transcriber = LocalTranscriber(
        model_name=config.whisper_model,
        models_dir=config.models_dir,
        model_path=config.model_path,
    )
    if not transcriber.is_model_downloaded():
        logger.warning(f"Whisper model not found at {transcriber.get_model_path()}")
        if config.model_path is None:
            print(f"[Info] Model '{config.whisper_model}' will be downloaded on first use.")
    return transcriber


class ClipsterApp:
    """Main application class coordinating all modules."""

    def __init__(self, config: Config, registry: Optional[CredentialRegistry] = None):
        """
        Initialize all components.

        Args:
            config: Application configuration loaded from environment.
            registry: Provider credentials. Read from the environment if omitted.

        Raises:
            ConfigurationError: If no provider has an API key.
            HotkeyDetectorError: If the keyboard hook cannot be created.
        """
        load_dotenv()

        self.config = config
        self.registry = registry or CredentialRegistry.from_env(preferred=config.preferred_provider)
        self.registry.require_any()

        self.providers: Dict[ProviderId, ProviderClient] = create_provider_clients(self.registry, config)
        if not self.providers:
            raise ConfigurationError("No provider client could be initialized")

        self.recorder = AudioRecorder(sample_rate=config.sample_rate)
        logger.debug(f"Audio recorder initialized (sample_rate={config.sample_rate})")

        self.transcriber = get_transcriber(config)
        self.clipboard = PyperclipClipboard()
        self.notifier = Notifier(desktop_enabled=config.notifications_enabled)

        self.orchestrator = SessionOrchestrator(
            registry=self.registry,
            providers=self.providers,
            recorder=self.recorder,
            transcriber=self.transcriber,
            clipboard=self.clipboard,
            notifier=self.notifier,
            min_recording=config.min_recording,
            silence_threshold=config.silence_threshold,
        )

        self.listener = self._create_listener()
        self._running = False

    def _create_listener(self):
        try:
            from clipster.hotkey_listener import HotkeyListener, bindings_from_config
        except ImportError as e:
            raise HotkeyDetectorError(
                f"Keyboard hooks unavailable: {e}\n"
                "On Linux: ensure an X11 session (DISPLAY) is available.\n"
                "On macOS: grant Accessibility permission in System Settings."
            ) from e

        bindings = bindings_from_config(self.config)
        return HotkeyListener(bindings, on_event=self.orchestrator.submit)

    @property
    def is_running(self) -> bool:
        """Whether the application is running."""
        return self._running

    def run(self) -> None:
        """Start the orchestrator and listener, then block until stopped."""
        self._running = True
        self.orchestrator.start()
        self.listener.start()

        self._print_banner()

        while self._running:
            time.sleep(0.1)

    def _print_banner(self) -> None:
        """Print welcome message and the hotkeys for each provider."""
        print(BANNER)
        print("Clipster AI Assistant Ready!\n")
        print("Available AI providers:")
        for provider in self.registry.enabled_providers:
            if provider in self.providers:
                print(f"  {provider.display_name} ({self.providers[provider].model})")
        print()
        print("Hotkeys:")
        for binding in self.listener.bindings:
            print(f"  {binding.description:<28} {_describe_binding(binding)}")
        print()
        print("Hold a voice hotkey to record, release to process.")
        print("Press Ctrl+C to exit\n")

    def stop(self) -> None:
        """Stop the application gracefully."""
        if not self._running:
            return

        self._running = False
        self.listener.stop()
        self.orchestrator.stop()
        for client in self.providers.values():
            client.close()

        print("\nClipster stopped. Goodbye!")


def _describe_binding(binding) -> str:
    if binding.action == HotkeyAction.CANCEL:
        return "cancel current request"
    if binding.fallback:
        target = "first available provider"
    elif binding.provider is not None:
        target = binding.provider.display_name
    else:
        target = "default provider"
    if binding.hold_to_record:
        return f"hold to ask {target} by voice"
    return f"send clipboard to {target}"


def setup_logging(debug: bool = False) -> None:
    """
    Configure logging for the application.

    Args:
        debug: If True, enable debug-level logging
    """
    level = logging.DEBUG if debug else logging.INFO
    format_str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=format_str,
        datefmt=date_format
    )

    # Third-party HTTP clients are noisy at debug level
    for name in ("httpx", "httpcore", "anthropic", "openai", "groq"):
        logging.getLogger(name).setLevel(logging.WARNING)

    if debug:
        file_handler = logging.FileHandler("clipster.log")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(format_str, datefmt=date_format))
        logging.getLogger().addHandler(file_handler)


def main():
    """Main entry point."""
    try:
        config = Config.from_env()
    except ValueError as e:
        setup_logging()
        print(f"Error: {e}")
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    setup_logging(debug=config.debug)
    logger.info("Clipster starting...")

    try:
        warnings = config.validate()
        for warning in warnings:
            print(f"Warning: {warning}")
            logger.warning(warning)
    except ValueError as e:
        print(f"Error: {e}")
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    try:
        app = ClipsterApp(config=config)
    except ConfigurationError as e:
        print(f"Error: {e}")
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except HotkeyDetectorError as e:
        print(f"Error: {e}")
        logger.error(f"Hotkey detector error: {e}")
        sys.exit(1)
    except Exception as e:
        print(f"Error: Failed to initialize application: {e}")
        logger.exception(f"Unexpected initialization error: {e}")
        sys.exit(1)

    def signal_handler(sig, frame):
        logger.info("Received shutdown signal")
        app.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        logger.info("Clipster running")
        app.run()
    except Exception as e:
        print(f"Fatal error: {e}")
        logger.exception(f"Fatal error during execution: {e}")
        app.stop()
        sys.exit(1)


if __name__ == "__main__":
    main()
