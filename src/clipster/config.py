"""
Configuration Module
Loads and validates settings from environment variables.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv

from clipster.models import ProviderId


# Valid whisper models (for local transcription)
VALID_WHISPER_MODELS = [
    "tiny", "tiny.en",
    "base", "base.en",
    "small", "small.en",
    "medium", "medium.en",
    "large-v1", "large-v2", "large-v3"
]

VALID_PROVIDERS = [p.value for p in ProviderId]

# Default model per provider
DEFAULT_PROVIDER_MODELS = {
    ProviderId.ANTHROPIC.value: "claude-haiku-4-5-20251001",
    ProviderId.OPENAI.value: "gpt-5.1",
    ProviderId.XAI.value: "grok-4-latest",
    ProviderId.GROQ.value: "llama-3.3-70b-versatile",
}

# Binding name -> pynput hotkey combo.
# "<provider>_voice" is hold-to-record, "<provider>_clipboard" sends the clipboard.
DEFAULT_HOTKEYS = {
    "anthropic_voice": "<ctrl>+<shift>+<space>",
    "openai_voice": "<ctrl>+<alt>+<space>",
    "xai_voice": "<ctrl>+<shift>+x",
    "groq_voice": "<ctrl>+<shift>+g",
    "anthropic_clipboard": "<ctrl>+<alt>+a",
    "openai_clipboard": "<ctrl>+<alt>+o",
    "xai_clipboard": "<ctrl>+<alt>+x",
    "groq_clipboard": "<ctrl>+<alt>+g",
    "default_voice": "<ctrl>+<shift>+d",
    "default_clipboard": "<ctrl>+<alt>+d",
    "fallback_voice": "<ctrl>+<shift>+f",
    "fallback_clipboard": "<ctrl>+<alt>+f",
    "cancel": "<ctrl>+<alt>+<backspace>",
}


def _parse_bool(value: str, default: bool) -> bool:
    if not value:
        return default
    return value.lower() in ("true", "1", "yes")


@dataclass
class Config:
    """Application configuration from environment variables."""

    # Local transcription settings (whisper.cpp)
    whisper_model: str = "tiny.en"
    models_dir: str = field(default_factory=lambda: os.path.expanduser("~/.cache/whisper"))
    model_path: Optional[str] = None

    # Audio capture
    sample_rate: int = 16000
    min_recording: float = 0.1  # seconds
    silence_threshold: float = 0.003  # RMS on [-1, 1] samples

    # Providers
    default_provider: Optional[str] = None
    provider_timeout: float = 30.0
    max_tokens: int = 500
    temperature: float = 0.8
    provider_models: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_PROVIDER_MODELS))

    # Hotkeys
    hotkeys: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HOTKEYS))

    # Feedback
    notifications_enabled: bool = True
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Config":
        """
        Load configuration from environment variables.

        Environment Variables:
            CLIPSTER_WHISPER_MODEL: Optional. Whisper model name (default: tiny.en).
            CLIPSTER_MODELS_DIR: Optional. Directory for whisper models (default: ~/.cache/whisper).
            CLIPSTER_MODEL_PATH: Optional. Explicit ggml model file, overrides model name and dir.
            CLIPSTER_SAMPLE_RATE: Optional. Audio sample rate in Hz (default: 16000).
            CLIPSTER_MIN_RECORDING: Optional. Shortest usable recording in seconds (default: 0.1).
            CLIPSTER_SILENCE_THRESHOLD: Optional. RMS level below which audio is silence (default: 0.003).
            CLIPSTER_DEFAULT_PROVIDER: Optional. Provider used by "default" hotkeys.
            CLIPSTER_PROVIDER_TIMEOUT: Optional. Seconds per provider request (default: 30).
            CLIPSTER_MAX_TOKENS: Optional. Reply length limit (default: 500).
            CLIPSTER_TEMPERATURE: Optional. Sampling temperature (default: 0.8).
            CLIPSTER_<PROVIDER>_MODEL: Optional. Model name for one provider, e.g. CLIPSTER_OPENAI_MODEL.
            CLIPSTER_HOTKEY_<BINDING>: Optional. Hotkey combo for one binding, e.g.
                                       CLIPSTER_HOTKEY_ANTHROPIC_VOICE. Empty disables it.
            CLIPSTER_NOTIFICATIONS: Optional. Show desktop notifications (default: true).
            CLIPSTER_DEBUG: Optional. Enable debug logging (default: false).

        API keys (ANTHROPIC_API_KEY, OPENAI_API_KEY, XAI_API_KEY, GROQ_API_KEY)
        are read separately by the credential registry.

        Returns:
            Config instance with loaded values.

        Raises:
            ValueError: If a numeric value cannot be parsed.
        """
        load_dotenv()

        provider_models = dict(DEFAULT_PROVIDER_MODELS)
        for provider in VALID_PROVIDERS:
            override = os.environ.get(f"CLIPSTER_{provider.upper()}_MODEL")
            if override:
                provider_models[provider] = override

        hotkeys = dict(DEFAULT_HOTKEYS)
        for name in DEFAULT_HOTKEYS:
            override = os.environ.get(f"CLIPSTER_HOTKEY_{name.upper()}")
            if override is not None:
                hotkeys[name] = override.strip().lower()

        default_provider = os.environ.get("CLIPSTER_DEFAULT_PROVIDER")

        return cls(
            whisper_model=os.environ.get("CLIPSTER_WHISPER_MODEL", "tiny.en"),
            models_dir=os.environ.get("CLIPSTER_MODELS_DIR", os.path.expanduser("~/.cache/whisper")),
            model_path=os.environ.get("CLIPSTER_MODEL_PATH") or None,
            sample_rate=int(os.environ.get("CLIPSTER_SAMPLE_RATE", "16000")),
            min_recording=float(os.environ.get("CLIPSTER_MIN_RECORDING", "0.1")),
            silence_threshold=float(os.environ.get("CLIPSTER_SILENCE_THRESHOLD", "0.003")),
            default_provider=default_provider.lower() if default_provider else None,
            provider_timeout=float(os.environ.get("CLIPSTER_PROVIDER_TIMEOUT", "30")),
            max_tokens=int(os.environ.get("CLIPSTER_MAX_TOKENS", "500")),
            temperature=float(os.environ.get("CLIPSTER_TEMPERATURE", "0.8")),
            provider_models=provider_models,
            hotkeys=hotkeys,
            notifications_enabled=_parse_bool(os.environ.get("CLIPSTER_NOTIFICATIONS", "true"), True),
            debug=_parse_bool(os.environ.get("CLIPSTER_DEBUG", ""), False),
        )

    def validate(self) -> List[str]:
        """
        Validate configuration values.

        Returns:
            List of warning messages (empty if no warnings).

        Raises:
            ValueError: If configuration values are invalid.
        """
        warnings = []

        if self.model_path is None and self.whisper_model not in VALID_WHISPER_MODELS:
            raise ValueError(
                f"CLIPSTER_WHISPER_MODEL must be one of: {', '.join(VALID_WHISPER_MODELS)}. "
                f"Got: {self.whisper_model}"
            )

        if self.model_path is not None and not os.path.isfile(self.model_path):
            warnings.append(f"Whisper model file not found: {self.model_path}")

        if self.sample_rate <= 0:
            raise ValueError("CLIPSTER_SAMPLE_RATE must be positive")

        valid_sample_rates = [8000, 16000, 22050, 44100, 48000]
        if self.sample_rate not in valid_sample_rates:
            warnings.append(
                f"Unusual sample rate {self.sample_rate}. "
                f"Common values are: {valid_sample_rates}"
            )

        if self.min_recording < 0:
            raise ValueError("CLIPSTER_MIN_RECORDING must be non-negative")

        if self.silence_threshold < 0:
            raise ValueError("CLIPSTER_SILENCE_THRESHOLD must be non-negative")

        if self.default_provider is not None and self.default_provider not in VALID_PROVIDERS:
            raise ValueError(
                f"CLIPSTER_DEFAULT_PROVIDER must be one of: {', '.join(VALID_PROVIDERS)}. "
                f"Got: {self.default_provider}"
            )

        if self.provider_timeout <= 0:
            raise ValueError("CLIPSTER_PROVIDER_TIMEOUT must be positive")

        if self.provider_timeout > 300:
            warnings.append(
                f"Long provider timeout ({self.provider_timeout}s) keeps sessions waiting"
            )

        if self.max_tokens <= 0:
            raise ValueError("CLIPSTER_MAX_TOKENS must be positive")

        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("CLIPSTER_TEMPERATURE must be between 0 and 2")

        # Each combo may be bound once
        seen: Dict[str, str] = {}
        for name, combo in self.hotkeys.items():
            if name not in DEFAULT_HOTKEYS:
                raise ValueError(f"Unknown hotkey binding: {name}")
            if not combo:
                continue
            if combo in seen:
                raise ValueError(
                    f"Hotkey {combo} is bound to both {seen[combo]} and {name}"
                )
            seen[combo] = name

        if not seen:
            warnings.append("All hotkeys are disabled; Clipster will not react to input")

        return warnings

    def model_for(self, provider: ProviderId) -> str:
        """Model name configured for a provider."""
        return self.provider_models.get(provider.value, DEFAULT_PROVIDER_MODELS[provider.value])

    @property
    def preferred_provider(self) -> Optional[ProviderId]:
        if self.default_provider is None:
            return None
        return ProviderId(self.default_provider)
