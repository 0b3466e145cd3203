"""
Transcriber Module
Local speech-to-text transcription using whisper.cpp via pywhispercpp.
"""

import logging
import os
import re
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from pywhispercpp.model import Model

from clipster.audio_processing import prepare_for_whisper
from clipster.exceptions import LocalTranscriptionError
from clipster.models import AudioBuffer

logger = logging.getLogger(__name__)

# Markers whisper emits for non-speech audio, e.g. "[BLANK_AUDIO]" or "(silence)"
NON_SPEECH_PATTERN = re.compile(
    r"[\[(]\s*(blank_audio|silence|music|noise|inaudible|no speech)[^\])]*[\])]",
    re.IGNORECASE,
)


class Transcriber(ABC):
    """Converts a captured audio buffer into text."""

    @abstractmethod
    def transcribe(self, buffer: AudioBuffer) -> str:
        """
        Transcribe audio to text.

        Returns:
            Transcript, or an empty string for silence or noise.

        Raises:
            LocalTranscriptionError: If transcription fails.
        """


def strip_non_speech(text: str) -> str:
    """Remove whisper's non-speech markers and collapse whitespace."""
    text = NON_SPEECH_PATTERN.sub(" ", text)
    return " ".join(text.split())


class LocalTranscriber(Transcriber):
    """Transcribes audio locally using whisper.cpp."""

    AVAILABLE_MODELS = [
        "tiny", "tiny.en",
        "base", "base.en",
        "small", "small.en",
        "medium", "medium.en",
        "large-v1", "large-v2", "large-v3"
    ]

    def __init__(
        self,
        model_name: str = "tiny.en",
        models_dir: Optional[str] = None,
        model_path: Optional[str] = None,
        language: str = "en",
        n_threads: int = 4,
    ):
        """
        Initialize local transcriber with whisper.cpp.

        Args:
            model_name: Whisper model to use (e.g., "tiny.en", "base.en")
            models_dir: Directory for model files. Defaults to ~/.cache/whisper/
            model_path: Explicit ggml model file; takes precedence over model_name
            language: Spoken language passed to whisper
            n_threads: Inference threads
        """
        self.model_name = model_name
        self.models_dir = models_dir or os.path.expanduser("~/.cache/whisper")
        self.model_path = model_path
        self.language = language
        self.n_threads = n_threads
        self._model: Optional[Model] = None
        # One whisper context, one inference at a time
        self._lock = threading.Lock()

        if model_path is None and model_name not in self.AVAILABLE_MODELS:
            raise ValueError(
                f"Unknown model: {model_name}. "
                f"Available models: {', '.join(self.AVAILABLE_MODELS)}"
            )

    def _ensure_model_loaded(self) -> None:
        """Load the model if not already loaded."""
        if self._model is not None:
            return
        try:
            if self.model_path is not None:
                logger.info(f"Loading whisper model from {self.model_path}")
                self._model = Model(
                    self.model_path,
                    n_threads=self.n_threads,
                    print_progress=False,
                    print_realtime=False,
                )
            else:
                Path(self.models_dir).mkdir(parents=True, exist_ok=True)
                logger.info(f"Loading whisper model '{self.model_name}'")
                self._model = Model(
                    self.model_name,
                    models_dir=self.models_dir,
                    n_threads=self.n_threads,
                    print_progress=False,
                    print_realtime=False,
                )
        except Exception as e:
            raise LocalTranscriptionError(
                f"Failed to load whisper model '{self.model_path or self.model_name}': {e}"
            )

    def transcribe(self, buffer: AudioBuffer) -> str:
        """
        Transcribe audio to text locally.

        Args:
            buffer: Captured mono audio at any sample rate

        Returns:
            Transcribed text, empty for silence.

        Raises:
            LocalTranscriptionError: If transcription fails.
        """
        if buffer.is_empty:
            return ""

        try:
            samples = prepare_for_whisper(buffer)
        except Exception as e:
            raise LocalTranscriptionError(f"Transcription failed: {e}")

        with self._lock:
            self._ensure_model_loaded()
            try:
                segments = self._model.transcribe(samples, language=self.language)
                text = " ".join(
                    segment.text.strip()
                    for segment in segments
                    if segment.text.strip()
                )
            except Exception as e:
                raise LocalTranscriptionError(f"Transcription failed: {e}")

        text = strip_non_speech(text)
        if not text:
            logger.info("No transcription generated (silence detected)")
        return text

    def is_model_downloaded(self) -> bool:
        """Check if the configured model is available locally."""
        return self.get_model_path().exists()

    def get_model_path(self) -> Path:
        """Get the path to the model file."""
        if self.model_path is not None:
            return Path(self.model_path)
        return Path(self.models_dir) / f"ggml-{self.model_name}.bin"

    @property
    def model_loaded(self) -> bool:
        """Whether the model is currently loaded in memory."""
        return self._model is not None

    def unload_model(self) -> None:
        """Unload model from memory to free RAM."""
        with self._lock:
            self._model = None
