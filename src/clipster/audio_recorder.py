"""
Audio Recorder Module
Captures audio from microphone and stores in memory buffer.
"""

import logging
import threading
from collections import deque
from typing import Optional

import numpy as np
import sounddevice as sd

from clipster.exceptions import AudioBusyError, AudioRecordingError
from clipster.models import AudioBuffer

logger = logging.getLogger(__name__)


class AudioRecorder:
    """Records audio from microphone to memory buffer."""

    def __init__(self, sample_rate: int = 16000, channels: int = 1):
        """
        Initialize audio recorder.

        Args:
            sample_rate: Sample rate in Hz (default 16000 for Whisper)
            channels: Number of input channels; mixed down to mono on stop
        """
        self.sample_rate = sample_rate
        self.channels = channels
        self.buffer: deque = deque()
        self.stream: Optional[sd.InputStream] = None
        self._is_recording = False
        self._lock = threading.Lock()

    def _audio_callback(self, indata: np.ndarray, frames: int,
                        time_info, status) -> None:
        """Callback for audio stream - appends chunks to buffer."""
        if status:
            logger.debug(f"Audio callback status: {status}")
        self.buffer.append(indata.copy())

    def start(self) -> None:
        """
        Begin capturing audio from default input device.

        Raises:
            AudioBusyError: If a capture is already running.
            AudioRecordingError: If the input stream cannot be opened.
        """
        with self._lock:
            if self._is_recording:
                raise AudioBusyError("Microphone capture already in progress")

            self.buffer.clear()
            try:
                stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype='int16',
                    callback=self._audio_callback
                )
                stream.start()
            except Exception as e:
                raise AudioRecordingError(f"Failed to open microphone: {e}") from e

            self.stream = stream
            self._is_recording = True
            logger.debug(f"Recording started ({self.sample_rate} Hz)")

    def stop(self) -> AudioBuffer:
        """
        Stop recording and return the captured audio.

        Returns:
            Mono int16 buffer. Empty if nothing was recorded or if no
            recording was running.
        """
        with self._lock:
            if not self._is_recording:
                return AudioBuffer.empty(self.sample_rate)
            self._close_stream()

            if not self.buffer:
                return AudioBuffer.empty(self.sample_rate)

            audio_data = np.concatenate(list(self.buffer))
            self.buffer.clear()

        if audio_data.ndim > 1:
            if audio_data.shape[1] > 1:
                audio_data = audio_data.mean(axis=1).astype(np.int16)
            else:
                audio_data = audio_data[:, 0]

        buffer = AudioBuffer(samples=audio_data, sample_rate=self.sample_rate)
        logger.debug(f"Recording stopped ({buffer.duration:.2f}s)")
        return buffer

    def discard(self) -> None:
        """Stop recording and throw the captured audio away."""
        with self._lock:
            if self._is_recording:
                self._close_stream()
            self.buffer.clear()
        logger.debug("Recording discarded")

    def _close_stream(self) -> None:
        try:
            self.stream.stop()
            self.stream.close()
        except Exception as e:
            logger.warning(f"Error closing audio stream: {e}")
        finally:
            self.stream = None
            self._is_recording = False

    def get_duration(self) -> float:
        """Return current recording duration in seconds."""
        if not self.buffer:
            return 0.0
        total_samples = sum(chunk.shape[0] for chunk in self.buffer)
        return total_samples / self.sample_rate

    @property
    def is_recording(self) -> bool:
        """Whether recording is currently active."""
        return self._is_recording
