"""
Audio Processing Module
Converts captured microphone audio into the input the whisper model expects.
"""

from math import gcd

import numpy as np
from scipy.signal import resample_poly

from clipster.models import AudioBuffer

WHISPER_SAMPLE_RATE = 16000


def to_float32(samples: np.ndarray) -> np.ndarray:
    """Convert int16 PCM samples to float32 in [-1, 1]."""
    if samples.dtype == np.float32:
        return samples
    if np.issubdtype(samples.dtype, np.integer):
        return samples.astype(np.float32) / 32768.0
    return samples.astype(np.float32)


def resample_to_16khz(samples: np.ndarray, original_rate: int) -> np.ndarray:
    """
    Resample float audio to 16 kHz.

    Args:
        samples: Mono float samples.
        original_rate: Sample rate of the input in Hz.

    Returns:
        Samples at 16 kHz (the input unchanged if already 16 kHz).
    """
    if original_rate == WHISPER_SAMPLE_RATE or len(samples) == 0:
        return samples
    divisor = gcd(WHISPER_SAMPLE_RATE, original_rate)
    up = WHISPER_SAMPLE_RATE // divisor
    down = original_rate // divisor
    return resample_poly(samples, up, down).astype(np.float32)


def normalize_audio(samples: np.ndarray) -> np.ndarray:
    """Scale samples so the loudest one has magnitude 1.0. Silence is left as is."""
    if len(samples) == 0:
        return samples
    max_amplitude = float(np.max(np.abs(samples)))
    if max_amplitude > 0.0:
        return (samples / max_amplitude).astype(np.float32)
    return samples


def rms_level(buffer: AudioBuffer) -> float:
    """Root-mean-square level of a buffer on the [-1, 1] scale."""
    if buffer.is_empty:
        return 0.0
    samples = to_float32(buffer.samples).astype(np.float64)
    return float(np.sqrt(np.mean(samples ** 2)))


def is_silent(buffer: AudioBuffer, threshold: float) -> bool:
    """Whether a buffer carries no usable signal."""
    return buffer.is_empty or rms_level(buffer) < threshold


def prepare_for_whisper(buffer: AudioBuffer) -> np.ndarray:
    """Float32, 16 kHz, peak-normalised mono samples."""
    samples = to_float32(buffer.samples)
    samples = resample_to_16khz(samples, buffer.sample_rate)
    return normalize_audio(samples)
