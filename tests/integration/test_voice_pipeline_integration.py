"""
Integration tests for the voice pipeline with real hardware and models.

Skipped unless the resources are present:
- CLIPSTER_TEST_MICROPHONE=1 enables tests that record from the default input device
- a downloaded ggml model in CLIPSTER_MODELS_DIR (or ~/.cache/whisper) enables whisper tests
"""

import os
import time

import numpy as np
import pytest

from clipster.models import AudioBuffer

MODELS_DIR = os.environ.get("CLIPSTER_MODELS_DIR", os.path.expanduser("~/.cache/whisper"))
MODEL_NAME = os.environ.get("CLIPSTER_WHISPER_MODEL", "tiny.en")

requires_microphone = pytest.mark.skipif(
    os.environ.get("CLIPSTER_TEST_MICROPHONE") != "1",
    reason="set CLIPSTER_TEST_MICROPHONE=1 to record from the microphone",
)
requires_whisper = pytest.mark.skipif(
    not os.path.isfile(os.path.join(MODELS_DIR, f"ggml-{MODEL_NAME}.bin")),
    reason=f"whisper model ggml-{MODEL_NAME}.bin not downloaded",
)


@pytest.mark.integration
@pytest.mark.requires_microphone
@requires_microphone
class TestAudioRecorderIntegration:
    """Recording from the real default input device."""

    def test_real_recording_short(self):
        from clipster.audio_recorder import AudioRecorder

        recorder = AudioRecorder(sample_rate=16000)
        recorder.start()
        time.sleep(0.5)
        buffer = recorder.stop()

        assert buffer.sample_rate == 16000
        assert buffer.samples.dtype == np.int16
        assert 0.3 < buffer.duration < 0.8, f"Duration {buffer.duration}s not in expected range"

    def test_discard_then_record_again(self):
        from clipster.audio_recorder import AudioRecorder

        recorder = AudioRecorder()
        recorder.start()
        time.sleep(0.2)
        recorder.discard()

        recorder.start()
        time.sleep(0.2)
        buffer = recorder.stop()

        assert buffer.duration < 0.5


@pytest.mark.integration
@pytest.mark.requires_whisper
@requires_whisper
class TestLocalTranscriberIntegration:
    """whisper.cpp inference on synthetic audio."""

    @pytest.fixture(scope="class")
    def transcriber(self):
        from clipster.transcriber import LocalTranscriber
        return LocalTranscriber(model_name=MODEL_NAME, models_dir=MODELS_DIR)

    def test_silence_produces_little_text(self, transcriber):
        buffer = AudioBuffer(samples=np.zeros(16000, dtype=np.int16), sample_rate=16000)

        result = transcriber.transcribe(buffer)

        assert len(result.strip()) < 20, f"Silence produced too much text: {result}"

    def test_tone_at_other_sample_rate(self, transcriber):
        t = np.linspace(0, 1.0, 44100, endpoint=False)
        samples = (np.sin(2 * np.pi * 440 * t) * 8000).astype(np.int16)

        result = transcriber.transcribe(AudioBuffer(samples=samples, sample_rate=44100))

        # A pure tone carries no words, only check inference runs end to end
        assert isinstance(result, str)

    def test_latency_acceptable(self, transcriber):
        buffer = AudioBuffer(samples=np.zeros(16000 * 3, dtype=np.int16), sample_rate=16000)
        transcriber.transcribe(buffer)  # warm-up loads the model

        start = time.monotonic()
        transcriber.transcribe(buffer)
        elapsed = time.monotonic() - start

        assert elapsed < 10.0, f"Transcription took {elapsed:.1f}s"
