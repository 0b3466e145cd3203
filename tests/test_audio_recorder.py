"""
Tests for the Audio Recorder Module.

The sounddevice stream is patched; audio chunks are fed through the
recorder's callback as the stream would deliver them.
"""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from clipster.audio_recorder import AudioRecorder
from clipster.exceptions import AudioBusyError, AudioRecordingError


@pytest.fixture
def mock_sd():
    with patch("clipster.audio_recorder.sd") as sd:
        sd.InputStream.return_value = MagicMock()
        yield sd


def feed(recorder, chunk):
    recorder._audio_callback(chunk, len(chunk), None, None)


class TestAudioRecorderLifecycle:

    def test_initial_state(self):
        recorder = AudioRecorder()
        assert recorder.sample_rate == 16000
        assert recorder.channels == 1
        assert not recorder.is_recording
        assert recorder.get_duration() == 0.0

    def test_start_opens_int16_stream(self, mock_sd):
        recorder = AudioRecorder(sample_rate=44100)

        recorder.start()

        assert recorder.is_recording
        kwargs = mock_sd.InputStream.call_args.kwargs
        assert kwargs["samplerate"] == 44100
        assert kwargs["channels"] == 1
        assert kwargs["dtype"] == "int16"
        assert kwargs["callback"] == recorder._audio_callback
        mock_sd.InputStream.return_value.start.assert_called_once()

    def test_start_while_recording_is_busy(self, mock_sd):
        recorder = AudioRecorder()
        recorder.start()

        with pytest.raises(AudioBusyError):
            recorder.start()

        assert mock_sd.InputStream.call_count == 1

    def test_stream_failure_raises_recording_error(self, mock_sd):
        mock_sd.InputStream.side_effect = RuntimeError("no default input device")
        recorder = AudioRecorder()

        with pytest.raises(AudioRecordingError, match="no default input device"):
            recorder.start()

        assert not recorder.is_recording

    def test_busy_error_is_a_recording_error(self):
        assert issubclass(AudioBusyError, AudioRecordingError)

    def test_stop_returns_captured_audio(self, mock_sd):
        recorder = AudioRecorder()
        recorder.start()
        feed(recorder, np.full((1600, 1), 100, dtype=np.int16))
        feed(recorder, np.full((1600, 1), -100, dtype=np.int16))

        buffer = recorder.stop()

        assert not recorder.is_recording
        assert buffer.sample_rate == 16000
        assert buffer.samples.shape == (3200,)
        assert buffer.samples.dtype == np.int16
        assert buffer.duration == pytest.approx(0.2)
        stream = mock_sd.InputStream.return_value
        stream.stop.assert_called_once()
        stream.close.assert_called_once()

    def test_stop_mixes_stereo_to_mono(self, mock_sd):
        recorder = AudioRecorder(channels=2)
        recorder.start()
        chunk = np.array([[100, 300], [-200, 0]], dtype=np.int16)
        feed(recorder, chunk)

        buffer = recorder.stop()

        np.testing.assert_array_equal(buffer.samples, np.array([200, -100], dtype=np.int16))

    def test_stop_without_data_is_empty(self, mock_sd):
        recorder = AudioRecorder()
        recorder.start()

        buffer = recorder.stop()

        assert buffer.is_empty
        assert not recorder.is_recording

    def test_stop_when_not_recording_is_empty(self):
        buffer = AudioRecorder().stop()
        assert buffer.is_empty

    def test_start_clears_previous_audio(self, mock_sd):
        recorder = AudioRecorder()
        recorder.start()
        feed(recorder, np.ones((800, 1), dtype=np.int16))
        recorder.stop()

        recorder.start()
        feed(recorder, np.ones((160, 1), dtype=np.int16))
        buffer = recorder.stop()

        assert len(buffer.samples) == 160

    def test_discard_releases_microphone(self, mock_sd):
        recorder = AudioRecorder()
        recorder.start()
        feed(recorder, np.ones((800, 1), dtype=np.int16))

        recorder.discard()

        assert not recorder.is_recording
        assert recorder.get_duration() == 0.0
        mock_sd.InputStream.return_value.close.assert_called_once()
        recorder.start()
        assert recorder.is_recording

    def test_discard_when_idle_is_noop(self, mock_sd):
        recorder = AudioRecorder()
        recorder.discard()
        mock_sd.InputStream.assert_not_called()

    def test_close_error_is_not_raised(self, mock_sd):
        mock_sd.InputStream.return_value.stop.side_effect = RuntimeError("device vanished")
        recorder = AudioRecorder()
        recorder.start()

        recorder.stop()

        assert not recorder.is_recording

    def test_get_duration_while_recording(self, mock_sd):
        recorder = AudioRecorder(sample_rate=16000)
        recorder.start()
        feed(recorder, np.zeros((8000, 1), dtype=np.int16))

        assert recorder.get_duration() == pytest.approx(0.5)

    def test_callback_copies_chunk(self, mock_sd):
        recorder = AudioRecorder()
        recorder.start()
        chunk = np.ones((10, 1), dtype=np.int16)
        feed(recorder, chunk)
        chunk[:] = 0

        buffer = recorder.stop()

        assert buffer.samples.sum() == 10
