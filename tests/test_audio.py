import numpy as np
import pytest

from tunenote.audio import (
    AudioBuffer,
    AudioCaptureError,
    DefaultCapturer,
    DeviceCapturer,
)


class FakeStream:
    def __init__(self, sample_rate, channels, frames, on_samples, fail_start=False):
        self.sample_rate = sample_rate
        self.channels = channels
        self.frames = frames
        self.on_samples = on_samples
        self.fail_start = fail_start
        self.events = []

    def start(self):
        self.events.append("start")
        if self.fail_start:
            raise OSError("device busy")

    def stop(self):
        self.events.append("stop")

    def close(self):
        self.events.append("close")


def make_capturer(channels=1, buffer_size=4096, fail_start=False):
    streams = []

    def factory(sample_rate, chans, frames, on_samples):
        stream = FakeStream(sample_rate, chans, frames, on_samples, fail_start)
        streams.append(stream)
        return stream

    capturer = DeviceCapturer(
        buffer_size, 44100, channels, stream_factory=factory
    )
    return capturer, streams


def test_audio_buffer_converts_to_float32():
    buf = AudioBuffer([0.5, -0.25], 22050)
    assert buf.samples.dtype == np.float32
    assert len(buf) == 2
    assert buf.sample_rate == 22050


def test_audio_buffer_copy_is_independent():
    buf = AudioBuffer([1.0, 2.0])
    clone = buf.copy()
    clone.samples[0] = 9.0
    assert buf.samples[0] == 1.0


def test_default_capturer_lifecycle():
    capturer = DefaultCapturer()
    assert capturer.is_capturing() is False
    with pytest.raises(AudioCaptureError):
        capturer.get_buffer()
    capturer.start()
    assert capturer.is_capturing() is True
    buf = capturer.get_buffer()
    assert len(buf) == 0
    assert buf.sample_rate == 44100
    capturer.stop()
    assert capturer.is_capturing() is False


def test_default_capturer_double_start_and_stop_raise():
    capturer = DefaultCapturer()
    with pytest.raises(AudioCaptureError, match="not started"):
        capturer.stop()
    capturer.start()
    with pytest.raises(AudioCaptureError, match="already started"):
        capturer.start()


def test_device_capturer_requires_start_for_buffer():
    capturer, _ = make_capturer()
    with pytest.raises(AudioCaptureError):
        capturer.get_buffer()
    with pytest.raises(AudioCaptureError):
        capturer.stop()


def test_device_capturer_opens_and_closes_stream():
    capturer, streams = make_capturer(channels=2, buffer_size=4096)
    capturer.start()
    assert capturer.is_capturing() is True
    stream = streams[0]
    assert stream.frames == 2048
    assert stream.channels == 2
    assert stream.sample_rate == 44100
    with pytest.raises(AudioCaptureError):
        capturer.start()
    capturer.stop()
    assert stream.events == ["start", "stop", "close"]
    assert capturer.is_capturing() is False


def test_failed_start_closes_stream():
    capturer, streams = make_capturer(fail_start=True)
    with pytest.raises(OSError):
        capturer.start()
    assert streams[0].events == ["start", "close"]
    assert capturer.is_capturing() is False


def test_mono_samples_are_amplified():
    capturer, streams = make_capturer()
    capturer.start()
    capturer.set_amplification(2.0)
    streams[0].on_samples(np.array([0.1, -0.2], dtype=np.float32))
    buf = capturer.get_buffer()
    assert buf.samples.tolist() == pytest.approx([0.2, -0.4], rel=1e-5)
    assert buf.sample_rate == 44100


def test_multichannel_samples_are_averaged():
    capturer, _ = make_capturer(channels=2)
    capturer.start()
    capturer.set_amplification(1.0)
    capturer.process_audio([0.2, 0.4, 0.6, 0.8, 0.5])
    buf = capturer.get_buffer()
    assert len(buf) == 2
    assert buf.samples.tolist() == pytest.approx([0.3, 0.7], rel=1e-5)


def test_amplification_is_clamped():
    capturer, _ = make_capturer()
    capturer.start()
    capturer.set_amplification(0.0)
    capturer.process_audio([1.0])
    assert capturer.get_buffer().samples.tolist() == pytest.approx([0.1], rel=1e-5)


def test_get_buffer_returns_copy():
    capturer, _ = make_capturer()
    capturer.start()
    capturer.set_amplification(1.0)
    capturer.process_audio([0.5, 0.5])
    first = capturer.get_buffer()
    first.samples[:] = 0.0
    second = capturer.get_buffer()
    assert second.samples.tolist() == [0.5, 0.5]


def test_invalid_channels_rejected():
    with pytest.raises(ValueError):
        DeviceCapturer(4096, 44100, 0, stream_factory=lambda *a: None)