"""Audio capture: buffers of mono samples and the capturers that fill them."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

import numpy as np

DEFAULT_SAMPLE_RATE = 44100
DEFAULT_BUFFER_SIZE = 4096
DEFAULT_AMPLIFICATION = 5.0
MIN_AMPLIFICATION = 0.1


class AudioCaptureError(RuntimeError):
    """Raised when a capturer is used in the wrong state or cannot open a device."""


def _empty_samples() -> np.ndarray:
    return np.zeros(0, dtype=np.float32)


@dataclass
class AudioBuffer:
    """A block of mono samples together with the rate they were taken at."""

    samples: np.ndarray = field(default_factory=_empty_samples)
    sample_rate: int = DEFAULT_SAMPLE_RATE

    def __post_init__(self) -> None:
        self.samples = np.asarray(self.samples, dtype=np.float32)

    def __len__(self) -> int:
        return len(self.samples)

    def copy(self) -> AudioBuffer:
        """Return an independent copy of this buffer."""
        return AudioBuffer(self.samples.copy(), self.sample_rate)


class Capturer(ABC):
    """Something that records audio and hands out its latest buffer."""

    @abstractmethod
    def start(self) -> None:
        """Begin capturing audio."""

    @abstractmethod
    def stop(self) -> None:
        """Stop capturing audio."""

    @abstractmethod
    def get_buffer(self) -> AudioBuffer:
        """Return the most recent audio buffer."""

    @abstractmethod
    def is_capturing(self) -> bool:
        """Tell whether audio is currently being captured."""


class DefaultCapturer(Capturer):
    """A capturer with no device behind it; its buffer stays empty."""

    def __init__(self, sample_rate: int = DEFAULT_SAMPLE_RATE) -> None:
        self._capturing = False
        self._buffer = AudioBuffer(_empty_samples(), sample_rate)

    def start(self) -> None:
        if self._capturing:
            raise AudioCaptureError("audio capture already started")
        print("Starting audio capture...")
        self._capturing = True

    def stop(self) -> None:
        if not self._capturing:
            raise AudioCaptureError("audio capture not started")
        print("Stopping audio capture...")
        self._capturing = False

    def get_buffer(self) -> AudioBuffer:
        if not self._capturing:
            raise AudioCaptureError("audio capture not started")
        return self._buffer

    def is_capturing(self) -> bool:
        return self._capturing


class Stream(Protocol):
    """An open input stream as produced by a stream factory."""

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def close(self) -> None: ...


SampleCallback = Callable[[np.ndarray], None]
StreamFactory = Callable[[int, int, int, SampleCallback], Stream]


class _PygameStream:
    """Input stream on the default capture device, read as 32-bit floats."""

    def __init__(
        self, sample_rate: int, channels: int, frames: int, on_samples: SampleCallback
    ) -> None:
        import pygame
        from pygame._sdl2 import audio as sdl_audio

        pygame.init()
        names = sdl_audio.get_audio_device_names(True)
        if not names:
            pygame.quit()
            raise AudioCaptureError("no audio input device available")

        def callback(_device: Any, memory: memoryview) -> None:
            on_samples(np.frombuffer(bytes(memory), dtype=np.float32))

        self._pygame = pygame
        self._device = sdl_audio.AudioDevice(
            devicename=names[0],
            iscapture=True,
            frequency=sample_rate,
            audioformat=sdl_audio.AUDIO_F32,
            numchannels=channels,
            chunksize=frames,
            allowed_changes=0,
            callback=callback,
        )

    def start(self) -> None:
        self._device.pause(0)

    def stop(self) -> None:
        self._device.pause(1)

    def close(self) -> None:
        self._device.close()
        self._pygame.quit()


class DeviceCapturer(Capturer):
    """Captures from an input device, mixing to mono and amplifying."""

    def __init__(
        self,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        channels: int = 1,
        *,
        stream_factory: StreamFactory | None = None,
    ) -> None:
        if channels < 1:
            raise ValueError("channels must be at least 1")
        if buffer_size < channels:
            raise ValueError("buffer_size must hold at least one frame")
        self.buffer_size = buffer_size
        self.sample_rate = sample_rate
        self.channels = channels
        self._stream_factory: StreamFactory = stream_factory or _PygameStream
        self._stream: Stream | None = None
        self._capturing = False
        self._amplification = DEFAULT_AMPLIFICATION
        self._buffer = AudioBuffer(_empty_samples(), sample_rate)
        self._lock = threading.Lock()

    def start(self) -> None:
        if self._capturing:
            raise AudioCaptureError("audio capture already started")
        stream = self._stream_factory(
            self.sample_rate,
            self.channels,
            self.buffer_size // self.channels,
            self.process_audio,
        )
        try:
            stream.start()
        except Exception:
            stream.close()
            raise
        self._stream = stream
        self._capturing = True

    def stop(self) -> None:
        if not self._capturing or self._stream is None:
            raise AudioCaptureError("audio capture not started")
        self._stream.stop()
        self._stream.close()
        self._stream = None
        self._capturing = False

    def process_audio(self, samples: Iterable[float] | np.ndarray) -> None:
        """Store interleaved input as an amplified mono buffer."""
        data = np.asarray(samples, dtype=np.float32)
        with self._lock:
            if self.channels > 1:
                frames = len(data) // self.channels
                mono = (
                    data[: frames * self.channels]
                    .reshape(frames, self.channels)
                    .mean(axis=1, dtype=np.float32)
                )
            else:
                mono = data
            self._buffer.samples = (mono * np.float32(self._amplification)).astype(
                np.float32
            )

    def get_buffer(self) -> AudioBuffer:
        if not self._capturing:
            raise AudioCaptureError("audio capture not started")
        with self._lock:
            return self._buffer.copy()

    def is_capturing(self) -> bool:
        return self._capturing

    def set_amplification(self, factor: float) -> None:
        """Set the gain applied to incoming samples; values below 0.1 become 0.1."""
        with self._lock:
            self._amplification = max(float(factor), MIN_AMPLIFICATION)