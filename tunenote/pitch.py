"""Pitch detection: turning audio buffers into musical notes."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from tunenote.audio import AudioBuffer

NOTE_NAMES = ("C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B")

# Frequencies of the notes in octave 0 (A4 = 440 Hz).
NOTE_FREQUENCIES = {
    "C": 16.35,
    "C#": 17.32,
    "D": 18.35,
    "D#": 19.45,
    "E": 20.60,
    "F": 21.83,
    "F#": 23.12,
    "G": 24.50,
    "G#": 25.96,
    "A": 27.50,
    "A#": 29.14,
    "B": 30.87,
}

REFERENCE_FREQUENCY = 440.0
DEFAULT_FREQUENCY = 440.0


class PitchError(Exception):
    """Base class for pitch detection failures."""


class EmptyBufferError(PitchError):
    """The audio buffer held no samples."""

    def __init__(self) -> None:
        super().__init__("empty audio buffer")


class VolumeThresholdError(PitchError):
    """The signal was too quiet, or its pitch out of range."""

    def __init__(self) -> None:
        super().__init__("volume below threshold")


@dataclass(frozen=True)
class Note:
    """A musical note with its measured frequency and deviation in cents."""

    name: str
    octave: int
    frequency: float
    cents: float

    def __str__(self) -> str:
        return f"{self.name}{self.octave}"


@dataclass(frozen=True)
class Peak:
    """A local maximum in a magnitude spectrum."""

    bin: int
    magnitude: float
    frequency: float


def _round_half_away(value: float) -> float:
    return math.copysign(math.floor(abs(value) + 0.5), value)


def frequency_to_note(frequency: float) -> Note:
    """Return the nearest equal-tempered note to a frequency."""
    if not frequency > 0:
        raise ValueError("frequency must be positive")
    semitones = 12 * math.log2(frequency / REFERENCE_FREQUENCY)
    rounded = _round_half_away(semitones)
    cents = 100 * (semitones - rounded)
    from_c4 = int(rounded) + 9
    return Note(
        name=NOTE_NAMES[from_c4 % 12],
        octave=4 + from_c4 // 12,
        frequency=frequency,
        cents=cents,
    )


def apply_hann_window(samples) -> np.ndarray:
    """Return the samples multiplied by a Hann window of the same length."""
    data = np.asarray(samples, dtype=np.float32)
    count = len(data)
    with np.errstate(divide="ignore", invalid="ignore"):
        coeff = 0.5 * (1 - np.cos(2 * np.pi * np.arange(count) / (count - 1)))
    return data * coeff.astype(np.float32)


class DefaultDetector:
    """A detector that reports A4 for any non-empty buffer."""

    def detect_pitch(self, buffer: AudioBuffer | None) -> Note:
        if buffer is None or len(buffer.samples) == 0:
            raise EmptyBufferError()
        return frequency_to_note(DEFAULT_FREQUENCY)


@dataclass
class FFTDetector:
    """Finds the strongest spectral peak within a frequency range."""

    window_size: int = 4096
    min_frequency: float = 80.0
    max_frequency: float = 1200.0
    noise_floor: float = 0.01
    peak_threshold: float = 0.2
    volume_threshold: float = 0.005

    def detect_pitch(self, buffer: AudioBuffer | None) -> Note:
        if buffer is None or len(buffer.samples) == 0:
            raise EmptyBufferError()

        samples = np.asarray(buffer.samples, dtype=np.float64)
        rms = float(np.sqrt(np.mean(samples * samples)))
        peak = float(np.max(np.abs(samples)))
        db_level = 20 * math.log10(rms) if rms > 1e-7 else -100.0

        if rms < self.volume_threshold or db_level < -50.0:
            raise VolumeThresholdError()
        if peak < self.volume_threshold * 2:
            raise VolumeThresholdError()

        windowed = apply_hann_window(buffer.samples).astype(np.float64)
        spectrum = np.fft.fft(windowed)
        frequency = self.find_fundamental_frequency(spectrum, buffer.sample_rate)

        if frequency < self.min_frequency or frequency > self.max_frequency:
            raise VolumeThresholdError()
        return frequency_to_note(frequency)

    def find_fundamental_frequency(self, spectrum, sample_rate: int) -> float:
        """Return the interpolated frequency of the strongest in-range peak."""
        spectrum = np.asarray(spectrum)
        size = len(spectrum)
        if size == 0:
            return DEFAULT_FREQUENCY
        magnitudes = np.abs(spectrum[: size // 2]).astype(np.float64)
        bin_size = sample_rate / size

        min_bin = max(int(self.min_frequency / bin_size), 1)
        max_bin = min(int(self.max_frequency / bin_size), len(magnitudes) - 1)

        in_range = magnitudes[min_bin : max_bin + 1] if max_bin >= min_bin else ()
        max_magnitude = float(np.max(in_range)) if len(in_range) else 0.0
        if max_magnitude < self.noise_floor:
            return DEFAULT_FREQUENCY

        bins = np.arange(min_bin + 1, max(max_bin, min_bin + 1))
        current = magnitudes[bins]
        previous = magnitudes[bins - 1]
        following = magnitudes[bins + 1]
        mask = (
            (current > previous)
            & (current > following)
            & (current > max_magnitude * self.peak_threshold)
        )

        peaks = [
            _make_peak(int(b), float(p), float(c), float(n), bin_size)
            for b, p, c, n in zip(
                bins[mask], previous[mask], current[mask], following[mask]
            )
        ]
        if not peaks:
            return DEFAULT_FREQUENCY
        return max(peaks, key=lambda found: found.magnitude).frequency


def _make_peak(
    index: int, previous: float, current: float, following: float, bin_size: float
) -> Peak:
    denominator = previous - 2 * current + following
    if denominator != 0:
        delta = 0.5 * (previous - following) / denominator
        return Peak(index, current, (index + delta) * bin_size)
    return Peak(index, current, index * bin_size)