"""Command-line entry point: capture audio, detect notes and show them."""

from __future__ import annotations

import argparse
import math
import queue
import sys
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import blessed
import numpy as np

from tunenote.audio import AudioBuffer, AudioCaptureError, Capturer, DeviceCapturer
from tunenote.pitch import FFTDetector, PitchError
from tunenote.ui import (
    ClearNote,
    KeyPress,
    Model,
    Tick,
    UpdateAudioLevel,
    UpdateNote,
    WindowSize,
)

BUFFER_SIZE = 4096
SAMPLE_RATE = 44100
CHANNELS = 1
AMPLIFICATION_LEVEL = 7.0

ENABLE_LEVEL_DEBUG = True
DEBUG_INTERVAL = 0.2
STABILIZATION_DELAY = 0.3
NOTE_INTERVAL = 0.08

MIN_SAMPLES = 512
SHORT_PAUSE = 0.01
LONG_PAUSE = 0.05
SILENT_DB = -100.0
RISE_DB = 3.0
RISE_FLOOR_DB = -40.0
SILENCE_DB = -30.0
KEY_TIMEOUT = 0.1


def get_audio_level(buffer: AudioBuffer | None) -> tuple[float, float]:
    """Return the RMS level of a buffer and that level in decibels."""
    if buffer is None or len(buffer.samples) == 0:
        return 0.0, SILENT_DB
    samples = np.asarray(buffer.samples, dtype=np.float32)
    sum_squares = np.sum(samples * samples, dtype=np.float32)
    rms = float(np.sqrt(sum_squares / np.float32(len(samples))))
    db = 20 * math.log10(rms) if rms > 1e-7 else SILENT_DB
    return rms, db


@dataclass
class AudioProcessor:
    """Decides, buffer by buffer, which messages the display should receive."""

    detector: Any
    enable_level_debug: bool = ENABLE_LEVEL_DEBUG
    debug_interval: float = DEBUG_INTERVAL
    stabilization_delay: float = STABILIZATION_DELAY
    note_interval: float = NOTE_INTERVAL
    last_debug_time: float = field(default_factory=time.monotonic)
    last_note_time: float = field(default_factory=time.monotonic)
    is_volume_rising: bool = False
    volume_rise_time: float = 0.0
    last_db: float = SILENT_DB

    def process(self, buffer: AudioBuffer, now: float) -> tuple[list[object], float]:
        """Handle one buffer taken at time `now` (seconds).

        Returns the messages for the display and how long to pause before
        the next buffer.
        """
        if buffer is None or len(buffer.samples) < MIN_SAMPLES:
            return [], SHORT_PAUSE

        messages: list[object] = []
        rms, db = get_audio_level(buffer)

        if self.enable_level_debug and now - self.last_debug_time > self.debug_interval:
            messages.append(UpdateAudioLevel(rms, db))
            self.last_debug_time = now

        if db > self.last_db + RISE_DB and db > RISE_FLOOR_DB and not self.is_volume_rising:
            self.is_volume_rising = True
            self.volume_rise_time = now
            self.last_db = db
            return messages, SHORT_PAUSE
        self.last_db = db

        if db < SILENCE_DB:
            messages.append(ClearNote())
            self.is_volume_rising = False
            return messages, LONG_PAUSE

        if self.is_volume_rising and now - self.volume_rise_time < self.stabilization_delay:
            return messages, SHORT_PAUSE
        self.is_volume_rising = False

        try:
            note = self.detector.detect_pitch(buffer)
        except PitchError:
            messages.append(ClearNote())
            return messages, LONG_PAUSE

        if now - self.last_note_time > self.note_interval:
            messages.append(UpdateNote(note))
            self.last_note_time = now
        return messages, LONG_PAUSE


def _capture_loop(
    capturer: Capturer,
    processor: AudioProcessor,
    send: Callable[[object], None],
    stop: threading.Event,
) -> None:
    while not stop.is_set():
        try:
            buffer = capturer.get_buffer()
        except AudioCaptureError:
            stop.wait(SHORT_PAUSE)
            continue
        messages, pause = processor.process(buffer, time.monotonic())
        for message in messages:
            send(message)
        stop.wait(pause)


def _key_name(key: Any) -> str:
    if key.is_sequence:
        return (key.name or "").lower().removeprefix("key_")
    text = str(key)
    if text == " ":
        return "space"
    if text == "\x03":
        return "ctrl+c"
    return text


def _run_ui(model: Model, inbox: queue.Queue) -> None:
    term = blessed.Terminal()
    size: tuple[int, int] | None = None
    with term.fullscreen(), term.cbreak(), term.hidden_cursor():
        while not model.quit_requested:
            current = (term.width, term.height)
            if current != size:
                size = current
                model.update(WindowSize(*current))
            while True:
                try:
                    model.update(inbox.get_nowait())
                except queue.Empty:
                    break
            sys.stdout.write(term.home + term.clear + model.view())
            sys.stdout.flush()
            key = term.inkey(timeout=KEY_TIMEOUT)
            model.update(KeyPress(_key_name(key)) if key else Tick(time.time()))


def main(argv: list[str] | None = None) -> int:
    """Listen on the default input device and show the notes heard."""
    parser = argparse.ArgumentParser(
        prog="tunenote",
        description="Show the musical note heard on the default audio input.",
    )
    parser.parse_args(argv)

    print("TuneNote - Starting application...")
    try:
        capturer = DeviceCapturer(BUFFER_SIZE, SAMPLE_RATE, CHANNELS)
    except Exception as exc:
        print(f"Failed to create audio capturer: {exc}", file=sys.stderr)
        return 1
    detector = FFTDetector(BUFFER_SIZE)
    model = Model()

    try:
        capturer.start()
    except Exception as exc:
        print(f"Failed to start audio capture: {exc}", file=sys.stderr)
        return 1

    inbox: queue.Queue = queue.Queue()
    stop = threading.Event()
    processor = AudioProcessor(detector)
    worker = threading.Thread(
        target=_capture_loop,
        args=(capturer, processor, inbox.put, stop),
        daemon=True,
    )
    try:
        capturer.set_amplification(AMPLIFICATION_LEVEL)
        print("Listening for musical notes...")
        worker.start()
        try:
            _run_ui(model, inbox)
        except KeyboardInterrupt:
            pass
        except Exception as exc:
            print(f"Error running program: {exc}")
            return 1
    finally:
        stop.set()
        if worker.is_alive():
            worker.join(timeout=1.0)
        capturer.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())