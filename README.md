# tunenote

A terminal musical note detector. It listens to the first audio capture
device that pygame (SDL2) reports and estimates the pitch of the sound with an
FFT. It shows the nearest note name, the octave, the frequency, and how many
cents the sound is off the exact pitch. A timeline keeps a record of the notes
played most recently.

## Installation

```
pip install .
```

To install the test dependencies as well:

```
pip install ".[test]"
```

## Usage

```
tunenote
```

The command takes no options. It records mono audio at 44100 Hz in blocks of
4096 samples, amplifies the input sevenfold and draws a full-screen view in the
terminal.

Keys while running:

| Key             | Action                           |
|-----------------|----------------------------------|
| `f` or `space`  | freeze or resume the timeline    |
| `c`             | clear the timeline history       |
| `d`             | show or hide the audio level     |
| `q` or `ctrl+c` | quit                             |

Detection covers 80 Hz to 1200 Hz, which spans the range of a guitar. Quiet
input (below about -30 dB) is treated as silence and clears the display. After
a sharp rise in volume the detector waits 300 ms for the note to settle before
reporting it.

## Library use

The pitch detector works on any buffer of samples:

```python
import numpy as np
from tunenote.audio import AudioBuffer
from tunenote.pitch import FFTDetector, VolumeThresholdError

rate = 44100
t = np.arange(4096) / rate
buffer = AudioBuffer(samples=0.5 * np.sin(2 * np.pi * 440.0 * t), sample_rate=rate)

try:
    note = FFTDetector(4096).detect_pitch(buffer)
    print(note.name, note.octave, round(note.frequency, 1), round(note.cents, 1))
except VolumeThresholdError:
    print("too quiet")
```

- `tunenote.pitch.frequency_to_note` converts a positive frequency in Hz into
  a `Note` (reference pitch A4 = 440 Hz); other values raise `ValueError`.
- `FFTDetector.detect_pitch` raises `EmptyBufferError` for an empty buffer and
  `VolumeThresholdError` when the signal is too quiet or its strongest peak
  lies outside the detector's frequency range. Both derive from `PitchError`.
- `tunenote.audio.DeviceCapturer` records from the input device, mixes several
  channels down to mono and applies a gain set with `set_amplification`
  (never below 0.1). A custom stream can be supplied through its
  `stream_factory` keyword argument.
- `tunenote.ui.Model` holds the display state; feed it messages such as
  `UpdateNote`, `ClearNote`, `UpdateAudioLevel` and `KeyPress` with `update`,
  and `view()` returns the screen as a string with terminal colour codes.
- `tunenote.app.get_audio_level` returns the RMS level of a buffer and that
  level in decibels; `AudioProcessor` turns successive buffers into display
  messages.

## Limitations

The input device cannot be chosen: the first capture device reported by SDL2
is always used. `DefaultCapturer` has no device behind it and always hands out
an empty buffer.

## Tests

```
pytest
```