"""Terminal view of the detected note, the note timeline and the audio level."""

from __future__ import annotations

import io
import time
from dataclasses import dataclass, field

from rich import box
from rich.align import Align
from rich.console import Console, Group, RenderableType
from rich.padding import Padding
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tunenote.pitch import Note

MAX_TIMELINE_ENTRIES = 50
TIMELINE_WIDTH = 70
NOTE_DISPLAY_WIDTH = 3
BOX_WIDTH = 8
DEFAULT_WIDTH = 100

NOTE_COLORS = {
    "C": "#e5cf9e",
    "D": "#663e7d",
    "E": "#e3a53e",
    "F": "#c4563f",
    "G": "#43873c",
    "A": "#b64040",
    "B": "#2a7bba",
}
NATURAL_NOTES = ("C", "D", "E", "F", "G", "A", "B")

TITLE_STYLE = "bold #FAFAFA on #7D56F4"
INFO_STYLE = "#CCCCCC"
DEBUG_STYLE = "#888888"
LABEL_STYLE = "#CCCCCC"
NOTE_TEXT_STYLE = "bold #FAFAFA"
NO_SOUND_BACKGROUND = "#888888"
NOTE_BORDER = "#333333"
TIMELINE_BORDER = "#666666"

HELP_TEXT = (
    "Press f or space to freeze/resume | Press c to clear history | "
    "Press d to toggle debug | Press q to quit"
)


@dataclass(frozen=True)
class Tick:
    """A periodic timer tick."""

    time: float


@dataclass(frozen=True)
class UpdateNote:
    """A newly detected note."""

    note: Note


@dataclass(frozen=True)
class UpdateAudioLevel:
    """The latest measured input level."""

    rms: float
    db: float


@dataclass(frozen=True)
class ClearNote:
    """No sound is being detected; clear the note display."""


@dataclass(frozen=True)
class KeyPress:
    """A key pressed by the user, named like "q", "space" or "ctrl+c"."""

    key: str


@dataclass(frozen=True)
class WindowSize:
    """The terminal's current size."""

    width: int
    height: int


@dataclass(frozen=True)
class TimelineEntry:
    """A note in the timeline and when it was recorded."""

    note: Note
    timestamp: float


def get_next_note(note: str) -> str:
    """Return the natural note after the given one, wrapping from B to C."""
    if note not in NATURAL_NOTES:
        return note
    index = NATURAL_NOTES.index(note)
    return NATURAL_NOTES[(index + 1) % len(NATURAL_NOTES)]


def get_note_color(note_name: str) -> str | None:
    """Return the colour of a note; a sharp takes the colour of its base note."""
    if note_name.endswith("#"):
        return NOTE_COLORS.get(note_name[0])
    return NOTE_COLORS.get(note_name)


def render_timeline_note(note: Note | None) -> Text:
    """Return a compact coloured block for one timeline entry."""
    if note is None:
        return Text(" " * NOTE_DISPLAY_WIDTH)
    label = note.name.ljust(2).center(NOTE_DISPLAY_WIDTH)
    color = get_note_color(note.name)
    style = f"#FFFFFF on {color}" if color else "#FFFFFF"
    return Text(label, style=style)


def _note_panel(text: str, background: str, content_width: int) -> Panel:
    return Panel(
        Align.center(Text(text)),
        box=box.ROUNDED,
        style=f"{NOTE_TEXT_STYLE} on {background}",
        border_style=NOTE_BORDER,
        padding=(2, 4),
        width=content_width + 10,
    )


def _button(label: str, background: str, border: str) -> Padding:
    panel = Panel(
        Text(label),
        box=box.ROUNDED,
        style=f"bold #FFFFFF on {background}",
        border_style=border,
        padding=(0, 2),
        expand=False,
    )
    return Padding(panel, (0, 0, 0, 2))


def _timeline_panel(content: RenderableType) -> Panel:
    return Panel(
        content,
        box=box.ROUNDED,
        border_style=TIMELINE_BORDER,
        padding=(0, 1),
        width=TIMELINE_WIDTH + 4 + 2,
    )


@dataclass
class Model:
    """State of the tuner display, changed by messages and drawn by view()."""

    current_note: Note | None = None
    timeline: list[TimelineEntry] = field(default_factory=list)
    last_update: float = field(default_factory=time.time)
    width: int = 0
    height: int = 0
    is_silence: bool = True
    silence_since: float = field(default_factory=time.time)
    audio_rms: float = 0.0
    audio_db: float = 0.0
    show_debug: bool = True
    timeline_frozen: bool = False
    quit_requested: bool = False

    def update(self, msg: object) -> None:
        """Apply a message to the model."""
        match msg:
            case KeyPress(key=key):
                self._handle_key(key)
            case WindowSize(width=width, height=height):
                self.width = width
                self.height = height
            case UpdateNote(note=note):
                self._show_note(note)
            case UpdateAudioLevel(rms=rms, db=db):
                self.audio_rms = rms
                self.audio_db = db
            case ClearNote():
                self.current_note = None
                self.is_silence = True
                self.silence_since = time.time()
            case _:
                pass

    def _handle_key(self, key: str) -> None:
        if key in ("q", "ctrl+c"):
            self.quit_requested = True
        elif key == "d":
            self.show_debug = not self.show_debug
        elif key in ("f", "space"):
            self.timeline_frozen = not self.timeline_frozen
        elif key == "c":
            self.timeline.clear()

    def _show_note(self, note: Note) -> None:
        self.is_silence = False
        current = self.current_note
        is_new = current is None or (note.name, note.octave) != (
            current.name,
            current.octave,
        )
        self.current_note = note
        if is_new and not self.timeline_frozen:
            self.timeline.append(TimelineEntry(note, time.time()))
            del self.timeline[:-MAX_TIMELINE_ENTRIES]
        self.last_update = time.time()

    def _note_section(self) -> list[RenderableType]:
        note = self.current_note
        if note is None:
            return [
                _note_panel("---", NO_SOUND_BACKGROUND, BOX_WIDTH),
                Text(""),
                Text("Make a sound to see the note...", style=INFO_STYLE),
            ]

        text = f"{note.name}{note.octave}"
        if note.name.endswith("#"):
            base = note.name[0]
            half = BOX_WIDTH // 2
            grid = Table.grid(padding=0)
            grid.add_column()
            grid.add_column()
            grid.add_row(
                _note_panel(base, NOTE_COLORS[base], half),
                _note_panel("#" + text[2:], NOTE_COLORS[get_next_note(base)], half),
            )
            box_view: RenderableType = grid
        else:
            box_view = _note_panel(text, NOTE_COLORS.get(note.name, ""), BOX_WIDTH)

        info = f"Frequency: {note.frequency:.2f} Hz | Cents: {note.cents:+.1f}"
        return [box_view, Text(""), Text(info, style=INFO_STYLE)]

    def _timeline_section(self) -> list[RenderableType]:
        if not self.timeline:
            return [_timeline_panel(Text("No notes recorded yet"))]

        if self.timeline_frozen:
            label, button_text = "Timeline: FROZEN", "Resume"
        else:
            label, button_text = "Timeline: (newest notes on the right)", "Freeze"

        header = Table.grid(padding=0)
        for _ in range(3):
            header.add_column()
        header.add_row(
            Text(label, style=LABEL_STYLE),
            _button(button_text, "#555555", "#999999"),
            _button("Clear", "#AA3333", "#662222"),
        )

        visible = TIMELINE_WIDTH // NOTE_DISPLAY_WIDTH
        content = Text(no_wrap=True)
        for entry in self.timeline[-visible:]:
            content.append_text(render_timeline_note(entry.note))
        return [header, _timeline_panel(content)]

    def view(self) -> str:
        """Render the whole screen as a string with terminal colour codes."""
        parts: list[RenderableType] = [
            Text("  TuneNote - Musical Note Detector  ", style=TITLE_STYLE),
            Text(""),
        ]
        parts.extend(self._note_section())
        parts.extend(self._timeline_section())
        if self.show_debug:
            parts.append(
                Text(
                    f"Audio Level: RMS={self.audio_rms:.6f}, dB={self.audio_db:.1f}",
                    style=DEBUG_STYLE,
                )
            )
        parts.append(Text(""))
        parts.append(Text(HELP_TEXT, style=INFO_STYLE))

        output = io.StringIO()
        console = Console(
            file=output,
            width=self.width if self.width > 0 else DEFAULT_WIDTH,
            force_terminal=True,
            color_system="truecolor",
            highlight=False,
            emoji=False,
            markup=False,
        )
        console.print(Group(*parts))
        return output.getvalue().rstrip("\n")