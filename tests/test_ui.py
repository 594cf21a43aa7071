import re

import pytest

from tunenote.pitch import NOTE_NAMES, Note
from tunenote.ui import (
    MAX_TIMELINE_ENTRIES,
    NOTE_DISPLAY_WIDTH,
    ClearNote,
    KeyPress,
    Model,
    Tick,
    UpdateAudioLevel,
    UpdateNote,
    WindowSize,
    get_next_note,
    get_note_color,
    render_timeline_note,
)

ANSI = re.compile(r"\x1b\[[0-9;]*m")


def plain(model):
    return ANSI.sub("", model.view())


def make_note(name="A", octave=4, frequency=440.0, cents=0.0):
    return Note(name, octave, frequency, cents)


@pytest.mark.parametrize(
    "note, expected",
    [("C", "D"), ("D", "E"), ("F", "G"), ("A", "B"), ("B", "C"), ("X", "X")],
)
def test_get_next_note(note, expected):
    assert get_next_note(note) == expected


def test_get_note_color_natural_and_sharp():
    assert get_note_color("C") == "#e5cf9e"
    assert get_note_color("C#") == get_note_color("C")
    assert get_note_color("A#") == get_note_color("A")
    assert get_note_color("") is None


def test_render_timeline_note_empty():
    assert render_timeline_note(None).plain == " " * NOTE_DISPLAY_WIDTH


@pytest.mark.parametrize("name", ["A", "D#"])
def test_render_timeline_note_has_fixed_width(name):
    text = render_timeline_note(make_note(name))
    assert len(text.plain) == NOTE_DISPLAY_WIDTH
    assert text.plain.strip() == name


def test_new_note_is_added_to_timeline():
    model = Model()
    model.update(UpdateNote(make_note("A", 4)))
    assert model.current_note == make_note("A", 4)
    assert not model.is_silence
    assert [entry.note.name for entry in model.timeline] == ["A"]


def test_repeated_note_is_not_added_again():
    model = Model()
    model.update(UpdateNote(make_note("A", 4, 440.0)))
    model.update(UpdateNote(make_note("A", 4, 441.0)))
    assert len(model.timeline) == 1
    assert model.current_note.frequency == 441.0


def test_same_name_other_octave_is_added():
    model = Model()
    model.update(UpdateNote(make_note("A", 4)))
    model.update(UpdateNote(make_note("A", 5)))
    assert [entry.note.octave for entry in model.timeline] == [4, 5]


def test_timeline_is_trimmed_to_newest_entries():
    model = Model()
    for index in range(MAX_TIMELINE_ENTRIES + 10):
        model.update(UpdateNote(make_note(NOTE_NAMES[index % 12], index)))
    assert len(model.timeline) == MAX_TIMELINE_ENTRIES
    assert model.timeline[-1].note.octave == MAX_TIMELINE_ENTRIES + 9
    assert model.timeline[0].note.octave == 10


def test_frozen_timeline_keeps_current_note_but_records_nothing():
    model = Model()
    model.update(KeyPress("f"))
    assert model.timeline_frozen
    model.update(UpdateNote(make_note("G", 3)))
    assert model.current_note.name == "G"
    assert model.timeline == []
    model.update(KeyPress("space"))
    assert not model.timeline_frozen


def test_clear_note_resets_display():
    model = Model()
    model.update(UpdateNote(make_note()))
    model.update(ClearNote())
    assert model.current_note is None
    assert model.is_silence
    assert len(model.timeline) == 1


def test_clear_key_empties_timeline():
    model = Model()
    model.update(UpdateNote(make_note("A", 4)))
    model.update(UpdateNote(make_note("B", 4)))
    model.update(KeyPress("c"))
    assert model.timeline == []


@pytest.mark.parametrize("key", ["q", "ctrl+c"])
def test_quit_keys(key):
    model = Model()
    model.update(KeyPress(key))
    assert model.quit_requested


def test_debug_key_toggles():
    model = Model()
    assert model.show_debug
    model.update(KeyPress("d"))
    assert not model.show_debug


def test_window_size_and_audio_level_are_stored():
    model = Model()
    model.update(WindowSize(120, 40))
    model.update(UpdateAudioLevel(0.25, -12.0))
    assert (model.width, model.height) == (120, 40)
    assert (model.audio_rms, model.audio_db) == (0.25, -12.0)


def test_tick_and_unknown_messages_change_nothing():
    model = Model()
    before = plain(model)
    model.update(Tick(0.0))
    model.update("something else")
    assert plain(model) == before


def test_view_without_note():
    text = plain(Model())
    assert "TuneNote - Musical Note Detector" in text
    assert "---" in text
    assert "Make a sound to see the note..." in text
    assert "No notes recorded yet" in text


def test_view_with_natural_note():
    model = Model()
    model.update(UpdateNote(make_note("A", 4, 440.0, 0.0)))
    text = plain(model)
    assert "A4" in text
    assert "Frequency: 440.00 Hz | Cents: +0.0" in text
    assert "Timeline: (newest notes on the right)" in text
    assert "Freeze" in text
    assert "Clear" in text


def test_view_with_sharp_note_is_split():
    model = Model()
    model.update(UpdateNote(make_note("C#", 5, 554.37, 0.0)))
    text = plain(model)
    assert "#5" in text
    assert "C#5" not in text


def test_view_frozen_timeline():
    model = Model()
    model.update(UpdateNote(make_note()))
    model.update(KeyPress("f"))
    text = plain(model)
    assert "Timeline: FROZEN" in text
    assert "Resume" in text


def test_view_debug_line_toggles():
    model = Model()
    model.update(UpdateAudioLevel(0.5, -6.0))
    assert "Audio Level: RMS=0.500000, dB=-6.0" in plain(model)
    model.update(KeyPress("d"))
    assert "Audio Level" not in plain(model)


def test_view_shows_only_newest_timeline_entries():
    model = Model()
    model.update(UpdateNote(make_note("B", 4)))
    for index in range(29):
        model.update(UpdateNote(make_note("C" if index % 2 else "D", 4)))
    assert "B" not in plain(model)

    short = Model()
    short.update(UpdateNote(make_note("B", 4)))
    short.update(UpdateNote(make_note("C", 4)))
    assert "B" in plain(short)