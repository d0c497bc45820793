"""Chord pad button widget."""
from rich.text import Text
from textual import events
from textual.message import Message
from textual.widgets import Static

from music.chord_library import ChordDefinition


class ChordPad(Static):
    """A pad that shows a chord's name and notes and fires on pointer press."""

    DEFAULT_CSS = """
    ChordPad {
        width: 1fr;
        height: 5;
        border: tall #444444;
        background: #141414;
        content-align: center middle;
        text-align: center;
        margin: 0 1 1 0;
    }

    ChordPad:hover {
        border: tall #ffd700;
    }

    ChordPad.-playing {
        border: tall #00ff87;
        background: #0f2a1c;
    }
    """

    # How long the pad stays lit after a press (seconds)
    FLASH_SECONDS = 0.75

    class Pressed(Message):
        """Posted when the pad is pressed."""

        def __init__(self, chord_name: str):
            super().__init__()
            self.chord_name = chord_name

    def __init__(self, chord: ChordDefinition, hotkey: str = "", **kwargs):
        super().__init__(self._label(chord, hotkey), **kwargs)
        self.chord = chord
        self.hotkey = hotkey
        self._flash_timer = None

    @staticmethod
    def _label(chord: ChordDefinition, hotkey: str) -> Text:
        text = Text(justify="center")
        if hotkey:
            text.append(f"{hotkey}  ", style="dim #888888")
        text.append(chord.name, style="bold #ffd700")
        text.append("\n")
        text.append("  ".join(chord.note_names), style="#aaaaaa")
        return text

    def on_mouse_down(self, event: events.MouseDown) -> None:
        # Fire on press, not release
        event.stop()
        self.post_message(self.Pressed(self.chord.name))

    def flash(self):
        """Light the pad briefly; a new press restarts the timer."""
        if self._flash_timer is not None:
            self._flash_timer.stop()
        self.add_class("-playing")
        self._flash_timer = self.set_timer(self.FLASH_SECONDS, self._end_flash)

    def _end_flash(self):
        self.remove_class("-playing")
        self._flash_timer = None
