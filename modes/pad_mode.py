"""Chord pad mode - trigger chords and edit the synth settings."""
import random
from typing import TYPE_CHECKING, Dict

from textual.binding import Binding
from textual.color import Color
from textual.containers import Grid, Vertical
from textual.widget import Widget

from components.chord_pad import ChordPad
from components.header_widget import HeaderWidget
from components.settings_panel import SettingsPanel

if TYPE_CHECKING:
    from config_manager import ConfigManager
    from music.chord_player import ChordPlayer


PAD_HOTKEYS = "123456789"


class PadMode(Widget):
    """Grid of chord pads above the settings panel."""

    can_focus = True

    BINDINGS = [
        *[Binding(key, f"trigger_pad({i})", f"Pad {key}", show=False)
          for i, key in enumerate(PAD_HOTKEYS)],
        Binding("w", "settings_move(-1)", "Setting ▲", show=False),
        Binding("s", "settings_move(1)", "Setting ▼", show=False),
        Binding("a", "settings_adjust(-1)", "Value -", show=False),
        Binding("d", "settings_adjust(1)", "Value +", show=False),
        Binding("enter", "settings_adjust(1)", "Toggle", show=False),
        Binding("left_square_bracket", "master_volume(-1)", "MVol-", show=True),
        Binding("right_square_bracket", "master_volume(1)", "MVol+", show=True),
        Binding("space", "stop_all", "Stop all", show=True),
    ]

    DEFAULT_CSS = """
    PadMode {
        layout: vertical;
        width: 100%;
        height: 100%;
        padding: 1 2;
    }

    #pad-grid {
        grid-size: 4;
        grid-gutter: 0;
        height: auto;
    }

    #settings-section {
        height: auto;
        margin-top: 1;
    }
    """

    # Status line refresh rate (seconds)
    STATUS_INTERVAL = 0.1

    def __init__(self, player: 'ChordPlayer', config_manager: 'ConfigManager', **kwargs):
        super().__init__(**kwargs)
        self.player = player
        self.config_manager = config_manager
        self.pads: Dict[str, ChordPad] = {}
        self.pad_order = []
        self.settings_panel = None
        self.header = None

    def compose(self):
        self.header = HeaderWidget("C H O R D P A D")
        yield self.header
        with Grid(id="pad-grid"):
            for index, chord in enumerate(self.player.chord_library):
                hotkey = PAD_HOTKEYS[index] if index < len(PAD_HOTKEYS) else ""
                pad = ChordPad(chord, hotkey)
                self.pads[chord.name] = pad
                self.pad_order.append(chord.name)
                yield pad
        with Vertical(id="settings-section"):
            self.settings_panel = SettingsPanel(self.config_manager, self.player)
            yield self.settings_panel

    def on_mount(self):
        self.set_interval(self.STATUS_INTERVAL, self._refresh_status)
        self._refresh_status()

    def on_unmount(self):
        self.player.stop_all()

    # ── Playing ─────────────────────────────────────────────────

    def on_chord_pad_pressed(self, message: ChordPad.Pressed):
        self.play(message.chord_name)

    def action_trigger_pad(self, index: int):
        if 0 <= index < len(self.pad_order):
            self.play(self.pad_order[index])

    def play(self, chord_name: str):
        group = self.player.trigger(chord_name)
        if group is None:
            if not self.player.is_available():
                self.app.notify("No audio output available", severity="warning")
            else:
                self.app.notify("All oscillators are muted", severity="warning")
            return
        self.pads[chord_name].flash()
        self._shift_backdrop()
        self._refresh_status()

    def action_stop_all(self):
        self.player.stop_all()
        self._refresh_status()

    def _shift_backdrop(self):
        """Move the backdrop to a random dark hue on every trigger."""
        hue = random.random()
        self.styles.animate("background", Color.from_hsl(hue, 0.45, 0.10), duration=0.6)

    # ── Settings ────────────────────────────────────────────────

    def action_settings_move(self, step: int):
        self.settings_panel.move(step)

    def action_settings_adjust(self, direction: int):
        self.settings_panel.adjust(direction)
        self._refresh_status()

    def action_master_volume(self, direction: int):
        self.player.set_master_volume(self.config_manager.get_master_volume() + direction * 0.05)
        self.settings_panel.refresh_panel()
        self._refresh_status()

    def _refresh_status(self):
        if self.header is None:
            return
        self.header.show_status(
            self.player.is_available(),
            self.config_manager.get_master_volume(),
            self.player.active_chords(),
        )
