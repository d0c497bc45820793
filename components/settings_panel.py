"""Oscillator / envelope settings panel."""
from typing import TYPE_CHECKING, Callable, List, NamedTuple

from rich.table import Table
from rich.text import Text
from textual.widgets import Static

from music.synth_settings import NUM_OSCILLATORS

if TYPE_CHECKING:
    from config_manager import ConfigManager
    from music.chord_player import ChordPlayer


class _Row(NamedTuple):
    label: str
    show: Callable[[], str]
    adjust: Callable[[int], None]


class SettingsPanel(Static):
    """Keyboard-driven list of the synth settings the next trigger will use.

    One row is selected at a time; ``move`` changes the selection and
    ``adjust`` nudges the selected value up or down.
    """

    DEFAULT_CSS = """
    SettingsPanel {
        width: 100%;
        height: auto;
        border: round #444444;
        padding: 0 1;
    }
    """

    def __init__(self, config_manager: 'ConfigManager', player: 'ChordPlayer', **kwargs):
        super().__init__(**kwargs)
        self.config_manager = config_manager
        self.player = player
        self.rows = self._build_rows()
        self.selected = 0

    def on_mount(self) -> None:
        self.refresh_panel()

    def _build_rows(self) -> List[_Row]:
        cm = self.config_manager
        rows = []
        for slot in range(NUM_OSCILLATORS):
            rows.extend(self._oscillator_rows(slot))
        rows += [
            _Row("Attack",
                 lambda: f"{cm.get_attack() * 1000:.0f} ms",
                 lambda d: cm.set_attack(cm.get_attack() + d * _time_step(cm.get_attack(), d))),
            _Row("Release",
                 lambda: f"{cm.get_release():.2f} s",
                 lambda d: cm.set_release(cm.get_release() + d * 0.05)),
            _Row("Length",
                 lambda: f"{cm.get_length():.1f} s",
                 lambda d: cm.set_length(cm.get_length() + d * 0.1)),
            _Row("Master",
                 lambda: _meter(cm.get_master_volume()),
                 lambda d: self.player.set_master_volume(cm.get_master_volume() + d * 0.05)),
        ]
        return rows

    def _oscillator_rows(self, slot: int) -> List[_Row]:
        cm = self.config_manager
        name = f"OSC{slot + 1}"

        def show_enabled():
            return "ON" if cm.get_oscillator(slot).enabled else "off"

        def toggle(_direction):
            cm.set_oscillator_enabled(slot, not cm.get_oscillator(slot).enabled)

        def cycle_waveform(direction):
            cm.set_oscillator_waveform(slot, cm.get_oscillator(slot).waveform.next(direction))

        return [
            _Row(f"{name} on", show_enabled, toggle),
            _Row(f"{name} wave", lambda: cm.get_oscillator(slot).waveform.value, cycle_waveform),
            _Row(f"{name} vol",
                 lambda: _meter(cm.get_oscillator(slot).volume),
                 lambda d: cm.set_oscillator_volume(slot, cm.get_oscillator(slot).volume + d * 0.05)),
            _Row(f"{name} detune",
                 lambda: f"{cm.get_oscillator(slot).detune_cents:+.0f} ct",
                 lambda d: cm.set_oscillator_detune(slot, cm.get_oscillator(slot).detune_cents + d)),
        ]

    def move(self, step: int):
        self.selected = (self.selected + step) % len(self.rows)
        self.refresh_panel()

    def adjust(self, direction: int):
        self.rows[self.selected].adjust(direction)
        self.refresh_panel()

    def refresh_panel(self):
        table = Table.grid(padding=(0, 2))
        table.add_column(justify="right")
        table.add_column()
        for index, row in enumerate(self.rows):
            style = "bold #000000 on #ffd700" if index == self.selected else "#cccccc"
            table.add_row(Text(row.label, style=style), Text(row.show(), style="#00d7ff"))
        self.update(table)


def _time_step(current: float, direction: int) -> float:
    # 5 ms steps below 100 ms, 50 ms above
    if current < 0.0999 or (direction < 0 and current < 0.1001):
        return 0.005
    return 0.05


def _meter(value: float, width: int = 10) -> str:
    filled = int(round(value * width))
    return f"{'█' * filled}{'░' * (width - filled)} {value:.2f}"
