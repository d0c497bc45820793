"""Boxed title plus a one-line engine status readout."""
from typing import List

from textual.app import ComposeResult
from textual.containers import Center, Vertical
from textual.widgets import Static


class HeaderWidget(Vertical):
    """Title box with a status line showing output state and sounding chords."""

    DEFAULT_CSS = """
    HeaderWidget {
        width: 100%;
        height: auto;
        align: center top;
        margin-bottom: 1;
    }

    .header-boxed {
        width: auto;
        height: auto;
        text-align: center;
        color: #ffd700;
    }

    #header-status {
        width: 100%;
        text-align: center;
        content-align: center middle;
    }
    """

    def __init__(self, title: str, width: int = 48, **kwargs):
        super().__init__(**kwargs)
        self.title_text = title
        self.box_width = width

    def compose(self) -> ComposeResult:
        with Center():
            yield Static(boxed_title(self.title_text, self.box_width), classes="header-boxed")
        with Center():
            yield Static("", id="header-status")

    def show_status(self, audio_ready: bool, master_volume: float, sounding: List[str]):
        """Refresh the status line."""
        output = "[#00ff87]● audio[/]" if audio_ready else "[#666666]○ audio idle[/]"
        chords = ", ".join(sounding) if sounding else "—"
        self.query_one("#header-status", Static).update(
            f"{output}   [#888888]master[/] {master_volume:.2f}   [#888888]sounding[/] {chords}"
        )


def boxed_title(title: str, width: int = 48) -> str:
    """Draw ``title`` centred in a double-line box ``width`` characters wide."""
    title_padded = f" {title} "
    inner_width = max(width - 2, len(title_padded))
    padding = inner_width - len(title_padded)
    left_pad = padding // 2
    right_pad = padding - left_pad

    top = f"╔{'═' * inner_width}╗"
    mid = f"║{' ' * left_pad}{title_padded}{' ' * right_pad}║"
    bottom = f"╚{'═' * inner_width}╝"
    return f"{top}\n{mid}\n{bottom}"
