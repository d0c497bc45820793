"""Quit confirmation that warns about chords still ringing."""
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Label


class ConfirmationDialog(ModalScreen[bool]):
    """Modal yes/no prompt; dismisses with True on confirm."""

    BINDINGS = [
        Binding("y", "answer(True)", "Yes", show=False),
        Binding("enter", "answer(True)", "Confirm", show=False),
        Binding("n", "answer(False)", "No", show=False),
        Binding("escape", "answer(False)", "Cancel", show=False),
    ]

    CSS = """
    ConfirmationDialog {
        align: center middle;
    }

    #dialog {
        width: 50;
        height: auto;
        border: thick #ffd700;
        background: #1a1a1a;
        padding: 1 2;
    }

    #dialog Label {
        width: 100%;
        content-align: center middle;
    }

    #message {
        color: #ffd700;
    }

    #detail {
        color: #888888;
    }
    """

    def __init__(self, message: str = "Quit?", sounding: int = 0):
        super().__init__()
        self.message = message
        self.sounding = sounding

    def compose(self):
        with Vertical(id="dialog"):
            yield Label(self.message, id="message")
            if self.sounding:
                plural = "chord is" if self.sounding == 1 else "chords are"
                yield Label(f"{self.sounding} {plural} still ringing", id="detail")
            yield Label("[Y]es  [N]o", markup=False)

    def action_answer(self, confirmed: bool):
        self.dismiss(confirmed)
