#!/usr/bin/env python3
"""Chordpad TUI Application - Main Entry Point."""
import logging

from textual.app import App
from textual.binding import Binding
from textual.containers import Container
from textual.logging import TextualHandler
from textual.screen import Screen
from textual.widgets import Footer, Header

from components.confirmation_dialog import ConfirmationDialog
from config_manager import ConfigManager
from modes.pad_mode import PadMode
from music.chord_library import ChordLibrary
from music.chord_player import ChordPlayer


class MainScreen(Screen):
    """Main screen hosting the pad mode."""

    CSS = """
    MainScreen {
        layout: vertical;
    }

    #content-area {
        height: 1fr;
        width: 100%;
    }
    """

    BINDINGS = [
        Binding("escape", "quit_app", "Quit", show=True),
    ]

    def __init__(self, app_context: dict):
        super().__init__()
        self.app_context = app_context

    def compose(self):
        yield Header()
        with Container(id="content-area"):
            yield PadMode(self.app_context["player"], self.app_context["config_manager"])
        yield Footer()

    def on_mount(self):
        self.query_one(PadMode).focus()

    def action_quit_app(self):
        """Quit with confirmation."""
        player = self.app_context["player"]

        def check_quit(result):
            if result:
                self.app.exit()

        self.app.push_screen(
            ConfirmationDialog("Quit Chordpad?", sounding=len(player.active_chords())),
            check_quit,
        )


class ChordpadApp(App):
    """Chord pad TUI Application."""

    VERSION = "0.1.0"

    def __init__(self):
        super().__init__()
        self.title = f"Chordpad v{self.VERSION}"
        self.config_manager = ConfigManager()
        self.chord_library = ChordLibrary()
        for symbol in self.config_manager.get_extra_chords():
            self.chord_library.add_symbol(symbol)
        self.player = ChordPlayer(self.config_manager, self.chord_library)

        self.app_context = {
            "config_manager": self.config_manager,
            "chord_library": self.chord_library,
            "player": self.player,
        }

    def on_mount(self):
        self.push_screen(MainScreen(self.app_context))
        self.sub_title = f"{len(self.chord_library)} chords"

    def on_unmount(self):
        """Silence everything and release the audio device on exit."""
        self.player.close()


def main():
    """Main entry point."""
    logging.basicConfig(level=logging.INFO, handlers=[TextualHandler()])
    app = ChordpadApp()
    app.run()


if __name__ == "__main__":
    main()
