"""Entry point the view layer uses to play chords by name."""
import logging
import threading
from typing import TYPE_CHECKING, Callable, List, Optional

from music.audio_output import AudioOutput
from music.chord_library import ChordLibrary
from music.chord_registry import ChordRegistry, VoiceGroup

if TYPE_CHECKING:
    from config_manager import ConfigManager

logger = logging.getLogger(__name__)


class ChordPlayer:
    """Wires the catalog and the live settings to the chord engine.

    ``trigger``/``stop``/``set_master_volume`` are what the pads call on
    user input; everything they schedule happens later on the audio thread.
    """

    def __init__(self, config_manager: 'ConfigManager',
                 chord_library: Optional[ChordLibrary] = None,
                 audio_output: Optional[AudioOutput] = None,
                 timer_factory: Callable = threading.Timer):
        self.config_manager = config_manager
        self.chord_library = chord_library or ChordLibrary()
        self.audio = audio_output or AudioOutput(master_volume=config_manager.get_master_volume())
        self.registry = ChordRegistry(self.audio, timer_factory=timer_factory)

    def trigger(self, chord_id: str) -> Optional[VoiceGroup]:
        """Play a chord from the catalog with the settings as they are right now."""
        chord = self.chord_library.get(chord_id)
        if chord is None:
            logger.warning("Unknown chord %r", chord_id)
            return None
        return self.registry.trigger(chord, self.config_manager.snapshot())

    def stop(self, chord_id: str) -> bool:
        return self.registry.stop(chord_id)

    def stop_all(self):
        self.registry.stop_all()

    def set_master_volume(self, volume: float):
        self.config_manager.set_master_volume(volume)
        self.audio.set_master_volume(self.config_manager.get_master_volume())

    def active_chords(self) -> List[str]:
        return self.registry.active_names()

    def is_available(self) -> bool:
        return self.audio.is_ready()

    def close(self):
        """Silence everything and release the audio device."""
        self.registry.stop_all()
        self.registry.cleanup.cancel_all()
        self.audio.close()
