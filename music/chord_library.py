"""Chord catalog: named pitch sets the pads can trigger."""
import logging
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

import mingus.core.chords as chords
import mingus.core.notes as notes

logger = logging.getLogger(__name__)

NOTE_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']


def midi_to_frequency(midi_note: int) -> float:
    """Equal temperament with A4 (MIDI 69) at 440 Hz."""
    return 440.0 * (2.0 ** ((midi_note - 69) / 12.0))


def midi_to_note_name(midi_note: int) -> str:
    """Note name with octave, e.g. 60 -> "C4"."""
    return f"{NOTE_NAMES[midi_note % 12]}{midi_note // 12 - 1}"


class ChordDefinition:
    """A chord as a root MIDI note plus ordered semitone offsets."""

    def __init__(self, name: str, root: int, intervals: Sequence[int]):
        self.name = name
        self.root = int(root)
        self.intervals = tuple(int(i) for i in intervals)

    @property
    def pitches(self) -> List[int]:
        return [self.root + i for i in self.intervals]

    @property
    def note_names(self) -> List[str]:
        return [midi_to_note_name(p) for p in self.pitches]

    def __repr__(self):
        return f"ChordDefinition({self.name!r}, root={self.root}, intervals={list(self.intervals)})"


# Eight ninth chords around C: maj9 = 1 3 5 7 9, m9 = 1 b3 5 b7 9, 9 = 1 3 5 b7 9
DEFAULT_CHORDS = [
    ChordDefinition("Cmaj9", 60, [0, 4, 7, 11, 14]),
    ChordDefinition("Dm9", 62, [0, 3, 7, 10, 14]),
    ChordDefinition("Em9", 64, [0, 3, 7, 10, 14]),
    ChordDefinition("Fmaj9", 65, [0, 4, 7, 11, 14]),
    ChordDefinition("G9", 67, [0, 4, 7, 10, 14]),
    ChordDefinition("Am9", 69, [0, 3, 7, 10, 14]),
    ChordDefinition("Bbmaj9", 70, [0, 4, 7, 11, 14]),
    ChordDefinition("Abmaj9", 68, [0, 4, 7, 11, 14]),
]


def chord_from_shorthand(key: str, shorthand: str, octave: int = 4,
                         name: Optional[str] = None) -> ChordDefinition:
    """Build a chord from a mingus shorthand, voiced upward from the root.

    Args:
        key: Root note name (e.g. "C", "F#", "Bb").
        shorthand: mingus chord shorthand (e.g. "M9", "m9", "9", "m7").
        octave: Octave of the root, 4 puts C at MIDI 60.
        name: Chord id; defaults to key + shorthand.

    Returns:
        The chord definition.

    Raises:
        mingus format errors for an unknown key or shorthand.
    """
    chord_notes = chords.from_shorthand(f"{key}{shorthand}")
    root_value = notes.note_to_int(key)

    intervals: List[int] = []
    for note in chord_notes:
        interval = (notes.note_to_int(note) - root_value) % 12
        while intervals and interval <= intervals[-1]:
            interval += 12
        intervals.append(interval)

    root = 12 * (octave + 1) + root_value
    return ChordDefinition(name or f"{key}{shorthand}", root, intervals)


def split_chord_symbol(symbol: str) -> tuple[str, str]:
    """Split "F#m9" into ("F#", "m9")."""
    if len(symbol) > 1 and symbol[1] in "#b":
        return symbol[:2], symbol[2:]
    return symbol[:1], symbol[1:]


class ChordLibrary:
    """Ordered, name-indexed chord catalog."""

    def __init__(self, chord_list: Optional[Iterable[ChordDefinition]] = None):
        self._chords: Dict[str, ChordDefinition] = {}
        for chord in (DEFAULT_CHORDS if chord_list is None else chord_list):
            self.add(chord)

    def add(self, chord: ChordDefinition):
        self._chords[chord.name] = chord

    def add_symbol(self, symbol: str, octave: int = 4) -> Optional[ChordDefinition]:
        """Add a chord written as a symbol such as "F#m9".

        Returns:
            The added chord, or None if mingus cannot parse the symbol.
        """
        key, shorthand = split_chord_symbol(symbol)
        try:
            chord = chord_from_shorthand(key, shorthand, octave, name=symbol)
        except Exception as e:
            logger.warning("Skipping chord %r: %s", symbol, e)
            return None
        self.add(chord)
        return chord

    def get(self, name: str) -> Optional[ChordDefinition]:
        return self._chords.get(name)

    def names(self) -> List[str]:
        return list(self._chords)

    def __iter__(self) -> Iterator[ChordDefinition]:
        return iter(list(self._chords.values()))

    def __len__(self):
        return len(self._chords)

    def __contains__(self, name: str) -> bool:
        return name in self._chords
