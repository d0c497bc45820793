"""Chord name → currently sounding voice group."""
import logging
import threading
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional

from music.chord_library import midi_to_frequency
from music.cleanup_scheduler import CleanupScheduler
from music.envelope import EnvelopeController
from music.synth_settings import CLEANUP_MARGIN, SynthSnapshot, clamp_sustain
from music.voice import Voice, VoiceBuilder

if TYPE_CHECKING:
    from music.audio_output import AudioOutput
    from music.chord_library import ChordDefinition

logger = logging.getLogger(__name__)


class VoiceGroup:
    """All voices produced by one chord trigger, one per audible note.

    Groups compare by identity: two presses of the same chord are two
    different groups even if every voice parameter matches.
    """

    def __init__(self, chord_name: str, voices: Iterable[Voice], created_at: float):
        self.chord_name = chord_name
        self.voices = tuple(voices)
        self.created_at = created_at

    @property
    def release_seconds(self) -> float:
        """Longest release captured by the group's voices."""
        return max(voice.release_seconds for voice in self.voices)

    def __len__(self):
        return len(self.voices)

    def __iter__(self):
        return iter(self.voices)

    def __repr__(self):
        return f"VoiceGroup({self.chord_name!r}, {len(self.voices)} voices, t={self.created_at:.3f})"


class ChordRegistry:
    """Keeps at most one active voice group per chord name.

    Triggering a chord that is already sounding releases the old group and
    replaces it. Every mutation (trigger, stop, cleanup) runs under one
    lock, so the identity check made by a cleanup always sees a settled map.
    """

    def __init__(self, audio_output: 'AudioOutput',
                 voice_builder: Optional[VoiceBuilder] = None,
                 envelope: Optional[EnvelopeController] = None,
                 timer_factory: Callable = threading.Timer):
        self.audio = audio_output
        self.voice_builder = voice_builder or VoiceBuilder(audio_output)
        self.envelope = envelope or EnvelopeController(audio_output)
        self.cleanup = CleanupScheduler(self, timer_factory)
        self._groups: Dict[str, VoiceGroup] = {}
        self._lock = threading.RLock()

    # ── Mutations ───────────────────────────────────────────────

    def trigger(self, chord: 'ChordDefinition', snapshot: SynthSnapshot) -> Optional[VoiceGroup]:
        """Play ``chord`` with one settings snapshot, restarting it if it is sounding.

        Args:
            chord: Chord to play (name and absolute pitches).
            snapshot: Oscillator and envelope settings shared by every note.

        Returns:
            The registered group, or None when nothing became audible
            (output unavailable, or every oscillator muted).
        """
        with self._lock:
            self._stop_locked(chord.name)
            if not self.audio.ensure_ready():
                logger.debug("Output not ready, %s not played", chord.name)
                return None

            # Holding the graph lock keeps the clock still, so every note
            # of the chord starts on the same sample.
            with self.audio.lock:
                now = self.audio.now()
                voices = []
                for pitch in chord.pitches:
                    voice = self.voice_builder.build(
                        midi_to_frequency(pitch), snapshot.oscillators,
                        snapshot.attack_seconds, snapshot.release_seconds, start_time=now)
                    if voice is not None:
                        voices.append(voice)
                if not voices:
                    logger.debug("%s has no audible oscillators", chord.name)
                    return None

                group = VoiceGroup(chord.name, voices, now)
                self._groups[chord.name] = group

                release_at = now + clamp_sustain(snapshot.sustain_seconds)
                for voice in voices:
                    self.envelope.release(voice, release_at)

            # The release captured by the voices decides when they go quiet,
            # not whatever the live settings say by the time the timer fires.
            delay = (release_at - now) + group.release_seconds + CLEANUP_MARGIN
            self.cleanup.schedule_cleanup(chord.name, group, delay)

        logger.debug("Triggered %r, release at t=%.4f, cleanup in %.3fs", group, release_at, delay)
        return group

    def stop(self, chord_name: str) -> bool:
        """Release the chord's voices now and drop its entry.

        Returns:
            True if a sounding group was stopped.
        """
        with self._lock:
            return self._stop_locked(chord_name)

    def stop_all(self):
        """Release every registered chord (panic)."""
        with self._lock:
            for name in list(self._groups):
                self._stop_locked(name)

    def remove_if_current(self, chord_name: str, group: VoiceGroup) -> bool:
        """Drop the entry for ``chord_name`` only if it still holds ``group``."""
        with self._lock:
            if self._groups.get(chord_name) is group:
                del self._groups[chord_name]
                return True
            return False

    def _stop_locked(self, chord_name: str) -> bool:
        if self.audio.context is None:
            return False
        group = self._groups.pop(chord_name, None)
        if group is None:
            return False
        now = self.audio.now()
        for voice in group.voices:
            self.envelope.release(voice, now)
        logger.debug("Stopped %r at t=%.4f", group, now)
        return True

    # ── Queries ─────────────────────────────────────────────────

    def get(self, chord_name: str) -> Optional[VoiceGroup]:
        with self._lock:
            return self._groups.get(chord_name)

    def active_names(self) -> List[str]:
        with self._lock:
            return list(self._groups)

    def __contains__(self, chord_name: str) -> bool:
        with self._lock:
            return chord_name in self._groups

    def __len__(self):
        with self._lock:
            return len(self._groups)
