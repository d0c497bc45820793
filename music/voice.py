"""Voices: tone generators summed through one envelope gate."""
import logging
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

import numpy as np

from music.automation import AudioParam
from music.synth_settings import (
    OscillatorConfig,
    Waveform,
    active_oscillators,
    clamp_attack,
    clamp_release,
)

if TYPE_CHECKING:
    from music.audio_output import AudioOutput

logger = logging.getLogger(__name__)


def generate_waveform(waveform: Waveform, frequency: float, num_samples: int,
                      start_phase: float, sample_rate: int) -> tuple[np.ndarray, float]:
    """Render ``num_samples`` of a free-running oscillator.

    Returns:
        (samples, final_phase) so the next buffer continues without a jump.
    """
    phase_inc = 2 * np.pi * frequency / sample_rate
    t = np.arange(num_samples)
    phases = start_phase + t * phase_inc
    t_norm = (phases / (2 * np.pi)) % 1.0
    if waveform == Waveform.SINE:
        samples = np.sin(phases)
    elif waveform == Waveform.TRIANGLE:
        samples = 4.0 * np.abs(t_norm - 0.5) - 1.0
    elif waveform == Waveform.SQUARE:
        samples = np.where(np.sin(phases) >= 0, 1.0, -1.0)
    else:
        samples = 2.0 * t_norm - 1.0
    final_phase = (start_phase + num_samples * phase_inc) % (2 * np.pi)
    return samples.astype(np.float32), final_phase


class Oscillator:
    """A tone generator with a start time and a (last-wins) stop time."""

    def __init__(self, sample_rate: int, waveform=Waveform.SINE,
                 frequency: float = 440.0, detune_cents: float = 0.0):
        self.sample_rate = sample_rate
        self.waveform = Waveform(waveform)
        self.frequency = float(frequency)
        self.detune_cents = float(detune_cents)
        self.phase = 0.0
        self.start_time: Optional[float] = None
        self.stop_time: Optional[float] = None

    @property
    def computed_frequency(self) -> float:
        """Frequency after detune (cents are 1/1200 of an octave)."""
        return self.frequency * (2.0 ** (self.detune_cents / 1200.0))

    def start(self, when: float):
        if self.start_time is None:
            self.start_time = float(when)

    def stop(self, when: float):
        self.stop_time = float(when)

    def is_finished(self, t: float) -> bool:
        return self.stop_time is not None and t >= self.stop_time

    def render(self, times: np.ndarray) -> np.ndarray:
        out = np.zeros(len(times), dtype=np.float32)
        if self.start_time is None:
            return out
        sounding = times >= self.start_time
        if self.stop_time is not None:
            sounding &= times < self.stop_time
        count = int(np.count_nonzero(sounding))
        if count:
            samples, self.phase = generate_waveform(
                self.waveform, self.computed_frequency, count, self.phase, self.sample_rate)
            out[sounding] = samples
        return out


class VoiceState(Enum):
    ATTACKING = "attacking"
    SUSTAINING = "sustaining"
    RELEASING = "releasing"
    STOPPED = "stopped"


class Voice:
    """One sounding note.

    ``generators`` holds (oscillator, gain) pairs that all share the voice
    pitch; every pair is routed through the single ``envelope`` gate.
    """

    def __init__(self, pitch_hz: float, envelope: AudioParam,
                 generators: List[Tuple[Oscillator, AudioParam]],
                 attack_seconds: float, release_seconds: float, created_at: float):
        self.pitch_hz = pitch_hz
        self.envelope = envelope
        self.generators = generators
        self.attack_seconds = attack_seconds
        self._release_seconds = release_seconds
        self.created_at = created_at
        self.released_at: Optional[float] = None
        self.stop_at: Optional[float] = None

    @property
    def release_seconds(self) -> float:
        return self._release_seconds

    @property
    def oscillators(self) -> List[Oscillator]:
        return [osc for osc, _ in self.generators]

    def state(self, at: float) -> VoiceState:
        if self.stop_at is not None and at >= self.stop_at:
            return VoiceState.STOPPED
        if self.released_at is not None and at >= self.released_at:
            return VoiceState.RELEASING
        if at < self.created_at + self.attack_seconds:
            return VoiceState.ATTACKING
        return VoiceState.SUSTAINING

    def is_finished(self, t: float) -> bool:
        return all(osc.is_finished(t) for osc in self.oscillators)

    def render(self, times: np.ndarray) -> np.ndarray:
        mix = np.zeros(len(times), dtype=np.float32)
        for osc, gain in self.generators:
            mix += osc.render(times) * gain.render(times)
        return mix * self.envelope.render(times)

    def __repr__(self):
        return f"Voice({self.pitch_hz:.2f} Hz, {len(self.generators)} osc)"


class VoiceBuilder:
    """Builds voices on the output's current timeline position."""

    def __init__(self, audio_output: 'AudioOutput'):
        self.audio = audio_output

    def build(self, pitch_hz: float, oscillator_configs: Sequence[OscillatorConfig],
              attack_seconds: float, release_seconds: float,
              start_time: Optional[float] = None) -> Optional[Voice]:
        """Create and connect one voice, attack armed from the current time.

        Args:
            pitch_hz: Target pitch shared by every generator.
            oscillator_configs: Slot settings; inactive slots are skipped.
            attack_seconds: Ramp time from silence to full gain (floored at 1 ms).
            release_seconds: Captured for the voice's later release (floored at 10 ms).
            start_time: Timeline position the attack starts from; defaults to
                the current time. Notes of one chord share it.

        Returns:
            The connected voice, or None when no slot is audible or the
            output is not ready. Nothing is created in that case.
        """
        configs = active_oscillators(oscillator_configs)
        if not configs:
            return None
        if not self.audio.is_ready():
            return None

        attack = clamp_attack(attack_seconds)
        release = clamp_release(release_seconds)

        with self.audio.lock:
            t0 = self.audio.now() if start_time is None else start_time
            gate = AudioParam(0.0)
            gate.set_value_at_time(0.0, t0)
            gate.linear_ramp_to_value_at_time(1.0, t0 + attack)

            generators = []
            for config in configs:
                osc = Oscillator(self.audio.sample_rate, config.waveform, pitch_hz, config.detune_cents)
                gain = AudioParam(config.volume)
                osc.start(t0)
                generators.append((osc, gain))

            voice = Voice(pitch_hz, gate, generators, attack, release, t0)
            self.audio.connect(voice)

        logger.debug("Built %r at t=%.4f", voice, t0)
        return voice
