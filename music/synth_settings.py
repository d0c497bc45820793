"""Oscillator settings and the immutable per-trigger settings snapshot."""
import math
from enum import Enum
from typing import List, NamedTuple, Tuple


NUM_OSCILLATORS = 3

# Floors applied by the engine before any scheduling call
MIN_ATTACK = 0.001
MIN_RELEASE = 0.01
MIN_SUSTAIN = 0.05

# Generators stop this long after the release ramp reaches zero
STOP_MARGIN = 0.03
# Registry cleanup fires this long after the last voice went silent
CLEANUP_MARGIN = 0.2
# Time constant of the master volume smoothing
MASTER_TIME_CONSTANT = 0.01


class Waveform(Enum):
    """Tone generator shapes."""
    SINE = "sine"
    SQUARE = "square"
    SAWTOOTH = "sawtooth"
    TRIANGLE = "triangle"

    def next(self, step: int = 1) -> "Waveform":
        members = list(Waveform)
        return members[(members.index(self) + step) % len(members)]


class OscillatorConfig(NamedTuple):
    """One oscillator slot as seen by the voice builder."""
    enabled: bool = False
    waveform: Waveform = Waveform.SINE
    volume: float = 0.0
    detune_cents: float = 0.0

    @property
    def is_active(self) -> bool:
        return bool(self.enabled) and self.volume > 0


class SynthSnapshot(NamedTuple):
    """Settings read once at trigger time and shared by every note of a chord."""
    oscillators: Tuple[OscillatorConfig, ...]
    attack_seconds: float
    release_seconds: float
    sustain_seconds: float
    master_volume: float = 1.0


def active_oscillators(configs) -> List[OscillatorConfig]:
    """Return the slots that are switched on with a non-zero volume."""
    return [c for c in configs if c.is_active]


def clamp_attack(seconds) -> float:
    return max(MIN_ATTACK, _as_seconds(seconds))


def clamp_release(seconds) -> float:
    return max(MIN_RELEASE, _as_seconds(seconds))


def clamp_sustain(seconds) -> float:
    return max(MIN_SUSTAIN, _as_seconds(seconds))


def _as_seconds(value) -> float:
    # Missing, NaN or infinite durations fall through to the floors
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(seconds):
        return 0.0
    return seconds
