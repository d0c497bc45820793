"""Live synth settings for the chord pads."""
import json
import logging
import math
from pathlib import Path
from typing import List, Optional

from music.synth_settings import NUM_OSCILLATORS, OscillatorConfig, SynthSnapshot, Waveform

logger = logging.getLogger(__name__)


class ConfigManager:
    """Holds the settings the UI edits and hands the engine immutable snapshots.

    Startup values come from ``config.json`` beside this file when it
    exists. The file is only read: nothing a player changes outlives the
    session.
    """

    # Slider ranges; file values are clamped into them like setter values
    RANGES = {
        "attack": (0.0, 2.0),
        "release": (0.0, 4.0),
        "length": (0.0, 8.0),
        "master_volume": (0.0, 1.0),
    }
    OSC_RANGES = {
        "volume": (0.0, 1.0),
        "detune": (-100.0, 100.0),
    }

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = config_file or Path(__file__).parent / "config.json"
        self.config = self._load_config()

    def _load_config(self) -> dict:
        """Load configuration from file, falling back to defaults.

        Each override is checked on its own: a value of the wrong type is
        logged and dropped, the rest of the file still applies.
        """
        config = self._default_config()
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r') as f:
                    overrides = json.load(f)
            except Exception as e:
                logger.warning("Ignoring unreadable %s: %s", self.config_file, e)
                return config
            if not isinstance(overrides, dict):
                logger.warning("Ignoring %s: expected a JSON object", self.config_file)
                return config

            for key, (low, high) in self.RANGES.items():
                if key in overrides:
                    value = _as_number(overrides[key])
                    if value is None:
                        self._drop(key, overrides[key])
                    else:
                        config[key] = max(low, min(high, value))

            if "extra_chords" in overrides:
                symbols = overrides["extra_chords"]
                if isinstance(symbols, list) and all(isinstance(s, str) for s in symbols):
                    config["extra_chords"] = list(symbols)
                else:
                    self._drop("extra_chords", symbols)

            if "oscillators" in overrides:
                oscillators = overrides["oscillators"]
                if isinstance(oscillators, list):
                    for slot, osc in enumerate(oscillators[:NUM_OSCILLATORS]):
                        self._load_oscillator(config["oscillators"][slot], slot, osc)
                else:
                    self._drop("oscillators", oscillators)
        return config

    def _load_oscillator(self, target: dict, slot: int, osc):
        if not isinstance(osc, dict):
            self._drop(f"oscillators[{slot}]", osc)
            return
        if "enabled" in osc:
            if isinstance(osc["enabled"], bool):
                target["enabled"] = osc["enabled"]
            else:
                self._drop(f"oscillators[{slot}].enabled", osc["enabled"])
        if "waveform" in osc:
            try:
                target["waveform"] = Waveform(osc["waveform"]).value
            except ValueError:
                self._drop(f"oscillators[{slot}].waveform", osc["waveform"])
        for key, (low, high) in self.OSC_RANGES.items():
            if key in osc:
                value = _as_number(osc[key])
                if value is None:
                    self._drop(f"oscillators[{slot}].{key}", osc[key])
                else:
                    target[key] = max(low, min(high, value))

    def _drop(self, key: str, value):
        logger.warning("Ignoring %s in %s: bad value %r", key, self.config_file, value)

    def _default_config(self) -> dict:
        """Return default configuration."""
        return {
            "oscillators": [
                {"enabled": True, "waveform": "sine", "volume": 0.8, "detune": 0.0},
                {"enabled": False, "waveform": "triangle", "volume": 0.4, "detune": 7.0},
                {"enabled": False, "waveform": "sawtooth", "volume": 0.25, "detune": -7.0},
            ],
            "attack": 0.01,
            "release": 0.3,
            "length": 1.2,
            "master_volume": 0.8,
            "extra_chords": [],
        }

    # ── Oscillators ─────────────────────────────────────────────

    def get_oscillator(self, slot: int) -> OscillatorConfig:
        """Return oscillator slot ``slot`` (0-based) as a config tuple."""
        osc = self.config["oscillators"][slot]
        try:
            waveform = Waveform(osc.get("waveform", "sine"))
        except ValueError:
            waveform = Waveform.SINE
        return OscillatorConfig(
            enabled=bool(osc.get("enabled", False)),
            waveform=waveform,
            volume=float(osc.get("volume", 0.0)),
            detune_cents=float(osc.get("detune", 0.0)),
        )

    def get_oscillators(self) -> List[OscillatorConfig]:
        return [self.get_oscillator(slot) for slot in range(NUM_OSCILLATORS)]

    def set_oscillator_enabled(self, slot: int, enabled: bool):
        self.config["oscillators"][slot]["enabled"] = bool(enabled)

    def set_oscillator_waveform(self, slot: int, waveform: Waveform):
        self.config["oscillators"][slot]["waveform"] = Waveform(waveform).value

    def set_oscillator_volume(self, slot: int, volume: float):
        """Set slot volume, clamped to [0, 1]."""
        self.config["oscillators"][slot]["volume"] = max(0.0, min(1.0, float(volume)))

    def set_oscillator_detune(self, slot: int, cents: float):
        """Set slot detune in cents, clamped to [-100, 100]."""
        self.config["oscillators"][slot]["detune"] = max(-100.0, min(100.0, float(cents)))

    # ── Envelope / length ───────────────────────────────────────

    def get_attack(self) -> float:
        return float(self.config["attack"])

    def set_attack(self, seconds: float):
        """Attack slider range is [0, 2] s; the engine floors it at 1 ms."""
        self.config["attack"] = max(0.0, min(2.0, float(seconds)))

    def get_release(self) -> float:
        return float(self.config["release"])

    def set_release(self, seconds: float):
        """Release slider range is [0, 4] s; the engine floors it at 10 ms."""
        self.config["release"] = max(0.0, min(4.0, float(seconds)))

    def get_length(self) -> float:
        return float(self.config["length"])

    def set_length(self, seconds: float):
        """Chord length slider range is [0, 8] s; the engine floors it at 50 ms."""
        self.config["length"] = max(0.0, min(8.0, float(seconds)))

    # ── Master volume ───────────────────────────────────────────

    def get_master_volume(self) -> float:
        return float(self.config["master_volume"])

    def set_master_volume(self, volume: float):
        self.config["master_volume"] = max(0.0, min(1.0, float(volume)))

    # ── Chords ──────────────────────────────────────────────────

    def get_extra_chords(self) -> List[str]:
        """Chord symbols (e.g. "F#m9") to add after the built-in pads."""
        return [str(symbol) for symbol in self.config.get("extra_chords", [])]

    # ── Snapshot ────────────────────────────────────────────────

    def snapshot(self) -> SynthSnapshot:
        """Freeze the current settings for one chord trigger."""
        return SynthSnapshot(
            oscillators=tuple(self.get_oscillators()),
            attack_seconds=self.get_attack(),
            release_seconds=self.get_release(),
            sustain_seconds=self.get_length(),
            master_volume=self.get_master_volume(),
        )


def _as_number(value) -> Optional[float]:
    """Finite float from a JSON number, or None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    if not math.isfinite(value):
        return None
    return value
