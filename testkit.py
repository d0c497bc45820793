"""ABOUTME: Shared helpers for the root test scripts.
ABOUTME: Result tracker, hand-fired cleanup timers and settings snapshot builders."""

from music.audio_output import AudioOutput
from music.chord_registry import ChordRegistry
from music.synth_settings import NUM_OSCILLATORS, OscillatorConfig, SynthSnapshot, Waveform

EPS = 1e-9


class TestResults:
    """Track test results."""
    __test__ = False

    def __init__(self):
        self.passed = 0
        self.failed = 0
        self.errors = []

    def assert_true(self, condition, message):
        if condition:
            self.passed += 1
            print(f"✓ {message}")
        else:
            self.failed += 1
            self.errors.append(message)
            print(f"✗ {message}")

    def assert_equal(self, actual, expected, message):
        if actual == expected:
            self.passed += 1
            print(f"✓ {message}")
        else:
            self.failed += 1
            error_msg = f"{message} (expected {expected}, got {actual})"
            self.errors.append(error_msg)
            print(f"✗ {error_msg}")

    def assert_close(self, actual, expected, message, tol=1e-6):
        self.assert_true(abs(actual - expected) <= tol, f"{message} ({actual:.6f} ≈ {expected:.6f})")

    def check(self):
        """Fail the surrounding pytest test if anything above failed."""
        assert self.failed == 0, "; ".join(self.errors)


def section(title):
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


def run_all(tests):
    """Run test functions as a script; returns a process exit code."""
    failed = []
    for test in tests:
        try:
            test()
        except AssertionError as e:
            failed.append(f"{test.__name__}: {e}")
    print("\n" + "=" * 60)
    print(f"OVERALL RESULTS: {len(tests) - len(failed)}/{len(tests)} tests passed")
    print("=" * 60)
    for error in failed:
        print(f"  - {error}")
    return 1 if failed else 0


class ManualTimer:
    """threading.Timer stand-in that only fires when told to."""

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled and not self.fired:
            self.fired = True
            self.function()


class TimerLog:
    """Timer factory that records every timer it creates."""

    def __init__(self):
        self.timers = []

    def __call__(self, interval, function):
        timer = ManualTimer(interval, function)
        self.timers.append(timer)
        return timer

    def fire_all(self):
        for timer in list(self.timers):
            timer.fire()


def offline_registry():
    """Registry on an offline output (clock moves only on render) with manual timers."""
    audio = AudioOutput(realtime=False)
    timers = TimerLog()
    registry = ChordRegistry(audio, timer_factory=timers)
    return audio, registry, timers


def advance(audio, seconds):
    """Render ``seconds`` of audio so the offline clock moves forward."""
    audio.render(int(round(seconds * audio.sample_rate)))


def sine_snapshot(attack=0.01, release=0.3, sustain=1.2, volume=0.8):
    """One sine oscillator on, the other slots off."""
    oscillators = [OscillatorConfig(True, Waveform.SINE, volume, 0.0)]
    oscillators += [OscillatorConfig() for _ in range(NUM_OSCILLATORS - 1)]
    return SynthSnapshot(tuple(oscillators), attack, release, sustain)


def muted_snapshot():
    """One slot disabled, one at zero volume, one disabled at full volume."""
    oscillators = (
        OscillatorConfig(False, Waveform.SINE, 0.8, 0.0),
        OscillatorConfig(True, Waveform.SQUARE, 0.0, 0.0),
        OscillatorConfig(False, Waveform.SAWTOOTH, 1.0, 5.0),
    )
    return SynthSnapshot(oscillators, 0.01, 0.3, 1.2)
