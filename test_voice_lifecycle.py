#!/usr/bin/env python3
"""ABOUTME: Test script for voice building, envelopes and the audio output.
ABOUTME: Runs the engine offline so the clock only moves when a buffer is rendered."""

import sys
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).parent))

import music.audio_output as audio_output_module
from music.audio_output import AudioOutput
from music.envelope import EnvelopeController
from music.synth_settings import OscillatorConfig, Waveform
from music.voice import VoiceBuilder, VoiceState
from testkit import TestResults, advance, muted_snapshot, run_all, section

SINE = (OscillatorConfig(True, Waveform.SINE, 0.8, 0.0),)


def make_engine():
    audio = AudioOutput(realtime=False)
    audio.ensure_ready()
    return audio, VoiceBuilder(audio), EnvelopeController(audio)


def test_muted_configs_build_nothing():
    """No audible slot means no voice and nothing connected."""
    section("TEST 1: Muted oscillator slots")
    results = TestResults()
    audio, builder, _ = make_engine()

    voice = builder.build(440.0, muted_snapshot().oscillators, 0.01, 0.3)
    results.assert_true(voice is None, "Builder returns None")
    results.assert_equal(len(audio.context.voices), 0, "Nothing connected to the output")

    voice = builder.build(440.0, [], 0.01, 0.3)
    results.assert_true(voice is None, "Empty slot list returns None")

    results.check()


def test_not_ready_builds_nothing():
    """A voice is never built before the output is running."""
    section("TEST 2: Output not ready")
    results = TestResults()

    audio = AudioOutput(realtime=False)
    voice = VoiceBuilder(audio).build(440.0, SINE, 0.01, 0.3)
    results.assert_true(voice is None, "Builder returns None before ensure_ready")
    results.assert_true(audio.context is None, "No context was created")
    results.assert_equal(audio.now(), 0.0, "Clock reads zero before the context exists")

    results.check()


def test_voice_structure():
    """One generator per active slot, all at the voice pitch."""
    section("TEST 3: Voice structure")
    results = TestResults()
    audio, builder, _ = make_engine()
    advance(audio, 0.25)
    t0 = audio.now()

    configs = (
        OscillatorConfig(True, Waveform.SINE, 0.8, 0.0),
        OscillatorConfig(True, Waveform.SQUARE, 0.5, 10.0),
        OscillatorConfig(False, Waveform.SAWTOOTH, 1.0, 0.0),
    )
    voice = builder.build(440.0, configs, 0.01, 0.3)

    results.assert_true(voice is not None, "Voice built")
    results.assert_equal(len(voice.generators), 2, "Disabled slot skipped")
    first, second = voice.oscillators
    results.assert_close(first.computed_frequency, 440.0, "Undetuned generator at pitch")
    results.assert_close(second.computed_frequency, 440.0 * 2 ** (10 / 1200), "Detune in cents")
    results.assert_equal(second.waveform, Waveform.SQUARE, "Waveform carried over")
    results.assert_close(voice.generators[0][1].value_at(t0), 0.8, "Slot volume on first gain")
    results.assert_close(voice.generators[1][1].value_at(t0), 0.5, "Slot volume on second gain")
    results.assert_true(all(osc.start_time == t0 for osc in voice.oscillators),
                        "Generators start at the current time")
    results.assert_true(voice in audio.context.voices, "Voice connected to the output")

    results.check()


def test_duration_floors():
    """Attack and release below their floors are raised before scheduling."""
    section("TEST 4: Attack and release floors")
    results = TestResults()
    audio, builder, envelope = make_engine()
    t0 = audio.now()

    voice = builder.build(440.0, SINE, 0.0, -1.0)
    results.assert_close(voice.attack_seconds, 0.001, "Attack floored at 1 ms")
    results.assert_close(voice.release_seconds, 0.01, "Release floored at 10 ms")
    results.assert_close(voice.envelope.value_at(t0), 0.0, "Envelope starts silent")
    results.assert_close(voice.envelope.value_at(t0 + 0.001), 1.0, "Full level after 1 ms")

    stop_at = envelope.release(voice, t0 + 0.5)
    results.assert_close(stop_at, t0 + 0.5 + 0.01 + 0.03, "Stop follows the floored release")

    voice = builder.build(440.0, SINE, None, float("nan"))
    results.assert_close(voice.attack_seconds, 0.001, "Missing attack floored")
    results.assert_close(voice.release_seconds, 0.01, "NaN release floored")

    voice = builder.build(440.0, SINE, float("inf"), float("inf"))
    results.assert_close(voice.attack_seconds, 0.001, "Infinite attack floored")
    results.assert_close(voice.release_seconds, 0.01, "Infinite release floored")
    stop_at = envelope.release(voice, t0 + 0.5)
    results.assert_true(np.isfinite(stop_at), "Stop time stays finite")

    voice = builder.build(440.0, SINE, float("-inf"), float("-inf"))
    results.assert_close(voice.release_seconds, 0.01, "Negative infinite release floored")

    results.check()


def test_explicit_start_time():
    """A caller-supplied start time wins over the clock."""
    section("TEST 4b: Explicit start time")
    results = TestResults()
    audio, builder, _ = make_engine()
    t0 = audio.now()
    advance(audio, 0.01)

    voice = builder.build(440.0, SINE, 0.01, 0.3, start_time=t0)
    results.assert_close(voice.created_at, t0, "Voice created at the given time")
    results.assert_true(all(osc.start_time == t0 for osc in voice.oscillators), "Generators start at it")
    results.assert_close(voice.envelope.value_at(t0 + 0.01), 1.0, "Attack measured from it")

    results.check()


def test_envelope_shape():
    """Attack ramp, sustain plateau, release ramp, stop margin."""
    section("TEST 5: Envelope shape")
    results = TestResults()
    audio, builder, envelope = make_engine()
    advance(audio, 0.25)
    t0 = audio.now()

    voice = builder.build(440.0, SINE, 0.05, 0.2)
    stop_at = envelope.release(voice, t0 + 1.0)
    gate = voice.envelope

    results.assert_close(gate.value_at(t0), 0.0, "Silent at trigger")
    results.assert_close(gate.value_at(t0 + 0.025), 0.5, "Half way through the attack")
    results.assert_close(gate.value_at(t0 + 0.05), 1.0, "Full level when the attack ends")
    results.assert_close(gate.value_at(t0 + 1.0), 1.0, "Sustains until the release")
    results.assert_close(gate.value_at(t0 + 1.1), 0.5, "Half way through the release")
    results.assert_close(gate.value_at(t0 + 1.2), 0.0, "Silent when the release ends")
    results.assert_close(stop_at, t0 + 1.23, "Generators stop 30 ms after silence")
    results.assert_true(all(abs(osc.stop_time - stop_at) < 1e-9 for osc in voice.oscillators),
                        "Every generator carries the stop time")

    results.check()


def test_voice_states():
    """Lifecycle state read off the timeline."""
    section("TEST 6: Voice states")
    results = TestResults()
    audio, builder, envelope = make_engine()
    t0 = audio.now()

    voice = builder.build(440.0, SINE, 0.1, 0.2)
    results.assert_equal(voice.state(t0), VoiceState.ATTACKING, "Attacking at trigger")
    results.assert_equal(voice.state(t0 + 0.5), VoiceState.SUSTAINING, "Sustaining with no release")

    envelope.release(voice, t0 + 1.0)
    results.assert_equal(voice.state(t0 + 0.5), VoiceState.SUSTAINING, "Sustaining before release")
    results.assert_equal(voice.state(t0 + 1.1), VoiceState.RELEASING, "Releasing after release time")
    results.assert_equal(voice.state(t0 + 1.25), VoiceState.STOPPED, "Stopped after the margin")

    results.check()


def test_release_during_attack():
    """A release that lands mid-attack ramps down from the level reached."""
    section("TEST 7: Release during the attack")
    results = TestResults()
    audio, builder, envelope = make_engine()
    t0 = audio.now()

    voice = builder.build(440.0, SINE, 1.0, 0.2)
    envelope.release(voice, t0 + 0.5)
    gate = voice.envelope

    results.assert_close(gate.value_at(t0 + 0.25), 0.25, "Attack unchanged before the release")
    results.assert_close(gate.value_at(t0 + 0.5), 0.5, "No jump at the release")
    results.assert_close(gate.value_at(t0 + 0.6), 0.25, "Ramps down from the attack level")
    results.assert_close(gate.value_at(t0 + 0.7), 0.0, "Silent after the release time")

    results.check()


def test_release_in_past_clamped():
    """Release times in the past start now."""
    section("TEST 8: Release time in the past")
    results = TestResults()
    audio, builder, envelope = make_engine()

    voice = builder.build(440.0, SINE, 0.01, 0.2)
    advance(audio, 0.1)
    now = audio.now()
    stop_at = envelope.release(voice, 0.0)

    results.assert_close(voice.released_at, now, "Release moved up to the current time")
    results.assert_close(stop_at, now + 0.23, "Stop follows from the current time")
    results.assert_close(voice.envelope.value_at(now), 1.0, "Ramp starts from the sustained level")

    results.check()


def test_second_release_takes_over():
    """Releasing again replaces the earlier schedule."""
    section("TEST 9: Releasing a voice twice")
    results = TestResults()
    audio, builder, envelope = make_engine()
    t0 = audio.now()

    voice = builder.build(440.0, SINE, 0.01, 0.3)
    envelope.release(voice, t0 + 1.0)
    advance(audio, 0.5)
    t1 = audio.now()
    stop_at = envelope.release(voice, t1)

    results.assert_close(voice.released_at, t1, "Release time replaced")
    results.assert_close(stop_at, t1 + 0.33, "Stop time replaced")
    results.assert_true(all(abs(osc.stop_time - stop_at) < 1e-9 for osc in voice.oscillators),
                        "Latest stop wins on every generator")
    results.assert_close(voice.envelope.value_at(t1 + 0.3), 0.0, "Silent after the new release")
    results.assert_close(voice.envelope.value_at(t0 + 1.0), 0.0, "Old release no longer applies")
    results.assert_true(max(e.time for e in voice.envelope.events) <= t1 + 0.3 + 1e-9,
                        "Nothing scheduled past the new release")

    advance(audio, 0.5)
    late = envelope.release(voice, audio.now())
    results.assert_close(late, stop_at, "Releasing a stopped voice changes nothing")

    results.check()


def test_offline_render():
    """Rendering produces sound, then silence, and drops stopped voices."""
    section("TEST 10: Offline rendering")
    results = TestResults()
    audio, builder, envelope = make_engine()

    voice = builder.build(440.0, SINE, 0.001, 0.01)
    buffer = audio.render(2400)
    results.assert_true(np.max(np.abs(buffer)) > 0.5, "Voice is audible while sustaining")

    envelope.release(voice, audio.now())
    audio.render(4800)
    results.assert_equal(len(audio.context.voices), 0, "Stopped voice removed from the output")
    buffer = audio.render(256)
    results.assert_true(np.all(buffer == 0.0), "Output is silent after the stop")

    results.check()


def test_master_volume():
    """Master volume is cached before the context and glides after."""
    section("TEST 11: Master volume")
    results = TestResults()

    audio = AudioOutput(master_volume=0.5, realtime=False)
    audio.set_master_volume(0.3)
    results.assert_close(audio.master_volume, 0.3, "Cached before the context exists")
    audio.ensure_ready()
    results.assert_close(audio.context.master_gain.value_at(0.0), 0.3, "Context starts at the cached value")

    audio.set_master_volume(1.0)
    results.assert_close(audio.context.master_gain.value_at(0.01), 1.0 - 0.7 * np.exp(-1.0),
                         "Glides with a 10 ms time constant")
    results.assert_true(audio.context.master_gain.value_at(0.2) > 0.999, "Settles at the new value")

    audio.set_master_volume(7.0)
    results.assert_close(audio.master_volume, 1.0, "Clamped to 1")
    audio.set_master_volume(-1.0)
    results.assert_close(audio.master_volume, 0.0, "Clamped to 0")

    results.check()


def test_suspend_and_resume():
    """A suspended output resumes on the next ensure_ready."""
    section("TEST 12: Suspend and resume")
    results = TestResults()
    audio, builder, _ = make_engine()
    advance(audio, 0.1)

    audio.suspend()
    results.assert_true(not audio.is_ready(), "Suspended output is not ready")
    results.assert_true(builder.build(440.0, SINE, 0.01, 0.3) is None, "No voices while suspended")
    results.assert_true(audio.ensure_ready(), "ensure_ready resumes the output")
    results.assert_close(audio.now(), 0.1, "Clock kept its position")

    audio.close()
    results.assert_true(audio.context is None, "Closed output drops its context")
    results.assert_equal(audio.now(), 0.0, "Clock reads zero after close")

    results.check()


def test_no_backend():
    """Without PyAudio a realtime output stays unavailable and silent."""
    section("TEST 13: No audio backend")
    results = TestResults()

    saved = audio_output_module.AUDIO_AVAILABLE
    audio_output_module.AUDIO_AVAILABLE = False
    try:
        audio = AudioOutput()
        results.assert_true(not audio.ensure_ready(), "ensure_ready reports failure")
        results.assert_true(not audio.ensure_ready(), "Repeated calls also fail quietly")
        results.assert_true(audio.context is None, "No context created")
        results.assert_true(np.all(audio.render(64) == 0.0), "Rendering yields silence")
    finally:
        audio_output_module.AUDIO_AVAILABLE = saved

    results.check()


def main():
    return run_all([
        test_muted_configs_build_nothing,
        test_not_ready_builds_nothing,
        test_voice_structure,
        test_duration_floors,
        test_explicit_start_time,
        test_envelope_shape,
        test_voice_states,
        test_release_during_attack,
        test_release_in_past_clamped,
        test_second_release_takes_over,
        test_offline_render,
        test_master_volume,
        test_suspend_and_resume,
        test_no_backend,
    ])


if __name__ == "__main__":
    sys.exit(main())
