"""Release scheduling for voice envelopes."""
import logging
from typing import TYPE_CHECKING

from music.synth_settings import STOP_MARGIN
from music.voice import Voice, VoiceState

if TYPE_CHECKING:
    from music.audio_output import AudioOutput

logger = logging.getLogger(__name__)


class EnvelopeController:
    """Arms release ramps and generator stops on the audio clock.

    Scheduling only: nothing blocks and nothing calls back. The attack half
    of the envelope is armed by the voice builder when the voice is made.
    """

    def __init__(self, audio_output: 'AudioOutput'):
        self.audio = audio_output

    def release(self, voice: Voice, at: float) -> float:
        """Ramp ``voice`` to silence starting at ``at`` and stop its generators.

        Safe to call more than once for the same voice: automation after
        ``at`` is cut (holding the curve's value at ``at``) before the new
        ramp goes in, and the latest stop time replaces earlier ones.

        Args:
            voice: Voice to release.
            at: Timeline position for the release to begin; times in the
                past are moved up to the current time.

        Returns:
            The time at which the generators stop.
        """
        with self.audio.lock:
            now = self.audio.now()
            if voice.state(now) == VoiceState.STOPPED:
                return voice.stop_at
            at = max(at, now)

            gate = voice.envelope
            start_level = gate.cancel_and_hold_at_time(at)
            gate.linear_ramp_to_value_at_time(0.0, at + voice.release_seconds)

            stop_at = at + voice.release_seconds + STOP_MARGIN
            for osc in voice.oscillators:
                osc.stop(stop_at)
            voice.released_at = at
            voice.stop_at = stop_at

        logger.debug("Release %r at t=%.4f from %.3f, stop at t=%.4f",
                     voice, at, start_level, stop_at)
        return stop_at
