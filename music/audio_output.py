"""Audio output: lazily built render context, master gain and device stream."""
import logging
import threading
from typing import TYPE_CHECKING, List, Optional

import numpy as np

from music.automation import AudioParam
from music.synth_settings import MASTER_TIME_CONSTANT

if TYPE_CHECKING:
    from music.voice import Voice

# Check for PyAudio availability
try:
    import pyaudio
    AUDIO_AVAILABLE = True
except ImportError:
    AUDIO_AVAILABLE = False
    pyaudio = None

logger = logging.getLogger(__name__)

RUNNING = "running"
SUSPENDED = "suspended"
CLOSED = "closed"

# Leaves room for a full five-note chord at unity gain before int16 clipping
OUTPUT_HEADROOM = 0.2


class AudioContext:
    """Render graph and clock: connected voices → master gain → output buffer.

    The clock is the number of frames rendered so far; it only moves when
    ``render`` is called (by the device callback, or by the caller when
    running offline).
    """

    def __init__(self, sample_rate: int, master_volume: float):
        self.sample_rate = sample_rate
        self.frame_position = 0
        self.state = SUSPENDED
        self.master_gain = AudioParam(master_volume)
        self.voices: List['Voice'] = []
        self.lock = threading.RLock()

    @property
    def current_time(self) -> float:
        return self.frame_position / self.sample_rate

    def connect(self, voice: 'Voice'):
        with self.lock:
            self.voices.append(voice)

    def render(self, frame_count: int) -> np.ndarray:
        """Mix one buffer, advance the clock and drop voices that have stopped."""
        with self.lock:
            start = self.current_time
            times = start + np.arange(frame_count, dtype=np.float64) / self.sample_rate
            mix = np.zeros(frame_count, dtype=np.float32)
            for voice in self.voices:
                mix += voice.render(times)
            mix *= self.master_gain.render(times)
            self.master_gain.prune(start)

            self.frame_position += frame_count
            end = self.current_time
            self.voices = [v for v in self.voices if not v.is_finished(end)]
            return mix


class AudioOutput:
    """Owns the processing context and the single master gain stage."""

    def __init__(self, master_volume: float = 1.0, realtime: bool = True,
                 sample_rate: int = 48000, buffer_size: int = 256):
        self.sample_rate = sample_rate
        self.buffer_size = buffer_size
        self.realtime = realtime
        self._master_volume = _clamp_volume(master_volume)
        self._context: Optional[AudioContext] = None
        self._audio = None
        self._stream = None
        self._setup_lock = threading.RLock()
        self._warned_unavailable = False

    # ── Lifecycle ───────────────────────────────────────────────

    @property
    def context(self) -> Optional[AudioContext]:
        return self._context

    @property
    def lock(self) -> threading.RLock:
        """Lock serialising graph changes against rendering."""
        if self._context is None:
            return self._setup_lock
        return self._context.lock

    def is_ready(self) -> bool:
        return self._context is not None and self._context.state == RUNNING

    def ensure_ready(self) -> bool:
        """Build the context on first use and resume it if suspended.

        Returns:
            True when the context is running and voices can be scheduled.
            False when the platform has no usable audio output; nothing
            is raised, the caller simply produces no sound.
        """
        with self._setup_lock:
            if self._context is None:
                if self.realtime and not AUDIO_AVAILABLE:
                    if not self._warned_unavailable:
                        logger.warning("PyAudio is not installed, chords will be silent")
                        self._warned_unavailable = True
                    return False
                context = AudioContext(self.sample_rate, self._master_volume)
                if self.realtime and not self._open_stream():
                    return False
                self._context = context
                logger.debug("Audio context created (%d Hz, realtime=%s)",
                             self.sample_rate, self.realtime)
            if self._context.state == SUSPENDED:
                self._resume()
            return self._context.state == RUNNING

    def suspend(self):
        """Pause the device stream; the clock stops until the next ``ensure_ready``."""
        with self._setup_lock:
            if self._context is None or self._context.state != RUNNING:
                return
            if self._stream is not None:
                try:
                    self._stream.stop_stream()
                except Exception as e:
                    logger.warning("Could not suspend audio stream: %s", e)
                    return
            self._context.state = SUSPENDED

    def close(self):
        with self._setup_lock:
            if self._stream is not None:
                try:
                    self._stream.stop_stream()
                    self._stream.close()
                except Exception as e:
                    logger.warning("Error closing audio stream: %s", e)
            if self._audio is not None:
                self._audio.terminate()
            self._stream = None
            self._audio = None
            if self._context is not None:
                self._context.state = CLOSED
            self._context = None

    # ── Graph / clock ───────────────────────────────────────────

    def now(self) -> float:
        """Current timeline position in seconds (0.0 before the context exists)."""
        if self._context is None:
            return 0.0
        return self._context.current_time

    def connect(self, voice: 'Voice'):
        self._context.connect(voice)

    def render(self, frame_count: int) -> np.ndarray:
        """Render a mono buffer by hand; used when running offline."""
        if self._context is None:
            return np.zeros(frame_count, dtype=np.float32)
        return self._context.render(frame_count)

    # ── Master volume ───────────────────────────────────────────

    @property
    def master_volume(self) -> float:
        return self._master_volume

    def set_master_volume(self, volume: float):
        """Glide the master gain toward ``volume`` (clamped to 0..1).

        The value is cached, so calling this before the context exists
        simply sets the gain the context will start with.
        """
        self._master_volume = _clamp_volume(volume)
        context = self._context
        if context is None:
            return
        with context.lock:
            context.master_gain.set_target_at_time(
                self._master_volume, context.current_time, MASTER_TIME_CONSTANT)

    # ── Device stream ───────────────────────────────────────────

    def _open_stream(self) -> bool:
        try:
            self._audio = pyaudio.PyAudio()
            default_output = self._audio.get_default_output_device_info()
            self._stream = self._audio.open(
                format=pyaudio.paInt16, channels=2, rate=self.sample_rate,
                output=True, output_device_index=default_output['index'],
                frames_per_buffer=self.buffer_size, stream_callback=self._audio_callback,
                start=False
            )
            return True
        except Exception as e:
            logger.warning("Audio initialization failed: %s", e)
            if self._audio is not None:
                self._audio.terminate()
            self._audio = None
            self._stream = None
            return False

    def _resume(self):
        if self._stream is not None:
            try:
                self._stream.start_stream()
            except Exception as e:
                logger.warning("Could not resume audio stream: %s", e)
                return
        self._context.state = RUNNING

    def _audio_callback(self, in_data, frame_count, time_info, status):
        try:
            mono = self._context.render(frame_count)
            scaled = np.clip(mono * OUTPUT_HEADROOM * 32767, -32767, 32767)
            out = np.empty(frame_count * 2, dtype=np.int16)
            out[0::2] = scaled
            out[1::2] = scaled
            return (out.tobytes(), pyaudio.paContinue)
        except Exception:
            logger.exception("Audio callback failed, rendering silence")
            return (np.zeros(frame_count * 2, dtype=np.int16).tobytes(), pyaudio.paContinue)


def _clamp_volume(volume) -> float:
    return max(0.0, min(1.0, float(volume)))
