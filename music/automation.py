"""Sample-timeline automation for gain parameters.

An ``AudioParam`` holds a list of scheduled events on the audio clock and
evaluates them into per-sample values with numpy.  The event vocabulary is
the one the envelope and the master gain need:

    set_value_at_time            step to a value
    linear_ramp_to_value_at_time straight line from the previous event
    set_target_at_time           exponential approach (RC smoothing)
    cancel_scheduled_values      forget events from a time onward
    cancel_and_hold_at_time      same, but keep the curve continuous
"""
import bisect
from typing import List, NamedTuple, Optional

import numpy as np


SET = "set"
LINEAR = "linear"
TARGET = "target"


class _Event(NamedTuple):
    kind: str
    time: float
    value: float
    time_constant: float = 0.0


class _Anchor(NamedTuple):
    """Curve state after the last collapsed event."""
    time: float
    value: float
    target: Optional[float] = None
    time_constant: float = 0.0


def _curve(anchor: _Anchor, times: np.ndarray) -> np.ndarray:
    if anchor.target is None:
        return np.full(len(times), anchor.value, dtype=np.float64)
    decay = np.exp(-(times - anchor.time) / anchor.time_constant)
    return anchor.target + (anchor.value - anchor.target) * decay


def _curve_at(anchor: _Anchor, t: float) -> float:
    return float(_curve(anchor, np.array([t], dtype=np.float64))[0])


class AudioParam:
    """A gain-like parameter driven by events on the audio timeline."""

    def __init__(self, value: float = 1.0):
        self._anchor = _Anchor(0.0, float(value))
        self._events: List[_Event] = []

    @property
    def events(self) -> List[_Event]:
        return list(self._events)

    # ── Scheduling ──────────────────────────────────────────────

    def set_value_at_time(self, value: float, t: float):
        self._insert(_Event(SET, float(t), float(value)))

    def linear_ramp_to_value_at_time(self, value: float, t: float):
        """Ramp linearly from the previous event's time and value to ``value`` at ``t``."""
        self._insert(_Event(LINEAR, float(t), float(value)))

    def set_target_at_time(self, target: float, t: float, time_constant: float):
        """Approach ``target`` exponentially from ``t`` with the given time constant."""
        if time_constant <= 0:
            self.set_value_at_time(target, t)
            return
        self._insert(_Event(TARGET, float(t), float(target), float(time_constant)))

    def cancel_scheduled_values(self, t: float):
        """Drop every event scheduled at or after ``t``."""
        self._events = [e for e in self._events if e.time < t]

    def cancel_and_hold_at_time(self, t: float) -> float:
        """Drop events at or after ``t`` and hold the value the curve had at ``t``.

        A linear ramp that was in flight at ``t`` is cut short at ``t``
        instead of being discarded, so the curve before ``t`` is unchanged.

        Returns:
            The held value.
        """
        held = self.value_at(t)
        kept = [e for e in self._events if e.time < t]
        interrupted = self._events[len(kept)] if len(kept) < len(self._events) else None
        if interrupted is not None and interrupted.kind == LINEAR and interrupted.time > t:
            kept.append(_Event(LINEAR, float(t), held))
        else:
            kept.append(_Event(SET, float(t), held))
        self._events = kept
        return held

    # ── Evaluation ──────────────────────────────────────────────

    def value_at(self, t: float) -> float:
        return float(self._evaluate(np.array([t], dtype=np.float64))[0])

    def render(self, times) -> np.ndarray:
        """Evaluate the curve at ascending sample times.

        Args:
            times: 1-D array of timeline positions in seconds, ascending.

        Returns:
            float32 array of parameter values, one per time.
        """
        return self._evaluate(np.asarray(times, dtype=np.float64)).astype(np.float32)

    def _evaluate(self, times: np.ndarray) -> np.ndarray:
        out = np.empty(len(times), dtype=np.float64)
        start = 0
        anchor = self._anchor
        for event in self._events:
            if start >= len(times):
                break
            end = int(np.searchsorted(times, event.time, side="left"))
            if end > start:
                segment = times[start:end]
                if event.kind == LINEAR:
                    out[start:end] = self._ramp(anchor, event, segment)
                else:
                    out[start:end] = _curve(anchor, segment)
                start = end
            anchor = self._advance(anchor, event)
        if start < len(times):
            out[start:] = _curve(anchor, times[start:])
        return out

    def prune(self, before: float):
        """Collapse events that lie entirely before ``before`` into the anchor."""
        while self._events and self._events[0].time <= before:
            self._anchor = self._advance(self._anchor, self._events.pop(0))

    # ── Internals ───────────────────────────────────────────────

    def _insert(self, event: _Event):
        keys = [e.time for e in self._events]
        self._events.insert(bisect.bisect_right(keys, event.time), event)

    @staticmethod
    def _ramp(anchor: _Anchor, event: _Event, times: np.ndarray) -> np.ndarray:
        span = event.time - anchor.time
        if span <= 0:
            return np.full(len(times), event.value, dtype=np.float64)
        start_value = _curve_at(anchor, anchor.time)
        return start_value + (event.value - start_value) * (times - anchor.time) / span

    @staticmethod
    def _advance(anchor: _Anchor, event: _Event) -> _Anchor:
        if event.kind == TARGET:
            return _Anchor(event.time, _curve_at(anchor, event.time),
                           event.value, event.time_constant)
        return _Anchor(event.time, event.value)
