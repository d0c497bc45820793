"""Deferred, identity-checked removal of finished chords from the registry."""
import logging
import threading
from typing import TYPE_CHECKING, Callable, Set

if TYPE_CHECKING:
    from music.chord_registry import ChordRegistry, VoiceGroup

logger = logging.getLogger(__name__)


class CleanupScheduler:
    """Removes a chord's registry entry once its voices have gone silent.

    Each cleanup remembers the exact group it was scheduled for. When it
    fires it only removes the entry if that group is still the registered
    one, so a late cleanup from an earlier press can never delete the entry
    of a newer retrigger. Stale cleanups are left to expire instead of
    being cancelled.
    """

    def __init__(self, registry: 'ChordRegistry',
                 timer_factory: Callable = threading.Timer):
        """
        Args:
            registry: Registry whose entries are cleaned up.
            timer_factory: ``threading.Timer``-compatible constructor
                (``factory(interval, function)`` returning an object with
                ``start()``, ``cancel()`` and a ``daemon`` attribute).
        """
        self.registry = registry
        self._timer_factory = timer_factory
        self._pending: Set = set()
        self._lock = threading.Lock()

    def schedule_cleanup(self, chord_name: str, group: 'VoiceGroup', delay_seconds: float):
        """Arm a wall-clock timer that drops ``group`` after ``delay_seconds``."""

        def _expire():
            with self._lock:
                self._pending.discard(timer)
            if self.registry.remove_if_current(chord_name, group):
                logger.debug("Cleaned up %s", chord_name)
            else:
                logger.debug("Skipped stale cleanup for %s", chord_name)

        timer = self._timer_factory(max(0.0, delay_seconds), _expire)
        timer.daemon = True
        with self._lock:
            self._pending.add(timer)
        timer.start()

    def pending(self) -> int:
        """Number of cleanups that have not fired yet."""
        with self._lock:
            return len(self._pending)

    def cancel_all(self):
        """Cancel every pending cleanup (application shutdown)."""
        with self._lock:
            timers = list(self._pending)
            self._pending.clear()
        for timer in timers:
            timer.cancel()
