"""Trailing-edge debouncing of change events.

A burst of saves from an editor produces many filesystem notifications.
The Debouncer turns them into a single "flush" once the burst has settled
for ``duration`` seconds. It keeps one coalesced timer: events that arrive
while the timer is armed only move ``last_event_time`` forward, and when the
timer comes due it either flushes or re-arms relative to the newest event.

The Debouncer does no I/O and never sleeps. Callers drive it with
``notify()`` for every event and ``poll()`` whenever ``timeout()`` says the
timer is due.
"""

import time
from typing import Callable, Optional


class Debouncer:
    """Coalesces change events into flush signals."""

    def __init__(
        self,
        duration: float,
        max_wait: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the debouncer.

        Args:
            duration: Quiet period in seconds required before a flush
            max_wait: Optional upper bound in seconds between the first event
                      of a window and its flush, so a continuous stream of
                      events still flushes periodically
            clock: Monotonic clock returning seconds
        """
        if duration < 0:
            raise ValueError(f"Debounce duration must not be negative: {duration}")
        if max_wait is not None and max_wait < duration:
            raise ValueError("max_wait must be at least the debounce duration")

        self.duration = duration
        self.max_wait = max_wait
        self._clock = clock
        self._first_event_time: Optional[float] = None
        self._last_event_time: Optional[float] = None
        self._fire_at: Optional[float] = None

    @property
    def pending(self) -> bool:
        """True while an event has been seen but not flushed."""
        return self._fire_at is not None

    @property
    def last_event_time(self) -> Optional[float]:
        return self._last_event_time

    def notify(self, event_time: Optional[float] = None) -> None:
        """Record a change event.

        Args:
            event_time: Observation time of the event (defaults to now)
        """
        if event_time is None:
            event_time = self._clock()
        if self._last_event_time is None or event_time > self._last_event_time:
            self._last_event_time = event_time

        if self._fire_at is None:
            self._first_event_time = event_time
            self._fire_at = event_time + self.duration

    def timeout(self, now: Optional[float] = None) -> Optional[float]:
        """Seconds until the armed timer is due.

        Returns:
            0 or more seconds, or None when no timer is armed
        """
        if self._fire_at is None:
            return None
        if now is None:
            now = self._clock()
        return max(0.0, self._fire_at - now)

    def poll(self, now: Optional[float] = None) -> bool:
        """Check the timer and decide whether to flush.

        Returns:
            True exactly once per settled window, False otherwise
        """
        if self._fire_at is None:
            return False
        if now is None:
            now = self._clock()
        if now < self._fire_at:
            return False

        first, last = self._first_event_time, self._last_event_time
        if first is None or last is None:
            raise RuntimeError("Debounce timer armed without a recorded event")
        settled = now - last >= self.duration
        overdue = self.max_wait is not None and now - first >= self.max_wait
        if settled or overdue:
            self.reset()
            return True

        # A newer event arrived after arming, check again once it settles
        self._fire_at = last + self.duration
        if self.max_wait is not None:
            self._fire_at = min(self._fire_at, first + self.max_wait)
        return False

    def reset(self) -> None:
        """Disarm the timer and forget the pending window."""
        self._first_event_time = None
        self._fire_at = None
