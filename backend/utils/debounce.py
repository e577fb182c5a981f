"""
Debounce and throttle helpers for bursty callers.

Used by the dashboard client so rapid filter changes (e.g. arrow-key
scrubbing through a dropdown) collapse into one cascade.

Usage:
    from utils.debounce import debounce

    update = debounce(apply_vertical, 300)
    update("Energy")
    update("Logistics")     # cancels the pending "Energy" call
    # ~300ms later: apply_vertical("Logistics") runs once
"""

import time
import logging
import threading
from typing import Any, Callable, Optional, Tuple

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], Any]


def _default_timer(seconds: float, fn: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(seconds, fn)
    timer.daemon = True
    timer.start()
    return timer


class Debounced:
    """
    Callable wrapper returned by debounce().

    Trailing edge (default): fn runs wait_ms after the last call, with the
    last call's arguments. Leading edge (immediate=True): fn runs on the
    first call of a burst; later calls inside the window only extend it.
    """

    def __init__(
        self,
        fn: Callable[..., Any],
        wait_ms: float,
        immediate: bool = False,
        timer_factory: Optional[TimerFactory] = None,
    ):
        if wait_ms < 0:
            raise ValueError("wait_ms must be >= 0")
        self._fn = fn
        self._wait_seconds = wait_ms / 1000.0
        self._immediate = immediate
        self._timer_factory = timer_factory or _default_timer
        self._lock = threading.Lock()
        self._timer = None
        self._pending: Optional[Tuple[tuple, dict]] = None
        self._generation = 0

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def __call__(self, *args, **kwargs) -> None:
        call_now = False
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            call_now = self._immediate and self._timer is None
            self._generation += 1
            generation = self._generation
            self._pending = None if self._immediate else (args, kwargs)
            self._timer = self._timer_factory(
                self._wait_seconds, lambda: self._expire(generation)
            )

        if call_now:
            self._fn(*args, **kwargs)

    def _expire(self, generation: int) -> None:
        with self._lock:
            # A newer call rescheduled the timer
            if generation != self._generation:
                return
            self._timer = None
            pending, self._pending = self._pending, None

        if pending is not None:
            args, kwargs = pending
            self._fn(*args, **kwargs)

    def flush(self) -> bool:
        """Run a pending trailing call now. Returns True if one ran."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1
            pending, self._pending = self._pending, None

        if pending is None:
            return False
        args, kwargs = pending
        self._fn(*args, **kwargs)
        return True

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1
            self._pending = None


def debounce(
    fn: Callable[..., Any],
    wait_ms: float,
    immediate: bool = False,
    timer_factory: Optional[TimerFactory] = None,
) -> Debounced:
    return Debounced(fn, wait_ms, immediate=immediate, timer_factory=timer_factory)


class Throttled:
    """Runs fn at most once per limit_ms; calls inside the window are dropped."""

    def __init__(
        self,
        fn: Callable[..., Any],
        limit_ms: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit_ms < 0:
            raise ValueError("limit_ms must be >= 0")
        self._fn = fn
        self._limit_seconds = limit_ms / 1000.0
        self._clock = clock
        self._lock = threading.Lock()
        self._last_run: Optional[float] = None

    def __call__(self, *args, **kwargs) -> bool:
        with self._lock:
            now = self._clock()
            if self._last_run is not None and now - self._last_run < self._limit_seconds:
                return False
            self._last_run = now
        self._fn(*args, **kwargs)
        return True


def throttle(
    fn: Callable[..., Any],
    limit_ms: float,
    clock: Callable[[], float] = time.monotonic,
) -> Throttled:
    return Throttled(fn, limit_ms, clock=clock)
