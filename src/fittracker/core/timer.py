"""
Rest timer and stopwatch.

WorkoutTimer holds the timer state (type, seconds, running) and is
advanced one second per ``tick()``.  A rest timer counts down and stops
itself at zero; a stopwatch counts up until stopped.  Only one timer type
is active at a time.

RepeatingTicker is the scheduled-task handle that drives ``tick()`` from
wall-clock time.  Whoever starts a ticker owns it and must ``cancel()`` it
when the timer stops or is replaced.
"""

import logging
import threading
import time
from collections.abc import Callable

from .config import DEFAULT_REST_SECONDS, TIMER_TICK_SECONDS
from .models import TimerState, TimerType

logger = logging.getLogger(__name__)


class WorkoutTimer:
    """Countdown rest timer / count-up stopwatch state."""

    def __init__(self) -> None:
        self.timer_type: TimerType | None = None
        self.seconds: int = 0
        self.is_running: bool = False
        self.duration: int | None = None  # rest length, for resets and resume
        self._lock = threading.Lock()

    def start_rest(self, duration: int) -> None:
        """Start counting down from ``duration`` seconds, discarding any stopwatch."""
        with self._lock:
            self.timer_type = "rest"
            self.duration = duration
            self.seconds = duration
            self.is_running = True

    def start_stopwatch(self) -> None:
        """Start counting up from zero, discarding any rest countdown."""
        with self._lock:
            self.timer_type = "stopwatch"
            self.duration = None
            self.seconds = 0
            self.is_running = True

    def stop(self) -> None:
        """Stop and clear the timer."""
        with self._lock:
            self._clear()

    def toggle(self) -> None:
        """Pause a running timer or resume a paused one."""
        with self._lock:
            if self.timer_type is not None:
                self.is_running = not self.is_running

    def reset(self, rest_duration: int | None = None) -> None:
        """Rewind the current timer to its initial value and pause it."""
        with self._lock:
            if self.timer_type == "rest":
                if rest_duration is not None:
                    self.duration = rest_duration
                elif self.duration is None:
                    self.duration = DEFAULT_REST_SECONDS
                self.seconds = self.duration
            elif self.timer_type == "stopwatch":
                self.seconds = 0
            self.is_running = False

    def tick(self) -> bool:
        """
        Advance one second.

        Returns:
            True if this tick finished a rest countdown
        """
        with self._lock:
            if not self.is_running:
                return False
            if self.timer_type == "rest":
                if self.seconds <= 1:
                    self._clear()
                    return True
                self.seconds -= 1
            elif self.timer_type == "stopwatch":
                self.seconds += 1
            return False

    def _clear(self) -> None:
        self.timer_type = None
        self.duration = None
        self.seconds = 0
        self.is_running = False

    def to_state(self, now: float | None = None) -> TimerState | None:
        """Snapshot for persistence; None when no timer is active."""
        if self.timer_type is None:
            return None
        now = time.time() if now is None else now
        if self.timer_type == "rest":
            elapsed = (self.duration or 0) - self.seconds
        else:
            elapsed = self.seconds
        return TimerState(
            type=self.timer_type,
            start_time=now - elapsed,
            is_running=self.is_running,
            duration=self.duration,
            paused_seconds=None if self.is_running else self.seconds,
        )

    @classmethod
    def from_state(cls, state: TimerState | None, now: float | None = None) -> "WorkoutTimer":
        """Rebuild a timer from a persisted snapshot (see load_timer_state)."""
        timer = cls()
        if state is None:
            return timer
        timer_type, seconds, running = load_timer_state(state, now)
        if timer_type is None:
            return timer
        timer.timer_type = timer_type
        timer.seconds = seconds
        timer.is_running = running
        timer.duration = state.duration if timer_type == "rest" else None
        return timer


def load_timer_state(state: TimerState, now: float | None = None) -> tuple[TimerType | None, int, bool]:
    """
    Recompute timer display values from a persisted snapshot.

    A running rest timer resumes with the wall-clock time it has left and
    is dropped once that reaches zero; a running stopwatch resumes with
    the wall-clock time elapsed.  Paused timers keep their stored seconds.

    Returns:
        (timer_type, seconds, is_running)
    """
    now = time.time() if now is None else now

    if not state.is_running:
        return state.type, state.paused_seconds or 0, False

    elapsed = int(now - state.start_time)
    if state.type == "rest":
        remaining = max(0, (state.duration or 0) - elapsed)
        if remaining == 0:
            return None, 0, False
        return "rest", remaining, True
    return "stopwatch", max(0, elapsed), True


class RepeatingTicker:
    """
    Calls ``callback`` every ``interval`` seconds on a daemon thread.

    The handle is explicit: ``cancel()`` stops it, and is safe to call
    from inside the callback or more than once.  It does not wait for a
    callback already running, so callers that cancel while holding a lock
    the callback needs must discard that late call themselves.

    An exception from the callback is logged and ticking continues.
    """

    def __init__(self, callback: Callable[[], None], interval: float = TIMER_TICK_SECONDS):
        self.callback = callback
        self.interval = interval
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_active(self) -> bool:
        return self._thread is not None and not self._stopped.is_set()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="workout-timer", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.callback()
            except Exception:
                logger.exception("Timer tick failed")

    def cancel(self) -> None:
        self._stopped.set()
        logger.debug("Timer ticker cancelled")
