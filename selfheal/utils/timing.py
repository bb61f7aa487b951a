# selfheal/utils/timing.py
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from selfheal.core.errors import InterruptedWaitError
from selfheal.utils.logger import get_logger

T = TypeVar("T")

Clock = Callable[[], float]
SleepFn = Callable[[float], None]


# ---------------- Monotonic time helpers ----------------

def now_ms() -> int:
    """Monotonic time in milliseconds."""
    return time.monotonic_ns() // 1_000_000


# ---------------- Stopwatch ----------------

@dataclass
class Stopwatch:
    """Simple stopwatch usable as a context manager."""
    start_ms: Optional[int] = None

    def start(self) -> "Stopwatch":
        self.start_ms = now_ms()
        return self

    def elapsed_ms(self) -> int:
        if self.start_ms is None:
            return 0
        return max(0, now_ms() - self.start_ms)

    def __enter__(self) -> "Stopwatch":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        return None


# ---------------- Cancellable sleep ----------------

class Sleeper:
    """
    Blocking sleep that another thread can cancel.

    Calling the instance blocks the caller for `seconds`. `cancel()` makes the
    pending sleep (or the next one, if none is pending) raise
    InterruptedWaitError. Raising uses the cancel up, so later sleeps block
    normally again.
    """

    def __init__(self) -> None:
        self._cancelled = threading.Event()

    def __call__(self, seconds: float) -> None:
        if self._cancelled.is_set():
            self._cancelled.clear()
            raise InterruptedWaitError("wait cancelled before it started")
        if seconds <= 0:
            return
        if self._cancelled.wait(timeout=seconds):
            self._cancelled.clear()
            raise InterruptedWaitError(f"wait of {seconds:.3f}s cancelled")

    def cancel(self) -> None:
        self._cancelled.set()

    def reset(self) -> None:
        self._cancelled.clear()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()


def interruptible(sleep: SleepFn, seconds: float) -> None:
    """Run `sleep(seconds)`, surfacing an OS-level interruption as InterruptedWaitError."""
    try:
        sleep(seconds)
    except InterruptedError as exc:
        raise InterruptedWaitError(f"wait of {seconds:.3f}s interrupted") from exc


# ---------------- wait_for (polling) ----------------

def wait_for(
    predicate: Callable[[], T],
    timeout_ms: int,
    interval_ms: int = 100,
    description: Optional[str] = None,
    *,
    clock: Clock = time.monotonic,
    sleep: SleepFn = time.sleep,
) -> T:
    """
    Poll `predicate()` until it returns a truthy value, or until `timeout_ms`
    elapses. Returns the predicate's return value.

    The predicate always runs at least once, so a zero timeout means a single
    probe. `clock` (seconds) and `sleep` (seconds) are injectable so callers
    can drive the loop without wall-clock waits.

    Raises:
        TimeoutError on timeout.
        InterruptedWaitError if the sleep between polls was cancelled.
    """
    log = get_logger(__name__)
    deadline = clock() * 1000 + max(0, timeout_ms)

    while True:
        val = predicate()
        if val:
            return val
        left = deadline - clock() * 1000
        if left <= 0:
            desc = f" ({description})" if description else ""
            raise TimeoutError(f"wait_for timed out after {timeout_ms} ms{desc}")
        interruptible(sleep, min(max(1, interval_ms), left) / 1000.0)

        if interval_ms >= 500:
            log.debug(f"Waiting... {max(0, int(deadline - clock() * 1000))} ms left{(' - ' + description) if description else ''}")
