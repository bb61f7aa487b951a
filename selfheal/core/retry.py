# selfheal/core/retry.py
from __future__ import annotations

"""Retry policy
---------------
Bounded retry with a fixed pause between failed attempts. Counts operations,
failed attempts and recoveries so flaky locators show up in the metrics.
"""

from dataclasses import dataclass
from typing import Callable, NoReturn, Optional, Tuple, Type, TypeVar

from rich.console import Console

from selfheal.core.errors import InterruptedWaitError, InvalidStrategyError, RetriesExhausted
from selfheal.core.events import EventKind, Observer, ResolutionEvent, notify
from selfheal.core.metrics import RetryMetrics, render_retry_metrics
from selfheal.utils.config import Settings, get_settings
from selfheal.utils.logger import get_logger
from selfheal.utils.timing import Sleeper, SleepFn, interruptible

T = TypeVar("T")

# Raised by an operation, these end the call at once
FATAL_ERRORS: Tuple[Type[BaseException], ...] = (InterruptedWaitError, InvalidStrategyError)


@dataclass
class RetryOutcome:
    """What happened during the most recent `execute` call."""
    attempts_made: int = 0
    succeeded: bool = False
    strategy_used_index: Optional[int] = None


def _first_line(exc: BaseException) -> str:
    text = str(exc)
    return text.splitlines()[0] if text else type(exc).__name__


class RetryPolicy:
    """
    Run a zero-argument operation up to `max_attempts` times.

    A failed attempt is followed by a blocking pause of `delay_seconds` unless
    it was the last one; success returns straight away. When every attempt
    fails, RetriesExhausted is raised, chained from the last failure.

    Args:
        max_attempts / delay_seconds: defaults for `execute`; fall back to
            MAX_ATTEMPTS / RETRY_DELAY_SECONDS from settings
        sleep: callable taking seconds; defaults to a cancellable Sleeper
        observer: receives a ResolutionEvent for every attempt transition
        exceptions: failure types treated as retryable
    """

    def __init__(
        self,
        *,
        max_attempts: Optional[int] = None,
        delay_seconds: Optional[float] = None,
        settings: Optional[Settings] = None,
        sleep: Optional[SleepFn] = None,
        observer: Optional[Observer] = None,
        exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    ) -> None:
        s = settings or get_settings()
        self.max_attempts = s.MAX_ATTEMPTS if max_attempts is None else max_attempts
        self.delay_seconds = s.RETRY_DELAY_SECONDS if delay_seconds is None else delay_seconds
        _validate(self.max_attempts, self.delay_seconds)
        self.sleep: SleepFn = sleep if sleep is not None else Sleeper()
        self.observer = observer
        self.exceptions = exceptions
        self.metrics = RetryMetrics()
        self.last_outcome: Optional[RetryOutcome] = None
        self.log = get_logger(__name__)

    # ---------- Execution ----------

    def execute(
        self,
        operation: Callable[[], T],
        max_attempts: Optional[int] = None,
        delay_seconds: Optional[float] = None,
        *,
        description: str = "operation",
    ) -> T:
        attempts = self.max_attempts if max_attempts is None else max_attempts
        delay = self.delay_seconds if delay_seconds is None else delay_seconds
        outcome = RetryOutcome()
        self.last_outcome = outcome
        _validate(attempts, delay)

        self.metrics.total_operations += 1

        for attempt in range(1, attempts + 1):
            outcome.attempts_made = attempt
            self.log.debug(f"Attempt {attempt} of {attempts}: {description}")
            self._emit(EventKind.attempt_started, attempt=attempt, max_attempts=attempts)
            try:
                result = operation()
            except FATAL_ERRORS:
                raise
            except self.exceptions as exc:  # type: ignore[misc]
                self.metrics.total_retries += 1
                self.log.info(f"Attempt {attempt}/{attempts} failed: {description}: {_first_line(exc)}")
                self._emit(
                    EventKind.attempt_failed,
                    attempt=attempt,
                    max_attempts=attempts,
                    error=f"{type(exc).__name__}: {_first_line(exc)}",
                )
                if attempt == attempts:
                    self._exhausted(attempts, exc, description)
                self.log.debug(f"Waiting {delay}s before retry...")
                self._emit(EventKind.retry_scheduled, attempt=attempt, max_attempts=attempts, delay_seconds=delay)
                interruptible(self.sleep, delay)
                continue

            if attempt > 1:
                self.metrics.successful_retries += 1
                self.log.info(f"Retry succeeded on attempt {attempt}: {description}")
                self._emit(EventKind.retry_succeeded, attempt=attempt, max_attempts=attempts)
            outcome.succeeded = True
            return result

        raise RuntimeError("unreachable: every attempt returns or raises")

    def _exhausted(self, attempts: int, last_exc: BaseException, description: str) -> NoReturn:
        self.log.warning(f"All {attempts} attempts failed: {description}")
        self._emit(
            EventKind.retries_exhausted,
            attempt=attempts,
            max_attempts=attempts,
            error=f"{type(last_exc).__name__}: {_first_line(last_exc)}",
        )
        raise RetriesExhausted(attempts, last_exc, description) from last_exc

    # ---------- Metrics ----------

    def get_retry_success_rate(self) -> float:
        return self.metrics.success_rate

    def print_metrics(self, console: Optional[Console] = None) -> None:
        render_retry_metrics(self.metrics, console)

    def reset_metrics(self) -> None:
        self.metrics.reset()

    # ---------- Internals ----------

    def _emit(self, kind: EventKind, **fields) -> None:
        notify(self.observer, ResolutionEvent(kind=kind, **fields), self.log)


def _validate(max_attempts: int, delay_seconds: float) -> None:
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
    if delay_seconds < 0:
        raise ValueError(f"delay_seconds must be >= 0, got {delay_seconds}")
