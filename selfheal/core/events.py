# selfheal/core/events.py
from __future__ import annotations

"""Resolution events
--------------------
Structured progress records emitted by RetryPolicy and ElementResolver to an
optional observer, alongside the regular log lines.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from selfheal.selectors.strategy import StrategyKind


class EventKind(str, Enum):
    attempt_started = "attempt_started"
    attempt_failed = "attempt_failed"
    retry_scheduled = "retry_scheduled"
    retry_succeeded = "retry_succeeded"
    retries_exhausted = "retries_exhausted"
    strategy_failed = "strategy_failed"
    strategy_matched = "strategy_matched"


@dataclass(frozen=True)
class ResolutionEvent:
    kind: EventKind
    attempt: Optional[int] = None
    max_attempts: Optional[int] = None
    delay_seconds: Optional[float] = None
    locator: Optional[str] = None
    strategy: Optional[StrategyKind] = None
    strategy_index: Optional[int] = None
    error: Optional[str] = None


Observer = Callable[[ResolutionEvent], None]


class EventRecorder:
    """Observer that keeps every event it receives, in order."""

    def __init__(self) -> None:
        self.events: List[ResolutionEvent] = []

    def __call__(self, event: ResolutionEvent) -> None:
        self.events.append(event)

    def kinds(self) -> List[EventKind]:
        return [e.kind for e in self.events]

    def of_kind(self, kind: EventKind) -> List[ResolutionEvent]:
        return [e for e in self.events if e.kind == kind]

    def clear(self) -> None:
        self.events.clear()


def notify(observer: Optional[Observer], event: ResolutionEvent, log: logging.LoggerAdapter) -> None:
    """Deliver `event` to `observer`; a failing observer is logged, never fatal."""
    if observer is None:
        return
    try:
        observer(event)
    except Exception as exc:
        log.debug(f"Observer raised {exc!r} on {event.kind.value}; ignoring")
