# selfheal/core/errors.py
from __future__ import annotations

"""Error taxonomy
-----------------
Everything raised by the resolver, the retry policy and the driver adapters
derives from SelfHealError. Only CascadeExhausted (and the driver errors it is
built from) is retried; InvalidStrategyError and InterruptedWaitError abort
the current call.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from selfheal.selectors.strategy import Selector, StrategyKind


class SelfHealError(Exception):
    """Base exception for the package."""
    pass


# ---------- Driver-level conditions ----------

class DriverError(SelfHealError):
    """Any failure reported by the browser driver."""
    pass


class StaleElementError(DriverError):
    """An element handle outlived its DOM node."""
    pass


class InvalidSelectorError(DriverError):
    """The driver could not parse a selector (e.g. CSS handed to the xpath engine)."""
    pass


# ---------- Resolution ----------

@dataclass
class StrategyAttempt:
    """Records one strategy tried during a cascade, for error reports."""
    kind: "StrategyKind"
    selector: "Selector"
    error: Optional[str] = None


class StrategyNotFound(SelfHealError):
    """One strategy matched nothing interactable within its polling timeout."""

    def __init__(self, selector: "Selector", reason: str):
        self.selector = selector
        self.reason = reason
        super().__init__(f"{selector} -> {reason}")


class CascadeExhausted(SelfHealError):
    """
    Every strategy failed for one attempt.

    RetryPolicy treats this as a retryable failure; the next attempt runs the
    whole cascade again.
    """

    def __init__(self, locator: str, attempts: List[StrategyAttempt]):
        self.locator = locator
        self.attempts = attempts
        super().__init__(self.__str__())

    def __str__(self) -> str:
        lines = [f"Element not found using any strategy: {self.locator!r}"]
        for i, a in enumerate(self.attempts, start=1):
            lines.append(f"  {i}. {a.kind.value}: {a.selector.value} err={a.error}")
        return "\n".join(lines)


class RetriesExhausted(SelfHealError):
    """
    Raised by RetryPolicy when every attempt failed.

    Attributes:
        attempts: number of attempts made
        last_error: the failure raised by the final attempt (also __cause__)
    """

    def __init__(self, attempts: int, last_error: BaseException, description: str = "operation"):
        self.attempts = attempts
        self.last_error = last_error
        self.description = description
        super().__init__(
            f"Failed {description} after {attempts} attempt(s). "
            f"Last error: {type(last_error).__name__}: {last_error}"
        )


class ElementNotFoundError(RetriesExhausted):
    """Resolver flavor of RetriesExhausted: the last attempt ended in CascadeExhausted."""

    def __init__(self, locator: str, attempts: int, last_error: CascadeExhausted):
        self.locator = locator
        super().__init__(attempts, last_error, description=f"resolving {locator!r}")


# ---------- Fatal ----------

class InvalidStrategyError(SelfHealError, ValueError):
    """An unknown strategy kind was requested. Programming error; never retried."""

    def __init__(self, kind: object):
        self.kind = kind
        super().__init__(f"Unsupported locator strategy: {kind!r}")


class InterruptedWaitError(SelfHealError):
    """A retry delay or polling wait was cancelled; aborts the whole call."""
    pass
