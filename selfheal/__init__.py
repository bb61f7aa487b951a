# selfheal/__init__.py
"""
selfheal
--------
Self-healing element lookup for browser tests: a locator is tried as XPath,
CSS, exact text and partial text, and the whole cascade is retried with a
fixed delay until an interactable element turns up.
"""

from .core.errors import (
    CascadeExhausted,
    ElementNotFoundError,
    InterruptedWaitError,
    InvalidStrategyError,
    RetriesExhausted,
    SelfHealError,
    StrategyNotFound,
)
from .core.events import EventKind, EventRecorder, ResolutionEvent
from .core.resolver import ElementResolver, StrategyMatch
from .core.retry import RetryOutcome, RetryPolicy
from .selectors.strategy import StrategyKind

__all__ = [
    "CascadeExhausted",
    "ElementNotFoundError",
    "ElementResolver",
    "EventKind",
    "EventRecorder",
    "InterruptedWaitError",
    "InvalidStrategyError",
    "ResolutionEvent",
    "RetriesExhausted",
    "RetryOutcome",
    "RetryPolicy",
    "SelfHealError",
    "StrategyKind",
    "StrategyMatch",
    "StrategyNotFound",
]
