# selfheal/core/resolver.py
from __future__ import annotations

"""Self-healing element resolution
----------------------------------
ElementResolver turns a locator expression into a visible, enabled element by
trying each interpretation in STRATEGIES order, and wraps that cascade (plus
an optional action on the element) in its own RetryPolicy.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, TypeVar

from rich.console import Console

from selfheal.core.errors import (
    CascadeExhausted,
    ElementNotFoundError,
    InvalidSelectorError,
    RetriesExhausted,
    StaleElementError,
    StrategyAttempt,
    StrategyNotFound,
)
from selfheal.core.events import EventKind, Observer, ResolutionEvent, notify
from selfheal.core.metrics import FallbackMetrics, render_fallback_metrics
from selfheal.core.retry import RetryOutcome, RetryPolicy
from selfheal.driver.base import Driver, Element
from selfheal.selectors.strategy import STRATEGIES, Selector, StrategyKind
from selfheal.utils.config import Settings, get_settings
from selfheal.utils.logger import get_logger, log_with_context
from selfheal.utils.timing import Clock, Sleeper, SleepFn, wait_for

T = TypeVar("T")


@dataclass
class StrategyMatch:
    """The element a cascade settled on and which strategy found it."""
    element: Element
    kind: StrategyKind
    index: int
    selector: Selector

    @property
    def is_fallback(self) -> bool:
        return self.index > 0


class ElementResolver:
    """
    Find elements that survive flaky timing and brittle locators.

    One resolver serves one browser session on one thread. It owns its
    RetryPolicy and its fallback counters; the driver is borrowed.

    Every public operation accepts optional `max_attempts` / `delay_seconds`
    that override the policy defaults for that call only.
    """

    def __init__(
        self,
        driver: Driver,
        *,
        settings: Optional[Settings] = None,
        max_attempts: Optional[int] = None,
        delay_seconds: Optional[float] = None,
        strategy_timeout_ms: Optional[int] = None,
        poll_interval_ms: Optional[int] = None,
        sleep: Optional[SleepFn] = None,
        clock: Clock = time.monotonic,
        observer: Optional[Observer] = None,
    ) -> None:
        s = settings or get_settings()
        self.driver = driver
        self.strategy_timeout_ms = s.STRATEGY_TIMEOUT_MS if strategy_timeout_ms is None else strategy_timeout_ms
        self.poll_interval_ms = s.POLL_INTERVAL_MS if poll_interval_ms is None else poll_interval_ms
        self.sleep: SleepFn = sleep if sleep is not None else Sleeper()
        self.clock = clock
        self.observer = observer
        self.retry_policy = RetryPolicy(
            max_attempts=max_attempts,
            delay_seconds=delay_seconds,
            settings=s,
            sleep=self.sleep,
            observer=observer,
        )
        self.metrics = FallbackMetrics()
        self.last_outcome: Optional[RetryOutcome] = None
        self.log = get_logger(__name__)

    # ---------- Strategy cascade ----------

    def resolve_with_strategies(self, locator: str) -> StrategyMatch:
        """
        One attempt: try every strategy in order and return the first
        interactable match.

        Not retried and not counted: fallback metrics are updated by the
        public operations (find_element, find_and_click, ...) once per call,
        so calling this directly leaves them untouched.

        Raises:
            CascadeExhausted when no strategy produced an element.
        """
        tried: List[StrategyAttempt] = []

        for index, (kind, build) in enumerate(STRATEGIES):
            selector = build(locator)
            try:
                element = self._wait_for_clickable(selector)
            except StrategyNotFound as exc:
                tried.append(StrategyAttempt(kind=kind, selector=selector, error=exc.reason))
                self.log.debug(f"Strategy {kind.value} failed for locator: {locator!r} ({exc.reason})")
                self._emit(
                    EventKind.strategy_failed,
                    locator=locator,
                    strategy=kind,
                    strategy_index=index,
                    error=exc.reason,
                )
                continue

            if index > 0:
                self.log.info(f"Fallback strategy {kind.value} succeeded for: {locator!r}")
            else:
                self.log.debug(f"Primary strategy {kind.value} succeeded for: {locator!r}")
            self._emit(EventKind.strategy_matched, locator=locator, strategy=kind, strategy_index=index)
            return StrategyMatch(element=element, kind=kind, index=index, selector=selector)

        raise CascadeExhausted(locator, tried)

    def _wait_for_clickable(self, selector: Selector) -> Element:
        """Poll until `selector` yields a displayed, enabled element or the strategy budget runs out."""

        def _probe() -> Optional[Element]:
            try:
                element = self.driver.find_one(selector)
            except StaleElementError:
                return None
            if element is None or not self._is_interactable(element):
                return None
            return element

        try:
            return wait_for(
                _probe,
                timeout_ms=self.strategy_timeout_ms,
                interval_ms=self.poll_interval_ms,
                description=str(selector),
                clock=self.clock,
                sleep=self.sleep,
            )
        except InvalidSelectorError as exc:
            raise StrategyNotFound(selector, f"invalid selector: {exc}") from exc
        except TimeoutError as exc:
            raise StrategyNotFound(selector, f"not clickable within {self.strategy_timeout_ms} ms") from exc

    def _is_interactable(self, element: Element) -> bool:
        try:
            return bool(self.driver.is_displayed(element) and self.driver.is_enabled(element))
        except StaleElementError:
            return False

    # ---------- Public operations ----------

    def find_element(
        self, locator: str, max_attempts: Optional[int] = None, delay_seconds: Optional[float] = None
    ) -> Element:
        return self._resolve(locator, lambda element: element, max_attempts, delay_seconds, action="find")

    def wait_for_element(
        self, locator: str, max_attempts: Optional[int] = None, delay_seconds: Optional[float] = None
    ) -> Element:
        """Same as find_element; reads better at call sites that wait for something to appear."""
        return self._resolve(locator, lambda element: element, max_attempts, delay_seconds, action="wait")

    def find_and_click(
        self, locator: str, max_attempts: Optional[int] = None, delay_seconds: Optional[float] = None
    ) -> None:
        self._resolve(locator, self.driver.click, max_attempts, delay_seconds, action="click")

    def find_and_send_keys(
        self,
        locator: str,
        text: str,
        max_attempts: Optional[int] = None,
        delay_seconds: Optional[float] = None,
    ) -> None:
        """Clear the field, then type `text` into it."""

        def _type(element: Element) -> None:
            self.driver.clear(element)
            self.driver.send_keys(element, text)

        self._resolve(locator, _type, max_attempts, delay_seconds, action="send_keys")

    def find_and_get_text(
        self, locator: str, max_attempts: Optional[int] = None, delay_seconds: Optional[float] = None
    ) -> str:
        return self._resolve(locator, self.driver.get_text, max_attempts, delay_seconds, action="get_text")

    def element_exists(
        self, locator: str, max_attempts: Optional[int] = None, delay_seconds: Optional[float] = None
    ) -> bool:
        """True if the locator resolves; a locator that never resolves gives False instead of raising."""
        try:
            self.find_element(locator, max_attempts, delay_seconds)
        except ElementNotFoundError:
            return False
        return True

    def interrupt(self) -> None:
        """
        Cancel the pending wait, or the next one if nothing is waiting yet.
        The call that hits it raises InterruptedWaitError; calls after it run normally.
        """
        cancel = getattr(self.sleep, "cancel", None)
        if cancel is None:
            raise TypeError(f"{type(self.sleep).__name__} cannot be cancelled")
        cancel()

    def _resolve(
        self,
        locator: str,
        act: Callable[[Element], T],
        max_attempts: Optional[int],
        delay_seconds: Optional[float],
        *,
        action: str,
    ) -> T:
        self.metrics.total_element_finds += 1
        scoped = log_with_context(self.log, locator=locator, action=action)
        winner: Dict[str, StrategyMatch] = {}

        def _attempt() -> T:
            winner.clear()
            match = self.resolve_with_strategies(locator)
            winner["match"] = match
            return act(match.element)

        try:
            result = self.retry_policy.execute(
                _attempt, max_attempts, delay_seconds, description=f"{action} {locator!r}"
            )
        except RetriesExhausted as exc:
            if isinstance(exc.last_error, CascadeExhausted):
                scoped.warning(f"No element found for {locator!r} after {exc.attempts} attempt(s)")
                raise ElementNotFoundError(locator, exc.attempts, exc.last_error) from exc.last_error
            raise
        finally:
            self._record_outcome(winner.get("match"))

        if winner["match"].is_fallback:
            self.metrics.fallback_success_count += 1
        return result

    def _record_outcome(self, match: Optional[StrategyMatch]) -> None:
        outcome = self.retry_policy.last_outcome
        if outcome is None:
            return
        self.last_outcome = RetryOutcome(
            attempts_made=outcome.attempts_made,
            succeeded=outcome.succeeded,
            strategy_used_index=match.index if (match is not None and outcome.succeeded) else None,
        )

    # ---------- Metrics ----------

    def get_fallback_success_rate(self) -> float:
        return self.metrics.success_rate

    def print_fallback_metrics(self, console: Optional[Console] = None) -> None:
        render_fallback_metrics(self.metrics, console)

    def print_all_metrics(self, console: Optional[Console] = None) -> None:
        self.retry_policy.print_metrics(console)
        self.print_fallback_metrics(console)

    def metrics_snapshot(self) -> dict:
        return {**self.retry_policy.metrics.as_dict(), **self.metrics.as_dict()}

    def reset_metrics(self) -> None:
        self.retry_policy.reset_metrics()
        self.metrics.reset()

    # ---------- Internals ----------

    def _emit(self, kind: EventKind, **fields) -> None:
        notify(self.observer, ResolutionEvent(kind=kind, **fields), self.log)
