# selfheal/driver/playwright_driver.py
from __future__ import annotations

"""Playwright adapter
---------------------
Implements the Driver protocol on top of a sync Playwright Page. Elements are
ElementHandles, i.e. snapshots of a DOM node that go stale when the node is
replaced, which is the behavior the resolver's stale handling expects.
"""

from typing import Callable, Optional, TypeVar

from playwright.sync_api import ElementHandle, Error as PlaywrightError, Page

from selfheal.core.errors import DriverError, InvalidSelectorError, StaleElementError
from selfheal.selectors.strategy import Selector
from selfheal.utils.logger import get_logger

T = TypeVar("T")

log = get_logger(__name__)

_STALE_MARKERS = (
    "not attached to the dom",
    "execution context was destroyed",
    "is disposed",
)
_INVALID_SELECTOR_MARKERS = (
    "not a valid selector",
    "not a valid xpath",
    "while parsing",
    "unexpected token",
    "unknown engine",
)


def _translate(exc: PlaywrightError) -> DriverError:
    msg = str(exc).lower()
    if any(m in msg for m in _STALE_MARKERS):
        return StaleElementError(str(exc))
    if any(m in msg for m in _INVALID_SELECTOR_MARKERS):
        return InvalidSelectorError(str(exc))
    return DriverError(str(exc))


def _call(fn: Callable[[], T]) -> T:
    try:
        return fn()
    except PlaywrightError as exc:
        raise _translate(exc) from exc


class PlaywrightDriver:
    """Driver backed by a Playwright Page. The page is borrowed, never closed here."""

    def __init__(self, page: Page, *, navigation_timeout_ms: int = 30000, action_timeout_ms: int = 5000) -> None:
        self.page = page
        self.navigation_timeout_ms = navigation_timeout_ms
        self.action_timeout_ms = action_timeout_ms

    # ---------- Navigation ----------

    def open(self, url: str) -> None:
        log.info(f"Opening {url}")
        _call(lambda: self.page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms))

    def page_title(self) -> str:
        return _call(self.page.title)

    def current_url(self) -> str:
        return self.page.url

    # ---------- Lookup ----------

    def find_one(self, selector: Selector) -> Optional[ElementHandle]:
        # Prefix with the engine so Playwright never guesses (text-like CSS, //-less xpath)
        query = f"{selector.engine.value}={selector.value}"
        return _call(lambda: self.page.query_selector(query))

    def is_displayed(self, element: ElementHandle) -> bool:
        return _call(element.is_visible)

    def is_enabled(self, element: ElementHandle) -> bool:
        return _call(element.is_enabled)

    # ---------- Actions ----------

    def click(self, element: ElementHandle) -> None:
        _call(lambda: element.click(timeout=self.action_timeout_ms))

    def clear(self, element: ElementHandle) -> None:
        _call(lambda: element.fill("", timeout=self.action_timeout_ms))

    def send_keys(self, element: ElementHandle, text: str) -> None:
        _call(lambda: element.type(text, timeout=self.action_timeout_ms))

    def get_text(self, element: ElementHandle) -> str:
        return _call(lambda: element.inner_text(timeout=self.action_timeout_ms))
