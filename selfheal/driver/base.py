# selfheal/driver/base.py
from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from selfheal.selectors.strategy import Selector

Element = Any


@runtime_checkable
class Driver(Protocol):
    """
    What the resolver needs from a browser session.

    `find_one` returns None when nothing matches; it must not wait. Element
    methods raise StaleElementError once the handle has outlived its DOM node,
    and `find_one` raises InvalidSelectorError for selectors it cannot parse.
    """

    def open(self, url: str) -> None: ...

    def find_one(self, selector: Selector) -> Optional[Element]: ...

    def is_displayed(self, element: Element) -> bool: ...

    def is_enabled(self, element: Element) -> bool: ...

    def click(self, element: Element) -> None: ...

    def clear(self, element: Element) -> None: ...

    def send_keys(self, element: Element, text: str) -> None: ...

    def get_text(self, element: Element) -> str: ...
