# selfheal/core/session.py
from __future__ import annotations

"""Browser session
------------------
Starts Playwright with settings-derived launch/context options and hands out
a PlaywrightDriver for one fresh page. One session per test thread.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from playwright.sync_api import sync_playwright

from selfheal.driver.playwright_driver import PlaywrightDriver
from selfheal.utils.config import Settings, get_settings
from selfheal.utils.logger import get_logger

log = get_logger(__name__)


@contextmanager
def browser_driver(settings: Optional[Settings] = None) -> Iterator[PlaywrightDriver]:
    """
    Yield a driver bound to a new page; browser and context close on exit.

    Usage:
        with browser_driver() as driver:
            driver.open("https://the-internet.herokuapp.com/login")
            resolver = ElementResolver(driver)
    """
    s = settings or get_settings()
    with sync_playwright() as p:
        browser_type = getattr(p, s.BROWSER_TYPE.value)
        browser = browser_type.launch(**s.playwright_launch_kwargs())
        log.debug(f"Launched {s.BROWSER_TYPE.value} (headless={s.HEADLESS})")
        try:
            context = browser.new_context(**s.playwright_context_kwargs())
            context.set_default_navigation_timeout(s.PAGE_LOAD_TIMEOUT)
            page = context.new_page()
            yield PlaywrightDriver(page, navigation_timeout_ms=s.PAGE_LOAD_TIMEOUT)
        finally:
            browser.close()
