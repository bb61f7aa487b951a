# selfheal/driver/__init__.py
"""
Driver package
--------------
The browser capability the resolver borrows: a protocol plus the Playwright
implementation. Import the Playwright adapter from its submodule so that
protocol-only users do not pull in Playwright.
"""

from .base import Driver, Element

__all__ = ["Driver", "Element"]
