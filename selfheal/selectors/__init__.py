# selfheal/selectors/__init__.py
"""
Selectors package
-----------------
Turns one ambiguous locator expression into concrete selectors, one per
strategy, in the fixed order the resolver tries them.
"""

from .strategy import (
    STRATEGIES,
    Selector,
    SelectorEngine,
    StrategyKind,
    build_selector,
    xpath_literal,
)

__all__ = [
    "STRATEGIES",
    "Selector",
    "SelectorEngine",
    "StrategyKind",
    "build_selector",
    "xpath_literal",
]
