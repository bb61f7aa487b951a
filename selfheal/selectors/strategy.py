# selfheal/selectors/strategy.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Tuple, Union

from selfheal.core.errors import InvalidStrategyError


class StrategyKind(str, Enum):
    """Interpretations of a locator expression, listed in cascade order."""
    xpath = "xpath"
    css = "css"
    exact_text = "exact_text"
    partial_text = "partial_text"


class SelectorEngine(str, Enum):
    """Query language the driver must use to evaluate a Selector."""
    xpath = "xpath"
    css = "css"


@dataclass(frozen=True)
class Selector:
    engine: SelectorEngine
    value: str

    def __str__(self) -> str:
        return f"{self.engine.value}={self.value}"


def xpath_literal(text: str) -> str:
    """
    Quote `text` as an XPath 1.0 string literal.

    XPath has no escape sequences, so text holding both quote kinds is
    assembled with concat().
    """
    if "'" not in text:
        return f"'{text}'"
    if '"' not in text:
        return f'"{text}"'
    pieces = text.split("'")
    return "concat(" + ", \"'\", ".join(f"'{piece}'" for piece in pieces) + ")"


# ---------- Builders ----------

def _as_xpath(expr: str) -> Selector:
    return Selector(SelectorEngine.xpath, expr)


def _as_css(expr: str) -> Selector:
    return Selector(SelectorEngine.css, expr)


def _as_exact_text(expr: str) -> Selector:
    return Selector(SelectorEngine.xpath, f"//*[text()={xpath_literal(expr)}]")


def _as_partial_text(expr: str) -> Selector:
    return Selector(SelectorEngine.xpath, f"//*[contains(text(),{xpath_literal(expr)})]")


SelectorBuilder = Callable[[str], Selector]

# Cheapest and most literal first; text matches are the most likely to hit an
# unintended element, so they come last.
STRATEGIES: Tuple[Tuple[StrategyKind, SelectorBuilder], ...] = (
    (StrategyKind.xpath, _as_xpath),
    (StrategyKind.css, _as_css),
    (StrategyKind.exact_text, _as_exact_text),
    (StrategyKind.partial_text, _as_partial_text),
)

_BUILDERS: Dict[StrategyKind, SelectorBuilder] = dict(STRATEGIES)


def build_selector(kind: Union[StrategyKind, str], expr: str) -> Selector:
    """
    Map a strategy kind and a locator expression to a concrete Selector.

    Raises:
        InvalidStrategyError for kinds outside StrategyKind.
    """
    try:
        builder = _BUILDERS[StrategyKind(kind)]
    except (KeyError, ValueError) as exc:
        raise InvalidStrategyError(kind) from exc
    return builder(expr)
