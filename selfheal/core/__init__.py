# selfheal/core/__init__.py
"""
Core package for self-healing element resolution.
Lightweight package init to avoid import cycles.

Consumers should import submodules directly, e.g.:
  from selfheal.core.retry import RetryPolicy
  from selfheal.core.resolver import ElementResolver
  from selfheal.core.session import browser_driver
"""

__all__: list[str] = []
