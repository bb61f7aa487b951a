# selfheal/core/metrics.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from rich.console import Console
from rich.table import Table


def _rate(part: int, whole: int) -> float:
    return part / whole * 100 if whole > 0 else 0.0


@dataclass
class RetryMetrics:
    """Counters owned by one RetryPolicy."""
    total_operations: int = 0
    total_retries: int = 0
    successful_retries: int = 0

    @property
    def success_rate(self) -> float:
        # retries that eventually succeeded, over failed attempts
        return _rate(self.successful_retries, self.total_retries)

    def reset(self) -> None:
        self.total_operations = 0
        self.total_retries = 0
        self.successful_retries = 0

    def as_dict(self) -> dict:
        return {
            "total_operations": self.total_operations,
            "total_retries": self.total_retries,
            "successful_retries": self.successful_retries,
            "retry_success_rate": round(self.success_rate, 2),
        }


@dataclass
class FallbackMetrics:
    """Counters owned by one ElementResolver."""
    total_element_finds: int = 0
    fallback_success_count: int = 0

    @property
    def success_rate(self) -> float:
        return _rate(self.fallback_success_count, self.total_element_finds)

    def reset(self) -> None:
        self.total_element_finds = 0
        self.fallback_success_count = 0

    def as_dict(self) -> dict:
        return {
            "total_element_finds": self.total_element_finds,
            "fallback_success_count": self.fallback_success_count,
            "fallback_success_rate": round(self.success_rate, 2),
        }


# ---------- Rendering ----------

def _table(title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    return table


def render_retry_metrics(metrics: RetryMetrics, console: Optional[Console] = None) -> Table:
    table = _table("Retry Metrics")
    table.add_row("Total operations", str(metrics.total_operations))
    table.add_row("Total retries", str(metrics.total_retries))
    table.add_row("Successful retries", str(metrics.successful_retries))
    table.add_row("Retry success rate", f"{metrics.success_rate:.2f}%")
    (console or Console()).print(table)
    return table


def render_fallback_metrics(metrics: FallbackMetrics, console: Optional[Console] = None) -> Table:
    table = _table("Fallback Strategy Metrics")
    table.add_row("Total element finds", str(metrics.total_element_finds))
    table.add_row("Fallback strategy successes", str(metrics.fallback_success_count))
    table.add_row("Fallback success rate", f"{metrics.success_rate:.2f}%")
    (console or Console()).print(table)
    return table
