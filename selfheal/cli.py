# selfheal/cli.py
from __future__ import annotations

"""Command-line interface
------------------------
Show the effective configuration, or probe a live page: open a URL, try each
locator through the self-healing resolver and report which strategy won.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import click

from selfheal.core.events import EventRecorder, ResolutionEvent
from selfheal.core.resolver import ElementResolver
from selfheal.core.session import browser_driver
from selfheal.selectors.strategy import STRATEGIES
from selfheal.utils.config import get_settings
from selfheal.utils.logger import attach_file_logger, bind, detach_file_logger, set_log_level, unbind
from selfheal.utils.timing import Stopwatch


# -------- helpers --------


def _echo_json(obj) -> None:
    click.echo(json.dumps(obj, indent=2, ensure_ascii=False))


def _describe(event: ResolutionEvent) -> str:
    parts = [event.kind.value]
    if event.attempt is not None:
        parts.append(f"attempt={event.attempt}/{event.max_attempts}")
    if event.strategy is not None:
        parts.append(f"strategy={event.strategy.value}")
    if event.delay_seconds is not None:
        parts.append(f"delay={event.delay_seconds}s")
    if event.error:
        parts.append(f"error={event.error.splitlines()[0]}")
    return "  ".join(parts)


# -------- CLI root --------


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override LOG_LEVEL from settings",
)
@click.version_option(package_name="selfheal-finder")
def cli(log_level: Optional[str]):
    _ = get_settings()
    if log_level:
        set_log_level(log_level.upper())


# -------- commands --------


@cli.command("config")
def cmd_config():
    """Print effective configuration (after .env & env vars)."""
    _echo_json(get_settings().model_dump(mode="json"))


@cli.command("probe")
@click.argument("url")
@click.argument("locators", nargs=-1, required=True)
@click.option("--attempts", type=click.IntRange(min=1), default=None, help="Override MAX_ATTEMPTS")
@click.option("--delay", type=click.FloatRange(min=0), default=None, help="Override RETRY_DELAY_SECONDS")
@click.option("--timeout-ms", type=click.IntRange(min=0), default=None, help="Override STRATEGY_TIMEOUT_MS")
@click.option("--headless/--headed", default=None, help="Override HEADLESS from settings")
@click.option("--trace", is_flag=True, default=False, help="Print every resolution event")
@click.option("--json-out", type=click.Path(dir_okay=False), default=None, help="Write a JSON summary to this file")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Also write JSON logs to this file")
def cmd_probe(
    url: str,
    locators: List[str],
    attempts: Optional[int],
    delay: Optional[float],
    timeout_ms: Optional[int],
    headless: Optional[bool],
    trace: bool,
    json_out: Optional[str],
    log_file: Optional[str],
):
    """
    Check whether each LOCATOR resolves on URL.

    Examples:
      selfheal probe https://the-internet.herokuapp.com/login "//input[@id='username']" "Login"
      selfheal probe https://example.com "h1" --attempts 1 --delay 0 --trace
    """
    settings = get_settings()
    if headless is not None:
        settings = settings.model_copy(update={"HEADLESS": headless})

    recorder = EventRecorder()
    handler = attach_file_logger(log_file) if log_file else None
    bind(run_id=datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ"))

    results: List[dict] = []
    try:
        with browser_driver(settings) as driver:
            driver.open(url)
            resolver = ElementResolver(
                driver,
                settings=settings,
                max_attempts=attempts,
                delay_seconds=delay,
                strategy_timeout_ms=timeout_ms,
                observer=recorder,
            )
            for locator in locators:
                recorder.clear()
                with Stopwatch() as sw:
                    found = resolver.element_exists(locator)
                outcome = resolver.last_outcome
                strategy = None
                if found and outcome is not None and outcome.strategy_used_index is not None:
                    strategy = STRATEGIES[outcome.strategy_used_index][0].value
                tries = outcome.attempts_made if outcome is not None else 0
                results.append({
                    "locator": locator,
                    "found": found,
                    "strategy": strategy,
                    "attempts": tries,
                    "elapsed_ms": sw.elapsed_ms(),
                })
                if found:
                    click.echo(f"OK  {locator} -> {strategy} ({tries} attempt(s), {sw.elapsed_ms()} ms)")
                else:
                    click.echo(f"ERR {locator} -> not found ({tries} attempt(s), {sw.elapsed_ms()} ms)")
                if trace:
                    for event in recorder.events:
                        click.echo(f"    {_describe(event)}")

            resolver.print_all_metrics()
            metrics = resolver.metrics_snapshot()
    finally:
        unbind("run_id")
        if handler is not None:
            detach_file_logger(handler)

    missing = sum(1 for r in results if not r["found"])
    click.echo(f"Done. FOUND={len(results) - missing}  MISSING={missing}")

    if json_out:
        outp = Path(json_out).resolve()
        outp.parent.mkdir(parents=True, exist_ok=True)
        outp.write_text(json.dumps({"url": url, "results": results, "metrics": metrics}, indent=2), encoding="utf-8")
        click.echo(f"Wrote summary: {outp}")

    sys.exit(0 if missing == 0 else 1)


def main() -> None:
    cli(prog_name="selfheal")


if __name__ == "__main__":
    main()
