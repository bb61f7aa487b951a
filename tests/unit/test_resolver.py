import io

import pytest
from rich.console import Console

from selfheal.core.errors import (
    CascadeExhausted,
    ElementNotFoundError,
    InterruptedWaitError,
    RetriesExhausted,
    StaleElementError,
)
from selfheal.core.events import EventKind, EventRecorder
from selfheal.selectors.strategy import StrategyKind, build_selector
from selfheal.utils.timing import Sleeper
from tests.fakes import FakeElement

LOGIN = "Login"
USERNAME = "//input[@id='username']"


def _cascade(locator):
    return [build_selector(kind, locator) for kind in StrategyKind]


# ---------- Strategy cascade ----------


def test_primary_strategy_wins_without_fallback(driver, make_resolver):
    el = FakeElement()
    driver.add(StrategyKind.xpath, USERNAME, el)
    resolver = make_resolver()

    assert resolver.find_element(USERNAME) is el
    assert driver.queries == [build_selector(StrategyKind.xpath, USERNAME)]
    assert resolver.metrics.fallback_success_count == 0
    assert resolver.metrics.total_element_finds == 1
    assert resolver.last_outcome.strategy_used_index == 0


def test_exact_text_fallback_on_first_attempt(driver, make_resolver):
    el = FakeElement("Login")
    driver.add(StrategyKind.exact_text, LOGIN, el)
    resolver = make_resolver()

    assert resolver.find_element(LOGIN) is el
    assert driver.queries == _cascade(LOGIN)[:3]
    assert resolver.metrics.fallback_success_count == 1
    assert resolver.retry_policy.metrics.total_retries == 0
    assert resolver.last_outcome.strategy_used_index == 2
    assert resolver.last_outcome.attempts_made == 1


def test_absent_element_runs_full_cascade_each_attempt(driver, clock, make_resolver):
    resolver = make_resolver()

    with pytest.raises(ElementNotFoundError) as exc_info:
        resolver.find_element("#ghost", max_attempts=3, delay_seconds=0)

    err = exc_info.value
    assert isinstance(err, RetriesExhausted)
    assert isinstance(err.last_error, CascadeExhausted)
    assert err.attempts == 3
    assert [a.kind for a in err.last_error.attempts] == list(StrategyKind)
    assert driver.queries == _cascade("#ghost") * 3
    assert clock.sleeps == [0, 0]
    assert resolver.retry_policy.metrics.total_retries == 3
    assert resolver.metrics.total_element_finds == 1
    assert resolver.last_outcome.succeeded is False
    assert resolver.last_outcome.strategy_used_index is None


def test_element_appearing_on_second_attempt(driver, clock, make_resolver):
    el = FakeElement()
    driver.add(StrategyKind.xpath, USERNAME, [None, el])
    resolver = make_resolver(delay_seconds=2)

    assert resolver.find_element(USERNAME) is el
    assert clock.sleeps == [2]
    assert resolver.retry_policy.metrics.successful_retries == 1
    assert resolver.retry_policy.metrics.total_retries == 1
    assert resolver.metrics.fallback_success_count == 0
    assert resolver.last_outcome.attempts_made == 2


def test_strategy_polls_until_element_shows_up(driver, clock, make_resolver):
    el = FakeElement()
    driver.add(StrategyKind.xpath, USERNAME, [None, None, el])
    resolver = make_resolver(strategy_timeout_ms=1000, poll_interval_ms=250)

    assert resolver.find_element(USERNAME) is el
    assert clock.sleeps == [0.25, 0.25]
    assert resolver.retry_policy.metrics.total_retries == 0


def test_each_strategy_is_bounded_by_its_timeout(driver, clock, make_resolver):
    resolver = make_resolver(strategy_timeout_ms=500, poll_interval_ms=250)

    with pytest.raises(ElementNotFoundError):
        resolver.find_element("#ghost", max_attempts=1)

    # probes at 0, 250 and 500 ms for each of the four strategies
    assert len(driver.queries) == 12
    assert clock.sleeps == [0.25] * 8
    assert clock.now == pytest.approx(2.0)


@pytest.mark.parametrize("blocked", [FakeElement(displayed=False), FakeElement(enabled=False), FakeElement(stale=True)])
def test_non_interactable_match_falls_through(driver, make_resolver, blocked):
    good = FakeElement()
    driver.add(StrategyKind.xpath, "h1", blocked)
    driver.add(StrategyKind.css, "h1", good)
    resolver = make_resolver()

    assert resolver.find_element("h1") is good
    assert resolver.metrics.fallback_success_count == 1


def test_stale_lookup_is_treated_as_not_found(driver, make_resolver):
    good = FakeElement()
    driver.add(StrategyKind.css, "h1", good)
    xpath = build_selector(StrategyKind.xpath, "h1")

    original = driver.find_one

    def find_one(selector):
        if selector == xpath:
            driver.queries.append(selector)
            raise StaleElementError("detached while querying")
        return original(selector)

    driver.find_one = find_one
    resolver = make_resolver()

    assert resolver.find_element("h1") is good


def test_invalid_selector_fails_strategy_without_polling(driver, clock, make_resolver):
    el = FakeElement()
    driver.invalid.add(build_selector(StrategyKind.xpath, "h1.heading"))
    driver.add(StrategyKind.css, "h1.heading", el)
    resolver = make_resolver(strategy_timeout_ms=20000)

    assert resolver.find_element("h1.heading") is el
    assert clock.sleeps == []


def test_resolve_with_strategies_reports_every_strategy(driver, make_resolver):
    resolver = make_resolver()

    with pytest.raises(CascadeExhausted) as exc_info:
        resolver.resolve_with_strategies("nothing")

    assert "nothing" in str(exc_info.value)
    assert len(exc_info.value.attempts) == 4


def test_cascade_events(driver, make_resolver):
    recorder = EventRecorder()
    driver.add(StrategyKind.exact_text, LOGIN, FakeElement())
    resolver = make_resolver(observer=recorder)

    resolver.find_element(LOGIN)

    failed = recorder.of_kind(EventKind.strategy_failed)
    matched = recorder.of_kind(EventKind.strategy_matched)
    assert [e.strategy for e in failed] == [StrategyKind.xpath, StrategyKind.css]
    assert matched[0].strategy is StrategyKind.exact_text
    assert matched[0].strategy_index == 2
    assert matched[0].locator == LOGIN


# ---------- Find + act ----------


def test_find_and_click(driver, make_resolver):
    el = FakeElement()
    driver.add(StrategyKind.xpath, "//button", el)
    resolver = make_resolver()

    assert resolver.find_and_click("//button") is None
    assert el.clicks == 1
    assert resolver.metrics.total_element_finds == 1


def test_find_and_send_keys_clears_first(driver, make_resolver):
    el = FakeElement()
    el.value = "stale input"
    driver.add(StrategyKind.xpath, USERNAME, el)
    resolver = make_resolver()

    resolver.find_and_send_keys(USERNAME, "tomsmith")

    assert el.value == "tomsmith"
    assert driver.calls == ["clear", "send_keys"]


def test_find_and_get_text(driver, make_resolver):
    driver.add(StrategyKind.partial_text, "Hello", FakeElement("Hello World!"))
    resolver = make_resolver()

    assert resolver.find_and_get_text("Hello") == "Hello World!"
    assert resolver.metrics.fallback_success_count == 1


def test_action_failure_retries_whole_cascade(driver, make_resolver):
    el = FakeElement(stale_clicks=1)
    driver.add(StrategyKind.xpath, "//button", el)
    resolver = make_resolver()

    resolver.find_and_click("//button")

    assert el.clicks == 1
    assert len(driver.queries) == 2
    assert resolver.retry_policy.metrics.successful_retries == 1
    assert resolver.metrics.total_element_finds == 1


def test_persistent_action_failure_is_not_reported_as_not_found(driver, make_resolver):
    driver.add(StrategyKind.xpath, "//button", FakeElement(stale_clicks=10))
    resolver = make_resolver()

    with pytest.raises(RetriesExhausted) as exc_info:
        resolver.find_and_click("//button", max_attempts=2)

    assert not isinstance(exc_info.value, ElementNotFoundError)
    assert isinstance(exc_info.value.last_error, StaleElementError)


def test_wait_for_element_matches_find_element(driver, make_resolver):
    el = FakeElement()
    driver.add(StrategyKind.css, "input[type=text]", el)
    resolver = make_resolver()

    assert resolver.wait_for_element("input[type=text]") is el
    assert resolver.metrics.total_element_finds == 1
    assert resolver.metrics.fallback_success_count == 1


def test_element_exists(driver, make_resolver):
    driver.add(StrategyKind.css, "h1.heading", FakeElement())
    resolver = make_resolver()

    assert resolver.element_exists("h1.heading") is True
    assert resolver.element_exists("h2.missing") is False
    assert resolver.metrics.total_element_finds == 2


def test_per_call_overrides(driver, clock, make_resolver):
    resolver = make_resolver(max_attempts=5, delay_seconds=3)

    assert resolver.element_exists("#ghost", max_attempts=1, delay_seconds=0) is False
    assert len(driver.queries) == 4
    assert clock.sleeps == []


# ---------- Metrics ----------


def test_fallback_rate(driver, make_resolver):
    driver.add(StrategyKind.xpath, "//h1", FakeElement())
    driver.add(StrategyKind.exact_text, "Welcome", FakeElement())
    resolver = make_resolver()

    assert resolver.get_fallback_success_rate() == 0
    resolver.find_element("//h1")
    resolver.find_element("Welcome")
    assert resolver.get_fallback_success_rate() == 50.0


def test_reset_metrics_zeroes_everything(driver, make_resolver):
    driver.add(StrategyKind.css, "h1", [None, FakeElement()])
    resolver = make_resolver()
    resolver.find_element("h1")
    resolver.element_exists("#ghost", max_attempts=2)

    resolver.reset_metrics()

    snapshot = resolver.metrics_snapshot()
    assert snapshot["total_operations"] == 0
    assert snapshot["total_retries"] == 0
    assert snapshot["successful_retries"] == 0
    assert snapshot["total_element_finds"] == 0
    assert snapshot["fallback_success_count"] == 0
    assert resolver.get_fallback_success_rate() == 0
    assert resolver.retry_policy.get_retry_success_rate() == 0


def test_print_all_metrics(driver, make_resolver):
    driver.add(StrategyKind.xpath, "//h1", FakeElement())
    driver.add(StrategyKind.exact_text, "Welcome", FakeElement())
    resolver = make_resolver()
    resolver.find_element("//h1")
    resolver.find_element("Welcome")

    buf = io.StringIO()
    resolver.print_all_metrics(Console(file=buf, width=100))

    out = buf.getvalue()
    assert "Retry Metrics" in out
    assert "Fallback Strategy Metrics" in out
    assert "50.00%" in out


def test_resolvers_do_not_share_metrics(driver, make_resolver):
    driver.add(StrategyKind.css, "h1", FakeElement())
    first, second = make_resolver(), make_resolver()

    first.find_element("h1")

    assert first.retry_policy is not second.retry_policy
    assert second.metrics.total_element_finds == 0
    assert second.retry_policy.metrics.total_operations == 0


# ---------- Cancellation ----------


def test_interrupt_aborts_pending_retry(driver, clock, settings):
    from selfheal.core.resolver import ElementResolver

    sleeper = Sleeper()
    resolver = ElementResolver(
        driver,
        settings=settings,
        strategy_timeout_ms=0,
        delay_seconds=30,
        sleep=sleeper,
        clock=clock.monotonic,
    )
    resolver.interrupt()

    with pytest.raises(InterruptedWaitError):
        resolver.find_element("#ghost")

    assert len(driver.queries) == 4
    assert resolver.retry_policy.metrics.total_retries == 1


def test_interrupt_needs_cancellable_sleep(make_resolver):
    with pytest.raises(TypeError):
        make_resolver().interrupt()


def test_interrupt_aborts_polling_without_trying_other_strategies(driver, clock, settings):
    from selfheal.core.resolver import ElementResolver

    sleeper = Sleeper()
    resolver = ElementResolver(
        driver,
        settings=settings,
        strategy_timeout_ms=1000,
        poll_interval_ms=250,
        delay_seconds=0,
        sleep=sleeper,
        clock=clock.monotonic,
    )
    resolver.interrupt()

    with pytest.raises(InterruptedWaitError):
        resolver.find_element("#ghost")

    assert driver.queries == [build_selector(StrategyKind.xpath, "#ghost")]
    assert resolver.retry_policy.metrics.total_retries == 0
    assert resolver.last_outcome.succeeded is False


def test_resolver_recovers_after_interrupted_call(driver, clock, settings):
    from selfheal.core.resolver import ElementResolver

    sleeper = Sleeper()
    resolver = ElementResolver(
        driver,
        settings=settings,
        strategy_timeout_ms=0,
        delay_seconds=0,
        sleep=sleeper,
        clock=clock.monotonic,
    )
    resolver.interrupt()
    with pytest.raises(InterruptedWaitError):
        resolver.find_element("#ghost")

    el = FakeElement()
    driver.dom[build_selector(StrategyKind.xpath, "//late")] = [None, el]

    assert resolver.find_element("//late") is el
    assert resolver.last_outcome.attempts_made == 2
    assert resolver.element_exists("#ghost") is False
