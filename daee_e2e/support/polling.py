"""Condition-based waiting for UI state that settles asynchronously.

All durations are milliseconds, like Playwright's own timeouts. Example::

    await poll_until(lambda: page.url.endswith("/notes"), description="notes page")

    count = await poll_until_matches(
        rows.count, lambda n: n > 0, description="dealer rows", timeout=10000
    )
"""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional, TypeVar, Union

import anyio

from daee_e2e.errors import PollingTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MaybeAwaitable = Union[T, Awaitable[T]]
Condition = Callable[[], MaybeAwaitable[bool]]
Getter = Callable[[], MaybeAwaitable[T]]
PollCallback = Callable[[int, float], None]


@dataclass(frozen=True)
class PollingOptions:
    timeout: float = 30000
    interval: float = 500
    description: str = "condition"
    on_poll: Optional[PollCallback] = None
    throw_on_timeout: bool = True


async def _resolve(value: MaybeAwaitable[T]) -> T:
    if inspect.isawaitable(value):
        return await value
    return value


def _elapsed_ms(started: float) -> float:
    return (anyio.current_time() - started) * 1000


async def _poll(
    condition: Condition,
    options: PollingOptions,
    next_interval: Callable[[float], float],
) -> bool:
    started = anyio.current_time()
    interval = options.interval
    attempt = 0

    while True:
        attempt += 1
        if options.on_poll is not None:
            options.on_poll(attempt, _elapsed_ms(started))

        try:
            if await _resolve(condition()):
                logger.debug("%s satisfied after %d attempts", options.description, attempt)
                return True
        except Exception as exc:
            logger.warning("Polling %s: attempt %d raised %r", options.description, attempt, exc)

        remaining = options.timeout - _elapsed_ms(started)
        if remaining <= 0:
            break
        await anyio.sleep(min(interval, remaining) / 1000)
        interval = next_interval(interval)

    elapsed = _elapsed_ms(started)
    if options.throw_on_timeout:
        raise PollingTimeoutError(
            description=options.description,
            timeout=options.timeout,
            elapsed=elapsed,
            attempts=attempt,
        )
    logger.info("Timeout waiting for %s after %.0fms (%d attempts)", options.description, elapsed, attempt)
    return False


async def poll_until(condition: Condition, options: Optional[PollingOptions] = None, **overrides) -> bool:
    """Wait until ``condition`` returns true.

    ``condition`` may be sync or async. Exceptions raised by it count as
    "not yet" and are logged at warning level. At least one check is made
    even when ``timeout`` is shorter than ``interval``.

    Returns True on success. On timeout raises :class:`PollingTimeoutError`,
    or returns False when ``throw_on_timeout`` is disabled.
    """
    opts = replace(options or PollingOptions(), **overrides)
    return await _poll(condition, opts, lambda interval: interval)


async def poll_for_value(getter: Getter[T], expected: T, options: Optional[PollingOptions] = None, **overrides) -> bool:
    overrides.setdefault("description", f"value to equal {expected!r}")

    async def matches() -> bool:
        return await _resolve(getter()) == expected

    return await poll_until(matches, options, **overrides)


async def poll_for_change(getter: Getter[T], initial: T, options: Optional[PollingOptions] = None, **overrides) -> bool:
    overrides.setdefault("description", "value to change")

    async def changed() -> bool:
        return await _resolve(getter()) != initial

    return await poll_until(changed, options, **overrides)


async def poll_for_count(
    counter: Getter[int], expected: int, options: Optional[PollingOptions] = None, **overrides
) -> bool:
    overrides.setdefault("description", f"count to equal {expected}")
    return await poll_for_value(counter, expected, options, **overrides)


async def poll_until_matches(
    getter: Getter[T],
    predicate: Callable[[T], bool],
    options: Optional[PollingOptions] = None,
    **overrides,
) -> Optional[T]:
    """Poll ``getter`` until ``predicate`` accepts its value and return that value.

    Returns None when the wait times out with ``throw_on_timeout=False``.
    """
    overrides.setdefault("description", "value to match predicate")
    matched: list[T] = []

    async def check() -> bool:
        value = await _resolve(getter())
        if predicate(value):
            matched.append(value)
            return True
        return False

    if await poll_until(check, options, **overrides):
        return matched[-1]
    return None


async def poll_with_backoff(
    condition: Condition,
    timeout: float = 30000,
    initial_interval: float = 500,
    multiplier: float = 2,
    max_interval: float = 5000,
    description: str = "condition",
) -> bool:
    """Like :func:`poll_until`, with the interval growing after every check.

    The interval is multiplied by ``multiplier`` each round and capped at
    ``max_interval``. Always raises on timeout.
    """
    opts = PollingOptions(timeout=timeout, interval=initial_interval, description=description)
    return await _poll(condition, opts, lambda interval: min(interval * multiplier, max_interval))
