"""Retry flaky async operations with capped exponential backoff.

Delays are milliseconds. With the defaults (3 attempts, 1000ms initial delay,
multiplier 2, 10000ms cap) a failing operation runs at t=0, t=1s and t=3s and
then raises :class:`RetryExhaustedError`.
"""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar, Union

import anyio
from playwright.async_api import TimeoutError as PlaywrightTimeout

from daee_e2e.errors import ConditionNotMetError, PollingTimeoutError, RetryExhaustedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
ShouldRetry = Callable[[BaseException, int], bool]
RetryCallback = Callable[[BaseException, int, float], None]

TIMEOUT_ERRORS: Tuple[Type[BaseException], ...] = (PlaywrightTimeout, TimeoutError, PollingTimeoutError)


def _always(exc: BaseException, attempt: int) -> bool:
    return True


@dataclass(frozen=True)
class RetryOptions:
    max_attempts: int = 3
    initial_delay: float = 1000
    backoff_multiplier: float = 2
    max_delay: float = 10000
    should_retry: ShouldRetry = _always
    on_retry: Optional[RetryCallback] = None
    description: str = "operation"


def backoff_delay(
    attempt: int,
    initial_delay: float = 1000,
    backoff_multiplier: float = 2,
    max_delay: float = 10000,
) -> float:
    """Delay in ms before the 1-indexed ``attempt``; zero before the first one."""
    if attempt <= 1:
        return 0
    return min(initial_delay * backoff_multiplier ** (attempt - 2), max_delay)


async def retry(operation: Operation[T], options: Optional[RetryOptions] = None, **overrides) -> T:
    """Run ``operation`` until it succeeds or the attempts run out.

    A failure for which ``should_retry(exc, attempt)`` is false propagates
    unchanged. When every attempt fails, :class:`RetryExhaustedError` is
    raised from the last error.
    """
    opts = replace(options or RetryOptions(), **overrides)
    if opts.max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {opts.max_attempts}")

    last_error: Optional[BaseException] = None
    for attempt in range(1, opts.max_attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            last_error = exc
            if not opts.should_retry(exc, attempt):
                raise
            if attempt == opts.max_attempts:
                break

            delay = backoff_delay(attempt + 1, opts.initial_delay, opts.backoff_multiplier, opts.max_delay)
            if opts.on_retry is not None:
                opts.on_retry(exc, attempt, delay)
            else:
                logger.warning(
                    "%s failed (attempt %d/%d), retrying in %.0fms: %s",
                    opts.description, attempt, opts.max_attempts, delay, exc,
                )
            await anyio.sleep(delay / 1000)

    if last_error is None:
        raise RuntimeError(f"{opts.description} made no attempts")
    raise RetryExhaustedError(
        description=opts.description,
        attempts=opts.max_attempts,
        last_error=last_error,
    ) from last_error


async def retry_until(
    condition: Callable[[], Union[bool, Awaitable[bool]]],
    options: Optional[RetryOptions] = None,
    **overrides,
) -> bool:
    """Retry a boolean check, treating False as a retryable failure."""
    description = overrides.get("description") or (options.description if options else "condition")

    async def check() -> bool:
        result = condition()
        if inspect.isawaitable(result):
            result = await result
        if not result:
            raise ConditionNotMetError(description)
        return True

    return await retry(check, options, **overrides)


async def retry_on(
    operation: Operation[T],
    is_retryable: Callable[[BaseException], bool],
    options: Optional[RetryOptions] = None,
    **overrides,
) -> T:
    """Retry only the failures ``is_retryable`` accepts."""
    overrides["should_retry"] = lambda exc, attempt: is_retryable(exc)
    return await retry(operation, options, **overrides)


async def retry_on_timeout(operation: Operation[T], options: Optional[RetryOptions] = None, **overrides) -> T:
    return await retry_on(operation, lambda exc: isinstance(exc, TIMEOUT_ERRORS), options, **overrides)
