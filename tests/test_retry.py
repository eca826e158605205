"""Tests for the retry engine and its backoff schedule."""
import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeout

from daee_e2e.errors import ConditionNotMetError, RetryExhaustedError
from daee_e2e.support.retry import (
    RetryOptions,
    backoff_delay,
    retry,
    retry_on,
    retry_on_timeout,
    retry_until,
)


class Flaky:
    """Async operation failing with ``error`` for the first ``failures`` calls."""

    def __init__(self, failures, error=RuntimeError("boom"), result="ok"):
        self.failures = failures
        self.error = error
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.result


class TestBackoffDelay:
    def test_no_delay_before_first_attempt(self):
        assert backoff_delay(1) == 0

    def test_exponential_growth(self):
        assert [backoff_delay(k) for k in (2, 3, 4, 5)] == [1000, 2000, 4000, 8000]

    def test_capped_at_max_delay(self):
        assert backoff_delay(6) == 10000
        assert backoff_delay(4, initial_delay=500, backoff_multiplier=3, max_delay=3000) == 3000


@pytest.mark.asyncio
class TestRetry:
    """retry() attempt counting, delays and error propagation."""

    async def test_success_on_first_attempt(self, clock):
        operation = Flaky(0)
        assert await retry(operation) == "ok"
        assert operation.calls == 1
        assert clock.sleeps == []

    async def test_success_after_failures(self, clock):
        operation = Flaky(2)
        assert await retry(operation, max_attempts=3) == "ok"
        assert operation.calls == 3
        assert clock.sleeps == [1.0, 2.0]

    async def test_exhausted_after_max_attempts(self, clock):
        error = RuntimeError("still broken")
        operation = Flaky(10, error=error)
        with pytest.raises(RetryExhaustedError) as excinfo:
            await retry(operation, max_attempts=4, description="load dealers")
        assert operation.calls == 4
        assert excinfo.value.attempts == 4
        assert excinfo.value.last_error is error
        assert excinfo.value.__cause__ is error
        assert str(excinfo.value) == "load dealers failed after 4 attempts. Last error: still broken"

    async def test_no_sleep_after_last_attempt(self, clock):
        with pytest.raises(RetryExhaustedError):
            await retry(Flaky(10), max_attempts=3)
        assert len(clock.sleeps) == 2

    async def test_single_attempt(self, clock):
        operation = Flaky(1)
        with pytest.raises(RetryExhaustedError):
            await retry(operation, max_attempts=1)
        assert operation.calls == 1
        assert clock.sleeps == []

    async def test_delays_are_capped(self, clock):
        with pytest.raises(RetryExhaustedError):
            await retry(Flaky(10), max_attempts=5, initial_delay=100, backoff_multiplier=10, max_delay=2000)
        assert clock.sleeps == [0.1, 1.0, 2.0, 2.0]

    async def test_non_retryable_error_propagates_unchanged(self, clock):
        error = ValueError("bad input")
        operation = Flaky(10, error=error)
        with pytest.raises(ValueError) as excinfo:
            await retry(operation, should_retry=lambda exc, attempt: False)
        assert excinfo.value is error
        assert operation.calls == 1

    async def test_should_retry_sees_attempt_number(self, clock):
        seen = []

        def should_retry(exc, attempt):
            seen.append(attempt)
            return attempt < 2

        with pytest.raises(RuntimeError):
            await retry(Flaky(10), max_attempts=5, should_retry=should_retry)
        assert seen == [1, 2]

    async def test_on_retry_callback(self, clock):
        events = []
        options = RetryOptions(max_attempts=3, on_retry=lambda exc, attempt, delay: events.append((attempt, delay)))
        with pytest.raises(RetryExhaustedError):
            await retry(Flaky(10), options)
        assert events == [(1, 1000), (2, 2000)]

    async def test_rejects_zero_attempts(self, clock):
        with pytest.raises(ValueError):
            await retry(Flaky(0), max_attempts=0)


@pytest.mark.asyncio
class TestRetryVariants:
    async def test_retry_until_true(self, clock):
        results = iter([False, False, True])
        assert await retry_until(lambda: next(results), initial_delay=10) is True
        assert len(clock.sleeps) == 2

    async def test_retry_until_never_true(self, clock):
        with pytest.raises(RetryExhaustedError) as excinfo:
            await retry_until(lambda: False, max_attempts=2, description="dealer visible")
        assert isinstance(excinfo.value.last_error, ConditionNotMetError)
        assert "dealer visible" in str(excinfo.value.last_error)

    async def test_retry_until_async_condition(self, clock):
        async def ready():
            return True

        assert await retry_until(ready) is True

    async def test_retry_on_filters_errors(self, clock):
        operation = Flaky(10, error=KeyError("missing"))
        with pytest.raises(KeyError):
            await retry_on(operation, lambda exc: isinstance(exc, ConnectionError))
        assert operation.calls == 1

    async def test_retry_on_timeout_retries_playwright_timeouts(self, clock):
        operation = Flaky(2, error=PlaywrightTimeout("Timeout 5000ms exceeded"))
        assert await retry_on_timeout(operation, max_attempts=3) == "ok"
        assert operation.calls == 3

    async def test_retry_on_timeout_ignores_other_errors(self, clock):
        operation = Flaky(1, error=RuntimeError("crash"))
        with pytest.raises(RuntimeError):
            await retry_on_timeout(operation)
        assert operation.calls == 1
