"""
Tests for the condition-polling engine.

The ``clock`` fixture replaces anyio's clock, so every timeout below elapses
in simulated time only.
"""
import logging

import pytest

from daee_e2e.errors import PollingTimeoutError
from daee_e2e.support.polling import (
    PollingOptions,
    poll_for_change,
    poll_for_count,
    poll_for_value,
    poll_until,
    poll_until_matches,
    poll_with_backoff,
)

pytestmark = pytest.mark.asyncio


def succeed_on(k):
    """Condition that is false for the first k-1 calls."""
    calls = []

    def condition():
        calls.append(1)
        return len(calls) >= k

    return condition, calls


class TestPollUntil:
    """poll_until evaluation and timeout behaviour."""

    async def test_immediate_success_does_not_sleep(self, clock):
        assert await poll_until(lambda: True) is True
        assert clock.sleeps == []

    async def test_stops_at_kth_evaluation(self, clock):
        condition, calls = succeed_on(3)
        assert await poll_until(condition, timeout=10000, interval=100) is True
        assert len(calls) == 3
        assert clock.sleeps == [0.1, 0.1]

    async def test_evaluates_once_with_zero_timeout(self, clock):
        condition, calls = succeed_on(99)
        with pytest.raises(PollingTimeoutError) as excinfo:
            await poll_until(condition, timeout=0, interval=500)
        assert len(calls) == 1
        assert excinfo.value.attempts == 1

    async def test_timeout_shorter_than_interval_still_checks(self, clock):
        condition, calls = succeed_on(99)
        with pytest.raises(PollingTimeoutError):
            await poll_until(condition, timeout=100, interval=500)
        assert len(calls) >= 1
        # Never sleeps past the deadline.
        assert sum(clock.sleeps) <= 0.1

    async def test_async_condition(self, clock):
        calls = []

        async def condition():
            calls.append(1)
            return len(calls) == 2

        assert await poll_until(condition, interval=50) is True
        assert len(calls) == 2

    async def test_exceptions_count_as_not_yet(self, clock, caplog):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise RuntimeError("element detached")
            return True

        with caplog.at_level(logging.WARNING, logger="daee_e2e.support.polling"):
            assert await poll_until(flaky, interval=10, description="flaky element") is True
        assert len(calls) == 3
        assert "element detached" in caplog.text

    async def test_timeout_error_message(self, clock):
        with pytest.raises(PollingTimeoutError) as excinfo:
            await poll_until(lambda: False, timeout=1000, interval=250, description="notes page")
        error = excinfo.value
        assert error.description == "notes page"
        assert error.timeout == 1000
        assert str(error).startswith("Timeout waiting for notes page after 1000ms")

    async def test_returns_false_when_not_throwing(self, clock):
        assert await poll_until(lambda: False, timeout=500, interval=100, throw_on_timeout=False) is False

    async def test_on_poll_receives_attempt_and_elapsed(self, clock):
        seen = []
        condition, _ = succeed_on(3)
        await poll_until(condition, interval=200, on_poll=lambda attempt, elapsed: seen.append((attempt, elapsed)))
        assert [attempt for attempt, _ in seen] == [1, 2, 3]
        assert seen[0][1] == 0
        assert seen[2][1] == pytest.approx(400)

    async def test_options_object_with_overrides(self, clock):
        options = PollingOptions(timeout=300, interval=100, throw_on_timeout=False)
        assert await poll_until(lambda: False, options) is False
        with pytest.raises(PollingTimeoutError):
            await poll_until(lambda: False, options, throw_on_timeout=True)


class TestPollingVariants:
    """Value, change, count and predicate flavours."""

    async def test_poll_for_value(self, clock):
        values = iter(["loading", "loading", "ready"])
        assert await poll_for_value(lambda: next(values), "ready", interval=10) is True

    async def test_poll_for_change(self, clock):
        values = iter([1, 1, 2])
        assert await poll_for_change(lambda: next(values), 1, interval=10) is True

    async def test_poll_for_count_with_async_counter(self, clock):
        counts = iter([0, 3, 5])

        async def count():
            return next(counts)

        assert await poll_for_count(count, 5, interval=10) is True

    async def test_poll_for_count_description_on_timeout(self, clock):
        with pytest.raises(PollingTimeoutError, match="count to equal 4"):
            await poll_for_count(lambda: 2, 4, timeout=100, interval=50)

    async def test_poll_until_matches_returns_value(self, clock):
        values = iter([[], [], ["Saved"]])
        assert await poll_until_matches(lambda: next(values), bool, interval=10) == ["Saved"]

    async def test_poll_until_matches_none_on_timeout(self, clock):
        result = await poll_until_matches(lambda: 0, lambda n: n > 0, timeout=100, interval=50, throw_on_timeout=False)
        assert result is None


class TestPollWithBackoff:
    async def test_interval_grows_and_is_capped(self, clock):
        with pytest.raises(PollingTimeoutError):
            await poll_with_backoff(
                lambda: False, timeout=10000, initial_interval=500, multiplier=2, max_interval=2000
            )
        assert clock.sleeps[:4] == [0.5, 1.0, 2.0, 2.0]
        assert max(clock.sleeps) == 2.0
        assert sum(clock.sleeps) == pytest.approx(10.0)

    async def test_success_before_timeout(self, clock):
        condition, calls = succeed_on(2)
        assert await poll_with_backoff(condition, initial_interval=100) is True
        assert clock.sleeps == [0.1]
