import asyncio

import pytest

from app.core.deployment.errors import RetryableDeploymentError, TerminalDeploymentError
from app.core.deployment.retry import RetryPolicy, with_retry

from conftest import RecordingSleep


class TestRetryPolicy:

    def test_delay_doubles_per_attempt(self):
        policy = RetryPolicy(base_delay_seconds=1.0)

        assert [policy.get_delay(n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]

    def test_delay_cap(self):
        policy = RetryPolicy(base_delay_seconds=1.0, max_delay_seconds=3.0)

        assert policy.get_delay(5) == 3.0

    def test_at_least_one_attempt(self):
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestWithRetry:

    @pytest.mark.asyncio
    async def test_success_first_try_never_sleeps(self):
        sleep = RecordingSleep()

        async def op(n):
            return "done"

        outcome = await with_retry(op, RetryPolicy(), sleep=sleep)

        assert outcome.success
        assert outcome.value == "done"
        assert len(outcome.attempts) == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_retries_until_bound(self):
        sleep = RecordingSleep()
        calls = []

        async def op(n):
            calls.append(n)
            raise RetryableDeploymentError(f"boom {n}")

        outcome = await with_retry(op, RetryPolicy(max_attempts=3), sleep=sleep)

        assert not outcome.success
        assert calls == [1, 2, 3]
        assert str(outcome.error) == "boom 3"
        assert sleep.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_terminal_error_stops_immediately(self):
        sleep = RecordingSleep()
        calls = []

        async def op(n):
            calls.append(n)
            raise TerminalDeploymentError("rejected")

        outcome = await with_retry(op, RetryPolicy(max_attempts=5), sleep=sleep)

        assert calls == [1]
        assert isinstance(outcome.error, TerminalDeploymentError)
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_custom_predicate(self):
        calls = []

        async def op(n):
            calls.append(n)
            raise ValueError("nope")

        outcome = await with_retry(
            op,
            RetryPolicy(max_attempts=3),
            is_retryable=lambda exc: not isinstance(exc, ValueError),
            sleep=RecordingSleep(),
        )

        assert calls == [1]
        assert outcome.attempts[0].retryable is False

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        async def op(n):
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await with_retry(op, RetryPolicy(), sleep=RecordingSleep())

    @pytest.mark.asyncio
    async def test_attempts_never_overlap(self):
        active = 0
        peak = 0

        async def op(n):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0)
            active -= 1
            if n < 3:
                raise RetryableDeploymentError("again")
            return n

        outcome = await with_retry(op, RetryPolicy(max_attempts=3), sleep=RecordingSleep())

        assert outcome.value == 3
        assert peak == 1
