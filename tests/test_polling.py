"""Tests for the polling engine."""

import asyncio
import time
from datetime import timedelta

import pytest

from logicapp_testing.exceptions import AuthenticationError, PollingTimeoutError, QueryError, ValidationError
from logicapp_testing.polling import Poller
from logicapp_testing.query import PollCriteria, TrackedPropertyFilter

from .conftest import T0

FAST = timedelta(milliseconds=10)


class ScriptedQuery:
    """Query returning (or raising) a scripted outcome per call; the last outcome repeats."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, BaseException):
            raise outcome
        return list(outcome)


class TestPoller:
    """Test predicate variants, retry cadence and deadline handling."""

    @pytest.mark.asyncio
    async def test_until_any_returns_first_item(self):
        query = ScriptedQuery([], [], ["run-1", "run-2"])

        result = await Poller(query, timeout=timedelta(seconds=2), interval=FAST).until_any()

        assert result == "run-1"
        assert query.calls == 3

    @pytest.mark.asyncio
    async def test_until_count_waits_for_enough_items(self):
        query = ScriptedQuery(["run-1"], ["run-1"], ["run-1", "run-2", "run-3"])

        result = await Poller(query, timeout=timedelta(seconds=2), interval=FAST).until_count(2)

        assert result == ["run-1", "run-2", "run-3"]

    @pytest.mark.asyncio
    async def test_count_not_reached_times_out(self):
        criteria = PollCriteria("my-rg", "order-processing", start_time=T0, correlation_id="abc-123")
        query = ScriptedQuery(["run-1"])

        with pytest.raises(PollingTimeoutError) as exc_info:
            await Poller(query, timeout=timedelta(milliseconds=100), interval=FAST, criteria=criteria).until_count(2)

        error = exc_info.value
        assert error.amount == "2"
        assert error.correlation_id == "abc-123"
        assert error.start_time == T0
        assert error.timeout == timedelta(milliseconds=100)
        assert error.context.logic_app_name == "order-processing"
        assert query.calls > 1

    @pytest.mark.asyncio
    async def test_zero_matches_times_out(self):
        criteria = PollCriteria(
            "my-rg", "order-processing", start_time=T0,
            tracked_property=TrackedPropertyFilter("orderId", "42"),
        )

        with pytest.raises(PollingTimeoutError) as exc_info:
            await Poller(ScriptedQuery([]), timeout=timedelta(milliseconds=50), interval=FAST, criteria=criteria).until_any()

        assert exc_info.value.tracked_property == ("orderId", "42")
        assert "with tracked property [orderId] = 42" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_failed_attempts_are_retried(self):
        query = ScriptedQuery(QueryError("listing failed"), QueryError("listing failed"), ["run-1"])

        result = await Poller(query, timeout=timedelta(seconds=2), interval=FAST).until_any()

        assert result == "run-1"
        assert query.calls == 3

    @pytest.mark.asyncio
    async def test_last_error_is_surfaced_at_deadline(self):
        error = QueryError("listing failed")

        with pytest.raises(QueryError) as exc_info:
            await Poller(ScriptedQuery(error), timeout=timedelta(milliseconds=50), interval=FAST).until_any()

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_error_followed_by_empty_result_times_out(self):
        query = ScriptedQuery(QueryError("listing failed"), [])

        with pytest.raises(PollingTimeoutError):
            await Poller(query, timeout=timedelta(milliseconds=50), interval=FAST).until_any()

    @pytest.mark.asyncio
    async def test_authentication_error_is_not_retried(self):
        query = ScriptedQuery(AuthenticationError("token expired"), ["run-1"])

        with pytest.raises(AuthenticationError):
            await Poller(query, timeout=timedelta(seconds=2), interval=FAST).until_any()

        assert query.calls == 1

    @pytest.mark.asyncio
    async def test_slow_attempt_is_cancelled_at_deadline(self):
        async def hanging_query():
            await asyncio.sleep(10)
            return ["run-1"]

        started = time.monotonic()
        with pytest.raises(PollingTimeoutError):
            await Poller(hanging_query, timeout=timedelta(milliseconds=50), interval=FAST).until_any()

        assert time.monotonic() - started < 5

    @pytest.mark.asyncio
    async def test_after_wait_returns_empty_without_raising(self):
        query = ScriptedQuery([])

        result = await Poller(query, timeout=timedelta(milliseconds=20), interval=FAST).after_wait()

        assert result == []
        assert query.calls == 1

    @pytest.mark.asyncio
    async def test_after_wait_returns_everything_found(self):
        query = ScriptedQuery(["run-1", "run-2"])

        result = await Poller(query, timeout=timedelta(milliseconds=20), interval=FAST).after_wait()

        assert result == ["run-1", "run-2"]

    @pytest.mark.asyncio
    async def test_concurrent_polls_are_independent(self):
        fast = Poller(ScriptedQuery([], ["a"]), timeout=timedelta(seconds=2), interval=FAST)
        slow = Poller(ScriptedQuery([]), timeout=timedelta(milliseconds=50), interval=FAST)

        results = await asyncio.gather(fast.until_any(), slow.until_any(), return_exceptions=True)

        assert results[0] == "a"
        assert isinstance(results[1], PollingTimeoutError)

    def test_defaults_from_criteria(self):
        criteria = PollCriteria(
            "my-rg", "order-processing", timeout=timedelta(seconds=30), poll_interval=timedelta(seconds=2)
        )

        poller = Poller(ScriptedQuery([]), criteria=criteria)

        assert poller.timeout == timedelta(seconds=30)
        assert poller.interval == timedelta(seconds=2)

    @pytest.mark.asyncio
    async def test_invalid_count(self):
        poller = Poller(ScriptedQuery([]))
        with pytest.raises(ValidationError):
            await poller.until_count(0)

    def test_invalid_interval(self):
        with pytest.raises(ValidationError):
            Poller(ScriptedQuery([]), interval=timedelta(0))
