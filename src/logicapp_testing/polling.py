"""
Retry/timeout engine for queries against eventually consistent run listings.

The Poller invokes a zero-argument async query on a fixed cadence until a
satisfaction predicate holds over its latest result, or until the deadline
elapses.
"""
# Copyright (c) 2026 logicapp-testing
#
# Licensed under the MIT License. See the LICENSE file for details.


import asyncio
import logging
from datetime import timedelta
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from .exceptions import AuthenticationError, ErrorContext, PollingTimeoutError, ValidationError
from .query import DEFAULT_POLL_INTERVAL, DEFAULT_TIMEOUT, PollCriteria

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures that no amount of retrying will fix
NON_RETRYABLE_ERRORS = (AuthenticationError, ValidationError)


class _Attempts:
    """Bookkeeping of one poll operation."""

    def __init__(self):
        self.count = 0
        self.last_error: Optional[BaseException] = None


class Poller(Generic[T]):
    """
    Poll an async query until its result satisfies a predicate.

    Attempts run sequentially with a fixed interval between them. A failing
    attempt counts as "not yet satisfied" and is retried, except for
    authentication and validation failures which propagate immediately.
    The deadline wraps the whole loop; when it elapses while the latest
    attempt had failed, that failure is raised as is, otherwise a
    PollingTimeoutError describing the criteria is raised.

    Args:
        query: Zero-argument coroutine function returning a sequence
        timeout: Overall deadline of one poll operation
        interval: Delay between two attempts
        criteria: Criteria the query was built from, used for diagnostics

    Example:
        >>> poller = Poller(query, criteria=criteria)
        >>> run = await poller.until_any()
    """

    def __init__(
        self,
        query: Callable[[], Awaitable[Sequence[T]]],
        timeout: Optional[timedelta] = None,
        interval: Optional[timedelta] = None,
        criteria: Optional[PollCriteria] = None,
    ):
        if timeout is None:
            timeout = criteria.timeout if criteria is not None else DEFAULT_TIMEOUT
        if interval is None:
            interval = criteria.poll_interval if criteria is not None else DEFAULT_POLL_INTERVAL
        if timeout <= timedelta(0):
            raise ValidationError("timeout", "Requires a positive timeout", timeout)
        if interval <= timedelta(0):
            raise ValidationError("interval", "Requires a positive poll interval", interval)

        self.query = query
        self.timeout = timeout
        self.interval = interval
        self.criteria = criteria

    async def until(
        self,
        predicate: Callable[[Sequence[T]], bool],
        amount: str = "any"
    ) -> Sequence[T]:
        """
        Poll until ``predicate`` holds over the latest query result.

        Returns:
            The first result satisfying the predicate

        Raises:
            PollingTimeoutError: If the deadline elapsed without a satisfying result
            LogicAppError: The latest attempt's failure, when the deadline elapsed right after it
        """
        attempts = _Attempts()
        try:
            return await asyncio.wait_for(
                self._poll(predicate, attempts),
                timeout=self.timeout.total_seconds()
            )
        except asyncio.TimeoutError:
            logger.debug(f"Polling deadline of {self.timeout} elapsed after {attempts.count} attempts")

        if attempts.last_error is not None:
            raise attempts.last_error
        raise self._timeout_error(amount)

    async def until_any(self) -> T:
        """Poll until at least one item is found and return the first one."""
        result = await self.until(lambda items: len(items) > 0)
        return result[0]

    async def until_count(self, number_of_items: int) -> List[T]:
        """Poll until at least ``number_of_items`` items are found and return all of them."""
        if number_of_items is None or number_of_items < 1:
            raise ValidationError("number_of_items", "Requires at least one item", number_of_items)

        result = await self.until(
            lambda items: len(items) >= number_of_items,
            amount=str(number_of_items)
        )
        return list(result)

    async def after_wait(self) -> List[T]:
        """Wait the full timeout once, then query a single time; never times out."""
        logger.debug(f"Waiting {self.timeout} before querying once")
        await asyncio.sleep(self.timeout.total_seconds())
        return list(await self.query())

    async def _poll(self, predicate: Callable[[Sequence[T]], bool], attempts: _Attempts) -> Sequence[T]:
        interval = self.interval.total_seconds()

        while True:
            attempts.count += 1
            try:
                result = await self.query()
            except NON_RETRYABLE_ERRORS:
                raise
            except Exception as e:
                attempts.last_error = e
                logger.warning(f"Polling attempt {attempts.count} failed, retrying in {self.interval}: {e}")
            else:
                attempts.last_error = None
                if predicate(result):
                    logger.info(f"Polling satisfied after {attempts.count} attempts with {len(result)} items")
                    return result
                logger.debug(f"Polling attempt {attempts.count} not yet satisfied ({len(result)} items)")

            await asyncio.sleep(interval)

    def _timeout_error(self, amount: str) -> PollingTimeoutError:
        criteria = self.criteria
        if criteria is None:
            return PollingTimeoutError(self.timeout, amount)

        tracked_property = None
        if criteria.tracked_property is not None:
            tracked_property = (criteria.tracked_property.name, criteria.tracked_property.value)

        return PollingTimeoutError(
            self.timeout,
            amount,
            start_time=criteria.start_time,
            correlation_id=criteria.correlation_id,
            tracked_property=tracked_property,
            context=ErrorContext(
                resource_group=criteria.resource_group,
                logic_app_name=criteria.logic_app_name,
            ),
        )
