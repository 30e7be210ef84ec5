"""
Fluent entry point to poll for logic app runs.
"""
# Copyright (c) 2026 logicapp-testing
#
# Licensed under the MIT License. See the LICENSE file for details.


import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, List, Optional

import httpx

from .authentication import LogicAppAuthentication
from .exceptions import ValidationError
from .models import LogicAppRun
from .polling import Poller
from .query import DEFAULT_POLL_INTERVAL, DEFAULT_TIMEOUT, PollCriteria, RunQuery, TrackedPropertyFilter

logger = logging.getLogger(__name__)

# Seconds per content link fetch
CONTENT_FETCH_TIMEOUT = 30.0


@dataclass(frozen=True)
class LogicAppsProvider:
    """
    Polls for completed runs of one logic app.

    Every ``with_*`` method returns a new provider, so a configured provider
    can be shared and specialized freely across concurrent polls.

    Example:
        >>> provider = (
        ...     LogicAppsProvider.located_at("my-rg", "order-processing", auth)
        ...     .with_start_time(start)
        ...     .with_correlation_id("abc-123")
        ... )
        >>> run = await provider.poll_for_single_logic_app_run()
    """
    resource_group: str
    logic_app_name: str
    authentication: LogicAppAuthentication
    start_time: datetime
    http_client: Optional[httpx.AsyncClient] = None
    timeout: timedelta = DEFAULT_TIMEOUT
    poll_interval: timedelta = DEFAULT_POLL_INTERVAL
    correlation_id: Optional[str] = None
    tracked_property: Optional[TrackedPropertyFilter] = None

    @classmethod
    def located_at(
        cls,
        resource_group: str,
        logic_app_name: str,
        authentication: LogicAppAuthentication,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "LogicAppsProvider":
        """
        Locate the logic app to poll.

        Runs are considered from this moment on until ``with_start_time`` says otherwise.

        Args:
            resource_group: Resource group where the logic app is located
            logic_app_name: Name of the logic app
            authentication: How to authenticate with Azure
            http_client: Shared client for content link fetches; one is created per poll when omitted
        """
        for field_name, value in (("resource_group", resource_group), ("logic_app_name", logic_app_name)):
            if value is None or not str(value).strip():
                raise ValidationError(field_name, "Requires a non-blank value", value)
        if authentication is None:
            raise ValidationError("authentication", "Requires an authentication mechanism to reach the logic app")

        return cls(resource_group, logic_app_name, authentication, datetime.now(timezone.utc), http_client)

    def with_start_time(self, start_time: datetime) -> "LogicAppsProvider":
        """Only consider runs started at or after ``start_time`` (naive values are UTC)."""
        if not isinstance(start_time, datetime):
            raise ValidationError("start_time", "Requires a datetime", start_time)
        return replace(self, start_time=start_time)

    def with_timeout(self, timeout: timedelta) -> "LogicAppsProvider":
        if timeout <= timedelta(0):
            raise ValidationError("timeout", "Requires a positive timeout", timeout)
        return replace(self, timeout=timeout)

    def with_poll_interval(self, poll_interval: timedelta) -> "LogicAppsProvider":
        if poll_interval <= timedelta(0):
            raise ValidationError("poll_interval", "Requires a positive poll interval", poll_interval)
        return replace(self, poll_interval=poll_interval)

    def with_correlation_id(self, correlation_id: str) -> "LogicAppsProvider":
        """Only consider runs with this client tracking ID; replaces a tracked property filter."""
        if correlation_id is None or not correlation_id.strip():
            raise ValidationError("correlation_id", "Requires a non-blank correlation ID", correlation_id)
        return replace(self, correlation_id=correlation_id, tracked_property=None)

    def with_tracked_property(self, name: str, value: str) -> "LogicAppsProvider":
        """Only consider runs reporting this tracked property; replaces a correlation ID filter."""
        if name is None or not name.strip():
            raise ValidationError("tracked_property_name", "Requires a non-blank tracked property name", name)
        if value is None:
            raise ValidationError("tracked_property_value", "Requires a tracked property value")
        return replace(self, tracked_property=TrackedPropertyFilter(name, value), correlation_id=None)

    def build_criteria(self, number_of_items: Optional[int] = None) -> PollCriteria:
        """Snapshot the current configuration as validated PollCriteria."""
        return PollCriteria(
            resource_group=self.resource_group,
            logic_app_name=self.logic_app_name,
            start_time=self.start_time,
            correlation_id=self.correlation_id,
            tracked_property=self.tracked_property,
            timeout=self.timeout,
            poll_interval=self.poll_interval,
            number_of_items=number_of_items,
        )

    async def poll_for_single_logic_app_run(self) -> LogicAppRun:
        """
        Poll until a single completed run matches.

        Raises:
            PollingTimeoutError: If no run matched within the timeout
            AuthenticationError: If no management token could be acquired
        """
        criteria = self.build_criteria()
        async with self._open_query(criteria) as query:
            return await Poller(query, criteria=criteria).until_any()

    async def poll_for_logic_app_runs(self, number_of_items: int) -> List[LogicAppRun]:
        """
        Poll until at least ``number_of_items`` completed runs match.

        Returns all matching runs, which may be more than requested.

        Raises:
            PollingTimeoutError: If fewer runs matched within the timeout
        """
        criteria = self.build_criteria(number_of_items)
        async with self._open_query(criteria) as query:
            return await Poller(query, criteria=criteria).until_count(number_of_items)

    async def poll_for_all_logic_app_runs(self) -> List[LogicAppRun]:
        """Wait the full timeout, then return every matching completed run (possibly none)."""
        criteria = self.build_criteria()
        async with self._open_query(criteria) as query:
            return await Poller(query, criteria=criteria).after_wait()

    @asynccontextmanager
    async def _open_query(self, criteria: PollCriteria) -> AsyncIterator[RunQuery]:
        logger.info(f"Polling logic app '{criteria.logic_app_name}' for runs with {criteria.describe()}")

        async with self.authentication.authenticate() as management_client:
            if self.http_client is not None:
                yield RunQuery.create(criteria, management_client, self.http_client)
                return

            async with httpx.AsyncClient(timeout=CONTENT_FETCH_TIMEOUT) as http_client:
                yield RunQuery.create(criteria, management_client, http_client)
