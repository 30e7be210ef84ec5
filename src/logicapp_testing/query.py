"""
Single-shot queries for completed logic app runs.

A RunQuery turns PollCriteria into one awaitable call that lists the
terminal runs of a logic app, materializes their actions, and returns the
runs matching the criteria at that instant. Nothing is cached between calls:
every call reflects the latest remote state.
"""
# Copyright (c) 2026 logicapp-testing
#
# Licensed under the MIT License. See the LICENSE file for details.


import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional

import httpx
from azure.core.exceptions import AzureError, ClientAuthenticationError, HttpResponseError

from .converter import to_json_value, to_logic_app_action, to_logic_app_run
from .exceptions import (
    AuthenticationError,
    ConnectionError,
    ErrorContext,
    QueryError,
    ValidationError,
    from_http_error,
)
from .json_value import JsonValue
from .models import LogicAppAction, LogicAppRun

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = timedelta(seconds=90)
DEFAULT_POLL_INTERVAL = timedelta(seconds=5)
# Endpoint named in errors raised by the management SDK transport
MANAGEMENT_ENDPOINT = "Azure Resource Manager"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _require_name(field_name: str, value: Optional[str]) -> None:
    if value is None or not str(value).strip():
        raise ValidationError(field_name, "Requires a non-blank value", value)


@dataclass(frozen=True)
class TrackedPropertyFilter:
    """Tracked property name and value a run must report"""
    name: str
    value: str

    def __post_init__(self):
        if self.name is None:
            raise ValidationError("tracked_property_name", "Requires a tracked property name")
        if self.value is None:
            raise ValidationError("tracked_property_value", "Requires a tracked property value")

    def matches(self, action: LogicAppAction) -> bool:
        """Case-insensitive match on both the property name and its value."""
        name = self.name.casefold()
        value = self.value.casefold()
        return any(
            key.casefold() == name and prop.casefold() == value
            for key, prop in action.tracked_properties.items()
        )


@dataclass(frozen=True)
class PollCriteria:
    """
    Immutable description of which logic app runs to look for.

    Naive start times are taken to be UTC. Correlation ID and tracked
    property are mutually exclusive; without either, any run that finished
    since the start time matches.
    """
    resource_group: str
    logic_app_name: str
    start_time: datetime = field(default_factory=_utc_now)
    correlation_id: Optional[str] = None
    tracked_property: Optional[TrackedPropertyFilter] = None
    timeout: timedelta = DEFAULT_TIMEOUT
    poll_interval: timedelta = DEFAULT_POLL_INTERVAL
    number_of_items: Optional[int] = None

    def __post_init__(self):
        _require_name("resource_group", self.resource_group)
        _require_name("logic_app_name", self.logic_app_name)

        if not isinstance(self.start_time, datetime):
            raise ValidationError("start_time", "Requires a datetime", self.start_time)
        if self.start_time.tzinfo is None:
            object.__setattr__(self, "start_time", self.start_time.replace(tzinfo=timezone.utc))

        if self.correlation_id is not None and self.tracked_property is not None:
            raise ValidationError(
                "correlation_id",
                "Cannot filter on a correlation ID and a tracked property at the same time",
                self.correlation_id
            )
        if self.timeout <= timedelta(0):
            raise ValidationError("timeout", "Requires a positive timeout", self.timeout)
        if self.poll_interval <= timedelta(0):
            raise ValidationError("poll_interval", "Requires a positive poll interval", self.poll_interval)
        if self.number_of_items is not None and self.number_of_items < 1:
            raise ValidationError("number_of_items", "Requires at least one item", self.number_of_items)

    @property
    def amount(self) -> str:
        return "any" if self.number_of_items is None else str(self.number_of_items)

    def describe(self) -> str:
        parts = [f"StartTime >= {self.start_time.isoformat()}"]
        if self.correlation_id is not None:
            parts.append(f"correlation ID '{self.correlation_id}'")
        if self.tracked_property is not None:
            parts.append(f"tracked property [{self.tracked_property.name}] = {self.tracked_property.value}")
        return ", ".join(parts)


def build_run_filter(start_time: datetime, correlation_id: Optional[str] = None) -> str:
    """OData filter for terminal runs started at or after ``start_time``."""
    start = start_time.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    odata_filter = f"StartTime ge {start} and Status ne 'Running'"
    if correlation_id is not None:
        escaped = correlation_id.replace("'", "''")
        odata_filter += f" and ClientTrackingId eq '{escaped}'"
    return odata_filter


class RunMaterializer:
    """
    Materializes workflow runs with their actions and resolved payloads.

    Args:
        management_client: Async Azure LogicManagementClient
        http_client: Shared client used to fetch input/output content links
        resource_group: Resource group of the logic app
        logic_app_name: Name of the logic app
    """

    def __init__(
        self,
        management_client: Any,
        http_client: httpx.AsyncClient,
        resource_group: str,
        logic_app_name: str,
    ):
        self._management = management_client
        self._http = http_client
        self.resource_group = resource_group
        self.logic_app_name = logic_app_name
        self._subscription_id = getattr(getattr(management_client, "_config", None), "subscription_id", None)

    def _context(self, run_id: Optional[str] = None) -> ErrorContext:
        return ErrorContext(
            subscription_id=self._subscription_id,
            resource_group=self.resource_group,
            logic_app_name=self.logic_app_name,
            related_run_id=run_id,
        )

    async def list_runs(self, odata_filter: str) -> List[Any]:
        """List raw WorkflowRun objects matching an OData filter."""
        logger.debug(
            f"Query logic app runs for '{self.logic_app_name}' in resource group "
            f"'{self.resource_group}': {odata_filter}"
        )
        try:
            runs = [
                run async for run in self._management.workflow_runs.list(
                    self.resource_group, self.logic_app_name, filter=odata_filter
                )
            ]
        except ClientAuthenticationError as e:
            raise AuthenticationError(f"Not authorized to list runs: {e.message}", self._context(), e) from e
        except HttpResponseError as e:
            raise QueryError(f"Listing logic app runs failed: {e.message}", self._context(), e) from e
        except AzureError as e:
            raise ConnectionError(MANAGEMENT_ENDPOINT, f"Listing logic app runs failed: {e.message}", self._context(), e) from e

        logger.debug(f"Query returned {len(runs)} workflow runs")
        return runs

    async def list_actions(self, run_id: str) -> List[LogicAppAction]:
        """List the actions of a run, with inputs and outputs resolved."""
        try:
            wire_actions = [
                action async for action in self._management.workflow_run_actions.list(
                    self.resource_group, self.logic_app_name, run_id
                )
            ]
        except ClientAuthenticationError as e:
            raise AuthenticationError(f"Not authorized to list run actions: {e.message}", self._context(run_id), e) from e
        except HttpResponseError as e:
            raise QueryError(f"Listing actions of run {run_id} failed: {e.message}", self._context(run_id), e) from e
        except AzureError as e:
            raise ConnectionError(
                MANAGEMENT_ENDPOINT, f"Listing actions of run {run_id} failed: {e.message}", self._context(run_id), e
            ) from e

        actions = await asyncio.gather(*(self._materialize_action(run_id, action) for action in wire_actions))
        logger.debug(f"Found {len(actions)} logic app actions for run {run_id}")
        return list(actions)

    async def materialize(self, wire_run: Any) -> LogicAppRun:
        actions = await self.list_actions(wire_run.name)
        try:
            return to_logic_app_run(wire_run, actions)
        except (ValueError, TypeError) as e:
            raise QueryError(f"Could not convert run {wire_run.name}: {e}", self._context(wire_run.name), e) from e

    async def _materialize_action(self, run_id: str, wire_action: Any) -> LogicAppAction:
        inputs, outputs = await asyncio.gather(
            self._resolve_payload(run_id, getattr(wire_action, "inputs_link", None), getattr(wire_action, "inputs", None)),
            self._resolve_payload(run_id, getattr(wire_action, "outputs_link", None), getattr(wire_action, "outputs", None)),
        )
        try:
            return to_logic_app_action(wire_action, inputs, outputs)
        except (ValueError, TypeError) as e:
            # includes malformed tracked properties JSON
            raise QueryError(
                f"Could not convert action {wire_action.name} of run {run_id}: {e}",
                self._context(run_id), e
            ) from e

    async def _resolve_payload(self, run_id: str, content_link: Any, inline: Any) -> Optional[JsonValue]:
        uri = getattr(content_link, "uri", None)
        if uri is None:
            return to_json_value(inline)
        return await self._fetch_content(run_id, uri)

    async def _fetch_content(self, run_id: str, uri: str) -> JsonValue:
        context = self._context(run_id)
        try:
            response = await self._http.get(uri)
            response.raise_for_status()
            return JsonValue.parse(response.text)
        except httpx.HTTPStatusError as e:
            raise from_http_error(e.response.status_code, e.response.text, str(e.request.url), context) from e
        except httpx.RequestError as e:
            raise ConnectionError(str(e.request.url), f"Request failed: {e}", context, e) from e
        except json.JSONDecodeError as e:
            raise QueryError(f"Invalid JSON content at {uri}: {e}", context, e) from e


class RunQuery:
    """
    Executable query for the runs matching a set of PollCriteria.

    Calling the query performs one run listing plus one action listing per
    returned run and returns the matching runs in remote listing order.
    """

    def __init__(self, criteria: PollCriteria, materializer: RunMaterializer):
        self.criteria = criteria
        self._materializer = materializer

    @classmethod
    def create(
        cls,
        criteria: PollCriteria,
        management_client: Any,
        http_client: httpx.AsyncClient
    ) -> "RunQuery":
        materializer = RunMaterializer(
            management_client, http_client, criteria.resource_group, criteria.logic_app_name
        )
        return cls(criteria, materializer)

    def build_filter(self) -> str:
        return build_run_filter(self.criteria.start_time, self.criteria.correlation_id)

    async def __call__(self) -> List[LogicAppRun]:
        wire_runs = await self._materializer.list_runs(self.build_filter())
        runs = await asyncio.gather(*(self._materializer.materialize(run) for run in wire_runs))

        tracked_property = self.criteria.tracked_property
        if tracked_property is not None:
            runs = [
                run for run in runs
                if any(tracked_property.matches(action) for action in run.actions)
            ]

        logger.debug(f"Query resulted in {len(runs)} logic app runs")
        return list(runs)
