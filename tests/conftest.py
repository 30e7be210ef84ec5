"""Test configuration and in-memory fakes of the Azure logic management client."""

import re
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import httpx
import pytest

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

_START_TIME_FILTER = re.compile(r"StartTime ge (\S+)")
_CORRELATION_FILTER = re.compile(r"ClientTrackingId eq '((?:[^']|'')*)'")


class AsyncPaged:
    """Async iterable standing in for azure.core.async_paging.AsyncItemPaged."""

    def __init__(self, items, error=None):
        self._items = list(items)
        self._error = error

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        if self._error is not None:
            raise self._error
        for item in self._items:
            yield item


def make_action(name, start_time=None, tracked_properties=None, status="Succeeded",
                inputs=None, outputs=None, inputs_uri=None, outputs_uri=None):
    return SimpleNamespace(
        name=name,
        status=status,
        start_time=start_time,
        end_time=start_time + timedelta(seconds=1) if start_time else None,
        error=None,
        inputs=inputs,
        outputs=outputs,
        inputs_link=SimpleNamespace(uri=inputs_uri) if inputs_uri else None,
        outputs_link=SimpleNamespace(uri=outputs_uri) if outputs_uri else None,
        tracked_properties=tracked_properties,
    )


def make_run(name, start_time=T0, correlation_id=None, status="Succeeded"):
    return SimpleNamespace(
        name=name,
        status=status,
        start_time=start_time,
        end_time=start_time + timedelta(seconds=5),
        error=None,
        correlation=SimpleNamespace(client_tracking_id=correlation_id),
        trigger=SimpleNamespace(
            name="manual", status="Succeeded", inputs=None, outputs=None, error=None,
            start_time=start_time, end_time=start_time,
        ),
    )


class FakeWorkflowRuns:
    """Run listing that honours the start time, status and correlation filter like Azure does."""

    def __init__(self):
        self.runs = []
        self.filters = []
        self.errors = []
        self.cancelled = []

    def add(self, run):
        self.runs.append(run)

    def list(self, resource_group, workflow_name, filter=None, top=None):
        self.filters.append(filter)
        if self.errors:
            return AsyncPaged([], self.errors.pop(0))

        runs = [run for run in self.runs if run.status != "Running"]
        start = _START_TIME_FILTER.search(filter or "")
        if start:
            lower_bound = datetime.strptime(start.group(1), "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=timezone.utc)
            runs = [run for run in runs if run.start_time >= lower_bound]
        correlation = _CORRELATION_FILTER.search(filter or "")
        if correlation:
            correlation_id = correlation.group(1).replace("''", "'")
            runs = [run for run in runs if run.correlation.client_tracking_id == correlation_id]
        return AsyncPaged(runs)

    async def get(self, resource_group, workflow_name, run_name):
        return next(run for run in self.runs if run.name == run_name)

    async def cancel(self, resource_group, workflow_name, run_name):
        self.cancelled.append(run_name)


class FakeWorkflowRunActions:
    def __init__(self):
        self.actions = {}
        self.errors = []

    def list(self, resource_group, workflow_name, run_name, top=None, filter=None):
        if self.errors:
            return AsyncPaged([], self.errors.pop(0))
        return AsyncPaged(self.actions.get(run_name, []))


class FakeWorkflows:
    def __init__(self, name):
        self.workflow = SimpleNamespace(
            name=name,
            state="Enabled",
            version="08585",
            access_endpoint=f"https://prod.logic.azure.com/workflows/{name}",
            definition={"actions": {}, "triggers": {"manual": {"type": "Request"}}},
            created_time=T0,
            changed_time=T0,
        )
        self.calls = []
        self.updates = []
        self.updated_name = None

    async def enable(self, resource_group, workflow_name):
        self.calls.append("enable")
        self.workflow.state = "Enabled"

    async def disable(self, resource_group, workflow_name):
        self.calls.append("disable")
        self.workflow.state = "Disabled"

    async def delete(self, resource_group, workflow_name):
        self.calls.append("delete")

    async def get(self, resource_group, workflow_name):
        self.calls.append("get")
        return SimpleNamespace(**vars(self.workflow))

    async def create_or_update(self, resource_group, workflow_name, workflow):
        self.calls.append("create_or_update")
        self.updates.append(workflow.definition)
        self.workflow.definition = workflow.definition
        return SimpleNamespace(**{**vars(self.workflow), "name": self.updated_name or workflow.name})


class FakeWorkflowTriggers:
    def __init__(self):
        self.triggers = [SimpleNamespace(name="manual")]
        self.callback_url = "https://prod.logic.azure.com/workflows/abc/triggers/manual/run?sig=xyz"
        self.runs = []

    def list(self, resource_group, workflow_name, top=None, filter=None):
        return AsyncPaged(self.triggers)

    async def run(self, resource_group, workflow_name, trigger_name):
        self.runs.append(trigger_name)
        return {"trigger": trigger_name}

    async def list_callback_url(self, resource_group, workflow_name, trigger_name):
        return SimpleNamespace(value=self.callback_url, method="POST")


class FakeManagementClient:
    """In-memory stand-in for azure.mgmt.logic.aio.LogicManagementClient."""

    def __init__(self, logic_app_name="order-processing"):
        self.workflow_runs = FakeWorkflowRuns()
        self.workflow_run_actions = FakeWorkflowRunActions()
        self.workflows = FakeWorkflows(logic_app_name)
        self.workflow_triggers = FakeWorkflowTriggers()

    def add_run(self, run, actions=()):
        self.workflow_runs.add(run)
        self.workflow_run_actions.actions[run.name] = list(actions)


class FakeAuthentication:
    """Authentication yielding the fake management client and counting authentications."""

    def __init__(self, management_client, error=None):
        self.subscription_id = "sub-123"
        self.management_client = management_client
        self.error = error
        self.authentications = 0

    @asynccontextmanager
    async def authenticate(self):
        self.authentications += 1
        if self.error is not None:
            raise self.error
        yield self.management_client


@pytest.fixture
def management_client():
    return FakeManagementClient()


@pytest.fixture
def authentication(management_client):
    return FakeAuthentication(management_client)


@pytest.fixture
def content_links():
    """Content served for action input/output links, keyed by URL."""
    return {}


@pytest.fixture
async def http_client(content_links):
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url not in content_links:
            return httpx.Response(404, text="ContentNotFound")
        return httpx.Response(200, text=content_links[url])

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        yield client
