"""
Management client for one logic app.

Wraps the async Azure logic management SDK with the operations integration
tests need: enabling, updating, running and triggering a workflow, looking
up its runs, and mocking actions with static results. Every ``temporary_*``
operation returns an async context manager that reverts the change when the
block exits.
"""
# Copyright (c) 2026 logicapp-testing
#
# Licensed under the MIT License. See the LICENSE file for details.


import copy
import json
import logging
from contextlib import AsyncExitStack
from typing import Any, AsyncContextManager, Awaitable, Dict, List, Mapping, Optional, Union

import httpx
from azure.core.exceptions import AzureError, ClientAuthenticationError, HttpResponseError

from .authentication import LogicAppAuthentication
from .converter import to_logic_app_metadata
from .definition import disable_static_results, enable_static_results
from .exceptions import (
    AuthenticationError,
    ConnectionError,
    ErrorContext,
    LogicAppHTTPError,
    LogicAppNotUpdatedError,
    LogicAppTriggerNotFoundError,
    ValidationError,
)
from .models import (
    LogicAppAction,
    LogicAppMetadata,
    LogicAppRun,
    LogicAppTriggerUrl,
    StaticResultDefinition,
    StaticResultOutputs,
)
from .query import MANAGEMENT_ENDPOINT, RunMaterializer
from .temporary import temporary_state

logger = logging.getLogger(__name__)


def _require(field_name: str, value: Optional[str]) -> None:
    if value is None or not str(value).strip():
        raise ValidationError(field_name, "Requires a non-blank value", value)


class LogicAppClient:
    """
    Client to manage one logic app running on Azure.

    Args:
        resource_group: Resource group where the logic app is located
        logic_app_name: Name of the logic app
        management_client: Authenticated async LogicManagementClient
        http_client: Client used for trigger calls and content links; owned by
            this instance when omitted
        subscription_id: Subscription of the logic app, for error context

    Example:
        >>> client = await LogicAppClient.create("my-rg", "order-processing", auth)
        >>> async with client:
        ...     async with client.temporary_enable():
        ...         await client.trigger({"x-correlation-id": "abc-123"})
    """

    def __init__(
        self,
        resource_group: str,
        logic_app_name: str,
        management_client: Any,
        http_client: Optional[httpx.AsyncClient] = None,
        subscription_id: Optional[str] = None,
    ):
        _require("resource_group", resource_group)
        _require("logic_app_name", logic_app_name)
        if management_client is None:
            raise ValidationError("management_client", "Requires a logic management client")

        self.resource_group = resource_group
        self.logic_app_name = logic_app_name
        self.subscription_id = subscription_id
        self._management = management_client
        self._exit_stack = AsyncExitStack()

        if http_client is None:
            http_client = httpx.AsyncClient(timeout=30.0)
            self._exit_stack.push_async_callback(http_client.aclose)
        self._http = http_client

    @classmethod
    async def create(
        cls,
        resource_group: str,
        logic_app_name: str,
        authentication: LogicAppAuthentication,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> "LogicAppClient":
        """
        Authenticate and create a client; close it with ``aclose()`` or ``async with``.

        Raises:
            AuthenticationError: If no management token could be acquired
        """
        _require("resource_group", resource_group)
        _require("logic_app_name", logic_app_name)
        if authentication is None:
            raise ValidationError("authentication", "Requires an authentication mechanism to reach the logic app")

        async with AsyncExitStack() as stack:
            management_client = await stack.enter_async_context(authentication.authenticate())
            client = cls(
                resource_group, logic_app_name, management_client,
                http_client=http_client, subscription_id=authentication.subscription_id,
            )
            client._exit_stack.push_async_exit(stack.pop_all())
            return client

    async def aclose(self):
        """Close the management client and any owned HTTP client."""
        await self._exit_stack.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def _context(self, **kwargs) -> ErrorContext:
        return ErrorContext(
            subscription_id=self.subscription_id,
            resource_group=self.resource_group,
            logic_app_name=self.logic_app_name,
            **kwargs
        )

    async def _call(self, description: str, operation: Awaitable[Any]) -> Any:
        """Await a management operation, mapping SDK failures to library errors."""
        try:
            return await operation
        except ClientAuthenticationError as e:
            raise AuthenticationError(f"Could not {description}: {e.message}", self._context(), e) from e
        except HttpResponseError as e:
            status_code = e.status_code or 0
            response_text = e.response.text() if e.response is not None else None
            raise LogicAppHTTPError(
                f"Could not {description}: {e.message}",
                status_code,
                response_text,
                self._context(),
                e
            ) from e
        except AzureError as e:
            raise ConnectionError(MANAGEMENT_ENDPOINT, f"Could not {description}: {e.message}", self._context(), e) from e

    # Workflow state

    def temporary_enable(self) -> AsyncContextManager[None]:
        """Enable the logic app for the duration of the block, disabling it afterwards."""
        return temporary_state(self.enable, self.disable)

    async def enable(self):
        logger.debug(f"Enables (+) the workflow of logic app '{self.logic_app_name}' in resource group '{self.resource_group}'")
        await self._call("enable the workflow", self._management.workflows.enable(self.resource_group, self.logic_app_name))

    async def disable(self):
        logger.debug(f"Disables (-) the workflow of logic app '{self.logic_app_name}' in resource group '{self.resource_group}'")
        await self._call("disable the workflow", self._management.workflows.disable(self.resource_group, self.logic_app_name))

    async def delete(self):
        logger.debug(f"Deletes the workflow of logic app '{self.logic_app_name}' in resource group '{self.resource_group}'")
        await self._call("delete the workflow", self._management.workflows.delete(self.resource_group, self.logic_app_name))

    async def get_metadata(self) -> LogicAppMetadata:
        """Get the logic app's state, version and workflow definition."""
        workflow = await self._get_workflow()
        return to_logic_app_metadata(workflow)

    def temporary_update(self, definition: Union[str, Mapping[str, Any]]) -> AsyncContextManager[None]:
        """
        Replace the workflow definition for the duration of the block.

        Args:
            definition: Workflow definition as JSON text or an already parsed object
        """
        if definition is None:
            raise ValidationError("definition", "Requires a logic app workflow definition")
        if isinstance(definition, str):
            try:
                definition = json.loads(definition)
            except json.JSONDecodeError as e:
                raise ValidationError("definition", f"Invalid JSON: {e}", definition) from e

        original: Dict[str, Any] = {}

        async def setup():
            workflow = await self._get_workflow()
            original["definition"] = copy.deepcopy(workflow.definition)
            logger.debug(f"Updates (+) the workflow definition of logic app '{self.logic_app_name}'")
            await self._update_definition(workflow, definition, "update the workflow definition")

        async def teardown():
            workflow = await self._get_workflow()
            logger.debug(f"Reverts (-) the workflow definition of logic app '{self.logic_app_name}'")
            await self._update_definition(workflow, original["definition"], "revert the workflow definition")

        return temporary_state(setup, teardown)

    async def _get_workflow(self) -> Any:
        return await self._call(
            "get the workflow",
            self._management.workflows.get(self.resource_group, self.logic_app_name)
        )

    async def _update_definition(self, workflow: Any, definition: Any, description: str):
        workflow.definition = definition
        result = await self._call(
            description,
            self._management.workflows.create_or_update(self.resource_group, self.logic_app_name, workflow)
        )
        if result is None or result.name != self.logic_app_name:
            raise LogicAppNotUpdatedError(
                self.subscription_id, self.resource_group, self.logic_app_name,
                f"Failed to {description} of logic app '{self.logic_app_name}' in resource group '{self.resource_group}'"
            )

    # Runs and triggers

    async def run(self) -> Any:
        """
        Run the logic app on its first trigger.

        Raises:
            LogicAppTriggerNotFoundError: If the logic app has no trigger
        """
        trigger_name = await self._get_trigger_name()
        return await self.run_by_name(trigger_name)

    async def run_by_name(self, trigger_name: str) -> Any:
        _require("trigger_name", trigger_name)
        logger.debug(f"Run the workflow trigger '{trigger_name}' of logic app '{self.logic_app_name}'")
        return await self._call(
            f"run trigger '{trigger_name}'",
            self._management.workflow_triggers.run(self.resource_group, self.logic_app_name, trigger_name)
        )

    async def cancel(self, run_name: str):
        _require("run_name", run_name)
        logger.debug(f"Cancel the workflow run '{run_name}' of logic app '{self.logic_app_name}'")
        await self._call(
            f"cancel run '{run_name}'",
            self._management.workflow_runs.cancel(self.resource_group, self.logic_app_name, run_name)
        )

    async def trigger(self, headers: Optional[Mapping[str, str]] = None) -> httpx.Response:
        """
        Call the logic app's trigger URL with an HTTP POST.

        Args:
            headers: Headers to send along, e.g. a correlation header

        Raises:
            LogicAppTriggerNotFoundError: If the logic app has no trigger
            LogicAppHTTPError: If the trigger URL answered with an error status
        """
        trigger_url = await self.get_trigger_url()

        logger.debug(f"Trigger the workflow of logic app '{self.logic_app_name}' in resource group '{self.resource_group}'")
        try:
            response = await self._http.post(trigger_url.url, headers=dict(headers or {}))
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise LogicAppHTTPError(
                f"Trigger call failed: {e.response.text}",
                e.response.status_code,
                e.response.text,
                self._context(url=str(e.request.url)),
                e
            ) from e
        except httpx.RequestError as e:
            raise ConnectionError(str(e.request.url), f"Request failed: {e}", self._context(), e) from e

        return response

    async def get_trigger_url(self) -> LogicAppTriggerUrl:
        """Get the callback URL of the logic app's first trigger."""
        trigger_name = await self._get_trigger_name()
        return await self.get_trigger_url_by_name(trigger_name)

    async def get_trigger_url_by_name(self, trigger_name: str) -> LogicAppTriggerUrl:
        _require("trigger_name", trigger_name)
        logger.debug(f"Request the workflow trigger URL of logic app '{self.logic_app_name}' in resource group '{self.resource_group}'")
        callback_url = await self._call(
            f"get the callback URL of trigger '{trigger_name}'",
            self._management.workflow_triggers.list_callback_url(self.resource_group, self.logic_app_name, trigger_name)
        )
        return LogicAppTriggerUrl(url=callback_url.value, method=callback_url.method)

    async def _get_trigger_name(self) -> str:
        try:
            async for trigger in self._management.workflow_triggers.list(self.resource_group, self.logic_app_name):
                return trigger.name
        except ClientAuthenticationError as e:
            raise AuthenticationError(f"Could not list triggers: {e.message}", self._context(), e) from e
        except HttpResponseError as e:
            raise LogicAppHTTPError(f"Could not list triggers: {e.message}", e.status_code or 0, None, self._context(), e) from e
        except AzureError as e:
            raise ConnectionError(MANAGEMENT_ENDPOINT, f"Could not list triggers: {e.message}", self._context(), e) from e

        raise LogicAppTriggerNotFoundError(
            self.subscription_id, self.resource_group, self.logic_app_name,
            f"Cannot find any trigger for logic app '{self.logic_app_name}' in resource group '{self.resource_group}'"
        )

    async def get_run(self, run_id: str) -> LogicAppRun:
        """Get one run with its actions, regardless of its status."""
        _require("run_id", run_id)
        wire_run = await self._call(
            f"get run '{run_id}'",
            self._management.workflow_runs.get(self.resource_group, self.logic_app_name, run_id)
        )
        return await self._materializer().materialize(wire_run)

    async def get_run_actions(self, run_id: str) -> List[LogicAppAction]:
        _require("run_id", run_id)
        return await self._materializer().list_actions(run_id)

    def _materializer(self) -> RunMaterializer:
        return RunMaterializer(self._management, self._http, self.resource_group, self.logic_app_name)

    # Static results

    def temporary_enable_success_static_result(self, action_name: str) -> AsyncContextManager[None]:
        """Mock ``action_name`` with a successful empty "OK" result for the duration of the block."""
        _require("action_name", action_name)
        success = StaticResultDefinition(outputs=StaticResultOutputs(headers={}, status_code="OK"), status="Succeeded")
        return self.temporary_enable_static_results({action_name: success})

    def temporary_enable_static_result(
        self,
        action_name: str,
        definition: StaticResultDefinition
    ) -> AsyncContextManager[None]:
        _require("action_name", action_name)
        if definition is None:
            raise ValidationError("definition", "Requires a static result definition")
        return self.temporary_enable_static_results({action_name: definition})

    def temporary_enable_static_results(
        self,
        actions: Mapping[str, StaticResultDefinition]
    ) -> AsyncContextManager[None]:
        """
        Mock several actions with static results for the duration of the block.

        Args:
            actions: Static result per action name
        """
        if not actions:
            raise ValidationError("actions", "Requires at least one action to enable a static result for")
        if any(name is None or result is None for name, result in actions.items()):
            raise ValidationError(
                "actions",
                "Cannot enable static result for actions when either the action or result is missing"
            )

        actions = dict(actions)
        action_names = set(actions)

        async def setup():
            logger.debug(f"Enables (+) static results for actions {', '.join(actions)} of logic app '{self.logic_app_name}'")
            workflow = await self._get_workflow()
            patched = enable_static_results(workflow.definition or {}, actions)
            await self._update_definition(workflow, patched, "enable static results")

        async def teardown():
            logger.debug(f"Disables (-) static results for actions {', '.join(actions)} of logic app '{self.logic_app_name}'")
            workflow = await self._get_workflow()
            patched = disable_static_results(workflow.definition or {}, action_names.__contains__)
            await self._update_definition(workflow, patched, "disable static results")

        return temporary_state(setup, teardown)

    async def disable_all_static_results(self) -> None:
        """Disable the static result of every action, e.g. after a test aborted inside a temporary block."""
        logger.debug(f"Disables (-) static results for all actions of logic app '{self.logic_app_name}'")
        workflow = await self._get_workflow()
        patched = disable_static_results(workflow.definition or {}, lambda _: True)
        await self._update_definition(workflow, patched, "disable all static results")
