"""Tests for the logic app management client."""

from datetime import timedelta

import httpx
import pytest
from azure.core.exceptions import HttpResponseError, ServiceRequestError

from logicapp_testing.client import LogicAppClient
from logicapp_testing.definition import DISABLED, ENABLED
from logicapp_testing.exceptions import (
    ConnectionError,
    LogicAppHTTPError,
    LogicAppNotUpdatedError,
    LogicAppTriggerNotFoundError,
    ValidationError,
)
from logicapp_testing.models import LogicAppState, StaticResultDefinition, StaticResultOutputs

from .conftest import T0, AsyncPaged, make_action, make_run


@pytest.fixture
def requests():
    return []


@pytest.fixture
async def trigger_http_client(requests):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(202)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        yield client


@pytest.fixture
def client(management_client, trigger_http_client):
    return LogicAppClient("my-rg", "order-processing", management_client, trigger_http_client, "sub-123")


@pytest.fixture
def workflows(management_client):
    workflows = management_client.workflows
    workflows.workflow.definition = {
        "actions": {"HTTP": {"type": "Http"}, "Compose": {"type": "Compose"}},
        "triggers": {"manual": {"type": "Request"}},
    }
    return workflows


class TestWorkflowState:
    """Test enabling, updating and deleting the workflow."""

    @pytest.mark.asyncio
    async def test_temporary_enable(self, client, workflows):
        async with client.temporary_enable():
            assert workflows.workflow.state == "Enabled"

        assert workflows.calls == ["enable", "disable"]
        assert workflows.workflow.state == "Disabled"

    @pytest.mark.asyncio
    async def test_temporary_enable_disables_on_error(self, client, workflows):
        with pytest.raises(RuntimeError):
            async with client.temporary_enable():
                raise RuntimeError("test failed")

        assert workflows.calls == ["enable", "disable"]

    @pytest.mark.asyncio
    async def test_temporary_update_restores_definition(self, client, workflows):
        original = dict(workflows.workflow.definition)

        async with client.temporary_update('{"actions": {}, "triggers": {}}'):
            assert workflows.workflow.definition == {"actions": {}, "triggers": {}}

        assert workflows.workflow.definition == original

    def test_temporary_update_rejects_invalid_json(self, client):
        with pytest.raises(ValidationError):
            client.temporary_update("{broken")

    @pytest.mark.asyncio
    async def test_update_with_other_name_is_not_updated(self, client, workflows):
        workflows.updated_name = "someone-else"

        with pytest.raises(LogicAppNotUpdatedError) as exc_info:
            async with client.temporary_update({"actions": {}}):
                pass

        assert exc_info.value.logic_app_name == "order-processing"
        assert exc_info.value.subscription_id == "sub-123"

    @pytest.mark.asyncio
    async def test_delete(self, client, workflows):
        await client.delete()
        assert workflows.calls == ["delete"]

    @pytest.mark.asyncio
    async def test_get_metadata(self, client):
        metadata = await client.get_metadata()

        assert metadata.name == "order-processing"
        assert metadata.state is LogicAppState.ENABLED
        assert metadata.version == "08585"

    @pytest.mark.asyncio
    async def test_management_failure_is_http_error(self, client, workflows):
        async def failing_enable(resource_group, workflow_name):
            raise HttpResponseError(message="Conflict")

        workflows.enable = failing_enable

        with pytest.raises(LogicAppHTTPError, match="Could not enable the workflow: Conflict"):
            await client.enable()

    @pytest.mark.asyncio
    async def test_unreachable_management_service(self, client, workflows):
        async def unreachable_disable(resource_group, workflow_name):
            raise ServiceRequestError("name resolution failed")

        workflows.disable = unreachable_disable

        with pytest.raises(ConnectionError, match="Could not disable the workflow: name resolution failed"):
            await client.disable()


class TestTriggers:
    """Test running and triggering the workflow."""

    @pytest.mark.asyncio
    async def test_run_uses_first_trigger(self, client, management_client):
        await client.run()
        assert management_client.workflow_triggers.runs == ["manual"]

    @pytest.mark.asyncio
    async def test_run_without_trigger(self, client, management_client):
        management_client.workflow_triggers.triggers = []

        with pytest.raises(LogicAppTriggerNotFoundError) as exc_info:
            await client.run()

        assert "Cannot find any trigger for logic app 'order-processing'" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_trigger_listing_unreachable(self, client, management_client):
        management_client.workflow_triggers.list = lambda *args, **kwargs: AsyncPaged([], ServiceRequestError("connection refused"))

        with pytest.raises(ConnectionError, match="Could not list triggers: connection refused"):
            await client.run()

    @pytest.mark.asyncio
    async def test_get_trigger_url(self, client, management_client):
        trigger_url = await client.get_trigger_url()

        assert trigger_url.url == management_client.workflow_triggers.callback_url
        assert trigger_url.method == "POST"

    @pytest.mark.asyncio
    async def test_trigger_posts_headers(self, client, management_client, requests):
        response = await client.trigger({"x-correlation-id": "abc-123"})

        assert response.status_code == 202
        assert len(requests) == 1
        assert requests[0].method == "POST"
        assert str(requests[0].url) == management_client.workflow_triggers.callback_url
        assert requests[0].headers["x-correlation-id"] == "abc-123"

    @pytest.mark.asyncio
    async def test_trigger_error_status(self, management_client):
        def handler(request):
            return httpx.Response(500, text="InternalServerError")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            client = LogicAppClient("my-rg", "order-processing", management_client, http_client)
            with pytest.raises(LogicAppHTTPError) as exc_info:
                await client.trigger()

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_cancel(self, client, management_client):
        await client.cancel("run-1")
        assert management_client.workflow_runs.cancelled == ["run-1"]

    @pytest.mark.asyncio
    async def test_get_run(self, client, management_client):
        management_client.add_run(
            make_run("run-1", T0, correlation_id="abc-123"),
            [make_action("Track", T0 + timedelta(seconds=1), '{"orderId": "42"}')],
        )

        run = await client.get_run("run-1")
        actions = await client.get_run_actions("run-1")

        assert run.correlation_id == "abc-123"
        assert run.tracked_properties == {"orderId": "42"}
        assert [action.name for action in actions] == ["Track"]

    def test_blank_names_rejected(self, management_client):
        with pytest.raises(ValidationError):
            LogicAppClient(" ", "order-processing", management_client)


class TestStaticResults:
    """Test mocking actions with static results."""

    @pytest.mark.asyncio
    async def test_success_static_result(self, client, workflows):
        async with client.temporary_enable_success_static_result("HTTP"):
            definition = workflows.workflow.definition
            assert definition["actions"]["HTTP"]["runtimeConfiguration"]["staticResult"] == {
                "name": "HTTP0", "staticResultOptions": ENABLED,
            }
            assert definition["staticResults"]["HTTP0"] == {
                "outputs": {"headers": {}, "statusCode": "OK"}, "status": "Succeeded",
            }

        static_result = workflows.workflow.definition["actions"]["HTTP"]["runtimeConfiguration"]["staticResult"]
        assert static_result["staticResultOptions"] == DISABLED

    @pytest.mark.asyncio
    async def test_static_results_for_several_actions(self, client, workflows):
        failure = StaticResultDefinition(outputs=StaticResultOutputs(status_code="InternalServerError"), status="Failed")

        async with client.temporary_enable_static_results({"HTTP": failure, "Compose": StaticResultDefinition()}):
            definition = workflows.workflow.definition
            assert definition["staticResults"]["HTTP0"]["status"] == "Failed"
            assert set(definition["staticResults"]) == {"HTTP0", "Compose0"}

        actions = workflows.workflow.definition["actions"]
        assert all(
            action["runtimeConfiguration"]["staticResult"]["staticResultOptions"] == DISABLED
            for action in actions.values()
        )

    def test_no_actions_rejected(self, client):
        with pytest.raises(ValidationError):
            client.temporary_enable_static_results({})

    def test_missing_definition_rejected(self, client):
        with pytest.raises(ValidationError):
            client.temporary_enable_static_result("HTTP", None)

    @pytest.mark.asyncio
    async def test_disable_all_static_results(self, client, workflows):
        for action_name in ("HTTP", "Compose"):
            workflows.workflow.definition["actions"][action_name]["runtimeConfiguration"] = {
                "staticResult": {"name": f"{action_name}0", "staticResultOptions": ENABLED}
            }

        await client.disable_all_static_results()

        actions = workflows.workflow.definition["actions"]
        assert all(
            action["runtimeConfiguration"]["staticResult"]["staticResultOptions"] == DISABLED
            for action in actions.values()
        )
        assert workflows.calls[-1] == "create_or_update"


class TestLifecycle:
    """Test creation and closing of the client."""

    @pytest.mark.asyncio
    async def test_create_authenticates_once(self, authentication):
        client = await LogicAppClient.create("my-rg", "order-processing", authentication)
        async with client:
            metadata = await client.get_metadata()

        assert metadata.name == "order-processing"
        assert client.subscription_id == "sub-123"
        assert authentication.authentications == 1
