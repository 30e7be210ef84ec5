"""Tests for the exception hierarchy and its context."""

from datetime import datetime, timedelta, timezone

from logicapp_testing.exceptions import (
    ConnectionError,
    ContentLinkError,
    ErrorContext,
    LogicAppError,
    LogicAppHTTPError,
    LogicAppNotUpdatedError,
    LogicAppTriggerNotFoundError,
    PollingTimeoutError,
    QueryError,
    ValidationError,
    from_http_error,
)


class TestPollingTimeoutError:
    """Test the diagnostics carried by a polling timeout."""

    def test_message_with_correlation_id(self):
        start = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

        error = PollingTimeoutError(timedelta(seconds=30), "2", start_time=start, correlation_id="abc-123")

        assert "Could not in the given timeout span (0:00:30) retrieve 2 logic app runs" in str(error)
        assert "with StartTime >= 2026-03-01T12:00:00+00:00" in str(error)
        assert "with correlation property equal 'abc-123'" in str(error)
        assert error.timeout == timedelta(seconds=30)
        assert error.start_time == start
        assert error.correlation_id == "abc-123"

    def test_message_with_tracked_property(self):
        error = PollingTimeoutError(timedelta(seconds=5), tracked_property=("orderId", "42"))

        assert "retrieve any logic app runs" in str(error)
        assert "with tracked property [orderId] = 42" in str(error)
        assert error.tracked_property == ("orderId", "42")

    def test_suggested_fixes(self):
        error = PollingTimeoutError(timedelta(seconds=5))
        assert any("Increase the polling timeout (current: 5s)" in fix for fix in error.context.suggested_fixes)


class TestHierarchy:
    """Test the relations between error types."""

    def test_content_link_error_is_query_error(self):
        error = from_http_error(403, '{"error": "AuthorizationFailed"}', "https://links.example/out")

        assert isinstance(error, ContentLinkError)
        assert isinstance(error, QueryError)
        assert isinstance(error, LogicAppHTTPError)
        assert error.status_code == 403
        assert error.context.url == "https://links.example/out"
        assert error.context.response_data == {"error": "AuthorizationFailed"}
        assert error.context.suggested_fixes

    def test_non_json_response_kept_raw(self):
        error = from_http_error(500, "oops", "https://links.example/out")
        assert error.context.response_data == {"raw": "oops"}
        assert error.get_summary().startswith("HTTP 500")

    def test_connection_error_is_query_error(self):
        error = ConnectionError("https://links.example", "refused")

        assert isinstance(error, QueryError)
        assert error.endpoint == "https://links.example"
        assert "Connection error to https://links.example: refused" in str(error)

    def test_validation_error(self):
        error = ValidationError("number_of_items", "Requires at least one item", 0)

        assert isinstance(error, LogicAppError)
        assert error.field_name == "number_of_items"
        assert error.provided_value == 0
        assert "Validation error for 'number_of_items'" in str(error)


class TestLogicAppErrors:
    """Test errors about one logic app."""

    def test_summary_includes_location(self):
        error = LogicAppError("failed", ErrorContext(resource_group="rg", logic_app_name="app"))
        assert error.get_summary() == "failed | logic app 'app' in resource group 'rg'"

    def test_detailed_info(self):
        error = LogicAppError("failed", ErrorContext(logic_app_name="app"))

        info = error.get_detailed_info()

        assert info["type"] == "LogicAppError"
        assert info["logic_app_name"] == "app"

    def test_not_updated(self):
        error = LogicAppNotUpdatedError("sub", "rg", "app", "Failed to enable a static result.")

        assert error.subscription_id == "sub"
        assert error.resource_group == "rg"
        assert error.logic_app_name == "app"
        assert error.message == "Failed to enable a static result."

    def test_trigger_not_found(self):
        error = LogicAppTriggerNotFoundError(None, "rg", "app", "Cannot find any trigger")

        assert error.subscription_id is None
        assert error.context.logic_app_name == "app"
