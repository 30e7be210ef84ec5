"""
Exceptions for the Logic App testing library with rich context.

Every error carries an ErrorContext describing which logic app was involved
and, where possible, what to try next.
"""
# Copyright (c) 2026 logicapp-testing
#
# Licensed under the MIT License. See the LICENSE file for details.


import json
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, List


@dataclass
class ErrorContext:
    """Rich context information for errors."""
    url: Optional[str] = None
    subscription_id: Optional[str] = None
    resource_group: Optional[str] = None
    logic_app_name: Optional[str] = None
    related_run_id: Optional[str] = None
    response_data: Optional[Dict[str, Any]] = None
    suggested_fixes: List[str] = None

    def __post_init__(self):
        if self.suggested_fixes is None:
            self.suggested_fixes = []

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)


class LogicAppError(Exception):
    """Base exception for all Logic App testing errors with rich context."""

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.original_exception = original_exception

    def get_summary(self) -> str:
        """Get a summary of the error with key details."""
        parts = [self.message]

        if self.context.logic_app_name:
            location = f"logic app '{self.context.logic_app_name}'"
            if self.context.resource_group:
                location += f" in resource group '{self.context.resource_group}'"
            parts.append(location)

        return " | ".join(parts)

    def get_detailed_info(self) -> Dict[str, Any]:
        """Get detailed error information for rich display."""
        info = {
            "message": self.message,
            "type": self.__class__.__name__,
        }

        if self.context:
            info.update(self.context.to_dict())

        return info

    def __str__(self) -> str:
        return self.get_summary()


class LogicAppHTTPError(LogicAppError):
    """HTTP-related errors with enhanced context."""

    def __init__(
        self,
        message: str,
        status_code: int,
        response_text: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[BaseException] = None
    ):
        if context is None:
            context = ErrorContext()

        # Parse response data if it's JSON
        if response_text:
            try:
                context.response_data = json.loads(response_text)
            except (json.JSONDecodeError, TypeError):
                context.response_data = {"raw": response_text}

        super().__init__(message, context, original_exception)
        self.status_code = status_code
        self.response_text = response_text

    def get_summary(self) -> str:
        return f"HTTP {self.status_code}: {self.message}"


class QueryError(LogicAppError):
    """Listing workflow runs or materializing their actions failed."""


class ConnectionError(QueryError):
    """Enhanced connection errors."""

    def __init__(
        self,
        endpoint: str,
        message: str,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[BaseException] = None
    ):
        if context is None:
            context = ErrorContext(url=endpoint)

        context.suggested_fixes = [
            "Check network connectivity and firewall settings",
            "Verify the content link or trigger URL has not expired",
        ]

        full_message = f"Connection error to {endpoint}: {message}"
        super().__init__(full_message, context, original_exception)
        self.endpoint = endpoint


class ContentLinkError(LogicAppHTTPError, QueryError):
    """An action input/output content link could not be fetched."""


class AuthenticationError(LogicAppError):
    """Acquiring a management credential failed."""

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[BaseException] = None
    ):
        if context is None:
            context = ErrorContext()

        context.suggested_fixes = [
            "Verify the tenant, client ID and client secret of the service principal",
            "Check that the service principal has access to the subscription",
            "Make sure the access token has not expired",
        ]

        super().__init__(message, context, original_exception)


class ValidationError(LogicAppError):
    """Invalid arguments, detected before any network activity."""

    def __init__(
        self,
        field_name: str,
        message: str,
        provided_value: Any = None,
        context: Optional[ErrorContext] = None
    ):
        full_message = f"Validation error for '{field_name}': {message}"
        super().__init__(full_message, context)
        self.field_name = field_name
        self.provided_value = provided_value


class LogicAppNotUpdatedError(LogicAppError):
    """The workflow definition could not be updated."""

    def __init__(
        self,
        subscription_id: Optional[str],
        resource_group: str,
        logic_app_name: str,
        message: str
    ):
        context = ErrorContext(
            subscription_id=subscription_id,
            resource_group=resource_group,
            logic_app_name=logic_app_name,
            suggested_fixes=[
                "Make sure the authentication on this resource is set correctly",
                "Check that the credential has contributor access to the logic app",
            ],
        )
        super().__init__(message, context)
        self.subscription_id = subscription_id
        self.resource_group = resource_group
        self.logic_app_name = logic_app_name


class LogicAppTriggerNotFoundError(LogicAppError):
    """The logic app has no trigger to run or call."""

    def __init__(
        self,
        subscription_id: Optional[str],
        resource_group: str,
        logic_app_name: str,
        message: str
    ):
        context = ErrorContext(
            subscription_id=subscription_id,
            resource_group=resource_group,
            logic_app_name=logic_app_name,
        )
        super().__init__(message, context)
        self.subscription_id = subscription_id
        self.resource_group = resource_group
        self.logic_app_name = logic_app_name


class PollingTimeoutError(LogicAppError):
    """No satisfying logic app runs were found within the polling timeout."""

    def __init__(
        self,
        timeout: timedelta,
        amount: str = "any",
        start_time: Optional[datetime] = None,
        correlation_id: Optional[str] = None,
        tracked_property: Optional[tuple] = None,
        context: Optional[ErrorContext] = None
    ):
        if context is None:
            context = ErrorContext()

        context.suggested_fixes = [
            f"Increase the polling timeout (current: {timeout.total_seconds():g}s)",
            "Check that the logic app is enabled and was triggered after the start time",
            "Verify the correlation ID or tracked property the logic app reports",
        ]

        lines = [f"Could not in the given timeout span ({timeout}) retrieve {amount} logic app runs"]
        if start_time is not None:
            lines.append(f"with StartTime >= {start_time.isoformat()}")
        if correlation_id is not None:
            lines.append(f"with correlation property equal '{correlation_id}'")
        if tracked_property is not None:
            name, value = tracked_property
            lines.append(f"with tracked property [{name}] = {value}")

        super().__init__("\n ".join(lines), context)
        self.timeout = timeout
        self.amount = amount
        self.start_time = start_time
        self.correlation_id = correlation_id
        self.tracked_property = tracked_property

    def get_summary(self) -> str:
        return self.message


def from_http_error(
    status_code: int,
    response_text: str,
    url: str,
    context: Optional[ErrorContext] = None
) -> LogicAppHTTPError:
    """
    Create appropriate exception from HTTP error response with enhanced context.

    Args:
        status_code: HTTP status code
        response_text: Response body text
        url: Request URL that failed
        context: Known logic app context to attach

    Returns:
        Appropriate LogicAppHTTPError subclass with rich context
    """
    if context is None:
        context = ErrorContext()
    context.url = url

    if status_code in (401, 403):
        context.suggested_fixes = [
            "Check that the credential is authorized on the logic app resource",
            "Content links expire; re-query the run to get fresh links",
        ]
    elif status_code == 404:
        context.suggested_fixes = [
            "Check the resource group and logic app name",
            "Ensure the run hasn't been deleted or expired",
        ]

    return ContentLinkError(
        message=f"HTTP request failed: {response_text}",
        status_code=status_code,
        response_text=response_text,
        context=context
    )
