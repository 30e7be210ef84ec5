"""
logicapp-testing - integration test support for Azure Logic Apps

Enable, update and trigger logic apps, mock their actions with static
results, and poll for completed workflow runs by correlation ID or tracked
property.
"""
# Copyright (c) 2026 logicapp-testing
#
# Licensed under the MIT License. See the LICENSE file for details.


from .authentication import AzureCloud, LogicAppAuthentication
from .client import LogicAppClient
from .config import LogicAppTestConfig, load_config
from .exceptions import (
    AuthenticationError,
    LogicAppError,
    LogicAppHTTPError,
    LogicAppNotUpdatedError,
    LogicAppTriggerNotFoundError,
    PollingTimeoutError,
    QueryError,
    ValidationError,
)
from .json_value import JsonKind, JsonShapeError, JsonValue
from .models import (
    LogicAppAction,
    LogicAppActionStatus,
    LogicAppMetadata,
    LogicAppRun,
    LogicAppState,
    LogicAppTrigger,
    LogicAppTriggerUrl,
    StaticResultDefinition,
    StaticResultOutputs,
)
from .polling import Poller
from .provider import LogicAppsProvider
from .query import PollCriteria, RunQuery, TrackedPropertyFilter
from .temporary import temporary_state

__version__ = "0.1.0"
__all__ = [
    "AzureCloud",
    "LogicAppAuthentication",
    "LogicAppClient",
    "LogicAppTestConfig",
    "load_config",
    "AuthenticationError",
    "LogicAppError",
    "LogicAppHTTPError",
    "LogicAppNotUpdatedError",
    "LogicAppTriggerNotFoundError",
    "PollingTimeoutError",
    "QueryError",
    "ValidationError",
    "JsonKind",
    "JsonShapeError",
    "JsonValue",
    "LogicAppAction",
    "LogicAppActionStatus",
    "LogicAppMetadata",
    "LogicAppRun",
    "LogicAppState",
    "LogicAppTrigger",
    "LogicAppTriggerUrl",
    "StaticResultDefinition",
    "StaticResultOutputs",
    "Poller",
    "LogicAppsProvider",
    "PollCriteria",
    "RunQuery",
    "TrackedPropertyFilter",
    "temporary_state",
]
