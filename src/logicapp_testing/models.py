"""
Models for logic app runs, actions, triggers and workflow metadata.
"""
# Copyright (c) 2026 logicapp-testing
#
# Licensed under the MIT License. See the LICENSE file for details.


from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Annotated, Any, Dict, Mapping, Optional, Tuple

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer

from .json_value import JsonValue


class LogicAppActionStatus(str, Enum):
    """Status of a run, trigger or action as reported by Azure"""
    NOT_SPECIFIED = "NotSpecified"
    PAUSED = "Paused"
    RUNNING = "Running"
    WAITING = "Waiting"
    SUCCEEDED = "Succeeded"
    SKIPPED = "Skipped"
    SUSPENDED = "Suspended"
    CANCELLED = "Cancelled"
    FAILED = "Failed"
    FAULTED = "Faulted"
    TIMED_OUT = "TimedOut"
    ABORTED = "Aborted"
    IGNORED = "Ignored"

    @classmethod
    def parse(cls, value: Optional[str]) -> "LogicAppActionStatus":
        """Case-insensitive lookup; unknown or missing values are NOT_SPECIFIED."""
        if value is None:
            return cls.NOT_SPECIFIED
        value = str(getattr(value, "value", value))
        for status in cls:
            if status.value.lower() == value.lower():
                return status
        return cls.NOT_SPECIFIED


class LogicAppState(str, Enum):
    """State of a logic app workflow"""
    NOT_SPECIFIED = "NotSpecified"
    COMPLETED = "Completed"
    ENABLED = "Enabled"
    DISABLED = "Disabled"
    DELETED = "Deleted"
    SUSPENDED = "Suspended"

    @classmethod
    def parse(cls, value: Optional[str]) -> "LogicAppState":
        if value is None:
            return cls.NOT_SPECIFIED
        value = str(getattr(value, "value", value))
        for state in cls:
            if state.value.lower() == value.lower():
                return state
        return cls.NOT_SPECIFIED


# Read-only view of tracked property names to values
TrackedProperties = Annotated[
    Mapping[str, str],
    AfterValidator(lambda properties: MappingProxyType(dict(properties))),
    PlainSerializer(dict),
]


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class LogicAppTrigger(_Snapshot):
    """Trigger that started a logic app run"""
    name: str = Field(..., description="Trigger name")
    status: LogicAppActionStatus = Field(default=LogicAppActionStatus.NOT_SPECIFIED)
    inputs: Optional[JsonValue] = Field(None, description="Trigger inputs")
    outputs: Optional[JsonValue] = Field(None, description="Trigger outputs")
    error: Optional[JsonValue] = Field(None, description="Trigger error payload")
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class LogicAppAction(_Snapshot):
    """Single action executed inside a logic app run"""
    name: str = Field(..., description="Action name, unique within its run")
    status: LogicAppActionStatus = Field(default=LogicAppActionStatus.NOT_SPECIFIED)
    error: Optional[JsonValue] = Field(None, description="Action error payload")
    inputs: Optional[JsonValue] = Field(None, description="Resolved action inputs")
    outputs: Optional[JsonValue] = Field(None, description="Resolved action outputs")
    tracked_properties: TrackedProperties = Field(
        default_factory=dict,
        validate_default=True,
        description="Tracked properties reported by this action"
    )
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class LogicAppRun(_Snapshot):
    """Completed logic app run with its materialized actions"""
    id: str = Field(..., description="Run name")
    status: LogicAppActionStatus = Field(default=LogicAppActionStatus.NOT_SPECIFIED)
    error: Optional[JsonValue] = Field(None, description="Run error payload")
    correlation_id: Optional[str] = Field(None, description="Client tracking ID")
    trigger: Optional[LogicAppTrigger] = None
    actions: Tuple[LogicAppAction, ...] = Field(default_factory=tuple)
    tracked_properties: TrackedProperties = Field(
        default_factory=dict,
        validate_default=True,
        description="Tracked properties of all actions, latest started action wins"
    )
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    def get_action(self, name: str) -> Optional[LogicAppAction]:
        return next((action for action in self.actions if action.name == name), None)


class LogicAppMetadata(_Snapshot):
    """Definition information of a logic app workflow"""
    name: str = Field(..., description="Logic app name")
    state: LogicAppState = Field(default=LogicAppState.NOT_SPECIFIED)
    version: Optional[str] = None
    access_endpoint: Optional[str] = None
    definition: Optional[JsonValue] = None
    created_time: Optional[datetime] = None
    changed_time: Optional[datetime] = None


class LogicAppTriggerUrl(_Snapshot):
    """Callback URL on which a logic app trigger can be invoked"""
    url: str = Field(..., description="Callback URL")
    method: str = Field(..., description="HTTP method to call the URL with")


class StaticResultOutputs(BaseModel):
    """Outputs returned by a static result"""
    model_config = ConfigDict(populate_by_name=True)

    headers: Dict[str, str] = Field(default_factory=dict)
    status_code: str = Field(default="OK", alias="statusCode")
    body: Any = None


class StaticResultDefinition(BaseModel):
    """Canned result injected in place of the real execution of an action"""
    outputs: StaticResultOutputs = Field(default_factory=StaticResultOutputs)
    status: str = Field(default="Succeeded")

    def to_definition(self) -> Dict[str, Any]:
        """JSON shape used inside the workflow definition's staticResults."""
        return self.model_dump(by_alias=True, exclude_none=True)
