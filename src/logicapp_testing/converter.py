"""
Conversions from Azure management SDK models to logic app snapshots.
"""
# Copyright (c) 2026 logicapp-testing
#
# Licensed under the MIT License. See the LICENSE file for details.


import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from .json_value import JsonValue
from .models import (
    LogicAppAction,
    LogicAppActionStatus,
    LogicAppMetadata,
    LogicAppRun,
    LogicAppState,
    LogicAppTrigger,
)

logger = logging.getLogger(__name__)

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


def to_json_value(value: Any) -> Optional[JsonValue]:
    """Wrap an SDK payload (plain JSON or SDK model) as a JsonValue."""
    if value is None:
        return None
    if isinstance(value, JsonValue):
        return value
    if hasattr(value, "as_dict"):
        value = value.as_dict()
    return JsonValue(value)


def parse_tracked_properties(raw: Any) -> Dict[str, str]:
    """
    Parse the tracked properties an action reports.

    Azure hands these out either as a JSON-encoded string or as an already
    decoded JSON object. Non-string values are kept in their JSON text form.
    """
    if raw is None:
        return {}
    if isinstance(raw, (str, bytes)):
        if not raw.strip():
            return {}
        raw = json.loads(raw)
    if not isinstance(raw, Mapping):
        logger.warning(f"Ignoring tracked properties that are not a JSON object: {raw!r}")
        return {}

    properties = {}
    for key, value in raw.items():
        if key is None or value is None:
            continue
        properties[str(key)] = value if isinstance(value, str) else json.dumps(value)
    return properties


def merge_tracked_properties(actions: Sequence[LogicAppAction]) -> Dict[str, str]:
    """
    Merge the tracked properties of all actions into a run-level view.

    Actions are ordered by start time, latest first; the latest started
    action that sets a key wins. Actions without a start time come last,
    and equal start times keep their listing order (the sort is stable).
    """
    ordered = sorted(actions, key=_start_time_key, reverse=True)

    merged: Dict[str, str] = {}
    for action in ordered:
        for key, value in action.tracked_properties.items():
            merged.setdefault(key, value)
    return merged


def _start_time_key(action: LogicAppAction) -> datetime:
    if action.start_time is None:
        return _EARLIEST
    if action.start_time.tzinfo is None:
        return action.start_time.replace(tzinfo=timezone.utc)
    return action.start_time


def to_logic_app_trigger(wire_trigger: Any) -> Optional[LogicAppTrigger]:
    if wire_trigger is None:
        return None

    return LogicAppTrigger(
        name=wire_trigger.name or "",
        status=LogicAppActionStatus.parse(wire_trigger.status),
        inputs=to_json_value(getattr(wire_trigger, "inputs", None)),
        outputs=to_json_value(getattr(wire_trigger, "outputs", None)),
        error=to_json_value(getattr(wire_trigger, "error", None)),
        start_time=wire_trigger.start_time,
        end_time=wire_trigger.end_time,
    )


def to_logic_app_action(
    wire_action: Any,
    inputs: Optional[JsonValue],
    outputs: Optional[JsonValue]
) -> LogicAppAction:
    """Convert a WorkflowRunAction with its already resolved inputs/outputs."""
    return LogicAppAction(
        name=wire_action.name,
        status=LogicAppActionStatus.parse(wire_action.status),
        error=to_json_value(getattr(wire_action, "error", None)),
        inputs=inputs,
        outputs=outputs,
        tracked_properties=parse_tracked_properties(getattr(wire_action, "tracked_properties", None)),
        start_time=wire_action.start_time,
        end_time=wire_action.end_time,
    )


def to_logic_app_run(wire_run: Any, actions: Iterable[LogicAppAction]) -> LogicAppRun:
    """Convert a WorkflowRun and its materialized actions."""
    actions = tuple(actions)
    correlation = getattr(wire_run, "correlation", None)

    return LogicAppRun(
        id=wire_run.name,
        status=LogicAppActionStatus.parse(wire_run.status),
        error=to_json_value(getattr(wire_run, "error", None)),
        correlation_id=getattr(correlation, "client_tracking_id", None),
        trigger=to_logic_app_trigger(getattr(wire_run, "trigger", None)),
        actions=actions,
        tracked_properties=merge_tracked_properties(actions),
        start_time=wire_run.start_time,
        end_time=wire_run.end_time,
    )


def to_logic_app_metadata(workflow: Any) -> LogicAppMetadata:
    """Convert a Workflow resource."""
    return LogicAppMetadata(
        name=workflow.name,
        state=LogicAppState.parse(workflow.state),
        version=workflow.version,
        access_endpoint=workflow.access_endpoint,
        definition=to_json_value(workflow.definition),
        created_time=workflow.created_time,
        changed_time=workflow.changed_time,
    )
