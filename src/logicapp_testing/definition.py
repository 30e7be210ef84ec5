"""
Static result patching of logic app workflow definitions.

Works on the plain JSON (dict) form of a definition as returned by the
management API. Every function returns a patched copy and leaves its input
untouched.
"""
# Copyright (c) 2026 logicapp-testing
#
# Licensed under the MIT License. See the LICENSE file for details.


import copy
from typing import Any, Callable, Dict, Mapping

from .models import StaticResultDefinition

ENABLED = "Enabled"
DISABLED = "Disabled"


def enable_static_results(
    definition: Mapping[str, Any],
    actions: Mapping[str, StaticResultDefinition]
) -> Dict[str, Any]:
    """
    Enable static results for the given actions.

    An action that already has a static result configured gets it re-enabled;
    otherwise a new static result named ``<action>0`` is registered in the
    definition's ``staticResults``. Actions unknown to the definition are
    skipped.
    """
    patched = copy.deepcopy(dict(definition))
    workflow_actions = patched.get("actions") or {}

    for action_name, static_result in actions.items():
        action = workflow_actions.get(action_name)
        if action is None:
            continue

        runtime_configuration = action.get("runtimeConfiguration")
        if runtime_configuration and runtime_configuration.get("staticResult"):
            runtime_configuration["staticResult"]["staticResultOptions"] = ENABLED
            continue

        static_result_name = f"{action_name}0"
        action["runtimeConfiguration"] = {
            "staticResult": {
                "name": static_result_name,
                "staticResultOptions": ENABLED,
            }
        }
        static_results = patched.get("staticResults")
        if static_results is None:
            static_results = patched["staticResults"] = {}
        static_results[static_result_name] = static_result.to_definition()

    return patched


def disable_static_results(
    definition: Mapping[str, Any],
    should_disable: Callable[[str], bool]
) -> Dict[str, Any]:
    """Disable the configured static result of every action selected by ``should_disable``."""
    patched = copy.deepcopy(dict(definition))

    for action_name, action in (patched.get("actions") or {}).items():
        runtime_configuration = action.get("runtimeConfiguration")
        if not should_disable(action_name) or not runtime_configuration:
            continue
        static_result = runtime_configuration.get("staticResult")
        if static_result:
            static_result["staticResultOptions"] = DISABLED

    return patched
