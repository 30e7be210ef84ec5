"""
Tagged JSON values for action inputs, outputs and errors.

Payloads reported by logic app runs are untyped JSON. JsonValue keeps the
kind of the value next to it so callers ask for the shape they expect and
get a clear error when the payload looks different.
"""
# Copyright (c) 2026 logicapp-testing
#
# Licensed under the MIT License. See the LICENSE file for details.


import json
from enum import Enum
from typing import Any, Dict, List, Union

from .exceptions import LogicAppError


class JsonShapeError(LogicAppError):
    """A JSON value was accessed as a shape it does not have."""

    def __init__(self, expected: "JsonKind", actual: "JsonKind"):
        super().__init__(f"Expected a JSON {expected.value} but got a JSON {actual.value}")
        self.expected = expected
        self.actual = actual


class JsonKind(str, Enum):
    OBJECT = "object"
    ARRAY = "array"
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"


def _kind_of(value: Any) -> JsonKind:
    # bool before int: bool is a subclass of int
    if value is None:
        return JsonKind.NULL
    if isinstance(value, bool):
        return JsonKind.BOOLEAN
    if isinstance(value, (int, float)):
        return JsonKind.NUMBER
    if isinstance(value, str):
        return JsonKind.STRING
    if isinstance(value, (list, tuple)):
        return JsonKind.ARRAY
    if isinstance(value, dict):
        return JsonKind.OBJECT
    raise TypeError(f"Not a JSON value: {type(value).__name__}")


class JsonValue:
    """An immutable JSON value tagged with its kind."""

    __slots__ = ("_kind", "_value")

    def __init__(self, value: Any = None):
        if isinstance(value, JsonValue):
            value = value._value
        self._kind = _kind_of(value)
        if self._kind in (JsonKind.OBJECT, JsonKind.ARRAY):
            # private copy; callers keep no handle on nested containers
            value = json.loads(json.dumps(value))
        self._value = value

    @classmethod
    def parse(cls, text: Union[str, bytes]) -> "JsonValue":
        """Parse JSON text; raises json.JSONDecodeError on invalid input."""
        return cls(json.loads(text))

    @property
    def kind(self) -> JsonKind:
        return self._kind

    @property
    def is_null(self) -> bool:
        return self._kind is JsonKind.NULL

    def _expect(self, kind: JsonKind) -> None:
        if self._kind is not kind:
            raise JsonShapeError(kind, self._kind)

    def as_object(self) -> Dict[str, "JsonValue"]:
        self._expect(JsonKind.OBJECT)
        return {key: JsonValue(item) for key, item in self._value.items()}

    def as_array(self) -> List["JsonValue"]:
        self._expect(JsonKind.ARRAY)
        return [JsonValue(item) for item in self._value]

    def as_str(self) -> str:
        self._expect(JsonKind.STRING)
        return self._value

    def as_number(self) -> Union[int, float]:
        self._expect(JsonKind.NUMBER)
        return self._value

    def as_bool(self) -> bool:
        self._expect(JsonKind.BOOLEAN)
        return self._value

    def get(self, key: str) -> "JsonValue":
        """Member of a JSON object; a missing member is JSON null."""
        self._expect(JsonKind.OBJECT)
        return JsonValue(self._value.get(key))

    def __getitem__(self, key: Union[str, int]) -> "JsonValue":
        if isinstance(key, int):
            self._expect(JsonKind.ARRAY)
        else:
            self._expect(JsonKind.OBJECT)
        return JsonValue(self._value[key])

    def to_python(self) -> Any:
        """Plain Python representation (dict, list, str, number, bool or None)."""
        return json.loads(json.dumps(self._value))

    def dumps(self) -> str:
        return json.dumps(self._value)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, JsonValue):
            return self._kind is other._kind and self._value == other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.dumps())

    def __repr__(self) -> str:
        return f"JsonValue({self._kind.value}: {self.dumps()})"
