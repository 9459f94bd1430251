"""
Request side types: query parameters, content types and performance tiers.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING, Any

from dune_sdk.util import postgres_date

if TYPE_CHECKING:
    from datetime import datetime

DuneRecord = dict[str, Any]
RequestPayload = dict[str, Any] | bytes


class ContentType(Enum):
    """Content-Type header values accepted by the Dune API"""

    JSON = "application/json"
    CSV = "text/csv"
    NDJSON = "application/x-ndjson"


class ExecutionPerformance(Enum):
    """Engine size used to run a query execution"""

    MEDIUM = "medium"
    LARGE = "large"


class ParameterType(Enum):
    """
    Enum of the 4 distinct dune parameter types
    """

    TEXT = "text"
    NUMBER = "number"
    DATE = "datetime"
    ENUM = "enum"

    @classmethod
    def from_string(cls, type_str: str) -> ParameterType:
        """
        Attempts to parse Parameter from string.
        Raises ValueError when there is no match.
        """
        patterns = {
            r"text": cls.TEXT,
            r"number": cls.NUMBER,
            r"date": cls.DATE,
            r"enum": cls.ENUM,
            r"list": cls.ENUM,
        }
        for pattern, param in patterns.items():
            if re.match(pattern, type_str, re.IGNORECASE):
                return param
        raise ValueError(f"could not parse ParameterType from '{type_str}'")


class QueryParameter:
    """Dune compatible query parameter (key, type, value)"""

    def __init__(
        self,
        name: str,
        parameter_type: ParameterType,
        value: Any,
    ):
        self.key: str = name
        self.type: ParameterType = parameter_type
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QueryParameter):
            return NotImplemented
        return (self.key, self.type, self.value) == (other.key, other.type, other.value)

    def __hash__(self) -> int:
        value = (
            tuple(self.value)
            if isinstance(self.value, Sequence) and not isinstance(self.value, str)
            else self.value
        )
        return hash((self.key, value, self.type.value))

    @classmethod
    def text_type(cls, name: str, value: str) -> QueryParameter:
        """Constructs a Query parameter of type text"""
        return cls(name, ParameterType.TEXT, value)

    @classmethod
    def number_type(cls, name: str, value: int | float) -> QueryParameter:
        """Constructs a Query parameter of type number"""
        return cls(name, ParameterType.NUMBER, value)

    @classmethod
    def date_type(cls, name: str, value: datetime | str) -> QueryParameter:
        """
        Constructs a Query parameter of type date.
        Accepts a datetime or a string in the `YYYY-MM-DD HH:MM:SS` format.
        """
        if isinstance(value, str):
            value = postgres_date(value)
        return cls(name, ParameterType.DATE, value)

    @classmethod
    def enum_type(cls, name: str, value: str | Sequence[str]) -> QueryParameter:
        """Constructs a Query parameter of type enum or multi-select"""
        if isinstance(value, str):
            return cls(name, ParameterType.ENUM, value)
        if isinstance(value, Sequence):
            return cls(name, ParameterType.ENUM, tuple(value))
        raise TypeError(f"Unsupported enum value type for parameter '{name}': {type(value)!r}")

    def serialized_value(self) -> str | list[str]:
        """Returns JSON-ready value of parameter"""
        if self.type == ParameterType.DATE:
            return str(self.value.strftime("%Y-%m-%d %H:%M:%S"))
        if isinstance(self.value, Sequence) and not isinstance(self.value, str):
            return [str(v) for v in self.value]
        return str(self.value)

    def to_dict(self) -> dict[str, str | list[str]]:
        """Converts QueryParameter into the json format accepted by Dune API"""
        return {
            "key": self.key,
            "type": self.type.value,
            "value": self.serialized_value(),
        }

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> QueryParameter:
        """Constructs a QueryParameter from its json representation"""
        name, value = obj["key"], obj["value"]
        p_type = ParameterType.from_string(obj["type"])
        if p_type == ParameterType.DATE:
            return cls.date_type(name, value)
        if p_type == ParameterType.TEXT:
            assert isinstance(value, str)
            return cls.text_type(name, value)
        if p_type == ParameterType.NUMBER:
            if isinstance(value, str):
                value = float(value) if "." in value else int(value)
            return cls.number_type(name, value)
        return cls.enum_type(name, value)

    def __str__(self) -> str:
        # For less cryptic logging.
        return f"Parameter(name={self.key}, value={self.value}, type={self.type.value})"

    def __repr__(self) -> str:
        return str(self)


def parameter_values(params: Sequence[QueryParameter] | None) -> dict[str, str | list[str]]:
    """Maps a list of parameters to the {key: value} form used in execution requests"""
    return {p.key: p.serialized_value() for p in params or []}
