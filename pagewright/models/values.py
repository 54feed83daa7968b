"""Tagged values for front-matter data.

Front-matter is loosely typed YAML. Documents store it as one of the value
classes below so accessors can dispatch on the variant instead of guessing at
runtime what a plain object might be.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Mapping, Union


@dataclass(frozen=True)
class StringValue:
    value: str


@dataclass(frozen=True)
class NumberValue:
    value: int | float


@dataclass(frozen=True)
class BoolValue:
    value: bool


@dataclass(frozen=True)
class DateValue:
    """A YAML date or timestamp."""

    value: date | datetime


@dataclass(frozen=True)
class NullValue:
    pass


@dataclass(frozen=True)
class SequenceValue:
    items: tuple["FrontMatterValue", ...] = ()


@dataclass(frozen=True)
class MappingValue:
    entries: Mapping[str, "FrontMatterValue"] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))


FrontMatterValue = Union[
    StringValue, NumberValue, BoolValue, DateValue, NullValue, SequenceValue, MappingValue
]
TAGGED_TYPES = (StringValue, NumberValue, BoolValue, DateValue, NullValue, SequenceValue, MappingValue)


def is_tagged(value: Any) -> bool:
    """Check whether a value is already a tagged front-matter value."""
    return isinstance(value, TAGGED_TYPES)


def wrap(obj: Any) -> FrontMatterValue:
    """
    Convert a parsed YAML object into a tagged value.

    Args:
        obj: Object produced by the YAML loader

    Returns:
        Tagged value

    Raises:
        TypeError: If the object has no front-matter representation
    """
    # bool before int: bool is an int subclass
    if isinstance(obj, bool):
        return BoolValue(obj)
    if obj is None:
        return NullValue()
    if isinstance(obj, str):
        return StringValue(obj)
    if isinstance(obj, (int, float)):
        return NumberValue(obj)
    if isinstance(obj, (date, datetime)):
        return DateValue(obj)
    if isinstance(obj, (list, tuple)):
        return SequenceValue(tuple(wrap(item) for item in obj))
    if isinstance(obj, Mapping):
        return MappingValue({str(key): wrap(value) for key, value in obj.items()})
    if is_tagged(obj):
        return obj
    raise TypeError(f"Unsupported front-matter value of type {type(obj).__name__}")


def wrap_mapping(data: Mapping[str, Any]) -> dict[str, FrontMatterValue]:
    """Wrap every value of a plain mapping."""
    return {str(key): wrap(value) for key, value in data.items()}


def unwrap(value: FrontMatterValue) -> Any:
    """Convert a tagged value back into plain Python data."""
    if isinstance(value, (StringValue, NumberValue, BoolValue, DateValue)):
        return value.value
    if isinstance(value, NullValue):
        return None
    if isinstance(value, SequenceValue):
        return [unwrap(item) for item in value.items]
    if isinstance(value, MappingValue):
        return {key: unwrap(item) for key, item in value.entries.items()}
    raise TypeError(f"Not a front-matter value: {value!r}")


def unwrap_mapping(data: Mapping[str, FrontMatterValue]) -> dict[str, Any]:
    """Unwrap every value of a tagged mapping."""
    return {key: unwrap(value) for key, value in data.items()}


def as_text(value: FrontMatterValue) -> str:
    """
    Render a scalar value as text.

    Args:
        value: Tagged value

    Returns:
        Text form of the scalar ("" for null)

    Raises:
        TypeError: If the value is a sequence or mapping
    """
    if isinstance(value, StringValue):
        return value.value
    if isinstance(value, BoolValue):
        return "true" if value.value else "false"
    if isinstance(value, NumberValue):
        return str(value.value)
    if isinstance(value, DateValue):
        return value.value.isoformat()
    if isinstance(value, NullValue):
        return ""
    raise TypeError(f"{type(value).__name__} has no text form")
