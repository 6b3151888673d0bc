"""
Runtime values.

A `Value` pairs a type tag with a native Python payload:

    Nil        None
    Boolean    bool
    Integer    int (arbitrary precision)
    Decimal    decimal.Decimal (arbitrary precision)
    Character  one-character str
    String     str

Object values carry a record type tag plus their own field values and bound
methods.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Optional

from plcscript.compiler.environment import (
    BOOLEAN,
    BUILTIN_TYPES,
    CHARACTER,
    DECIMAL,
    INTEGER,
    NIL,
    STRING,
    PlcType,
)
from plcscript.utils.errors import ErrorKind, EvaluationError, SourceLocation

BoundMethod = Callable[[list["Value"]], "Value"]


@dataclass(eq=False)
class Value:
    """
    A tagged runtime value.

    Equality is structural: same type tag, equal payloads and equal fields.
    Values of different types are never equal.
    """

    type: PlcType
    value: Any = None
    fields: dict[str, Value] = field(default_factory=dict)
    methods: dict[tuple[str, int], BoundMethod] = field(default_factory=dict)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return (
            self.type is other.type
            and self.value == other.value
            and self.fields == other.fields
        )

    @property
    def is_object(self) -> bool:
        """True for values of a record type, including records with no members."""
        return not any(self.type is t for t in BUILTIN_TYPES)

    def text(self) -> str:
        """Textual form used by `print` and string concatenation."""
        if self.type is NIL:
            return "null"
        if self.type is BOOLEAN:
            return "true" if self.value else "false"
        if self.type is DECIMAL:
            return format(self.value, "f")
        if self.type in (INTEGER, CHARACTER, STRING):
            return str(self.value)
        inner = ", ".join(f"{name}={v.text()}" for name, v in self.fields.items())
        return f"{self.type.name}{{{inner}}}"

    def __str__(self) -> str:
        return self.text()

    def __repr__(self) -> str:
        return f"Value({self.type.name}, {self.text()!r})"


NIL_VALUE = Value(NIL)
TRUE_VALUE = Value(BOOLEAN, True)
FALSE_VALUE = Value(BOOLEAN, False)


def boolean(flag: bool) -> Value:
    return TRUE_VALUE if flag else FALSE_VALUE


def integer(number: int) -> Value:
    return Value(INTEGER, number)


def decimal(number: Decimal | str) -> Value:
    return Value(DECIMAL, Decimal(number))


def character(char: str) -> Value:
    return Value(CHARACTER, char)


def string(text: str) -> Value:
    return Value(STRING, text)


def new_object(
    record_type: PlcType,
    fields: Optional[dict[str, Value]] = None,
    methods: Optional[dict[tuple[str, int], BoundMethod]] = None,
) -> Value:
    """Create an object value of a record type."""
    return Value(record_type, None, dict(fields or {}), dict(methods or {}))


def require_type(
    expected: PlcType,
    value: Value,
    location: Optional[SourceLocation] = None,
) -> Any:
    """
    Return the payload of `value`, failing unless it has the expected type.

    Raises:
        EvaluationError: RUNTIME_TYPE_MISMATCH
    """
    if value.type is not expected:
        raise EvaluationError(
            ErrorKind.RUNTIME_TYPE_MISMATCH,
            f"Expected {expected.name}, received {value.type.name}",
            location,
        )
    return value.value
