"""
Error types and source location tracking for the PLC script toolchain.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """
    Represents a location in the source code.

    Attributes:
        line: 1-indexed line number
        column: 1-indexed column number
        offset: 0-indexed character offset from start of source
        filename: Optional filename for error reporting
    """

    line: int
    column: int
    offset: int = 0
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


class ErrorKind(Enum):
    """Kinds of failure raised by the analyzer and the interpreter."""

    ENTRY_POINT_INVALID = "entry point invalid"
    DUPLICATE_DEFINITION = "duplicate definition"
    UNDEFINED_NAME = "undefined name"
    INCOMPATIBLE_TYPES = "incompatible types"
    NOT_COMPARABLE = "not comparable"
    DECLARATION_INCOMPLETE = "declaration incomplete"
    NOT_ASSIGNABLE = "not assignable"
    IF_BODY_EMPTY = "if body empty"
    FOR_BODY_EMPTY = "for body empty"
    INVALID_STATEMENT_EXPRESSION = "invalid statement expression"
    INVALID_GROUP_EXPRESSION = "invalid group expression"
    INTEGER_OVERFLOW = "integer overflow"
    DECIMAL_OVERFLOW = "decimal overflow"
    INCOMPATIBLE_PLUS_OPERANDS = "incompatible plus operands"
    INCOMPATIBLE_ARITHMETIC_OPERANDS = "incompatible arithmetic operands"
    INCOMPATIBLE_COMPARISON_OPERANDS = "incompatible comparison operands"
    DIVISION_BY_ZERO = "division by zero"
    RUNTIME_TYPE_MISMATCH = "runtime type mismatch"


class PlcError(Exception):
    """Base exception for all PLC script errors."""

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ) -> None:
        self.message = message
        self.location = location
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = []

        if self.location:
            parts.append(f"[{self.location}]")

        parts.append(self.message)

        if self.source_line and self.location:
            parts.append(f"\n    {self.source_line}")
            # Caret under the offending column
            padding = " " * (4 + self.location.column - 1)
            parts.append(f"\n{padding}^")

        if len(parts) > 2:
            return f"{parts[0]} {parts[1]}" + "".join(parts[2:])
        return " ".join(parts)


class LexerError(PlcError):
    """Raised when the lexer encounters an invalid token or character."""

    pass


class ParserError(PlcError):
    """Raised when the parser encounters a syntax error."""

    pass


class CodeGenError(PlcError):
    """Raised when Java code generation fails."""

    pass


class KindedError(PlcError):
    """
    An error tagged with an ErrorKind.

    The kind identifies the failure independently of the message text, so
    callers and tests can dispatch on it. `name` is the offending identifier
    when there is one.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        name: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.name = name
        super().__init__(message, location, source_line)


class AnalysisError(KindedError):
    """Raised when static analysis of a program fails."""

    pass


class EvaluationError(KindedError):
    """Raised when evaluation of a program fails at runtime."""

    pass
