"""
Rich, Rust-style diagnostics for PLC scripts.

Turns the single fail-fast error of a pass into a readable report with the
offending source line, an underline and optional help text.

Example output:
    error[E0302]: undefined name 'totl'
      --> example.plc:5:12
       |
     5 |     print(totl);
       |           ^^^^
       |
       = help: did you mean 'total'?
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from plcscript.utils.errors import (
    ErrorKind,
    KindedError,
    LexerError,
    ParserError,
    PlcError,
    SourceLocation,
)


# =============================================================================
# Error Codes Catalog
# =============================================================================


class ErrorCode:
    """
    Centralized catalog of diagnostic codes.

    Codes are organized by category:
    - E01xx: Type errors
    - E02xx: Syntax errors
    - E03xx: Semantic errors
    - E04xx: Runtime errors
    """

    # Type errors: E01xx
    E0101 = "E0101"  # incompatible types
    E0102 = "E0102"  # not comparable
    E0103 = "E0103"  # incompatible plus operands
    E0104 = "E0104"  # incompatible arithmetic operands
    E0105 = "E0105"  # incompatible comparison operands
    E0106 = "E0106"  # integer literal overflow
    E0107 = "E0107"  # decimal literal overflow

    # Syntax errors: E02xx
    E0201 = "E0201"  # unexpected token
    E0202 = "E0202"  # unexpected character
    E0203 = "E0203"  # unterminated literal
    E0204 = "E0204"  # invalid escape sequence

    # Semantic errors: E03xx
    E0301 = "E0301"  # invalid entry point
    E0302 = "E0302"  # undefined name
    E0303 = "E0303"  # duplicate definition
    E0304 = "E0304"  # incomplete declaration
    E0305 = "E0305"  # not assignable
    E0306 = "E0306"  # empty if body
    E0307 = "E0307"  # empty for body
    E0308 = "E0308"  # invalid statement expression
    E0309 = "E0309"  # invalid group expression

    # Runtime errors: E04xx
    E0401 = "E0401"  # division by zero
    E0402 = "E0402"  # runtime type mismatch


ERROR_DESCRIPTIONS: dict[str, str] = {
    ErrorCode.E0101: "incompatible types",
    ErrorCode.E0102: "not comparable",
    ErrorCode.E0103: "incompatible plus operands",
    ErrorCode.E0104: "incompatible arithmetic operands",
    ErrorCode.E0105: "incompatible comparison operands",
    ErrorCode.E0106: "integer literal overflow",
    ErrorCode.E0107: "decimal literal overflow",
    ErrorCode.E0201: "unexpected token",
    ErrorCode.E0202: "unexpected character",
    ErrorCode.E0203: "unterminated literal",
    ErrorCode.E0204: "invalid escape sequence",
    ErrorCode.E0301: "invalid entry point",
    ErrorCode.E0302: "undefined name",
    ErrorCode.E0303: "duplicate definition",
    ErrorCode.E0304: "incomplete declaration",
    ErrorCode.E0305: "not assignable",
    ErrorCode.E0306: "empty if body",
    ErrorCode.E0307: "empty for body",
    ErrorCode.E0308: "invalid statement expression",
    ErrorCode.E0309: "invalid group expression",
    ErrorCode.E0401: "division by zero",
    ErrorCode.E0402: "runtime type mismatch",
}

KIND_CODES: dict[ErrorKind, str] = {
    ErrorKind.INCOMPATIBLE_TYPES: ErrorCode.E0101,
    ErrorKind.NOT_COMPARABLE: ErrorCode.E0102,
    ErrorKind.INCOMPATIBLE_PLUS_OPERANDS: ErrorCode.E0103,
    ErrorKind.INCOMPATIBLE_ARITHMETIC_OPERANDS: ErrorCode.E0104,
    ErrorKind.INCOMPATIBLE_COMPARISON_OPERANDS: ErrorCode.E0105,
    ErrorKind.INTEGER_OVERFLOW: ErrorCode.E0106,
    ErrorKind.DECIMAL_OVERFLOW: ErrorCode.E0107,
    ErrorKind.ENTRY_POINT_INVALID: ErrorCode.E0301,
    ErrorKind.UNDEFINED_NAME: ErrorCode.E0302,
    ErrorKind.DUPLICATE_DEFINITION: ErrorCode.E0303,
    ErrorKind.DECLARATION_INCOMPLETE: ErrorCode.E0304,
    ErrorKind.NOT_ASSIGNABLE: ErrorCode.E0305,
    ErrorKind.IF_BODY_EMPTY: ErrorCode.E0306,
    ErrorKind.FOR_BODY_EMPTY: ErrorCode.E0307,
    ErrorKind.INVALID_STATEMENT_EXPRESSION: ErrorCode.E0308,
    ErrorKind.INVALID_GROUP_EXPRESSION: ErrorCode.E0309,
    ErrorKind.DIVISION_BY_ZERO: ErrorCode.E0401,
    ErrorKind.RUNTIME_TYPE_MISMATCH: ErrorCode.E0402,
}


def code_for_error(error: PlcError) -> str:
    """Pick the diagnostic code that best describes an error."""
    if isinstance(error, KindedError):
        return KIND_CODES[error.kind]
    if isinstance(error, LexerError):
        message = error.message.lower()
        if "unterminated" in message or "newline" in message:
            return ErrorCode.E0203
        if "escape" in message:
            return ErrorCode.E0204
        return ErrorCode.E0202
    return ErrorCode.E0201


# =============================================================================
# Diagnostic Types
# =============================================================================


class DiagnosticLevel(Enum):
    """Severity level of a diagnostic message."""

    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"
    HELP = "help"

    def color_code(self) -> str:
        """Get ANSI color code for this level."""
        colors = {
            DiagnosticLevel.ERROR: "\033[91m",  # Red
            DiagnosticLevel.WARNING: "\033[93m",  # Yellow
            DiagnosticLevel.NOTE: "\033[96m",  # Cyan
            DiagnosticLevel.HELP: "\033[92m",  # Green
        }
        return colors.get(self, "")


@dataclass(frozen=True, slots=True)
class SourceSpan:
    """
    A single-line range of source characters.

    Attributes:
        line: 1-indexed line number
        start_col: 1-indexed starting column
        end_col: 1-indexed ending column (exclusive)
        filename: Filename for display
    """

    line: int
    start_col: int
    end_col: int
    filename: str = "<input>"

    @classmethod
    def from_location(cls, location: SourceLocation, length: int = 1) -> SourceSpan:
        """Create a span starting at a location with a given length."""
        return cls(
            line=location.line,
            start_col=location.column,
            end_col=location.column + max(1, length),
            filename=location.filename or "<input>",
        )

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.start_col}"

    @property
    def length(self) -> int:
        return max(1, self.end_col - self.start_col)


@dataclass
class Diagnostic:
    """
    A rich diagnostic message with source context.

    Attributes:
        code: Error code (e.g., "E0302")
        level: Severity level
        message: The main diagnostic message
        span: Where the problem is, if known
        label: Optional text printed after the underline
        notes: Additional notes to display
        helps: Help messages with suggestions
    """

    code: str
    level: DiagnosticLevel
    message: str
    span: Optional[SourceSpan] = None
    label: str = ""
    notes: list[str] = field(default_factory=list)
    helps: list[str] = field(default_factory=list)

    def render(self, source_code: str, use_color: bool = True) -> str:
        """
        Render this diagnostic as a formatted string.

        Args:
            source_code: The original source code for context
            use_color: Whether to use ANSI color codes

        Returns:
            A formatted multi-line string representation
        """
        lines: list[str] = []
        source_lines = source_code.splitlines()

        reset = "\033[0m" if use_color else ""
        bold = "\033[1m" if use_color else ""
        blue = "\033[94m" if use_color else ""
        green = "\033[92m" if use_color else ""
        level_color = self.level.color_code() if use_color else ""

        if self.code:
            lines.append(
                f"{level_color}{bold}{self.level.value}[{self.code}]{reset}: "
                f"{bold}{self.message}{reset}"
            )
        else:
            lines.append(f"{level_color}{bold}{self.level.value}{reset}: {bold}{self.message}{reset}")

        if self.span is not None:
            lines.append(f"  {blue}-->{reset} {self.span}")
            if 1 <= self.span.line <= len(source_lines):
                lines.append(f"   {blue}|{reset}")
                lines.append(f"{blue}{self.span.line:3} |{reset} {source_lines[self.span.line - 1]}")
                padding = " " * (self.span.start_col - 1)
                underline = f"   {blue}|{reset} {padding}{level_color}{'^' * self.span.length}{reset}"
                if self.label:
                    underline += f" {level_color}{self.label}{reset}"
                lines.append(underline)
                lines.append(f"   {blue}|{reset}")

        for note in self.notes:
            lines.append(f"   {blue}={reset} {bold}note:{reset} {note}")
        for help_msg in self.helps:
            lines.append(f"   {blue}={reset} {green}help:{reset} {help_msg}")

        return "\n".join(lines)

    def to_simple_message(self) -> str:
        """Get a simple one-line error message."""
        return f"[{self.code}] {self.message}"


# =============================================================================
# Diagnostic Builder (Fluent API)
# =============================================================================


class DiagnosticBuilder:
    """
    Fluent builder for constructing Diagnostic objects.

        emitter.error(ErrorCode.E0302, "undefined name 'x'", span)
            .help("did you mean 'y'?")
            .emit()
    """

    def __init__(
        self,
        emitter: DiagnosticEmitter,
        code: str,
        level: DiagnosticLevel,
        message: str,
        span: Optional[SourceSpan] = None,
    ) -> None:
        self._emitter = emitter
        self._diagnostic = Diagnostic(code=code, level=level, message=message, span=span)

    def label(self, message: str) -> DiagnosticBuilder:
        self._diagnostic.label = message
        return self

    def note(self, message: str) -> DiagnosticBuilder:
        self._diagnostic.notes.append(message)
        return self

    def help(self, message: str) -> DiagnosticBuilder:
        self._diagnostic.helps.append(message)
        return self

    def build(self) -> Diagnostic:
        """Build the diagnostic without emitting."""
        return self._diagnostic

    def emit(self) -> Diagnostic:
        """Build the diagnostic and hand it to the emitter."""
        self._emitter.add_diagnostic(self._diagnostic)
        return self._diagnostic


# =============================================================================
# Diagnostic Emitter
# =============================================================================


class DiagnosticEmitter:
    """
    Collects and renders diagnostics for a source file.

    Usage:
        emitter = DiagnosticEmitter(source, "example.plc")
        emitter.error(ErrorCode.E0302, "undefined name 'x'", span).emit()
        print(emitter.render_all())
    """

    def __init__(self, source: str, filename: str = "<input>") -> None:
        self.source = source
        self.filename = filename
        self.source_lines = source.splitlines()
        self.diagnostics: list[Diagnostic] = []

    def add_diagnostic(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)

    def error(
        self, code: str, message: str, span: Optional[SourceSpan] = None
    ) -> DiagnosticBuilder:
        """Create an error diagnostic builder."""
        return DiagnosticBuilder(self, code, DiagnosticLevel.ERROR, message, span)

    def warning(
        self, code: str, message: str, span: Optional[SourceSpan] = None
    ) -> DiagnosticBuilder:
        """Create a warning diagnostic builder."""
        return DiagnosticBuilder(self, code, DiagnosticLevel.WARNING, message, span)

    def has_errors(self) -> bool:
        return any(d.level == DiagnosticLevel.ERROR for d in self.diagnostics)

    def get_line(self, line_num: int) -> str:
        """Get a source line by number (1-indexed)."""
        if 1 <= line_num <= len(self.source_lines):
            return self.source_lines[line_num - 1]
        return ""

    def render_all(self, use_color: bool = True) -> str:
        """Render all diagnostics as a single string."""
        return "\n\n".join(d.render(self.source, use_color) for d in self.diagnostics)

    def clear(self) -> None:
        self.diagnostics.clear()

    def report(
        self,
        error: PlcError,
        length: int = 1,
        candidates: Optional[list[str]] = None,
    ) -> Diagnostic:
        """
        Record a diagnostic describing an error raised by a pass.

        Args:
            error: The error to describe
            length: Width of the underline, usually the offending token's
            candidates: Known names, used for "did you mean" help on
                undefined-name errors
        """
        span = SourceSpan.from_location(error.location, length) if error.location else None
        builder = self.error(code_for_error(error), error.message, span)
        if isinstance(error, ParserError):
            builder.label("unexpected here")
        if (
            isinstance(error, KindedError)
            and error.kind == ErrorKind.UNDEFINED_NAME
            and candidates
            and error.name
        ):
            add_similar_help(builder, error.name, candidates)
        return builder.emit()


# =============================================================================
# String Similarity (Levenshtein Distance)
# =============================================================================


def levenshtein_distance(s1: str, s2: str) -> int:
    """
    Calculate the Levenshtein (edit) distance between two strings.

    The distance is the minimum number of single-character insertions,
    deletions or substitutions required to change one string into the other.
    """
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    previous_row = list(range(len(s2) + 1))

    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def suggest_similar(
    name: str,
    candidates: list[str],
    max_distance: int = 2,
    max_suggestions: int = 3,
) -> list[str]:
    """
    Find names close to `name` for "did you mean?" suggestions.

    Returns:
        Similar names, closest first, ties broken alphabetically
    """
    scored = []
    for candidate in set(candidates):
        if candidate == name or abs(len(candidate) - len(name)) > max_distance:
            continue
        distance = levenshtein_distance(name.lower(), candidate.lower())
        if distance <= max_distance:
            scored.append((candidate, distance))

    scored.sort(key=lambda x: (x[1], x[0]))
    return [candidate for candidate, _ in scored[:max_suggestions]]


def add_similar_help(builder: DiagnosticBuilder, name: str, candidates: list[str]) -> None:
    similar = suggest_similar(name, candidates)
    if len(similar) == 1:
        builder.help(f"did you mean '{similar[0]}'?")
    elif similar:
        suggestions_str = ", ".join(f"'{s}'" for s in similar)
        builder.help(f"did you mean one of: {suggestions_str}?")


__all__ = [
    "ErrorCode",
    "ERROR_DESCRIPTIONS",
    "KIND_CODES",
    "code_for_error",
    "DiagnosticLevel",
    "SourceSpan",
    "Diagnostic",
    "DiagnosticBuilder",
    "DiagnosticEmitter",
    "levenshtein_distance",
    "suggest_similar",
    "add_similar_help",
]
