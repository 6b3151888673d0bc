"""
PLC Script Utilities Package.

Common utilities for error handling, source locations, and diagnostics.
"""

from plcscript.utils.diagnostics import (
    ERROR_DESCRIPTIONS,
    Diagnostic,
    DiagnosticBuilder,
    DiagnosticEmitter,
    DiagnosticLevel,
    ErrorCode,
    SourceSpan,
    code_for_error,
    levenshtein_distance,
    suggest_similar,
)
from plcscript.utils.errors import (
    AnalysisError,
    CodeGenError,
    ErrorKind,
    EvaluationError,
    KindedError,
    LexerError,
    ParserError,
    PlcError,
    SourceLocation,
)

__all__ = [
    # Errors
    "PlcError",
    "LexerError",
    "ParserError",
    "CodeGenError",
    "KindedError",
    "AnalysisError",
    "EvaluationError",
    "ErrorKind",
    "SourceLocation",
    # Diagnostics
    "ErrorCode",
    "ERROR_DESCRIPTIONS",
    "code_for_error",
    "DiagnosticLevel",
    "SourceSpan",
    "Diagnostic",
    "DiagnosticBuilder",
    "DiagnosticEmitter",
    "levenshtein_distance",
    "suggest_similar",
]
