"""
Diagnostic generation for PLC Script LSP.

This module converts lexer, parser and analyzer failures into
LSP-compatible diagnostic messages for display in editors. Analysis is
fail-fast, so a document carries at most one diagnostic.
"""

from lsprotocol import types

from plcscript.pipeline import check_source
from plcscript.utils.diagnostics import Diagnostic as CompilerDiagnostic
from plcscript.utils.diagnostics import DiagnosticLevel
from plcscript.utils.errors import PlcError

SEVERITY_MAP: dict[DiagnosticLevel, types.DiagnosticSeverity] = {
    DiagnosticLevel.ERROR: types.DiagnosticSeverity.Error,
    DiagnosticLevel.WARNING: types.DiagnosticSeverity.Warning,
    DiagnosticLevel.NOTE: types.DiagnosticSeverity.Information,
    DiagnosticLevel.HELP: types.DiagnosticSeverity.Hint,
}


class DiagnosticProvider:
    """
    Generates LSP diagnostics from PLC Script source code.

    This provider runs the lexer, parser and analyzer and reports the
    first error found.
    """

    def __init__(self, source: str, uri: str) -> None:
        """
        Initialize the diagnostic provider.

        Args:
            source: The script source code to analyze
            uri: The document URI for location information
        """
        self.source = source
        self.uri = uri
        self._diagnostics: list[types.Diagnostic] = []

    def get_diagnostics(self) -> list[types.Diagnostic]:
        """
        Get all diagnostics for the document.

        Returns:
            List of LSP diagnostic objects
        """
        self._diagnostics = []

        result = check_source(self.source, self.uri)
        if result.success:
            return self._diagnostics

        if result.diagnostics:
            for diag in result.diagnostics:
                self._add_compiler_diagnostic(diag)
        else:
            self._add_plc_error(result.error)

        return self._diagnostics

    def _add_compiler_diagnostic(self, diag: CompilerDiagnostic) -> None:
        """Add a rich compiler diagnostic as an LSP diagnostic."""
        severity = SEVERITY_MAP.get(diag.level, types.DiagnosticSeverity.Error)

        line = 0
        character = 0
        end_character = 1
        if diag.span is not None:
            line = max(0, diag.span.line - 1)
            character = max(0, diag.span.start_col - 1)
            end_character = max(character + 1, diag.span.end_col - 1)

        message_parts = [diag.message]
        for note in diag.notes:
            message_parts.append(f"note: {note}")
        for help_msg in diag.helps:
            message_parts.append(f"help: {help_msg}")

        self._diagnostics.append(
            types.Diagnostic(
                range=types.Range(
                    start=types.Position(line=line, character=character),
                    end=types.Position(line=line, character=end_character),
                ),
                message="\n".join(message_parts),
                severity=severity,
                source="plcscript",
                code=diag.code,
            )
        )

    def _add_plc_error(self, error: PlcError) -> None:
        """Add a bare compiler error, underlining up to the next separator."""
        line = 0
        character = 0
        if error.location:
            line = max(0, error.location.line - 1)
            character = max(0, error.location.column - 1)

        end_character = character + 1
        if error.source_line:
            rest_of_line = error.source_line[character:]
            for i, c in enumerate(rest_of_line):
                if c.isspace() or c in "(),:;.":
                    end_character = character + max(1, i)
                    break
            else:
                end_character = character + max(1, len(rest_of_line))

        self._diagnostics.append(
            types.Diagnostic(
                range=types.Range(
                    start=types.Position(line=line, character=character),
                    end=types.Position(line=line, character=end_character),
                ),
                message=error.message,
                severity=types.DiagnosticSeverity.Error,
                source="plcscript",
            )
        )


def get_diagnostics_for_document(source: str, uri: str) -> list[types.Diagnostic]:
    """Convenience function to get diagnostics for a document."""
    provider = DiagnosticProvider(source, uri)
    return provider.get_diagnostics()
