"""
Document analysis for PLC Script LSP.

This module ties the compiler pipeline to position-based editor queries:
document symbols, hover and completion.
"""

from typing import Optional

from lsprotocol import types

from plcscript.compiler.analyzer import Analyzer, define_builtins
from plcscript.compiler.ast_nodes import Source
from plcscript.compiler.environment import BUILTIN_TYPES, Scope
from plcscript.compiler.lexer import Lexer
from plcscript.compiler.parser import Parser
from plcscript.compiler.tokens import KEYWORDS
from plcscript.lsp.diagnostics import get_diagnostics_for_document
from plcscript.lsp.symbols import Symbol, SymbolCollector, SymbolKind, function_signature
from plcscript.utils.errors import AnalysisError, PlcError

KEYWORD_DOCS: dict[str, str] = {
    "LET": "Declare a field or local variable",
    "DEF": "Define a method",
    "DO": "Start a block",
    "END": "End a block",
    "IF": "Conditional statement",
    "ELSE": "Alternative branch of an IF",
    "FOR": "Loop over an Integer iterable",
    "IN": "Separates a FOR variable from its iterable",
    "WHILE": "Loop while a Boolean condition holds",
    "RETURN": "Return a value from the current method",
    "NIL": "The Nil value",
    "TRUE": "Boolean true",
    "FALSE": "Boolean false",
    "AND": "Short-circuit logical and",
    "OR": "Short-circuit logical or",
}


def builtin_symbols() -> list[Symbol]:
    """Symbols for the built-in functions every program can call."""
    scope = Scope()
    define_builtins(scope)
    return [
        Symbol(
            function.name,
            SymbolKind.BUILTIN,
            function.return_type.name,
            signature=function_signature(function),
        )
        for function in scope.functions.values()
    ]


class DocumentAnalyzer:
    """
    Analyzes a PLC Script document for LSP features.

    This class parses and analyzes the document, collects symbols, and
    answers position-based queries.
    """

    def __init__(self, source: str, uri: str) -> None:
        self.source = source
        self.uri = uri
        self.lines = source.splitlines()

        self.ast: Optional[Source] = None
        self.collector = SymbolCollector(self.lines)
        self.diagnostics: list[types.Diagnostic] = []

    def analyze(self) -> None:
        """
        Parse and analyze the document, then collect its symbols.

        Analysis stops at the first error. Symbols are still collected from
        a tree that parsed, with the types resolved before the failure.
        """
        self.diagnostics = get_diagnostics_for_document(self.source, self.uri)

        try:
            tokens = Lexer(self.source, filename=self.uri).tokenize()
            self.ast = Parser(tokens, source=self.source, filename=self.uri).parse()
        except PlcError:
            self.ast = None
            self.collector = SymbolCollector(self.lines)
            return

        analyzer = Analyzer(source=self.source, filename=self.uri)
        try:
            analyzer.analyze(self.ast)
        except AnalysisError:
            pass  # reported through self.diagnostics

        self.collector = SymbolCollector(self.lines, analyzer.annotations)
        self.collector.collect(self.ast)

    @property
    def symbols(self) -> list[Symbol]:
        return self.collector.symbols

    # =========================================================================
    # Document symbols
    # =========================================================================

    def get_document_symbols(self) -> list[types.DocumentSymbol]:
        """Get the fields and methods of the document for the outline view."""
        return [symbol.to_document_symbol() for symbol in self.symbols]

    # =========================================================================
    # Hover
    # =========================================================================

    def get_hover(self, line: int, character: int) -> Optional[types.Hover]:
        """
        Get hover information at a position.

        Args:
            line: 0-indexed line number
            character: 0-indexed character position
        """
        word, word_range = self._get_word_at_position(line, character)
        if not word:
            return None

        symbol = self.collector.symbol_at(line, character)
        if symbol is not None:
            return self._hover(f"```plcscript\n{symbol.describe()}\n```", word_range)

        if word in KEYWORDS:
            return self._hover(f"**{word}**\n\n{KEYWORD_DOCS[word]}", word_range)

        if any(t.name == word for t in BUILTIN_TYPES):
            return self._hover(f"**{word}**\n\nBuilt-in type", word_range)

        return None

    def _hover(self, value: str, range_: Optional[types.Range]) -> types.Hover:
        return types.Hover(
            contents=types.MarkupContent(kind=types.MarkupKind.Markdown, value=value),
            range=range_,
        )

    # =========================================================================
    # Completion
    # =========================================================================

    def get_completions(self, line: int, character: int) -> list[types.CompletionItem]:
        """
        Get completion items at a position: keywords, built-in types and
        functions, global fields and methods, and the parameters and locals
        of the enclosing method.
        """
        items = [
            types.CompletionItem(
                label=keyword,
                kind=types.CompletionItemKind.Keyword,
                detail=KEYWORD_DOCS[keyword],
            )
            for keyword in KEYWORDS
        ]
        items.extend(
            types.CompletionItem(
                label=t.name,
                kind=types.CompletionItemKind.Class,
                detail="Built-in type",
            )
            for t in BUILTIN_TYPES
        )
        items.extend(
            types.CompletionItem(
                label=symbol.name,
                kind=types.CompletionItemKind.Function,
                detail=symbol.describe(),
            )
            for symbol in builtin_symbols()
        )
        for symbol in self.symbols + self._method_locals(line):
            kind = (
                types.CompletionItemKind.Function
                if symbol.kind is SymbolKind.METHOD
                else types.CompletionItemKind.Variable
            )
            items.append(
                types.CompletionItem(label=symbol.name, kind=kind, detail=symbol.describe())
            )
        return items

    def _method_locals(self, line: int) -> list[Symbol]:
        """Parameters and locals of the method whose body contains `line`."""
        methods = [
            s for s in self.symbols if s.kind is SymbolKind.METHOD and s.location is not None
        ]
        enclosing = None
        for symbol in methods:
            if symbol.location.line <= line:
                enclosing = symbol
        if enclosing is None:
            return []
        return list(self.collector.locals.get(enclosing.name, []))

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_word_at_position(
        self, line: int, character: int
    ) -> tuple[str, Optional[types.Range]]:
        """
        Get the word at a position.

        Returns:
            Tuple of (word, range) or ("", None) if no word found
        """
        if line < 0 or line >= len(self.lines):
            return "", None

        line_text = self.lines[line]
        if character < 0 or character > len(line_text):
            return "", None

        start = character
        while start > 0 and (line_text[start - 1].isalnum() or line_text[start - 1] == "_"):
            start -= 1

        end = character
        while end < len(line_text) and (line_text[end].isalnum() or line_text[end] == "_"):
            end += 1

        if start == end:
            return "", None

        word = line_text[start:end]
        range_ = types.Range(
            start=types.Position(line=line, character=start),
            end=types.Position(line=line, character=end),
        )
        return word, range_

