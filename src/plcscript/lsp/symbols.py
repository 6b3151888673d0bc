"""
Symbol collection for PLC Script LSP.

This module walks a parsed program and records every declaration (fields,
methods, parameters, locals, loop variables) and every name reference,
with its position in the document. Resolved types come from the
analyzer's annotation table when analysis got that far.
"""

import re
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from lsprotocol import types

from plcscript.compiler.annotations import Annotations
from plcscript.compiler.ast_nodes import (
    AccessExpression,
    BaseASTVisitor,
    DeclarationStatement,
    Field,
    ForStatement,
    FunctionExpression,
    Method,
    Source,
)
from plcscript.compiler.environment import Function, Variable
from plcscript.utils.errors import SourceLocation


class SymbolKind(Enum):
    """Kind of symbol in a PLC script."""

    FIELD = auto()
    METHOD = auto()
    PARAMETER = auto()
    LOCAL = auto()
    LOOP_VARIABLE = auto()
    BUILTIN = auto()
    MEMBER = auto()


SYMBOL_KIND_TO_LSP: dict[SymbolKind, types.SymbolKind] = {
    SymbolKind.FIELD: types.SymbolKind.Variable,
    SymbolKind.METHOD: types.SymbolKind.Function,
    SymbolKind.PARAMETER: types.SymbolKind.Variable,
    SymbolKind.LOCAL: types.SymbolKind.Variable,
    SymbolKind.LOOP_VARIABLE: types.SymbolKind.Variable,
    SymbolKind.BUILTIN: types.SymbolKind.Function,
    SymbolKind.MEMBER: types.SymbolKind.Field,
}

KIND_LABELS: dict[SymbolKind, str] = {
    SymbolKind.FIELD: "field",
    SymbolKind.METHOD: "method",
    SymbolKind.PARAMETER: "parameter",
    SymbolKind.LOCAL: "local",
    SymbolKind.LOOP_VARIABLE: "loop variable",
    SymbolKind.BUILTIN: "builtin",
    SymbolKind.MEMBER: "member",
}


@dataclass
class Location:
    """A single-line span in the document, 0-indexed."""

    line: int
    character: int
    end_character: int

    def contains(self, line: int, character: int) -> bool:
        return line == self.line and self.character <= character <= self.end_character

    def to_lsp_range(self) -> types.Range:
        """Convert to LSP Range type."""
        return types.Range(
            start=types.Position(line=self.line, character=self.character),
            end=types.Position(line=self.line, character=self.end_character),
        )


@dataclass
class Symbol:
    """
    A declared name in the document.

    Attributes:
        name: The symbol's identifier
        kind: What declared it
        type_info: Resolved (or, failing that, declared) type name
        location: Where the name is written in its declaration
        signature: Full signature for methods and built-ins
        children: Parameters of a method
    """

    name: str
    kind: SymbolKind
    type_info: Optional[str] = None
    location: Optional[Location] = None
    signature: Optional[str] = None
    children: list["Symbol"] = field(default_factory=list)

    def to_lsp_symbol_kind(self) -> types.SymbolKind:
        return SYMBOL_KIND_TO_LSP.get(self.kind, types.SymbolKind.Variable)

    def describe(self) -> str:
        """One-line description used for hover and completion details."""
        if self.signature:
            return self.signature
        label = KIND_LABELS[self.kind]
        if self.type_info:
            return f"({label}) {self.name}: {self.type_info}"
        return f"({label}) {self.name}"

    def to_document_symbol(self) -> types.DocumentSymbol:
        """Convert to LSP DocumentSymbol."""
        if self.location is None:
            range_ = types.Range(
                start=types.Position(line=0, character=0),
                end=types.Position(line=0, character=len(self.name)),
            )
        else:
            range_ = self.location.to_lsp_range()

        children = [child.to_document_symbol() for child in self.children]

        return types.DocumentSymbol(
            name=self.name,
            kind=self.to_lsp_symbol_kind(),
            range=range_,
            selection_range=range_,
            detail=self.type_info,
            children=children if children else None,
        )


def method_signature(name: str, parameters: list[tuple[str, str]], return_type: str) -> str:
    params = ", ".join(f"{pname}: {ptype}" for pname, ptype in parameters)
    return f"DEF {name}({params}): {return_type}"


def function_signature(function: Function) -> str:
    parameters = [(f"arg{i}", t.name) for i, t in enumerate(function.parameter_types)]
    return method_signature(function.name, parameters, function.return_type.name)


class SymbolCollector(BaseASTVisitor):
    """
    Collects the symbols of one document.

    After `collect`, `symbols` holds the top-level fields and methods,
    `locals` maps each method name to the names declared in its body, and
    `sites` pairs every written name (declaration or reference) with the
    symbol it denotes.
    """

    def __init__(self, lines: list[str], annotations: Optional[Annotations] = None) -> None:
        self.lines = lines
        self.annotations = annotations or Annotations()
        self.symbols: list[Symbol] = []
        self.locals: dict[str, list[Symbol]] = {}
        self.sites: list[tuple[Location, Symbol]] = []
        self._by_binding: dict[int, Symbol] = {}
        self._method_symbols: dict[int, Symbol] = {}
        self._method: Optional[str] = None

    def collect(self, source: Source) -> list[Symbol]:
        self.visit(source)
        return self.symbols

    def symbol_at(self, line: int, character: int) -> Optional[Symbol]:
        for location, symbol in self.sites:
            if location.contains(line, character):
                return symbol
        return None

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _name_location(self, location: Optional[SourceLocation], name: str) -> Optional[Location]:
        """Locate `name` at or after `location` on its line."""
        if location is None or not 1 <= location.line <= len(self.lines):
            return None
        line_text = self.lines[location.line - 1]
        offset = max(0, location.column - 1)
        match = re.compile(rf"\b{re.escape(name)}\b").search(line_text, offset)
        start = match.start() if match else offset
        return Location(location.line - 1, start, start + len(name))

    def _declare(
        self,
        name: str,
        kind: SymbolKind,
        location: Optional[SourceLocation],
        type_info: Optional[str],
        binding: Optional[object] = None,
        signature: Optional[str] = None,
    ) -> Symbol:
        symbol = Symbol(
            name, kind, type_info, self._name_location(location, name), signature
        )
        if symbol.location is not None:
            self.sites.append((symbol.location, symbol))
        if binding is not None:
            self._by_binding[id(binding)] = symbol
        if self._method is not None and kind in (SymbolKind.LOCAL, SymbolKind.LOOP_VARIABLE):
            self.locals[self._method].append(symbol)
        return symbol

    def _variable(self, node) -> Optional[Variable]:
        annotation = self.annotations.get(node)
        return annotation.variable if annotation else None

    def _function(self, node) -> Optional[Function]:
        annotation = self.annotations.get(node)
        return annotation.function if annotation else None

    def _reference(self, node, name: str, symbol: Optional[Symbol]) -> None:
        location = self._name_location(node.location, name)
        if location is not None and symbol is not None:
            self.sites.append((location, symbol))

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def visit_source(self, node: Source) -> None:
        # Field initializers only see earlier fields and built-ins
        for field_node in node.fields:
            self.visit(field_node)
        for method in node.methods:
            self._declare_method(method)
        for method in node.methods:
            self.visit(method)
        self.symbols.sort(
            key=lambda s: (s.location.line, s.location.character) if s.location else (0, 0)
        )

    def visit_field(self, node: Field) -> None:
        if node.value is not None:
            self.visit(node.value)
        variable = self._variable(node)
        type_info = variable.type.name if variable else node.type_name
        self.symbols.append(
            self._declare(node.name, SymbolKind.FIELD, node.location, type_info, variable)
        )

    def _declare_method(self, node: Method) -> None:
        function = self._function(node)
        if function is not None:
            parameter_types = [t.name for t in function.parameter_types]
            return_type = function.return_type.name
        else:
            parameter_types = list(node.parameter_type_names)
            return_type = node.return_type_name or "Nil"

        signature = method_signature(
            node.name, list(zip(node.parameter_names, parameter_types)), return_type
        )
        symbol = self._declare(
            node.name, SymbolKind.METHOD, node.location, return_type, function, signature
        )
        self._method_symbols[id(node)] = symbol
        self.symbols.append(symbol)

    def visit_method(self, node: Method) -> None:
        method_symbol = self._method_symbols[id(node)]
        self._method = node.name
        self.locals.setdefault(node.name, [])

        function = self._function(node)
        parameter_types = (
            [t.name for t in function.parameter_types]
            if function is not None
            else list(node.parameter_type_names)
        )
        method_symbol.children = []
        for parameter, type_name in zip(node.parameters, parameter_types):
            symbol = self._declare(
                parameter.name, SymbolKind.PARAMETER, parameter.location, type_name
            )
            method_symbol.children.append(symbol)
            self.locals[node.name].append(symbol)

        for stmt in node.statements:
            self.visit(stmt)
        self._method = None

    def visit_declaration_statement(self, node: DeclarationStatement) -> None:
        if node.value is not None:
            self.visit(node.value)
        variable = self._variable(node)
        type_info = variable.type.name if variable else node.type_name
        self._declare(node.name, SymbolKind.LOCAL, node.location, type_info, variable)

    def visit_for_statement(self, node: ForStatement) -> None:
        self.visit(node.iterable)
        variable = self._variable(node)
        self._declare(node.name, SymbolKind.LOOP_VARIABLE, node.location, "Integer", variable)
        for stmt in node.statements:
            self.visit(stmt)

    # -------------------------------------------------------------------------
    # References
    # -------------------------------------------------------------------------

    def visit_access_expression(self, node: AccessExpression) -> None:
        if node.receiver is not None:
            self.visit(node.receiver)

        variable = self._variable(node)
        if variable is None:
            return
        symbol = self._by_binding.get(id(variable))
        if symbol is None:
            kind = SymbolKind.MEMBER if node.receiver is not None else SymbolKind.PARAMETER
            symbol = Symbol(variable.name, kind, variable.type.name)
            if kind is SymbolKind.PARAMETER:
                symbol = self._parameter_symbol(variable.name) or symbol
        self._reference(node, node.name, symbol)

    def visit_function_expression(self, node: FunctionExpression) -> None:
        if node.receiver is not None:
            self.visit(node.receiver)
        for arg in node.arguments:
            self.visit(arg)

        function = self._function(node)
        if function is None:
            return
        symbol = self._by_binding.get(id(function))
        if symbol is None:
            kind = SymbolKind.MEMBER if node.receiver is not None else SymbolKind.BUILTIN
            symbol = Symbol(
                function.name,
                kind,
                function.return_type.name,
                signature=function_signature(function),
            )
        self._reference(node, node.name, symbol)

    def _parameter_symbol(self, name: str) -> Optional[Symbol]:
        if self._method is None:
            return None
        for symbol in self.locals.get(self._method, []):
            if symbol.kind is SymbolKind.PARAMETER and symbol.name == name:
                return symbol
        return None
