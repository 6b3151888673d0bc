"""
Static analyzer for PLC scripts.

Walks the program tree once, resolving every name, inferring the type of
every expression and checking every assignment, call, return and condition
against the assignability rule. Results go into an `Annotations` table; the
tree itself is never modified.

The current scope is passed explicitly to each routine. Analysis is
fail-fast: the first problem raises an `AnalysisError` and ends the pass.
"""

from __future__ import annotations

import logging
from typing import Optional

from plcscript.compiler.annotations import Annotations
from plcscript.compiler.ast_nodes import (
    AccessExpression,
    AssignmentStatement,
    BinaryExpression,
    BinaryOperator,
    BooleanLiteral,
    CharacterLiteral,
    DecimalLiteral,
    DeclarationStatement,
    Expression,
    ExpressionStatement,
    Field,
    ForStatement,
    FunctionExpression,
    GroupExpression,
    IfStatement,
    IntegerLiteral,
    Method,
    NilLiteral,
    ReturnStatement,
    Source,
    Statement,
    StringLiteral,
    WhileStatement,
)
from plcscript.compiler.environment import (
    ANY,
    BOOLEAN,
    CHARACTER,
    COMPARABLE,
    DECIMAL,
    INTEGER,
    INTEGER_ITERABLE,
    NIL,
    STRING,
    Function,
    PlcType,
    Scope,
    TypeRegistry,
    require_assignable,
)
from plcscript.utils.diagnostics import Diagnostic, DiagnosticEmitter
from plcscript.utils.errors import AnalysisError, ErrorKind, SourceLocation

logger = logging.getLogger(__name__)

INTEGER_MIN = -(2**31)
INTEGER_MAX = 2**31 - 1


def define_builtins(scope: Scope) -> None:
    """Bind the built-in functions, without implementations, for analysis."""
    scope.define_function("print", (ANY,), NIL, jvm_name="System.out.println")
    scope.define_function("range", (INTEGER, INTEGER), INTEGER_ITERABLE)


class Analyzer:
    """
    Type checker and name resolver.

    Usage:
        analyzer = Analyzer()
        annotations = analyzer.analyze(source_node)

    Args:
        registry: Types the program may name; a fresh registry by default
        parent: Optional host scope placed above the built-ins
        source: Original source text, enables rich diagnostics
        filename: Filename used in diagnostics
    """

    def __init__(
        self,
        registry: Optional[TypeRegistry] = None,
        parent: Optional[Scope] = None,
        source: str = "",
        filename: str = "<input>",
    ) -> None:
        self.registry = registry or TypeRegistry()
        self.root = Scope(parent)
        define_builtins(self.root)
        self.globals = self.root.child()
        self.annotations = Annotations()

        self._source_lines = source.splitlines() if source else []
        self._emitter = DiagnosticEmitter(source, filename) if source else None
        self._candidates: list[str] = []
        self.diagnostics: list[Diagnostic] = []

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def analyze(self, source: Source) -> Annotations:
        """
        Analyze a whole program.

        Returns:
            The annotation table for every node of `source`

        Raises:
            AnalysisError: On the first problem found
        """
        logger.debug(
            "Analyzing %d field(s) and %d method(s)", len(source.fields), len(source.methods)
        )
        self._candidates = []
        try:
            self._analyze_source(source, self.globals)
        except AnalysisError as e:
            if self._emitter is not None:
                length = len(e.name) if e.name else 1
                self.diagnostics.append(
                    self._emitter.report(e, length=length, candidates=self._candidates)
                )
            raise
        return self.annotations

    def _error(
        self,
        kind: ErrorKind,
        message: str,
        location: Optional[SourceLocation],
        name: Optional[str] = None,
    ) -> AnalysisError:
        source_line = None
        if location is not None and 1 <= location.line <= len(self._source_lines):
            source_line = self._source_lines[location.line - 1]
        return AnalysisError(kind, message, location, source_line, name=name)

    def _undefined(
        self, what: str, name: str, scope: Scope, location: Optional[SourceLocation]
    ) -> AnalysisError:
        self._candidates = scope.visible_names()
        return self._error(ErrorKind.UNDEFINED_NAME, f"Undefined {what} '{name}'", location, name)

    def _resolve_type(self, name: str, location: Optional[SourceLocation]) -> PlcType:
        if name not in self.registry:
            self._candidates = self.registry.names()
            raise self._error(ErrorKind.UNDEFINED_NAME, f"Unknown type '{name}'", location, name)
        return self.registry.get(name)

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def _analyze_source(self, source: Source, scope: Scope) -> None:
        self._check_entry_point(source)

        # Field initializers run before any method is bound
        for field_node in source.fields:
            self._analyze_field(field_node, scope)
        for method in source.methods:
            self._declare_method(method, scope)
        for method in source.methods:
            self._analyze_method(method, scope)

    def _check_entry_point(self, source: Source) -> None:
        """Require a single `main()` with no parameters returning Integer."""
        mains = [m for m in source.methods if m.name == "main" and not m.parameters]
        if not mains:
            raise self._error(
                ErrorKind.ENTRY_POINT_INVALID,
                "Program must define a function 'main()' with no parameters",
                source.location,
                "main",
            )
        main = mains[0]
        if main.return_type_name != "Integer":
            declared = main.return_type_name or "Nil"
            raise self._error(
                ErrorKind.ENTRY_POINT_INVALID,
                f"Function 'main()' must return Integer, not {declared}",
                main.location,
                "main",
            )

    def _declare_method(self, method: Method, scope: Scope) -> Function:
        parameter_types = tuple(
            self._resolve_type(p.type_name, p.location or method.location)
            for p in method.parameters
        )
        return_type = NIL
        if method.return_type_name is not None:
            return_type = self._resolve_type(method.return_type_name, method.location)

        function = scope.define_function(
            method.name, parameter_types, return_type, location=method.location
        )
        self.annotations.set_function(method, function)
        return function

    def _analyze_field(self, node: Field, scope: Scope) -> None:
        declared = self._resolve_type(node.type_name, node.location)
        if node.value is not None:
            value_type = self._analyze_expression(node.value, scope)
            require_assignable(declared, value_type, node.value.location)

        variable = scope.define_variable(node.name, declared, location=node.location)
        self.annotations.set_variable(node, variable)

    def _analyze_method(self, method: Method, scope: Scope) -> None:
        function = self.annotations.function_of(method)
        body_scope = scope.child()
        for parameter, parameter_type in zip(method.parameters, function.parameter_types):
            body_scope.define_variable(
                parameter.name, parameter_type, location=parameter.location
            )

        for stmt in method.statements:
            self._analyze_statement(stmt, body_scope, function.return_type)

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def _analyze_block(
        self, statements: tuple[Statement, ...], scope: Scope, return_type: PlcType
    ) -> None:
        block_scope = scope.child()
        for stmt in statements:
            self._analyze_statement(stmt, block_scope, return_type)

    def _analyze_statement(self, stmt: Statement, scope: Scope, return_type: PlcType) -> None:
        if isinstance(stmt, ExpressionStatement):
            if not isinstance(stmt.expression, FunctionExpression):
                raise self._error(
                    ErrorKind.INVALID_STATEMENT_EXPRESSION,
                    "Only function calls may be used as statements",
                    stmt.expression.location or stmt.location,
                )
            self._analyze_expression(stmt.expression, scope)

        elif isinstance(stmt, DeclarationStatement):
            self._analyze_declaration(stmt, scope)

        elif isinstance(stmt, AssignmentStatement):
            if not isinstance(stmt.receiver, AccessExpression):
                raise self._error(
                    ErrorKind.NOT_ASSIGNABLE,
                    "Only variables and fields can be assigned",
                    stmt.receiver.location or stmt.location,
                )
            receiver_type = self._analyze_expression(stmt.receiver, scope)
            value_type = self._analyze_expression(stmt.value, scope)
            require_assignable(receiver_type, value_type, stmt.value.location or stmt.location)

        elif isinstance(stmt, IfStatement):
            condition_type = self._analyze_expression(stmt.condition, scope)
            require_assignable(BOOLEAN, condition_type, stmt.condition.location)
            if not stmt.then_statements:
                raise self._error(
                    ErrorKind.IF_BODY_EMPTY, "IF statement must have a body", stmt.location
                )
            self._analyze_block(stmt.then_statements, scope, return_type)
            self._analyze_block(stmt.else_statements, scope, return_type)

        elif isinstance(stmt, ForStatement):
            iterable_type = self._analyze_expression(stmt.iterable, scope)
            require_assignable(INTEGER_ITERABLE, iterable_type, stmt.iterable.location)
            if not stmt.statements:
                raise self._error(
                    ErrorKind.FOR_BODY_EMPTY, "FOR loop must have a body", stmt.location
                )
            loop_scope = scope.child()
            variable = loop_scope.define_variable(stmt.name, INTEGER, location=stmt.location)
            self.annotations.set_variable(stmt, variable)
            for body_stmt in stmt.statements:
                self._analyze_statement(body_stmt, loop_scope, return_type)

        elif isinstance(stmt, WhileStatement):
            condition_type = self._analyze_expression(stmt.condition, scope)
            require_assignable(BOOLEAN, condition_type, stmt.condition.location)
            self._analyze_block(stmt.statements, scope, return_type)

        elif isinstance(stmt, ReturnStatement):
            value_type = self._analyze_expression(stmt.value, scope)
            require_assignable(return_type, value_type, stmt.value.location or stmt.location)

        else:
            raise TypeError(f"Unknown statement type: {type(stmt).__name__}")

    def _analyze_declaration(self, stmt: DeclarationStatement, scope: Scope) -> None:
        if stmt.type_name is None and stmt.value is None:
            raise self._error(
                ErrorKind.DECLARATION_INCOMPLETE,
                f"Declaration of '{stmt.name}' needs a type or an initial value",
                stmt.location,
                stmt.name,
            )

        declared = None
        if stmt.type_name is not None:
            declared = self._resolve_type(stmt.type_name, stmt.location)

        if stmt.value is not None:
            value_type = self._analyze_expression(stmt.value, scope)
            if declared is None:
                declared = value_type
            else:
                require_assignable(declared, value_type, stmt.value.location)

        variable = scope.define_variable(stmt.name, declared, location=stmt.location)
        self.annotations.set_variable(stmt, variable)

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    def _analyze_expression(self, expr: Expression, scope: Scope) -> PlcType:
        """Infer, record and return the static type of an expression."""
        if isinstance(expr, NilLiteral):
            result = NIL
        elif isinstance(expr, BooleanLiteral):
            result = BOOLEAN
        elif isinstance(expr, CharacterLiteral):
            result = CHARACTER
        elif isinstance(expr, StringLiteral):
            result = STRING
        elif isinstance(expr, IntegerLiteral):
            if not INTEGER_MIN <= expr.value <= INTEGER_MAX:
                raise self._error(
                    ErrorKind.INTEGER_OVERFLOW,
                    f"Integer literal {expr.value} does not fit in 32 bits",
                    expr.location,
                )
            result = INTEGER
        elif isinstance(expr, DecimalLiteral):
            if abs(float(expr.value)) == float("inf"):
                raise self._error(
                    ErrorKind.DECIMAL_OVERFLOW,
                    f"Decimal literal {expr.value} is out of double range",
                    expr.location,
                )
            result = DECIMAL
        elif isinstance(expr, GroupExpression):
            if not isinstance(expr.expression, BinaryExpression):
                raise self._error(
                    ErrorKind.INVALID_GROUP_EXPRESSION,
                    "Only binary expressions may be parenthesized",
                    expr.location,
                )
            result = self._analyze_expression(expr.expression, scope)
        elif isinstance(expr, BinaryExpression):
            result = self._analyze_binary(expr, scope)
        elif isinstance(expr, AccessExpression):
            result = self._analyze_access(expr, scope)
        elif isinstance(expr, FunctionExpression):
            result = self._analyze_function(expr, scope)
        else:
            raise TypeError(f"Unknown expression type: {type(expr).__name__}")

        self.annotations.set_type(expr, result)
        return result

    def _analyze_binary(self, expr: BinaryExpression, scope: Scope) -> PlcType:
        left = self._analyze_expression(expr.left, scope)
        right = self._analyze_expression(expr.right, scope)
        op = expr.operator

        if op.is_logical:
            require_assignable(BOOLEAN, left, expr.left.location)
            require_assignable(BOOLEAN, right, expr.right.location)
            return BOOLEAN

        if op.is_ordering:
            if left is not right:
                raise self._error(
                    ErrorKind.INCOMPATIBLE_COMPARISON_OPERANDS,
                    f"Cannot compare {left.name} with {right.name} using '{op.value}'",
                    expr.location,
                )
            require_assignable(COMPARABLE, left, expr.left.location)
            require_assignable(COMPARABLE, right, expr.right.location)
            return BOOLEAN

        if op.is_equality:
            return BOOLEAN

        if op == BinaryOperator.ADD and (left is STRING or right is STRING):
            return STRING
        if left is INTEGER and right is INTEGER:
            return INTEGER
        if left is DECIMAL and right is DECIMAL:
            return DECIMAL

        kind = (
            ErrorKind.INCOMPATIBLE_PLUS_OPERANDS
            if op == BinaryOperator.ADD
            else ErrorKind.INCOMPATIBLE_ARITHMETIC_OPERANDS
        )
        raise self._error(
            kind,
            f"Operator '{op.value}' cannot combine {left.name} and {right.name}",
            expr.location,
        )

    def _analyze_access(self, expr: AccessExpression, scope: Scope) -> PlcType:
        if expr.receiver is not None:
            receiver_type = self._analyze_expression(expr.receiver, scope)
            variable = receiver_type.scope.find_variable(expr.name)
            if variable is None:
                raise self._undefined(
                    f"field of {receiver_type.name}", expr.name, receiver_type.scope, expr.location
                )
        else:
            variable = scope.find_variable(expr.name)
            if variable is None:
                raise self._undefined("variable", expr.name, scope, expr.location)

        self.annotations.set_variable(expr, variable)
        return variable.type

    def _analyze_function(self, expr: FunctionExpression, scope: Scope) -> PlcType:
        arity = len(expr.arguments)
        if expr.receiver is not None:
            receiver_type = self._analyze_expression(expr.receiver, scope)
            function = receiver_type.scope.find_function(expr.name, arity)
            if function is None:
                raise self._undefined(
                    f"method of {receiver_type.name}",
                    expr.name,
                    receiver_type.scope,
                    expr.location,
                )
        else:
            function = scope.find_function(expr.name, arity)
            if function is None:
                raise self._undefined(
                    f"function with {arity} argument(s)", expr.name, scope, expr.location
                )

        for argument, parameter_type in zip(expr.arguments, function.parameter_types):
            argument_type = self._analyze_expression(argument, scope)
            require_assignable(parameter_type, argument_type, argument.location)

        self.annotations.set_function(expr, function)
        return function.return_type


def analyze(
    source: Source,
    registry: Optional[TypeRegistry] = None,
) -> Annotations:
    """
    Convenience function to analyze a parsed program.

    Raises:
        AnalysisError: On the first problem found
    """
    return Analyzer(registry).analyze(source)
