"""
Tree-walking interpreter for PLC scripts.

Executes an (ideally analyzed) program tree against its own chain of
`Scope` frames. Statement routines return a `Completion`, which says whether
a `RETURN` fired and with what value; blocks stop at the first returned
completion and hand it upward until the enclosing call turns it into the
call's result. Frames are plain objects that go out of reach when the block
that created them finishes, on every exit path.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from decimal import MAX_EMAX, MAX_PREC, MIN_EMIN, Context, Decimal, localcontext
from typing import Iterator, Optional, TextIO

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
    DECIMAL,
    INTEGER,
    INTEGER_ITERABLE,
    NIL,
    STRING,
    Scope,
)
from plcscript.runtime.values import (
    NIL_VALUE,
    Value,
    boolean,
    character,
    decimal,
    integer,
    require_type,
    string,
)
from plcscript.utils.errors import ErrorKind, EvaluationError, SourceLocation

logger = logging.getLogger(__name__)

# Fractional digits kept by Decimal division, rounded half to even
DECIMAL_DIVISION_SCALE = 1

# Decimal sums, differences and products are exact at any size
EXACT_CONTEXT = Context(prec=MAX_PREC, Emax=MAX_EMAX, Emin=MIN_EMIN)


@dataclass(frozen=True, slots=True)
class Completion:
    """How a statement finished: normally, or by RETURN with a value."""

    returned: bool = False
    value: Optional[Value] = None

    @classmethod
    def returning(cls, value: Value) -> Completion:
        return cls(True, value)


NORMAL = Completion()


def _truncating_divide(left: int, right: int) -> int:
    """Integer quotient rounded toward zero."""
    quotient = abs(left) // abs(right)
    return quotient if (left < 0) == (right < 0) else -quotient


def _rounded_divide(left: Decimal, right: Decimal, scale: int) -> Decimal:
    """
    `left / right` rounded half to even at `scale` fractional digits.

    Callers hold `EXACT_CONTEXT`. The quotient comes from exact integer
    division; only the final digit is rounded.
    """
    quotient, remainder = divmod(left.scaleb(scale), right)
    quotient = quotient.quantize(Decimal(1))
    twice = abs(remainder) * 2
    if twice > abs(right) or (twice == abs(right) and quotient % 2 != 0):
        quotient += 1 if (left < 0) == (right < 0) else -1
    if not quotient:
        quotient = abs(quotient)
    return quotient.scaleb(-scale)


class Interpreter:
    """
    Evaluator for PLC script programs.

    Usage:
        interpreter = Interpreter()
        exit_status = interpreter.run(source_node)

    Args:
        parent: Optional host scope placed above the built-ins
        output: Stream written by `print`; sys.stdout at call time if None
        decimal_scale: Fractional digits kept by Decimal division
    """

    def __init__(
        self,
        parent: Optional[Scope] = None,
        output: Optional[TextIO] = None,
        decimal_scale: int = DECIMAL_DIVISION_SCALE,
    ) -> None:
        if decimal_scale < 0:
            raise ValueError("decimal_scale must not be negative")
        self._output = output
        self._decimal_scale = decimal_scale
        self.root = Scope(parent, error_type=EvaluationError)
        self._define_builtins(self.root)
        self.globals = self.root.child()

    # -------------------------------------------------------------------------
    # Built-ins
    # -------------------------------------------------------------------------

    def _define_builtins(self, scope: Scope) -> None:
        scope.define_function(
            "print", (ANY,), NIL, self._builtin_print, jvm_name="System.out.println"
        )
        scope.define_function("range", (INTEGER, INTEGER), INTEGER_ITERABLE, self._builtin_range)

    def _builtin_print(self, arguments: list[Value]) -> Value:
        stream = self._output if self._output is not None else sys.stdout
        stream.write(arguments[0].text() + "\n")
        return NIL_VALUE

    def _builtin_range(self, arguments: list[Value]) -> Value:
        start = require_type(INTEGER, arguments[0])
        end = require_type(INTEGER, arguments[1])
        return Value(INTEGER_ITERABLE, range(start, end))

    # -------------------------------------------------------------------------
    # Program
    # -------------------------------------------------------------------------

    def run(self, source: Source) -> int:
        """
        Execute a program and return the Integer produced by `main()`.

        Raises:
            EvaluationError: On the first runtime failure
        """
        result = self.execute(source)
        return require_type(INTEGER, result, source.location)

    def execute(self, source: Source) -> Value:
        """Initialize fields in order, bind methods, then call `main()`."""
        scope = self.globals
        for field_node in source.fields:
            self._define_field(field_node, scope)
        for method in source.methods:
            self._define_method(method, scope)

        logger.debug("Invoking main()")
        main = scope.lookup_function("main", 0, source.location)
        return main.invoke([])

    def _define_field(self, node: Field, scope: Scope) -> None:
        value = NIL_VALUE
        if node.value is not None:
            value = self.evaluate(node.value, scope)
        scope.define_variable(node.name, value.type, value, location=node.location)

    def _define_method(self, method: Method, scope: Scope) -> None:
        # Calls run in a child of the defining scope, not of the caller's
        def invoke(arguments: list[Value]) -> Value:
            frame = scope.child()
            for parameter, argument in zip(method.parameters, arguments):
                frame.define_variable(parameter.name, argument.type, argument)
            completion = self._execute_statements(method.statements, frame)
            return completion.value if completion.returned else NIL_VALUE

        scope.define_function(
            method.name,
            (ANY,) * len(method.parameters),
            ANY,
            invoke,
            location=method.location,
        )

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def _execute_statements(self, statements: tuple[Statement, ...], scope: Scope) -> Completion:
        for stmt in statements:
            completion = self.execute_statement(stmt, scope)
            if completion.returned:
                return completion
        return NORMAL

    def _execute_block(self, statements: tuple[Statement, ...], scope: Scope) -> Completion:
        return self._execute_statements(statements, scope.child())

    def execute_statement(self, stmt: Statement, scope: Scope) -> Completion:
        """Execute one statement in `scope`."""
        if isinstance(stmt, ExpressionStatement):
            self.evaluate(stmt.expression, scope)
            return NORMAL

        if isinstance(stmt, DeclarationStatement):
            value = NIL_VALUE
            if stmt.value is not None:
                value = self.evaluate(stmt.value, scope)
            scope.define_variable(stmt.name, value.type, value, location=stmt.location)
            return NORMAL

        if isinstance(stmt, AssignmentStatement):
            self._assign(stmt, scope)
            return NORMAL

        if isinstance(stmt, IfStatement):
            condition = require_type(
                BOOLEAN, self.evaluate(stmt.condition, scope), stmt.condition.location
            )
            branch = stmt.then_statements if condition else stmt.else_statements
            return self._execute_block(branch, scope)

        if isinstance(stmt, ForStatement):
            for element in self._iterate(self.evaluate(stmt.iterable, scope), stmt.location):
                loop_scope = scope.child()
                loop_scope.define_variable(stmt.name, INTEGER, element)
                completion = self._execute_statements(stmt.statements, loop_scope)
                if completion.returned:
                    return completion
            return NORMAL

        if isinstance(stmt, WhileStatement):
            while require_type(
                BOOLEAN, self.evaluate(stmt.condition, scope), stmt.condition.location
            ):
                completion = self._execute_block(stmt.statements, scope)
                if completion.returned:
                    return completion
            return NORMAL

        if isinstance(stmt, ReturnStatement):
            return Completion.returning(self.evaluate(stmt.value, scope))

        raise TypeError(f"Unknown statement type: {type(stmt).__name__}")

    def _assign(self, stmt: AssignmentStatement, scope: Scope) -> None:
        receiver = stmt.receiver
        if not isinstance(receiver, AccessExpression):
            raise EvaluationError(
                ErrorKind.NOT_ASSIGNABLE,
                "Only variables and fields can be assigned",
                stmt.location,
            )

        if receiver.receiver is not None:
            target = self.evaluate(receiver.receiver, scope)
            value = self.evaluate(stmt.value, scope)
            if receiver.name not in target.fields:
                raise EvaluationError(
                    ErrorKind.UNDEFINED_NAME,
                    f"Undefined field '{receiver.name}' of {target.type.name}",
                    receiver.location,
                    name=receiver.name,
                )
            target.fields[receiver.name] = value
        else:
            variable = scope.lookup_variable(receiver.name, receiver.location)
            variable.value = self.evaluate(stmt.value, scope)

    def _iterate(self, iterable: Value, location: Optional[SourceLocation]) -> Iterator[Value]:
        items = require_type(INTEGER_ITERABLE, iterable, location)
        for item in items:
            yield item if isinstance(item, Value) else integer(item)

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    def evaluate(self, expr: Expression, scope: Scope) -> Value:
        """Evaluate an expression in `scope` and return its value."""
        if isinstance(expr, NilLiteral):
            return NIL_VALUE
        if isinstance(expr, BooleanLiteral):
            return boolean(expr.value)
        if isinstance(expr, IntegerLiteral):
            return integer(expr.value)
        if isinstance(expr, DecimalLiteral):
            return decimal(expr.value)
        if isinstance(expr, CharacterLiteral):
            return character(expr.value)
        if isinstance(expr, StringLiteral):
            return string(expr.value)
        if isinstance(expr, GroupExpression):
            return self.evaluate(expr.expression, scope)
        if isinstance(expr, BinaryExpression):
            return self._evaluate_binary(expr, scope)
        if isinstance(expr, AccessExpression):
            return self._evaluate_access(expr, scope)
        if isinstance(expr, FunctionExpression):
            return self._evaluate_function(expr, scope)
        raise TypeError(f"Unknown expression type: {type(expr).__name__}")

    def _evaluate_binary(self, expr: BinaryExpression, scope: Scope) -> Value:
        op = expr.operator
        location = expr.location

        if op.is_logical:
            left = require_type(BOOLEAN, self.evaluate(expr.left, scope), expr.left.location)
            # Short-circuit: AND stops on false, OR stops on true
            if op == BinaryOperator.AND and not left:
                return boolean(False)
            if op == BinaryOperator.OR and left:
                return boolean(True)
            right = require_type(BOOLEAN, self.evaluate(expr.right, scope), expr.right.location)
            return boolean(right)

        left = self.evaluate(expr.left, scope)
        right = self.evaluate(expr.right, scope)

        if op.is_equality:
            equal = left == right
            return boolean(equal if op == BinaryOperator.EQ else not equal)

        if op.is_ordering:
            return boolean(self._compare(op, left, right, location))

        if op == BinaryOperator.ADD and (left.type is STRING or right.type is STRING):
            return string(left.text() + right.text())

        numeric_type = self._numeric_type(op, left, right, location)
        a, b = left.value, right.value
        with localcontext(EXACT_CONTEXT):
            if op == BinaryOperator.ADD:
                result = a + b
            elif op == BinaryOperator.SUB:
                result = a - b
            elif op == BinaryOperator.MUL:
                result = a * b
            else:
                result = self._divide(a, b, numeric_type is INTEGER, location)
        return Value(numeric_type, result)

    def _numeric_type(self, op: BinaryOperator, left: Value, right: Value, location):
        if left.type is right.type and left.type in (INTEGER, DECIMAL):
            return left.type
        kind = (
            ErrorKind.INCOMPATIBLE_PLUS_OPERANDS
            if op == BinaryOperator.ADD
            else ErrorKind.INCOMPATIBLE_ARITHMETIC_OPERANDS
        )
        raise EvaluationError(
            kind,
            f"Operator '{op.value}' cannot combine {left.type.name} and {right.type.name}",
            location,
        )

    def _divide(self, a, b, is_integer: bool, location: Optional[SourceLocation]):
        if b == 0:
            raise EvaluationError(ErrorKind.DIVISION_BY_ZERO, "Division by zero", location)
        if is_integer:
            return _truncating_divide(a, b)
        return _rounded_divide(a, b, self._decimal_scale)

    def _compare(
        self,
        op: BinaryOperator,
        left: Value,
        right: Value,
        location: Optional[SourceLocation],
    ) -> bool:
        if left.type is not right.type:
            raise EvaluationError(
                ErrorKind.INCOMPATIBLE_COMPARISON_OPERANDS,
                f"Cannot compare {left.type.name} with {right.type.name}",
                location,
            )
        a, b = left.value, right.value
        try:
            if op == BinaryOperator.LT:
                return a < b
            if op == BinaryOperator.LE:
                return a <= b
            if op == BinaryOperator.GT:
                return a > b
            return a >= b
        except TypeError as e:
            raise EvaluationError(
                ErrorKind.NOT_COMPARABLE,
                f"Values of type {left.type.name} are not comparable",
                location,
            ) from e

    def _evaluate_access(self, expr: AccessExpression, scope: Scope) -> Value:
        if expr.receiver is None:
            return scope.lookup_variable(expr.name, expr.location).value

        target = self.evaluate(expr.receiver, scope)
        if expr.name not in target.fields:
            raise EvaluationError(
                ErrorKind.UNDEFINED_NAME,
                f"Undefined field '{expr.name}' of {target.type.name}",
                expr.location,
                name=expr.name,
            )
        return target.fields[expr.name]

    def _evaluate_function(self, expr: FunctionExpression, scope: Scope) -> Value:
        arity = len(expr.arguments)
        if expr.receiver is None:
            function = scope.lookup_function(expr.name, arity, expr.location)
            arguments = [self.evaluate(arg, scope) for arg in expr.arguments]
            return function.invoke(arguments)

        target = self.evaluate(expr.receiver, scope)
        method = target.methods.get((expr.name, arity))
        if method is None:
            raise EvaluationError(
                ErrorKind.UNDEFINED_NAME,
                f"Undefined method '{expr.name}' with {arity} argument(s) of {target.type.name}",
                expr.location,
                name=expr.name,
            )
        arguments = [self.evaluate(arg, scope) for arg in expr.arguments]
        return method(arguments)


def run(source: Source, output: Optional[TextIO] = None) -> int:
    """Convenience function: execute a program and return main()'s result."""
    return Interpreter(output=output).run(source)
