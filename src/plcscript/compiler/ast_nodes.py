"""
Abstract Syntax Tree (AST) node definitions for PLC scripts.

Every node is immutable and carries its source location. Resolved types and
bindings are never stored on the nodes; the analyzer records them in a
separate `Annotations` table keyed by node identity.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from plcscript.utils.errors import SourceLocation


class ASTNode(ABC):
    """Base class for all AST nodes."""

    location: Optional[SourceLocation]

    @abstractmethod
    def accept(self, visitor: "ASTVisitor") -> Any:
        """Accept a visitor for tree traversal."""
        pass


class ASTVisitor(ABC):
    """
    Visitor pattern base class for AST traversal.

    Used by tree printers and the code generator. The analyzer and the
    interpreter dispatch on node classes directly instead.
    """

    def visit(self, node: ASTNode) -> Any:
        """Dispatch to the appropriate visit method."""
        return node.accept(self)


# -----------------------------------------------------------------------------
# Expressions
# -----------------------------------------------------------------------------


class Expression(ASTNode):
    """Base class for all expressions."""

    pass


class Literal(Expression):
    """Base class for literal constants."""

    @property
    def literal(self) -> Any:
        """The native value of this literal (None for NIL)."""
        return getattr(self, "value", None)


@dataclass(frozen=True, slots=True)
class NilLiteral(Literal):
    """The `NIL` literal."""

    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_nil_literal(self)


@dataclass(frozen=True, slots=True)
class BooleanLiteral(Literal):
    """`TRUE` or `FALSE`."""

    value: bool
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_boolean_literal(self)


@dataclass(frozen=True, slots=True)
class IntegerLiteral(Literal):
    """An arbitrary-precision integer literal: 42, -7."""

    value: int
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_integer_literal(self)


@dataclass(frozen=True, slots=True)
class DecimalLiteral(Literal):
    """An arbitrary-precision decimal literal: 3.14."""

    value: Decimal
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_decimal_literal(self)


@dataclass(frozen=True, slots=True)
class CharacterLiteral(Literal):
    """A character literal: 'c'. The value is a one-character string."""

    value: str
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_character_literal(self)


@dataclass(frozen=True, slots=True)
class StringLiteral(Literal):
    """A string literal with escapes already applied."""

    value: str
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_string_literal(self)


@dataclass(frozen=True, slots=True)
class GroupExpression(Expression):
    """
    A parenthesized expression.

    Only binary expressions may be grouped; the analyzer rejects anything
    else.
    """

    expression: Expression
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_group_expression(self)


class BinaryOperator(Enum):
    """Binary operators, valued by their source spelling."""

    AND = "AND"
    OR = "OR"
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    EQ = "=="
    NE = "!="
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"

    @property
    def is_logical(self) -> bool:
        return self in (BinaryOperator.AND, BinaryOperator.OR)

    @property
    def is_ordering(self) -> bool:
        return self in (
            BinaryOperator.LT,
            BinaryOperator.LE,
            BinaryOperator.GT,
            BinaryOperator.GE,
        )

    @property
    def is_equality(self) -> bool:
        return self in (BinaryOperator.EQ, BinaryOperator.NE)


@dataclass(frozen=True, slots=True)
class BinaryExpression(Expression):
    """A binary operation: left op right."""

    operator: BinaryOperator
    left: Expression
    right: Expression
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_binary_expression(self)


@dataclass(frozen=True, slots=True)
class AccessExpression(Expression):
    """
    A variable reference or a field access.

    Examples:
        total        (receiver is None)
        point.x      (receiver is `point`)
    """

    receiver: Optional[Expression]
    name: str
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_access_expression(self)


@dataclass(frozen=True, slots=True)
class FunctionExpression(Expression):
    """
    A free function call or a method call.

    Examples:
        print(x)          (receiver is None)
        list.add(1, 2)    (receiver is `list`)
    """

    receiver: Optional[Expression]
    name: str
    arguments: tuple[Expression, ...] = ()
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_function_expression(self)


# -----------------------------------------------------------------------------
# Statements
# -----------------------------------------------------------------------------


class Statement(ASTNode):
    """Base class for all statements."""

    pass


@dataclass(frozen=True, slots=True)
class ExpressionStatement(Statement):
    """An expression evaluated for its effect. Only calls are allowed."""

    expression: Expression
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_expression_statement(self)


@dataclass(frozen=True, slots=True)
class DeclarationStatement(Statement):
    """
    A local variable declaration.

    Examples:
        LET x: Integer = 1;
        LET y = "text";
        LET z: Decimal;
    """

    name: str
    type_name: Optional[str] = None
    value: Optional[Expression] = None
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_declaration_statement(self)


@dataclass(frozen=True, slots=True)
class AssignmentStatement(Statement):
    """An assignment: receiver = value; the receiver must be an access."""

    receiver: Expression
    value: Expression
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_assignment_statement(self)


@dataclass(frozen=True, slots=True)
class IfStatement(Statement):
    """IF condition DO then_statements (ELSE else_statements)? END"""

    condition: Expression
    then_statements: tuple[Statement, ...]
    else_statements: tuple[Statement, ...] = ()
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_if_statement(self)


@dataclass(frozen=True, slots=True)
class ForStatement(Statement):
    """FOR name IN iterable DO statements END"""

    name: str
    iterable: Expression
    statements: tuple[Statement, ...]
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_for_statement(self)


@dataclass(frozen=True, slots=True)
class WhileStatement(Statement):
    """WHILE condition DO statements END"""

    condition: Expression
    statements: tuple[Statement, ...]
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_while_statement(self)


@dataclass(frozen=True, slots=True)
class ReturnStatement(Statement):
    """RETURN value;"""

    value: Expression
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_return_statement(self)


# -----------------------------------------------------------------------------
# Declarations
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Field(ASTNode):
    """
    A global variable: LET name: Type (= value)?;

    The declared type is mandatory at top level.
    """

    name: str
    type_name: str
    value: Optional[Expression] = None
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_field(self)


@dataclass(frozen=True, slots=True)
class Parameter:
    """A method parameter: name: Type."""

    name: str
    type_name: str
    location: Optional[SourceLocation] = None


@dataclass(frozen=True, slots=True)
class Method(ASTNode):
    """
    A function definition.

    Example:
        DEF add(a: Integer, b: Integer): Integer DO
            RETURN a + b;
        END
    """

    name: str
    parameters: tuple[Parameter, ...]
    return_type_name: Optional[str]
    statements: tuple[Statement, ...]
    location: Optional[SourceLocation] = None

    @property
    def parameter_names(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.parameters)

    @property
    def parameter_type_names(self) -> tuple[str, ...]:
        return tuple(p.type_name for p in self.parameters)

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_method(self)


@dataclass(frozen=True, slots=True)
class Source(ASTNode):
    """The root node: all fields followed by all methods."""

    fields: tuple[Field, ...] = ()
    methods: tuple[Method, ...] = ()
    location: Optional[SourceLocation] = None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_source(self)


# -----------------------------------------------------------------------------
# Default traversal
# -----------------------------------------------------------------------------


class BaseASTVisitor(ASTVisitor):
    """
    Base visitor with default implementations that traverse children.

    Subclass this and override specific visit_* methods as needed.
    """

    def visit_source(self, node: Source) -> Any:
        for field_node in node.fields:
            self.visit(field_node)
        for method in node.methods:
            self.visit(method)

    def visit_field(self, node: Field) -> Any:
        if node.value is not None:
            self.visit(node.value)

    def visit_method(self, node: Method) -> Any:
        for stmt in node.statements:
            self.visit(stmt)

    # Statements
    def visit_expression_statement(self, node: ExpressionStatement) -> Any:
        self.visit(node.expression)

    def visit_declaration_statement(self, node: DeclarationStatement) -> Any:
        if node.value is not None:
            self.visit(node.value)

    def visit_assignment_statement(self, node: AssignmentStatement) -> Any:
        self.visit(node.receiver)
        self.visit(node.value)

    def visit_if_statement(self, node: IfStatement) -> Any:
        self.visit(node.condition)
        for stmt in node.then_statements:
            self.visit(stmt)
        for stmt in node.else_statements:
            self.visit(stmt)

    def visit_for_statement(self, node: ForStatement) -> Any:
        self.visit(node.iterable)
        for stmt in node.statements:
            self.visit(stmt)

    def visit_while_statement(self, node: WhileStatement) -> Any:
        self.visit(node.condition)
        for stmt in node.statements:
            self.visit(stmt)

    def visit_return_statement(self, node: ReturnStatement) -> Any:
        self.visit(node.value)

    # Expressions
    def visit_nil_literal(self, node: NilLiteral) -> Any:
        pass

    def visit_boolean_literal(self, node: BooleanLiteral) -> Any:
        pass

    def visit_integer_literal(self, node: IntegerLiteral) -> Any:
        pass

    def visit_decimal_literal(self, node: DecimalLiteral) -> Any:
        pass

    def visit_character_literal(self, node: CharacterLiteral) -> Any:
        pass

    def visit_string_literal(self, node: StringLiteral) -> Any:
        pass

    def visit_group_expression(self, node: GroupExpression) -> Any:
        self.visit(node.expression)

    def visit_binary_expression(self, node: BinaryExpression) -> Any:
        self.visit(node.left)
        self.visit(node.right)

    def visit_access_expression(self, node: AccessExpression) -> Any:
        if node.receiver is not None:
            self.visit(node.receiver)

    def visit_function_expression(self, node: FunctionExpression) -> Any:
        if node.receiver is not None:
            self.visit(node.receiver)
        for arg in node.arguments:
            self.visit(arg)
