"""
Unit tests for the PLC Script Parser.
"""

from decimal import Decimal

import pytest

from plcscript.compiler.ast_nodes import (
    AccessExpression,
    AssignmentStatement,
    BinaryExpression,
    BinaryOperator,
    BooleanLiteral,
    CharacterLiteral,
    DecimalLiteral,
    DeclarationStatement,
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
    StringLiteral,
    WhileStatement,
)
from plcscript.compiler.parser import parse as parse_source
from plcscript.utils.errors import ParserError


def body(parse, statements: str):
    """Parse statements inside a single method and return them."""
    tree = parse(f"DEF f() DO {statements} END")
    return tree.methods[0].statements


def expression(parse, text: str):
    """Parse a single expression statement and return its expression."""
    return body(parse, f"{text};")[0].expression


class TestParserDeclarations:
    """Top-level fields and methods."""

    def test_empty_program(self, parse):
        tree = parse("")
        assert isinstance(tree, Source)
        assert tree.fields == ()
        assert tree.methods == ()

    def test_field_with_value(self, parse):
        tree = parse("LET x: Integer = 42;")
        field = tree.fields[0]
        assert isinstance(field, Field)
        assert field.name == "x"
        assert field.type_name == "Integer"
        assert isinstance(field.value, IntegerLiteral)
        assert field.value.value == 42

    def test_field_without_value(self, parse):
        field = parse("LET s: String;").fields[0]
        assert field.value is None

    def test_field_requires_type(self, parse):
        with pytest.raises(ParserError, match="Expected ':'"):
            parse("LET x = 1;")

    def test_method(self, parse):
        tree = parse("DEF add(a: Integer, b: Integer): Integer DO RETURN a + b; END")
        method = tree.methods[0]
        assert isinstance(method, Method)
        assert method.name == "add"
        assert method.parameter_names == ("a", "b")
        assert method.parameter_type_names == ("Integer", "Integer")
        assert method.return_type_name == "Integer"
        assert isinstance(method.statements[0], ReturnStatement)

    def test_method_without_return_type(self, parse):
        method = parse("DEF log() DO END").methods[0]
        assert method.return_type_name is None
        assert method.parameters == ()
        assert method.statements == ()

    def test_fields_then_methods(self, parse):
        tree = parse("LET a: Integer; LET b: Integer; DEF f() DO END DEF g() DO END")
        assert [f.name for f in tree.fields] == ["a", "b"]
        assert [m.name for m in tree.methods] == ["f", "g"]

    def test_field_after_method_fails(self, parse):
        with pytest.raises(ParserError, match="Fields must be declared before methods"):
            parse("DEF f() DO END LET x: Integer;")

    def test_stray_token_fails(self, parse):
        with pytest.raises(ParserError, match="Expected 'LET' or 'DEF'"):
            parse("RETURN 1;")

    def test_module_level_parse(self):
        tree = parse_source("LET x: Integer;")
        assert tree.fields[0].name == "x"


class TestParserStatements:
    """Statements inside method bodies."""

    def test_declaration_forms(self, parse):
        stmts = body(parse, "LET a: Integer = 1; LET b = 2; LET c: Decimal;")
        assert all(isinstance(s, DeclarationStatement) for s in stmts)
        assert (stmts[0].type_name, stmts[0].value.value) == ("Integer", 1)
        assert stmts[1].type_name is None
        assert stmts[2].value is None

    def test_declaration_without_type_or_value_parses(self, parse):
        stmt = body(parse, "LET a;")[0]
        assert stmt.type_name is None and stmt.value is None

    def test_assignment(self, parse):
        stmt = body(parse, "x = 1;")[0]
        assert isinstance(stmt, AssignmentStatement)
        assert isinstance(stmt.receiver, AccessExpression)
        assert stmt.receiver.name == "x"

    def test_member_assignment(self, parse):
        stmt = body(parse, "p.x = 1;")[0]
        assert isinstance(stmt.receiver, AccessExpression)
        assert stmt.receiver.receiver.name == "p"

    def test_expression_statement(self, parse):
        stmt = body(parse, "print(1);")[0]
        assert isinstance(stmt, ExpressionStatement)
        assert isinstance(stmt.expression, FunctionExpression)

    def test_if_without_else(self, parse):
        stmt = body(parse, "IF TRUE DO print(1); END")[0]
        assert isinstance(stmt, IfStatement)
        assert len(stmt.then_statements) == 1
        assert stmt.else_statements == ()

    def test_if_with_else(self, parse):
        stmt = body(parse, "IF x DO print(1); ELSE print(2); print(3); END")[0]
        assert len(stmt.else_statements) == 2

    def test_if_with_empty_body_parses(self, parse):
        stmt = body(parse, "IF x DO END")[0]
        assert stmt.then_statements == ()

    def test_for(self, parse):
        stmt = body(parse, "FOR i IN range(0, 3) DO print(i); END")[0]
        assert isinstance(stmt, ForStatement)
        assert stmt.name == "i"
        assert isinstance(stmt.iterable, FunctionExpression)

    def test_while(self, parse):
        stmt = body(parse, "WHILE x < 3 DO x = x + 1; END")[0]
        assert isinstance(stmt, WhileStatement)
        assert isinstance(stmt.condition, BinaryExpression)

    def test_return(self, parse):
        stmt = body(parse, "RETURN 0;")[0]
        assert isinstance(stmt, ReturnStatement)

    def test_missing_semicolon(self, parse):
        with pytest.raises(ParserError, match="Expected ';'"):
            body(parse, "print(1)")

    def test_missing_end(self, parse):
        with pytest.raises(ParserError, match="end of file"):
            parse("DEF f() DO print(1);")


class TestParserExpressions:
    """Expression precedence, associativity and literals."""

    @pytest.mark.parametrize(
        "text,node_type,value",
        [
            ("NIL", NilLiteral, None),
            ("TRUE", BooleanLiteral, True),
            ("FALSE", BooleanLiteral, False),
            ("7", IntegerLiteral, 7),
            ("1.5", DecimalLiteral, Decimal("1.5")),
            ("'c'", CharacterLiteral, "c"),
            ('"s"', StringLiteral, "s"),
        ],
    )
    def test_literals(self, parse, text, node_type, value):
        expr = expression(parse, text)
        assert isinstance(expr, node_type)
        if value is not None:
            assert expr.value == value

    def test_multiplication_binds_tighter(self, parse):
        expr = expression(parse, "1 + 2 * 3")
        assert expr.operator == BinaryOperator.ADD
        assert expr.right.operator == BinaryOperator.MUL

    def test_left_associative(self, parse):
        expr = expression(parse, "1 - 2 - 3")
        assert expr.operator == BinaryOperator.SUB
        assert isinstance(expr.left, BinaryExpression)
        assert expr.left.operator == BinaryOperator.SUB
        assert expr.right.value == 3

    def test_comparison_below_arithmetic(self, parse):
        expr = expression(parse, "a + 1 < b")
        assert expr.operator == BinaryOperator.LT
        assert expr.left.operator == BinaryOperator.ADD

    def test_logical_lowest(self, parse):
        expr = expression(parse, "a < b AND c OR d")
        assert expr.operator == BinaryOperator.OR
        assert expr.left.operator == BinaryOperator.AND
        assert expr.left.left.operator == BinaryOperator.LT

    def test_group(self, parse):
        expr = expression(parse, "(1 + 2) * 3")
        assert expr.operator == BinaryOperator.MUL
        assert isinstance(expr.left, GroupExpression)

    def test_group_of_single_value_parses(self, parse):
        expr = expression(parse, "(x)")
        assert isinstance(expr, GroupExpression)
        assert isinstance(expr.expression, AccessExpression)

    def test_call_with_arguments(self, parse):
        expr = expression(parse, "f(1, x, g())")
        assert isinstance(expr, FunctionExpression)
        assert expr.receiver is None
        assert len(expr.arguments) == 3
        assert isinstance(expr.arguments[2], FunctionExpression)

    def test_member_chain(self, parse):
        expr = expression(parse, "a.b.c(1)")
        assert isinstance(expr, FunctionExpression)
        assert expr.name == "c"
        assert isinstance(expr.receiver, AccessExpression)
        assert expr.receiver.name == "b"
        assert expr.receiver.receiver.name == "a"

    def test_negative_literal_operand(self, parse):
        expr = expression(parse, "x * -2")
        assert expr.right.value == -2

    def test_missing_operand(self, parse):
        with pytest.raises(ParserError, match="Expected an expression"):
            expression(parse, "1 +")

    def test_unclosed_group(self, parse):
        with pytest.raises(ParserError, match="Expected '\\)'"):
            expression(parse, "(1 + 2")


class TestParserDiagnostics:
    """Parser failures carry locations and rich diagnostics."""

    def test_error_location(self, parse):
        with pytest.raises(ParserError) as exc_info:
            parse("LET x: Integer\nLET y: Integer;")
        assert exc_info.value.location.line == 2
        assert "found 'LET'" in exc_info.value.message

    def test_diagnostic_recorded(self, parser_factory):
        parser = parser_factory("LET x Integer;")
        with pytest.raises(ParserError):
            parser.parse()
        assert len(parser.diagnostics) == 1
        assert parser.diagnostics[0].code == "E0201"
