"""
Unit tests for the PLC Script Analyzer.
"""

import pytest

from plcscript.compiler.analyzer import Analyzer, analyze as analyze_tree
from plcscript.compiler.ast_nodes import ForStatement
from plcscript.compiler.environment import (
    ANY,
    BOOLEAN,
    DECIMAL,
    INTEGER,
    INTEGER_ITERABLE,
    NIL,
    STRING,
    Scope,
    TypeRegistry,
)
from plcscript.compiler.parser import parse as parse_source
from plcscript.utils.errors import AnalysisError, ErrorKind

MAIN = "DEF main(): Integer DO RETURN 0; END"


def program(body: str, prelude: str = "") -> str:
    return f"{prelude}\nDEF main(): Integer DO\n{body}\nRETURN 0;\nEND\n"


def expression_program(text: str, prelude: str = "") -> str:
    return program(f"LET value = {text};", prelude)


def local_type(analyze, text: str, prelude: str = ""):
    """Analyze `LET value = <text>;` and return the type bound to value."""
    result = analyze(expression_program(text, prelude))
    declaration = result.source.methods[-1].statements[0]
    return result.annotations.variable_of(declaration).type


def failure(analyze, source: str, **kwargs) -> AnalysisError:
    with pytest.raises(AnalysisError) as exc_info:
        analyze(source, **kwargs)
    return exc_info.value


def record_environment():
    """A registry with a Point record and a host scope holding `origin`."""
    registry = TypeRegistry()
    point = registry.define_record("Point")
    point.scope.define_variable("x", INTEGER)
    point.scope.define_variable("y", INTEGER)
    point.scope.define_function("norm", (), INTEGER)
    point.scope.define_function("shift", (INTEGER,), point)
    host = Scope()
    host.define_variable("origin", point)
    return registry, host, point


class TestEntryPoint:
    """The program must define main(): Integer."""

    def test_valid_entry_point(self, analyze):
        result = analyze(MAIN)
        function = result.annotations.function_of(result.source.methods[0])
        assert function.return_type is INTEGER

    def test_missing_main(self, analyze):
        error = failure(analyze, "DEF start(): Integer DO RETURN 0; END")
        assert error.kind is ErrorKind.ENTRY_POINT_INVALID

    def test_empty_program(self, analyze):
        assert failure(analyze, "").kind is ErrorKind.ENTRY_POINT_INVALID

    def test_main_with_parameters(self, analyze):
        error = failure(analyze, "DEF main(x: Integer): Integer DO RETURN x; END")
        assert error.kind is ErrorKind.ENTRY_POINT_INVALID

    def test_main_wrong_return_type(self, analyze):
        error = failure(analyze, "DEF main(): Decimal DO RETURN 0.0; END")
        assert error.kind is ErrorKind.ENTRY_POINT_INVALID

    def test_main_without_return_type(self, analyze):
        error = failure(analyze, "DEF main() DO END")
        assert error.kind is ErrorKind.ENTRY_POINT_INVALID

    def test_entry_checked_before_anything_else(self, analyze):
        error = failure(analyze, "LET x: Unknown; DEF helper() DO END")
        assert error.kind is ErrorKind.ENTRY_POINT_INVALID


class TestDeclarations:
    """Fields, methods and locals."""

    def test_field_types(self, analyze):
        result = analyze("LET x: Integer = 1; LET s: String;\n" + MAIN)
        assert result.annotations.variable_of(result.source.fields[0]).type is INTEGER
        assert result.annotations.variable_of(result.source.fields[1]).type is STRING
        assert result.analyzer.globals.find_variable("x") is not None

    def test_field_value_must_match(self, analyze):
        error = failure(analyze, 'LET x: Integer = "one";\n' + MAIN)
        assert error.kind is ErrorKind.INCOMPATIBLE_TYPES

    def test_field_unknown_type(self, analyze):
        error = failure(analyze, "LET x: Widget;\n" + MAIN)
        assert error.kind is ErrorKind.UNDEFINED_NAME
        assert error.name == "Widget"

    def test_duplicate_field(self, analyze):
        error = failure(analyze, "LET x: Integer; LET x: String;\n" + MAIN)
        assert error.kind is ErrorKind.DUPLICATE_DEFINITION

    def test_fields_see_earlier_fields_only(self, analyze):
        analyze("LET a: Integer = 1; LET b: Integer = a;\n" + MAIN)
        error = failure(analyze, "LET b: Integer = a; LET a: Integer = 1;\n" + MAIN)
        assert error.kind is ErrorKind.UNDEFINED_NAME

    def test_field_initializer_cannot_call_method(self, analyze):
        error = failure(
            analyze,
            "LET x: Integer = seven();\n"
            "DEF seven(): Integer DO RETURN 7; END\n" + MAIN,
        )
        assert error.kind is ErrorKind.UNDEFINED_NAME
        assert error.name == "seven"

    def test_method_reading_later_field_is_not_callable_from_earlier_field(
        self, analyze
    ):
        error = failure(
            analyze,
            "LET a: Integer = readB(); LET b: Integer = 7;\n"
            "DEF readB(): Integer DO RETURN b; END\n" + MAIN,
        )
        assert error.kind is ErrorKind.UNDEFINED_NAME

    def test_field_initializer_may_call_builtin(self, analyze):
        analyze("LET r: IntegerIterable = range(0, 3);\n" + MAIN)

    def test_duplicate_method_same_arity(self, analyze):
        error = failure(analyze, "DEF f() DO END DEF f() DO END\n" + MAIN)
        assert error.kind is ErrorKind.DUPLICATE_DEFINITION

    def test_overload_by_arity(self, analyze):
        analyze(
            "DEF f(): Integer DO RETURN 1; END\n"
            "DEF f(x: Integer): Integer DO RETURN x; END\n"
            + program("LET a = f() + f(2);")
        )

    def test_forward_and_mutual_reference(self, analyze):
        analyze(
            program(
                "LET a = even(4);",
                "DEF even(n: Integer): Boolean DO IF n == 0 DO RETURN TRUE; END RETURN odd(n - 1); END\n"
                "DEF odd(n: Integer): Boolean DO IF n == 0 DO RETURN FALSE; END RETURN even(n - 1); END",
            )
        )

    def test_method_without_return_type_is_nil(self, analyze):
        result = analyze("DEF log() DO END\n" + MAIN)
        assert result.annotations.function_of(result.source.methods[0]).return_type is NIL

    def test_parameter_unknown_type(self, analyze):
        error = failure(analyze, "DEF f(x: Thing) DO END\n" + MAIN)
        assert error.kind is ErrorKind.UNDEFINED_NAME

    def test_local_inferred_type(self, analyze):
        assert local_type(analyze, '"text"') is STRING

    def test_local_declared_type(self, analyze):
        result = analyze(program("LET a: Any = 1;"))
        stmt = result.source.methods[0].statements[0]
        assert result.annotations.variable_of(stmt).type is ANY

    def test_local_declared_without_value(self, analyze):
        analyze(program("LET a: Decimal;"))

    def test_declaration_incomplete(self, analyze):
        error = failure(analyze, program("LET a;"))
        assert error.kind is ErrorKind.DECLARATION_INCOMPLETE

    def test_declaration_mismatch(self, analyze):
        error = failure(analyze, program("LET a: Integer = 1.0;"))
        assert error.kind is ErrorKind.INCOMPATIBLE_TYPES

    def test_duplicate_local(self, analyze):
        error = failure(analyze, program("LET a = 1; LET a = 2;"))
        assert error.kind is ErrorKind.DUPLICATE_DEFINITION

    def test_local_may_shadow_field(self, analyze):
        analyze(program('LET x = "inner";', "LET x: Integer = 1;"))

    def test_local_cannot_redefine_parameter(self, analyze):
        error = failure(analyze, "DEF f(a: Integer) DO LET a = 2; END\n" + MAIN)
        assert error.kind is ErrorKind.DUPLICATE_DEFINITION

    def test_nested_block_may_shadow_parameter(self, analyze):
        analyze("DEF f(a: Integer) DO IF TRUE DO LET a = 2; END END\n" + MAIN)


class TestStatements:
    """Statement rules."""

    def test_expression_statement_must_be_call(self, analyze):
        error = failure(analyze, program("1 + 2;"))
        assert error.kind is ErrorKind.INVALID_STATEMENT_EXPRESSION

    def test_call_statement(self, analyze):
        analyze(program("print(1);"))

    def test_assignment(self, analyze):
        analyze(program("LET a = 1; a = 2;"))

    def test_assignment_type_mismatch(self, analyze):
        error = failure(analyze, program('LET a = 1; a = "two";'))
        assert error.kind is ErrorKind.INCOMPATIBLE_TYPES

    def test_assign_to_any(self, analyze):
        analyze(program('LET a: Any = 1; a = "two";'))

    def test_assign_to_non_variable(self, analyze):
        error = failure(analyze, program("f() = 1;", "DEF f(): Integer DO RETURN 1; END"))
        assert error.kind is ErrorKind.NOT_ASSIGNABLE

    def test_assign_undefined(self, analyze):
        error = failure(analyze, program("a = 1;"))
        assert error.kind is ErrorKind.UNDEFINED_NAME

    def test_if_condition_must_be_boolean(self, analyze):
        error = failure(analyze, program("IF 1 DO print(1); END"))
        assert error.kind is ErrorKind.INCOMPATIBLE_TYPES

    def test_if_body_empty(self, analyze):
        error = failure(analyze, program("IF TRUE DO END"))
        assert error.kind is ErrorKind.IF_BODY_EMPTY

    def test_if_with_empty_else(self, analyze):
        analyze(program("IF TRUE DO print(1); ELSE END"))

    def test_if_branches_are_scoped(self, analyze):
        error = failure(analyze, program("IF TRUE DO LET a = 1; END print(a);"))
        assert error.kind is ErrorKind.UNDEFINED_NAME

    def test_for_over_range(self, analyze):
        result = analyze(program("FOR i IN range(0, 3) DO print(i); END"))
        stmt = result.source.methods[0].statements[0]
        assert isinstance(stmt, ForStatement)
        assert result.annotations.variable_of(stmt).type is INTEGER
        assert result.annotations.type_of(stmt.iterable) is INTEGER_ITERABLE

    def test_for_iterable_must_be_integer_iterable(self, analyze):
        error = failure(analyze, program("FOR i IN 3 DO print(i); END"))
        assert error.kind is ErrorKind.INCOMPATIBLE_TYPES

    def test_for_body_empty(self, analyze):
        error = failure(analyze, program("FOR i IN range(0, 3) DO END"))
        assert error.kind is ErrorKind.FOR_BODY_EMPTY

    def test_for_variable_not_visible_after_loop(self, analyze):
        error = failure(analyze, program("FOR i IN range(0, 3) DO print(i); END print(i);"))
        assert error.kind is ErrorKind.UNDEFINED_NAME

    def test_while_condition_must_be_boolean(self, analyze):
        error = failure(analyze, program('WHILE "yes" DO print(1); END'))
        assert error.kind is ErrorKind.INCOMPATIBLE_TYPES

    def test_while_empty_body(self, analyze):
        analyze(program("WHILE FALSE DO END"))

    def test_return_type_checked(self, analyze):
        error = failure(analyze, "DEF main(): Integer DO RETURN TRUE; END")
        assert error.kind is ErrorKind.INCOMPATIBLE_TYPES

    def test_return_into_any(self, analyze):
        analyze("DEF f(): Any DO RETURN 1; END\n" + MAIN)

    def test_nil_method_returning_nil(self, analyze):
        analyze("DEF f() DO RETURN NIL; END\n" + MAIN)


class TestExpressions:
    """Expression typing."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("NIL", NIL),
            ("TRUE", BOOLEAN),
            ("1", INTEGER),
            ("1.5", DECIMAL),
            ('"s"', STRING),
        ],
    )
    def test_literal_types(self, analyze, text, expected):
        assert local_type(analyze, text) is expected

    def test_integer_bounds(self, analyze):
        assert local_type(analyze, "2147483647") is INTEGER
        assert local_type(analyze, "-2147483648") is INTEGER

    def test_integer_overflow(self, analyze):
        error = failure(analyze, expression_program("2147483648"))
        assert error.kind is ErrorKind.INTEGER_OVERFLOW

    def test_integer_underflow(self, analyze):
        error = failure(analyze, expression_program("-2147483649"))
        assert error.kind is ErrorKind.INTEGER_OVERFLOW

    def test_decimal_overflow(self, analyze):
        error = failure(analyze, expression_program("1" + "0" * 400 + ".0"))
        assert error.kind is ErrorKind.DECIMAL_OVERFLOW

    def test_large_decimal_in_range(self, analyze):
        assert local_type(analyze, "1" + "0" * 300 + ".0") is DECIMAL

    def test_group_of_binary(self, analyze):
        assert local_type(analyze, "(1 + 2) * 3") is INTEGER

    def test_group_of_literal_fails(self, analyze):
        error = failure(analyze, expression_program("(1)"))
        assert error.kind is ErrorKind.INVALID_GROUP_EXPRESSION

    def test_logical(self, analyze):
        assert local_type(analyze, "TRUE AND FALSE OR TRUE") is BOOLEAN

    def test_logical_operand_must_be_boolean(self, analyze):
        error = failure(analyze, expression_program("TRUE AND 1"))
        assert error.kind is ErrorKind.INCOMPATIBLE_TYPES

    @pytest.mark.parametrize("text", ["1 < 2", "1.0 >= 2.0", "'a' <= 'b'", '"a" > "b"'])
    def test_ordering_of_comparables(self, analyze, text):
        assert local_type(analyze, text) is BOOLEAN

    def test_ordering_mixed_types(self, analyze):
        error = failure(analyze, expression_program("1 < 2.0"))
        assert error.kind is ErrorKind.INCOMPATIBLE_COMPARISON_OPERANDS

    def test_ordering_non_comparable(self, analyze):
        error = failure(analyze, expression_program("TRUE < FALSE"))
        assert error.kind is ErrorKind.NOT_COMPARABLE

    @pytest.mark.parametrize("text", ["1 == 1", "1 != 2.0", "NIL == TRUE", '"a" == 1'])
    def test_equality_accepts_any_operands(self, analyze, text):
        assert local_type(analyze, text) is BOOLEAN

    def test_string_plus_anything(self, analyze):
        assert local_type(analyze, '"n=" + 1') is STRING
        assert local_type(analyze, 'TRUE + "!"') is STRING

    def test_integer_arithmetic(self, analyze):
        assert local_type(analyze, "1 + 2 * 3 - 4 / 2") is INTEGER

    def test_decimal_arithmetic(self, analyze):
        assert local_type(analyze, "1.0 / 3.0") is DECIMAL

    def test_plus_mixed_numeric(self, analyze):
        error = failure(analyze, expression_program("1 + 1.0"))
        assert error.kind is ErrorKind.INCOMPATIBLE_PLUS_OPERANDS

    def test_plus_non_numeric(self, analyze):
        error = failure(analyze, expression_program("TRUE + 1"))
        assert error.kind is ErrorKind.INCOMPATIBLE_PLUS_OPERANDS

    def test_arithmetic_mixed(self, analyze):
        error = failure(analyze, expression_program("2 * 1.5"))
        assert error.kind is ErrorKind.INCOMPATIBLE_ARITHMETIC_OPERANDS

    def test_arithmetic_on_strings(self, analyze):
        error = failure(analyze, expression_program('"a" - "b"'))
        assert error.kind is ErrorKind.INCOMPATIBLE_ARITHMETIC_OPERANDS

    def test_undefined_variable(self, analyze):
        error = failure(analyze, expression_program("nope"))
        assert error.kind is ErrorKind.UNDEFINED_NAME
        assert error.name == "nope"

    def test_call_return_type(self, analyze):
        prelude = "DEF f(x: Integer): Decimal DO RETURN 1.0; END"
        assert local_type(analyze, "f(1)", prelude) is DECIMAL

    def test_call_argument_checked(self, analyze):
        prelude = "DEF f(x: Integer): Decimal DO RETURN 1.0; END"
        error = failure(analyze, expression_program('f("x")', prelude))
        assert error.kind is ErrorKind.INCOMPATIBLE_TYPES

    def test_call_wrong_arity(self, analyze):
        prelude = "DEF f(x: Integer): Decimal DO RETURN 1.0; END"
        error = failure(analyze, expression_program("f()", prelude))
        assert error.kind is ErrorKind.UNDEFINED_NAME

    def test_print_accepts_anything(self, analyze):
        analyze(program('print(1); print("s"); print(NIL); print(1.5);'))

    def test_print_returns_nil(self, analyze):
        assert local_type(analyze, "print(1)") is NIL

    def test_range_requires_integers(self, analyze):
        error = failure(analyze, program("FOR i IN range(0, 2.0) DO print(i); END"))
        assert error.kind is ErrorKind.INCOMPATIBLE_TYPES

    def test_every_expression_annotated(self, analyze):
        result = analyze(expression_program("1 + 2 * x", "LET x: Integer = 3;"))
        binary = result.source.methods[0].statements[0].value
        for node in (binary, binary.left, binary.right, binary.right.left, binary.right.right):
            assert result.annotations.type_of(node) is INTEGER
        assert result.annotations.variable_of(binary.right.right).name == "x"


class TestRecords:
    """Host-registered record types and host scopes."""

    def test_field_access(self, analyze):
        registry, host, _ = record_environment()
        result = analyze(program("LET a = origin.x;"), registry=registry, parent=host)
        stmt = result.source.methods[0].statements[0]
        assert result.annotations.variable_of(stmt).type is INTEGER

    def test_method_call(self, analyze):
        registry, host, point = record_environment()
        result = analyze(program("LET p = origin.shift(1);"), registry=registry, parent=host)
        stmt = result.source.methods[0].statements[0]
        assert result.annotations.variable_of(stmt).type is point

    def test_member_assignment(self, analyze):
        registry, host, _ = record_environment()
        analyze(program("origin.x = 5;"), registry=registry, parent=host)

    def test_unknown_member(self, analyze):
        registry, host, _ = record_environment()
        error = failure(analyze, program("LET a = origin.z;"), registry=registry, parent=host)
        assert error.kind is ErrorKind.UNDEFINED_NAME
        assert error.name == "z"

    def test_unknown_method_arity(self, analyze):
        registry, host, _ = record_environment()
        error = failure(analyze, program("LET a = origin.norm(1);"), registry=registry, parent=host)
        assert error.kind is ErrorKind.UNDEFINED_NAME

    def test_record_as_parameter_type(self, analyze):
        registry, host, _ = record_environment()
        analyze(
            "DEF xOf(p: Point): Integer DO RETURN p.x; END\n"
            + program("LET a = xOf(origin);"),
            registry=registry,
            parent=host,
        )

    def test_record_is_not_comparable(self, analyze):
        registry, host, _ = record_environment()
        error = failure(
            analyze, program("LET a = origin < origin;"), registry=registry, parent=host
        )
        assert error.kind is ErrorKind.NOT_COMPARABLE

    def test_access_on_builtin_type_fails(self, analyze):
        error = failure(analyze, expression_program("1.size"))
        assert error.kind is ErrorKind.UNDEFINED_NAME


class TestAnalyzerInterface:
    """Constructor options, diagnostics and the convenience function."""

    def test_module_level_analyze(self):
        tree = parse_source(MAIN)
        annotations = analyze_tree(tree)
        assert annotations.function_of(tree.methods[0]).name == "main"

    def test_tree_is_not_mutated(self, parse):
        tree = parse(MAIN)
        before = repr(tree)
        Analyzer().analyze(tree)
        assert repr(tree) == before

    def test_diagnostic_recorded_on_failure(self, parse):
        source = program("LET a = cuont;", "LET count: Integer = 1;")
        analyzer = Analyzer(source=source, filename="t.plc")
        with pytest.raises(AnalysisError):
            analyzer.analyze(parse(source))
        assert len(analyzer.diagnostics) == 1
        diagnostic = analyzer.diagnostics[0]
        assert diagnostic.code == "E0302"
        assert any("count" in help_msg for help_msg in diagnostic.helps)

    def test_no_diagnostics_without_source(self, parse):
        analyzer = Analyzer()
        with pytest.raises(AnalysisError):
            analyzer.analyze(parse(program("LET a = missing;")))
        assert analyzer.diagnostics == []

    def test_host_scope_is_visible(self, analyze):
        host = Scope()
        host.define_variable("limit", INTEGER)
        analyze(program("LET a = limit + 1;"), parent=host)
