"""
Unit tests for scopes, the type registry and the assignability rule.
"""

import pytest

from plcscript.compiler.environment import (
    ANY,
    BOOLEAN,
    BUILTIN_TYPES,
    CHARACTER,
    COMPARABLE,
    DECIMAL,
    INTEGER,
    INTEGER_ITERABLE,
    NIL,
    STRING,
    PlcType,
    Scope,
    TypeRegistry,
    is_assignable,
    require_assignable,
)
from plcscript.utils.errors import AnalysisError, ErrorKind, EvaluationError


class TestScopeDefinitions:
    """Defining and finding names in one frame."""

    def test_define_and_lookup_variable(self):
        scope = Scope()
        variable = scope.define_variable("x", INTEGER)
        assert scope.lookup_variable("x") is variable
        assert variable.jvm_name == "x"
        assert variable.type is INTEGER

    def test_custom_jvm_name(self):
        variable = Scope().define_variable("x", INTEGER, jvm_name="x_0")
        assert variable.jvm_name == "x_0"

    def test_duplicate_variable_fails(self):
        scope = Scope()
        scope.define_variable("x", INTEGER)
        with pytest.raises(AnalysisError) as exc_info:
            scope.define_variable("x", STRING)
        assert exc_info.value.kind is ErrorKind.DUPLICATE_DEFINITION
        assert exc_info.value.name == "x"

    def test_functions_are_keyed_by_arity(self):
        scope = Scope()
        one = scope.define_function("f", (INTEGER,), INTEGER)
        two = scope.define_function("f", (INTEGER, INTEGER), INTEGER)
        assert scope.lookup_function("f", 1) is one
        assert scope.lookup_function("f", 2) is two
        assert one.arity == 1

    def test_duplicate_function_fails(self):
        scope = Scope()
        scope.define_function("f", (), NIL)
        with pytest.raises(AnalysisError) as exc_info:
            scope.define_function("f", (), INTEGER)
        assert exc_info.value.kind is ErrorKind.DUPLICATE_DEFINITION

    def test_variable_and_function_namespaces_are_separate(self):
        scope = Scope()
        scope.define_variable("f", INTEGER)
        scope.define_function("f", (), INTEGER)
        assert scope.find_variable("f").type is INTEGER
        assert scope.find_function("f", 0).return_type is INTEGER

    def test_undefined_variable(self):
        with pytest.raises(AnalysisError) as exc_info:
            Scope().lookup_variable("missing")
        assert exc_info.value.kind is ErrorKind.UNDEFINED_NAME

    def test_undefined_function_wrong_arity(self):
        scope = Scope()
        scope.define_function("f", (INTEGER,), INTEGER)
        assert scope.find_function("f", 2) is None
        with pytest.raises(AnalysisError) as exc_info:
            scope.lookup_function("f", 2)
        assert exc_info.value.kind is ErrorKind.UNDEFINED_NAME

    def test_function_signature_and_invoke(self):
        function = Scope().define_function(
            "twice", (INTEGER,), INTEGER, lambda args: args[0] * 2
        )
        assert function.signature() == "twice(Integer): Integer"
        assert function.invoke([21]) == 42

    def test_invoke_without_implementation(self):
        function = Scope().define_function("f", (), NIL)
        with pytest.raises(RuntimeError):
            function.invoke([])


class TestScopeNesting:
    """Lookups walk outward; definitions stay local."""

    def test_child_sees_parent(self):
        parent = Scope()
        variable = parent.define_variable("x", INTEGER)
        child = parent.child()
        assert child.parent is parent
        assert child.lookup_variable("x") is variable

    def test_child_may_shadow(self):
        parent = Scope()
        outer = parent.define_variable("x", INTEGER)
        child = parent.child()
        inner = child.define_variable("x", STRING)
        assert child.lookup_variable("x") is inner
        assert parent.lookup_variable("x") is outer

    def test_child_definition_invisible_to_parent(self):
        parent = Scope()
        parent.child().define_variable("y", INTEGER)
        assert parent.find_variable("y") is None

    def test_chain_and_visible_names(self):
        root = Scope()
        root.define_function("print", (ANY,), NIL)
        child = root.child()
        child.define_variable("x", INTEGER)
        assert list(child.chain()) == [child, root]
        assert child.visible_names() == ["print", "x"]

    def test_error_type_is_inherited(self):
        root = Scope(error_type=EvaluationError)
        child = root.child()
        with pytest.raises(EvaluationError):
            child.lookup_variable("missing")

    def test_explicit_error_type_wins(self):
        root = Scope(error_type=EvaluationError)
        child = Scope(root, error_type=AnalysisError)
        with pytest.raises(AnalysisError):
            child.lookup_variable("missing")


class TestTypeRegistry:
    """The catalog of nameable types."""

    def test_builtins_present(self):
        registry = TypeRegistry()
        for plc_type in BUILTIN_TYPES:
            assert registry.get(plc_type.name) is plc_type

    def test_unknown_type(self):
        with pytest.raises(AnalysisError) as exc_info:
            TypeRegistry().get("Widget")
        assert exc_info.value.kind is ErrorKind.UNDEFINED_NAME

    def test_define_record(self):
        registry = TypeRegistry()
        point = registry.define_record("Point")
        assert "Point" in registry
        assert registry.get("Point") is point
        assert point.jvm_name == "Point"

    def test_duplicate_registration(self):
        registry = TypeRegistry()
        with pytest.raises(AnalysisError) as exc_info:
            registry.define_record("Integer")
        assert exc_info.value.kind is ErrorKind.DUPLICATE_DEFINITION

    def test_registries_are_independent(self):
        first = TypeRegistry()
        first.define_record("Point")
        assert "Point" not in TypeRegistry()

    def test_record_scope_holds_members(self):
        point = PlcType("Point", "Point")
        point.scope.define_variable("x", INTEGER)
        assert point.scope.find_variable("x").type is INTEGER

    def test_types_compare_by_identity(self):
        assert PlcType("Integer", "int") is not INTEGER
        assert PlcType("Integer", "int") != INTEGER


class TestAssignability:
    """The assignability rule."""

    @pytest.mark.parametrize("plc_type", BUILTIN_TYPES)
    def test_same_type(self, plc_type):
        assert is_assignable(plc_type, plc_type)

    @pytest.mark.parametrize("plc_type", BUILTIN_TYPES)
    def test_anything_to_any(self, plc_type):
        assert is_assignable(ANY, plc_type)

    @pytest.mark.parametrize("plc_type", [INTEGER, DECIMAL, CHARACTER, STRING])
    def test_comparable_members(self, plc_type):
        assert is_assignable(COMPARABLE, plc_type)

    @pytest.mark.parametrize("plc_type", [BOOLEAN, NIL, ANY, INTEGER_ITERABLE])
    def test_not_comparable(self, plc_type):
        assert not is_assignable(COMPARABLE, plc_type)

    def test_no_numeric_widening(self):
        assert not is_assignable(DECIMAL, INTEGER)
        assert not is_assignable(INTEGER, DECIMAL)

    def test_any_is_not_assignable_to_narrower(self):
        assert not is_assignable(INTEGER, ANY)

    def test_record_to_any_only(self):
        point = PlcType("Point", "Point")
        assert is_assignable(ANY, point)
        assert not is_assignable(COMPARABLE, point)
        assert not is_assignable(STRING, point)

    def test_require_assignable_comparable(self):
        with pytest.raises(AnalysisError) as exc_info:
            require_assignable(COMPARABLE, BOOLEAN)
        assert exc_info.value.kind is ErrorKind.NOT_COMPARABLE

    def test_require_assignable_incompatible(self):
        with pytest.raises(AnalysisError) as exc_info:
            require_assignable(INTEGER, STRING)
        assert exc_info.value.kind is ErrorKind.INCOMPATIBLE_TYPES
        assert "Integer" in exc_info.value.message

    def test_require_assignable_passes(self):
        require_assignable(ANY, STRING)
