"""
Lexical environments and the type registry.

`Scope` is the chained symbol table shared, as a data structure, by the
analyzer and the interpreter; each builds its own chain. Variables are keyed
by name and functions by (name, arity). A name may be shadowed in a child
scope but never redefined in the same scope.

`TypeRegistry` holds the named types a program may mention and
`is_assignable` / `require_assignable` implement the single compatibility
rule used wherever a value flows into a typed slot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

from plcscript.utils.errors import (
    AnalysisError,
    ErrorKind,
    KindedError,
    SourceLocation,
)


@dataclass(eq=False)
class Variable:
    """
    A named storage cell.

    During analysis `value` is unused; during evaluation it holds the
    runtime value and is overwritten by assignment.
    """

    name: str
    jvm_name: str
    type: PlcType
    value: Any = None
    location: Optional[SourceLocation] = None

    def __repr__(self) -> str:
        return f"Variable({self.name}: {self.type.name})"


@dataclass(eq=False)
class Function:
    """
    A named, arity-qualified callable.

    `function` takes the evaluated argument list and returns a value; the
    analyzer registers functions without one.
    """

    name: str
    jvm_name: str
    parameter_types: tuple[PlcType, ...]
    return_type: PlcType
    function: Optional[Callable[[list], Any]] = None
    location: Optional[SourceLocation] = None

    @property
    def arity(self) -> int:
        return len(self.parameter_types)

    def signature(self) -> str:
        params = ", ".join(t.name for t in self.parameter_types)
        return f"{self.name}({params}): {self.return_type.name}"

    def invoke(self, arguments: list) -> Any:
        if self.function is None:
            raise RuntimeError(f"function '{self.name}' has no implementation")
        return self.function(arguments)

    def __repr__(self) -> str:
        return f"Function({self.signature()})"


class Scope:
    """
    One frame of a lexical environment.

    Lookups walk outward through parents. Definitions only ever touch this
    frame, so a child may shadow an ancestor's binding without affecting it.

    Args:
        parent: Enclosing scope, or None for a root scope
        error_type: Exception class raised for failed definitions and
            lookups; defaults to the parent's, or AnalysisError at the root
    """

    def __init__(
        self,
        parent: Optional[Scope] = None,
        error_type: Optional[type[KindedError]] = None,
    ) -> None:
        self._parent = parent
        if error_type is None:
            error_type = parent.error_type if parent is not None else AnalysisError
        self.error_type = error_type
        self.variables: dict[str, Variable] = {}
        self.functions: dict[tuple[str, int], Function] = {}

    @property
    def parent(self) -> Optional[Scope]:
        return self._parent

    def child(self) -> Scope:
        """Create a new frame whose parent is this one."""
        return Scope(self)

    def _fail(self, kind: ErrorKind, message: str, location, name: str) -> KindedError:
        return self.error_type(kind, message, location, name=name)

    def define_variable(
        self,
        name: str,
        type: PlcType,
        value: Any = None,
        jvm_name: Optional[str] = None,
        location: Optional[SourceLocation] = None,
    ) -> Variable:
        if name in self.variables:
            raise self._fail(
                ErrorKind.DUPLICATE_DEFINITION,
                f"Variable '{name}' is already defined in this scope",
                location,
                name,
            )
        variable = Variable(name, jvm_name or name, type, value, location)
        self.variables[name] = variable
        return variable

    def define_function(
        self,
        name: str,
        parameter_types: tuple[PlcType, ...] | list[PlcType],
        return_type: PlcType,
        function: Optional[Callable[[list], Any]] = None,
        jvm_name: Optional[str] = None,
        location: Optional[SourceLocation] = None,
    ) -> Function:
        key = (name, len(parameter_types))
        if key in self.functions:
            raise self._fail(
                ErrorKind.DUPLICATE_DEFINITION,
                f"Function '{name}' with {key[1]} parameter(s) is already defined in this scope",
                location,
                name,
            )
        defined = Function(
            name, jvm_name or name, tuple(parameter_types), return_type, function, location
        )
        self.functions[key] = defined
        return defined

    def find_variable(self, name: str) -> Optional[Variable]:
        """Like lookup_variable, but returns None instead of failing."""
        scope: Optional[Scope] = self
        while scope is not None:
            if name in scope.variables:
                return scope.variables[name]
            scope = scope._parent
        return None

    def find_function(self, name: str, arity: int) -> Optional[Function]:
        """Like lookup_function, but returns None instead of failing."""
        scope: Optional[Scope] = self
        while scope is not None:
            if (name, arity) in scope.functions:
                return scope.functions[(name, arity)]
            scope = scope._parent
        return None

    def lookup_variable(self, name: str, location: Optional[SourceLocation] = None) -> Variable:
        variable = self.find_variable(name)
        if variable is None:
            raise self._fail(
                ErrorKind.UNDEFINED_NAME, f"Undefined variable '{name}'", location, name
            )
        return variable

    def lookup_function(
        self, name: str, arity: int, location: Optional[SourceLocation] = None
    ) -> Function:
        function = self.find_function(name, arity)
        if function is None:
            raise self._fail(
                ErrorKind.UNDEFINED_NAME,
                f"Undefined function '{name}' with {arity} argument(s)",
                location,
                name,
            )
        return function

    def chain(self) -> Iterator[Scope]:
        """Yield this scope and then each ancestor, innermost first."""
        scope: Optional[Scope] = self
        while scope is not None:
            yield scope
            scope = scope._parent

    def visible_names(self) -> list[str]:
        """All variable and function names reachable from this scope."""
        names: set[str] = set()
        for scope in self.chain():
            names.update(scope.variables)
            names.update(name for name, _ in scope.functions)
        return sorted(names)


# -----------------------------------------------------------------------------
# Types
# -----------------------------------------------------------------------------


@dataclass(eq=False)
class PlcType:
    """
    A named type.

    Types compare by identity. Record types keep their fields (as variables)
    and methods (as functions, receiver excluded) in `scope`.
    """

    name: str
    jvm_name: str
    scope: Scope = field(default_factory=Scope)

    def __repr__(self) -> str:
        return f"PlcType({self.name})"

    def __str__(self) -> str:
        return self.name


NIL = PlcType("Nil", "Void")
ANY = PlcType("Any", "Object")
COMPARABLE = PlcType("Comparable", "Comparable")
BOOLEAN = PlcType("Boolean", "boolean")
INTEGER = PlcType("Integer", "int")
DECIMAL = PlcType("Decimal", "double")
CHARACTER = PlcType("Character", "char")
STRING = PlcType("String", "String")
INTEGER_ITERABLE = PlcType("IntegerIterable", "Iterable<Integer>")

BUILTIN_TYPES: tuple[PlcType, ...] = (
    NIL,
    ANY,
    COMPARABLE,
    BOOLEAN,
    INTEGER,
    DECIMAL,
    CHARACTER,
    STRING,
    INTEGER_ITERABLE,
)

COMPARABLE_TYPES: tuple[PlcType, ...] = (INTEGER, DECIMAL, CHARACTER, STRING)


class TypeRegistry:
    """
    The catalog of types a program may name.

    Starts with the built-in types; hosts may add record types with
    `define_record`.
    """

    def __init__(self) -> None:
        self._types: dict[str, PlcType] = {t.name: t for t in BUILTIN_TYPES}

    def get(self, name: str, location: Optional[SourceLocation] = None) -> PlcType:
        if name not in self._types:
            raise AnalysisError(
                ErrorKind.UNDEFINED_NAME, f"Unknown type '{name}'", location, name=name
            )
        return self._types[name]

    def register(self, plc_type: PlcType) -> PlcType:
        if plc_type.name in self._types:
            raise AnalysisError(
                ErrorKind.DUPLICATE_DEFINITION,
                f"Type '{plc_type.name}' is already registered",
                name=plc_type.name,
            )
        self._types[plc_type.name] = plc_type
        return plc_type

    def define_record(self, name: str, jvm_name: Optional[str] = None) -> PlcType:
        """Register an empty record type; populate `scope` afterwards."""
        return self.register(PlcType(name, jvm_name or name))

    def names(self) -> list[str]:
        return list(self._types)

    def __contains__(self, name: object) -> bool:
        return name in self._types


def is_assignable(target: PlcType, source: PlcType) -> bool:
    """Whether a value of type `source` may be stored in a `target` slot."""
    if target is source or target is ANY:
        return True
    if target is COMPARABLE:
        return any(source is t for t in COMPARABLE_TYPES)
    return False


def require_assignable(
    target: PlcType,
    source: PlcType,
    location: Optional[SourceLocation] = None,
) -> None:
    """
    Raise unless `source` is assignable to `target`.

    Raises:
        AnalysisError: NOT_COMPARABLE when `target` is Comparable,
            INCOMPATIBLE_TYPES otherwise
    """
    if is_assignable(target, source):
        return
    if target is COMPARABLE:
        raise AnalysisError(
            ErrorKind.NOT_COMPARABLE,
            f"Type '{source.name}' is not Comparable",
            location,
        )
    raise AnalysisError(
        ErrorKind.INCOMPATIBLE_TYPES,
        f"Expected type '{target.name}', received '{source.name}'",
        location,
    )
