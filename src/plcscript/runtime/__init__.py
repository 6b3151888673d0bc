"""
PLC Script Runtime Package.

Runtime values and the tree-walking interpreter.
"""

from plcscript.runtime.interpreter import (
    DECIMAL_DIVISION_SCALE,
    Completion,
    Interpreter,
    run,
)
from plcscript.runtime.values import (
    NIL_VALUE,
    Value,
    boolean,
    character,
    decimal,
    integer,
    new_object,
    require_type,
    string,
)

__all__ = [
    "Interpreter",
    "Completion",
    "DECIMAL_DIVISION_SCALE",
    "run",
    "Value",
    "NIL_VALUE",
    "boolean",
    "integer",
    "decimal",
    "character",
    "string",
    "new_object",
    "require_type",
]
