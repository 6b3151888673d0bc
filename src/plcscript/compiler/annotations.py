"""
Analysis results recorded beside the program tree.

Nodes are immutable, so the analyzer stores what it resolves (static types,
variables, functions) in an `Annotations` table keyed by node identity. Each
entry is written once; a second write for the same node and slot is a bug in
the analyzer and raises.
"""

from dataclasses import dataclass, field
from typing import Optional

from plcscript.compiler.ast_nodes import ASTNode
from plcscript.compiler.environment import Function, PlcType, Variable


@dataclass(slots=True)
class NodeAnnotation:
    """Everything resolved for one node."""

    node: ASTNode
    type: Optional[PlcType] = None
    variable: Optional[Variable] = None
    function: Optional[Function] = None


@dataclass
class Annotations:
    """Write-once side table from node identity to its resolved annotation."""

    _entries: dict[int, NodeAnnotation] = field(default_factory=dict)

    def _entry(self, node: ASTNode) -> NodeAnnotation:
        # The entry keeps the node alive, so its id cannot be reused
        entry = self._entries.get(id(node))
        if entry is None:
            entry = NodeAnnotation(node)
            self._entries[id(node)] = entry
        return entry

    def _set(self, node: ASTNode, slot: str, value) -> None:
        entry = self._entry(node)
        if getattr(entry, slot) is not None:
            raise ValueError(f"{type(node).__name__} already has a resolved {slot}")
        setattr(entry, slot, value)

    def set_type(self, node: ASTNode, plc_type: PlcType) -> None:
        self._set(node, "type", plc_type)

    def set_variable(self, node: ASTNode, variable: Variable) -> None:
        self._set(node, "variable", variable)

    def set_function(self, node: ASTNode, function: Function) -> None:
        self._set(node, "function", function)

    def get(self, node: ASTNode) -> Optional[NodeAnnotation]:
        return self._entries.get(id(node))

    def type_of(self, node: ASTNode) -> PlcType:
        entry = self.get(node)
        if entry is None or entry.type is None:
            raise KeyError(f"no resolved type for {type(node).__name__}")
        return entry.type

    def variable_of(self, node: ASTNode) -> Variable:
        entry = self.get(node)
        if entry is None or entry.variable is None:
            raise KeyError(f"no resolved variable for {type(node).__name__}")
        return entry.variable

    def function_of(self, node: ASTNode) -> Function:
        entry = self.get(node)
        if entry is None or entry.function is None:
            raise KeyError(f"no resolved function for {type(node).__name__}")
        return entry.function

    def __contains__(self, node: object) -> bool:
        return id(node) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries.values())
