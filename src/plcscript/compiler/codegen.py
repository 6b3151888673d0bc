"""
Java code generator for PLC scripts.

Emits one Java class from an analyzed program. Everything the output needs
(Java type names, resolved variables and functions) is read from the
analyzer's `Annotations`; nothing is re-derived here.
"""

from typing import Optional

from plcscript.compiler.annotations import Annotations
from plcscript.compiler.ast_nodes import (
    AccessExpression,
    AssignmentStatement,
    BaseASTVisitor,
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
    Statement,
    StringLiteral,
    WhileStatement,
)
from plcscript.utils.errors import CodeGenError

JAVA_OPERATORS: dict[BinaryOperator, str] = {
    BinaryOperator.AND: "&&",
    BinaryOperator.OR: "||",
}

JAVA_ESCAPES: dict[str, str] = {
    "\b": "\\b",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\\": "\\\\",
}

RANGE_HELPER = (
    "static Iterable<Integer> range(int start, int end) {",
    "return java.util.stream.IntStream.range(start, end).boxed()::iterator;",
    "}",
)


def escape_java(text: str, quote: str) -> str:
    """Escape text for a Java literal delimited by `quote`."""
    escaped = []
    for char in text:
        if char == quote:
            escaped.append("\\" + char)
        else:
            escaped.append(JAVA_ESCAPES.get(char, char))
    return "".join(escaped)


class CodeGenerator(BaseASTVisitor):
    """
    Generates Java source from an analyzed program.

    Statement visitors emit lines; expression visitors return strings.

    Usage:
        generator = CodeGenerator()
        java_code = generator.generate(source, annotations)
    """

    def __init__(self, indent_size: int = 4, class_name: str = "Main") -> None:
        """
        Initialize the code generator.

        Args:
            indent_size: Number of spaces per indentation level
            class_name: Name of the generated Java class
        """
        self.indent_size = indent_size
        self.class_name = class_name

        self._indent_level = 0
        self._output: list[str] = []
        self._annotations = Annotations()
        self._needs_range_helper = False

    def generate(self, source: Source, annotations: Annotations) -> str:
        """
        Generate Java code for a whole program.

        Args:
            source: The root node
            annotations: The analyzer's results for `source`

        Returns:
            The Java source text

        Raises:
            CodeGenError: If part of the tree has no analysis results
        """
        self._indent_level = 0
        self._output = []
        self._annotations = annotations
        self._needs_range_helper = False

        try:
            self.visit(source)
        except KeyError as e:
            raise CodeGenError(f"Program has not been analyzed: {e.args[0]}") from e

        return "\n".join(self._output) + "\n"

    # -------------------------------------------------------------------------
    # Output helpers
    # -------------------------------------------------------------------------

    def _emit(self, text: str) -> None:
        """Emit a line of code with current indentation."""
        if text:
            indent = " " * (self._indent_level * self.indent_size)
            self._output.append(f"{indent}{text}")
        else:
            self._output.append("")

    def _indent(self) -> None:
        self._indent_level += 1

    def _dedent(self) -> None:
        self._indent_level = max(0, self._indent_level - 1)

    def _emit_block(self, header: str, statements: tuple[Statement, ...]) -> None:
        """Emit `header {`, the statements one level deeper, then `}`."""
        if not statements:
            self._emit(f"{header} {{}}")
            return
        self._emit(f"{header} {{")
        self._indent()
        for stmt in statements:
            self.visit(stmt)
        self._dedent()
        self._emit("}")

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def visit_source(self, node: Source) -> None:
        self._emit(f"public class {self.class_name} {{")
        self._emit("")
        self._indent()

        if node.fields:
            for field_node in node.fields:
                self.visit(field_node)
            self._emit("")

        self._emit("public static void main(String[] args) {")
        self._indent()
        self._emit(f"System.exit(new {self.class_name}().main());")
        self._dedent()
        self._emit("}")
        self._emit("")

        for method in node.methods:
            self.visit(method)
            self._emit("")

        if self._needs_range_helper:
            for line in RANGE_HELPER:
                if line == "}":
                    self._dedent()
                self._emit(line)
                if line.endswith("{"):
                    self._indent()
            self._emit("")

        self._dedent()
        self._emit("}")

    def visit_field(self, node: Field) -> None:
        self._emit(self._declaration(node, node.value) + ";")

    def visit_method(self, node: Method) -> None:
        function = self._annotations.function_of(node)
        params = ", ".join(
            f"{plc_type.jvm_name} {param.name}"
            for param, plc_type in zip(node.parameters, function.parameter_types)
        )
        header = f"{function.return_type.jvm_name} {function.jvm_name}({params})"
        self._emit_block(header, node.statements)

    def _declaration(self, node, value) -> str:
        variable = self._annotations.variable_of(node)
        text = f"{variable.type.jvm_name} {variable.jvm_name}"
        if value is not None:
            text += f" = {self.visit(value)}"
        return text

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def visit_expression_statement(self, node: ExpressionStatement) -> None:
        self._emit(f"{self.visit(node.expression)};")

    def visit_declaration_statement(self, node: DeclarationStatement) -> None:
        self._emit(self._declaration(node, node.value) + ";")

    def visit_assignment_statement(self, node: AssignmentStatement) -> None:
        self._emit(f"{self.visit(node.receiver)} = {self.visit(node.value)};")

    def visit_if_statement(self, node: IfStatement) -> None:
        self._emit(f"if ({self.visit(node.condition)}) {{")
        self._indent()
        for stmt in node.then_statements:
            self.visit(stmt)
        self._dedent()
        if node.else_statements:
            self._emit("} else {")
            self._indent()
            for stmt in node.else_statements:
                self.visit(stmt)
            self._dedent()
        self._emit("}")

    def visit_for_statement(self, node: ForStatement) -> None:
        variable = self._annotations.variable_of(node)
        header = f"for (int {variable.jvm_name} : {self.visit(node.iterable)})"
        self._emit_block(header, node.statements)

    def visit_while_statement(self, node: WhileStatement) -> None:
        self._emit_block(f"while ({self.visit(node.condition)})", node.statements)

    def visit_return_statement(self, node: ReturnStatement) -> None:
        self._emit(f"return {self.visit(node.value)};")

    # -------------------------------------------------------------------------
    # Expressions
    # -------------------------------------------------------------------------

    def visit_nil_literal(self, node: NilLiteral) -> str:
        return "null"

    def visit_boolean_literal(self, node: BooleanLiteral) -> str:
        return "true" if node.value else "false"

    def visit_integer_literal(self, node: IntegerLiteral) -> str:
        return str(node.value)

    def visit_decimal_literal(self, node: DecimalLiteral) -> str:
        return str(node.value)

    def visit_character_literal(self, node: CharacterLiteral) -> str:
        quoted = escape_java(node.value, "'")
        return f"'{quoted}'"

    def visit_string_literal(self, node: StringLiteral) -> str:
        quoted = escape_java(node.value, '"')
        return f'"{quoted}"'

    def visit_group_expression(self, node: GroupExpression) -> str:
        return f"({self.visit(node.expression)})"

    def visit_binary_expression(self, node: BinaryExpression) -> str:
        op = JAVA_OPERATORS.get(node.operator, node.operator.value)
        return f"{self.visit(node.left)} {op} {self.visit(node.right)}"

    def visit_access_expression(self, node: AccessExpression) -> str:
        variable = self._annotations.variable_of(node)
        if node.receiver is not None:
            return f"{self.visit(node.receiver)}.{variable.jvm_name}"
        return variable.jvm_name

    def visit_function_expression(self, node: FunctionExpression) -> str:
        function = self._annotations.function_of(node)
        if function.name == "range" and function.location is None and node.receiver is None:
            self._needs_range_helper = True
        args = ", ".join(self.visit(arg) for arg in node.arguments)
        if node.receiver is not None:
            return f"{self.visit(node.receiver)}.{function.jvm_name}({args})"
        return f"{function.jvm_name}({args})"


def generate(
    source: Source,
    annotations: Annotations,
    indent_size: int = 4,
    class_name: Optional[str] = None,
) -> str:
    """Convenience function to generate Java code for an analyzed program."""
    return CodeGenerator(indent_size, class_name or "Main").generate(source, annotations)
