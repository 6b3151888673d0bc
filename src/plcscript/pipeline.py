"""
End-to-end helpers: source text in, checked program, Java text or exit
status out.

Each stage is fail-fast. A failure raises the stage's `PlcError` subclass;
`check_source` instead returns the rendered diagnostic so tools can show it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, TextIO

from plcscript.compiler.analyzer import Analyzer
from plcscript.compiler.annotations import Annotations
from plcscript.compiler.ast_nodes import Source
from plcscript.compiler.codegen import CodeGenerator
from plcscript.compiler.environment import Scope, TypeRegistry
from plcscript.compiler.lexer import Lexer
from plcscript.compiler.parser import Parser
from plcscript.runtime.interpreter import DECIMAL_DIVISION_SCALE, Interpreter
from plcscript.utils.diagnostics import Diagnostic, DiagnosticEmitter
from plcscript.utils.errors import AnalysisError, LexerError, ParserError, PlcError

logger = logging.getLogger(__name__)


@dataclass
class AnalyzedProgram:
    """
    A parsed program together with its analysis results.

    Attributes:
        source: The root node
        annotations: Resolved types and bindings
        analyzer: The analyzer that produced them (its `globals` scope
            holds the program's fields and methods)
    """

    source: Source
    annotations: Annotations
    analyzer: Analyzer


@dataclass
class CheckResult:
    """Outcome of `check_source`: success, or the first diagnostic."""

    program: Optional[AnalyzedProgram] = None
    error: Optional[PlcError] = None
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None

    def render(self, source: str, use_color: bool = True) -> str:
        if self.success:
            return "OK"
        if self.diagnostics:
            return "\n\n".join(d.render(source, use_color) for d in self.diagnostics)
        return str(self.error)


def parse_source(source: str, filename: str = "<input>") -> Source:
    """Lex and parse source text."""
    logger.debug("Lexing %s", filename)
    tokens = Lexer(source, filename).tokenize()
    logger.debug("Parsing %d token(s)", len(tokens))
    return Parser(tokens, source, filename).parse()


def analyze_source(
    source: str,
    filename: str = "<input>",
    registry: Optional[TypeRegistry] = None,
    parent: Optional[Scope] = None,
) -> AnalyzedProgram:
    """Lex, parse and analyze source text."""
    tree = parse_source(source, filename)
    analyzer = Analyzer(registry, parent, source, filename)
    annotations = analyzer.analyze(tree)
    logger.debug("Analysis of %s succeeded", filename)
    return AnalyzedProgram(tree, annotations, analyzer)


def check_source(source: str, filename: str = "<input>") -> CheckResult:
    """
    Analyze source text, capturing the first error instead of raising.

    The result carries a rich diagnostic for lexer, parser and analyzer
    failures alike.
    """
    try:
        tokens = Lexer(source, filename).tokenize()
    except LexerError as e:
        emitter = DiagnosticEmitter(source, filename)
        return CheckResult(error=e, diagnostics=[emitter.report(e)])

    parser = Parser(tokens, source, filename)
    try:
        tree = parser.parse()
    except ParserError as e:
        return CheckResult(error=e, diagnostics=list(parser.diagnostics))

    analyzer = Analyzer(source=source, filename=filename)
    try:
        annotations = analyzer.analyze(tree)
    except AnalysisError as e:
        return CheckResult(error=e, diagnostics=list(analyzer.diagnostics))
    return CheckResult(program=AnalyzedProgram(tree, annotations, analyzer))


def generate_source(
    source: str,
    filename: str = "<input>",
    indent_size: int = 4,
    class_name: str = "Main",
) -> str:
    """Analyze source text and return the generated Java class."""
    program = analyze_source(source, filename)
    return CodeGenerator(indent_size, class_name).generate(program.source, program.annotations)


def run_source(
    source: str,
    filename: str = "<input>",
    output: Optional[TextIO] = None,
    decimal_scale: int = DECIMAL_DIVISION_SCALE,
) -> int:
    """
    Analyze, then execute source text.

    Returns:
        The Integer returned by `main()`
    """
    program = analyze_source(source, filename)
    interpreter = Interpreter(output=output, decimal_scale=decimal_scale)
    logger.debug("Executing %s", filename)
    return interpreter.run(program.source)


def compile_file(
    filepath: str | Path,
    output_path: str | Path | None = None,
    indent_size: int = 4,
) -> Path:
    """
    Compile a script file to a Java file.

    Args:
        filepath: The script to compile
        output_path: Destination; `Main.java` beside the input by default

    Returns:
        The path written
    """
    path = Path(filepath)
    source = path.read_text(encoding="utf-8")
    java_code = generate_source(source, str(path), indent_size)

    destination = Path(output_path) if output_path else path.with_name("Main.java")
    destination.write_text(java_code, encoding="utf-8")
    logger.info("Wrote %s", destination)
    return destination
