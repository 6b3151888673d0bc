"""
Pytest configuration and shared fixtures for PLC Script tests.
"""

import io
from dataclasses import dataclass

import pytest

from plcscript.compiler.analyzer import Analyzer
from plcscript.compiler.annotations import Annotations
from plcscript.compiler.ast_nodes import Source
from plcscript.compiler.codegen import CodeGenerator
from plcscript.compiler.environment import Scope, TypeRegistry
from plcscript.compiler.lexer import Lexer
from plcscript.compiler.parser import Parser
from plcscript.compiler.tokens import Token
from plcscript.runtime.interpreter import Interpreter


@pytest.fixture
def lexer_factory():
    """Factory fixture for creating lexers."""

    def _create_lexer(source: str, filename: str = "test.plc") -> Lexer:
        return Lexer(source, filename)

    return _create_lexer


@pytest.fixture
def tokenize(lexer_factory):
    """Fixture to tokenize source code."""

    def _tokenize(source: str) -> list[Token]:
        return lexer_factory(source).tokenize()

    return _tokenize


@pytest.fixture
def parser_factory(tokenize):
    """Factory fixture for creating parsers from source."""

    def _create_parser(source: str) -> Parser:
        return Parser(tokenize(source), source, "test.plc")

    return _create_parser


@pytest.fixture
def parse(parser_factory):
    """Fixture to parse source code into a program tree."""

    def _parse(source: str) -> Source:
        return parser_factory(source).parse()

    return _parse


@dataclass
class AnalysisResult:
    """A parsed program with its annotations and the analyzer that made them."""

    source: Source
    annotations: Annotations
    analyzer: Analyzer


@pytest.fixture
def analyze(parse):
    """Fixture to parse and analyze source code."""

    def _analyze(
        source: str,
        registry: TypeRegistry | None = None,
        parent: Scope | None = None,
    ) -> AnalysisResult:
        tree = parse(source)
        analyzer = Analyzer(registry, parent, source, "test.plc")
        annotations = analyzer.analyze(tree)
        return AnalysisResult(tree, annotations, analyzer)

    return _analyze


@dataclass
class RunResult:
    """Exit status and printed output of a program run."""

    status: int
    output: str

    @property
    def lines(self) -> list[str]:
        return self.output.splitlines()


@pytest.fixture
def run_program(analyze):
    """Fixture to analyze, then execute source code, capturing `print` output."""

    def _run(source: str, decimal_scale: int = 1) -> RunResult:
        result = analyze(source)
        output = io.StringIO()
        status = Interpreter(output=output, decimal_scale=decimal_scale).run(result.source)
        return RunResult(status, output.getvalue())

    return _run


@pytest.fixture
def generate(analyze):
    """Fixture to analyze source code and generate Java."""

    def _generate(source: str, indent_size: int = 4) -> str:
        result = analyze(source)
        return CodeGenerator(indent_size).generate(result.source, result.annotations)

    return _generate


@pytest.fixture
def wrap_main():
    """Fixture to wrap statements in a `main()` returning 0."""

    def _wrap(body: str, prelude: str = "") -> str:
        return f"{prelude}\nDEF main(): Integer DO\n{body}\nRETURN 0;\nEND\n"

    return _wrap
