"""
PLC Script - a small imperative scripting language.

Source text is lexed, parsed, statically analyzed against a simple type
system, then either executed by a tree-walking interpreter or translated to
a Java class.
"""

from plcscript.compiler.analyzer import Analyzer
from plcscript.compiler.codegen import CodeGenerator
from plcscript.compiler.lexer import Lexer
from plcscript.compiler.parser import Parser
from plcscript.pipeline import (
    analyze_source,
    check_source,
    compile_file,
    generate_source,
    parse_source,
    run_source,
)
from plcscript.runtime.interpreter import Interpreter

__version__ = "0.1.0"
__all__ = [
    "parse_source",
    "analyze_source",
    "check_source",
    "generate_source",
    "run_source",
    "compile_file",
    "Lexer",
    "Parser",
    "Analyzer",
    "Interpreter",
    "CodeGenerator",
]
