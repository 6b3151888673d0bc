"""
PLC Script Compiler Package.

This package contains the front end and the static checker:
- Lexer: Tokenizes source text
- Parser: Builds the program tree from tokens
- AST: Node definitions for the program tree
- Environment: Scopes, the type registry and the assignability rule
- Analyzer: Name resolution and type checking into an annotation table
- CodeGen: Emits Java source from an analyzed program
"""

from plcscript.compiler.analyzer import Analyzer, analyze
from plcscript.compiler.annotations import Annotations, NodeAnnotation
from plcscript.compiler.codegen import CodeGenerator, generate
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
    Function,
    PlcType,
    Scope,
    TypeRegistry,
    Variable,
    is_assignable,
    require_assignable,
)
from plcscript.compiler.lexer import Lexer, tokenize
from plcscript.compiler.parser import Parser, parse
from plcscript.compiler.tokens import Token, TokenType

__all__ = [
    # Front end
    "Lexer",
    "tokenize",
    "Token",
    "TokenType",
    "Parser",
    "parse",
    # Environment and types
    "Scope",
    "Variable",
    "Function",
    "PlcType",
    "TypeRegistry",
    "is_assignable",
    "require_assignable",
    "BUILTIN_TYPES",
    "NIL",
    "ANY",
    "COMPARABLE",
    "BOOLEAN",
    "INTEGER",
    "DECIMAL",
    "CHARACTER",
    "STRING",
    "INTEGER_ITERABLE",
    # Analysis
    "Analyzer",
    "analyze",
    "Annotations",
    "NodeAnnotation",
    # Code generation
    "CodeGenerator",
    "generate",
]
