"""
Token definitions for the PLC script lexer.

This module defines every token type the language recognizes: keywords,
operators, punctuation and literals.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

from plcscript.utils.errors import SourceLocation


class TokenType(Enum):
    """Enumeration of all token types."""

    # End of file
    EOF = auto()

    # Literals
    INTEGER = auto()
    DECIMAL = auto()
    CHARACTER = auto()
    STRING = auto()

    # Identifiers
    IDENTIFIER = auto()

    # Keywords
    LET = auto()
    DEF = auto()
    DO = auto()
    END = auto()
    IF = auto()
    ELSE = auto()
    FOR = auto()
    IN = auto()
    WHILE = auto()
    RETURN = auto()
    NIL = auto()
    TRUE = auto()
    FALSE = auto()
    AND = auto()
    OR = auto()

    # Comparison operators
    LT = auto()  # <
    LE = auto()  # <=
    GT = auto()  # >
    GE = auto()  # >=
    EQ = auto()  # ==
    NE = auto()  # !=

    # Arithmetic operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()

    # Punctuation
    ASSIGN = auto()  # =
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    SEMICOLON = auto()
    COLON = auto()
    DOT = auto()


# Keywords are upper case; `let` is an ordinary identifier
KEYWORDS: dict[str, TokenType] = {
    "LET": TokenType.LET,
    "DEF": TokenType.DEF,
    "DO": TokenType.DO,
    "END": TokenType.END,
    "IF": TokenType.IF,
    "ELSE": TokenType.ELSE,
    "FOR": TokenType.FOR,
    "IN": TokenType.IN,
    "WHILE": TokenType.WHILE,
    "RETURN": TokenType.RETURN,
    "NIL": TokenType.NIL,
    "TRUE": TokenType.TRUE,
    "FALSE": TokenType.FALSE,
    "AND": TokenType.AND,
    "OR": TokenType.OR,
}

SINGLE_CHAR_TOKENS: dict[str, TokenType] = {
    "<": TokenType.LT,
    ">": TokenType.GT,
    "=": TokenType.ASSIGN,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ",": TokenType.COMMA,
    ";": TokenType.SEMICOLON,
    ":": TokenType.COLON,
    ".": TokenType.DOT,
}

# Checked before the single character table
DOUBLE_CHAR_TOKENS: dict[str, TokenType] = {
    "<=": TokenType.LE,
    ">=": TokenType.GE,
    "==": TokenType.EQ,
    "!=": TokenType.NE,
}

# Tokens after which a value is complete, so a following sign is an operator
OPERAND_END_TOKENS: frozenset[TokenType] = frozenset(
    {
        TokenType.INTEGER,
        TokenType.DECIMAL,
        TokenType.CHARACTER,
        TokenType.STRING,
        TokenType.IDENTIFIER,
        TokenType.NIL,
        TokenType.TRUE,
        TokenType.FALSE,
        TokenType.RPAREN,
    }
)


@dataclass(slots=True)
class Token:
    """
    Represents a single token from the source code.

    Attributes:
        type: The type of this token
        value: The literal value (int, Decimal, str) or the lexeme text
        location: Source location of this token
        lexeme: The exact source text of the token
    """

    type: TokenType
    value: Any
    location: SourceLocation
    lexeme: str = ""

    def __repr__(self) -> str:
        if self.value is not None:
            return f"Token({self.type.name}, {self.value!r}, {self.location})"
        return f"Token({self.type.name}, {self.location})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Token):
            return self.type == other.type and self.value == other.value
        if isinstance(other, TokenType):
            return self.type == other
        return NotImplemented

    @property
    def is_literal(self) -> bool:
        """Check if this token represents a literal value."""
        return self.type in {
            TokenType.INTEGER,
            TokenType.DECIMAL,
            TokenType.CHARACTER,
            TokenType.STRING,
        }

    @property
    def is_keyword(self) -> bool:
        return self.type in KEYWORDS.values()

    @property
    def width(self) -> int:
        """Number of source characters covered, used for underlines."""
        return max(1, len(self.lexeme))
