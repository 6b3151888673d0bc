"""
PLC Script Lexer (Tokenizer).

Transforms source text into a stream of tokens with source locations.
"""

from decimal import Decimal
from typing import Iterator, Optional

from plcscript.compiler.tokens import (
    DOUBLE_CHAR_TOKENS,
    KEYWORDS,
    OPERAND_END_TOKENS,
    SINGLE_CHAR_TOKENS,
    Token,
    TokenType,
)
from plcscript.utils.errors import LexerError, SourceLocation

WHITESPACE = " \b\n\r\t"
DIGITS = "0123456789"

ESCAPE_SEQUENCES: dict[str, str] = {
    "b": "\b",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "'": "'",
    '"': '"',
    "\\": "\\",
}


class Lexer:
    """
    Tokenizer for PLC script source code.

    The lexer supports:
    - Identifiers and upper-case keywords
    - Integer and decimal literals, optionally signed
    - Character and string literals with backslash escapes
    - `//` line comments

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()
    """

    def __init__(self, source: str, filename: Optional[str] = None) -> None:
        """
        Initialize the lexer with source code.

        Args:
            source: The source code to tokenize
            filename: Optional filename for error reporting
        """
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: list[Token] = []

        # Start of the current line, for error reporting
        self._line_start = 0

    @property
    def _current_char(self) -> Optional[str]:
        """Return the current character or None if at end."""
        if self.pos >= len(self.source):
            return None
        return self.source[self.pos]

    @property
    def _peek_char(self) -> Optional[str]:
        """Return the next character without consuming it."""
        peek_pos = self.pos + 1
        if peek_pos >= len(self.source):
            return None
        return self.source[peek_pos]

    def _location(self) -> SourceLocation:
        """Create a SourceLocation for the current position."""
        return SourceLocation(
            line=self.line,
            column=self.column,
            offset=self.pos,
            filename=self.filename,
        )

    def _current_line_text(self) -> str:
        """Extract the current line of source for error messages."""
        end = self.source.find("\n", self._line_start)
        if end == -1:
            end = len(self.source)
        return self.source[self._line_start:end]

    def _advance(self) -> str:
        """Consume and return the current character."""
        char = self.source[self.pos]
        self.pos += 1

        if char == "\n":
            self.line += 1
            self.column = 1
            self._line_start = self.pos
        else:
            self.column += 1

        return char

    def _error(self, message: str, location: Optional[SourceLocation] = None) -> LexerError:
        return LexerError(message, location or self._location(), self._current_line_text())

    def _make_token(self, token_type: TokenType, value, start: SourceLocation) -> Token:
        return Token(token_type, value, start, self.source[start.offset:self.pos])

    def _skip_whitespace_and_comments(self) -> None:
        while self._current_char is not None:
            if self._current_char in WHITESPACE:
                self._advance()
            elif self._current_char == "/" and self._peek_char == "/":
                while self._current_char is not None and self._current_char != "\n":
                    self._advance()
            else:
                break

    def _read_escape(self) -> str:
        """Consume a backslash escape and return the character it denotes."""
        self._advance()  # backslash
        char = self._current_char
        if char is None or char not in ESCAPE_SEQUENCES:
            shown = "end of input" if char is None else f"\\{char}"
            raise self._error(f"Invalid escape sequence: {shown}")
        self._advance()
        return ESCAPE_SEQUENCES[char]

    def _read_character(self) -> Token:
        """
        Read a character literal such as 'a' or '\\n'.

        Returns:
            A CHARACTER token whose value is a one-character string.
        """
        start_loc = self._location()
        self._advance()  # opening quote

        char = self._current_char
        if char is None or char in "'\n\r":
            raise self._error("Invalid or missing character in character literal")
        if char == "\\":
            value = self._read_escape()
        else:
            value = self._advance()

        if self._current_char != "'":
            raise self._error("Unterminated character literal", start_loc)
        self._advance()
        return self._make_token(TokenType.CHARACTER, value, start_loc)

    def _read_string(self) -> Token:
        """
        Read a double-quoted string literal on a single line.

        Returns:
            A STRING token with escapes already applied.
        """
        start_loc = self._location()
        self._advance()  # opening quote

        value_chars: list[str] = []
        while True:
            char = self._current_char
            if char is None:
                raise self._error("Unterminated string literal", start_loc)
            if char in "\n\r":
                raise self._error("Newline in string literal (use \\n for newlines)")
            if char == '"':
                self._advance()
                break
            if char == "\\":
                value_chars.append(self._read_escape())
            else:
                value_chars.append(self._advance())

        return self._make_token(TokenType.STRING, "".join(value_chars), start_loc)

    def _read_number(self) -> Token:
        """
        Read an integer or decimal literal with an optional leading sign.

        Decimals need digits on both sides of the point: `1.0`, not `1.`.
        """
        start_loc = self._location()
        num_chars: list[str] = []

        if self._current_char in "+-":
            num_chars.append(self._advance())

        while self._current_char is not None and self._current_char in DIGITS:
            num_chars.append(self._advance())

        if (
            self._current_char == "."
            and self._peek_char is not None
            and self._peek_char in DIGITS
        ):
            num_chars.append(self._advance())
            while self._current_char is not None and self._current_char in DIGITS:
                num_chars.append(self._advance())
            return self._make_token(TokenType.DECIMAL, Decimal("".join(num_chars)), start_loc)

        text = "".join(num_chars)
        try:
            value = int(text)
        except ValueError:
            raise self._error(
                f"Integer literal of {len(text)} characters is too long", start_loc
            ) from None
        return self._make_token(TokenType.INTEGER, value, start_loc)

    def _read_identifier_or_keyword(self) -> Token:
        """
        Read an identifier or keyword.

        Identifiers start with a letter or underscore and contain letters,
        digits and underscores.
        """
        start_loc = self._location()
        while self._current_char is not None and (
            self._current_char.isascii()
            and (self._current_char.isalnum() or self._current_char == "_")
        ):
            self._advance()

        text = self.source[start_loc.offset:self.pos]
        token_type = KEYWORDS.get(text, TokenType.IDENTIFIER)
        return self._make_token(token_type, text, start_loc)

    def _read_operator(self) -> Optional[Token]:
        """Read an operator or punctuation token."""
        start_loc = self._location()

        if self._peek_char is not None:
            two_char = self._current_char + self._peek_char
            if two_char in DOUBLE_CHAR_TOKENS:
                self._advance()
                self._advance()
                return self._make_token(DOUBLE_CHAR_TOKENS[two_char], two_char, start_loc)

        if self._current_char in SINGLE_CHAR_TOKENS:
            char = self._advance()
            return self._make_token(SINGLE_CHAR_TOKENS[char], char, start_loc)

        return None

    def _sign_starts_number(self) -> bool:
        """A sign is part of a number only where an operand is expected."""
        if self._peek_char is None or self._peek_char not in DIGITS:
            return False
        if not self.tokens:
            return True
        return self.tokens[-1].type not in OPERAND_END_TOKENS

    def _next_token(self) -> Token:
        """Extract the next token from the source."""
        self._skip_whitespace_and_comments()

        char = self._current_char
        if char is None:
            return Token(TokenType.EOF, None, self._location())

        if char == '"':
            return self._read_string()

        if char == "'":
            return self._read_character()

        if char in DIGITS or (char in "+-" and self._sign_starts_number()):
            return self._read_number()

        if char.isascii() and (char.isalpha() or char == "_"):
            return self._read_identifier_or_keyword()

        op_token = self._read_operator()
        if op_token is not None:
            return op_token

        raise self._error(f"Unexpected character: {char!r}")

    def tokenize(self) -> list[Token]:
        """
        Tokenize the entire source code.

        Returns:
            A list of all tokens including the final EOF token.
        """
        self.tokens = []
        self.pos = 0
        self.line = 1
        self.column = 1
        self._line_start = 0

        while True:
            token = self._next_token()
            self.tokens.append(token)
            if token.type == TokenType.EOF:
                break

        return self.tokens

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens (tokenizes on first use)."""
        if not self.tokens:
            self.tokenize()
        return iter(self.tokens)


def tokenize(source: str, filename: Optional[str] = None) -> list[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: PLC script source code
        filename: Optional filename for error reporting

    Returns:
        List of tokens
    """
    return Lexer(source, filename).tokenize()
