"""
PLC Script Parser.

A recursive descent parser that turns a token stream into the program tree
defined in `ast_nodes`. It only checks grammar; typing rules and the
restrictions on groups, declarations and expression statements are left to
the analyzer.
"""

from typing import Callable, Optional

from plcscript.compiler.ast_nodes import (
    AccessExpression,
    AssignmentStatement,
    BinaryExpression,
    BinaryOperator,
    BooleanLiteral,
    CharacterLiteral,
    DecimalLiteral,
    DeclarationStatement,
    Expression,
    ExpressionStatement,
    Field,
    ForStatement,
    FunctionExpression,
    GroupExpression,
    IfStatement,
    IntegerLiteral,
    Method,
    NilLiteral,
    Parameter,
    ReturnStatement,
    Source,
    Statement,
    StringLiteral,
    WhileStatement,
)
from plcscript.compiler.lexer import Lexer
from plcscript.compiler.tokens import Token, TokenType
from plcscript.utils.diagnostics import (
    Diagnostic,
    DiagnosticEmitter,
    ErrorCode,
    SourceSpan,
)
from plcscript.utils.errors import ParserError


LOGICAL_OPERATORS: dict[TokenType, BinaryOperator] = {
    TokenType.AND: BinaryOperator.AND,
    TokenType.OR: BinaryOperator.OR,
}

COMPARISON_OPERATORS: dict[TokenType, BinaryOperator] = {
    TokenType.LT: BinaryOperator.LT,
    TokenType.LE: BinaryOperator.LE,
    TokenType.GT: BinaryOperator.GT,
    TokenType.GE: BinaryOperator.GE,
    TokenType.EQ: BinaryOperator.EQ,
    TokenType.NE: BinaryOperator.NE,
}

ADDITIVE_OPERATORS: dict[TokenType, BinaryOperator] = {
    TokenType.PLUS: BinaryOperator.ADD,
    TokenType.MINUS: BinaryOperator.SUB,
}

MULTIPLICATIVE_OPERATORS: dict[TokenType, BinaryOperator] = {
    TokenType.STAR: BinaryOperator.MUL,
    TokenType.SLASH: BinaryOperator.DIV,
}

# Tokens that end a statement list inside a block
BLOCK_TERMINATORS = (TokenType.END, TokenType.ELSE, TokenType.EOF)


class Parser:
    """
    Recursive descent parser for PLC scripts.

    Usage:
        parser = Parser(tokens)
        source = parser.parse()
    """

    def __init__(self, tokens: list[Token], source: str = "",
                 filename: str = "<input>") -> None:
        """
        Initialize the parser.

        Args:
            tokens: List of tokens from the lexer, ending with EOF
            source: Optional source code for rich diagnostics
            filename: Optional filename for error reporting
        """
        self.tokens = tokens
        self.pos = 0
        self._source = source
        self._source_lines: list[str] = source.splitlines() if source else []
        self._filename = filename
        self._emitter: Optional[DiagnosticEmitter] = None
        self.diagnostics: list[Diagnostic] = []

        if source:
            self._emitter = DiagnosticEmitter(source, filename)

    # -------------------------------------------------------------------------
    # Token helpers
    # -------------------------------------------------------------------------

    @property
    def _current(self) -> Token:
        """Get the current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[self.pos]

    @property
    def _previous(self) -> Token:
        """Get the previous token."""
        return self.tokens[self.pos - 1] if self.pos > 0 else self.tokens[0]

    def _is_at_end(self) -> bool:
        return self._current.type == TokenType.EOF

    def _check(self, *types: TokenType) -> bool:
        """Check if the current token is one of the given types."""
        return self._current.type in types

    def _advance(self) -> Token:
        """Consume and return the current token."""
        token = self._current
        if not self._is_at_end():
            self.pos += 1
        return token

    def _match(self, *types: TokenType) -> bool:
        """Consume current token if it matches one of the given types."""
        if self._check(*types):
            self._advance()
            return True
        return False

    def _expect(self, token_type: TokenType, message: str) -> Token:
        """Consume current token if it matches, else raise error."""
        if self._check(token_type):
            return self._advance()
        raise self._error(message)

    def _expect_identifier(self, what: str) -> Token:
        return self._expect(TokenType.IDENTIFIER, f"Expected {what}")

    def _error(self, message: str) -> ParserError:
        """Create a parser error at the current token, recording a diagnostic."""
        token = self._current
        found = "end of file" if token.type == TokenType.EOF else f"'{token.lexeme}'"
        full_message = f"{message}, found {found}"

        if self._emitter is not None:
            span = SourceSpan.from_location(token.location, token.width)
            self.diagnostics.append(
                self._emitter.error(ErrorCode.E0201, full_message, span).emit()
            )

        source_line = None
        if 1 <= token.location.line <= len(self._source_lines):
            source_line = self._source_lines[token.location.line - 1]
        return ParserError(full_message, token.location, source_line)

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def parse(self) -> Source:
        """
        Parse the entire program.

        Returns:
            The root Source node.
        """
        start = self._current.location
        fields: list[Field] = []
        methods: list[Method] = []

        while self._check(TokenType.LET):
            fields.append(self._parse_field())

        while self._check(TokenType.DEF):
            methods.append(self._parse_method())

        if not self._is_at_end():
            if self._check(TokenType.LET):
                raise self._error("Fields must be declared before methods")
            raise self._error("Expected 'LET' or 'DEF'")

        return Source(tuple(fields), tuple(methods), start)

    def _parse_field(self) -> Field:
        """field ::= 'LET' identifier ':' identifier ('=' expression)? ';'"""
        start = self._expect(TokenType.LET, "Expected 'LET'").location
        name = self._expect_identifier("field name").value
        self._expect(TokenType.COLON, "Expected ':' and a type after field name")
        type_name = self._expect_identifier("type name").value

        value = None
        if self._match(TokenType.ASSIGN):
            value = self._parse_expression()

        self._expect(TokenType.SEMICOLON, "Expected ';' after field")
        return Field(name, type_name, value, start)

    def _parse_method(self) -> Method:
        """
        method ::= 'DEF' identifier '(' parameters? ')' (':' identifier)?
                   'DO' statement* 'END'
        """
        start = self._expect(TokenType.DEF, "Expected 'DEF'").location
        name = self._expect_identifier("method name").value
        self._expect(TokenType.LPAREN, "Expected '(' after method name")

        parameters: list[Parameter] = []
        if not self._check(TokenType.RPAREN):
            while True:
                param_token = self._expect_identifier("parameter name")
                self._expect(TokenType.COLON, "Expected ':' after parameter name")
                type_name = self._expect_identifier("parameter type").value
                parameters.append(Parameter(param_token.value, type_name, param_token.location))
                if not self._match(TokenType.COMMA):
                    break
        self._expect(TokenType.RPAREN, "Expected ')' after parameters")

        return_type_name = None
        if self._match(TokenType.COLON):
            return_type_name = self._expect_identifier("return type").value

        self._expect(TokenType.DO, "Expected 'DO' before method body")
        statements = self._parse_block()
        self._expect(TokenType.END, "Expected 'END' after method body")

        return Method(name, tuple(parameters), return_type_name, statements, start)

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def _parse_block(self) -> tuple[Statement, ...]:
        """Parse statements up to END, ELSE or end of file."""
        statements: list[Statement] = []
        while not self._check(*BLOCK_TERMINATORS):
            statements.append(self._parse_statement())
        return tuple(statements)

    def _parse_statement(self) -> Statement:
        if self._check(TokenType.LET):
            return self._parse_declaration()
        if self._check(TokenType.IF):
            return self._parse_if()
        if self._check(TokenType.FOR):
            return self._parse_for()
        if self._check(TokenType.WHILE):
            return self._parse_while()
        if self._check(TokenType.RETURN):
            return self._parse_return()
        return self._parse_expression_or_assignment()

    def _parse_declaration(self) -> DeclarationStatement:
        """'LET' identifier (':' identifier)? ('=' expression)? ';'"""
        start = self._advance().location
        name = self._expect_identifier("variable name").value

        type_name = None
        if self._match(TokenType.COLON):
            type_name = self._expect_identifier("type name").value

        value = None
        if self._match(TokenType.ASSIGN):
            value = self._parse_expression()

        self._expect(TokenType.SEMICOLON, "Expected ';' after declaration")
        return DeclarationStatement(name, type_name, value, start)

    def _parse_if(self) -> IfStatement:
        """'IF' expression 'DO' statement* ('ELSE' statement*)? 'END'"""
        start = self._advance().location
        condition = self._parse_expression()
        self._expect(TokenType.DO, "Expected 'DO' after IF condition")
        then_statements = self._parse_block()

        else_statements: tuple[Statement, ...] = ()
        if self._match(TokenType.ELSE):
            else_statements = self._parse_block()

        self._expect(TokenType.END, "Expected 'END' to close IF")
        return IfStatement(condition, then_statements, else_statements, start)

    def _parse_for(self) -> ForStatement:
        """'FOR' identifier 'IN' expression 'DO' statement* 'END'"""
        start = self._advance().location
        name = self._expect_identifier("loop variable name").value
        self._expect(TokenType.IN, "Expected 'IN' after loop variable")
        iterable = self._parse_expression()
        self._expect(TokenType.DO, "Expected 'DO' after FOR iterable")
        statements = self._parse_loop_body("FOR")
        return ForStatement(name, iterable, statements, start)

    def _parse_while(self) -> WhileStatement:
        """'WHILE' expression 'DO' statement* 'END'"""
        start = self._advance().location
        condition = self._parse_expression()
        self._expect(TokenType.DO, "Expected 'DO' after WHILE condition")
        statements = self._parse_loop_body("WHILE")
        return WhileStatement(condition, statements, start)

    def _parse_loop_body(self, keyword: str) -> tuple[Statement, ...]:
        statements = self._parse_block()
        self._expect(TokenType.END, f"Expected 'END' to close {keyword}")
        return statements

    def _parse_return(self) -> ReturnStatement:
        """'RETURN' expression ';'"""
        start = self._advance().location
        value = self._parse_expression()
        self._expect(TokenType.SEMICOLON, "Expected ';' after RETURN value")
        return ReturnStatement(value, start)

    def _parse_expression_or_assignment(self) -> Statement:
        """expression ('=' expression)? ';'"""
        start = self._current.location
        expression = self._parse_expression()

        if self._match(TokenType.ASSIGN):
            value = self._parse_expression()
            self._expect(TokenType.SEMICOLON, "Expected ';' after assignment")
            return AssignmentStatement(expression, value, start)

        self._expect(TokenType.SEMICOLON, "Expected ';' after expression")
        return ExpressionStatement(expression, start)

    # -------------------------------------------------------------------------
    # Expressions (lowest to highest precedence)
    # -------------------------------------------------------------------------

    def _parse_expression(self) -> Expression:
        return self._parse_binary(LOGICAL_OPERATORS, self._parse_comparison)

    def _parse_comparison(self) -> Expression:
        return self._parse_binary(COMPARISON_OPERATORS, self._parse_additive)

    def _parse_additive(self) -> Expression:
        return self._parse_binary(ADDITIVE_OPERATORS, self._parse_multiplicative)

    def _parse_multiplicative(self) -> Expression:
        return self._parse_binary(MULTIPLICATIVE_OPERATORS, self._parse_secondary)

    def _parse_binary(
        self,
        operators: dict[TokenType, BinaryOperator],
        operand: Callable[[], Expression],
    ) -> Expression:
        """Parse a left-associative chain of one precedence level."""
        left = operand()
        while self._current.type in operators:
            op_token = self._advance()
            right = operand()
            left = BinaryExpression(operators[op_token.type], left, right, op_token.location)
        return left

    def _parse_secondary(self) -> Expression:
        """secondary ::= primary ('.' identifier ('(' arguments? ')')?)*"""
        expression = self._parse_primary()
        while self._match(TokenType.DOT):
            name_token = self._expect_identifier("member name after '.'")
            if self._match(TokenType.LPAREN):
                arguments = self._parse_arguments()
                expression = FunctionExpression(
                    expression, name_token.value, arguments, name_token.location
                )
            else:
                expression = AccessExpression(expression, name_token.value, name_token.location)
        return expression

    def _parse_arguments(self) -> tuple[Expression, ...]:
        """Parse call arguments after '(' through the closing ')'."""
        arguments: list[Expression] = []
        if not self._check(TokenType.RPAREN):
            arguments.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                arguments.append(self._parse_expression())
        self._expect(TokenType.RPAREN, "Expected ')' after arguments")
        return tuple(arguments)

    def _parse_primary(self) -> Expression:
        token = self._current

        if self._match(TokenType.NIL):
            return NilLiteral(token.location)
        if self._match(TokenType.TRUE):
            return BooleanLiteral(True, token.location)
        if self._match(TokenType.FALSE):
            return BooleanLiteral(False, token.location)
        if self._match(TokenType.INTEGER):
            return IntegerLiteral(token.value, token.location)
        if self._match(TokenType.DECIMAL):
            return DecimalLiteral(token.value, token.location)
        if self._match(TokenType.CHARACTER):
            return CharacterLiteral(token.value, token.location)
        if self._match(TokenType.STRING):
            return StringLiteral(token.value, token.location)

        if self._match(TokenType.LPAREN):
            expression = self._parse_expression()
            self._expect(TokenType.RPAREN, "Expected ')' to close group")
            return GroupExpression(expression, token.location)

        if self._match(TokenType.IDENTIFIER):
            if self._match(TokenType.LPAREN):
                arguments = self._parse_arguments()
                return FunctionExpression(None, token.value, arguments, token.location)
            return AccessExpression(None, token.value, token.location)

        raise self._error("Expected an expression")


def parse(source: str, filename: Optional[str] = None) -> Source:
    """
    Convenience function to lex and parse source code.

    Args:
        source: PLC script source code
        filename: Optional filename for error reporting

    Returns:
        The root Source node
    """
    tokens = Lexer(source, filename).tokenize()
    return Parser(tokens, source, filename or "<input>").parse()
