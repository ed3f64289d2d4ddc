"""Recursive descent parser for validator expressions.

Precedence, lowest to highest:
1. ``||``
2. ``&&``
3. ``== != < <= > >= in not in``
4. ``+ -``
5. ``* / %``
6. unary ``!`` and ``-``
7. member access, index access, function calls
"""

from dataclasses import dataclass
from typing import Any

from fieldforge.expressions.lexer import Lexer, Token, TokenType


@dataclass
class ASTNode:
    """Base class for AST nodes."""


@dataclass
class Literal(ASTNode):
    value: Any


@dataclass
class Identifier(ASTNode):
    name: str


@dataclass
class MemberAccess(ASTNode):
    """``field.templateOptions``, ``model.search``."""

    object: ASTNode
    member: str


@dataclass
class IndexAccess(ASTNode):
    """``model["first-name"]``, ``model.tags[0]``."""

    object: ASTNode
    index: ASTNode


@dataclass
class BinaryOp(ASTNode):
    operator: str
    left: ASTNode
    right: ASTNode


@dataclass
class UnaryOp(ASTNode):
    operator: str
    operand: ASTNode


@dataclass
class FunctionCall(ASTNode):
    name: str
    arguments: list[ASTNode]


@dataclass
class ArrayLiteral(ASTNode):
    elements: list[ASTNode]


class ParseError(Exception):
    """Raised when the token stream does not form a valid expression."""

    def __init__(self, message: str, token: Token):
        self.token = token
        self.position = token.position
        super().__init__(f"{message} at position {token.position}")


_COMPARISON_OPS = {
    TokenType.EQ: "==",
    TokenType.NEQ: "!=",
    TokenType.LT: "<",
    TokenType.LTE: "<=",
    TokenType.GT: ">",
    TokenType.GTE: ">=",
    TokenType.IN: "in",
    TokenType.NOT_IN: "not in",
}

_ADDITIVE_OPS = {TokenType.PLUS: "+", TokenType.MINUS: "-"}

_MULTIPLICATIVE_OPS = {
    TokenType.MULTIPLY: "*",
    TokenType.DIVIDE: "/",
    TokenType.MODULO: "%",
}

_LITERAL_TOKENS = (
    TokenType.NUMBER,
    TokenType.STRING,
    TokenType.BOOLEAN,
    TokenType.NULL,
)


class Parser:
    """Builds an AST from an expression string.

    Usage:
        ast = Parser('model.search == "test"').parse()
    """

    def __init__(self, source: str):
        self.source = source
        self.tokens = Lexer(source).tokenize()
        self.position = 0

    def parse(self) -> ASTNode:
        if self._current().type == TokenType.EOF:
            raise ParseError("Empty expression", self._current())

        ast = self._parse_or()

        if self._current().type != TokenType.EOF:
            raise ParseError(
                f"Unexpected token '{self._current().value}'", self._current()
            )
        return ast

    def _current(self) -> Token:
        if self.position >= len(self.tokens):
            return Token(TokenType.EOF, None, len(self.source))
        return self.tokens[self.position]

    def _advance(self) -> Token:
        token = self._current()
        self.position += 1
        return token

    def _match(self, *types: TokenType) -> bool:
        return self._current().type in types

    def _consume(self, token_type: TokenType, message: str) -> Token:
        if self._current().type == token_type:
            return self._advance()
        raise ParseError(message, self._current())

    def _parse_or(self) -> ASTNode:
        left = self._parse_and()
        while self._match(TokenType.OR):
            self._advance()
            left = BinaryOp("||", left, self._parse_and())
        return left

    def _parse_and(self) -> ASTNode:
        left = self._parse_comparison()
        while self._match(TokenType.AND):
            self._advance()
            left = BinaryOp("&&", left, self._parse_comparison())
        return left

    def _parse_comparison(self) -> ASTNode:
        left = self._parse_additive()
        while self._current().type in _COMPARISON_OPS:
            op = _COMPARISON_OPS[self._advance().type]
            left = BinaryOp(op, left, self._parse_additive())
        return left

    def _parse_additive(self) -> ASTNode:
        left = self._parse_multiplicative()
        while self._current().type in _ADDITIVE_OPS:
            op = _ADDITIVE_OPS[self._advance().type]
            left = BinaryOp(op, left, self._parse_multiplicative())
        return left

    def _parse_multiplicative(self) -> ASTNode:
        left = self._parse_unary()
        while self._current().type in _MULTIPLICATIVE_OPS:
            op = _MULTIPLICATIVE_OPS[self._advance().type]
            left = BinaryOp(op, left, self._parse_unary())
        return left

    def _parse_unary(self) -> ASTNode:
        if self._match(TokenType.NOT):
            self._advance()
            return UnaryOp("!", self._parse_unary())
        if self._match(TokenType.MINUS):
            self._advance()
            return UnaryOp("-", self._parse_unary())
        return self._parse_postfix()

    def _parse_postfix(self) -> ASTNode:
        expr = self._parse_primary()

        while True:
            if self._match(TokenType.DOT):
                self._advance()
                member = self._consume(
                    TokenType.IDENTIFIER, "Expected identifier after '.'"
                )
                expr = MemberAccess(expr, str(member.value))
            elif self._match(TokenType.LBRACKET):
                self._advance()
                index = self._parse_or()
                self._consume(TokenType.RBRACKET, "Expected ']' after index")
                expr = IndexAccess(expr, index)
            else:
                return expr

    def _parse_primary(self) -> ASTNode:
        token = self._current()

        if token.type in _LITERAL_TOKENS:
            self._advance()
            return Literal(token.value)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            if self._match(TokenType.LPAREN):
                return FunctionCall(str(token.value), self._parse_arguments(
                    TokenType.LPAREN, TokenType.RPAREN, "Expected ')' after arguments"
                ))
            return Identifier(str(token.value))

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_or()
            self._consume(TokenType.RPAREN, "Expected ')' after expression")
            return expr

        if token.type == TokenType.LBRACKET:
            return ArrayLiteral(self._parse_arguments(
                TokenType.LBRACKET, TokenType.RBRACKET, "Expected ']' after array elements"
            ))

        raise ParseError(f"Unexpected token '{token.value}'", token)

    def _parse_arguments(
        self, opening: TokenType, closing: TokenType, message: str
    ) -> list[ASTNode]:
        """Parse a comma separated list between two delimiters."""
        self._consume(opening, f"Expected '{opening.name.lower()}'")
        items: list[ASTNode] = []
        if not self._match(closing):
            items.append(self._parse_or())
            while self._match(TokenType.COMMA):
                self._advance()
                items.append(self._parse_or())
        self._consume(closing, message)
        return items


def parse(source: str) -> ASTNode:
    """Parse an expression string into its AST root."""
    return Parser(source).parse()
