"""Tokenizer for validator expressions.

Validator expressions are written in the JavaScript-flavoured style form
authors already use (``model.search == "test"``, ``field.value !== null``),
so the lexer accepts both the strict (``===``/``!==``) and loose equality
operators and maps them to the same token types.
"""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator


class TokenType(Enum):
    """Token kinds produced by the lexer."""

    NUMBER = auto()
    STRING = auto()
    BOOLEAN = auto()
    NULL = auto()
    IDENTIFIER = auto()

    EQ = auto()          # == ===
    NEQ = auto()         # != !==
    LT = auto()
    LTE = auto()
    GT = auto()
    GTE = auto()

    AND = auto()         # && and
    OR = auto()          # || or
    NOT = auto()         # ! not

    PLUS = auto()
    MINUS = auto()
    MULTIPLY = auto()
    DIVIDE = auto()
    MODULO = auto()

    IN = auto()
    NOT_IN = auto()

    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    COMMA = auto()
    DOT = auto()

    EOF = auto()


@dataclass(frozen=True)
class Token:
    """A lexed token and the offset it starts at."""

    type: TokenType
    value: str | int | float | bool | None
    position: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, pos={self.position})"


class LexerError(Exception):
    """Raised when the source contains a character no token can start with."""

    def __init__(self, message: str, position: int):
        self.position = position
        super().__init__(f"{message} at position {position}")


# Longest operators first so "===" is not read as "==" followed by "=".
TOKEN_PATTERNS = [
    (r"\s+", None),
    (r"===", TokenType.EQ),
    (r"!==", TokenType.NEQ),
    (r"==", TokenType.EQ),
    (r"!=", TokenType.NEQ),
    (r"<=", TokenType.LTE),
    (r">=", TokenType.GTE),
    (r"&&", TokenType.AND),
    (r"\|\|", TokenType.OR),
    (r"<", TokenType.LT),
    (r">", TokenType.GT),
    (r"!", TokenType.NOT),
    (r"\+", TokenType.PLUS),
    (r"-", TokenType.MINUS),
    (r"\*", TokenType.MULTIPLY),
    (r"/", TokenType.DIVIDE),
    (r"%", TokenType.MODULO),
    (r"\(", TokenType.LPAREN),
    (r"\)", TokenType.RPAREN),
    (r"\[", TokenType.LBRACKET),
    (r"\]", TokenType.RBRACKET),
    (r",", TokenType.COMMA),
    (r"\.", TokenType.DOT),
    (r"\d+\.\d+", TokenType.NUMBER),
    (r"\d+", TokenType.NUMBER),
    (r'"([^"\\]|\\.)*"', TokenType.STRING),
    (r"'([^'\\]|\\.)*'", TokenType.STRING),
    (r"[a-zA-Z_$][a-zA-Z0-9_$]*", TokenType.IDENTIFIER),
]

_COMPILED_PATTERNS = [(re.compile(p), t) for p, t in TOKEN_PATTERNS]

# Keywords are case-sensitive: model keys like "True" stay identifiers.
KEYWORDS = {
    "true": (TokenType.BOOLEAN, True),
    "false": (TokenType.BOOLEAN, False),
    "null": (TokenType.NULL, None),
    "undefined": (TokenType.NULL, None),
    "and": (TokenType.AND, "and"),
    "or": (TokenType.OR, "or"),
    "not": (TokenType.NOT, "not"),
    "in": (TokenType.IN, "in"),
}

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}

_NOT_IN = re.compile(r"\s+in\b")


class Lexer:
    """Turns an expression string into tokens.

    Usage:
        tokens = Lexer('model.search == "test"').tokenize()
    """

    def __init__(self, source: str):
        self.source = source
        self.position = 0

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                break

    def next_token(self) -> Token:
        while self.position < len(self.source):
            start = self.position
            for pattern, token_type in _COMPILED_PATTERNS:
                match = pattern.match(self.source, start)
                if match:
                    break
            else:
                raise LexerError(
                    f"Unexpected character '{self.source[start]}'", start
                )

            text = match.group()
            self.position = match.end()

            if token_type is None:
                continue
            if token_type == TokenType.NUMBER:
                return Token(token_type, float(text) if "." in text else int(text), start)
            if token_type == TokenType.STRING:
                return Token(token_type, _unescape(text[1:-1]), start)
            if token_type == TokenType.IDENTIFIER and text in KEYWORDS:
                return self._keyword(text, start)
            return Token(token_type, text, start)

        return Token(TokenType.EOF, None, self.position)

    def _keyword(self, text: str, start: int) -> Token:
        keyword_type, keyword_value = KEYWORDS[text]
        if keyword_type == TokenType.NOT:
            match = _NOT_IN.match(self.source, self.position)
            if match:
                self.position = match.end()
                return Token(TokenType.NOT_IN, "not in", start)
        return Token(keyword_type, keyword_value, start)

    def tokenize(self) -> list[Token]:
        return list(self)


def _unescape(body: str) -> str:
    result = []
    chars = iter(body)
    for char in chars:
        if char == "\\":
            escaped = next(chars, "\\")
            result.append(_ESCAPES.get(escaped, escaped))
        else:
            result.append(char)
    return "".join(result)
