"""Tokenizer for the SQL dialect."""

from __future__ import annotations

import enum
import string
from dataclasses import dataclass
from typing import Iterator


class SqlSyntaxError(ValueError):
    """Raised when SQL text cannot be tokenized or parsed."""


class TokenType(enum.Enum):
    ADD = enum.auto()
    ALTER = enum.auto()
    ASC = enum.auto()
    AS = enum.auto()
    AND = enum.auto()
    BY = enum.auto()
    CHECK = enum.auto()
    COLUMN = enum.auto()
    CONSTRAINT = enum.auto()
    CROSS = enum.auto()
    CREATE = enum.auto()
    DELETE = enum.auto()
    DESC = enum.auto()
    DISTINCT = enum.auto()
    DROP = enum.auto()
    FOREIGN = enum.auto()
    EXISTS = enum.auto()
    FROM = enum.auto()
    FULL = enum.auto()
    GROUP = enum.auto()
    HAVING = enum.auto()
    INNER = enum.auto()
    IN = enum.auto()
    INSERT = enum.auto()
    INTO = enum.auto()
    JOIN = enum.auto()
    KEY = enum.auto()
    LEFT = enum.auto()
    LIMIT = enum.auto()
    NOT = enum.auto()
    ON = enum.auto()
    OR = enum.auto()
    ORDER = enum.auto()
    OUTER = enum.auto()
    PATH = enum.auto()
    PRIMARY = enum.auto()
    RENAME = enum.auto()
    REFERENCES = enum.auto()
    RIGHT = enum.auto()
    SELECT = enum.auto()
    SET = enum.auto()
    TABLE = enum.auto()
    TO = enum.auto()
    TYPE = enum.auto()
    UPDATE = enum.auto()
    VALUES = enum.auto()
    WHERE = enum.auto()
    IDENT = enum.auto()
    NUMBER = enum.auto()
    STRING = enum.auto()
    OP = enum.auto()
    COMMA = enum.auto()
    STAR = enum.auto()
    LPAREN = enum.auto()
    RPAREN = enum.auto()
    DOT = enum.auto()
    END = enum.auto()


_NON_KEYWORDS = {
    TokenType.IDENT,
    TokenType.NUMBER,
    TokenType.STRING,
    TokenType.OP,
    TokenType.COMMA,
    TokenType.STAR,
    TokenType.LPAREN,
    TokenType.RPAREN,
    TokenType.DOT,
    TokenType.END,
}

_KEYWORDS = {t.name: t for t in TokenType if t not in _NON_KEYWORDS}

_PUNCTUATION = {
    ",": TokenType.COMMA,
    "*": TokenType.STAR,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    ".": TokenType.DOT,
}

_WHITESPACE = " \t\n\v\f\r"
_DIGITS = string.digits
_LETTERS = string.ascii_letters
_EOF = "\0"


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    line: int
    column: int


class Lexer:
    """Splits SQL text into tokens, tracking line and column positions."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._reset()

    def _reset(self) -> None:
        self._pos = 0
        self._line = 1
        self._column = 1

    def _peek(self, offset: int = 0) -> str:
        i = self._pos + offset
        return self._text[i] if i < len(self._text) else _EOF

    def _advance(self) -> str:
        if self._pos >= len(self._text):
            return _EOF
        c = self._text[self._pos]
        self._pos += 1
        if c == "\n":
            self._line += 1
            self._column = 1
        else:
            self._column += 1
        return c

    def _location(self, line: int, column: int) -> str:
        return f"line {line}, column {column}"

    def tokenize(self) -> list[Token]:
        """Return all tokens of the input, ending with an END token."""
        self._reset()
        return list(self._scan())

    def _scan(self) -> Iterator[Token]:
        while True:
            while self._peek() in _WHITESPACE and self._peek() != _EOF:
                self._advance()
            c = self._peek()
            if c == _EOF:
                break
            if c in _LETTERS or c == "_":
                yield self._scan_word()
            elif c in _DIGITS or (c in "+-" and self._peek(1) in _DIGITS and self._peek(1) != _EOF):
                yield self._scan_number()
            elif c == "'":
                yield self._scan_string()
            elif c in _PUNCTUATION:
                line, col = self._line, self._column
                self._advance()
                yield Token(_PUNCTUATION[c], c, line, col)
            elif c == ";":
                self._advance()
            elif c in "=!<>":
                yield self._scan_operator()
            else:
                raise SqlSyntaxError(
                    f"Unexpected character '{c}' at {self._location(self._line, self._column)}"
                )
        yield Token(TokenType.END, "", self._line, self._column)

    def _scan_word(self) -> Token:
        line, col, start = self._line, self._column, self._pos
        while self._peek() in _LETTERS or self._peek() in _DIGITS or self._peek() == "_":
            if self._peek() == _EOF:
                break
            self._advance()
        raw = self._text[start:self._pos]
        upper = raw.upper()
        keyword = _KEYWORDS.get(upper)
        if keyword is not None:
            return Token(keyword, upper, line, col)
        return Token(TokenType.IDENT, raw, line, col)

    def _consume_digits(self) -> None:
        while self._peek() != _EOF and self._peek() in _DIGITS:
            self._advance()

    def _scan_number(self) -> Token:
        line, col, start = self._line, self._column, self._pos
        if self._peek() in "+-":
            self._advance()
        self._consume_digits()
        if self._peek() == "." and self._peek(1) != _EOF and self._peek(1) in _DIGITS:
            self._advance()
            self._consume_digits()
        return Token(TokenType.NUMBER, self._text[start:self._pos], line, col)

    def _scan_string(self) -> Token:
        line, col = self._line, self._column
        self._advance()
        chars: list[str] = []
        while True:
            c = self._peek()
            if c == _EOF:
                raise SqlSyntaxError(
                    f"Unterminated string literal at {self._location(line, col)}"
                )
            if c == "'":
                self._advance()
                if self._peek() == "'":
                    chars.append("'")
                    self._advance()
                    continue
                break
            chars.append(self._advance())
        return Token(TokenType.STRING, "".join(chars), line, col)

    def _scan_operator(self) -> Token:
        line, col = self._line, self._column
        op = self._advance()
        nxt = self._peek()
        if nxt == "=":
            op += self._advance()
        elif op == "<" and nxt == ">":
            op += self._advance()
        if op == "!":
            raise SqlSyntaxError(
                f"Unexpected '!' at {self._location(line, col)}. Did you mean '!='?"
            )
        return Token(TokenType.OP, op, line, col)


def tokenize(text: str) -> list[Token]:
    """Tokenize SQL text."""
    return Lexer(text).tokenize()