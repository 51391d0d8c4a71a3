"""Recursive-descent parser for SELECT statements and expressions."""

from __future__ import annotations

import re
from typing import Optional

from qengine.lexer import SqlSyntaxError, Token, TokenType, tokenize
from qengine.syntax import (
    BinaryExpr,
    Column,
    ExistsExpr,
    Expr,
    InExpr,
    InListExpr,
    JoinClause,
    JoinType,
    Literal,
    SelectStmt,
    TableRef,
)

_INT_MAX = 2**31 - 1
_LLONG_MAX = 2**63 - 1
_LEADING_INT = re.compile(r"[+-]?\d+")

_JOIN_STARTERS = (
    TokenType.JOIN,
    TokenType.INNER,
    TokenType.LEFT,
    TokenType.RIGHT,
    TokenType.FULL,
    TokenType.CROSS,
)


def _location(token: Token) -> str:
    return f" at line {token.line}, column {token.column}"


class Parser:
    """Parses a token list into SELECT statements and expressions."""

    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = list(tokens)
        self._pos = 0

    # Token cursor helpers

    def _peek(self) -> Token:
        if self._pos >= len(self._tokens):
            raise SqlSyntaxError("Unexpected end of input while parsing")
        return self._tokens[self._pos]

    def _check(self, token_type: TokenType) -> bool:
        return self._pos < len(self._tokens) and self._tokens[self._pos].type is token_type

    def _match(self, token_type: TokenType) -> bool:
        if self._check(token_type):
            self._pos += 1
            return True
        return False

    def _consume(self, expected: TokenType) -> Token:
        cur = self._peek()
        if cur.type is not expected:
            msg = f"Expected {expected.name} but got {cur.type.name}{_location(cur)}"
            if cur.value:
                msg += f" ('{cur.value}')"
            raise SqlSyntaxError(msg)
        self._pos += 1
        return cur

    def _check_word(self, word: str) -> bool:
        return self._check(TokenType.IDENT) and self._peek().value.upper() == word

    # SELECT

    def parse(self) -> SelectStmt:
        """Parse a single SELECT statement that must span all tokens."""
        if not self._check(TokenType.SELECT):
            raise SqlSyntaxError("parse() only accepts SELECT" + _location(self._peek()))
        stmt = self.parse_select()
        self._consume(TokenType.END)
        return stmt

    def parse_select(self) -> SelectStmt:
        """Parse a SELECT statement starting at the current token."""
        self._consume(TokenType.SELECT)
        distinct = self._match(TokenType.DISTINCT)
        columns = self._parse_select_columns()
        self._consume(TokenType.FROM)
        from_ref = self._parse_table_ref()

        joins: list[JoinClause] = []
        while any(self._check(t) for t in _JOIN_STARTERS):
            joins.append(self._parse_join_clause())

        stmt = SelectStmt(
            from_=from_ref,
            joins=joins,
            distinct=distinct,
            columns=columns,
            table=from_ref.table,
        )

        if self._match(TokenType.WHERE):
            stmt.where = self.parse_expression()
        if self._check(TokenType.GROUP):
            self._consume(TokenType.GROUP)
            self._consume(TokenType.BY)
            stmt.group_by = self._parse_group_by_columns()
        if self._match(TokenType.HAVING):
            stmt.having = self.parse_expression()
        if self._check(TokenType.ORDER):
            self._consume(TokenType.ORDER)
            self._consume(TokenType.BY)
            stmt.order_by = self._parse_selectable_reference()
            if self._match(TokenType.ASC):
                stmt.order_by_ascending = True
            elif self._match(TokenType.DESC):
                stmt.order_by_ascending = False
        if self._match(TokenType.LIMIT):
            stmt.limit = self._parse_limit(self._consume(TokenType.NUMBER))
        return stmt

    @staticmethod
    def _parse_limit(token: Token) -> int:
        raw = token.value
        m = _LEADING_INT.match(raw)
        if m is None:
            raise SqlSyntaxError(f"Invalid LIMIT value: '{raw}'{_location(token)}")
        n = int(m.group())
        if n > _LLONG_MAX or n < -_LLONG_MAX - 1:
            raise SqlSyntaxError(f"Invalid LIMIT value: '{raw}'{_location(token)}")
        if n < 0 or n > _INT_MAX:
            raise SqlSyntaxError(f"LIMIT out of range: '{raw}'{_location(token)}")
        return n

    def _parse_select_columns(self) -> list[Optional[Expr]]:
        if self._match(TokenType.STAR):
            return [Column("*")]
        columns: list[Optional[Expr]] = [Column(self._parse_selectable_reference())]
        while self._match(TokenType.COMMA):
            columns.append(Column(self._parse_selectable_reference()))
        return columns

    def _parse_group_by_columns(self) -> list[Optional[Expr]]:
        columns: list[Optional[Expr]] = [Column(self._parse_qualified_identifier())]
        while self._match(TokenType.COMMA):
            columns.append(Column(self._parse_qualified_identifier()))
        return columns

    def _parse_qualified_identifier(self) -> str:
        name = self._consume(TokenType.IDENT).value
        while self._match(TokenType.DOT):
            name += "." + self._consume(TokenType.IDENT).value
        return name

    def _parse_selectable_reference(self) -> str:
        ident = self._consume(TokenType.IDENT)
        if self._match(TokenType.LPAREN):
            fn = ident.value.upper()
            if self._match(TokenType.STAR):
                args = "*"
            else:
                parts = [self._parse_qualified_identifier()]
                while self._match(TokenType.COMMA):
                    parts.append(self._parse_qualified_identifier())
                args = ", ".join(parts)
            self._consume(TokenType.RPAREN)
            return f"{fn}({args})"

        name = ident.value
        while self._match(TokenType.DOT):
            name += "." + self._consume(TokenType.IDENT).value
        return name

    def _parse_table_ref(self) -> TableRef:
        ref = TableRef(table=self._consume(TokenType.IDENT).value)
        if self._match(TokenType.AS) or self._check(TokenType.IDENT):
            ref.alias = self._consume(TokenType.IDENT).value
        return ref

    def _parse_join_clause(self) -> JoinClause:
        if self._match(TokenType.INNER):
            join_type = JoinType.INNER
        elif self._match(TokenType.LEFT):
            self._match(TokenType.OUTER)
            join_type = JoinType.LEFT
        elif self._match(TokenType.RIGHT):
            self._match(TokenType.OUTER)
            join_type = JoinType.RIGHT
        elif self._match(TokenType.FULL):
            self._match(TokenType.OUTER)
            join_type = JoinType.FULL
        elif self._match(TokenType.CROSS):
            join_type = JoinType.CROSS
        else:
            join_type = JoinType.INNER
        self._consume(TokenType.JOIN)

        join = JoinClause(type=join_type, right=self._parse_table_ref())
        if join_type is not JoinType.CROSS:
            self._consume(TokenType.ON)
            join.condition = self.parse_expression()
        return join

    # Expressions

    def parse_expression(self) -> Expr:
        """Parse an expression with OR/AND/NOT/comparison precedence."""
        return self._parse_or()

    def _parse_or(self) -> Expr:
        left = self._parse_and()
        while self._match(TokenType.OR):
            left = BinaryExpr(left, "OR", self._parse_and())
        return left

    def _parse_and(self) -> Expr:
        left = self._parse_not()
        while self._match(TokenType.AND):
            left = BinaryExpr(left, "AND", self._parse_not())
        return left

    def _parse_not(self) -> Expr:
        if self._match(TokenType.NOT):
            return BinaryExpr(self._parse_not(), "NOT", Literal(""))
        return self._parse_comparison()

    def _parse_in_tail(self, left: Expr) -> Expr:
        self._consume(TokenType.IN)
        self._consume(TokenType.LPAREN)
        if self._check(TokenType.SELECT):
            subquery = self.parse_select()
            self._consume(TokenType.RPAREN)
            return InExpr(left, subquery)
        items: list[Optional[Expr]] = [self._parse_term()]
        while self._match(TokenType.COMMA):
            items.append(self._parse_term())
        self._consume(TokenType.RPAREN)
        return InListExpr(left, items)

    def _parse_comparison(self) -> Expr:
        left = self._parse_term()

        if self._check(TokenType.NOT):
            saved = self._pos
            self._consume(TokenType.NOT)
            if self._check(TokenType.IN):
                return BinaryExpr(self._parse_in_tail(left), "NOT", Literal(""))
            self._pos = saved

        if self._check(TokenType.IN):
            return self._parse_in_tail(left)

        if self._check(TokenType.OP):
            op = self._consume(TokenType.OP).value
            return BinaryExpr(left, op, self._parse_term())
        return left

    def _parse_term(self) -> Expr:
        tok = self._peek()

        if tok.type is TokenType.EXISTS:
            self._consume(TokenType.EXISTS)
            return ExistsExpr(self._parse_subquery())

        if tok.type is TokenType.LPAREN:
            self._consume(TokenType.LPAREN)
            if self._check(TokenType.SELECT):
                subquery = self.parse_select()
                self._consume(TokenType.RPAREN)
                return ExistsExpr(subquery)
            expr = self.parse_expression()
            self._consume(TokenType.RPAREN)
            return expr

        if tok.type is TokenType.IDENT:
            return Column(self._parse_selectable_reference())
        if tok.type in (TokenType.NUMBER, TokenType.STRING):
            return Literal(self._consume(tok.type).value)

        detail = f" ('{tok.value}')" if tok.value else ""
        raise SqlSyntaxError(
            f"Unexpected token in expression: {tok.type.name}{detail}{_location(tok)}"
        )

    def _parse_subquery(self) -> SelectStmt:
        self._consume(TokenType.LPAREN)
        select = self.parse_select()
        self._consume(TokenType.RPAREN)
        return select


def parse_select(sql: str) -> SelectStmt:
    """Tokenize and parse a single SELECT statement."""
    return Parser(tokenize(sql)).parse()