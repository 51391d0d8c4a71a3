"""Parser for complete SQL statements: SELECT, DDL and DML."""

from __future__ import annotations

from qengine.lexer import SqlSyntaxError, Token, TokenType, tokenize
from qengine.parser import Parser
from qengine.syntax import (
    AlterActionKind,
    AlterConstraintKind,
    AlterTableStmt,
    ColumnDef,
    CreateTableStmt,
    DeleteStmt,
    Expr,
    InsertStmt,
    Literal,
    Statement,
    StatementType,
    UpdateAssignment,
    UpdateStmt,
)

_CONSTRAINT_WORDS = ("PRIMARY", "UNIQUE", "FOREIGN", "CHECK")
_MODIFIER_PASSTHROUGH = (
    TokenType.NUMBER,
    TokenType.IDENT,
    TokenType.DOT,
    TokenType.OP,
    TokenType.STAR,
)
_VALUE_TOKENS = (TokenType.NUMBER, TokenType.STRING, TokenType.IDENT)


def _where(token: Token) -> str:
    return f" at line {token.line}, column {token.column}"


class StatementParser(Parser):
    """Parses any supported statement from a token list."""

    def parse_statement(self) -> Statement:
        """Parse one statement that must span all tokens."""
        kind = self._peek().type
        if kind is TokenType.PATH:
            self._consume(TokenType.PATH)
            stmt = Statement(StatementType.PATH_SELECT, select=self.parse_select())
        elif kind is TokenType.SELECT:
            stmt = Statement(StatementType.SELECT, select=self.parse_select())
        elif kind is TokenType.CREATE:
            stmt = Statement(StatementType.CREATE_TABLE, create_table=self.parse_create_table())
        elif kind is TokenType.ALTER:
            stmt = Statement(StatementType.ALTER_TABLE, alter_table=self.parse_alter_table())
        elif kind is TokenType.INSERT:
            stmt = Statement(StatementType.INSERT, insert=self.parse_insert())
        elif kind is TokenType.UPDATE:
            stmt = Statement(StatementType.UPDATE, update=self.parse_update())
        elif kind is TokenType.DELETE:
            stmt = Statement(StatementType.DELETE, delete=self.parse_delete())
        else:
            tok = self._peek()
            raise SqlSyntaxError(f"Unsupported statement: {tok.type.name}{_where(tok)}")
        self._consume(TokenType.END)
        return stmt

    # CREATE TABLE

    def parse_create_table(self) -> CreateTableStmt:
        """Parse CREATE TABLE [IF NOT EXISTS] name (definitions...)."""
        self._consume(TokenType.CREATE)
        self._consume(TokenType.TABLE)

        if_not_exists = False
        if self._check_word("IF"):
            self._consume(TokenType.IDENT)
            if self._check(TokenType.NOT) or self._check_word("NOT"):
                self._consume(self._peek().type)
                if self._check(TokenType.EXISTS) or self._check_word("EXISTS"):
                    self._consume(self._peek().type)
                    if_not_exists = True

        stmt = CreateTableStmt(
            table=self._consume(TokenType.IDENT).value, if_not_exists=if_not_exists
        )
        self._consume(TokenType.LPAREN)
        while not self._check(TokenType.RPAREN) and not self._check(TokenType.END):
            if not self._parse_table_constraint(stmt.columns, stmt.table_checks):
                stmt.columns.append(self._parse_column_def())
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RPAREN)
        return stmt

    def _parse_column_def(self) -> ColumnDef:
        col = ColumnDef(name=self._consume(TokenType.IDENT).value)
        col.type = self._consume(TokenType.IDENT).value + self._parse_type_modifier()
        while self._parse_column_constraint(col):
            pass
        return col

    def _parse_type_modifier(self) -> str:
        if not self._match(TokenType.LPAREN):
            return ""
        parts = ["("]
        depth = 1
        while depth > 0:
            tok = self._peek()
            if tok.type is TokenType.END:
                raise SqlSyntaxError("Unterminated type modifier" + _where(tok))
            if tok.type is TokenType.LPAREN:
                depth += 1
                parts.append("(")
            elif tok.type is TokenType.RPAREN:
                depth -= 1
                parts.append(")")
            elif tok.type is TokenType.COMMA:
                parts.append(",")
            elif tok.type is TokenType.STRING:
                parts.append(f"'{tok.value}'")
            elif tok.type in _MODIFIER_PASSTHROUGH:
                parts.append(tok.value)
            else:
                raise SqlSyntaxError(
                    f"Unexpected token in type modifier: {tok.type.name}{_where(tok)}"
                )
            self._consume(tok.type)
        return "".join(parts)

    def _parse_column_constraint(self, col: ColumnDef) -> bool:
        if self._match(TokenType.PRIMARY):
            self._consume(TokenType.KEY)
            col.primary_key = col.not_null = True
            return True
        if self._match(TokenType.REFERENCES):
            col.foreign_key = self._parse_foreign_key_reference()
            return True
        if self._match(TokenType.FOREIGN):
            self._match(TokenType.KEY)
            self._match(TokenType.REFERENCES)
            col.foreign_key = self._parse_foreign_key_reference()
            return True
        if self._match(TokenType.CHECK):
            col.check_expr = self._parse_parenthesized_raw_expression()
            return True
        if self._match(TokenType.NOT):
            if self._check_word("NULL"):
                self._consume(TokenType.IDENT)
                col.not_null = True
            return True
        if self._check(TokenType.IDENT):
            word = self._peek().value.upper()
            if word == "UNIQUE":
                self._consume(TokenType.IDENT)
                col.unique = True
                return True
            if word == "NULL":
                self._consume(TokenType.IDENT)
                col.not_null = False
                return True
            if word == "DEFAULT":
                self._consume(TokenType.IDENT)
                kind = self._peek().type
                if kind in _VALUE_TOKENS:
                    self._consume(kind)
                return True
        return False

    def _parse_table_constraint(self, columns: list[ColumnDef], checks: list[str]) -> bool:
        if self._check_word("CONSTRAINT"):
            self._consume(TokenType.IDENT)
            self._consume(TokenType.IDENT)
        if self._check(TokenType.CHECK) or self._check_word("CHECK"):
            self._consume(self._peek().type)
            checks.append(self._parse_parenthesized_raw_expression())
            return True
        if self._match(TokenType.PRIMARY):
            self._consume(TokenType.KEY)
            for name in self._parse_identifier_list():
                col = next((c for c in columns if c.name == name), None)
                if col is None:
                    raise SqlSyntaxError(f"PRIMARY KEY references unknown column: {name}")
                col.primary_key = col.not_null = True
            return True
        if self._match(TokenType.FOREIGN):
            self._match(TokenType.KEY)
            local_cols = self._parse_identifier_list()
            self._consume(TokenType.REFERENCES)
            ref_table = self._consume(TokenType.IDENT).value
            if self._match(TokenType.DOT):
                ref_cols = [self._consume(TokenType.IDENT).value]
            else:
                ref_cols = self._parse_identifier_list()
            if len(local_cols) == 1 and len(ref_cols) == 1:
                col = next((c for c in columns if c.name == local_cols[0]), None)
                if col is not None:
                    col.foreign_key = f"{ref_table}.{ref_cols[0]}"
            return True
        return False

    def _parse_parenthesized_raw_expression(self) -> str:
        self._consume(TokenType.LPAREN)
        depth = 1
        out = ""
        while depth > 0:
            tok = self._peek()
            if tok.type is TokenType.END:
                raise SqlSyntaxError("Unterminated CHECK expression" + _where(tok))
            self._consume(tok.type)
            if tok.type is TokenType.LPAREN:
                depth += 1
                out += "("
                continue
            if tok.type is TokenType.RPAREN:
                depth -= 1
                if depth > 0:
                    out += ")"
                continue
            if out:
                out += " "
            out += f"'{tok.value}'" if tok.type is TokenType.STRING else tok.value
        return out

    def _parse_identifier_list(self) -> list[str]:
        self._consume(TokenType.LPAREN)
        ids = [self._consume(TokenType.IDENT).value]
        while self._match(TokenType.COMMA):
            ids.append(self._consume(TokenType.IDENT).value)
        self._consume(TokenType.RPAREN)
        return ids

    def _parse_foreign_key_reference(self) -> str:
        ref_table = self._consume(TokenType.IDENT).value
        if self._match(TokenType.DOT):
            return f"{ref_table}.{self._consume(TokenType.IDENT).value}"
        self._consume(TokenType.LPAREN)
        ref_col = self._consume(TokenType.IDENT).value
        self._consume(TokenType.RPAREN)
        return f"{ref_table}.{ref_col}"

    # ALTER TABLE

    def parse_alter_table(self) -> AlterTableStmt:
        """Parse ALTER TABLE with ADD, DROP, RENAME or ALTER actions."""
        self._consume(TokenType.ALTER)
        self._consume(TokenType.TABLE)
        stmt = AlterTableStmt(table=self._consume(TokenType.IDENT).value)

        if self._match(TokenType.ADD):
            if self._match(TokenType.COLUMN):
                stmt.action = AlterActionKind.ADD_COLUMN
                stmt.column_def = self._parse_column_def()
                return stmt
            if (
                self._check(TokenType.CONSTRAINT)
                or self._check(TokenType.PRIMARY)
                or self._check(TokenType.FOREIGN)
                or self._check(TokenType.CHECK)
                or self._check_word("UNIQUE")
            ):
                self._parse_add_constraint(stmt)
                return stmt
            stmt.action = AlterActionKind.ADD_COLUMN
            stmt.column_def = self._parse_column_def()
            return stmt

        if self._match(TokenType.DROP):
            self._match(TokenType.COLUMN)
            stmt.action = AlterActionKind.DROP_COLUMN
            stmt.column_name = self._consume(TokenType.IDENT).value
            return stmt

        if self._match(TokenType.RENAME):
            self._match(TokenType.COLUMN)
            stmt.action = AlterActionKind.RENAME_COLUMN
            stmt.column_name = self._consume(TokenType.IDENT).value
            self._consume(TokenType.TO)
            stmt.new_column_name = self._consume(TokenType.IDENT).value
            return stmt

        if self._match(TokenType.ALTER):
            self._match(TokenType.COLUMN)
            stmt.action = AlterActionKind.ALTER_COLUMN_TYPE
            stmt.column_name = self._consume(TokenType.IDENT).value
            self._consume(TokenType.TYPE)
            stmt.new_type = self._consume(TokenType.IDENT).value + self._parse_type_modifier()
            return stmt

        raise SqlSyntaxError("Unsupported ALTER TABLE action" + _where(self._peek()))

    def _match_keyword_or_word(self, token_type: TokenType, word: str) -> bool:
        if self._match(token_type):
            return True
        if self._check_word(word):
            self._consume(TokenType.IDENT)
            return True
        return False

    def _parse_add_constraint(self, stmt: AlterTableStmt) -> None:
        stmt.action = AlterActionKind.ADD_CONSTRAINT

        if self._match(TokenType.CONSTRAINT):
            # The constraint name is accepted but not recorded.
            if self._check(TokenType.IDENT) and not any(
                self._check_word(w) for w in _CONSTRAINT_WORDS
            ):
                self._consume(TokenType.IDENT)

        if self._match_keyword_or_word(TokenType.PRIMARY, "PRIMARY"):
            self._consume(TokenType.KEY)
            stmt.constraint_kind = AlterConstraintKind.PRIMARY_KEY
            stmt.constraint_columns = self._parse_identifier_list()
            return

        if self._check_word("UNIQUE"):
            self._consume(TokenType.IDENT)
            stmt.constraint_kind = AlterConstraintKind.UNIQUE
            stmt.constraint_columns = self._parse_identifier_list()
            return

        if self._match_keyword_or_word(TokenType.FOREIGN, "FOREIGN"):
            self._match(TokenType.KEY)
            stmt.constraint_kind = AlterConstraintKind.FOREIGN_KEY
            stmt.constraint_columns = self._parse_identifier_list()
            if len(stmt.constraint_columns) != 1:
                raise SqlSyntaxError(
                    "ALTER TABLE ADD CONSTRAINT FOREIGN KEY currently supports one column"
                )
            self._consume(TokenType.REFERENCES)
            ref = self._parse_foreign_key_reference()
            table, dot, column = ref.partition(".")
            if not dot or not table or not column:
                raise SqlSyntaxError(f"Invalid FOREIGN KEY reference: {ref}")
            stmt.referenced_table = table
            stmt.referenced_column = column
            return

        if self._match_keyword_or_word(TokenType.CHECK, "CHECK"):
            stmt.constraint_kind = AlterConstraintKind.CHECK
            stmt.check_expr = self._parse_parenthesized_raw_expression()
            return

        raise SqlSyntaxError("Unsupported ALTER TABLE ADD CONSTRAINT form" + _where(self._peek()))

    # INSERT

    def parse_insert(self) -> InsertStmt:
        """Parse INSERT INTO table [(cols)] VALUES (...), (...)."""
        self._consume(TokenType.INSERT)
        self._consume(TokenType.INTO)
        stmt = InsertStmt(table=self._consume(TokenType.IDENT).value)
        if self._match(TokenType.LPAREN):
            stmt.columns.append(self._consume(TokenType.IDENT).value)
            while self._match(TokenType.COMMA):
                stmt.columns.append(self._consume(TokenType.IDENT).value)
            self._consume(TokenType.RPAREN)
        self._consume(TokenType.VALUES)
        stmt.value_rows.append(self._parse_value_list())
        while self._match(TokenType.COMMA):
            stmt.value_rows.append(self._parse_value_list())
        return stmt

    def _parse_value_list(self) -> list[Expr]:
        self._consume(TokenType.LPAREN)
        values: list[Expr] = []
        while True:
            tok = self._peek()
            if tok.type not in _VALUE_TOKENS:
                raise SqlSyntaxError(
                    f"Expected literal value in VALUES, got: {tok.type.name}{_where(tok)}"
                )
            values.append(Literal(self._consume(tok.type).value))
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RPAREN)
        return values

    # UPDATE / DELETE

    def parse_update(self) -> UpdateStmt:
        """Parse UPDATE table SET col = expr, ... [WHERE expr]."""
        self._consume(TokenType.UPDATE)
        stmt = UpdateStmt(table=self._consume(TokenType.IDENT).value)
        self._consume(TokenType.SET)
        stmt.assignments = self._parse_assignments()
        if self._match(TokenType.WHERE):
            stmt.where = self.parse_expression()
        return stmt

    def _parse_assignments(self) -> list[UpdateAssignment]:
        assignments: list[UpdateAssignment] = []
        while True:
            column = self._consume(TokenType.IDENT).value
            op = self._consume(TokenType.OP)
            if op.value not in ("=", "=="):
                raise SqlSyntaxError(f"SET only supports '=', got: {op.value}{_where(op)}")
            assignments.append(UpdateAssignment(column, self.parse_expression()))
            if not self._check(TokenType.COMMA):
                break
            following = self._pos + 1
            if following < len(self._tokens) and self._tokens[following].type in (
                TokenType.WHERE,
                TokenType.END,
            ):
                break
            self._match(TokenType.COMMA)
        return assignments

    def parse_delete(self) -> DeleteStmt:
        """Parse DELETE FROM table [WHERE expr]."""
        self._consume(TokenType.DELETE)
        self._consume(TokenType.FROM)
        stmt = DeleteStmt(table=self._consume(TokenType.IDENT).value)
        if self._match(TokenType.WHERE):
            stmt.where = self.parse_expression()
        return stmt


def parse_statement(sql: str) -> Statement:
    """Tokenize and parse a single statement."""
    return StatementParser(tokenize(sql)).parse_statement()