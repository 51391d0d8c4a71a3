import pytest

from qengine.lexer import Lexer, SqlSyntaxError, Token, TokenType, tokenize


def _types(text):
    return [t.type for t in tokenize(text)]


def _values(text):
    return [t.value for t in tokenize(text)]


def test_keywords_uppercased_identifiers_kept():
    tokens = tokenize("select Name from users")
    assert [t.type for t in tokens] == [
        TokenType.SELECT,
        TokenType.IDENT,
        TokenType.FROM,
        TokenType.IDENT,
        TokenType.END,
    ]
    assert [t.value for t in tokens] == ["SELECT", "Name", "FROM", "users", ""]


def test_delete_keyword():
    assert _types("delete from t")[0] == TokenType.DELETE


def test_identifier_with_underscore_and_digits():
    tokens = tokenize("_col_2")
    assert tokens[0] == Token(TokenType.IDENT, "_col_2", 1, 1)


def test_signed_and_decimal_numbers():
    tokens = tokenize("-1 +2 -3.14 7")
    assert [t.type for t in tokens[:-1]] == [TokenType.NUMBER] * 4
    assert [t.value for t in tokens[:-1]] == ["-1", "+2", "-3.14", "7"]


def test_dot_without_following_digit_is_separate():
    assert _types("1.x") == [TokenType.NUMBER, TokenType.DOT, TokenType.IDENT, TokenType.END]
    assert _values("1.x")[0] == "1"


def test_qualified_name():
    assert _types("u.id") == [TokenType.IDENT, TokenType.DOT, TokenType.IDENT, TokenType.END]


def test_string_with_escaped_quote():
    tokens = tokenize("'it''s'")
    assert tokens[0].type == TokenType.STRING
    assert tokens[0].value == "it's"


def test_operators():
    text = "= != <> <= >= == < >"
    tokens = tokenize(text)
    assert all(t.type == TokenType.OP for t in tokens[:-1])
    assert [t.value for t in tokens[:-1]] == text.split()


def test_punctuation():
    assert _types(",*().") == [
        TokenType.COMMA,
        TokenType.STAR,
        TokenType.LPAREN,
        TokenType.RPAREN,
        TokenType.DOT,
        TokenType.END,
    ]


def test_semicolon_is_skipped():
    assert _types("a;") == [TokenType.IDENT, TokenType.END]


def test_bang_alone_is_error():
    with pytest.raises(SqlSyntaxError, match="Did you mean '!='"):
        tokenize("a ! b")


def test_unterminated_string():
    with pytest.raises(SqlSyntaxError, match="Unterminated string literal at line 1, column 1"):
        tokenize("'abc")


def test_unexpected_character():
    with pytest.raises(SqlSyntaxError, match="Unexpected character '@'"):
        tokenize("a @ b")


def test_lone_minus_is_error():
    with pytest.raises(SqlSyntaxError, match="Unexpected character '-'"):
        tokenize("a - b")


def test_positions_across_lines():
    tokens = tokenize("a\n  bc")
    assert (tokens[1].line, tokens[1].column) == (2, 3)


@pytest.mark.parametrize("text", ["", "   ", "select * from t", "'x' 1 ;"])
def test_end_token_is_last_and_unique(text):
    tokens = tokenize(text)
    assert tokens[-1].type == TokenType.END
    assert sum(t.type == TokenType.END for t in tokens) == 1


def test_lexer_is_repeatable():
    lexer = Lexer("SELECT a FROM b WHERE a >= 3")
    first = lexer.tokenize()
    assert lexer.tokenize() == first
    assert tokenize("SELECT a FROM b WHERE a >= 3") == first