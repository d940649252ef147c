import pytest
from hypothesis import given
from hypothesis import strategies as st

from shellux.shellux_constants import KEYWORDS
from shellux.shellux_errors import LexicalError
from shellux.shellux_lexer import (
    CharacterStream,
    Lexer,
    Token,
    check_tokens,
    find_lexical_error,
    tokenize,
)


def types(source: str) -> list[str]:
    return [t.type for t in tokenize(source)]


def test_declaration_tokens() -> None:
    assert types("x is 42") == ["IDENT", "IS", "INTEGER", "EOF"]


def test_token_lines_across_newline() -> None:
    tokens = tokenize("x is 42\nx")
    assert [t.line for t in tokens[:2]] == [1, 1]
    ident = [t for t in tokens if t.type == "IDENT"][-1]
    assert ident.line == 2
    assert ident.col == 1


def test_newline_is_a_token() -> None:
    assert types("a\nb") == ["IDENT", "NEWLINE", "IDENT", "EOF"]


def test_token_columns_and_length() -> None:
    tokens = tokenize("let count is 10")
    assert [(t.col, t.length) for t in tokens[:4]] == [(1, 3), (5, 5), (11, 2), (14, 2)]


@pytest.mark.parametrize("word,expected", sorted(KEYWORDS.items()))  # type: ignore[misc]
def test_keywords(word: str, expected: str) -> None:
    tok = tokenize(word)[0]
    assert tok.type == expected
    assert tok.value == word


def test_soft_keywords_are_identifiers() -> None:
    assert types("break continue as") == ["IDENT", "IDENT", "IDENT", "EOF"]


@pytest.mark.parametrize(  # type: ignore[misc]
    "source,expected",
    [
        ("==", "EQ"),
        ("!=", "NE"),
        ("<=", "LE"),
        (">=", "GE"),
        ("&&", "AND"),
        ("||", "OR"),
        ("|>", "PIPE"),
        ("->", "ARROW"),
        (":=", "COLON_ASSIGN"),
        ("+=", "PLUS_ASSIGN"),
        ("-=", "MINUS_ASSIGN"),
        ("<<", "SHL"),
        (">>", "SHR"),
        ("**", "POW"),
        ("..", "RANGE"),
        ("=", "ASSIGN"),
        ("<", "LT"),
        ("|", "BIT_OR"),
        ("&", "BIT_AND"),
        ("~", "BIT_NOT"),
    ],
)
def test_operators_longest_match(source: str, expected: str) -> None:
    tok = tokenize(source)[0]
    assert tok.type == expected
    assert tok.value == source


def test_less_equal_is_not_split() -> None:
    assert types("a <= = b") == ["IDENT", "LE", "ASSIGN", "IDENT", "EOF"]


def test_integer_token() -> None:
    tok = tokenize("123")[0]
    assert tok.type == "INTEGER"
    assert tok.value == 123


def test_float_token() -> None:
    tok = tokenize("123.456")[0]
    assert tok.type == "FLOAT"
    assert tok.value == 123.456


def test_range_between_integers() -> None:
    tokens = tokenize("1..5")
    assert [(t.type, t.value) for t in tokens[:3]] == [
        ("INTEGER", 1),
        ("RANGE", ".."),
        ("INTEGER", 5),
    ]


def test_invalid_number() -> None:
    tok = tokenize("1.2.3")[0]
    assert tok.type == "ERROR"
    assert tok.value == "Invalid number: 1.2.3"


def test_integer_out_of_range() -> None:
    assert tokenize("9223372036854775807")[0].type == "INTEGER"
    tok = tokenize("9223372036854775808")[0]
    assert tok.type == "ERROR"
    assert tok.value.startswith("Invalid integer")


def test_string_escapes() -> None:
    tok = tokenize(r'"a\nb\t\"q\" \\ \'s\' \r"')[0]
    assert tok.type == "STRING"
    assert tok.value == "a\nb\t\"q\" \\ 's' \r"


def test_unknown_escape_keeps_backslash() -> None:
    assert tokenize(r'"\q"')[0].value == "\\q"


def test_single_quoted_string_is_raw() -> None:
    tok = tokenize(r"'a\nb ${x}'")[0]
    assert tok.type == "STRING"
    assert tok.value == "a\\nb ${x}"


@pytest.mark.parametrize("source", ['"abc', "'abc", '"abc\\"'])  # type: ignore[misc]
def test_unterminated_string(source: str) -> None:
    tok = tokenize(source)[0]
    assert tok.type == "ERROR"
    assert tok.value == "Unterminated string"


def test_template_string_parts() -> None:
    tok = tokenize('"hi ${name}!"')[0]
    assert tok.type == "TEMPLATE"
    assert tok.value == [("text", "hi "), ("expr", "name"), ("text", "!")]


def test_template_balances_braces() -> None:
    tok = tokenize('"${ {a: 1}.a }"')[0]
    assert tok.value == [("expr", " {a: 1}.a ")]


def test_unterminated_interpolation() -> None:
    tok = tokenize('"${x"')[0]
    assert tok.type == "ERROR"
    assert tok.value.startswith("Unterminated interpolation")


def test_command_literal_balances_parens() -> None:
    tok = tokenize("$(ls (a) b)")[0]
    assert tok.type == "COMMAND"
    assert tok.value == "ls (a) b"


def test_unterminated_command() -> None:
    tok = tokenize("$(ls -la")[0]
    assert tok.type == "ERROR"
    assert tok.value == "Unterminated command"


def test_interp_start_outside_string() -> None:
    assert types("${x}") == ["INTERP_START", "IDENT", "RBRACE", "EOF"]


def test_line_comment() -> None:
    tokens = tokenize("# note\nx")
    assert [(t.type, t.value) for t in tokens[:2]] == [("COMMENT", " note"), ("NEWLINE", "\n")]


def test_block_comment_does_not_nest() -> None:
    tokens = tokenize("/* a /* b */ x */")
    assert tokens[0].type == "COMMENT"
    assert tokens[0].value == " a /* b "
    assert tokens[1].type == "IDENT"


def test_unterminated_block_comment_runs_to_end() -> None:
    assert types("/* never closed") == ["COMMENT", "EOF"]


def test_unexpected_character_advances() -> None:
    tokens = tokenize("x @ y")
    assert [t.type for t in tokens] == ["IDENT", "ERROR", "IDENT", "EOF"]
    assert tokens[1].value == "Unexpected character: '@'"


def test_find_and_check_lexical_error() -> None:
    tokens = tokenize("x is\n  @")
    bad = find_lexical_error(tokens)
    assert bad is not None and (bad.line, bad.col) == (2, 3)
    with pytest.raises(LexicalError) as exc:
        check_tokens(tokens)
    assert exc.value.line == 2
    assert exc.value.col == 3


def test_check_tokens_passes_clean_stream() -> None:
    tokens = tokenize("x is 1")
    assert check_tokens(tokens) is tokens


@pytest.mark.parametrize(  # type: ignore[misc]
    "tok,category",
    [
        (Token("INTEGER", 1), "literal"),
        (Token("TEMPLATE", []), "literal"),
        (Token("IDENT", "x"), "identifier"),
        (Token("LET", "let"), "keyword"),
        (Token("PLUS", "+"), "operator"),
        (Token("INTERP_START", "${"), "operator"),
        (Token("LPAREN", "("), "punctuation"),
        (Token("NEWLINE", "\n"), "newline"),
        (Token("COMMENT", ""), "comment"),
        (Token("ERROR", "bad"), "error"),
        (Token("EOF", "EOF"), "eof"),
    ],
)
def test_token_category(tok: Token, category: str) -> None:
    assert tok.category == category


def test_token_equality_ignores_length() -> None:
    assert Token("IDENT", "x", 1, 1, 1) == Token("IDENT", "x", 1, 1, 9)
    assert Token("IDENT", "x", 1, 1) != Token("IDENT", "x", 1, 2)
    assert repr(Token("IDENT", "x")) == "Token(IDENT, 'x')"


def test_character_stream_tracks_position() -> None:
    cs = CharacterStream("a\nb")
    assert cs.next() == "a"
    assert cs.next() == "\n"
    assert (cs.line, cs.column) == (2, 1)
    assert cs.peek() == "b"
    assert cs.peek(5) == ""
    cs.next()
    assert cs.end_of_file()
    with pytest.raises(Exception):
        cs.next()


def test_lexer_returns_eof_repeatedly() -> None:
    lexer = Lexer(CharacterStream(""))
    assert lexer.next_token().type == "EOF"
    assert lexer.next_token().type == "EOF"


@given(st.text(max_size=200))  # type: ignore[misc]
def test_tokenize_never_raises(source: str) -> None:
    tokens = tokenize(source)
    assert tokens[-1].type == "EOF"
    assert sum(1 for t in tokens if t.type == "EOF") == 1


@given(st.integers(min_value=0, max_value=2**63 - 1))  # type: ignore[misc]
def test_integer_literals(n: int) -> None:
    tok = tokenize(str(n))[0]
    assert tok.type == "INTEGER"
    assert tok.value == n
