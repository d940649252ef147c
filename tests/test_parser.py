from typing import Any

import pytest
from hypothesis import assume, given
from hypothesis import strategies as st

from shellux.shellux_ast import ASTNode
from shellux.shellux_constants import KEYWORDS
from shellux.shellux_errors import LexicalError, ParseError
from shellux.shellux_lexer import Token, tokenize
from shellux.shellux_parser import Parser, parse


def expr(source: str) -> ASTNode:
    program = parse(source)
    assert len(program) == 1
    assert program[0].kind == "expr_stmt"
    return program[0].children[0]


def prune(node: Any) -> Any:
    """Remove line/col so trees can be compared by shape."""
    if isinstance(node, list):
        return [prune(n) for n in node]
    if isinstance(node, dict):
        return {k: prune(v) for k, v in node.items() if k not in ("line", "col")}
    return node


def test_precedence_multiplication_binds_tighter() -> None:
    node = expr("2 + 3 * 4")
    assert node.kind == "binary" and node.value == "+"
    assert node.children[0] == ASTNode("integer", 2, line=1, col=1)
    assert node.children[1].value == "*"


def test_parentheses_override_precedence() -> None:
    node = expr("(2 + 3) * 4")
    assert node.value == "*"
    assert node.children[0].value == "+"


def test_binary_is_left_associative() -> None:
    node = expr("1 - 2 - 3")
    assert node.value == "-"
    assert node.children[0].value == "-"
    assert node.children[1].value == 3


def test_unary_is_right_associative_prefix() -> None:
    node = expr("!!x")
    assert node.kind == "unary" and node.value == "!"
    assert node.children[0].kind == "unary"
    assert node.children[0].children[0].kind == "identifier"


def test_unary_binds_tighter_than_power() -> None:
    node = expr("-2 ** 2")
    assert node.value == "**"
    assert node.children[0].kind == "unary"


@pytest.mark.parametrize(  # type: ignore[misc]
    "source,top",
    [
        ("a || b && c", "||"),
        ("a && b == c", "&&"),
        ("a == b < c", "=="),
        ("a < b + c", "<"),
        ("a + b % c", "+"),
    ],
)
def test_precedence_ladder(source: str, top: str) -> None:
    assert expr(source).value == top


def test_pipeline_is_lowest() -> None:
    node = expr("a || b |> f")
    assert node.kind == "pipeline"
    assert node.children[0].value == "||"
    assert node.children[1] == ASTNode("identifier", "f", line=1, col=11)


def test_range_sits_between_comparison_and_term() -> None:
    node = expr("0..n + 1")
    assert node.kind == "range"
    assert node.children[1].value == "+"
    assert expr("i < 0..3").value == "<"


def test_let_with_annotation() -> None:
    node = parse("let x: int is 5")[0]
    assert node.kind == "let"
    assert node.name == "x"
    assert node.type == "int"
    assert node.value == ASTNode("integer", 5, line=1, col=15)


def test_const_declaration() -> None:
    node = parse("const y is 1")[0]
    assert node.kind == "const"
    assert node.name == "y"
    assert node.type is None


def test_is_declaration_without_let() -> None:
    program = parse("x is 42\nx")
    assert [n.kind for n in program] == ["let", "expr_stmt"]
    assert program[0].name == "x"


@pytest.mark.parametrize(  # type: ignore[misc]
    "source,op,target",
    [
        ("x = 1", "=", "identifier"),
        ("a[0] += 2", "+=", "index"),
        ("m.k -= 3", "-=", "field"),
        ("a[0].k[1] = 4", "=", "index"),
    ],
)
def test_assignment_targets(source: str, op: str, target: str) -> None:
    node = parse(source)[0]
    assert node.kind == "assign"
    assert node.value == op
    assert node.children[0].kind == target


@pytest.mark.parametrize("source", ["f() = 3", "1 + 2 = 3", "-x = 1", '"s" += 1'])  # type: ignore[misc]
def test_invalid_assignment_target(source: str) -> None:
    with pytest.raises(ParseError):
        parse(source)


def test_speculation_restores_cursor() -> None:
    parser = Parser(tokenize("a[0] = 1"))
    assert parser.is_assignment_ahead()
    assert parser.position == 0

    parser = Parser(tokenize("[1, 2"))
    assert not parser.is_assignment_ahead()
    assert parser.position == 0

    parser = Parser(tokenize("x is 1"))
    assert parser.is_declaration_ahead()
    assert parser.position == 0


def test_call_expression_statement() -> None:
    node = expr('f(x, "y")')
    assert node.kind == "call"
    assert node.name == "f"
    assert [c.kind for c in node.children] == ["identifier", "string"]


@pytest.mark.parametrize("source", ["a[0](1)", '"s"(1)', "m.k.x(1)(2)"])  # type: ignore[misc]
def test_call_requires_identifier(source: str) -> None:
    with pytest.raises(ParseError, match="Invalid function call"):
        parse(source)


def test_method_call_and_field() -> None:
    node = expr("m.k(1)")
    assert node.kind == "method_call"
    assert node.name == "k"
    assert node.value.kind == "identifier"
    assert len(node.children) == 1

    node = expr("m.k")
    assert node.kind == "field"
    assert node.name == "k"


def test_index_expression() -> None:
    node = expr("a[i + 1]")
    assert node.kind == "index"
    assert node.value.value == "a"
    assert node.children[0].value == "+"


def test_function_definition() -> None:
    node = parse("fn add(a: int, b: int) -> int {\n    return a + b\n}")[0]
    assert node.kind == "func"
    assert node.name == "add"
    assert [(p.name, p.type) for p in node.value] == [("a", "int"), ("b", "int")]
    assert node.return_type == "int"
    assert node.children[0].kind == "return"
    assert node.children[0].children[0].value == "+"


def test_function_without_annotations() -> None:
    node = parse("fn f(\n  a,\n  b\n) { a }")[0]
    assert [p.name for p in node.value] == ["a", "b"]
    assert node.return_type is None


def test_bare_return() -> None:
    body = parse("fn f() { return }")[0].children
    assert body == [ASTNode("return", line=1, col=10)]


def test_if_else_across_newlines() -> None:
    node = parse("if x {\n  1\n}\nelse {\n  2\n}")[0]
    assert node.kind == "if"
    assert node.value.kind == "identifier"
    assert node.children[0].children[0].value == 1
    assert node.else_children[0].children[0].value == 2


def test_if_without_else_leaves_next_statement() -> None:
    program = parse("if x { 1 }\n\n2")
    assert [n.kind for n in program] == ["if", "expr_stmt"]
    assert program[0].else_children == []


def test_else_requires_block() -> None:
    with pytest.raises(ParseError):
        parse("if x { 1 } else if y { 2 }")


def test_for_and_while() -> None:
    loop = parse("for item in items { print(item) }")[0]
    assert loop.kind == "for"
    assert loop.name == "item"
    assert loop.value.value == "items"

    loop = parse("while i < 10 { i += 1 }")[0]
    assert loop.kind == "while"
    assert loop.value.value == "<"
    assert loop.children[0].kind == "assign"


def test_break_and_continue() -> None:
    body = parse("while true {\n  break\n  continue\n}")[0].children
    assert [n.kind for n in body] == ["break", "continue"]


def test_break_as_identifier_in_expression() -> None:
    node = expr("break + 1")
    assert node.kind == "binary"


def test_try_catch_clauses() -> None:
    node = parse("try { x } catch RuntimeError as e { y }\ncatch as err { z } catch { w }")[0]
    assert node.kind == "try"
    clauses = [(c.value, c.name) for c in node.else_children]
    assert clauses == [("RuntimeError", "e"), (None, "err"), (None, None)]


def test_try_without_catch() -> None:
    node = parse("try { x }")[0]
    assert node.else_children == []


def test_match_patterns() -> None:
    node = parse('match x {\n  1 -> { "one" }\n  n -> { n }\n  _ -> { "other" }\n}')[0]
    assert node.kind == "match"
    assert [arm.value.kind for arm in node.children] == [
        "pattern_literal",
        "pattern_bind",
        "pattern_wildcard",
    ]
    assert node.children[0].value.value.value == 1
    assert node.children[1].value.name == "n"


def test_match_requires_arrow() -> None:
    with pytest.raises(ParseError):
        parse("match x { 1 { 2 } }")


def test_array_literal_spans_lines() -> None:
    node = expr("[1,\n  2,\n]")
    assert node.kind == "array"
    assert [c.value for c in node.children] == [1, 2]


def test_map_literal_identifier_keys_are_strings() -> None:
    node = expr('{name: "x", "k": 1}')
    assert node.kind == "map"
    keys = [pair.children[0] for pair in node.children]
    assert [(k.kind, k.value) for k in keys] == [("string", "name"), ("string", "k")]


def test_empty_containers() -> None:
    assert expr("[]").children == []
    assert expr("{}").children == []


def test_command_literal() -> None:
    assert expr("$(ls -la)") == ASTNode("command", "ls -la", line=1, col=1)


def test_template_string() -> None:
    node = expr('"hi ${name}, ${1 + 2}"')
    assert node.kind == "interpolation"
    assert [c.kind for c in node.children] == ["text", "identifier", "text", "binary"]


def test_invalid_template_expression() -> None:
    with pytest.raises(ParseError, match="Invalid interpolation"):
        parse('"${1 +}"')


def test_interpolation_block() -> None:
    node = expr("${ x }")
    assert node.kind == "interpolation"
    assert node.children[0].value == "x"


def test_statement_separators() -> None:
    program = parse("# header\nlet a is 1; let b is 2 /* tail */\n\n\nb")
    assert [n.kind for n in program] == ["let", "let", "expr_stmt"]


def test_empty_program() -> None:
    assert parse("") == []
    assert parse("\n# only a comment\n") == []


def test_parse_error_position() -> None:
    with pytest.raises(ParseError) as exc:
        parse("let x is )")
    assert (exc.value.line, exc.value.col) == (1, 10)
    assert isinstance(exc.value, SyntaxError)


@pytest.mark.parametrize(  # type: ignore[misc]
    "source",
    ["let is 5", "if x { 1", "fn (a) {}", "let x 5", "for in xs {}", "(1 + 2", "x = "],
)
def test_malformed_programs(source: str) -> None:
    with pytest.raises(ParseError):
        parse(source)


def test_parse_rejects_lexical_errors() -> None:
    with pytest.raises(LexicalError):
        parse("x is @")


def test_parser_appends_missing_eof() -> None:
    parser = Parser([Token("IDENT", "x", 1, 1)])
    program = parser.parse()
    assert program[0].children[0].value == "x"


def test_ast_dump_is_stable() -> None:
    dumped = prune(parse("let x is [1, 2]")[0].to_dict())
    assert dumped["kind"] == "let"
    assert dumped["name"] == "x"
    assert dumped["value"]["kind"] == "array"
    assert [c["value"] for c in dumped["value"]["children"]] == [1, 2]


@given(st.integers(min_value=0, max_value=2**63 - 1))  # type: ignore[misc]
def test_integer_literal_roundtrip(n: int) -> None:
    node = expr(str(n))
    assert node.kind == "integer"
    assert node.value == n


@given(st.from_regex(r"[a-z][a-z0-9_]{0,10}", fullmatch=True))  # type: ignore[misc]
def test_identifier_declarations(name: str) -> None:
    assume(name not in KEYWORDS)
    node = parse(f"{name} is 1")[0]
    assert node.kind == "let"
    assert node.name == name


def test_deep_nesting_is_a_parse_error() -> None:
    depth = 5000
    with pytest.raises(ParseError, match="nested too deeply"):
        parse("(" * depth + "1" + ")" * depth)


def test_moderate_nesting_parses() -> None:
    node = expr("((((((1))))))")
    assert node == ASTNode("integer", 1, line=1, col=7)
