"""
Shellux Language Parser

Parses Shellux tokens into abstract syntax trees.

This module implements a recursive-descent parser that turns the flat token list
produced by `shellux_lexer.tokenize` into a list of top-level `ASTNode` statements.
It is strict: the first structurally invalid construct raises `ParseError` and no
partial AST is returned.

Supported Constructs
--------------------
- Expressions, lowest to highest precedence:
    * pipeline `|>`
    * `||`, `&&`
    * equality `== !=`, comparison `< <= > >=`
    * range `a..b`
    * term `+ -`, factor `* / % **`
    * unary prefix `! - ~`
    * postfix: calls `f(x)`, indexing `a[i]`, fields `m.k`, method calls `m.k(x)`
    * primary: literals, identifiers, `( expr )`, `[ ... ]`, `{ k: v }`,
      `$( command )`, `"text ${expr}"` and `${ expr }`

- Statements:
    * Declarations: `let x is 1`, `const y: int is 2`, `x is 3`
    * Assignments: `x = 1`, `a[0] += 2`, `m.k -= 3`
    * Control flow: `if`/`else`, `for x in xs`, `while`, `break`, `continue`
    * Functions: `fn add(a: int, b: int) -> int { ... }` and `return`
    * Errors: `try { ... } catch TypeName as e { ... }`
    * Pattern matching: `match x { 1 -> { ... } n -> { ... } _ -> { ... } }`

Parser Behavior
---------------
- Newlines, semicolons and comments separate statements; none is ever required.
- Inside `()`, `[]` and map literals, newlines and comments are ignored.
- `identifier is ...` declarations and assignments are told apart from expression
  statements with bounded speculative lookahead: the cursor is saved, a target is
  parsed tentatively, the next token is inspected, and the cursor is restored
  before the real parse. Speculation never contributes nodes to the result.

Entry Points
------------
- `Parser(tokens).parse()`: Parse a full program into a list of statements.
- `Parser(tokens).parse_expression()`: Parse a single expression.
- `parse(source)`: Convenience wrapper that lexes, checks and parses source text.

Raises
------
ParseError
    Raised when unexpected tokens appear or grammar rules are violated.
"""

from __future__ import annotations

from collections.abc import Callable

from shellux.shellux_ast import ASSIGNABLE_KINDS, ASTNode
from shellux.shellux_constants import (
    ASSIGNMENT_OPERATORS,
    COMPARISON_OPERATORS,
    EQUALITY_OPERATORS,
    FACTOR_OPERATORS,
    TERM_OPERATORS,
    UNARY_OPERATORS,
    WILDCARD,
)
from shellux.shellux_errors import ParseError
from shellux.shellux_lexer import Token, check_tokens, tokenize

SEPARATORS = ("NEWLINE", "COMMENT", "SEMICOLON")
LAYOUT = ("NEWLINE", "COMMENT")
STATEMENT_END = ("NEWLINE", "COMMENT", "SEMICOLON", "RBRACE", "EOF")

LITERAL_KINDS = {
    "INTEGER": "integer",
    "FLOAT": "float",
    "STRING": "string",
}


def describe(tok: Token) -> str:
    if tok.type == "EOF":
        return "end of input"
    if tok.type == "NEWLINE":
        return "newline"
    return f"{tok.type} {tok.value!r}"


class Parser:
    """
    Shellux Parser Class

    Transforms a list of tokens into `ASTNode` statements.

    Attributes
    ----------
    tokens : list[Token]
        The input token stream. An EOF token is appended if missing.
    position : int
        Current index into the token stream.
    """

    def __init__(self, tokens: list[Token]) -> None:
        if not tokens or tokens[-1].type != "EOF":
            last = tokens[-1] if tokens else Token("EOF", "EOF", 1, 1)
            tokens = list(tokens) + [Token("EOF", "EOF", last.line, last.col)]
        self.tokens: list[Token] = tokens
        self.position: int = 0

        self.statement_parsers: dict[str, Callable[[], ASTNode]] = {
            "LET": lambda: self.parse_declaration("let"),
            "CONST": lambda: self.parse_declaration("const"),
            "FN": self.parse_function,
            "IF": self.parse_if,
            "FOR": self.parse_for,
            "WHILE": self.parse_while,
            "RETURN": self.parse_return,
            "TRY": self.parse_try,
            "MATCH": self.parse_match,
        }

    # -- cursor helpers -------------------------------------------------------

    def current(self) -> Token:
        return self.tokens[min(self.position, len(self.tokens) - 1)]

    def peek(self, offset: int = 1) -> Token:
        index = min(self.position + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def advance(self) -> Token:
        tok = self.current()
        if tok.type != "EOF":
            self.position += 1
        return tok

    def mark(self) -> int:
        return self.position

    def reset(self, position: int) -> None:
        self.position = position

    def check(self, *types: str) -> bool:
        return self.current().type in types

    def match(self, *types: str, strict: bool = True) -> Token | None:
        tok = self.current()
        if tok.type in types:
            return self.advance()
        if strict:
            raise self.error(f"Expected {' or '.join(types)}, found {describe(tok)}", tok)
        return None

    def expect(self, type_: str) -> Token:
        tok = self.match(type_)
        assert tok is not None  # for mypy
        return tok

    def expect_identifier(self) -> str:
        tok = self.current()
        if tok.type != "IDENT":
            raise self.error(f"Expected identifier, found {describe(tok)}", tok)
        self.advance()
        return str(tok.value)

    def is_word(self, word: str, offset: int = 0) -> bool:
        tok = self.peek(offset)
        return tok.type == "IDENT" and tok.value == word

    def error(self, message: str, tok: Token | None = None) -> ParseError:
        tok = tok or self.current()
        if tok.type == "ERROR":
            message = f"{message} ({tok.value})"
        return ParseError(message, tok.line, tok.col)

    def skip(self, types: tuple[str, ...]) -> None:
        while self.current().type in types:
            self.advance()

    def skip_separators(self) -> None:
        self.skip(SEPARATORS)

    def skip_layout(self) -> None:
        self.skip(LAYOUT)

    # -- program and statements ----------------------------------------------

    def parse(self) -> list[ASTNode]:
        """Parse a full program and return its top-level statements.

        Raises:
            ParseError: On the first invalid construct, or when nesting exceeds
                the interpreter's recursion limit.
        """
        program: list[ASTNode] = []
        self.skip_separators()
        try:
            while not self.check("EOF"):
                program.append(self.parse_statement())
                self.skip_separators()
        except RecursionError:
            raise self.error("Expression nested too deeply") from None
        return program

    def parse_statement(self) -> ASTNode:
        """Parse one statement. Keywords dispatch first, then speculative lookahead."""
        tok = self.current()

        handler = self.statement_parsers.get(tok.type)
        if handler is not None:
            return handler()

        if tok.type == "IDENT" and tok.value in ("break", "continue"):
            if self.peek().type in STATEMENT_END:
                self.advance()
                return ASTNode(str(tok.value), line=tok.line, col=tok.col)

        if self.is_declaration_ahead():
            return self.parse_is_declaration()
        if self.is_assignment_ahead():
            return self.parse_assignment()

        expr = self.parse_expression()
        if self.current().type in ASSIGNMENT_OPERATORS:
            raise self.error(f"Invalid assignment target: {expr.kind}", tok)
        return ASTNode("expr_stmt", children=[expr], line=tok.line, col=tok.col)

    def is_declaration_ahead(self) -> bool:
        """True for `identifier is ...`. The cursor is left where it was."""
        start = self.mark()
        try:
            if not self.check("IDENT"):
                return False
            self.advance()
            return self.check("IS")
        finally:
            self.reset(start)

    def is_assignment_ahead(self) -> bool:
        """True when a valid assignment target is followed by `=`, `+=` or `-=`."""
        start = self.mark()
        try:
            target = self.parse_postfix()
            return target.kind in ASSIGNABLE_KINDS and (
                self.current().type in ASSIGNMENT_OPERATORS
            )
        except ParseError:
            return False
        finally:
            self.reset(start)

    def parse_is_declaration(self) -> ASTNode:
        tok = self.current()
        name = self.expect_identifier()
        self.expect("IS")
        value = self.parse_expression()
        return ASTNode("let", value=value, name=name, line=tok.line, col=tok.col)

    def parse_type(self) -> str:
        tok = self.current()
        if tok.type == "NIL":
            self.advance()
            return "nil"
        if tok.type != "IDENT":
            raise self.error(f"Expected type, found {describe(tok)}", tok)
        self.advance()
        return str(tok.value)

    def parse_declaration(self, kind: str) -> ASTNode:
        """Parse `let name [: type] is expr` or the `const` equivalent."""
        tok = self.advance()
        name = self.expect_identifier()
        type_ = None
        if self.match("COLON", strict=False):
            type_ = self.parse_type()
        self.expect("IS")
        value = self.parse_expression()
        return ASTNode(kind, value=value, name=name, type_=type_, line=tok.line, col=tok.col)

    def parse_assignment(self) -> ASTNode:
        tok = self.current()
        target = self.parse_assignment_target()
        op_tok = self.advance()
        if op_tok.type not in ASSIGNMENT_OPERATORS:
            raise self.error(f"Expected assignment operator, found {describe(op_tok)}", op_tok)
        value = self.parse_expression()
        return ASTNode(
            "assign",
            value=ASSIGNMENT_OPERATORS[op_tok.type],
            children=[target, value],
            line=tok.line,
            col=tok.col,
        )

    def parse_assignment_target(self) -> ASTNode:
        tok = self.current()
        target = self.parse_postfix()
        if target.kind not in ASSIGNABLE_KINDS:
            raise self.error(f"Invalid assignment target: {target.kind}", tok)
        return target

    def parse_block(self) -> list[ASTNode]:
        """Parse a `{}`-enclosed block of statements."""
        self.expect("LBRACE")
        stmts: list[ASTNode] = []
        self.skip_separators()
        while not self.check("RBRACE"):
            if self.check("EOF"):
                raise self.error("Expected '}', found end of input")
            stmts.append(self.parse_statement())
            self.skip_separators()
        self.expect("RBRACE")
        return stmts

    def parse_function(self) -> ASTNode:
        """Parse a function definition including parameters, return type, and body."""
        fn_tok = self.advance()
        name = self.expect_identifier()
        self.expect("LPAREN")

        params: list[ASTNode] = []
        self.skip_layout()
        while not self.check("RPAREN"):
            param_tok = self.current()
            param_name = self.expect_identifier()
            param_type = self.parse_type() if self.match("COLON", strict=False) else None
            params.append(
                ASTNode(
                    "param",
                    name=param_name,
                    type_=param_type,
                    line=param_tok.line,
                    col=param_tok.col,
                )
            )
            self.skip_layout()
            if not self.match("COMMA", strict=False):
                break
            self.skip_layout()
        self.expect("RPAREN")

        return_type = self.parse_type() if self.match("ARROW", strict=False) else None
        body = self.parse_block()
        return ASTNode(
            "func",
            value=params,
            children=body,
            name=name,
            return_type=return_type,
            line=fn_tok.line,
            col=fn_tok.col,
        )

    def parse_if(self) -> ASTNode:
        """Parse `if cond { ... } [else { ... }]`. No parentheses are required."""
        if_tok = self.advance()
        cond = self.parse_expression()
        node = ASTNode("if", value=cond, children=self.parse_block(), line=if_tok.line, col=if_tok.col)

        start = self.mark()
        self.skip_separators()
        if self.match("ELSE", strict=False):
            node.else_children = self.parse_block()
        else:
            self.reset(start)
        return node

    def parse_for(self) -> ASTNode:
        for_tok = self.advance()
        name = self.expect_identifier()
        self.expect("IN")
        iterable = self.parse_expression()
        body = self.parse_block()
        return ASTNode("for", value=iterable, children=body, name=name, line=for_tok.line, col=for_tok.col)

    def parse_while(self) -> ASTNode:
        while_tok = self.advance()
        cond = self.parse_expression()
        body = self.parse_block()
        return ASTNode("while", value=cond, children=body, line=while_tok.line, col=while_tok.col)

    def parse_return(self) -> ASTNode:
        tok = self.advance()
        if self.current().type in STATEMENT_END:
            return ASTNode("return", line=tok.line, col=tok.col)
        return ASTNode("return", children=[self.parse_expression()], line=tok.line, col=tok.col)

    def parse_try(self) -> ASTNode:
        """Parse `try { ... }` followed by any number of catch clauses."""
        try_tok = self.advance()
        node = ASTNode("try", children=self.parse_block(), line=try_tok.line, col=try_tok.col)

        while True:
            start = self.mark()
            self.skip_separators()
            catch_tok = self.match("CATCH", strict=False)
            if catch_tok is None:
                self.reset(start)
                break

            exc_type = None
            if self.check("IDENT") and not self.is_word("as"):
                exc_type = self.expect_identifier()
            var_name = None
            if self.is_word("as"):
                self.advance()
                var_name = self.expect_identifier()

            node.else_children.append(
                ASTNode(
                    "catch",
                    value=exc_type,
                    children=self.parse_block(),
                    name=var_name,
                    line=catch_tok.line,
                    col=catch_tok.col,
                )
            )
        return node

    def parse_match(self) -> ASTNode:
        """Parse `match expr { pattern -> { ... } ... }`."""
        match_tok = self.advance()
        subject = self.parse_expression()
        self.expect("LBRACE")

        arms: list[ASTNode] = []
        self.skip_separators()
        while not self.check("RBRACE"):
            if self.check("EOF"):
                raise self.error("Expected '}' to close match, found end of input")
            pattern = self.parse_pattern()
            self.expect("ARROW")
            body = self.parse_block()
            arms.append(ASTNode("arm", value=pattern, children=body, line=pattern.line, col=pattern.col))
            self.skip_separators()
        self.expect("RBRACE")
        return ASTNode("match", value=subject, children=arms, line=match_tok.line, col=match_tok.col)

    def parse_pattern(self) -> ASTNode:
        tok = self.current()
        if self.is_word(WILDCARD):
            self.advance()
            return ASTNode("pattern_wildcard", line=tok.line, col=tok.col)
        expr = self.parse_expression()
        if expr.kind == "identifier":
            return ASTNode("pattern_bind", name=expr.value, line=tok.line, col=tok.col)
        return ASTNode("pattern_literal", value=expr, line=tok.line, col=tok.col)

    # -- expressions ----------------------------------------------------------

    def parse_expression(self) -> ASTNode:
        return self.parse_pipeline()

    def parse_binary(self, operand: Callable[[], ASTNode], operators: dict[str, str]) -> ASTNode:
        """Left-associative loop shared by every binary precedence level."""
        left = operand()
        while self.current().type in operators:
            op_tok = self.advance()
            right = operand()
            left = ASTNode(
                "binary",
                value=operators[op_tok.type],
                children=[left, right],
                line=op_tok.line,
                col=op_tok.col,
            )
        return left

    def parse_pipeline(self) -> ASTNode:
        left = self.parse_or()
        while self.check("PIPE"):
            op_tok = self.advance()
            right = self.parse_or()
            left = ASTNode("pipeline", children=[left, right], line=op_tok.line, col=op_tok.col)
        return left

    def parse_or(self) -> ASTNode:
        return self.parse_binary(self.parse_and, {"OR": "||"})

    def parse_and(self) -> ASTNode:
        return self.parse_binary(self.parse_equality, {"AND": "&&"})

    def parse_equality(self) -> ASTNode:
        return self.parse_binary(self.parse_comparison, EQUALITY_OPERATORS)

    def parse_comparison(self) -> ASTNode:
        return self.parse_binary(self.parse_range, COMPARISON_OPERATORS)

    def parse_range(self) -> ASTNode:
        start = self.parse_term()
        if self.check("RANGE"):
            op_tok = self.advance()
            end = self.parse_term()
            return ASTNode("range", children=[start, end], line=op_tok.line, col=op_tok.col)
        return start

    def parse_term(self) -> ASTNode:
        return self.parse_binary(self.parse_factor, TERM_OPERATORS)

    def parse_factor(self) -> ASTNode:
        return self.parse_binary(self.parse_unary, FACTOR_OPERATORS)

    def parse_unary(self) -> ASTNode:
        tok = self.current()
        if tok.type in UNARY_OPERATORS:
            self.advance()
            operand = self.parse_unary()
            return ASTNode("unary", value=UNARY_OPERATORS[tok.type], children=[operand], line=tok.line, col=tok.col)
        return self.parse_postfix()

    def parse_postfix(self) -> ASTNode:
        """Parse a primary followed by any chain of calls, indexes and field accesses."""
        expr = self.parse_primary()
        while True:
            tok = self.current()
            if tok.type == "LPAREN":
                if expr.kind != "identifier":
                    raise self.error("Invalid function call: only named functions can be called", tok)
                self.advance()
                args = self.parse_arguments("RPAREN")
                expr = ASTNode("call", children=args, name=expr.value, line=expr.line, col=expr.col)
            elif tok.type == "LBRACK":
                self.advance()
                self.skip_layout()
                index = self.parse_expression()
                self.skip_layout()
                self.expect("RBRACK")
                expr = ASTNode("index", value=expr, children=[index], line=tok.line, col=tok.col)
            elif tok.type == "DOT":
                self.advance()
                field = self.expect_identifier()
                if self.match("LPAREN", strict=False):
                    args = self.parse_arguments("RPAREN")
                    expr = ASTNode("method_call", value=expr, children=args, name=field, line=tok.line, col=tok.col)
                else:
                    expr = ASTNode("field", value=expr, name=field, line=tok.line, col=tok.col)
            else:
                return expr

    def parse_arguments(self, close: str) -> list[ASTNode]:
        """Parse a comma-separated expression list up to and including `close`."""
        args: list[ASTNode] = []
        self.skip_layout()
        while not self.check(close):
            args.append(self.parse_expression())
            self.skip_layout()
            if not self.match("COMMA", strict=False):
                break
            self.skip_layout()
        self.expect(close)
        return args

    def parse_primary(self) -> ASTNode:
        tok = self.current()

        if tok.type in LITERAL_KINDS:
            self.advance()
            return ASTNode(LITERAL_KINDS[tok.type], tok.value, line=tok.line, col=tok.col)
        if tok.type in ("TRUE", "FALSE"):
            self.advance()
            return ASTNode("boolean", tok.type == "TRUE", line=tok.line, col=tok.col)
        if tok.type == "NIL":
            self.advance()
            return ASTNode("nil", line=tok.line, col=tok.col)
        if tok.type == "IDENT":
            self.advance()
            return ASTNode("identifier", tok.value, line=tok.line, col=tok.col)
        if tok.type == "COMMAND":
            self.advance()
            return ASTNode("command", tok.value, line=tok.line, col=tok.col)
        if tok.type == "TEMPLATE":
            self.advance()
            return self.parse_template(tok)
        if tok.type == "INTERP_START":
            self.advance()
            self.skip_layout()
            expr = self.parse_expression()
            self.skip_layout()
            self.expect("RBRACE")
            return ASTNode("interpolation", children=[expr], line=tok.line, col=tok.col)
        if tok.type == "LPAREN":
            self.advance()
            self.skip_layout()
            expr = self.parse_expression()
            self.skip_layout()
            self.expect("RPAREN")
            return expr
        if tok.type == "LBRACK":
            self.advance()
            return ASTNode("array", children=self.parse_arguments("RBRACK"), line=tok.line, col=tok.col)
        if tok.type == "LBRACE":
            self.advance()
            return self.parse_map(tok)

        if tok.type == "EOF":
            raise self.error("Unexpected end of input", tok)
        raise self.error(f"Unexpected token: {describe(tok)}", tok)

    def parse_map(self, open_tok: Token) -> ASTNode:
        """Parse `{ key: value, ... }`. A bare identifier key is taken as a string."""
        pairs: list[ASTNode] = []
        self.skip_layout()
        while not self.check("RBRACE"):
            key = self.parse_expression()
            if key.kind == "identifier":
                key = ASTNode("string", key.value, line=key.line, col=key.col)
            self.skip_layout()
            self.expect("COLON")
            self.skip_layout()
            value = self.parse_expression()
            pairs.append(ASTNode("pair", children=[key, value], line=key.line, col=key.col))
            self.skip_layout()
            if not self.match("COMMA", strict=False):
                break
            self.skip_layout()
        self.expect("RBRACE")
        return ASTNode("map", children=pairs, line=open_tok.line, col=open_tok.col)

    def parse_template(self, tok: Token) -> ASTNode:
        """Build an interpolation node from a TEMPLATE token's text/expr parts."""
        parts: list[ASTNode] = []
        for part_kind, text in tok.value:
            if part_kind == "text":
                parts.append(ASTNode("text", text, line=tok.line, col=tok.col))
                continue
            try:
                sub = Parser(check_tokens(tokenize(text)))
                sub.skip_layout()
                expr = sub.parse_expression()
                sub.skip_layout()
                if not sub.check("EOF"):
                    raise sub.error(f"Unexpected token: {describe(sub.current())}")
            except SyntaxError as e:
                raise ParseError(f"Invalid interpolation '${{{text}}}': {e}", tok.line, tok.col) from e
            parts.append(expr)
        return ASTNode("interpolation", children=parts, line=tok.line, col=tok.col)


def parse(source: str) -> list[ASTNode]:
    """Lex `source`, reject lexical errors, and parse it into a program."""
    return Parser(check_tokens(tokenize(source))).parse()


__all__ = ["Parser", "parse"]
