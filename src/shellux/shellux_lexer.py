"""
Lexical analyzer for the Shellux scripting language.

This module converts raw source text into a flat token sequence:

Classes:
    CharacterStream: Stream abstraction for reading characters with line/column tracking.
    Token: A single token with type, payload, source location and length.
    Lexer: Converts a CharacterStream into a sequence of tokens.

Functions:
    tokenize(source): Lex a whole source string, always ending with an EOF token.
    find_lexical_error(tokens): Return the first ERROR token, if any.
    check_tokens(tokens): Raise LexicalError for the first ERROR token.

Features:
    - Newlines are significant tokens (statement separators)
    - `#` line comments and `/* */` block comments are kept as COMMENT tokens
    - Longest-match recognition of operators
    - Integers, floats, double-quoted (escaped) and single-quoted (raw) strings
    - `${...}` interpolation inside double-quoted strings (TEMPLATE tokens)
    - `$( ... )` command literals with balanced parentheses

The lexer never raises: malformed input becomes ERROR tokens carrying a message,
and every error advances the stream so lexing always terminates.

Example:
    >>> [t.type for t in tokenize("x is 42")]
    ['IDENT', 'IS', 'INTEGER', 'EOF']
"""

from typing import Any

from shellux.shellux_constants import (
    INT_MAX,
    KEYWORDS,
    MAX_OPERATOR_LENGTH,
    OPERATORS,
    TOKEN_CATEGORIES,
)
from shellux.shellux_errors import LexicalError

ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


class CharacterStream:
    """
    A utility for reading characters from a string source with line and column tracking.

    Attributes:
        source (str): The input source string.
        position (int): Current index in the source.
        line (int): Current line number (1-indexed).
        column (int): Current column number (1-indexed).
    """

    def __init__(self, source: str, position: int = 0, line: int = 1, column: int = 1):
        self.source = source
        self.position = position
        self.line = line
        self.column = column

    def next(self) -> str:
        """
        Consumes and returns the next character in the stream.

        Raises:
            Exception: If reading past the end of the source.
        """
        if self.position >= len(self.source):
            raise Exception(
                f"CharacterStreamError: Attempted to read past end of source at position=<{self.position}>, line=<{self.line}>"
            )
        char = self.source[self.position]
        if char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        self.position += 1
        return char

    def peek(self, offset: int = 0) -> str:
        """Returns the character at `offset` without advancing, or "" when out of bounds."""
        index = self.position + offset
        if index < 0 or index >= len(self.source):
            return ""
        return self.source[index]

    def end_of_file(self) -> bool:
        return self.position >= len(self.source)


class Token:
    """Represents a single lexical token.

    Attributes:
        type (str): The canonical token type (e.g. 'IDENT', 'INTEGER', 'EOF').
        value (Any): Decoded literal payload, source text, or error message.
        line (int): The 1-based line number where the token starts.
        col (int): The 1-based column number where the token starts.
        length (int): Number of source characters the token spans.
    """

    def __init__(
        self, type_: str, value: Any, line: int = 0, col: int = 0, length: int = 0
    ):
        self.type = type_
        self.value = value
        self.line = line
        self.col = col
        self.length = length

    @property
    def category(self) -> str:
        """Coarse kind: literal, identifier, keyword, operator, punctuation, newline,
        comment, error or eof."""
        return TOKEN_CATEGORIES.get(self.type, "operator")

    def __repr__(self) -> str:
        return f"Token({self.type}, {self.value!r})"

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, Token)
            and self.type == other.type
            and self.value == other.value
            and self.line == other.line
            and self.col == other.col
        )

    def __hash__(self) -> int:
        return hash((self.type, repr(self.value), self.line, self.col))


class Lexer:
    """Lexical analyzer for Shellux.

    Attributes:
        stream (CharacterStream): The source stream to tokenize.
    """

    def __init__(self, stream: CharacterStream) -> None:
        self.stream = stream

    def peek(self, offset: int = 0) -> str:
        return self.stream.peek(offset)

    def advance(self) -> str:
        return self.stream.next()

    def skip_whitespace(self) -> None:
        """Skips horizontal whitespace. Newlines are left for next_token()."""
        while not self.stream.end_of_file():
            ch = self.peek()
            if ch.isspace() and ch != "\n":
                self.advance()
            else:
                break

    def make(self, type_: str, value: Any, line: int, col: int, start: int) -> Token:
        return Token(type_, value, line, col, self.stream.position - start)

    def match_operator(self) -> Token | None:
        """Attempts to match the longest valid operator from the current position."""
        line, col, start = self.stream.line, self.stream.column, self.stream.position
        max_token = None
        candidate = ""

        for i in range(MAX_OPERATOR_LENGTH):
            ch = self.stream.peek(i)
            if ch == "":
                break
            candidate += ch
            if candidate in OPERATORS:
                max_token = candidate

        if max_token:
            for _ in range(len(max_token)):
                self.advance()
            return self.make(OPERATORS[max_token], max_token, line, col, start)

        return None

    def next_token(self) -> Token:
        """Consumes and returns the next Token from the stream."""
        self.skip_whitespace()

        line, col, start = self.stream.line, self.stream.column, self.stream.position
        if self.stream.end_of_file():
            return Token("EOF", "EOF", line, col, 0)

        ch = self.peek()

        if ch == "\n":
            self.advance()
            return self.make("NEWLINE", "\n", line, col, start)

        if ch == "#":
            self.advance()
            return self.make("COMMENT", self.read_line_comment(), line, col, start)

        if ch == "/" and self.peek(1) == "*":
            return self.make("COMMENT", self.read_block_comment(), line, col, start)

        if ch.isascii() and ch.isdigit():
            return self.read_number(line, col, start)

        if ch.isascii() and (ch.isalpha() or ch == "_"):
            ident = ""
            while not self.stream.end_of_file() and (
                self.peek().isascii() and (self.peek().isalnum() or self.peek() == "_")
            ):
                ident += self.advance()
            return self.make(KEYWORDS.get(ident, "IDENT"), ident, line, col, start)

        if ch == '"':
            return self.read_string(line, col, start)

        if ch == "'":
            return self.read_raw_string(line, col, start)

        if ch == "$" and self.peek(1) == "(":
            return self.read_command(line, col, start)

        if ch == "$" and self.peek(1) == "{":
            self.advance()
            self.advance()
            return self.make("INTERP_START", "${", line, col, start)

        token = self.match_operator()
        if token:
            return token

        self.advance()
        return self.make("ERROR", f"Unexpected character: '{ch}'", line, col, start)

    def read_line_comment(self) -> str:
        text = ""
        while not self.stream.end_of_file() and self.peek() != "\n":
            text += self.advance()
        return text

    def read_block_comment(self) -> str:
        self.advance()
        self.advance()
        text = ""
        while not self.stream.end_of_file():
            if self.peek() == "*" and self.peek(1) == "/":
                self.advance()
                self.advance()
                break
            text += self.advance()
        return text

    def read_number(self, line: int, col: int, start: int) -> Token:
        num = ""
        dots = 0
        while not self.stream.end_of_file():
            ch = self.peek()
            if ch.isascii() and ch.isdigit():
                num += self.advance()
            elif ch == "." and self.peek(1).isascii() and self.peek(1).isdigit():
                dots += 1
                num += self.advance()
            else:
                break

        if dots > 1:
            return self.make("ERROR", f"Invalid number: {num}", line, col, start)
        if dots == 1:
            return self.make("FLOAT", float(num), line, col, start)
        if len(num.lstrip("0")) > len(str(INT_MAX)) or int(num) > INT_MAX:
            return self.make("ERROR", f"Invalid integer: {num}", line, col, start)
        return self.make("INTEGER", int(num), line, col, start)

    def read_string(self, line: int, col: int, start: int) -> Token:
        """Reads a double-quoted string, processing escapes and `${...}` parts."""
        self.advance()
        parts: list[tuple[str, str]] = []
        val = ""
        while not self.stream.end_of_file():
            ch = self.peek()
            if ch == '"':
                self.advance()
                if not parts:
                    return self.make("STRING", val, line, col, start)
                if val:
                    parts.append(("text", val))
                return self.make("TEMPLATE", parts, line, col, start)
            if ch == "\\":
                self.advance()
                if self.stream.end_of_file():
                    break
                escaped = self.advance()
                val += ESCAPES.get(escaped, "\\" + escaped)
            elif ch == "$" and self.peek(1) == "{":
                expr_line, expr_col = self.stream.line, self.stream.column
                self.advance()
                self.advance()
                source = self.read_embedded_expression()
                if source is None:
                    return self.make(
                        "ERROR",
                        f"Unterminated interpolation at line {expr_line}, column {expr_col}",
                        line,
                        col,
                        start,
                    )
                if val:
                    parts.append(("text", val))
                    val = ""
                parts.append(("expr", source))
            else:
                val += self.advance()
        return self.make("ERROR", "Unterminated string", line, col, start)

    def read_embedded_expression(self) -> str | None:
        """Collects source up to the `}` matching an already consumed `${`."""
        depth = 1
        source = ""
        while not self.stream.end_of_file():
            ch = self.peek()
            if ch == '"':
                return None
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    self.advance()
                    return source
            source += self.advance()
        return None

    def read_raw_string(self, line: int, col: int, start: int) -> Token:
        self.advance()
        val = ""
        while not self.stream.end_of_file():
            if self.peek() == "'":
                self.advance()
                return self.make("STRING", val, line, col, start)
            val += self.advance()
        return self.make("ERROR", "Unterminated string", line, col, start)

    def read_command(self, line: int, col: int, start: int) -> Token:
        self.advance()
        self.advance()
        depth = 1
        command = ""
        while not self.stream.end_of_file():
            ch = self.advance()
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0:
                    return self.make("COMMAND", command, line, col, start)
            command += ch
        return self.make("ERROR", "Unterminated command", line, col, start)


def tokenize(source: str) -> list[Token]:
    """Lexes `source` completely. The result always ends with exactly one EOF token."""
    lexer = Lexer(CharacterStream(source))
    tokens = []
    while True:
        tok = lexer.next_token()
        tokens.append(tok)
        if tok.type == "EOF":
            return tokens


def find_lexical_error(tokens: list[Token]) -> Token | None:
    for tok in tokens:
        if tok.type == "ERROR":
            return tok
    return None


def check_tokens(tokens: list[Token]) -> list[Token]:
    """Returns `tokens` unchanged, or raises LexicalError for the first ERROR token."""
    bad = find_lexical_error(tokens)
    if bad is not None:
        raise LexicalError(str(bad.value), bad.line, bad.col)
    return tokens


__all__ = [
    "CharacterStream",
    "Lexer",
    "Token",
    "check_tokens",
    "find_lexical_error",
    "tokenize",
]
