"""
Token tables shared by the Shellux lexer and parser.

Exports:
    KEYWORDS: reserved words mapped to their token types.
    OPERATORS: operator and punctuation spellings mapped to token types.
    TOKEN_CATEGORIES: token type → coarse category used by the token dump.
    ASSIGNMENT_OPERATORS, EQUALITY_OPERATORS, COMPARISON_OPERATORS,
    TERM_OPERATORS, FACTOR_OPERATORS, UNARY_OPERATORS: parser precedence groups.
"""

KEYWORDS: dict[str, str] = {
    "let": "LET",
    "const": "CONST",
    "fn": "FN",
    "return": "RETURN",
    "if": "IF",
    "else": "ELSE",
    "for": "FOR",
    "while": "WHILE",
    "in": "IN",
    "try": "TRY",
    "catch": "CATCH",
    "match": "MATCH",
    "true": "TRUE",
    "false": "FALSE",
    "nil": "NIL",
    "is": "IS",
}

OPERATORS: dict[str, str] = {
    # arithmetic
    "+": "PLUS",
    "-": "MINUS",
    "*": "MULT",
    "/": "DIV",
    "%": "MOD",
    "**": "POW",
    # assignment
    "=": "ASSIGN",
    ":=": "COLON_ASSIGN",
    "+=": "PLUS_ASSIGN",
    "-=": "MINUS_ASSIGN",
    # comparison
    "==": "EQ",
    "!=": "NE",
    "<": "LT",
    "<=": "LE",
    ">": "GT",
    ">=": "GE",
    # logical
    "&&": "AND",
    "||": "OR",
    "!": "NOT",
    # bitwise
    "&": "BIT_AND",
    "|": "BIT_OR",
    "^": "BIT_XOR",
    "~": "BIT_NOT",
    "<<": "SHL",
    ">>": "SHR",
    # punctuation
    "(": "LPAREN",
    ")": "RPAREN",
    "{": "LBRACE",
    "}": "RBRACE",
    "[": "LBRACK",
    "]": "RBRACK",
    ",": "COMMA",
    ";": "SEMICOLON",
    ":": "COLON",
    ".": "DOT",
    "..": "RANGE",
    "->": "ARROW",
    "|>": "PIPE",
}

MAX_OPERATOR_LENGTH = max(len(op) for op in OPERATORS)

PUNCTUATION: set[str] = {
    "LPAREN",
    "RPAREN",
    "LBRACE",
    "RBRACE",
    "LBRACK",
    "RBRACK",
    "COMMA",
    "SEMICOLON",
    "COLON",
    "DOT",
    "ARROW",
}

LITERAL_TYPES: set[str] = {"INTEGER", "FLOAT", "STRING", "TEMPLATE", "COMMAND"}


def _category(token_type: str) -> str:
    if token_type in LITERAL_TYPES:
        return "literal"
    if token_type == "IDENT":
        return "identifier"
    if token_type in KEYWORDS.values():
        return "keyword"
    if token_type in PUNCTUATION:
        return "punctuation"
    if token_type in OPERATORS.values() or token_type == "INTERP_START":
        return "operator"
    return token_type.lower()


TOKEN_CATEGORIES: dict[str, str] = {
    t: _category(t)
    for t in (
        list(LITERAL_TYPES)
        + ["IDENT", "INTERP_START", "NEWLINE", "COMMENT", "ERROR", "EOF"]
        + list(KEYWORDS.values())
        + list(OPERATORS.values())
    )
}

# Parser precedence groups: token type → operator symbol stored on the AST
ASSIGNMENT_OPERATORS: dict[str, str] = {
    "ASSIGN": "=",
    "PLUS_ASSIGN": "+=",
    "MINUS_ASSIGN": "-=",
}
EQUALITY_OPERATORS: dict[str, str] = {"EQ": "==", "NE": "!="}
COMPARISON_OPERATORS: dict[str, str] = {"LT": "<", "LE": "<=", "GT": ">", "GE": ">="}
TERM_OPERATORS: dict[str, str] = {"PLUS": "+", "MINUS": "-"}
FACTOR_OPERATORS: dict[str, str] = {"MULT": "*", "DIV": "/", "MOD": "%", "POW": "**"}
UNARY_OPERATORS: dict[str, str] = {"NOT": "!", "MINUS": "-", "BIT_NOT": "~"}

WILDCARD = "_"

INT_MIN = -(2**63)
INT_MAX = 2**63 - 1
