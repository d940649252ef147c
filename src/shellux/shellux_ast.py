"""
Defines the abstract syntax tree (AST) node structure for Shellux.

Classes:
    ASTNode:
        A node in the syntax tree, tagged by `kind`. Purely data: the parser builds
        it, the interpreter walks it, the CLI dumps it.

    ASTDict:
        TypedDict representation of a serialized ASTNode, used by the `--ast` dump.

Node kinds and field usage:

    Expressions
        integer / float / string / boolean   value = literal
        nil
        identifier                           value = name
        binary                               value = operator, children = [left, right]
        unary                                value = operator, children = [operand]
        call                                 name = callee, children = args
        method_call                          name = method, value = object, children = args
        array                                children = elements
        map                                  children = pair nodes (children = [key, value])
        index                                value = object, children = [index]
        field                                name = field, value = object
        interpolation                        children = text nodes (value = str) or expressions
        command                              value = raw command text
        pipeline                             children = [left, right]
        range                                children = [start, end]

    Statements
        expr_stmt                            children = [expr]
        let / const                          name, type = annotation, value = initializer
        assign                               value = operator, children = [target, expr]
        if                                   value = condition, children = then, else_children = else
        for                                  name = variable, value = iterable, children = body
        while                                value = condition, children = body
        func                                 name, value = param nodes, return_type, children = body
        param                                name, type = annotation
        return                               children = [expr] or []
        try                                  children = body, else_children = catch nodes
        catch                                value = exception type, name = bound variable, children = body
        match                                value = subject, children = arm nodes
        arm                                  value = pattern node, children = body
        pattern_literal                      value = literal expression
        pattern_bind                         name
        pattern_wildcard
        break / continue

Example:
    node = ASTNode("func", value=[ASTNode("param", name="a", type_="int")], name="add")
"""

from typing import Any, TypedDict

EXPRESSION_KINDS = frozenset(
    {
        "integer",
        "float",
        "string",
        "boolean",
        "nil",
        "identifier",
        "binary",
        "unary",
        "call",
        "method_call",
        "array",
        "map",
        "index",
        "field",
        "interpolation",
        "command",
        "pipeline",
        "range",
    }
)

STATEMENT_KINDS = frozenset(
    {
        "expr_stmt",
        "let",
        "const",
        "assign",
        "if",
        "for",
        "while",
        "func",
        "return",
        "try",
        "match",
        "break",
        "continue",
    }
)

ASSIGNABLE_KINDS = frozenset({"identifier", "index", "field"})


class ASTDict(TypedDict, total=False):
    """
    TypedDict representation of an ASTNode used for serialization.

    Fields:
        kind (str): The type of AST node (e.g., "func", "call", "if").
        value (Any): Literal, operator, nested ASTDict or list of ASTDicts.
        name (str | None): Bound or referenced name, when the node has one.
        line (int): Line number in the source code where the node originates.
        col (int): Column number in the source code where the node originates.
        type (str | None): Type annotation (let/const/param).
        return_type (str | None): Return type annotation (func).
        children (list[ASTDict]): Primary child nodes.
        else_children (list[ASTDict]): Alternate branch nodes ('else', 'catch').
    """

    kind: str
    value: Any
    name: str | None
    line: int
    col: int
    type: str | None
    return_type: str | None
    children: list["ASTDict"]
    else_children: list["ASTDict"]


class ASTNode:
    """
    A node in the Shellux abstract syntax tree.

    Args:
        kind (str): The type of node (e.g., "binary", "call", "let", "if").
        value (Any, optional): Literal value, operator, or nested node(s).
        children (list[ASTNode], optional): Primary child nodes.
        line (int): Source line number (default is 0).
        col (int): Source column number (default is 0).
        type_ (str, optional): Type annotation; recorded, never enforced.
        return_type (str, optional): Function return annotation; recorded, never enforced.
        name (str, optional): Declared or referenced name.

    Attributes:
        else_children (list[ASTNode]): Alternate path nodes (else block, catch clauses).
    """

    def __init__(
        self,
        kind: str,
        value: Any = None,
        children: list["ASTNode"] | None = None,
        line: int = 0,
        col: int = 0,
        type_: str | None = None,
        return_type: str | None = None,
        name: str | None = None,
    ):
        self.kind = kind
        self.value = value
        self.children: list["ASTNode"] = children or []
        self.line = line
        self.col = col
        self.type = type_
        self.return_type = return_type
        self.name = name
        self.else_children: list["ASTNode"] = []

    @property
    def is_expression(self) -> bool:
        return self.kind in EXPRESSION_KINDS

    def __repr__(self) -> str:
        parts = [f"{self.kind}"]
        if self.name is not None:
            parts.append(f"name={self.name!r}")
        if self.value is not None:
            parts.append(f"value={repr(self.value)}")
        if self.type is not None:
            parts.append(f"type_={self.type}")
        if self.return_type is not None:
            parts.append(f"return_type={self.return_type}")
        if self.children:
            preview = ", ".join(repr(c) for c in self.children[:3])
            if len(self.children) > 3:
                preview += ", ..."
            parts.append(f"children=[{preview}]")
        if self.else_children:
            preview = ", ".join(repr(c) for c in self.else_children[:3])
            if len(self.else_children) > 3:
                preview += ", ..."
            parts.append(f"else_children=[{preview}]")
        return f"ASTNode({', '.join(parts)})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, ASTNode):
            return False
        return (
            self.kind == other.kind
            and type(self.value) is type(other.value)
            and self.value == other.value
            and self.name == other.name
            and self.line == other.line
            and self.col == other.col
            and self.type == other.type
            and self.return_type == other.return_type
            and self.children == other.children
            and self.else_children == other.else_children
        )

    def to_dict(self) -> ASTDict:
        val: Any = self.value
        if isinstance(val, ASTNode):
            val = val.to_dict()
        elif isinstance(val, list):
            val = [v.to_dict() if isinstance(v, ASTNode) else v for v in val]

        return {
            "kind": self.kind,
            "value": val,
            "name": self.name,
            "line": self.line,
            "col": self.col,
            "type": self.type,
            "return_type": self.return_type,
            "children": [c.to_dict() for c in self.children],
            "else_children": [c.to_dict() for c in self.else_children],
        }


def program_to_dicts(program: list[ASTNode]) -> list[ASTDict]:
    return [node.to_dict() for node in program]
