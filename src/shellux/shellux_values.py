"""
Runtime values and lexical environments for Shellux.

Shellux values are plain Python objects:

    Shellux    Python
    -------    ------
    int        int (checked against the signed 64-bit range)
    float      float
    string     str
    bool       bool
    nil        None
    array      list
    map        dict with str keys
    function   ShelluxFunction

Helpers in this module give every value its Shellux type name, truthiness,
string form and equality, so the interpreter and the builtins agree on them.

Classes:
    ShelluxFunction: A user-defined function bundled with its captured scope.
    Environment: A lexical scope: bindings, constant flags and a parent link.
"""

import copy
import sys
from typing import Any

from shellux.shellux_ast import ASTNode
from shellux.shellux_constants import INT_MAX, INT_MIN
from shellux.shellux_errors import (
    ConstAssignmentError,
    ShelluxRuntimeError,
    UndefinedVariableError,
)

FLOAT_EPSILON = sys.float_info.epsilon


class ShelluxFunction:
    """
    A function value.

    Args:
        name (str): Declared name, also used for equality.
        params (list[str]): Parameter names, bound by position.
        body (list[ASTNode]): Statements executed on call.
        closure (Environment): Snapshot of the scope the function was declared in.
        return_type (str, optional): Return annotation. Never checked.
        param_types (list[str | None], optional): Parameter annotations. Never checked.
    """

    def __init__(
        self,
        name: str,
        params: list[str],
        body: list[ASTNode],
        closure: "Environment",
        return_type: str | None = None,
        param_types: list[str | None] | None = None,
    ):
        self.name = name
        self.params = params
        self.body = body
        self.closure = closure
        self.return_type = return_type
        self.param_types = param_types or [None] * len(params)

    @property
    def arity(self) -> int:
        return len(self.params)

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, ShelluxFunction) and self.name == other.name

    def __hash__(self) -> int:
        return hash(("function", self.name))

    def __repr__(self) -> str:
        return f"<function {self.name}({', '.join(self.params)})>"

    def __deepcopy__(self, memo: dict[int, Any]) -> "ShelluxFunction":
        # Functions are shared between snapshots, never copied.
        return self


def type_name(value: Any) -> str:
    """Returns the Shellux type name of a runtime value."""
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if value is None:
        return "nil"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "map"
    if isinstance(value, ShelluxFunction):
        return "function"
    raise ShelluxRuntimeError(f"Unknown runtime value: {value!r}")


def is_truthy(value: Any) -> bool:
    """false, nil, 0, 0.0, "", [] and {} are falsy. Everything else is truthy."""
    if value is None:
        return False
    if isinstance(value, ShelluxFunction):
        return True
    return bool(value)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def check_int(value: int) -> int:
    """Returns `value` unchanged, or raises when it leaves the signed 64-bit range."""
    if value < INT_MIN or value > INT_MAX:
        raise ShelluxRuntimeError(f"Integer overflow: {value}")
    return value


def to_string(value: Any) -> str:
    """
    Converts a value to the text shown by print, interpolation and to_string.

    Strings are returned unquoted at the top level and quoted inside containers.
    """
    if isinstance(value, str):
        return value
    return _repr_value(value)


def _repr_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "nil"
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, list):
        return "[" + ", ".join(_repr_value(v) for v in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{k}: {_repr_value(v)}" for k, v in value.items()) + "}"
    if isinstance(value, ShelluxFunction):
        return f"function {value.name}"
    return repr(value)


def copy_value(value: Any) -> Any:
    """Arrays and maps are copied on binding so two names never share one container."""
    if isinstance(value, (list, dict)):
        return copy.deepcopy(value)
    return value


def map_key(value: Any) -> str:
    """Map keys are strings; any other key value is converted to its string form."""
    return value if isinstance(value, str) else to_string(value)


def values_equal(left: Any, right: Any) -> bool:
    """
    Structural equality between two runtime values.

    Floats are equal when they differ by less than machine epsilon. An int
    compared with a float is promoted first, but only at the top level: inside
    arrays and maps `1` and `1.0` are different values.
    """
    if is_number(left) and is_number(right) and (
        isinstance(left, float) or isinstance(right, float)
    ):
        return structural_equal(float(left), float(right))
    return structural_equal(left, right)


def structural_equal(left: Any, right: Any) -> bool:
    ltype, rtype = type_name(left), type_name(right)
    if ltype != rtype:
        return False
    if ltype == "float":
        return abs(left - right) < FLOAT_EPSILON
    if ltype == "array":
        return len(left) == len(right) and all(
            structural_equal(a, b) for a, b in zip(left, right)
        )
    if ltype == "map":
        return left.keys() == right.keys() and all(
            structural_equal(v, right[k]) for k, v in left.items()
        )
    return left == right


class Environment:
    """
    A lexical scope.

    Attributes:
        values (dict[str, Any]): Bindings declared in this scope.
        constants (set[str]): Names in this scope declared with `const`.
        parent (Environment | None): The enclosing scope.
    """

    def __init__(self, parent: "Environment | None" = None):
        self.values: dict[str, Any] = {}
        self.constants: set[str] = set()
        self.parent = parent

    def child(self) -> "Environment":
        return Environment(self)

    def define(self, name: str, value: Any, constant: bool = False) -> None:
        """Binds `name` in this scope, replacing any binding and constant flag it had here."""
        self.values[name] = value
        if constant:
            self.constants.add(name)
        else:
            self.constants.discard(name)

    def resolve(self, name: str) -> "Environment | None":
        """Returns the nearest scope binding `name`, or None."""
        env: Environment | None = self
        while env is not None:
            if name in env.values:
                return env
            env = env.parent
        return None

    def has(self, name: str) -> bool:
        return self.resolve(name) is not None

    def get(self, name: str) -> Any:
        env = self.resolve(name)
        if env is None:
            raise UndefinedVariableError(name)
        return env.values[name]

    def set(self, name: str, value: Any) -> None:
        """Updates an existing binding in the nearest scope that declares it."""
        env = self.resolve(name)
        if env is None:
            raise UndefinedVariableError(name)
        if name in env.constants:
            raise ConstAssignmentError(name)
        env.values[name] = value

    def is_constant(self, name: str) -> bool:
        env = self.resolve(name)
        return env is not None and name in env.constants

    def snapshot(self) -> "Environment":
        """
        Deep-copies this scope and all its parents.

        Containers are copied so later mutation of the original scope is not
        visible through the snapshot. Function values are shared.
        """
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        depth = 0
        env = self.parent
        while env is not None:
            depth += 1
            env = env.parent
        return f"Environment(names={sorted(self.values)}, depth={depth})"


__all__ = [
    "Environment",
    "ShelluxFunction",
    "check_int",
    "copy_value",
    "is_number",
    "is_truthy",
    "map_key",
    "structural_equal",
    "to_string",
    "type_name",
    "values_equal",
]
