"""
Tree-walking evaluator for Shellux.

The `Interpreter` walks the statements produced by `shellux_parser` against a
chain of `Environment` scopes and returns the value of the last statement run.

Dispatch:
    Statements go to `exec_<kind>`, expressions to `eval_<kind>`. A statement
    kind with no `exec_` method that is an expression kind is evaluated directly.

Name resolution (calls and bare identifiers):
    1. builtin       -> `Builtins.call(name, args)`
    2. bound name    -> user function call, or the variable's value
    3. anything else -> external process via `ProcessExecutor.run`

Scoping:
    Every block runs in a child of the scope active on entry; the previous scope
    is restored in a `finally` clause. A function call runs its body in a fresh
    scope whose parent is the function's closure, a snapshot taken when the
    function was declared.

Control flow:
    `return`, `break` and `continue` unwind through Python exceptions
    (`ReturnSignal`, `BreakSignal`, `ContinueSignal`) that never escape
    `interpret()`.

Raises:
    ShelluxRuntimeError (or a subclass) for any evaluation failure. The error is
    stamped with the line and column of the innermost statement that raised it.
"""

import math
from collections.abc import Callable
from typing import Any

from shellux.shellux_ast import ASTNode
from shellux.shellux_builtins import Builtins
from shellux.shellux_errors import (
    ArityError,
    ConstAssignmentError,
    ControlFlowError,
    DivisionByZeroError,
    IndexOutOfRangeError,
    IterationError,
    KeyNotFoundError,
    NotCallableError,
    OperatorError,
    ShelluxRuntimeError,
)
from shellux.shellux_process import ProcessExecutor
from shellux.shellux_values import (
    Environment,
    ShelluxFunction,
    check_int,
    copy_value,
    is_truthy,
    map_key,
    to_string,
    type_name,
    values_equal,
)

CATCH_ALL = ("Error", "RuntimeError")


class ReturnSignal(Exception):
    def __init__(self, value: Any):
        super().__init__("return")
        self.value = value


class BreakSignal(Exception):
    pass


class ContinueSignal(Exception):
    pass


def unsupported(op: str, left: Any, right: Any) -> OperatorError:
    return OperatorError(
        f"Unsupported operation: {type_name(left)} {op} {type_name(right)}"
    )


def int_div(a: int, b: int) -> int:
    """Integer division truncating toward zero."""
    if b == 0:
        raise DivisionByZeroError()
    q = abs(a) // abs(b)
    return check_int(q if (a < 0) == (b < 0) else -q)


def int_mod(a: int, b: int) -> int:
    """Remainder matching `int_div`: the result takes the sign of `a`."""
    if b == 0:
        raise DivisionByZeroError()
    return a - b * int_div(a, b)


def int_pow(a: int, b: int) -> int | float:
    if b < 0:
        if a == 0:
            raise DivisionByZeroError()
        return float(a) ** b
    if abs(a) > 1 and b > 64:
        raise ShelluxRuntimeError(f"Integer overflow: {a} ** {b}")
    return check_int(a**b)


def float_div(a: float, b: float) -> float:
    if b == 0.0:
        raise DivisionByZeroError()
    return a / b


def float_mod(a: float, b: float) -> float:
    if b == 0.0:
        raise DivisionByZeroError()
    return math.fmod(a, b)


def float_pow(a: float, b: float) -> float:
    try:
        return math.pow(a, b)
    except OverflowError as e:
        raise ShelluxRuntimeError(f"Float overflow: {a} ** {b}") from e
    except ValueError as e:
        raise ShelluxRuntimeError(f"Invalid operation: {a} ** {b}") from e


def float_eq(a: float, b: float) -> bool:
    return values_equal(a, b)


COMPARISONS: dict[str, Callable[[Any, Any], bool]] = {
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
}

# Operator table per operand type. Both operands always have the same type here;
# mixed int/float is promoted to float before lookup.
BINARY_OPERATORS: dict[str, dict[str, Callable[[Any, Any], Any]]] = {
    "int": {
        "+": lambda a, b: check_int(a + b),
        "-": lambda a, b: check_int(a - b),
        "*": lambda a, b: check_int(a * b),
        "/": int_div,
        "%": int_mod,
        "**": int_pow,
        "==": lambda a, b: a == b,
        "!=": lambda a, b: a != b,
        **COMPARISONS,
    },
    "float": {
        "+": lambda a, b: a + b,
        "-": lambda a, b: a - b,
        "*": lambda a, b: a * b,
        "/": float_div,
        "%": float_mod,
        "**": float_pow,
        "==": float_eq,
        "!=": lambda a, b: not float_eq(a, b),
        **COMPARISONS,
    },
    "string": {
        "+": lambda a, b: a + b,
        "==": lambda a, b: a == b,
        "!=": lambda a, b: a != b,
    },
    "bool": {
        "&&": lambda a, b: a and b,
        "||": lambda a, b: a or b,
        "==": lambda a, b: a == b,
        "!=": lambda a, b: a != b,
    },
}

STRUCTURAL_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": values_equal,
    "!=": lambda a, b: not values_equal(a, b),
}


def binary_op(op: str, left: Any, right: Any) -> Any:
    """Applies a binary operator to two evaluated operands."""
    ltype, rtype = type_name(left), type_name(right)
    if ltype != rtype:
        if {ltype, rtype} == {"int", "float"}:
            return binary_op(op, float(left), float(right))
        if op == "==":
            return False
        if op == "!=":
            return True
        raise unsupported(op, left, right)

    handler = BINARY_OPERATORS.get(ltype, STRUCTURAL_OPERATORS).get(op)
    if handler is None:
        raise unsupported(op, left, right)
    return handler(left, right)


def unary_op(op: str, operand: Any) -> Any:
    kind = type_name(operand)
    if op == "!":
        return not is_truthy(operand)
    if op == "-" and kind == "int":
        return check_int(-operand)
    if op == "-" and kind == "float":
        return -operand
    if op == "~" and kind == "int":
        return ~operand
    raise OperatorError(f"Unsupported operation: {op}{kind}")


class Interpreter:
    """
    Evaluates Shellux programs.

    Args:
        builtins (Builtins, optional): Builtin dispatcher. Defaults to one sharing
            this interpreter's executor.
        executor (ProcessExecutor, optional): Runs external commands and `$( ... )`.

    Attributes:
        globals (Environment): The top-level scope, kept across `interpret()` calls.
        env (Environment): The scope active for the statement being executed.
    """

    def __init__(
        self,
        builtins: Builtins | None = None,
        executor: ProcessExecutor | None = None,
    ):
        self.executor = executor or ProcessExecutor()
        self.builtins = builtins or Builtins(self.executor)
        self.globals = Environment()
        self.env = self.globals

    def interpret(self, program: list[ASTNode], environment: Environment | None = None) -> Any:
        """
        Runs a program and returns the value of its last executed statement.

        Args:
            program (list[ASTNode]): Top-level statements from `Parser.parse()`.
            environment (Environment, optional): Scope to run in. Defaults to
                `self.globals`, so definitions persist between calls.

        Returns:
            Any: The last statement's value, or the value of a top-level `return`.
        """
        self.env = environment if environment is not None else self.globals
        result = None
        try:
            for stmt in program:
                result = self.execute(stmt)
        except ReturnSignal as ret:
            result = ret.value
        except BreakSignal:
            raise ControlFlowError("'break' outside of a loop") from None
        except ContinueSignal:
            raise ControlFlowError("'continue' outside of a loop") from None
        except RecursionError:
            raise ShelluxRuntimeError("Maximum recursion depth exceeded") from None
        return result

    # -- dispatch -------------------------------------------------------------

    def execute(self, node: ASTNode) -> Any:
        method = getattr(self, f"exec_{node.kind}", None)
        try:
            if method is not None:
                return method(node)
            if node.is_expression:
                return self.evaluate(node)
            raise ShelluxRuntimeError(f"Unknown statement kind: {node.kind}")
        except ShelluxRuntimeError as e:
            if not e.line:
                e.line, e.col = node.line, node.col
            raise

    def evaluate(self, node: ASTNode) -> Any:
        method = getattr(self, f"eval_{node.kind}", None)
        if method is None:
            raise ShelluxRuntimeError(f"Unknown expression kind: {node.kind}")
        return method(node)

    def execute_block(self, statements: list[ASTNode], env: Environment) -> Any:
        """Runs `statements` in `env`, restoring the previous scope afterwards."""
        previous = self.env
        self.env = env
        try:
            result = None
            for stmt in statements:
                result = self.execute(stmt)
            return result
        finally:
            self.env = previous

    # -- statements -----------------------------------------------------------

    def exec_expr_stmt(self, node: ASTNode) -> Any:
        return self.evaluate(node.children[0])

    def exec_let(self, node: ASTNode) -> Any:
        value = copy_value(self.evaluate(node.value))
        self.env.define(node.name, value, constant=node.kind == "const")
        return value

    exec_const = exec_let

    def exec_assign(self, node: ASTNode) -> Any:
        target, expr = node.children
        value = self.evaluate(expr)
        op = node.value
        if op != "=":
            current = self.env.get(target.value) if target.kind == "identifier" else self.evaluate(target)
            value = binary_op(op[0], current, value)
        self.assign_to(target, value)
        return value

    def exec_if(self, node: ASTNode) -> Any:
        if is_truthy(self.evaluate(node.value)):
            return self.execute_block(node.children, self.env.child())
        if node.else_children:
            return self.execute_block(node.else_children, self.env.child())
        return None

    def exec_while(self, node: ASTNode) -> None:
        while is_truthy(self.evaluate(node.value)):
            try:
                self.execute_block(node.children, self.env.child())
            except BreakSignal:
                break
            except ContinueSignal:
                continue

    def exec_for(self, node: ASTNode) -> None:
        for item in self.iteration_items(self.evaluate(node.value)):
            loop_env = self.env.child()
            loop_env.define(node.name, copy_value(item))
            try:
                self.execute_block(node.children, loop_env)
            except BreakSignal:
                break
            except ContinueSignal:
                continue

    def exec_break(self, node: ASTNode) -> None:
        raise BreakSignal()

    def exec_continue(self, node: ASTNode) -> None:
        raise ContinueSignal()

    def exec_func(self, node: ASTNode) -> ShelluxFunction:
        closure = self.env.snapshot()
        fn = ShelluxFunction(
            node.name,
            [p.name for p in node.value],
            node.children,
            closure,
            return_type=node.return_type,
            param_types=[p.type for p in node.value],
        )
        # visible to its own body for recursion
        closure.define(fn.name, fn)
        self.env.define(fn.name, fn)
        return fn

    def exec_return(self, node: ASTNode) -> None:
        value = self.evaluate(node.children[0]) if node.children else None
        raise ReturnSignal(value)

    def exec_try(self, node: ASTNode) -> Any:
        try:
            return self.execute_block(node.children, self.env.child())
        except ShelluxRuntimeError as e:
            for clause in node.else_children:
                if self.catches(clause.value, e):
                    catch_env = self.env.child()
                    if clause.name:
                        catch_env.define(clause.name, {"type": e.type_name, "message": e.message})
                    return self.execute_block(clause.children, catch_env)
            raise

    def exec_match(self, node: ASTNode) -> Any:
        subject = self.evaluate(node.value)
        for arm in node.children:
            arm_env = self.env.child()
            if self.pattern_matches(arm.value, subject, arm_env):
                return self.execute_block(arm.children, arm_env)
        return None

    # -- statement helpers ----------------------------------------------------

    @staticmethod
    def catches(exc_type: str | None, error: ShelluxRuntimeError) -> bool:
        """A catch clause with no type, `Error` or any class name in the error's MRO matches."""
        if exc_type is None or exc_type in CATCH_ALL:
            return True
        return exc_type in {cls.__name__ for cls in type(error).__mro__}

    def pattern_matches(self, pattern: ASTNode, subject: Any, env: Environment) -> bool:
        if pattern.kind == "pattern_wildcard":
            return True
        if pattern.kind == "pattern_bind":
            env.define(pattern.name, copy_value(subject))
            return True
        return values_equal(self.evaluate(pattern.value), subject)

    @staticmethod
    def iteration_items(iterable: Any) -> list[Any]:
        kind = type_name(iterable)
        if kind in ("array", "string"):
            return list(iterable)
        if kind == "map":
            return list(iterable.keys())
        raise IterationError(f"Cannot iterate over {kind}")

    def assign_to(self, target: ASTNode, value: Any) -> None:
        """Stores `value` into an identifier, index or field target."""
        if target.kind == "identifier":
            self.env.set(target.value, copy_value(value))
            return

        root = target
        while root.kind in ("index", "field"):
            root = root.value
        if root.kind == "identifier" and self.env.is_constant(root.value):
            raise ConstAssignmentError(root.value)

        container = self.evaluate(target.value)
        if target.kind == "field":
            if type_name(container) != "map":
                raise OperatorError(f"Cannot set field '{target.name}' on {type_name(container)}")
            container[target.name] = copy_value(value)
            return

        index = self.evaluate(target.children[0])
        kind = type_name(container)
        if kind == "map":
            container[map_key(index)] = copy_value(value)
        elif kind == "array":
            container[self.check_index(container, index)] = copy_value(value)
        elif kind == "string":
            i = self.check_index(container, index)
            self.assign_to(target.value, container[:i] + to_string(value) + container[i + 1 :])
        else:
            raise OperatorError(f"Cannot index into {kind}")

    @staticmethod
    def check_index(sequence: list[Any] | str, index: Any) -> int:
        if type_name(index) != "int":
            raise OperatorError(f"Index must be int, got {type_name(index)}")
        if not 0 <= index < len(sequence):
            raise IndexOutOfRangeError(
                f"Index {index} out of range for {type_name(sequence)} of length {len(sequence)}"
            )
        return index

    # -- calls ----------------------------------------------------------------

    def call_named(self, name: str, args: list[Any]) -> Any:
        """Calls `name`: builtin first, then a bound function, then an external process."""
        if self.builtins.is_builtin(name):
            return self.builtins.call(name, args)
        if self.env.has(name):
            fn = self.env.get(name)
            if not isinstance(fn, ShelluxFunction):
                raise NotCallableError(f"'{name}' is not a function, it is {type_name(fn)}")
            return self.call_function(fn, args)
        return self.run_external(name, [to_string(a) for a in args])

    def call_function(self, fn: ShelluxFunction, args: list[Any]) -> Any:
        if len(args) != fn.arity:
            raise ArityError(fn.name, fn.arity, len(args))
        call_env = Environment(fn.closure)
        for param, arg in zip(fn.params, args):
            call_env.define(param, copy_value(arg))
        try:
            return self.execute_block(fn.body, call_env)
        except ReturnSignal as ret:
            return ret.value
        except (BreakSignal, ContinueSignal) as sig:
            word = "break" if isinstance(sig, BreakSignal) else "continue"
            raise ControlFlowError(f"'{word}' outside of a loop in function {fn.name}") from None

    def run_external(self, program: str, args: list[str]) -> None:
        self.executor.run(program, args).check()

    # -- expressions ----------------------------------------------------------

    def eval_integer(self, node: ASTNode) -> int:
        return check_int(node.value)

    def eval_float(self, node: ASTNode) -> float:
        return node.value

    def eval_string(self, node: ASTNode) -> str:
        return node.value

    def eval_boolean(self, node: ASTNode) -> bool:
        return node.value

    def eval_nil(self, node: ASTNode) -> None:
        return None

    def eval_identifier(self, node: ASTNode) -> Any:
        name = node.value
        if self.builtins.is_builtin(name):
            return self.builtins.call(name, [])
        if self.env.has(name):
            return self.env.get(name)
        return self.run_external(name, [])

    def eval_binary(self, node: ASTNode) -> Any:
        left = self.evaluate(node.children[0])
        right = self.evaluate(node.children[1])
        return binary_op(node.value, left, right)

    def eval_unary(self, node: ASTNode) -> Any:
        return unary_op(node.value, self.evaluate(node.children[0]))

    def eval_call(self, node: ASTNode) -> Any:
        args = [self.evaluate(arg) for arg in node.children]
        return self.call_named(node.name, args)

    def eval_method_call(self, node: ASTNode) -> Any:
        """`obj.m(args)`: a function stored under `m` in a map, else `m(obj, args...)`."""
        obj = self.evaluate(node.value)
        args = [self.evaluate(arg) for arg in node.children]
        name = node.name

        if isinstance(obj, dict) and isinstance(obj.get(name), ShelluxFunction):
            return self.call_function(obj[name], args)
        if self.builtins.is_builtin(name):
            return self.builtins.call(name, [obj, *args])
        if self.env.has(name) and isinstance(self.env.get(name), ShelluxFunction):
            return self.call_function(self.env.get(name), [obj, *args])
        raise ShelluxRuntimeError(f"Unknown method '{name}' for {type_name(obj)}")

    def eval_array(self, node: ASTNode) -> list[Any]:
        return [copy_value(self.evaluate(child)) for child in node.children]

    def eval_map(self, node: ASTNode) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for pair in node.children:
            key = map_key(self.evaluate(pair.children[0]))
            result[key] = copy_value(self.evaluate(pair.children[1]))
        return result

    def eval_index(self, node: ASTNode) -> Any:
        container = self.evaluate(node.value)
        index = self.evaluate(node.children[0])
        kind = type_name(container)
        if kind == "map":
            key = map_key(index)
            if key not in container:
                raise KeyNotFoundError(f"Key not found: {key}")
            return container[key]
        if kind in ("array", "string"):
            return container[self.check_index(container, index)]
        raise OperatorError(f"Cannot index into {kind}")

    def eval_field(self, node: ASTNode) -> Any:
        container = self.evaluate(node.value)
        if type_name(container) != "map":
            raise OperatorError(f"Cannot access field '{node.name}' on {type_name(container)}")
        if node.name not in container:
            raise KeyNotFoundError(f"Key not found: {node.name}")
        return container[node.name]

    def eval_interpolation(self, node: ASTNode) -> str:
        parts = []
        for part in node.children:
            if part.kind == "text":
                parts.append(part.value)
            else:
                parts.append(to_string(self.evaluate(part)))
        return "".join(parts)

    def eval_command(self, node: ASTNode) -> str:
        return self.executor.substitute(node.value)

    def eval_pipeline(self, node: ASTNode) -> Any:
        """`x |> f(y)` calls `f(x, y)`; `x |> f` calls `f(x)`."""
        left, right = node.children
        value = self.evaluate(left)
        if right.kind == "call":
            args = [self.evaluate(arg) for arg in right.children]
            return self.call_named(right.name, [value, *args])
        if right.kind == "identifier":
            return self.call_named(right.value, [value])
        raise OperatorError(f"Cannot pipe into {right.kind}")

    def eval_range(self, node: ASTNode) -> list[int]:
        start = self.evaluate(node.children[0])
        end = self.evaluate(node.children[1])
        if type_name(start) != "int" or type_name(end) != "int":
            raise unsupported("..", start, end)
        return list(range(start, end))


__all__ = [
    "BINARY_OPERATORS",
    "BreakSignal",
    "ContinueSignal",
    "Interpreter",
    "ReturnSignal",
    "binary_op",
    "int_div",
    "int_mod",
    "unary_op",
]
