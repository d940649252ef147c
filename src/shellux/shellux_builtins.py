"""
Builtin functions for Shellux.

The interpreter only needs two things from this module: whether a name is a
builtin (`Builtins.is_builtin`) and a way to call one with evaluated arguments
(`Builtins.call`). Each builtin is a `builtin_<name>` method; `call` dispatches
on the name.

Builtins:
    I/O:         print, println, echo, input
    Files:       read_file, write_file
    Conversion:  len, to_string, to_int, to_float, type_of
    Containers:  keys, values, push, join, split
    System:      exit, cd, pwd, run

Failures are raised as `BuiltinError` (or a `CommandError` from `run`).
"""

import os
from typing import Any

from shellux.shellux_errors import BuiltinError
from shellux.shellux_process import ProcessExecutor
from shellux.shellux_values import check_int, to_string, type_name

BUILTIN_NAMES: tuple[str, ...] = (
    "print",
    "println",
    "echo",
    "input",
    "read_file",
    "write_file",
    "len",
    "to_string",
    "to_int",
    "to_float",
    "type_of",
    "keys",
    "values",
    "push",
    "join",
    "split",
    "exit",
    "cd",
    "pwd",
    "run",
)


def expect_args(name: str, args: list[Any], count: int) -> None:
    if len(args) != count:
        plural = "argument" if count == 1 else "arguments"
        raise BuiltinError(f"{name} expects {count} {plural}, got {len(args)}")


def expect_type(name: str, value: Any, *types: str) -> None:
    if type_name(value) not in types:
        raise BuiltinError(
            f"{name} expects {' or '.join(types)}, got {type_name(value)}"
        )


class Builtins:
    """
    Dispatcher for the fixed set of builtin functions.

    Args:
        executor (ProcessExecutor, optional): Used by `run`. A default executor is
            created when omitted.
    """

    def __init__(self, executor: ProcessExecutor | None = None):
        self.executor = executor or ProcessExecutor()

    @staticmethod
    def is_builtin(name: str) -> bool:
        return name in BUILTIN_NAMES

    def call(self, name: str, args: list[Any]) -> Any:
        """Calls builtin `name` with already evaluated arguments."""
        if not self.is_builtin(name):
            raise BuiltinError(f"Unknown built-in function: {name}")
        method = getattr(self, f"builtin_{name}")
        return method(args)

    # -- I/O ------------------------------------------------------------------

    def builtin_print(self, args: list[Any]) -> None:
        print(" ".join(to_string(a) for a in args))

    def builtin_println(self, args: list[Any]) -> None:
        self.builtin_print(args)

    def builtin_echo(self, args: list[Any]) -> None:
        self.builtin_print(args)

    def builtin_input(self, args: list[Any]) -> str:
        prompt = to_string(args[0]) if args else ""
        try:
            line = input(prompt)
        except EOFError as e:
            raise BuiltinError("Failed to read input: end of file") from e
        return line.rstrip("\r")

    # -- files ----------------------------------------------------------------

    def builtin_read_file(self, args: list[Any]) -> str:
        expect_args("read_file", args, 1)
        filename = to_string(args[0])
        try:
            with open(filename, encoding="utf-8") as f:
                return f.read()
        except OSError as e:
            raise BuiltinError(f"Failed to read file {filename}: {e.strerror or e}") from e

    def builtin_write_file(self, args: list[Any]) -> None:
        expect_args("write_file", args, 2)
        filename = to_string(args[0])
        try:
            with open(filename, "w", encoding="utf-8") as f:
                f.write(to_string(args[1]))
        except OSError as e:
            raise BuiltinError(f"Failed to write file {filename}: {e.strerror or e}") from e

    # -- conversion -----------------------------------------------------------

    def builtin_len(self, args: list[Any]) -> int:
        expect_args("len", args, 1)
        value = args[0]
        if type_name(value) not in ("string", "array", "map"):
            raise BuiltinError(f"len not supported for type {type_name(value)}")
        return len(value)

    def builtin_to_string(self, args: list[Any]) -> str:
        expect_args("to_string", args, 1)
        return to_string(args[0])

    def builtin_to_int(self, args: list[Any]) -> int:
        expect_args("to_int", args, 1)
        value = args[0]
        kind = type_name(value)
        if kind in ("int", "bool"):
            return int(value)
        if kind == "float":
            return check_int(int(value))
        if kind == "string":
            try:
                return check_int(int(value.strip()))
            except ValueError as e:
                raise BuiltinError(f"Cannot convert '{value}' to integer") from e
        raise BuiltinError(f"Cannot convert {kind} to integer")

    def builtin_to_float(self, args: list[Any]) -> float:
        expect_args("to_float", args, 1)
        value = args[0]
        kind = type_name(value)
        if kind in ("int", "float", "bool"):
            return float(value)
        if kind == "string":
            try:
                return float(value.strip())
            except ValueError as e:
                raise BuiltinError(f"Cannot convert '{value}' to float") from e
        raise BuiltinError(f"Cannot convert {kind} to float")

    def builtin_type_of(self, args: list[Any]) -> str:
        expect_args("type_of", args, 1)
        return type_name(args[0])

    # -- containers -----------------------------------------------------------

    def builtin_keys(self, args: list[Any]) -> list[str]:
        expect_args("keys", args, 1)
        expect_type("keys", args[0], "map")
        return list(args[0].keys())

    def builtin_values(self, args: list[Any]) -> list[Any]:
        expect_args("values", args, 1)
        expect_type("values", args[0], "map")
        return list(args[0].values())

    def builtin_push(self, args: list[Any]) -> list[Any]:
        """Returns a new array with the value appended. The argument is not modified."""
        expect_args("push", args, 2)
        expect_type("push", args[0], "array")
        return [*args[0], args[1]]

    def builtin_join(self, args: list[Any]) -> str:
        if len(args) not in (1, 2):
            raise BuiltinError(f"join expects 1 or 2 arguments, got {len(args)}")
        expect_type("join", args[0], "array")
        separator = to_string(args[1]) if len(args) == 2 else ""
        return separator.join(to_string(v) for v in args[0])

    def builtin_split(self, args: list[Any]) -> list[str]:
        if len(args) not in (1, 2):
            raise BuiltinError(f"split expects 1 or 2 arguments, got {len(args)}")
        expect_type("split", args[0], "string")
        if len(args) == 1:
            return args[0].split()
        separator = to_string(args[1])
        if not separator:
            return list(args[0])
        return args[0].split(separator)

    # -- system ---------------------------------------------------------------

    def builtin_exit(self, args: list[Any]) -> None:
        code = 0
        if args:
            if type_name(args[0]) != "int":
                raise BuiltinError("exit expects integer argument")
            code = args[0]
        raise SystemExit(code)

    def builtin_cd(self, args: list[Any]) -> None:
        path = to_string(args[0]) if args else os.environ.get("HOME", ".")
        try:
            os.chdir(path)
        except OSError as e:
            raise BuiltinError(
                f"Failed to change directory to '{path}': {e.strerror or e}"
            ) from e

    def builtin_pwd(self, args: list[Any]) -> None:
        print(os.getcwd())

    def builtin_run(self, args: list[Any]) -> None:
        """`run(program, "arg string")`: the second argument is split on whitespace."""
        if not args:
            raise BuiltinError("run expects at least 1 argument")
        program = to_string(args[0])
        argv = to_string(args[1]).split() if len(args) > 1 else []
        self.executor.run(program, argv).check()


__all__ = ["BUILTIN_NAMES", "Builtins"]
