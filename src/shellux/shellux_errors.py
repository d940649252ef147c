"""
Error taxonomy for the Shellux toolchain.

Three families, one per pipeline stage:

    LexicalError      - an ERROR token was found before parsing
    ParseError        - the token stream violates the grammar
    ShelluxRuntimeError and subclasses - evaluation failures

Lexical and parse errors subclass the builtin `SyntaxError` so callers can
treat the whole front end uniformly; runtime errors subclass `RuntimeError`.
Every error carries an optional source position (`line`, `col`), 0 when unknown.
"""


class ShelluxError(Exception):
    """Mixin root for every error raised by Shellux.

    Attributes:
        message (str): Human-readable description without position.
        line (int): 1-based source line, or 0 when unknown.
        col (int): 1-based source column, or 0 when unknown.
    """

    def __init__(self, message: str, line: int = 0, col: int = 0):
        super().__init__(message)
        self.message = message
        self.line = line
        self.col = col

    def __str__(self) -> str:
        return self.message

    def format(self) -> str:
        """Returns the message prefixed with its position when one is known."""
        if self.line:
            return f"line {self.line}, column {self.col}: {self.message}"
        return self.message


class LexicalError(ShelluxError, SyntaxError):
    """Unterminated literal, malformed number or unexpected character."""


class ParseError(ShelluxError, SyntaxError):
    """Structural grammar violation. Aborts the whole parse."""


class ShelluxRuntimeError(ShelluxError, RuntimeError):
    """Base class for failures raised while evaluating a program."""

    @property
    def type_name(self) -> str:
        return type(self).__name__


class UndefinedVariableError(ShelluxRuntimeError):
    def __init__(self, name: str):
        super().__init__(f"Undefined variable: {name}")
        self.name = name


class ConstAssignmentError(ShelluxRuntimeError):
    def __init__(self, name: str):
        super().__init__(f"Cannot assign to const variable: {name}")
        self.name = name


class ArityError(ShelluxRuntimeError):
    def __init__(self, name: str, expected: int, actual: int):
        super().__init__(
            f"Function {name} expects {expected} arguments, got {actual}"
        )
        self.expected = expected
        self.actual = actual


class NotCallableError(ShelluxRuntimeError):
    pass


class OperatorError(ShelluxRuntimeError):
    """An operator was applied to a type combination it does not support."""


class DivisionByZeroError(ShelluxRuntimeError):
    def __init__(self) -> None:
        super().__init__("Division by zero")


class IndexOutOfRangeError(ShelluxRuntimeError):
    pass


class KeyNotFoundError(ShelluxRuntimeError):
    pass


class IterationError(ShelluxRuntimeError):
    pass


class ControlFlowError(ShelluxRuntimeError):
    """`break`, `continue` used outside of a loop."""


class BuiltinError(ShelluxRuntimeError):
    """A builtin rejected its arguments or failed while running."""


class CommandError(ShelluxRuntimeError):
    """Base class for external-process failures."""

    def __init__(self, message: str, command: str):
        super().__init__(message)
        self.command = command


class CommandNotFoundError(CommandError):
    def __init__(self, command: str):
        super().__init__(f"Command not found: {command}", command)


class CommandFailedError(CommandError):
    def __init__(self, command: str, exit_code: int):
        super().__init__(
            f"Command '{command}' failed with exit code {exit_code}", command
        )
        self.exit_code = exit_code


class CommandSpawnError(CommandError):
    def __init__(self, command: str, reason: str):
        super().__init__(f"Failed to execute command '{command}': {reason}", command)


def report(error: ShelluxError) -> str:
    """Formats an error the way the CLI and the REPL print it."""
    if isinstance(error, LexicalError):
        return f"Lexer error at line {error.line}, column {error.col}: {error.message}"
    if isinstance(error, ParseError):
        return f"Parse error: {error.format()}"
    return f"Runtime error: {error.format()}"


__all__ = [
    "ArityError",
    "BuiltinError",
    "CommandError",
    "CommandFailedError",
    "CommandNotFoundError",
    "CommandSpawnError",
    "ConstAssignmentError",
    "ControlFlowError",
    "DivisionByZeroError",
    "IndexOutOfRangeError",
    "IterationError",
    "KeyNotFoundError",
    "LexicalError",
    "NotCallableError",
    "OperatorError",
    "ParseError",
    "ShelluxError",
    "ShelluxRuntimeError",
    "UndefinedVariableError",
    "report",
]
