"""
External process execution for Shellux.

Names that are neither builtins nor bound variables run as operating-system
commands, and `$( ... )` literals run through a shell. Both block until the child
exits; there is no timeout. Child output is decoded as text with undecodable
bytes replaced, so a program's output never turns into a failure.

Classes:
    ProcessResult: Outcome of one direct process invocation.
    ProcessExecutor: Runs programs and shell command substitutions.
"""

import os
import subprocess
import sys
from dataclasses import dataclass, field

from shellux.shellux_errors import (
    CommandFailedError,
    CommandNotFoundError,
    CommandSpawnError,
)

SUCCESS = "success"
EXIT = "exit"
NOT_FOUND = "not_found"
SPAWN_ERROR = "spawn_error"


@dataclass
class ProcessResult:
    """
    Outcome of `ProcessExecutor.run()`.

    Attributes:
        program (str): The program that was run.
        status (str): One of "success", "exit", "not_found" or "spawn_error".
        exit_code (int | None): Exit status when the program ran.
        stdout (str): Captured standard output, already copied to sys.stdout.
        stderr (str): Captured standard error, already copied to sys.stderr.
        reason (str): Spawn failure description.
    """

    program: str
    status: str
    exit_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    reason: str = field(default="")

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS

    def check(self) -> "ProcessResult":
        """Returns self on success, otherwise raises the matching CommandError."""
        if self.status == EXIT:
            raise CommandFailedError(self.program, self.exit_code or 0)
        if self.status == NOT_FOUND:
            raise CommandNotFoundError(self.program)
        if self.status == SPAWN_ERROR:
            raise CommandSpawnError(self.program, self.reason)
        return self


class ProcessExecutor:
    """
    Runs external programs on behalf of the interpreter.

    Args:
        shell (str, optional): Shell used for command substitution. Defaults to
            the SHELLUX_SHELL environment variable, then "sh".
    """

    def __init__(self, shell: str | None = None):
        self.shell = shell or os.environ.get("SHELLUX_SHELL", "sh")

    def run(self, program: str, args: list[str] | None = None) -> ProcessResult:
        """
        Runs `program` with `args` and waits for it to exit.

        The child's output is copied to this process's stdout and stderr.

        Returns:
            ProcessResult: The outcome. Errors are reported in `status`, not raised.
        """
        argv = [program, *(args or [])]
        try:
            completed = subprocess.run(
                argv, capture_output=True, text=True, encoding="utf-8", errors="replace"
            )
        except FileNotFoundError:
            return ProcessResult(program, NOT_FOUND)
        except (OSError, ValueError) as e:
            return ProcessResult(program, SPAWN_ERROR, reason=str(e))

        if completed.stdout:
            sys.stdout.write(completed.stdout)
            sys.stdout.flush()
        if completed.stderr:
            sys.stderr.write(completed.stderr)
            sys.stderr.flush()

        status = SUCCESS if completed.returncode == 0 else EXIT
        return ProcessResult(
            program,
            status,
            exit_code=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )

    def substitute(self, command: str) -> str:
        """
        Runs `command` through the shell and returns its stdout without trailing whitespace.

        A non-zero exit status is not an error: whatever was printed is returned.

        Raises:
            CommandSpawnError: If the shell itself cannot be started.
        """
        try:
            completed = subprocess.run(
                [self.shell, "-c", command],
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except (OSError, ValueError) as e:
            raise CommandSpawnError(command, str(e)) from e
        return completed.stdout.rstrip()


__all__ = [
    "EXIT",
    "NOT_FOUND",
    "SPAWN_ERROR",
    "SUCCESS",
    "ProcessExecutor",
    "ProcessResult",
]
