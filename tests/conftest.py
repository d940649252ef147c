import os
import sys
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from shellux.shellux_interpreter import Interpreter
from shellux.shellux_parser import parse
from shellux.shellux_process import EXIT, NOT_FOUND, SUCCESS, ProcessExecutor, ProcessResult

# Monkeypatch coverage to bypass teardown crash in act/docker
if os.getenv("COVERAGE_PROCESS_START"):
    import coverage

    coverage.process_startup()

    # Nukes the teardown assertion that fails in act
    import coverage.collector

    def safe_stop(self: Any) -> None:
        if self in getattr(self, "_collectors", []):
            self._collectors.remove(self)

    coverage.collector.Collector.stop = safe_stop


class FakeExecutor(ProcessExecutor):
    """Records external commands instead of spawning them.

    Programs listed in `exit_codes` "exist" and exit with that status; everything
    else is not found. Substitutions return the text registered in `outputs`.
    """

    def __init__(
        self,
        exit_codes: dict[str, int] | None = None,
        outputs: dict[str, str] | None = None,
    ) -> None:
        super().__init__(shell="sh")
        self.exit_codes = exit_codes or {}
        self.outputs = outputs or {}
        self.calls: list[list[str]] = []
        self.substitutions: list[str] = []

    def run(self, program: str, args: list[str] | None = None) -> ProcessResult:
        self.calls.append([program, *(args or [])])
        if program not in self.exit_codes:
            return ProcessResult(program, NOT_FOUND)
        code = self.exit_codes[program]
        return ProcessResult(program, SUCCESS if code == 0 else EXIT, exit_code=code)

    def substitute(self, command: str) -> str:
        self.substitutions.append(command)
        return self.outputs.get(command, "")


@pytest.fixture  # type: ignore[misc]
def executor() -> FakeExecutor:
    return FakeExecutor(
        exit_codes={"ls": 0, "git": 0, "grep": 1},
        outputs={"echo hi": "hi", "whoami": "root"},
    )


@pytest.fixture  # type: ignore[misc]
def interpreter(executor: FakeExecutor) -> Interpreter:
    return Interpreter(executor=executor)


@pytest.fixture  # type: ignore[misc]
def run(interpreter: Interpreter) -> Callable[[str], Any]:
    def _run(source: str) -> Any:
        return interpreter.interpret(parse(source))

    return _run


@pytest.fixture(autouse=True)  # type: ignore[misc]
def restore_recursion_limit() -> Iterator[None]:
    limit = sys.getrecursionlimit()
    yield
    sys.setrecursionlimit(limit)
