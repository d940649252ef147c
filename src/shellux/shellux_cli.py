"""
Shellux CLI Entrypoint.

This module provides the command-line interface for running Shellux programs.
It supports script execution, inline source, debug dumps and the interactive REPL.

Features:
    - Read source from script files or inline strings.
    - Lex, parse and evaluate the program.
    - Dump the token stream (`--tokens`) or the AST as JSON (`--ast`) instead of running.
    - Drop into the REPL after running a script (`-i`), sharing its globals.
    - Launch the REPL when no arguments are given.

Example usage:
    shellux deploy.sx
    shellux -s 'let x is 2 ** 10
    print(x)'
    shellux build.sx --tokens
    shellux build.sx -i --verbose

Functions:
    run_shellux(source: str, is_string: bool = False, show_tokens: bool = False,
                show_ast: bool = False, interpreter: Interpreter | None = None) -> Any:
        Executes the full Shellux pipeline (lex → parse → evaluate) or a debug dump.

    main(argv: list[str] | None = None) -> None:
        Parses CLI arguments and invokes the appropriate action.
"""

import argparse
import json
import sys
from typing import Any

from shellux.shellux_ast import program_to_dicts
from shellux.shellux_errors import ShelluxError, report
from shellux.shellux_interpreter import Interpreter
from shellux.shellux_lexer import Token, check_tokens, tokenize
from shellux.shellux_parser import Parser
from shellux.shellux_process import ProcessExecutor

RECURSION_LIMIT = 10_000


def format_token(tok: Token) -> str:
    return f"{tok.line}:{tok.col}\t{tok.type}\t{tok.value!r}"


def run_shellux(
    source: str,
    is_string: bool = False,
    show_tokens: bool = False,
    show_ast: bool = False,
    interpreter: Interpreter | None = None,
) -> Any:
    """
    Run the Shellux toolchain: lex, parse, and evaluate, or dump an intermediate stage.

    Args:
        source (str): Shellux source code or path to a script file.
        is_string (bool): If True, treats `source` as raw code instead of a file path. Defaults to False.
        show_tokens (bool): If True, prints the token stream and stops. Defaults to False.
        show_ast (bool): If True, prints the AST as JSON and stops. Defaults to False.
        interpreter (Interpreter | None): Interpreter to evaluate with. A new one is created if None.

    Returns:
        Any: The value of the program's last statement, or None for the dumps.

    Raises:
        OSError: If the script file cannot be read.
        ShelluxError: On lexical, parse or runtime errors.
    """
    # 1. Read source
    if not is_string:
        with open(source, encoding="utf-8") as f:
            source = f.read()

    # 2. Lexing
    tokens = tokenize(source)
    if show_tokens:
        for tok in tokens:
            print(format_token(tok))
        return None
    check_tokens(tokens)

    # 3. Parsing
    program = Parser(tokens).parse()
    if show_ast:
        print(json.dumps(program_to_dicts(program), indent=2))
        return None

    # 4. Evaluation
    interpreter = interpreter or Interpreter()
    return interpreter.interpret(program)


def main(argv: list[str] | None = None) -> None:
    """
    Entry point for the Shellux CLI.

    Parses command-line arguments and dispatches to the appropriate mode:
    - Launches the REPL if no source is given.
    - Otherwise runs the script (or `-s` string), then optionally the REPL (`-i`).

    Supported flags:
        - `-s`, `--string`: Interpret source as a raw string instead of a file path.
        - `-i`, `--interactive`: Start the REPL after running the source.
        - `--tokens`: Print the token stream instead of running.
        - `--ast`: Print the AST as JSON instead of running.
        - `--shell`: Shell used for `$( ... )` (default: $SHELLUX_SHELL or sh).
        - `--verbose`: Verbose REPL mode.

    Exits with status 1 when the source cannot be read or fails to run.
    """
    parser = argparse.ArgumentParser(prog="shellux", description="Run Shellux scripts.")
    parser.add_argument("source", nargs="?", help="Script file, or raw source (with -s)")
    parser.add_argument(
        "-s", "--string", action="store_true", help="Interpret source as literal string"
    )
    parser.add_argument(
        "-i",
        "--interactive",
        action="store_true",
        help="Start the REPL after running the source",
    )
    parser.add_argument("--tokens", action="store_true", help="Print tokens and exit")
    parser.add_argument("--ast", action="store_true", help="Print the AST as JSON and exit")
    parser.add_argument(
        "--shell", metavar="SHELL", help="Shell for command substitution"
    )
    parser.add_argument("--verbose", action="store_true", help="Verbose REPL mode")

    args = parser.parse_args(argv)

    sys.setrecursionlimit(max(sys.getrecursionlimit(), RECURSION_LIMIT))
    interpreter = Interpreter(executor=ProcessExecutor(args.shell))

    if args.source is not None:
        try:
            run_shellux(
                source=args.source,
                is_string=args.string,
                show_tokens=args.tokens,
                show_ast=args.ast,
                interpreter=interpreter,
            )
        except OSError as e:
            print(f"Error: cannot read {args.source}: {e.strerror or e}", file=sys.stderr)
            sys.exit(1)
        except ShelluxError as e:
            print(report(e), file=sys.stderr)
            sys.exit(1)
        if not args.interactive:
            return

    from shellux.shellux_repl import start_repl

    start_repl(verbose=args.verbose, interpreter=interpreter)


if __name__ == "__main__" and not any("pytest" in arg for arg in sys.argv):
    main()
