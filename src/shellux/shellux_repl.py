"""
Interactive read-eval-print loop for Shellux.

Each entry is lexed, parsed and evaluated against one long-lived `Interpreter`,
so variables and functions persist between entries. Input continues over several
lines while `{` braces are unbalanced. Errors are printed and the loop goes on.

REPL commands:
    exit, quit       leave the REPL
    help             list these commands
    verbose-mode     toggle printing of the parsed AST before evaluation
    tokens <code>    print the tokens of <code>
    ast <code>       print the AST of <code> as JSON
"""

import io
import json
import traceback

from shellux.shellux_ast import program_to_dicts
from shellux.shellux_errors import ShelluxError, report
from shellux.shellux_interpreter import Interpreter
from shellux.shellux_lexer import check_tokens, tokenize
from shellux.shellux_parser import Parser
from shellux.shellux_values import to_string

HELP_TEXT = """\
Commands:
  exit, quit       leave the REPL
  help             show this message
  verbose-mode     toggle AST printing before evaluation
  tokens <code>    show the tokens of <code>
  ast <code>       show the AST of <code>
Anything else is evaluated as Shellux code."""


def print_traceback() -> None:
    buf = io.StringIO()
    traceback.print_exc(file=buf)
    print("[error] >>>")
    print(buf.getvalue())


def read_entry() -> str | None:
    """Reads one entry, continuing with `... ` prompts while braces are open.

    Returns None when the user asks to leave.
    """
    src_lines: list[str] = []
    brace_count = 0
    while True:
        prompt = ">>> " if not src_lines else "... "
        line = input(prompt)
        if line.strip() in ("exit", "quit") and not src_lines:
            return None
        src_lines.append(line)
        brace_count += line.count("{") - line.count("}")
        if brace_count <= 0:
            return "\n".join(src_lines).strip()


def handle_command(src: str) -> bool:
    """Runs a REPL-only command. Returns False when `src` is ordinary code."""
    if src == "help":
        print(HELP_TEXT)
        return True
    command, _, code = src.partition(" ")
    if command == "tokens" and code:
        for tok in tokenize(code):
            print(f"[tokens] >>> {tok.line}:{tok.col} {tok.type} {tok.value!r}")
        return True
    if command == "ast" and code:
        program = Parser(check_tokens(tokenize(code))).parse()
        print(f"[ast] >>> {json.dumps(program_to_dicts(program), indent=2)}")
        return True
    return False


def evaluate_entry(src: str, interpreter: Interpreter, verbose: bool = False) -> None:
    """Lexes, parses and runs one entry, echoing a non-nil result as `=> value`."""
    program = Parser(check_tokens(tokenize(src))).parse()
    if verbose:
        for node in program:
            print(f"[ast] >>> {node!r}")
    result = interpreter.interpret(program)
    if result is not None:
        print(f"=> {to_string(result)}")


def start_repl(verbose: bool = False, interpreter: Interpreter | None = None) -> None:
    print("Shellux REPL. Type 'help' for commands, 'exit' or 'quit' to leave.")
    interpreter = interpreter or Interpreter()

    while True:
        try:
            src = read_entry()
            if src is None:
                print("Exiting Shellux REPL.")
                return
            if not src or src.startswith("#"):
                continue
            if src == "verbose-mode":
                verbose = not verbose
                print(f"[mode] >>> Verbose mode {'ON' if verbose else 'OFF'}")
                continue

            try:
                if handle_command(src):
                    continue
                evaluate_entry(src, interpreter, verbose)
            except ShelluxError as e:
                print(f"[error] >>> {report(e)}")
            except Exception:
                print_traceback()

        except (KeyboardInterrupt, EOFError):
            print("\nExiting Shellux REPL.")
            break


def main() -> None:
    start_repl()


if __name__ == "__main__":
    main()
