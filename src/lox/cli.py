"""Lox CLI — run a .lox file, or start a line-mode REPL."""

from __future__ import annotations

import logging
import sys
from typing import TextIO

from .io import SystemIO
from .runner import InterpreterError, ParseError, Runner, Success

logger = logging.getLogger(__name__)

EXIT_USAGE = 64
EXIT_DATAERR = 65
EXIT_NOINPUT = 66
EXIT_SOFTWARE = 70

USAGE: str = """\
lox [OPTIONS] [FILE]

Run a Lox program, or start an interactive session when no FILE is given.

Options:
  --verbose  Log pipeline phases to stderr
  --help     Show this help message
"""


def run_file(filepath: str, runner: Runner) -> int:
    try:
        with open(filepath, "rb") as f:
            raw = f.read()
    except FileNotFoundError:
        print("lox: " + filepath + ": No such file or directory", file=sys.stderr)
        return EXIT_NOINPUT
    except OSError as e:
        print("lox: " + filepath + ": " + str(e), file=sys.stderr)
        return EXIT_NOINPUT
    try:
        source = raw.decode("utf-8")
    except ValueError:
        print("lox: " + filepath + ": invalid utf-8", file=sys.stderr)
        return EXIT_NOINPUT

    logger.debug("running %s (%d bytes)", filepath, len(raw))
    result = runner.run(source)
    if isinstance(result, ParseError):
        for err in result.errors:
            print(err, file=sys.stderr)
        return EXIT_DATAERR
    if isinstance(result, InterpreterError):
        print(result.error, file=sys.stderr)
        return EXIT_SOFTWARE
    return 0


def run_prompt(runner: Runner, stdin: TextIO, stdout: TextIO) -> int:
    """Read-eval-print loop; errors are reported and the session continues."""
    logger.debug("starting REPL")
    while True:
        stdout.write("> ")
        stdout.flush()
        line = stdin.readline()
        if line == "":
            stdout.write("\n")
            break
        result = runner.run(line)
        if isinstance(result, Success):
            if result.data != "":
                stdout.write(result.data + "\n")
        elif isinstance(result, ParseError):
            for err in result.errors:
                print(err, file=sys.stderr)
        else:
            print(result.error, file=sys.stderr)
    logger.debug("REPL closed")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = argv if argv is not None else sys.argv[1:]
    filepath: str = ""
    verbose = False
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            return 0
        elif arg == "--verbose" or arg == "-v":
            verbose = True
            i += 1
        elif arg.startswith("-"):
            print("lox: unknown flag '" + arg + "'", file=sys.stderr)
            return EXIT_USAGE
        elif filepath == "":
            filepath = arg
            i += 1
        else:
            print("lox: unexpected argument '" + arg + "'", file=sys.stderr)
            return EXIT_USAGE

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(name)s: %(message)s", stream=sys.stderr
        )

    runner = Runner(SystemIO())
    if filepath == "":
        return run_prompt(runner, sys.stdin, sys.stdout)
    return run_file(filepath, runner)


if __name__ == "__main__":
    sys.exit(main())
