"""Run one Lox source string through scan, parse, resolve and interpret."""

from __future__ import annotations

import logging
import sys
import threading
from dataclasses import dataclass, field
from typing import Callable, TypeVar, Union

from .io import IO
from .parse import parse
from .resolve import resolve
from .runtime import InterpretFailure, Interpreter
from .tokens import scan

logger = logging.getLogger(__name__)


@dataclass
class Success:
    """The run completed. data is the session value, "" when there is none."""

    data: str


@dataclass
class ParseError:
    """Static errors: scan and parse errors together, or resolve errors."""

    errors: list[str] = field(default_factory=list)


@dataclass
class InterpreterError:
    """The first runtime error, rendered as "<message>\\n[line N]"."""

    error: str


RunResult = Union[Success, ParseError, InterpreterError]

# Each Lox call costs several Python frames; runs get a worker thread with a
# stack large enough for this many frames.
RECURSION_LIMIT = 50_000
STACK_SIZE = 256 * 1024 * 1024

T = TypeVar("T")


def call_with_deep_stack(fn: Callable[[], T]) -> T:
    """Run fn on a fresh thread with a large stack and recursion limit."""
    outcome: list[T] = []
    failure: list[BaseException] = []

    def target() -> None:
        previous = sys.getrecursionlimit()
        sys.setrecursionlimit(RECURSION_LIMIT)
        try:
            outcome.append(fn())
        except BaseException as e:
            failure.append(e)
        finally:
            sys.setrecursionlimit(previous)

    old_size = threading.stack_size(STACK_SIZE)
    try:
        worker = threading.Thread(target=target, name="lox-run")
        worker.start()
    finally:
        threading.stack_size(old_size)
    worker.join()
    if failure:
        raise failure[0]
    return outcome[0]


class Runner:
    """Owns one interpreter, so globals survive from one run to the next."""

    def __init__(self, io: IO) -> None:
        self.interpreter = Interpreter(io)

    def run(self, source: str) -> RunResult:
        return call_with_deep_stack(lambda: self._run(source))

    def _run(self, source: str) -> RunResult:
        scanned = scan(source)
        parsed = parse(scanned.tokens)
        logger.debug(
            "scanned %d tokens, parsed %d statements",
            len(scanned.tokens),
            len(parsed.statements),
        )
        errors = scanned.errors + parsed.errors
        if errors:
            logger.debug("%d scan/parse errors", len(errors))
            return ParseError(errors)

        resolve_errors = resolve(parsed.statements, self.interpreter)
        if resolve_errors:
            logger.debug("%d resolve errors", len(resolve_errors))
            return ParseError(resolve_errors)

        result = self.interpreter.interpret(parsed.statements)
        if isinstance(result, InterpretFailure):
            logger.debug("runtime error at line %d: %s", result.line, result.message)
            return InterpreterError(result.message + "\n[line " + str(result.line) + "]")
        return Success(result.value if result.value is not None else "")


def run(source: str, io: IO) -> RunResult:
    """Run source once with a fresh interpreter."""
    return Runner(io).run(source)
