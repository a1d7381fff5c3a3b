"""Lox tree-walking interpreter — public API."""

from __future__ import annotations

from .io import IO as IO, Clock as Clock, OutputSink as OutputSink, SystemIO
from .parse import ParseResult, parse
from .resolve import resolve
from .runner import (
    InterpreterError,
    ParseError,
    RunResult,
    Runner,
    Success,
    run,
)
from .runtime import Interpreter, LoxError, LoxRuntimeError
from .tokens import ScanResult, Token, TokenKind, scan

__all__ = [
    "IO",
    "Clock",
    "OutputSink",
    "SystemIO",
    "ParseResult",
    "parse",
    "resolve",
    "InterpreterError",
    "ParseError",
    "RunResult",
    "Runner",
    "Success",
    "run",
    "Interpreter",
    "LoxError",
    "LoxRuntimeError",
    "ScanResult",
    "Token",
    "TokenKind",
    "scan",
]
