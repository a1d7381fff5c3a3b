"""Pytest configuration for the Lox test suite."""

import sys
from pathlib import Path

import pytest

# Add src directory to path for lox imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from lox.runner import InterpreterError, ParseError, RunResult, Runner, Success  # noqa: E402

FROZEN_TIME = 1662466230.0


def render(result: RunResult) -> str:
    """Flatten any run result to the text a session would show."""
    if isinstance(result, Success):
        return result.data
    if isinstance(result, ParseError):
        return "\n".join(result.errors)
    assert isinstance(result, InterpreterError)
    return result.error


class RecordingIO:
    """Collects printed lines and reports a fixed time."""

    def __init__(self, now: float = FROZEN_TIME) -> None:
        self.lines: list[str] = []
        self.now = now

    def print(self, text: str) -> None:
        self.lines.append(text)

    def current_time(self) -> float:
        return self.now


@pytest.fixture
def io() -> RecordingIO:
    return RecordingIO()


@pytest.fixture
def runner(io: RecordingIO) -> Runner:
    return Runner(io)
