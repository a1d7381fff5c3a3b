"""Host collaborators consumed by the interpreter: an output sink and a clock."""

from __future__ import annotations

import sys
import time
from typing import Protocol


class OutputSink(Protocol):
    def print(self, text: str) -> None: ...


class Clock(Protocol):
    def current_time(self) -> float:
        """Unix epoch seconds, fractional."""
        ...


class IO(OutputSink, Clock, Protocol):
    """Everything the interpreter needs from its host."""


class SystemIO:
    """Writes printed lines to stdout and reads the wall clock."""

    def print(self, text: str) -> None:
        sys.stdout.write(text + "\n")

    def current_time(self) -> float:
        return time.time()
