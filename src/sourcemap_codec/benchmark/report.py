"""Plain text output of benchmark results."""

import platform
import sys
from typing import TextIO

from .suite import TrialStats

LABEL_WIDTH = 30
DELTA_WIDTH = 10
SEPARATOR = "\n\n***\n\n"


class Reporter:
    """
    Writes results to a text stream, standard output by default.

    The stream is looked up on every write so redirected or captured
    standard output is honored.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def line(self, text: str = "") -> None:
        print(text, file=self.stream)

    def environment(self) -> None:
        self.line(f"python {platform.python_version()}\n")

    def fixture_header(self, name: str, segments: int) -> None:
        self.line(f"{name} - {segments} segments")
        self.line()

    def memory_header(self, operation: str) -> None:
        self.line(f"{operation.capitalize()} Memory Usage:")

    def memory_result(self, label: str, delta: int) -> None:
        self.line(f"{label:<{LABEL_WIDTH}} {delta:>{DELTA_WIDTH}} bytes")

    def memory_winner(self, label: str) -> None:
        self.line(f"Smallest memory usage is {label}")

    def speed_header(self, operation: str) -> None:
        self.line(f"{operation.capitalize()} speed:")

    def speed_cycle(self, stats: TrialStats) -> None:
        self.line(str(stats))

    def speed_fastest(self, name: str | None) -> None:
        self.line(f"Fastest is {name if name is not None else 'none'}")

    def separator(self) -> None:
        self.line(SEPARATOR)
