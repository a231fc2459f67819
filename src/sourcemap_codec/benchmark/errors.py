"""Errors raised by the benchmark harness."""


class BenchmarkError(Exception):
    """Base class for harness failures."""


class FixtureError(BenchmarkError):
    """
    A fixture could not be loaded.

    Aborts the benchmark of that fixture only.
    """

    def __init__(self, fixture: str, reason: str) -> None:
        self.fixture = fixture
        self.reason = reason
        super().__init__(f"{fixture}: {reason}")


class CandidateError(BenchmarkError):
    """A candidate raised while its memory use was being measured."""

    def __init__(self, operation: str, label: str) -> None:
        self.operation = operation
        self.label = label
        super().__init__(f"{label} failed to {operation}")
