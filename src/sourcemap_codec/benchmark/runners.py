"""
Memory and speed comparisons over a batch of labeled trials.

A trial is a zero-argument callable performing one invocation of the
operation under test against an input shared by the whole batch. Trials run
strictly one after another in the order given.
"""

import logging
from collections.abc import Callable
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .errors import CandidateError
from .memory import MemorySnapshotProvider
from .memory import delta
from .report import Reporter
from .suite import Suite
from .suite import TrialError
from .suite import TrialStats

logger = logging.getLogger(__name__)

TrialFn = Callable[[], Any]
Trials = Sequence[tuple[str, TrialFn]]


@dataclass(frozen=True)
class CandidateResult:
    """Bytes one candidate added to the heap during one trial."""

    label: str
    delta: int


@dataclass(frozen=True)
class MemoryReport:
    operation: str
    results: tuple[CandidateResult, ...]
    winner: CandidateResult


@dataclass(frozen=True)
class SpeedReport:
    operation: str
    stats: tuple[TrialStats, ...]
    errors: tuple[TrialError, ...]
    fastest: str | None


@dataclass(frozen=True)
class ComparisonReport:
    """Memory and speed outcome of one operation on one fixture."""

    operation: str
    memory: MemoryReport | None = None
    speed: SpeedReport | None = None


def select_winner(results: Sequence[CandidateResult]) -> CandidateResult:
    """
    Returns the result with the smallest delta.

    Ties go to the earliest result. Raises ValueError on an empty batch.
    """
    if not results:
        raise ValueError("no results to compare")
    winner = results[0]
    for result in results[1:]:
        if result.delta < winner.delta:
            winner = result
    return winner


class MemoryComparison:
    """
    Measures each trial's heap footprint between two snapshots.

    A trial's return value is held until the second snapshot, so whatever
    the candidate produced counts against it.
    """

    def __init__(
        self,
        provider: MemorySnapshotProvider,
        reporter: Reporter | None = None,
    ) -> None:
        self.provider = provider
        self.reporter = reporter or Reporter()

    def measure(self, trial: TrialFn) -> int:
        before = self.provider.snapshot(collect=True)
        retained = trial()
        after = self.provider.snapshot()
        del retained
        return delta(before, after).footprint

    def run(self, operation: str, trials: Trials) -> MemoryReport:
        if not trials:
            raise ValueError("memory comparison needs at least one trial")

        self.reporter.memory_header(operation)
        results = []
        with self.provider.tracing():
            for label, trial in trials:
                try:
                    footprint = self.measure(trial)
                except Exception as e:
                    raise CandidateError(operation, label) from e
                result = CandidateResult(label, footprint)
                logger.debug("%s %s: %d bytes", operation, label, result.delta)
                self.reporter.memory_result(result.label, result.delta)
                results.append(result)

        winner = select_winner(results)
        self.reporter.memory_winner(winner.label)
        return MemoryReport(operation, tuple(results), winner)


class SpeedComparison:
    """
    Times each trial with a Suite and reports the fastest candidate.

    A trial that raises is logged and left out of the ranking; the other
    trials still run.
    """

    def __init__(
        self,
        min_time: float = 0.5,
        min_samples: int = 5,
        calibration_time: float = 0.01,
        reporter: Reporter | None = None,
    ) -> None:
        self.min_time = min_time
        self.min_samples = min_samples
        self.calibration_time = calibration_time
        self.reporter = reporter or Reporter()

    def _on_error(self, error: TrialError) -> None:
        logger.error("%s", error, exc_info=error.error)

    def run(self, operation: str, trials: Trials) -> SpeedReport:
        suite = Suite(
            min_time=self.min_time,
            min_samples=max(self.min_samples, 1),
            max_samples=max(self.min_samples, 1000),
            calibration_time=self.calibration_time,
        )
        names = {}
        for label, trial in trials:
            name = f"{operation}: {label}"
            names[name] = label
            suite.add(name, trial)

        self.reporter.speed_header(operation)
        suite.on("cycle", self.reporter.speed_cycle)
        suite.on("error", self._on_error)
        suite.run()

        fastest = suite.fastest()
        self.reporter.speed_fastest(fastest)
        return SpeedReport(
            operation,
            tuple(suite.results),
            tuple(suite.errors),
            names[fastest] if fastest is not None else None,
        )
