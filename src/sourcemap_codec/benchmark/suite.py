"""
Timing suite for comparing zero-argument trials.

Each trial is calibrated so one sample lasts long enough to time reliably,
then sampled repeatedly until a minimum time has elapsed. Trials run one
after another and a failing trial is reported without stopping the rest.
"""

import logging
import math
import statistics
import timeit
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field
from typing import Any

logger = logging.getLogger(__name__)

# Two-tailed 95% critical values of Student's t, by degrees of freedom
T_TABLE = {
    1: 12.706, 2: 4.303, 3: 3.182, 4: 2.776, 5: 2.571,
    6: 2.447, 7: 2.365, 8: 2.306, 9: 2.262, 10: 2.228,
    11: 2.201, 12: 2.179, 13: 2.16, 14: 2.145, 15: 2.131,
    16: 2.12, 17: 2.11, 18: 2.101, 19: 2.093, 20: 2.086,
    21: 2.08, 22: 2.074, 23: 2.069, 24: 2.064, 25: 2.06,
    26: 2.056, 27: 2.052, 28: 2.048, 29: 2.045, 30: 2.042,
}  # fmt: skip
T_INFINITY = 1.96

EVENTS = ("cycle", "error", "complete")


@dataclass
class TrialStats:
    """
    Sampled timings of one trial.

    ``samples`` holds seconds per call, one entry per timed batch.
    """

    name: str
    samples: list[float]
    calls_per_sample: int = 1

    @property
    def mean(self) -> float:
        return statistics.fmean(self.samples)

    @property
    def deviation(self) -> float:
        if len(self.samples) < 2:
            return 0.0
        return statistics.stdev(self.samples)

    @property
    def sem(self) -> float:
        """Standard error of the mean."""
        return self.deviation / math.sqrt(len(self.samples))

    @property
    def moe(self) -> float:
        """Margin of error at 95% confidence."""
        df = len(self.samples) - 1
        return self.sem * T_TABLE.get(df, T_INFINITY)

    @property
    def rme(self) -> float:
        """Relative margin of error as a percentage of the mean."""
        return (self.moe / self.mean) * 100 if self.mean else 0.0

    @property
    def hz(self) -> float:
        """Calls per second."""
        return 1 / self.mean if self.mean else math.inf

    def __str__(self) -> str:
        precision = 2 if self.hz < 100 else 0
        runs = len(self.samples)
        return (
            f"{self.name} x {self.hz:,.{precision}f} ops/sec "
            f"±{self.rme:.2f}% ({runs} run{'' if runs == 1 else 's'} "
            "sampled)"
        )


@dataclass(frozen=True)
class TrialError:
    """A trial that raised instead of completing."""

    name: str
    error: BaseException

    def __str__(self) -> str:
        return f"{self.name}: {type(self.error).__name__}: {self.error}"


@dataclass
class Trial:
    name: str
    fn: Callable[[], Any]


@dataclass
class Suite:
    """
    Ordered set of named trials.

    ``min_time`` is the sampling budget per trial in seconds;
    ``calibration_time`` is how long one timed batch must last at least.
    """

    min_time: float = 0.5
    min_samples: int = 5
    max_samples: int = 1000
    calibration_time: float = 0.01
    timer: Callable[[], float] = timeit.default_timer
    trials: list[Trial] = field(default_factory=list, init=False)
    results: list[TrialStats] = field(default_factory=list, init=False)
    errors: list[TrialError] = field(default_factory=list, init=False)
    _listeners: dict[str, list[Callable[[Any], None]]] = field(
        default_factory=lambda: defaultdict(list), init=False, repr=False
    )

    def __post_init__(self) -> None:
        if self.min_time < 0:
            raise ValueError("min_time must not be negative")
        if self.min_samples < 1:
            raise ValueError("min_samples must be at least 1")
        if self.max_samples < self.min_samples:
            raise ValueError("max_samples must be at least min_samples")

    def add(self, name: str, fn: Callable[[], Any]) -> "Suite":
        if any(trial.name == name for trial in self.trials):
            raise ValueError(f"duplicate trial name: {name}")
        self.trials.append(Trial(name, fn))
        return self

    def on(self, event: str, listener: Callable[[Any], None]) -> "Suite":
        """
        Registers a listener.

        ``cycle`` receives TrialStats, ``error`` receives TrialError and
        ``complete`` receives the suite.
        """
        if event not in EVENTS:
            raise ValueError(f"unknown event: {event}")
        self._listeners[event].append(listener)
        return self

    def _emit(self, event: str, payload: Any) -> None:
        for listener in self._listeners[event]:
            listener(payload)

    def run(self) -> "Suite":
        """Runs every trial in registration order."""
        self.results = []
        self.errors = []
        for trial in self.trials:
            try:
                stats = self._measure(trial)
            except Exception as exc:
                logger.debug("trial %s failed", trial.name, exc_info=True)
                error = TrialError(trial.name, exc)
                self.errors.append(error)
                self._emit("error", error)
                continue
            self.results.append(stats)
            self._emit("cycle", stats)
        self._emit("complete", self)
        return self

    def _calibrate(self, timer: timeit.Timer) -> int:
        """Finds a batch size lasting at least ``calibration_time``."""
        i = 1
        while True:
            for multiplier in (1, 2, 5):
                number = i * multiplier
                if timer.timeit(number) >= self.calibration_time:
                    return number
            i *= 10

    def _measure(self, trial: Trial) -> TrialStats:
        timer = timeit.Timer(trial.fn, timer=self.timer)
        number = self._calibrate(timer)
        samples: list[float] = []
        started = self.timer()
        while len(samples) < self.max_samples and (
            len(samples) < self.min_samples
            or self.timer() - started < self.min_time
        ):
            samples.append(timer.timeit(number) / number)
        return TrialStats(trial.name, samples, number)

    def fastest(self) -> str | None:
        """
        Name of the trial with the highest rate, first registered on ties.

        None when no trial completed.
        """
        if not self.results:
            return None
        best = self.results[0]
        for stats in self.results[1:]:
            if stats.hz > best.hz:
                best = stats
        return best.name
