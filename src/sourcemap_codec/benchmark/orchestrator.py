"""
Benchmark of a single fixture.

Loads the fixture, derives the shared decoded mappings from the reference
candidate, then compares decode memory, decode speed, encode memory and
encode speed, in that order.
"""

import logging
import os
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Any

from .candidates import Candidate
from .candidates import ReferenceCandidate
from .candidates import Registry
from .config import BenchConfig
from .fixtures import Fixture
from .fixtures import load_fixture
from .fixtures import segment_count
from .report import Reporter
from .runners import ComparisonReport
from .runners import MemoryComparison
from .runners import SpeedComparison
from .runners import TrialFn
from .runners import Trials

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FixtureResult:
    name: str
    segments: int
    decode: ComparisonReport | None
    encode: ComparisonReport | None


def _decode_trial(candidate: Candidate, encoded: str) -> TrialFn:
    return lambda: candidate.decode(encoded)


def _reparse_trial(
    candidate: ReferenceCandidate, consumer: Any, encoded: str
) -> TrialFn:
    return lambda: candidate.reparse(consumer, encoded)


def _encode_trial(candidate: Candidate, decoded: Any) -> TrialFn:
    return lambda: candidate.encode(decoded)


def _serialize_trial(
    candidate: ReferenceCandidate, generator: Any
) -> TrialFn:
    return lambda: candidate.serialize(generator)


class FixtureBench:
    """
    Runs every comparison phase for one fixture at a time.

    Consumers loaded for reference candidates live for one fixture and are
    released when it finishes, whether it succeeded or not.
    A separator precedes the header of every fixture after the first one
    that got as far as reporting.
    """

    def __init__(
        self,
        registry: Registry,
        memory: MemoryComparison,
        speed: SpeedComparison,
        config: BenchConfig | None = None,
        reporter: Reporter | None = None,
    ) -> None:
        self.registry = registry
        self.memory = memory
        self.speed = speed
        self.config = config or BenchConfig()
        self.reporter = reporter or Reporter()
        self.reported = 0

    def _compare(self, operation: str, trials: Trials) -> ComparisonReport:
        memory = self.memory.run(operation, trials)
        self.reporter.line()
        speed = self.speed.run(operation, trials)
        return ComparisonReport(operation, memory, speed)

    async def run(self, path: str | os.PathLike[str]) -> FixtureResult:
        fixture = load_fixture(path, self.config.json_backend)
        return await self.run_fixture(fixture)

    async def run_fixture(self, fixture: Fixture) -> FixtureResult:
        encoded = fixture.encoded
        decoded = self.registry.reference.decode(encoded)
        segments = segment_count(decoded)

        with ExitStack() as stack:
            # Loaded before any measurement so setup cost stays out of trials
            consumers = {}
            for candidate in self.registry.references():
                consumer = await candidate.parse_document(fixture.document)
                stack.callback(candidate.release, consumer)
                consumers[candidate.label] = consumer

            if self.reported:
                self.reporter.separator()
            self.reported += 1
            self.reporter.fixture_header(fixture.name, segments)
            logger.debug("benchmarking %s", fixture.name)

            decode_report = None
            if "decode" in self.config.operations:
                decode_trials = [
                    (
                        candidate.label,
                        _reparse_trial(
                            candidate, consumers[candidate.label], encoded
                        )
                        if isinstance(candidate, ReferenceCandidate)
                        else _decode_trial(candidate, encoded),
                    )
                    for candidate in self.registry
                ]
                decode_report = self._compare("decode", decode_trials)

            encode_report = None
            if "encode" in self.config.operations:
                if decode_report is not None:
                    self.reporter.line()
                generators = {
                    candidate.label: candidate.generator_from(
                        consumers[candidate.label]
                    )
                    for candidate in self.registry.references()
                }
                encode_trials = [
                    (
                        candidate.label,
                        _serialize_trial(
                            candidate, generators[candidate.label]
                        )
                        if isinstance(candidate, ReferenceCandidate)
                        else _encode_trial(candidate, decoded),
                    )
                    for candidate in self.registry
                ]
                encode_report = self._compare("encode", encode_trials)

        return FixtureResult(
            fixture.name, segments, decode_report, encode_report
        )
