"""
Benchmark of every fixture in a directory.

Fixtures run one after another; each one's results stand alone. A fixture
that fails is logged and skipped, and the run moves on to the next one.
"""

import gc
import logging
import os
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path

from .candidates import Registry
from .candidates import default_registry
from .config import BenchConfig
from .errors import BenchmarkError
from .errors import FixtureError
from .fixtures import list_fixtures
from .memory import MemorySnapshotProvider
from .memory import TracemallocSnapshotProvider
from .orchestrator import FixtureBench
from .orchestrator import FixtureResult
from .report import Reporter
from .runners import MemoryComparison
from .runners import SpeedComparison

logger = logging.getLogger(__name__)


@dataclass
class CorpusResult:
    completed: list[FixtureResult] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


async def run_corpus(
    directory: str | os.PathLike[str],
    config: BenchConfig | None = None,
    *,
    registry: Registry | None = None,
    provider: MemorySnapshotProvider | None = None,
    reporter: Reporter | None = None,
) -> CorpusResult:
    """
    Benchmarks every fixture in ``directory``.

    Candidate setup completes before the first fixture is measured. A
    separator is printed between fixtures, never after the last one.
    """
    config = config or BenchConfig()
    reporter = reporter or Reporter()
    registry = (registry or default_registry()).select(config.candidates)
    if provider is None:
        provider = TracemallocSnapshotProvider(
            gc_hook=gc.collect if config.collect_garbage else None
        )

    paths = list_fixtures(Path(directory), config.extension, config.order)
    logger.info("found %d fixtures in %s", len(paths), directory)

    await registry.initialize()

    bench = FixtureBench(
        registry,
        MemoryComparison(provider, reporter),
        SpeedComparison(
            config.min_time,
            config.min_samples,
            config.calibration_time,
            reporter,
        ),
        config,
        reporter,
    )

    reporter.environment()
    result = CorpusResult()
    for path in paths:
        try:
            fixture_result = await bench.run(path)
        except FixtureError as e:
            logger.error("skipping fixture %s", e)
            result.failed.append(path.name)
        except BenchmarkError as e:
            logger.error("%s: %s", path.name, e, exc_info=e.__cause__)
            result.failed.append(path.name)
        except Exception:
            logger.exception("benchmark of %s failed", path.name)
            result.failed.append(path.name)
        else:
            result.completed.append(fixture_result)

    return result
