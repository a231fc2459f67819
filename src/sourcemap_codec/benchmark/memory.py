"""
Process memory snapshots and the deltas between them.

Python heap figures come from tracemalloc, process-level figures from
psutil. Tracing only runs inside ``provider.tracing()`` so that timed code
never pays for the tracer.
"""

import gc
import os
import tracemalloc
from collections.abc import Callable
from collections.abc import Iterable
from collections.abc import Iterator
from contextlib import contextmanager
from contextlib import nullcontext
from dataclasses import dataclass
from dataclasses import fields
from typing import ContextManager
from typing import Protocol

import psutil

# tracemalloc domain used by the Python allocators; other domains hold
# buffers registered by extension modules
PYTHON_DOMAIN = 0

GcHook = Callable[[], object] | None


@dataclass(frozen=True)
class MemorySnapshot:
    """
    Byte counts of the process memory regions at one instant.

    - rss: resident set size of the process
    - vms: virtual memory size of the process
    - heap_total: peak traced Python heap since tracing started
    - heap_used: traced Python heap in use
    - external: traced memory owned by extension modules
    """

    rss: int = 0
    vms: int = 0
    heap_total: int = 0
    heap_used: int = 0
    external: int = 0


@dataclass(frozen=True)
class MemoryDelta:
    """Signed field-wise difference between two snapshots."""

    rss: int = 0
    vms: int = 0
    heap_total: int = 0
    heap_used: int = 0
    external: int = 0

    @property
    def footprint(self) -> int:
        """Bytes attributed to the measured operation."""
        return self.heap_used + self.external


def delta(before: MemorySnapshot, after: MemorySnapshot) -> MemoryDelta:
    """Returns ``after - before`` for every field."""
    return MemoryDelta(
        **{
            field.name: getattr(after, field.name) - getattr(before, field.name)
            for field in fields(MemorySnapshot)
        }
    )


class MemorySnapshotProvider(Protocol):
    """Source of memory snapshots for the comparison runners."""

    def snapshot(self, collect: bool = False) -> MemorySnapshot: ...

    def tracing(self) -> ContextManager[object]: ...


class TracemallocSnapshotProvider:
    """
    Snapshots the current process with tracemalloc and psutil.

    ``gc_hook`` runs before any snapshot requested with ``collect=True``.
    Pass None to measure without forcing a collection.
    """

    def __init__(
        self,
        gc_hook: GcHook = gc.collect,
        process: psutil.Process | None = None,
    ) -> None:
        self.gc_hook = gc_hook
        self._process = process or psutil.Process(os.getpid())

    @contextmanager
    def tracing(self) -> Iterator["TracemallocSnapshotProvider"]:
        """Traces allocations for the duration of the block."""
        started = not tracemalloc.is_tracing()
        if started:
            tracemalloc.start()
        try:
            yield self
        finally:
            if started:
                tracemalloc.stop()

    def snapshot(self, collect: bool = False) -> MemorySnapshot:
        if collect and self.gc_hook is not None:
            self.gc_hook()

        # Read the tracer first; building the domain view allocates
        current, peak = tracemalloc.get_traced_memory()
        external = _external_traced() if tracemalloc.is_tracing() else 0
        info = self._process.memory_info()
        return MemorySnapshot(
            rss=info.rss,
            vms=info.vms,
            heap_total=peak,
            heap_used=current - external,
            external=external,
        )


def _external_traced() -> int:
    snapshot = tracemalloc.take_snapshot().filter_traces(
        [tracemalloc.DomainFilter(inclusive=False, domain=PYTHON_DOMAIN)]
    )
    return sum(stat.size for stat in snapshot.statistics("filename"))


class ScriptedSnapshotProvider:
    """
    Deterministic provider returning snapshots in the order given.

    Records how often a collection was requested, so callers can check the
    GC hint without a real collector.
    """

    def __init__(self, snapshots: Iterable[MemorySnapshot]) -> None:
        self._snapshots = iter(snapshots)
        self.collect_requests = 0
        self.taken: list[MemorySnapshot] = []

    def tracing(self) -> ContextManager[object]:
        return nullcontext(self)

    def snapshot(self, collect: bool = False) -> MemorySnapshot:
        if collect:
            self.collect_requests += 1
        try:
            snapshot = next(self._snapshots)
        except StopIteration:
            raise RuntimeError("scripted snapshots exhausted") from None
        self.taken.append(snapshot)
        return snapshot
