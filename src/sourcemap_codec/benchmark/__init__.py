"""
Comparative benchmark of source map mappings codecs.

Measures the heap footprint and the speed of each candidate implementation
decoding and encoding the mappings of real source map fixtures, and names
the candidate with the smallest footprint and the fastest one.
"""

from .candidates import Candidate
from .candidates import CodecCandidate
from .candidates import ReferenceCandidate
from .candidates import Registry
from .candidates import default_registry
from .config import BenchConfig
from .driver import CorpusResult
from .driver import run_corpus
from .errors import BenchmarkError
from .errors import CandidateError
from .errors import FixtureError
from .memory import MemoryDelta
from .memory import MemorySnapshot
from .memory import ScriptedSnapshotProvider
from .memory import TracemallocSnapshotProvider
from .memory import delta
from .orchestrator import FixtureBench
from .orchestrator import FixtureResult
from .runners import CandidateResult
from .runners import ComparisonReport
from .runners import MemoryComparison
from .runners import SpeedComparison
from .runners import select_winner
from .suite import Suite

__all__ = [
    "BenchConfig",
    "BenchmarkError",
    "Candidate",
    "CandidateError",
    "CandidateResult",
    "CodecCandidate",
    "ComparisonReport",
    "CorpusResult",
    "FixtureBench",
    "FixtureError",
    "FixtureResult",
    "MemoryComparison",
    "MemoryDelta",
    "MemorySnapshot",
    "ReferenceCandidate",
    "Registry",
    "ScriptedSnapshotProvider",
    "SpeedComparison",
    "Suite",
    "TracemallocSnapshotProvider",
    "default_registry",
    "delta",
    "run_corpus",
    "select_winner",
]
