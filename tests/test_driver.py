"""
Fixture and corpus benchmark tests.

Validates phase order and output of a fixture benchmark, the shared decoded
input of encode trials, consumer release, and recovery from failing
fixtures across a corpus.
"""

import asyncio
import io
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

import sourcemap_codec
from benchmarks.data_generators import write_corpus
from sourcemap_codec.benchmark import BenchConfig
from sourcemap_codec.benchmark import CandidateError
from sourcemap_codec.benchmark import CodecCandidate
from sourcemap_codec.benchmark import FixtureBench
from sourcemap_codec.benchmark import MemoryComparison
from sourcemap_codec.benchmark import ReferenceCandidate
from sourcemap_codec.benchmark import Registry
from sourcemap_codec.benchmark import SpeedComparison
from sourcemap_codec.benchmark import TracemallocSnapshotProvider
from sourcemap_codec.benchmark import run_corpus
from sourcemap_codec.benchmark.report import Reporter

# Three segments on the first line, five on the second
EIGHT_SEGMENTS = sourcemap_codec.encode(
    [
        [(0, 0, 0, 0), (4, 0, 0, 4), (9, 0, 1, 0, 0)],
        [(0,), (2, 0, 2, 0), (5, 0, 2, 3), (8, 0, 3, 0), (12, 0, 3, 2, 1)],
    ]
)


def _document(mappings: str = EIGHT_SEGMENTS) -> dict[str, Any]:
    return {
        "version": 3,
        "file": "out.js",
        "sources": ["in.js"],
        "names": ["a", "b"],
        "mappings": mappings,
    }


class RecordingCodec(CodecCandidate):
    """Codec candidate recording what it returned and received."""

    def __init__(self, label: str) -> None:
        super().__init__(label, sourcemap_codec.decode, sourcemap_codec.encode)
        self.decoded: list[Any] = []
        self.encoded_inputs: list[Any] = []

    def decode(self, encoded: str) -> Any:
        result = super().decode(encoded)
        self.decoded.append(result)
        return result

    def encode(self, decoded: Any) -> str:
        self.encoded_inputs.append(decoded)
        return super().encode(decoded)


class TrackingReference(ReferenceCandidate):
    """Reference candidate tracking consumers it loaded and released."""

    label = "tracking"

    def __init__(self) -> None:
        self.loaded: list[dict[str, Any]] = []
        self.released_consumers: list[dict[str, Any]] = []
        self.serialized: list[Any] = []

    async def parse_document(self, document: Any) -> dict[str, Any]:
        consumer = {"mappings": document["mappings"]}
        self.loaded.append(consumer)
        return consumer

    def parse_mappings(self, consumer: Any, encoded: str) -> None:
        consumer["mappings"] = encoded

    def generator_from(self, consumer: Any) -> Any:
        return ("generator", consumer["mappings"])

    def serialize(self, generator: Any) -> str:
        self.serialized.append(generator)
        return generator[1]

    def release(self, consumer: Any) -> None:
        self.released_consumers.append(consumer)

    def decode(self, encoded: str) -> Any:
        return encoded

    def encode(self, decoded: Any) -> str:
        return ""


def _bench(
    registry: Registry, config: BenchConfig, output: io.StringIO
) -> FixtureBench:
    reporter = Reporter(output)
    return FixtureBench(
        registry,
        MemoryComparison(TracemallocSnapshotProvider(), reporter),
        SpeedComparison(
            config.min_time,
            config.min_samples,
            config.calibration_time,
            reporter,
        ),
        config,
        reporter,
    )


class TestFixtureBench:
    """Single fixture benchmark."""

    def test_phases_and_output(
        self,
        fast_config: BenchConfig,
        write_fixture: Callable[..., Path],
    ) -> None:
        """
        Validates the header, one memory and one speed block per operation.
        """
        path = write_fixture("a.map", _document())
        output = io.StringIO()
        registry = Registry([RecordingCodec("first"), RecordingCodec("second")])

        result = asyncio.run(_bench(registry, fast_config, output).run(path))

        text = output.getvalue()
        assert text.startswith("a.map - 8 segments\n\n")
        assert text.count("Decode Memory Usage:") == 1
        assert text.count("Encode Memory Usage:") == 1
        assert text.count("Decode speed:") == 1
        assert text.count("Encode speed:") == 1
        assert text.count("Smallest memory usage is ") == 2
        assert text.count("Fastest is decode: ") == 1
        assert text.count("Fastest is encode: ") == 1
        assert text.index("Decode Memory Usage:") < text.index("Decode speed:")
        assert text.index("Decode speed:") < text.index("Encode Memory Usage:")
        assert text.index("Encode Memory Usage:") < text.index("Encode speed:")
        assert result.segments == 8
        assert result.decode is not None and result.encode is not None
        assert [r.label for r in result.decode.memory.results] == [
            "first",
            "second",
        ]

    def test_encode_trials_share_reference_output(
        self,
        fast_config: BenchConfig,
        write_fixture: Callable[..., Path],
    ) -> None:
        """
        Validates every encode trial receives the reference's decoded value.
        """
        path = write_fixture("a.map", _document())
        reference = RecordingCodec("reference")
        other = RecordingCodec("other")
        registry = Registry([reference, other])

        asyncio.run(_bench(registry, fast_config, io.StringIO()).run(path))

        shared = reference.decoded[0]
        assert other.encoded_inputs
        assert all(value is shared for value in other.encoded_inputs)
        assert all(value is shared for value in reference.encoded_inputs)

    def test_repeated_runs_decode_identically(
        self,
        fast_config: BenchConfig,
        write_fixture: Callable[..., Path],
    ) -> None:
        """
        Validates two runs over one fixture share the same decoded value.
        """
        path = write_fixture("a.map", _document())
        reference = RecordingCodec("reference")
        bench = _bench(Registry([reference]), fast_config, io.StringIO())

        first = asyncio.run(bench.run(path))
        first_decoded = reference.decoded[0]
        reference.decoded.clear()
        second = asyncio.run(bench.run(path))

        assert reference.decoded[0] == first_decoded
        assert reference.decoded[0] == sourcemap_codec.decode(EIGHT_SEGMENTS)
        assert first.segments == second.segments == 8

    def test_operations_subset(
        self,
        write_fixture: Callable[..., Path],
    ) -> None:
        """
        Validates only the configured operations are compared.
        """
        path = write_fixture("a.map", _document())
        config = BenchConfig(
            min_time=0,
            min_samples=1,
            calibration_time=0,
            operations=("encode",),
        )
        output = io.StringIO()

        result = asyncio.run(
            _bench(Registry([RecordingCodec("a")]), config, output).run(path)
        )

        assert "Decode" not in output.getvalue()
        assert result.decode is None
        assert result.encode is not None

    def test_reference_consumers(
        self,
        fast_config: BenchConfig,
        write_fixture: Callable[..., Path],
    ) -> None:
        """
        Validates consumers load once and are released when the fixture ends.
        """
        path = write_fixture("a.map", _document())
        reference = TrackingReference()
        registry = Registry([RecordingCodec("codec"), reference])

        asyncio.run(_bench(registry, fast_config, io.StringIO()).run(path))

        assert len(reference.loaded) == 1
        assert reference.released_consumers == reference.loaded
        assert reference.serialized
        assert all(
            generator == ("generator", EIGHT_SEGMENTS)
            for generator in reference.serialized
        )

    def test_consumers_released_on_failure(
        self,
        fast_config: BenchConfig,
        write_fixture: Callable[..., Path],
    ) -> None:
        """
        Validates a failing memory trial still releases loaded consumers.
        """

        def broken(encoded: str) -> Any:
            raise ValueError("cannot decode")

        path = write_fixture("a.map", _document())
        reference = TrackingReference()
        registry = Registry(
            [
                RecordingCodec("codec"),
                reference,
                CodecCandidate("broken", broken, sourcemap_codec.encode),
            ]
        )

        with pytest.raises(CandidateError, match="broken failed to decode"):
            asyncio.run(_bench(registry, fast_config, io.StringIO()).run(path))

        assert reference.released_consumers == reference.loaded


class TestRunCorpus:
    """Corpus benchmark."""

    def test_separator_between_fixtures(
        self,
        tmp_path: Path,
        fast_config: BenchConfig,
        write_fixture: Callable[..., Path],
    ) -> None:
        """
        Validates one separator between two fixtures and none at the end.
        """
        write_fixture("a.map", _document())
        write_fixture("b.map", _document("AAAA"))
        output = io.StringIO()

        result = asyncio.run(
            run_corpus(tmp_path, fast_config, reporter=Reporter(output))
        )

        text = output.getvalue()
        assert result.ok
        assert [r.name for r in result.completed] == ["a.map", "b.map"]
        assert text.startswith("python ")
        assert text.count("***") == 1
        assert not text.rstrip().endswith("***")
        assert text.index("a.map - 8 segments") < text.index("***")
        assert text.index("***") < text.index("b.map - 1 segments")

    def test_failing_fixture_does_not_stop_run(
        self,
        tmp_path: Path,
        fast_config: BenchConfig,
        write_fixture: Callable[..., Path],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """
        Validates unreadable and undecodable fixtures are skipped and logged.
        """
        write_fixture("a.map", _document())
        write_fixture("b.map", text="{")
        write_fixture("c.map", _document("AA!"))
        write_fixture("d.map", _document("A"))
        output = io.StringIO()

        with caplog.at_level(logging.ERROR):
            result = asyncio.run(
                run_corpus(tmp_path, fast_config, reporter=Reporter(output))
            )

        assert [r.name for r in result.completed] == ["a.map", "d.map"]
        assert result.failed == ["b.map", "c.map"]
        assert not result.ok
        assert "b.map" in caplog.text
        assert "c.map" in caplog.text
        assert "d.map - 1 segments" in output.getvalue()
        assert output.getvalue().count("***") == 1

    def test_no_separator_after_failing_last_fixture(
        self,
        tmp_path: Path,
        fast_config: BenchConfig,
        write_fixture: Callable[..., Path],
    ) -> None:
        """
        Validates a failing last fixture leaves no trailing separator.
        """
        write_fixture("a.map", _document())
        write_fixture("b.map", text="{")
        output = io.StringIO()

        result = asyncio.run(
            run_corpus(tmp_path, fast_config, reporter=Reporter(output))
        )

        assert result.failed == ["b.map"]
        assert "***" not in output.getvalue()

    def test_default_registry(
        self,
        tmp_path: Path,
        fast_config: BenchConfig,
        write_fixture: Callable[..., Path],
    ) -> None:
        """
        Validates a run over every standard candidate.
        """
        write_fixture("a.map", _document())
        output = io.StringIO()

        result = asyncio.run(
            run_corpus(tmp_path, fast_config, reporter=Reporter(output))
        )

        text = output.getvalue()
        assert result.ok
        for label in ("sourcemap_codec.legacy", "consumer", "indexed"):
            assert f"decode: {label} x " in text
            assert f"encode: {label} x " in text

    def test_candidate_selection(
        self,
        tmp_path: Path,
        fast_config: BenchConfig,
        write_fixture: Callable[..., Path],
    ) -> None:
        """
        Validates only selected candidates are reported.
        """
        write_fixture("a.map", _document())
        output = io.StringIO()
        config = fast_config.with_overrides(candidates=("indexed",))

        asyncio.run(run_corpus(tmp_path, config, reporter=Reporter(output)))

        text = output.getvalue()
        assert "decode: indexed x " in text
        assert "consumer" not in text

    def test_unknown_candidate(
        self, tmp_path: Path, fast_config: BenchConfig
    ) -> None:
        """
        Validates selecting an unknown candidate fails before any fixture.
        """
        config = fast_config.with_overrides(candidates=("nope",))

        with pytest.raises(KeyError):
            asyncio.run(run_corpus(tmp_path, config))

    def test_empty_directory(
        self, tmp_path: Path, fast_config: BenchConfig
    ) -> None:
        """
        Validates an empty corpus only prints the environment line.
        """
        output = io.StringIO()

        result = asyncio.run(
            run_corpus(tmp_path, fast_config, reporter=Reporter(output))
        )

        assert result.ok
        assert result.completed == []
        assert output.getvalue().startswith("python ")
        assert "***" not in output.getvalue()

    def test_generated_corpus(
        self, tmp_path: Path, fast_config: BenchConfig
    ) -> None:
        """
        Validates a run over a generated corpus reports exact segment counts.
        """
        write_corpus(tmp_path, ("small",))
        output = io.StringIO()

        result = asyncio.run(
            run_corpus(tmp_path, fast_config, reporter=Reporter(output))
        )

        assert result.ok
        assert "small.map - 160 segments" in output.getvalue()
