"""
Pytest configuration and shared fixtures for sourcemap_codec tests.

Provides immutable test data and helpers for writing fixture directories,
so benchmark runs in tests stay small and fast.
"""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import orjson
import pytest

import sourcemap_codec
from sourcemap_codec.benchmark import BenchConfig


@dataclass(frozen=True)
class MappingsTestCase:
    """
    Immutable container for a mappings string and its decoded form.
    """

    description: str
    encoded: str
    decoded: list[list[tuple[int, ...]]]
    canonical: bool = True


@pytest.fixture
def known_mappings() -> list[MappingsTestCase]:
    """
    Provides mappings strings with hand-checked decoded values.

    Covers every segment shape, relative fields carried across lines, and
    multi-digit VLQ values.
    """
    return [
        MappingsTestCase("empty string", "", [[]]),
        MappingsTestCase("one empty line break", ";", [[], []]),
        MappingsTestCase("two empty line breaks", ";;", [[], [], []]),
        MappingsTestCase("unmapped segment", "A", [[(0,)]]),
        MappingsTestCase("four-field segment", "AAAA", [[(0, 0, 0, 0)]]),
        MappingsTestCase("five-field segment", "AAAAA", [[(0, 0, 0, 0, 0)]]),
        MappingsTestCase(
            "relative columns within a line",
            "AAAA,CAAC",
            [[(0, 0, 0, 0), (1, 0, 0, 1)]],
        ),
        MappingsTestCase(
            "original line carried to the next line",
            "AAAA;AACA",
            [[(0, 0, 0, 0)], [(0, 0, 1, 0)]],
        ),
        MappingsTestCase(
            "generated column resets per line",
            "EAAA;EAAA",
            [[(2, 0, 0, 0)], [(2, 0, 0, 0)]],
        ),
        MappingsTestCase(
            "unsorted line is ordered by column",
            "gBAAA,DAAA",
            [[(15, 0, 0, 0), (16, 0, 0, 0)]],
            canonical=False,
        ),
        MappingsTestCase("multi-digit value", "gB", [[(16,)]]),
    ]


@pytest.fixture
def sample_decoded() -> list[list[tuple[int, ...]]]:
    """
    Provides decoded mappings with every segment shape and an empty line.
    """
    return [
        [(0, 0, 0, 0, 0), (4, 1, 2, 3), (9, 1, 2, 7, 1)],
        [],
        [(2,), (6, 0, 5, 0)],
    ]


@pytest.fixture
def sample_document(
    sample_decoded: list[list[tuple[int, ...]]],
) -> dict[str, Any]:
    """Provides a complete version 3 document for sample_decoded."""
    return {
        "version": 3,
        "file": "out.js",
        "sourceRoot": "src",
        "sources": ["a.js", "b.js"],
        "names": ["foo", "bar"],
        "mappings": sourcemap_codec.encode(sample_decoded),
    }


@pytest.fixture
def fast_config() -> BenchConfig:
    """Provides a config that samples every speed trial once."""
    return BenchConfig(
        order="sorted", min_time=0, min_samples=1, calibration_time=0
    )


@pytest.fixture
def write_fixture(tmp_path: Path) -> Callable[..., Path]:
    """
    Provides a helper writing one fixture file into ``tmp_path``.

    Accepts either a document, serialized with orjson, or raw text.
    """

    def write(
        name: str, document: Any = None, text: str | None = None
    ) -> Path:
        path = tmp_path / name
        if text is not None:
            path.write_text(text)
        else:
            path.write_bytes(orjson.dumps(document))
        return path

    return write
