"""
Source map generators for codec benchmarks.

Creates version 3 source maps shaped like real bundler output:
- Different sizes (small/medium/large)
- Different segment mixes (unmapped columns, named segments)
- Sparse maps with many empty lines
"""

import random
import string
from pathlib import Path
from typing import Any

import orjson

import sourcemap_codec

# Segment field counts
_UNMAPPED = 1
_MAPPED = 4
_NAMED = 5
_NAMED_PROBABILITY = 0.2
_UNMAPPED_PROBABILITY = 0.05

SIZES = {
    "small": (20, 8),
    "medium": (400, 20),
    "large": (4000, 30),
}


def generate_mappings(
    lines: int,
    segments_per_line: int,
    sources: int = 4,
    names: int = 50,
    empty_line_probability: float = 0.0,
    seed: int = 0,
) -> list[list[tuple[int, ...]]]:
    """Generates decoded mappings with columns ascending within a line."""
    rng = random.Random(seed)
    decoded: list[list[tuple[int, ...]]] = []
    original_line = 0

    for _ in range(lines):
        if rng.random() < empty_line_probability:
            decoded.append([])
            continue

        line: list[tuple[int, ...]] = []
        column = 0
        for _ in range(segments_per_line):
            column += rng.randint(1, 40)
            roll = rng.random()
            if roll < _UNMAPPED_PROBABILITY:
                line.append((column,))
                continue
            source = rng.randrange(sources)
            original_line = max(0, original_line + rng.randint(-3, 6))
            original_column = rng.randint(0, 120)
            if roll < _UNMAPPED_PROBABILITY + _NAMED_PROBABILITY:
                line.append(
                    (column, source, original_line, original_column,
                     rng.randrange(names))
                )  # fmt: skip
            else:
                line.append((column, source, original_line, original_column))
        decoded.append(line)

    return decoded


def generate_source_map(
    lines: int = 20,
    segments_per_line: int = 8,
    seed: int = 0,
    **kwargs: Any,
) -> dict[str, Any]:
    """Generates a complete source map document."""
    sources = kwargs.pop("sources", 4)
    names = kwargs.pop("names", 50)
    decoded = generate_mappings(
        lines, segments_per_line, sources, names, seed=seed, **kwargs
    )
    return {
        "version": 3,
        "file": "bundle.js",
        "sources": [f"src/module_{i}.js" for i in range(sources)],
        "names": [_random_identifier(seed + i) for i in range(names)],
        "mappings": sourcemap_codec.encode(decoded),
    }


def generate_test_data(size: str) -> dict[str, Any]:
    """Generates a source map of a named size."""
    if size not in SIZES:
        raise ValueError(f"Unknown size: {size}")
    lines, segments_per_line = SIZES[size]
    return generate_source_map(lines, segments_per_line)


def write_corpus(
    directory: Path, sizes: tuple[str, ...] = tuple(SIZES)
) -> list[Path]:
    """Writes one ``<size>.map`` fixture per size into ``directory``."""
    directory.mkdir(parents=True, exist_ok=True)
    paths = []
    for size in sizes:
        path = directory / f"{size}.map"
        path.write_bytes(orjson.dumps(generate_test_data(size)))
        paths.append(path)
    return paths


def _random_identifier(seed: int) -> str:
    rng = random.Random(seed)
    return "".join(rng.choices(string.ascii_letters, k=rng.randint(3, 12)))
