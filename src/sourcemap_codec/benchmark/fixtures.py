"""
Fixture discovery and loading.

A fixture is a source map file; its ``mappings`` string is the input every
candidate decodes.
"""

import os
from collections.abc import Iterable
from collections.abc import Sized
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import orjson
import ujson  # type: ignore[import-untyped]

from .errors import FixtureError


@dataclass(frozen=True)
class Fixture:
    """One loaded fixture file."""

    name: str
    path: Path
    document: dict[str, Any]
    encoded: str


def list_fixtures(
    directory: str | os.PathLike[str],
    extension: str = ".map",
    order: str = "listing",
) -> list[Path]:
    """
    Lists fixture files whose names end with ``extension``.

    ``listing`` keeps the order the directory listing returns; ``sorted``
    orders names lexicographically.
    """
    directory = Path(directory)
    names = [name for name in os.listdir(directory) if name.endswith(extension)]
    if order == "sorted":
        names.sort()
    elif order != "listing":
        raise ValueError(f"unknown fixture order: {order}")
    return [directory / name for name in names]


def _parse(content: bytes, backend: str) -> Any:
    if backend == "orjson":
        return orjson.loads(content)
    if backend == "ujson":
        return ujson.loads(content.decode("utf-8"))
    raise ValueError(f"unknown JSON backend: {backend}")


def load_fixture(
    path: str | os.PathLike[str], backend: str = "orjson"
) -> Fixture:
    """
    Reads and parses one fixture.

    Raises FixtureError for unreadable files, invalid JSON, and documents
    without a ``mappings`` string.
    """
    path = Path(path)
    try:
        content = path.read_bytes()
    except OSError as e:
        raise FixtureError(path.name, f"cannot read file: {e}") from e

    try:
        document = _parse(content, backend)
    except (ValueError, UnicodeDecodeError) as e:
        raise FixtureError(path.name, f"invalid JSON: {e}") from e

    if not isinstance(document, dict):
        raise FixtureError(path.name, "source map must be a JSON object")
    encoded = document.get("mappings")
    if not isinstance(encoded, str):
        raise FixtureError(path.name, "source map has no mappings string")

    return Fixture(path.name, path, document, encoded)


def segment_count(decoded: Iterable[Sized]) -> int:
    """Total number of segments across all decoded lines."""
    return sum(len(line) for line in decoded)
